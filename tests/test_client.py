"""Tests for SubmissionClient and TaskListClient against a mocked session."""

import pytest
import requests

from conftest import make_response
from fieldtask.errors import NetworkError, ServerError
from fieldtask.sync.client import (
    LOCAL_ID_PREFIX,
    Rejected,
    SubmissionClient,
    Submitted,
    TaskListClient,
    Unreachable,
)
from fieldtask.sync.encoder import SubmissionEncoder

SUBMIT_URL = 'http://backend.test/admin/api/serviceman/submit'
TASKS_URL = 'http://backend.test/admin/api/serviceman/my-tasks'


class TestSubmissionClient:

    @pytest.fixture(autouse=True)
    def _client(self, http_session, complete_draft):
        self.session = http_session
        self.client = SubmissionClient(SUBMIT_URL, timeout=5, session=http_session)
        self.payload = SubmissionEncoder().encode(complete_draft)

    def test_request_shape(self, auth):
        self.session.request.return_value = make_response(201, {'taskId': 'T-1'})
        self.client.submit(self.payload, auth)

        self.session.request.assert_called_once()
        args, kwargs = self.session.request.call_args
        assert args == ('POST', SUBMIT_URL)
        assert kwargs['headers'] == {'Authorization': 'Bearer secret-token'}
        assert kwargs['timeout'] == 5
        assert kwargs['data'] == list(self.payload.fields)
        assert len(kwargs['files']) == 2

    def test_success_with_task_id(self, auth):
        self.session.request.return_value = make_response(200, {'taskId': 'T-1'})
        assert self.client.submit(self.payload, auth) == Submitted('T-1')

    def test_success_without_task_id_synthesizes_local_id(self, auth):
        self.session.request.return_value = make_response(200, {'ok': True})
        result = self.client.submit(self.payload, auth)
        assert isinstance(result, Submitted)
        assert result.task_id.startswith(LOCAL_ID_PREFIX)
        assert result.server_issued is False

    def test_success_with_non_json_body(self, auth):
        self.session.request.return_value = make_response(200, raw=b'OK')
        result = self.client.submit(self.payload, auth)
        assert isinstance(result, Submitted)
        assert not result.server_issued

    def test_fallback_ids_are_unique(self, auth):
        self.session.request.side_effect = lambda *a, **k: make_response(200, {})
        first = self.client.submit(self.payload, auth)
        second = self.client.submit(self.payload, auth)
        assert first.task_id != second.task_id

    def test_rejected_uses_server_message(self, auth):
        self.session.request.return_value = make_response(400, {'message': 'Ticket already closed'})
        assert self.client.submit(self.payload, auth) == Rejected('Ticket already closed', 400)

    def test_rejected_generic_message(self, auth):
        self.session.request.return_value = make_response(500, raw=b'<html>boom</html>')
        result = self.client.submit(self.payload, auth)
        assert isinstance(result, Rejected)
        assert result.message == 'Failed to submit task'

    @pytest.mark.parametrize('exc', [
        requests.exceptions.ConnectionError('refused'),
        requests.exceptions.Timeout('slow'),
    ])
    def test_transport_failure_is_unreachable(self, auth, exc):
        self.session.request.side_effect = exc
        result = self.client.submit(self.payload, auth)
        assert isinstance(result, Unreachable)
        assert result.message == 'Failed to connect to the server'

    def test_no_retry(self, auth):
        self.session.request.side_effect = requests.exceptions.ConnectionError()
        self.client.submit(self.payload, auth)
        assert self.session.request.call_count == 1

    @pytest.mark.parametrize('status', [300, 302, 304])
    def test_unfollowed_redirect_is_rejected(self, auth, status):
        self.session.request.return_value = make_response(status, raw=b'')
        result = self.client.submit(self.payload, auth)
        assert isinstance(result, Rejected)
        assert result.message == 'Failed to submit task'
        assert result.status_code == status


class TestTaskListClient:

    def _client(self, http_session):
        return TaskListClient(TASKS_URL, session=http_session)

    def test_returns_task_list(self, http_session, auth):
        http_session.request.return_value = make_response(200, {'tasks': [{'_id': 'a'}]})
        assert self._client(http_session).fetch_tasks(auth) == [{'_id': 'a'}]
        args, kwargs = http_session.request.call_args
        assert args == ('GET', TASKS_URL)
        assert kwargs['headers'] == auth.headers()

    def test_server_error_message(self, http_session, auth):
        http_session.request.return_value = make_response(401, {'message': 'Token expired'})
        with pytest.raises(ServerError) as excinfo:
            self._client(http_session).fetch_tasks(auth)
        assert excinfo.value.message == 'Token expired'
        assert excinfo.value.status_code == 401

    def test_missing_task_list_is_server_error(self, http_session, auth):
        http_session.request.return_value = make_response(200, {'data': []})
        with pytest.raises(ServerError, match='Failed to fetch tasks'):
            self._client(http_session).fetch_tasks(auth)

    @pytest.mark.parametrize('status', [300, 302, 304])
    def test_unfollowed_redirect_is_server_error(self, http_session, auth, status):
        http_session.request.return_value = make_response(status, {'tasks': []})
        with pytest.raises(ServerError) as excinfo:
            self._client(http_session).fetch_tasks(auth)
        assert excinfo.value.status_code == status

    def test_network_error(self, http_session, auth):
        http_session.request.side_effect = requests.exceptions.ConnectionError()
        with pytest.raises(NetworkError):
            self._client(http_session).fetch_tasks(auth)
