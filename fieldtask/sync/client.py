"""
Network client for the technician backend.

This module provides the HTTP side of fieldtask. ``ServiceClient`` holds the
shared ``requests.Session``, timeout and bearer header handling;
``SubmissionClient`` posts task payloads and ``TaskListClient`` reads the
technician's submitted tasks.

The API endpoints are assumed to be:

- POST ``/admin/api/serviceman/submit`` with a multipart body (see
  :mod:`fieldtask.sync.encoder`). The server responds with
  ``{ "taskId": ... }`` on success and ``{ "message": ... }`` on failure.

- GET ``/admin/api/serviceman/my-tasks``. The server responds with
  ``{ "tasks": [ ... ] }``.

Both require ``Authorization: Bearer <token>``. Paths come from
:class:`fieldtask.config.Config`.

Submission never raises for network or server problems: the outcome is
returned as ``Submitted``, ``Rejected`` or ``Unreachable``. Nothing is retried
here; resubmitting is up to the operator.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Union
import requests

from ..errors import (
    CONNECT_ERROR_MESSAGE,
    FETCH_ERROR_MESSAGE,
    SUBMIT_ERROR_MESSAGE,
    NetworkError,
    ServerError,
)
from ..session import AuthSession
from .encoder import SubmissionPayload

# Prefix of ids made up locally when the backend omits taskId
LOCAL_ID_PREFIX = 'local-'


@dataclass(frozen=True)
class Submitted:
    task_id: str
    server_issued: bool = True

    ok = True


@dataclass(frozen=True)
class Rejected:
    message: str
    status_code: Optional[int] = None

    ok = False


@dataclass(frozen=True)
class Unreachable:
    message: str = CONNECT_ERROR_MESSAGE

    ok = False


SubmitResult = Union[Submitted, Rejected, Unreachable]


def make_local_task_id() -> str:
    return f'{LOCAL_ID_PREFIX}{uuid.uuid4().hex}'


def _is_success(response: requests.Response) -> bool:
    # Response.ok also accepts unfollowed 3xx replies
    return 200 <= response.status_code < 300


def _json_or_none(response: requests.Response) -> Optional[Any]:
    try:
        return response.json()
    except ValueError:
        return None


def _server_message(body: Any, default: str) -> str:
    if isinstance(body, dict):
        message = body.get('message')
        if isinstance(message, str) and message:
            return message
    return default


class ServiceClient:
    """HTTP plumbing shared by the submission and listing clients."""

    def __init__(self, url: str, timeout: int = 30, session: Optional[requests.Session] = None) -> None:
        self.url = url
        self.timeout = timeout
        self.session = session or requests.Session()
        self.logger = logging.getLogger(__name__)

    def _send(self, method: str, auth: AuthSession, **kwargs: Any) -> requests.Response:
        """Issue one request with the bearer header.

        Raises:
            NetworkError: if no response was received.
        """
        try:
            return self.session.request(method, self.url, headers=auth.headers(), timeout=self.timeout, **kwargs)
        except requests.exceptions.RequestException as exc:
            self.logger.error('%s %s failed: %s', method, self.url, exc)
            raise NetworkError() from exc

    def close(self) -> None:
        self.session.close()


class SubmissionClient(ServiceClient):
    """Sends task payloads to the submission endpoint."""

    def submit(self, payload: SubmissionPayload, auth: AuthSession) -> SubmitResult:
        """Post one task.

        Args:
            payload: encoded draft.
            auth: technician session supplying the bearer token.

        Returns:
            ``Submitted`` on any 2xx (with a local fallback id when the body
            has no ``taskId``), ``Rejected`` on a non-2xx status,
            ``Unreachable`` when no response arrived.
        """
        self.logger.info('Submitting task with %d images', payload.image_count)
        try:
            response = self._send('POST', auth, data=payload.data, files=payload.file_parts())
        except NetworkError as exc:
            return Unreachable(exc.message)

        body = _json_or_none(response)
        if not _is_success(response):
            message = _server_message(body, SUBMIT_ERROR_MESSAGE)
            self.logger.warning('Submission rejected (%s): %s', response.status_code, message)
            return Rejected(message=message, status_code=response.status_code)

        task_id = body.get('taskId') if isinstance(body, dict) else None
        if isinstance(task_id, (str, int)) and str(task_id):
            self.logger.info('Task submitted as %s', task_id)
            return Submitted(task_id=str(task_id))
        fallback = make_local_task_id()
        self.logger.warning('Server accepted task without taskId; using %s', fallback)
        return Submitted(task_id=fallback, server_issued=False)


class TaskListClient(ServiceClient):
    """Reads the authenticated technician's submitted tasks."""

    def fetch_tasks(self, auth: AuthSession) -> List[Dict[str, Any]]:
        """Return the raw task objects from the listing endpoint.

        Raises:
            NetworkError: if no response was received.
            ServerError: on a non-2xx status or a body without a task list.
        """
        response = self._send('GET', auth)
        body = _json_or_none(response)
        if not _is_success(response):
            raise ServerError(_server_message(body, FETCH_ERROR_MESSAGE), status_code=response.status_code)
        tasks = body.get('tasks') if isinstance(body, dict) else None
        if not isinstance(tasks, list):
            raise ServerError(FETCH_ERROR_MESSAGE, status_code=response.status_code)
        self.logger.info('Fetched %d tasks', len(tasks))
        return tasks
