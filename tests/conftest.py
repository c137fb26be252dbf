"""
Shared pytest fixtures for the fieldtask test suite.

No test touches the network or real camera hardware: HTTP goes through a
MagicMock standing in for ``requests.Session`` and frames come from
``MockCamera`` or fixed JPEG bytes.
"""

import json
from unittest.mock import MagicMock

import pytest
import requests

from fieldtask.camera.base import CapturedImage
from fieldtask.config import Config
from fieldtask.draft import TaskDraft
from fieldtask.session import AuthSession

# Smallest JPEG the tests need: SOI + JFIF header + EOI
JPEG_BYTES = (
    b'\xff\xd8\xff\xe0\x00\x10JFIF\x00\x01\x01\x00\x00\x01\x00\x01\x00\x00'
    b'\xff\xd9'
)

REQUIRED_VALUES = {
    'organizationName': 'Acme',
    'productName': 'Compressor',
    'additionalInfo': 'Annual service',
    'remarks': 'All good',
    'machineName': 'CX-200',
    'machineManufacturer': 'Atlas',
    'machineSerialNumber': 'SN-001',
    'machineModel': '2020',
    'contactPersonName': 'Priya',
    'contactPersonMobileNumber': '5550100',
    'companyAddress': '1 Industrial Way',
}


def make_response(status_code=200, body=None, raw=None):
    """Build a real ``requests.Response`` with a JSON (or raw) body."""
    response = requests.Response()
    response.status_code = status_code
    if raw is not None:
        response._content = raw
    else:
        response._content = json.dumps(body if body is not None else {}).encode('utf-8')
        response.headers['Content-Type'] = 'application/json'
    response.encoding = 'utf-8'
    return response


@pytest.fixture
def config(tmp_path):
    return Config(
        base_url='http://backend.test',
        log_file=str(tmp_path / 'logs' / 'fieldtask.log'),
        camera_ready_timeout=1.0,
        image_width=32,
        image_height=24,
    )


@pytest.fixture
def auth():
    return AuthSession(token='secret-token', technician_id='QC-7')


@pytest.fixture
def http_session():
    """A mock ``requests.Session`` answering 200 {} unless told otherwise."""
    session = MagicMock(spec=requests.Session)
    session.request.return_value = make_response(200, {})
    return session


@pytest.fixture
def frame():
    return CapturedImage(data=JPEG_BYTES)


@pytest.fixture
def complete_draft():
    """A draft with every required field and two photos."""
    draft = TaskDraft(**REQUIRED_VALUES)
    draft.images.append(CapturedImage(data=JPEG_BYTES + b'1'))
    draft.images.append(CapturedImage(data=JPEG_BYTES + b'2'))
    return draft
