"""
Error types for fieldtask.

Device and network failures are raised as exceptions derived from
``FieldTaskError``. Local validation problems and submission outcomes are
returned as values instead (see :mod:`fieldtask.draft` and
:mod:`fieldtask.sync.client`), so callers only need ``try``/``except`` around
hardware access and the listing call.
"""

from __future__ import annotations

from typing import List, Optional

CAMERA_ERROR_MESSAGE = 'Failed to access camera. Please check camera permissions.'
CONNECT_ERROR_MESSAGE = 'Failed to connect to the server'
SUBMIT_ERROR_MESSAGE = 'Failed to submit task'
FETCH_ERROR_MESSAGE = 'Failed to fetch tasks'


class FieldTaskError(Exception):
    """Base class for all fieldtask errors."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class DeviceUnavailable(FieldTaskError):
    """The camera could not be opened (permission, missing hardware, busy)."""

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(reason)

    @property
    def user_message(self) -> str:
        return CAMERA_ERROR_MESSAGE


class NetworkError(FieldTaskError):
    """No response reached the client."""

    def __init__(self, message: str = CONNECT_ERROR_MESSAGE) -> None:
        super().__init__(message)


class ServerError(FieldTaskError):
    """The backend answered with a non-2xx status or an unusable body."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        self.status_code = status_code
        super().__init__(message)


class SubmissionInProgress(FieldTaskError):
    """A second submission was triggered while one is still in flight."""

    def __init__(self) -> None:
        super().__init__('A submission is already in progress')


class DraftInvalid(FieldTaskError):
    """The draft failed validation and cannot be submitted."""

    def __init__(self, violations: List[object], message: str) -> None:
        self.violations = violations
        super().__init__(message)
