"""
Authoring session for one task.

``TaskComposer`` owns the current draft and coordinates the camera, the
encoder and the submission client around it, the way a capture screen does:

```python
composer = TaskComposer(config, backend=MockCamera(), client=SubmissionClient(config.submit_url))
composer.draft.set_field('organizationName', 'Acme Corp')
composer.open_camera()
composer.capture()
composer.close_camera()
result = composer.submit(auth)
```

At most one submission runs at a time. A successful submission replaces the
draft with a fresh empty one; a rejected or unreachable one leaves the draft
untouched so the technician can fix it and resubmit.
"""

from __future__ import annotations

import logging
import threading
from typing import Callable, Optional

from .camera.base import CameraBackend, CapturedImage
from .camera.device import CaptureDevice, DeviceState
from .config import Config
from .draft import TaskDraft
from .errors import DeviceUnavailable, DraftInvalid, SubmissionInProgress
from .session import AuthSession
from .sync.client import SubmissionClient, SubmitResult, Submitted
from .sync.encoder import SubmissionEncoder


class TaskComposer:
    """Builds and submits one task at a time."""

    def __init__(
        self,
        config: Config,
        backend: CameraBackend,
        client: SubmissionClient,
        encoder: Optional[SubmissionEncoder] = None,
    ) -> None:
        self.config = config
        self.backend = backend
        self.client = client
        self.encoder = encoder or SubmissionEncoder()
        self.draft = TaskDraft(max_images=config.max_images)
        self.device: Optional[CaptureDevice] = None
        self.last_result: Optional[SubmitResult] = None
        self.error: Optional[str] = None
        self._in_flight = threading.Lock()
        self.logger = logging.getLogger(__name__)

    # Camera

    def open_camera(self) -> bool:
        """Start a capture session.

        Returns:
            True when the camera is ready. On failure the user-visible
            message is stored in ``error`` and False is returned; calling
            again retries.
        """
        self.error = None
        device = self.device
        if device is None:
            device = self.device = CaptureDevice(
                self.backend,
                facing=self.config.camera_facing,
                ready_timeout=self.config.camera_ready_timeout,
            )
        try:
            device.open()
        except DeviceUnavailable as exc:
            # A cancelled open leaves the device CLOSED and is not a failure
            if device.state is DeviceState.ERROR:
                self.error = exc.user_message
            device.close()
            if self.device is device:
                self.device = None
            return False
        return True

    def capture(self) -> Optional[CapturedImage]:
        """Add one frame to the draft; None if the camera is not ready or the draft is full."""
        if self.device is None:
            return None
        try:
            return self.device.capture_frame(self.draft.images)
        except DeviceUnavailable as exc:
            self.error = exc.user_message
            self.close_camera()
            return None

    def close_camera(self) -> None:
        if self.device is not None:
            self.device.close()
            self.device = None

    def remove_image(self, index: int) -> None:
        self.draft.images.remove_at(index)

    # Submission

    @property
    def submitting(self) -> bool:
        return self._in_flight.locked()

    def submit(self, auth: AuthSession) -> SubmitResult:
        """Validate, encode and send the current draft.

        Raises:
            DraftInvalid: if the draft has violations; nothing is sent.
            SubmissionInProgress: if another submission has not finished.
        """
        message = self.draft.first_violation_message()
        if message is not None:
            self.error = message
            raise DraftInvalid(self.draft.validate(), message)
        if not self._in_flight.acquire(blocking=False):
            raise SubmissionInProgress()
        try:
            return self._send(auth)
        finally:
            self._in_flight.release()

    def submit_in_background(
        self,
        auth: AuthSession,
        on_result: Optional[Callable[[SubmitResult], None]] = None,
    ) -> threading.Thread:
        """Run ``submit`` on a daemon thread and hand the outcome to ``on_result``.

        Validation and the in-flight check happen before the thread starts,
        so their exceptions reach the caller directly.
        """
        message = self.draft.first_violation_message()
        if message is not None:
            self.error = message
            raise DraftInvalid(self.draft.validate(), message)
        if not self._in_flight.acquire(blocking=False):
            raise SubmissionInProgress()

        def worker() -> None:
            try:
                result = self._send(auth)
            finally:
                self._in_flight.release()
            if on_result is not None:
                try:
                    on_result(result)
                except Exception:
                    self.logger.exception('Submission result callback failed')

        thread = threading.Thread(name='SubmitTask', target=worker, daemon=True)
        thread.start()
        return thread

    def _send(self, auth: AuthSession) -> SubmitResult:
        self.error = None
        payload = self.encoder.encode(self.draft)
        result = self.client.submit(payload, auth)
        self.last_result = result
        if isinstance(result, Submitted):
            self.logger.info('Draft submitted as %s; starting a new draft', result.task_id)
            self.draft = TaskDraft(max_images=self.config.max_images)
        else:
            self.error = result.message
        return result

    def reset(self) -> None:
        """Discard the draft and any capture session."""
        self.close_camera()
        self.draft.reset()
        self.error = None
        self.last_result = None
