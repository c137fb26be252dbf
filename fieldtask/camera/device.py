"""
Capture session state machine.

``CaptureDevice`` wraps a :class:`~fieldtask.camera.base.CameraBackend` and is
the only component allowed to start or stop the camera stream. States::

    IDLE -> REQUESTING -> READY <-> CAPTURING -> CLOSED
                 |
                 +-> ERROR

``close()`` is accepted from any state, may be called from another thread
while ``open()`` waits for the stream, and is safe to call repeatedly. Use the
device as a context manager so every exit path releases the hardware:

```python
with CaptureDevice(MockCamera()) as device:
    device.open()
    device.capture_frame(buffer)
```
"""

from __future__ import annotations

import enum
import logging
import threading
import time
from typing import Optional

from ..buffer import ImageBuffer
from ..errors import DeviceUnavailable
from .base import CameraBackend, CapturedImage

# Granularity of the readiness wait; bounds how long close() takes to interrupt open()
READY_POLL_INTERVAL = 0.05


class DeviceState(enum.Enum):
    IDLE = 'idle'
    REQUESTING = 'requesting'
    READY = 'ready'
    CAPTURING = 'capturing'
    CLOSED = 'closed'
    ERROR = 'error'


class CaptureDevice:
    """Owns the lifecycle of one camera stream."""

    def __init__(self, backend: CameraBackend, facing: str = 'environment', ready_timeout: float = 10.0) -> None:
        self.backend = backend
        self.facing = facing
        self.ready_timeout = ready_timeout
        self.state = DeviceState.IDLE
        self.last_error: Optional[DeviceUnavailable] = None
        self._lock = threading.RLock()
        self._cancelled = threading.Event()
        self.logger = logging.getLogger(__name__)

    def __enter__(self) -> 'CaptureDevice':
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    @property
    def is_ready(self) -> bool:
        return self.state is DeviceState.READY

    def open(self) -> None:
        """Request the camera and wait until it delivers frames.

        Raises:
            DeviceUnavailable: access denied, no camera, hardware busy, the
                stream did not come up in time, or ``close()`` was called
                while waiting.
        """
        with self._lock:
            if self.state in (DeviceState.READY, DeviceState.REQUESTING, DeviceState.CAPTURING):
                return
            self._cancelled.clear()
            self.state = DeviceState.REQUESTING
            self.last_error = None
            try:
                self.backend.acquire(self.facing)
            except DeviceUnavailable as exc:
                self._fail(exc)
                raise

        # Wait outside the lock so close() can run concurrently
        deadline = time.monotonic() + self.ready_timeout
        ready = False
        while not self._cancelled.is_set():
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                break
            if self.backend.wait_ready(min(READY_POLL_INTERVAL, remaining)):
                ready = True
                break

        with self._lock:
            if self._cancelled.is_set():
                # close() already moved us to CLOSED; make sure the stream is gone
                self.backend.release()
                raise DeviceUnavailable('capture cancelled')
            if not ready:
                self.backend.release()
                self._fail(DeviceUnavailable('camera did not become ready in time'))
                raise self.last_error
            self.state = DeviceState.READY
            self.logger.info('Camera ready (facing=%s)', self.facing)

    def capture_frame(self, buffer: Optional[ImageBuffer] = None) -> Optional[CapturedImage]:
        """Take one still frame.

        Args:
            buffer: if given, the frame is appended to it.

        Returns:
            The captured image, or None (with no side effect) when the device
            is not ready or ``buffer`` is already full.

        Raises:
            DeviceUnavailable: if the backend fails mid-session.
        """
        with self._lock:
            if self.state is not DeviceState.READY:
                return None
            if buffer is not None and buffer.is_full:
                return None
            self.state = DeviceState.CAPTURING
            try:
                data = self.backend.grab_jpeg()
            except DeviceUnavailable as exc:
                self.backend.release()
                self._fail(exc)
                raise
            except Exception as exc:
                self.backend.release()
                self._fail(DeviceUnavailable(f'capture failed: {exc}'))
                raise self.last_error from exc
            self.state = DeviceState.READY
            frame = CapturedImage(data=data)
            if buffer is not None and buffer.append(frame):
                frame = buffer[len(buffer) - 1]
            self.logger.debug('Captured frame of %d bytes', frame.size_bytes)
            return frame

    def close(self) -> None:
        self._cancelled.set()
        with self._lock:
            if self.state is DeviceState.CLOSED:
                return
            self.backend.release()
            self.state = DeviceState.CLOSED
            self.logger.info('Camera released')

    def _fail(self, exc: DeviceUnavailable) -> None:
        self.state = DeviceState.ERROR
        self.last_error = exc
        self.logger.warning('Camera unavailable: %s', exc.reason)
