"""Tests for the CaptureDevice state machine and the mock backend."""

import threading
import time
from unittest.mock import patch

import pytest

from fieldtask.buffer import ImageBuffer, MAX_IMAGES
from fieldtask.camera.base import CapturedImage
from fieldtask.camera.device import CaptureDevice, DeviceState
from fieldtask.camera.mock_camera import MockCamera
from fieldtask.errors import CAMERA_ERROR_MESSAGE, DeviceUnavailable


def _wait_for(predicate, timeout=2.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return False


class TestCaptureDevice:

    def setup_method(self):
        self.camera = MockCamera(image_width=32, image_height=24)
        self.device = CaptureDevice(self.camera, ready_timeout=1.0)

    def test_open_reaches_ready(self):
        assert self.device.state is DeviceState.IDLE
        self.device.open()
        assert self.device.state is DeviceState.READY
        assert self.camera.acquired

    def test_capture_returns_jpeg_and_stays_ready(self):
        self.device.open()
        frame = self.device.capture_frame()
        assert frame.data[:2] == b'\xff\xd8'
        assert frame.mime_type == 'image/jpeg'
        assert self.device.state is DeviceState.READY

    def test_capture_appends_to_buffer(self):
        buf = ImageBuffer()
        self.device.open()
        self.device.capture_frame(buf)
        second = self.device.capture_frame(buf)
        assert len(buf) == 2
        assert [img.ordinal for img in buf] == [0, 1]
        assert second.ordinal == 1

    def test_backend_crash_during_capture_does_not_wedge_device(self):
        buf = ImageBuffer()
        self.device.open()
        with patch.object(self.camera, 'grab_jpeg', side_effect=OSError('encoder failed')):
            with pytest.raises(DeviceUnavailable):
                self.device.capture_frame(buf)
        assert self.device.state is DeviceState.ERROR
        assert not self.camera.acquired
        assert len(buf) == 0

        self.device.open()
        assert self.device.capture_frame(buf) is not None
        assert len(buf) == 1

    def test_capture_before_open_has_no_effect(self):
        buf = ImageBuffer()
        assert self.device.capture_frame(buf) is None
        assert len(buf) == 0
        assert self.camera.frames_taken == 0

    def test_capture_after_close_has_no_effect(self):
        buf = ImageBuffer()
        self.device.open()
        self.device.close()
        assert self.device.capture_frame(buf) is None
        assert len(buf) == 0

    def test_capture_into_full_buffer_has_no_effect(self):
        buf = ImageBuffer()
        for _ in range(MAX_IMAGES):
            buf.append(CapturedImage(data=b'x'))
        self.device.open()
        assert self.device.capture_frame(buf) is None
        assert len(buf) == MAX_IMAGES
        assert self.camera.frames_taken == 0

    def test_open_failure_enters_error_and_can_retry(self):
        self.camera.fail_with = 'permission denied'
        with pytest.raises(DeviceUnavailable) as excinfo:
            self.device.open()
        assert excinfo.value.user_message == CAMERA_ERROR_MESSAGE
        assert self.device.state is DeviceState.ERROR

        self.camera.fail_with = None
        self.device.open()
        assert self.device.state is DeviceState.READY

    def test_ready_timeout_releases_camera(self):
        camera = MockCamera(ready_delay=5.0)
        device = CaptureDevice(camera, ready_timeout=0.1)
        with pytest.raises(DeviceUnavailable):
            device.open()
        assert device.state is DeviceState.ERROR
        assert not camera.acquired

    def test_close_is_idempotent(self):
        self.device.open()
        self.device.close()
        self.device.close()
        assert self.device.state is DeviceState.CLOSED
        assert self.camera.release_count == 1

    def test_close_from_idle(self):
        self.device.close()
        assert self.device.state is DeviceState.CLOSED

    def test_context_manager_closes(self):
        with CaptureDevice(self.camera) as device:
            device.open()
        assert device.state is DeviceState.CLOSED
        assert not self.camera.acquired

    def test_close_while_waiting_for_ready_releases_camera(self):
        camera = MockCamera(ready_delay=5.0)
        device = CaptureDevice(camera, ready_timeout=5.0)
        errors = []

        def opener():
            try:
                device.open()
            except DeviceUnavailable as exc:
                errors.append(exc)

        t = threading.Thread(target=opener)
        t.start()
        assert _wait_for(lambda: device.state is DeviceState.REQUESTING)
        device.close()
        t.join(timeout=2.0)

        assert not t.is_alive()
        assert len(errors) == 1
        assert device.state is DeviceState.CLOSED
        assert not camera.acquired

    def test_reopen_after_close(self):
        self.device.open()
        self.device.close()
        self.device.open()
        assert self.device.state is DeviceState.READY


class TestMockCamera:

    def test_busy_when_acquired_twice(self):
        camera = MockCamera()
        camera.acquire('environment')
        with pytest.raises(DeviceUnavailable, match='busy'):
            camera.acquire('environment')
        camera.release()
        camera.acquire('environment')
        assert camera.acquired
