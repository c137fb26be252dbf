"""
Mock camera backend for development and testing on machines without a physical camera.

This implementation creates synthetic frames using the Pillow library. Each
frame is filled with a solid color and annotated with a running frame number,
then JPEG encoded in memory. Failures of the real hardware can be simulated
so that permission and busy-device handling can be exercised.

Usage:

```python
from fieldtask.camera.mock_camera import MockCamera
cam = MockCamera(image_width=640, image_height=480)
cam.acquire('environment')
cam.wait_ready(timeout=1.0)
jpeg = cam.grab_jpeg()
cam.release()
```
"""

from __future__ import annotations

import io
import logging
import random
import threading
from typing import Optional

from PIL import Image, ImageDraw, ImageFont

from ..errors import DeviceUnavailable
from .base import CameraBackend


class MockCamera(CameraBackend):
    """Mock camera backend that generates synthetic images."""

    def __init__(
        self,
        image_width: int = 640,
        image_height: int = 480,
        fail_with: Optional[str] = None,
        ready_delay: float = 0.0,
    ) -> None:
        self.image_width = image_width
        self.image_height = image_height
        # Reason passed to DeviceUnavailable on acquire, None to succeed
        self.fail_with = fail_with
        self.ready_delay = ready_delay
        self.acquired = False
        self.release_count = 0
        self.frames_taken = 0
        self._ready = threading.Event()
        self._timer: Optional[threading.Timer] = None
        self.logger = logging.getLogger(__name__)
        try:
            self.font = ImageFont.load_default()
        except OSError:
            self.font = None

    def acquire(self, facing: str) -> None:
        if self.fail_with:
            raise DeviceUnavailable(self.fail_with)
        if self.acquired:
            raise DeviceUnavailable('camera is busy')
        self.acquired = True
        self._ready.clear()
        self.logger.debug('Mock camera acquired (facing=%s)', facing)
        if self.ready_delay > 0:
            self._timer = threading.Timer(self.ready_delay, self._ready.set)
            self._timer.daemon = True
            self._timer.start()
        else:
            self._ready.set()

    def wait_ready(self, timeout: float) -> bool:
        return self._ready.wait(timeout)

    def grab_jpeg(self) -> bytes:
        """Generate one synthetic frame.

        Returns:
            JPEG bytes of a random solid color image.
        """
        self.frames_taken += 1
        r, g, b = [random.randint(0, 255) for _ in range(3)]
        img = Image.new('RGB', (self.image_width, self.image_height), color=(r, g, b))
        if self.font:
            draw = ImageDraw.Draw(img)
            draw.text((10, 10), f'Frame {self.frames_taken}', fill=(255 - r, 255 - g, 255 - b), font=self.font)
        out = io.BytesIO()
        img.save(out, format='JPEG', quality=90)
        return out.getvalue()

    def release(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        if self.acquired:
            self.release_count += 1
        self.acquired = False
        self._ready.clear()
