"""
Camera backend abstractions for fieldtask.

This module defines the interface that all camera backends must implement.
A camera backend owns the physical stream: it acquires the device, signals
when the stream is ready, grabs single JPEG stills and releases the hardware.
The ``CaptureDevice`` state machine (see :mod:`fieldtask.camera.device`) is the
only caller of a backend.

Implementations may use mock data for development/testing or interact with
real hardware on a Raspberry Pi (e.g., via libcamera or vendor SDK).
"""

from __future__ import annotations
from dataclasses import dataclass, field
import datetime

JPEG_MIME = 'image/jpeg'


@dataclass
class CapturedImage:
    """One still frame held in client memory."""

    data: bytes
    ordinal: int = 0
    mime_type: str = JPEG_MIME
    captured_at: datetime.datetime = field(
        default_factory=lambda: datetime.datetime.now(datetime.timezone.utc)
    )

    @property
    def filename(self) -> str:
        return f'image{self.ordinal}.jpg'

    @property
    def size_bytes(self) -> int:
        return len(self.data)


class CameraBackend:
    """Abstract base class for camera backends."""

    def acquire(self, facing: str) -> None:
        """Request exclusive access to the camera facing ``facing``.

        Raises:
            DeviceUnavailable: permission denied, no camera or hardware busy.
        """
        raise NotImplementedError('acquire must be implemented by subclasses')

    def wait_ready(self, timeout: float) -> bool:
        """Block until the stream delivers frames.

        Returns:
            True once ready, False if ``timeout`` seconds elapsed first.
        """
        raise NotImplementedError('wait_ready must be implemented by subclasses')

    def grab_jpeg(self) -> bytes:
        """Return one still frame at native resolution, JPEG encoded."""
        raise NotImplementedError('grab_jpeg must be implemented by subclasses')

    def release(self) -> None:
        """Stop the stream and free the hardware. Must be idempotent."""
        raise NotImplementedError('release must be implemented by subclasses')
