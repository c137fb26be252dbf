"""
Raspberry Pi camera backend.

This backend uses the libcamera tools available on Raspberry Pi OS. Acquiring
the device lists the attached cameras with ``libcamera-still --list-cameras``;
each still is then taken with ``libcamera-still`` writing the JPEG to stdout,
so frames never touch the filesystem.

Note: To use this backend, ensure that libcamera is installed and the camera
is enabled on your Raspberry Pi. libcamera has no notion of front or rear
facing; ``facing`` is mapped to a camera index through ``camera_indexes``.

If libcamera is not available (e.g., when running on macOS), ``acquire``
raises ``DeviceUnavailable``.
"""

from __future__ import annotations

import logging
import subprocess
from typing import Dict, List, Optional

from ..errors import DeviceUnavailable
from .base import CameraBackend


class RpiCamera(CameraBackend):
    """Camera backend using libcamera tools on Raspberry Pi."""

    def __init__(
        self,
        image_width: Optional[int] = None,
        image_height: Optional[int] = None,
        quality: int = 90,
        camera_indexes: Optional[Dict[str, int]] = None,
    ) -> None:
        # None keeps the sensor's native resolution
        self.image_width = image_width
        self.image_height = image_height
        self.quality = quality
        self.camera_indexes = camera_indexes or {'environment': 0, 'user': 1}
        self.camera_index: Optional[int] = None
        self.logger = logging.getLogger(__name__)

    def _run(self, cmd: List[str]) -> subprocess.CompletedProcess:
        try:
            return subprocess.run(cmd, check=True, stdout=subprocess.PIPE, stderr=subprocess.PIPE)
        except FileNotFoundError:
            raise DeviceUnavailable('libcamera-still is not available on this system')
        except subprocess.CalledProcessError as exc:
            stderr = exc.stderr.decode(errors='replace').strip()
            if 'busy' in stderr.lower():
                raise DeviceUnavailable('camera is busy')
            raise DeviceUnavailable(f'libcamera-still failed: {stderr}')

    def acquire(self, facing: str) -> None:
        if facing not in self.camera_indexes:
            raise DeviceUnavailable(f'no camera configured for facing {facing!r}')
        index = self.camera_indexes[facing]
        result = self._run(['libcamera-still', '--list-cameras'])
        listing = (result.stdout + result.stderr).decode(errors='replace')
        if 'No cameras available' in listing:
            raise DeviceUnavailable('no camera detected')
        # Listing lines look like "0 : imx477 [4056x3040] (/base/soc/...)"
        present = [line for line in listing.splitlines() if line.strip().startswith(f'{index} :')]
        if not present:
            raise DeviceUnavailable(f'camera {index} not found')
        self.camera_index = index
        self.logger.info('Using camera %s', present[0].strip())

    def wait_ready(self, timeout: float) -> bool:
        # libcamera-still starts the pipeline per still, so an acquired camera is ready
        return self.camera_index is not None

    def grab_jpeg(self) -> bytes:
        """Capture a single still using libcamera-still.

        Returns:
            JPEG bytes read from the tool's stdout.

        Raises:
            DeviceUnavailable: if the camera was not acquired or capture fails.
        """
        if self.camera_index is None:
            raise DeviceUnavailable('camera not acquired')
        cmd = [
            'libcamera-still',
            '-n',                        # no preview
            '--immediate',
            '--camera', str(self.camera_index),
            '--encoding', 'jpg',
            '--quality', str(self.quality),
            '-o', '-',
        ]
        if self.image_width and self.image_height:
            cmd += ['--width', str(self.image_width), '--height', str(self.image_height)]
        result = self._run(cmd)
        if not result.stdout:
            raise DeviceUnavailable('libcamera-still returned no image data')
        return result.stdout

    def release(self) -> None:
        self.camera_index = None
