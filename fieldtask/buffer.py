"""Ordered, capacity-bounded collection of captured frames."""

from __future__ import annotations

import dataclasses
from typing import Iterator, List

from .camera.base import CapturedImage

MAX_IMAGES = 10


class ImageBuffer:
    """Holds the frames of one draft in display and upload order.

    Ordinals always run 0..len-1; removing a frame renumbers everything after
    it. Appending to a full buffer and removing an out-of-range index are
    silent no-ops.
    """

    def __init__(self, capacity: int = MAX_IMAGES) -> None:
        if not 1 <= capacity <= MAX_IMAGES:
            raise ValueError(f'capacity must be between 1 and {MAX_IMAGES}')
        self.capacity = capacity
        self._images: List[CapturedImage] = []

    def __len__(self) -> int:
        return len(self._images)

    def __iter__(self) -> Iterator[CapturedImage]:
        return iter(list(self._images))

    def __getitem__(self, index: int) -> CapturedImage:
        return self._images[index]

    @property
    def is_full(self) -> bool:
        return len(self._images) >= self.capacity

    @property
    def remaining(self) -> int:
        return self.capacity - len(self._images)

    def append(self, frame: CapturedImage) -> bool:
        """Append ``frame`` at the end.

        Returns:
            True if stored, False if the buffer was already full.
        """
        if self.is_full:
            return False
        # The buffer owns its copies; ordinals are never shared with callers
        self._images.append(dataclasses.replace(frame, ordinal=len(self._images)))
        return True

    def remove_at(self, index: int) -> None:
        if not 0 <= index < len(self._images):
            return
        del self._images[index]
        for ordinal, image in enumerate(self._images[index:], start=index):
            image.ordinal = ordinal

    def clear(self) -> None:
        self._images.clear()
