"""
Multipart payload construction for task submission.

``SubmissionEncoder.encode`` turns a draft into a ``SubmissionPayload``: one
text part per draft field, in wire order, followed by one ``images`` part per
photo in buffer order. The payload is shaped for ``requests`` (``data`` as a
list of pairs, ``files`` as a list of ``(name, (filename, bytes, mime))``
tuples) so the client can hand it over unchanged and let requests build the
multipart boundary.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Tuple

from ..camera.base import JPEG_MIME
from ..draft import TaskDraft

IMAGE_PART_NAME = 'images'

FilePart = Tuple[str, Tuple[str, bytes, str]]


@dataclass(frozen=True)
class SubmissionPayload:
    fields: Tuple[Tuple[str, str], ...]
    files: Tuple[FilePart, ...]

    @property
    def data(self) -> List[Tuple[str, str]]:
        return list(self.fields)

    def file_parts(self) -> List[FilePart]:
        return list(self.files)

    @property
    def image_count(self) -> int:
        return len(self.files)

    def field(self, name: str) -> str:
        """Value of the text part called ``name``.

        Raises:
            KeyError: if no such part exists.
        """
        for key, value in self.fields:
            if key == name:
                return value
        raise KeyError(name)


class SubmissionEncoder:
    """Builds submission payloads from drafts without modifying them."""

    def encode(self, draft: TaskDraft) -> SubmissionPayload:
        fields = tuple(draft.field_values())
        files = tuple(
            (IMAGE_PART_NAME, (f'image{position}.jpg', image.data, JPEG_MIME))
            for position, image in enumerate(draft.images)
        )
        return SubmissionPayload(fields=fields, files=files)
