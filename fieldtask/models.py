"""
Read-only view of tasks as returned by the listing endpoint.

Each task object carries every draft field under its wire name plus ``_id``,
``createdAt``, ``serviceManQcid`` and the uploaded image URLs. Missing fields
are tolerated and read as empty strings; the backend has shipped tasks
created before some fields existed.
"""

from __future__ import annotations

import datetime
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Tuple

from .draft import FIELDS

EPOCH = datetime.datetime.min.replace(tzinfo=datetime.timezone.utc)


def parse_timestamp(value: Any) -> Optional[datetime.datetime]:
    """Parse an ISO-8601 timestamp such as ``2024-05-01T10:00:00.000Z``.

    Naive values are taken as UTC. Returns None for empty or unparsable input.
    """
    if not isinstance(value, str) or not value.strip():
        return None
    text = value.strip()
    if text.endswith('Z'):
        text = text[:-1] + '+00:00'
    try:
        parsed = datetime.datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=datetime.timezone.utc)
    return parsed


@dataclass(frozen=True)
class SubmittedTask:
    """The server's record of one submitted task."""

    task_id: str
    created_at: Optional[datetime.datetime]
    technician_id: str
    fields: Dict[str, str] = field(default_factory=dict)
    images: Tuple[str, ...] = ()

    @classmethod
    def from_json(cls, data: Mapping[str, Any]) -> 'SubmittedTask':
        values = {}
        for f in FIELDS:
            raw = data.get(f.wire_name)
            values[f.wire_name] = '' if raw is None else str(raw)
        images = data.get('images') or []
        return cls(
            task_id=str(data.get('_id', '')),
            created_at=parse_timestamp(data.get('createdAt')),
            technician_id=str(data.get('serviceManQcid', '') or ''),
            fields=values,
            images=tuple(str(i) for i in images if i),
        )

    @property
    def sort_key(self) -> datetime.datetime:
        # Tasks without a usable timestamp sort as the oldest
        return self.created_at or EPOCH

    def __getitem__(self, name: str) -> str:
        return self.fields[name]

    @property
    def organization_name(self) -> str:
        return self.fields.get('organizationName', '')

    @property
    def product_name(self) -> str:
        return self.fields.get('productName', '')
