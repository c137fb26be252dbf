"""Authenticated technician session passed explicitly to network calls."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Dict, Optional

TOKEN_ENV_VAR = 'FIELDTASK_TOKEN'


@dataclass(frozen=True)
class AuthSession:
    """Bearer credential issued by the login service.

    Acquiring and storing the token is the login service's job; this value
    only carries it to the client calls.
    """

    token: str
    technician_id: Optional[str] = None

    def __post_init__(self) -> None:
        if not self.token:
            raise ValueError('AuthSession requires a non-empty token')

    @classmethod
    def from_env(cls, technician_id: Optional[str] = None) -> 'AuthSession':
        """Read the token from ``FIELDTASK_TOKEN``.

        Raises:
            ValueError: if the variable is unset or empty.
        """
        return cls(token=os.environ.get(TOKEN_ENV_VAR, ''), technician_id=technician_id)

    def headers(self) -> Dict[str, str]:
        return {'Authorization': f'Bearer {self.token}'}

    def __repr__(self) -> str:
        # Never leak the token into logs
        return f'AuthSession(token=***, technician_id={self.technician_id!r})'
