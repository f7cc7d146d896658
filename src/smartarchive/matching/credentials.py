"""Pool of interchangeable AI service credentials with a shared rotation cursor.

The cursor only moves when a call succeeds, and then points at the credential
that served it, so the next batch starts from the last known-good credential.
A batch's failover order is the pool order rotated to begin at the cursor.

This is sticky rotation, not round-robin: while a credential keeps succeeding
every batch goes to it, and load only moves on after a failure. Spreading
healthy traffic evenly across the pool would need the cursor to step past the
winner instead.
"""

from __future__ import annotations

import threading
from typing import Sequence

from pydantic import BaseModel, SecretStr


class Credential(BaseModel):
    """A named service credential. Only the name is ever logged."""

    model_config = {"frozen": True}

    name: str
    api_key: SecretStr

    def __str__(self) -> str:
        return self.name


class CredentialPool:
    """Round-robin credential selector guarded by a lock."""

    def __init__(self, credentials: Sequence[Credential]) -> None:
        names = [c.name for c in credentials]
        if len(set(names)) != len(names):
            raise ValueError(f"credential names must be unique: {names}")
        self._credentials = list(credentials)
        self._cursor = 0
        self._lock = threading.Lock()

    @classmethod
    def from_keys(cls, api_keys: Sequence[SecretStr | str]) -> CredentialPool:
        return cls([
            Credential(name=f"credential-{i}", api_key=key)
            for i, key in enumerate(api_keys, start=1)
        ])

    def __len__(self) -> int:
        return len(self._credentials)

    @property
    def cursor(self) -> int:
        with self._lock:
            return self._cursor

    @property
    def current(self) -> Credential | None:
        with self._lock:
            return self._credentials[self._cursor] if self._credentials else None

    def failover_order(self) -> list[Credential]:
        """Every credential once, starting at the cursor."""
        with self._lock:
            start = self._cursor
            return self._credentials[start:] + self._credentials[:start]

    def mark_success(self, credential: Credential) -> None:
        with self._lock:
            self._cursor = self._credentials.index(credential)
