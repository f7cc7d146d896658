"""SmartArchive exception hierarchy."""

from __future__ import annotations


class SmartArchiveError(Exception):
    """Base exception for all SmartArchive errors."""


class InvalidInputError(SmartArchiveError):
    """Records handed to the resolver violate the run contract."""


class ReferenceDataError(SmartArchiveError):
    """Reference schedule is empty or inconsistent."""


class CacheError(SmartArchiveError):
    """Classification cache operation failed."""

    def __init__(self, operation: str, key: str, message: str) -> None:
        self.operation = operation
        self.key = key
        super().__init__(f"Cache {operation} failed for key={key!r}: {message}")


class CacheUnavailableError(CacheError):
    """Cache read failed. Callers treat this as a miss."""

    def __init__(self, key: str, message: str) -> None:
        super().__init__("read", key, message)


class CacheWriteError(CacheError):
    """Cache write failed. Never retried; propagates to the caller."""

    def __init__(self, key: str, message: str) -> None:
        super().__init__("write", key, message)


class AIRequestFailedError(SmartArchiveError):
    """AI matching call failed for a single credential."""

    def __init__(self, credential: str, message: str) -> None:
        self.credential = credential
        super().__init__(f"AI request via {credential} failed: {message}")


class MalformedAIResponseError(AIRequestFailedError):
    """AI response was not parseable or violated the expected shape."""
