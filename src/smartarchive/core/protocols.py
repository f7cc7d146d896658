"""Protocol interfaces for all SmartArchive abstractions.

All inter-layer communication uses these Protocols: structural typing with
no inheritance required, easy to check with isinstance().
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol, Sequence, runtime_checkable

if TYPE_CHECKING:
    from smartarchive.matching.credentials import Credential
    from smartarchive.models.classification import (
        CacheEntry,
        Confidence,
        Record,
        ReferenceEntry,
        ResolutionReport,
    )


# ---------------------------------------------------------------------------
# Model Provider
# ---------------------------------------------------------------------------

@runtime_checkable
class IModelProvider(Protocol):
    """Abstraction over the AI matching service (mock, OpenAI-compatible proxy).

    Implementations raise AIRequestFailedError for transport failures and return
    the raw response text otherwise; response validation belongs to the caller.
    """

    async def chat(
        self,
        messages: list[dict[str, str]],
        *,
        credential: Credential,
        response_schema: dict[str, Any] | None = None,
        **kwargs: Any,
    ) -> str: ...


# ---------------------------------------------------------------------------
# Persistence: Classification Cache
# ---------------------------------------------------------------------------

@runtime_checkable
class IClassificationCache(Protocol):
    """Durable normalized-text -> (code, confidence) store shared across runs.

    get raises CacheUnavailableError, put raises CacheWriteError. Entries are
    immutable: putting an existing key leaves the stored entry untouched.
    """

    async def get(self, text_key: str) -> CacheEntry | None: ...

    async def put(self, text_key: str, code: str, confidence: Confidence) -> None: ...


# ---------------------------------------------------------------------------
# Resolution
# ---------------------------------------------------------------------------

@runtime_checkable
class IResolver(Protocol):
    """Tiered classification resolution."""

    async def resolve(
        self, records: Sequence[Record], references: Sequence[ReferenceEntry], **kwargs: Any
    ) -> ResolutionReport: ...
