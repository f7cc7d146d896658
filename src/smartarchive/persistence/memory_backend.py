"""Dict-backed classification cache for unit tests and local development."""

from __future__ import annotations

from smartarchive.models.classification import CacheEntry, Confidence


class MemoryClassificationCache:
    """Dict-backed IClassificationCache. Lives as long as the process."""

    def __init__(self) -> None:
        self._store: dict[str, CacheEntry] = {}

    async def get(self, text_key: str) -> CacheEntry | None:
        return self._store.get(text_key)

    async def put(self, text_key: str, code: str, confidence: Confidence) -> None:
        self._store.setdefault(
            text_key, CacheEntry(text_key=text_key, code=code, confidence=confidence)
        )

    def seed(self, text_key: str, code: str, confidence: Confidence = Confidence.HIGH) -> None:
        """Pre-populate an entry without going through the resolver."""
        self._store[text_key] = CacheEntry(text_key=text_key, code=code, confidence=confidence)

    @property
    def entries(self) -> dict[str, CacheEntry]:
        return dict(self._store)

    def __len__(self) -> int:
        return len(self._store)

    def __contains__(self, text_key: object) -> bool:
        return text_key in self._store
