"""Redis cache backend implementing IClassificationCache."""

from __future__ import annotations

import redis.asyncio as aioredis
from pydantic import BaseModel, Field, ValidationError

from smartarchive.core.exceptions import CacheUnavailableError, CacheWriteError
from smartarchive.models.classification import CacheEntry, Confidence


class _CachedMatch(BaseModel):
    code: str = Field(min_length=1)
    confidence: Confidence


class RedisClassificationCache:
    """Production IClassificationCache backed by Redis. Entries never expire."""

    def __init__(
        self,
        host: str = "localhost",
        port: int = 6379,
        db: int = 0,
        *,
        key_prefix: str = "classification",
        client: aioredis.Redis | None = None,
    ) -> None:
        self._key_prefix = key_prefix
        self._client = client if client is not None else aioredis.Redis(
            host=host, port=port, db=db, decode_responses=True,
        )

    def _key(self, text_key: str) -> str:
        return f"{self._key_prefix}:{text_key}"

    async def get(self, text_key: str) -> CacheEntry | None:
        try:
            raw = await self._client.get(self._key(text_key))
        except Exception as exc:
            raise CacheUnavailableError(text_key, f"Redis GET failed: {exc}") from exc
        if raw is None:
            return None
        try:
            cached = _CachedMatch.model_validate_json(raw)
        except ValidationError as exc:
            raise CacheUnavailableError(text_key, f"corrupt cache value: {raw!r}") from exc
        return CacheEntry(text_key=text_key, code=cached.code, confidence=cached.confidence)

    async def put(self, text_key: str, code: str, confidence: Confidence) -> None:
        value = _CachedMatch(code=code, confidence=confidence).model_dump_json()
        try:
            # NX: an entry, once written, is never replaced
            await self._client.set(self._key(text_key), value, nx=True)
        except Exception as exc:
            raise CacheWriteError(text_key, f"Redis SET failed: {exc}") from exc

    async def aclose(self) -> None:
        await self._client.aclose()
