"""Pluggable classification cache backends behind Protocol interfaces."""

from __future__ import annotations

from smartarchive.core.config import AppSettings
from smartarchive.core.protocols import IClassificationCache
from smartarchive.persistence.dynamodb_backend import DynamoDBClassificationCache
from smartarchive.persistence.memory_backend import MemoryClassificationCache
from smartarchive.persistence.redis_backend import RedisClassificationCache


def create_cache(settings: AppSettings | None = None) -> IClassificationCache:
    """Create the classification cache selected by application settings."""
    if settings is None:
        settings = AppSettings()

    backend = settings.cache.backend
    if backend == "redis":
        return RedisClassificationCache(
            host=settings.redis.host,
            port=settings.redis.port,
            db=settings.redis.db,
            key_prefix=settings.redis.key_prefix,
        )
    if backend == "dynamodb":
        return DynamoDBClassificationCache(
            table_name=settings.dynamodb.table_name,
            table_suffix=settings.dynamodb.table_suffix,
            region=settings.dynamodb.region,
            endpoint_url=settings.dynamodb.endpoint_url,
        )
    return MemoryClassificationCache()
