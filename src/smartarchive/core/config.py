"""Application configuration using pydantic-settings with grouped env prefixes."""

from __future__ import annotations

from typing import Literal

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings


class LLMConfig(BaseSettings):
    """AI matching service configuration."""

    model_config = {"env_prefix": "SMARTARCHIVE_LLM_"}

    provider: Literal["mock", "openai"] = "mock"
    base_url: str = "http://litellm-proxy:4000/v1"
    model: str = "gemini/gemini-2.0-flash"
    api_keys: list[SecretStr] = []  # JSON list in env, one entry per pooled credential
    temperature: float = 0.0
    request_timeout: float = 60.0


class ResolverConfig(BaseSettings):
    """Resolution pipeline tuning."""

    model_config = {"env_prefix": "SMARTARCHIVE_RESOLVER_"}

    batch_size: int = 10
    local_accept_threshold: float = 0.70
    local_high_threshold: float = 0.85
    local_max_text_length: int | None = None
    min_ai_description_length: int = 2
    current_year: int = 2026


class CacheConfig(BaseSettings):
    """Classification cache selection."""

    model_config = {"env_prefix": "SMARTARCHIVE_CACHE_"}

    backend: Literal["memory", "redis", "dynamodb"] = "memory"
    version_by_reference: bool = True


class RedisConfig(BaseSettings):
    """Redis cache configuration."""

    model_config = {"env_prefix": "SMARTARCHIVE_REDIS_"}

    host: str = "localhost"
    port: int = 6379
    db: int = 0
    key_prefix: str = "classification"


class DynamoDBConfig(BaseSettings):
    """DynamoDB cache configuration."""

    model_config = {"env_prefix": "SMARTARCHIVE_DYNAMO_"}

    table_name: str = "smartarchive-classification-cache"
    table_suffix: str = ""  # "-dev", "-uat", or "" for prod
    region: str = "us-east-1"
    endpoint_url: str | None = None  # LocalStack override


class AppSettings(BaseSettings):
    """Root application settings aggregating all sub-configs."""

    model_config = {"env_prefix": "SMARTARCHIVE_"}

    environment: Literal["dev", "uat", "prod"] = "dev"
    log_level: str = "INFO"
    log_json: bool = False

    llm: LLMConfig = Field(default_factory=LLMConfig)
    resolver: ResolverConfig = Field(default_factory=ResolverConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    redis: RedisConfig = Field(default_factory=RedisConfig)
    dynamodb: DynamoDBConfig = Field(default_factory=DynamoDBConfig)
