"""DynamoDB backend implementing IClassificationCache.

Items live in a PK/SK table: PK = "TEXT#<key>", SK = "MATCH". Keys too long
for a DynamoDB partition key are replaced by their SHA-256 digest, with the
full text kept on the item. boto3 is blocking, so calls run in a worker thread.
"""

from __future__ import annotations

import asyncio
import hashlib
from typing import Any

import boto3
from botocore.exceptions import BotoCoreError, ClientError
from pydantic import ValidationError

from smartarchive.core.exceptions import CacheUnavailableError, CacheWriteError
from smartarchive.models.classification import CacheEntry, Confidence

SORT_KEY = "MATCH"
MAX_KEY_BYTES = 1024  # DynamoDB allows 2048 for the whole partition key


def partition_key(text_key: str) -> str:
    if len(text_key.encode("utf-8")) > MAX_KEY_BYTES:
        return f"TEXTSHA#{hashlib.sha256(text_key.encode('utf-8')).hexdigest()}"
    return f"TEXT#{text_key}"


class DynamoDBClassificationCache:
    """Production IClassificationCache backed by DynamoDB."""

    def __init__(self, table_name: str, table_suffix: str = "", region: str = "us-east-1",
                 endpoint_url: str | None = None) -> None:
        self._table_name = f"{table_name}{table_suffix}"
        kwargs: dict = {"region_name": region}
        if endpoint_url:
            kwargs["endpoint_url"] = endpoint_url
        self._ddb = boto3.resource("dynamodb", **kwargs)
        self._table = self._ddb.Table(self._table_name)

    def _get_item(self, text_key: str) -> dict[str, Any] | None:
        resp = self._table.get_item(Key={"PK": partition_key(text_key), "SK": SORT_KEY})
        return resp.get("Item")

    def _put_item(self, text_key: str, code: str, confidence: Confidence) -> None:
        try:
            self._table.put_item(
                Item={
                    "PK": partition_key(text_key),
                    "SK": SORT_KEY,
                    "text": text_key,
                    "code": code,
                    "confidence": confidence.value,
                },
                ConditionExpression="attribute_not_exists(PK)",
            )
        except ClientError as exc:
            if exc.response.get("Error", {}).get("Code") == "ConditionalCheckFailedException":
                return  # already cached; entries are immutable
            raise

    async def get(self, text_key: str) -> CacheEntry | None:
        try:
            item = await asyncio.to_thread(self._get_item, text_key)
        except (ClientError, BotoCoreError) as exc:
            raise CacheUnavailableError(text_key, f"DynamoDB GetItem on {self._table_name} failed: {exc}") from exc
        if item is None:
            return None
        try:
            return CacheEntry(text_key=text_key, code=item["code"], confidence=Confidence(item["confidence"]))
        except (KeyError, ValueError, ValidationError) as exc:
            raise CacheUnavailableError(text_key, f"corrupt cache item: {item!r}") from exc

    async def put(self, text_key: str, code: str, confidence: Confidence) -> None:
        try:
            await asyncio.to_thread(self._put_item, text_key, code, confidence)
        except (ClientError, BotoCoreError) as exc:
            raise CacheWriteError(text_key, f"DynamoDB PutItem on {self._table_name} failed: {exc}") from exc
