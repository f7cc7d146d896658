"""Create the DynamoDB classification cache table, optionally pre-seeding entries.

Usage:
    python scripts/create_cache_table.py --endpoint-url http://localhost:4566
    python scripts/create_cache_table.py --table-suffix -dev --seed known_matches.json \
        --references schedule.json

The seed file is a JSON list of {"text": ..., "code": ..., "confidence": ...}
objects. Texts are normalized the same way the resolver normalizes descriptions.
The resolver scopes keys to a fingerprint of the reference schedule, so pass the
schedule the entries belong to (--references, a JSON list of reference entries)
or its fingerprint (--reference-version). Entries already in the table are left
as they are.
"""

from __future__ import annotations

import argparse
import json
from pathlib import Path
from typing import Any

import boto3
from botocore.exceptions import ClientError

from smartarchive.matching.orchestrator import cache_key
from smartarchive.matching.text import normalize_text, reference_fingerprint
from smartarchive.models.classification import Confidence, ReferenceEntry
from smartarchive.persistence.dynamodb_backend import SORT_KEY, partition_key

DEFAULT_TABLE_NAME = "smartarchive-classification-cache"


def create_table(ddb: Any, table_name: str = DEFAULT_TABLE_NAME, suffix: str = "") -> bool:
    """Create the cache table. Returns False if it already exists."""
    client = ddb.meta.client
    full_name = f"{table_name}{suffix}"
    if full_name in client.list_tables().get("TableNames", []):
        print(f"  Table {full_name} already exists, skipping")
        return False
    client.create_table(
        TableName=full_name,
        KeySchema=[
            {"AttributeName": "PK", "KeyType": "HASH"},
            {"AttributeName": "SK", "KeyType": "RANGE"},
        ],
        AttributeDefinitions=[
            {"AttributeName": "PK", "AttributeType": "S"},
            {"AttributeName": "SK", "AttributeType": "S"},
        ],
        BillingMode="PAY_PER_REQUEST",
    )
    print(f"  Created table {full_name}")
    return True


def load_reference_version(path: Path) -> str:
    """Fingerprint of the reference schedule stored at path."""
    rows = json.loads(path.read_text(encoding="utf-8"))
    return reference_fingerprint([ReferenceEntry.model_validate(row) for row in rows])


def seed_entries(
    ddb: Any,
    entries: list[dict[str, Any]],
    table_name: str = DEFAULT_TABLE_NAME,
    suffix: str = "",
    reference_version: str | None = None,
) -> int:
    """Write known matches into the cache table. Returns the number written.

    Keys that already have an entry are skipped, never replaced.
    """
    tbl = ddb.Table(f"{table_name}{suffix}")
    written = 0
    skipped = 0
    for entry in entries:
        text = normalize_text(entry.get("text"))
        code = str(entry.get("code") or "").strip()
        if not text or not code:
            continue
        key = cache_key(text, reference_version)
        try:
            tbl.put_item(
                Item={
                    "PK": partition_key(key),
                    "SK": SORT_KEY,
                    "text": key,
                    "code": code,
                    "confidence": Confidence(entry.get("confidence", Confidence.HIGH.value)).value,
                },
                ConditionExpression="attribute_not_exists(PK)",
            )
        except ClientError as exc:
            if exc.response.get("Error", {}).get("Code") != "ConditionalCheckFailedException":
                raise
            skipped += 1
            continue
        written += 1
    print(f"  Seeded {written} cache entries ({skipped} already present)")
    return written


def main() -> None:
    parser = argparse.ArgumentParser(description="Create the SmartArchive classification cache table")
    parser.add_argument("--endpoint-url", default=None, help="DynamoDB endpoint (e.g. http://localhost:4566)")
    parser.add_argument("--table-name", default=DEFAULT_TABLE_NAME, help="Base table name")
    parser.add_argument("--table-suffix", default="", help="Table name suffix (e.g. -dev)")
    parser.add_argument("--region", default="us-east-1", help="AWS region")
    parser.add_argument("--seed", type=Path, default=None, help="JSON file of known matches")
    versioning = parser.add_mutually_exclusive_group()
    versioning.add_argument("--references", type=Path, default=None,
                            help="JSON file of reference entries the seeded matches belong to")
    versioning.add_argument("--reference-version", default=None,
                            help="Schedule fingerprint to scope seeded keys")
    args = parser.parse_args()

    kwargs: dict[str, Any] = {"region_name": args.region}
    if args.endpoint_url:
        kwargs["endpoint_url"] = args.endpoint_url

    ddb = boto3.resource("dynamodb", **kwargs)

    print("Creating table...")
    create_table(ddb, table_name=args.table_name, suffix=args.table_suffix)

    if args.seed is not None:
        version = args.reference_version
        if args.references is not None:
            version = load_reference_version(args.references)
        if version is None:
            print("  WARNING: no --references or --reference-version given; seeded keys are "
                  "unversioned and only match when SMARTARCHIVE_CACHE_VERSION_BY_REFERENCE=false")
        print("Seeding entries...")
        entries = json.loads(args.seed.read_text(encoding="utf-8"))
        seed_entries(
            ddb, entries, table_name=args.table_name, suffix=args.table_suffix,
            reference_version=version,
        )

    print("Done!")


if __name__ == "__main__":
    main()
