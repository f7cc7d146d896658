"""Tiered classification resolution: cache, then local fuzzy match, then AI.

Records are processed in fixed-size batches, one batch at a time. Within a
batch every tier only sees what the previous tier left unresolved:

1. Cache: lookup by normalized description. A failing read counts as a miss.
2. Local: Levenshtein similarity against the schedule; never cached.
3. AI: one request for the rest of the batch. Matches whose code exists in
   the schedule are written through to the cache; a failing write propagates.

Blank descriptions skip every tier, and descriptions shorter than the AI
minimum are not sent to the AI tier. Every record gets exactly one
MatchResult; batches the AI tier could not serve are listed as failures in
the report.
"""

from __future__ import annotations

from typing import Callable, Sequence

from smartarchive.core.exceptions import CacheUnavailableError, InvalidInputError
from smartarchive.core.logging import get_logger
from smartarchive.core.types import ProgressCallback
from smartarchive.matching.ai_client import AIMatchingClient
from smartarchive.matching.similarity import LocalSimilarityMatcher
from smartarchive.matching.text import normalize_text, reference_fingerprint
from smartarchive.models.classification import (
    CacheEntry,
    FailureReason,
    MatchOrigin,
    MatchResult,
    Record,
    ReferenceEntry,
    ResolutionFailure,
    ResolutionReport,
    index_references,
)
from smartarchive.persistence.protocols import IClassificationCache

logger = get_logger(__name__)

DEFAULT_BATCH_SIZE = 10

NOTE_NO_DESCRIPTION = "no description"
NOTE_TOO_SHORT = "description too short for AI matching"
NOTE_NO_MATCH = "no match found"
NOTE_AI_UNAVAILABLE = "AI matching unavailable"
NOTE_UNKNOWN_CODE = "code not in reference schedule"

MatcherFactory = Callable[[Sequence[ReferenceEntry]], LocalSimilarityMatcher]


def cache_key(text: str, reference_version: str | None = None) -> str:
    """Cache key for normalized text, optionally scoped to a schedule version."""
    return f"{reference_version}:{text}" if reference_version else text


class _BatchState:
    """Per-run accumulators shared by every batch."""

    def __init__(self, references: Sequence[ReferenceEntry], reference_version: str | None,
                 matcher: LocalSimilarityMatcher) -> None:
        self.references = references
        self.by_code = index_references(references)
        self.reference_version = reference_version
        self.matcher = matcher
        self.results: dict[int, MatchResult] = {}
        self.failures: list[ResolutionFailure] = []

    def unresolved(self, record: Record, note: str) -> None:
        self.results[record.id] = MatchResult(record_id=record.id, note=note)


class ResolutionOrchestrator:
    """Composes cache, local matcher and AI client into one resolution pipeline."""

    def __init__(
        self,
        *,
        cache: IClassificationCache,
        ai_client: AIMatchingClient,
        batch_size: int = DEFAULT_BATCH_SIZE,
        matcher_factory: MatcherFactory | None = None,
        min_ai_description_length: int = 2,
        version_cache_by_reference: bool = True,
    ) -> None:
        if batch_size < 1:
            raise ValueError(f"batch_size must be positive, got {batch_size}")
        self._cache = cache
        self._ai = ai_client
        self._batch_size = batch_size
        self._matcher_factory = matcher_factory or LocalSimilarityMatcher
        self._min_ai_length = min_ai_description_length
        self._version_cache = version_cache_by_reference

    def cache_key_for(self, description: str, references: Sequence[ReferenceEntry]) -> str:
        """The key a description is cached under for this schedule."""
        version = reference_fingerprint(references) if self._version_cache else None
        return cache_key(normalize_text(description), version)

    async def resolve(
        self,
        records: Sequence[Record],
        references: Sequence[ReferenceEntry],
        *,
        on_batch_complete: ProgressCallback | None = None,
    ) -> ResolutionReport:
        """Resolve every record; results follow input order."""
        seen: set[int] = set()
        for record in records:
            if record.id in seen:
                raise InvalidInputError(f"duplicate record id {record.id}")
            seen.add(record.id)

        version = reference_fingerprint(references) if self._version_cache else None
        state = _BatchState(references, version, self._matcher_factory(references))

        batches = [records[i:i + self._batch_size] for i in range(0, len(records), self._batch_size)]
        for number, batch in enumerate(batches, start=1):
            await self._resolve_batch(batch, state)
            logger.info(
                "batch_resolved",
                batch=number,
                total_batches=len(batches),
                records=len(batch),
                resolved=sum(1 for r in batch if state.results[r.id].is_resolved),
            )
            if on_batch_complete is not None:
                on_batch_complete(number, len(batches))

        return ResolutionReport(
            results=[state.results[record.id] for record in records],
            failures=state.failures,
        )

    async def _lookup(self, key: str) -> CacheEntry | None:
        try:
            return await self._cache.get(key)
        except CacheUnavailableError as exc:
            logger.warning("cache_read_failed", key=key, error=str(exc))
            return None

    async def _resolve_batch(self, batch: Sequence[Record], state: _BatchState) -> None:
        # Tier 1: cache
        pending: list[tuple[Record, str]] = []
        for record in batch:
            text = normalize_text(record.description)
            if not text:
                state.unresolved(record, NOTE_NO_DESCRIPTION)
                continue
            hit = await self._lookup(cache_key(text, state.reference_version))
            if hit is None:
                pending.append((record, text))
                continue
            state.results[record.id] = MatchResult(
                record_id=record.id,
                code=hit.code,
                confidence=hit.confidence,
                origin=MatchOrigin.CACHE,
                note="" if hit.code in state.by_code else NOTE_UNKNOWN_CODE,
            )

        if not pending:
            return

        # Tier 2: local fuzzy match
        local = state.matcher.match_many((record.id, record.description) for record, _ in pending)
        ai_items: list[tuple[Record, str]] = []
        for record, text in pending:
            match = local.get(record.id)
            if match is not None:
                state.results[record.id] = MatchResult(
                    record_id=record.id,
                    code=match.code,
                    confidence=match.confidence,
                    origin=MatchOrigin.LOCAL,
                )
            elif len(record.description.strip()) < self._min_ai_length:
                state.unresolved(record, NOTE_TOO_SHORT)
            else:
                ai_items.append((record, text))

        if not ai_items:
            return

        # Tier 3: AI
        outcome = await self._ai.find_best_matches(
            [(record.id, record.description) for record, _ in ai_items], state.references
        )
        if not outcome.available:
            state.failures.append(
                ResolutionFailure(
                    reason=FailureReason.AI_UNAVAILABLE,
                    record_ids=[record.id for record, _ in ai_items],
                    detail="; ".join(outcome.errors),
                )
            )
            for record, _ in ai_items:
                state.unresolved(record, NOTE_AI_UNAVAILABLE)
            return

        for record, text in ai_items:
            ai_match = outcome.matches.get(record.id)
            if ai_match is None:
                state.unresolved(record, NOTE_NO_MATCH)
                continue
            known = ai_match.code in state.by_code
            state.results[record.id] = MatchResult(
                record_id=record.id,
                code=ai_match.code,
                confidence=ai_match.confidence,
                origin=MatchOrigin.AI,
                note="" if known else NOTE_UNKNOWN_CODE,
            )
            if known:
                await self._cache.put(
                    cache_key(text, state.reference_version), ai_match.code, ai_match.confidence
                )
            else:
                logger.warning("ai_unknown_code", record_id=record.id, code=ai_match.code)
