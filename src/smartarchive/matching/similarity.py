"""Local fuzzy matcher: normalized Levenshtein similarity against reference descriptions.

similarity(a, b) = 1 - levenshtein(lower(a), lower(b)) / max(len(a), len(b)),
and 1.0 when both strings are empty.

The best-scoring reference wins. Ties go to the lexicographically smallest
reference code, so the outcome does not depend on the order of the schedule.
A match is accepted only at or above the acceptance threshold and is banded
High at or above the high threshold, Medium below it. There is no Low band for
local matches: anything under the acceptance floor falls through to the next tier.
"""

from __future__ import annotations

from typing import Iterable, Sequence

from pydantic import BaseModel
from rapidfuzz.distance import Levenshtein

from smartarchive.core.logging import get_logger
from smartarchive.models.classification import Confidence, ReferenceEntry

logger = get_logger(__name__)

DEFAULT_ACCEPT_THRESHOLD = 0.70
DEFAULT_HIGH_THRESHOLD = 0.85


def similarity(a: str, b: str) -> float:
    """Normalized edit-distance similarity in [0, 1]."""
    max_length = max(len(a), len(b))
    if max_length == 0:
        return 1.0
    distance = Levenshtein.distance(a.lower(), b.lower())
    return max(0.0, 1.0 - distance / max_length)


class LocalMatch(BaseModel):
    """An accepted local-tier match."""

    model_config = {"frozen": True}

    record_id: int
    code: str
    similarity: float
    confidence: Confidence


class LocalSimilarityMatcher:
    """Synchronous, CPU-bound matcher over a fixed reference schedule."""

    def __init__(
        self,
        references: Sequence[ReferenceEntry],
        *,
        accept_threshold: float = DEFAULT_ACCEPT_THRESHOLD,
        high_threshold: float = DEFAULT_HIGH_THRESHOLD,
        max_text_length: int | None = None,
    ) -> None:
        if not 0.0 <= accept_threshold <= high_threshold <= 1.0:
            raise ValueError(
                f"thresholds must satisfy 0 <= accept ({accept_threshold}) "
                f"<= high ({high_threshold}) <= 1"
            )
        self._accept = accept_threshold
        self._high = high_threshold
        self._max_len = max_text_length
        # Canonical order for tie-breaking: ascending code
        self._references = sorted(references, key=lambda ref: ref.code)

    def _clip(self, text: str) -> str:
        return text if self._max_len is None else text[: self._max_len]

    def best_candidate(self, text: str) -> tuple[ReferenceEntry, float] | None:
        """Highest-similarity reference for text, regardless of acceptance."""
        if not text.strip() or not self._references:
            return None
        clipped = self._clip(text)
        best: tuple[ReferenceEntry, float] | None = None
        for ref in self._references:
            score = similarity(clipped, self._clip(ref.description))
            if best is None or score > best[1]:
                best = (ref, score)
        return best

    def band(self, score: float) -> Confidence | None:
        """Confidence for an accepted score, None when below the acceptance floor."""
        if score < self._accept:
            return None
        return Confidence.HIGH if score >= self._high else Confidence.MEDIUM

    def match(self, record_id: int, text: str) -> LocalMatch | None:
        candidate = self.best_candidate(text)
        if candidate is None:
            return None
        ref, score = candidate
        confidence = self.band(score)
        if confidence is None:
            return None
        return LocalMatch(record_id=record_id, code=ref.code, similarity=score, confidence=confidence)

    def match_many(self, items: Iterable[tuple[int, str]]) -> dict[int, LocalMatch]:
        """Accepted matches keyed by record id. Unmatched ids are absent."""
        requested = 0
        matches: dict[int, LocalMatch] = {}
        for record_id, text in items:
            requested += 1
            found = self.match(record_id, text)
            if found is not None:
                matches[record_id] = found
        logger.debug("local_matching_done", requested=requested, accepted=len(matches))
        return matches
