"""Records, reference schedule entries and per-record match results.

Records and reference entries are handed over by the ingestion boundary, which
reads loosely structured spreadsheets. The validators below accept the cell
shapes those sheets produce ("5 Tahun", "PERMANEN", blank years) and coerce them
into the canonical model.
"""

from __future__ import annotations

import re
from enum import StrEnum
from typing import Any, Sequence

from pydantic import BaseModel, Field, field_validator, model_validator

from smartarchive.core.exceptions import ReferenceDataError

_FIRST_INT = re.compile(r"\d+")


def parse_period(value: Any) -> int:
    """Extract a whole number of years from a cell value (0 when none is present)."""
    if value is None or isinstance(value, bool):
        return 0
    if isinstance(value, (int, float)):
        return int(value)
    match = _FIRST_INT.search(str(value))
    return int(match.group(0)) if match else 0


class Confidence(StrEnum):
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"


class MatchOrigin(StrEnum):
    CACHE = "Cache"
    LOCAL = "Local"
    AI = "AI"
    UNRESOLVED = "Unresolved"


class Disposition(StrEnum):
    DESTROY = "Destroy"
    PERMANENT = "Permanent"


class Record(BaseModel):
    """An archive item to classify."""

    model_config = {"frozen": True, "str_strip_whitespace": True}

    id: int
    description: str = ""
    year: int = 0  # 0 when the sheet has no usable year

    @field_validator("description", mode="before")
    @classmethod
    def _blank_description(cls, value: Any) -> Any:
        return "" if value is None else str(value)

    @field_validator("year", mode="before")
    @classmethod
    def _coerce_year(cls, value: Any) -> int:
        return parse_period(value)


class ReferenceEntry(BaseModel):
    """One row of the master classification schedule."""

    model_config = {"frozen": True, "str_strip_whitespace": True}

    code: str = Field(min_length=1)
    description: str
    active_period: int = Field(default=0, ge=0)
    inactive_period: int = Field(default=0, ge=0)
    disposition: Disposition = Disposition.DESTROY

    @field_validator("active_period", "inactive_period", mode="before")
    @classmethod
    def _coerce_period(cls, value: Any) -> int:
        return parse_period(value)

    @field_validator("disposition", mode="before")
    @classmethod
    def _coerce_disposition(cls, value: Any) -> Disposition:
        if isinstance(value, Disposition):
            return value
        text = str(value or "").upper()
        # Schedules write the terminal state as free text ("PERMANEN", "Permanent", "Musnah")
        return Disposition.PERMANENT if "PERMAN" in text else Disposition.DESTROY

    @property
    def retention_years(self) -> int:
        return self.active_period + self.inactive_period


def index_references(references: Sequence[ReferenceEntry]) -> dict[str, ReferenceEntry]:
    """Map code -> entry, rejecting an empty schedule or duplicate codes."""
    if not references:
        raise ReferenceDataError("reference schedule is empty")
    index: dict[str, ReferenceEntry] = {}
    for ref in references:
        if ref.code in index:
            raise ReferenceDataError(f"duplicate reference code {ref.code!r}")
        index[ref.code] = ref
    return index


class MatchResult(BaseModel):
    """Outcome of resolving one record against the reference schedule."""

    model_config = {"frozen": True}

    record_id: int
    code: str = ""
    confidence: Confidence = Confidence.LOW
    origin: MatchOrigin = MatchOrigin.UNRESOLVED
    note: str = ""

    @model_validator(mode="after")
    def _code_matches_origin(self) -> MatchResult:
        if not self.code and self.origin is not MatchOrigin.UNRESOLVED:
            raise ValueError(f"{self.origin} match for record {self.record_id} has no code")
        if self.code and self.origin is MatchOrigin.UNRESOLVED:
            raise ValueError(f"unresolved record {self.record_id} carries code {self.code!r}")
        return self

    @property
    def is_resolved(self) -> bool:
        return self.origin is not MatchOrigin.UNRESOLVED


class CacheEntry(BaseModel):
    """A previously resolved (code, confidence) pair keyed by normalized text."""

    model_config = {"frozen": True}

    text_key: str
    code: str = Field(min_length=1)
    confidence: Confidence


class FailureReason(StrEnum):
    AI_UNAVAILABLE = "ai_unavailable"


class ResolutionFailure(BaseModel):
    """Records a tier could not serve, reported alongside the results."""

    reason: FailureReason
    record_ids: list[int] = Field(default_factory=list)
    detail: str = ""


class ResolutionReport(BaseModel):
    """All match results for a run plus any partial-failure reports."""

    results: list[MatchResult] = Field(default_factory=list)
    failures: list[ResolutionFailure] = Field(default_factory=list)

    def by_record_id(self) -> dict[int, MatchResult]:
        return {result.record_id: result for result in self.results}

    @property
    def affected_record_ids(self) -> set[int]:
        """Ids whose result may be incomplete because a tier was unavailable."""
        return {rid for failure in self.failures for rid in failure.record_ids}
