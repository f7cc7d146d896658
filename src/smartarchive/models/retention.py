"""Retention lifecycle states and the per-record rows handed to export."""

from __future__ import annotations

from enum import StrEnum
from typing import Optional

from pydantic import BaseModel, Field

from smartarchive.models.classification import (
    Confidence,
    MatchOrigin,
    ResolutionFailure,
)


class RetentionState(StrEnum):
    ACTIVE = "Active"
    INACTIVE = "Inactive"
    DESTROY = "Destroy"
    PERMANENT = "Permanent"
    MANUAL_REVIEW = "ManualReview"


class ReviewReason(StrEnum):
    NO_YEAR = "No Year"
    UNKNOWN_CODE = "Unknown Code"
    UNCLASSIFIED = "Unclassified"


class RetentionStatus(BaseModel):
    """Lifecycle status of a classified record."""

    model_config = {"frozen": True}

    state: RetentionState
    reason: Optional[ReviewReason] = None

    @classmethod
    def manual_review(cls, reason: ReviewReason) -> RetentionStatus:
        return cls(state=RetentionState.MANUAL_REVIEW, reason=reason)

    @property
    def label(self) -> str:
        if self.reason is None:
            return self.state.value
        return f"{self.state.value} ({self.reason.value})"


class ClassifiedRecord(BaseModel):
    """One output row: the record, its match and its retention status."""

    record_id: int
    description: str = ""
    year: int = 0
    code: str = ""
    matched_description: str = ""
    confidence: Confidence = Confidence.LOW
    origin: MatchOrigin = MatchOrigin.UNRESOLVED
    status: Optional[RetentionStatus] = None
    note: str = ""


class ClassificationRun(BaseModel):
    """Final result set of a run, ready for the export boundary."""

    current_year: int
    results: list[ClassifiedRecord] = Field(default_factory=list)
    failures: list[ResolutionFailure] = Field(default_factory=list)

    @property
    def needs_follow_up(self) -> list[ClassifiedRecord]:
        """Rows an archivist should look at by hand."""
        affected = {rid for failure in self.failures for rid in failure.record_ids}
        return [
            row for row in self.results
            if row.record_id in affected
            or row.status is None
            or row.status.state is RetentionState.MANUAL_REVIEW
        ]
