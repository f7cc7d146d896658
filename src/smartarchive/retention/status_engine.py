"""Retention lifecycle rules.

With age = current_year - record_year:

    record_year missing (0)           -> ManualReview (No Year)
    age <= active                     -> Active
    age <= active + inactive          -> Inactive
    age >  active + inactive          -> Permanent or Destroy, per disposition

Both boundaries are inclusive on the earlier state: a record exactly
active_period years old is still Active, one exactly active + inactive years
old is still Inactive. current_year is fixed per deployment, never read from
the clock.
"""

from __future__ import annotations

from typing import Mapping

from smartarchive.models.classification import (
    Disposition,
    MatchResult,
    Record,
    ReferenceEntry,
)
from smartarchive.models.retention import (
    RetentionState,
    RetentionStatus,
    ReviewReason,
)


def compute_status(current_year: int, record_year: int | None, reference: ReferenceEntry) -> RetentionStatus:
    if not record_year:
        return RetentionStatus.manual_review(ReviewReason.NO_YEAR)

    age = current_year - record_year
    if age <= reference.active_period:
        return RetentionStatus(state=RetentionState.ACTIVE)
    if age <= reference.retention_years:
        return RetentionStatus(state=RetentionState.INACTIVE)
    if age > reference.retention_years:
        if reference.disposition is Disposition.PERMANENT:
            return RetentionStatus(state=RetentionState.PERMANENT)
        return RetentionStatus(state=RetentionState.DESTROY)
    return RetentionStatus.manual_review(ReviewReason.UNCLASSIFIED)


def assess_match(
    current_year: int,
    record: Record,
    match: MatchResult,
    references_by_code: Mapping[str, ReferenceEntry],
) -> RetentionStatus | None:
    """Status for a resolved record, None when the record is unresolved.

    A code absent from the schedule is a data-consistency problem, not a crash:
    it yields ManualReview (Unknown Code).
    """
    if not match.is_resolved:
        return None
    reference = references_by_code.get(match.code)
    if reference is None:
        return RetentionStatus.manual_review(ReviewReason.UNKNOWN_CODE)
    return compute_status(current_year, record.year, reference)
