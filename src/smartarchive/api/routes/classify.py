"""Classification endpoint for already-ingested records and reference entries."""

from __future__ import annotations

from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel, Field

from smartarchive.core.exceptions import CacheWriteError, InvalidInputError, ReferenceDataError
from smartarchive.models.classification import Record, ReferenceEntry
from smartarchive.models.retention import ClassificationRun

router = APIRouter(tags=["classification"])


class ClassifyRequest(BaseModel):
    records: list[Record] = Field(default_factory=list)
    references: list[ReferenceEntry] = Field(default_factory=list)
    current_year: int | None = None


@router.post("/classify", response_model=ClassificationRun)
async def classify(payload: ClassifyRequest, request: Request) -> ClassificationRun:
    """Resolve codes and retention status for a batch of records."""
    service = request.app.state.service
    try:
        return await service.classify(
            payload.records, payload.references, current_year=payload.current_year
        )
    except (ReferenceDataError, InvalidInputError) as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    except CacheWriteError as exc:
        raise HTTPException(status_code=503, detail=str(exc)) from exc
