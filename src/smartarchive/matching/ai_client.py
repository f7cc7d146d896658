"""AI-assisted semantic matching with credential failover.

One request per batch: the full reference schedule as "CODE: description"
lines plus the unresolved items tagged with their record ids. The response must
be {"matches": [{"id", "code", "confidence"}, ...]} and is validated strictly;
a transport failure, timeout or invalid payload moves on to the next credential
in the pool. When every credential has failed the batch comes back as
AIBatchOutcome(available=False) instead of raising.

Returned codes are not checked against the schedule here, and the service may
leave some requested ids out.
"""

from __future__ import annotations

import asyncio
from typing import Any, Sequence

from pydantic import BaseModel, Field, ValidationError, field_validator

from smartarchive.core.exceptions import AIRequestFailedError, MalformedAIResponseError
from smartarchive.core.logging import get_logger
from smartarchive.core.protocols import IModelProvider
from smartarchive.core.types import ChatMessages, JsonDict
from smartarchive.matching.credentials import Credential, CredentialPool
from smartarchive.models.classification import Confidence, ReferenceEntry

logger = get_logger(__name__)

DEFAULT_TIMEOUT_SECONDS = 60.0

SYSTEM_PROMPT = "You are an expert archivist helping to classify documents."

USER_PROMPT_TEMPLATE = """Reference Classification List (Code: Description):
---
{references}
---

Task:
For each Input Item below, find the Best Matching Classification Code from the Reference List above based on semantic similarity.
If the description is vague, use your best judgement.

Input Items:
{items}

Output Requirement:
Return a JSON object with a "matches" array where each object has:
- "id": The ID provided in the input.
- "code": The matched Classification Code (e.g., SY.01.01).
- "confidence": "High", "Medium", or "Low".
"""

RESPONSE_SCHEMA: JsonDict = {
    "type": "object",
    "properties": {
        "matches": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "id": {"type": "integer"},
                    "code": {"type": "string"},
                    "confidence": {"type": "string", "enum": [c.value for c in Confidence]},
                },
                "required": ["id", "code", "confidence"],
                "additionalProperties": False,
            },
        },
    },
    "required": ["matches"],
    "additionalProperties": False,
}


class AIMatch(BaseModel):
    """One entry of the AI response."""

    model_config = {"extra": "forbid", "frozen": True}

    id: int
    code: str = Field(min_length=1)
    confidence: Confidence

    @field_validator("code")
    @classmethod
    def _strip_code(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("code must not be blank")
        return value


class AIMatchResponse(BaseModel):
    model_config = {"extra": "forbid"}

    matches: list[AIMatch]


class AIBatchOutcome(BaseModel):
    """Result of one batch: matches by record id, or the tier being unavailable."""

    available: bool = True
    matches: dict[int, AIMatch] = Field(default_factory=dict)
    credential: str | None = None
    errors: list[str] = Field(default_factory=list)


def build_messages(
    items: Sequence[tuple[int, str]], references: Sequence[ReferenceEntry]
) -> ChatMessages:
    ref_lines = "\n".join(f"{ref.code}: {ref.description}" for ref in references)
    item_lines = "\n".join(f"ID {record_id}: {text}" for record_id, text in items)
    return [
        {"role": "system", "content": SYSTEM_PROMPT},
        {"role": "user", "content": USER_PROMPT_TEMPLATE.format(references=ref_lines, items=item_lines)},
    ]


def parse_matches(raw: str, requested_ids: set[int], credential: str) -> dict[int, AIMatch]:
    """Validate a raw response and keep one match per requested id."""
    if not raw or not raw.strip():
        raise MalformedAIResponseError(credential, "empty response")
    try:
        payload = AIMatchResponse.model_validate_json(raw)
    except ValidationError as exc:
        raise MalformedAIResponseError(
            credential, f"{exc.error_count()} schema violation(s): {exc.errors()[0]['msg']}"
        ) from exc

    matches: dict[int, AIMatch] = {}
    for match in payload.matches:
        if match.id not in requested_ids:
            logger.warning("ai_match_unrequested_id", record_id=match.id, credential=credential)
            continue
        if match.id in matches:
            logger.warning("ai_match_duplicate_id", record_id=match.id, credential=credential)
            continue
        matches[match.id] = match
    return matches


class AIMatchingClient:
    """Sends unresolved items to the AI service, failing over across the pool."""

    def __init__(
        self,
        provider: IModelProvider,
        pool: CredentialPool,
        *,
        model: str | None = None,
        temperature: float = 0.0,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
    ) -> None:
        self._provider = provider
        self._pool = pool
        self._model = model
        self._temperature = temperature
        self._timeout = timeout

    @property
    def pool(self) -> CredentialPool:
        return self._pool

    async def _call(self, credential: Credential, messages: ChatMessages) -> str:
        kwargs: dict[str, Any] = {"temperature": self._temperature}
        if self._model:
            kwargs["model"] = self._model
        try:
            return await asyncio.wait_for(
                self._provider.chat(
                    messages, credential=credential, response_schema=RESPONSE_SCHEMA, **kwargs
                ),
                timeout=self._timeout,
            )
        except TimeoutError as exc:
            raise AIRequestFailedError(
                credential.name, f"no response within {self._timeout}s"
            ) from exc

    async def find_best_matches(
        self, items: Sequence[tuple[int, str]], references: Sequence[ReferenceEntry]
    ) -> AIBatchOutcome:
        if not items:
            return AIBatchOutcome()

        messages = build_messages(items, references)
        requested_ids = {record_id for record_id, _ in items}
        errors: list[str] = []

        for credential in self._pool.failover_order():
            try:
                raw = await self._call(credential, messages)
                matches = parse_matches(raw, requested_ids, credential.name)
            except AIRequestFailedError as exc:
                logger.warning(
                    "ai_credential_failed",
                    credential=credential.name,
                    malformed=isinstance(exc, MalformedAIResponseError),
                    error=str(exc),
                )
                errors.append(str(exc))
                continue

            self._pool.mark_success(credential)
            logger.info(
                "ai_batch_matched",
                credential=credential.name,
                requested=len(requested_ids),
                matched=len(matches),
            )
            return AIBatchOutcome(matches=matches, credential=credential.name, errors=errors)

        if not errors:
            errors.append("no AI credentials configured")
        logger.error("ai_pool_exhausted", requested=len(requested_ids), attempts=len(self._pool))
        return AIBatchOutcome(available=False, errors=errors)
