"""Mock model provider for local development and testing.

Returns canned responses. No real LLM calls.
"""

from __future__ import annotations

import asyncio
from typing import Any, Callable

from pydantic import BaseModel

from smartarchive.core.exceptions import AIRequestFailedError
from smartarchive.matching.credentials import Credential

Responder = Callable[[list[dict[str, str]], Credential], str]


class MockCall(BaseModel):
    """A recorded chat() invocation."""

    credential: str
    messages: list[dict[str, str]]


class MockModelProvider:
    """IModelProvider implementation that returns deterministic mock responses."""

    def __init__(self, default_response: str = '{"matches": []}') -> None:
        self._default_response = default_response
        self._canned_responses: dict[str, str] = {}
        self._credential_responses: dict[str, str] = {}
        self._failing: dict[str, str] = {}
        self._responder: Responder | None = None
        self._delay = 0.0
        self.calls: list[MockCall] = []

    def set_response(self, prompt_contains: str, response: str) -> None:
        """Register a canned response for prompts containing a keyword."""
        self._canned_responses[prompt_contains] = response

    def set_credential_response(self, credential_name: str, response: str) -> None:
        """Answer every call made with this credential with a fixed payload."""
        self._credential_responses[credential_name] = response

    def set_responder(self, responder: Responder | None) -> None:
        """Compute responses from the prompt instead of looking them up."""
        self._responder = responder

    def fail_credential(self, credential_name: str, message: str = "connection refused") -> None:
        """Make every call with this credential raise a transport failure."""
        self._failing[credential_name] = message

    def set_delay(self, seconds: float) -> None:
        self._delay = seconds

    def calls_for(self, credential_name: str) -> list[MockCall]:
        return [call for call in self.calls if call.credential == credential_name]

    async def chat(
        self,
        messages: list[dict[str, str]],
        *,
        credential: Credential,
        response_schema: dict[str, Any] | None = None,
        **kwargs: Any,
    ) -> str:
        self.calls.append(MockCall(credential=credential.name, messages=messages))
        if self._delay:
            await asyncio.sleep(self._delay)
        if credential.name in self._failing:
            raise AIRequestFailedError(credential.name, self._failing[credential.name])
        if credential.name in self._credential_responses:
            return self._credential_responses[credential.name]
        if self._responder is not None:
            return self._responder(messages, credential)
        last_content = messages[-1].get("content", "") if messages else ""
        for keyword, response in self._canned_responses.items():
            if keyword in last_content:
                return response
        return self._default_response
