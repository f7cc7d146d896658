"""OpenAI-compatible model provider.

Talks to any endpoint that speaks the chat-completions API, typically a LiteLLM
proxy fronting Gemini. One client is kept per pooled credential. SDK-level
retries are disabled: failover across credentials is the retry policy.
"""

from __future__ import annotations

from typing import Any

from openai import AsyncOpenAI, OpenAIError

from smartarchive.core.exceptions import AIRequestFailedError, MalformedAIResponseError
from smartarchive.core.types import ChatMessages, JsonDict
from smartarchive.matching.credentials import Credential


class OpenAICompatibleProvider:
    """Production IModelProvider backed by the openai SDK."""

    def __init__(self, base_url: str, model: str, *, timeout: float = 60.0) -> None:
        self._base_url = base_url
        self._model = model
        self._timeout = timeout
        self._clients: dict[str, AsyncOpenAI] = {}

    def _client(self, credential: Credential) -> AsyncOpenAI:
        client = self._clients.get(credential.name)
        if client is None:
            client = AsyncOpenAI(
                api_key=credential.api_key.get_secret_value(),
                base_url=self._base_url,
                timeout=self._timeout,
                max_retries=0,
            )
            self._clients[credential.name] = client
        return client

    async def chat(
        self,
        messages: ChatMessages,
        *,
        credential: Credential,
        response_schema: JsonDict | None = None,
        **kwargs: Any,
    ) -> str:
        request: JsonDict = {
            "model": kwargs.pop("model", self._model),
            "messages": messages,
            "temperature": kwargs.pop("temperature", 0.0),
        }
        if response_schema is not None:
            request["response_format"] = {
                "type": "json_schema",
                "json_schema": {
                    "name": "classification_matches",
                    "strict": True,
                    "schema": response_schema,
                },
            }
        try:
            response = await self._client(credential).chat.completions.create(**request)
        except OpenAIError as exc:
            raise AIRequestFailedError(credential.name, f"{type(exc).__name__}: {exc}") from exc

        content = response.choices[0].message.content if response.choices else None
        if not content:
            raise MalformedAIResponseError(credential.name, "response has no content")
        return content

    async def aclose(self) -> None:
        for client in self._clients.values():
            await client.close()
        self._clients.clear()
