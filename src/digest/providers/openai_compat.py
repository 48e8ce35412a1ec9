"""Provider adapter for OpenAI-compatible chat completions APIs."""

import json
from typing import Any

import httpx

from digest.config import get_settings
from digest.errors import EmptyChoicesError, EmptyContentError, ProviderError
from digest.models import ConversationMessage, history_to_wire
from digest.providers.base import ProviderEndpoint


class OpenAICompatProvider:
    def __init__(
        self,
        endpoint: ProviderEndpoint,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.endpoint = endpoint
        self._transport = transport

    @staticmethod
    def _normalize_base_url(base_url: str) -> str:
        return base_url.rstrip("/")

    @staticmethod
    def _coerce_text(value: object) -> str:
        if isinstance(value, str):
            return value
        if isinstance(value, list):
            chunks: list[str] = []
            for item in value:
                if isinstance(item, str):
                    chunks.append(item)
                elif isinstance(item, dict):
                    text = item.get("text")
                    if isinstance(text, str):
                        chunks.append(text)
            return "".join(chunks)
        return ""

    @staticmethod
    def _error_detail(payload: Any) -> str:
        if isinstance(payload, dict):
            error = payload.get("error")
            if isinstance(error, dict):
                metadata = error.get("metadata")
                if isinstance(metadata, dict) and metadata.get("raw"):
                    return str(metadata["raw"])
        return json.dumps(payload, ensure_ascii=False)

    @classmethod
    def _parse_response(cls, payload: Any) -> ConversationMessage:
        choices = payload.get("choices") if isinstance(payload, dict) else None
        if not isinstance(choices, list) or not choices:
            raise EmptyChoicesError(cls._error_detail(payload))
        first = choices[0]
        message = first.get("message") if isinstance(first, dict) else None
        content = cls._coerce_text(message.get("content")) if isinstance(message, dict) else ""
        if not content:
            raise EmptyContentError("No content in response")
        return ConversationMessage(role="assistant", content=content)

    async def generate(self, messages: list[ConversationMessage]) -> ConversationMessage:
        settings = get_settings()
        endpoint = f"{self._normalize_base_url(self.endpoint.base_url)}/chat/completions"
        body = {"model": self.endpoint.model, "messages": history_to_wire(messages)}
        headers = {"Authorization": f"Bearer {self.endpoint.api_key}"}
        timeout_seconds = max(10, int(settings.provider_timeout_seconds))
        try:
            async with httpx.AsyncClient(
                timeout=timeout_seconds, transport=self._transport
            ) as client:
                response = await client.post(endpoint, json=body, headers=headers)
                response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise ProviderError(
                f"{self.endpoint.model} request failed ({exc.response.status_code}): "
                f"{exc.response.text}"
            ) from exc
        except httpx.HTTPError as exc:
            raise ProviderError(f"{self.endpoint.model} request failed: {exc}") from exc
        try:
            payload = response.json()
        except json.JSONDecodeError as exc:
            raise ProviderError(f"{self.endpoint.model} response is not JSON") from exc
        return self._parse_response(payload)
