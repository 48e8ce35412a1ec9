"""Google Custom Search collaborator."""

import json
from typing import Any

import httpx

from digest.config import get_settings
from digest.errors import ConfigError, ToolError


class GoogleSearchClient:
    def __init__(
        self,
        api_key: str | None = None,
        cx: str | None = None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        settings = get_settings()
        self.api_key = api_key if api_key is not None else settings.google_api_key
        self.cx = cx if cx is not None else settings.google_cse_cx
        self.url = settings.google_search_url
        self.timeout_seconds = max(1, int(settings.tool_timeout_seconds))
        self._transport = transport

    async def search(self, query: str) -> Any:
        """Return the decoded JSON body, whatever the HTTP status.

        Error payloads are handed back as-is; judging them is up to the caller.
        """
        if not self.api_key.strip() or not self.cx.strip():
            raise ConfigError("GOOGLE_API_KEY and GOOGLE_CSE_CX are required for search")
        params = {"key": self.api_key, "cx": self.cx, "q": query}
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout_seconds, transport=self._transport
            ) as client:
                response = await client.get(self.url, params=params)
        except httpx.HTTPError as exc:
            raise ToolError(f"search request failed: {exc}") from exc
        try:
            return response.json()
        except json.JSONDecodeError as exc:
            raise ToolError(response.text) from exc
