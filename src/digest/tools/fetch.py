"""Content-extraction proxy collaborator."""

import httpx

from digest.config import get_settings
from digest.errors import ToolError


class ProxyFetchClient:
    def __init__(
        self,
        proxy_url: str | None = None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        settings = get_settings()
        self.proxy_url = proxy_url if proxy_url is not None else settings.fetch_proxy_url
        self.timeout_seconds = max(1, int(settings.tool_timeout_seconds))
        self._transport = transport

    async def fetch_content(self, url: str) -> str:
        endpoint = f"{self.proxy_url}{url}"
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout_seconds, transport=self._transport
            ) as client:
                response = await client.get(endpoint)
                response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise ToolError(
                f"fetch failed ({exc.response.status_code}): {exc.response.text}"
            ) from exc
        except httpx.HTTPError as exc:
            raise ToolError(f"fetch failed: {exc}") from exc
        return response.text
