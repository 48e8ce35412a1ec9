"""Execute one selected tool call and turn its output into an observation."""

import json
import logging
from typing import Any, Protocol

from digest.errors import ToolError
from digest.models import ConversationMessage
from digest.tools.parser import FetchCall, SearchCall, ToolCall

logger = logging.getLogger(__name__)


class SearchBackend(Protocol):
    async def search(self, query: str) -> Any: ...


class FetchBackend(Protocol):
    async def fetch_content(self, url: str) -> str: ...


def format_search_items(items: list[Any]) -> str:
    lines: list[str] = []
    for index, item in enumerate(items):
        entry = item if isinstance(item, dict) else {}
        title = entry.get("title", "")
        link = entry.get("link", "")
        snippet = entry.get("snippet", "")
        lines.append(f"{index}. {title}\n{link}\n{snippet}")
    return "\n".join(lines)


class ToolDispatcher:
    def __init__(self, search: SearchBackend, fetch: FetchBackend) -> None:
        self.search = search
        self.fetch = fetch

    async def dispatch(self, call: ToolCall) -> ConversationMessage:
        if isinstance(call, SearchCall):
            return await self._search(call.input)
        if isinstance(call, FetchCall):
            return await self._fetch(call.input)
        raise ToolError(f"unsupported tool call: {call!r}", retryable=False)

    async def _search(self, query: str) -> ConversationMessage:
        logger.info("Dispatching search: %s", query)
        payload = await self.search.search(query)
        items = payload.get("items") if isinstance(payload, dict) else None
        if not isinstance(items, list):
            raise ToolError(json.dumps(payload, ensure_ascii=False))
        return ConversationMessage(role="user", content=format_search_items(items))

    async def _fetch(self, url: str) -> ConversationMessage:
        logger.info("Dispatching fetch: %s", url)
        text = await self.fetch.fetch_content(url)
        return ConversationMessage(role="user", content=text)
