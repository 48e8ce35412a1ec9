"""Model caller: one validated completion with optional failover."""

import logging

import httpx

from digest.config import get_settings
from digest.models import ConversationMessage, Credentials
from digest.providers.base import ModelProvider, ProviderEndpoint
from digest.providers.factory import resolve_primary_endpoint
from digest.providers.openai_compat import OpenAICompatProvider
from digest.providers.router import ProviderRouter

logger = logging.getLogger(__name__)


class ModelCaller:
    def __init__(self, *, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self._transport = transport

    def _provider(self, endpoint: ProviderEndpoint) -> ModelProvider:
        return OpenAICompatProvider(endpoint, transport=self._transport)

    def build_router(
        self,
        model_hint: str | None = None,
        credentials: Credentials | None = None,
        fallback: ProviderEndpoint | None = None,
    ) -> ProviderRouter:
        primary = resolve_primary_endpoint(get_settings(), model_hint, credentials)
        secondary = self._provider(fallback) if fallback is not None else None
        return ProviderRouter(self._provider(primary), secondary)

    async def complete(
        self,
        history: list[ConversationMessage],
        model_hint: str | None = None,
        credentials: Credentials | None = None,
        fallback: ProviderEndpoint | None = None,
    ) -> ConversationMessage:
        """Complete ``history``; ``fallback`` is tried once if the primary call fails."""
        router = self.build_router(model_hint, credentials, fallback)
        message, lane, _ = await router.generate(history)
        logger.debug("Model call answered by %s lane", lane)
        return message
