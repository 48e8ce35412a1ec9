"""Provider router with fallback behavior."""

import logging

from digest.errors import CombinedProviderError
from digest.models import ConversationMessage
from digest.providers.base import ModelProvider

logger = logging.getLogger(__name__)


def _describe(exc: Exception) -> str:
    return str(exc) or type(exc).__name__


class ProviderRouter:
    def __init__(self, primary: ModelProvider, fallback: ModelProvider | None = None) -> None:
        self.primary = primary
        self.fallback = fallback

    async def generate(
        self, messages: list[ConversationMessage]
    ) -> tuple[ConversationMessage, str, str | None]:
        """Return the message, the lane that produced it and any primary error."""
        try:
            response = await self.primary.generate(messages)
            return response, "primary", None
        except Exception as exc:
            if self.fallback is None:
                raise
            primary_error = _describe(exc)
            logger.warning("Primary provider failed: %s", primary_error)
            try:
                response = await self.fallback.generate(messages)
            except Exception as fallback_exc:
                raise CombinedProviderError(
                    primary_error, _describe(fallback_exc)
                ) from fallback_exc
            return response, "fallback", primary_error
