"""Provider contracts."""

from dataclasses import dataclass
from typing import Protocol

from digest.models import ConversationMessage


@dataclass(slots=True, frozen=True)
class ProviderEndpoint:
    api_key: str
    base_url: str
    model: str

    def __repr__(self) -> str:
        return f"ProviderEndpoint(base_url={self.base_url!r}, model={self.model!r})"


class ModelProvider(Protocol):
    async def generate(self, messages: list[ConversationMessage]) -> ConversationMessage: ...
