"""Single-step execution under a bounded retry policy."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Protocol

from digest.config import Settings
from digest.errors import DigestError
from digest.models import ConversationMessage, Credentials
from digest.providers.base import ProviderEndpoint
from digest.providers.factory import resolve_fallback_endpoint
from digest.tools.parser import NoToolCall, ToolCall, select_tool_call

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class StepPolicy:
    """Retry and failover settings for one step.

    ``retries`` counts re-entries after the first attempt. ``delay_seconds``
    is fixed between attempts. ``fallback`` is handed to the model caller
    on every model call of the step.
    """

    retries: int = 2
    delay_seconds: float = 60.0
    fallback: ProviderEndpoint | None = None

    @property
    def attempts(self) -> int:
        return max(0, self.retries) + 1

    @classmethod
    def from_settings(cls, settings: Settings) -> "StepPolicy":
        return cls(
            retries=settings.step_retry_limit,
            delay_seconds=settings.step_retry_delay_seconds,
            fallback=resolve_fallback_endpoint(settings),
        )


class Dispatcher(Protocol):
    async def dispatch(self, call: ToolCall) -> ConversationMessage: ...


class Completer(Protocol):
    async def complete(
        self,
        history: list[ConversationMessage],
        model_hint: str | None = None,
        credentials: Credentials | None = None,
        fallback: ProviderEndpoint | None = None,
    ) -> ConversationMessage: ...


class StepExecutor:
    def __init__(
        self,
        dispatcher: Dispatcher,
        model_caller: Completer,
        policy: StepPolicy,
        *,
        model_hint: str | None = None,
        credentials: Credentials | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.dispatcher = dispatcher
        self.model_caller = model_caller
        self.policy = policy
        self.model_hint = model_hint
        self.credentials = credentials
        self._sleep = sleep

    async def _attempt(self, history: list[ConversationMessage]) -> ConversationMessage:
        last = history[-1] if history else None
        if last is not None and last.role == "assistant":
            call = select_tool_call(last.content)
            if not isinstance(call, NoToolCall):
                return await self.dispatcher.dispatch(call)
        return await self.model_caller.complete(
            history, self.model_hint, self.credentials, fallback=self.policy.fallback
        )

    async def execute_step(
        self, history: list[ConversationMessage], step_name: str = "step"
    ) -> ConversationMessage:
        attempts = self.policy.attempts
        for attempt in range(1, attempts + 1):
            try:
                return await self._attempt(history)
            except Exception as exc:
                if isinstance(exc, DigestError) and not exc.retryable:
                    logger.error("%s failed with a non-retryable error: %s", step_name, exc)
                    raise
                if attempt >= attempts:
                    logger.error(
                        "%s failed after %d attempts: %s", step_name, attempts, exc
                    )
                    raise
                logger.warning(
                    "%s attempt %d/%d failed, retrying in %.0fs: %s",
                    step_name,
                    attempt,
                    attempts,
                    self.policy.delay_seconds,
                    exc,
                )
                await self._sleep(self.policy.delay_seconds)
        raise RuntimeError(f"{step_name} did not run")
