"""Agent loop state machine."""

import asyncio
import enum
import logging
from collections.abc import Awaitable, Callable
from datetime import UTC, datetime

from digest.config import get_settings
from digest.logging import bind_step, run_context
from digest.models import ConversationMessage, RunParameters, RunResult
from digest.orchestrator.prompt import render_system_prompt
from digest.orchestrator.step import StepExecutor
from digest.tools.parser import has_tool_block

logger = logging.getLogger(__name__)


class RunState(enum.Enum):
    SCHEDULING = "scheduling"
    STEPPING = "stepping"
    TERMINATED = "terminated"


def _utcnow() -> datetime:
    return datetime.now(UTC)


async def sleep_until(target: datetime, now: Callable[[], datetime] = _utcnow) -> None:
    delay = (target - now()).total_seconds()
    if delay > 0:
        await asyncio.sleep(delay)


def seed_history(instructions: str, now: datetime | None = None) -> list[ConversationMessage]:
    return [
        ConversationMessage(role="system", content=render_system_prompt(now)),
        ConversationMessage(role="user", content=instructions),
    ]


class AgentLoop:
    """Drive one run from its instructions to a final answer.

    Each iteration waits for its scheduled slot (when the run is scheduled),
    executes one step and either terminates on a plain assistant answer or
    appends the new message to the history.
    """

    def __init__(
        self,
        executor: StepExecutor,
        *,
        max_iterations: int | None = None,
        missed_slots: str | None = None,
        now: Callable[[], datetime] = _utcnow,
        wait_until: Callable[[datetime], Awaitable[None]] | None = None,
    ) -> None:
        settings = get_settings()
        self.executor = executor
        self.max_iterations = (
            max_iterations if max_iterations is not None else settings.max_iterations
        )
        self.missed_slots = (missed_slots or settings.schedule_missed_slots).strip().lower()
        self._now = now
        self._wait_until = wait_until or (lambda target: sleep_until(target, now))
        self.state = RunState.TERMINATED
        self.history: list[ConversationMessage] = []
        self.iterations = 0

    async def _wait_for_slot(self, target: datetime, index: int) -> bool:
        """Wait for the slot of iteration ``index``; False means skip the step."""
        if self._now() > target:
            logger.debug("Slot %d at %s already passed", index, target.isoformat())
            return self.missed_slots != "skip"
        self.state = RunState.SCHEDULING
        logger.info("Waiting until %s for step %d", target.isoformat(), index + 1)
        await self._wait_until(target)
        return True

    async def run(self, params: RunParameters) -> RunResult | None:
        with run_context(params.run_id):
            return await self._run(params)

    async def _run(self, params: RunParameters) -> RunResult | None:
        self.history = seed_history(params.instructions, self._now())
        self.iterations = 0
        logger.info("Run started with a budget of %d iterations", self.max_iterations)
        try:
            for index in range(self.max_iterations):
                if params.first_run_at and params.interval:
                    target = params.first_run_at + index * params.interval
                    if not await self._wait_for_slot(target, index):
                        continue

                self.state = RunState.STEPPING
                self.iterations += 1
                bind_step(index + 1)
                message = await self.executor.execute_step(self.history, f"step {index + 1}")

                if message.role == "assistant" and not has_tool_block(message.content):
                    logger.info("Run finished after %d iterations", self.iterations)
                    return RunResult(
                        content=message.content,
                        created_at=params.created_at,
                        finished_at=self._now(),
                    )

                self.history.append(message)

            logger.warning(
                "Run exhausted %d iterations without a final answer", self.max_iterations
            )
            return None
        except asyncio.CancelledError:
            logger.info("Run cancelled in state %s", self.state.value)
            raise
        finally:
            self.state = RunState.TERMINATED
