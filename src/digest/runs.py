"""Run construction and bounded-concurrency batches of independent runs."""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any

import httpx

from digest.config import get_settings
from digest.models import RunParameters, RunResult
from digest.orchestrator.loop import AgentLoop
from digest.orchestrator.step import StepExecutor, StepPolicy
from digest.providers.caller import ModelCaller
from digest.tools.dispatcher import ToolDispatcher
from digest.tools.fetch import ProxyFetchClient
from digest.tools.search import GoogleSearchClient

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class RunOutcome:
    run_id: str
    result: RunResult | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_dict(self) -> dict[str, Any]:
        return {
            "run_id": self.run_id,
            "result": self.result.model_dump(mode="json") if self.result else None,
            "error": self.error,
        }


def build_agent_loop(
    params: RunParameters,
    *,
    policy: StepPolicy | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> AgentLoop:
    """Wire one run's collaborators. Every run gets its own loop and history."""
    settings = get_settings()
    step_policy = policy or StepPolicy.from_settings(settings)
    dispatcher = ToolDispatcher(
        search=GoogleSearchClient(transport=transport),
        fetch=ProxyFetchClient(transport=transport),
    )
    executor = StepExecutor(
        dispatcher,
        ModelCaller(transport=transport),
        step_policy,
        model_hint=params.model,
        credentials=params.credentials,
    )
    return AgentLoop(executor)


async def run_once(
    params: RunParameters,
    *,
    policy: StepPolicy | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> RunResult | None:
    loop = build_agent_loop(params, policy=policy, transport=transport)
    return await loop.run(params)


async def run_batch(
    runs: list[RunParameters],
    max_concurrent: int | None = None,
    *,
    policy: StepPolicy | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> list[RunOutcome]:
    """Run independent runs side by side; one failing run never stops the others."""
    limit = max(1, max_concurrent or int(get_settings().run_max_concurrent))
    semaphore = asyncio.Semaphore(limit)

    async def _execute(params: RunParameters) -> RunOutcome:
        async with semaphore:
            try:
                result = await run_once(params, policy=policy, transport=transport)
            except Exception as exc:
                logger.exception("Run failed: %s", params.run_id)
                return RunOutcome(run_id=params.run_id, error=f"{type(exc).__name__}: {exc}")
            return RunOutcome(run_id=params.run_id, result=result)

    return list(await asyncio.gather(*(_execute(params) for params in runs)))
