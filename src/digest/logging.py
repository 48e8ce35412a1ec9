"""Log setup for digest runs.

Every line emitted while a run is active carries its ``run_id`` (and the
current ``step`` once the loop starts stepping), whether it comes from a
structlog logger or a plain ``logging.getLogger(__name__)`` one. stdout is
left to the run result so ``digest run --json`` stays machine readable.
"""

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from typing import TextIO

import structlog

from digest.config import get_settings

RUN_KEYS = ("run_id", "step")

# Transport chatter that would otherwise drown the per-step lines.
_NOISY_LOGGERS = ("httpx", "httpcore")


def configure_logging(
    level: str, json_output: bool | None = None, stream: TextIO | None = None
) -> None:
    """Route stdlib and structlog records through one renderer on stderr.

    ``json_output`` defaults to JSON lines when ``APP_ENV=prod`` and to the
    console renderer otherwise.
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    if json_output is None:
        json_output = get_settings().app_env == "prod"

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
    ]

    if json_output:
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(log_level)
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(log_level, logging.WARNING))


def bind_step(step: int) -> None:
    """Tag subsequent lines of the current run with its step number."""
    structlog.contextvars.bind_contextvars(step=step)


@contextmanager
def run_context(run_id: str) -> Iterator[None]:
    """Bind ``run_id`` for the duration of one run.

    Only the run keys are removed on exit; context bound by the caller (a
    batch id, for instance) survives. Each asyncio task has its own copy of
    the context, so concurrent runs in a batch never see each other's ids.
    """
    structlog.contextvars.bind_contextvars(run_id=run_id)
    try:
        yield
    finally:
        structlog.contextvars.unbind_contextvars(*RUN_KEYS)
