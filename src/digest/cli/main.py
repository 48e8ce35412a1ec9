"""Click CLI group: run and batch commands."""

from __future__ import annotations

import asyncio
import json
from datetime import datetime
from pathlib import Path
from typing import Any

import click
from pydantic import ValidationError

from digest.config import get_settings, validate_settings_for_env
from digest.errors import DigestError
from digest.logging import configure_logging
from digest.models import RunParameters, RunResult
from digest.runs import run_batch, run_once

EXIT_FAILED = 1
EXIT_EXHAUSTED = 2


def _prepare(log_level: str | None) -> None:
    settings = get_settings()
    try:
        validate_settings_for_env(settings)
    except ValueError as exc:
        raise click.ClickException(str(exc)) from exc
    configure_logging(log_level or settings.log_level)


def _load_payload(path: str) -> dict[str, Any]:
    try:
        payload = json.loads(Path(path).read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise click.ClickException(f"cannot read payload {path}: {exc}") from exc
    if not isinstance(payload, dict):
        raise click.ClickException(f"payload {path} must be a JSON object")
    return payload


def _parse_params(payload: dict[str, Any]) -> RunParameters:
    try:
        return RunParameters.from_payload(payload)
    except ValidationError as exc:
        raise click.ClickException(f"invalid run parameters: {exc}") from exc


def format_result(result: RunResult, *, json_output: bool) -> str:
    if json_output:
        return json.dumps(result.model_dump(mode="json"), ensure_ascii=False)
    return result.content


@click.group()
def cli() -> None:
    """Scheduled research agent CLI."""


@cli.command()
@click.argument("instructions", required=False)
@click.option(
    "--payload",
    "payload_path",
    type=click.Path(exists=True, dir_okay=False, path_type=str),
    default=None,
    help="Read run parameters from a JSON trigger payload.",
)
@click.option("--first-run-at", type=click.DateTime(), default=None, help="First slot (UTC).")
@click.option("--interval-ms", type=int, default=None, help="Delay between scheduled slots.")
@click.option("--model", type=str, default=None, help="Override the primary model.")
@click.option("--api-key", type=str, default=None, envvar="DIGEST_RUN_API_KEY")
@click.option("--base-url", type=str, default=None)
@click.option("--json", "json_output", is_flag=True, help="Print the run result as JSON.")
@click.option("--log-level", type=str, default=None, help="Override LOG_LEVEL.")
def run(
    instructions: str | None,
    payload_path: str | None,
    first_run_at: datetime | None,
    interval_ms: int | None,
    model: str | None,
    api_key: str | None,
    base_url: str | None,
    json_output: bool,
    log_level: str | None,
) -> None:
    """Run the research agent on INSTRUCTIONS and print the final report."""
    payload: dict[str, Any] = _load_payload(payload_path) if payload_path else {}
    overrides = {
        "instructions": instructions,
        "first_run_at": first_run_at,
        "interval": interval_ms,
        "model": model,
        "api_key": api_key,
        "base_url": base_url,
    }
    payload.update({key: value for key, value in overrides.items() if value is not None})
    if not payload.get("instructions"):
        raise click.ClickException("INSTRUCTIONS or a --payload with instructions is required")
    params = _parse_params(payload)

    _prepare(log_level)
    try:
        result = asyncio.run(run_once(params))
    except DigestError as exc:
        click.echo(f"run {params.run_id} failed: {exc}", err=True)
        raise SystemExit(EXIT_FAILED) from exc
    if result is None:
        click.echo(f"run {params.run_id} ended without a final answer", err=True)
        raise SystemExit(EXIT_EXHAUSTED)
    click.echo(format_result(result, json_output=json_output))


@cli.command()
@click.argument("payloads", type=click.Path(exists=True, dir_okay=False, path_type=str))
@click.option("--max-concurrent", type=int, default=None, help="Override RUN_MAX_CONCURRENT.")
@click.option("--log-level", type=str, default=None, help="Override LOG_LEVEL.")
def batch(payloads: str, max_concurrent: int | None, log_level: str | None) -> None:
    """Run every JSON-lines trigger payload in PAYLOADS and print one outcome per line."""
    if max_concurrent is not None and max_concurrent <= 0:
        raise click.ClickException("--max-concurrent must be > 0")
    runs: list[RunParameters] = []
    for number, line in enumerate(Path(payloads).read_text(encoding="utf-8").splitlines(), 1):
        if not line.strip():
            continue
        try:
            payload = json.loads(line)
        except json.JSONDecodeError as exc:
            raise click.ClickException(f"line {number}: {exc}") from exc
        if not isinstance(payload, dict):
            raise click.ClickException(f"line {number}: payload must be a JSON object")
        runs.append(_parse_params(payload))

    _prepare(log_level)
    outcomes = asyncio.run(run_batch(runs, max_concurrent))
    for outcome in outcomes:
        click.echo(json.dumps(outcome.to_dict(), ensure_ascii=False))
    if any(not outcome.ok for outcome in outcomes):
        raise SystemExit(EXIT_FAILED)
