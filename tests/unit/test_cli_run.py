from __future__ import annotations

import json
from datetime import UTC, datetime

from click.testing import CliRunner

from digest.cli.main import cli
from digest.errors import CombinedProviderError
from digest.models import RunParameters, RunResult

CREATED = datetime(2026, 1, 1, tzinfo=UTC)
FINISHED = datetime(2026, 1, 1, 0, 5, tzinfo=UTC)


def _quiet(monkeypatch) -> None:
    monkeypatch.setattr("digest.cli.main.configure_logging", lambda *_args, **_kwargs: None)


def test_run_prints_report(monkeypatch) -> None:
    seen: list[RunParameters] = []

    async def _fake_run_once(params: RunParameters) -> RunResult:
        seen.append(params)
        return RunResult(content="the report", created_at=CREATED, finished_at=FINISHED)

    _quiet(monkeypatch)
    monkeypatch.setattr("digest.cli.main.run_once", _fake_run_once)
    result = CliRunner().invoke(cli, ["run", "find news", "--model", "m", "--interval-ms", "5"])
    assert result.exit_code == 0
    assert result.output.strip() == "the report"
    assert seen[0].instructions == "find news"
    assert seen[0].model == "m"
    assert seen[0].interval is not None and seen[0].interval.total_seconds() == 0.005


def test_run_json_output_from_payload(monkeypatch, tmp_path) -> None:
    payload_path = tmp_path / "payload.json"
    payload_path.write_text(
        json.dumps({"instructions": "digest", "apiKey": "sk-run", "createTime": 0}),
        encoding="utf-8",
    )

    async def _fake_run_once(params: RunParameters) -> RunResult:
        assert params.credentials is not None and params.credentials.api_key == "sk-run"
        return RunResult(content="ok", created_at=params.created_at, finished_at=FINISHED)

    _quiet(monkeypatch)
    monkeypatch.setattr("digest.cli.main.run_once", _fake_run_once)
    result = CliRunner().invoke(cli, ["run", "--payload", str(payload_path), "--json"])
    assert result.exit_code == 0
    payload = json.loads(result.output.strip())
    assert payload["content"] == "ok"
    assert payload["created_at"].startswith("1970-01-01T00:00:00")
    assert payload["finished_at"].startswith("2026-01-01T00:05:00")


def test_run_api_key_flag_overrides_nested_payload_credentials(monkeypatch, tmp_path) -> None:
    payload_path = tmp_path / "payload.json"
    payload_path.write_text(
        json.dumps(
            {
                "instructions": "digest",
                "credentials": {"apiKey": "sk-file", "baseURL": "http://file.local/v1"},
            }
        ),
        encoding="utf-8",
    )
    seen: list[RunParameters] = []

    async def _fake_run_once(params: RunParameters) -> RunResult:
        seen.append(params)
        return RunResult(content="ok", created_at=CREATED, finished_at=FINISHED)

    _quiet(monkeypatch)
    monkeypatch.setattr("digest.cli.main.run_once", _fake_run_once)
    result = CliRunner().invoke(
        cli, ["run", "--payload", str(payload_path), "--api-key", "sk-flag"]
    )
    assert result.exit_code == 0
    credentials = seen[0].credentials
    assert credentials is not None
    assert credentials.api_key == "sk-flag"
    assert credentials.base_url == "http://file.local/v1"


def test_run_requires_instructions() -> None:
    result = CliRunner().invoke(cli, ["run"])
    assert result.exit_code != 0
    assert "INSTRUCTIONS" in result.output


def test_run_exhaustion_exit_code(monkeypatch) -> None:
    async def _fake_run_once(params: RunParameters) -> None:
        return None

    _quiet(monkeypatch)
    monkeypatch.setattr("digest.cli.main.run_once", _fake_run_once)
    result = CliRunner().invoke(cli, ["run", "loop forever"])
    assert result.exit_code == 2


def test_run_failure_exit_code(monkeypatch) -> None:
    async def _fake_run_once(params: RunParameters) -> RunResult:
        raise CombinedProviderError("p", "f")

    _quiet(monkeypatch)
    monkeypatch.setattr("digest.cli.main.run_once", _fake_run_once)
    result = CliRunner().invoke(cli, ["run", "task"])
    assert result.exit_code == 1


def test_batch_prints_one_outcome_per_run(monkeypatch, tmp_path) -> None:
    from digest.runs import RunOutcome

    lines = tmp_path / "runs.jsonl"
    lines.write_text(
        '{"instructions": "a"}\n\n{"instructions": "b"}\n',
        encoding="utf-8",
    )

    async def _fake_run_batch(runs, max_concurrent=None):
        assert max_concurrent == 3
        return [
            RunOutcome(
                run_id=run.run_id,
                result=RunResult(
                    content=run.instructions, created_at=CREATED, finished_at=FINISHED
                ),
            )
            for run in runs
        ]

    _quiet(monkeypatch)
    monkeypatch.setattr("digest.cli.main.run_batch", _fake_run_batch)
    result = CliRunner().invoke(cli, ["batch", str(lines), "--max-concurrent", "3"])
    assert result.exit_code == 0
    outcomes = [json.loads(line) for line in result.output.strip().splitlines()]
    assert [outcome["result"]["content"] for outcome in outcomes] == ["a", "b"]
    assert all(outcome["error"] is None for outcome in outcomes)


def test_batch_rejects_bad_line(tmp_path) -> None:
    lines = tmp_path / "runs.jsonl"
    lines.write_text('{"instructions": "a"}\nnot json\n', encoding="utf-8")
    result = CliRunner().invoke(cli, ["batch", str(lines)])
    assert result.exit_code != 0
    assert "line 2" in result.output
