from __future__ import annotations

from collections.abc import Mapping
import logging
from pathlib import Path

import pytest

from pixelframe import cli
from pixelframe.actions import Reporter
from pixelframe.agent_client import AgentRequestError
from pixelframe.config import ActionInputs
from pixelframe.models import PipelineOutputs

from support import RecordingReporter


class FakeOrchestrator:
    def __init__(self, error: Exception | None = None) -> None:
        self.error = error
        self.inputs: list[ActionInputs] = []

    def run(self, inputs: ActionInputs) -> PipelineOutputs:
        self.inputs.append(inputs)
        if self.error is not None:
            raise self.error
        return PipelineOutputs(run_id="r1", status="completed")


def _patch_orchestrator(
    monkeypatch: pytest.MonkeyPatch, orchestrator: FakeOrchestrator
) -> list[str | None]:
    api_keys: list[str | None] = []

    def fake_build(
        reporter: Reporter, *, api_key: str | None, environ: Mapping[str, str]
    ) -> FakeOrchestrator:
        _ = reporter, environ
        api_keys.append(api_key)
        return orchestrator

    monkeypatch.setattr("pixelframe.cli._build_orchestrator", fake_build)
    return api_keys


def test_build_parser_accepts_overrides() -> None:
    args = cli.build_parser().parse_args(
        ["--payload-file", "p.json", "--token", "t", "--merge-strategy", "squash", "-v"]
    )

    assert args.payload_file == "p.json"
    assert args.token == "t"
    assert args.merge_strategy == "squash"
    assert args.base_url is None
    assert args.verbose == "high"


def test_main_success_returns_zero(monkeypatch: pytest.MonkeyPatch) -> None:
    orchestrator = FakeOrchestrator()
    api_keys = _patch_orchestrator(monkeypatch, orchestrator)
    reporter = RecordingReporter()

    code = cli.main(
        [],
        environ={"INPUT_PAYLOAD-FILE": "payload.json", "PIXELFRAME_API_KEY": "k"},
        reporter=reporter,
    )

    assert code == 0
    assert orchestrator.inputs[0].payload_file == Path("payload.json")
    assert api_keys == ["k"]
    assert reporter.messages("error") == []


def test_main_reports_single_error_and_returns_one(monkeypatch: pytest.MonkeyPatch) -> None:
    _patch_orchestrator(
        monkeypatch,
        FakeOrchestrator(AgentRequestError("PixelFrame API request failed (500 Oops): x")),
    )
    reporter = RecordingReporter()

    code = cli.main(["--payload-file", "p.json"], environ={}, reporter=reporter)

    assert code == 1
    assert reporter.messages("error") == ["PixelFrame API request failed (500 Oops): x"]


def test_main_missing_payload_file_is_a_failure() -> None:
    reporter = RecordingReporter()

    code = cli.main([], environ={}, reporter=reporter)

    assert code == 1
    assert reporter.messages("error") == ["Input required and not supplied: payload-file"]


def test_main_with_real_orchestrator_fails_on_missing_payload(tmp_path: Path) -> None:
    reporter = RecordingReporter()

    code = cli.main(
        ["--payload-file", str(tmp_path / "missing.json")],
        environ={"INPUT_PIXELFRAME-BASE-URL": "https://pf.example"},
        reporter=reporter,
    )

    assert code == 1
    errors = reporter.messages("error")
    assert len(errors) == 1
    assert errors[0].startswith("Failed to read payload file")


def test_version_flag_exits(capsys: pytest.CaptureFixture[str]) -> None:
    with pytest.raises(SystemExit) as exc_info:
        cli.main(["--version"], environ={}, reporter=RecordingReporter())

    assert exc_info.value.code == 0
    assert "pixelframe-action 2.1.0" in capsys.readouterr().out


def test_main_low_verbosity_installs_filtered_handler(monkeypatch: pytest.MonkeyPatch) -> None:
    orchestrator = FakeOrchestrator()
    _patch_orchestrator(monkeypatch, orchestrator)

    code = cli.main(
        ["--payload-file", "p.json", "--verbose", "low"], environ={}, reporter=RecordingReporter()
    )

    assert code == 0
    assert orchestrator.inputs[0].verbose == "low"
    handlers = logging.getLogger("pixelframe").handlers
    assert len(handlers) == 1
    assert isinstance(handlers[0], logging.StreamHandler)
    assert len(handlers[0].filters) == 1
