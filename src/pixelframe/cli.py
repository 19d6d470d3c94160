from __future__ import annotations

import argparse
from collections.abc import Mapping, Sequence
import logging
import os
from pathlib import Path

from pixelframe.actions import ActionsReporter, Reporter
from pixelframe.agent_client import AgentClient
from pixelframe.agent_invoker import AgentInvoker
from pixelframe.config import ACTION_VERSION, load_inputs
from pixelframe.git_ops import GitRepositoryDriver
from pixelframe.job_poller import JobPoller
from pixelframe.observability import configure_logging, log_event
from pixelframe.orchestrator import PipelineOrchestrator
from pixelframe.pull_requests import PullRequestManager


LOGGER = logging.getLogger("pixelframe.cli")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pixelframe-action",
        description="Invoke the PixelFrame agent and turn its plan into a pull request",
    )
    parser.add_argument(
        "--payload-file",
        type=str,
        help="JSON payload file sent to the agent (default: INPUT_PAYLOAD-FILE)",
    )
    parser.add_argument("--token", type=str, help="GitHub token (default: INPUT_TOKEN, GITHUB_TOKEN)")
    parser.add_argument(
        "--merge-strategy",
        type=str,
        help="Merge method applied when the plan asks for a merge: merge, squash, or rebase",
    )
    parser.add_argument(
        "--base-url",
        type=str,
        help="PixelFrame base URL used when the payload carries no agent endpoint",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        nargs="?",
        const="high",
        choices=("low", "high"),
        help="Log runtime events to stderr; low keeps only key events and warnings",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {ACTION_VERSION}")
    return parser


def main(
    argv: Sequence[str] | None = None,
    *,
    environ: Mapping[str, str] | None = None,
    reporter: Reporter | None = None,
) -> int:
    env = environ if environ is not None else os.environ
    args = build_parser().parse_args(argv)
    out = reporter if reporter is not None else ActionsReporter(env)

    try:
        inputs = load_inputs(
            env,
            payload_file=args.payload_file,
            token=args.token,
            merge_strategy=args.merge_strategy,
            base_url=args.base_url,
            verbose=args.verbose,
        )
        configure_logging(inputs.verbose)
        orchestrator = _build_orchestrator(out, api_key=inputs.api_key, environ=env)
        orchestrator.run(inputs)
    except Exception as exc:  # noqa: BLE001
        log_event(LOGGER, "pipeline_failed", error_type=type(exc).__name__)
        out.error(str(exc))
        return 1
    return 0


def _build_orchestrator(
    reporter: Reporter, *, api_key: str | None, environ: Mapping[str, str]
) -> PipelineOrchestrator:
    client = AgentClient(api_key=api_key)
    poller = JobPoller(client, reporter)
    return PipelineOrchestrator(
        reporter=reporter,
        invoker=AgentInvoker(client, poller, reporter),
        repository=GitRepositoryDriver(Path.cwd(), reporter, environ=environ),
        pull_requests=PullRequestManager(reporter),
        environ=environ,
    )
