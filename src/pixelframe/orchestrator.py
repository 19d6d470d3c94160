from __future__ import annotations

from collections.abc import Mapping
import json
import logging
import os
from pathlib import Path

from pixelframe.actions import Reporter, build_context_snapshot
from pixelframe.agent_client import resolve_agent_url
from pixelframe.agent_invoker import AgentInvoker
from pixelframe.config import ACTION_VERSION, ActionInputs, ConfigError, parse_repository
from pixelframe.git_ops import RepositoryDriver, resolve_base_branch
from pixelframe.models import PipelineOutputs, PullRequestResult, RepositoryPlan
from pixelframe.observability import log_event
from pixelframe.plan import parse_repository_plan
from pixelframe.plan_applier import apply_plan
from pixelframe.progress import StatusTracker, report_pipeline_complete, report_pipeline_start
from pixelframe.pull_requests import PullRequestManager


LOGGER = logging.getLogger("pixelframe.orchestrator")

PIPELINE_NAME = "multi-agent-v2"


class PipelineOrchestrator:
    def __init__(
        self,
        *,
        reporter: Reporter,
        invoker: AgentInvoker,
        repository: RepositoryDriver,
        pull_requests: PullRequestManager,
        environ: Mapping[str, str] | None = None,
    ) -> None:
        self._reporter = reporter
        self._invoker = invoker
        self._repository = repository
        self._pull_requests = pull_requests
        self._environ = environ if environ is not None else os.environ

    def run(self, inputs: ActionInputs) -> PipelineOutputs:
        payload = load_payload(inputs.payload_file)
        agent_url = resolve_agent_url(payload, inputs.base_url)
        if not agent_url:
            raise ConfigError(
                "Unable to resolve PixelFrame agent endpoint. Provide `pixelframe-base-url` "
                "input or `agentUrl` inside the payload."
            )
        if not inputs.api_key:
            self._reporter.warning(
                "PIXELFRAME_API_KEY is not set; attempting to call agent without authentication."
            )

        log_event(LOGGER, "pipeline_started", agent_url=agent_url)
        report_pipeline_start(self._reporter)

        metadata: dict[str, object] = {
            "pipeline": PIPELINE_NAME,
            "actionVersion": ACTION_VERSION,
        }
        if inputs.merge_strategy:
            metadata["mergeStrategy"] = inputs.merge_strategy

        response = self._invoker.invoke(
            agent_url,
            payload=payload,
            context=build_context_snapshot(self._environ),
            metadata=metadata,
            tracker=StatusTracker(),
        )

        run_id = _optional_text(response.get("runId")) if response is not None else None
        status = _optional_text(response.get("status")) if response is not None else None
        if run_id:
            self._reporter.set_output("run-id", run_id)
        if status:
            self._reporter.set_output("status", status)

        pr = self.apply_repository_plan(
            parse_repository_plan(response),
            token=inputs.token,
            merge_strategy=inputs.merge_strategy,
        )
        pr_number = pr.number if pr is not None else None
        pr_url = pr.url if pr is not None else None
        if pr_number:
            self._reporter.set_output("pr-number", str(pr_number))
        if pr_url:
            self._reporter.set_output("pr-url", pr_url)

        report_pipeline_complete(self._reporter, pr_number, pr_url)
        log_event(
            LOGGER,
            "pipeline_completed",
            run_id=run_id,
            status=status,
            pr_number=pr_number,
        )
        return PipelineOutputs(run_id=run_id, status=status, pr_number=pr_number, pr_url=pr_url)

    def apply_repository_plan(
        self,
        plan: RepositoryPlan | None,
        *,
        token: str | None,
        merge_strategy: str | None,
    ) -> PullRequestResult | None:
        if plan is None:
            return None

        repo = parse_repository(plan.repository or self._environ.get("GITHUB_REPOSITORY"))
        if repo is None:
            self._reporter.warning("Unable to determine repository for PR operations.")

        if not plan.branch:
            self._reporter.notice(
                "Agent response did not include branch information; "
                "skipping repository operations."
            )
            return None
        if not token:
            self._reporter.warning(
                "No GitHub token provided; cannot push commits or manage pull requests."
            )
            return None

        base_branch = resolve_base_branch(plan.base_branch, self._environ)
        self._repository.configure_identity(plan.commit.author)
        self._repository.sync_branch(plan.branch, base_branch)
        apply_plan(plan, self._repository.root, self._reporter)

        if not self._repository.stage_and_commit(plan.commit.message):
            self._reporter.notice("No changes detected after applying agent plan.")
            return None

        self._repository.push_branch(plan.branch, force=plan.commit.force)
        return self._pull_requests.sync(
            repo=repo,
            branch=plan.branch,
            base_branch=base_branch,
            spec=plan.pull_request,
            token=token,
            merge_strategy=merge_strategy,
        )


def load_payload(path: Path) -> object:
    resolved = path.resolve()
    try:
        raw = resolved.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"Failed to read payload file {resolved}: {exc}") from exc
    try:
        return json.loads(raw)
    except ValueError as exc:
        raise ConfigError(f"Failed to parse JSON from {resolved}: {exc}") from exc


def _optional_text(value: object) -> str | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        return value or None
    if isinstance(value, int | float):
        return str(value)
    return None
