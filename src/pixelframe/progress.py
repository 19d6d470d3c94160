from __future__ import annotations

from dataclasses import dataclass, field
from typing import Final

from pixelframe.actions import Reporter
from pixelframe.models import AgentName, AgentStage, PipelineStatus


_RULE: Final[str] = "═" * 59

AGENT_LABELS: Final[dict[AgentName, tuple[str, str]]] = {
    "ticket": ("Agent 1: Ticket Analysis", "Grok-4"),
    "coder": ("Agent 2: Code Generation", "Opus 4.5"),
    "reviewer": ("Agent 3: Verification", "Codex"),
}

STAGE_MESSAGES: Final[dict[AgentName, dict[AgentStage, str]]] = {
    "ticket": {},
    "coder": {
        "pending": "Waiting to start...",
        "starting": "Analyzing codebase structure...",
        "thinking": "Planning code changes...",
        "generating": "Generating code...",
        "completed": "Code generated",
        "failed": "Code generation failed",
    },
    "reviewer": {
        "pending": "Waiting for code...",
        "starting": "Verifying acceptance criteria...",
        "validating": "Checking syntax and patterns...",
        "completed": "Verification passed",
        "issues": "Issues found, regenerating...",
        "failed": "Verification failed",
    },
}

_STATUS_ICONS: Final[dict[AgentStage, str]] = {
    "pending": "⏳",
    "starting": "🔄",
    "thinking": "🔄",
    "generating": "🔄",
    "validating": "🔄",
    "completed": "✅",
    "issues": "⚠️",
    "failed": "❌",
}


@dataclass
class StatusTracker:
    """Last status reported per agent, owned by a single pipeline run."""

    last_status: dict[AgentName, AgentStage] = field(default_factory=dict)

    def observe(self, status: PipelineStatus) -> bool:
        if self.last_status.get(status.agent) == status.status:
            return False
        self.last_status[status.agent] = status.status
        return True


def report_agent_status(reporter: Reporter, status: PipelineStatus) -> None:
    name, model = AGENT_LABELS[status.agent]
    icon = _STATUS_ICONS.get(status.status, "🔄")
    message = status.message or STAGE_MESSAGES[status.agent].get(status.status) or status.status
    line = f"{icon} {name} [{model}]: {message}"
    if status.status == "failed":
        reporter.warning(line)
    else:
        reporter.notice(line)

    if status.files_count:
        reporter.notice(f"   └─ {status.files_count} files modified")
    if status.issues_count:
        reporter.notice(f"   └─ {status.issues_count} issues found")


def report_pipeline_start(reporter: Reporter) -> None:
    reporter.notice(_RULE)
    reporter.notice("  PIXELFRAME MULTI-AGENT PIPELINE")
    reporter.notice(_RULE)
    reporter.notice("")
    # Ticket analysis happens before the action is triggered.
    report_agent_status(
        reporter,
        PipelineStatus(agent="ticket", status="completed", message="Ticket requirements analyzed"),
    )


def report_pipeline_complete(
    reporter: Reporter, pr_number: int | None, pr_url: str | None
) -> None:
    reporter.notice("")
    reporter.notice(_RULE)
    if pr_number:
        reporter.notice(f"  ✅ PR #{pr_number} CREATED SUCCESSFULLY")
        if pr_url:
            reporter.notice(f"  📎 {pr_url}")
    else:
        reporter.notice("  ✅ PIPELINE COMPLETED")
    reporter.notice(_RULE)
