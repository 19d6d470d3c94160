from __future__ import annotations

from collections.abc import Callable
import logging
import time
from typing import Final, cast, get_args
from urllib.parse import quote, urljoin

from pixelframe.actions import Reporter
from pixelframe.agent_client import (
    AgentClient,
    AgentRequestError,
    JobExpiredError,
    JobNotFoundError,
    JobTimeoutError,
    decode_json_object,
    truncate_body,
)
from pixelframe.models import AgentName, AgentStage, JobHandle, PipelineStatus
from pixelframe.observability import log_event, log_warning_event
from pixelframe.progress import StatusTracker, report_agent_status


LOGGER = logging.getLogger("pixelframe.job_poller")

POLL_INTERVAL_SECONDS: Final[float] = 5.0
MAX_POLL_ATTEMPTS: Final[int] = 120
_STATUS_BODY_PREVIEW: Final[int] = 200
_TRACKED_AGENTS: Final[tuple[AgentName, ...]] = ("coder", "reviewer")
_AGENT_STAGES: Final[frozenset[str]] = frozenset(get_args(AgentStage))
_COUNT_FIELDS: Final[dict[AgentName, str]] = {
    "coder": "files_count",
    "reviewer": "issues_count",
}


class JobPoller:
    def __init__(
        self,
        client: AgentClient,
        reporter: Reporter,
        *,
        interval_seconds: float = POLL_INTERVAL_SECONDS,
        max_attempts: int = MAX_POLL_ATTEMPTS,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        self._client = client
        self._reporter = reporter
        self._interval_seconds = interval_seconds
        self._max_attempts = max_attempts
        self._sleep = sleep

    @property
    def deadline_seconds(self) -> int:
        return round(self._interval_seconds * self._max_attempts)

    def poll(self, handle: JobHandle, tracker: StatusTracker) -> dict[str, object]:
        """Block until the job reaches a terminal state.

        A ``completed`` job returns its whole payload. A ``failed`` job is
        returned as data too: its nested ``result`` when present, otherwise the
        payload itself. Unknown statuses are treated as still running.
        """
        status_url = urljoin(handle.base_url, f"/agent/status/{quote(handle.run_id, safe='')}")
        minutes = self.deadline_seconds // 60
        self._reporter.notice(
            f"Job {handle.run_id} started, polling for completion (max {minutes} minutes)..."
        )
        self._reporter.notice("")
        log_event(
            LOGGER,
            "agent_job_polling_started",
            run_id=handle.run_id,
            max_attempts=self._max_attempts,
        )

        for attempt in range(1, self._max_attempts + 1):
            self._sleep(self._interval_seconds)
            self._reporter.debug(f"Polling attempt {attempt}/{self._max_attempts} - {status_url}")

            reply = self._client.get(status_url)
            if not reply.ok:
                if reply.status_code == 404:
                    raise JobNotFoundError(
                        f"Job {handle.run_id} not found (404)", status_code=404
                    )
                if reply.status_code == 410:
                    raise JobExpiredError(f"Job {handle.run_id} expired (410)", status_code=410)
                raise AgentRequestError(
                    f"Status check failed ({reply.status_code}): "
                    f"{truncate_body(reply.text, limit=_STATUS_BODY_PREVIEW)}",
                    status_code=reply.status_code,
                )

            payload = decode_json_object(reply.text)
            if payload is None:
                self._reporter.warning("Status response is not a valid JSON object; retrying")
                log_warning_event(
                    LOGGER,
                    "agent_job_status_unparseable",
                    run_id=handle.run_id,
                    attempt=attempt,
                )
                continue

            for status in decode_pipeline_statuses(payload):
                if tracker.observe(status):
                    report_agent_status(self._reporter, status)

            job_status = payload.get("status")
            if job_status == "completed":
                elapsed = round(attempt * self._interval_seconds)
                self._reporter.notice("")
                self._reporter.notice(f"Job {handle.run_id} completed after {elapsed}s")
                log_event(
                    LOGGER,
                    "agent_job_completed",
                    run_id=handle.run_id,
                    attempts=attempt,
                    elapsed_seconds=elapsed,
                )
                return payload

            if job_status == "failed":
                error = payload.get("error") or "Unknown error"
                self._reporter.warning(f"Job {handle.run_id} failed: {error}")
                log_event(LOGGER, "agent_job_failed", run_id=handle.run_id, attempts=attempt)
                result = payload.get("result")
                if isinstance(result, dict):
                    return cast(dict[str, object], result)
                return payload

            if job_status == "processing":
                elapsed_raw = payload.get("elapsed_seconds")
                elapsed_seconds = (
                    elapsed_raw
                    if isinstance(elapsed_raw, int | float) and not isinstance(elapsed_raw, bool)
                    else round(attempt * self._interval_seconds)
                )
                self._reporter.debug(f"Still processing... ({elapsed_seconds}s elapsed)")
                continue

            # A new terminal state on the service side would loop here until the deadline.
            self._reporter.warning(
                f"Unknown job status {job_status!r} for job {handle.run_id}; "
                "treating as non-terminal and continuing to poll"
            )
            log_warning_event(
                LOGGER,
                "agent_job_unknown_status",
                run_id=handle.run_id,
                attempt=attempt,
                status=job_status if isinstance(job_status, str) else repr(job_status),
            )

        raise JobTimeoutError(
            f"Job {handle.run_id} timed out after {self.deadline_seconds}s "
            f"({self._max_attempts} polling attempts)"
        )


def decode_pipeline_statuses(payload: dict[str, object]) -> tuple[PipelineStatus, ...]:
    pipeline = payload.get("pipeline")
    if not isinstance(pipeline, dict):
        return ()

    statuses: list[PipelineStatus] = []
    for agent in _TRACKED_AGENTS:
        entry = pipeline.get(agent)
        if not isinstance(entry, dict):
            continue
        status = entry.get("status")
        if not isinstance(status, str) or status not in _AGENT_STAGES:
            continue
        message = entry.get("message")
        count = _as_positive_count(entry.get(_COUNT_FIELDS[agent]))
        statuses.append(
            PipelineStatus(
                agent=agent,
                status=cast(AgentStage, status),
                message=message if isinstance(message, str) and message else None,
                files_count=count if agent == "coder" else None,
                issues_count=count if agent == "reviewer" else None,
            )
        )
    return tuple(statuses)


def _as_positive_count(value: object) -> int | None:
    if isinstance(value, bool) or not isinstance(value, int):
        return None
    return value if value > 0 else None
