from __future__ import annotations

from collections.abc import Mapping
import logging
from typing import Final

from pixelframe.actions import Reporter
from pixelframe.agent_client import (
    AgentClient,
    AgentRequestError,
    decode_json_object,
    truncate_body,
    url_origin,
)
from pixelframe.job_poller import JobPoller
from pixelframe.models import JobHandle
from pixelframe.observability import log_event, log_warning_event
from pixelframe.progress import StatusTracker


LOGGER = logging.getLogger("pixelframe.agent_invoker")

_ERROR_BODY_PREVIEW: Final[int] = 500


class AgentInvoker:
    def __init__(self, client: AgentClient, poller: JobPoller, reporter: Reporter) -> None:
        self._client = client
        self._poller = poller
        self._reporter = reporter

    def invoke(
        self,
        agent_url: str,
        *,
        payload: object,
        context: Mapping[str, object],
        metadata: Mapping[str, object],
        tracker: StatusTracker,
    ) -> dict[str, object] | None:
        """Submit one agent request; asynchronous jobs are polled to a terminal state."""
        self._reporter.debug(f"Calling PixelFrame agent at {agent_url}")
        log_event(
            LOGGER,
            "agent_invocation_started",
            agent_url=agent_url,
            authenticated=self._client.authenticated,
        )
        reply = self._client.post_json(
            agent_url,
            {"payload": payload, "context": dict(context), "metadata": dict(metadata)},
        )

        if not reply.ok:
            raise AgentRequestError(
                f"PixelFrame API request failed ({reply.status_code} {reply.reason}): "
                f"{truncate_body(reply.text, limit=_ERROR_BODY_PREVIEW)}",
                status_code=reply.status_code,
            )

        data: dict[str, object] | None = None
        if reply.text:
            data = decode_json_object(reply.text)
            if data is None:
                self._reporter.warning("Agent response is not a valid JSON object")
                log_warning_event(
                    LOGGER,
                    "agent_response_unparseable",
                    status_code=reply.status_code,
                )
                data = {"raw": reply.text}

        run_id = data.get("runId") if data is not None else None
        if data is not None and data.get("status") == "processing" and run_id:
            handle = JobHandle(run_id=str(run_id), base_url=url_origin(agent_url))
            log_event(LOGGER, "agent_invocation_async", run_id=handle.run_id)
            result = self._poller.poll(handle, tracker)
            # Status payloads usually omit the run id; keep the one from submission.
            if not result.get("runId"):
                result = {**result, "runId": handle.run_id}
            return result

        log_event(
            LOGGER,
            "agent_invocation_completed",
            status=_status_field(data),
        )
        return data


def _status_field(data: dict[str, object] | None) -> str | None:
    if data is None:
        return None
    status = data.get("status")
    return status if isinstance(status, str) else None
