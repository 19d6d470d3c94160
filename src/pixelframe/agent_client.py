from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
import json
import logging
from typing import cast
from urllib.parse import urljoin, urlsplit

import requests

from pixelframe.config import USER_AGENT, ConfigError
from pixelframe.observability import log_event


LOGGER = logging.getLogger("pixelframe.agent_client")

AGENT_RUN_PATH = "/agent/run"
_AGENT_URL_KEYS: tuple[str, ...] = (
    "agentUrl",
    "agent_url",
    "agent_endpoint",
    "agentEndpoint",
    "url",
    "endpoint",
)


class AgentRequestError(RuntimeError):
    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class JobNotFoundError(AgentRequestError):
    pass


class JobExpiredError(AgentRequestError):
    pass


class JobTimeoutError(RuntimeError):
    pass


@dataclass(frozen=True)
class HttpReply:
    status_code: int
    reason: str
    text: str

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300


class AgentClient:
    """Thin transport for the PixelFrame agent service."""

    def __init__(
        self,
        *,
        api_key: str | None,
        session: requests.Session | None = None,
        timeout_seconds: float = 30.0,
    ) -> None:
        self._api_key = api_key
        self._session = session if session is not None else requests.Session()
        self._timeout_seconds = timeout_seconds

    @property
    def authenticated(self) -> bool:
        return bool(self._api_key)

    def post_json(self, url: str, body: Mapping[str, object]) -> HttpReply:
        headers = self._headers()
        headers["Content-Type"] = "application/json"
        try:
            response = self._session.post(
                url,
                data=json.dumps(body),
                headers=headers,
                timeout=self._timeout_seconds,
            )
        except requests.RequestException as exc:
            raise AgentRequestError(f"PixelFrame API request to {url} failed: {exc}") from exc
        return _reply_from_response(response)

    def get(self, url: str) -> HttpReply:
        try:
            response = self._session.get(
                url,
                headers=self._headers(),
                timeout=self._timeout_seconds,
            )
        except requests.RequestException as exc:
            raise AgentRequestError(f"PixelFrame API request to {url} failed: {exc}") from exc
        return _reply_from_response(response)

    def _headers(self) -> dict[str, str]:
        headers = {"User-Agent": USER_AGENT}
        if self._api_key:
            headers["Authorization"] = f"Bearer {self._api_key}"
        return headers


def resolve_agent_url(payload: object, base_url: str | None) -> str | None:
    """Pick the agent endpoint: payload aliases first, then ``<base>/agent/run``."""
    if isinstance(payload, dict):
        for key in _AGENT_URL_KEYS:
            candidate = payload.get(key)
            if isinstance(candidate, str) and candidate.strip():
                log_event(LOGGER, "agent_url_resolved", source=key)
                return candidate.strip()

    if not base_url:
        return None

    parsed = urlsplit(base_url)
    if parsed.scheme not in {"http", "https"} or not parsed.netloc:
        raise ConfigError(f"Invalid PixelFrame base URL: {base_url!r}")
    log_event(LOGGER, "agent_url_resolved", source="base_url")
    return urljoin(base_url, AGENT_RUN_PATH)


def url_origin(url: str) -> str:
    parsed = urlsplit(url)
    if not parsed.scheme or not parsed.netloc:
        raise ConfigError(f"Invalid PixelFrame agent URL: {url!r}")
    return f"{parsed.scheme}://{parsed.netloc}"


def decode_json_object(raw: str) -> dict[str, object] | None:
    try:
        payload = json.loads(raw)
    except ValueError:
        return None
    if not isinstance(payload, dict):
        return None
    return cast(dict[str, object], payload)


def truncate_body(raw: str, *, limit: int) -> str:
    if not raw:
        return "No response body"
    return raw[:limit]


def _reply_from_response(response: requests.Response) -> HttpReply:
    return HttpReply(
        status_code=int(response.status_code),
        reason=str(response.reason or ""),
        text=response.text or "",
    )
