from __future__ import annotations

from dataclasses import dataclass, field
import json
import logging
from typing import Final, cast

from pixelframe.actions import Reporter
from pixelframe.config import RepoIdentity
from pixelframe.models import MergeMethod, PullRequestResult, ReviewerSpec
from pixelframe.observability import log_event, log_warning_event
from pixelframe.shell import run_process


LOGGER = logging.getLogger("pixelframe.github_gateway")

_ERROR_BODY_PREVIEW: Final[int] = 400


class GitHubApiError(RuntimeError):
    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


@dataclass(frozen=True)
class _HttpResponse:
    status_code: int
    reason: str
    body: str


@dataclass(frozen=True)
class GitHubGateway:
    """REST calls against one repository, issued through ``gh api``."""

    repo: RepoIdentity
    token: str = field(repr=False)
    reporter: Reporter | None = field(default=None, compare=False, repr=False)

    def create_pull_request(
        self, *, title: str, head: str, base: str, body: str, draft: bool
    ) -> PullRequestResult:
        path = f"/repos/{self.repo.owner}/{self.repo.name}/pulls"
        try:
            payload = self._api_json(
                "POST",
                path,
                payload={"head": head, "base": base, "title": title, "body": body, "draft": draft},
            )
        except GitHubApiError as exc:
            log_event(
                LOGGER,
                "github_pr_create_failed",
                repo_full_name=self.repo.full_name,
                base=base,
                head=head,
                status_code=exc.status_code,
            )
            raise
        result = self._pull_request_result(payload, fallback_number=None)
        log_event(
            LOGGER,
            "github_pr_created",
            repo_full_name=self.repo.full_name,
            pr_number=result.number,
            base=base,
            head=head,
        )
        return result

    def update_pull_request(
        self, pr_number: int, *, title: str, body: str, draft: bool
    ) -> PullRequestResult:
        path = f"/repos/{self.repo.owner}/{self.repo.name}/pulls/{pr_number}"
        payload = self._api_json(
            "PATCH",
            path,
            payload={"title": title, "body": body, "draft": draft},
        )
        result = self._pull_request_result(payload, fallback_number=pr_number)
        log_event(
            LOGGER,
            "github_pr_updated",
            repo_full_name=self.repo.full_name,
            pr_number=pr_number,
        )
        return result

    def request_reviewers(self, pr_number: int, reviewers: ReviewerSpec) -> None:
        path = f"/repos/{self.repo.owner}/{self.repo.name}/pulls/{pr_number}/requested_reviewers"
        self._api_json(
            "POST",
            path,
            payload={"reviewers": list(reviewers.users), "team_reviewers": list(reviewers.teams)},
        )
        log_event(
            LOGGER,
            "github_reviewers_requested",
            pr_number=pr_number,
            user_count=len(reviewers.users),
            team_count=len(reviewers.teams),
        )

    def merge_pull_request(self, pr_number: int, method: MergeMethod) -> None:
        path = f"/repos/{self.repo.owner}/{self.repo.name}/pulls/{pr_number}/merge"
        self._api_json("PUT", path, payload={"merge_method": method})
        log_event(LOGGER, "github_pr_merged", pr_number=pr_number, merge_method=method)

    def pull_request_url(self, pr_number: int) -> str:
        return f"{self.repo.html_url}/pull/{pr_number}"

    def _pull_request_result(
        self, payload: object, *, fallback_number: int | None
    ) -> PullRequestResult:
        payload_obj = _as_object_dict(payload) or {}
        number = _as_optional_int(payload_obj.get("number")) or fallback_number
        html_url = payload_obj.get("html_url")
        url: str | None
        if isinstance(html_url, str) and html_url:
            url = html_url
        elif number is not None:
            url = self.pull_request_url(number)
        else:
            url = None
        return PullRequestResult(number=number, url=url)

    def _api_json(
        self, method: str, path: str, payload: dict[str, object] | None = None
    ) -> object:
        cmd = [
            "gh",
            "api",
            "--method",
            method.upper(),
            "--include",
            "--header",
            "Accept: application/vnd.github+json",
            path,
        ]
        stdin_payload: str | None = None
        if payload is not None:
            cmd.extend(["--input", "-"])
            stdin_payload = json.dumps(payload)

        proc = run_process(
            cmd,
            input_text=stdin_payload,
            env={"GH_TOKEN": self.token},
            check=False,
        )
        try:
            response = _parse_http_response(proc.stdout)
        except ValueError as exc:
            raise GitHubApiError(
                f"GitHub API request {method.upper()} {path} failed "
                f"(gh exit {proc.returncode}): {_preview_for_log(proc.stderr)}"
            ) from exc

        if response.status_code < 200 or response.status_code >= 300:
            snippet = response.body[:_ERROR_BODY_PREVIEW] if response.body else "No response body"
            raise GitHubApiError(
                f"GitHub API request failed ({response.status_code} {response.reason}): {snippet}",
                status_code=response.status_code,
            )

        if not response.body.strip():
            return None
        try:
            return json.loads(response.body)
        except ValueError as exc:
            message = f"GitHub API response from {path} is not valid JSON: {exc}"
            if self.reporter is not None:
                self.reporter.warning(message)
            log_warning_event(
                LOGGER,
                "github_response_unparseable",
                path=path,
                raw_preview=_preview_for_log(response.body),
            )
            return {"raw": response.body}


def _parse_http_response(raw: str) -> _HttpResponse:
    normalized = raw.replace("\r\n", "\n")
    lines = normalized.split("\n")

    # Redirects and 100-continue produce several status blocks; keep the last one.
    status_line_index = -1
    for index, line in enumerate(lines):
        if line.startswith("HTTP/"):
            status_line_index = index

    if status_line_index < 0:
        raise ValueError("Unexpected GitHub response: missing HTTP status line")

    status_line = lines[status_line_index]
    status_parts = status_line.split(" ", 2)
    if len(status_parts) < 2:
        raise ValueError(f"Unexpected GitHub response status line: {status_line!r}")
    try:
        status_code = int(status_parts[1])
    except ValueError as exc:
        raise ValueError(f"Unexpected GitHub response status line: {status_line!r}") from exc
    reason = status_parts[2].strip() if len(status_parts) > 2 else ""

    # Headers end at the first blank line after the status line.
    body_start = len(lines)
    for index in range(status_line_index + 1, len(lines)):
        if lines[index] == "":
            body_start = index + 1
            break

    body = "\n".join(lines[body_start:])
    return _HttpResponse(status_code=status_code, reason=reason, body=body)


def _preview_for_log(text: str, *, limit: int = 240) -> str:
    compact = text.replace("\n", "\\n").strip()
    if not compact:
        return "<empty>"
    if len(compact) <= limit:
        return compact
    return f"{compact[:limit]}..."


def _as_object_dict(value: object) -> dict[str, object] | None:
    if not isinstance(value, dict):
        return None
    if not all(isinstance(key, str) for key in value.keys()):
        return None
    return cast(dict[str, object], value)


def _as_optional_int(value: object) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value)
        except ValueError:
            return None
    return None
