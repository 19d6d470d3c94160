"""Decode the agent's loosely shaped plan into :class:`RepositoryPlan`.

All alias handling lives here. Everything downstream of
:func:`parse_repository_plan` only sees the canonical dataclasses.
"""

from __future__ import annotations

import logging
from typing import Final, cast

from pixelframe.models import (
    CommitAuthor,
    CommitSpec,
    FileChange,
    FileEncoding,
    FileMode,
    PullRequestSpec,
    RepositoryPlan,
    ReviewerSpec,
)
from pixelframe.observability import log_event


LOGGER = logging.getLogger("pixelframe.plan")

DEFAULT_COMMIT_MESSAGE: Final[str] = "PixelFrame agent updates"


def parse_repository_plan(response: object) -> RepositoryPlan | None:
    response_obj = _as_object_dict(response)
    if response_obj is None:
        return None
    plan = _as_object_dict(response_obj.get("plan")) or response_obj

    commit = _as_object_dict(plan.get("commit")) or {}
    files_raw = plan.get("files")
    if files_raw is None:
        files_raw = plan.get("updates")
    files = normalize_file_changes(files_raw)
    deletions = normalize_deletions(plan.get("deletions"))

    repository_obj = _as_object_dict(plan.get("repository")) or {}
    parsed = RepositoryPlan(
        files=files,
        deletions=deletions,
        branch=_first_str(commit.get("branch"), plan.get("branch"), plan.get("branchName")),
        base_branch=_first_str(commit.get("base"), plan.get("baseBranch")),
        commit=CommitSpec(
            message=_first_str(commit.get("message"), plan.get("commitMessage"))
            or DEFAULT_COMMIT_MESSAGE,
            author=_parse_author(commit.get("author")),
            force=commit.get("force") is True or plan.get("force") is True,
        ),
        pull_request=_parse_pull_request(plan),
        repository=_first_str(repository_obj.get("name")),
    )
    log_event(
        LOGGER,
        "plan_parsed",
        file_count=len(parsed.files),
        deletion_count=len(parsed.deletions),
        has_branch=parsed.branch is not None,
    )
    return parsed


def normalize_file_changes(entries: object) -> tuple[FileChange, ...]:
    """Keep well-formed file entries; anything without a path is dropped."""
    if not isinstance(entries, list):
        return ()

    changes: list[FileChange] = []
    for entry in entries:
        entry_obj = _as_object_dict(entry)
        if entry_obj is None:
            continue
        path = entry_obj.get("path")
        if not isinstance(path, str) or not path:
            continue

        contents = entry_obj.get("contents")
        if contents is None:
            contents = entry_obj.get("content")
        if contents is None:
            contents = ""

        changes.append(
            FileChange(
                path=path,
                contents=contents if isinstance(contents, str | bytes) else str(contents),
                encoding=_parse_encoding(
                    entry_obj.get("encoding") or entry_obj.get("contentEncoding")
                ),
                mode=_parse_mode(entry_obj.get("mode")),
            )
        )
    return tuple(changes)


def normalize_deletions(entries: object) -> tuple[str, ...]:
    if not isinstance(entries, list):
        return ()
    paths: list[str] = []
    for entry in entries:
        if isinstance(entry, str):
            if entry:
                paths.append(entry)
            continue
        entry_obj = _as_object_dict(entry)
        if entry_obj is None:
            continue
        path = entry_obj.get("path")
        if isinstance(path, str) and path:
            paths.append(path)
    return tuple(paths)


def normalize_reviewers(value: object) -> ReviewerSpec:
    if isinstance(value, list):
        return ReviewerSpec(users=_str_items(value))
    value_obj = _as_object_dict(value)
    if value_obj is None:
        return ReviewerSpec()
    return ReviewerSpec(
        users=_str_items(value_obj.get("users")),
        teams=_str_items(value_obj.get("teams")),
    )


def _parse_pull_request(plan: dict[str, object]) -> PullRequestSpec:
    spec = _as_object_dict(plan.get("pullRequest")) or {}
    body = spec.get("body")
    return PullRequestSpec(
        title=_first_str(spec.get("title")),
        body=body if isinstance(body, str) else "",
        draft=spec.get("draft") is True,
        number=_as_optional_pr_number(spec.get("number"))
        or _as_optional_pr_number(spec.get("prNumber")),
        reviewers=normalize_reviewers(spec.get("reviewers")),
        merge=spec.get("merge") is True or plan.get("merge") is True,
        merge_strategy=_first_str(spec.get("mergeStrategy")),
    )


def _parse_author(value: object) -> CommitAuthor:
    author = _as_object_dict(value)
    if author is None:
        return CommitAuthor()
    return CommitAuthor(name=_first_str(author.get("name")), email=_first_str(author.get("email")))


def _parse_encoding(value: object) -> FileEncoding:
    if isinstance(value, str) and value.strip().lower() == "base64":
        return "base64"
    return "utf-8"


def _parse_mode(value: object) -> FileMode:
    if isinstance(value, str) and value.strip().lower() == "binary":
        return "binary"
    return "text"


def _as_optional_pr_number(value: object) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value if value > 0 else None
    if isinstance(value, str) and value.strip().isdigit():
        number = int(value.strip())
        return number if number > 0 else None
    return None


def _str_items(value: object) -> tuple[str, ...]:
    if not isinstance(value, list):
        return ()
    return tuple(item for item in value if isinstance(item, str) and item)


def _first_str(*values: object) -> str | None:
    for value in values:
        if isinstance(value, str) and value:
            return value
    return None


def _as_object_dict(value: object) -> dict[str, object] | None:
    if not isinstance(value, dict):
        return None
    if not all(isinstance(key, str) for key in value.keys()):
        return None
    return cast(dict[str, object], value)
