from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal


AgentName = Literal["ticket", "coder", "reviewer"]
AgentStage = Literal[
    "pending",
    "starting",
    "thinking",
    "generating",
    "validating",
    "completed",
    "issues",
    "failed",
]
FileEncoding = Literal["utf-8", "base64"]
FileMode = Literal["text", "binary"]
MergeMethod = Literal["merge", "squash", "rebase"]


@dataclass(frozen=True)
class JobHandle:
    run_id: str
    base_url: str


@dataclass(frozen=True)
class PipelineStatus:
    agent: AgentName
    status: AgentStage
    message: str | None = None
    files_count: int | None = None
    issues_count: int | None = None


@dataclass(frozen=True)
class FileChange:
    path: str
    contents: str | bytes
    encoding: FileEncoding = "utf-8"
    mode: FileMode = "text"


@dataclass(frozen=True)
class CommitAuthor:
    name: str | None = None
    email: str | None = None


@dataclass(frozen=True)
class CommitSpec:
    message: str
    author: CommitAuthor = field(default_factory=CommitAuthor)
    force: bool = False


@dataclass(frozen=True)
class ReviewerSpec:
    users: tuple[str, ...] = ()
    teams: tuple[str, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.users and not self.teams


@dataclass(frozen=True)
class PullRequestSpec:
    title: str | None = None
    body: str = ""
    draft: bool = False
    number: int | None = None
    reviewers: ReviewerSpec = field(default_factory=ReviewerSpec)
    merge: bool = False
    merge_strategy: str | None = None


@dataclass(frozen=True)
class RepositoryPlan:
    files: tuple[FileChange, ...]
    deletions: tuple[str, ...]
    branch: str | None
    base_branch: str | None
    commit: CommitSpec
    pull_request: PullRequestSpec = field(default_factory=PullRequestSpec)
    repository: str | None = None


@dataclass(frozen=True)
class PullRequestResult:
    number: int | None
    url: str | None


@dataclass(frozen=True)
class PipelineOutputs:
    run_id: str | None = None
    status: str | None = None
    pr_number: int | None = None
    pr_url: str | None = None
