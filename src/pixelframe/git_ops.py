from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping
import logging
import os
from pathlib import Path

from pixelframe.actions import Reporter
from pixelframe.models import CommitAuthor
from pixelframe.observability import log_event
from pixelframe.shell import CommandError, run, run_process


LOGGER = logging.getLogger("pixelframe.git_ops")

DEFAULT_AUTHOR_NAME = "pixelframe-agent"
DEFAULT_AUTHOR_EMAIL = "pixelframe@git.local"
DEFAULT_BASE_BRANCH = "main"


class RepositoryDriver(ABC):
    @property
    @abstractmethod
    def root(self) -> Path:
        """Working tree the driver operates on."""

    @abstractmethod
    def configure_identity(self, author: CommitAuthor) -> None:
        """Set the committer identity used for the run."""

    @abstractmethod
    def sync_branch(self, branch: str, base_branch: str) -> None:
        """Bring ``base_branch`` up to date and recreate ``branch`` from it."""

    @abstractmethod
    def stage_and_commit(self, message: str) -> bool:
        """Stage everything and commit; return False when nothing was staged."""

    @abstractmethod
    def push_branch(self, branch: str, *, force: bool) -> None:
        """Push ``branch`` to origin, using a lease-protected force push if asked."""


class GitRepositoryDriver(RepositoryDriver):
    def __init__(
        self,
        checkout_path: Path,
        reporter: Reporter,
        *,
        environ: Mapping[str, str] | None = None,
    ) -> None:
        self._checkout_path = checkout_path
        self._reporter = reporter
        self._environ = environ if environ is not None else os.environ

    @property
    def root(self) -> Path:
        return self._checkout_path

    def configure_identity(self, author: CommitAuthor) -> None:
        name = author.name or self._environ.get("GIT_COMMITTER_NAME") or DEFAULT_AUTHOR_NAME
        email = author.email or self._environ.get("GIT_COMMITTER_EMAIL") or DEFAULT_AUTHOR_EMAIL
        log_event(LOGGER, "git_identity_configured", name=name, email=email)
        self._git("config", "user.name", name)
        self._git("config", "user.email", email)

    def sync_branch(self, branch: str, base_branch: str) -> None:
        log_event(LOGGER, "git_branch_sync", branch=branch, base_branch=base_branch)
        self._git("fetch", "--prune", "--tags")
        self._git("checkout", base_branch)
        self._git("pull", "--ff-only", "origin", base_branch)
        self._git("checkout", "-B", branch, base_branch)

    def stage_and_commit(self, message: str) -> bool:
        self._git("add", "--all")

        argv = ["git", "-C", str(self._checkout_path), "diff", "--cached", "--quiet"]
        proc = run_process(argv, check=False)
        if proc.returncode == 0:
            self._reporter.notice("No staged changes detected; skipping commit.")
            log_event(LOGGER, "git_commit_skipped", reason="no_staged_changes")
            return False
        if proc.returncode != 1:
            raise CommandError(
                f"{' '.join(argv)} exited with code {proc.returncode}\n"
                f"stderr:\n{proc.stderr}",
                argv=argv,
                exit_code=proc.returncode,
            )

        log_event(LOGGER, "git_commit", has_message=bool(message.strip()))
        self._git("commit", "-m", message)
        return True

    def push_branch(self, branch: str, *, force: bool) -> None:
        log_event(LOGGER, "git_push", branch=branch, force_with_lease=force)
        args = ["push", "origin", branch]
        if force:
            args.insert(1, "--force-with-lease")
        try:
            self._git(*args)
        except CommandError as exc:
            log_event(
                LOGGER,
                "git_push_failed",
                branch=branch,
                exit_code=exc.exit_code,
            )
            raise

    def _git(self, *args: str) -> str:
        return run(["git", "-C", str(self._checkout_path), *args])


def resolve_base_branch(explicit: str | None, environ: Mapping[str, str] | None = None) -> str:
    env = environ if environ is not None else os.environ
    return (
        explicit
        or env.get("GITHUB_BASE_REF")
        or env.get("GITHUB_REF_NAME")
        or DEFAULT_BASE_BRANCH
    )
