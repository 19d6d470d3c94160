from __future__ import annotations

from collections.abc import Callable
import logging
from typing import Final, cast

from pixelframe.actions import Reporter
from pixelframe.config import RepoIdentity
from pixelframe.github_gateway import GitHubGateway
from pixelframe.models import MergeMethod, PullRequestResult, PullRequestSpec
from pixelframe.observability import log_event


LOGGER = logging.getLogger("pixelframe.pull_requests")

MERGE_METHODS: Final[frozenset[str]] = frozenset({"merge", "squash", "rebase"})

GatewayFactory = Callable[[RepoIdentity, str], GitHubGateway]


class PullRequestManager:
    def __init__(self, reporter: Reporter, *, gateway_factory: GatewayFactory | None = None) -> None:
        self._reporter = reporter
        self._gateway_factory = gateway_factory or (
            lambda repo, token: GitHubGateway(repo=repo, token=token, reporter=reporter)
        )

    def sync(
        self,
        *,
        repo: RepoIdentity | None,
        branch: str | None,
        base_branch: str,
        spec: PullRequestSpec,
        token: str | None,
        merge_strategy: str | None = None,
    ) -> PullRequestResult | None:
        """Create or update the PR for ``branch``, then request reviews and merge if asked.

        Returns None when there is no repository, branch, or token to work with.
        """
        if repo is None or not branch or not token:
            log_event(
                LOGGER,
                "pull_request_sync_skipped",
                has_repo=repo is not None,
                has_branch=bool(branch),
                has_token=bool(token),
            )
            return None

        github = self._gateway_factory(repo, token)
        title = spec.title or f"Updates from PixelFrame agent ({branch})"

        if spec.number is not None:
            self._reporter.notice(f"📝 Updating pull request #{spec.number}")
            result = github.update_pull_request(
                spec.number, title=title, body=spec.body, draft=spec.draft
            )
        else:
            self._reporter.notice(f"🔀 Creating pull request from {branch} to {base_branch}")
            result = github.create_pull_request(
                title=title, head=branch, base=base_branch, body=spec.body, draft=spec.draft
            )

        if result.number is not None and not spec.reviewers.is_empty:
            github.request_reviewers(result.number, spec.reviewers)

        if spec.merge and result.number is not None:
            self._maybe_merge(github, result.number, merge_strategy or spec.merge_strategy)

        return result

    def _maybe_merge(self, github: GitHubGateway, pr_number: int, strategy: str | None) -> None:
        if not strategy:
            log_event(LOGGER, "pull_request_merge_skipped", pr_number=pr_number, reason="no_strategy")
            return
        method = strategy.strip().lower()
        if method not in MERGE_METHODS:
            self._reporter.warning(
                f'Unsupported merge strategy "{strategy}". Skipping merge step.'
            )
            log_event(
                LOGGER,
                "pull_request_merge_skipped",
                pr_number=pr_number,
                reason="unsupported_strategy",
                strategy=strategy,
            )
            return
        github.merge_pull_request(pr_number, cast(MergeMethod, method))
        self._reporter.notice(f"Pull request #{pr_number} merged using {method} strategy.")
