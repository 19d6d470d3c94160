from __future__ import annotations

from dataclasses import dataclass, field

import pytest

from pixelframe.config import RepoIdentity
from pixelframe.models import PullRequestResult, PullRequestSpec, ReviewerSpec
from pixelframe.pull_requests import PullRequestManager

from support import RecordingReporter


REPO = RepoIdentity(owner="octo", name="repo")


@dataclass
class FakeGateway:
    repo: RepoIdentity
    token: str
    calls: list[tuple[str, object]] = field(default_factory=list)
    created_number: int | None = 7

    def create_pull_request(
        self, *, title: str, head: str, base: str, body: str, draft: bool
    ) -> PullRequestResult:
        self.calls.append(("create", (title, head, base, body, draft)))
        if self.created_number is None:
            return PullRequestResult(number=None, url=None)
        return PullRequestResult(
            number=self.created_number,
            url=f"https://github.com/octo/repo/pull/{self.created_number}",
        )

    def update_pull_request(
        self, pr_number: int, *, title: str, body: str, draft: bool
    ) -> PullRequestResult:
        self.calls.append(("update", (pr_number, title, body, draft)))
        return PullRequestResult(number=pr_number, url=f"https://github.com/octo/repo/pull/{pr_number}")

    def request_reviewers(self, pr_number: int, reviewers: ReviewerSpec) -> None:
        self.calls.append(("reviewers", (pr_number, reviewers)))

    def merge_pull_request(self, pr_number: int, method: str) -> None:
        self.calls.append(("merge", (pr_number, method)))


def _manager(
    reporter: RecordingReporter, gateways: list[FakeGateway], *, created_number: int | None = 7
) -> PullRequestManager:
    def factory(repo: RepoIdentity, token: str) -> FakeGateway:
        gateway = FakeGateway(repo=repo, token=token, created_number=created_number)
        gateways.append(gateway)
        return gateway

    return PullRequestManager(reporter, gateway_factory=factory)  # type: ignore[arg-type]


@pytest.mark.parametrize(
    ("repo", "branch", "token"),
    [(None, "b1", "t"), (REPO, None, "t"), (REPO, "", "t"), (REPO, "b1", None), (REPO, "b1", "")],
)
def test_sync_without_repo_branch_or_token_is_a_no_op(
    repo: RepoIdentity | None, branch: str | None, token: str | None
) -> None:
    gateways: list[FakeGateway] = []

    result = _manager(RecordingReporter(), gateways).sync(
        repo=repo, branch=branch, base_branch="main", spec=PullRequestSpec(), token=token
    )

    assert result is None
    assert gateways == []


def test_sync_creates_pull_request_with_default_title() -> None:
    reporter = RecordingReporter()
    gateways: list[FakeGateway] = []

    result = _manager(reporter, gateways).sync(
        repo=REPO,
        branch="b1",
        base_branch="develop",
        spec=PullRequestSpec(body="Body", draft=True),
        token="t",
    )

    assert result == PullRequestResult(number=7, url="https://github.com/octo/repo/pull/7")
    assert gateways[0].token == "t"
    assert gateways[0].calls == [
        ("create", ("Updates from PixelFrame agent (b1)", "b1", "develop", "Body", True))
    ]
    assert reporter.messages("notice") == ["🔀 Creating pull request from b1 to develop"]


def test_sync_updates_existing_pull_request_and_requests_reviewers() -> None:
    reporter = RecordingReporter()
    gateways: list[FakeGateway] = []
    reviewers = ReviewerSpec(users=("alice",), teams=("core",))

    result = _manager(reporter, gateways).sync(
        repo=REPO,
        branch="b1",
        base_branch="main",
        spec=PullRequestSpec(title="Fix", number=12, reviewers=reviewers),
        token="t",
    )

    assert result is not None and result.number == 12
    assert gateways[0].calls == [
        ("update", (12, "Fix", "", False)),
        ("reviewers", (12, reviewers)),
    ]
    assert reporter.messages("notice") == ["📝 Updating pull request #12"]


def test_sync_skips_reviewers_and_merge_without_number() -> None:
    gateways: list[FakeGateway] = []

    _manager(RecordingReporter(), gateways, created_number=None).sync(
        repo=REPO,
        branch="b1",
        base_branch="main",
        spec=PullRequestSpec(reviewers=ReviewerSpec(users=("alice",)), merge=True),
        token="t",
        merge_strategy="squash",
    )

    assert [name for name, _ in gateways[0].calls] == ["create"]


@pytest.mark.parametrize(
    ("input_strategy", "plan_strategy", "expected"),
    [
        ("squash", None, "squash"),
        ("REBASE", None, "rebase"),
        (None, "merge", "merge"),
        ("rebase", "squash", "rebase"),
    ],
)
def test_merge_uses_input_strategy_over_plan(
    input_strategy: str | None, plan_strategy: str | None, expected: str
) -> None:
    reporter = RecordingReporter()
    gateways: list[FakeGateway] = []

    _manager(reporter, gateways).sync(
        repo=REPO,
        branch="b1",
        base_branch="main",
        spec=PullRequestSpec(merge=True, merge_strategy=plan_strategy),
        token="t",
        merge_strategy=input_strategy,
    )

    assert gateways[0].calls[-1] == ("merge", (7, expected))
    assert reporter.messages("notice")[-1] == f"Pull request #7 merged using {expected} strategy."


def test_unsupported_merge_strategy_warns_and_skips() -> None:
    reporter = RecordingReporter()
    gateways: list[FakeGateway] = []

    result = _manager(reporter, gateways).sync(
        repo=REPO,
        branch="b1",
        base_branch="main",
        spec=PullRequestSpec(merge=True),
        token="t",
        merge_strategy="fast-forward",
    )

    assert result is not None and result.number == 7
    assert [name for name, _ in gateways[0].calls] == ["create"]
    assert reporter.messages("warning") == [
        'Unsupported merge strategy "fast-forward". Skipping merge step.'
    ]


def test_merge_requested_without_strategy_is_skipped() -> None:
    reporter = RecordingReporter()
    gateways: list[FakeGateway] = []

    _manager(reporter, gateways).sync(
        repo=REPO,
        branch="b1",
        base_branch="main",
        spec=PullRequestSpec(merge=True),
        token="t",
    )

    assert [name for name, _ in gateways[0].calls] == ["create"]
    assert reporter.messages("warning") == []


def test_strategy_without_merge_flag_does_not_merge() -> None:
    gateways: list[FakeGateway] = []

    _manager(RecordingReporter(), gateways).sync(
        repo=REPO,
        branch="b1",
        base_branch="main",
        spec=PullRequestSpec(),
        token="t",
        merge_strategy="squash",
    )

    assert [name for name, _ in gateways[0].calls] == ["create"]
