from __future__ import annotations

from dataclasses import dataclass, field
import json

from pixelframe.actions import Reporter, Severity


class RecordingReporter(Reporter):
    def __init__(self) -> None:
        self.events: list[tuple[Severity, str]] = []
        self.outputs: list[tuple[str, str]] = []

    def emit(self, severity: Severity, message: str) -> None:
        self.events.append((severity, message))

    def set_output(self, name: str, value: str) -> None:
        self.outputs.append((name, value))

    def messages(self, severity: Severity) -> list[str]:
        return [message for level, message in self.events if level == severity]


@dataclass
class FakeResponse:
    status_code: int
    text: str = ""
    reason: str = "OK"


def json_response(payload: object, *, status_code: int = 200, reason: str = "OK") -> FakeResponse:
    return FakeResponse(status_code=status_code, text=json.dumps(payload), reason=reason)


@dataclass
class FakeSession:
    """Stands in for ``requests.Session``; replies are consumed in order."""

    post_replies: list[FakeResponse] = field(default_factory=list)
    get_replies: list[FakeResponse] = field(default_factory=list)
    posts: list[tuple[str, dict[str, object], dict[str, str]]] = field(default_factory=list)
    gets: list[tuple[str, dict[str, str]]] = field(default_factory=list)

    def post(
        self, url: str, *, data: str, headers: dict[str, str], timeout: float
    ) -> FakeResponse:
        _ = timeout
        self.posts.append((url, json.loads(data), headers))
        return self.post_replies.pop(0)

    def get(self, url: str, *, headers: dict[str, str], timeout: float) -> FakeResponse:
        _ = timeout
        self.gets.append((url, headers))
        return self.get_replies.pop(0)
