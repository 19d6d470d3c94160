"""GitHub Actions host integration.

The pipeline core only knows the :class:`Reporter` interface: emit a diagnostic
of some severity, and publish a named output. :class:`ActionsReporter` renders
those as workflow commands (``::notice::`` and friends) and appends outputs to
the ``GITHUB_OUTPUT`` file.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping
import logging
import os
from pathlib import Path
import sys
from typing import Literal, TextIO

from pixelframe.observability import log_event


LOGGER = logging.getLogger("pixelframe.actions")

Severity = Literal["debug", "notice", "warning", "error"]

_CONTEXT_ENV_KEYS: tuple[tuple[str, str], ...] = (
    ("repository", "GITHUB_REPOSITORY"),
    ("repositoryOwner", "GITHUB_REPOSITORY_OWNER"),
    ("ref", "GITHUB_REF"),
    ("sha", "GITHUB_SHA"),
    ("runId", "GITHUB_RUN_ID"),
    ("runAttempt", "GITHUB_RUN_ATTEMPT"),
    ("workflow", "GITHUB_WORKFLOW"),
    ("eventName", "GITHUB_EVENT_NAME"),
    ("actor", "GITHUB_ACTOR"),
    ("job", "GITHUB_JOB"),
)


class Reporter(ABC):
    @abstractmethod
    def emit(self, severity: Severity, message: str) -> None:
        """Surface a diagnostic to whoever is watching the run."""

    @abstractmethod
    def set_output(self, name: str, value: str) -> None:
        """Publish a named output of the run."""

    def debug(self, message: str) -> None:
        self.emit("debug", message)

    def notice(self, message: str) -> None:
        self.emit("notice", message)

    def warning(self, message: str) -> None:
        self.emit("warning", message)

    def error(self, message: str) -> None:
        self.emit("error", message)


class ActionsReporter(Reporter):
    def __init__(
        self,
        environ: Mapping[str, str] | None = None,
        *,
        stdout: TextIO | None = None,
        stderr: TextIO | None = None,
    ) -> None:
        self._environ = environ if environ is not None else os.environ
        self._stdout = stdout
        self._stderr = stderr

    @property
    def debug_enabled(self) -> bool:
        return self._environ.get("RUNNER_DEBUG") == "1"

    def emit(self, severity: Severity, message: str) -> None:
        if severity == "debug":
            if self.debug_enabled:
                self._write(self._out(), f"::debug::{message}")
            return
        if severity == "notice":
            self._write(self._out(), f"::notice::{message}")
            return
        self._write(self._err(), f"::{severity}::{message}")

    def set_output(self, name: str, value: str) -> None:
        output_path = self._environ.get("GITHUB_OUTPUT")
        if not output_path:
            self._write(self._out(), f"::set-output name={name}::{value}")
            return
        try:
            with Path(output_path).open("a", encoding="utf-8") as fh:
                fh.write(f"{name}={value}\n")
        except OSError as exc:
            self.warning(f"Failed to write to GITHUB_OUTPUT: {exc}")
            return
        log_event(LOGGER, "output_published", name=name)

    def _out(self) -> TextIO:
        return self._stdout if self._stdout is not None else sys.stdout

    def _err(self) -> TextIO:
        return self._stderr if self._stderr is not None else sys.stderr

    @staticmethod
    def _write(stream: TextIO, line: str) -> None:
        stream.write(f"{line}\n")
        stream.flush()


def build_context_snapshot(environ: Mapping[str, str] | None = None) -> dict[str, str | None]:
    env = environ if environ is not None else os.environ
    return {key: env.get(var) or None for key, var in _CONTEXT_ENV_KEYS}
