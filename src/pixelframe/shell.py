from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path
import logging
import os
import subprocess


class CommandError(RuntimeError):
    def __init__(self, message: str, *, argv: list[str], exit_code: int) -> None:
        super().__init__(message)
        self.argv = argv
        self.exit_code = exit_code


LOGGER = logging.getLogger("pixelframe.shell")


def _preview(text: str, *, limit: int = 200) -> str:
    compact = text.replace("\n", "\\n").strip()
    if not compact:
        return "<empty>"
    if len(compact) <= limit:
        return compact
    return f"{compact[:limit]}..."


def run(
    argv: list[str],
    *,
    cwd: Path | None = None,
    input_text: str | None = None,
    env: Mapping[str, str] | None = None,
    check: bool = True,
) -> str:
    return run_process(argv, cwd=cwd, input_text=input_text, env=env, check=check).stdout


def run_process(
    argv: list[str],
    *,
    cwd: Path | None = None,
    input_text: str | None = None,
    env: Mapping[str, str] | None = None,
    check: bool = True,
) -> subprocess.CompletedProcess[str]:
    merged_env: dict[str, str] | None = None
    if env is not None:
        merged_env = dict(os.environ)
        merged_env.update(env)
    proc = subprocess.run(
        argv,
        cwd=str(cwd) if cwd else None,
        input=input_text,
        env=merged_env,
        text=True,
        capture_output=True,
        check=False,
    )
    if check and proc.returncode != 0:
        LOGGER.error(
            "event=command_failed command=%s exit_code=%s stderr=%s stdout=%s",
            " ".join(argv),
            proc.returncode,
            _preview(proc.stderr),
            _preview(proc.stdout),
        )
        raise CommandError(
            f"{' '.join(argv)} exited with code {proc.returncode}\n"
            f"stdout:\n{proc.stdout}\n"
            f"stderr:\n{proc.stderr}",
            argv=list(argv),
            exit_code=proc.returncode,
        )
    return proc
