from __future__ import annotations

import base64
import binascii
import logging
from pathlib import Path
import shutil

from pixelframe.actions import Reporter
from pixelframe.models import FileChange, RepositoryPlan
from pixelframe.observability import log_event


LOGGER = logging.getLogger("pixelframe.plan_applier")


class PlanPathError(ValueError):
    pass


def apply_plan(plan: RepositoryPlan, root: Path, reporter: Reporter) -> None:
    """Write every file change, then remove every deletion, under ``root``."""
    resolved_root = root.resolve()

    if plan.files:
        reporter.notice(f"📝 Applying {len(plan.files)} file changes...")
    for change in plan.files:
        write_file_change(change, resolved_root)
        reporter.debug(f"Wrote file {change.path}")

    for path in plan.deletions:
        remove_path(path, resolved_root)
        reporter.debug(f"Removed file {path}")

    log_event(
        LOGGER,
        "plan_applied",
        written_count=len(plan.files),
        removed_count=len(plan.deletions),
    )


def write_file_change(change: FileChange, root: Path) -> Path:
    target = resolve_within_root(change.path, root)
    target.parent.mkdir(parents=True, exist_ok=True)

    data: str | bytes = change.contents
    if change.encoding == "base64":
        try:
            data = base64.b64decode(_strip_whitespace(change.contents), validate=True)
        except (binascii.Error, ValueError) as exc:
            raise ValueError(f"Invalid base64 contents for {change.path}: {exc}") from exc

    if change.mode == "binary":
        target.write_bytes(data.encode("utf-8") if isinstance(data, str) else data)
    else:
        text = data if isinstance(data, str) else data.decode("utf-8", errors="replace")
        target.write_text(text, encoding="utf-8")
    return target


def remove_path(path: str, root: Path) -> None:
    target = resolve_within_root(path, root)
    if target.is_dir() and not target.is_symlink():
        shutil.rmtree(target, ignore_errors=False)
        return
    try:
        target.unlink(missing_ok=True)
    except NotADirectoryError:
        # A parent component is a regular file, so the target cannot exist.
        return


def resolve_within_root(path: str, root: Path) -> Path:
    """Resolve ``path`` against ``root``; reject anything that lands outside it."""
    if not path or "\x00" in path:
        raise PlanPathError(f"Invalid plan path: {path!r}")
    candidate = Path(path)
    if candidate.is_absolute():
        raise PlanPathError(f"Plan path must be relative to the working tree: {path!r}")
    resolved = (root / candidate).resolve()
    if resolved == root or not resolved.is_relative_to(root):
        raise PlanPathError(f"Plan path escapes the working tree: {path!r}")
    return resolved


def _strip_whitespace(contents: str | bytes) -> str | bytes:
    if isinstance(contents, bytes):
        return b"".join(contents.split())
    return "".join(contents.split())
