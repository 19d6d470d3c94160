from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
import os
from pathlib import Path

from pixelframe.observability import VerboseMode


ACTION_VERSION = "2.1.0"
USER_AGENT = f"pixelframe-agent-action/{ACTION_VERSION}"


class ConfigError(ValueError):
    pass


@dataclass(frozen=True)
class RepoIdentity:
    owner: str
    name: str

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.name}"

    @property
    def html_url(self) -> str:
        return f"https://github.com/{self.owner}/{self.name}"


@dataclass(frozen=True)
class ActionInputs:
    payload_file: Path
    token: str | None = None
    merge_strategy: str | None = None
    base_url: str | None = None
    api_key: str | None = None
    verbose: VerboseMode | None = None


def input_env_key(name: str) -> str:
    return f"INPUT_{name.replace(' ', '_').upper()}"


def get_input(environ: Mapping[str, str], name: str, *, required: bool = False) -> str | None:
    value = environ.get(input_env_key(name), "").strip()
    if not value:
        if required:
            raise ConfigError(f"Input required and not supplied: {name}")
        return None
    return value


def load_inputs(
    environ: Mapping[str, str] | None = None,
    *,
    payload_file: str | None = None,
    token: str | None = None,
    merge_strategy: str | None = None,
    base_url: str | None = None,
    verbose: str | None = None,
) -> ActionInputs:
    """Resolve action inputs; explicit arguments win over ``INPUT_*`` variables."""
    env = environ if environ is not None else os.environ

    raw_payload_file = _first_non_empty(payload_file, get_input(env, "payload-file"))
    if raw_payload_file is None:
        raise ConfigError("Input required and not supplied: payload-file")

    return ActionInputs(
        payload_file=Path(raw_payload_file),
        token=_first_non_empty(token, get_input(env, "token"), env.get("GITHUB_TOKEN")),
        merge_strategy=_first_non_empty(merge_strategy, get_input(env, "merge-strategy")),
        base_url=_first_non_empty(
            base_url, get_input(env, "pixelframe-base-url"), env.get("PIXELFRAME_BASE_URL")
        ),
        api_key=_first_non_empty(env.get("PIXELFRAME_API_KEY")),
        verbose=_parse_verbose(
            _first_non_empty(verbose, get_input(env, "verbose")),
            runner_debug=env.get("RUNNER_DEBUG") == "1",
        ),
    )


def parse_repository(value: str | None) -> RepoIdentity | None:
    if not value:
        return None
    parts = value.strip().split("/")
    if len(parts) < 2 or not parts[0] or not parts[1]:
        return None
    return RepoIdentity(owner=parts[0], name=parts[1])


def _first_non_empty(*values: str | None) -> str | None:
    for value in values:
        if value is None:
            continue
        stripped = value.strip()
        if stripped:
            return stripped
    return None


def _parse_verbose(value: str | None, *, runner_debug: bool) -> VerboseMode | None:
    if value is None:
        return "high" if runner_debug else None
    normalized = value.lower()
    if normalized in {"high", "true", "1"}:
        return "high"
    if normalized == "low":
        return "low"
    if normalized in {"false", "0", "off"}:
        return None
    raise ConfigError(f"Unsupported verbose mode: {value!r} (expected low, high, true or false)")
