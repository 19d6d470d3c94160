from __future__ import annotations

from pathlib import Path

import pytest

from pixelframe.config import (
    ConfigError,
    RepoIdentity,
    get_input,
    input_env_key,
    load_inputs,
    parse_repository,
)


def test_input_env_key_matches_actions_convention() -> None:
    assert input_env_key("payload-file") == "INPUT_PAYLOAD-FILE"
    assert input_env_key("merge strategy") == "INPUT_MERGE_STRATEGY"


def test_get_input_trims_and_enforces_required() -> None:
    env = {"INPUT_TOKEN": "  t0k  ", "INPUT_EMPTY": "   "}
    assert get_input(env, "token") == "t0k"
    assert get_input(env, "empty") is None
    with pytest.raises(ConfigError, match="Input required and not supplied: empty"):
        get_input(env, "empty", required=True)


def test_load_inputs_reads_action_environment() -> None:
    inputs = load_inputs(
        {
            "INPUT_PAYLOAD-FILE": "payload.json",
            "INPUT_TOKEN": "gh-token",
            "INPUT_MERGE-STRATEGY": "squash",
            "INPUT_PIXELFRAME-BASE-URL": "https://pf.example",
            "PIXELFRAME_API_KEY": "key",
        }
    )

    assert inputs.payload_file == Path("payload.json")
    assert inputs.token == "gh-token"
    assert inputs.merge_strategy == "squash"
    assert inputs.base_url == "https://pf.example"
    assert inputs.api_key == "key"
    assert inputs.verbose is None


def test_load_inputs_fallbacks_and_overrides() -> None:
    env = {
        "INPUT_PAYLOAD-FILE": "payload.json",
        "GITHUB_TOKEN": "fallback-token",
        "PIXELFRAME_BASE_URL": "https://env.example",
        "RUNNER_DEBUG": "1",
    }

    from_env = load_inputs(env)
    assert from_env.token == "fallback-token"
    assert from_env.base_url == "https://env.example"
    assert from_env.api_key is None
    assert from_env.verbose == "high"

    overridden = load_inputs(
        env,
        payload_file="other.json",
        token="cli-token",
        base_url="https://cli.example",
    )
    assert overridden.payload_file == Path("other.json")
    assert overridden.token == "cli-token"
    assert overridden.base_url == "https://cli.example"


def test_load_inputs_requires_payload_file() -> None:
    with pytest.raises(ConfigError, match="payload-file"):
        load_inputs({"INPUT_TOKEN": "t"})


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("octo/repo", RepoIdentity(owner="octo", name="repo")),
        (" octo/repo ", RepoIdentity(owner="octo", name="repo")),
        ("octo", None),
        ("/repo", None),
        ("octo/", None),
        ("", None),
        (None, None),
    ],
)
def test_parse_repository(raw: str | None, expected: RepoIdentity | None) -> None:
    assert parse_repository(raw) == expected


def test_repo_identity_urls() -> None:
    repo = RepoIdentity(owner="octo", name="repo")
    assert repo.full_name == "octo/repo"
    assert repo.html_url == "https://github.com/octo/repo"


@pytest.mark.parametrize(
    ("env_value", "explicit", "runner_debug", "expected"),
    [
        ("low", None, False, "low"),
        ("TRUE", None, False, "high"),
        ("false", None, True, None),
        (None, "low", True, "low"),
        ("high", "low", False, "low"),
        (None, None, True, "high"),
    ],
)
def test_load_inputs_resolves_verbose_mode(
    env_value: str | None, explicit: str | None, runner_debug: bool, expected: str | None
) -> None:
    env = {"INPUT_PAYLOAD-FILE": "payload.json"}
    if env_value is not None:
        env["INPUT_VERBOSE"] = env_value
    if runner_debug:
        env["RUNNER_DEBUG"] = "1"

    assert load_inputs(env, verbose=explicit).verbose == expected


def test_load_inputs_rejects_unknown_verbose_mode() -> None:
    with pytest.raises(ConfigError, match="Unsupported verbose mode: 'loud'"):
        load_inputs({"INPUT_PAYLOAD-FILE": "payload.json", "INPUT_VERBOSE": "loud"})
