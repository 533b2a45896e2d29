from __future__ import annotations

import asyncio
import json
from pathlib import Path

import allure
import pytest

from praxio.delegation.backend.claude import ClaudeProvider, parse_claude_response
from praxio.delegation.errors import (
    ApiError,
    AuthenticationFailedError,
    InvocationTimeoutError,
    ProviderUnavailableError,
    ResponseParseError,
)
from praxio.delegation.models import LlmRequest
from praxio.delegation.workdir import WorkdirManager

pytestmark = [
    allure.epic("Delegation"),
    allure.feature("Claude Provider"),
]


def _provider(tmp_path: Path, **kwargs) -> ClaudeProvider:
    return ClaudeProvider(workdirs=WorkdirManager(tmp_path / "work"), **kwargs)


def test_build_args_orders_flags(tmp_path: Path) -> None:
    provider = _provider(tmp_path)

    args = provider.build_args(
        LlmRequest(
            prompt="hi",
            system_prompt="be brief",
            model="opus",
            fallback_model="sonnet",
            session_id="abc",
        ),
    )

    assert args == [
        "claude",
        "--print",
        "hi",
        "--resume",
        "abc",
        "--system-prompt",
        "be brief",
        "--model",
        "opus",
        "--fallback-model",
        "sonnet",
        "--output-format",
        "json",
        "--dangerously-skip-permissions",
    ]


def test_build_args_minimal_request(tmp_path: Path) -> None:
    args = _provider(tmp_path, binary="/opt/claude").build_args(LlmRequest(prompt="hi"))

    assert args == [
        "/opt/claude",
        "--print",
        "hi",
        "--output-format",
        "json",
        "--dangerously-skip-permissions",
    ]


def test_parse_sums_top_level_usage_and_reads_metadata(claude_payload) -> None:
    response = parse_claude_response(json.dumps(claude_payload()))

    assert response.content == "hello"
    assert response.provider == "claude"
    assert response.primary_model == "claude-sonnet-4-5-20250929"
    assert response.duration_ms == 1234
    assert response.cost_usd == pytest.approx(0.0042)
    assert response.tokens is not None
    assert response.tokens.total == 20
    assert response.tokens.cache_creation == 100
    assert response.tokens.cache_read == 200
    assert response.tokens.extended_thinking is None
    assert response.metadata.session_id == "c1a2b3c4-0000-4000-8000-000000000001"
    assert response.metadata.num_turns == 1
    assert response.metadata.service_tier == "standard"
    assert response.model_breakdown is not None
    assert response.model_breakdown[0].context_window == 200000


def test_primary_model_is_highest_output_and_first_on_tie(claude_payload) -> None:
    usage = {
        "claude-haiku": {"inputTokens": 50, "outputTokens": 30, "costUSD": 0.001},
        "claude-opus": {"inputTokens": 5, "outputTokens": 30, "costUSD": 0.01},
        "claude-sonnet": {"inputTokens": 5, "outputTokens": 3, "costUSD": 0.002},
    }

    response = parse_claude_response(json.dumps(claude_payload(model_usage=usage)))

    assert response.primary_model == "claude-haiku"
    assert response.all_models_used == ["claude-haiku", "claude-opus", "claude-sonnet"]


def test_empty_model_usage_reports_unknown_model(claude_payload) -> None:
    response = parse_claude_response(json.dumps(claude_payload(model_usage={})))

    assert response.primary_model == "unknown"
    assert response.all_models_used == []


def test_is_error_payload_raises_api_error(claude_payload) -> None:
    payload = claude_payload(result="Overloaded")
    payload["is_error"] = True

    with pytest.raises(ApiError) as error_info:
        parse_claude_response(json.dumps(payload))

    assert error_info.value.detail == "Overloaded"


def test_malformed_output_raises_parse_error(claude_payload) -> None:
    payload = claude_payload()
    del payload["usage"]

    with pytest.raises(ResponseParseError):
        parse_claude_response("not json at all")
    with pytest.raises(ResponseParseError, match="usage"):
        parse_claude_response(json.dumps(payload))
    with pytest.raises(ResponseParseError):
        parse_claude_response("[1, 2, 3]")


def test_invoke_runs_cli_in_isolated_workdir(tmp_path: Path, fake_cli, claude_payload) -> None:
    fake_cli.install_json("claude", claude_payload(result="hello"))
    provider = _provider(tmp_path)
    workdir = tmp_path / "work" / "praxio-turn-1"

    response = asyncio.run(provider.invoke(LlmRequest(prompt="hi", working_dir=workdir)))

    assert response.content == "hello"
    calls = fake_cli.calls()
    assert len(calls) == 1
    assert calls[0]["argv"][:2] == ["--print", "hi"]
    assert Path(calls[0]["cwd"]).resolve() == workdir.resolve()
    assert not workdir.exists()


def test_invoke_classifies_command_not_found_exit(tmp_path: Path, fake_cli) -> None:
    fake_cli.install_json(
        "claude",
        {},
        stderr="Error: claude: command not found",
        exit_code=127,
    )

    with pytest.raises(ProviderUnavailableError) as error_info:
        asyncio.run(_provider(tmp_path).invoke(LlmRequest(prompt="hi")))

    assert "PATH" in error_info.value.reason


def test_invoke_classifies_authentication_failure(tmp_path: Path, fake_cli) -> None:
    fake_cli.install_json("claude", {}, stderr="Authentication failed: token expired", exit_code=1)

    with pytest.raises(AuthenticationFailedError):
        asyncio.run(_provider(tmp_path).invoke(LlmRequest(prompt="hi")))


def test_invoke_times_out_and_removes_workdir(tmp_path: Path, fake_cli) -> None:
    fake_cli.install("claude", "import time\ntime.sleep(30)")
    provider = _provider(tmp_path, timeout_seconds=30)
    workdir = tmp_path / "work" / "praxio-slow"

    with pytest.raises(InvocationTimeoutError) as error_info:
        asyncio.run(
            provider.invoke(LlmRequest(prompt="hi", working_dir=workdir, timeout_seconds=1)),
        )

    assert error_info.value.seconds == 1
    assert error_info.value.to_dict()["kind"] == "timeout"
    assert not workdir.exists()


def test_invoke_with_missing_binary_is_provider_unavailable(tmp_path: Path) -> None:
    provider = _provider(tmp_path, binary=str(tmp_path / "no-such-claude"))
    workdir = tmp_path / "work" / "praxio-missing"

    with pytest.raises(ProviderUnavailableError) as error_info:
        asyncio.run(provider.invoke(LlmRequest(prompt="hi", working_dir=workdir)))

    assert "not found in PATH" in error_info.value.reason
    assert not workdir.exists()
