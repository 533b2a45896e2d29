"""Shared test fixtures."""

from __future__ import annotations

import json
import os
import stat
import sys
from dataclasses import dataclass, field
from pathlib import Path

import pytest

from praxio.delegation.models import (
    LlmRequest,
    LlmResponse,
    ProviderAvailability,
    ResponseMetadata,
    TokenUsage,
)

_CALL_LOG_PRELUDE = """
import json
import os
import sys
from pathlib import Path

with Path(r"{log_path}").open("a", encoding="utf-8") as _log:
    _log.write(json.dumps({{"argv": sys.argv[1:], "cwd": os.getcwd()}}) + "\\n")
"""


@dataclass(slots=True)
class FakeCliBin:
    """Directory of fake provider executables placed first on PATH."""

    bin_dir: Path
    log_path: Path

    def install(self, name: str, body: str) -> Path:
        """Install ``name`` running ``body`` after logging its argv and cwd."""

        implementation = self.bin_dir / f"{name}_impl.py"
        prelude = _CALL_LOG_PRELUDE.format(log_path=self.log_path)
        implementation.write_text(prelude.strip() + "\n" + body.strip() + "\n", "utf-8")

        if os.name == "nt":
            launcher = self.bin_dir / f"{name}.cmd"
            launcher.write_text(
                f'@echo off\r\n"{sys.executable}" "{implementation}" %*\r\n',
                "utf-8",
            )
            return launcher
        launcher = self.bin_dir / name
        launcher.write_text(
            f'#!/usr/bin/env sh\nexec "{sys.executable}" "{implementation}" "$@"\n',
            "utf-8",
        )
        launcher.chmod(launcher.stat().st_mode | stat.S_IXUSR)
        return launcher

    def install_json(
        self,
        name: str,
        payload: dict,
        *,
        preamble: str = "",
        stderr: str = "",
        exit_code: int = 0,
    ) -> Path:
        """Install ``name`` printing ``preamble`` plus ``payload`` as JSON."""

        data_path = self.bin_dir / f"{name}_payload.json"
        data_path.write_text(json.dumps(payload), "utf-8")
        body = f"""
if "--version" in sys.argv:
    print("{name} 1.0.0")
    raise SystemExit(0)
sys.stdout.write({preamble!r})
sys.stdout.write(Path(r"{data_path}").read_text("utf-8"))
sys.stderr.write({stderr!r})
raise SystemExit({exit_code})
"""
        return self.install(name, body)

    def calls(self) -> list[dict]:
        if not self.log_path.exists():
            return []
        return [
            json.loads(line)
            for line in self.log_path.read_text("utf-8").splitlines()
            if line.strip()
        ]


@pytest.fixture()
def fake_cli(tmp_path: Path, monkeypatch) -> FakeCliBin:
    bin_dir = tmp_path / "bin"
    bin_dir.mkdir(parents=True, exist_ok=True)
    monkeypatch.setenv("PATH", f"{bin_dir}{os.pathsep}{os.environ.get('PATH', '')}")
    return FakeCliBin(bin_dir=bin_dir, log_path=tmp_path / "calls.jsonl")


def _claude_payload(
    *,
    result: str = "hello",
    session_id: str = "c1a2b3c4-0000-4000-8000-000000000001",
    model_usage: dict | None = None,
) -> dict:
    """Representative ``claude --output-format json`` result object."""

    return {
        "type": "result",
        "subtype": "success",
        "is_error": False,
        "duration_ms": 1234,
        "duration_api_ms": 1100,
        "num_turns": 1,
        "result": result,
        "session_id": session_id,
        "total_cost_usd": 0.0042,
        "usage": {
            "input_tokens": 12,
            "cache_creation_input_tokens": 100,
            "cache_read_input_tokens": 200,
            "output_tokens": 8,
            "service_tier": "standard",
        },
        "modelUsage": model_usage
        if model_usage is not None
        else {
            "claude-sonnet-4-5-20250929": {
                "inputTokens": 12,
                "outputTokens": 8,
                "cacheReadInputTokens": 200,
                "cacheCreationInputTokens": 100,
                "webSearchRequests": 0,
                "costUSD": 0.0042,
                "contextWindow": 200000,
            },
        },
        "uuid": "5f0c1d2e-aaaa-4bbb-8ccc-123456789abc",
    }


def _gemini_payload(*, response: str = "hi there", models: dict | None = None) -> dict:
    """Representative ``gemini --output-format json`` object."""

    return {
        "response": response,
        "stats": {
            "models": models
            if models is not None
            else {
                "gemini-2.5-pro": {
                    "api": {"totalRequests": 1, "totalErrors": 0, "totalLatencyMs": 2150},
                    "tokens": {
                        "prompt": 40,
                        "candidates": 10,
                        "total": 75,
                        "cached": 5,
                        "thoughts": 25,
                        "tool": 0,
                    },
                },
            },
            "tools": {"totalCalls": 2, "totalSuccess": 2, "totalFail": 0},
        },
    }


@dataclass(slots=True)
class RecordingProvider:
    """In-process provider that records requests instead of spawning processes."""

    name: str = "claude"
    workdir_prefix: str = "praxio"
    requests: list[LlmRequest] = field(default_factory=list)
    availability: ProviderAvailability = field(default_factory=ProviderAvailability.ok)

    async def invoke(self, request: LlmRequest) -> LlmResponse:
        self.requests.append(request)
        session_id = request.session_id or f"{self.name}-session-{len(self.requests)}"
        return LlmResponse(
            content=f"echo: {request.prompt}",
            primary_model=f"{self.name}-test-model",
            all_models_used=[f"{self.name}-test-model"],
            provider=self.name,
            duration_ms=5,
            tokens=TokenUsage(input=1, output=2, total=3, cache_creation=0, cache_read=0),
            metadata=ResponseMetadata(session_id=session_id),
        )

    async def check_availability(self) -> ProviderAvailability:
        return self.availability


@pytest.fixture()
def claude_payload():
    return _claude_payload


@pytest.fixture()
def gemini_payload():
    return _gemini_payload


@pytest.fixture()
def recording_provider():
    """Factory for ``RecordingProvider`` instances."""

    return RecordingProvider
