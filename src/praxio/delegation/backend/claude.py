"""Claude CLI provider: multi-model payloads, fallback model, cost reporting."""

from __future__ import annotations

import logging
from typing import Any

from praxio.delegation.availability import check_binary_with_version
from praxio.delegation.backend.payload import (
    PAYLOAD_FORMAT,
    PayloadFieldError,
    count_or_zero,
    load_payload,
    optional_float,
    optional_int,
    optional_str,
    require_bool,
    require_int,
    require_object,
    require_str,
)
from praxio.delegation.backend.process import run_cli_process
from praxio.delegation.errors import ApiError, ResponseParseError
from praxio.delegation.failure_classifier import CLAUDE_FAILURE_RULES, classify_cli_failure
from praxio.delegation.models import (
    LlmRequest,
    LlmResponse,
    ModelBreakdown,
    ProviderAvailability,
    ResponseMetadata,
    TokenUsage,
)
from praxio.delegation.sanitization import stderr_preview
from praxio.delegation.workdir import WorkdirManager

logger = logging.getLogger(__name__)

CLAUDE_PROVIDER_NAME = "claude"
CLAUDE_DEFAULT_TIMEOUT_SECONDS = 30
UNKNOWN_MODEL = "unknown"


class ClaudeProvider:
    """Run ``claude --print`` and normalize its JSON result."""

    def __init__(
        self,
        *,
        workdirs: WorkdirManager,
        binary: str = "claude",
        timeout_seconds: int = CLAUDE_DEFAULT_TIMEOUT_SECONDS,
        version_probe_timeout_seconds: int = 10,
    ) -> None:
        self.workdirs = workdirs
        self.binary = binary
        self.timeout_seconds = timeout_seconds
        self.version_probe_timeout_seconds = version_probe_timeout_seconds

    @property
    def name(self) -> str:
        return CLAUDE_PROVIDER_NAME

    @property
    def workdir_prefix(self) -> str:
        return "praxio"

    def build_args(self, request: LlmRequest) -> list[str]:
        args = [self.binary, "--print", request.prompt]
        if request.session_id is not None:
            args.extend(["--resume", request.session_id])
        if request.system_prompt is not None:
            args.extend(["--system-prompt", request.system_prompt])
        if request.model is not None:
            args.extend(["--model", request.model])
        if request.fallback_model is not None:
            args.extend(["--fallback-model", request.fallback_model])
        # JSON regardless of request.output_format: metadata lives only there.
        args.extend(["--output-format", "json"])
        # Safe only because the process runs in an isolated, disposable directory.
        args.append("--dangerously-skip-permissions")
        return args

    async def invoke(self, request: LlmRequest) -> LlmResponse:
        workdir = request.working_dir or self.workdirs.default(self.workdir_prefix)
        timeout_seconds = (
            request.timeout_seconds
            if request.timeout_seconds is not None
            else self.timeout_seconds
        )
        result = await run_cli_process(
            provider=self.name,
            argv=self.build_args(request),
            workdir=workdir,
            timeout_seconds=timeout_seconds,
        )
        if result.exit_code != 0:
            classification = classify_cli_failure(
                provider=self.name,
                command=self.binary,
                stderr=result.stderr,
                exit_code=result.exit_code,
                rules=CLAUDE_FAILURE_RULES,
            )
            logger.warning(
                "claude CLI exited with code %s: %s (%s)",
                result.exit_code,
                stderr_preview(result.stderr),
                classification.to_log_details(),
            )
            raise classification.error
        return parse_claude_response(result.stdout)

    async def check_availability(self) -> ProviderAvailability:
        return await check_binary_with_version(
            provider=self.name,
            executable=self.binary,
            timeout_seconds=self.version_probe_timeout_seconds,
        )


def parse_claude_response(stdout: str) -> LlmResponse:
    """Normalize ``claude --output-format json`` output.

    An ``is_error`` payload becomes ``ApiError`` before anything else is
    read. Aggregate tokens come from the top-level ``usage`` block; the
    per-model ``modelUsage`` mapping only drives model selection and the
    breakdown.
    """

    raw = load_payload(stdout)
    try:
        if require_bool(raw, "is_error", "claude"):
            message = raw.get("result")
            raise ApiError(
                provider=CLAUDE_PROVIDER_NAME,
                message=message if isinstance(message, str) else "unknown error",
            )
        return _build_response(raw)
    except PayloadFieldError as error:
        raise ResponseParseError(format=PAYLOAD_FORMAT, cause=str(error)) from error


def _build_response(raw: dict[str, Any]) -> LlmResponse:
    content = require_str(raw, "result", "claude")
    session_id = require_str(raw, "session_id", "claude")
    usage = require_object(raw, "usage", "claude")
    model_usage = require_object(raw, "modelUsage", "claude")

    breakdown = [_model_breakdown(model, entry) for model, entry in model_usage.items()]
    input_tokens = require_int(usage, "input_tokens", "claude.usage")
    output_tokens = require_int(usage, "output_tokens", "claude.usage")

    return LlmResponse(
        content=content,
        primary_model=_primary_model(breakdown),
        all_models_used=[item.model for item in breakdown],
        provider=CLAUDE_PROVIDER_NAME,
        duration_ms=count_or_zero(raw, "duration_ms", "claude"),
        tokens=TokenUsage(
            input=input_tokens,
            output=output_tokens,
            total=input_tokens + output_tokens,
            cache_creation=count_or_zero(usage, "cache_creation_input_tokens", "claude.usage"),
            cache_read=count_or_zero(usage, "cache_read_input_tokens", "claude.usage"),
        ),
        cost_usd=optional_float(raw, "total_cost_usd", "claude"),
        model_breakdown=breakdown,
        metadata=ResponseMetadata(
            session_id=session_id,
            uuid=optional_str(raw, "uuid", "claude"),
            num_turns=optional_int(raw, "num_turns", "claude"),
            service_tier=optional_str(usage, "service_tier", "claude.usage"),
        ),
    )


def _model_breakdown(model: str, entry: object) -> ModelBreakdown:
    path = f"claude.modelUsage[{model!r}]"
    if not isinstance(entry, dict):
        raise PayloadFieldError(f"{path} must be an object")
    return ModelBreakdown(
        model=model,
        input_tokens=count_or_zero(entry, "inputTokens", path),
        output_tokens=require_int(entry, "outputTokens", path),
        cache_read_tokens=count_or_zero(entry, "cacheReadInputTokens", path),
        cache_creation_tokens=count_or_zero(entry, "cacheCreationInputTokens", path),
        cost_usd=optional_float(entry, "costUSD", path) or 0.0,
        context_window=count_or_zero(entry, "contextWindow", path),
    )


def _primary_model(breakdown: list[ModelBreakdown]) -> str:
    # max() keeps the first maximum, so ties follow payload key order.
    if not breakdown:
        return UNKNOWN_MODEL
    return max(breakdown, key=lambda item: item.output_tokens).model
