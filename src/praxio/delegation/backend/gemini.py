"""Gemini CLI provider: single-model stats payloads, no fallback model."""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from typing import Any

from praxio.delegation.availability import check_binary_with_env
from praxio.delegation.backend.payload import (
    PAYLOAD_FORMAT,
    PayloadFieldError,
    count_or_zero,
    load_payload,
    optional_int,
    optional_str,
    require_int,
    require_object,
    require_str,
)
from praxio.delegation.backend.process import run_cli_process
from praxio.delegation.errors import ResponseParseError
from praxio.delegation.failure_classifier import GEMINI_FAILURE_RULES, classify_cli_failure
from praxio.delegation.models import (
    LlmRequest,
    LlmResponse,
    ProviderAvailability,
    ResponseMetadata,
    TokenUsage,
)
from praxio.delegation.sanitization import stderr_preview
from praxio.delegation.workdir import WorkdirManager

logger = logging.getLogger(__name__)

GEMINI_PROVIDER_NAME = "gemini"
GEMINI_DEFAULT_TIMEOUT_SECONDS = 60
CREDENTIAL_CACHE_NOTICE = "Loaded cached credentials"


class GeminiProvider:
    """Run ``gemini <prompt>`` and normalize its JSON stats payload."""

    def __init__(
        self,
        *,
        workdirs: WorkdirManager,
        binary: str = "gemini",
        timeout_seconds: int = GEMINI_DEFAULT_TIMEOUT_SECONDS,
        api_key_env: str = "GEMINI_API_KEY",
        environ: Mapping[str, str] | None = None,
    ) -> None:
        self.workdirs = workdirs
        self.binary = binary
        self.timeout_seconds = timeout_seconds
        self.api_key_env = api_key_env
        self._environ = environ

    @property
    def name(self) -> str:
        return GEMINI_PROVIDER_NAME

    @property
    def workdir_prefix(self) -> str:
        return "praxio-gemini"

    def build_args(self, request: LlmRequest) -> list[str]:
        args = [self.binary, request.prompt]
        if request.session_id is not None:
            args.extend(["--resume", request.session_id])
        if request.system_prompt is not None:
            args.extend(["--system-prompt", request.system_prompt])
        if request.model is not None:
            args.extend(["--model", request.model])
        if request.fallback_model is not None:
            logger.debug(
                "gemini CLI has no fallback model flag; ignoring %r",
                request.fallback_model,
            )
        args.extend(["--output-format", "json"])
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
                rules=GEMINI_FAILURE_RULES,
            )
            logger.warning(
                "gemini CLI exited with code %s: %s (%s)",
                result.exit_code,
                stderr_preview(result.stderr),
                classification.to_log_details(),
            )
            raise classification.error
        return parse_gemini_response(strip_credential_notice(result.stdout))

    async def check_availability(self) -> ProviderAvailability:
        return check_binary_with_env(
            provider=self.name,
            executable=self.binary,
            env_var=self.api_key_env,
            environ=self._environ if self._environ is not None else os.environ,
        )


def strip_credential_notice(stdout: str) -> str:
    """Drop the informational credential-cache line the CLI prints before JSON."""

    return "\n".join(
        line for line in stdout.splitlines() if not line.startswith(CREDENTIAL_CACHE_NOTICE)
    )


def parse_gemini_response(stdout: str) -> LlmResponse:
    """Normalize ``gemini --output-format json`` output.

    ``stats.models`` is expected to hold exactly one entry; an empty mapping
    is a parse failure. The CLI never reports cost, so ``cost_usd`` and the
    per-model breakdown stay absent.
    """

    raw = load_payload(stdout)
    try:
        return _build_response(raw)
    except PayloadFieldError as error:
        raise ResponseParseError(format=PAYLOAD_FORMAT, cause=str(error)) from error


def _build_response(raw: dict[str, Any]) -> LlmResponse:
    content = require_str(raw, "response", "gemini")
    stats = require_object(raw, "stats", "gemini")
    models = require_object(stats, "models", "gemini.stats")
    if not models:
        raise PayloadFieldError("No model stats found in gemini.stats.models")
    if len(models) > 1:
        logger.debug("gemini reported %d models; using the first: %s", len(models), list(models))

    model_name, model_stats = next(iter(models.items()))
    path = f"gemini.stats.models[{model_name!r}]"
    if not isinstance(model_stats, dict):
        raise PayloadFieldError(f"{path} must be an object")
    api = require_object(model_stats, "api", path)
    tokens = require_object(model_stats, "tokens", path)
    tools = stats.get("tools")

    return LlmResponse(
        content=content,
        primary_model=model_name,
        all_models_used=[model_name],
        provider=GEMINI_PROVIDER_NAME,
        duration_ms=require_int(api, "totalLatencyMs", f"{path}.api"),
        tokens=TokenUsage(
            input=require_int(tokens, "prompt", f"{path}.tokens"),
            output=require_int(tokens, "candidates", f"{path}.tokens"),
            total=require_int(tokens, "total", f"{path}.tokens"),
            cache_creation=0,
            cache_read=count_or_zero(tokens, "cached", f"{path}.tokens"),
            extended_thinking=optional_int(tokens, "thoughts", f"{path}.tokens"),
        ),
        metadata=ResponseMetadata(
            session_id=optional_str(raw, "sessionId", "gemini"),
            uuid=optional_str(raw, "uuid", "gemini"),
            num_turns=optional_int(raw, "numTurns", "gemini"),
            api_errors=optional_int(api, "totalErrors", f"{path}.api"),
            tool_calls=(
                optional_int(tools, "totalCalls", "gemini.stats.tools")
                if isinstance(tools, dict)
                else None
            ),
        ),
    )
