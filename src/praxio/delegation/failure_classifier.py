"""Deterministic CLI failure classification into the typed error taxonomy."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

from praxio.delegation.errors import (
    ApiError,
    AuthenticationFailedError,
    CliExecutionFailedError,
    LlmError,
    ProviderUnavailableError,
)

CLI_FAILURE_CLASSIFIER_VERSION = 1

COMMAND_NOT_FOUND_EXIT_CODE = 127

_ErrorBuilder = Callable[[str, str, int], LlmError]


@dataclass(frozen=True, slots=True)
class FailureRule:
    """One ordered classification rule.

    ``build`` receives ``(provider, stderr, exit_code)``.
    """

    name: str
    patterns: tuple[str, ...]
    build: _ErrorBuilder
    exit_codes: tuple[int, ...] = ()


@dataclass(slots=True)
class CliFailureClassification:
    """Normalized failure classification result."""

    error: LlmError
    matched_rule: str
    matched_pattern: str | None

    def to_log_details(self) -> dict[str, object]:
        """Serialize classifier diagnostics for log records."""

        return {
            "classifier_version": CLI_FAILURE_CLASSIFIER_VERSION,
            "error_kind": self.error.kind,
            "matched_rule": self.matched_rule,
            "matched_pattern": self.matched_pattern,
        }


def _authentication(provider: str, stderr: str, _exit_code: int) -> LlmError:
    return AuthenticationFailedError(provider=provider, message=stderr)


def _api_error(provider: str, stderr: str, _exit_code: int) -> LlmError:
    return ApiError(provider=provider, message=stderr)


def _cli_not_found(provider: str, _stderr: str, _exit_code: int) -> LlmError:
    return ProviderUnavailableError(provider=provider, reason=f"{provider} CLI not found in PATH")


def _gemini_api_key_missing(provider: str, _stderr: str, _exit_code: int) -> LlmError:
    return ProviderUnavailableError(
        provider=provider,
        reason="GEMINI_API_KEY environment variable not set",
    )


_CLI_NOT_FOUND_RULE = FailureRule(
    name="cli_not_found",
    patterns=("not found",),
    exit_codes=(COMMAND_NOT_FOUND_EXIT_CODE,),
    build=_cli_not_found,
)

CLAUDE_FAILURE_RULES: tuple[FailureRule, ...] = (
    FailureRule(
        name="authentication",
        patterns=("Authentication failed", "setup-token"),
        build=_authentication,
    ),
    FailureRule(name="api_error", patterns=("API Error",), build=_api_error),
    _CLI_NOT_FOUND_RULE,
)

GEMINI_FAILURE_RULES: tuple[FailureRule, ...] = (
    FailureRule(
        name="api_key_missing",
        patterns=("GEMINI_API_KEY environment variable not found",),
        build=_gemini_api_key_missing,
    ),
    FailureRule(name="authentication", patterns=("API key not valid",), build=_authentication),
    FailureRule(
        name="api_error",
        patterns=("Error when talking to Gemini API",),
        build=_api_error,
    ),
    _CLI_NOT_FOUND_RULE,
)


def classify_cli_failure(
    *,
    provider: str,
    command: str,
    stderr: str,
    exit_code: int,
    rules: tuple[FailureRule, ...],
) -> CliFailureClassification:
    """Map non-zero CLI exit into one taxonomy member; first matching rule wins."""

    for rule in rules:
        pattern = _first_match(stderr, rule.patterns)
        if pattern is not None or exit_code in rule.exit_codes:
            return CliFailureClassification(
                error=rule.build(provider, stderr, exit_code),
                matched_rule=rule.name,
                matched_pattern=pattern,
            )

    return CliFailureClassification(
        error=CliExecutionFailedError(command=command, stderr=stderr, exit_code=exit_code),
        matched_rule="fallback_cli_execution_failed",
        matched_pattern=None,
    )


def _first_match(haystack: str, patterns: tuple[str, ...]) -> str | None:
    for pattern in patterns:
        if pattern in haystack:
            return pattern
    return None
