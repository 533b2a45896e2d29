"""Provider-agnostic request, response and availability models."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any


class OutputFormat(str, Enum):
    """Output format requested by the caller.

    Both providers are always asked for JSON on the wire; the selector is
    kept so callers can state intent without touching provider flags.
    """

    TEXT = "text"
    JSON = "json"


@dataclass(slots=True)
class LlmRequest:
    """One delegated prompt."""

    prompt: str
    system_prompt: str | None = None
    model: str | None = None
    fallback_model: str | None = None
    output_format: OutputFormat = OutputFormat.JSON
    session_id: str | None = None
    working_dir: Path | None = None
    timeout_seconds: int | None = None


@dataclass(slots=True)
class TokenUsage:
    """Aggregate token counts for one response."""

    input: int
    output: int
    total: int
    cache_creation: int
    cache_read: int
    extended_thinking: int | None = None


@dataclass(slots=True)
class ModelBreakdown:
    """Per-model token and cost figures."""

    model: str
    input_tokens: int
    output_tokens: int
    cache_read_tokens: int
    cache_creation_tokens: int
    cost_usd: float
    context_window: int


@dataclass(slots=True)
class ResponseMetadata:
    """Provider-specific fields; unsupported ones stay ``None``."""

    session_id: str | None = None
    uuid: str | None = None
    num_turns: int | None = None
    service_tier: str | None = None
    api_errors: int | None = None
    tool_calls: int | None = None


@dataclass(slots=True)
class LlmResponse:
    """Unified response produced by every provider."""

    content: str
    primary_model: str
    all_models_used: list[str]
    provider: str
    duration_ms: int
    tokens: TokenUsage | None = None
    cost_usd: float | None = None
    model_breakdown: list[ModelBreakdown] | None = None
    metadata: ResponseMetadata = field(default_factory=ResponseMetadata)

    def to_dict(self) -> dict[str, Any]:
        """Serialize for the caller, omitting absent optional fields."""

        return _drop_none(asdict(self))


@dataclass(slots=True)
class ProviderAvailability:
    """Result of a lightweight, request-independent provider check."""

    available: bool
    reason: str | None = None

    @classmethod
    def ok(cls) -> ProviderAvailability:
        return cls(available=True)

    @classmethod
    def unavailable(cls, reason: str) -> ProviderAvailability:
        return cls(available=False, reason=reason)

    def to_dict(self) -> dict[str, Any]:
        return _drop_none(asdict(self))


def _drop_none(value: Any) -> Any:
    if isinstance(value, dict):
        return {key: _drop_none(item) for key, item in value.items() if item is not None}
    if isinstance(value, list):
        return [_drop_none(item) for item in value]
    return value
