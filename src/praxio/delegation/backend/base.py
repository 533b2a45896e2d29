"""Provider interface for CLI-backed LLM delegation."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from praxio.delegation.models import LlmRequest, LlmResponse, ProviderAvailability


@dataclass(slots=True)
class ProcessRunResult:
    """Captured outcome of one CLI process."""

    exit_code: int
    stdout: str
    stderr: str
    workdir: Path


class LlmProvider(Protocol):
    """Protocol implemented by every provider variant."""

    @property
    def name(self) -> str:
        """Stable lowercase identifier used for tagging and session keys."""

    @property
    def workdir_prefix(self) -> str:
        """Directory-name prefix for fresh per-conversation workdirs."""

    async def invoke(self, request: LlmRequest) -> LlmResponse:
        """Run the request through the provider CLI and normalize its output."""

    async def check_availability(self) -> ProviderAvailability:
        """Lightweight existence/credential check; never runs a full request."""
