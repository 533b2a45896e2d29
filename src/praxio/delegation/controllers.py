"""Controllers for delegation CLI commands."""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from dataclasses import dataclass

from praxio.config import Settings
from praxio.delegation.errors import LlmError
from praxio.delegation.models import LlmRequest
from praxio.delegation.service import DelegationService
from praxio.delegation.stdio_server import StdioServer

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class InvokeCommand:
    """CLI input for a one-shot provider call."""

    provider: str
    prompt: str
    system_prompt: str | None = None
    model: str | None = None
    fallback_model: str | None = None
    timeout_seconds: int | None = None


@dataclass(slots=True)
class CommandResult:
    """Rendered command output and overall outcome."""

    lines: list[str]
    success: bool


class DelegationCliController:
    """Builds the delegation service from settings and renders its results."""

    def __init__(self, settings: Settings | None = None) -> None:
        self._settings = settings

    @property
    def settings(self) -> Settings:
        if self._settings is None:
            self._settings = Settings.from_env()
            self._settings.validate()
        return self._settings

    def providers(self) -> CommandResult:
        service = DelegationService.from_settings(self.settings)
        results = asyncio.run(service.check_providers())
        lines: list[str] = []
        for name, availability in results.items():
            if availability.available:
                lines.append(f"provider={name} status=available")
            else:
                lines.append(f"provider={name} status=unavailable reason={availability.reason}")
        return CommandResult(
            lines=lines,
            success=any(item.available for item in results.values()),
        )

    def invoke(self, command: InvokeCommand) -> CommandResult:
        service = DelegationService.from_settings(self.settings)
        request = LlmRequest(
            prompt=command.prompt,
            system_prompt=command.system_prompt,
            model=command.model,
            fallback_model=command.fallback_model,
            timeout_seconds=command.timeout_seconds,
        )
        try:
            response = asyncio.run(service.invoke(command.provider, request))
        except LlmError as error:
            return CommandResult(
                lines=[json.dumps({"error": error.to_dict()}, ensure_ascii=False, indent=2)],
                success=False,
            )
        return CommandResult(
            lines=[json.dumps(response.to_dict(), ensure_ascii=False, indent=2)],
            success=True,
        )

    def serve(self) -> None:
        """Run the JSON-lines loop on process stdio until stdin closes."""

        service = DelegationService.from_settings(self.settings)

        async def _run() -> None:
            await service.log_provider_availability()
            await StdioServer(service).serve(sys.stdin, sys.stdout)

        logger.info("praxio serving on stdio (workdir root: %s)", self.settings.workdir_root)
        asyncio.run(_run())
