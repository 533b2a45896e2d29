"""Provider CLI backends."""

from __future__ import annotations

from praxio.config import Settings
from praxio.delegation.backend.base import LlmProvider, ProcessRunResult
from praxio.delegation.backend.claude import ClaudeProvider
from praxio.delegation.backend.gemini import GeminiProvider
from praxio.delegation.workdir import WorkdirManager

SUPPORTED_PROVIDERS = ("claude", "gemini")


def build_providers(settings: Settings) -> dict[str, LlmProvider]:
    """Construct the fixed provider set from settings."""

    workdirs = WorkdirManager(settings.workdir_root)
    return {
        "claude": ClaudeProvider(
            workdirs=workdirs,
            binary=settings.claude.binary,
            timeout_seconds=settings.claude.timeout_seconds,
            version_probe_timeout_seconds=settings.version_probe_timeout_seconds,
        ),
        "gemini": GeminiProvider(
            workdirs=workdirs,
            binary=settings.gemini.binary,
            timeout_seconds=settings.gemini.timeout_seconds,
            api_key_env=settings.gemini.api_key_env,
        ),
    }


__all__ = [
    "SUPPORTED_PROVIDERS",
    "ClaudeProvider",
    "GeminiProvider",
    "LlmProvider",
    "ProcessRunResult",
    "build_providers",
]
