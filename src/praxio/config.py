"""Runtime configuration for CLI provider delegation."""

from __future__ import annotations

import logging
import os
import tempfile
from dataclasses import dataclass, field
from pathlib import Path

_LOG_LEVELS = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG")


@dataclass(slots=True)
class ClaudeSettings:
    """Claude CLI provider settings."""

    binary: str = "claude"
    timeout_seconds: int = 30


@dataclass(slots=True)
class GeminiSettings:
    """Gemini CLI provider settings."""

    binary: str = "gemini"
    timeout_seconds: int = 60
    api_key_env: str = "GEMINI_API_KEY"


@dataclass(slots=True)
class Settings:
    """Application settings grouped by provider."""

    workdir_root: Path = field(default_factory=lambda: Path(tempfile.gettempdir()))
    log_level: str = "INFO"
    version_probe_timeout_seconds: int = 10
    claude: ClaudeSettings = field(default_factory=ClaudeSettings)
    gemini: GeminiSettings = field(default_factory=GeminiSettings)

    @classmethod
    def from_env(cls, workdir_root: Path | None = None) -> Settings:
        """Load settings from environment with defaults suitable for local use."""

        return cls(
            workdir_root=workdir_root
            or Path(os.getenv("PRAXIO_WORKDIR_ROOT", "") or tempfile.gettempdir()),
            log_level=os.getenv("PRAXIO_LOG_LEVEL", "INFO").strip().upper(),
            version_probe_timeout_seconds=_env_int("PRAXIO_VERSION_PROBE_TIMEOUT_SECONDS", 10),
            claude=ClaudeSettings(
                binary=os.getenv("PRAXIO_CLAUDE_BINARY", "claude").strip(),
                timeout_seconds=_env_int("PRAXIO_CLAUDE_TIMEOUT_SECONDS", 30),
            ),
            gemini=GeminiSettings(
                binary=os.getenv("PRAXIO_GEMINI_BINARY", "gemini").strip(),
                timeout_seconds=_env_int("PRAXIO_GEMINI_TIMEOUT_SECONDS", 60),
                api_key_env=os.getenv("PRAXIO_GEMINI_API_KEY_ENV", "GEMINI_API_KEY").strip(),
            ),
        )

    def validate(self) -> None:
        """Raise configuration error if any value is unusable."""

        if self.log_level not in _LOG_LEVELS:
            raise ValueError(
                f"PRAXIO_LOG_LEVEL must be one of {', '.join(_LOG_LEVELS)}: {self.log_level!r}",
            )
        if self.version_probe_timeout_seconds <= 0:
            raise ValueError("PRAXIO_VERSION_PROBE_TIMEOUT_SECONDS must be > 0.")
        if not self.claude.binary:
            raise ValueError("PRAXIO_CLAUDE_BINARY must not be empty.")
        if self.claude.timeout_seconds <= 0:
            raise ValueError("PRAXIO_CLAUDE_TIMEOUT_SECONDS must be > 0.")
        if not self.gemini.binary:
            raise ValueError("PRAXIO_GEMINI_BINARY must not be empty.")
        if self.gemini.timeout_seconds <= 0:
            raise ValueError("PRAXIO_GEMINI_TIMEOUT_SECONDS must be > 0.")
        if not self.gemini.api_key_env:
            raise ValueError("PRAXIO_GEMINI_API_KEY_ENV must not be empty.")

    @property
    def logging_level(self) -> int:
        """Numeric level for ``logging.basicConfig``."""

        return int(getattr(logging, self.log_level))


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw.strip())
    except ValueError as error:
        raise ValueError(f"Invalid integer value for {name}: {raw!r}") from error
