"""Redaction helpers for prompt and stderr previews written to logs."""

from __future__ import annotations

import re
from collections.abc import Callable

PROMPT_PREVIEW_CHARS = 50
STDERR_PREVIEW_CHARS = 500
SESSION_PREFIX_CHARS = 8

_Replacement = str | Callable[[re.Match[str]], str]

_REPLACEMENTS: tuple[tuple[re.Pattern[str], _Replacement], ...] = (
    (
        re.compile(r"(?i)\b(bearer)\s+[a-z0-9._\-]{8,}\b"),
        r"\1 [redacted-token]",
    ),
    (
        re.compile(r"(?i)\b(sk-[a-z0-9\-]{8,})\b"),
        "[redacted-token]",
    ),
    (
        re.compile(r"\bAIza[0-9A-Za-z_\-]{20,}"),
        "[redacted-token]",
    ),
    (
        re.compile(
            r"(?i)\b(praxio|anthropic|claude|gemini|google)[a-z0-9_]*_?(api_)?(key|token)\b"
            r"\s*[:=]\s*['\"]?[^'\" \n\r\t]+['\"]?",
        ),
        "[redacted-secret]",
    ),
    (
        re.compile(r"\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}\b"),
        "[redacted-email]",
    ),
)


def sanitize_preview(text: str, *, max_chars: int) -> str:
    """Redact obvious secrets/PII, flatten newlines and clamp size."""

    compact = text.strip().replace("\n", " ")
    if not compact:
        return ""

    redacted = compact
    for pattern, replacement in _REPLACEMENTS:
        redacted = pattern.sub(replacement, redacted)

    if len(redacted) <= max_chars:
        return redacted
    return redacted[:max_chars] + "..."


def prompt_preview(prompt: str) -> str:
    return sanitize_preview(prompt, max_chars=PROMPT_PREVIEW_CHARS)


def stderr_preview(stderr: str) -> str:
    return sanitize_preview(stderr, max_chars=STDERR_PREVIEW_CHARS)


def session_prefix(session_id: str) -> str:
    return session_id[:SESSION_PREFIX_CHARS]
