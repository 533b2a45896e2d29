"""Typed failures raised along the delegation path."""

from __future__ import annotations

from typing import ClassVar


class LlmError(RuntimeError):
    """Base class for every failure surfaced to the caller."""

    kind: ClassVar[str] = "llm_error"

    def to_dict(self) -> dict[str, object]:
        """Serialize the failure for the outward protocol."""

        return {"kind": self.kind, "message": str(self), **self._details()}

    def _details(self) -> dict[str, object]:
        return {}


class ProviderUnavailableError(LlmError):
    """Provider binary or credentials are missing."""

    kind = "provider_unavailable"

    def __init__(self, *, provider: str, reason: str) -> None:
        super().__init__(f"Provider '{provider}' is unavailable: {reason}")
        self.provider = provider
        self.reason = reason

    def _details(self) -> dict[str, object]:
        return {"provider": self.provider, "reason": self.reason}


class AuthenticationFailedError(LlmError):
    """Provider CLI rejected its credentials."""

    kind = "authentication_failed"

    def __init__(self, *, provider: str, message: str) -> None:
        super().__init__(f"Authentication failed for {provider}: {message}")
        self.provider = provider
        self.detail = message

    def _details(self) -> dict[str, object]:
        return {"provider": self.provider, "detail": self.detail}


class CliExecutionFailedError(LlmError):
    """Provider CLI exited non-zero for an unrecognized reason."""

    kind = "cli_execution_failed"

    def __init__(self, *, command: str, stderr: str, exit_code: int) -> None:
        super().__init__(
            f"CLI execution failed: {command}\nExit code: {exit_code}\nStderr: {stderr}",
        )
        self.command = command
        self.stderr = stderr
        self.exit_code = exit_code

    def _details(self) -> dict[str, object]:
        return {"command": self.command, "stderr": self.stderr, "exit_code": self.exit_code}


class ResponseParseError(LlmError):
    """Provider output could not be normalized."""

    kind = "parse_error"

    def __init__(self, *, format: str, cause: str) -> None:  # noqa: A002
        super().__init__(f"Failed to parse {format} response: {cause}")
        self.format = format
        self.cause = cause

    def _details(self) -> dict[str, object]:
        return {"format": self.format, "cause": self.cause}


class InvocationTimeoutError(LlmError):
    """Provider CLI did not finish within the effective timeout."""

    kind = "timeout"

    def __init__(self, *, seconds: int) -> None:
        super().__init__(f"Request timeout after {seconds}s")
        self.seconds = seconds

    def _details(self) -> dict[str, object]:
        return {"seconds": self.seconds}


class ModelNotAvailableError(LlmError):
    """Requested model is not offered by the provider.

    Reserved: neither CLI reports this distinctly yet.
    """

    kind = "model_not_available"

    def __init__(self, *, model: str, provider: str, reason: str) -> None:
        super().__init__(f"Model '{model}' not available for provider '{provider}': {reason}")
        self.model = model
        self.provider = provider
        self.reason = reason

    def _details(self) -> dict[str, object]:
        return {"model": self.model, "provider": self.provider, "reason": self.reason}


class InvalidRequestError(LlmError):
    """Request rejected before any process was spawned."""

    kind = "invalid_request"

    def __init__(self, message: str) -> None:
        super().__init__(f"Invalid request: {message}")
        self.detail = message

    def _details(self) -> dict[str, object]:
        return {"detail": self.detail}


class ApiError(LlmError):
    """Provider reached its API and the API reported a failure."""

    kind = "api_error"

    def __init__(self, *, provider: str, message: str) -> None:
        super().__init__(f"API error from {provider}: {message}")
        self.provider = provider
        self.detail = message

    def _details(self) -> dict[str, object]:
        return {"provider": self.provider, "detail": self.detail}


class LlmIoError(LlmError):
    """Filesystem or process-spawn failure."""

    kind = "io_error"

    def __init__(self, message: str) -> None:
        super().__init__(f"IO error: {message}")


class SerializationError(LlmError):
    """Outward payload could not be encoded or decoded."""

    kind = "serialization_error"

    def __init__(self, message: str) -> None:
        super().__init__(f"JSON error: {message}")
