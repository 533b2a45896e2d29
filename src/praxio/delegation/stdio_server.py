"""JSON-lines request loop over stdin/stdout.

Each input line is ``{"id": ..., "method": ..., "params": {...}}``; each
output line is ``{"id": ..., "result": ...}`` or ``{"id": ..., "error": ...}``.
Requests run concurrently, so replies may arrive out of order; callers match
them by ``id``. Logs go to stderr because stdout carries the protocol.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, TextIO

from praxio.delegation.errors import InvalidRequestError, LlmError, SerializationError
from praxio.delegation.models import LlmRequest
from praxio.delegation.service import DelegationService

logger = logging.getLogger(__name__)

_INVOKE_METHODS = {
    "invoke_claude": "claude",
    "invoke_gemini": "gemini",
}
_COMMON_PARAMS = frozenset({"prompt", "system_prompt", "model", "session_id", "timeout_seconds"})
_PROVIDER_PARAMS = {
    "claude": _COMMON_PARAMS | {"fallback_model"},
    "gemini": _COMMON_PARAMS,
}


class StdioServer:
    """Dispatch protocol messages to a ``DelegationService``."""

    def __init__(self, service: DelegationService) -> None:
        self.service = service

    async def serve(self, stdin: TextIO, stdout: TextIO) -> None:
        """Read requests until EOF, then wait for in-flight replies."""

        write_lock = asyncio.Lock()
        in_flight: set[asyncio.Task[None]] = set()
        while True:
            line = await asyncio.to_thread(stdin.readline)
            if not line:
                break
            task = asyncio.create_task(self._respond(line, stdout, write_lock))
            in_flight.add(task)
            task.add_done_callback(in_flight.discard)
        if in_flight:
            await asyncio.gather(*in_flight)

    async def handle_line(self, line: str) -> dict[str, Any] | None:
        if not line.strip():
            return None
        try:
            message = json.loads(line)
        except json.JSONDecodeError as error:
            return {"id": None, "error": SerializationError(str(error)).to_dict()}
        return await self.handle(message)

    async def handle(self, message: object) -> dict[str, Any]:
        request_id = message.get("id") if isinstance(message, dict) else None
        try:
            result = await self._dispatch(message)
        except LlmError as error:
            logger.warning("Request %s failed: %s", request_id, error.kind)
            return {"id": request_id, "error": error.to_dict()}
        return {"id": request_id, "result": result}

    async def _dispatch(self, message: object) -> object:
        if not isinstance(message, dict):
            raise InvalidRequestError("message must be a JSON object")
        method = message.get("method")
        params = message.get("params", {})
        if not isinstance(params, dict):
            raise InvalidRequestError("params must be an object")

        if method == "check_providers":
            availability = await self.service.check_providers()
            return {name: item.to_dict() for name, item in availability.items()}

        provider = _INVOKE_METHODS.get(method) if isinstance(method, str) else None
        if provider is None:
            raise InvalidRequestError(f"Unknown method: {method!r}")
        request = request_from_params(params, allowed=_PROVIDER_PARAMS[provider])
        response = await self.service.invoke(provider, request)
        return response.to_dict()

    async def _respond(self, line: str, stdout: TextIO, write_lock: asyncio.Lock) -> None:
        try:
            reply = await self.handle_line(line)
        except Exception:
            logger.exception("Unhandled error while serving request")
            reply = {
                "id": None,
                "error": {"kind": "internal_error", "message": "Unhandled server error"},
            }
        if reply is None:
            return
        encoded = json.dumps(reply, ensure_ascii=False)
        async with write_lock:
            stdout.write(encoded + "\n")
            stdout.flush()


def request_from_params(params: dict[str, Any], *, allowed: frozenset[str]) -> LlmRequest:
    """Validate protocol params and build an ``LlmRequest``."""

    unknown = sorted(set(params) - allowed)
    if unknown:
        raise InvalidRequestError(f"Unsupported params: {', '.join(unknown)}")

    prompt = params.get("prompt")
    if not isinstance(prompt, str):
        raise InvalidRequestError("prompt must be a string")
    text_fields: dict[str, str | None] = {}
    for name in ("system_prompt", "model", "fallback_model", "session_id"):
        value = params.get(name)
        if value is not None and not isinstance(value, str):
            raise InvalidRequestError(f"{name} must be a string when provided")
        text_fields[name] = value
    timeout_seconds = params.get("timeout_seconds")
    if timeout_seconds is not None and (
        isinstance(timeout_seconds, bool) or not isinstance(timeout_seconds, int)
    ):
        raise InvalidRequestError("timeout_seconds must be an integer when provided")

    return LlmRequest(
        prompt=prompt,
        system_prompt=text_fields["system_prompt"],
        model=text_fields["model"],
        fallback_model=text_fields["fallback_model"],
        session_id=text_fields["session_id"],
        timeout_seconds=timeout_seconds,
    )
