"""Delegation use case: resolve session workdir, invoke provider, record session."""

from __future__ import annotations

import logging
import time
from collections.abc import Mapping
from dataclasses import replace

from praxio.config import Settings
from praxio.delegation.backend import SUPPORTED_PROVIDERS, LlmProvider, build_providers
from praxio.delegation.errors import InvalidRequestError
from praxio.delegation.models import LlmRequest, LlmResponse, ProviderAvailability
from praxio.delegation.sanitization import prompt_preview, session_prefix
from praxio.delegation.sessions import SessionRegistry, session_key
from praxio.delegation.workdir import WorkdirManager

logger = logging.getLogger(__name__)


class DelegationService:
    """Coordinates provider invocation with the session registry."""

    def __init__(
        self,
        *,
        providers: Mapping[str, LlmProvider],
        workdirs: WorkdirManager,
        sessions: SessionRegistry | None = None,
    ) -> None:
        self.providers = dict(providers)
        self.workdirs = workdirs
        self.sessions = sessions if sessions is not None else SessionRegistry()

    @classmethod
    def from_settings(cls, settings: Settings) -> DelegationService:
        return cls(
            providers=build_providers(settings),
            workdirs=WorkdirManager(settings.workdir_root),
        )

    def provider(self, name: str) -> LlmProvider:
        normalized = name.strip().lower()
        provider = self.providers.get(normalized)
        if provider is None:
            raise InvalidRequestError(
                f"Unsupported provider: {name!r}. Use one of {', '.join(SUPPORTED_PROVIDERS)}.",
            )
        return provider

    async def invoke(self, provider_name: str, request: LlmRequest) -> LlmResponse:
        """Run one turn; a new conversation gets a fresh directory, a resumed one reuses its own.

        Unknown session ids fail before any process is spawned. A session is
        recorded only when a new conversation's response carries a session id.
        """

        provider = self.provider(provider_name)
        _validate_request(request)

        if request.session_id is not None:
            key = session_key(provider.name, request.session_id)
            workdir = await self.sessions.lookup(key)
            if workdir is None:
                raise InvalidRequestError(f"Session not found: {request.session_id}")
            logger.info(
                "Resuming %s session %s: %s...",
                provider.name,
                session_prefix(request.session_id),
                prompt_preview(request.prompt),
            )
        else:
            workdir = self.workdirs.fresh(provider.workdir_prefix)
            logger.info(
                "Creating new %s session: %s...",
                provider.name,
                prompt_preview(request.prompt),
            )

        started = time.monotonic()
        response = await provider.invoke(replace(request, working_dir=workdir))
        elapsed_ms = int((time.monotonic() - started) * 1000)

        new_session_id = response.metadata.session_id
        if request.session_id is None and new_session_id is not None:
            await self.sessions.insert(session_key(provider.name, new_session_id), workdir)
            logger.info(
                "Mapped %s session %s -> %s",
                provider.name,
                session_prefix(new_session_id),
                workdir,
            )

        _log_response(response, elapsed_ms=elapsed_ms)
        return response

    async def check_providers(self) -> dict[str, ProviderAvailability]:
        """Probe every provider; results are computed fresh on each call."""

        return {
            name: await provider.check_availability() for name, provider in self.providers.items()
        }

    async def log_provider_availability(self) -> dict[str, ProviderAvailability]:
        """Startup diagnostics only; never gates later invocations."""

        results = await self.check_providers()
        for name, availability in results.items():
            if availability.available:
                logger.info("%s provider available", name)
            else:
                logger.warning("%s provider unavailable: %s", name, availability.reason)
        return results


def _validate_request(request: LlmRequest) -> None:
    if not request.prompt.strip():
        raise InvalidRequestError("prompt must be a non-empty string")
    if request.timeout_seconds is not None and request.timeout_seconds <= 0:
        raise InvalidRequestError("timeout_seconds must be a positive integer")
    if request.working_dir is not None:
        raise InvalidRequestError("working_dir is assigned by the delegation service")


def _log_response(response: LlmResponse, *, elapsed_ms: int) -> None:
    logger.info(
        "%s response received in %sms (API: %sms)",
        response.provider,
        elapsed_ms,
        response.duration_ms,
    )
    if response.cost_usd is not None:
        logger.info("Cost: $%.6f", response.cost_usd)
    tokens = response.tokens
    if tokens is None:
        return
    if tokens.extended_thinking is not None:
        logger.info(
            "Tokens: %s input, %s output, %s total (%s thoughts)",
            tokens.input,
            tokens.output,
            tokens.total,
            tokens.extended_thinking,
        )
    else:
        logger.info(
            "Tokens: %s input, %s output, %s total",
            tokens.input,
            tokens.output,
            tokens.total,
        )
