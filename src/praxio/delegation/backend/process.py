"""Subprocess execution for provider CLIs: isolation, timeout, cleanup."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Sequence
from pathlib import Path

from praxio.delegation.backend.base import ProcessRunResult
from praxio.delegation.errors import InvocationTimeoutError, LlmIoError, ProviderUnavailableError
from praxio.delegation.workdir import ensure_workdir, remove_workdir

logger = logging.getLogger(__name__)

_REAP_SECONDS = 2


async def run_cli_process(
    *,
    provider: str,
    argv: Sequence[str],
    workdir: Path,
    timeout_seconds: int,
) -> ProcessRunResult:
    """Run ``argv`` inside ``workdir`` with stdin closed and a hard timeout.

    The working directory is removed once the process returns, fails to
    start, or times out. On timeout the child is killed best-effort; the
    caller only gets ``InvocationTimeoutError`` and must not assume the
    process is gone.
    """

    try:
        ensure_workdir(workdir)
    except OSError as error:
        raise LlmIoError(f"Cannot create working directory {workdir}: {error}") from error

    try:
        process = await _spawn(provider=provider, argv=argv, workdir=workdir)
        try:
            stdout, stderr = await asyncio.wait_for(
                process.communicate(),
                timeout=timeout_seconds,
            )
        except TimeoutError as error:
            logger.warning(
                "%s CLI exceeded %ss timeout (pid=%s); abandoning process",
                provider,
                timeout_seconds,
                process.pid,
            )
            await _abandon_process(process)
            raise InvocationTimeoutError(seconds=timeout_seconds) from error
    finally:
        remove_workdir(workdir)

    return ProcessRunResult(
        exit_code=process.returncode if process.returncode is not None else -1,
        stdout=stdout.decode("utf-8", errors="replace"),
        stderr=stderr.decode("utf-8", errors="replace"),
        workdir=workdir,
    )


async def _spawn(
    *,
    provider: str,
    argv: Sequence[str],
    workdir: Path,
) -> asyncio.subprocess.Process:
    try:
        return await asyncio.create_subprocess_exec(
            *argv,
            cwd=workdir,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except FileNotFoundError as error:
        raise ProviderUnavailableError(
            provider=provider,
            reason=f"{provider} CLI not found in PATH ({argv[0]})",
        ) from error
    except OSError as error:
        raise LlmIoError(f"{argv[0]} failed to start: {error}") from error


async def _abandon_process(process: asyncio.subprocess.Process) -> None:
    with contextlib.suppress(ProcessLookupError):
        process.kill()
    with contextlib.suppress(TimeoutError):
        await asyncio.wait_for(process.wait(), timeout=_REAP_SECONDS)
