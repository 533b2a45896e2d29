"""Lightweight availability probes for provider CLIs."""

from __future__ import annotations

import asyncio
import contextlib
import shutil
from collections.abc import Mapping

from praxio.delegation.models import ProviderAvailability


def resolve_executable(executable: str) -> str | None:
    """Return the absolute path of ``executable`` on PATH, if any."""

    return shutil.which(executable)


async def probe_version(*, executable: str, timeout_seconds: int) -> tuple[bool, str | None]:
    """Run ``<executable> --version`` and report whether it exited cleanly."""

    try:
        process = await asyncio.create_subprocess_exec(
            executable,
            "--version",
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except OSError as error:
        return False, f"Probe failed to start: {error}"

    try:
        await asyncio.wait_for(process.communicate(), timeout=timeout_seconds)
    except TimeoutError:
        with contextlib.suppress(ProcessLookupError):
            process.kill()
        return False, "Probe timed out."

    if process.returncode != 0:
        return False, f"Probe exit code={process.returncode}"
    return True, None


async def check_binary_with_version(
    *,
    provider: str,
    executable: str,
    timeout_seconds: int,
) -> ProviderAvailability:
    """Binary must be on PATH and answer ``--version``."""

    resolved = resolve_executable(executable)
    if resolved is None:
        return ProviderAvailability.unavailable(f"{provider} CLI not found in PATH")

    probe_ok, probe_error = await probe_version(
        executable=resolved,
        timeout_seconds=timeout_seconds,
    )
    if probe_ok:
        return ProviderAvailability.ok()
    if probe_error is not None and probe_error.startswith("Probe failed to start"):
        return ProviderAvailability.unavailable(f"{provider} CLI error: {probe_error}")
    return ProviderAvailability.unavailable(
        f"{provider} CLI found but not responding correctly ({probe_error})",
    )


def check_binary_with_env(
    *,
    provider: str,
    executable: str,
    env_var: str,
    environ: Mapping[str, str],
) -> ProviderAvailability:
    """Required environment variable must be set, then the binary must be on PATH."""

    if not environ.get(env_var):
        return ProviderAvailability.unavailable(f"{env_var} environment variable not set")
    if resolve_executable(executable) is None:
        return ProviderAvailability.unavailable(f"{provider} CLI not found in PATH")
    return ProviderAvailability.ok()
