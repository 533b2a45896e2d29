"""Session registry: provider session id -> isolated working directory."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path


class ReaderWriterLock:
    """Many concurrent readers or one writer; waiting writers block new readers."""

    def __init__(self) -> None:
        self._condition = asyncio.Condition()
        self._readers = 0
        self._writer_active = False
        self._writers_waiting = 0

    @asynccontextmanager
    async def read(self) -> AsyncIterator[None]:
        async with self._condition:
            await self._condition.wait_for(
                lambda: not self._writer_active and self._writers_waiting == 0,
            )
            self._readers += 1
        try:
            yield
        finally:
            async with self._condition:
                self._readers -= 1
                if self._readers == 0:
                    self._condition.notify_all()

    @asynccontextmanager
    async def write(self) -> AsyncIterator[None]:
        async with self._condition:
            self._writers_waiting += 1
            try:
                await self._condition.wait_for(
                    lambda: not self._writer_active and self._readers == 0,
                )
            finally:
                self._writers_waiting -= 1
                self._condition.notify_all()
            self._writer_active = True
        try:
            yield
        finally:
            async with self._condition:
                self._writer_active = False
                self._condition.notify_all()


class SessionRegistry:
    """In-memory session map owned by one delegation service.

    Entries are append-only and live for the lifetime of the process. The
    registry does not serialize turns of one session; concurrent calls that
    resume the same session race on the same directory name.
    """

    def __init__(self) -> None:
        self._entries: dict[str, Path] = {}
        self._lock = ReaderWriterLock()

    async def lookup(self, key: str) -> Path | None:
        async with self._lock.read():
            return self._entries.get(key)

    async def insert(self, key: str, workdir: Path) -> None:
        async with self._lock.write():
            self._entries[key] = workdir

    def __len__(self) -> int:
        return len(self._entries)


def session_key(provider: str, session_id: str) -> str:
    """Registry key scoped by provider so session ids of different CLIs never collide."""

    return f"{provider}:{session_id}"
