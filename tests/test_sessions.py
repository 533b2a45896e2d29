from __future__ import annotations

import asyncio
from pathlib import Path

import allure

from praxio.delegation.sessions import ReaderWriterLock, SessionRegistry, session_key

pytestmark = [
    allure.epic("Delegation"),
    allure.feature("Session Registry"),
]


def test_lookup_of_unknown_key_returns_none() -> None:
    registry = SessionRegistry()

    assert asyncio.run(registry.lookup("claude:missing")) is None
    assert len(registry) == 0


def test_insert_then_lookup_returns_workdir(tmp_path: Path) -> None:
    async def scenario() -> Path | None:
        registry = SessionRegistry()
        await registry.insert(session_key("claude", "abc"), tmp_path / "praxio-1")
        return await registry.lookup("claude:abc")

    assert asyncio.run(scenario()) == tmp_path / "praxio-1"


def test_session_keys_are_scoped_by_provider(tmp_path: Path) -> None:
    async def scenario() -> tuple[Path | None, Path | None]:
        registry = SessionRegistry()
        await registry.insert(session_key("claude", "same-id"), tmp_path / "claude-dir")
        return (
            await registry.lookup(session_key("claude", "same-id")),
            await registry.lookup(session_key("gemini", "same-id")),
        )

    claude_dir, gemini_dir = asyncio.run(scenario())

    assert claude_dir == tmp_path / "claude-dir"
    assert gemini_dir is None


def test_concurrent_inserts_and_lookups_are_all_applied(tmp_path: Path) -> None:
    async def scenario() -> tuple[int, Path | None]:
        registry = SessionRegistry()
        await asyncio.gather(
            *(registry.insert(f"claude:{index}", tmp_path / str(index)) for index in range(50)),
            *(registry.lookup(f"claude:{index}") for index in range(50)),
        )
        return len(registry), await registry.lookup("claude:49")

    size, last = asyncio.run(scenario())

    assert size == 50
    assert last == tmp_path / "49"


def test_writer_waits_for_active_readers() -> None:
    async def scenario() -> list[str]:
        lock = ReaderWriterLock()
        events: list[str] = []
        reader_entered = asyncio.Event()
        release_reader = asyncio.Event()

        async def reader() -> None:
            async with lock.read():
                events.append("read-start")
                reader_entered.set()
                await release_reader.wait()
                events.append("read-end")

        async def writer() -> None:
            await reader_entered.wait()
            async with lock.write():
                events.append("write")

        reader_task = asyncio.create_task(reader())
        writer_task = asyncio.create_task(writer())
        await reader_entered.wait()
        await asyncio.sleep(0)
        release_reader.set()
        await asyncio.gather(reader_task, writer_task)
        return events

    assert asyncio.run(scenario()) == ["read-start", "read-end", "write"]
