from __future__ import annotations

import asyncio

import pytest

from scratchwork.server.watcher import RebuildScheduler, is_ignored


def test_notifications_within_debounce_coalesce() -> None:
    calls: list[int] = []

    async def rebuild() -> None:
        calls.append(1)

    async def scenario() -> RebuildScheduler:
        scheduler = RebuildScheduler(rebuild, debounce=0.02, settle=0.01)
        for _ in range(5):
            assert scheduler.notify() is True
        assert scheduler.pending
        await asyncio.sleep(0.1)
        await scheduler.wait_idle()
        scheduler.close()
        return scheduler

    scheduler = asyncio.run(scenario())

    assert calls == [1]
    assert scheduler.rebuild_count == 1
    assert not scheduler.pending


def test_changes_during_rebuild_are_dropped_until_settled() -> None:
    calls: list[int] = []

    async def scenario() -> None:
        started = asyncio.Event()
        release = asyncio.Event()

        async def rebuild() -> None:
            calls.append(1)
            started.set()
            await release.wait()

        scheduler = RebuildScheduler(rebuild, debounce=0.01, settle=0.05)
        scheduler.notify()
        await started.wait()
        assert scheduler.rebuilding
        assert scheduler.notify() is False

        release.set()
        await scheduler.wait_idle()
        assert not scheduler.watching
        assert scheduler.notify() is False

        await asyncio.sleep(0.1)
        assert scheduler.watching
        assert scheduler.notify() is True
        scheduler.close()

    asyncio.run(scenario())

    assert calls == [1]


def test_failed_rebuild_skips_reload_and_resumes_watching() -> None:
    reloads: list[str] = []

    async def rebuild() -> None:
        raise RuntimeError("Invalid JSX syntax")

    async def broadcast() -> int:
        reloads.append("reload")
        return 1

    async def scenario() -> RebuildScheduler:
        scheduler = RebuildScheduler(rebuild, debounce=0.01, settle=0.01, on_success=broadcast)
        scheduler.notify()
        await asyncio.sleep(0.05)
        await scheduler.wait_idle()
        await asyncio.sleep(0.05)
        return scheduler

    scheduler = asyncio.run(scenario())

    assert reloads == []
    assert scheduler.failure_count == 1
    assert scheduler.rebuild_count == 0
    assert scheduler.watching


def test_successful_rebuild_awaits_reload_callback() -> None:
    reloads: list[str] = []

    async def rebuild() -> None:
        return None

    async def broadcast() -> int:
        reloads.append("reload")
        return 1

    async def scenario() -> None:
        scheduler = RebuildScheduler(rebuild, debounce=0.01, settle=0.01, on_success=broadcast)
        scheduler.notify()
        await asyncio.sleep(0.05)
        await scheduler.wait_idle()
        scheduler.close()

    asyncio.run(scenario())

    assert reloads == ["reload"]


@pytest.mark.parametrize(
    ("path", "ignored"),
    [
        ("index.mdx", False),
        ("blog/post.md", False),
        (".DS_Store", True),
        ("components/.Button.tsx.swp", True),
        (".git/HEAD", True),
    ],
)
def test_is_ignored(path: str, ignored: bool) -> None:
    assert is_ignored(path) is ignored
