"""Filesystem watching and debounced rebuild scheduling for the dev server."""

from __future__ import annotations

import asyncio
import inspect
import os
from pathlib import Path
from typing import Any, Awaitable, Callable, Iterable, List, Optional

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from ..logging import get_logger

_LOGGER = get_logger("server.watcher")

_WATCHED_EVENTS = {"created", "modified", "deleted", "moved"}


class RebuildScheduler:
    """Coalesces change notifications into one rebuild at a time.

    ``notify()`` (re)arms a debounce timer, replacing any rebuild already
    queued. Once the timer fires the rebuild runs and watching pauses:
    notifications arriving while paused are dropped. After the rebuild
    finishes, successfully or not, watching resumes after ``settle``
    seconds. ``on_success`` runs after each successful rebuild.
    """

    def __init__(
        self,
        rebuild: Callable[[], Awaitable[Any]],
        *,
        debounce: float = 0.1,
        settle: float = 0.1,
        on_success: Optional[Callable[[], Any]] = None,
    ) -> None:
        self._rebuild = rebuild
        self.debounce = debounce
        self.settle = settle
        self._on_success = on_success
        self._timer: Optional[asyncio.TimerHandle] = None
        self._task: Optional[asyncio.Task[None]] = None
        self._resume_handle: Optional[asyncio.TimerHandle] = None
        self.rebuilding = False
        self.watching = True
        self.rebuild_count = 0
        self.failure_count = 0

    @property
    def pending(self) -> bool:
        return self._timer is not None

    def notify(self) -> bool:
        """Record a change; returns False when the notification was ignored."""
        if not self.watching:
            return False
        loop = asyncio.get_running_loop()
        if self._timer is not None:
            self._timer.cancel()
        self._timer = loop.call_later(self.debounce, self._fire)
        return True

    def _fire(self) -> None:
        self._timer = None
        if self.rebuilding:
            return
        self.rebuilding = True
        self.watching = False
        self._task = asyncio.get_running_loop().create_task(self._run())

    async def _run(self) -> None:
        _LOGGER.info("File change detected, rebuilding...")
        try:
            await self._rebuild()
        except Exception as exc:
            self.failure_count += 1
            _LOGGER.error("Rebuild failed: %s", exc)
        else:
            self.rebuild_count += 1
            if self._on_success is not None:
                result = self._on_success()
                if inspect.isawaitable(result):
                    await result
            _LOGGER.debug("Rebuild complete, reloading browsers...")
        finally:
            self.rebuilding = False
            self._resume_handle = asyncio.get_running_loop().call_later(self.settle, self._resume)

    def _resume(self) -> None:
        self._resume_handle = None
        self.watching = True

    async def wait_idle(self) -> None:
        """Wait for the in-flight rebuild (if any) to finish."""
        if self._task is not None:
            await self._task

    def close(self) -> None:
        for handle in (self._timer, self._resume_handle):
            if handle is not None:
                handle.cancel()
        self._timer = None
        self._resume_handle = None


def is_ignored(path: str) -> bool:
    """Dot-files and dot-directories never trigger rebuilds."""
    return any(part.startswith(".") for part in Path(path).parts if part not in (".", ".."))


class _ForwardingHandler(FileSystemEventHandler):
    def __init__(self, root: Path, callback: Callable[[str], None]) -> None:
        self.root = root
        self.callback = callback

    def on_any_event(self, event: FileSystemEvent) -> None:
        if event.event_type not in _WATCHED_EVENTS:
            return
        path = getattr(event, "dest_path", "") or event.src_path
        if isinstance(path, bytes):
            path = os.fsdecode(path)
        relative = os.path.relpath(path, self.root)
        if is_ignored(relative):
            return
        _LOGGER.debug("File %s: %s", event.event_type, relative)
        self.callback(relative)


class SourceWatcher:
    """Watches source directories and forwards changes onto an event loop."""

    def __init__(
        self,
        directories: Iterable[Path],
        notify: Callable[[], Any],
        loop: asyncio.AbstractEventLoop,
    ) -> None:
        self.directories: List[Path] = [Path(directory) for directory in directories]
        self._notify = notify
        self._loop = loop
        self._observer: Optional[Any] = None

    def _forward(self, _: str) -> None:
        # watchdog calls from its own thread; hop onto the loop.
        self._loop.call_soon_threadsafe(self._notify)

    def start(self) -> List[Path]:
        """Start watching; returns the directories actually scheduled."""
        observer = Observer()
        scheduled: List[Path] = []
        for directory in self.directories:
            if not directory.is_dir():
                continue
            observer.schedule(_ForwardingHandler(directory, self._forward), str(directory), recursive=True)
            scheduled.append(directory)
        observer.start()
        self._observer = observer
        return scheduled

    def stop(self) -> None:
        if self._observer is None:
            return
        self._observer.stop()
        self._observer.join()
        self._observer = None


__all__ = ["RebuildScheduler", "SourceWatcher", "is_ignored"]
