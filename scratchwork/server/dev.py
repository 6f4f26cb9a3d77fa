"""Development server: initial build, static serving, watch and live reload."""

from __future__ import annotations

import asyncio
import json
import os
import webbrowser
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Iterable, List, Optional

import uvicorn

from ..build.orchestrator import Orchestrator
from ..logging import get_logger
from ..workspace import BuildOptions, BuildWorkspace
from .app import create_app
from .ports import find_available_port
from .watcher import RebuildScheduler, SourceWatcher

LOCK_FILENAME = "dev.lock"

_LOGGER = get_logger("server.dev")


@dataclass
class DevLock:
    pid: int
    port: int


def lock_path(root: Path) -> Path:
    return Path(root) / ".scratch" / LOCK_FILENAME


def is_process_running(pid: int) -> bool:
    if pid <= 0:
        return False
    try:
        os.kill(pid, 0)
    except PermissionError:
        return True
    except OSError:
        return False
    return True


def read_lock(path: Path) -> Optional[DevLock]:
    """Read a lock file; unreadable or malformed locks count as absent."""
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        return DevLock(pid=int(data["pid"]), port=int(data["port"]))
    except (OSError, ValueError, KeyError, TypeError):
        return None


def write_lock(path: Path, port: int) -> DevLock:
    lock = DevLock(pid=os.getpid(), port=port)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps({"pid": lock.pid, "port": lock.port}), encoding="utf-8")
    return lock


def remove_lock(path: Path) -> None:
    try:
        path.unlink()
    except FileNotFoundError:
        pass


def active_lock(path: Path) -> Optional[DevLock]:
    """Return the lock if its owner is alive; stale locks are removed."""
    lock = read_lock(path)
    if lock is None:
        if path.exists():
            remove_lock(path)
        return None
    if is_process_running(lock.pid):
        return lock
    _LOGGER.debug("Removing stale dev lock for PID %d", lock.pid)
    remove_lock(path)
    return None


def find_route(build_dir: Path) -> str:
    """First route (depth-first, sorted) whose directory holds an index.html."""

    def search(directory: Path, prefix: str) -> Optional[str]:
        if (directory / "index.html").is_file():
            return f"{prefix}/"
        try:
            children = sorted(
                child for child in directory.iterdir() if child.is_dir() and not child.name.startswith(".")
            )
        except OSError:
            return None
        for child in children:
            found = search(child, f"{prefix}/{child.name}")
            if found is not None:
                return found
        return None

    return search(Path(build_dir), "") or "/"


def open_browser(url: str) -> None:
    _LOGGER.debug("Opening browser at %s", url)
    webbrowser.open(url)


def watch_directories(workspace: BuildWorkspace, extra: Iterable[str] = ()) -> List[Path]:
    directories = [workspace.pages_dir, workspace.src_dir, workspace.static_dir]
    directories.extend((workspace.root_dir / path).resolve() for path in extra)
    return directories


async def run_dev(
    options: BuildOptions,
    *,
    port: int = 5173,
    open_in_browser: bool = True,
    debounce_ms: int = 100,
    extra_watch_paths: Iterable[str] = (),
    orchestrator: Optional[Orchestrator] = None,
) -> None:
    """Build, serve with live reload, and rebuild on source changes until interrupted."""
    root = Path(options.root).resolve()
    lock_file = lock_path(root)
    existing = active_lock(lock_file)
    if existing is not None:
        _LOGGER.info("Dev server already running on port %d (PID %d)", existing.port, existing.pid)
        if open_in_browser:
            open_browser(f"http://localhost:{existing.port}/")
        return

    dev_options = replace(options, ssg=False)
    workspace = BuildWorkspace(dev_options)
    orchestrator = orchestrator or Orchestrator()
    _LOGGER.info("Building...")
    await orchestrator.run(workspace)

    actual_port = find_available_port(port)
    app = create_app(workspace.build_dir, live_reload=True, port=actual_port)
    write_lock(lock_file, actual_port)

    loop = asyncio.get_running_loop()
    scheduler = RebuildScheduler(
        lambda: orchestrator.run(workspace),
        debounce=debounce_ms / 1000,
        settle=0.1,
        on_success=app.state.reload_hub.broadcast,
    )
    watcher = SourceWatcher(watch_directories(workspace, extra_watch_paths), scheduler.notify, loop)

    server = uvicorn.Server(
        uvicorn.Config(app, host="127.0.0.1", port=actual_port, log_level="warning")
    )
    url = f"http://localhost:{actual_port}"
    try:
        watched = watcher.start()
        _LOGGER.debug("Watching: %s", ", ".join(str(path) for path in watched))
        _LOGGER.info("Dev server running at %s/", url)
        if open_in_browser:
            loop.call_later(0.3, open_browser, f"{url}{find_route(workspace.build_dir)}")
        await server.serve()
    finally:
        _LOGGER.info("Shutting down...")
        watcher.stop()
        scheduler.close()
        remove_lock(lock_file)


__all__ = [
    "DevLock",
    "active_lock",
    "find_route",
    "is_process_running",
    "lock_path",
    "read_lock",
    "remove_lock",
    "run_dev",
    "write_lock",
]
