"""Static file serving, live reload and the dev loop."""

from .app import ReloadHub, create_app
from .dev import run_dev
from .ports import find_available_port
from .preview import run_preview
from .watcher import RebuildScheduler, SourceWatcher

__all__ = [
    "RebuildScheduler",
    "ReloadHub",
    "SourceWatcher",
    "create_app",
    "find_available_port",
    "run_dev",
    "run_preview",
]
