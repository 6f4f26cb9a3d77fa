"""Serve an existing build without rebuilding or live reload."""

from __future__ import annotations

import webbrowser

import uvicorn

from ..errors import ScratchError
from ..logging import get_logger
from ..workspace import BuildOptions, BuildWorkspace
from .app import create_app
from .ports import find_available_port

_LOGGER = get_logger("server.preview")


def run_preview(options: BuildOptions, *, port: int = 4173, open_in_browser: bool = True) -> None:
    workspace = BuildWorkspace(options)
    build_dir = workspace.build_dir
    if not build_dir.is_dir() or not any(build_dir.iterdir()):
        raise ScratchError(f"No build found in {build_dir}. Run `scratch build` first.")

    actual_port = find_available_port(port)
    app = create_app(build_dir, live_reload=False)
    url = f"http://localhost:{actual_port}/"
    _LOGGER.info("Preview server running at %s", url)
    if open_in_browser:
        webbrowser.open(url)
    uvicorn.run(app, host="127.0.0.1", port=actual_port, log_level="warning")


__all__ = ["run_preview"]
