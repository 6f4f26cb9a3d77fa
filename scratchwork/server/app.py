"""FastAPI application serving a build directory, with optional live reload."""

from __future__ import annotations

import asyncio
import mimetypes
from pathlib import Path
from typing import Dict, Optional, Set

from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from fastapi.responses import FileResponse, HTMLResponse, PlainTextResponse, Response

from ..logging import get_logger

LIVE_RELOAD_PATH = "/__live_reload"
RELOAD_MESSAGE = "reload"
NO_STORE_HEADERS = {"Cache-Control": "no-store, no-cache, must-revalidate"}

STATIC_FILE_EXTENSIONS = frozenset(
    {
        # Web assets
        "html", "css", "js", "mjs", "json", "xml", "txt",
        # Source files
        "ts", "tsx", "jsx", "md", "mdx",
        # Images
        "png", "jpg", "jpeg", "gif", "svg", "webp", "ico", "avif",
        # Fonts
        "woff", "woff2", "ttf", "otf", "eot",
        # Media
        "mp3", "mp4", "webm", "ogg", "wav",
        # Documents
        "pdf", "zip", "gz", "tar",
        # Maps and data
        "map", "wasm",
    }
)

_LOGGER = get_logger("server")


def has_static_extension(url_path: str) -> bool:
    """True when the last path segment ends in a known static file extension."""
    last = url_path.rstrip("/").rsplit("/", 1)[-1] if url_path else ""
    if "." not in last:
        return False
    return last.rsplit(".", 1)[1].lower() in STATIC_FILE_EXTENSIONS


def resolve_request_path(build_dir: Path, url_path: str) -> Optional[Path]:
    """Map a URL path to a file inside ``build_dir``; None when missing or outside it."""
    root = build_dir.resolve()
    candidate = (root / url_path.lstrip("/")).resolve()
    try:
        candidate.relative_to(root)
    except ValueError:
        return None

    if not has_static_extension(url_path):
        index = candidate / "index.html"
        if index.is_file():
            candidate = index
        elif candidate != root and candidate.with_name(f"{candidate.name}.html").is_file():
            candidate = candidate.with_name(f"{candidate.name}.html")
    return candidate if candidate.is_file() else None


def reload_script(port: Optional[int] = None) -> str:
    host = f"'localhost:{port}'" if port else "location.host"
    return f"""
<script>
(function() {{
  const ws = new WebSocket('ws://' + {host} + '{LIVE_RELOAD_PATH}');
  ws.onmessage = function(event) {{
    if (event.data === '{RELOAD_MESSAGE}') {{
      location.reload();
    }}
  }};
  ws.onclose = function() {{
    setTimeout(function() {{
      location.reload();
    }}, 1000);
  }};
}})();
</script>"""


def inject_reload_script(html: str, port: Optional[int] = None) -> str:
    return html.replace("</body>", f"{reload_script(port)}\n</body>", 1)


class ReloadHub:
    """Tracks connected live-reload clients."""

    def __init__(self) -> None:
        self._clients: Set[WebSocket] = set()

    def __len__(self) -> int:
        return len(self._clients)

    async def connect(self, websocket: WebSocket) -> None:
        await websocket.accept()
        self._clients.add(websocket)

    def disconnect(self, websocket: WebSocket) -> None:
        self._clients.discard(websocket)

    async def broadcast(self, message: str = RELOAD_MESSAGE) -> int:
        """Send ``message`` to every client; returns how many received it."""
        clients = list(self._clients)
        results = await asyncio.gather(
            *(client.send_text(message) for client in clients), return_exceptions=True
        )
        delivered = 0
        for client, result in zip(clients, results):
            if isinstance(result, Exception):
                _LOGGER.debug("Dropping live reload client: %s", result)
                self.disconnect(client)
            else:
                delivered += 1
        return delivered


def create_app(build_dir: Path, *, live_reload: bool = False, port: Optional[int] = None) -> FastAPI:
    """Create the static file server for ``build_dir``."""

    app = FastAPI(title="scratch", docs_url=None, redoc_url=None, openapi_url=None)
    hub = ReloadHub()
    app.state.reload_hub = hub
    app.state.build_dir = build_dir
    headers: Dict[str, str] = dict(NO_STORE_HEADERS) if live_reload else {}

    if live_reload:

        @app.websocket(LIVE_RELOAD_PATH)
        async def live_reload_socket(websocket: WebSocket) -> None:
            await hub.connect(websocket)
            try:
                while True:
                    await websocket.receive_text()
            except WebSocketDisconnect:
                pass
            finally:
                hub.disconnect(websocket)

    @app.get("/{url_path:path}")
    async def serve(url_path: str) -> Response:
        path = resolve_request_path(build_dir, url_path)
        if path is None:
            return PlainTextResponse("Not Found", status_code=404, headers=headers)
        if path.suffix == ".html":
            content = path.read_text(encoding="utf-8")
            if live_reload:
                content = inject_reload_script(content, port)
            return HTMLResponse(content, headers=headers)
        media_type = mimetypes.guess_type(path.name)[0] or "application/octet-stream"
        return FileResponse(path, media_type=media_type, headers=headers)

    return app


__all__ = [
    "LIVE_RELOAD_PATH",
    "RELOAD_MESSAGE",
    "ReloadHub",
    "STATIC_FILE_EXTENSIONS",
    "create_app",
    "has_static_extension",
    "inject_reload_script",
    "resolve_request_path",
]
