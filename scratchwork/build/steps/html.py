"""Write one HTML document per entry."""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Dict, List

from ...logging import get_logger
from ..types import BuildState, BuildStep

PAGE_TEMPLATE = "page.html"

FAVICONS = (
    ("favicon.svg", "image/svg+xml"),
    ("favicon.ico", "image/x-icon"),
)

_LOGGER = get_logger("build.html")


def script_json(value: object) -> str:
    """JSON literal safe to embed inside a ``<script>`` element."""
    return json.dumps(value).replace("</", "<\\/")


def public_url(base: str, relative: str) -> str:
    return f"{base}/{relative.lstrip('/')}"


def favicon_links(static_dir: Path, base: str) -> List[Dict[str, str]]:
    return [
        {"href": public_url(base, filename), "type": mime}
        for filename, mime in FAVICONS
        if (static_dir / filename).is_file()
    ]


class GenerateHtmlStep(BuildStep):
    name = "generate_html"
    description = "Generate HTML pages"
    progress = "Generating HTML..."

    async def execute(self, workspace, state: BuildState) -> None:
        base = state.options.normalized_base
        renderer = workspace.renderer()
        favicons = favicon_links(workspace.static_dir, base)
        css_href = public_url(base, state.css_filename) if state.css_filename else None

        for name, entry in state.entries.items():
            script = state.js_outputs[name]
            relative_script = Path(os.path.relpath(script, workspace.client_compiled_dir)).as_posix()
            html = renderer.render_string(
                PAGE_TEMPLATE,
                {
                    "css_href": css_href,
                    "favicons": favicons,
                    "base_json": script_json(base),
                    "ssg_json": script_json(bool(state.options.ssg)),
                    "content": state.rendered_content.get(name, ""),
                    "script_src": public_url(base, relative_script),
                },
            )
            target = entry.artifact_path(".html", workspace.client_compiled_dir)
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(html, encoding="utf-8")
        _LOGGER.debug("  Generated %d HTML files", len(state.entries))
