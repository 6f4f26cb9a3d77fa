"""Server-side render every entry for SSG."""

from __future__ import annotations

import asyncio
import os
import re
from dataclasses import dataclass
from typing import List, Optional

from ...errors import RenderError
from ...logging import get_logger
from ...models import PathEntry
from ..process import ProcessRunner
from ..render import MissingRenderExport, NodeRenderer, Renderer
from ..types import BuildState, BuildStep

MAX_ADDITIONAL_ERRORS = 100

_FAILURE_SOURCE_RE = re.compile(r"Failed to render\s+([^\n:]+\.(?:mdx|md))\s*:")
_FAILURE_SUMMARY_RE = re.compile(r"Failed to render\s+([^\n:]+\.(?:mdx|md))\s*:\s*(.+)$")
_MDX_IMPORT_RE = re.compile(r"import\s+([A-Za-z_$][\w$]*)\s+from\s+[\"'][^\"']+\.(?:mdx|md)[\"'];?")
_GOT_TYPE_RE = re.compile(r"but got:\s*([^.\n]+)")

_LOGGER = get_logger("build.render")


@dataclass
class RenderHint:
    jsx_element: Optional[str] = None
    entry_path: Optional[str] = None
    entry_line: Optional[int] = None
    entry_line_text: Optional[str] = None


def render_hint(workspace, entry: PathEntry) -> Optional[RenderHint]:
    """Locate the page component invocation in the generated server entry."""
    server_entry = entry.artifact_path(".jsx", workspace.server_src_dir)
    entry_path = os.path.relpath(server_entry, workspace.root_dir)
    try:
        source = server_entry.read_text(encoding="utf-8")
    except OSError:
        return None

    match = _MDX_IMPORT_RE.search(source)
    if match is None:
        return RenderHint(entry_path=entry_path)
    component = match.group(1)
    hint = RenderHint(jsx_element=f"<{component} />", entry_path=entry_path)
    pattern = re.compile(rf"<{re.escape(component)}(\s|/|>)")
    for number, line in enumerate(source.splitlines(), start=1):
        if pattern.search(line):
            hint.entry_line = number
            hint.entry_line_text = line.strip()
            break
    return hint


def invalid_element_message(workspace, entry: PathEntry, message: str) -> str:
    hint = render_hint(workspace, entry)
    got = _GOT_TYPE_RE.search(message)
    extra: List[str] = []
    if got:
        extra.append(f"  React received: {got.group(1).strip()}")
    if hint and hint.jsx_element:
        extra.append(f"  JSX element: {hint.jsx_element}")
    if hint and hint.entry_path:
        line = f":{hint.entry_line}" if hint.entry_line is not None else ""
        extra.append(f"  Render entry: {hint.entry_path}{line}")
    if hint and hint.entry_line is not None and hint.entry_line_text:
        extra.append(f"  {hint.entry_line} | {hint.entry_line_text}")
    details = "\n".join(extra)
    return (
        f"Failed to render {entry.rel_path}: {message}\n"
        + (f"{details}\n" if details else "")
        + "  This usually means a component in the MDX file could not be resolved.\n"
        "  Check for typos in component names or missing imports."
    )


def summarize_failure(message: str) -> str:
    first = message.split("\n", 1)[0]
    match = _FAILURE_SUMMARY_RE.search(first)
    if match:
        return f"{match.group(1)}: {match.group(2)}"
    return first


def aggregate_failures(failures: List[Exception]) -> Exception:
    """Return one error for all render failures, sorted by source path."""

    def source_of(error: Exception) -> str:
        match = _FAILURE_SOURCE_RE.search(str(error))
        return match.group(1) if match else ""

    ordered = sorted(failures, key=source_of)
    primary = ordered[0]
    if len(ordered) == 1:
        return primary
    extra = [f"  - {summarize_failure(str(error))}" for error in ordered[1:MAX_ADDITIONAL_ERRORS]]
    hidden = len(ordered) - 1 - len(extra)
    hidden_line = f"\n  ... and {hidden} more" if hidden > 0 else ""
    return RenderError(
        f"{primary}\n"
        f"  Additional render errors ({len(ordered) - 1}):\n"
        + "\n".join(extra)
        + hidden_line
    )


class RenderServerStep(BuildStep):
    name = "render_server"
    description = "Render server modules to HTML for SSG"

    def __init__(self, renderer: Optional[Renderer] = None, runner: Optional[ProcessRunner] = None) -> None:
        self._renderer = renderer
        self._runner = runner

    def should_run(self, workspace, state: BuildState) -> bool:
        return state.options.ssg and state.server_bundle is not None

    async def execute(self, workspace, state: BuildState) -> None:
        renderer = self._renderer or NodeRenderer.for_workspace(workspace, runner=self._runner)
        _LOGGER.debug("  Rendering %d pages...", len(state.entries))

        async def render_one(name: str, entry: PathEntry) -> None:
            module_path = entry.artifact_path(".js", workspace.server_compiled_dir)
            try:
                state.rendered_content[name] = await renderer.render(module_path)
            except MissingRenderExport as exc:
                exports = ", ".join(exc.exports) if exc.exports else "(empty)"
                raise RenderError(
                    f"Failed to compile {entry.rel_path}: server module is missing render() function.\n"
                    f"  Module exports: {exports}\n"
                    "  This usually means the MDX file has a syntax error that was not reported.\n"
                    "  Check the file for special characters or invalid JSX syntax."
                ) from exc
            except RenderError as exc:
                message = str(exc)
                if "Element type is invalid" in message:
                    raise RenderError(invalid_element_message(workspace, entry, message)) from exc
                raise RenderError(f"Failed to render {entry.rel_path}: {message}") from exc

        results = await asyncio.gather(
            *(render_one(name, entry) for name, entry in state.entries.items()),
            return_exceptions=True,
        )
        failures = [result for result in results if isinstance(result, Exception)]
        if failures:
            raise aggregate_failures(failures)
