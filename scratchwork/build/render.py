"""SSG renderer boundary."""

from __future__ import annotations

import json
from pathlib import Path
from typing import TYPE_CHECKING, List, Optional, Protocol

from ..errors import RenderError
from .process import ProcessRunner, run_process

if TYPE_CHECKING:  # pragma: no cover
    from ..workspace import BuildWorkspace


class MissingRenderExport(RenderError):
    """The compiled server module does not export a render() function."""

    def __init__(self, exports: List[str]) -> None:
        self.exports = list(exports)
        super().__init__("server module is missing render() function")


class Renderer(Protocol):
    async def render(self, module_path: Path) -> str:
        ...


class NodeRenderer:
    """Imports a compiled server module under Node and returns its ``render()`` HTML."""

    SCRIPT_NAME = "render.mjs"

    def __init__(
        self,
        script: Path,
        *,
        node: str = "node",
        cwd: Optional[Path] = None,
        runner: Optional[ProcessRunner] = None,
    ) -> None:
        self.script = script
        self.node = node
        self.cwd = cwd
        self._runner = runner or run_process

    @classmethod
    def for_workspace(
        cls, workspace: "BuildWorkspace", runner: Optional[ProcessRunner] = None
    ) -> "NodeRenderer":
        return cls(
            workspace.materialize_embedded(cls.SCRIPT_NAME),
            cwd=workspace.root_dir,
            runner=runner,
        )

    async def render(self, module_path: Path) -> str:
        result = await self._runner(
            [self.node, str(self.script), str(module_path)],
            cwd=self.cwd,
        )
        payload = None
        for line in reversed(result.stdout.strip().splitlines()):
            try:
                payload = json.loads(line)
            except json.JSONDecodeError:
                continue
            break
        if result.returncode != 0 or not isinstance(payload, dict):
            raise RenderError(result.output.strip() or f"renderer exited with code {result.returncode}")
        if payload.get("missingRender"):
            raise MissingRenderExport([str(name) for name in payload.get("exports") or []])
        if not payload.get("ok"):
            raise RenderError(str(payload.get("error") or "render failed"))
        return str(payload.get("html", ""))


__all__ = ["MissingRenderExport", "NodeRenderer", "Renderer"]
