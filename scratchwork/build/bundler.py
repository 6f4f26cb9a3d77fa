"""Bundler boundary: request/result types, the esbuild adapter and error collection."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Protocol

from ..errors import BundleError, PreprocessingError, ToolchainError
from ..logging import get_logger
from .process import ProcessRunner, run_process

if TYPE_CHECKING:  # pragma: no cover
    from ..workspace import BuildWorkspace

OUTPUT_KINDS = ("entry-point", "chunk", "asset")

_LOGGER = get_logger("build.bundler")


@dataclass
class BundleRequest:
    """Everything the bundler needs for one compilation pass."""

    entry_points: List[Path]
    out_dir: Path
    root: Path
    target: str
    minify: bool = False
    sourcemap: bool = False
    hashed: bool = True
    node_env: str = "production"
    content_map: Dict[str, str] = field(default_factory=dict)
    node_modules: Optional[Path] = None
    cwd: Optional[Path] = None

    def to_json(self) -> Dict[str, Any]:
        return {
            "entryPoints": [str(path) for path in self.entry_points],
            "outDir": str(self.out_dir),
            "root": str(self.root),
            "target": self.target,
            "minify": self.minify,
            "sourcemap": self.sourcemap,
            "hashed": self.hashed,
            "nodeEnv": self.node_env,
            "contentMap": dict(self.content_map),
            "nodeModules": str(self.node_modules) if self.node_modules else None,
        }


@dataclass
class OutputDescriptor:
    """One file written by the bundler."""

    kind: str
    path: Path


@dataclass
class BundleResult:
    success: bool
    logs: List[str] = field(default_factory=list)
    outputs: List[OutputDescriptor] = field(default_factory=list)

    @classmethod
    def from_json(cls, payload: Dict[str, Any]) -> "BundleResult":
        outputs = []
        for item in payload.get("outputs") or []:
            kind = str(item.get("kind", "asset"))
            if kind not in OUTPUT_KINDS:
                kind = "asset"
            outputs.append(OutputDescriptor(kind=kind, path=Path(str(item["path"]))))
        return cls(
            success=bool(payload.get("success")),
            logs=[str(line) for line in payload.get("logs") or []],
            outputs=outputs,
        )

    def entry_points(self) -> List[OutputDescriptor]:
        return [output for output in self.outputs if output.kind == "entry-point"]


class Bundler(Protocol):
    async def build(self, request: BundleRequest) -> BundleResult:
        ...


class EsbuildBundler:
    """Runs the embedded ``bundle.mjs`` script, which drives esbuild and the MDX compiler."""

    SCRIPT_NAME = "bundle.mjs"

    def __init__(
        self,
        script: Path,
        *,
        node: str = "node",
        runner: Optional[ProcessRunner] = None,
    ) -> None:
        self.script = script
        self.node = node
        self._runner = runner or run_process

    @classmethod
    def for_workspace(
        cls, workspace: "BuildWorkspace", runner: Optional[ProcessRunner] = None
    ) -> "EsbuildBundler":
        # The script lives under the project so Node resolves esbuild from its node_modules.
        return cls(workspace.materialize_embedded(cls.SCRIPT_NAME), runner=runner)

    async def build(self, request: BundleRequest) -> BundleResult:
        result = await self._runner(
            [self.node, str(self.script)],
            cwd=request.cwd,
            stdin=json.dumps(request.to_json()),
        )
        payload = _last_json_line(result.stdout)
        if payload is None:
            raise ToolchainError(
                "esbuild",
                f"Bundler exited with code {result.returncode}: {result.output.strip()}",
                logs=[result.stderr] if result.stderr else [],
            )
        return BundleResult.from_json(payload)


def _last_json_line(stdout: str) -> Optional[Dict[str, Any]]:
    for line in reversed(stdout.strip().splitlines()):
        line = line.strip()
        if not line.startswith("{"):
            continue
        try:
            loaded = json.loads(line)
        except json.JSONDecodeError:
            continue
        if isinstance(loaded, dict):
            return loaded
    return None


async def run_bundle(
    workspace: "BuildWorkspace", bundler: Bundler, request: BundleRequest, label: str
) -> BundleResult:
    """Invoke ``bundler`` and surface its failures and any preprocessing errors."""
    _LOGGER.debug("  %s bundle: %d entry points -> %s", label, len(request.entry_points), request.out_dir)
    result = await bundler.build(request)
    if not result.success:
        pending = workspace.preprocess_errors.drain()
        logs = list(result.logs) + [str(error) for error in pending]
        details = "\n".join(logs) if logs else "no output"
        raise BundleError("esbuild", f"{label} build failed:\n{details}", logs=logs)

    pending = workspace.preprocess_errors.drain()
    if pending:
        raise PreprocessingError(pending)
    for line in result.logs:
        _LOGGER.debug("  %s", line)
    return result


__all__ = [
    "Bundler",
    "BundleRequest",
    "BundleResult",
    "EsbuildBundler",
    "OUTPUT_KINDS",
    "OutputDescriptor",
    "run_bundle",
]
