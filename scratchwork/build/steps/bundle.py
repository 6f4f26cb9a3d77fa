"""Server and client compilation passes."""

from __future__ import annotations

from typing import Dict, Optional

from ...content.compiler import ContentCompiler
from ...content.paths import ContentPathRewriter
from ...content.preprocess import ContentPreprocessor
from ...logging import get_logger
from ..bundler import Bundler, BundleRequest, EsbuildBundler, run_bundle
from ..process import ProcessRunner
from ..types import BuildState, BuildStep

_LOGGER = get_logger("build.bundle")


def preprocess_content(workspace, state: BuildState, target: str, *, record_frontmatter: bool) -> Dict[str, str]:
    """Write preprocessed copies of every entry for one bundler target."""
    preprocessor = ContentPreprocessor(
        workspace.component_map(),
        strict=state.options.strict,
        errors=workspace.preprocess_errors,
        default_exports=workspace.default_exports,
        root_dir=workspace.root_dir,
    )
    rewriter = ContentPathRewriter(workspace.pages_dir, state.options.normalized_base)
    compiler = ContentCompiler(
        workspace, target, [preprocessor, rewriter], record_frontmatter=record_frontmatter
    )
    return compiler.compile(state.entries.values())


class _BundleStep(BuildStep):
    def __init__(self, bundler: Optional[Bundler] = None, runner: Optional[ProcessRunner] = None) -> None:
        self._bundler = bundler
        self._runner = runner

    def bundler(self, workspace) -> Bundler:
        if self._bundler is None:
            return EsbuildBundler.for_workspace(workspace, runner=self._runner)
        return self._bundler


class ServerBundleStep(_BundleStep):
    name = "server_bundle"
    description = "Server bundle for SSG"

    def should_run(self, workspace, state: BuildState) -> bool:
        return state.options.ssg and state.server_entry_points is not None

    async def execute(self, workspace, state: BuildState) -> None:
        assert state.server_entry_points is not None
        content_map = preprocess_content(workspace, state, "server", record_frontmatter=False)
        request = BundleRequest(
            entry_points=list(state.server_entry_points.values()),
            out_dir=workspace.server_compiled_dir,
            root=workspace.server_src_dir,
            target="server",
            minify=False,
            sourcemap=False,
            hashed=False,
            # Development React gives readable render errors; this code never ships.
            node_env="development",
            content_map=content_map,
            node_modules=workspace.node_modules_dir,
            cwd=workspace.root_dir,
        )
        state.server_bundle = await run_bundle(workspace, self.bundler(workspace), request, "Server")
        _LOGGER.debug("  Built %d server modules", len(state.server_bundle.outputs))


class ClientBundleStep(_BundleStep):
    name = "client_bundle"
    description = "Client bundle"

    async def execute(self, workspace, state: BuildState) -> None:
        development = state.options.development
        content_map = preprocess_content(workspace, state, "client", record_frontmatter=True)
        request = BundleRequest(
            entry_points=list(state.client_entry_points.values()),
            out_dir=workspace.client_compiled_dir,
            root=workspace.client_src_dir,
            target="browser",
            minify=not development,
            sourcemap=development,
            hashed=True,
            node_env="development" if development else "production",
            content_map=content_map,
            node_modules=workspace.node_modules_dir,
            cwd=workspace.root_dir,
        )
        state.client_bundle = await run_bundle(workspace, self.bundler(workspace), request, "Client")
        _LOGGER.debug("  Built %d client outputs", len(state.client_bundle.outputs))
