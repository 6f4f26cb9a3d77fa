"""Discover content entries and render their bundler entry files."""

from __future__ import annotations

from ...errors import NoEntriesError, relative_display
from ...logging import get_logger
from ..types import BuildState, BuildStep

CLIENT_TEMPLATE = "entry-client.tsx"
SERVER_TEMPLATE = "entry-server.jsx"

_LOGGER = get_logger("build.entries")


class CreateEntriesStep(BuildStep):
    name = "create_entries"
    description = "Create client and server entry files"
    progress = "Compiling pages..."

    async def execute(self, workspace, state: BuildState) -> None:
        entries = workspace.entries()
        if not entries:
            raise NoEntriesError(
                f"No .md or .mdx files found in {relative_display(workspace.pages_dir, workspace.root_dir)}/. "
                "Add a page such as pages/index.mdx to get started."
            )
        state.entries = {entry.name: entry for entry in entries}

        renderer = workspace.renderer()
        markdown_components = workspace.markdown_components_path()

        for entry in entries:
            target = entry.artifact_path(".tsx", workspace.client_src_dir)
            renderer.render(
                CLIENT_TEMPLATE,
                target,
                import_paths={
                    "entry_source_path": entry.source_path,
                    "markdown_components_path": markdown_components,
                },
            )
            state.client_entry_points[entry.name] = target
        _LOGGER.debug("  Created %d client entries", len(entries))

        if not state.options.ssg:
            state.server_entry_points = None
            return

        state.server_entry_points = {}
        for entry in entries:
            target = entry.artifact_path(".jsx", workspace.server_src_dir)
            renderer.render(
                SERVER_TEMPLATE,
                target,
                import_paths={
                    "entry_source_path": entry.source_path,
                    "markdown_components_path": markdown_components,
                },
            )
            state.server_entry_points[entry.name] = target
        _LOGGER.debug("  Created %d server entries", len(entries))
