"""Layer static assets and compiled output into the build directory."""

from __future__ import annotations

import os
import shutil
from pathlib import Path

from ...logging import get_logger
from ..types import BuildState, BuildStats, BuildStep
from .conflicts import CODE_FILE_EXTENSIONS

_LOGGER = get_logger("build.assets")


def copy_pages_static(pages_dir: Path, build_dir: Path) -> int:
    """Copy non-code files from the pages tree, renaming ``.mdx`` to ``.md``."""
    if not pages_dir.is_dir():
        return 0
    source_root = pages_dir.resolve()
    copied = 0
    for dirpath, dirnames, filenames in os.walk(source_root):
        dirnames[:] = [name for name in dirnames if name != "node_modules"]
        for filename in filenames:
            extension = os.path.splitext(filename)[1].lower()
            if extension in CODE_FILE_EXTENSIONS:
                continue
            source = Path(dirpath) / filename
            relative = source.relative_to(source_root)
            if extension == ".mdx":
                relative = relative.with_name(filename[:-4] + ".md")
            target = build_dir / relative
            target.parent.mkdir(parents=True, exist_ok=True)
            shutil.copyfile(source, target)
            copied += 1
    return copied


def directory_stats(directory: Path) -> BuildStats:
    stats = BuildStats()
    for dirpath, _, filenames in os.walk(directory):
        for filename in filenames:
            stats.file_count += 1
            stats.total_bytes += (Path(dirpath) / filename).stat().st_size
    return stats


class CopyStaticStep(BuildStep):
    name = "copy_static"
    description = "Copy static assets"
    progress = "Copying assets..."

    async def execute(self, workspace, state: BuildState) -> None:
        copy_pages_static(workspace.pages_dir, workspace.build_dir)
        _LOGGER.debug("  Copied pages/ static assets")
        if workspace.static_dir.is_dir():
            shutil.copytree(workspace.static_dir, workspace.build_dir, dirs_exist_ok=True)
            _LOGGER.debug("  Copied public/ static assets")


class CopyToDistStep(BuildStep):
    name = "copy_to_dist"
    description = "Copy compiled assets to the output directory"

    async def execute(self, workspace, state: BuildState) -> None:
        if workspace.client_compiled_dir.is_dir():
            shutil.copytree(workspace.client_compiled_dir, workspace.build_dir, dirs_exist_ok=True)
        state.stats = directory_stats(workspace.build_dir)
        _LOGGER.debug("  Output in: %s", workspace.build_dir)
