"""Ensure the JavaScript toolchain is installed in the project."""

from __future__ import annotations

import asyncio
import sys
from typing import Dict, List, Optional, Sequence

from ...errors import DependencyRestart, ToolchainError
from ...logging import get_logger
from ...scaffold import write_package_json
from ..process import ProcessRunner, run_process
from ..types import BuildState, BuildStep

INSTALL_COMMANDS: Dict[str, List[str]] = {
    "bun": ["bun", "install"],
    "npm": ["npm", "install"],
    "pnpm": ["pnpm", "install"],
    "yarn": ["yarn", "install"],
}

_LOGGER = get_logger("build.dependencies")


async def restart_in_subprocess(argv: Sequence[str]) -> int:
    """Re-run the CLI with ``argv`` in a fresh interpreter, inheriting stdio."""
    _LOGGER.debug("Re-running build in subprocess after dependency install")
    process = await asyncio.create_subprocess_exec(sys.executable, "-m", "scratchwork.cli", *argv)
    return await process.wait()


class DependenciesStep(BuildStep):
    name = "dependencies"
    description = "Ensure build dependencies installed"

    def __init__(self, runner: Optional[ProcessRunner] = None) -> None:
        self._runner = runner or run_process

    async def execute(self, workspace, state: BuildState) -> None:
        if write_package_json(workspace.root_dir):
            _LOGGER.info("Created package.json")

        if workspace.node_modules_dir.exists():
            return

        manager = state.options.package_manager
        command = INSTALL_COMMANDS.get(manager)
        if command is None:
            raise ToolchainError(manager, f"Unsupported package manager: {manager}")

        _LOGGER.info("Installing dependencies...")
        result = await self._runner(command, cwd=workspace.root_dir)
        if result.returncode != 0:
            raise ToolchainError(
                manager,
                f"Dependency install failed ({' '.join(command)}):\n{result.output.strip()}",
                logs=[result.stdout, result.stderr],
            )
        _LOGGER.info("Dependencies installed")

        if state.options.restart_after_install:
            raise DependencyRestart(await restart_in_subprocess(state.options.argv))
