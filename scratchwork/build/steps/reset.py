"""Clear output and cache directories before a build."""

from __future__ import annotations

from ..types import BuildState, BuildStep


class ResetStep(BuildStep):
    name = "reset"
    description = "Reset build directories"

    async def execute(self, workspace, state: BuildState) -> None:
        workspace.reset()
