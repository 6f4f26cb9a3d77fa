"""Sequences the build steps for one project."""

from __future__ import annotations

import asyncio
import time
from typing import Iterable, List, Optional, Sequence, Tuple, Union

from ..errors import BuildError, DependencyRestart, format_build_error
from ..logging import get_logger
from ..workspace import BuildOptions, BuildWorkspace
from .bundler import Bundler
from .process import ProcessRunner
from .render import Renderer
from .steps import (
    CheckConflictsStep,
    ClientBundleStep,
    CopyStaticStep,
    CopyToDistStep,
    CreateEntriesStep,
    DependenciesStep,
    GenerateHtmlStep,
    InjectFrontmatterStep,
    ReconcileStep,
    RenderServerStep,
    ResetStep,
    ServerBundleStep,
    TailwindStep,
)
from .types import BuildState, BuildStep

Stage = Union[BuildStep, Tuple[BuildStep, ...]]


def default_stages(
    *,
    bundler: Optional[Bundler] = None,
    renderer: Optional[Renderer] = None,
    runner: Optional[ProcessRunner] = None,
) -> List[Stage]:
    """The standard pipeline; tuples run concurrently."""
    return [
        DependenciesStep(runner),
        ResetStep(),
        CheckConflictsStep(),
        CreateEntriesStep(),
        (TailwindStep(runner), ServerBundleStep(bundler, runner)),
        ClientBundleStep(bundler, runner),
        RenderServerStep(renderer, runner),
        ReconcileStep(),
        GenerateHtmlStep(),
        InjectFrontmatterStep(),
        CopyStaticStep(),
        CopyToDistStep(),
    ]


class Orchestrator:
    """Runs build stages in order with fail-fast semantics."""

    def __init__(
        self,
        bundler: Optional[Bundler] = None,
        renderer: Optional[Renderer] = None,
        runner: Optional[ProcessRunner] = None,
        stages: Optional[Sequence[Stage]] = None,
    ) -> None:
        self.stages: List[Stage] = (
            list(stages)
            if stages is not None
            else default_stages(bundler=bundler, renderer=renderer, runner=runner)
        )
        self.logger = get_logger("build.orchestrator")

    async def run(self, workspace: BuildWorkspace) -> BuildState:
        """Build ``workspace`` and return the final pipeline state."""
        state = BuildState(options=workspace.options)
        workspace.preprocess_errors.drain()
        workspace.default_exports.clear()

        for stage in self.stages:
            group = stage if isinstance(stage, tuple) else (stage,)
            runnable = [step for step in group if step.should_run(workspace, state)]
            for step in group:
                if step not in runnable:
                    self.logger.debug("Skipping step: %s", step.description)
                    state.skipped.append(step.name)
            if not runnable:
                continue
            try:
                if len(runnable) > 1:
                    self.logger.debug(
                        "Running parallel: %s", " + ".join(step.description for step in runnable)
                    )
                    await self._execute_group(runnable, workspace, state)
                else:
                    await self._execute(runnable[0], workspace, state)
            except DependencyRestart:
                raise
            except Exception as exc:
                state.failed_step = state.failed_step or runnable[0].name
                self.logger.debug("Step %s failed", state.failed_step, exc_info=True)
                raise BuildError(
                    format_build_error(exc), step=state.failed_step, cause=exc
                ) from exc

        self.logger.debug("=== TIMING BREAKDOWN ===")
        for name, elapsed in state.timings.items():
            self.logger.debug("  %s: %.0fms", name, elapsed * 1000)
        return state

    async def _execute(self, step: BuildStep, workspace: BuildWorkspace, state: BuildState) -> None:
        self.logger.debug("=== [%s] %s ===", step.name, step.description)
        if step.progress:
            self.logger.info(step.progress)
        started = time.perf_counter()
        try:
            await step.execute(workspace, state)
        except Exception:
            state.failed_step = state.failed_step or step.name
            raise
        state.timings[step.name] = time.perf_counter() - started

    async def _execute_group(
        self, steps: Sequence[BuildStep], workspace: BuildWorkspace, state: BuildState
    ) -> None:
        """Run ``steps`` concurrently; the first failure cancels and awaits the rest."""
        tasks = [asyncio.ensure_future(self._execute(step, workspace, state)) for step in steps]
        try:
            _, pending = await asyncio.wait(tasks, return_when=asyncio.FIRST_EXCEPTION)
        except asyncio.CancelledError:
            pending = {task for task in tasks if not task.done()}
            await _cancel_all(pending)
            raise
        if pending:
            await _cancel_all(pending)
        failures = [
            task.exception() for task in tasks if not task.cancelled() and task.exception() is not None
        ]
        if failures:
            raise failures[0]  # type: ignore[misc]


async def _cancel_all(tasks: Iterable["asyncio.Future[None]"]) -> None:
    pending = list(tasks)
    for task in pending:
        task.cancel()
    # Sibling steps must be fully stopped before the next build touches the workspace.
    await asyncio.gather(*pending, return_exceptions=True)


async def build(
    options: BuildOptions,
    *,
    workspace: Optional[BuildWorkspace] = None,
    bundler: Optional[Bundler] = None,
    renderer: Optional[Renderer] = None,
    runner: Optional[ProcessRunner] = None,
) -> BuildState:
    """Convenience wrapper: build ``options`` with the default pipeline."""
    workspace = workspace or BuildWorkspace(options)
    orchestrator = Orchestrator(bundler=bundler, renderer=renderer, runner=runner)
    return await orchestrator.run(workspace)


__all__ = ["Orchestrator", "Stage", "build", "default_stages"]
