"""Async subprocess helpers shared by build steps."""

from __future__ import annotations

import asyncio
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Awaitable, Callable, Mapping, Optional, Sequence

from ..errors import ToolchainError


@dataclass
class ProcessResult:
    """Exit status and captured output of one external command."""

    args: Sequence[str]
    returncode: int
    stdout: str
    stderr: str

    @property
    def output(self) -> str:
        return self.stderr or self.stdout


ProcessRunner = Callable[..., Awaitable[ProcessResult]]


async def run_process(
    args: Sequence[str],
    *,
    cwd: Optional[Path] = None,
    env: Optional[Mapping[str, str]] = None,
    stdin: Optional[str] = None,
) -> ProcessResult:
    """Run ``args`` to completion, capturing stdout and stderr as text."""
    merged_env = os.environ.copy()
    if env:
        merged_env.update(env)
    try:
        process = await asyncio.create_subprocess_exec(
            *args,
            cwd=str(cwd) if cwd else None,
            env=merged_env,
            stdin=asyncio.subprocess.PIPE if stdin is not None else None,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except FileNotFoundError as exc:
        raise ToolchainError(args[0], f"Command not found: {args[0]}") from exc
    try:
        stdout, stderr = await process.communicate(stdin.encode("utf-8") if stdin is not None else None)
    except asyncio.CancelledError:
        # A cancelled step must not leave its tool writing into the workspace.
        if process.returncode is None:
            process.kill()
            await process.wait()
        raise
    return ProcessResult(
        args=list(args),
        returncode=process.returncode if process.returncode is not None else 1,
        stdout=stdout.decode("utf-8", errors="replace"),
        stderr=stderr.decode("utf-8", errors="replace"),
    )


__all__ = ["ProcessResult", "ProcessRunner", "run_process"]
