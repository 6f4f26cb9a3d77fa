"""Tailwind CSS build with a content-hashed output name."""

from __future__ import annotations

import asyncio
import hashlib
import os
from pathlib import Path
from typing import List, Optional

from ...errors import ToolchainError
from ...logging import get_logger
from ..process import ProcessRunner, run_process
from ..types import BuildState, BuildStep

_LOGGER = get_logger("build.css")


def with_source_directives(css: str, input_path: Path, sources: List[Path]) -> str:
    """Append ``@source`` directives, relative to ``input_path``, for each existing directory."""
    lines = [css.rstrip("\n"), ""]
    for source in sources:
        if not source.is_dir():
            continue
        relative = os.path.relpath(source, input_path.parent).replace(os.sep, "/")
        lines.append(f'@source "{relative}";')
    return "\n".join(lines) + "\n"


def hashed_css_name(content: bytes) -> str:
    return f"tailwind-{hashlib.md5(content).hexdigest()[:8]}.css"


class TailwindStep(BuildStep):
    name = "css"
    description = "Build Tailwind CSS"

    def __init__(self, runner: Optional[ProcessRunner] = None) -> None:
        self._runner = runner or run_process

    async def execute(self, workspace, state: BuildState) -> None:
        source = workspace.tailwind_source()
        if source is None:
            _LOGGER.info("No Tailwind CSS file found (src/tailwind.css, src/index.css, or src/globals.css).")
            _LOGGER.info("Skipping CSS build. Run `scratch revert src/tailwind.css` to create one.")
            state.css_filename = None
            return

        input_css = workspace.cache_dir / "tailwind-input.css"
        input_css.parent.mkdir(parents=True, exist_ok=True)
        input_css.write_text(
            with_source_directives(
                source.read_text(encoding="utf-8"),
                input_css,
                [workspace.pages_dir, workspace.src_dir],
            ),
            encoding="utf-8",
        )

        output_css = workspace.client_compiled_dir / "tailwind.css"
        output_css.parent.mkdir(parents=True, exist_ok=True)
        binary = workspace.node_modules_dir / ".bin" / "tailwindcss"
        args = [str(binary), "-i", str(input_css), "-o", str(output_css)]
        if not state.options.development:
            args.append("--minify")

        _LOGGER.debug("  Running: %s", " ".join(args))
        result = await self._runner(args, cwd=workspace.root_dir)
        if result.returncode != 0:
            raise ToolchainError(
                "tailwindcss",
                f"Tailwind CSS build failed: {result.output}",
                logs=[result.stdout, result.stderr],
            )

        if not output_css.exists():
            # Allow a brief filesystem flush before giving up.
            await asyncio.sleep(0.05)
        if not output_css.exists():
            raise ToolchainError(
                "tailwindcss",
                "Tailwind CSS build completed but output file was not created.\n"
                f"Expected: {output_css}\n"
                f"Command: {' '.join(args)}\n"
                + (f"Tailwind stderr: {result.stderr}\n" if result.stderr else "")
                + (f"Tailwind stdout: {result.stdout}" if result.stdout else ""),
            )

        filename = hashed_css_name(output_css.read_bytes())
        output_css.replace(workspace.client_compiled_dir / filename)
        _LOGGER.debug("  Built %s", filename)
        state.css_filename = filename
