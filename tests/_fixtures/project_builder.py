"""Helper utilities for constructing temporary scratch projects in tests."""

from __future__ import annotations

import textwrap
from pathlib import Path
from typing import Mapping

from scratchwork.workspace import BuildOptions, BuildWorkspace


class ProjectBuilder:
    """Utility for writing files into a throwaway project and building workspaces for it."""

    def __init__(self, tmp_path: Path) -> None:
        self.root = tmp_path / "project"
        self.root.mkdir()

    def write(self, files: Mapping[str, str]) -> None:
        """Write `path -> contents` entries into the project."""
        for relative, content in files.items():
            path = self.root / relative
            path.parent.mkdir(parents=True, exist_ok=True)
            normalised = textwrap.dedent(content).lstrip("\n")
            path.write_text(normalised, encoding="utf-8")

    def install(self) -> None:
        """Pretend the JavaScript dependencies are installed so no package manager runs."""
        (self.root / "node_modules").mkdir(exist_ok=True)

    def options(self, **overrides: object) -> BuildOptions:
        return BuildOptions(root=self.root, **overrides)  # type: ignore[arg-type]

    def workspace(self, **overrides: object) -> BuildWorkspace:
        return BuildWorkspace(self.options(**overrides))

    def path(self, relative: str = "") -> Path:
        """Return a path inside the project."""
        return self.root / relative if relative else self.root


__all__ = ["ProjectBuilder"]
