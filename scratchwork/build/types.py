"""Shared pipeline types: per-build state and the step base class."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Dict, List, Optional

from ..models import PathEntry
from ..workspace import BuildOptions

if TYPE_CHECKING:  # pragma: no cover
    from ..workspace import BuildWorkspace
    from .bundler import BundleResult


@dataclass
class BuildStats:
    file_count: int = 0
    total_bytes: int = 0


@dataclass
class BuildState:
    """Mutable state threaded through every step of one build."""

    options: BuildOptions
    entries: Dict[str, PathEntry] = field(default_factory=dict)
    client_entry_points: Dict[str, Path] = field(default_factory=dict)
    server_entry_points: Optional[Dict[str, Path]] = None
    css_filename: Optional[str] = None
    client_bundle: Optional["BundleResult"] = None
    server_bundle: Optional["BundleResult"] = None
    rendered_content: Dict[str, str] = field(default_factory=dict)
    js_outputs: Dict[str, Path] = field(default_factory=dict)
    timings: Dict[str, float] = field(default_factory=dict)
    stats: Optional[BuildStats] = None
    failed_step: Optional[str] = None
    skipped: List[str] = field(default_factory=list)


class BuildStep:
    """One named stage of the build pipeline."""

    name: str = ""
    description: str = ""
    progress: Optional[str] = None

    def should_run(self, workspace: "BuildWorkspace", state: BuildState) -> bool:
        return True

    async def execute(self, workspace: "BuildWorkspace", state: BuildState) -> None:
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name={self.name!r})"


__all__ = ["BuildState", "BuildStats", "BuildStep"]
