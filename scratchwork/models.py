"""Core data models shared across scratchwork components."""

from __future__ import annotations

import os
import posixpath
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterator, Optional, Set


def strip_extension(relative: str) -> str:
    """Drop the final extension of the last path segment (``a/b.c.mdx`` -> ``a/b.c``)."""
    head, tail = posixpath.split(relative)
    stem, dot, _ = tail.rpartition(".")
    if not dot or not stem:
        return relative
    return posixpath.join(head, stem) if head else stem


class PathEntry:
    """One content source file mapped to a logical route."""

    def __init__(self, source_path: Path | str, base_dir: Path | str) -> None:
        self.source_path = Path(os.path.abspath(source_path))
        self.base_dir = Path(os.path.abspath(base_dir))
        # os.path.relpath keeps ".." segments for sources outside base_dir.
        self.rel_path = Path(os.path.relpath(self.source_path, self.base_dir)).as_posix()
        self.name = strip_extension(self.rel_path)
        self.frontmatter: Optional[Dict[str, Any]] = None

    def artifact_path(self, extension: str, output_root: Path | str) -> Path:
        """Return where an artifact with ``extension`` for this entry lives under ``output_root``."""
        root = Path(os.path.abspath(output_root))
        if posixpath.basename(self.name) == "index":
            return Path(os.path.normpath(root / f"{self.name}{extension}"))
        return Path(os.path.normpath(root / self.name / f"index{extension}"))

    def __repr__(self) -> str:
        return f"PathEntry(name={self.name!r}, source_path={str(self.source_path)!r})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, PathEntry):
            return NotImplemented
        return self.source_path == other.source_path and self.base_dir == other.base_dir

    def __hash__(self) -> int:
        return hash((self.source_path, self.base_dir))


@dataclass
class ComponentMap:
    """Short component name to defining file, plus names defined more than once."""

    components: Dict[str, Path] = field(default_factory=dict)
    conflicts: Set[str] = field(default_factory=set)

    def __contains__(self, name: object) -> bool:
        return name in self.components

    def __iter__(self) -> Iterator[str]:
        return iter(self.components)

    def __len__(self) -> int:
        return len(self.components)

    def get(self, name: str) -> Optional[Path]:
        return self.components.get(name)

    def is_ambiguous(self, name: str) -> bool:
        return name in self.conflicts

    def resolvable(self, name: str) -> bool:
        """True when ``name`` can be auto-imported without ambiguity."""
        return name in self.components and name not in self.conflicts
