"""Detect sources that would write the same output file or URL."""

from __future__ import annotations

import os
import posixpath
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterator, List

from ...errors import PathConflictError
from ...models import strip_extension
from ..types import BuildState, BuildStep

CODE_FILE_EXTENSIONS = (".js", ".jsx", ".ts", ".tsx", ".mjs", ".cjs")


@dataclass
class PathConflict:
    dist_path: str
    sources: List[str]


@dataclass
class UrlConflict:
    url_path: str
    dist_paths: List[str]


@dataclass
class ConflictResult:
    path_conflicts: List[PathConflict] = field(default_factory=list)
    url_conflicts: List[UrlConflict] = field(default_factory=list)

    def __bool__(self) -> bool:
        return bool(self.path_conflicts or self.url_conflicts)


def compute_url_path(dist_path: str) -> str:
    """URL a dist file is served at (``foo/index.html`` and ``foo.html`` both serve ``/foo``)."""
    normalized = dist_path.replace("\\", "/")
    if normalized == "index.html":
        return "/"
    if normalized.endswith("/index.html"):
        return "/" + normalized[: -len("/index.html")]
    if normalized.endswith(".html"):
        return "/" + normalized[: -len(".html")]
    return "/" + normalized


def static_copy_path(rel_path: str) -> str:
    if rel_path.lower().endswith(".mdx"):
        return rel_path[:-4] + ".md"
    return rel_path


def html_output_path(rel_path: str) -> str:
    name = strip_extension(rel_path)
    if posixpath.basename(name) == "index":
        return f"{name}.html"
    return f"{name}/index.html"


def _iter_files(directory: Path) -> Iterator[str]:
    if not directory.is_dir():
        return
    for dirpath, dirnames, filenames in os.walk(directory):
        dirnames[:] = sorted(name for name in dirnames if name != "node_modules")
        for filename in sorted(filenames):
            yield Path(os.path.relpath(Path(dirpath) / filename, directory)).as_posix()


def detect_conflicts(pages_dir: Path, static_dir: Path) -> ConflictResult:
    """Two passes: source to dist-path collisions, then dist-path to URL collisions."""
    dist_paths: Dict[str, List[str]] = {}

    def add(dist_path: str, source: str) -> None:
        dist_paths.setdefault(dist_path.replace("\\", "/"), []).append(source)

    for rel_path in _iter_files(pages_dir):
        extension = posixpath.splitext(rel_path)[1].lower()
        if extension in CODE_FILE_EXTENSIONS:
            continue
        if extension in (".md", ".mdx"):
            add(html_output_path(rel_path), f"pages/{rel_path} (HTML)")
            add(static_copy_path(rel_path), f"pages/{rel_path} (static copy)")
        else:
            add(rel_path, f"pages/{rel_path}")

    for rel_path in _iter_files(static_dir):
        add(rel_path, f"public/{rel_path}")

    result = ConflictResult()
    urls: Dict[str, List[str]] = {}
    for dist_path, sources in dist_paths.items():
        if len(sources) > 1:
            result.path_conflicts.append(PathConflict(dist_path, sources))
        urls.setdefault(compute_url_path(dist_path), []).append(dist_path)

    for url_path, paths in urls.items():
        if len(paths) > 1:
            result.url_conflicts.append(UrlConflict(url_path, paths))
    return result


def format_conflicts(result: ConflictResult) -> str:
    lines = ["Build failed: Path conflicts detected", ""]
    for conflict in result.path_conflicts:
        lines.append(f"  dist/{conflict.dist_path} is produced by multiple sources:")
        lines.extend(f"    - {source}" for source in conflict.sources)
        lines.append("")
    for conflict in result.url_conflicts:
        lines.append(f"  URL {conflict.url_path} is served by multiple files:")
        lines.extend(f"    - dist/{path}" for path in conflict.dist_paths)
        lines.append("")
    lines.append("Remove or rename conflicting files to continue.")
    return "\n".join(lines)


class CheckConflictsStep(BuildStep):
    name = "check_conflicts"
    description = "Check for path conflicts"

    async def execute(self, workspace, state: BuildState) -> None:
        result = detect_conflicts(workspace.pages_dir, workspace.static_dir)
        if result:
            raise PathConflictError(format_conflicts(result))
