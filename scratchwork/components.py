"""Component discovery: maps short component names to the files that define them."""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Dict, Iterator, Mapping, Optional, Sequence

from .logging import get_logger
from .models import ComponentMap

COMPONENT_EXTENSIONS = (".js", ".jsx", ".ts", ".tsx")

_EXCLUDED_DIRS = {"node_modules", "__pycache__"}

_LOGGER = get_logger("components")


def _iter_component_files(directory: Path, extensions: Sequence[str]) -> Iterator[Path]:
    for dirpath, dirnames, filenames in os.walk(directory):
        dirnames[:] = sorted(
            name for name in dirnames if name not in _EXCLUDED_DIRS and not name.startswith(".")
        )
        for filename in sorted(filenames):
            if filename.startswith("."):
                continue
            if os.path.splitext(filename)[1] in extensions:
                yield Path(dirpath) / filename


def component_name(path: Path) -> str:
    """Short component name: the basename without its final extension."""
    return path.name.rsplit(".", 1)[0] if "." in path.name else path.name


def scan_directory(
    directory: Path, extensions: Sequence[str] = COMPONENT_EXTENSIONS
) -> ComponentMap:
    """Catalogue component files in one tree; repeated basenames are conflicts."""
    result = ComponentMap()
    if not directory.is_dir():
        return result
    for path in _iter_component_files(directory, extensions):
        name = component_name(path)
        if name in result.components:
            result.conflicts.add(name)
        result.components[name] = path.resolve()
    return result


def materialize(content: bytes, target: Path) -> Path:
    """Write ``content`` to ``target`` unless an identical file is already there."""
    try:
        if target.read_bytes() == content:
            return target
    except FileNotFoundError:
        pass
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_bytes(content)
    return target


def resolve(
    scan_dirs: Sequence[Path],
    fallback_defaults: Mapping[str, Optional[bytes]],
    cache_dir: Path,
    *,
    extensions: Sequence[str] = COMPONENT_EXTENSIONS,
    fallback_suffix: str = ".jsx",
) -> ComponentMap:
    """Merge component scans in priority order and fill in fallback roles.

    A name found in an earlier directory keeps its slot; the later
    occurrence only marks the name as conflicting. Roles still missing after
    the merge are materialized from ``fallback_defaults`` under
    ``cache_dir``; a role mapped to ``None`` has no default and stays absent.
    """
    merged = ComponentMap()
    for directory in scan_dirs:
        scanned = scan_directory(directory, extensions)
        for name, path in scanned.components.items():
            if name in merged.components:
                merged.conflicts.add(name)
            else:
                merged.components[name] = path
        merged.conflicts.update(scanned.conflicts)

    for role, content in fallback_defaults.items():
        if role in merged.components:
            continue
        if content is None:
            _LOGGER.debug("No %s component found and no default available", role)
            continue
        target = materialize(content, cache_dir / f"{role}{fallback_suffix}")
        merged.components[role] = target.resolve()
        _LOGGER.debug("Using default %s component", role)

    if merged.conflicts:
        _LOGGER.debug("Component name conflicts: %s", ", ".join(sorted(merged.conflicts)))
    return merged


_LINE_COMMENT_RE = re.compile(r"//.*$", re.MULTILINE)
_BLOCK_COMMENT_RE = re.compile(r"/\*[\s\S]*?\*/")
_DEFAULT_EXPORT_PATTERNS = (
    re.compile(r"export\s+default\s+"),
    re.compile(r"export\s*\{[^}]*\bas\s+default\b"),
    re.compile(r"export\s*\{\s*default\s*\}\s*from"),
)


def has_default_export(source: str) -> bool:
    """Detect whether a module's source declares a default export."""
    stripped = _BLOCK_COMMENT_RE.sub("", _LINE_COMMENT_RE.sub("", source))
    return any(pattern.search(stripped) for pattern in _DEFAULT_EXPORT_PATTERNS)


class DefaultExportCache:
    """Memoises :func:`has_default_export` per component file for one build."""

    def __init__(self) -> None:
        self._entries: Dict[Path, bool] = {}

    def check(self, path: Path) -> bool:
        if path not in self._entries:
            try:
                source = path.read_text(encoding="utf-8")
            except OSError:
                self._entries[path] = False
            else:
                self._entries[path] = has_default_export(source)
        return self._entries[path]

    def clear(self) -> None:
        self._entries.clear()


__all__ = [
    "COMPONENT_EXTENSIONS",
    "DefaultExportCache",
    "component_name",
    "has_default_export",
    "materialize",
    "resolve",
    "scan_directory",
]
