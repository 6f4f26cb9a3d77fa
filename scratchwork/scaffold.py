"""Project scaffolding: create new projects and revert files to their templates."""

from __future__ import annotations

import json
import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Optional, Sequence

from .errors import ScratchError
from .logging import get_logger
from .templating import TEMPLATES_DIR

PROJECT_TEMPLATES_DIR = TEMPLATES_DIR / "project"
PACKAGE_JSON = "package.json"

BUILD_DEPENDENCIES = (
    "react",
    "react-dom",
    "@mdx-js/react",
    "@mdx-js/mdx",
    "remark-gfm",
    "esbuild",
    "tailwindcss",
    "@tailwindcss/cli",
    "@tailwindcss/typography",
)

_LOGGER = get_logger("scaffold")

ConfirmOverwrite = Callable[[Sequence[str]], bool]


def list_templates() -> List[str]:
    """User-facing template files as POSIX paths relative to the project root."""
    return sorted(
        path.relative_to(PROJECT_TEMPLATES_DIR).as_posix()
        for path in PROJECT_TEMPLATES_DIR.rglob("*")
        if path.is_file() and "__pycache__" not in path.parts
    )


def has_template(relative: str) -> bool:
    return (PROJECT_TEMPLATES_DIR / relative).is_file()


def package_json(name: str) -> str:
    data = {
        "name": name,
        "private": True,
        "scripts": {"dev": "scratch dev", "build": "scratch build"},
        "dependencies": {package: "latest" for package in BUILD_DEPENDENCIES},
    }
    return json.dumps(data, indent=2) + "\n"


def write_package_json(root: Path, *, overwrite: bool = False) -> bool:
    """Write package.json; returns True when a file was written."""
    target = Path(root) / PACKAGE_JSON
    if target.exists() and not overwrite:
        return False
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(package_json(Path(root).resolve().name), encoding="utf-8")
    return True


def materialize_template(relative: str, target: Path) -> None:
    source = PROJECT_TEMPLATES_DIR / relative
    if not source.is_file():
        raise ScratchError(f"Template not found: {relative}")
    target.parent.mkdir(parents=True, exist_ok=True)
    shutil.copyfile(source, target)


def create_project(target: Path, *, include_src: bool = True, include_package: bool = True) -> List[str]:
    """Write the project templates into ``target`` without overwriting; returns created paths."""
    target = Path(target)
    target.mkdir(parents=True, exist_ok=True)
    created: List[str] = []
    for relative in list_templates():
        if not include_src and relative.startswith("src/"):
            continue
        destination = target / relative
        if destination.exists():
            _LOGGER.debug("Skipped %s", relative)
            continue
        materialize_template(relative, destination)
        _LOGGER.debug("Wrote %s", relative)
        created.append(relative)
    if include_package and write_package_json(target):
        created.append(PACKAGE_JSON)
    return created


@dataclass
class RevertResult:
    created: List[str] = field(default_factory=list)
    reverted: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)


def revert(
    path: str,
    *,
    root: Optional[Path] = None,
    force: bool = False,
    confirm: Optional[ConfirmOverwrite] = None,
) -> RevertResult:
    """Restore a template file, or every template under a directory prefix.

    Missing files are created immediately. Existing files are overwritten only
    with ``force`` or when ``confirm`` approves the list.
    """
    root = Path(root) if root is not None else Path.cwd()
    relative = path[2:] if path.startswith("./") else path
    relative = relative.rstrip("/")
    result = RevertResult()

    if relative == PACKAGE_JSON:
        exists = (root / PACKAGE_JSON).exists()
        if exists and not force and not (confirm and confirm([PACKAGE_JSON])):
            result.skipped.append(PACKAGE_JSON)
            return result
        write_package_json(root, overwrite=True)
        (result.reverted if exists else result.created).append(PACKAGE_JSON)
        return result

    if has_template(relative):
        files = [relative]
    else:
        prefix = f"{relative}/"
        files = [name for name in list_templates() if name.startswith(prefix)]
    if not files:
        raise ScratchError(
            f"No template found for: {relative}\n"
            "This command should be run from the project root.\n"
            "Use 'scratch revert --list' to see all available templates."
        )

    existing: List[str] = []
    for name in files:
        if (root / name).exists():
            existing.append(name)
        else:
            materialize_template(name, root / name)
            result.created.append(name)

    if existing:
        if force or (confirm is not None and confirm(existing)):
            for name in existing:
                materialize_template(name, root / name)
                result.reverted.append(name)
        else:
            result.skipped.extend(existing)
    return result


__all__ = [
    "BUILD_DEPENDENCIES",
    "RevertResult",
    "create_project",
    "list_templates",
    "package_json",
    "revert",
    "write_package_json",
]
