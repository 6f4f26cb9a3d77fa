"""Jinja2 rendering for generated entry files and HTML pages."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Dict, Iterable, Mapping, Optional

from jinja2 import Environment, FileSystemLoader, StrictUndefined, TemplateNotFound

from .errors import ScratchError

TEMPLATES_DIR = Path(__file__).with_name("templates")
BUILD_TEMPLATES_DIR = TEMPLATES_DIR / "_build"


def relative_import(target: Path, path: Path) -> str:
    """Express ``path`` as an import specifier relative to ``target``'s directory."""
    relative = os.path.relpath(path, target.parent).replace(os.sep, "/")
    if not relative.startswith("."):
        relative = f"./{relative}"
    return relative


def create_environment(search_paths: Iterable[Path]) -> Environment:
    directories = [str(path) for path in search_paths if path.is_dir()]
    return Environment(
        loader=FileSystemLoader(directories),
        undefined=StrictUndefined,
        keep_trailing_newline=True,
        autoescape=False,
    )


class TemplateRenderer:
    """Renders build templates, preferring project overrides under ``_build/``."""

    def __init__(self, override_dir: Optional[Path] = None) -> None:
        search = [override_dir] if override_dir is not None else []
        search.append(BUILD_TEMPLATES_DIR)
        self._env = create_environment(search)

    def render(
        self,
        name: str,
        target: Path,
        variables: Optional[Mapping[str, Any]] = None,
        import_paths: Optional[Mapping[str, Path]] = None,
    ) -> Path:
        """Render template ``name`` into ``target`` and return ``target``."""
        try:
            template = self._env.get_template(name)
        except TemplateNotFound as exc:
            raise ScratchError(f"Template not found: {name}") from exc
        context: Dict[str, Any] = dict(variables or {})
        for key, path in (import_paths or {}).items():
            context[key] = relative_import(target, path)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(template.render(**context), encoding="utf-8")
        return target

    def render_string(self, name: str, variables: Optional[Mapping[str, Any]] = None) -> str:
        try:
            template = self._env.get_template(name)
        except TemplateNotFound as exc:
            raise ScratchError(f"Template not found: {name}") from exc
        return template.render(**dict(variables or {}))


__all__ = [
    "BUILD_TEMPLATES_DIR",
    "TEMPLATES_DIR",
    "TemplateRenderer",
    "create_environment",
    "relative_import",
]
