"""Build workspace: resolved directories plus build-scoped caches."""

from __future__ import annotations

import errno
import os
import shutil
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

from .components import COMPONENT_EXTENSIONS, DefaultExportCache, materialize, resolve
from .config import PathsConfig, ScratchConfig
from .content.preprocess import PAGE_WRAPPER, PreprocessErrors
from .errors import MissingContentDirError
from .logging import get_logger
from .models import ComponentMap, PathEntry
from .templating import BUILD_TEMPLATES_DIR, TemplateRenderer

CONTENT_EXTENSIONS = (".md", ".mdx")
TAILWIND_CANDIDATES = ("tailwind.css", "index.css", "globals.css")

_LOGGER = get_logger("workspace")
_RETRYABLE_ERRNOS = {errno.EBUSY, errno.ENOTEMPTY, errno.EACCES, errno.EPERM}


def normalize_base(base: Optional[str]) -> str:
    """Return ``base`` with a leading slash and no trailing slash ("" for root)."""
    if not base or base == "/":
        return ""
    normalized = base if base.startswith("/") else f"/{base}"
    return normalized.rstrip("/")


@dataclass
class BuildOptions:
    """Effective options for one build."""

    root: Path
    paths: PathsConfig = field(default_factory=PathsConfig)
    ssg: bool = True
    base: str = ""
    test_base: bool = False
    strict: bool = False
    development: bool = False
    package_manager: str = "bun"
    restart_after_install: bool = False
    argv: List[str] = field(default_factory=list)

    @classmethod
    def from_config(cls, config: ScratchConfig, **overrides: object) -> "BuildOptions":
        """Merge CLI overrides (ignoring ``None`` values) onto ``config``."""
        options = cls(
            root=config.root,
            paths=PathsConfig(**vars(config.paths)),
            ssg=config.build.ssg,
            base=config.build.base,
            strict=config.build.strict,
            development=config.build.development,
            package_manager=config.build.package_manager,
            restart_after_install=config.build.restart_after_install,
        )
        out_dir = overrides.pop("out_dir", None)
        if out_dir is not None:
            options.paths.out = str(out_dir)
        for key, value in overrides.items():
            if value is None:
                continue
            if not hasattr(options, key):
                raise TypeError(f"Unknown build option: {key}")
            setattr(options, key, value)
        return options

    @property
    def normalized_base(self) -> str:
        return normalize_base(self.base)


def remove_tree_with_retry(path: Path, *, attempts: int = 5, delay: float = 0.1) -> None:
    """Remove ``path`` recursively, retrying transient permission/busy failures."""
    for attempt in range(1, attempts + 1):
        try:
            if path.is_dir() and not path.is_symlink():
                shutil.rmtree(path)
            else:
                path.unlink()
            return
        except FileNotFoundError:
            return
        except OSError as exc:
            retryable = isinstance(exc, PermissionError) or exc.errno in _RETRYABLE_ERRNOS
            if not retryable or attempt == attempts:
                raise
            wait = delay * (2 ** (attempt - 1))
            _LOGGER.debug("Removing %s failed (%s), retrying in %.2fs", path, exc, wait)
            time.sleep(wait)


class BuildWorkspace:
    """Owns the output and cache directories of one project.

    Entries, the component map and materialized defaults are memoised here
    and always invalidated together so a rebuild never mixes stale paths.
    """

    def __init__(self, options: BuildOptions) -> None:
        self.options = options
        paths = options.paths
        self.root_dir = Path(options.root).expanduser().resolve()
        self.cache_dir = (self.root_dir / paths.cache).resolve()
        self.out_dir = (self.root_dir / paths.out).resolve()
        build_dir = self.out_dir
        base = options.normalized_base
        if options.test_base and base:
            build_dir = self.out_dir / base.lstrip("/")
        self.build_dir = build_dir
        self.src_dir = (self.root_dir / paths.src).resolve()
        self.pages_dir = (self.root_dir / paths.pages).resolve()
        self.static_dir = (self.root_dir / paths.static).resolve()
        self.node_modules_dir = self.root_dir / "node_modules"

        self.preprocess_errors = PreprocessErrors()
        self.default_exports = DefaultExportCache()
        self._entries: Optional[List[PathEntry]] = None
        self._component_map: Optional[ComponentMap] = None
        self._materialized: Dict[str, Path] = {}
        self._renderer: Optional[TemplateRenderer] = None

    @property
    def client_src_dir(self) -> Path:
        return self.cache_dir / "client-src"

    @property
    def client_compiled_dir(self) -> Path:
        return self.cache_dir / "client-compiled"

    @property
    def server_src_dir(self) -> Path:
        return self.cache_dir / "server-src"

    @property
    def server_compiled_dir(self) -> Path:
        return self.cache_dir / "server-compiled"

    @property
    def embedded_templates_dir(self) -> Path:
        return self.cache_dir / "embedded-templates"

    @property
    def overrides_dir(self) -> Path:
        return self.root_dir / "_build"

    def invalidate(self) -> None:
        """Drop every build-scoped cache at once."""
        self._entries = None
        self._component_map = None
        self._materialized.clear()
        self.default_exports.clear()
        self.preprocess_errors.drain()

    def reset(self) -> None:
        """Recreate the output and cache directories, then invalidate caches."""
        self.reset_output_dir()
        self.reset_cache_dir()

    def reset_output_dir(self) -> None:
        _LOGGER.debug("Removing build directory: %s", self.out_dir)
        remove_tree_with_retry(self.out_dir)
        self.build_dir.mkdir(parents=True, exist_ok=True)

    def reset_cache_dir(self) -> None:
        _LOGGER.debug("Removing cache directory: %s", self.cache_dir)
        if self.cache_dir.is_dir():
            for child in self.cache_dir.iterdir():
                if child.name == "node_modules":
                    continue
                remove_tree_with_retry(child)
        self.cache_dir.mkdir(parents=True, exist_ok=True)
        self.invalidate()

    def clean(self) -> List[Path]:
        """Delete the output and cache directories outright; return the ones that existed."""
        removed = []
        for path in (self.out_dir, self.cache_dir):
            if path.exists():
                _LOGGER.debug("Removing %s", path)
                remove_tree_with_retry(path)
                removed.append(path)
        self.invalidate()
        return removed

    def entries(self) -> List[PathEntry]:
        """Content entries under the pages directory, sorted by name."""
        if self._entries is None:
            if not self.pages_dir.is_dir():
                raise MissingContentDirError(f"Pages directory not found: {self.pages_dir}")
            by_name: Dict[str, PathEntry] = {}
            for dirpath, dirnames, filenames in os.walk(self.pages_dir):
                dirnames[:] = sorted(name for name in dirnames if name != "node_modules")
                for filename in sorted(filenames):
                    if os.path.splitext(filename)[1].lower() in CONTENT_EXTENSIONS:
                        entry = PathEntry(Path(dirpath) / filename, self.pages_dir)
                        by_name[entry.name] = entry
            self._entries = [by_name[name] for name in sorted(by_name)]
        return self._entries

    def component_map(self) -> ComponentMap:
        if self._component_map is None:
            self._component_map = resolve(
                [self.src_dir, self.pages_dir],
                {PAGE_WRAPPER: self._embedded_bytes("PageWrapper.jsx")},
                self.cache_dir / "components",
                extensions=COMPONENT_EXTENSIONS,
            )
        return self._component_map

    def page_wrapper_path(self) -> Optional[Path]:
        return self.component_map().get(PAGE_WRAPPER)

    def markdown_components_dir(self) -> Optional[Path]:
        directory = self.src_dir / "markdown"
        return directory if directory.is_dir() else None

    def markdown_components_path(self) -> Path:
        """Module exporting ``MDXComponents``; an empty default when the project has none."""
        directory = self.markdown_components_dir()
        if directory is not None:
            return directory
        return self.materialize_embedded("empty-mdx-components.ts")

    def tailwind_source(self) -> Optional[Path]:
        for candidate in TAILWIND_CANDIDATES:
            path = self.src_dir / candidate
            if path.is_file():
                return path
        return None

    def build_template(self, name: str) -> Path:
        """Project override under ``_build/`` if present, else the embedded template."""
        override = self.overrides_dir / name
        if override.is_file():
            return override
        return BUILD_TEMPLATES_DIR / name

    def client_template(self) -> Path:
        return self.build_template("entry-client.tsx")

    def server_template(self) -> Path:
        return self.build_template("entry-server.jsx")

    def renderer(self) -> TemplateRenderer:
        if self._renderer is None:
            self._renderer = TemplateRenderer(self.overrides_dir)
        return self._renderer

    def materialize_embedded(self, name: str) -> Path:
        """Write an embedded build file into the cache once per build."""
        if name not in self._materialized:
            target = self.embedded_templates_dir / name
            self._materialized[name] = materialize(self._embedded_bytes(name), target)
        return self._materialized[name]

    @staticmethod
    def _embedded_bytes(name: str) -> bytes:
        return (BUILD_TEMPLATES_DIR / name).read_bytes()


__all__ = [
    "BuildOptions",
    "BuildWorkspace",
    "normalize_base",
    "remove_tree_with_retry",
]
