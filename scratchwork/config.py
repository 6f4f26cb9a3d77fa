"""Configuration loading for scratch projects (.scratch.yml)."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import yaml

from .errors import ConfigError

CONFIG_FILENAME = ".scratch.yml"

PACKAGE_MANAGERS = ("bun", "npm", "pnpm", "yarn")


@dataclass
class PathsConfig:
    """Project directory layout, relative to the project root."""

    pages: str = "pages"
    src: str = "src"
    static: str = "public"
    out: str = "dist"
    cache: str = ".scratch/cache"


@dataclass
class BuildConfig:
    """Build pipeline settings."""

    ssg: bool = True
    base: str = ""
    strict: bool = False
    development: bool = False
    package_manager: str = "bun"
    restart_after_install: bool = False


@dataclass
class ServerConfig:
    """Dev and preview server settings."""

    port: int = 5173
    preview_port: int = 4173
    debounce_ms: int = 100
    open_browser: bool = True


@dataclass
class ScratchConfig:
    """Represents the settings defined in .scratch.yml."""

    root: Path
    paths: PathsConfig = field(default_factory=PathsConfig)
    build: BuildConfig = field(default_factory=BuildConfig)
    server: ServerConfig = field(default_factory=ServerConfig)
    extra_watch_paths: List[str] = field(default_factory=list)


def load_config(config_path: Path) -> ScratchConfig:
    """Load configuration from disk; missing files yield defaults."""
    config_file = _resolve_config_path(config_path)
    root = config_file.parent.resolve()

    if not config_file.exists():
        return ScratchConfig(root=root)

    data = _read_config(config_file)
    if not isinstance(data, dict):
        raise ConfigError(f"{CONFIG_FILENAME} must contain a mapping at the root")

    paths = PathsConfig()
    paths_data = _as_dict(data.get("paths"))
    if paths_data:
        paths.pages = _as_str(paths_data.get("pages")) or paths.pages
        paths.src = _as_str(paths_data.get("src")) or paths.src
        paths.static = _as_str(paths_data.get("static")) or paths.static
        paths.out = _as_str(paths_data.get("out")) or paths.out
        paths.cache = _as_str(paths_data.get("cache")) or paths.cache

    build = BuildConfig()
    build_data = _as_dict(data.get("build"))
    if build_data:
        ssg = _as_bool(build_data.get("ssg"))
        build.ssg = build.ssg if ssg is None else ssg
        build.base = _as_str(build_data.get("base")) or ""
        build.strict = bool(_as_bool(build_data.get("strict")))
        build.development = bool(_as_bool(build_data.get("development")))
        manager = _as_str(build_data.get("package_manager"))
        if manager is not None:
            if manager not in PACKAGE_MANAGERS:
                raise ConfigError(
                    f"Unsupported package_manager {manager!r}; "
                    f"expected one of {', '.join(PACKAGE_MANAGERS)}"
                )
            build.package_manager = manager
        build.restart_after_install = bool(_as_bool(build_data.get("restart_after_install")))

    server = ServerConfig()
    server_data = _as_dict(data.get("server"))
    if server_data:
        server.port = _as_port(server_data.get("port"), server.port)
        server.preview_port = _as_port(server_data.get("preview_port"), server.preview_port)
        debounce = _as_int(server_data.get("debounce_ms"))
        if debounce is not None and debounce >= 0:
            server.debounce_ms = debounce
        open_browser = _as_bool(server_data.get("open"))
        if open_browser is not None:
            server.open_browser = open_browser

    return ScratchConfig(
        root=root,
        paths=paths,
        build=build,
        server=server,
        extra_watch_paths=_as_str_list(data.get("watch")),
    )


def _resolve_config_path(config_path: Path) -> Path:
    config_path = config_path.expanduser()
    if config_path.is_dir():
        return (config_path / CONFIG_FILENAME).resolve()
    if config_path.name != CONFIG_FILENAME:
        return (config_path.parent / CONFIG_FILENAME).resolve()
    return config_path.resolve()


def _read_config(path: Path) -> Dict[str, Any]:
    text = path.read_text(encoding="utf-8")
    if not text.strip():
        return {}
    try:
        loaded = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse {path.name}: {exc}") from exc
    return loaded or {}


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_str(value: Any) -> Optional[str]:
    return str(value) if isinstance(value, (str, int, float)) and not isinstance(value, bool) else None


def _as_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value)
        except ValueError:
            return None
    return None


def _as_port(value: Any, default: int) -> int:
    port = _as_int(value)
    if port is None:
        return default
    if not 1 <= port <= 65535:
        raise ConfigError(f"Invalid port number: {value!r}. Port must be between 1 and 65535.")
    return port


def _as_bool(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"true", "yes", "1"}:
            return True
        if lowered in {"false", "no", "0"}:
            return False
    return None


def _as_str_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, Sequence):
        return [str(item) for item in value if isinstance(item, (str, int, float))]
    return []
