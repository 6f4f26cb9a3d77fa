"""CLI entrypoints for scratch commands."""

from __future__ import annotations

import argparse
import asyncio
import sys
import time
from pathlib import Path
from typing import Sequence

from .build import build
from .config import load_config
from .errors import DependencyRestart, ScratchError, relative_display
from .logging import configure_logging, get_logger
from .scaffold import PACKAGE_JSON, create_project, list_templates, revert
from .server import run_dev, run_preview
from .workspace import BuildOptions, BuildWorkspace

_LOGGER = get_logger("cli")


def _add_verbose_option(
    parser: argparse.ArgumentParser, *, suppress_default: bool = False
) -> None:
    kwargs: dict[str, object] = {
        "action": "store_true",
        "help": "Increase log verbosity for troubleshooting.",
    }
    if suppress_default:
        kwargs["default"] = argparse.SUPPRESS
    else:
        kwargs["default"] = False
    parser.add_argument(
        "-v",
        "--verbose",
        **kwargs,
    )


def _add_path_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "path",
        nargs="?",
        default=".",
        help="Path to the project root (defaults to current directory).",
    )


def _add_server_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--port", type=int, default=None, help="Preferred port for the server.")
    parser.add_argument(
        "--no-open",
        dest="open_browser",
        action="store_false",
        default=None,
        help="Do not open a browser window.",
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="scratch",
        description="Build static sites from Markdown/MDX pages and React components.",
    )
    _add_verbose_option(parser)
    parser.add_argument(
        "--log-file",
        type=Path,
        default=None,
        help="Also write debug logs for this run to a file.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    build_parser = subparsers.add_parser("build", help="Build the site into the output directory.")
    _add_verbose_option(build_parser, suppress_default=True)
    _add_path_argument(build_parser)
    build_parser.add_argument(
        "--ssg",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Pre-render pages to static HTML (default: on).",
    )
    build_parser.add_argument("--out-dir", default=None, help="Output directory (default: dist).")
    build_parser.add_argument("--base", default=None, help="Public base path, e.g. /docs.")
    build_parser.add_argument(
        "--test-base",
        action="store_true",
        default=None,
        help="Nest the output under the base path so it can be served locally.",
    )
    build_parser.add_argument(
        "--strict",
        action="store_true",
        default=None,
        help="Disable layout wrapping, component auto-import and isolation.",
    )
    build_parser.add_argument(
        "--development",
        action="store_true",
        default=None,
        help="Skip minification and emit sourcemaps.",
    )

    dev_parser = subparsers.add_parser("dev", help="Serve the site with live reload.")
    _add_verbose_option(dev_parser, suppress_default=True)
    _add_path_argument(dev_parser)
    _add_server_options(dev_parser)

    clean_parser = subparsers.add_parser("clean", help="Remove the output and cache directories.")
    _add_verbose_option(clean_parser, suppress_default=True)
    _add_path_argument(clean_parser)

    preview_parser = subparsers.add_parser("preview", help="Serve an existing build.")
    _add_verbose_option(preview_parser, suppress_default=True)
    _add_path_argument(preview_parser)
    _add_server_options(preview_parser)

    create_parser = subparsers.add_parser("create", help="Create a new project.")
    _add_verbose_option(create_parser, suppress_default=True)
    _add_path_argument(create_parser)
    create_parser.add_argument(
        "--no-src", dest="include_src", action="store_false", help="Skip the src/ directory."
    )
    create_parser.add_argument(
        "--no-package",
        dest="include_package",
        action="store_false",
        help="Skip generating package.json.",
    )

    revert_parser = subparsers.add_parser(
        "revert", help="Restore a file or directory to its template version."
    )
    _add_verbose_option(revert_parser, suppress_default=True)
    revert_parser.add_argument("file", nargs="?", default=None, help="File or directory to revert.")
    revert_parser.add_argument("--list", action="store_true", help="List available template files.")
    revert_parser.add_argument(
        "--force", action="store_true", help="Overwrite existing files without asking."
    )

    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entrypoint for scratch commands."""
    parser = _build_parser()
    raw_args = list(sys.argv[1:] if argv is None else argv)
    args = parser.parse_args(raw_args)

    verbose = bool(args.verbose)
    configure_logging(verbose=verbose, log_file=args.log_file)

    try:
        if args.command == "build":
            _run_build(args, raw_args)
        elif args.command == "dev":
            _run_dev(args, raw_args)
        elif args.command == "preview":
            _run_preview(args)
        elif args.command == "clean":
            _run_clean(args)
        elif args.command == "create":
            _run_create(args)
        elif args.command == "revert":
            _run_revert(args)
        else:  # pragma: no cover - argparse enforces choices
            parser.exit(1, "Unknown command\n")
    except DependencyRestart as exc:
        sys.exit(exc.returncode)
    except ScratchError as exc:
        _LOGGER.debug("scratch %s failed", args.command, exc_info=True)
        hint = "" if verbose else "\nRun with --verbose for more details."
        parser.exit(1, f"scratch {args.command} failed: {exc}{hint}\n")
    except KeyboardInterrupt:
        parser.exit(130, "\n")


def _options(args: argparse.Namespace, raw_args: Sequence[str] = (), **overrides: object) -> BuildOptions:
    config = load_config(Path(args.path))
    options = BuildOptions.from_config(config, **overrides)
    options.argv = list(raw_args)
    return options


def _run_build(args: argparse.Namespace, raw_args: Sequence[str]) -> None:
    options = _options(
        args,
        raw_args,
        ssg=args.ssg,
        out_dir=args.out_dir,
        base=args.base,
        test_base=args.test_base,
        strict=args.strict,
        development=args.development,
    )
    started = time.perf_counter()
    state = asyncio.run(build(options))
    elapsed = time.perf_counter() - started
    pages = len(state.entries)
    summary = f"Built {pages} page{'s' if pages != 1 else ''} in {elapsed:.2f}s"
    if state.stats is not None:
        summary += f" ({state.stats.file_count} files, {_format_size(state.stats.total_bytes)})"
    print(summary)


def _run_dev(args: argparse.Namespace, raw_args: Sequence[str]) -> None:
    config = load_config(Path(args.path))
    options = BuildOptions.from_config(config)
    options.argv = list(raw_args)
    open_browser = config.server.open_browser if args.open_browser is None else args.open_browser
    asyncio.run(
        run_dev(
            options,
            port=args.port or config.server.port,
            open_in_browser=open_browser,
            debounce_ms=config.server.debounce_ms,
            extra_watch_paths=config.extra_watch_paths,
        )
    )


def _run_preview(args: argparse.Namespace) -> None:
    config = load_config(Path(args.path))
    options = BuildOptions.from_config(config)
    open_browser = config.server.open_browser if args.open_browser is None else args.open_browser
    run_preview(options, port=args.port or config.server.preview_port, open_in_browser=open_browser)


def _run_clean(args: argparse.Namespace) -> None:
    workspace = BuildWorkspace(_options(args))
    removed = workspace.clean()
    if not removed:
        print("Nothing to clean")
        return
    names = " and ".join(f"{relative_display(path, workspace.root_dir)}/" for path in removed)
    print(f"Cleaned {names}")


def _run_create(args: argparse.Namespace) -> None:
    target = Path(args.path)
    created = create_project(
        target, include_src=args.include_src, include_package=args.include_package
    )
    if not created:
        print("No files created (project already exists)")
        return
    where = "" if args.path == "." else f" in {args.path}"
    print(f"Created a new scratch project{where}:")
    for name in created:
        print(f"  {name}")
    print("\nStart the development server:")
    if args.path != ".":
        print(f"  cd {args.path}")
    print("  scratch dev")


def _run_revert(args: argparse.Namespace) -> None:
    if args.list:
        print("Available template files:")
        for name in list_templates() + [PACKAGE_JSON]:
            print(f"  {name}")
        return
    if not args.file:
        raise ScratchError(
            "Please provide a file or directory path to revert, or use --list to see available templates."
        )
    result = revert(args.file, force=args.force, confirm=_confirm_overwrite)
    for name in result.created:
        print(f"Created {name}")
    for name in result.reverted:
        print(f"Reverted {name}")
    if result.skipped:
        count = len(result.skipped)
        print(f"Skipped {count} existing file{'s' if count != 1 else ''}.")


def _confirm_overwrite(files: Sequence[str]) -> bool:
    print("The following files will be overwritten:")
    for name in files:
        print(f"  {name}")
    try:
        answer = input("Overwrite these files? [Y/n] ")
    except EOFError:
        return False
    return answer.strip().lower() in {"", "y", "yes"}


def _format_size(size: int) -> str:
    value = float(size)
    for unit in ("B", "KB", "MB"):
        if value < 1024 or unit == "MB":
            return f"{value:.0f} {unit}" if unit == "B" else f"{value:.1f} {unit}"
        value /= 1024
    return f"{value:.1f} MB"  # pragma: no cover


if __name__ == "__main__":
    main(sys.argv[1:])
