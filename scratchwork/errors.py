"""Error types raised by the build pipeline and helpers for user-facing messages."""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional, Sequence, Tuple


class ScratchError(RuntimeError):
    """Base class for every error surfaced to scratch users."""


class ConfigError(ScratchError):
    """Raised when the configuration file cannot be parsed."""


class ContentError(ScratchError):
    """Problems in the user's content tree."""


class MissingContentDirError(ContentError):
    """Raised when the pages directory does not exist."""


class NoEntriesError(ContentError):
    """Raised when the pages directory contains no Markdown/MDX files."""


class AmbiguousComponentError(ContentError):
    """A content file invokes a component whose name maps to several files."""

    def __init__(self, content_path: str, names: Sequence[str]) -> None:
        self.content_path = content_path
        self.names = list(names)
        quoted = '", "'.join(self.names)
        super().__init__(
            f'Ambiguous component import in {content_path}: "{quoted}" '
            "exists in multiple files in src/ or pages/. "
            "Add an explicit import to specify which one to use."
        )


class PreprocessingError(ContentError):
    """Aggregates errors collected while preprocessing content files."""

    def __init__(self, errors: Sequence[Exception]) -> None:
        self.errors = list(errors)
        details = "\n".join(str(error) for error in self.errors)
        super().__init__(f"MDX preprocessing failed:\n{details}")


class PathConflictError(ContentError):
    """Several sources would write the same output path or URL."""


class ToolchainError(ScratchError):
    """An external tool exited unsuccessfully."""

    def __init__(self, tool: str, message: str, logs: Sequence[str] = ()) -> None:
        self.tool = tool
        self.logs = list(logs)
        super().__init__(message)


class BundleError(ToolchainError):
    """The bundler reported failure."""


class ReconciliationError(ScratchError):
    """A content entry has no matching bundler output."""


class RenderError(ScratchError):
    """Server-side rendering of one or more entries failed."""


class BuildError(ScratchError):
    """A build step failed; the message is already formatted for users."""

    def __init__(self, message: str, *, step: Optional[str] = None, cause: Optional[BaseException] = None) -> None:
        self.step = step
        self.cause = cause
        super().__init__(message)


class DependencyRestart(Exception):
    """Signals that the build was re-executed in a subprocess and the caller should exit."""

    def __init__(self, returncode: int) -> None:
        self.returncode = returncode
        super().__init__(f"build re-executed in subprocess (exit code {returncode})")


@dataclass
class SourceLocation:
    """Best-effort location of an error inside the user's sources."""

    file_path: Optional[str] = None
    line: Optional[int] = None
    column: Optional[int] = None
    line_text: Optional[str] = None
    jsx_element: Optional[str] = None
    line_applies_to_source: bool = False
    render_entry_path: Optional[str] = None
    render_entry_line: Optional[int] = None

    def is_empty(self) -> bool:
        return not (
            self.file_path
            or self.line is not None
            or self.line_text
            or self.jsx_element
        )


_RENDER_FAILURE_RE = re.compile(r"Failed to render\s+([^\n:]+\.(?:mdx|md))\s*:")
_SOURCE_POSITION_RE = re.compile(r"([^\s:]+\.(?:mdx|md)):(\d+):(\d+)")
_LINE_PREVIEW_RE = re.compile(r"\n\s*(\d+)\s*\|\s*(.+)$", re.MULTILINE)
_RENDER_ENTRY_RE = re.compile(r"Render entry:\s*([^\s:]+)(?::(\d+))?")
_COMPILED_PATH_RE = re.compile(r"(?:server-compiled|client-compiled)[\\/](.+?)[\\/]index\.js")
_LINE_TAG_RE = re.compile(r"</?([A-Za-z][\w.-]*)\b")
_CLOSING_TAG_RE = re.compile(r"Expected corresponding JSX closing tag for <([A-Za-z][\w.-]*)>")
_RENDER_METHOD_RE = re.compile(r"Check the render method of `([^`]+)`")
_ADDITIONAL_RENDER_RE = re.compile(r"\n\s*Additional render errors \(\d+\):[\s\S]*$")


def extract_source_location(message: str) -> Optional[SourceLocation]:
    """Pull file/line/element hints out of a toolchain error message."""
    location = SourceLocation()

    match = _RENDER_FAILURE_RE.search(message)
    if match:
        location.file_path = match.group(1)

    match = _SOURCE_POSITION_RE.search(message)
    if match:
        location.file_path = location.file_path or match.group(1)
        location.line = int(match.group(2))
        location.column = int(match.group(3))
        location.line_applies_to_source = True

    match = _LINE_PREVIEW_RE.search(message)
    if match:
        if location.line is None:
            location.line = int(match.group(1))
        location.line_text = match.group(2).rstrip()

    match = _RENDER_ENTRY_RE.search(message)
    if match:
        location.render_entry_path = match.group(1)
        if match.group(2):
            location.render_entry_line = int(match.group(2))
            if location.line is None:
                location.line = location.render_entry_line

    match = _COMPILED_PATH_RE.search(message)
    if match and not location.file_path:
        location.file_path = f"pages/{match.group(1)}.mdx"

    if location.line_text:
        tag = _LINE_TAG_RE.search(location.line_text)
        if tag:
            location.jsx_element = f"<{tag.group(1)}>"
    if not location.jsx_element:
        tag = _CLOSING_TAG_RE.search(message)
        if tag:
            location.jsx_element = f"<{tag.group(1)}>"
    if not location.jsx_element:
        method = _RENDER_METHOD_RE.search(message)
        if method:
            location.jsx_element = method.group(1)

    # Anonymous line previews are only meaningful for MDX errors.
    if not location.file_path and location.line_text and "mdx" not in message.lower():
        location.line = None
        location.line_text = None

    return None if location.is_empty() else location


def _source_reference(location: Optional[SourceLocation]) -> str:
    if location is None or not location.file_path:
        return ""
    return f" in {_at_reference(location)}"


def _at_reference(location: SourceLocation) -> str:
    suffix = ""
    if location.line is not None and location.line_applies_to_source:
        suffix = f":{location.line}"
        if location.column is not None:
            suffix += f":{location.column}"
    return f"{location.file_path}{suffix}"


def _source_details(location: Optional[SourceLocation]) -> str:
    if location is None:
        return ""
    if location.render_entry_path:
        line = f":{location.render_entry_line}" if location.render_entry_line is not None else ""
        preview = ""
        if location.render_entry_line is not None and location.line_text:
            preview = f"\n  {location.render_entry_line} | {location.line_text}"
        return f"\n\n  Render entry: {location.render_entry_path}{line}{preview}"
    if location.line is None:
        return ""
    if location.line_text:
        return f"\n\n  {location.line} | {location.line_text}"
    column = f", column {location.column}" if location.column is not None else ""
    return f"\n\n  Line {location.line}{column}"


def _style_prop(_: re.Match[str], location: Optional[SourceLocation]) -> str:
    return (
        f"MDX syntax error{_source_reference(location)}:\n"
        '  HTML-style "style" attributes don\'t work in MDX.\n\n'
        '  Instead of:  <div style="color: red">\n'
        "  Use:         <div style={{color: 'red'}}>\n\n"
        "  MDX uses JSX syntax, so style must be an object."
        + _source_details(location)
    )


def _class_attribute(_: re.Match[str], location: Optional[SourceLocation]) -> str:
    return (
        f"MDX syntax error{_source_reference(location)}:\n"
        '  HTML-style "class" attributes don\'t work in MDX.\n\n'
        '  Instead of:  <div class="foo">\n'
        '  Use:         <div className="foo">\n\n'
        "  MDX uses JSX syntax, so use className instead of class."
        + _source_details(location)
    )


def _invalid_element(_: re.Match[str], location: Optional[SourceLocation]) -> str:
    hint = f" ({location.jsx_element})" if location and location.jsx_element else ""
    return (
        f"MDX syntax error{_source_reference(location)}:\n"
        f"  A JSX element couldn't be rendered{hint}. Common causes:\n\n"
        "  1. Unclosed HTML tag - use self-closing syntax:\n"
        '     Instead of:  <img src="...">\n'
        '     Use:         <img src="..." />\n\n'
        "  2. Missing component - check the component name is correct\n"
        "     and the file exists in src/ or pages/"
        + _source_details(location)
    )


def _unclosed_tag(match: re.Match[str], location: Optional[SourceLocation]) -> str:
    tag = match.group(1)
    return (
        f"MDX syntax error{_source_reference(location)}:\n"
        f"  Unclosed <{tag}> tag.\n\n"
        f"  Either close it: <{tag}>...</{tag}>\n"
        f"  Or self-close:   <{tag} />"
        + _source_details(location)
    )


def _unexpected_token(_: re.Match[str], location: Optional[SourceLocation]) -> str:
    return (
        f"MDX syntax error{_source_reference(location)}:\n"
        "  Invalid JSX syntax. Check for:\n"
        "  - Unclosed tags (use <img /> not <img>)\n"
        "  - HTML attributes (use className not class)\n"
        '  - Style attributes (use style={{}} not style="")'
        + _source_details(location)
    )


_MessageFactory = Callable[[re.Match[str], Optional[SourceLocation]], str]

ERROR_PATTERNS: List[Tuple[re.Pattern[str], _MessageFactory]] = [
    (
        re.compile(
            r"The `style` prop expects a mapping from style properties to values, not a string"
        ),
        _style_prop,
    ),
    (re.compile(r"Invalid DOM property `class`\. Did you mean `className`\?"), _class_attribute),
    (
        re.compile(r"Element type is invalid: expected a string.*but got: (undefined|object)"),
        _invalid_element,
    ),
    (re.compile(r"Expected corresponding JSX closing tag for <(\w+)>"), _unclosed_tag),
    (re.compile(r"Unexpected token"), _unexpected_token),
]


def format_build_error(error: BaseException | str) -> str:
    """Translate a build failure into an actionable message."""
    message = str(error)
    location = extract_source_location(message)
    tail_match = _ADDITIONAL_RENDER_RE.search(message)
    additional = f"\n\n{tail_match.group(0).lstrip()}" if tail_match else ""

    for pattern, factory in ERROR_PATTERNS:
        match = pattern.search(message)
        if match:
            return factory(match, location) + additional

    if location is not None and location.file_path:
        reference = _at_reference(location)
        if f"\n  at {reference}" in message:
            return message
        if location.line_text and location.line is not None:
            return f"{message}\n  at {reference}:\n  {location.line} | {location.line_text}"
        return f"{message}\n  at {reference}"

    if location is not None and location.line is not None and location.line_text:
        return f"{message}\n  {location.line} | {location.line_text}"

    return message


def relative_display(path: Path, root: Path | None = None) -> str:
    """Return ``path`` relative to ``root`` (or the cwd) when possible."""
    base = root or Path.cwd()
    try:
        return path.relative_to(base).as_posix()
    except ValueError:
        return str(path)


__all__ = [
    "AmbiguousComponentError",
    "BuildError",
    "BundleError",
    "ConfigError",
    "ContentError",
    "DependencyRestart",
    "MissingContentDirError",
    "NoEntriesError",
    "PathConflictError",
    "PreprocessingError",
    "ReconciliationError",
    "RenderError",
    "ScratchError",
    "SourceLocation",
    "ToolchainError",
    "extract_source_location",
    "format_build_error",
    "relative_display",
]
