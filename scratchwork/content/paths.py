"""Rewrites image and link URLs in content so they resolve from the built page.

Pages are served from their own route (``pages/blog/post.mdx`` at
``/blog/post``), while static files are copied next to where they sit under
``pages/``. Relative URLs are therefore resolved against the page's directory
and made absolute under the deployment base. Links to other content files
lose their ``.md``/``.mdx`` extension, and absolute internal URLs gain the
base prefix.
"""

from __future__ import annotations

import os
import posixpath
import re
from pathlib import Path
from typing import Callable, List, Optional, Tuple

from ..logging import get_logger
from .ast import Node, NodeKind, visit

_SCHEME_RE = re.compile(r"^[A-Za-z][A-Za-z0-9+.\-]*:")
_FENCE_RE = re.compile(r"^(`{3,}|~{3,})")
_INLINE_CODE_RE = re.compile(r"(`+)(?:(?!\1)[\s\S])*?\1")
# ![alt](dest "title") and [text](dest); the destination is group 3.
_MARKDOWN_LINK_RE = re.compile(
    r"(!?)\[((?:[^\[\]\n]|\[[^\[\]\n]*\])*)\]\(\s*(<[^>\n]*>|[^\s()<>]+)"
    r"(?:\s+(?:\"[^\"]*\"|'[^']*'|\([^)]*\)))?\s*\)"
)
# <img ... src="..."> and <a ... href="..."> written inside markdown text.
_HTML_URL_RE = re.compile(
    r"<(img|a)\b[^<>]*?\s(src|href)\s*=\s*(\"[^\"]*\"|'[^']*')"
)
_CONTENT_EXTENSIONS = (".mdx", ".md")

_LOGGER = get_logger("content.paths")

Rewrite = Callable[[str], Optional[str]]


def is_relative_url(url: str) -> bool:
    """True for paths relative to the current document (no scheme, root or fragment)."""
    if not url or url.startswith(("/", "#", "?")):
        return False
    return _SCHEME_RE.match(url) is None


def is_internal_absolute(url: str) -> bool:
    return url.startswith("/") and not url.startswith("//")


def _split_suffix(url: str) -> Tuple[str, str]:
    """Split ``url`` into its path and any ``?query``/``#fragment`` tail."""
    cut = min((index for index in (url.find("?"), url.find("#")) if index != -1), default=len(url))
    return url[:cut], url[cut:]


def _absolute(page_dir: str, relative: str, base: str) -> str:
    resolved = posixpath.normpath(posixpath.join(page_dir, relative))
    if resolved == ".":
        resolved = ""
    return f"{base}/{resolved}"


def rewrite_image_src(src: str, page_dir: str, base: str) -> Optional[str]:
    """New ``src`` for an image, or None when it already resolves correctly."""
    if is_relative_url(src):
        path, tail = _split_suffix(src)
        return _absolute(page_dir, path, base) + tail
    if base and is_internal_absolute(src):
        return base + src
    return None


def rewrite_link_href(href: str, page_dir: str, base: str) -> Optional[str]:
    """New ``href`` for a link, or None when it already resolves correctly.

    ``about.md`` in ``pages/blog/post.mdx`` becomes ``/blog/about``;
    ``guide/index.mdx`` becomes ``/blog/guide/``.
    """
    if is_relative_url(href):
        path, tail = _split_suffix(href)
        if not path:
            return None
        lowered = path.lower()
        for extension in _CONTENT_EXTENSIONS:
            if lowered.endswith(extension):
                path = path[: -len(extension)]
                if posixpath.basename(path) == "index":
                    path = (posixpath.dirname(path) or ".") + "/"
                break
        trailing = "/" if path.endswith("/") else ""
        absolute = _absolute(page_dir, path, base)
        if trailing and not absolute.endswith("/"):
            absolute += "/"
        return absolute + tail
    if base and is_internal_absolute(href):
        return base + href
    return None


class ContentPathRewriter:
    """Content hook that rewrites image sources and link targets for one build."""

    def __init__(self, pages_dir: Path, base: str = "") -> None:
        self.pages_dir = Path(os.path.abspath(pages_dir))
        self.base = base

    def page_dir(self, path: Path) -> str:
        """Directory of ``path`` relative to the pages tree, as a POSIX path ("" at the root)."""
        directory = Path(os.path.abspath(path)).parent
        try:
            relative = directory.relative_to(self.pages_dir)
        except ValueError:
            return ""
        posix = relative.as_posix()
        return "" if posix == "." else posix

    def __call__(self, tree: Node, path: Path) -> Node:
        page_dir = self.page_dir(path)

        def image(url: str) -> Optional[str]:
            return rewrite_image_src(url, page_dir, self.base)

        def link(url: str) -> Optional[str]:
            return rewrite_link_href(url, page_dir, self.base)

        def rewrite(node: Node, parent: Optional[Node], index: Optional[int]) -> None:
            if node.kind is NodeKind.MARKDOWN:
                if not _FENCE_RE.match(node.value):
                    node.value = rewrite_markdown(node.value, image, link)
            elif node.name == "img":
                _rewrite_attribute(node, "src", image)
            elif node.name == "a":
                _rewrite_attribute(node, "href", link)

        visit(tree, (NodeKind.MARKDOWN, NodeKind.JSX_FLOW), rewrite)
        return tree


def _rewrite_attribute(node: Node, name: str, rewrite: Rewrite) -> None:
    attribute = node.get_attribute(name)
    if attribute is None:
        return
    value = attribute.string_value()
    if value is None:
        return
    updated = rewrite(value)
    if updated is not None:
        _LOGGER.debug("  - %s: %s -> %s", node.name, value, updated)
        attribute.value = f'"{updated}"'


def rewrite_markdown(text: str, image: Rewrite, link: Rewrite) -> str:
    """Rewrite link and image destinations in markdown text, leaving code spans alone."""
    masked = _INLINE_CODE_RE.sub(lambda match: " " * len(match.group(0)), text)
    edits: List[Tuple[int, int, str]] = []

    for match in _MARKDOWN_LINK_RE.finditer(masked):
        start, end = match.span(3)
        destination = text[start:end]
        bracketed = destination.startswith("<")
        url = destination[1:-1] if bracketed else destination
        updated = (image if match.group(1) else link)(url)
        if updated is not None:
            edits.append((start, end, f"<{updated}>" if bracketed else updated))

    for match in _HTML_URL_RE.finditer(masked):
        if (match.group(1), match.group(2)) not in (("img", "src"), ("a", "href")):
            continue
        start, end = match.span(3)
        quote = text[start]
        url = text[start + 1:end - 1]
        updated = (image if match.group(1) == "img" else link)(url)
        if updated is not None:
            edits.append((start, end, f"{quote}{updated}{quote}"))

    for start, end, replacement in sorted(edits, reverse=True):
        text = text[:start] + replacement + text[end:]
    return text


__all__ = [
    "ContentPathRewriter",
    "is_internal_absolute",
    "is_relative_url",
    "rewrite_image_src",
    "rewrite_link_href",
    "rewrite_markdown",
]
