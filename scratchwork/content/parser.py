"""Block-level MDX parser and serialiser.

The parser understands just enough MDX to support preprocessing: YAML
frontmatter, ESM ``import``/``export`` blocks, JSX flow elements (nested,
with attributes), inline JSX inside markdown paragraphs, fenced code, and GFM
footnotes. Markdown text itself is kept verbatim and left to the MDX compiler
in the bundler. Footnote definitions are gathered into a trailing
``FOOTNOTES`` section and references are rewritten to anchors, the way the
GFM processor emits them.
"""

from __future__ import annotations

import re
import textwrap
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Dict, List, Optional, Tuple

import yaml

from ..errors import ContentError
from .ast import Attribute, Node, NodeKind, element, esm, markdown, root

_FRONTMATTER_RE = re.compile(r"\A---[ \t]*\r?\n(.*?\r?\n)?---[ \t]*(?:\r?\n|\Z)", re.DOTALL)
_FENCE_RE = re.compile(r"^(`{3,}|~{3,})")
_ESM_RE = re.compile(r"^(?:import|export)\b")
_FOOTNOTE_DEF_RE = re.compile(r"^\[\^([^\]\s]+)\]:[ \t]?(.*)$")
_FOOTNOTE_REF_RE = re.compile(r"\[\^([^\]\s]+)\](?!:)")
_TAG_NAME_RE = re.compile(r"[A-Za-z_$][\w$\-]*(?:[.:][A-Za-z_$][\w$\-]*)*")
_ATTR_NAME_RE = re.compile(r"[A-Za-z_$][\w$\-:]*")
_INLINE_CODE_RE = re.compile(r"(`+)(?:(?!\1)[\s\S])*?\1")
_INLINE_TAG_START_RE = re.compile(r"<(?=[A-Za-z])")


@dataclass
class ParsedContent:
    """Frontmatter mapping plus the body tree of one content file."""

    frontmatter: Dict[str, Any]
    tree: Node


@dataclass
class _Tag:
    name: Optional[str]
    attributes: List[Attribute]
    self_closing: bool
    end: int


def parse(text: str) -> ParsedContent:
    """Parse an MDX document into frontmatter and a content tree."""
    frontmatter, body = split_frontmatter(text)
    return ParsedContent(frontmatter=frontmatter, tree=parse_body(body))


def split_frontmatter(text: str) -> Tuple[Dict[str, Any], str]:
    """Split leading YAML frontmatter from the document body."""
    match = _FRONTMATTER_RE.match(text)
    if match is None:
        return {}, text
    raw = match.group(1) or ""
    try:
        parsed = yaml.safe_load(raw) if raw.strip() else {}
    except yaml.YAMLError as exc:
        raise ContentError(f"Invalid frontmatter: {exc}") from exc
    if parsed is None:
        parsed = {}
    if not isinstance(parsed, dict):
        raise ContentError("Frontmatter must be a mapping of keys to values")
    return {str(key): _normalise(value) for key, value in parsed.items()}, text[match.end():]


def _normalise(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, list):
        return [_normalise(item) for item in value]
    if isinstance(value, dict):
        return {str(key): _normalise(item) for key, item in value.items()}
    return value


def parse_body(body: str) -> Node:
    """Parse an MDX body (no frontmatter) into a root node."""
    definitions: Dict[str, str] = {}
    children = _parse_blocks(body, definitions)
    tree = root(children)
    if definitions:
        _attach_footnotes(tree, definitions)
    return tree


def _parse_blocks(text: str, definitions: Dict[str, str]) -> List[Node]:
    nodes: List[Node] = []
    lines = text.splitlines(keepends=True)
    offsets: List[int] = []
    position = 0
    for line in lines:
        offsets.append(position)
        position += len(line)

    index = 0
    while index < len(lines):
        line = lines[index]
        stripped = line.strip()
        if not stripped:
            index += 1
            continue

        indent = len(line) - len(line.lstrip(" \t"))
        content = line.lstrip(" \t")

        fence = _FENCE_RE.match(content) if indent < 4 else None
        if fence:
            end = _fence_end(lines, index, fence.group(1))
            nodes.append(markdown("".join(lines[index:end]).rstrip("\r\n")))
            index = end
            continue

        if indent == 0 and _ESM_RE.match(content):
            end = _block_end(lines, index)
            nodes.append(esm("".join(lines[index:end]).rstrip()))
            index = end
            continue

        if indent == 0 and _FOOTNOTE_DEF_RE.match(content.rstrip("\r\n")):
            index = _read_footnote(lines, index, definitions)
            continue

        if indent < 4 and content.startswith("<") and not content.startswith("<!--"):
            parsed = _try_flow_element(text, offsets[index] + indent, definitions)
            if parsed is not None:
                node, end_offset = parsed
                nodes.append(node)
                while index < len(lines) and offsets[index] < end_offset:
                    index += 1
                continue

        end = _paragraph_end(lines, index)
        nodes.append(_markdown_block("".join(lines[index:end]).rstrip()))
        index = end
    return nodes


def _fence_end(lines: List[str], start: int, marker: str) -> int:
    for index in range(start + 1, len(lines)):
        candidate = lines[index].strip()
        if candidate.startswith(marker[0] * len(marker)) and not candidate.strip(marker[0]):
            return index + 1
    return len(lines)


def _block_end(lines: List[str], start: int) -> int:
    index = start
    while index < len(lines) and lines[index].strip():
        index += 1
    return index


def _paragraph_end(lines: List[str], start: int) -> int:
    index = start + 1
    while index < len(lines):
        line = lines[index]
        if not line.strip():
            break
        if _FENCE_RE.match(line.lstrip(" \t")):
            break
        index += 1
    return index


def _read_footnote(lines: List[str], start: int, definitions: Dict[str, str]) -> int:
    match = _FOOTNOTE_DEF_RE.match(lines[start].rstrip("\r\n"))
    assert match is not None
    label, first = match.group(1), match.group(2)
    body = [first]
    index = start + 1
    while index < len(lines):
        line = lines[index]
        if line.strip() and not line.startswith((" ", "\t")):
            break
        if not line.strip():
            # A blank line only continues the definition if indented text follows.
            following = index + 1
            while following < len(lines) and not lines[following].strip():
                following += 1
            if following >= len(lines) or not lines[following].startswith((" ", "\t")):
                break
        body.append(line.rstrip("\r\n"))
        index += 1
    continuation = textwrap.dedent("\n".join(body[1:]))
    text = first if not continuation.strip() else f"{first}\n{continuation}"
    definitions.setdefault(label, text.strip())
    return index


def _markdown_block(text: str) -> Node:
    node = markdown(text)
    if not _FENCE_RE.match(text):
        node.children = find_inline_elements(text)
    return node


def find_inline_elements(text: str) -> List[Node]:
    """Return JSX elements written inline in markdown text (outside code spans)."""
    masked = _INLINE_CODE_RE.sub(lambda match: " " * len(match.group(0)), text)
    found: List[Node] = []
    for match in _INLINE_TAG_START_RE.finditer(masked):
        tag = _scan_open_tag(masked, match.start())
        if tag is None:
            continue
        node = element(tag.name, attributes=tag.attributes, inline=True)
        node.self_closing = tag.self_closing
        found.append(node)
    return found


def _try_flow_element(
    text: str, start: int, definitions: Dict[str, str]
) -> Optional[Tuple[Node, int]]:
    tag = _scan_open_tag(text, start)
    if tag is None:
        return None

    if tag.self_closing:
        end = tag.end
        inner: Optional[str] = None
    else:
        closing = _find_closing_tag(text, tag.end, tag.name)
        if closing is None:
            return None
        inner_end, end = closing
        inner = text[tag.end:inner_end]

    line_end = text.find("\n", end)
    trailing = text[end:] if line_end == -1 else text[end:line_end]
    if trailing.strip():
        return None

    node = element(tag.name, attributes=tag.attributes)
    node.self_closing = tag.self_closing
    if inner is not None:
        node.self_closing = False
        # Only `<X>text</X>` on one line keeps phrasing content; anything else is block content.
        node.single_line = "\n" not in inner
        if "\n" not in inner.strip():
            if inner.strip():
                node.children = [_markdown_block(inner.strip())]
        else:
            node.children = _parse_blocks(textwrap.dedent(inner.strip("\n")), definitions)
    return node, (len(text) if line_end == -1 else line_end + 1)


def _scan_open_tag(text: str, start: int) -> Optional[_Tag]:
    if not text.startswith("<", start):
        return None
    position = start + 1
    if text.startswith(">", position):
        return _Tag(name=None, attributes=[], self_closing=False, end=position + 1)

    name_match = _TAG_NAME_RE.match(text, position)
    if name_match is None:
        return None
    name = name_match.group(0)
    position = name_match.end()
    attributes: List[Attribute] = []

    while position < len(text):
        char = text[position]
        if char.isspace():
            position += 1
            continue
        if text.startswith("/>", position):
            return _Tag(name=name, attributes=attributes, self_closing=True, end=position + 2)
        if char == ">":
            return _Tag(name=name, attributes=attributes, self_closing=False, end=position + 1)
        if char == "{":
            end = _read_balanced(text, position)
            if end is None:
                return None
            attributes.append(Attribute(name=text[position:end]))
            position = end
            continue
        attr_match = _ATTR_NAME_RE.match(text, position)
        if attr_match is None:
            return None
        attr_name = attr_match.group(0)
        position = attr_match.end()
        lookahead = position
        while lookahead < len(text) and text[lookahead] in " \t":
            lookahead += 1
        if lookahead < len(text) and text[lookahead] == "=":
            position = lookahead + 1
            while position < len(text) and text[position].isspace():
                position += 1
            if position >= len(text):
                return None
            quote = text[position]
            if quote in "\"'":
                close = text.find(quote, position + 1)
                if close == -1:
                    return None
                attributes.append(Attribute(name=attr_name, value=text[position:close + 1]))
                position = close + 1
            elif quote == "{":
                end = _read_balanced(text, position)
                if end is None:
                    return None
                attributes.append(Attribute(name=attr_name, value=text[position:end]))
                position = end
            else:
                return None
        else:
            attributes.append(Attribute(name=attr_name))
    return None


def _read_balanced(text: str, start: int) -> Optional[int]:
    """Return the index just past the brace matching ``text[start]``."""
    depth = 0
    position = start
    quote: Optional[str] = None
    while position < len(text):
        char = text[position]
        if quote:
            if char == "\\":
                position += 2
                continue
            if char == quote:
                quote = None
        elif char in "\"'`":
            quote = char
        elif char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return position + 1
        position += 1
    return None


def _find_closing_tag(text: str, start: int, name: Optional[str]) -> Optional[Tuple[int, int]]:
    """Locate the closing tag for ``name``; returns ``(inner_end, after_close)``."""
    if name is None:
        pattern = re.compile(r"<(/?)>")
    else:
        pattern = re.compile(r"<(/?)" + re.escape(name) + r"(?=[\s/>])")
    depth = 1
    position = start
    while True:
        match = pattern.search(text, position)
        if match is None:
            return None
        if match.group(1):
            close = text.find(">", match.end())
            if close == -1:
                return None
            depth -= 1
            if depth == 0:
                return match.start(), close + 1
            position = close + 1
            continue
        tag = _scan_open_tag(text, match.start())
        if tag is None:
            position = match.end()
            continue
        if not tag.self_closing:
            depth += 1
        position = tag.end


def _attach_footnotes(tree: Node, definitions: Dict[str, str]) -> None:
    order: List[str] = []
    for node in _iter_markdown(tree):
        for match in _FOOTNOTE_REF_RE.finditer(node.value):
            label = match.group(1)
            if label in definitions and label not in order:
                order.append(label)
    if not order:
        return

    numbers = {label: index + 1 for index, label in enumerate(order)}

    def replace(match: re.Match[str]) -> str:
        label = match.group(1)
        if label not in numbers:
            return match.group(0)
        return (
            f'<sup><a href="#user-content-fn-{label}" id="user-content-fnref-{label}" '
            f'data-footnote-ref="" aria-describedby="footnote-label">{numbers[label]}</a></sup>'
        )

    for node in _iter_markdown(tree):
        node.value = _FOOTNOTE_REF_RE.sub(replace, node.value)

    section = Node(kind=NodeKind.FOOTNOTES)
    for label in order:
        item = _markdown_block(definitions[label])
        item.name = label
        section.children.append(item)
    tree.children.append(section)


def _iter_markdown(tree: Node) -> List[Node]:
    collected: List[Node] = []
    stack = [tree]
    while stack:
        node = stack.pop()
        if node.kind is NodeKind.MARKDOWN:
            if not _FENCE_RE.match(node.value):
                collected.append(node)
            continue
        if node.kind is NodeKind.FOOTNOTES:
            continue
        stack.extend(reversed(node.children))
    return collected


def serialize(tree: Node) -> str:
    """Write a content tree back out as MDX source."""
    return _serialize(tree).rstrip("\n") + "\n"


def _serialize(node: Node) -> str:
    if node.kind is NodeKind.ROOT:
        return "\n\n".join(_serialize(child) for child in node.children)
    if node.kind in (NodeKind.ESM, NodeKind.MARKDOWN):
        return node.value
    if node.kind is NodeKind.FOOTNOTES:
        return _serialize_footnotes(node)
    return _serialize_element(node)


def _serialize_element(node: Node) -> str:
    attrs = "".join(
        f" {attribute.name}" if attribute.value is None else f" {attribute.name}={attribute.value}"
        for attribute in node.attributes
    )
    name = node.name or ""
    if not node.children:
        if node.name is None:
            return "<></>"
        return f"<{name}{attrs} />"
    if (
        node.single_line
        and len(node.children) == 1
        and node.children[0].kind is NodeKind.MARKDOWN
        and "\n" not in node.children[0].value
        and not _FENCE_RE.match(node.children[0].value)
    ):
        return f"<{name}{attrs}>{node.children[0].value}</{name}>"
    inner = "\n\n".join(_serialize(child) for child in node.children)
    return f"<{name}{attrs}>\n\n{inner}\n\n</{name}>"


def _serialize_footnotes(node: Node) -> str:
    items = []
    for number, child in enumerate(node.children, start=1):
        label = child.name or str(number)
        backref = (
            f' <a href="#user-content-fnref-{label}" data-footnote-backref="" '
            f'aria-label="Back to reference {number}" className="data-footnote-backref">↩</a>'
        )
        items.append(f'<li id="user-content-fn-{label}">\n\n{child.value}{backref}\n\n</li>')
    body = "\n\n".join(items)
    return (
        '<section data-footnotes="" className="footnotes">\n\n'
        '<h2 className="sr-only" id="footnote-label">Footnotes</h2>\n\n'
        f"<ol>\n\n{body}\n\n</ol>\n\n</section>"
    )


__all__ = [
    "ParsedContent",
    "find_inline_elements",
    "parse",
    "parse_body",
    "serialize",
    "split_frontmatter",
]
