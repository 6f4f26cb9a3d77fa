"""Tagged-union model of an MDX document and a visitor over it."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Iterator, List, Optional, Tuple

ISOLATION_CLASS = "not-prose"


class NodeKind(str, Enum):
    """Kinds of node a content tree can hold."""

    ROOT = "root"
    ESM = "esm"
    JSX_FLOW = "jsx_flow"
    JSX_TEXT = "jsx_text"
    MARKDOWN = "markdown"
    FOOTNOTES = "footnotes"


@dataclass
class Attribute:
    """A JSX attribute; ``value`` holds the raw source (``"x"``, ``{expr}``) or None for bare flags."""

    name: str
    value: Optional[str] = None

    def string_value(self) -> Optional[str]:
        """The literal value for quoted attributes, else None."""
        if self.value and len(self.value) >= 2 and self.value[0] == self.value[-1] and self.value[0] in "\"'":
            return self.value[1:-1]
        return None


@dataclass
class Node:
    """One node of the content tree.

    ``ESM`` and ``MARKDOWN`` carry source text in ``value``. ``JSX_FLOW`` and
    ``JSX_TEXT`` carry an element ``name`` (None for fragments),
    ``attributes`` and ``children``. ``FOOTNOTES`` holds its definitions as
    ``MARKDOWN`` children. ``self_closing`` and ``single_line`` record how an
    element was written so serialisation round-trips it; elements built in
    code are always written in block form.
    """

    kind: NodeKind
    name: Optional[str] = None
    value: str = ""
    attributes: List[Attribute] = field(default_factory=list)
    children: List["Node"] = field(default_factory=list)
    self_closing: bool = False
    single_line: bool = False

    @property
    def is_element(self) -> bool:
        return self.kind in (NodeKind.JSX_FLOW, NodeKind.JSX_TEXT)

    @property
    def is_component(self) -> bool:
        """Elements whose name starts with an uppercase letter are components."""
        return self.is_element and bool(self.name) and self.name[0].isupper()

    @property
    def primary_name(self) -> Optional[str]:
        """First segment of a member expression name (``Foo.Bar`` -> ``Foo``)."""
        if not self.name:
            return None
        return self.name.split(".", 1)[0]

    def get_attribute(self, name: str) -> Optional[Attribute]:
        for attribute in self.attributes:
            if attribute.name == name:
                return attribute
        return None


def root(children: Optional[List[Node]] = None) -> Node:
    return Node(kind=NodeKind.ROOT, children=list(children or []))


def esm(value: str) -> Node:
    return Node(kind=NodeKind.ESM, value=value)


def markdown(value: str) -> Node:
    return Node(kind=NodeKind.MARKDOWN, value=value)


def element(
    name: Optional[str],
    children: Optional[List[Node]] = None,
    attributes: Optional[List[Attribute]] = None,
    *,
    inline: bool = False,
) -> Node:
    kids = list(children or [])
    return Node(
        kind=NodeKind.JSX_TEXT if inline else NodeKind.JSX_FLOW,
        name=name,
        attributes=list(attributes or []),
        children=kids,
        self_closing=not kids,
    )


Visit = Tuple[Node, Optional[Node], Optional[int]]


def walk(tree: Node) -> Iterator[Visit]:
    """Yield ``(node, parent, index)`` in document order, depth first."""
    yield tree, None, None
    stack: List[Tuple[Node, int]] = [(tree, 0)]
    while stack:
        parent, index = stack.pop()
        if index >= len(parent.children):
            continue
        child = parent.children[index]
        stack.append((parent, index + 1))
        yield child, parent, index
        if child.children:
            stack.append((child, 0))


def visit(tree: Node, kinds: Tuple[NodeKind, ...], callback: Callable[[Node, Optional[Node], Optional[int]], None]) -> None:
    """Invoke ``callback`` for every node whose kind is in ``kinds``."""
    for node, parent, index in walk(tree):
        if node.kind in kinds:
            callback(node, parent, index)


def is_isolation_wrapper(node: Optional[Node]) -> bool:
    """True for a ``div`` whose ``className`` carries the isolation marker class."""
    if node is None or node.kind is not NodeKind.JSX_FLOW or node.name != "div":
        return False
    attribute = node.get_attribute("className")
    if attribute is None:
        return False
    value = attribute.string_value()
    return value is not None and ISOLATION_CLASS in value.split()


__all__ = [
    "Attribute",
    "ISOLATION_CLASS",
    "Node",
    "NodeKind",
    "element",
    "esm",
    "is_isolation_wrapper",
    "markdown",
    "root",
    "visit",
    "walk",
]
