"""Content preprocessing: layout wrapping, component auto-import and isolation."""

from __future__ import annotations

import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Set, Tuple

from ..components import DefaultExportCache
from ..errors import AmbiguousComponentError, relative_display
from ..logging import get_logger
from ..models import ComponentMap
from .ast import (
    ISOLATION_CLASS,
    Attribute,
    Node,
    NodeKind,
    element,
    esm,
    is_isolation_wrapper,
    walk,
)

PAGE_WRAPPER = "PageWrapper"

_IMPORT_RE = re.compile(r"import\s+([\s\S]*?)\s+from\s+['\"][^'\"]+['\"]")
_AS_RE = re.compile(r"\s+as\s+", re.IGNORECASE)
_IDENTIFIER_RE = re.compile(r"^[A-Za-z_$][\w$]*$")

_LOGGER = get_logger("content.preprocess")


@dataclass
class Usage:
    """Component names a document invokes and identifiers it already imports.

    ``invoked`` keeps first-appearance order so injected imports are stable.
    """

    invoked: List[str] = field(default_factory=list)
    imported: Set[str] = field(default_factory=set)

    def invokes(self, name: str) -> bool:
        return name in self.invoked


class PreprocessErrors:
    """Collects preprocessing failures across one bundler invocation."""

    def __init__(self) -> None:
        self._errors: List[Exception] = []

    def add(self, error: Exception) -> None:
        self._errors.append(error)

    def drain(self) -> List[Exception]:
        """Return every collected error and clear the collector."""
        errors, self._errors = self._errors, []
        return errors

    def __bool__(self) -> bool:
        return bool(self._errors)

    def __len__(self) -> int:
        return len(self._errors)


def _imported_names(source: str) -> Set[str]:
    names: Set[str] = set()
    for match in _IMPORT_RE.finditer(source):
        clause = match.group(1).replace("{", "").replace("}", "")
        for part in clause.split(","):
            part = part.strip()
            if not part:
                continue
            bits = _AS_RE.split(part)
            name = bits[1] if len(bits) > 1 else bits[0]
            if name:
                names.add(name.strip())
    return names


def scan_usage(tree: Node) -> Usage:
    """Collect invoked component names and already-imported identifiers."""
    usage = Usage()
    for node, _, _ in walk(tree):
        if node.is_element:
            primary = node.primary_name
            if primary and primary[0].isupper() and primary not in usage.invoked:
                usage.invoked.append(primary)
        elif node.kind is NodeKind.ESM:
            usage.imported.update(_imported_names(node.value))
    return usage


def import_statement(name: str, component_path: Path, content_dir: Path, default: bool) -> str:
    """Build the ESM import for ``name`` relative to the content file's directory."""
    relative = os.path.relpath(component_path, content_dir).replace(os.sep, "/")
    if not relative.startswith("."):
        relative = f"./{relative}"
    if default:
        return f"import {name} from '{relative}';"
    return f"import {{ {name} }} from '{relative}';"


class ContentPreprocessor:
    """Hook run on every content tree before it reaches the bundler.

    Wraps the page in the layout component, injects imports for components
    the author used without importing, moves the footnote section inside the
    layout and isolates self-closing components from prose styles. In strict
    mode the tree is left untouched.
    """

    def __init__(
        self,
        component_map: ComponentMap,
        *,
        strict: bool = False,
        errors: Optional[PreprocessErrors] = None,
        default_exports: Optional[DefaultExportCache] = None,
        root_dir: Optional[Path] = None,
    ) -> None:
        self.component_map = component_map
        self.strict = strict
        self.errors = errors if errors is not None else PreprocessErrors()
        self.default_exports = default_exports or DefaultExportCache()
        self.root_dir = root_dir

    def __call__(self, tree: Node, path: Path) -> Node:
        if self.strict:
            return tree

        _LOGGER.debug("Processing: %s", self._display(path))
        usage = scan_usage(tree)

        wrapper: Optional[Node] = None
        if PAGE_WRAPPER in self.component_map and not usage.invokes(PAGE_WRAPPER):
            _LOGGER.debug("  - Wrapping content in %s", PAGE_WRAPPER)
            wrapper = element(PAGE_WRAPPER, children=tree.children)
            tree.children = [wrapper]
            usage.invoked.append(PAGE_WRAPPER)

        missing = [
            name
            for name in usage.invoked
            if name not in usage.imported and name in self.component_map
        ]
        ambiguous = [name for name in missing if self.component_map.is_ambiguous(name)]
        if ambiguous:
            self.errors.add(AmbiguousComponentError(self._display(path), ambiguous))

        imports: List[Node] = []
        content_dir = path.parent
        for name in missing:
            if name in ambiguous:
                continue
            component_path = self.component_map.components[name]
            if not _IDENTIFIER_RE.match(name):
                self.errors.add(
                    ValueError(
                        f'Failed to generate import for component "{name}" in '
                        f"{self._display(path)}: invalid identifier"
                    )
                )
                continue
            default = self.default_exports.check(component_path)
            statement = import_statement(name, component_path, content_dir, default)
            _LOGGER.debug(
                "  - injecting %s import from %s",
                "default" if default else "named",
                statement.rsplit(" from ", 1)[1].rstrip(";"),
            )
            imports.append(esm(statement))
        tree.children = imports + tree.children

        if wrapper is None:
            wrapper = next(
                (child for child in tree.children if child.is_element and child.name == PAGE_WRAPPER),
                None,
            )
        if wrapper is not None:
            move_footnotes(tree, wrapper)
        isolate_components(tree)
        return tree

    def _display(self, path: Path) -> str:
        return relative_display(path, self.root_dir)


def move_footnotes(tree: Node, wrapper: Node) -> bool:
    """Move a root-level footnote section to be the wrapper's last child."""
    for index, child in enumerate(tree.children):
        if child.kind is NodeKind.FOOTNOTES:
            del tree.children[index]
            wrapper.children.append(child)
            return True
    return False


def isolate_components(tree: Node) -> int:
    """Wrap self-closing component flow elements in an isolation ``div``.

    Returns the number of elements wrapped.
    """
    targets: List[Tuple[Node, Node, int]] = []
    for node, parent, index in walk(tree):
        if node.kind is not NodeKind.JSX_FLOW or not node.is_component:
            continue
        if node.name == PAGE_WRAPPER or node.children:
            continue
        if parent is None or index is None or is_isolation_wrapper(parent):
            continue
        targets.append((node, parent, index))

    # Replace back to front so earlier indices stay valid.
    for node, parent, index in reversed(targets):
        parent.children[index] = element(
            "div",
            children=[node],
            attributes=[Attribute(name="className", value=f'"{ISOLATION_CLASS}"')],
        )
        _LOGGER.debug("  - Wrapped <%s /> in %s div", node.name, ISOLATION_CLASS)
    return len(targets)


__all__ = [
    "ContentPreprocessor",
    "PAGE_WRAPPER",
    "PreprocessErrors",
    "Usage",
    "import_statement",
    "isolate_components",
    "move_footnotes",
    "scan_usage",
]
