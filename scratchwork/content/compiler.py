"""Runs preprocessing hooks over content files ahead of a bundler pass."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Callable, Dict, Iterable, List, Optional, Sequence

from ..errors import ContentError, relative_display
from ..logging import get_logger
from ..models import PathEntry
from .ast import Node
from .parser import parse, serialize
from .preprocess import PreprocessErrors

if TYPE_CHECKING:  # pragma: no cover
    from ..workspace import BuildWorkspace

ContentHook = Callable[[Node, Path], Node]


class ContentCompiler:
    """Parses each content entry, applies hooks and writes the rewritten copy.

    Copies land under ``<cache>/<target>-content/`` mirroring the pages tree,
    always with an ``.mdx`` suffix so the bundler compiles every page the same
    way. Failures are collected on the workspace rather than raised so one
    bundler pass reports every broken file at once.
    """

    def __init__(
        self,
        workspace: "BuildWorkspace",
        target: str,
        hooks: Optional[Sequence[ContentHook]] = None,
        *,
        record_frontmatter: bool = False,
    ) -> None:
        self.workspace = workspace
        self.target = target
        self.hooks: List[ContentHook] = list(hooks or [])
        self.record_frontmatter = record_frontmatter
        self.logger = get_logger("content.compiler")

    @property
    def output_dir(self) -> Path:
        return self.workspace.cache_dir / f"{self.target}-content"

    @property
    def errors(self) -> PreprocessErrors:
        return self.workspace.preprocess_errors

    def compiled_path(self, entry: PathEntry) -> Path:
        return (self.output_dir / entry.rel_path).with_suffix(".mdx")

    def compile(self, entries: Iterable[PathEntry]) -> Dict[str, str]:
        """Compile every entry; returns ``source path -> compiled path``."""
        mapping: Dict[str, str] = {}
        for entry in entries:
            target = self.compiled_path(entry)
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(self.compile_entry(entry), encoding="utf-8")
            mapping[str(entry.source_path)] = str(target)
        self.logger.debug("Preprocessed %d content files for %s", len(mapping), self.target)
        return mapping

    def compile_entry(self, entry: PathEntry) -> str:
        """Return the rewritten MDX body for one entry."""
        source = entry.source_path.read_text(encoding="utf-8")
        display = relative_display(entry.source_path, self.workspace.root_dir)
        try:
            parsed = parse(source)
        except ContentError as exc:
            self.errors.add(ContentError(f"{display}: {exc}"))
            return source

        if self.record_frontmatter:
            entry.frontmatter = parsed.frontmatter

        tree = parsed.tree
        for hook in self.hooks:
            try:
                tree = hook(tree, entry.source_path)
            except Exception as exc:
                self.logger.debug("Hook %r failed for %s: %s", hook, display, exc)
                self.errors.add(exc)
        return serialize(tree)


__all__ = ["ContentCompiler", "ContentHook"]
