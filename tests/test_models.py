"""Tests for scratchwork.models."""

from __future__ import annotations

from pathlib import Path

from scratchwork.models import ComponentMap, PathEntry, strip_extension


def test_entry_name_drops_final_extension(tmp_path: Path) -> None:
    entry = PathEntry(tmp_path / "pages" / "blog" / "post.v2.mdx", tmp_path / "pages")
    assert entry.name == "blog/post.v2"
    assert entry.rel_path == "blog/post.v2.mdx"


def test_index_entries_keep_their_directory(tmp_path: Path) -> None:
    pages = tmp_path / "pages"
    out = tmp_path / "out"
    assert PathEntry(pages / "index.mdx", pages).artifact_path(".html", out) == out / "index.html"
    assert (
        PathEntry(pages / "about" / "index.md", pages).artifact_path(".html", out)
        == out / "about" / "index.html"
    )


def test_non_index_entries_become_directories(tmp_path: Path) -> None:
    pages = tmp_path / "pages"
    out = tmp_path / "out"
    entry = PathEntry(pages / "guide" / "setup.mdx", pages)
    assert entry.artifact_path(".tsx", out) == out / "guide" / "setup" / "index.tsx"


def test_entries_outside_base_keep_parent_segments(tmp_path: Path) -> None:
    entry = PathEntry(tmp_path / "shared" / "notes.md", tmp_path / "pages")
    assert entry.name == "../shared/notes"


def test_strip_extension_leaves_dotless_names() -> None:
    assert strip_extension("README") == "README"
    assert strip_extension("a/.hidden") == "a/.hidden"
    assert strip_extension("a/b.c.mdx") == "a/b.c"


def test_component_map_resolvable_excludes_conflicts(tmp_path: Path) -> None:
    components = ComponentMap(
        components={"Button": tmp_path / "Button.jsx", "Card": tmp_path / "Card.tsx"},
        conflicts={"Button"},
    )
    assert "Button" in components
    assert components.is_ambiguous("Button")
    assert not components.resolvable("Button")
    assert components.resolvable("Card")
    assert not components.resolvable("Missing")
