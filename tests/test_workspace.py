"""Tests for the build workspace."""

from __future__ import annotations

import errno
import shutil
from pathlib import Path

import pytest

from scratchwork.errors import MissingContentDirError
from scratchwork.workspace import remove_tree_with_retry
from tests._fixtures.project_builder import ProjectBuilder


def test_directories_resolve_under_root(project: ProjectBuilder) -> None:
    workspace = project.workspace()
    root = project.path().resolve()
    assert workspace.cache_dir == root / ".scratch" / "cache"
    assert workspace.out_dir == root / "dist"
    assert workspace.build_dir == root / "dist"
    assert workspace.client_src_dir == root / ".scratch" / "cache" / "client-src"


def test_test_base_nests_build_dir(project: ProjectBuilder) -> None:
    workspace = project.workspace(base="/docs/", test_base=True)
    assert workspace.build_dir == project.path().resolve() / "dist" / "docs"


def test_entries_are_sorted_and_skip_node_modules(project: ProjectBuilder) -> None:
    project.write(
        {
            "pages/zeta.md": "# Z",
            "pages/index.mdx": "# I",
            "pages/blog/first.mdx": "# F",
            "pages/node_modules/pkg/readme.md": "# skip",
            "pages/notes.txt": "skip",
        }
    )
    names = [entry.name for entry in project.workspace().entries()]
    assert names == ["blog/first", "index", "zeta"]


def test_missing_pages_directory(project: ProjectBuilder) -> None:
    with pytest.raises(MissingContentDirError):
        project.workspace().entries()


def test_reset_preserves_cached_node_modules_and_invalidates(project: ProjectBuilder) -> None:
    project.write({"pages/index.mdx": "# I"})
    workspace = project.workspace()
    workspace.reset()
    (workspace.cache_dir / "node_modules" / "pkg").mkdir(parents=True)
    (workspace.cache_dir / "client-src").mkdir()
    (workspace.out_dir / "stale.html").write_text("old", encoding="utf-8")
    assert len(workspace.entries()) == 1

    project.write({"pages/second.mdx": "# II"})
    workspace.reset()

    assert (workspace.cache_dir / "node_modules" / "pkg").is_dir()
    assert not (workspace.cache_dir / "client-src").exists()
    assert not (workspace.out_dir / "stale.html").exists()
    assert len(workspace.entries()) == 2


def test_component_map_falls_back_to_embedded_wrapper(project: ProjectBuilder) -> None:
    workspace = project.workspace()
    path = workspace.page_wrapper_path()
    assert path is not None
    assert path.parent == workspace.cache_dir / "components"
    assert "export default function PageWrapper" in path.read_text(encoding="utf-8")


def test_markdown_components_default_and_project(project: ProjectBuilder) -> None:
    workspace = project.workspace()
    fallback = workspace.markdown_components_path()
    assert fallback.name == "empty-mdx-components.ts"
    assert "MDXComponents" in fallback.read_text(encoding="utf-8")

    project.write({"src/markdown/index.jsx": "export const MDXComponents = {};"})
    assert project.workspace().markdown_components_path() == project.path("src/markdown").resolve()


def test_tailwind_source_candidates(project: ProjectBuilder) -> None:
    assert project.workspace().tailwind_source() is None
    project.write({"src/globals.css": "", "src/index.css": ""})
    assert project.workspace().tailwind_source() == project.path("src/index.css").resolve()


def test_build_template_override(project: ProjectBuilder) -> None:
    workspace = project.workspace()
    assert workspace.client_template().name == "entry-client.tsx"
    assert workspace.client_template().parent.name == "_build"
    project.write({"_build/entry-client.tsx": "// custom"})
    assert workspace.client_template() == workspace.overrides_dir / "entry-client.tsx"


def test_remove_tree_retries_busy_errors(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    target = tmp_path / "busy"
    target.mkdir()
    attempts: list[int] = []
    real_rmtree = shutil.rmtree

    def flaky_rmtree(path, *args, **kwargs):
        attempts.append(1)
        if len(attempts) < 3:
            raise OSError(errno.EBUSY, "busy")
        real_rmtree(path, *args, **kwargs)

    monkeypatch.setattr("scratchwork.workspace.shutil.rmtree", flaky_rmtree)
    monkeypatch.setattr("scratchwork.workspace.time.sleep", lambda _: None)
    remove_tree_with_retry(target)
    assert len(attempts) == 3
    assert not target.exists()


def test_remove_tree_gives_up_on_other_errors(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    target = tmp_path / "broken"
    target.mkdir()

    def failing_rmtree(path, *args, **kwargs):
        raise OSError(errno.EIO, "io")

    monkeypatch.setattr("scratchwork.workspace.shutil.rmtree", failing_rmtree)
    with pytest.raises(OSError):
        remove_tree_with_retry(target)
