from __future__ import annotations

import json
from pathlib import Path

import pytest

from scratchwork.errors import ScratchError
from scratchwork.scaffold import BUILD_DEPENDENCIES, create_project, list_templates, package_json, revert


def test_list_templates_covers_starter_project() -> None:
    templates = list_templates()
    assert "pages/index.mdx" in templates
    assert "src/template/PageWrapper.jsx" in templates
    assert "src/tailwind.css" in templates
    assert templates == sorted(templates)


def test_package_json_lists_build_dependencies() -> None:
    data = json.loads(package_json("my-site"))
    assert data["name"] == "my-site"
    assert data["scripts"] == {"dev": "scratch dev", "build": "scratch build"}
    assert list(data["dependencies"]) == list(BUILD_DEPENDENCIES)


def test_create_project_never_overwrites(tmp_path: Path) -> None:
    (tmp_path / "pages").mkdir()
    (tmp_path / "pages" / "index.mdx").write_text("# Mine\n", encoding="utf-8")

    created = create_project(tmp_path)

    assert "pages/index.mdx" not in created
    assert "package.json" in created
    assert (tmp_path / "pages" / "index.mdx").read_text(encoding="utf-8") == "# Mine\n"
    assert create_project(tmp_path) == []


def test_create_project_without_src(tmp_path: Path) -> None:
    created = create_project(tmp_path, include_src=False)
    assert created
    assert not any(name.startswith("src/") for name in created)
    assert not (tmp_path / "src").exists()


def test_revert_creates_missing_and_skips_existing(tmp_path: Path) -> None:
    (tmp_path / "src" / "template").mkdir(parents=True)
    (tmp_path / "src" / "template" / "Footer.jsx").write_text("// edited\n", encoding="utf-8")

    result = revert("./src/template/", root=tmp_path)

    assert result.created == ["src/template/PageWrapper.jsx"]
    assert result.skipped == ["src/template/Footer.jsx"]
    assert (tmp_path / "src" / "template" / "Footer.jsx").read_text(encoding="utf-8") == "// edited\n"


def test_revert_overwrites_when_forced_or_confirmed(tmp_path: Path) -> None:
    target = tmp_path / "pages" / "index.mdx"
    target.parent.mkdir()
    target.write_text("# Edited\n", encoding="utf-8")
    seen: list[list[str]] = []

    def confirm(files) -> bool:
        seen.append(list(files))
        return True

    assert revert("pages/index.mdx", root=tmp_path, confirm=confirm).reverted == ["pages/index.mdx"]
    assert seen == [["pages/index.mdx"]]
    assert target.read_text(encoding="utf-8") != "# Edited\n"

    target.write_text("# Edited again\n", encoding="utf-8")
    assert revert("pages/index.mdx", root=tmp_path, force=True).reverted == ["pages/index.mdx"]


def test_revert_unknown_template_raises(tmp_path: Path) -> None:
    with pytest.raises(ScratchError, match="No template found for: nope.txt"):
        revert("nope.txt", root=tmp_path)
