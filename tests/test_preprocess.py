"""Tests for the content preprocessor."""

from __future__ import annotations

from pathlib import Path

import pytest

from scratchwork.content.ast import NodeKind, is_isolation_wrapper, walk
from scratchwork.content.parser import parse_body, serialize
from scratchwork.content.preprocess import (
    PAGE_WRAPPER,
    ContentPreprocessor,
    PreprocessErrors,
    import_statement,
    scan_usage,
)
from scratchwork.errors import AmbiguousComponentError
from scratchwork.models import ComponentMap
from tests._fixtures.project_builder import ProjectBuilder


@pytest.fixture
def components(project: ProjectBuilder) -> ComponentMap:
    project.write(
        {
            "src/Counter.jsx": "export default function Counter() { return null; }",
            "src/Chart.tsx": "export function Chart() { return null; }",
            "src/template/PageWrapper.jsx": "export default function PageWrapper({ children }) { return children; }",
        }
    )
    return ComponentMap(
        components={
            "Counter": project.path("src/Counter.jsx"),
            "Chart": project.path("src/Chart.tsx"),
            PAGE_WRAPPER: project.path("src/template/PageWrapper.jsx"),
        }
    )


def _content_path(project: ProjectBuilder, relative: str = "pages/index.mdx") -> Path:
    return project.path(relative)


def _esm_values(tree) -> list[str]:
    return [child.value for child in tree.children if child.kind is NodeKind.ESM]


def test_injects_one_import_per_component_before_content(
    project: ProjectBuilder, components: ComponentMap
) -> None:
    tree = parse_body("# Hi\n\n<Counter />\n\nAgain <Counter /> inline.\n")
    result = ContentPreprocessor(components)(tree, _content_path(project))

    imports = _esm_values(result)
    assert imports == [
        "import Counter from '../src/Counter.jsx';",
        "import PageWrapper from '../src/template/PageWrapper.jsx';",
    ]
    assert [child.kind for child in result.children[:2]] == [NodeKind.ESM, NodeKind.ESM]
    assert result.children[2].name == PAGE_WRAPPER


def test_named_exports_use_named_imports(project: ProjectBuilder, components: ComponentMap) -> None:
    tree = parse_body("<Chart />\n")
    result = ContentPreprocessor(components)(tree, _content_path(project, "pages/docs/chart.mdx"))
    assert "import { Chart } from '../../src/Chart.tsx';" in _esm_values(result)


def test_existing_imports_are_respected(project: ProjectBuilder, components: ComponentMap) -> None:
    tree = parse_body("import { Counter as Counter } from './local'\n\n<Counter />\n")
    result = ContentPreprocessor(components)(tree, _content_path(project))
    imports = _esm_values(result)
    assert not any("src/Counter.jsx" in value for value in imports)


def test_unknown_components_are_left_alone(project: ProjectBuilder, components: ComponentMap) -> None:
    tree = parse_body("<Mystery />\n")
    result = ContentPreprocessor(components)(tree, _content_path(project))
    assert not any("Mystery" in value for value in _esm_values(result))


def test_ambiguous_components_are_reported(project: ProjectBuilder, components: ComponentMap) -> None:
    project.write({"src/Button.jsx": "export default () => null;"})
    components.components["Button"] = project.path("src/Button.jsx")
    components.conflicts.add("Button")
    errors = PreprocessErrors()

    tree = parse_body("<Button />\n\n<Counter />\n")
    result = ContentPreprocessor(components, errors=errors, root_dir=project.path())(
        tree, _content_path(project)
    )

    (error,) = errors.drain()
    assert isinstance(error, AmbiguousComponentError)
    assert error.names == ["Button"]
    assert error.content_path == "pages/index.mdx"
    assert '"Button"' in str(error)
    assert not any("Button" in value for value in _esm_values(result))
    assert any("Counter" in value for value in _esm_values(result))
    assert not errors


def test_explicit_import_resolves_ambiguity(project: ProjectBuilder, components: ComponentMap) -> None:
    components.components["Button"] = project.path("src/Button.jsx")
    components.conflicts.add("Button")
    errors = PreprocessErrors()
    tree = parse_body("import Button from '../src/ui/Button'\n\n<Button />\n")
    ContentPreprocessor(components, errors=errors)(tree, _content_path(project))
    assert not errors


def test_strict_mode_leaves_tree_untouched(project: ProjectBuilder, components: ComponentMap) -> None:
    text = "# Hi\n\n<Counter />\n\nNote[^1].\n\n[^1]: Footnote.\n"
    before = serialize(parse_body(text))
    result = ContentPreprocessor(components, strict=True)(parse_body(text), _content_path(project))
    assert serialize(result) == before
    assert result.children[-1].kind is NodeKind.FOOTNOTES


def test_scan_usage_is_repeatable() -> None:
    tree = parse_body("import { Tabs } from './tabs'\n\n<Tabs.Panel />\n\nHello <Counter />.\n")
    first = scan_usage(tree)
    second = scan_usage(tree)
    assert first == second
    assert first.invoked == ["Tabs", "Counter"]
    assert first.imported == {"Tabs"}


def test_existing_page_wrapper_is_not_added_twice(
    project: ProjectBuilder, components: ComponentMap
) -> None:
    tree = parse_body("<PageWrapper>\n\n# Title\n\nBody.\n\n</PageWrapper>\n")
    result = ContentPreprocessor(components)(tree, _content_path(project))
    wrappers = [node for node, _, _ in walk(result) if node.name == PAGE_WRAPPER]
    assert len(wrappers) == 1


def test_footnotes_move_inside_wrapper(project: ProjectBuilder, components: ComponentMap) -> None:
    tree = parse_body("Text[^1].\n\n[^1]: A note.\n")
    result = ContentPreprocessor(components)(tree, _content_path(project))
    wrapper = result.children[-1]
    assert wrapper.name == PAGE_WRAPPER
    assert wrapper.children[-1].kind is NodeKind.FOOTNOTES
    assert not any(child.kind is NodeKind.FOOTNOTES for child in result.children)


def test_self_closing_components_are_isolated(project: ProjectBuilder, components: ComponentMap) -> None:
    text = (
        "<Counter />\n\n"
        '<div className="not-prose">\n\n<Chart />\n\n<Counter />\n\n</div>\n\n'
        "<Callout>\n\nBody\n\n</Callout>\n"
    )
    result = ContentPreprocessor(components)(parse_body(text), _content_path(project))
    wrappers = [node for node, _, _ in walk(result) if is_isolation_wrapper(node)]
    assert len(wrappers) == 2
    assert wrappers[0].children[0].name == "Counter"
    assert '<div className="not-prose">\n\n<Counter />\n\n</div>' in serialize(result)
    assert not any(
        is_isolation_wrapper(parent) and node.name == "Callout" for node, parent, _ in walk(result)
    )


def test_import_statement_paths_are_posix_and_relative(tmp_path: Path) -> None:
    statement = import_statement(
        "Card", tmp_path / "src" / "Card.jsx", tmp_path / "src", default=True
    )
    assert statement == "import Card from './Card.jsx';"


def test_wrapped_heading_stays_a_heading(project: ProjectBuilder, components: ComponentMap) -> None:
    result = ContentPreprocessor(components)(parse_body("# Hello\n"), _content_path(project))
    assert serialize(result).endswith("<PageWrapper>\n\n# Hello\n\n</PageWrapper>\n")


def test_components_in_footnotes_are_imported(project: ProjectBuilder, components: ComponentMap) -> None:
    tree = parse_body("See the chart[^1].\n\n[^1]: Plotted with <Chart />.\n")
    assert "Chart" in scan_usage(tree).invoked

    result = ContentPreprocessor(components)(tree, _content_path(project))
    assert "import { Chart } from '../src/Chart.tsx';" in _esm_values(result)
