"""End-to-end tests for the build orchestrator with stubbed toolchain boundaries."""

from __future__ import annotations

import asyncio

import pytest

from scratchwork.build import Orchestrator, build
from scratchwork.build.types import BuildState, BuildStep
from scratchwork.errors import BuildError, PreprocessingError
from tests._fixtures.doubles import STUB_HASH, RecordingRunner, StubBundler, StubRenderer
from tests._fixtures.project_builder import ProjectBuilder


@pytest.fixture
def site(project: ProjectBuilder) -> ProjectBuilder:
    project.write(
        {
            "pages/index.mdx": """
                ---
                title: Home
                description: Welcome <home>
                tags: [intro, docs]
                ---
                # Home

                <Counter />
            """,
            "pages/about/index.mdx": """
                # About

                Some text.[^1]

                [^1]: A note.
            """,
            "pages/about/photo.png": "png",
            "src/Counter.jsx": "export default function Counter() { return null; }\n",
            "public/robots.txt": "User-agent: *\n",
            "public/favicon.svg": "<svg></svg>",
        }
    )
    project.install()
    return project


def test_build_writes_html_assets_and_scripts(
    site: ProjectBuilder, bundler: StubBundler, renderer: StubRenderer
) -> None:
    state = asyncio.run(build(site.options(), bundler=bundler, renderer=renderer))

    dist = site.path("dist")
    index_html = (dist / "index.html").read_text(encoding="utf-8")
    about_html = (dist / "about" / "index.html").read_text(encoding="utf-8")

    assert f'src="/index-{STUB_HASH}.js"' in index_html
    assert f'src="/about/index-{STUB_HASH}.js"' in about_html
    assert '<div id="mdx"><main>rendered</main></div>' in index_html
    assert "window.__SCRATCH_SSG__ = true" in index_html
    assert '<link rel="icon" type="image/svg+xml" href="/favicon.svg" />' in index_html

    assert "<title>Home</title>" in index_html
    assert 'content="Welcome &lt;home&gt;"' in index_html
    assert '<meta property="article:tag" content="docs">' in index_html
    assert "<title>" not in about_html

    assert (dist / f"index-{STUB_HASH}.js").is_file()
    assert (dist / "chunks" / f"chunk-{STUB_HASH}.js").is_file()
    assert (dist / "robots.txt").is_file()
    assert (dist / "index.md").is_file()
    assert (dist / "about" / "photo.png").is_file()
    assert not (dist / "index.mdx").exists()

    assert sorted(state.entries) == ["about/index", "index"]
    assert state.stats is not None and state.stats.file_count > 0
    assert len(renderer.calls) == 2
    assert {request.target for request in bundler.requests} == {"server", "browser"}
    assert "css" in state.timings
    assert state.css_filename is None


def test_build_injects_imports_into_compiled_content(
    site: ProjectBuilder, bundler: StubBundler, renderer: StubRenderer
) -> None:
    asyncio.run(build(site.options(), bundler=bundler, renderer=renderer))

    compiled = bundler.compiled_for("browser", site.path("pages/index.mdx").resolve())
    assert compiled.startswith("import Counter from '../src/Counter.jsx';\n")
    assert compiled.count("import Counter") == 1
    assert "import PageWrapper from '../.scratch/cache/components/PageWrapper.jsx';" in compiled
    assert '<div className="not-prose">\n\n<Counter />\n\n</div>' in compiled
    assert "title: Home" not in compiled

    about = bundler.compiled_for("browser", site.path("pages/about/index.mdx").resolve())
    assert about.index('<section data-footnotes=""') < about.index("</PageWrapper>")


def test_build_without_ssg_skips_server_steps(
    site: ProjectBuilder, bundler: StubBundler, renderer: StubRenderer
) -> None:
    state = asyncio.run(build(site.options(ssg=False), bundler=bundler, renderer=renderer))

    assert [request.target for request in bundler.requests] == ["browser"]
    assert renderer.calls == []
    assert {"server_bundle", "render_server"} <= set(state.skipped)
    html = site.path("dist/index.html").read_text(encoding="utf-8")
    assert '<div id="mdx"></div>' in html
    assert "window.__SCRATCH_SSG__ = false" in html


def test_base_path_prefixes_urls(site: ProjectBuilder, bundler: StubBundler, renderer: StubRenderer) -> None:
    asyncio.run(build(site.options(base="docs/", test_base=True), bundler=bundler, renderer=renderer))
    html = site.path("dist/docs/index.html").read_text(encoding="utf-8")
    assert f'src="/docs/index-{STUB_HASH}.js"' in html
    assert 'window.__SCRATCH_BASE__ = "/docs"' in html


def test_ambiguous_component_fails_build(site: ProjectBuilder, bundler: StubBundler, renderer: StubRenderer) -> None:
    site.write(
        {
            "src/Button.jsx": "export default () => null;\n",
            "pages/Button.jsx": "export default () => null;\n",
            "pages/buttons.mdx": "<Button />\n",
        }
    )
    with pytest.raises(BuildError) as excinfo:
        asyncio.run(build(site.options(), bundler=bundler, renderer=renderer))

    assert excinfo.value.step == "server_bundle"
    assert isinstance(excinfo.value.cause, PreprocessingError)
    assert "Ambiguous component import in pages/buttons.mdx" in str(excinfo.value)
    assert not site.path("dist/index.html").exists()


def test_bundler_failure_includes_logs(site: ProjectBuilder, renderer: StubRenderer) -> None:
    failing = StubBundler(fail_with=["pages/index.mdx:3:1: Unexpected token"])
    with pytest.raises(BuildError) as excinfo:
        asyncio.run(build(site.options(ssg=False), bundler=failing, renderer=renderer))
    assert excinfo.value.step == "client_bundle"
    assert "Invalid JSX syntax" in str(excinfo.value)


def test_render_failures_are_aggregated(site: ProjectBuilder, bundler: StubBundler) -> None:
    failing = StubRenderer(failures={"about": "boom", "server-compiled/index": "bang"})
    with pytest.raises(BuildError) as excinfo:
        asyncio.run(build(site.options(), bundler=bundler, renderer=failing))
    message = str(excinfo.value)
    assert message.startswith("Failed to render about/index.mdx: boom")
    assert "Additional render errors (1):" in message
    assert "index.mdx: bang" in message


def test_missing_pages_is_reported(project: ProjectBuilder, bundler: StubBundler) -> None:
    project.install()
    project.write({"pages/notes.txt": "not content"})
    with pytest.raises(BuildError) as excinfo:
        asyncio.run(build(project.options(), bundler=bundler, renderer=StubRenderer()))
    assert excinfo.value.step == "create_entries"
    assert "No .md or .mdx files found" in str(excinfo.value)


def test_path_conflicts_stop_the_build(site: ProjectBuilder, bundler: StubBundler, renderer: StubRenderer) -> None:
    site.write({"public/index.html": "<html></html>"})
    with pytest.raises(BuildError) as excinfo:
        asyncio.run(build(site.options(), bundler=bundler, renderer=renderer))
    assert excinfo.value.step == "check_conflicts"
    assert "dist/index.html is produced by multiple sources" in str(excinfo.value)
    assert bundler.requests == []


def test_dependencies_installed_when_node_modules_missing(
    project: ProjectBuilder, bundler: StubBundler, renderer: StubRenderer
) -> None:
    project.write({"pages/index.md": "# Hi\n"})
    runner = RecordingRunner()
    asyncio.run(
        build(project.options(package_manager="npm"), bundler=bundler, renderer=renderer, runner=runner)
    )
    assert ["npm", "install"] in runner.calls
    assert project.path("package.json").is_file()


def test_rebuild_reuses_workspace(site: ProjectBuilder, bundler: StubBundler, renderer: StubRenderer) -> None:
    orchestrator = Orchestrator(bundler=bundler, renderer=renderer)
    workspace = site.workspace(ssg=False)
    asyncio.run(orchestrator.run(workspace))
    site.write({"pages/new.mdx": "# New\n"})
    state = asyncio.run(orchestrator.run(workspace))
    assert "new" in state.entries
    assert site.path("dist/new/index.html").is_file()


class _RecordingStep(BuildStep):
    def __init__(self, name: str, events: list[str], delay: float = 0.0) -> None:
        self.name = name
        self.description = name
        self.events = events
        self.delay = delay

    async def execute(self, workspace, state: BuildState) -> None:
        self.events.append(f"start:{self.name}")
        await asyncio.sleep(self.delay)
        self.events.append(f"end:{self.name}")


def test_parallel_group_completes_before_next_stage(project: ProjectBuilder) -> None:
    events: list[str] = []
    stages = [
        (_RecordingStep("css", events, 0.02), _RecordingStep("server", events, 0.01)),
        _RecordingStep("client", events),
    ]
    asyncio.run(Orchestrator(stages=stages).run(project.workspace()))

    assert events.index("start:server") < events.index("end:css")
    assert events.index("start:client") > max(events.index("end:css"), events.index("end:server"))


class _FailingStep(BuildStep):
    name = "server_bundle"
    description = "failing"

    async def execute(self, workspace, state: BuildState) -> None:
        await asyncio.sleep(0)
        raise RuntimeError("server bundle exploded")


class _SlowStep(BuildStep):
    name = "css"
    description = "slow"

    def __init__(self, events: list[str]) -> None:
        self.events = events

    async def execute(self, workspace, state: BuildState) -> None:
        try:
            await asyncio.sleep(0.05)
        except asyncio.CancelledError:
            self.events.append("slow-cancelled")
            raise
        self.events.append("slow-finished")


def test_failed_parallel_group_stops_sibling_steps(project: ProjectBuilder) -> None:
    events: list[str] = []
    orchestrator = Orchestrator(stages=[(_SlowStep(events), _FailingStep())])

    async def scenario() -> None:
        with pytest.raises(BuildError) as excinfo:
            await orchestrator.run(project.workspace())
        events.append("run-returned")
        assert excinfo.value.step == "server_bundle"
        await asyncio.sleep(0.1)

    asyncio.run(scenario())

    assert events == ["slow-cancelled", "run-returned"]


def test_nested_page_urls_resolve_from_its_directory(
    site: ProjectBuilder, bundler: StubBundler, renderer: StubRenderer
) -> None:
    site.write(
        {
            "pages/blog/post.mdx": """
                # Post

                ![Photo](photo.png) and [about](../about/index.mdx).
            """,
            "pages/blog/photo.png": "png",
        }
    )
    asyncio.run(build(site.options(), bundler=bundler, renderer=renderer))

    for target in ("server", "browser"):
        compiled = bundler.compiled_for(target, site.path("pages/blog/post.mdx").resolve())
        assert "![Photo](/blog/photo.png)" in compiled
        assert "[about](/about/)" in compiled
    assert site.path("dist/blog/photo.png").is_file()


def test_base_path_build_prefixes_content_urls(
    site: ProjectBuilder, bundler: StubBundler, renderer: StubRenderer
) -> None:
    site.write({"pages/about/index.mdx": "# About\n\n![Photo](photo.png)\n\n[Home](/)\n"})
    asyncio.run(
        build(site.options(base="docs/", test_base=True, strict=True), bundler=bundler, renderer=renderer)
    )

    compiled = bundler.compiled_for("browser", site.path("pages/about/index.mdx").resolve())
    assert "![Photo](/docs/about/photo.png)" in compiled
    assert "[Home](/docs/)" in compiled
    assert site.path("dist/docs/about/photo.png").is_file()
