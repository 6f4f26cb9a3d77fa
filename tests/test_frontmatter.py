"""Tests for frontmatter meta tag injection."""

from __future__ import annotations

from scratchwork.build.steps.frontmatter import inject_metadata, meta_tags, resolve_image_url

DOCUMENT = '<!DOCTYPE html>\n<html lang="en">\n<head>\n  <meta charset="UTF-8" />\n</head>\n<body></body>\n</html>\n'


def test_resolve_image_url() -> None:
    assert resolve_image_url("/og.png", "https://example.com/") == "https://example.com/og.png"
    assert resolve_image_url("og.png", "https://example.com") == "https://example.com/og.png"
    assert resolve_image_url("https://cdn.test/og.png", "https://example.com") == "https://cdn.test/og.png"
    assert resolve_image_url("og.png") == "og.png"


def test_meta_tags_cover_social_fields() -> None:
    tags = meta_tags(
        {
            "title": "Post",
            "description": "About things",
            "keywords": ["a", "b"],
            "image": "/cover.png",
            "siteUrl": "https://example.com",
            "tags": ["x", "y"],
            "publishDate": "2024-01-02",
            "canonical": "https://example.com/post",
        }
    )
    assert "<title>Post</title>" in tags
    assert '<meta name="keywords" content="a, b">' in tags
    assert '<meta property="og:image" content="https://example.com/cover.png">' in tags
    assert '<meta name="twitter:image" content="https://example.com/cover.png">' in tags
    assert '<meta property="og:type" content="article">' in tags
    assert '<meta name="twitter:card" content="summary_large_image">' in tags
    assert '<meta property="article:published_time" content="2024-01-02">' in tags
    assert '<link rel="canonical" href="https://example.com/post">' in tags
    assert [tag for tag in tags if "article:tag" in tag] == [
        '<meta property="article:tag" content="x">',
        '<meta property="article:tag" content="y">',
    ]


def test_values_are_escaped() -> None:
    tags = meta_tags({"title": 'A "quoted" <b>title</b>', "author": "</script><x>"})
    assert "<title>A &quot;quoted&quot; &lt;b&gt;title&lt;/b&gt;</title>" in tags
    script = [tag for tag in tags if tag.startswith("<script>")][0]
    assert "</script><x>" not in script[len("<script>"):-len("</script>")]


def test_inject_metadata_places_tags_in_head_and_sets_lang() -> None:
    result = inject_metadata(DOCUMENT, {"title": "Hola", "lang": "es"})
    assert result.index("<title>Hola</title>") < result.index("</head>")
    assert '<html lang="es">' in result
