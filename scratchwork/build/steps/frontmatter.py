"""Inject frontmatter-derived meta tags into generated HTML."""

from __future__ import annotations

import html
from typing import Any, List, Mapping, Optional

from ...logging import get_logger
from ..types import BuildState, BuildStep
from .html import script_json

_LOGGER = get_logger("build.frontmatter")


def escape(value: Any) -> str:
    return html.escape(str(value), quote=True)


def resolve_image_url(image: str, site_url: Optional[str] = None) -> str:
    """Make ``image`` absolute against ``site_url`` for social sharing tags."""
    if not image:
        return ""
    if image.startswith(("http://", "https://")):
        return image
    if site_url:
        path = image if image.startswith("/") else f"/{image}"
        return str(site_url).rstrip("/") + path
    return image


def _as_list(value: Any) -> List[Any]:
    return list(value) if isinstance(value, (list, tuple)) else [value]


def meta_tags(metadata: Mapping[str, Any]) -> List[str]:
    """Head tags for one page; absent fields emit nothing except og:type and twitter:card."""
    get = metadata.get
    site_url = get("siteUrl")
    image = resolve_image_url(str(get("image")), site_url) if get("image") else None
    keywords = get("keywords")
    if isinstance(keywords, (list, tuple)):
        keywords = ", ".join(str(keyword) for keyword in keywords)

    candidates = [
        get("title") and f"<title>{escape(get('title'))}</title>",
        get("description") and f'<meta name="description" content="{escape(get("description"))}">',
        keywords and f'<meta name="keywords" content="{escape(keywords)}">',
        get("author") and f'<meta name="author" content="{escape(get("author"))}">',
        get("robots") and f'<meta name="robots" content="{escape(get("robots"))}">',
        get("title") and f'<meta property="og:title" content="{escape(get("title"))}">',
        get("description") and f'<meta property="og:description" content="{escape(get("description"))}">',
        image and f'<meta property="og:image" content="{escape(image)}">',
        get("url") and f'<meta property="og:url" content="{escape(get("url"))}">',
        f'<meta property="og:type" content="{escape(get("type") or "article")}">',
        get("siteName") and f'<meta property="og:site_name" content="{escape(get("siteName"))}">',
        get("locale") and f'<meta property="og:locale" content="{escape(get("locale"))}">',
        get("title") and f'<meta name="twitter:title" content="{escape(get("title"))}">',
        get("description") and f'<meta name="twitter:description" content="{escape(get("description"))}">',
        image and f'<meta name="twitter:image" content="{escape(image)}">',
        f'<meta name="twitter:card" content="{escape(get("twitterCard") or "summary_large_image")}">',
        get("twitterSite") and f'<meta name="twitter:site" content="{escape(get("twitterSite"))}">',
        get("twitterCreator") and f'<meta name="twitter:creator" content="{escape(get("twitterCreator"))}">',
        get("publishDate") and f'<meta property="article:published_time" content="{escape(get("publishDate"))}">',
        get("modifiedDate") and f'<meta property="article:modified_time" content="{escape(get("modifiedDate"))}">',
        get("canonical") and f'<link rel="canonical" href="{escape(get("canonical"))}">',
    ]
    tags = [tag for tag in candidates if tag]
    if get("tags"):
        tags.extend(f'<meta property="article:tag" content="{escape(tag)}">' for tag in _as_list(get("tags")))
    if get("author"):
        tags.append(f"<script>window.__scratch_author__ = {script_json(get('author'))};</script>")
    return tags


def inject_metadata(document: str, metadata: Mapping[str, Any]) -> str:
    tags = "\n    ".join(meta_tags(metadata))
    document = document.replace("</head>", f"    {tags}\n  </head>", 1)
    if metadata.get("lang"):
        document = document.replace('<html lang="en">', f'<html lang="{escape(metadata["lang"])}">', 1)
    return document


class InjectFrontmatterStep(BuildStep):
    name = "inject_frontmatter"
    description = "Inject frontmatter meta tags into HTML"

    async def execute(self, workspace, state: BuildState) -> None:
        injected = 0
        for entry in state.entries.values():
            if not entry.frontmatter:
                continue
            path = entry.artifact_path(".html", workspace.client_compiled_dir)
            path.write_text(inject_metadata(path.read_text(encoding="utf-8"), entry.frontmatter), encoding="utf-8")
            injected += 1
        if injected:
            _LOGGER.debug("  Injected frontmatter meta tags into %d HTML files", injected)
