from __future__ import annotations

import datetime as dt
from dataclasses import dataclass
from typing import Iterable, Optional
from xml.sax.saxutils import escape

from .content import PostRecord, published
from .render import Artifact
from .utils import iso_date, page_url

CONTENT_TYPE = "application/xml"
CACHE_CONTROL = "public, max-age=3600"
SITEMAP_NS = "http://www.sitemaps.org/schemas/sitemap/0.9"

WEEKLY = "weekly"
MONTHLY = "monthly"

# (path, changefreq, priority) for pages without a content timestamp of their own.
STATIC_PAGES = (
    ("", WEEKLY, 1.0),
    ("posts", WEEKLY, 0.8),
    ("tags", WEEKLY, 0.7),
    ("about", MONTHLY, 0.6),
)
POST_PRIORITY = 0.9
TAG_PRIORITY = 0.5


@dataclass(frozen=True)
class URLEntry:
    url: str
    lastmod: str
    changefreq: str
    priority: float

    def to_xml(self) -> str:
        return "\n".join(
            [
                "  <url>",
                f"    <loc>{escape(self.url)}</loc>",
                f"    <lastmod>{escape(self.lastmod)}</lastmod>",
                f"    <changefreq>{self.changefreq}</changefreq>",
                f"    <priority>{self.priority:.1f}</priority>",
                "  </url>",
            ]
        )


def post_lastmod(post: PostRecord) -> dt.datetime:
    return post.updated_date or post.pub_date


def build_tag_index(posts: Iterable[PostRecord]) -> dict[str, list[PostRecord]]:
    """Map each tag to the public posts carrying it. Drafts never contribute."""
    index: dict[str, list[PostRecord]] = {}
    for post in published(posts):
        for tag in dict.fromkeys(post.tags):
            index.setdefault(tag, []).append(post)
    return index


def build_entries(
    posts: Iterable[PostRecord], site_url: str, now: Optional[dt.datetime] = None
) -> list[URLEntry]:
    base = site_url.rstrip("/")
    public = published(posts)

    if public:
        site_lastmod = max(post_lastmod(post) for post in public)
    else:
        site_lastmod = now or dt.datetime.now(dt.timezone.utc)

    entries = [
        URLEntry(page_url(base, path), iso_date(site_lastmod), changefreq, priority)
        for path, changefreq, priority in STATIC_PAGES
    ]
    for post in public:
        url = page_url(base, "posts", *post.slug.split("/"))
        entries.append(URLEntry(url, iso_date(post_lastmod(post)), MONTHLY, POST_PRIORITY))
    tag_index = build_tag_index(public)
    for tag in sorted(tag_index):
        lastmod = max(post_lastmod(post) for post in tag_index[tag])
        entries.append(URLEntry(page_url(base, "tags", tag), iso_date(lastmod), WEEKLY, TAG_PRIORITY))
    return entries


def render_sitemap(entries: Iterable[URLEntry]) -> str:
    lines = [
        '<?xml version="1.0" encoding="UTF-8"?>',
        f'<urlset xmlns="{SITEMAP_NS}">',
    ]
    lines.extend(entry.to_xml() for entry in entries)
    lines.append("</urlset>")
    return "\n".join(lines) + "\n"


def build_sitemap(
    posts: Iterable[PostRecord], site_url: str, now: Optional[dt.datetime] = None
) -> tuple[Artifact, list[URLEntry]]:
    entries = build_entries(posts, site_url, now)
    body = render_sitemap(entries).encode("utf-8")
    return Artifact("sitemap.xml", body, CONTENT_TYPE, CACHE_CONTROL), entries
