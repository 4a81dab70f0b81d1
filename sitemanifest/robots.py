from __future__ import annotations

from .render import Artifact
from .utils import join_url

CONTENT_TYPE = "text/plain"
CACHE_CONTROL = "public, max-age=86400"

DISALLOWED = ("/admin/", "/.well-known/", "/api/")
ALLOWED_FILES = ("/favicon.ico", "/robots.txt", "/sitemap.xml")
NAMED_AGENTS = ("Googlebot", "Bingbot", "Slurp")


def render_robots(site_url: str) -> str:
    lines = [
        "User-agent: *",
        "Allow: /",
        "",
        "# Sitemaps",
        f"Sitemap: {join_url(site_url, 'sitemap.xml')}",
        "",
        "# Crawl-delay for respectful crawling",
        "Crawl-delay: 1",
        "",
        "# Disallow non-content areas",
    ]
    lines.extend(f"Disallow: {path}" for path in DISALLOWED)
    lines.extend(["", "# Allow important files"])
    lines.extend(f"Allow: {path}" for path in ALLOWED_FILES)
    lines.extend(["", "# Named crawlers"])
    for agent in NAMED_AGENTS:
        lines.extend([f"User-agent: {agent}", "Allow: /", ""])
    return "\n".join(lines)


def build_robots(site_url: str) -> Artifact:
    return Artifact("robots.txt", render_robots(site_url).encode("utf-8"), CONTENT_TYPE, CACHE_CONTROL)
