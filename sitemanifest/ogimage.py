from __future__ import annotations

from typing import Sequence

from .fonts import FontSet
from .layout import LayoutEngine, Node, Scene, h, rasterize, to_svg
from .render import Artifact

CONTENT_TYPE = "image/png"
CACHE_CONTROL = "public, max-age=31536000, immutable"
ROUTE = "/og/*"

WIDTH = 1200
HEIGHT = 630
MAX_TAGS = 3

BACKGROUND = "#1e1e1e"
FOREGROUND = "#d4d4d4"
TITLE_COLOR = "#ffffff"
TAG_BACKGROUND = "rgba(88, 166, 255, 0.15)"
TAG_COLOR = "#58a6ff"
FOOTER_COLOR = "#888888"
SEPARATOR = "1px solid #3c3c3c"


def card_tags(tags: Sequence[str]) -> list[str]:
    return list(tags[:MAX_TAGS])


def build_card(title: str, tags: Sequence[str], site_name: str, author: str) -> Node:
    """Layout tree for a post preview card: title, up to three tag chips, footer."""
    chips = [
        h(
            "span",
            {
                "font-size": 18,
                "padding": "4px 12px",
                "background-color": TAG_BACKGROUND,
                "color": TAG_COLOR,
                "border-radius": 6,
            },
            tag,
        )
        for tag in card_tags(tags)
    ]
    tag_row = h("div", {"flex-direction": "row", "gap": 8, "margin-top": 8}, chips) if chips else None
    header = h(
        "div",
        {"flex-direction": "column", "gap": 16},
        h(
            "div",
            {"font-size": 42, "font-weight": 700, "line-height": 1.3, "color": TITLE_COLOR, "max-width": 900},
            title,
        ),
        tag_row,
    )
    footer = h(
        "div",
        {
            "flex-direction": "row",
            "justify-content": "space-between",
            "align-items": "center",
            "border-top": SEPARATOR,
            "padding": "24px 0 0 0",
        },
        h("span", {"font-size": 22, "color": FOOTER_COLOR}, site_name),
        h("span", {"font-size": 22, "color": FOOTER_COLOR}, author),
    )
    return h(
        "div",
        {
            "flex-direction": "column",
            "justify-content": "space-between",
            "width": "100%",
            "height": "100%",
            "padding": 60,
            "background-color": BACKGROUND,
            "color": FOREGROUND,
        },
        header,
        footer,
    )


def layout_card(title: str, tags: Sequence[str], fonts: FontSet, site_name: str, author: str) -> Scene:
    return LayoutEngine(fonts).render(build_card(title, tags, site_name, author), WIDTH, HEIGHT)


def render_svg(title: str, tags: Sequence[str], fonts: FontSet, site_name: str, author: str) -> str:
    return to_svg(layout_card(title, tags, fonts, site_name, author))


def render_png(title: str, tags: Sequence[str], fonts: FontSet, site_name: str, author: str) -> bytes:
    return rasterize(layout_card(title, tags, fonts, site_name, author))


def build_og_image(slug: str, title: str, tags: Sequence[str], fonts: FontSet, site_name: str, author: str) -> Artifact:
    png = render_png(title, tags, fonts, site_name, author)
    return Artifact(f"og/{slug}.png", png, CONTENT_TYPE, CACHE_CONTROL)
