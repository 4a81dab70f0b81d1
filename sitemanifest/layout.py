"""Flexbox-subset layout for preview cards. The PNG is painted from the same display
list that `to_svg` serializes; the SVG form is for inspection and is not written by the build.
"""

from __future__ import annotations

import base64
import io
import re
from dataclasses import dataclass, field
from typing import Optional, Union
from xml.sax.saxutils import escape, quoteattr

from PIL import Image, ImageColor, ImageDraw, ImageFont

from .fonts import FontSet

Color = tuple[int, int, int, int]

INHERITED = ("color", "font-size", "font-weight", "line-height", "font-family")
DEFAULT_TEXT_STYLE = {"color": "#000000", "font-size": 16, "font-weight": 400, "line-height": 1.2}

RGBA_RE = re.compile(r"rgba?\(\s*([\d.]+)\s*,\s*([\d.]+)\s*,\s*([\d.]+)\s*(?:,\s*([\d.]+)\s*)?\)")
LENGTH_RE = re.compile(r"(-?\d+(?:\.\d+)?)(px|%)?")


@dataclass
class Node:
    tag: str
    style: dict = field(default_factory=dict)
    children: list[Union["Node", str]] = field(default_factory=list)

    @property
    def text(self) -> Optional[str]:
        if self.children and all(isinstance(child, str) for child in self.children):
            return "".join(self.children)
        return None


def h(tag: str, style: Optional[dict] = None, *children) -> Node:
    """Build a node; ``None`` children are dropped and lists are flattened."""
    flat: list = []
    for child in children:
        if isinstance(child, (list, tuple)):
            flat.extend(item for item in child if item is not None)
        elif child is not None:
            flat.append(child)
    if any(isinstance(child, Node) for child in flat):
        flat = [Node("span", {}, [child]) if isinstance(child, str) else child for child in flat]
    return Node(tag, dict(style or {}), flat)


@dataclass(frozen=True)
class Edges:
    top: float = 0.0
    right: float = 0.0
    bottom: float = 0.0
    left: float = 0.0


@dataclass(frozen=True)
class Rect:
    x: float
    y: float
    width: float
    height: float
    fill: Color
    radius: float = 0.0


@dataclass(frozen=True)
class Text:
    x: float
    baseline: float
    text: str
    size: int
    weight: int
    fill: Color


@dataclass
class Scene:
    width: int
    height: int
    fonts: FontSet
    items: list[Union[Rect, Text]] = field(default_factory=list)

    def texts(self) -> list[str]:
        return [item.text for item in self.items if isinstance(item, Text)]


def parse_color(value: object) -> Color:
    text = str(value).strip()
    match = RGBA_RE.fullmatch(text)
    if match:
        red, green, blue = (int(float(part)) for part in match.group(1, 2, 3))
        alpha = match.group(4)
        return red, green, blue, 255 if alpha is None else round(float(alpha) * 255)
    return ImageColor.getcolor(text, "RGBA")


def parse_length(value: object, reference: Optional[float] = None) -> Optional[float]:
    if value is None:
        return None
    if isinstance(value, (int, float)):
        return float(value)
    match = LENGTH_RE.fullmatch(str(value).strip())
    if not match:
        raise ValueError(f"Unsupported length: {value!r}")
    number = float(match.group(1))
    if match.group(2) == "%":
        return None if reference is None else reference * number / 100
    return number


def parse_edges(value: object) -> Edges:
    if value is None:
        return Edges()
    if isinstance(value, (int, float)):
        parts = [float(value)]
    else:
        parts = [parse_length(part) or 0.0 for part in str(value).split()]
    if len(parts) == 1:
        return Edges(parts[0], parts[0], parts[0], parts[0])
    if len(parts) == 2:
        return Edges(parts[0], parts[1], parts[0], parts[1])
    if len(parts) == 3:
        return Edges(parts[0], parts[1], parts[2], parts[1])
    return Edges(*parts[:4])


def parse_border(value: object) -> Optional[tuple[float, Color]]:
    if not value:
        return None
    width = 1.0
    color: Color = (0, 0, 0, 255)
    for token in str(value).split():
        if LENGTH_RE.fullmatch(token):
            width = parse_length(token) or 0.0
        elif token not in {"solid", "none"}:
            color = parse_color(token)
    return (width, color) if width > 0 else None


class FontCache:
    """Sized FreeType fonts keyed by (weight, size). Not shared across threads."""

    def __init__(self, fonts: FontSet):
        self.fonts = fonts
        self._fonts: dict[tuple[int, int], ImageFont.FreeTypeFont] = {}

    def get(self, weight: int, size: int) -> ImageFont.FreeTypeFont:
        face = self.fonts.pick(weight)
        key = (face.weight, size)
        if key not in self._fonts:
            self._fonts[key] = face.at(size)
        return self._fonts[key]


class LayoutEngine:
    def __init__(self, fonts: FontSet):
        self.fonts = fonts
        self.cache = FontCache(fonts)

    def render(self, root: Node, width: int, height: int) -> Scene:
        base = dict(DEFAULT_TEXT_STYLE, **{"font-family": self.fonts.family})
        scene = Scene(width, height, self.fonts)
        self.place(root, self.resolve(root, base), 0.0, 0.0, float(width), float(height), scene.items)
        return scene

    @staticmethod
    def resolve(node: Node, parent_style: dict) -> dict:
        style = {key: parent_style[key] for key in INHERITED if key in parent_style}
        style.update(node.style)
        return style

    @staticmethod
    def is_row(style: dict) -> bool:
        return style.get("flex-direction", "row") == "row"

    @staticmethod
    def font_size(style: dict) -> int:
        return max(1, round(parse_length(style.get("font-size")) or 16))

    @staticmethod
    def font_weight(style: dict) -> int:
        weight = style.get("font-weight", 400)
        if weight == "bold":
            return 700
        if weight == "normal":
            return 400
        return int(weight)

    def font(self, style: dict) -> ImageFont.FreeTypeFont:
        return self.cache.get(self.font_weight(style), self.font_size(style))

    def line_height(self, style: dict) -> float:
        value = style.get("line-height", 1.2)
        if isinstance(value, str) and value.strip().endswith("px"):
            return parse_length(value) or 0.0
        return float(value) * self.font_size(style)

    def wrap(self, text: str, style: dict, width: float) -> list[str]:
        font = self.font(style)
        lines = []
        for paragraph in text.split("\n"):
            current = ""
            for word in paragraph.split():
                candidate = f"{current} {word}" if current else word
                if current and font.getlength(candidate) > width:
                    lines.append(current)
                    current = word
                else:
                    current = candidate
            lines.append(current)
        return lines

    def children(self, node: Node, style: dict) -> list[tuple[Node, dict]]:
        return [(child, self.resolve(child, style)) for child in node.children if isinstance(child, Node)]

    def measure(self, node: Node, style: dict, available: float) -> tuple[float, float]:
        pad = parse_edges(style.get("padding"))
        border = parse_border(style.get("border-top"))
        border_width = border[0] if border else 0.0
        fixed = parse_length(style.get("width"), available)
        outer = fixed if fixed is not None else available
        max_width = parse_length(style.get("max-width"), available)
        if max_width is not None:
            outer = min(outer, max_width)
        inner = max(0.0, outer - pad.left - pad.right)

        content_w, content_h = self.measure_content(node, style, inner)
        width = outer if fixed is not None else min(outer, content_w + pad.left + pad.right)
        height = parse_length(style.get("height"))
        if height is None:
            height = content_h + pad.top + pad.bottom + border_width
        return width, height

    def measure_content(self, node: Node, style: dict, inner: float) -> tuple[float, float]:
        text = node.text
        if text is not None:
            font = self.font(style)
            lines = self.wrap(text, style, inner)
            return max(font.getlength(line) for line in lines), len(lines) * self.line_height(style)
        children = self.children(node, style)
        if not children:
            return 0.0, 0.0
        gap = parse_length(style.get("gap")) or 0.0
        sizes = [self.measure(child, child_style, inner) for child, child_style in children]
        margins = [parse_length(child_style.get("margin-top")) or 0.0 for _, child_style in children]
        total_gap = gap * (len(children) - 1)
        if self.is_row(style):
            width = sum(w for w, _ in sizes) + total_gap
            height = max(h + margin for (_, h), margin in zip(sizes, margins))
        else:
            width = max(w for w, _ in sizes)
            height = sum(h + margin for (_, h), margin in zip(sizes, margins)) + total_gap
        return width, height

    def place(self, node: Node, style: dict, x: float, y: float, width: float, height: float, items: list) -> None:
        background = style.get("background-color")
        if background:
            radius = parse_length(style.get("border-radius")) or 0.0
            items.append(Rect(x, y, width, height, parse_color(background), radius))
        border = parse_border(style.get("border-top"))
        border_width = 0.0
        if border:
            border_width, border_color = border
            items.append(Rect(x, y, width, border_width, border_color))

        pad = parse_edges(style.get("padding"))
        cx = x + pad.left
        cy = y + border_width + pad.top
        cw = max(0.0, width - pad.left - pad.right)
        ch = max(0.0, height - border_width - pad.top - pad.bottom)

        text = node.text
        if text is not None:
            self.place_text(text, style, cx, cy, cw, items)
            return
        children = self.children(node, style)
        if not children:
            return

        row = self.is_row(style)
        gap = parse_length(style.get("gap")) or 0.0
        sizes = [self.measure(child, child_style, cw) for child, child_style in children]
        margins = [parse_length(child_style.get("margin-top")) or 0.0 for _, child_style in children]
        if row:
            used = sum(w for w, _ in sizes)
        else:
            used = sum(h + margin for (_, h), margin in zip(sizes, margins))
        free = (cw if row else ch) - used - gap * (len(children) - 1)

        justify = style.get("justify-content", "flex-start")
        cursor, spacing = 0.0, gap
        if justify == "center":
            cursor = free / 2
        elif justify == "flex-end":
            cursor = free
        elif justify == "space-between" and len(children) > 1:
            spacing = gap + max(free, 0.0) / (len(children) - 1)
        align = style.get("align-items", "stretch")

        for (child, child_style), (measured_w, measured_h), margin in zip(children, sizes, margins):
            if row:
                cross = ch - margin
                child_w = measured_w
                child_h = cross if align == "stretch" and "height" not in child_style else measured_h
                offset = self.cross_offset(align, cross, child_h)
                self.place(child, child_style, cx + cursor, cy + margin + offset, child_w, child_h, items)
                cursor += child_w + spacing
            else:
                cursor += margin
                child_h = measured_h
                if align == "stretch" and "width" not in child_style:
                    child_w = cw
                    max_width = parse_length(child_style.get("max-width"), cw)
                    if max_width is not None:
                        child_w = min(child_w, max_width)
                else:
                    child_w = measured_w
                offset = self.cross_offset(align, cw, child_w)
                self.place(child, child_style, cx + offset, cy + cursor, child_w, child_h, items)
                cursor += child_h + spacing

    @staticmethod
    def cross_offset(align: str, space: float, size: float) -> float:
        if align == "center":
            return (space - size) / 2
        if align == "flex-end":
            return space - size
        return 0.0

    def place_text(self, text: str, style: dict, x: float, y: float, width: float, items: list) -> None:
        font = self.font(style)
        line_height = self.line_height(style)
        ascent, descent = font.getmetrics()
        leading = (line_height - ascent - descent) / 2
        fill = parse_color(style.get("color", "#000000"))
        size, weight = self.font_size(style), self.font_weight(style)
        for index, line in enumerate(self.wrap(text, style, width)):
            if line:
                baseline = y + index * line_height + leading + ascent
                items.append(Text(x, baseline, line, size, weight, fill))


def fmt(value: float) -> str:
    text = f"{value:.2f}".rstrip("0").rstrip(".")
    return "0" if text in {"", "-0"} else text


def svg_fill(color: Color) -> str:
    red, green, blue, alpha = color
    fill = f'fill="#{red:02x}{green:02x}{blue:02x}"'
    if alpha < 255:
        fill += f' fill-opacity="{fmt(alpha / 255)}"'
    return fill


def to_svg(scene: Scene, embed_fonts: bool = True) -> str:
    family = scene.fonts.family
    parts = [
        f'<svg xmlns="http://www.w3.org/2000/svg" width="{scene.width}" height="{scene.height}" '
        f'viewBox="0 0 {scene.width} {scene.height}">'
    ]
    if embed_fonts:
        faces = []
        for face in scene.fonts.faces:
            if face.data:
                data = base64.b64encode(face.data).decode("ascii")
                faces.append(
                    f"@font-face{{font-family:'{face.family}';font-weight:{face.weight};"
                    f"src:url(data:font/ttf;base64,{data}) format('truetype');}}"
                )
        if faces:
            parts.append(f"<defs><style>{''.join(faces)}</style></defs>")
    for item in scene.items:
        if isinstance(item, Rect):
            radius = f' rx="{fmt(item.radius)}"' if item.radius else ""
            parts.append(
                f'<rect x="{fmt(item.x)}" y="{fmt(item.y)}" width="{fmt(item.width)}" '
                f'height="{fmt(item.height)}"{radius} {svg_fill(item.fill)}/>'
            )
        else:
            parts.append(
                f'<text x="{fmt(item.x)}" y="{fmt(item.baseline)}" font-family={quoteattr(family)} '
                f'font-size="{item.size}" font-weight="{item.weight}" {svg_fill(item.fill)}>'
                f"{escape(item.text)}</text>"
            )
    parts.append("</svg>")
    return "".join(parts)


def rasterize(scene: Scene) -> bytes:
    """Paint the scene onto a ``scene.width`` x ``scene.height`` canvas and return PNG bytes."""
    cache = FontCache(scene.fonts)
    canvas = Image.new("RGBA", (scene.width, scene.height), (0, 0, 0, 0))
    for item in scene.items:
        layer = Image.new("RGBA", canvas.size, (0, 0, 0, 0))
        draw = ImageDraw.Draw(layer)
        if isinstance(item, Rect):
            if item.width <= 0 or item.height <= 0:
                continue
            box = [item.x, item.y, max(item.x, item.x + item.width - 1), max(item.y, item.y + item.height - 1)]
            if item.radius:
                draw.rounded_rectangle(box, radius=item.radius, fill=item.fill)
            else:
                draw.rectangle(box, fill=item.fill)
        else:
            font = cache.get(item.weight, item.size)
            draw.text((item.x, item.baseline), item.text, font=font, fill=item.fill, anchor="ls")
        canvas = Image.alpha_composite(canvas, layer)
    out = io.BytesIO()
    canvas.convert("RGB").save(out, format="PNG")
    return out.getvalue()
