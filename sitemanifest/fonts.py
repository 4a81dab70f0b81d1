from __future__ import annotations

import io
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional

import requests
from PIL import ImageFont

from .config import SiteConfig

REGULAR = 400
BOLD = 700


class FontError(Exception):
    pass


@dataclass(frozen=True)
class FontFace:
    family: str
    weight: int
    data: bytes

    def at(self, size: float) -> ImageFont.FreeTypeFont:
        try:
            return ImageFont.truetype(io.BytesIO(self.data), max(1, round(size)))
        except OSError as exc:
            raise FontError(f"Cannot load {self.family} {self.weight}: {exc}") from exc


class FontSet:
    def __init__(self, faces: Iterable[FontFace]):
        self.faces = sorted(faces, key=lambda face: face.weight)
        if not self.faces:
            raise FontError("At least one font face is required.")

    @property
    def family(self) -> str:
        return self.faces[0].family

    def pick(self, weight: int) -> FontFace:
        return min(self.faces, key=lambda face: (abs(face.weight - weight), -face.weight))


def is_url(source: str) -> bool:
    return source.startswith(("http://", "https://"))


def fetch_font(source: str, timeout: float = 30.0, session: Optional[requests.Session] = None) -> bytes:
    if not is_url(source):
        try:
            return Path(source).read_bytes()
        except OSError as exc:
            raise FontError(f"Cannot read font {source}: {exc}") from exc
    getter = session or requests
    try:
        response = getter.get(source, timeout=timeout)
        response.raise_for_status()
    except requests.exceptions.RequestException as exc:
        raise FontError(f"Cannot fetch font {source}: {exc}") from exc
    if not response.content:
        raise FontError(f"Empty font response from {source}")
    return response.content


def load_fonts(config: SiteConfig, session: Optional[requests.Session] = None) -> FontSet:
    faces = [
        FontFace(config.font_family, REGULAR, fetch_font(config.font_regular, config.font_timeout, session)),
        FontFace(config.font_family, BOLD, fetch_font(config.font_bold, config.font_timeout, session)),
    ]
    return FontSet(faces)
