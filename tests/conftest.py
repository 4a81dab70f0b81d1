import datetime as dt

import pytest
from PIL import ImageFont

from sitemanifest.content import PostRecord
from sitemanifest.fonts import BOLD, REGULAR, FontFace, FontSet


class BundledFace(FontFace):
    """Pillow's bundled FreeType font, so image tests need no network or font files."""

    def at(self, size):
        return ImageFont.load_default(size=max(1, round(size)))


def utc(*args):
    return dt.datetime(*args, tzinfo=dt.timezone.utc)


def make_post(slug, tags=(), pub=(2024, 1, 1), updated=None, draft=False, title=None, **extra):
    return PostRecord(
        slug=slug,
        title=title or slug.upper(),
        pub_date=utc(*pub),
        tags=tuple(tags),
        updated_date=utc(*updated) if updated else None,
        draft=draft,
        **extra,
    )


@pytest.fixture
def fonts():
    return FontSet([BundledFace("Bundled", REGULAR, b""), BundledFace("Bundled", BOLD, b"")])


@pytest.fixture
def write_post(tmp_path):
    posts_dir = tmp_path / "posts"
    posts_dir.mkdir()

    def write(name, front_matter, body="Hello world."):
        path = posts_dir / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(f"---\n{front_matter.strip()}\n---\n{body}\n", encoding="utf-8")
        return path

    write.dir = posts_dir
    return write
