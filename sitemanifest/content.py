from __future__ import annotations

import datetime as dt
import html as html_lib
import math
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional

import markdown
import yaml

from .render import strip_tags
from .utils import parse_bool, to_utc

POST_SUFFIXES = {".md", ".mdx"}
WORDS_PER_MINUTE = 200
HANGUL_RE = re.compile(r"[\uac00-\ud7a3]")
WORD_RE = re.compile(r"[A-Za-z]+|\d+")
PRE_RE = re.compile(r"<pre[\s>].*?</pre>", re.DOTALL | re.IGNORECASE)
IMG_RE = re.compile(r"<img[\s>]", re.IGNORECASE)

PUB_KEYS = ("pubDate", "pub_date", "date")
UPDATED_KEYS = ("updatedDate", "updated_date", "updated")


class ContentError(Exception):
    """A post file cannot be turned into a PostRecord."""


@dataclass(frozen=True)
class PostRecord:
    slug: str
    title: str
    pub_date: dt.datetime
    description: str = ""
    tags: tuple[str, ...] = ()
    updated_date: Optional[dt.datetime] = None
    draft: bool = False
    author: str = ""
    reading_minutes: int = 1


def slugify(text: str) -> str:
    text = text.lower()
    text = re.sub(r"[^\w]+", "-", text, flags=re.UNICODE)
    text = text.strip("-_").replace("_", "-")
    return text or "post"


def parse_list(value: object) -> list[str]:
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        items = [str(item).strip() for item in value if item is not None]
        return [item for item in items if item]
    value = str(value).strip()
    if value.startswith("[") and value.endswith("]"):
        inner = value[1:-1]
        items = [item.strip().strip("'\"") for item in inner.split(",")]
    else:
        items = [item.strip() for item in value.split(",")]
    return [item for item in items if item]


def parse_front_matter(text: str) -> tuple[dict, str]:
    clean_text = text.lstrip("\ufeff")
    lines = clean_text.splitlines()
    if not lines or lines[0].strip() != "---":
        return {}, clean_text

    end = None
    for i in range(1, len(lines)):
        if lines[i].strip() == "---":
            end = i
            break
    if end is None:
        return {}, clean_text

    meta = yaml.safe_load("\n".join(lines[1:end])) or {}
    if not isinstance(meta, dict):
        raise ValueError("front-matter must be a mapping")
    body = "\n".join(lines[end + 1 :])
    return meta, body


def parse_timestamp(value: object) -> dt.datetime:
    if isinstance(value, (dt.date, dt.datetime)):
        return to_utc(value)
    text = str(value).strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return to_utc(dt.datetime.fromisoformat(text))
    except ValueError:
        return to_utc(dt.date.fromisoformat(text))


def first_value(meta: dict, keys: Iterable[str]) -> object:
    for key in keys:
        value = meta.get(key)
        if value not in (None, ""):
            return value
    return None


def count_words(text: str) -> float:
    text = html_lib.unescape(text)
    syllables = len(HANGUL_RE.findall(text))
    return syllables * 0.5 + len(WORD_RE.findall(text))


def reading_minutes(body: str) -> int:
    html_text = markdown.markdown(body, extensions=["fenced_code", "tables"])
    code_blocks = len(PRE_RE.findall(html_text))
    images = len(IMG_RE.findall(html_text))
    words = count_words(strip_tags(PRE_RE.sub(" ", html_text)))
    minutes = words / WORDS_PER_MINUTE + images * 0.25 + code_blocks * 0.5
    return max(1, math.ceil(minutes))


def slug_for(md_file: Path, root: Path, meta: dict) -> str:
    explicit = str(meta.get("slug") or "").strip().strip("/")
    if explicit:
        for segment in explicit.split("/"):
            if segment.strip() in ("", ".", "..") or "\\" in segment:
                raise ContentError(f"{md_file}: invalid slug {explicit!r}")
        return explicit
    rel = md_file.relative_to(root).with_suffix("")
    return "/".join(slugify(part) for part in rel.parts)


def parse_post(md_file: Path, root: Path, default_author: str = "") -> PostRecord:
    try:
        meta, body = parse_front_matter(md_file.read_text(encoding="utf-8"))
    except (ValueError, yaml.YAMLError) as exc:
        raise ContentError(f"{md_file}: invalid front-matter: {exc}") from exc

    title = str(meta.get("title") or "").strip()
    if not title:
        raise ContentError(f"{md_file}: missing title")

    pub_value = first_value(meta, PUB_KEYS)
    if pub_value is None:
        raise ContentError(f"{md_file}: missing pubDate")
    updated_value = first_value(meta, UPDATED_KEYS)
    try:
        pub_date = parse_timestamp(pub_value)
        updated_date = parse_timestamp(updated_value) if updated_value is not None else None
    except ValueError as exc:
        raise ContentError(f"{md_file}: invalid date: {exc}") from exc

    return PostRecord(
        slug=slug_for(md_file, root, meta),
        title=title,
        description=str(meta.get("description") or "").strip(),
        tags=tuple(parse_list(meta.get("tags"))),
        pub_date=pub_date,
        updated_date=updated_date,
        draft=parse_bool(meta.get("draft")),
        author=str(meta.get("author") or default_author).strip(),
        reading_minutes=reading_minutes(body),
    )


def load_posts(posts_dir: Path, default_author: str = "") -> list[PostRecord]:
    if not posts_dir.exists():
        raise ContentError(f"Posts directory not found: {posts_dir}")
    post_files = sorted(
        (path for path in posts_dir.rglob("*") if path.is_file() and path.suffix.lower() in POST_SUFFIXES),
        key=lambda p: p.as_posix(),
    )
    posts = []
    seen: dict[str, Path] = {}
    for md_file in post_files:
        post = parse_post(md_file, posts_dir, default_author)
        if post.slug in seen:
            raise ContentError(f"{md_file}: slug {post.slug!r} already used by {seen[post.slug]}")
        seen[post.slug] = md_file
        posts.append(post)
    return posts


def published(posts: Iterable[PostRecord]) -> list[PostRecord]:
    return [post for post in posts if not post.draft]
