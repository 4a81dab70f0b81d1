from __future__ import annotations

import json
from typing import Iterable

from .content import PostRecord, published
from .render import Artifact
from .utils import iso_date

CONTENT_TYPE = "application/json"


def post_summary(post: PostRecord) -> dict:
    return {
        "slug": post.slug,
        "title": post.title,
        "description": post.description,
        "tags": list(post.tags),
        "pubDate": iso_date(post.pub_date),
        "author": post.author,
        "readingTime": post.reading_minutes,
    }


def build_posts_index(posts: Iterable[PostRecord]) -> Artifact:
    data = [post_summary(post) for post in published(posts)]
    body = json.dumps(data, ensure_ascii=False, indent=2) + "\n"
    return Artifact("api/posts.json", body.encode("utf-8"), CONTENT_TYPE)
