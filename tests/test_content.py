import datetime as dt

import pytest

from sitemanifest.content import (
    ContentError,
    count_words,
    load_posts,
    parse_front_matter,
    parse_list,
    parse_timestamp,
    published,
    reading_minutes,
    slugify,
)


def test_loads_front_matter_fields(write_post):
    write_post(
        "hello-world.md",
        """
title: Hello World
description: First post
tags: [python, web]
pubDate: 2024-01-01
updatedDate: 2024-02-01T10:30:00Z
author: Someone
""",
    )
    [post] = load_posts(write_post.dir)
    assert post.slug == "hello-world"
    assert post.title == "Hello World"
    assert post.description == "First post"
    assert post.tags == ("python", "web")
    assert post.pub_date == dt.datetime(2024, 1, 1, tzinfo=dt.timezone.utc)
    assert post.updated_date == dt.datetime(2024, 2, 1, 10, 30, tzinfo=dt.timezone.utc)
    assert post.draft is False
    assert post.author == "Someone"


def test_defaults(write_post):
    write_post("a.md", "title: A\npubDate: 2024-03-03")
    [post] = load_posts(write_post.dir, default_author="Site Author")
    assert post.tags == ()
    assert post.updated_date is None
    assert post.author == "Site Author"
    assert post.reading_minutes == 1


def test_slug_comes_from_path_or_front_matter(write_post):
    write_post("2024/My First Post.mdx", "title: A\npubDate: 2024-01-01")
    write_post("other.md", "title: B\npubDate: 2024-01-01\nslug: custom/path")
    slugs = [post.slug for post in load_posts(write_post.dir)]
    assert slugs == ["2024/my-first-post", "custom/path"]


def test_ignores_non_post_files(write_post):
    write_post("a.md", "title: A\npubDate: 2024-01-01")
    (write_post.dir / "notes.txt").write_text("not a post", encoding="utf-8")
    assert len(load_posts(write_post.dir)) == 1


def test_draft_flag_and_published_filter(write_post):
    write_post("a.md", "title: A\npubDate: 2024-01-01\ndraft: true")
    write_post("b.md", "title: B\npubDate: 2024-01-02\ndraft: 'no'")
    posts = load_posts(write_post.dir)
    assert [post.draft for post in posts] == [True, False]
    assert [post.slug for post in published(posts)] == ["b"]


def test_missing_pub_date_is_an_error(write_post):
    write_post("a.md", "title: A")
    with pytest.raises(ContentError, match="missing pubDate"):
        load_posts(write_post.dir)


def test_invalid_date_is_an_error(write_post):
    write_post("a.md", "title: A\npubDate: someday")
    with pytest.raises(ContentError, match="invalid date"):
        load_posts(write_post.dir)


def test_missing_title_is_an_error(write_post):
    write_post("a.md", "pubDate: 2024-01-01")
    with pytest.raises(ContentError, match="missing title"):
        load_posts(write_post.dir)


def test_duplicate_slug_is_an_error(write_post):
    write_post("a.md", "title: A\npubDate: 2024-01-01")
    write_post("b.md", "title: B\npubDate: 2024-01-01\nslug: a")
    with pytest.raises(ContentError, match="already used"):
        load_posts(write_post.dir)


def test_missing_directory_is_an_error(tmp_path):
    with pytest.raises(ContentError):
        load_posts(tmp_path / "nope")


def test_front_matter_without_fence():
    meta, body = parse_front_matter("# Title\n\ntext")
    assert meta == {}
    assert body == "# Title\n\ntext"


def test_front_matter_must_be_mapping():
    with pytest.raises(ValueError):
        parse_front_matter("---\n- a\n- b\n---\nbody")


def test_parse_list_accepts_strings_and_lists():
    assert parse_list("a, b ,c") == ["a", "b", "c"]
    assert parse_list("['a', 'b']") == ["a", "b"]
    assert parse_list(["a", "", None, 3]) == ["a", "3"]
    assert parse_list(None) == []


def test_parse_timestamp_variants():
    assert parse_timestamp("2024-01-01") == dt.datetime(2024, 1, 1, tzinfo=dt.timezone.utc)
    assert parse_timestamp("2024-01-01T09:00:00+09:00") == dt.datetime(2024, 1, 1, tzinfo=dt.timezone.utc)
    assert parse_timestamp(dt.date(2024, 5, 6)) == dt.datetime(2024, 5, 6, tzinfo=dt.timezone.utc)


def test_slugify():
    assert slugify("Hello, World!") == "hello-world"
    assert slugify("___") == "post"


def test_reading_time_counts_words_images_and_code():
    words = " ".join(["word"] * 400)
    assert reading_minutes(words) == 2
    body = "text\n\n![img](a.png)\n\n```\ncode\n```\n\n```\nmore\n```\n"
    # 1 word, one image (0.25) and two code blocks (1.0)
    assert reading_minutes(body) == 2


def test_reading_time_counts_hangul_as_half_words():
    assert reading_minutes("가" * 500) == 2


def test_count_words_splits_letters_and_digits():
    assert count_words("abc123 def") == 3
    assert count_words("漢字かな") == 0
    assert count_words("한국어 text") == 2.5


@pytest.mark.parametrize("slug", ["../../escaped", "a/../b", "a//b", "./x", "a\\b"])
def test_unsafe_front_matter_slug_is_an_error(write_post, slug):
    write_post("a.md", f"title: A\npubDate: 2024-01-01\nslug: '{slug}'")
    with pytest.raises(ContentError, match="invalid slug"):
        load_posts(write_post.dir)
