from __future__ import annotations

import argparse
import datetime as dt
import os
import sys
import time
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Iterable, Optional, Sequence

from . import ogimage
from .cache import hash_parts, load_lock, write_lock
from .config import SiteConfig, load_config, site_config_from_args
from .content import ContentError, PostRecord, load_posts, published
from .feed import build_posts_index
from .fonts import FontError, load_fonts
from .render import Artifact, HeaderRule, header_rule, render_headers, write_artifact, write_text
from .robots import build_robots
from .sitemap import build_sitemap
from .utils import clean_output_dir, parse_bool, parse_int


def og_card_key(post: PostRecord, config: SiteConfig) -> str:
    tags = ogimage.card_tags(post.tags)
    return hash_parts(
        [
            post.title,
            str(len(tags)),
            *tags,
            config.site_name,
            config.author,
            config.font_family,
            config.font_regular,
            config.font_bold,
        ]
    )


def og_path(slug: str) -> str:
    return f"og/{slug}.png"


def build_og_images(
    posts: Sequence[PostRecord],
    config: SiteConfig,
    output_dir: Path,
    previous: dict,
    incremental: bool = True,
    workers: int = 1,
) -> tuple[dict[str, str], int]:
    """Render preview cards for public posts whose inputs changed since the last build."""
    keys = {post.slug: og_card_key(post, config) for post in published(posts)}
    pending = [
        post
        for post in published(posts)
        if not (
            incremental
            and previous.get(post.slug) == keys[post.slug]
            and (output_dir / og_path(post.slug)).exists()
        )
    ]
    if pending:
        fonts = load_fonts(config)

        def render_card(post: PostRecord) -> None:
            artifact = ogimage.build_og_image(
                post.slug, post.title, post.tags, fonts, config.site_name, config.author
            )
            write_artifact(output_dir, artifact)

        workers = max(1, min(workers, len(pending)))
        if workers <= 1:
            for post in pending:
                render_card(post)
        else:
            with ThreadPoolExecutor(max_workers=workers) as executor:
                list(executor.map(render_card, pending))

    remove_stale_images(output_dir, keys)
    return keys, len(pending)


def remove_stale_images(output_dir: Path, keep: Iterable[str]) -> list[Path]:
    og_dir = output_dir / "og"
    if not og_dir.exists():
        return []
    keep = set(keep)
    removed = []
    for path in sorted(og_dir.rglob("*.png")):
        if path.relative_to(og_dir).with_suffix("").as_posix() in keep:
            continue
        path.unlink()
        removed.append(path)
    return removed


def build_site(args: argparse.Namespace) -> None:
    config = site_config_from_args(args)
    posts_dir = Path(args.posts)
    output_dir = Path(args.output)
    project_root = Path.cwd()
    config_path = Path(args.config)
    if not config_path.is_absolute():
        config_path = (project_root / config_path).resolve()
    lock_path = Path(args.lock_file)
    if not lock_path.is_absolute():
        lock_path = config_path.parent / lock_path

    incremental = parse_bool(args.incremental) and not args.clean
    build_workers = int(args.build_workers or 0)
    if build_workers <= 0:
        build_workers = os.cpu_count() or 1
    build_workers = max(1, min(build_workers, 32))

    posts = load_posts(posts_dir, config.author)
    public = published(posts)
    print(f"Loaded {len(posts)} posts ({len(public)} published, {len(posts) - len(public)} drafts).")

    if args.clean:
        clean_output_dir(output_dir, project_root)
    output_dir.mkdir(parents=True, exist_ok=True)
    previous_state = load_lock(lock_path) if incremental else {}

    artifacts: list[Artifact] = []
    if args.enable_sitemap:
        sitemap, entries = build_sitemap(posts, config.site_url)
        artifacts.append(sitemap)
        print(f"Wrote sitemap.xml ({len(entries)} URLs).")
    if args.enable_robots:
        artifacts.append(build_robots(config.site_url))
        print("Wrote robots.txt.")
    if args.enable_posts_json:
        artifacts.append(build_posts_index(posts))
        print(f"Wrote api/posts.json ({len(public)} posts).")
    for artifact in artifacts:
        write_artifact(output_dir, artifact)
    rules: list[HeaderRule] = [header_rule(artifact) for artifact in artifacts]

    og_state = previous_state.get("og", {}) if isinstance(previous_state.get("og"), dict) else {}
    if args.enable_og:
        og_state, rendered = build_og_images(
            posts, config, output_dir, og_state, incremental=incremental, workers=build_workers
        )
        skipped = len(og_state) - rendered
        print(f"Rendered {rendered} preview images ({skipped} unchanged).")
        rules.append(HeaderRule(ogimage.ROUTE, ogimage.CONTENT_TYPE, ogimage.CACHE_CONTROL))

    if args.enable_headers and rules:
        write_text(output_dir / "_headers", render_headers(rules))

    write_lock(
        lock_path,
        {
            "built_at": dt.datetime.now().replace(microsecond=0).isoformat(),
            "site_url": config.site_url,
            "og": og_state,
        },
    )


def main(argv: Optional[Sequence[str]] = None) -> None:
    pre_parser = argparse.ArgumentParser(add_help=False)
    pre_parser.add_argument(
        "--config",
        default="site.toml",
        help="Path to site config file (TOML/YAML/JSON).",
    )
    pre_args, _ = pre_parser.parse_known_args(argv)
    config = load_config(Path(pre_args.config))

    def cfg_value(key: str, default: object) -> object:
        value = config.get(key)
        return default if value is None else value

    def cfg_str(key: str, default: str) -> str:
        value = cfg_value(key, default)
        return default if value is None else str(value)

    def cfg_bool(key: str, default: bool) -> bool:
        value = cfg_value(key, default)
        return parse_bool(value) if value is not None else default

    def cfg_int(key: str, default: int) -> int:
        value = cfg_value(key, default)
        return parse_int(value, default)

    parser = argparse.ArgumentParser(description="Generate sitemap.xml, robots.txt and preview images for a blog.")
    parser.add_argument("--config", default=pre_args.config, help="Path to site config file (TOML/YAML/JSON).")
    parser.add_argument("--posts", default=cfg_str("posts", "posts"), help="Directory containing Markdown posts.")
    parser.add_argument("--output", default=cfg_str("output", "dist"), help="Output directory for generated files.")
    parser.add_argument(
        "--site-url",
        default=cfg_str("site_url", ""),
        help="Public site URL used for sitemap and robots.txt.",
    )
    parser.add_argument("--site-name", default=cfg_str("site_name", ""), help="Domain shown on preview images.")
    parser.add_argument("--author", default=cfg_str("author", ""), help="Author name shown on preview images.")
    parser.add_argument("--font-family", default=cfg_str("font_family", ""), help="Preview image font family.")
    parser.add_argument(
        "--font-regular",
        default=cfg_str("font_regular", ""),
        help="URL or path of the regular (400) font file.",
    )
    parser.add_argument(
        "--font-bold",
        default=cfg_str("font_bold", ""),
        help="URL or path of the bold (700) font file.",
    )
    parser.add_argument(
        "--font-timeout",
        default=cfg_value("font_timeout", None),
        type=float,
        help="Seconds to wait for each font download.",
    )
    parser.add_argument(
        "--enable-sitemap",
        action=argparse.BooleanOptionalAction,
        default=cfg_bool("enable_sitemap", True),
        help="Generate sitemap.xml.",
    )
    parser.add_argument(
        "--enable-robots",
        action=argparse.BooleanOptionalAction,
        default=cfg_bool("enable_robots", True),
        help="Generate robots.txt.",
    )
    parser.add_argument(
        "--enable-og",
        action=argparse.BooleanOptionalAction,
        default=cfg_bool("enable_og", True),
        help="Generate Open Graph preview images.",
    )
    parser.add_argument(
        "--enable-posts-json",
        action=argparse.BooleanOptionalAction,
        default=cfg_bool("enable_posts_json", True),
        help="Generate api/posts.json.",
    )
    parser.add_argument(
        "--enable-headers",
        action=argparse.BooleanOptionalAction,
        default=cfg_bool("enable_headers", True),
        help="Write a _headers file with content types and cache policies.",
    )
    parser.add_argument(
        "--clean",
        action=argparse.BooleanOptionalAction,
        default=cfg_bool("clean", False),
        help="Clean output directory and re-render everything.",
    )
    parser.add_argument(
        "--incremental",
        action=argparse.BooleanOptionalAction,
        default=cfg_bool("incremental", True),
        help="Skip preview images whose inputs did not change.",
    )
    parser.add_argument(
        "--lock-file",
        default=cfg_str("lock_file", "build.lock.json"),
        help="Path to build lock JSON.",
    )
    parser.add_argument(
        "--build-workers",
        default=cfg_int("build_workers", 0),
        type=int,
        help="Number of worker threads for image rendering (0 = auto).",
    )
    args = parser.parse_args(argv)
    start = time.perf_counter()
    try:
        build_site(args)
    except (ContentError, FontError) as exc:
        print(f"Build failed: {exc}", file=sys.stderr)
        sys.exit(1)
    elapsed = time.perf_counter() - start
    print(f"Build completed in {elapsed:.2f}s.")
    print(f"Files generated in: {args.output}")
