from __future__ import annotations

import json
import sys
import tomllib
from dataclasses import dataclass
from pathlib import Path

import yaml

DEFAULT_SITE_URL = "https://jongminlee.dev"
DEFAULT_SITE_NAME = "jongmin.me"
DEFAULT_AUTHOR = "Jongmin Lee"
DEFAULT_FONT_FAMILY = "Inter"
DEFAULT_FONT_REGULAR = (
    "https://fonts.gstatic.com/s/inter/v18/UcCO3FwrK3iLTeHuS_nVMrMxCp50SjIw2boKoduKmMEVuLyfMZhrib2Bg-4.ttf"
)
DEFAULT_FONT_BOLD = (
    "https://fonts.gstatic.com/s/inter/v18/UcCO3FwrK3iLTeHuS_nVMrMxCp50SjIw2boKoduKmMEVuBWYMZhrib2Bg-4.ttf"
)
DEFAULT_FONT_TIMEOUT = 30.0


@dataclass(frozen=True)
class SiteConfig:
    site_url: str = DEFAULT_SITE_URL
    site_name: str = DEFAULT_SITE_NAME
    author: str = DEFAULT_AUTHOR
    font_family: str = DEFAULT_FONT_FAMILY
    font_regular: str = DEFAULT_FONT_REGULAR
    font_bold: str = DEFAULT_FONT_BOLD
    font_timeout: float = DEFAULT_FONT_TIMEOUT


def resolve_site_url(value: object) -> str:
    text = str(value or "").strip().rstrip("/")
    return text or DEFAULT_SITE_URL


def load_config(path: Path) -> dict:
    if not path.exists():
        return {}
    suffix = path.suffix.lower()
    text = path.read_text(encoding="utf-8")
    if suffix == ".toml":
        try:
            data = tomllib.loads(text)
        except tomllib.TOMLDecodeError as exc:
            print(f"Invalid TOML in config file {path}: {exc}", file=sys.stderr)
            sys.exit(1)
        return data
    if suffix in {".yml", ".yaml"}:
        try:
            data = yaml.safe_load(text)
        except yaml.YAMLError as exc:
            print(f"Invalid YAML in config file {path}: {exc}", file=sys.stderr)
            sys.exit(1)
        if data is None:
            return {}
        if not isinstance(data, dict):
            print(f"YAML config must be a mapping: {path}", file=sys.stderr)
            sys.exit(1)
        return data
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        print(f"Invalid JSON in config file {path}: {exc}", file=sys.stderr)
        sys.exit(1)
    if not isinstance(data, dict):
        print(f"JSON config must be an object: {path}", file=sys.stderr)
        sys.exit(1)
    return data


def site_config_from_args(args: object) -> SiteConfig:
    def text(name: str, default: str) -> str:
        value = (getattr(args, name, "") or "").strip()
        return value or default

    timeout = getattr(args, "font_timeout", None)
    return SiteConfig(
        site_url=resolve_site_url(getattr(args, "site_url", "")),
        site_name=text("site_name", DEFAULT_SITE_NAME),
        author=text("author", DEFAULT_AUTHOR),
        font_family=text("font_family", DEFAULT_FONT_FAMILY),
        font_regular=text("font_regular", DEFAULT_FONT_REGULAR),
        font_bold=text("font_bold", DEFAULT_FONT_BOLD),
        font_timeout=float(timeout) if timeout else DEFAULT_FONT_TIMEOUT,
    )
