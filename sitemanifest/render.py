from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional

TAG_RE = re.compile(r"<[^>]+>")


@dataclass(frozen=True)
class Artifact:
    """One generated file plus the HTTP headers it should be served with."""

    path: str
    body: bytes
    content_type: str
    cache_control: Optional[str] = None


@dataclass(frozen=True)
class HeaderRule:
    route: str
    content_type: str
    cache_control: Optional[str] = None


def strip_tags(html_text: str) -> str:
    return TAG_RE.sub("", html_text)


def write_text(path: Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")


def write_bytes(path: Path, data: bytes) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(data)


def write_artifact(output_dir: Path, artifact: Artifact) -> Path:
    path = output_dir / artifact.path
    write_bytes(path, artifact.body)
    return path


def header_rule(artifact: Artifact) -> HeaderRule:
    return HeaderRule("/" + artifact.path.lstrip("/"), artifact.content_type, artifact.cache_control)


def render_headers(rules: Iterable[HeaderRule]) -> str:
    """Render a Netlify/Cloudflare Pages style ``_headers`` file."""
    blocks = []
    for rule in rules:
        lines = [rule.route, f"  Content-Type: {rule.content_type}"]
        if rule.cache_control:
            lines.append(f"  Cache-Control: {rule.cache_control}")
        blocks.append("\n".join(lines))
    return "\n\n".join(blocks) + "\n" if blocks else ""
