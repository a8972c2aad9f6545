"""Pure parsing helpers for markdown documents.

Everything here is deterministic: the same text always yields the same
links, tags, title and importance.
"""

from __future__ import annotations

import os
import re
from typing import Any

import yaml

from ..graph.models import NodeKind

_FRONT_MATTER_RE = re.compile(r"\A---[ \t]*\r?\n(.*?)(?:\r?\n)?^---[ \t]*(?:\r?\n|\Z)", re.DOTALL | re.MULTILINE)
_MD_LINK_RE = re.compile(r"\[([^\]]+)\]\(([^)]+)\)")
_WIKI_LINK_RE = re.compile(r"\[\[([^\]]+)\]\]")
_HASHTAG_RE = re.compile(r"#([a-zA-Z0-9_-]+)")
_TITLE_RE = re.compile(r"^#\s+(.+)$", re.MULTILINE)
_HEADING_RE = re.compile(r"^#+\s", re.MULTILINE)

DESCRIPTION_MAX = 200

# (reference size, weight) per importance signal
LENGTH_REF, LENGTH_WEIGHT = 10_000, 0.3
LINKS_REF, LINKS_WEIGHT = 20, 0.4
HEADINGS_REF, HEADINGS_WEIGHT = 10, 0.3

_PATH_KIND_RULES: list[tuple[str, NodeKind]] = [
    ("mcp", NodeKind.MCP),
    ("skill", NodeKind.SKILL),
    ("plugin", NodeKind.PLUGIN),
    ("config", NodeKind.CONFIG),
]
_FILENAME_KINDS = {
    "CLAUDE.md": NodeKind.DOCUMENT,
    "README.md": NodeKind.CATEGORY,
    "INDEX.md": NodeKind.CATEGORY,
}


class FrontMatterError(ValueError):
    pass


def split_front_matter(text: str) -> tuple[dict[str, Any], str]:
    """Return (metadata, body). Text without a leading `---` block has no metadata."""
    m = _FRONT_MATTER_RE.match(text)
    if not m:
        return {}, text
    try:
        data = yaml.safe_load(m.group(1)) or {}
    except yaml.YAMLError as e:
        raise FrontMatterError(f"invalid front-matter: {e}") from e
    if not isinstance(data, dict):
        raise FrontMatterError("front-matter must be a mapping")
    return data, text[m.end():]


def extract_links(body: str) -> list[str]:
    """`[text](target)` targets, then `[[target]]` targets; first occurrence wins."""
    links = [m.group(2) for m in _MD_LINK_RE.finditer(body)]
    links.extend(m.group(1) for m in _WIKI_LINK_RE.finditer(body))
    return list(dict.fromkeys(links))


def extract_tags(body: str, front_matter: dict[str, Any]) -> list[str]:
    tags: list[str] = []
    raw = front_matter.get("tags")
    if isinstance(raw, list):
        tags.extend(str(t) for t in raw if t is not None)
    elif isinstance(raw, str):
        tags.extend(t.strip() for t in raw.split(","))
    tags.extend(m.group(1) for m in _HASHTAG_RE.finditer(body))
    return list(dict.fromkeys(t for t in tags if t))


def classify(rel_path: str, front_matter: dict[str, Any]) -> NodeKind:
    """Front-matter type, then path keywords, then well-known filenames."""
    declared = front_matter.get("type")
    if isinstance(declared, str):
        try:
            return NodeKind(declared)
        except ValueError:
            pass

    lower = rel_path.lower()
    if "error" in lower or "E0" in rel_path:
        return NodeKind.ERROR
    for keyword, kind in _PATH_KIND_RULES:
        if keyword in lower:
            return kind

    filename = re.split(r"[\\/]", rel_path)[-1]
    return _FILENAME_KINDS.get(filename, NodeKind.DOCUMENT)


def file_stem(path: str) -> str:
    name = re.split(r"[\\/]", path)[-1]
    return os.path.splitext(name)[0]


def extract_title(body: str, path: str) -> str:
    m = _TITLE_RE.search(body)
    if m:
        return m.group(1).strip()
    return file_stem(path)


def extract_description(body: str) -> str:
    for line in body.splitlines():
        s = line.strip()
        if s and not s.startswith("#") and not s.startswith("```"):
            return s[:DESCRIPTION_MAX]
    return ""


def count_headings(body: str) -> int:
    return len(_HEADING_RE.findall(body))


def importance_score(length: int, link_count: int, heading_count: int) -> float:
    """Weighted content signals in [0, 1].

    Each signal saturates at its reference size, so no single signal can
    exceed its weight.
    """
    score = (
        min(max(length, 0) / LENGTH_REF, 1.0) * LENGTH_WEIGHT
        + min(max(link_count, 0) / LINKS_REF, 1.0) * LINKS_WEIGHT
        + min(max(heading_count, 0) / HEADINGS_REF, 1.0) * HEADINGS_WEIGHT
    )
    return min(score, 1.0)
