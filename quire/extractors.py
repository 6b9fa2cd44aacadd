"""Front matter parsing and metadata extraction for Quire.

A document starts with an optional YAML block fenced by ``---`` lines.
The recognized keys are ``date``, ``modified``, ``title``, ``description``,
``categories``, ``tags`` and ``draft``; anything else is kept verbatim in
the document's params. Values are validated here so that a bad document
fails the build with its path attached instead of surfacing later as a
template error.

Key pieces:
- extract_frontmatter: Split raw text into (mapping, body).
- FrontMatter: Validated view over the recognized keys.
- parse_date: Coerce YAML dates, datetimes and ISO strings to aware UTC.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Any

import yaml

from .errors import FrontMatterError
from .utils import unique

FRONTMATTER_OPEN_RE = re.compile(r"\A---[ \t]*\r?\n")
FRONTMATTER_CLOSE_RE = re.compile(r"^---[ \t]*\r?$\n?", re.MULTILINE)

def extract_frontmatter(text: str, path: Path) -> tuple[dict[str, Any], str]:
    """Extract YAML front matter from content.

    Args:
        text: Raw file content.
        path: Source path, used for error reporting.

    Returns:
        Tuple of (front matter dict, remaining body).

    Raises:
        FrontMatterError: If the block is unterminated, not valid YAML, or
            not a mapping.
    """
    text = text.lstrip("\ufeff")
    opening = FRONTMATTER_OPEN_RE.match(text)
    if not opening:
        return {}, text
    closing = FRONTMATTER_CLOSE_RE.search(text, opening.end())
    if not closing:
        raise FrontMatterError(path, "Front matter is missing its closing '---'")
    block = text[opening.end() : closing.start()]
    try:
        data = yaml.safe_load(block)
    except yaml.YAMLError as exc:
        raise FrontMatterError(path, f"Invalid YAML in front matter: {exc}", exc) from exc
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise FrontMatterError(
            path, f"Front matter must be a mapping, got {type(data).__name__}"
        )
    return data, text[closing.end() :]


def parse_date(value: Any) -> datetime:
    """Coerce a front matter date value to a timezone-aware datetime.

    Naive values are taken to be UTC.

    Raises:
        ValueError: If the value cannot be interpreted as a date.
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    elif isinstance(value, str):
        parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    else:
        raise ValueError(f"unsupported date value {value!r}")
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def _parse_terms(key: str, value: Any, path: Path) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, list) or not all(
        isinstance(item, (str, int, float)) and not isinstance(item, bool)
        for item in value
    ):
        raise FrontMatterError(path, f"'{key}' must be a string or a list of strings")
    return unique(str(item).strip() for item in value if str(item).strip())


@dataclass
class FrontMatter:
    """Validated recognized keys from a document's front matter.

    Attributes left as None were absent and fall back to values derived
    from the body or filename.
    """

    params: dict[str, Any] = field(default_factory=dict)
    title: str | None = None
    description: str | None = None
    date: datetime | None = None
    modified: datetime | None = None
    categories: list[str] = field(default_factory=list)
    tags: list[str] = field(default_factory=list)
    draft: bool = False

    @classmethod
    def from_mapping(cls, data: dict[str, Any], path: Path) -> FrontMatter:
        """Validate a raw front matter mapping.

        Raises:
            FrontMatterError: If a recognized key has a value of the wrong type.
        """
        matter = cls(params=dict(data))
        for key in ("date", "modified"):
            if data.get(key) is None:
                continue
            try:
                setattr(matter, key, parse_date(data[key]))
            except ValueError as exc:
                raise FrontMatterError(
                    path, f"Invalid '{key}' value {data[key]!r}", exc
                ) from exc
        for key in ("title", "description"):
            value = data.get(key)
            if value is None:
                continue
            if not isinstance(value, (str, int, float)) or isinstance(value, bool):
                raise FrontMatterError(path, f"'{key}' must be a string")
            setattr(matter, key, str(value))
        draft = data.get("draft", False)
        if not isinstance(draft, bool):
            raise FrontMatterError(path, f"'draft' must be true or false, got {draft!r}")
        matter.draft = draft
        matter.categories = _parse_terms("categories", data.get("categories"), path)
        matter.tags = _parse_terms("tags", data.get("tags"), path)
        return matter


def extract_title(body: str) -> str | None:
    """Return the text of the first level-1 Markdown heading, if any."""
    for line in body.splitlines():
        stripped = line.strip()
        if stripped.startswith("# "):
            return stripped[2:].strip()
    return None
