"""Content processing for Quire.

This module loads Markdown documents from the content directory, parses and
validates their front matter, renders their bodies and derives their URLs.

Key classes:
- Document: Dataclass representing one piece of content.
- DocumentLoader: Discovers Markdown files under the content directory.
- UrlDeriver: Maps a document's relative path to its output URL.
- DocumentBuilder: Builds a Document from a single source file.
- ContentStore: Loads every document and enforces uniqueness.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from .errors import DuplicateDocumentError, FrontMatterError
from .extractors import FrontMatter, extract_frontmatter, extract_title
from .renderers import Heading, MarkdownRenderer
from .utils import (
    extract_date_from_name,
    first_paragraph,
    is_hidden,
    is_markdown,
    slugify,
    titleize,
)

__all__ = [
    "ContentStore",
    "Document",
    "DocumentBuilder",
    "DocumentLoader",
    "Heading",
    "UrlDeriver",
]


@dataclass
class Document:
    """Represents a single content document.

    Attributes:
        id: Path relative to the content directory, in posix form. Unique.
        title: Human-readable title.
        description: Short description, from front matter or the first paragraph.
        date: Publication timestamp (timezone-aware).
        modified: Last modification timestamp (timezone-aware).
        categories: Category labels, in author order.
        tags: Tags, in author order.
        draft: Whether the document is a draft.
        body: Markdown body without the front matter.
        content: Rendered HTML.
        slug: URL-friendly slug.
        url: URL path for the document's own page.
        section: First folder under the content directory ("" for top level).
        path: Path to the source file.
        params: The full front matter mapping, including unrecognized keys.
        toc: Headings collected while rendering.
    """

    id: str
    title: str
    description: str
    date: datetime
    modified: datetime
    categories: list[str]
    tags: list[str]
    draft: bool
    body: str
    content: str
    slug: str
    url: str
    section: str
    path: Path
    params: dict[str, Any] = field(default_factory=dict)
    toc: list[Heading] = field(default_factory=list)

    @property
    def summary(self) -> str:
        return self.description


class DocumentLoader:
    """Discovers Markdown files in a content directory.

    Dot-files and anything under a dot-directory are ignored. Files are
    returned in sorted order so that builds are reproducible.
    """

    def __init__(self, content_dir: Path):
        self.content_dir = content_dir

    def iter_files(self) -> list[Path]:
        if not self.content_dir.exists():
            return []
        files: list[Path] = []
        for path in sorted(self.content_dir.rglob("*")):
            if path.is_dir():
                continue
            rel = path.relative_to(self.content_dir)
            if is_hidden(rel):
                continue
            if is_markdown(path):
                files.append(path)
        return files


class UrlDeriver:
    """Derives URLs for documents from their location in the content tree."""

    def derive(self, rel: Path, slug: str) -> str:
        """Derive the URL for a document.

        ``index.md`` at the top level maps to "/"; an ``index.md`` inside a
        folder maps to that folder's URL.

        Args:
            rel: Path relative to the content directory.
            slug: URL-friendly slug.

        Returns:
            URL path with leading and trailing slashes.
        """
        segments = [slugify(p) for p in rel.parent.parts if p]
        url_parts = segments if slug == "index" else segments + [slug]
        path = "/".join(url_parts)
        return f"/{path}/" if path else "/"


class DocumentBuilder:
    """Builds Document objects from source files.

    Attributes:
        content_dir: Directory containing the content tree.
        renderer: Markdown renderer.
        url_deriver: URL deriver instance.
        summary_length: Maximum length of a derived description.
    """

    def __init__(
        self,
        content_dir: Path,
        renderer: MarkdownRenderer | None = None,
        summary_length: int = 160,
    ):
        self.content_dir = content_dir
        self.renderer = renderer or MarkdownRenderer()
        self.url_deriver = UrlDeriver()
        self.summary_length = summary_length

    def build(self, path: Path) -> Document:
        """Build a Document from a source file.

        Raises:
            FrontMatterError: If the file is not UTF-8 or the front matter
                is malformed.
        """
        rel = path.relative_to(self.content_dir)
        try:
            raw = path.read_text(encoding="utf-8-sig")
        except UnicodeDecodeError as exc:
            raise FrontMatterError(path, f"File is not valid UTF-8: {exc}", exc) from exc
        data, body = extract_frontmatter(raw, path)
        matter = FrontMatter.from_mapping(data, path)

        date = matter.date or self._fallback_date(path)
        content, toc = self.renderer.render(body)
        slug = slugify(path.stem)
        section = slugify(rel.parts[0]) if len(rel.parts) > 1 else ""

        return Document(
            id=rel.as_posix(),
            title=matter.title or extract_title(body) or titleize(path.name),
            description=(
                matter.description
                if matter.description is not None
                else first_paragraph(body, self.summary_length)
            ),
            date=date,
            modified=matter.modified or date,
            categories=matter.categories,
            tags=matter.tags,
            draft=matter.draft,
            body=body,
            content=content,
            slug=slug,
            url=self.url_deriver.derive(rel, slug),
            section=section,
            path=path,
            params=matter.params,
            toc=toc,
        )

    @staticmethod
    def _fallback_date(path: Path) -> datetime:
        date = extract_date_from_name(path.stem)
        if date is None:
            date = datetime.fromtimestamp(int(path.stat().st_mtime), tz=timezone.utc)
        return date


class ContentStore:
    """Loads the full set of documents for a build.

    Attributes:
        content_dir: Directory containing the content tree.
    """

    def __init__(
        self,
        content_dir: Path,
        loader: DocumentLoader | None = None,
        builder: DocumentBuilder | None = None,
    ):
        self.content_dir = content_dir
        self._loader = loader or DocumentLoader(content_dir)
        self._builder = builder or DocumentBuilder(content_dir)

    def load(self, include_drafts: bool = False) -> list[Document]:
        """Load every document.

        Args:
            include_drafts: Keep draft documents in the result.

        Returns:
            Documents in source-path order.

        Raises:
            FrontMatterError: If any document has malformed front matter.
            DuplicateDocumentError: If two documents share a URL.
        """
        documents: list[Document] = []
        seen: dict[str, Document] = {}
        for path in self._loader.iter_files():
            document = self._builder.build(path)
            if document.url in seen:
                raise DuplicateDocumentError(
                    path,
                    f"URL {document.url} is already used by {seen[document.url].id}",
                )
            seen[document.url] = document
            if document.draft and not include_drafts:
                continue
            documents.append(document)
        return documents
