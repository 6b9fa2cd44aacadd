from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping, Sequence

from .content import Document
from .utils import slugify


class DocumentCollection(Sequence[Document]):
    """Lightweight helper for working with lists of Documents in templates and code."""

    def __init__(self, documents: Iterable[Document]):
        self._documents = list(documents)

    def __iter__(self) -> Iterator[Document]:
        return iter(self._documents)

    def __len__(self) -> int:
        return len(self._documents)

    def __getitem__(self, item):
        return self._documents[item]

    def section(self, name: str) -> DocumentCollection:
        return DocumentCollection(d for d in self._documents if d.section == name)

    def in_sections(self, names: Iterable[str]) -> DocumentCollection:
        wanted = set(names)
        return DocumentCollection(d for d in self._documents if d.section in wanted)

    def with_tag(self, tag: str) -> DocumentCollection:
        wanted = slugify(tag)
        return DocumentCollection(
            d for d in self._documents if wanted in {slugify(t) for t in d.tags}
        )

    def in_category(self, category: str) -> DocumentCollection:
        wanted = slugify(category)
        return DocumentCollection(
            d for d in self._documents if wanted in {slugify(c) for c in d.categories}
        )

    def drafts(self) -> DocumentCollection:
        return DocumentCollection(d for d in self._documents if d.draft)

    def published(self) -> DocumentCollection:
        return DocumentCollection(d for d in self._documents if not d.draft)

    def sorted(self, reverse: bool = True) -> DocumentCollection:
        """Sort documents by publication date.

        With ``reverse=True`` (the default) the newest document comes first,
        so dates are non-increasing along the result. Documents sharing a
        date are ordered by title, then by id, in ascending order either way.
        """
        by_name = sorted(self._documents, key=lambda d: (d.title.lower(), d.id))
        return DocumentCollection(sorted(by_name, key=lambda d: d.date, reverse=reverse))

    def latest(self, count: int = 5) -> DocumentCollection:
        return DocumentCollection(self.sorted()[:count])

    def __repr__(self) -> str:  # pragma: no cover - for debugging
        return f"DocumentCollection({len(self._documents)} documents)"


class Term:
    """One value of a taxonomy (a tag or a category) and its documents."""

    def __init__(self, taxonomy: str, name: str, documents: Iterable[Document]):
        self.taxonomy = taxonomy
        self.name = name
        self.slug = slugify(name)
        self.documents = DocumentCollection(documents).sorted()

    @property
    def url(self) -> str:
        return f"/{self.taxonomy}/{self.slug}/"

    def __len__(self) -> int:
        return len(self.documents)

    def __repr__(self) -> str:  # pragma: no cover - for debugging
        return f"Term({self.taxonomy}/{self.name}, {len(self.documents)} documents)"


class TaxonomyCollection(Mapping[str, Term]):
    """Mapping of term name to Term, iterated in alphabetical order.

    Names that slugify alike ("Python" and "python") share one term, shown
    under the spelling seen first.
    """

    def __init__(self, taxonomy: str, documents: Iterable[Document], attribute: str):
        self.taxonomy = taxonomy
        names: dict[str, str] = {}
        grouped: dict[str, list[Document]] = {}
        for document in documents:
            for name in getattr(document, attribute):
                slug = slugify(name)
                names.setdefault(slug, name)
                members = grouped.setdefault(slug, [])
                if not any(m is document for m in members):
                    members.append(document)
        self._terms = {
            names[slug]: Term(taxonomy, names[slug], grouped[slug])
            for slug in sorted(grouped, key=lambda s: (names[s].lower(), s))
        }

    @property
    def url(self) -> str:
        return f"/{self.taxonomy}/"

    def __getitem__(self, key: str) -> Term:
        return self._terms[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._terms)

    def __len__(self) -> int:
        return len(self._terms)

    def terms(self) -> list[Term]:
        return list(self._terms.values())

    def __repr__(self) -> str:  # pragma: no cover - for debugging
        return f"TaxonomyCollection({self.taxonomy}, {len(self._terms)} terms)"


def build_taxonomies(documents: Iterable[Document]) -> dict[str, TaxonomyCollection]:
    """Group documents into the ``tags`` and ``categories`` taxonomies."""
    documents = list(documents)
    return {
        "tags": TaxonomyCollection("tags", documents, "tags"),
        "categories": TaxonomyCollection("categories", documents, "categories"),
    }
