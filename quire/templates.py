"""Template rendering engine for Quire.

This module uses Jinja2 to render the theme's layouts. It owns the template
environment, the globals shared by every page, and the mapping from page
kinds to layout files.

Key class:
- TemplateEngine: Renders home, single, list, terms and 404 pages.

Page kinds map to layouts as follows:

========  ======================
kind      layout
========  ======================
home      home.html.jinja
single    single.html.jinja
section   list.html.jinja
term      list.html.jinja
taxonomy  terms.html.jinja
404       404.html.jinja
========  ======================
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from jinja2 import Environment, FileSystemLoader, select_autoescape

from .assets import Stylesheet
from .collections import DocumentCollection, TaxonomyCollection
from .config import SiteConfig
from .content import Document
from .html_utils import join_root_url
from .theme import Theme
from .utils import slugify

__all__ = ["LAYOUTS", "TemplateEngine"]

LAYOUTS = {
    "home": "home.html.jinja",
    "single": "single.html.jinja",
    "section": "list.html.jinja",
    "term": "list.html.jinja",
    "taxonomy": "terms.html.jinja",
    "404": "404.html.jinja",
}


class TemplateEngine:
    """Template rendering engine using Jinja2.

    Attributes:
        config: Site configuration.
        environment: Build environment name (e.g. "production").
        theme: Theme providing layouts and icons.
        stylesheet: Compiled stylesheet referenced by every page.
        env: Jinja2 environment.
    """

    def __init__(
        self,
        config: SiteConfig,
        theme: Theme,
        stylesheet: Stylesheet,
        environment: str = "development",
    ):
        self.config = config
        self.environment = environment
        self.theme = theme
        self.stylesheet = stylesheet
        self.env = Environment(
            loader=FileSystemLoader([str(d) for d in theme.layout_dirs()]),
            autoescape=select_autoescape(["html", "xml", "jinja"]),
            trim_blocks=False,
            keep_trailing_newline=True,
        )
        self.documents = DocumentCollection([])
        self.taxonomies: dict[str, TaxonomyCollection] = {}
        self._install_globals()

    def _install_globals(self) -> None:
        """Install global variables and functions in the Jinja environment."""
        self.env.globals["site"] = self.config
        self.env.globals["environment"] = self.environment
        self.env.globals["analytics_enabled"] = self.config.analytics_enabled(
            self.environment
        )
        self.env.globals["stylesheet"] = self.stylesheet
        self.env.globals["url_for"] = self._url_for
        self.env.globals["term_url"] = self._term_url
        self.env.globals["icon"] = self.theme.icon
        self.env.globals["documents"] = self.documents
        self.env.globals["taxonomies"] = self.taxonomies
        self.env.globals["copyright_year"] = ""

    def update_collections(
        self,
        documents: Iterable[Document],
        taxonomies: dict[str, TaxonomyCollection],
    ) -> None:
        """Set the published documents and taxonomies visible to templates.

        The copyright year follows the newest document rather than the
        clock, so rebuilding the same content gives the same bytes.
        """
        self.documents = DocumentCollection(documents).sorted()
        self.taxonomies = taxonomies
        self.env.globals["documents"] = self.documents
        self.env.globals["taxonomies"] = self.taxonomies
        self.env.globals["copyright_year"] = (
            self.documents[0].date.year if self.documents else ""
        )

    def _url_for(self, path: str) -> str:
        """Generate a site URL for a path.

        External URLs pass through untouched. Site paths are joined under
        ``base_url`` when one is configured (giving absolute URLs) and are
        root-relative otherwise.
        """
        if path.startswith(("http://", "https://", "//", "mailto:")):
            return path
        return join_root_url(self.config.base_url, path)

    @staticmethod
    def _term_url(taxonomy: str, name: str) -> str:
        return f"/{taxonomy}/{slugify(name)}/"

    def render(self, kind: str, **context: Any) -> str:
        """Render a page of the given kind.

        Args:
            kind: One of the keys of LAYOUTS.
            **context: Page variables (page, page_title, description, listing, ...).

        Returns:
            Rendered HTML string.
        """
        template = self.env.get_template(LAYOUTS[kind])
        context.setdefault("is_home", kind == "home")
        context.setdefault("page", None)
        context.setdefault("page_title", self.config.title)
        context.setdefault("description", "")
        return template.render(**context)

    def render_home(self, listing: Iterable[Document]) -> str:
        return self.render(
            "home",
            listing=DocumentCollection(listing).sorted(),
            description=self.config.description,
        )

    def render_document(self, document: Document) -> str:
        return self.render(
            "single",
            page=document,
            page_title=document.title,
            description=document.description,
        )

    def render_section(self, name: str, listing: Iterable[Document]) -> str:
        return self.render(
            "section",
            page_title=name.replace("-", " ").title(),
            listing=DocumentCollection(listing).sorted(),
        )

    def render_taxonomy(self, taxonomy: TaxonomyCollection) -> str:
        return self.render(
            "taxonomy",
            page_title=taxonomy.taxonomy.title(),
            taxonomy=taxonomy,
        )

    def render_term(self, taxonomy: TaxonomyCollection, name: str) -> str:
        term = taxonomy[name]
        return self.render(
            "term",
            page_title=term.name,
            term=term,
            listing=term.documents,
        )

    def render_not_found(self) -> str:
        return self.render("404", page_title="Page not found")
