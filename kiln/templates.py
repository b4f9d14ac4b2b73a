"""Template rendering engine for Kiln.

This module uses Jinja2 to wrap rendered page bodies in a template from the
project's template directory.

Key classes:
- PageMetaResolver: Computes the effective meta tags of a page.
- TemplateEngine: Resolves the page template and renders it with context.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from pathlib import Path
from typing import Any

from jinja2 import Environment, FileSystemLoader, TemplateNotFound, select_autoescape
from markupsafe import Markup

from .collections import PageCollection, TaxonomyCollection
from .config import SiteConfig
from .content import Page
from .renderers import pygments_css

TEMPLATE_SUFFIXES = (".html.jinja", ".jinja", ".html", "")


class PageMetaResolver:
    """Resolves effective page meta from site defaults and page overrides.

    Precedence, lowest first: site meta defaults, the site description, the
    page's ``meta`` mapping, the page's ``description``.
    """

    def resolve(self, page: Page, site: SiteConfig) -> dict[str, str]:
        effective = dict(site.meta)
        if "description" not in effective and site.description is not None:
            effective["description"] = site.description

        overrides = page.meta.get("meta")
        if isinstance(overrides, dict):
            for key, value in overrides.items():
                if value is not None:
                    effective[key] = str(value)

        description = page.meta.get("description")
        if isinstance(description, str) and description.strip():
            effective["description"] = description.strip()
        return effective


class TemplateEngine:
    """Template rendering engine using Jinja2.

    Attributes:
        template_path: Directory containing templates.
        site: Site-wide settings.
        default_template: Template used when a page names none.
        taxonomies: Taxonomy keys exposed through ``taxonomies``.
        env: Jinja2 environment.
    """

    def __init__(
        self,
        template_path: Path,
        site: SiteConfig | None = None,
        default_template: str = "page",
        taxonomies: Iterable[str] = ("tags",),
        meta_resolver: PageMetaResolver | None = None,
    ):
        self.template_path = template_path
        self.site = site or SiteConfig()
        self.default_template = default_template
        self.taxonomies = tuple(taxonomies)
        self.meta_resolver = meta_resolver or PageMetaResolver()
        self.env = Environment(
            loader=FileSystemLoader(str(template_path)),
            autoescape=select_autoescape(["html", "xml", "jinja"]),
        )
        self.env.globals["site"] = self.site
        self.env.globals["pygments_css"] = pygments_css

    def render_page(self, page: Page, content: str, pages: Sequence[Page]) -> str:
        """Render a page with its template.

        Args:
            page: Page being rendered.
            content: HTML fragment produced by the markup renderer.
            pages: Every page in the current build.

        Returns:
            Complete HTML document.

        Raises:
            TemplateNotFound: If neither the page's template nor any of its
                suffixed variants exists.
        """
        collection = PageCollection(pages)
        context: dict[str, Any] = {
            "title": page.title,
            "url": page.url_path,
            "content": Markup(content),
            "page": page,
            "meta": self.meta_resolver.resolve(page, self.site),
            "site": self.site,
            "pages": collection,
            "taxonomies": TaxonomyCollection(collection, self.taxonomies),
        }
        template = self.resolve_template(self.template_name(page))
        return template.render(**context)

    def template_name(self, page: Page) -> str:
        name = page.meta.get("template")
        if isinstance(name, str) and name.strip():
            return name.strip()
        return self.default_template

    def resolve_template(self, name: str):
        """Find a template by name, trying the supported suffixes in order.

        Args:
            name: Template name without suffix, e.g. ``page`` or ``blog/post``.

        Returns:
            Jinja2 Template object.
        """
        candidates = [f"{name}{suffix}" for suffix in TEMPLATE_SUFFIXES]
        for candidate in candidates:
            try:
                return self.env.get_template(candidate)
            except TemplateNotFound:
                continue
        raise TemplateNotFound(name, f"No template named {name!r} in {self.template_path}")
