"""Sitemap generation for Kiln.

The sitemap is a core extension: it registers a virtual ``sitemap.xml``
page when content is discovered and writes the file once the build is
complete. It requires ``site.base_url`` to produce absolute URLs.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import TYPE_CHECKING

from markupsafe import escape

from .content import Page
from .events import BuildEvent, EventRegistry

if TYPE_CHECKING:
    from .config import BuildConfig

SITEMAP_FILENAME = "sitemap.xml"


class SitemapGenerator:
    """Generates sitemap.xml for search engine indexing.

    Lists every non-virtual page with its absolute URL. Pages with a
    ``date`` in front matter get a ``<lastmod>`` entry.
    """

    filename = SITEMAP_FILENAME

    def __init__(self, base_url: str):
        self.base_url = base_url.rstrip("/")

    @classmethod
    def register(cls, registry: EventRegistry, config: BuildConfig) -> SitemapGenerator | None:
        """Subscribe a generator when the site enables sitemaps.

        Returns:
            The generator, or None when ``base_url`` is empty or sitemaps
            are turned off.
        """
        site = config.site
        if not site.base_url or not site.sitemap:
            return None
        generator = cls(site.base_url)
        registry.on(BuildEvent.CONTENT_DISCOVERED, generator.add_virtual_page)
        registry.on(BuildEvent.BUILD_COMPLETED, generator.write)
        return generator

    def add_virtual_page(self, pages: list[Page], config: BuildConfig) -> list[Page]:
        if any(page.output_relative_path == self.filename for page in pages):
            return pages
        return [*pages, Page.virtual_page(f"/{self.filename}", self.filename, "Sitemap")]

    def generate(self, pages: Iterable[Page]) -> str:
        """Generate sitemap.xml content.

        Args:
            pages: Pages of the current build; virtual pages are skipped.

        Returns:
            Sitemap XML content.
        """
        lines = [
            '<?xml version="1.0" encoding="UTF-8"?>',
            '<urlset xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">',
        ]
        for page in sorted(pages, key=lambda p: p.url_path):
            if page.virtual:
                continue
            entry = f"  <url><loc>{escape(self.base_url + page.url_path)}</loc>"
            lastmod = page.meta.get("date")
            if isinstance(lastmod, str) and lastmod.strip():
                entry += f"<lastmod>{escape(lastmod.strip()[:10])}</lastmod>"
            lines.append(entry + "</url>")
        lines.append("</urlset>")
        return "\n".join(lines) + "\n"

    def write(self, config: BuildConfig, pages: Iterable[Page]) -> None:
        output_file = config.output_path / self.filename
        output_file.parent.mkdir(parents=True, exist_ok=True)
        output_file.write_text(self.generate(pages), encoding="utf-8")
