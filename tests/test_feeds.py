from kiln.config import BuildConfig, SiteConfig
from kiln.content import Page
from kiln.events import BuildEvent, EventRegistry
from kiln.feeds import SitemapGenerator


def make_page(slug, url_path, meta=None):
    return Page(
        source_path=f"/content/{slug}.dj",
        relative_path=f"{slug}.dj",
        slug=slug,
        url_path=url_path,
        output_relative_path="index.html" if slug == "index" else f"{slug}/index.html",
        title=slug,
        source="",
        meta=meta or {},
    )


def test_register_requires_base_url(tmp_path):
    registry = EventRegistry()
    assert SitemapGenerator.register(registry, BuildConfig(project_root=tmp_path)) is None

    disabled = BuildConfig(
        project_root=tmp_path, site=SiteConfig(base_url="https://example.com", sitemap=False)
    )
    assert SitemapGenerator.register(registry, disabled) is None
    assert registry.listener_count(BuildEvent.BUILD_COMPLETED) == 0


def test_registered_generator_adds_virtual_page_and_writes_file(tmp_path):
    config = BuildConfig(project_root=tmp_path, site=SiteConfig(base_url="https://example.com"))
    registry = EventRegistry()
    generator = SitemapGenerator.register(registry, config)
    assert generator is not None

    pages = registry.transform(
        BuildEvent.CONTENT_DISCOVERED,
        [make_page("index", "/"), make_page("a&b", "/a&b/", {"date": "2024-01-15T10:00:00"})],
        config,
    )
    assert pages[-1].virtual
    assert pages[-1].output_relative_path == "sitemap.xml"
    # Registering twice in the same page list is a no-op.
    assert generator.add_virtual_page(pages, config) is pages

    registry.dispatch(BuildEvent.BUILD_COMPLETED, config, pages)

    sitemap = (tmp_path / "public" / "sitemap.xml").read_text(encoding="utf-8")
    assert sitemap.splitlines() == [
        '<?xml version="1.0" encoding="UTF-8"?>',
        '<urlset xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">',
        "  <url><loc>https://example.com/</loc></url>",
        "  <url><loc>https://example.com/a&amp;b/</loc><lastmod>2024-01-15</lastmod></url>",
        "</urlset>",
    ]
