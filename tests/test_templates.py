import pytest
from jinja2 import TemplateNotFound

from kiln.config import SiteConfig
from kiln.content import Page
from kiln.protocols import MarkupConverter, PageRenderer
from kiln.renderers import MarkupRenderer, _generate_heading_id, pygments_css
from kiln.templates import PageMetaResolver, TemplateEngine


def make_page(slug="hello", title="Hello", meta=None, taxonomies=None, type=None):
    return Page(
        source_path=f"/content/{slug}.dj",
        relative_path=f"{slug}.dj",
        slug=slug,
        url_path=f"/{slug}/",
        output_relative_path=f"{slug}/index.html",
        title=title,
        source="Hi",
        meta=meta or {},
        taxonomies=taxonomies or {},
        type=type,
    )


def test_markup_renderer_adds_heading_ids():
    renderer = MarkupRenderer()
    assert isinstance(renderer, MarkupConverter)

    html = renderer.render("# Getting Started\n\n## Getting Started\n\nText")

    assert '<h1 id="getting-started">Getting Started</h1>' in html
    assert '<h2 id="getting-started-1">Getting Started</h2>' in html
    # Counters reset between documents.
    assert '<h1 id="getting-started">' in renderer.render("# Getting Started")


def test_markup_renderer_highlights_known_languages():
    html = MarkupRenderer().render("```python\nprint('hi')\n```\n")
    assert 'class="highlight"' in html


def test_markup_renderer_escapes_unknown_languages():
    html = MarkupRenderer().render("```nosuchlang\n<b>&</b>\n```\n")
    assert '<pre><code class="language-nosuchlang">&lt;b&gt;&amp;&lt;/b&gt;' in html


def test_markup_renderer_supports_tables_and_strikethrough():
    html = MarkupRenderer().render("| a |\n|---|\n| b |\n\n~~gone~~\n")
    assert "<table>" in html
    assert "<del>gone</del>" in html


def test_generate_heading_id():
    assert _generate_heading_id("Hello, World!") == "hello-world"
    assert _generate_heading_id("<em>Deep</em> Dive") == "deep-dive"
    assert _generate_heading_id("???") == "page"


def test_pygments_css():
    assert ".highlight" in pygments_css()


def test_meta_resolver_precedence():
    site = SiteConfig(description="Site", meta={"robots": "index", "author": "Site"})
    resolver = PageMetaResolver()

    assert resolver.resolve(make_page(), site) == {
        "robots": "index",
        "author": "Site",
        "description": "Site",
    }

    page = make_page(meta={"meta": {"robots": "noindex"}, "description": "  Page  "})
    assert resolver.resolve(page, site) == {
        "robots": "noindex",
        "author": "Site",
        "description": "Page",
    }


def test_meta_resolver_keeps_explicit_site_description_meta():
    site = SiteConfig(description="Fallback", meta={"description": "Explicit"})
    assert PageMetaResolver().resolve(make_page(), site)["description"] == "Explicit"


def test_template_engine_renders_context(tmp_path):
    (tmp_path / "page.html").write_text(
        "<title>{{ title }}</title>{{ content }}|{{ url }}|{{ site.title }}"
        "|{{ pages|length }}|{{ pages.of_type('post')|length }}"
        "|{{ meta.description }}|{{ taxonomies.terms('tags')|join(',') }}",
        encoding="utf-8",
    )
    engine = TemplateEngine(tmp_path, SiteConfig(title="Site", description="Desc"))
    assert isinstance(engine, PageRenderer)
    page = make_page(title="A & B", taxonomies={"tags": ["x", "a"]}, type="post")
    other = make_page(slug="other", taxonomies={"tags": ["x"]})

    html = engine.render_page(page, "<p>Hi</p>", [page, other])

    assert html == "<title>A &amp; B</title><p>Hi</p>|/hello/|Site|2|1|Desc|a,x"


def test_template_engine_uses_page_template_and_suffix_order(tmp_path):
    (tmp_path / "page.html").write_text("default", encoding="utf-8")
    (tmp_path / "post.jinja").write_text("jinja", encoding="utf-8")
    (tmp_path / "post.html.jinja").write_text("html-jinja", encoding="utf-8")
    (tmp_path / "plain").write_text("bare", encoding="utf-8")
    engine = TemplateEngine(tmp_path, SiteConfig())

    assert engine.render_page(make_page(), "", []) == "default"
    assert engine.render_page(make_page(meta={"template": "post"}), "", []) == "html-jinja"
    assert engine.render_page(make_page(meta={"template": "plain"}), "", []) == "bare"


def test_template_engine_default_template_name(tmp_path):
    (tmp_path / "base.html").write_text("base", encoding="utf-8")
    engine = TemplateEngine(tmp_path, default_template="base")
    assert engine.template_name(make_page(meta={"template": "  "})) == "base"
    assert engine.render_page(make_page(), "", []) == "base"


def test_template_engine_missing_template(tmp_path):
    engine = TemplateEngine(tmp_path, SiteConfig())
    with pytest.raises(TemplateNotFound, match="nope"):
        engine.render_page(make_page(meta={"template": "nope"}), "", [])
