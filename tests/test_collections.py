from kiln.collections import PageCollection, TaxonomyCollection
from kiln.content import Page


def make_page(slug, draft=False, type=None, tags=None, virtual=False):
    return Page(
        source_path="" if virtual else f"/content/{slug}.dj",
        relative_path=f"{slug}.dj",
        slug=slug,
        url_path=f"/{slug}/",
        output_relative_path=f"{slug}/index.html",
        title=slug,
        source="",
        draft=draft,
        taxonomies={"tags": tags or []},
        type=type,
        virtual=virtual,
    )


def test_page_collection_filters():
    post = make_page("blog/post", type="post", tags=["python"])
    draft = make_page("blog/draft", draft=True, type="post", tags=["python", "web"])
    about = make_page("about")
    blogroll = make_page("blogroll")
    pages = PageCollection([post, draft, about, blogroll])

    assert len(pages) == 4
    assert list(pages.of_type("Post")) == [post, draft]
    assert list(pages.with_term("tags", "Python")) == [post, draft]
    assert list(pages.with_term("tags", "web")) == [draft]
    assert list(pages.with_term("series", "x")) == []
    assert list(pages.published()) == [post, about, blogroll]
    assert list(pages.drafts()) == [draft]
    assert list(pages.in_section("/blog/")) == [post, draft]
    assert pages[0] is post
    assert isinstance(pages[1:], PageCollection)
    assert list(pages.of_type("post").published()) == [post]


def test_in_section_skips_virtual_pages():
    virtual = make_page("blog/feed", virtual=True)
    section = make_page("blog")
    assert list(PageCollection([virtual, section]).in_section("blog")) == [section]


def test_taxonomy_collection_groups_by_term():
    a = make_page("a", tags=["web", "python"])
    b = make_page("b", tags=["python"])
    taxonomies = TaxonomyCollection([a, b], ["tags", "series"])

    assert list(taxonomies) == ["tags", "series"]
    assert len(taxonomies) == 2
    assert taxonomies.terms("tags") == ["python", "web"]
    assert list(taxonomies["tags"]["python"]) == [a, b]
    assert list(taxonomies["tags"]["web"]) == [a]
    assert dict(taxonomies["series"]) == {}
    assert taxonomies.terms("missing") == []
