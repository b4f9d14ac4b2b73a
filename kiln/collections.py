"""Page collections exposed to templates."""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping, Sequence

from .content import Page


class PageCollection(Sequence[Page]):
    """Lightweight helper for working with lists of Pages in templates and code."""

    def __init__(self, pages: Iterable[Page]):
        self._pages = list(pages)

    def __iter__(self) -> Iterator[Page]:
        return iter(self._pages)

    def __len__(self) -> int:
        return len(self._pages)

    def __getitem__(self, item):
        if isinstance(item, slice):
            return PageCollection(self._pages[item])
        return self._pages[item]

    def of_type(self, name: str) -> PageCollection:
        wanted = name.strip().lower()
        return PageCollection(p for p in self._pages if p.type == wanted)

    def with_term(self, taxonomy: str, term: str) -> PageCollection:
        wanted = term.strip().lower()
        return PageCollection(
            p for p in self._pages if wanted in p.terms(taxonomy.strip().lower())
        )

    def drafts(self) -> PageCollection:
        return PageCollection(p for p in self._pages if p.draft)

    def published(self) -> PageCollection:
        return PageCollection(p for p in self._pages if not p.draft)

    def in_section(self, prefix: str) -> PageCollection:
        """Return pages whose slug lies under a section prefix.

        Examples:
            ``pages.in_section("blog")`` matches ``blog`` and ``blog/post``
            but not ``blogroll``.
        """
        section = prefix.strip("/")
        return PageCollection(
            p
            for p in self._pages
            if not p.virtual and (p.slug == section or p.slug.startswith(f"{section}/"))
        )

    def __repr__(self) -> str:  # pragma: no cover - for debugging
        return f"PageCollection({len(self._pages)} pages)"


class TaxonomyCollection(Mapping[str, Mapping[str, PageCollection]]):
    """Mapping of taxonomy key to term to PageCollection.

    Every configured taxonomy is present even when no page uses it. Terms
    are sorted alphabetically; pages keep their discovery order.
    """

    def __init__(self, pages: Iterable[Page], taxonomies: Iterable[str]):
        pages = list(pages)
        self._mapping: dict[str, dict[str, PageCollection]] = {}
        for taxonomy in taxonomies:
            terms: dict[str, list[Page]] = {}
            for page in pages:
                for term in page.terms(taxonomy):
                    terms.setdefault(term, []).append(page)
            self._mapping[taxonomy] = {
                term: PageCollection(terms[term]) for term in sorted(terms)
            }

    def __getitem__(self, key: str) -> Mapping[str, PageCollection]:
        return self._mapping[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._mapping)

    def __len__(self) -> int:
        return len(self._mapping)

    def terms(self, taxonomy: str) -> list[str]:
        return list(self._mapping.get(taxonomy, {}))

    def __repr__(self) -> str:  # pragma: no cover - for debugging
        return f"TaxonomyCollection({len(self._mapping)} taxonomies)"
