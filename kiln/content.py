"""Content discovery for Kiln.

This module walks a content directory, parses every markup document and
derives the stable identifiers the rest of the build depends on: slug,
public URL and output path. The build manifest keys its fingerprints by
those output paths, so the derivation here must be deterministic.

Key classes:
- Page: Immutable record describing one page.
- ContentTypeRule: Named content type with path matchers and default meta.
- PathPrefixMatcher: Matches documents below a directory prefix.
- FileContentLoader: Finds markup documents under the content root.
- ContentDiscoveryService: Builds the ordered Page list.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .errors import (
    ContentParseError,
    ContentReadError,
    FrontMatterError,
    UnknownContentTypeError,
)
from .extractors import (
    FrontMatterParser,
    extract_taxonomies,
    normalize_metadata,
    normalize_taxonomy_keys,
)
from .protocols import ContentTypeMatcher
from .utils import (
    INDEX_SLUG,
    humanize,
    is_markup,
    iter_files,
    relative_posix,
    slugify,
    slugify_path,
    strip_markup_extension,
    to_output_relative_path,
    to_url_path,
)

logger = logging.getLogger(__name__)

FALSE_STRINGS = frozenset({"", "0", "false", "no", "off"})


@dataclass(frozen=True)
class Page:
    """Represents a site page.

    Attributes:
        source_path: Absolute path to the backing document, empty for
            virtual pages.
        relative_path: Path relative to the content root, with extension.
        slug: Normalized slash-separated slug without extension.
        url_path: Public URL path.
        output_relative_path: Output file path relative to the output root.
        title: Human-readable title.
        source: Document body with front matter stripped.
        draft: Whether the page is a draft.
        meta: Normalized front matter without taxonomy keys.
        taxonomies: Taxonomy terms by taxonomy key.
        type: Resolved content type name.
        virtual: True for pages injected by extensions.
    """

    source_path: str
    relative_path: str
    slug: str
    url_path: str
    output_relative_path: str
    title: str
    source: str
    draft: bool = False
    meta: dict[str, Any] = field(default_factory=dict)
    taxonomies: dict[str, list[str]] = field(default_factory=dict)
    type: str | None = None
    virtual: bool = False

    @classmethod
    def virtual_page(
        cls,
        url_path: str,
        output_relative_path: str,
        title: str,
        meta: Mapping[str, Any] | None = None,
    ) -> Page:
        """Create a page that has no backing document.

        Args:
            url_path: Public URL of the generated file.
            output_relative_path: Output path of the generated file.
            title: Human-readable title.
            meta: Optional metadata.

        Returns:
            Virtual Page instance.
        """
        slug = output_relative_path.strip("/")
        return cls(
            source_path="",
            relative_path=slug,
            slug=slug,
            url_path=url_path,
            output_relative_path=output_relative_path,
            title=title,
            source="",
            meta=dict(meta or {}),
            virtual=True,
        )

    def get(self, key: str, default: Any = None) -> Any:
        """Look up a metadata value by dotted key, e.g. ``meta.robots``."""
        current: Any = self.meta
        for part in key.split("."):
            if not isinstance(current, Mapping) or part not in current:
                return default
            current = current[part]
        return current

    def terms(self, taxonomy: str) -> list[str]:
        """Return the terms of one taxonomy, empty when absent."""
        return list(self.taxonomies.get(taxonomy, []))


@dataclass(frozen=True)
class PathPrefixMatcher:
    """Matches documents located under a directory prefix.

    A prefix of ``blog`` matches ``blog/post.dj`` and ``blog/2024/a.dj`` but
    not ``blogroll/x.dj``.
    """

    prefix: str

    def matches(self, relative_path: str) -> bool:
        prefix = self.prefix.replace("\\", "/").strip("/")
        if not prefix:
            return False
        path = relative_path.replace("\\", "/").strip("/")
        return path == prefix or path.startswith(f"{prefix}/")


@dataclass(frozen=True)
class ContentTypeRule:
    """A configured content type.

    Attributes:
        name: Lower-case type name.
        paths: Matchers deciding which documents belong to the type.
        defaults: Metadata merged under a page's own front matter.
    """

    name: str
    paths: tuple[ContentTypeMatcher, ...] = ()
    defaults: dict[str, Any] = field(default_factory=dict)

    def matches(self, relative_path: str) -> bool:
        return any(matcher.matches(relative_path) for matcher in self.paths)


class FileContentLoader:
    """Finds markup documents under a content root.

    Attributes:
        content_root: Directory containing content.
    """

    def __init__(self, content_root: Path):
        self.content_root = content_root

    def iter_files(self) -> list[Path]:
        """List markup documents, sorted by path.

        Returns:
            List of paths to markup documents.
        """
        return [path for path in iter_files(self.content_root) if is_markup(path)]


class ContentTypeResolver:
    """Resolves the content type of a document.

    Rules are checked in configuration order; an explicit ``type`` in front
    matter overrides path matching but must name a configured rule.
    """

    def __init__(self, rules: Mapping[str, ContentTypeRule] | None = None):
        self.rules: dict[str, ContentTypeRule] = {
            name.strip().lower(): rule for name, rule in (rules or {}).items()
        }

    def resolve(
        self, relative_path: str, meta: Mapping[str, Any], source_path: Path
    ) -> ContentTypeRule | None:
        explicit = meta.get("type")
        if isinstance(explicit, (Mapping, list, tuple, set)):
            raise UnknownContentTypeError(
                source_path, f"content type must be a name, got {type(explicit).__name__}"
            )
        if explicit is not None and str(explicit).strip():
            name = str(explicit).strip()
            rule = self.rules.get(name.lower())
            if rule is None:
                raise UnknownContentTypeError(
                    source_path,
                    f'unknown content type "{name}"; configured types: '
                    f"{', '.join(sorted(self.rules)) or '(none)'}",
                )
            return rule
        for rule in self.rules.values():
            if rule.matches(relative_path):
                return rule
        return None

    def apply(
        self, rule: ContentTypeRule | None, meta: dict[str, Any]
    ) -> dict[str, Any]:
        """Merge type defaults under the page metadata."""
        if rule is None:
            return meta
        merged = dict(rule.defaults)
        merged.update(meta)
        merged["type"] = rule.name
        return merged


class ContentDiscoveryService:
    """Discovers markup documents and maps them to routes.

    Attributes:
        parser: Front matter parser.
    """

    def __init__(self, parser: FrontMatterParser | None = None):
        self.parser = parser or FrontMatterParser()

    def discover(
        self,
        content_root: Path | str,
        taxonomies: Iterable[str] = ("tags",),
        content_types: Mapping[str, ContentTypeRule] | None = None,
    ) -> list[Page]:
        """Discover every page in a content directory.

        Args:
            content_root: Absolute content directory path.
            taxonomies: Taxonomy keys to extract from front matter.
            content_types: Content type rules by name.

        Returns:
            Pages sorted by relative path.

        Raises:
            ContentReadError: If a document cannot be read.
            ContentParseError: If a document has malformed front matter.
            UnknownContentTypeError: If a document names an unknown type.
        """
        root = Path(content_root)
        if not root.is_dir():
            return []

        taxonomy_keys = normalize_taxonomy_keys(taxonomies)
        type_resolver = ContentTypeResolver(content_types)
        pages = [
            self._build_page(root, path, taxonomy_keys, type_resolver)
            for path in FileContentLoader(root).iter_files()
        ]
        pages.sort(key=lambda page: page.relative_path)
        _warn_on_slug_collisions(pages)
        return pages

    def _build_page(
        self,
        root: Path,
        path: Path,
        taxonomy_keys: Sequence[str],
        type_resolver: ContentTypeResolver,
    ) -> Page:
        relative_path = relative_posix(root, path)
        raw = self._read(path)
        try:
            parsed = self.parser.parse(raw)
        except FrontMatterError as exc:
            raise ContentParseError(path, str(exc)) from exc

        meta = normalize_metadata(parsed.metadata)
        meta, taxonomy_terms = extract_taxonomies(meta, taxonomy_keys)
        rule = type_resolver.resolve(relative_path, meta, path)
        meta = type_resolver.apply(rule, meta)

        slug = resolve_slug(relative_path, meta)
        return Page(
            source_path=str(path),
            relative_path=relative_path,
            slug=slug,
            url_path=to_url_path(slug),
            output_relative_path=to_output_relative_path(slug),
            title=resolve_title(slug, meta),
            source=parsed.body,
            draft=resolve_draft(meta),
            meta=meta,
            taxonomies=taxonomy_terms,
            type=rule.name if rule else None,
        )

    def _read(self, path: Path) -> str:
        try:
            return path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise ContentReadError(path, f"Unable to read content file: {exc}") from exc


def path_to_slug(relative_path: str) -> str:
    """Derive a slug from a content-relative path.

    Examples:
        >>> path_to_slug("blog/Hello World.dj")
        'blog/hello-world'

        >>> path_to_slug("docs/index.dj")
        'docs'
    """
    stem = strip_markup_extension(relative_path.replace("\\", "/"))
    segments = [s for s in stem.split("/") if s]
    if len(segments) > 1 and segments[-1].lower() == INDEX_SLUG:
        segments.pop()
    if not segments:
        return INDEX_SLUG
    return "/".join(slugify(segment) for segment in segments)


def resolve_slug(relative_path: str, meta: Mapping[str, Any]) -> str:
    """Resolve the final slug, honoring a non-blank front matter override."""
    override = meta.get("slug")
    if isinstance(override, str) and override.strip():
        return slugify_path(override)
    return path_to_slug(relative_path)


def resolve_title(slug: str, meta: Mapping[str, Any]) -> str:
    """Resolve the title, honoring a non-blank front matter override."""
    title = meta.get("title")
    if isinstance(title, str) and title.strip():
        return title.strip()
    return humanize(slug)


def resolve_draft(meta: Mapping[str, Any]) -> bool:
    """Resolve draft state from metadata."""
    value = meta.get("draft", False)
    if isinstance(value, str):
        return value.strip().lower() not in FALSE_STRINGS
    return bool(value)


def find_page(pages: Iterable[Page], request_path: str) -> Page | None:
    """Match a request path against page URLs, ignoring trailing slashes."""
    wanted = request_path.split("?", 1)[0].rstrip("/") or "/"
    for page in pages:
        if (page.url_path.rstrip("/") or "/") == wanted:
            return page
    return None


def _warn_on_slug_collisions(pages: Sequence[Page]) -> None:
    seen: dict[str, Page] = {}
    for page in pages:
        previous = seen.get(page.output_relative_path)
        if previous is not None:
            logger.warning(
                "Pages %s and %s both map to %s; the latter wins.",
                previous.relative_path,
                page.relative_path,
                page.output_relative_path,
            )
        seen[page.output_relative_path] = page
