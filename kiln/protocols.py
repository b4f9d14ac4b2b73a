"""Protocol definitions for Kiln.

These protocols describe the narrow interfaces the build core consumes from
its collaborators. Markup conversion and template composition are delegated
to third-party engines; content-type path matching is pluggable.
"""

from __future__ import annotations

from abc import abstractmethod
from collections.abc import Sequence
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from .content import Page


@runtime_checkable
class ContentTypeMatcher(Protocol):
    """Decides whether a content-relative path belongs to a content type."""

    @abstractmethod
    def matches(self, relative_path: str) -> bool:
        """Check a document path.

        Args:
            relative_path: Path relative to the content root, with
                forward slashes and extension.

        Returns:
            True if the document belongs to the content type.
        """
        ...


@runtime_checkable
class MarkupConverter(Protocol):
    """Converts a document body to an HTML fragment."""

    @abstractmethod
    def render(self, source: str) -> str:
        """Render markup source to HTML.

        Args:
            source: Document body without front matter.

        Returns:
            HTML fragment.
        """
        ...


@runtime_checkable
class PageRenderer(Protocol):
    """Composes a full HTML document from a page and its rendered body."""

    @abstractmethod
    def render_page(self, page: Page, content: str, pages: Sequence[Page]) -> str:
        """Render a page with its template.

        Args:
            page: Page being rendered.
            content: HTML fragment produced by the markup converter.
            pages: Every page in the current build, for listings.

        Returns:
            Complete HTML document.
        """
        ...
