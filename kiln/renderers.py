"""Markup renderer for Kiln.

Converts document bodies (``.dj`` and ``.md``) to HTML fragments with
mistune. Headings get stable anchor ids and fenced code blocks are
highlighted with Pygments.

Key class:
- MarkupRenderer: Implements the MarkupConverter protocol.
"""

from __future__ import annotations

import re

import mistune
from markupsafe import escape
from pygments import highlight
from pygments.formatters import HtmlFormatter
from pygments.lexers import get_lexer_by_name
from pygments.util import ClassNotFound

from .utils import FALLBACK_SEGMENT

MISTUNE_PLUGINS = ["strikethrough", "footnotes", "table", "url"]


def _generate_heading_id(text: str) -> str:
    """Generate a URL-friendly anchor id from heading text.

    Examples:
        >>> _generate_heading_id("Getting <em>Started</em>!")
        'getting-started'
    """
    plain = re.sub(r"<[^>]+>", "", text)
    slug = re.sub(r"[^\w\s-]", "", plain.lower().strip())
    slug = re.sub(r"[-\s]+", "-", slug)
    return slug.strip("-") or FALLBACK_SEGMENT


class _HighlightRenderer(mistune.HTMLRenderer):
    """HTML renderer with heading anchors and syntax highlighting."""

    def __init__(self):
        super().__init__(escape=False)
        self._heading_id_counts: dict[str, int] = {}

    def heading(self, text: str, level: int, **attrs) -> str:
        base_id = _generate_heading_id(text)
        if base_id in self._heading_id_counts:
            self._heading_id_counts[base_id] += 1
            heading_id = f"{base_id}-{self._heading_id_counts[base_id]}"
        else:
            self._heading_id_counts[base_id] = 0
            heading_id = base_id
        return f'<h{level} id="{heading_id}">{text}</h{level}>\n'

    def block_code(self, code: str, info: str | None = None) -> str:
        """Render a fenced code block, highlighted when the language is known.

        Args:
            code: The code content.
            info: Language identifier from the fence, e.g. ``python``.

        Returns:
            HTML for the code block.
        """
        language = info.split()[0] if info and info.strip() else None
        if language:
            try:
                lexer = get_lexer_by_name(language, stripall=True)
            except ClassNotFound:
                lexer = None
            if lexer is not None:
                return highlight(code, lexer, HtmlFormatter(cssclass="highlight"))
        lang_class = f' class="language-{escape(language)}"' if language else ""
        return f"<pre><code{lang_class}>{escape(code)}</code></pre>\n"


class MarkupRenderer:
    """Renders document bodies to HTML.

    A fresh mistune renderer is created per call so heading id counters do
    not leak between pages.
    """

    def render(self, source: str) -> str:
        """Render markup source to an HTML fragment.

        Args:
            source: Document body without front matter.

        Returns:
            HTML fragment.
        """
        markdown = mistune.create_markdown(
            renderer=_HighlightRenderer(), plugins=MISTUNE_PLUGINS
        )
        return markdown(source)


def pygments_css() -> str:
    """Return Pygments CSS for the ``.highlight`` class."""
    return HtmlFormatter().get_style_defs(".highlight")
