"""Front matter parsing and metadata extraction for Kiln.

A content document may begin with a YAML block fenced by ``+++`` or ``---``.
This module splits that block from the body and normalizes the decoded
values into the shapes the rest of the build relies on.

Key classes and functions:
- FrontMatterParser: Splits a document into metadata and body.
- normalize_metadata: Keeps scalar and scalar-list values with clean keys.
- extract_taxonomies: Moves configured taxonomy keys out of the metadata.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import date
from typing import Any

import yaml

from .errors import FrontMatterError

FRONTMATTER_RE = re.compile(
    r"\A(?P<fence>\+\+\+|---)[ \t]*\r?\n(?P<block>.*?)\r?\n(?P=fence)[ \t]*(?:\r?\n|\Z)",
    re.DOTALL,
)
EMPTY_FRONTMATTER_RE = re.compile(
    r"\A(?P<fence>\+\+\+|---)[ \t]*\r?\n(?P=fence)[ \t]*(?:\r?\n|\Z)"
)
OPENING_FENCE_RE = re.compile(r"\A(?P<fence>\+\+\+|---)[ \t]*\r?\n")

_SCALARS = (str, int, float, bool)


@dataclass(frozen=True)
class FrontMatterResult:
    """Parsed front matter and the remaining document body."""

    metadata: dict[str, Any] = field(default_factory=dict)
    body: str = ""


class FrontMatterParser:
    """Parses YAML front matter fenced by ``+++`` or ``---``.

    The closing fence must repeat the opening token on its own line.
    Documents without a fence have no metadata and keep their full text
    as the body.
    """

    def parse(self, source: str) -> FrontMatterResult:
        """Split a document into metadata and body.

        Args:
            source: Raw document text.

        Returns:
            FrontMatterResult with decoded metadata and body.

        Raises:
            FrontMatterError: If the block is not valid YAML or does not
                decode to a mapping.
        """
        match = EMPTY_FRONTMATTER_RE.match(source) or FRONTMATTER_RE.match(source)
        if not match:
            opening = OPENING_FENCE_RE.match(source)
            if opening:
                raise FrontMatterError(
                    f"Unterminated front matter: missing closing {opening.group('fence')!r} fence."
                )
            return FrontMatterResult(metadata={}, body=source)

        block = match.groupdict().get("block") or ""
        body = source[match.end() :]
        try:
            decoded = yaml.safe_load(block)
        except yaml.YAMLError as exc:
            raise FrontMatterError(f"Invalid YAML front matter: {exc}") from exc

        if decoded is None:
            decoded = {}
        if not isinstance(decoded, dict):
            raise FrontMatterError(
                "Invalid YAML front matter: expected a key/value mapping."
            )
        return FrontMatterResult(metadata=decoded, body=body)


def _normalize_scalar(value: Any) -> Any:
    # YAML turns unquoted dates into date objects; keep them JSON friendly.
    if isinstance(value, date):
        return value.isoformat()
    return value


def _is_scalar(value: Any) -> bool:
    return value is None or isinstance(value, (*_SCALARS, date))


def normalize_meta_value(value: Any) -> Any:
    """Normalize a single metadata value.

    Scalars are kept, lists keep only their scalar items, anything else
    becomes None.
    """
    if _is_scalar(value):
        return _normalize_scalar(value)
    if isinstance(value, (list, tuple)):
        return [_normalize_scalar(item) for item in value if _is_scalar(item)]
    return None


def normalize_meta_map(value: Mapping[Any, Any]) -> dict[str, Any]:
    """Normalize a nested ``meta`` mapping to string keys and scalar values."""
    normalized: dict[str, Any] = {}
    for key, item in value.items():
        if not isinstance(key, str) or not key.strip():
            continue
        if not _is_scalar(item):
            continue
        normalized[key.strip()] = _normalize_scalar(item)
    return normalized


def normalize_metadata(metadata: Mapping[Any, Any]) -> dict[str, Any]:
    """Normalize decoded front matter.

    Keys are trimmed and lower-cased; non-string and blank keys are
    dropped. A nested ``meta`` mapping keeps its own keys as written.

    Args:
        metadata: Raw decoded front matter.

    Returns:
        Normalized metadata map.
    """
    normalized: dict[str, Any] = {}
    for key, value in metadata.items():
        if not isinstance(key, str):
            continue
        normalized_key = key.strip().lower()
        if not normalized_key:
            continue
        if normalized_key == "meta" and isinstance(value, Mapping):
            normalized[normalized_key] = normalize_meta_map(value)
            continue
        normalized[normalized_key] = normalize_meta_value(value)
    return normalized


def normalize_taxonomy_keys(keys: Iterable[str]) -> list[str]:
    """Lower-case, trim and deduplicate configured taxonomy keys."""
    normalized: list[str] = []
    for key in keys:
        if not isinstance(key, str):
            continue
        cleaned = key.strip().lower()
        if cleaned and cleaned not in normalized:
            normalized.append(cleaned)
    return normalized


def normalize_terms(raw: Any) -> list[str]:
    """Normalize taxonomy terms to distinct lowercased strings.

    Examples:
        >>> normalize_terms(["Python", "python ", "Web"])
        ['python', 'web']

        >>> normalize_terms("News")
        ['news']
    """
    values = [raw] if isinstance(raw, str) else raw if isinstance(raw, list) else []
    terms: list[str] = []
    for value in values:
        if not isinstance(value, str) or not value.strip():
            continue
        term = value.strip().lower()
        if term not in terms:
            terms.append(term)
    return terms


def extract_taxonomies(
    meta: Mapping[str, Any], taxonomy_keys: Iterable[str]
) -> tuple[dict[str, Any], dict[str, list[str]]]:
    """Move configured taxonomy keys out of the metadata map.

    Args:
        meta: Normalized metadata.
        taxonomy_keys: Normalized taxonomy keys.

    Returns:
        Tuple of (metadata without taxonomy keys, taxonomy terms by key).
    """
    remaining = dict(meta)
    taxonomies: dict[str, list[str]] = {}
    for key in taxonomy_keys:
        taxonomies[key] = normalize_terms(remaining.pop(key, None))
    return remaining, taxonomies
