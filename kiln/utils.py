"""Utility functions for Kiln.

String and path helpers shared by discovery, the manifest and the builder.

Key functions:
    slugify: Convert a path segment to a URL slug.
    slugify_path: Normalize a slash-separated slug override.
    humanize: Turn a slug segment into a fallback title.
    to_url_path: Derive a public URL from a slug.
    to_output_relative_path: Derive an on-disk output path from a slug.
    relative_posix: Build a forward-slash path relative to a root.
    iter_files: Recursively list regular files under a directory.
    is_markup: Check if a path is a markup document.
    ensure_clean_dir: Ensure a directory exists and is empty.
"""

from __future__ import annotations

import re
import shutil
import unicodedata
from pathlib import Path

MARKUP_EXTENSIONS = (".dj", ".md")
INDEX_SLUG = "index"
FALLBACK_SEGMENT = "page"

_NON_SLUG_RE = re.compile(r"[^a-zA-Z0-9]+")


def slugify(name: str) -> str:
    """Convert a single path segment to a slug.

    Accented characters are transliterated to ASCII, every run of
    non-alphanumerics becomes a hyphen.

    Args:
        name: Path segment without slashes.

    Returns:
        Lowercase slug, or ``page`` if nothing survives.

    Examples:
        >>> slugify("Hello World")
        'hello-world'

        >>> slugify("Café au lait")
        'cafe-au-lait'
    """
    ascii_name = (
        unicodedata.normalize("NFKD", name).encode("ascii", "ignore").decode("ascii")
    )
    cleaned = _NON_SLUG_RE.sub("-", ascii_name).strip("-").lower()
    return cleaned or FALLBACK_SEGMENT


def slugify_path(value: str) -> str:
    """Normalize a slash-separated slug into route-safe segments.

    Args:
        value: Raw slug, possibly with leading/trailing slashes.

    Returns:
        Normalized slug; ``index`` when no segment remains.

    Examples:
        >>> slugify_path("/Custom/Home/")
        'custom/home'

        >>> slugify_path("///")
        'index'
    """
    segments = [s for s in value.replace("\\", "/").strip("/").split("/") if s]
    if not segments:
        return INDEX_SLUG
    return "/".join(slugify(segment) for segment in segments)


def humanize(slug: str) -> str:
    """Derive a fallback title from the last slug segment.

    Args:
        slug: Page slug.

    Returns:
        Human readable title.

    Examples:
        >>> humanize("blog/my-post")
        'My post'

        >>> humanize("index")
        'Home'
    """
    if slug == INDEX_SLUG:
        return "Home"
    last = slug.rsplit("/", 1)[-1]
    words = " ".join(w for w in re.split(r"[-_\s]+", last) if w)
    return words[:1].upper() + words[1:].lower()


def to_url_path(slug: str) -> str:
    """Convert a slug to its public URL path."""
    if slug == INDEX_SLUG:
        return "/"
    return f"/{slug.strip('/')}/"


def to_output_relative_path(slug: str) -> str:
    """Convert a slug to its output file path relative to the output root."""
    if slug == INDEX_SLUG:
        return "index.html"
    return f"{slug.strip('/')}/index.html"


def relative_posix(root: Path, path: Path) -> str:
    """Return ``path`` relative to ``root`` with forward slashes."""
    return path.relative_to(root).as_posix()


def iter_files(root: Path) -> list[Path]:
    """Recursively list regular files under a directory.

    Args:
        root: Directory to walk.

    Returns:
        Sorted list of file paths; empty when the directory is missing.
    """
    if not root.is_dir():
        return []
    return sorted(path for path in root.rglob("*") if path.is_file())


def is_markup(path: Path | str) -> bool:
    """Check if a path is a markup document.

    Args:
        path: Path to check.

    Returns:
        True if the file has a markup extension (case-insensitive).
    """
    return Path(path).suffix.lower() in MARKUP_EXTENSIONS


def strip_markup_extension(relative_path: str) -> str:
    """Remove a trailing markup extension from a relative path."""
    for extension in MARKUP_EXTENSIONS:
        if relative_path.lower().endswith(extension):
            return relative_path[: -len(extension)]
    return relative_path


def ensure_clean_dir(path: Path) -> None:
    """Ensure a directory exists and is empty.

    If the directory exists, removes all contents. Creates the
    directory if it doesn't exist.

    Args:
        path: Directory path to clean or create.
    """
    if path.exists():
        shutil.rmtree(str(path))
    path.mkdir(parents=True, exist_ok=True)
