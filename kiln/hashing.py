"""Content hashing helpers.

Kiln fingerprints strings and file metadata with xxh3, a fast
non-cryptographic hash. Digests are stable across processes and platforms,
which is all the build manifest needs. Do not use these for anything
security related.
"""

from __future__ import annotations

from collections.abc import Iterable

import xxhash

PART_SEPARATOR = "|"


def make(value: str) -> str:
    """Hash a string payload.

    File names that are not valid UTF-8 arrive surrogate-escaped and are
    hashed as their original bytes.

    Args:
        value: Text to fingerprint.

    Returns:
        16-character lowercase hex digest.

    Examples:
        >>> make("") == make("")
        True
    """
    return xxhash.xxh3_64(value.encode("utf-8", "surrogateescape")).hexdigest()


def make_from_parts(parts: Iterable[str]) -> str:
    """Hash an ordered sequence of fragments.

    Parts are joined with a pipe before hashing, so ``["a", "b"]`` and
    ``["b", "a"]`` produce different digests.

    Args:
        parts: Ordered hash input fragments.

    Returns:
        Hex digest of the joined parts.
    """
    return make(PART_SEPARATOR.join(parts))


def make_bytes(value: bytes) -> str:
    """Hash a raw byte payload, e.g. a file's contents."""
    return xxhash.xxh3_64(value).hexdigest()
