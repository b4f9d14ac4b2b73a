"""Persistent build state used to drive incremental builds.

The manifest stores a global dependency fingerprint plus per-output
fingerprints:

- ``global_hash`` covers inputs that can affect many pages: the project
  configuration file, the template and extension directories, the draft
  flag, the default template and the metadata of every discovered page
  (everything except body text).
- ``page_body_hashes`` maps each page output path to a hash of its body, so
  a body-only edit re-renders just that page.
- ``content_asset_signatures`` and ``static_asset_signatures`` map asset
  output paths to ``size:mtime`` signatures for selective publishing and
  orphan detection.

All maps are keyed by the output-relative path the builder writes to.
Template and extension directories are fingerprinted by mtime rather than
content: touching a file without editing it forces a full rebuild, but an
edit is never missed.

The manifest never decides anything by itself. ``from_build`` computes a
snapshot, ``load``/``save`` move it to and from disk, and the query methods
give the builder what it needs to choose between a full and an incremental
build.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath, PureWindowsPath
from typing import TYPE_CHECKING, Any

from . import hashing
from .errors import ManifestWriteError
from .utils import is_markup, iter_files, relative_posix

if TYPE_CHECKING:
    from .config import BuildConfig
    from .content import Page

logger = logging.getLogger(__name__)

MISSING = "missing"
UNREADABLE = "unreadable"

REQUIRED_KEYS = (
    "globalHash",
    "pageBodyHashes",
    "contentAssetSignatures",
    "staticAssetSignatures",
)


def _sorted_map(values: Mapping[str, str]) -> dict[str, str]:
    return {key: values[key] for key in sorted(values)}


@dataclass(frozen=True)
class BuildManifest:
    """Snapshot of every build input that decides what gets rebuilt.

    Attributes:
        global_hash: Fingerprint of inputs shared by all pages.
        page_body_hashes: Body hash by page output path.
        content_asset_signatures: ``size:mtime`` by content asset output path.
        static_asset_signatures: ``size:mtime`` by static asset output path.
    """

    global_hash: str
    page_body_hashes: dict[str, str] = field(default_factory=dict)
    content_asset_signatures: dict[str, str] = field(default_factory=dict)
    static_asset_signatures: dict[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        # Frozen dataclass: normalize map ordering through object.__setattr__.
        for name in ("page_body_hashes", "content_asset_signatures", "static_asset_signatures"):
            object.__setattr__(self, name, _sorted_map(getattr(self, name)))

    @classmethod
    def from_build(cls, config: BuildConfig, pages: Iterable[Page]) -> BuildManifest:
        """Build a snapshot from the current inputs.

        Pure computation: reads file metadata but writes nothing.

        Args:
            config: Build configuration.
            pages: Every page of the current build, virtual ones included.

        Returns:
            Manifest for the current build.
        """
        pages = list(pages)
        page_body_hashes = {
            page.output_relative_path: hashing.make(page.source)
            for page in pages
            if not page.virtual
        }
        return cls(
            global_hash=hashing.make(global_signature(config, pages)),
            page_body_hashes=page_body_hashes,
            content_asset_signatures=asset_signatures(
                config.content_path, include=lambda path: not is_markup(path)
            ),
            static_asset_signatures=asset_signatures(config.static_path),
        )

    @classmethod
    def load(cls, path: Path | str) -> BuildManifest | None:
        """Load a manifest from disk.

        Any defect (missing file, unreadable file, invalid JSON, wrong
        shape) yields None so that a corrupted cache only forces a full
        rebuild.

        Args:
            path: Manifest file path.

        Returns:
            The stored manifest, or None.
        """
        path = Path(path)
        try:
            contents = path.read_text(encoding="utf-8", errors="surrogateescape")
        except OSError:
            return None
        try:
            decoded = json.loads(contents)
        except ValueError:
            logger.info("Ignoring unreadable build manifest %s", path)
            return None
        return cls.from_dict(decoded)

    @classmethod
    def from_dict(cls, data: Any) -> BuildManifest | None:
        """Rebuild a manifest from decoded JSON, or None if malformed."""
        if not isinstance(data, dict):
            return None
        if any(key not in data for key in REQUIRED_KEYS):
            return None
        global_hash = data["globalHash"]
        maps = [data[key] for key in REQUIRED_KEYS[1:]]
        if not isinstance(global_hash, str) or not all(isinstance(m, dict) for m in maps):
            return None
        page_body_hashes, content_assets, static_assets = (
            _string_map(m) for m in maps
        )
        for values in (page_body_hashes, content_assets, static_assets):
            if not all(is_output_relative(key) for key in values):
                logger.info("Ignoring build manifest with paths outside the output root")
                return None
        return cls(
            global_hash=global_hash,
            page_body_hashes=page_body_hashes,
            content_asset_signatures=content_assets,
            static_asset_signatures=static_assets,
        )

    def to_dict(self) -> dict[str, Any]:
        """Return the persisted JSON structure."""
        return {
            "globalHash": self.global_hash,
            "pageBodyHashes": dict(self.page_body_hashes),
            "contentAssetSignatures": dict(self.content_asset_signatures),
            "staticAssetSignatures": dict(self.static_asset_signatures),
        }

    def save(self, path: Path | str) -> None:
        """Persist the manifest atomically.

        The JSON is written to a temporary file next to the target and
        renamed into place, so readers never observe a partial file.

        Args:
            path: Manifest file path.

        Raises:
            ManifestWriteError: If the directory or file cannot be written.
        """
        path = Path(path)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise ManifestWriteError(
                f"Unable to create build cache directory {path.parent}: {exc}"
            ) from exc

        encoded = json.dumps(self.to_dict(), indent=2, sort_keys=True, ensure_ascii=False)
        tmp_name = None
        try:
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{path.name}.", suffix=".tmp", dir=path.parent
            )
            with os.fdopen(fd, "w", encoding="utf-8", errors="surrogateescape") as f:
                f.write(encoded + "\n")
            os.replace(tmp_name, path)
        except (OSError, UnicodeError) as exc:
            if tmp_name is not None and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise ManifestWriteError(f"Unable to write build manifest {path}: {exc}") from exc

    def requires_full_build(self, previous: BuildManifest | None) -> bool:
        """Return True when every page must be re-rendered."""
        if previous is None:
            return True
        return previous.global_hash != self.global_hash

    def changed_page_output_paths(self, previous: BuildManifest | None) -> set[str]:
        """Return page output paths that are new or whose body changed.

        Pages present only in ``previous`` are not included; see
        ``orphaned_page_output_paths``.
        """
        return _changed(self.page_body_hashes, previous.page_body_hashes if previous else {})

    def changed_content_asset_output_paths(self, previous: BuildManifest | None) -> set[str]:
        return _changed(
            self.content_asset_signatures,
            previous.content_asset_signatures if previous else {},
        )

    def changed_static_asset_output_paths(self, previous: BuildManifest | None) -> set[str]:
        return _changed(
            self.static_asset_signatures,
            previous.static_asset_signatures if previous else {},
        )

    def page_output_paths(self) -> list[str]:
        return list(self.page_body_hashes)

    def content_asset_output_paths(self) -> list[str]:
        return list(self.content_asset_signatures)

    def static_asset_output_paths(self) -> list[str]:
        return list(self.static_asset_signatures)

    def orphaned_page_output_paths(self, previous: BuildManifest | None) -> set[str]:
        """Return page output paths that existed before but not anymore."""
        if previous is None:
            return set()
        return set(previous.page_output_paths()) - set(self.page_output_paths())

    def orphaned_content_asset_output_paths(self, previous: BuildManifest | None) -> set[str]:
        if previous is None:
            return set()
        return set(previous.content_asset_output_paths()) - set(
            self.content_asset_output_paths()
        )

    def orphaned_static_asset_output_paths(self, previous: BuildManifest | None) -> set[str]:
        if previous is None:
            return set()
        return set(previous.static_asset_output_paths()) - set(
            self.static_asset_output_paths()
        )


def _changed(current: Mapping[str, str], previous: Mapping[str, str]) -> set[str]:
    return {key for key, value in current.items() if previous.get(key) != value}


def is_output_relative(key: str) -> bool:
    """Return True if a manifest key stays inside the output root."""
    if not key:
        return False
    if PurePosixPath(key).is_absolute() or PureWindowsPath(key).drive:
        return False
    return ".." not in PurePosixPath(key).parts


def _string_map(values: Mapping[Any, Any]) -> dict[str, str]:
    return {
        key: value
        for key, value in values.items()
        if isinstance(key, str) and isinstance(value, str)
    }


def global_signature(config: BuildConfig, pages: Iterable[Page]) -> str:
    """Build the signature string hashed into ``global_hash``.

    Args:
        config: Build configuration.
        pages: Every page of the current build.

    Returns:
        Newline-joined signature lines.
    """
    parts = [
        f"config={file_signature(config.config_path)}",
        f"templates={directory_signature(config.template_path)}",
        f"extensions={directory_signature(config.extensions_path)}",
        f"includeDrafts={'1' if config.include_drafts else '0'}",
        f"defaultTemplate={config.page_template}",
        f"pages={pages_metadata_signature(pages)}",
    ]
    return "\n".join(parts)


def file_signature(path: Path) -> str:
    """Hash a file's contents.

    Returns:
        ``missing`` when absent, ``unreadable`` when it cannot be read,
        otherwise the content hash.
    """
    if not path.is_file():
        return MISSING
    try:
        contents = path.read_bytes()
    except OSError:
        return UNREADABLE
    return hashing.make_bytes(contents)


def directory_signature(path: Path) -> str:
    """Hash the sorted ``relative/path:mtime`` pairs of a directory tree.

    Returns:
        ``missing`` when the directory does not exist.
    """
    if not path.is_dir():
        return MISSING
    entries = []
    for file in iter_files(path):
        try:
            mtime = file.stat().st_mtime_ns
        except OSError:
            # Vanished mid-walk; still record it so the signature differs.
            mtime = MISSING
        entries.append(f"{relative_posix(path, file)}:{mtime}")
    entries.sort()
    return hashing.make("\n".join(entries))


def pages_metadata_signature(pages: Iterable[Page]) -> str:
    """Hash the metadata of every page, excluding body text.

    Entries are keyed and sorted by output path and serialized as canonical
    JSON, so discovery order does not matter.
    """
    entries: dict[str, dict[str, Any]] = {}
    for page in pages:
        entries[page.output_relative_path] = {
            "slug": page.slug,
            "urlPath": page.url_path,
            "outputRelativePath": page.output_relative_path,
            "title": page.title,
            "draft": page.draft,
            "type": page.type,
            "virtual": page.virtual,
            "meta": page.meta,
            "taxonomies": page.taxonomies,
        }
    encoded = json.dumps(
        entries,
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
        default=str,
    )
    return hashing.make(encoded)


def asset_signatures(
    root: Path, include: Callable[[Path], bool] | None = None
) -> dict[str, str]:
    """Build ``size:mtime`` signatures keyed by output-relative path.

    Args:
        root: Source directory; its relative layout is the output layout.
        include: Optional filter deciding which files are assets.

    Returns:
        Sorted map of relative path to signature; empty when root is missing.
    """
    signatures: dict[str, str] = {}
    for file in iter_files(root):
        if include is not None and not include(file):
            continue
        try:
            stat = file.stat()
        except OSError:
            continue
        signatures[relative_posix(root, file)] = f"{stat.st_size}:{stat.st_mtime_ns}"
    return _sorted_map(signatures)
