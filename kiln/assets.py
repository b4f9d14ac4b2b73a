"""Asset publishing for Kiln.

Non-markup files in the content tree (images next to a post, downloads)
and every file in the static tree are copied to the output directory with
their relative layout preserved. The relative path of a source file is
therefore also its output-relative path, which is what the build manifest
records.

Key class:
- ContentAssetPublisher: Copies assets and removes orphaned outputs.
"""

from __future__ import annotations

import logging
import shutil
from collections.abc import Collection, Iterable
from pathlib import Path

from .errors import BuildError
from .utils import is_markup, iter_files, relative_posix

logger = logging.getLogger(__name__)


class ContentAssetPublisher:
    """Copies content and static assets into the output directory."""

    def publish(
        self,
        content_path: Path,
        output_path: Path,
        only: Collection[str] | None = None,
    ) -> list[str]:
        """Copy non-markup files from the content tree.

        Args:
            content_path: Content source directory.
            output_path: Output root.
            only: Output-relative paths to copy; every asset when None.

        Returns:
            Output-relative paths that were copied.

        Raises:
            BuildError: If a file cannot be copied.
        """
        return self._copy_tree(
            content_path, output_path, only, include=lambda path: not is_markup(path)
        )

    def publish_static(
        self,
        static_path: Path,
        output_path: Path,
        only: Collection[str] | None = None,
    ) -> list[str]:
        """Copy every file from the static tree. See ``publish``."""
        return self._copy_tree(static_path, output_path, only)

    def _copy_tree(self, source_root, output_path, only, include=None) -> list[str]:
        copied: list[str] = []
        for source in iter_files(source_root):
            if include is not None and not include(source):
                continue
            relative = relative_posix(source_root, source)
            if only is not None and relative not in only:
                continue
            destination = output_path / relative
            try:
                destination.parent.mkdir(parents=True, exist_ok=True)
                shutil.copy2(source, destination)
            except OSError as exc:
                raise BuildError(source, f"Unable to copy asset to {destination}: {exc}", exc) from exc
            copied.append(relative)
        return copied

    def remove_outputs(self, output_path: Path, relative_paths: Iterable[str]) -> list[str]:
        """Delete output files and prune directories left empty.

        The output root itself is never removed. Files that are already
        gone, and paths that resolve outside the output root, are skipped.

        Args:
            output_path: Output root.
            relative_paths: Output-relative paths to delete.

        Returns:
            Output-relative paths that were actually deleted.

        Raises:
            BuildError: If a file exists but cannot be deleted.
        """
        removed: list[str] = []
        root = output_path.resolve()
        for relative in sorted(relative_paths):
            target = output_path / relative
            # Resolve the parent only so a symlinked output is unlinked itself.
            parent = target.parent.resolve()
            if parent != root and root not in parent.parents:
                logger.warning("Refusing to remove %s outside %s", relative, output_path)
                continue
            try:
                target.unlink()
            except FileNotFoundError:
                continue
            except OSError as exc:
                raise BuildError(target, f"Unable to remove stale output: {exc}", exc) from exc
            removed.append(relative)
            _prune_empty_parents(target.parent, output_path)
        return removed


def _prune_empty_parents(directory: Path, stop: Path) -> None:
    stop = stop.resolve()
    current = directory.resolve()
    while current != stop and stop in current.parents:
        try:
            current.rmdir()
        except OSError:
            # Not empty.
            return
        logger.debug("Removed empty directory %s", current)
        current = current.parent
