"""Site building functionality for Kiln.

This module turns discovered pages and assets into output files. It decides
between a full and an incremental build by comparing a fresh build manifest
with the one saved by the previous build.

Key classes and functions:
- SiteBuilder: Orchestrates discovery, rendering, publishing and cleanup.
- BuildResult: Summary of one build.
- build_site: Load configuration and build in one call.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

from jinja2 import TemplateNotFound, TemplateSyntaxError

from .assets import ContentAssetPublisher
from .config import BuildConfig, load_config
from .content import ContentDiscoveryService, Page, find_page
from .errors import BuildError, KilnError
from .events import BuildEvent, EventRegistry, load_extensions
from .feeds import SitemapGenerator
from .manifest import BuildManifest
from .protocols import MarkupConverter, PageRenderer
from .renderers import MarkupRenderer
from .templates import TemplateEngine
from .utils import ensure_clean_dir

logger = logging.getLogger(__name__)


@dataclass
class BuildResult:
    """Result of a site build operation.

    Attributes:
        pages: Every page of the build, virtual ones included.
        written: Output-relative paths of pages written by this build.
        removed: Output-relative paths of stale outputs that were deleted.
        full_build: Whether every page was re-rendered.
        output_path: Directory where the site was built.
    """

    pages: list[Page]
    written: list[str] = field(default_factory=list)
    removed: list[str] = field(default_factory=list)
    full_build: bool = True
    output_path: Path | None = None


class SiteBuilder:
    """Builds a site from a BuildConfig.

    Collaborators can be swapped for testing; by default markup is rendered
    with mistune and pages are wrapped in Jinja2 templates.
    """

    def __init__(
        self,
        discovery: ContentDiscoveryService | None = None,
        markup_renderer: MarkupConverter | None = None,
        publisher: ContentAssetPublisher | None = None,
    ):
        self.discovery = discovery or ContentDiscoveryService()
        self.markup_renderer = markup_renderer or MarkupRenderer()
        self.publisher = publisher or ContentAssetPublisher()

    def build(
        self,
        config: BuildConfig,
        clean_output: bool = False,
        force_full: bool = False,
    ) -> BuildResult:
        """Build the site.

        Args:
            config: Build configuration.
            clean_output: Wipe the output directory and ignore the previous
                manifest.
            force_full: Ignore the previous manifest.

        Returns:
            BuildResult describing what was written and removed.

        Raises:
            KilnError: On any fatal discovery, render, publish or manifest
                error. The manifest is not saved in that case.
        """
        registry = self._create_registry(config)
        _run_handlers(
            config.extensions_path, "build_started handler failed",
            registry.dispatch, BuildEvent.BUILD_STARTED, config,
        )
        pages = self._discover(config, registry)

        manifest = BuildManifest.from_build(config, pages)
        previous = None
        if not (clean_output or force_full):
            previous = BuildManifest.load(config.manifest_path)

        output_path = config.output_path
        if clean_output:
            ensure_clean_dir(output_path)
        else:
            output_path.mkdir(parents=True, exist_ok=True)

        full_build = manifest.requires_full_build(previous)
        removed = self._remove_orphans(manifest, previous, output_path)

        if full_build:
            logger.info("Performing full rebuild of %d pages", len(pages))
            targets = [page for page in pages if not page.virtual]
            self.publisher.publish(config.content_path, output_path)
            self.publisher.publish_static(config.static_path, output_path)
        else:
            changed = manifest.changed_page_output_paths(previous)
            targets = [
                page
                for page in pages
                if not page.virtual
                and (
                    page.output_relative_path in changed
                    or not (output_path / page.output_relative_path).exists()
                )
            ]
            self.publisher.publish(
                config.content_path,
                output_path,
                only=_stale(
                    manifest.changed_content_asset_output_paths(previous),
                    manifest.content_asset_output_paths(),
                    output_path,
                ),
            )
            self.publisher.publish_static(
                config.static_path,
                output_path,
                only=_stale(
                    manifest.changed_static_asset_output_paths(previous),
                    manifest.static_asset_output_paths(),
                    output_path,
                ),
            )

        engine = self._create_engine(config)
        written: list[str] = []
        for page in targets:
            html = self._render(page, pages, engine, registry)
            self._write(page, html, output_path, registry)
            if page.output_relative_path not in written:
                written.append(page.output_relative_path)

        _run_handlers(
            output_path, "Unable to finish build",
            registry.dispatch, BuildEvent.BUILD_COMPLETED, config, pages,
        )

        manifest.save(config.manifest_path)
        logger.info("Wrote %d pages, removed %d stale files", len(written), len(removed))
        return BuildResult(
            pages=pages,
            written=written,
            removed=removed,
            full_build=full_build,
            output_path=output_path,
        )

    def render_request(self, config: BuildConfig, request_path: str) -> str | None:
        """Render the page served at a URL path without writing anything.

        Args:
            config: Build configuration.
            request_path: URL path such as ``/blog/post/``.

        Returns:
            Rendered HTML, or None when no document backs the path.
        """
        registry = self._create_registry(config)
        pages = self._discover(config, registry)
        page = find_page(pages, request_path)
        if page is None or page.virtual:
            return None
        return self._render(page, pages, self._create_engine(config), registry)

    def _create_registry(self, config: BuildConfig) -> EventRegistry:
        registry = EventRegistry()
        load_extensions(config.extensions_path, registry)
        SitemapGenerator.register(registry, config)
        return registry

    def _create_engine(self, config: BuildConfig) -> PageRenderer:
        return TemplateEngine(
            config.template_path,
            config.site,
            default_template=config.page_template,
            taxonomies=config.taxonomies,
        )

    def _discover(self, config: BuildConfig, registry: EventRegistry) -> list[Page]:
        pages = self.discovery.discover(
            config.content_path,
            taxonomies=config.taxonomies,
            content_types=config.content_types,
        )
        if not config.include_drafts:
            pages = [page for page in pages if not page.draft]
        pages = _run_handlers(
            config.extensions_path, "content_discovered handler failed",
            registry.transform, BuildEvent.CONTENT_DISCOVERED, pages, config,
        )
        return list(pages)

    def _remove_orphans(
        self,
        manifest: BuildManifest,
        previous: BuildManifest | None,
        output_path: Path,
    ) -> list[str]:
        if previous is None:
            return []
        orphans = (
            manifest.orphaned_page_output_paths(previous)
            | manifest.orphaned_content_asset_output_paths(previous)
            | manifest.orphaned_static_asset_output_paths(previous)
        )
        # A path can move between pages and assets; keep whatever is current.
        current = (
            set(manifest.page_output_paths())
            | set(manifest.content_asset_output_paths())
            | set(manifest.static_asset_output_paths())
        )
        return self.publisher.remove_outputs(output_path, orphans - current)

    def _render(
        self,
        page: Page,
        pages: list[Page],
        engine: PageRenderer,
        registry: EventRegistry,
    ) -> str:
        try:
            content = self.markup_renderer.render(page.source)
            html = engine.render_page(page, content, pages)
            return registry.transform(BuildEvent.PAGE_RENDERED, html, page)
        except KilnError:
            raise
        except TemplateSyntaxError as exc:
            raise BuildError(
                page.source_path,
                f"Template syntax error in {exc.name or 'template'} on line {exc.lineno}: {exc.message}",
                exc,
            ) from exc
        except TemplateNotFound as exc:
            raise BuildError(page.source_path, f"Template not found: {exc.message}", exc) from exc
        except Exception as exc:
            raise BuildError(page.source_path, _format_error_message(exc), exc) from exc

    def _write(
        self, page: Page, html: str, output_path: Path, registry: EventRegistry
    ) -> None:
        target = output_path / page.output_relative_path
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(html, encoding="utf-8")
        except OSError as exc:
            raise BuildError(page.source_path, f"Unable to write {target}: {exc}", exc) from exc
        _run_handlers(
            page.source_path, "page_written handler failed",
            registry.dispatch, BuildEvent.PAGE_WRITTEN, page, target,
        )


def _run_handlers(source, failure: str, call, *args):
    """Call an event hook, wrapping handler failures in BuildError."""
    try:
        return call(*args)
    except KilnError:
        raise
    except Exception as exc:
        raise BuildError(source, f"{failure}: {_format_error_message(exc)}", exc) from exc


def _stale(changed: set[str], current: list[str], output_path: Path) -> set[str]:
    missing = {path for path in current if not (output_path / path).exists()}
    return changed | missing


def _format_error_message(exc: Exception) -> str:
    """Format an exception into a user-friendly error message.

    Args:
        exc: The exception to format.

    Returns:
        A human-readable error message.
    """
    error_type = type(exc).__name__
    error_msg = str(exc)

    if error_type == "UndefinedError":
        return f"Undefined variable: {error_msg}"
    if error_type == "TypeError":
        return f"Type error: {error_msg}"
    if error_type == "AttributeError":
        return f"Attribute error: {error_msg}"

    return f"{error_type}: {error_msg}"


def build_site(
    project_root: Path,
    include_drafts: bool = False,
    clean_output: bool = False,
    force_full: bool = False,
) -> BuildResult:
    """Build the site of a project directory.

    Args:
        project_root: Root directory of the project.
        include_drafts: Whether to include draft pages.
        clean_output: Whether to wipe the output directory first.
        force_full: Whether to ignore the previous build manifest.

    Returns:
        BuildResult for the build.
    """
    config = load_config(project_root, include_drafts=include_drafts)
    return SiteBuilder().build(config, clean_output=clean_output, force_full=force_full)
