"""Command-line interface for Kiln.

This module defines the CLI commands using the Click framework.

Commands:
- build: Build the site into the output directory.
- clear-cache: Delete the saved build manifest.
"""

from __future__ import annotations

import logging
from pathlib import Path

import click

from . import __version__
from .config import load_config
from .errors import KilnError


def _relative(path: Path, project_root: Path) -> Path:
    try:
        return path.resolve().relative_to(project_root.resolve())
    except ValueError:
        return path


@click.group()
@click.version_option(version=__version__, prog_name="kiln")
@click.option(
    "--root",
    "project_root",
    type=click.Path(file_okay=False, path_type=Path),
    default=".",
    help="Project root directory",
)
@click.option("-v", "--verbose", is_flag=True, help="Log build decisions")
@click.pass_context
def cli(ctx: click.Context, project_root: Path, verbose: bool):
    """Kiln static site generator."""
    logging.basicConfig(
        level=logging.INFO if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    ctx.obj = project_root


@cli.command()
@click.option("--drafts", is_flag=True, help="Include draft content")
@click.option("--clean", is_flag=True, help="Wipe the output directory first")
@click.option("--full", is_flag=True, help="Ignore the build cache and render every page")
@click.pass_obj
def build(project_root: Path, drafts: bool, clean: bool, full: bool):
    """Build the site into the output directory."""
    from .build import SiteBuilder

    try:
        config = load_config(project_root, include_drafts=drafts)
        result = SiteBuilder().build(config, clean_output=clean, force_full=full)
    except KilnError as exc:
        click.echo(click.style("Build failed:", fg="red", bold=True), err=True)
        source_path = getattr(exc, "source_path", None)
        if source_path is not None:
            click.echo(
                click.style(f"  File: {_relative(source_path, project_root)}", fg="yellow"),
                err=True,
            )
        click.echo(
            click.style(f"  Error: {getattr(exc, 'message', exc)}", fg="white"), err=True
        )
        raise SystemExit(1) from None

    mode = "full" if result.full_build else "incremental"
    click.echo(
        f"Built {len(result.written)} of {len(result.pages)} pages ({mode}) "
        f"into {result.output_path}"
    )
    if result.removed:
        click.echo(f"Removed {len(result.removed)} stale files")


@cli.command("clear-cache")
@click.pass_obj
def clear_cache(project_root: Path):
    """Delete the build manifest so the next build is a full one."""
    try:
        config = load_config(project_root)
    except KilnError as exc:
        raise click.ClickException(str(exc)) from None

    manifest_path = config.manifest_path
    if not manifest_path.exists():
        click.echo("Build cache is already empty")
        return
    try:
        manifest_path.unlink()
    except OSError as exc:
        raise click.ClickException(f"Unable to delete {manifest_path}: {exc}") from None
    click.echo(f"Removed {_relative(manifest_path, project_root)}")


def main():
    """Entry point for the CLI application."""
    cli()
