"""Kiln static site generator.

Kiln turns a directory of markup documents into a static website using
mistune and Jinja2 templates. Builds are incremental: a build manifest
records what each output depends on, so unchanged pages are not rendered
again and outputs whose source disappeared are removed.

The main entry point is the CLI module; ``kiln.build.build_site`` builds a
project programmatically.
"""

__all__ = ["__version__"]
__version__ = "0.1.0"
