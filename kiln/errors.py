"""Exception types raised by Kiln.

Every fatal error derives from KilnError so the CLI can report it with a
single handler. Messages always name the offending path or value.
"""

from __future__ import annotations

from pathlib import Path


class KilnError(Exception):
    """Base class for all fatal Kiln errors."""


class ConfigError(KilnError):
    """Invalid or unreadable project configuration."""


class FrontMatterError(KilnError):
    """Malformed front matter block."""


class ContentError(KilnError):
    """Error raised while discovering a content document.

    Attributes:
        source_path: Path to the document that failed.
    """

    def __init__(self, source_path: Path | str, message: str):
        self.source_path = Path(source_path)
        self.message = message
        super().__init__(f"{source_path}: {message}")


class ContentReadError(ContentError):
    """A content document could not be read."""


class ContentParseError(ContentError):
    """A content document has malformed front matter."""


class UnknownContentTypeError(ContentError):
    """A document names a content type that is not configured."""


class ManifestWriteError(KilnError):
    """The build manifest could not be persisted."""


class ExtensionError(KilnError):
    """A project extension could not be loaded."""


class BuildError(KilnError):
    """Error during site build with file context.

    Attributes:
        source_path: Path to the source file that caused the error.
        message: Human-readable error message.
        original_error: The original exception that was caught.
    """

    def __init__(
        self,
        source_path: Path | str,
        message: str,
        original_error: Exception | None = None,
    ):
        self.source_path = Path(source_path)
        self.message = message
        self.original_error = original_error
        super().__init__(f"{source_path}: {message}")
