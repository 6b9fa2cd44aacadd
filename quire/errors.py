"""Exceptions raised while building a Quire site."""

from __future__ import annotations

from pathlib import Path


class BuildError(Exception):
    """Error during site build with file context.

    Attributes:
        source_path: Path to the source file that caused the error.
        message: Human-readable error message.
        original_error: The original exception that was caught.
    """

    def __init__(
        self,
        source_path: Path,
        message: str,
        original_error: Exception | None = None,
    ):
        self.source_path = source_path
        self.message = message
        self.original_error = original_error
        super().__init__(f"{source_path}: {message}")


class FrontMatterError(BuildError):
    """A document's front matter block could not be parsed or validated."""


class DuplicateDocumentError(BuildError):
    """Two documents resolve to the same output URL."""


class ConfigError(BuildError):
    """The site configuration file is malformed."""
