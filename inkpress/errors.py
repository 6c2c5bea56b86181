"""Base exception for Inkpress.

Most modules define the errors they raise next to the code that raises
them. BuildError lives here because both content discovery and the build
pass raise it. All errors derive from InkpressError so the CLI can report
any of them with a single handler.
"""

from __future__ import annotations

from pathlib import Path


class InkpressError(Exception):
    """Base class for errors reported to the user as a short message."""


class BuildError(InkpressError):
    """Error during site build with file context.

    Attributes:
        source_path: Path to the file that caused the error.
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
