"""
Exception taxonomy of the source validation engine.

Only structural failures are raised: they mean the submitted file set
cannot produce a verifiable result at all. Per-source problems are
recorded inside CheckedContract and never raised.
"""

from __future__ import annotations

from typing import Sequence


class SourceValidationError(RuntimeError):
    """Base class for failures that abort a whole validation run."""


class UnreadablePathError(SourceValidationError):
    """Raised when a submitted path cannot be read and no ignore list was given."""

    def __init__(self, path: str, reason: str = "") -> None:
        self.path = path
        message = f"Encountered an unreadable path: {path}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message)


class MetadataNotFoundError(SourceValidationError):
    """Raised when no metadata document was found among the submitted files."""


class MalformedMetadataError(SourceValidationError):
    """Raised when metadata documents carry an unusable compilationTarget."""

    def __init__(self, message: str, paths: Sequence[str]) -> None:
        self.paths = list(paths)
        super().__init__(message)
