"""Domain exceptions for snapshot persistence."""

from __future__ import annotations


class SnapshotError(RuntimeError):
    """Base error for snapshot store operations."""


class SnapshotIOError(SnapshotError):
    """Raised when a snapshot cannot be read from or written to its medium."""


class SnapshotValidationError(SnapshotError):
    """Raised when stored snapshot content is malformed."""
