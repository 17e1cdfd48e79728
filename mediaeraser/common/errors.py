"""
Exception types for media duplicate detection and erasure.
"""

from pathlib import Path
from typing import List, Optional

class MediaEraserError(Exception):
    """Base class for all errors raised by mediaeraser."""

class PathNotFoundError(MediaEraserError):
    """The specified path does not exist."""

    def __init__(self, path: Path):
        self.path = Path(path)
        super().__init__(f"Path not found: {self.path}")

class TraversalError(MediaEraserError):
    """A directory could not be walked."""

    def __init__(self, path: Path, reason: str):
        self.path = Path(path)
        self.reason = reason
        super().__init__(f"Directory traversal error: {self.path} - {reason}")

class FingerprintError(MediaEraserError):
    """A fingerprint provider failed on a file it should understand."""

    def __init__(self, path: Path, reason: str):
        self.path = Path(path)
        self.reason = reason
        super().__init__(f"Could not fingerprint {self.path}: {reason}")

class ManifestError(MediaEraserError):
    """The duplicates manifest is absent, unreadable or malformed."""

    def __init__(self, path: Path, reason: str):
        self.path = Path(path)
        self.reason = reason
        super().__init__(f"Invalid duplicates manifest {self.path}: {reason}")

class TransactionError(MediaEraserError):
    """Staging or commit failed and the erase was rolled back.

    ``unrestored`` lists original paths that could not be moved back; when
    it is empty the filesystem is unchanged.
    """

    def __init__(self, message: str,
                 cause: Optional[BaseException] = None,
                 restored: Optional[List[Path]] = None,
                 unrestored: Optional[List[Path]] = None):
        self.cause = cause
        self.restored = list(restored or [])
        self.unrestored = list(unrestored or [])
        if cause is not None:
            message = f"{message}: {cause}"
        super().__init__(message)

    @property
    def filesystem_unchanged(self) -> bool:
        return not self.unrestored

class ScanCancelled(MediaEraserError):
    """A scan was cancelled between files."""
