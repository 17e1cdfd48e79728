"""
Common utilities and shared functionality for media duplicate detection.
"""

from .errors import (MediaEraserError, PathNotFoundError, TraversalError, FingerprintError,
                     ManifestError, TransactionError, ScanCancelled)
from .models import FileRecord, DuplicateType, DuplicateGroup, DuplicateReport, ScanOptions
from .utils import setup_logging, format_size, find_files, MediaFilter, VERSION

__all__ = [
    'MediaEraserError',
    'PathNotFoundError',
    'TraversalError',
    'FingerprintError',
    'ManifestError',
    'TransactionError',
    'ScanCancelled',
    'FileRecord',
    'DuplicateType',
    'DuplicateGroup',
    'DuplicateReport',
    'ScanOptions',
    'setup_logging',
    'format_size',
    'find_files',
    'MediaFilter',
    'VERSION',
]
