"""
Image fingerprinting.
"""

from ..common.utils import IMAGE_EXTENSIONS
from .fingerprint import ImageFingerprinter, compute_image_hash

__all__ = [
    'IMAGE_EXTENSIONS',
    'ImageFingerprinter',
    'compute_image_hash',
]
