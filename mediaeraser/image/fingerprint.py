"""
Perceptual fingerprints for still images.
"""

import logging
from pathlib import Path
from typing import Optional

import imagehash
from PIL import Image, UnidentifiedImageError

from ..common import utils
from ..common.errors import FingerprintError
from ..common.fingerprint import PerceptualFingerprint

logger = logging.getLogger(__name__)

HASH_FUNCTIONS = {
    'phash': imagehash.phash,
    'dhash': imagehash.dhash,
    'whash': imagehash.whash,
    'average_hash': imagehash.average_hash,
}

def compute_image_hash(img: Image.Image,
                       hash_algorithm: str = utils.DEFAULT_HASH_ALGORITHM,
                       hash_size: int = utils.HASH_SIZE) -> PerceptualFingerprint:
    """Hash an already opened image into a ``hash_size`` x ``hash_size`` fingerprint."""
    if img.mode != 'RGB':
        img = img.convert('RGB')
    
    hash_function = HASH_FUNCTIONS.get(hash_algorithm, imagehash.dhash)
    return PerceptualFingerprint.from_image_hash(hash_function(img, hash_size=hash_size))

class ImageFingerprinter:
    """Computes perceptual fingerprints of image files."""
    
    def __init__(self, hash_algorithm: str = utils.DEFAULT_HASH_ALGORITHM,
                 hash_size: int = utils.HASH_SIZE):
        self.hash_algorithm = hash_algorithm
        self.hash_size = hash_size
    
    def fingerprint(self, path: Path) -> Optional[PerceptualFingerprint]:
        """Fingerprint an image, or return None if it cannot be decoded.
        
        Raises:
            FingerprintError: the file itself could not be read, or it is
                larger than Pillow's decompression bomb limit.
        """
        try:
            f = open(path, 'rb')
        except OSError as e:
            raise FingerprintError(path, str(e)) from e
        
        with f:
            try:
                with Image.open(f) as img:
                    return compute_image_hash(img, self.hash_algorithm, self.hash_size)
            except Image.DecompressionBombError as e:
                raise FingerprintError(path, str(e)) from e
            except (UnidentifiedImageError, OSError, ValueError, SyntaxError) as e:
                logger.debug(f"Could not decode image {path}: {e}")
                return None
