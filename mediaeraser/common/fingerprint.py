"""
Content digests and perceptual fingerprints.

Two kinds of fingerprint are used for duplicate detection:
- **Exact digest (SHA-256)**: streamed over the whole file, equal digests
  mean byte-identical files.
- **Perceptual fingerprint**: a fixed-length bit vector that summarizes what
  an image or video looks like. Fingerprints are compared by Hamming distance.
"""

import hashlib
import logging
from pathlib import Path
from typing import Optional

import numpy as np

from . import utils

logger = logging.getLogger(__name__)

class PerceptualFingerprint:
    """A fixed-length bit vector compared by Hamming distance."""
    
    def __init__(self, bits):
        self.bits = np.asarray(bits, dtype=bool).flatten()
    
    @classmethod
    def from_image_hash(cls, image_hash) -> 'PerceptualFingerprint':
        """Wrap an ``imagehash.ImageHash``."""
        return cls(image_hash.hash)
    
    @classmethod
    def from_hex(cls, value: str, bit_length: Optional[int] = None) -> 'PerceptualFingerprint':
        bits = np.unpackbits(np.frombuffer(bytes.fromhex(value), dtype=np.uint8))
        if bit_length is not None:
            bits = bits[:bit_length]
        return cls(bits)
    
    def hex(self) -> str:
        return np.packbits(self.bits).tobytes().hex()
    
    def distance(self, other: 'PerceptualFingerprint') -> int:
        """Hamming distance to another fingerprint of the same length."""
        if len(self) != len(other):
            raise ValueError(
                f"Cannot compare fingerprints of {len(self)} and {len(other)} bits")
        return int(np.count_nonzero(self.bits != other.bits))
    
    def __sub__(self, other: 'PerceptualFingerprint') -> int:
        return self.distance(other)
    
    def __len__(self) -> int:
        return int(self.bits.size)
    
    def __eq__(self, other) -> bool:
        if not isinstance(other, PerceptualFingerprint):
            return NotImplemented
        return len(self) == len(other) and bool(np.array_equal(self.bits, other.bits))
    
    def __hash__(self):
        return hash((len(self), self.hex()))
    
    def __repr__(self) -> str:
        return f"PerceptualFingerprint({self.hex()!r}, bits={len(self)})"

def sha256_file(path: Path, chunk_size: int = utils.CHUNK_SIZE) -> str:
    """Calculate the SHA-256 hex digest of a file's content.
    
    Raises:
        OSError: the file could not be read.
    """
    sha256 = hashlib.sha256()
    with open(path, 'rb') as f:
        while True:
            chunk = f.read(chunk_size)
            if not chunk:
                break
            sha256.update(chunk)
    return sha256.hexdigest()

class FingerprintProvider:
    """Source of digests and fingerprints for the detection engine.

    ``perceptual_fingerprint`` returns None for files that are not a
    recognized media type and raises ``FingerprintError`` for real failures.
    """
    
    def __init__(self, threshold: int = utils.SIMILARITY_THRESHOLD):
        self.threshold = threshold
    
    def exact_digest(self, path: Path) -> str:
        return sha256_file(path)
    
    def perceptual_fingerprint(self, path: Path) -> Optional[PerceptualFingerprint]:
        raise NotImplementedError("Subclasses must implement perceptual_fingerprint")
    
    def similarity(self, fp1: PerceptualFingerprint, fp2: PerceptualFingerprint) -> int:
        """Hamming distance between two fingerprints, lower is more similar."""
        return fp1.distance(fp2)
    
    def are_similar(self, fp1: PerceptualFingerprint, fp2: PerceptualFingerprint) -> bool:
        if len(fp1) != len(fp2):
            return False
        return self.similarity(fp1, fp2) <= self.threshold

class MediaFingerprintProvider(FingerprintProvider):
    """Fingerprints images with Pillow and videos with ffmpeg."""
    
    def __init__(self,
                 threshold: int = utils.SIMILARITY_THRESHOLD,
                 hash_algorithm: str = utils.DEFAULT_HASH_ALGORITHM,
                 hash_size: int = utils.HASH_SIZE,
                 media: utils.MediaFilter = utils.MediaFilter.ALL):
        super().__init__(threshold)
        # Import here to avoid circular imports
        from ..image.fingerprint import ImageFingerprinter
        from ..video.fingerprint import VideoFingerprinter
        
        self.media = media
        self.image_fingerprinter = ImageFingerprinter(hash_algorithm, hash_size)
        self.video_fingerprinter = VideoFingerprinter(hash_algorithm, hash_size)
    
    @classmethod
    def from_options(cls, options) -> 'MediaFingerprintProvider':
        return cls(threshold=options.threshold,
                   hash_algorithm=options.hash_algorithm,
                   hash_size=options.hash_size,
                   media=options.media)
    
    def perceptual_fingerprint(self, path: Path) -> Optional[PerceptualFingerprint]:
        path = Path(path)
        if not self.media.allows(path):
            logger.debug(f"Skipping non-media file: {path}")
            return None
        
        suffix = path.suffix.lower()
        if suffix in utils.IMAGE_EXTENSIONS:
            return self.image_fingerprinter.fingerprint(path)
        if suffix in utils.VIDEO_EXTENSIONS:
            return self.video_fingerprinter.fingerprint(path)
        return None
