import pytest
import numpy as np
from pathlib import Path
from PIL import Image

from mediaeraser.common.fingerprint import FingerprintProvider, PerceptualFingerprint

BITS = 256

def fingerprint_with(flipped_bits=(), length=BITS):
    """A fingerprint of ``length`` zero bits with the given bits set."""
    bits = np.zeros(length, dtype=bool)
    for index in flipped_bits:
        bits[index] = True
    return PerceptualFingerprint(bits)

class FakeProvider(FingerprintProvider):
    """Hands out preset fingerprints keyed by file name."""

    def __init__(self, fingerprints=None, failing=(), threshold=10):
        super().__init__(threshold)
        self.fingerprints = dict(fingerprints or {})
        self.failing = set(failing)
        self.requested = []

    def perceptual_fingerprint(self, path):
        from mediaeraser.common.errors import FingerprintError
        path = Path(path)
        self.requested.append(path.name)
        if path.name in self.failing:
            raise FingerprintError(path, "decoder crashed")
        return self.fingerprints.get(path.name)

@pytest.fixture
def make_file(tmp_path):
    """Returns a helper writing bytes to a file under tmp_path."""
    def _make(name, data=b"", root=None):
        p = (root or tmp_path) / name
        p.parent.mkdir(parents=True, exist_ok=True)
        p.write_bytes(data if isinstance(data, bytes) else data.encode())
        return p
    return _make

def gradient_image(size=256, increasing=True):
    """A horizontal grayscale gradient; its gradient hash is all zeros or all ones."""
    row = np.linspace(0, 255, size) if increasing else np.linspace(255, 0, size)
    pixels = np.tile(row, (size, 1)).astype(np.uint8)
    return Image.fromarray(pixels).convert('RGB')

@pytest.fixture
def make_image(tmp_path):
    """Returns a helper saving a gradient image under tmp_path."""
    def _make(name, size=256, increasing=True):
        p = tmp_path / name
        p.parent.mkdir(parents=True, exist_ok=True)
        gradient_image(size, increasing).save(p)
        return p
    return _make
