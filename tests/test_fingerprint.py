import hashlib

import pytest
from PIL import Image

from mediaeraser.common.analysis import find_duplicates
from mediaeraser.common.errors import FingerprintError
from mediaeraser.common.fingerprint import MediaFingerprintProvider, PerceptualFingerprint, sha256_file
from mediaeraser.common.utils import MediaFilter
from mediaeraser.image.fingerprint import ImageFingerprinter
from mediaeraser.video.fingerprint import VideoFingerprinter

from conftest import fingerprint_with

def test_sha256_matches_hashlib(make_file):
    data = b"hello world" * 10000
    p = make_file("sample.bin", data)

    assert sha256_file(p, chunk_size=1024) == hashlib.sha256(data).hexdigest()

def test_sha256_missing_file_raises(tmp_path):
    with pytest.raises(OSError):
        sha256_file(tmp_path / "missing.bin")

def test_hamming_distance():
    a = fingerprint_with()
    b = fingerprint_with([0, 5, 255])

    assert a.distance(b) == 3
    assert b - a == 3
    assert a - a == 0

def test_fingerprints_of_different_lengths_are_not_comparable():
    with pytest.raises(ValueError):
        fingerprint_with(length=64).distance(fingerprint_with(length=256))

def test_hex_encoding():
    fp = fingerprint_with([0, 9], length=16)

    assert fp.hex() == "8040"
    assert PerceptualFingerprint.from_hex("8040") == fp
    assert len(PerceptualFingerprint.from_hex("8040", bit_length=12)) == 12

def test_provider_similarity_uses_threshold():
    provider = MediaFingerprintProvider(threshold=2)

    assert provider.are_similar(fingerprint_with(), fingerprint_with([1, 2]))
    assert not provider.are_similar(fingerprint_with(), fingerprint_with([1, 2, 3]))
    assert not provider.are_similar(fingerprint_with(length=64), fingerprint_with())
    assert provider.similarity(fingerprint_with(), fingerprint_with([4])) == 1

def test_image_fingerprint_is_256_bits(make_image):
    p = make_image("gradient.png")

    fp = ImageFingerprinter().fingerprint(p)

    assert fp is not None
    assert len(fp) == 256

def test_resized_image_is_similar_and_reversed_is_not(make_image):
    fingerprinter = ImageFingerprinter()
    big = fingerprinter.fingerprint(make_image("big.png", size=256))
    small = fingerprinter.fingerprint(make_image("small.png", size=128))
    reversed_ = fingerprinter.fingerprint(make_image("reversed.png", increasing=False))

    assert big.distance(small) <= 10
    assert big.distance(reversed_) > 10

@pytest.mark.parametrize("algorithm", ["phash", "dhash", "whash", "average_hash"])
def test_every_algorithm_produces_fixed_length(make_image, algorithm):
    fp = ImageFingerprinter(hash_algorithm=algorithm).fingerprint(make_image("img.png"))

    assert len(fp) == 256

def test_undecodable_image_has_no_fingerprint(make_file):
    p = make_file("broken.jpg", b"definitely not a jpeg")

    assert ImageFingerprinter().fingerprint(p) is None

def test_unreadable_image_is_an_error(tmp_path):
    with pytest.raises(FingerprintError):
        ImageFingerprinter().fingerprint(tmp_path / "missing.png")

def test_oversized_image_is_an_error(make_image, monkeypatch):
    p = make_image("huge.png", size=100)
    monkeypatch.setattr(Image, "MAX_IMAGE_PIXELS", 1000)

    with pytest.raises(FingerprintError):
        ImageFingerprinter().fingerprint(p)

def test_oversized_image_is_counted_not_fatal(make_image, monkeypatch):
    make_image("huge.png", size=100)
    small = make_image("small.png", size=16)
    monkeypatch.setattr(Image, "MAX_IMAGE_PIXELS", 1000)

    report = find_duplicates([small.parent / "huge.png", small])

    assert report.errors == 1
    assert report.groups == []

def test_provider_skips_non_media_and_filtered_types(make_file, make_image):
    text = make_file("notes.txt", b"hello")
    image = make_image("photo.png")

    assert MediaFingerprintProvider().perceptual_fingerprint(text) is None
    assert MediaFingerprintProvider().perceptual_fingerprint(image) is not None
    assert MediaFingerprintProvider(media=MediaFilter.VIDEOS).perceptual_fingerprint(image) is None

def test_video_without_ffmpeg_has_no_fingerprint(make_file, monkeypatch):
    from mediaeraser.video import fingerprint as video_fingerprint
    monkeypatch.setattr(video_fingerprint, "check_ffmpeg", lambda: False)
    p = make_file("clip.mp4", b"\x00" * 64)

    assert VideoFingerprinter().fingerprint(p) is None

def test_video_that_cannot_be_probed_has_no_fingerprint(make_file, monkeypatch):
    from mediaeraser.video import fingerprint as video_fingerprint
    monkeypatch.setattr(video_fingerprint, "check_ffmpeg", lambda: True)
    monkeypatch.setattr(VideoFingerprinter, "probe_duration", lambda self, path: None)
    p = make_file("clip.mp4", b"\x00" * 64)

    assert VideoFingerprinter().fingerprint(p) is None

def test_video_fingerprint_from_composite(make_file, monkeypatch):
    from conftest import gradient_image
    from mediaeraser.video import fingerprint as video_fingerprint
    monkeypatch.setattr(video_fingerprint, "check_ffmpeg", lambda: True)
    monkeypatch.setattr(VideoFingerprinter, "probe_duration", lambda self, path: 30.0)
    monkeypatch.setattr(VideoFingerprinter, "extract_frames",
                        lambda self, path, duration: [gradient_image(64)] * 3)
    p = make_file("clip.mp4", b"\x00" * 64)

    fp = VideoFingerprinter().fingerprint(p)

    assert len(fp) == 256
