"""
Perceptual fingerprints for videos.

A video's fingerprint is the perceptual hash of a composite image made by
tiling frames sampled at fixed relative positions, so it has the same
length as an image fingerprint.
"""

import json
import logging
import subprocess
import tempfile
import threading
from pathlib import Path
from typing import List, Optional, Sequence

from PIL import Image, UnidentifiedImageError

from ..common import utils
from ..common.errors import FingerprintError
from ..common.fingerprint import PerceptualFingerprint
from ..image.fingerprint import compute_image_hash
from . import check_ffmpeg

logger = logging.getLogger(__name__)

FRAME_WIDTH = 160
FRAME_HEIGHT = 120
FFMPEG_TIMEOUT = 120

class VideoFingerprinter:
    """Computes perceptual fingerprints of video files with ffmpeg."""
    
    def __init__(self, hash_algorithm: str = utils.DEFAULT_HASH_ALGORITHM,
                 hash_size: int = utils.HASH_SIZE,
                 frame_positions: Sequence[float] = utils.VIDEO_FRAME_POSITIONS):
        self.hash_algorithm = hash_algorithm
        self.hash_size = hash_size
        self.frame_positions = tuple(frame_positions)
        self._warned = False
        self._lock = threading.Lock()
    
    def _warn_missing_ffmpeg(self):
        with self._lock:
            if not self._warned:
                logger.warning("ffmpeg and ffprobe were not found in PATH, "
                               "videos will only be compared byte-for-byte")
                self._warned = True
    
    def probe_duration(self, path: Path) -> Optional[float]:
        """Return the duration of the video stream, or None if there is none."""
        cmd = [
            "ffprobe",
            "-v", "quiet",
            "-print_format", "json",
            "-show_format",
            "-show_streams",
            str(path)
        ]
        try:
            result = subprocess.run(cmd, capture_output=True, text=True, timeout=FFMPEG_TIMEOUT)
        except (OSError, subprocess.SubprocessError) as e:
            raise FingerprintError(path, f"ffprobe failed: {e}") from e
        
        if result.returncode != 0:
            logger.debug(f"Could not probe video file: {path}")
            return None
        
        try:
            probe_data = json.loads(result.stdout)
        except json.JSONDecodeError:
            logger.debug(f"Unreadable ffprobe output for {path}")
            return None
        
        video_stream = next(
            (stream for stream in probe_data.get('streams', [])
             if stream.get('codec_type') == 'video'),
            None
        )
        if not video_stream:
            logger.debug(f"No video stream found in {path}")
            return None
        
        duration = video_stream.get('duration') or probe_data.get('format', {}).get('duration')
        try:
            return float(duration)
        except (TypeError, ValueError):
            return None
    
    def extract_frames(self, path: Path, duration: float) -> List[Image.Image]:
        """Extract one downscaled frame per configured position."""
        frames = []
        with tempfile.TemporaryDirectory() as temp_dir:
            for i, position in enumerate(self.frame_positions):
                frame_file = Path(temp_dir) / f"frame_{i}.jpg"
                cmd = [
                    "ffmpeg",
                    "-v", "error",
                    "-ss", f"{position * duration:.3f}",
                    "-i", str(path),
                    "-frames:v", "1",
                    "-vf", f"scale={FRAME_WIDTH}:{FRAME_HEIGHT}",
                    "-y",
                    str(frame_file)
                ]
                try:
                    subprocess.run(cmd, check=True, capture_output=True, timeout=FFMPEG_TIMEOUT)
                    with Image.open(frame_file) as img:
                        frames.append(img.convert('RGB'))
                except (OSError, subprocess.SubprocessError, UnidentifiedImageError) as e:
                    raise FingerprintError(path, f"could not extract frame at {position:.0%}: {e}") from e
        return frames
    
    def fingerprint(self, path: Path) -> Optional[PerceptualFingerprint]:
        """Fingerprint a video, or return None if it has no decodable video stream.
        
        Raises:
            FingerprintError: ffmpeg failed on a file it could probe.
        """
        if not check_ffmpeg():
            self._warn_missing_ffmpeg()
            return None
        
        duration = self.probe_duration(path)
        if not duration or duration <= 0:
            return None
        
        frames = self.extract_frames(path, duration)
        composite = Image.new('RGB', (FRAME_WIDTH * len(frames), FRAME_HEIGHT))
        for i, frame in enumerate(frames):
            composite.paste(frame.resize((FRAME_WIDTH, FRAME_HEIGHT)), (i * FRAME_WIDTH, 0))
        
        logger.debug(f"Fingerprinted {len(frames)} frames of {path}")
        return compute_image_hash(composite, self.hash_algorithm, self.hash_size)
