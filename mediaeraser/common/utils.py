"""
Common utilities for media duplicate detection.
"""

import logging
from enum import Enum
from pathlib import Path
from typing import Iterable, List, Optional, Set

from .errors import PathNotFoundError, TraversalError

# Add custom VERBOSE level between INFO and DEBUG
VERBOSE = 15  # Between INFO (20) and DEBUG (10)
logging.addLevelName(VERBOSE, "VERBOSE")

def setup_logging(verbose_level: int = 0, quiet: bool = False) -> logging.Logger:
    """Set up logging with configurable verbosity."""
    logging.basicConfig(
        format='%(asctime)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )
    
    logger = logging.getLogger('mediaeraser')
    
    if quiet:
        log_level = logging.ERROR
    elif verbose_level == 0:
        log_level = logging.WARNING
    elif verbose_level == 1:
        log_level = logging.INFO
    elif verbose_level == 2:
        log_level = VERBOSE
    else:
        log_level = logging.DEBUG
    
    logger.setLevel(log_level)
    
    if verbose_level >= 2 and not quiet:
        logger.log(VERBOSE, "Verbose logging enabled")
        if verbose_level >= 3:
            logger.debug("Debug logging enabled")
    
    return logger

def format_size(size_bytes: int) -> str:
    """Format file size in human-readable format."""
    for unit in ['B', 'KB', 'MB', 'GB', 'TB']:
        if size_bytes < 1024:
            return f"{size_bytes:.2f} {unit}"
        size_bytes /= 1024
    return f"{size_bytes:.2f} PB"

class MediaFilter(Enum):
    """Which media types a scan considers."""
    ALL = 'all'
    IMAGES = 'images'
    VIDEOS = 'videos'

    @property
    def extensions(self) -> Optional[Set[str]]:
        """Extensions the traversal keeps; None keeps every file."""
        if self is MediaFilter.IMAGES:
            return set(IMAGE_EXTENSIONS)
        if self is MediaFilter.VIDEOS:
            return set(VIDEO_EXTENSIONS)
        return None

    def allows(self, path: Path) -> bool:
        """Whether files like ``path`` may receive a perceptual fingerprint."""
        suffix = path.suffix.lower()
        if self is MediaFilter.IMAGES:
            return suffix in IMAGE_EXTENSIONS
        if self is MediaFilter.VIDEOS:
            return suffix in VIDEO_EXTENSIONS
        return suffix in IMAGE_EXTENSIONS or suffix in VIDEO_EXTENSIONS

def is_hidden(path: Path) -> bool:
    return path.name.startswith('.')

def find_files(directories: Iterable[Path],
               extensions: Optional[Set[str]] = None,
               recursive: bool = True,
               include_hidden: bool = False,
               logger: logging.Logger = None) -> List[Path]:
    """Find regular files under the given directories.

    Returns absolute paths, sorted and free of repeats. When ``extensions``
    is None every file is returned. Hidden entries below a root are skipped
    unless ``include_hidden`` is set; the roots themselves are never filtered.
    Symlinks below a root are neither followed nor returned. The erase staging
    directory and the duplicates manifest are never returned.

    Raises:
        PathNotFoundError: a root does not exist.
        TraversalError: a directory could not be listed.
    """
    if logger is None:
        logger = logging.getLogger(__name__)
    
    found_files = set()
    
    for directory in directories:
        directory = Path(directory).absolute()
        if not directory.exists():
            raise PathNotFoundError(directory)
        
        if directory.is_file():
            found_files.add(directory)
            continue
            
        logger.info(f"Scanning directory: {directory}")
        
        pending = [directory]
        while pending:
            current = pending.pop()
            try:
                entries = sorted(current.iterdir())
            except OSError as e:
                raise TraversalError(current, str(e)) from e
            
            for entry in entries:
                if not include_hidden and is_hidden(entry):
                    continue
                if entry.name in (STAGING_DIR_NAME, DUPLICATES_FILENAME):
                    continue
                # A link would hash like its target and could be kept in its place
                if entry.is_symlink():
                    logger.debug(f"Skipping symlink: {entry}")
                    continue
                if entry.is_dir():
                    if recursive:
                        pending.append(entry)
                elif entry.is_file():
                    if extensions is None or entry.suffix.lower() in extensions:
                        found_files.add(entry)
    
    logger.info(f"Found {len(found_files)} files")
    return sorted(found_files)

# Constants
VERSION = "1.0.0"

DUPLICATES_FILENAME = "duplicates.json"
STAGING_DIR_NAME = ".mde_erase_staging"
MANIFEST_VERSION = "1.0"

# Maximum Hamming distance for two fingerprints to count as duplicates
SIMILARITY_THRESHOLD = 10
# Fingerprints are HASH_SIZE x HASH_SIZE bits
HASH_SIZE = 16
CHUNK_SIZE = 65536

HASH_ALGORITHMS = ('phash', 'dhash', 'whash', 'average_hash')
DEFAULT_HASH_ALGORITHM = 'dhash'

# Relative positions of the frames sampled from a video
VIDEO_FRAME_POSITIONS = (0.1, 0.5, 0.9)

# Common file extensions
IMAGE_EXTENSIONS = {
    '.jpg', '.jpeg', '.png', '.gif', '.webp', '.tiff', '.tif', '.bmp',
    '.heic', '.heif', '.jfif', '.jp2', '.j2k'
}

VIDEO_EXTENSIONS = {
    '.mp4', '.mkv', '.avi', '.mov', '.wmv', '.flv', '.webm', 
    '.m4v', '.mpg', '.mpeg', '.3gp', '.3g2', '.mxf', '.ts', 
    '.m2ts', '.vob', '.ogv', '.mts', '.m2v', '.divx', '.rmvb', '.rm'
}
