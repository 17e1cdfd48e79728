"""
Common data models for media duplicate detection.
"""

from pathlib import Path
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional
import os
import logging

from . import utils

logger = logging.getLogger(__name__)

@dataclass
class FileRecord:
    """A scanned file with its cached byte length."""
    path: Path
    size: int = 0

    @classmethod
    def from_path(cls, path: Path) -> 'FileRecord':
        """Stat a path. Raises OSError if the file cannot be read."""
        return cls(Path(path), os.stat(path).st_size)

class DuplicateType(Enum):
    """How the members of a duplicate group were matched."""
    EXACT = 'exact'
    PERCEPTUAL = 'perceptual'

@dataclass
class DuplicateGroup:
    """Represents a group of duplicate files.

    The first file is the one kept when the group is erased.
    """
    files: List[Path] = field(default_factory=list)
    duplicate_type: DuplicateType = DuplicateType.EXACT
    sizes: dict = field(default_factory=dict, repr=False)
    
    @property
    def original(self) -> Optional[Path]:
        return self.files[0] if self.files else None
    
    @property
    def duplicates(self) -> List[Path]:
        return self.files[1:]
    
    @property
    def wasted_space(self) -> int:
        """Bytes occupied by every file but the original."""
        return sum(self.sizes.get(path, 0) for path in self.duplicates)

@dataclass
class DuplicateReport:
    """Result of duplicate detection over a list of files."""
    groups: List[DuplicateGroup] = field(default_factory=list)
    total_files: int = 0
    errors: int = 0
    
    def duplicate_count(self) -> int:
        """Total number of duplicate files, excluding one original per group."""
        return sum(max(len(g.files) - 1, 0) for g in self.groups)
    
    def exact_duplicate_count(self) -> int:
        return sum(max(len(g.files) - 1, 0) for g in self.groups
                   if g.duplicate_type is DuplicateType.EXACT)
    
    def perceptual_duplicate_count(self) -> int:
        return sum(max(len(g.files) - 1, 0) for g in self.groups
                   if g.duplicate_type is DuplicateType.PERCEPTUAL)
    
    def wasted_space(self) -> int:
        return sum(g.wasted_space for g in self.groups)

@dataclass
class ScanOptions:
    """Tunables for a duplicate scan."""
    threshold: int = utils.SIMILARITY_THRESHOLD
    hash_algorithm: str = utils.DEFAULT_HASH_ALGORITHM
    hash_size: int = utils.HASH_SIZE
    media: utils.MediaFilter = utils.MediaFilter.ALL
    workers: int = 1
    
    def __post_init__(self):
        if self.threshold < 0:
            raise ValueError("Similarity threshold cannot be negative")
        if self.hash_algorithm not in utils.HASH_ALGORITHMS:
            raise ValueError(f"Unknown hash algorithm: {self.hash_algorithm}")
        if self.workers < 1:
            raise ValueError("At least one worker is required")
