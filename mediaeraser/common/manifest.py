"""
The duplicates manifest written by a scan and consumed by an erase.
"""

import json
import logging
import os
import tempfile
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

from . import utils
from .errors import ManifestError
from .models import DuplicateReport, DuplicateType

logger = logging.getLogger(__name__)

def format_timestamp(value: datetime) -> str:
    """ISO-8601 in UTC with a trailing Z."""
    return value.astimezone(timezone.utc).strftime('%Y-%m-%dT%H:%M:%SZ')

def parse_timestamp(value: str) -> datetime:
    if value.endswith('Z'):
        value = value[:-1] + '+00:00'
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed

@dataclass
class ManifestEntry:
    """One duplicate group: the file kept and the files to remove."""
    original: Path
    duplicates: List[Path] = field(default_factory=list)
    duplicate_type: DuplicateType = DuplicateType.EXACT

    def to_dict(self) -> Dict:
        return {
            'original': str(self.original),
            'duplicates': [str(p) for p in self.duplicates],
            'duplicate_type': self.duplicate_type.value,
        }

    @classmethod
    def from_dict(cls, data: Any) -> 'ManifestEntry':
        """Raises ValueError if ``data`` is not a valid entry."""
        if not isinstance(data, dict):
            raise ValueError("entry is not an object")

        original = data.get('original')
        if not isinstance(original, str) or not original:
            raise ValueError("entry 'original' must be a non-empty string")

        duplicates = data.get('duplicates')
        if not isinstance(duplicates, list) or not all(isinstance(p, str) for p in duplicates):
            raise ValueError("entry 'duplicates' must be a list of strings")

        try:
            duplicate_type = DuplicateType(data.get('duplicate_type'))
        except ValueError:
            raise ValueError(f"unknown duplicate_type: {data.get('duplicate_type')!r}")

        return cls(Path(original), [Path(p) for p in duplicates], duplicate_type)

@dataclass
class DuplicatesManifest:
    """Versioned record of a scan's duplicate groups."""
    entries: List[ManifestEntry] = field(default_factory=list)
    total_files_scanned: int = 0
    scanned_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    version: str = utils.MANIFEST_VERSION

    @classmethod
    def from_report(cls, report: DuplicateReport,
                    scanned_at: Optional[datetime] = None) -> 'DuplicatesManifest':
        """Keep the first file of every group and mark the rest as duplicates."""
        entries = [
            ManifestEntry(
                original=group.files[0],
                duplicates=list(group.files[1:]),
                duplicate_type=group.duplicate_type,
            )
            for group in report.groups if group.files
        ]
        return cls(
            entries=entries,
            total_files_scanned=report.total_files,
            scanned_at=scanned_at or datetime.now(timezone.utc),
        )

    @property
    def duplicate_groups(self) -> int:
        return len(self.entries)

    @property
    def total_duplicates(self) -> int:
        return sum(len(entry.duplicates) for entry in self.entries)

    def is_empty(self) -> bool:
        return self.total_duplicates == 0

    def all_duplicates(self) -> List[Path]:
        """Every file marked for removal, in entry order, without repeats."""
        seen = set()
        targets = []
        for entry in self.entries:
            for path in entry.duplicates:
                if path not in seen:
                    seen.add(path)
                    targets.append(path)
        return targets

    def to_dict(self) -> Dict:
        return {
            'version': self.version,
            'scanned_at': format_timestamp(self.scanned_at),
            'total_files_scanned': self.total_files_scanned,
            'duplicate_groups': self.duplicate_groups,
            'total_duplicates': self.total_duplicates,
            'entries': [entry.to_dict() for entry in self.entries],
        }

    @classmethod
    def from_dict(cls, data: Any) -> 'DuplicatesManifest':
        """Build a manifest from parsed JSON. Raises ValueError on schema violations."""
        if not isinstance(data, dict):
            raise ValueError("document is not an object")

        version = data.get('version')
        if not isinstance(version, str):
            raise ValueError("'version' must be a string")
        if version != utils.MANIFEST_VERSION:
            logger.warning(f"Unknown manifest version {version}, reading it anyway")

        scanned_at = data.get('scanned_at')
        if not isinstance(scanned_at, str):
            raise ValueError("'scanned_at' must be a timestamp string")
        scanned_at = parse_timestamp(scanned_at)

        total_files = data.get('total_files_scanned')
        if not isinstance(total_files, int) or isinstance(total_files, bool) or total_files < 0:
            raise ValueError("'total_files_scanned' must be a non-negative integer")

        entries = data.get('entries')
        if not isinstance(entries, list):
            raise ValueError("'entries' must be a list")

        manifest = cls(
            entries=[ManifestEntry.from_dict(entry) for entry in entries],
            total_files_scanned=total_files,
            scanned_at=scanned_at,
            version=version,
        )

        # Stored totals are informational, the entries are authoritative
        for key in ('duplicate_groups', 'total_duplicates'):
            if key in data and data[key] != getattr(manifest, key):
                logger.warning(f"Manifest {key}={data[key]} does not match its entries "
                               f"({getattr(manifest, key)})")

        return manifest

    def save(self, path: Path) -> Path:
        """Write the manifest as JSON, replacing any existing file."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)

        fd, temp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix='.tmp', dir=path.parent)
        try:
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                json.dump(self.to_dict(), f, indent=2)
                f.write('\n')
            os.replace(temp_name, path)
        except BaseException:
            if os.path.exists(temp_name):
                os.unlink(temp_name)
            raise

        logger.info(f"Saved duplicates manifest: {path}")
        return path

    @classmethod
    def load(cls, path: Path) -> 'DuplicatesManifest':
        """Read a manifest.

        Raises:
            ManifestError: the file is absent, unreadable or malformed.
        """
        path = Path(path)
        try:
            with open(path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except FileNotFoundError as e:
            raise ManifestError(path, "file not found") from e
        except OSError as e:
            raise ManifestError(path, f"could not read file: {e}") from e
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise ManifestError(path, f"not valid JSON: {e}") from e

        try:
            manifest = cls.from_dict(data)
        except ValueError as e:
            raise ManifestError(path, str(e)) from e

        logger.debug(f"Loaded duplicates manifest {path}: {manifest.duplicate_groups} groups")
        return manifest
