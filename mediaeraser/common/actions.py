"""
Scan, clean and erase commands.
"""

import logging
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from . import utils
from .analysis import find_duplicates
from .console import Console
from .errors import PathNotFoundError, TransactionError
from .manifest import DuplicatesManifest
from .models import DuplicateReport, ScanOptions
from .progress import TqdmProgress
from .transaction import EraseTransaction, TransactionState

logger = logging.getLogger(__name__)

def generate_report(report: DuplicateReport) -> str:
    """Human-readable summary of a scan."""
    report_lines = [
        "=== Media Duplicate Report ===",
        f"Generated on: {datetime.now().isoformat(timespec='seconds')}",
        f"Total files scanned: {report.total_files}",
        f"Total duplicate groups: {len(report.groups)}",
        f"Total duplicate files: {report.duplicate_count()}",
        f"  Exact: {report.exact_duplicate_count()}",
        f"  Perceptual: {report.perceptual_duplicate_count()}",
        f"Files that could not be processed: {report.errors}",
        f"Total wasted space: {utils.format_size(report.wasted_space())}",
    ]

    if report.groups:
        report_lines.append("\n=== Duplicate Groups ===")

    for i, group in enumerate(report.groups):
        report_lines.append(f"\nGroup {i+1} - {group.duplicate_type.value}")
        report_lines.append(f"Keep: {group.original}")
        report_lines.append("Delete:")
        for path in group.duplicates:
            report_lines.append(f"- {path} ({utils.format_size(group.sizes.get(path, 0))})")

    return '\n'.join(report_lines)

def _require_directory(path: Path) -> Path:
    path = Path(path).absolute()
    if not path.exists():
        raise PathNotFoundError(path)
    return path

def scan_command(path: Path,
                 options: Optional[ScanOptions] = None,
                 recursive: bool = True,
                 include_hidden: bool = False,
                 output: Optional[Path] = None,
                 console: Optional[Console] = None) -> DuplicateReport:
    """Scan a directory and write the duplicates manifest.

    No manifest is written when nothing was found.
    """
    options = options or ScanOptions()
    console = console or Console()
    path = _require_directory(path)

    logger.info(f"Starting scan of {path}")
    logger.debug(f"recursive: {recursive}, include_hidden: {include_hidden}, options: {options}")

    files = utils.find_files([path], options.media.extensions, recursive, include_hidden, logger)

    with TqdmProgress(disable=console.quiet) as progress:
        report = find_duplicates(files, options=options, progress=progress)

    console.line(generate_report(report))
    console.line()

    if report.errors:
        console.warning(f"{report.errors} files could not be processed and were skipped.")

    if not report.groups:
        console.info("No duplicates found.")
        return report

    if output is None:
        output = (path if path.is_dir() else path.parent) / utils.DUPLICATES_FILENAME

    DuplicatesManifest.from_report(report).save(output)
    console.success(f"Found {report.duplicate_count()} duplicates in {len(report.groups)} groups. "
                    f"Saved to: {output}")
    return report

def clean_command(path: Path, console: Optional[Console] = None) -> bool:
    """Remove the duplicates manifest from a directory. Returns True if one was removed."""
    console = console or Console()
    manifest_path = _require_directory(path) / utils.DUPLICATES_FILENAME

    logger.debug(f"Looking for duplicates file at: {manifest_path}")

    if not manifest_path.exists():
        console.info(f"No {utils.DUPLICATES_FILENAME} found in: {manifest_path.parent}")
        return False

    manifest_path.unlink()
    console.success(f"Removed: {manifest_path}")
    logger.info(f"Duplicates file removed: {manifest_path}")
    return True

def _erase_targets(manifest: DuplicatesManifest, root: Path) -> List[Path]:
    """Files to delete, never including a file some entry keeps."""
    originals = {root / entry.original for entry in manifest.entries}
    seen = set()
    targets = []
    for target in manifest.all_duplicates():
        target = root / target  # relative entries are relative to the manifest
        if target in seen:
            continue
        seen.add(target)
        if target in originals:
            logger.warning(f"Not erasing {target}, it is kept as an original")
            continue
        targets.append(target)
    return targets

def erase_command(path: Path, console: Optional[Console] = None) -> int:
    """Delete the duplicates listed in a directory's manifest.

    Returns the number of files deleted. The manifest is removed once the
    deletion is committed.

    Raises:
        ManifestError: the manifest exists but cannot be read.
        TransactionError: the deletion failed and was rolled back.
    """
    console = console or Console()
    root = _require_directory(path)
    manifest_path = root / utils.DUPLICATES_FILENAME

    logger.info(f"Looking for duplicates file at: {manifest_path}")

    if not manifest_path.exists():
        console.info(f"No {utils.DUPLICATES_FILENAME} found in: {root}\n"
                     f"   Run 'mde scan' first to detect duplicates.")
        return 0

    manifest = DuplicatesManifest.load(manifest_path)

    targets = _erase_targets(manifest, root)
    if not targets:
        console.info("No duplicates to erase.")
        return 0

    console.info(f"Found {len(targets)} duplicate files to erase from {manifest.duplicate_groups} groups.")

    missing = [target for target in targets if not target.exists()]
    if missing:
        logger.warning(f"Some files no longer exist: {[str(p) for p in missing]}")
        console.warning(f"{len(missing)} files no longer exist and will be skipped.")

    existing = [target for target in targets if target.exists()]
    if not existing:
        console.info("No existing files to erase.")
        return 0

    staging_dir = root / utils.STAGING_DIR_NAME
    transaction = EraseTransaction(existing, staging_dir)
    with TqdmProgress(disable=console.quiet) as progress:
        transaction.progress = progress
        try:
            deleted = transaction.execute()
        except TransactionError as e:
            if transaction.state is TransactionState.IDLE:
                console.error(f"Move the files in {staging_dir} back by hand, "
                              f"then remove it before running erase again.")
            elif e.filesystem_unchanged:
                console.info("Rollback complete. No files were deleted.")
            else:
                console.error(f"{len(e.unrestored)} files could not be restored:")
                for original in e.unrestored:
                    console.error(f"  {original}")
                if staging_dir.exists():
                    console.error(f"Files still in {staging_dir} must be recovered by hand "
                                  f"before running erase again.")
            raise

    console.success(f"Successfully erased {deleted} duplicate files.")

    manifest_path.unlink()
    console.success(f"Removed: {manifest_path}")
    logger.info(f"Erase complete: {deleted} files deleted, {utils.DUPLICATES_FILENAME} removed")

    return deleted
