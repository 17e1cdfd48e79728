"""
Duplicate detection pipeline.

Files go through four passes, cheapest first:
1. **Size partition**: files are grouped by byte length.
2. **Exact match**: within each size partition, files are grouped by SHA-256.
3. **Perceptual clustering**: the remaining files plus one representative per
   exact group are clustered by perceptual fingerprint.
4. **Reconciliation**: exact groups whose representative joined a cluster are
   folded into that cluster, so no file ends up in two groups.

Passes only exchange fully built lists and dicts. Within a pass, files may be
processed by a thread pool; results are collected in input order.
"""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from .errors import FingerprintError, ScanCancelled
from .fingerprint import FingerprintProvider, MediaFingerprintProvider, PerceptualFingerprint
from .models import DuplicateGroup, DuplicateReport, DuplicateType, FileRecord, ScanOptions

logger = logging.getLogger(__name__)

# (items processed, total, phase label)
ProgressCallback = Callable[[int, int, str], None]

def report_progress(progress: Optional[ProgressCallback], processed: int, total: int, phase: str):
    """Invoke a progress callback, ignoring anything it raises."""
    if progress is None:
        return
    try:
        progress(processed, total, phase)
    except Exception as e:
        logger.debug(f"Progress callback failed during {phase}: {e}")

def _check_cancelled(cancel_event: Optional[threading.Event]):
    if cancel_event is not None and cancel_event.is_set():
        raise ScanCancelled("Scan cancelled")

def _offset_progress(progress: Optional[ProgressCallback], offset: int, total: int) -> Optional[ProgressCallback]:
    """Map a per-partition progress callback onto a pass-wide count."""
    if progress is None:
        return None
    return lambda processed, _total, phase: progress(offset + processed, total, phase)

def _guarded_call(func, path: Path, expected: tuple, cancel_event):
    _check_cancelled(cancel_event)
    try:
        return func(path), None
    except expected as e:
        return None, e

def map_files(func: Callable[[Path], object],
              paths: Sequence[Path],
              expected: tuple = (OSError,),
              workers: int = 1,
              progress: Optional[ProgressCallback] = None,
              phase: str = "",
              cancel_event: Optional[threading.Event] = None) -> List[Tuple[Path, object, Optional[Exception]]]:
    """Apply ``func`` to every path and return ``(path, result, error)`` in input order.

    Exceptions of the ``expected`` types are captured per file, anything else
    propagates.
    """
    total = len(paths)
    results = []

    if workers <= 1 or total <= 1:
        for i, path in enumerate(paths):
            result, error = _guarded_call(func, path, expected, cancel_event)
            results.append((path, result, error))
            report_progress(progress, i + 1, total, phase)
        return results

    with ThreadPoolExecutor(max_workers=workers) as executor:
        futures = [executor.submit(_guarded_call, func, path, expected, cancel_event)
                   for path in paths]
        try:
            for i, (path, future) in enumerate(zip(paths, futures)):
                result, error = future.result()
                results.append((path, result, error))
                report_progress(progress, i + 1, total, phase)
        except BaseException:
            for future in futures:
                future.cancel()
            raise

    return results

def group_by_size(paths: Sequence[Path],
                  progress: Optional[ProgressCallback] = None,
                  cancel_event: Optional[threading.Event] = None) -> Tuple[Dict[int, List[FileRecord]], int]:
    """Group files by byte length.

    Files that cannot be stat'ed are dropped and counted as errors.

    Returns:
        Tuple of (size -> records, error count)
    """
    size_map: Dict[int, List[FileRecord]] = {}
    errors = 0

    for i, path in enumerate(paths):
        _check_cancelled(cancel_event)
        try:
            record = FileRecord.from_path(path)
        except OSError as e:
            logger.warning(f"Could not get size of {path}: {e}")
            errors += 1
        else:
            size_map.setdefault(record.size, []).append(record)
        report_progress(progress, i + 1, len(paths), "Sizing")

    return size_map, errors

def find_exact_duplicates(records: Sequence[FileRecord],
                          provider: FingerprintProvider,
                          workers: int = 1,
                          progress: Optional[ProgressCallback] = None,
                          cancel_event: Optional[threading.Event] = None
                          ) -> Tuple[List[DuplicateGroup], List[FileRecord], int]:
    """Find byte-identical files within one size partition.

    Files that cannot be read are counted as errors and excluded.

    Returns:
        Tuple of (exact groups, records with a unique digest, error count)
    """
    by_path = {record.path: record for record in records}
    results = map_files(provider.exact_digest, [r.path for r in records],
                        expected=(OSError,), workers=workers, progress=progress,
                        phase="Hashing", cancel_event=cancel_event)

    digest_map: Dict[str, List[FileRecord]] = {}
    errors = 0
    for path, digest, error in results:
        if error is not None:
            logger.warning(f"Could not hash {path}: {error}")
            errors += 1
            continue
        digest_map.setdefault(digest, []).append(by_path[path])

    groups = []
    non_duplicates = []
    for digest, members in digest_map.items():
        if len(members) > 1:
            members = sorted(members, key=lambda r: r.path)
            groups.append(DuplicateGroup(
                files=[r.path for r in members],
                duplicate_type=DuplicateType.EXACT,
                sizes={r.path: r.size for r in members},
            ))
            logger.debug(f"Exact group {digest[:12]}: {len(members)} files")
        else:
            non_duplicates.extend(members)

    return groups, non_duplicates, errors

def compute_fingerprints(paths: Sequence[Path],
                         provider: FingerprintProvider,
                         workers: int = 1,
                         progress: Optional[ProgressCallback] = None,
                         cancel_event: Optional[threading.Event] = None
                         ) -> Tuple[List[Tuple[Path, PerceptualFingerprint]], int]:
    """Fingerprint files, skipping those that are not recognized media.

    Returns:
        Tuple of ((path, fingerprint) pairs in input order, error count)
    """
    results = map_files(provider.perceptual_fingerprint, paths,
                        expected=(FingerprintError, OSError), workers=workers,
                        progress=progress, phase="Fingerprinting",
                        cancel_event=cancel_event)

    fingerprints = []
    errors = 0
    for path, fingerprint, error in results:
        if error is not None:
            logger.warning(f"Could not compute perceptual hash for {path}: {error}")
            errors += 1
        elif fingerprint is None:
            logger.debug(f"Skipping non-media file: {path}")
        else:
            fingerprints.append((path, fingerprint))

    return fingerprints, errors

def cluster_fingerprints(fingerprints: Sequence[Tuple[Path, PerceptualFingerprint]],
                         provider: FingerprintProvider) -> List[List[Path]]:
    """Greedy seed-based clustering.

    Each unassigned file seeds a cluster; every later unassigned file close
    enough to the seed (not to other members) joins it. Singletons are dropped.
    """
    clusters = []
    used = [False] * len(fingerprints)

    for i, (seed_path, seed_fp) in enumerate(fingerprints):
        if used[i]:
            continue
        used[i] = True
        cluster = [seed_path]

        for j in range(i + 1, len(fingerprints)):
            if used[j]:
                continue
            path, fingerprint = fingerprints[j]
            if provider.are_similar(seed_fp, fingerprint):
                cluster.append(path)
                used[j] = True

        if len(cluster) > 1:
            clusters.append(cluster)

    return clusters

def find_perceptual_duplicates(paths: Sequence[Path],
                               provider: FingerprintProvider,
                               workers: int = 1,
                               progress: Optional[ProgressCallback] = None,
                               cancel_event: Optional[threading.Event] = None
                               ) -> Tuple[List[List[Path]], int]:
    """Cluster perceptually similar files.

    Returns:
        Tuple of (clusters of two or more paths, error count)
    """
    fingerprints, errors = compute_fingerprints(paths, provider, workers, progress, cancel_event)
    logger.debug(f"Clustering {len(fingerprints)} fingerprints")
    return cluster_fingerprints(fingerprints, provider), errors

def reconcile_groups(exact_groups: Sequence[DuplicateGroup],
                     clusters: Sequence[Sequence[Path]],
                     sizes: Optional[Dict[Path, int]] = None) -> List[DuplicateGroup]:
    """Merge exact groups into the perceptual clusters their representative joined.

    A cluster member that is the representative (first file) of an exact group
    is replaced by the whole exact group. Merged groups are typed PERCEPTUAL
    even when every member is byte-identical. Exact groups no cluster consumed
    are kept as they are.
    """
    sizes = dict(sizes or {})
    by_representative = {}
    for group in exact_groups:
        by_representative[group.files[0]] = group
        sizes.update(group.sizes)

    consumed = set()
    reconciled = []

    for cluster in clusters:
        merged = []
        for path in cluster:
            group = by_representative.get(path)
            if group is not None:
                merged.extend(group.files)
                consumed.add(path)
            else:
                merged.append(path)

        files = sorted(set(merged))
        if len(files) >= 2:
            reconciled.append(DuplicateGroup(
                files=files,
                duplicate_type=DuplicateType.PERCEPTUAL,
                sizes={path: sizes.get(path, 0) for path in files},
            ))

    for group in exact_groups:
        if group.files[0] not in consumed:
            reconciled.append(group)

    return reconciled

def find_duplicates(paths: Sequence[Path],
                    provider: Optional[FingerprintProvider] = None,
                    options: Optional[ScanOptions] = None,
                    progress: Optional[ProgressCallback] = None,
                    cancel_event: Optional[threading.Event] = None) -> DuplicateReport:
    """Run every detection pass over a list of files.

    Per-file failures are counted in the report instead of aborting the scan.

    Raises:
        ScanCancelled: ``cancel_event`` was set between two files.
    """
    options = options or ScanOptions()
    if provider is None:
        provider = MediaFingerprintProvider.from_options(options)

    paths = [Path(p) for p in paths]
    total_files = len(paths)
    logger.info(f"Starting duplicate detection for {total_files} files")

    # Pass 1: Group by file size
    logger.debug("Pass 1: Grouping by file size")
    size_map, errors = group_by_size(paths, progress, cancel_event)
    sizes = {record.path: record.size for records in size_map.values() for record in records}

    # Pass 2: Within each size group, find exact duplicates by SHA-256
    logger.debug("Pass 2: Finding exact duplicates by SHA-256")
    exact_groups: List[DuplicateGroup] = []
    remaining: List[Path] = []

    partitions = [size_map[size] for size in sorted(size_map)]
    hash_total = sum(len(records) for records in partitions if len(records) > 1)
    hashed = 0
    for records in partitions:
        if len(records) < 2:
            # Unique size, might still be perceptually similar
            remaining.extend(r.path for r in records)
            continue

        groups, non_duplicates, hash_errors = find_exact_duplicates(
            records, provider, options.workers,
            _offset_progress(progress, hashed, hash_total), cancel_event)
        hashed += len(records)
        errors += hash_errors
        exact_groups.extend(groups)
        remaining.extend(r.path for r in non_duplicates)

    # Pass 3: Perceptual comparison of the remaining files and one file per exact group
    logger.debug("Pass 3: Finding perceptual duplicates")
    eligible = sorted(remaining + [group.files[0] for group in exact_groups])
    clusters, fingerprint_errors = find_perceptual_duplicates(
        eligible, provider, options.workers, progress, cancel_event)
    errors += fingerprint_errors

    # Pass 4: Fold exact groups into the clusters that contain their representative
    logger.debug("Pass 4: Reconciling exact groups with perceptual clusters")
    groups = reconcile_groups(exact_groups, clusters, sizes)

    logger.info(f"Duplicate detection complete: {len(groups)} groups found, {errors} errors")

    return DuplicateReport(groups=groups, total_files=total_files, errors=errors)
