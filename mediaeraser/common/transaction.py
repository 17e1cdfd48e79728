"""
All-or-nothing deletion of a batch of files.

Files are first renamed into a staging directory, then the staging directory
is removed in one go. If any step fails, every staged file still present is
moved back to where it came from. Until the commit finishes, each target
exists either at its original path or inside the staging directory.

The staging directory doubles as the undo log: if a non-empty one is found at
startup, a previous run died or failed to restore its files, and a new erase
refuses to start until those files are recovered.
"""

import logging
import os
import shutil
from enum import Enum
from pathlib import Path
from typing import Callable, List, Optional, Sequence, Tuple

from .errors import TransactionError

logger = logging.getLogger(__name__)

class TransactionState(Enum):
    IDLE = 'idle'
    STAGING = 'staging'
    STAGED = 'staged'
    COMMITTING = 'committing'
    COMMITTED = 'committed'
    ROLLING_BACK = 'rolling_back'
    ROLLED_BACK = 'rolled_back'

class EraseTransaction:
    """Deletes a list of files through a staging directory.

    Usage::

        transaction = EraseTransaction(files, root / STAGING_DIR_NAME)
        deleted = transaction.execute()

    ``execute`` raises ``TransactionError`` after rolling back if staging or
    the final removal fails.
    """

    def __init__(self, files: Sequence[Path], staging_dir: Path,
                 progress: Optional[Callable[[int, int, str], None]] = None):
        self.files = [Path(f) for f in files]
        self.staging_dir = Path(staging_dir)
        self.progress = progress
        self.state = TransactionState.IDLE
        self.staged: List[Tuple[Path, Path]] = []
        self.restored: List[Path] = []
        self.unrestored: List[Path] = []

    def _report(self, processed: int, phase: str):
        if self.progress is None:
            return
        try:
            self.progress(processed, len(self.files), phase)
        except Exception as e:
            logger.debug(f"Progress callback failed during {phase}: {e}")

    def _fail(self, message: str, cause: BaseException):
        logger.error(f"{message}: {cause}")
        self.rollback()
        raise TransactionError(message, cause, self.restored, self.unrestored)

    def begin(self):
        """Create a fresh staging directory.

        An empty leftover staging directory is reused. One that still holds
        files from an earlier run is never discarded: ``TransactionError`` is
        raised and nothing is touched.
        """
        if self.state is not TransactionState.IDLE:
            raise RuntimeError(f"Cannot begin a transaction in state {self.state.value}")

        if self.staging_dir.exists() and any(self.staging_dir.iterdir()):
            logger.error(f"Staging directory {self.staging_dir} still holds files from an earlier run")
            raise TransactionError(f"Staging directory {self.staging_dir} is not empty; "
                                   f"recover its files before erasing again")

        self.state = TransactionState.STAGING
        try:
            if self.staging_dir.exists():
                logger.warning(f"Found empty leftover staging directory {self.staging_dir}, reusing it")
            self.staging_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            self._fail(f"Could not prepare staging directory {self.staging_dir}", e)
        logger.debug(f"Created staging directory: {self.staging_dir}")

    def stage(self):
        """Rename every target into the staging directory, stopping at the first failure."""
        if self.state is not TransactionState.STAGING:
            raise RuntimeError(f"Cannot stage files in state {self.state.value}")

        for index, original in enumerate(self.files):
            staged_path = self.staging_dir / str(index)
            try:
                os.rename(original, staged_path)
            except OSError as e:
                self._fail(f"Failed to stage {original}", e)
            self.staged.append((original, staged_path))
            logger.debug(f"Staged: {original} -> {staged_path}")
            self._report(index + 1, "Staging")

        self.state = TransactionState.STAGED

    def commit(self) -> int:
        """Remove the staging directory and everything in it."""
        if self.state is not TransactionState.STAGED:
            raise RuntimeError(f"Cannot commit in state {self.state.value}")

        self.state = TransactionState.COMMITTING
        try:
            shutil.rmtree(self.staging_dir)
        except OSError as e:
            self._fail("Failed to finalize deletion", e)

        self.state = TransactionState.COMMITTED
        logger.info(f"Permanently deleted {len(self.staged)} files")
        return len(self.staged)

    def rollback(self):
        """Move staged files back. Never raises; restore failures are logged."""
        self.state = TransactionState.ROLLING_BACK
        logger.warning(f"Rolling back {len(self.staged)} files...")

        for original, staged_path in self.staged:
            if not staged_path.exists():
                logger.error(f"Staged copy of {original} is gone, it cannot be restored")
                self.unrestored.append(original)
                continue
            try:
                os.rename(staged_path, original)
            except OSError as e:
                logger.error(f"Failed to restore {original} from {staged_path}: {e}")
                self.unrestored.append(original)
            else:
                logger.debug(f"Restored: {original}")
                self.restored.append(original)

        if self.unrestored:
            logger.error(f"{len(self.unrestored)} files could not be restored, "
                         f"leaving {self.staging_dir} in place")
        elif self.staging_dir.exists():
            try:
                shutil.rmtree(self.staging_dir)
            except OSError as e:
                logger.warning(f"Could not remove staging directory {self.staging_dir}: {e}")

        self.state = TransactionState.ROLLED_BACK

    def execute(self) -> int:
        """Stage and commit every file. Returns the number of files deleted."""
        self.begin()
        self.stage()
        return self.commit()

def atomic_delete(files: Sequence[Path], staging_dir: Path,
                  progress: Optional[Callable[[int, int, str], None]] = None) -> int:
    """Delete ``files`` all together or not at all."""
    return EraseTransaction(files, staging_dir, progress).execute()
