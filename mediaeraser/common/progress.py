"""
Progress bars for long-running passes.
"""

import threading
from typing import Dict

from tqdm import tqdm

class TqdmProgress:
    """Progress callback that draws one tqdm bar per phase.

    Safe to call from worker threads. A bar is closed when the next phase
    starts or when ``close`` is called.
    """

    def __init__(self, disable: bool = False):
        self.disable = disable
        self._bars: Dict[str, tqdm] = {}
        self._current = None
        self._lock = threading.Lock()

    def __call__(self, processed: int, total: int, phase: str):
        with self._lock:
            if phase != self._current:
                self._close_current()
                self._bars[phase] = tqdm(total=total, desc=phase, unit='file',
                                         leave=False, disable=self.disable)
                self._current = phase
            bar = self._bars[phase]
            if bar.total != total:
                bar.total = total
            bar.update(max(processed - bar.n, 0))

    def _close_current(self):
        if self._current is not None:
            self._bars.pop(self._current).close()
            self._current = None

    def close(self):
        with self._lock:
            self._close_current()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
