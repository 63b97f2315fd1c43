"""Description of the parallel resources available to a computation."""

from __future__ import annotations

import os
import threading


class ComputationContext:
    """Holds the number of worker threads a computation may use."""

    def __init__(self, max_threads: int | None = None) -> None:
        if max_threads is None:
            max_threads = os.cpu_count() or 1
        if max_threads < 0:
            raise ValueError("max_threads must not be negative")
        self._max_threads = int(max_threads)
        self._lock = threading.Lock()
        self._barriers_passed = 0

    def is_threaded(self) -> bool:
        """True when more than one thread is available."""
        return self._max_threads > 1

    def nthreads(self) -> int:
        """Maximum number of threads."""
        return self._max_threads

    def barrier(self) -> int:
        """Synchronisation point; returns how many barriers have been passed."""
        with self._lock:
            self._barriers_passed += 1
            return self._barriers_passed

    def __repr__(self) -> str:
        return f"ComputationContext(max_threads={self._max_threads})"