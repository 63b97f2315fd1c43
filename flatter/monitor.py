"""Process-wide logging of problem timings and profile progress."""

from __future__ import annotations

import os
import random
import threading
import time
from dataclasses import dataclass
from typing import IO, Sequence

from flatter.context import ComputationContext

_UINT_MAX = 2**32 - 1


@dataclass
class _TimedProblem:
    label: int = 0
    prob_id: int = 0
    parent_id: int = 0
    params_str: str = ""
    start: float = 0.0
    end: float = 0.0
    duration: float = 0.0


class Monitor:
    """Writes a log of problem start/stop times and reduction profiles.

    Nothing is written until a log file has been set.
    """

    _instance: Monitor | None = None
    _instance_lock = threading.Lock()

    def __init__(self) -> None:
        self._rng = random.SystemRandom()
        self._file: IO[str] | None = None
        self._buffer: list[str] = []
        self._lock = threading.RLock()
        self._problems: dict[int, _TimedProblem] = {}
        self._labels: dict[str, int] = {}
        self._current_prob_id = 0
        self._first_id = 0
        self._cur_dim = 0
        self._reduction_start = 0.0

    @classmethod
    def get_instance(cls) -> Monitor:
        """Return the shared monitor, creating it on first use."""
        with cls._instance_lock:
            if cls._instance is None:
                cls._instance = cls()
            return cls._instance

    @property
    def has_logfile(self) -> bool:
        return self._file is not None

    def set_logfile(self, fname: str | os.PathLike) -> None:
        """Start logging to ``fname``, replacing any earlier log file."""
        self.stop()
        self._file = open(fname, "w+", encoding="utf-8")
        self._buffer.clear()
        self.log("Start %d\n", int(time.time()))
        self.log_commit()

    def stop(self) -> None:
        """Close the log file, if any."""
        with self._lock:
            if self._file is None:
                return
            self._file.close()
            self._file = None

    def profile_reset(self, dim: int) -> None:
        self._cur_dim = dim
        self._reduction_start = time.perf_counter()
        self.log("profile(%d)\n", dim)
        self.log_commit()

    def profile_update(
        self,
        profile: Sequence[float],
        start: int,
        end: int,
        global_offsets: Sequence[float] | None = None,
    ) -> None:
        """Log the profile entries of the block ``[start, end)``."""
        subdim = end - start
        if subdim < self._cur_dim // 20:
            return
        elapsed = time.perf_counter() - self._reduction_start
        self.log("profile(%d,%d)[%f] ", start, end, elapsed)
        for i, value in enumerate(profile[:subdim]):
            offset = 0.0 if global_offsets is None else global_offsets[i]
            self.log("%0.2f+%0.2f ", value, offset)
        self.log("\n")
        self.log_commit()

    def precision_update(self, prec: int, start: int, end: int) -> None:
        self.log("Setting precision to %d\n", prec)
        self.log_commit()

    def _new_id(self) -> int:
        return self._rng.randint(1, _UINT_MAX)

    def start_problem(
        self,
        prob: str,
        impl: str,
        header: str,
        params: str,
        cc: ComputationContext,
    ) -> None:
        """Record the start of a (possibly nested) problem."""
        if not self.has_logfile:
            return
        tp = _TimedProblem(params_str=params)
        key = prob + impl
        with self._lock:
            if key not in self._labels:
                label = self._new_id()
                self._labels[key] = label
                self.log("R %08x |%s|%s|%s|\n", label, prob, impl, header)
                self.log_commit()
            tp.label = self._labels[key]

            tp.prob_id = self._new_id()
            tp.parent_id = self._current_prob_id
            tp.start = time.perf_counter()
            self._problems[tp.prob_id] = tp
            if self._first_id == 0:
                self._first_id = tp.prob_id
            self._current_prob_id = tp.prob_id

    def end_problem(self, cc: ComputationContext) -> None:
        """Record the end of the innermost running problem."""
        if not self.has_logfile:
            return
        end = time.perf_counter()
        with self._lock:
            if self._current_prob_id == 0:
                raise RuntimeError("no problem in progress")
            tp = self._problems.pop(self._current_prob_id, None)
            if tp is None:
                raise RuntimeError("no problem in progress")
            if self._first_id == tp.prob_id:
                self._first_id = 0
                first_start = tp.start
            else:
                first = self._problems.get(self._first_id, tp)
                first_start = first.start

            tp.end = end
            tp.duration = tp.end - tp.start
            first_duration = tp.end - first_start

            if tp.duration > 0.01 * first_duration:
                self.log("T ")
                self.log("%08x %08x ", tp.label, tp.prob_id)
                self.log("%08x", tp.parent_id)
                self.log(" %d", 1)
                self.log(" %d", cc.nthreads())
                self.log(" {%s}", tp.params_str)
                self.log(" %f\n", tp.duration)
                self.log_commit()

            self._current_prob_id = tp.parent_id

    def log(self, fmt: str, *args) -> None:
        """Append formatted text to the pending log line."""
        if not self.has_logfile:
            return
        with self._lock:
            self._buffer.append(fmt % args if args else fmt)

    def log_commit(self) -> None:
        """Write the pending log text to the file."""
        with self._lock:
            if self._file is None:
                return
            self._file.write("".join(self._buffer))
            self._file.flush()
            self._buffer.clear()


def initialize(logfile_name: str | None = None) -> None:
    """Set up the shared monitor.

    Without an argument the log file is taken from ``FLATTER_LOG``; an empty
    name disables logging.
    """
    if logfile_name is None:
        logfile_name = os.environ.get("FLATTER_LOG", "")
    if logfile_name:
        Monitor.get_instance().set_logfile(logfile_name)


def finalize() -> None:
    """Close the shared monitor's log file."""
    Monitor.get_instance().stop()