"""
Stage timing for backends.

A backend records how long each pipeline stage took (resample table,
pairs, correction, calibration); the totals end up in Result.timing.
"""

import time
from contextlib import contextmanager
from typing import Iterator


class Timer:
    """
    Wall-clock timer with named stages.

    Usage:
        timer = Timer()
        timer.start()
        with timer.section('resample_table'):
            table = build_resample_table(n, 599, rng)
        timer.stop()
        timer.result()
        # {'total_seconds': 0.41, 'resample_table': 0.01}

    Stages with the same name add up. Stages may nest, so their sum can
    exceed the total.
    """

    def __init__(self, sync_cuda: bool = False):
        # queued CUDA kernels must finish before a clock is read
        self.sync_cuda = sync_cuda
        self._stages: dict[str, float] = {}
        self._t0: float | None = None
        self._elapsed: float | None = None

    def _clock(self) -> float:
        if self.sync_cuda:
            try:
                import torch
            except ImportError:
                pass
            else:
                if torch.cuda.is_available():
                    torch.cuda.synchronize()
        return time.perf_counter()

    def start(self) -> None:
        self._t0 = self._clock()

    def stop(self) -> None:
        if self._t0 is None:
            raise RuntimeError("Timer.stop() called before start()")
        self._elapsed = self._clock() - self._t0

    @contextmanager
    def section(self, name: str) -> Iterator[None]:
        """Add the time spent in the block to stage `name`, even on error."""
        begin = self._clock()
        try:
            yield
        finally:
            self._stages[name] = self._stages.get(name, 0.0) + self._clock() - begin

    def result(self) -> dict[str, float]:
        """'total_seconds' plus one entry per stage; requires stop()."""
        if self._elapsed is None:
            raise RuntimeError("Timer.result() called before stop()")
        return {'total_seconds': self._elapsed, **self._stages}
