"""Frame timing: per-tick frame rate and per-stage profiling.

The frame rate shown on the HUD is `1000 / elapsed_ms` of the tick that
just ran (processing time, not the interval between ticks). The stage
profiler keeps a rolling window of timings for each pipeline stage:

    profiler = StageProfiler()
    with profiler.stage("classification"):
        roles = classify_hands(frame.hands)
    print(profiler.summary())
"""

from __future__ import annotations

import time
from collections import deque
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Callable, Iterator, Optional


def frame_rate(elapsed_ms: float) -> float:
    """Ticks per second for a tick that took `elapsed_ms`; 0 when nothing was measured."""
    if elapsed_ms <= 0:
        return 0.0
    return 1000.0 / elapsed_ms


class FrameTimer:
    """Measures one tick at a time with an injectable clock (seconds)."""

    def __init__(self, clock: Callable[[], float] = time.perf_counter):
        self._clock = clock
        self._started: Optional[float] = None
        self.elapsed_ms = 0.0
        self.fps = 0.0

    def start(self):
        self._started = self._clock()

    def stop(self) -> float:
        """End the tick and return its frame rate."""
        if self._started is None:
            return self.fps
        self.elapsed_ms = (self._clock() - self._started) * 1000.0
        self._started = None
        self.fps = frame_rate(self.elapsed_ms)
        return self.fps


@dataclass
class StageStats:
    name: str
    avg_ms: float
    max_ms: float
    p95_ms: float
    call_count: int


class StageProfiler:
    """Rolling timings for the named stages of a tick."""

    STAGES = ("sequencer", "classification", "manipulation", "tick")

    def __init__(self, window_size: int = 120):
        self._window_size = window_size
        self._timings: dict[str, deque[float]] = {
            s: deque(maxlen=window_size) for s in self.STAGES
        }
        self._counts: dict[str, int] = {s: 0 for s in self.STAGES}
        self.enabled = True

    @contextmanager
    def stage(self, name: str) -> Iterator[None]:
        if not self.enabled:
            yield
            return

        if name not in self._timings:
            self._timings[name] = deque(maxlen=self._window_size)
            self._counts[name] = 0

        t0 = time.perf_counter()
        try:
            yield
        finally:
            self.record(name, (time.perf_counter() - t0) * 1000.0)

    def record(self, name: str, elapsed_ms: float):
        """Add a timing measured elsewhere."""
        if not self.enabled:
            return
        if name not in self._timings:
            self._timings[name] = deque(maxlen=self._window_size)
            self._counts[name] = 0
        self._timings[name].append(elapsed_ms)
        self._counts[name] += 1

    def get_stage_stats(self, name: str) -> Optional[StageStats]:
        timings = self._timings.get(name)
        if not timings:
            return None

        ordered = sorted(timings)
        n = len(ordered)
        return StageStats(
            name=name,
            avg_ms=sum(ordered) / n,
            max_ms=ordered[-1],
            p95_ms=ordered[min(n - 1, int(n * 0.95))],
            call_count=self._counts[name],
        )

    def summary(self) -> dict[str, dict]:
        result = {}
        for name in self._timings:
            stats = self.get_stage_stats(name)
            if stats:
                result[name] = {
                    "avg_ms": round(stats.avg_ms, 3),
                    "max_ms": round(stats.max_ms, 3),
                    "p95_ms": round(stats.p95_ms, 3),
                    "calls": stats.call_count,
                }
        return result

    def reset(self):
        for d in self._timings.values():
            d.clear()
        for k in self._counts:
            self._counts[k] = 0
