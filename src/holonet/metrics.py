"""Prometheus text-format metrics for the interaction loop.

Generated directly, no client library. Tracked:
- holonet_ticks_total (counter)
- holonet_hands_detected_total (counter)
- holonet_mode_ticks_total (counter, by control mode)
- holonet_grab_transitions_total (counter, by new grab state)
- holonet_stage_entries_total (counter, by elimination stage)
- holonet_tick_latency_seconds (histogram)
- holonet_hand_detection_rate (gauge, moving average)
- holonet_frame_rate (gauge, last tick)
- holonet_active_connections (gauge)
"""

from __future__ import annotations

import threading
import time
from collections import Counter


class _Histogram:
    def __init__(self, buckets: list[float]):
        self.buckets = sorted(buckets)
        self.bucket_counts = [0] * len(self.buckets)
        self.count = 0
        self.sum = 0.0
        self._lock = threading.Lock()

    def observe(self, value: float):
        with self._lock:
            self.count += 1
            self.sum += value
            for i, b in enumerate(self.buckets):
                if value <= b:
                    self.bucket_counts[i] += 1
                    break

    def render(self, name: str, help_text: str) -> list[str]:
        lines = [f"# HELP {name} {help_text}", f"# TYPE {name} histogram"]
        with self._lock:
            cumulative = 0
            for b, c in zip(self.buckets, self.bucket_counts):
                cumulative += c
                lines.append(f'{name}_bucket{{le="{b}"}} {cumulative}')
            lines.append(f'{name}_bucket{{le="+Inf"}} {self.count}')
            lines.append(f"{name}_sum {self.sum:.6f}")
            lines.append(f"{name}_count {self.count}")
        return lines


class MetricsCollector:
    """Counters and gauges fed by the pipeline once per tick."""

    def __init__(self):
        self._mode_counts: Counter = Counter()
        self._grab_transitions: Counter = Counter()
        self._stage_entries: Counter = Counter()
        self._ticks_total = 0
        self._hands_total = 0
        self._hand_detection_rate = 0.0
        self._frame_rate = 0.0
        self._active_connections = 0
        self._lock = threading.Lock()

        # 1ms to 100ms
        self._latency = _Histogram([0.001, 0.002, 0.005, 0.010, 0.016, 0.033, 0.050, 0.100])
        self._start_time = time.time()

    def record_tick(self, latency_seconds: float, hands_detected: int, mode: str, frame_rate: float):
        with self._lock:
            self._ticks_total += 1
            self._hands_total += hands_detected
            self._mode_counts[mode] += 1
            rate = 1.0 if hands_detected > 0 else 0.0
            self._hand_detection_rate = 0.95 * self._hand_detection_rate + 0.05 * rate
            self._frame_rate = frame_rate
        self._latency.observe(latency_seconds)

    def record_grab(self, grabbing: bool):
        with self._lock:
            self._grab_transitions["on" if grabbing else "off"] += 1

    def record_stage(self, stage: str):
        with self._lock:
            self._stage_entries[stage] += 1

    def set_connections(self, count: int):
        self._active_connections = count

    @property
    def ticks_total(self) -> int:
        return self._ticks_total

    @property
    def mode_counts(self) -> dict[str, int]:
        with self._lock:
            return dict(self._mode_counts)

    @property
    def stage_entries(self) -> dict[str, int]:
        with self._lock:
            return dict(self._stage_entries)

    @property
    def grab_transitions(self) -> dict[str, int]:
        with self._lock:
            return dict(self._grab_transitions)

    def _counter(self, name: str, help_text: str, label: str, values: Counter) -> list[str]:
        lines = [f"# HELP {name} {help_text}", f"# TYPE {name} counter"]
        with self._lock:
            for key, count in sorted(values.items()):
                lines.append(f'{name}{{{label}="{key}"}} {count}')
        return lines

    def render(self) -> str:
        lines: list[str] = [
            "# HELP holonet_uptime_seconds Time since start",
            "# TYPE holonet_uptime_seconds gauge",
            f"holonet_uptime_seconds {time.time() - self._start_time:.1f}",
            "",
            "# HELP holonet_ticks_total Total ticks processed",
            "# TYPE holonet_ticks_total counter",
            f"holonet_ticks_total {self._ticks_total}",
            "",
            "# HELP holonet_hands_detected_total Hands seen across all ticks",
            "# TYPE holonet_hands_detected_total counter",
            f"holonet_hands_detected_total {self._hands_total}",
            "",
        ]
        lines += self._counter(
            "holonet_mode_ticks_total", "Ticks per control mode", "mode", self._mode_counts
        )
        lines.append("")
        lines += self._counter(
            "holonet_grab_transitions_total", "Grab state changes", "state", self._grab_transitions
        )
        lines.append("")
        lines += self._counter(
            "holonet_stage_entries_total", "Elimination stages entered", "stage", self._stage_entries
        )
        lines.append("")
        lines += self._latency.render(
            "holonet_tick_latency_seconds", "Tick processing latency in seconds"
        )
        lines += [
            "",
            "# HELP holonet_hand_detection_rate Moving average of ticks with a hand",
            "# TYPE holonet_hand_detection_rate gauge",
            f"holonet_hand_detection_rate {self._hand_detection_rate:.4f}",
            "",
            "# HELP holonet_frame_rate Frame rate of the last tick",
            "# TYPE holonet_frame_rate gauge",
            f"holonet_frame_rate {self._frame_rate:.1f}",
            "",
            "# HELP holonet_active_connections Current WebSocket connections",
            "# TYPE holonet_active_connections gauge",
            f"holonet_active_connections {self._active_connections}",
            "",
        ]
        return "\n".join(lines) + "\n"
