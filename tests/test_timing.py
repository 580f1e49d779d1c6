"""Tests for frame timing and stage profiling."""

import time

import pytest

from holonet.timing import FrameTimer, StageProfiler, frame_rate


def _fake_clock(*values):
    it = iter(values)
    return lambda: next(it)


class TestFrameRate:
    def test_frame_rate(self):
        assert frame_rate(20.0) == pytest.approx(50.0)
        assert frame_rate(1000.0) == pytest.approx(1.0)

    def test_zero_elapsed(self):
        assert frame_rate(0.0) == 0.0
        assert frame_rate(-1.0) == 0.0


class TestFrameTimer:
    def test_measures_one_tick(self):
        timer = FrameTimer(_fake_clock(1.0, 1.02))
        timer.start()
        assert timer.stop() == pytest.approx(50.0)
        assert timer.elapsed_ms == pytest.approx(20.0)

    def test_stop_without_start(self):
        timer = FrameTimer(_fake_clock())
        assert timer.stop() == 0.0


class TestStageProfiler:
    def test_stage_timing(self):
        profiler = StageProfiler()
        with profiler.stage("classification"):
            time.sleep(0.001)

        stats = profiler.get_stage_stats("classification")
        assert stats is not None
        assert stats.call_count == 1
        assert stats.avg_ms > 0

    def test_record(self):
        profiler = StageProfiler()
        for ms in (1.0, 2.0, 3.0):
            profiler.record("tick", ms)
        summary = profiler.summary()
        assert summary["tick"]["calls"] == 3
        assert summary["tick"]["avg_ms"] == pytest.approx(2.0)
        assert summary["tick"]["max_ms"] == pytest.approx(3.0)

    def test_unused_stages_omitted(self):
        assert StageProfiler().summary() == {}

    def test_custom_stage(self):
        profiler = StageProfiler()
        with profiler.stage("custom"):
            pass
        assert "custom" in profiler.summary()

    def test_window(self):
        profiler = StageProfiler(window_size=2)
        for ms in (100.0, 1.0, 1.0):
            profiler.record("tick", ms)
        stats = profiler.get_stage_stats("tick")
        assert stats.max_ms == 1.0
        assert stats.call_count == 3

    def test_disabled(self):
        profiler = StageProfiler()
        profiler.enabled = False
        with profiler.stage("tick"):
            pass
        profiler.record("tick", 5.0)
        assert profiler.get_stage_stats("tick") is None

    def test_reset(self):
        profiler = StageProfiler()
        profiler.record("sequencer", 1.0)
        profiler.reset()
        assert profiler.summary() == {}
