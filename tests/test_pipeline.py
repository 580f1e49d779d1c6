"""Integration tests: detection frames through the full interaction pipeline."""

import numpy as np
import pytest

from holonet.config import HoloConfig
from holonet.controller import ControlMode
from holonet.effects import EffectKind
from holonet.elimination import EliminationStage
from holonet.hands import DetectionFrame, Landmark
from holonet.pipeline import InteractionPipeline


def _make_hand(wrist=(0.7, 0.6), pinch: float = 0.2, fingers=(True, True, True)) -> np.ndarray:
    wx, wy = wrist
    lm = np.zeros((21, 3))
    lm[:] = [wx, wy - 0.05, 0]
    lm[Landmark.WRIST] = [wx, wy, 0]
    lm[Landmark.THUMB_TIP] = [wx - 0.06, wy - 0.12, 0]
    lm[Landmark.INDEX_TIP] = [wx - 0.06 + pinch, wy - 0.12, 0]
    lm[Landmark.MIDDLE_MCP] = [wx, wy - 0.15, 0]
    for tip, extended, dx in zip((12, 16, 20), fingers, (0.0, 0.03, 0.06)):
        lm[tip - 2] = [wx + dx, wy - 0.18, 0]
        lm[tip] = [wx + dx, wy - (0.30 if extended else 0.16), 0]
    return lm


def _frame(*hands, t: float = 0.0) -> DetectionFrame:
    return DetectionFrame.from_arrays(hands, timestamp=t)


def _offensive(t: float = 0.0) -> DetectionFrame:
    return _frame(_make_hand(fingers=(True, False, False)), t=t)


def _grab(t: float = 0.0) -> DetectionFrame:
    return _frame(_make_hand(wrist=(0.56, 0.62), pinch=0.02, fingers=(False, False, False)), t=t)


@pytest.fixture
def pipeline():
    return InteractionPipeline(timer_clock=lambda: 0.0)


class TestTick:
    def test_empty_frame_scans(self, pipeline):
        snap = pipeline.tick(_frame(), now=0.0)
        assert snap.mode is ControlMode.SCANNING
        assert snap.status == "Scanning..."
        assert snap.yaw == pytest.approx(0.002)
        assert snap.region == "Africa / Europe"
        assert snap.hands_detected == 0
        assert snap.stage is EliminationStage.IDLE
        assert snap.focus is None

    def test_left_hand(self, pipeline):
        snap = pipeline.tick(_frame(_make_hand(wrist=(0.3, 0.6))), now=0.0)
        assert snap.mode is ControlMode.LEFT
        assert snap.has_left and not snap.has_right
        assert snap.yaw == pytest.approx(0.3)
        assert "left" in snap.readings

    def test_grab(self, pipeline):
        snap = pipeline.tick(_grab(), now=0.0)
        assert snap.grabbing
        assert snap.mode is ControlMode.GRAB
        assert snap.x == pytest.approx(-2.125)
        assert pipeline.metrics.grab_transitions == {"on": 1}

    def test_deterministic(self):
        frames = [
            _frame(_make_hand(wrist=(0.3, 0.6)), t=0.0),
            _frame(_make_hand(wrist=(0.2, 0.5)), _make_hand(pinch=0.1), t=0.03),
            _frame(t=0.06),
            _grab(t=0.09),
        ]
        runs = []
        for _ in range(2):
            p = InteractionPipeline(timer_clock=lambda: 0.0)
            runs.append([p.tick(f, now=f.timestamp).to_dict() for f in frames])
        assert runs[0] == runs[1]

    def test_fps_from_tick_time(self):
        clock = iter([0.0, 0.02])
        p = InteractionPipeline(timer_clock=lambda: next(clock))
        snap = p.tick(_frame(), now=0.0)
        assert snap.fps == pytest.approx(50.0)
        assert snap.to_dict()["fps"] == 50.0

    def test_zero_elapsed_fps(self, pipeline):
        assert pipeline.tick(_frame(), now=0.0).fps == 0.0

    def test_callbacks_and_counts(self, pipeline):
        seen = []
        pipeline.on_tick(seen.append)
        pipeline.tick(_frame(), now=0.0)
        pipeline.tick(_frame(), now=0.03)
        assert len(seen) == 2
        assert pipeline.total_ticks == 2
        assert pipeline.metrics.ticks_total == 2
        assert pipeline.snapshot() is seen[-1]

    def test_profiled_stages(self, pipeline):
        pipeline.tick(_frame(), now=0.0)
        assert {"sequencer", "classification", "manipulation", "tick"} <= set(
            pipeline.profiler.summary()
        )


class TestStaleFrames:
    def test_stale_frame_treated_as_empty(self, pipeline):
        pipeline.tick(_frame(_make_hand(wrist=(0.3, 0.6))), now=0.0)
        snap = pipeline.tick(None, now=0.03)
        assert snap.mode is ControlMode.SCANNING
        assert snap.hands_detected == 0

    def test_hold_stale_frames(self):
        p = InteractionPipeline(timer_clock=lambda: 0.0, hold_stale_frames=True)
        p.tick(_frame(_make_hand(wrist=(0.3, 0.6))), now=0.0)
        snap = p.tick(None, now=0.03)
        assert snap.mode is ControlMode.LEFT

    def test_hold_from_config(self):
        cfg = HoloConfig.from_dict({"server": {"hold_stale_frames": True}})
        assert InteractionPipeline(cfg).hold_stale_frames


class TestElimination:
    def test_offensive_gesture_arms(self, pipeline):
        snap = pipeline.tick(_offensive(), now=0.0)
        assert snap.mode is ControlMode.ARMED
        assert snap.stage is EliminationStage.LOCKING
        assert snap.status == pipeline.config.elimination.locking_label
        assert snap.focus is not None

        kinds = [(r.kind, r.name) for r in pipeline.effects.history]
        assert kinds == [(EffectKind.CUE, "charge"), (EffectKind.SPEECH, "")]

    def test_hands_ignored_while_exploding(self, pipeline):
        armed = pipeline.tick(_offensive(), now=0.0)
        snap = pipeline.tick(_grab(), now=3.5)
        assert snap.stage is EliminationStage.EXPLODING
        assert snap.mode is ControlMode.SEQUENCE
        assert (snap.x, snap.y, snap.z, snap.scale, snap.yaw) == (
            armed.x, armed.y, armed.z, armed.scale, armed.yaw
        )
        assert not snap.grabbing

    def test_full_cycle_effects(self, pipeline):
        pipeline.tick(_offensive(), now=0.0)
        snap = pipeline.tick(_frame(), now=13.0)
        assert snap.stage is EliminationStage.IDLE
        assert snap.mode is ControlMode.SCANNING

        history = pipeline.effects.history
        assert [(r.kind, r.timestamp) for r in history] == [
            (EffectKind.CUE, 0.0),
            (EffectKind.SPEECH, 0.0),
            (EffectKind.CUE, 3.0),
            (EffectKind.SPEECH, 5.0),
        ]
        assert history[2].name == "explosion"
        assert history[3].text == pipeline.config.elimination.aftermath_text
        assert pipeline.metrics.stage_entries == {
            "locking": 1, "exploding": 1, "destroyed": 1, "idle": 1,
        }

    def test_rearm_after_cycle(self, pipeline):
        pipeline.tick(_offensive(), now=0.0)
        pipeline.tick(_frame(), now=13.0)
        snap = pipeline.tick(_offensive(), now=13.5)
        assert snap.stage is EliminationStage.LOCKING
        assert pipeline.sequencer.cycles == 2

    def test_reset_keeps_sequence(self, pipeline):
        pipeline.tick(_offensive(), now=0.0)
        pipeline.reset()
        assert pipeline.sequencer.stage is EliminationStage.LOCKING
        assert pipeline.total_ticks == 0


class TestDetector:
    def test_process_without_detector(self, pipeline):
        with pytest.raises(RuntimeError):
            pipeline.process(np.zeros((4, 4, 3), dtype=np.uint8), 0.0)

    def test_process_with_detector(self):
        class FakeDetector:
            closed = False

            def detect(self, frame_rgb, timestamp):
                return _frame(_make_hand(wrist=(0.3, 0.6)), t=timestamp)

            def close(self):
                self.closed = True

        detector = FakeDetector()
        with InteractionPipeline(detector=detector, timer_clock=lambda: 0.0) as p:
            snap = p.process(np.zeros((4, 4, 3), dtype=np.uint8), 1.0)
        assert snap.mode is ControlMode.LEFT
        assert snap.timestamp == 1.0
        assert detector.closed


class TestSnapshot:
    def test_to_dict(self, pipeline):
        d = pipeline.tick(_grab(), now=0.5).to_dict()
        assert d["type"] == "state"
        assert set(d["rotation"]) == {"pitch", "yaw"}
        assert set(d["position"]) == {"x", "y", "z"}
        assert d["stage"] == "idle"
        assert d["mode"] == "grab"
        assert d["hands"] == {"left": False, "right": True}
        assert d["focus"] is None
        assert d["cursor"] == {"x": pytest.approx(0.44), "y": pytest.approx(0.62)}

    def test_cursor_is_mirrored_right_wrist(self, pipeline):
        snap = pipeline.tick(_frame(_make_hand(wrist=(0.8, 0.4))), now=0.0)
        assert snap.cursor == pytest.approx((0.2, 0.4))

    def test_no_cursor_without_right_hand(self, pipeline):
        snap = pipeline.tick(_frame(_make_hand(wrist=(0.3, 0.6))), now=0.0)
        assert snap.cursor is None
        assert snap.to_dict()["cursor"] is None


class TestGrabAcrossSequence:
    def test_grab_does_not_survive_sequence(self, pipeline):
        assert pipeline.tick(_grab(), now=0.0).grabbing
        armed = pipeline.tick(_offensive(), now=0.1)
        assert armed.mode is ControlMode.ARMED

        t = 0.6
        while t < 12.9:
            snap = pipeline.tick(_grab(), now=t)
            assert not snap.grabbing
            t += 0.5

        dead_band = _frame(_make_hand(pinch=0.065, fingers=(False, False, False)))
        snap = pipeline.tick(dead_band, now=13.5)
        assert snap.stage is EliminationStage.IDLE
        assert snap.mode is ControlMode.SCALE
        assert not snap.grabbing
        assert snap.x < armed.x  # recentering, not dragged toward the thumb
        assert pipeline.metrics.grab_transitions == {"on": 1, "off": 1}
