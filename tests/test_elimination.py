"""Tests for the clock-driven elimination sequence."""

import pytest

from holonet.config import EliminationConfig
from holonet.effects import Cue
from holonet.elimination import EliminationSequencer, EliminationStage, FocusPose


@pytest.fixture
def seq():
    return EliminationSequencer()


class TestArming:
    def test_arm_enters_locking(self, seq):
        transition = seq.arm(0.0)
        assert seq.stage is EliminationStage.LOCKING
        assert transition.previous is EliminationStage.IDLE
        assert transition.cue is Cue.CHARGE
        assert transition.speech == seq.config.announce_text
        assert transition.label == seq.config.locking_label
        assert seq.cycles == 1

    def test_double_arm_ignored(self, seq):
        seq.arm(0.0)
        assert seq.arm(1.0) is None
        assert seq.entered_at == 0.0
        assert seq.cycles == 1

    def test_idle_has_no_label(self, seq):
        assert seq.label is None
        assert seq.is_idle


class TestTimeline:
    def test_stages_in_order(self, seq):
        seq.arm(0.0)
        assert seq.update(2.999) == []

        (t,) = seq.update(3.0)
        assert t.stage is EliminationStage.EXPLODING
        assert t.cue is Cue.EXPLOSION
        assert t.speech is None
        assert t.label == seq.config.exploding_label

        assert seq.update(4.5) == []
        (t,) = seq.update(5.0)
        assert t.stage is EliminationStage.DESTROYED
        assert t.cue is None
        assert t.speech == seq.config.aftermath_text

        (t,) = seq.update(13.0)
        assert t.stage is EliminationStage.IDLE
        assert t.is_silent
        assert seq.is_idle

    def test_late_tick_walks_every_stage(self, seq):
        seq.arm(0.0)
        transitions = seq.update(60.0)
        assert [t.stage for t in transitions] == [
            EliminationStage.EXPLODING,
            EliminationStage.DESTROYED,
            EliminationStage.IDLE,
        ]
        # each stage starts at the previous deadline, not at the late tick
        assert [t.timestamp for t in transitions] == [3.0, 5.0, 13.0]

    def test_cycle_length_independent_of_tick_rate(self, seq):
        seq.arm(100.5)
        now = 100.5
        end = None
        while end is None:
            now += 0.037
            for t in seq.update(now):
                if t.stage is EliminationStage.IDLE:
                    end = t.timestamp
        assert end - 100.5 == pytest.approx(13.0)
        assert seq.cycle_seconds == 13.0

    def test_rearm_after_cycle(self, seq):
        seq.arm(0.0)
        seq.update(13.0)
        assert seq.arm(14.0) is not None
        assert seq.cycles == 2

    def test_custom_durations(self):
        seq = EliminationSequencer(EliminationConfig(
            locking_seconds=1.0, exploding_seconds=1.0, destroyed_seconds=1.0
        ))
        seq.arm(0.0)
        seq.update(3.0)
        assert seq.is_idle


class TestQueries:
    def test_remaining_and_elapsed(self, seq):
        assert seq.remaining(5.0) == 0.0
        seq.arm(10.0)
        assert seq.time_in_stage(11.0) == pytest.approx(1.0)
        assert seq.remaining(11.0) == pytest.approx(2.0)
        seq.update(13.5)
        assert seq.stage is EliminationStage.EXPLODING
        assert seq.remaining(13.5) == pytest.approx(1.5)

    def test_duration(self, seq):
        assert seq.duration(EliminationStage.LOCKING) == 3.0
        assert seq.duration(EliminationStage.EXPLODING) == 2.0
        assert seq.duration(EliminationStage.DESTROYED) == 8.0
        assert seq.duration(EliminationStage.IDLE) == 0.0

    def test_focus_pose(self, seq):
        assert seq.focus_pose() is None
        seq.arm(0.0)
        assert seq.focus_pose() == FocusPose(x=0.0, y=-0.5, z=0.0, yaw=-4.0, scale=1.2)


class TestCallbacks:
    def test_callback_per_transition(self, seq):
        seen = []
        seq.on_transition(lambda t: seen.append((t.previous.value, t.stage.value)))
        seq.arm(0.0)
        seq.update(20.0)
        assert seen == [
            ("idle", "locking"),
            ("locking", "exploding"),
            ("exploding", "destroyed"),
            ("destroyed", "idle"),
        ]

    def test_to_dict(self, seq):
        d = seq.arm(0.0).to_dict()
        assert d["type"] == "stage"
        assert d["stage"] == "locking"
        assert d["cue"] == "charge"
