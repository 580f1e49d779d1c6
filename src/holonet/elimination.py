"""Timed "elimination" demo sequence.

Once armed, the sequence runs on the clock alone:

    idle --arm()--> locking --3.0s--> exploding --2.0s--> destroyed --8.0s--> idle

Nothing the user does can cancel, pause or speed it up, and arming is
ignored until it is back at idle. Stage changes are driven by the monotonic
time passed to `update()` each tick instead of scheduled callbacks, so the
whole cycle can be stepped deterministically in tests.

Usage:
    sequencer = EliminationSequencer()
    sequencer.on_transition(lambda t: print(t.stage, t.label))
    sequencer.arm(now)
    ...
    for transition in sequencer.update(now):
        ...
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from holonet.config import EliminationConfig
from holonet.effects import Cue

logger = logging.getLogger("holonet.elimination")


class EliminationStage(Enum):
    IDLE = "idle"
    LOCKING = "locking"
    EXPLODING = "exploding"
    DESTROYED = "destroyed"


_NEXT_STAGE = {
    EliminationStage.LOCKING: EliminationStage.EXPLODING,
    EliminationStage.EXPLODING: EliminationStage.DESTROYED,
    EliminationStage.DESTROYED: EliminationStage.IDLE,
}


@dataclass
class StageTransition:
    """A stage change plus the side effects requested on entering it."""
    previous: EliminationStage
    stage: EliminationStage
    timestamp: float  # clock time the new stage was entered
    label: Optional[str] = None
    speech: Optional[str] = None
    cue: Optional[Cue] = None

    @property
    def is_silent(self) -> bool:
        return self.label is None and self.speech is None and self.cue is None

    def to_dict(self) -> dict:
        return {
            "type": "stage",
            "previous": self.previous.value,
            "stage": self.stage.value,
            "timestamp": self.timestamp,
            "label": self.label,
            "speech": self.speech,
            "cue": self.cue.value if self.cue else None,
        }


@dataclass
class FocusPose:
    """Pose the renderer pulls the object to while the sequence runs."""
    x: float
    y: float
    z: float
    yaw: float
    scale: float

    def to_dict(self) -> dict:
        return {"x": self.x, "y": self.y, "z": self.z, "yaw": self.yaw, "scale": self.scale}


class EliminationSequencer:
    """Clock-driven state machine for the elimination demo."""

    def __init__(self, config: Optional[EliminationConfig] = None):
        self.config = config or EliminationConfig()
        self._stage = EliminationStage.IDLE
        self._entered_at = 0.0
        self._callbacks: list[Callable[[StageTransition], None]] = []
        self._cycles = 0

    def on_transition(self, callback: Callable[[StageTransition], None]):
        """Register a callback fired for every stage change."""
        self._callbacks.append(callback)

    @property
    def stage(self) -> EliminationStage:
        return self._stage

    @property
    def is_idle(self) -> bool:
        return self._stage is EliminationStage.IDLE

    @property
    def entered_at(self) -> float:
        return self._entered_at

    @property
    def cycles(self) -> int:
        """Number of sequences armed so far."""
        return self._cycles

    @property
    def label(self) -> Optional[str]:
        """Status label owned by the current stage, None while idle."""
        return self._label_for(self._stage)

    def duration(self, stage: EliminationStage) -> float:
        return {
            EliminationStage.LOCKING: self.config.locking_seconds,
            EliminationStage.EXPLODING: self.config.exploding_seconds,
            EliminationStage.DESTROYED: self.config.destroyed_seconds,
        }.get(stage, 0.0)

    @property
    def cycle_seconds(self) -> float:
        return (
            self.config.locking_seconds
            + self.config.exploding_seconds
            + self.config.destroyed_seconds
        )

    def time_in_stage(self, now: float) -> float:
        if self.is_idle:
            return 0.0
        return max(0.0, now - self._entered_at)

    def remaining(self, now: float) -> float:
        """Seconds until the current stage ends (0 while idle)."""
        if self.is_idle:
            return 0.0
        return max(0.0, self._entered_at + self.duration(self._stage) - now)

    def arm(self, now: float) -> Optional[StageTransition]:
        """Start the sequence. Ignored unless the sequencer is idle."""
        if not self.is_idle:
            logger.debug("Arm ignored, sequence already at %s", self._stage.value)
            return None

        self._cycles += 1
        logger.info("Elimination sequence armed (cycle %d)", self._cycles)
        return self._enter(EliminationStage.LOCKING, now)

    def update(self, now: float) -> list[StageTransition]:
        """Advance through every stage whose deadline has passed.

        A late tick walks each intermediate stage in order; the next stage is
        entered at the previous deadline, not at `now`, so the cycle length
        does not depend on tick timing.
        """
        transitions: list[StageTransition] = []

        while not self.is_idle:
            deadline = self._entered_at + self.duration(self._stage)
            if now < deadline:
                break
            transitions.append(self._enter(_NEXT_STAGE[self._stage], deadline))

        return transitions

    def focus_pose(self) -> Optional[FocusPose]:
        if self.is_idle:
            return None
        x, y, z = self.config.focus_position
        return FocusPose(x=x, y=y, z=z, yaw=self.config.focus_yaw, scale=self.config.focus_scale)

    def _label_for(self, stage: EliminationStage) -> Optional[str]:
        return {
            EliminationStage.LOCKING: self.config.locking_label,
            EliminationStage.EXPLODING: self.config.exploding_label,
            EliminationStage.DESTROYED: self.config.destroyed_label,
        }.get(stage)

    def _enter(self, stage: EliminationStage, at: float) -> StageTransition:
        previous = self._stage
        self._stage = stage
        self._entered_at = at

        transition = StageTransition(
            previous=previous,
            stage=stage,
            timestamp=at,
            label=self._label_for(stage),
        )
        if stage is EliminationStage.LOCKING:
            transition.speech = self.config.announce_text
            transition.cue = Cue.CHARGE
        elif stage is EliminationStage.EXPLODING:
            transition.cue = Cue.EXPLOSION
        elif stage is EliminationStage.DESTROYED:
            transition.speech = self.config.aftermath_text

        logger.info("Elimination stage %s -> %s", previous.value, stage.value)

        for cb in self._callbacks:
            cb(transition)

        return transition
