"""Frame orchestration: one tick per rendered frame.

    detection frame -> hand roles -> override check / manipulation -> snapshot

Each tick advances the elimination sequencer on the clock, classifies the
hands from scratch, runs the manipulation controller and publishes a
read-only `FrameSnapshot` for the renderer and HUD. Tick and snapshot
access are serialized behind one lock, so a server thread may read while a
capture thread ticks.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

import numpy as np

from holonet.config import HoloConfig
from holonet.controller import ControlMode, ManipulationController, status_label
from holonet.effects import EffectDispatcher
from holonet.elimination import EliminationSequencer, EliminationStage, FocusPose, StageTransition
from holonet.gestures import GestureReading
from holonet.hands import DetectionFrame, HandRoles, Landmark, classify_hands
from holonet.metrics import MetricsCollector
from holonet.regions import region_for_yaw
from holonet.timing import FrameTimer, StageProfiler

logger = logging.getLogger("holonet.pipeline")


@dataclass
class FrameSnapshot:
    """Everything the renderer and HUD may read after a tick."""
    pitch: float
    yaw: float
    x: float
    y: float
    z: float
    scale: float
    stage: EliminationStage
    status: str
    grabbing: bool
    fps: float
    region: str
    mode: ControlMode
    hands_detected: int = 0
    has_left: bool = False
    has_right: bool = False
    focus: Optional[FocusPose] = None
    cursor: Optional[tuple[float, float]] = None  # mirrored right wrist, screen coords
    readings: dict[str, dict] = field(default_factory=dict)
    timestamp: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": "state",
            "rotation": {"pitch": self.pitch, "yaw": self.yaw},
            "position": {"x": self.x, "y": self.y, "z": self.z},
            "scale": self.scale,
            "stage": self.stage.value,
            "status": self.status,
            "grabbing": self.grabbing,
            "fps": round(self.fps, 1),
            "region": self.region,
            "mode": self.mode.value,
            "hands_detected": self.hands_detected,
            "hands": {"left": self.has_left, "right": self.has_right},
            "focus": self.focus.to_dict() if self.focus else None,
            "cursor": {"x": self.cursor[0], "y": self.cursor[1]} if self.cursor else None,
            "readings": self.readings,
            "timestamp": self.timestamp,
        }


class InteractionPipeline:
    """Runs classification, manipulation and the elimination sequence per tick.

    Usage:
        pipeline = InteractionPipeline()
        snapshot = pipeline.tick(DetectionFrame.from_arrays(hands), now=t)

    A tick with no frame (`None`, the detector had nothing new) is treated
    as a frame without hands unless `hold_stale_frames` is set, in which
    case the previous frame is processed again.
    """

    def __init__(
        self,
        config: Optional[HoloConfig] = None,
        detector: Optional[Any] = None,
        effects: Optional[EffectDispatcher] = None,
        metrics: Optional[MetricsCollector] = None,
        clock: Callable[[], float] = time.monotonic,
        timer_clock: Callable[[], float] = time.perf_counter,
        hold_stale_frames: Optional[bool] = None,
    ):
        self.config = config or HoloConfig()
        self.detector = detector
        self.effects = effects or EffectDispatcher()
        self.metrics = metrics or MetricsCollector()
        self.profiler = StageProfiler()
        self.clock = clock
        self.hold_stale_frames = (
            self.config.server.hold_stale_frames if hold_stale_frames is None else hold_stale_frames
        )

        self.controller = ManipulationController(self.config.manipulation, self.config.gestures)
        self.sequencer = EliminationSequencer(self.config.elimination)
        self.sequencer.on_transition(self._on_transition)

        self._timer = FrameTimer(timer_clock)
        self._lock = threading.RLock()
        self._callbacks: list[Callable[[FrameSnapshot], None]] = []
        self._last_frame: Optional[DetectionFrame] = None
        self._snapshot = self._build_snapshot(HandRoles(), 0.0)
        self._total_ticks = 0

    def on_tick(self, callback: Callable[[FrameSnapshot], None]):
        """Register a callback receiving each tick's snapshot."""
        self._callbacks.append(callback)

    @property
    def total_ticks(self) -> int:
        return self._total_ticks

    def tick(self, frame: Optional[DetectionFrame], now: Optional[float] = None) -> FrameSnapshot:
        """Process one detection frame (or its absence) and publish a snapshot."""
        now = self.clock() if now is None else now

        with self._lock:
            self._timer.start()
            t0 = time.perf_counter()

            if frame is None and self.hold_stale_frames:
                frame = self._last_frame
            elif frame is not None:
                self._last_frame = frame

            with self.profiler.stage("sequencer"):
                self.sequencer.update(now)

            with self.profiler.stage("classification"):
                roles = classify_hands(
                    frame.hands if frame is not None else (),
                    self.config.gestures.role_split_x,
                )

            was_grabbing = self.controller.is_grabbing
            with self.profiler.stage("manipulation"):
                mode = self.controller.update(roles, self.sequencer, now)
            if self.controller.is_grabbing != was_grabbing:
                self.metrics.record_grab(self.controller.is_grabbing)

            fps = self._timer.stop()
            self.profiler.record("tick", self._timer.elapsed_ms)

            self._total_ticks += 1
            snapshot = self._build_snapshot(roles, fps, now)
            self._snapshot = snapshot
            self.metrics.record_tick(
                time.perf_counter() - t0,
                len(frame.hands) if frame is not None else 0,
                mode.value,
                fps,
            )

        for cb in self._callbacks:
            cb(snapshot)
        return snapshot

    def process(self, frame_rgb: np.ndarray, timestamp: Optional[float] = None) -> FrameSnapshot:
        """Run the configured detector on an RGB frame, then tick."""
        if self.detector is None:
            raise RuntimeError("InteractionPipeline.process() needs a detector")
        timestamp = self.clock() if timestamp is None else timestamp
        frame = self.detector.detect(frame_rgb, timestamp)
        return self.tick(frame, now=timestamp)

    def snapshot(self) -> FrameSnapshot:
        with self._lock:
            return self._snapshot

    def reset(self):
        """Clear manipulation state and counters.

        The elimination sequence is left running; once armed it only ends
        on its own clock.
        """
        with self._lock:
            self.controller.reset()
            self._last_frame = None
            self._total_ticks = 0
            self.profiler.reset()
            self._snapshot = self._build_snapshot(HandRoles(), 0.0)

    def close(self):
        if self.detector is not None:
            self.detector.close()

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()

    # --- internals ---

    def _on_transition(self, transition: StageTransition):
        self.metrics.record_stage(transition.stage.value)
        if transition.cue is not None:
            self.effects.cue(transition.cue, transition.timestamp)
        if transition.speech:
            self.effects.speak(transition.speech, transition.timestamp)

    def _build_snapshot(self, roles: HandRoles, fps: float, now: float = 0.0) -> FrameSnapshot:
        target = self.controller.target
        stage = self.sequencer.stage
        readings = {}
        for role, hand in (("left", roles.left), ("right", roles.right)):
            if hand is not None:
                readings[role] = GestureReading.of(hand, self.config.gestures).to_dict()

        cursor = None
        if roles.right is not None:
            wrist_x, wrist_y, _ = roles.right.point(Landmark.WRIST)
            cursor = (1.0 - wrist_x, wrist_y)

        return FrameSnapshot(
            pitch=target.pitch,
            yaw=target.yaw,
            x=target.x,
            y=target.y,
            z=target.z,
            scale=target.scale,
            stage=stage,
            status=status_label(
                self.controller.mode, stage, self.config.labels, self.sequencer.label
            ),
            grabbing=self.controller.is_grabbing,
            fps=fps,
            region=region_for_yaw(target.yaw).value,
            mode=self.controller.mode,
            hands_detected=roles.count,
            has_left=roles.left is not None,
            has_right=roles.right is not None,
            focus=self.sequencer.focus_pose(),
            cursor=cursor,
            readings=readings,
            timestamp=now,
        )
