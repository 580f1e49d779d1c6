"""Per-frame manipulation logic: hands in, object pose targets out.

The controller turns classified hands into a `ControlTarget` (pitch, yaw,
position, scale) for the rendered object. Every axis moves by exponential
smoothing toward a per-frame target so detection jitter does not show up
as jumps. Branch priority each frame:

1. Offensive gesture on either hand while the sequencer is idle: arm the
   sequencer and freeze everything for this frame.
2. Sequencer not idle: nothing moves and the grab is released; the
   sequence owns the object.
3. No hands: idle yaw drift, drift back to the anchor, release the grab.
4. Both hands: tilt (pitch) from the vertical offset between wrists.
5. Left hand: yaw from wrist x, depth from hand span.
6. Right hand: pinch with hysteresis. Grabbing drags the object under the
   thumb (plus auto-rotate and a fixed grip scale for the "OK" shape);
   an open pinch sets the scale and recenters on the anchor.
7. No right hand: recenter on the anchor and release the grab.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from enum import Enum
from typing import Optional

from holonet.config import GestureConfig, ManipulationConfig, StatusLabels
from holonet.elimination import EliminationSequencer, EliminationStage
from holonet.geometry import clamp, lerp, map_range, unproject
from holonet.gestures import (
    any_offensive,
    hand_span,
    is_rotate_trigger,
    pinch_distance,
)
from holonet.hands import Hand, HandRoles, Landmark

logger = logging.getLogger("holonet.controller")


class ControlMode(Enum):
    STANDBY = "standby"
    DUAL = "dual"
    LEFT = "left"
    ROTATE = "rotate"
    GRAB = "grab"
    SCALE = "scale"
    SCANNING = "scanning"
    ARMED = "armed"  # this frame armed the elimination sequence
    SEQUENCE = "sequence"  # elimination running, hands ignored


@dataclass
class ControlTarget:
    """Desired pose of the manipulated object. Angles in radians."""
    pitch: float = 0.0
    yaw: float = 0.0
    x: float = 0.0
    y: float = 0.0
    z: float = 0.0
    scale: float = 1.0

    def copy(self) -> ControlTarget:
        return ControlTarget(**asdict(self))

    def to_dict(self) -> dict:
        return {
            "rotation": {"pitch": self.pitch, "yaw": self.yaw},
            "position": {"x": self.x, "y": self.y, "z": self.z},
            "scale": self.scale,
        }


class GrabHysteresis:
    """Pinch grab state with a dead band between the on and off thresholds.

    Turns on below `on_below` and off above `off_above`; anything in
    between keeps the previous state.
    """

    def __init__(self, on_below: float = 0.05, off_above: float = 0.08):
        if on_below > off_above:
            raise ValueError("on_below must not exceed off_above")
        self.on_below = on_below
        self.off_above = off_above
        self.active = False

    def update(self, pinch: float) -> bool:
        if self.active:
            if pinch > self.off_above:
                self.active = False
        elif pinch < self.on_below:
            self.active = True
        return self.active

    def reset(self):
        self.active = False


def status_label(
    mode: ControlMode,
    stage: EliminationStage = EliminationStage.IDLE,
    labels: Optional[StatusLabels] = None,
    stage_label: Optional[str] = None,
) -> str:
    """Human-readable status for a mode; a running sequence always wins."""
    labels = labels or StatusLabels()
    if stage is not EliminationStage.IDLE and stage_label:
        return stage_label
    return {
        ControlMode.DUAL: labels.dual,
        ControlMode.LEFT: labels.left,
        ControlMode.ROTATE: labels.rotate,
        ControlMode.GRAB: labels.grab,
        ControlMode.SCALE: labels.scale,
        ControlMode.SCANNING: labels.scanning,
    }.get(mode, labels.standby)


class ManipulationController:
    """Owns the grab state and the control target."""

    def __init__(
        self,
        config: Optional[ManipulationConfig] = None,
        gestures: Optional[GestureConfig] = None,
    ):
        self.config = config or ManipulationConfig()
        self.gestures = gestures or GestureConfig()
        self.grab = GrabHysteresis(self.gestures.grab_on_below, self.gestures.grab_off_above)
        self.target = self._initial_target()
        self.mode = ControlMode.SCANNING
        self.last_pinch: Optional[float] = None

    def _initial_target(self) -> ControlTarget:
        return ControlTarget(
            x=self.config.anchor_x,
            y=self.config.anchor_y,
            z=0.0,
            scale=self.config.initial_scale,
        )

    @property
    def is_grabbing(self) -> bool:
        return self.grab.active

    def reset(self):
        self.grab.reset()
        self.target = self._initial_target()
        self.mode = ControlMode.SCANNING
        self.last_pinch = None

    def update(
        self, roles: HandRoles, sequencer: EliminationSequencer, now: float
    ) -> ControlMode:
        """Run one frame of manipulation and return the branch that ran."""
        if sequencer.is_idle and any_offensive(roles, self.gestures):
            sequencer.arm(now)
            self.mode = ControlMode.ARMED
            return self.mode

        if not sequencer.is_idle:
            self._release()
            self.mode = ControlMode.SEQUENCE
            return self.mode

        if not roles.any:
            self.mode = self._idle()
            return self.mode

        mode = ControlMode.STANDBY

        if roles.both:
            mode = ControlMode.DUAL
            self._tilt(roles.left, roles.right)

        if roles.left is not None:
            self._steer(roles.left)
            if roles.right is None:
                mode = ControlMode.LEFT

        if roles.right is not None:
            right_mode = self._manipulate(roles.right)
            if right_mode is not ControlMode.SCALE or roles.left is None:
                mode = right_mode
        else:
            self._recenter(self.config.blend.release_position)
            self._release()

        self.mode = mode
        return mode

    # --- branches ---

    def _idle(self) -> ControlMode:
        cfg = self.config
        self.target.yaw += cfg.idle_yaw_drift
        self.target.z = lerp(self.target.z, 0.0, cfg.blend.idle_depth)
        self._recenter(cfg.blend.idle_position)
        self._release()
        return ControlMode.SCANNING

    def _tilt(self, left: Hand, right: Hand):
        cfg = self.config
        diff_y = float(left.wrist[1]) - float(right.wrist[1])
        target = clamp(
            map_range(diff_y, *cfg.tilt_input, *cfg.pitch_range), *cfg.pitch_range
        )
        self.target.pitch = lerp(self.target.pitch, target, cfg.blend.pitch)

    def _steer(self, left: Hand):
        cfg = self.config
        # yaw follows the wrist directly; depth is smoothed
        self.target.yaw = clamp(
            map_range(float(left.wrist[0]), *cfg.yaw_input, *cfg.yaw_range), *cfg.yaw_range
        )
        target_z = map_range(hand_span(left), *cfg.span_input, *cfg.depth_range)
        self.target.z = lerp(self.target.z, target_z, cfg.blend.depth)

    def _manipulate(self, right: Hand) -> ControlMode:
        cfg = self.config
        pinch = pinch_distance(right)
        self.last_pinch = pinch

        was_grabbing = self.grab.active
        grabbing = self.grab.update(pinch)
        if grabbing != was_grabbing:
            logger.debug("Grab %s (pinch=%.3f)", "on" if grabbing else "off", pinch)

        if not grabbing:
            target_scale = clamp(
                map_range(pinch, *cfg.pinch_input, *cfg.scale_range), *cfg.scale_range
            )
            self.target.scale = lerp(self.target.scale, target_scale, cfg.blend.spread_scale)
            self._recenter(cfg.blend.spread_position)
            return ControlMode.SCALE

        mode = ControlMode.GRAB
        if is_rotate_trigger(
            right, self.gestures.rotate_min_extended, self.gestures.extension_ratio
        ):
            mode = ControlMode.ROTATE
            self.target.yaw += cfg.rotate_step
            self.target.scale = lerp(self.target.scale, cfg.grip_scale, cfg.blend.grip_scale)

        # camera image is mirrored for display
        thumb_x, thumb_y, _ = right.point(Landmark.THUMB_TIP)
        world_x, world_y = unproject(
            1 - thumb_x,
            thumb_y,
            self.target.z,
            camera_z=cfg.camera_z,
            fov_deg=cfg.fov_deg,
            aspect=cfg.aspect,
        )
        self.target.x = lerp(self.target.x, world_x, cfg.blend.drag_position)
        self.target.y = lerp(self.target.y, world_y, cfg.blend.drag_position)
        return mode

    def _recenter(self, factor: float):
        self.target.x = lerp(self.target.x, self.config.anchor_x, factor)
        self.target.y = lerp(self.target.y, self.config.anchor_y, factor)

    def _release(self):
        if self.grab.active:
            logger.debug("Grab released")
        self.grab.reset()
