"""Configuration for the interaction core, server and camera.

All tuning constants live here so tests and deployments can override them
from a YAML file:

    config = HoloConfig.from_yaml("holonet.yml")

Unknown keys inside a section are ignored; unknown sections are an error.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any

import yaml


@dataclass
class GestureConfig:
    role_split_x: float = 0.5
    grab_on_below: float = 0.05
    grab_off_above: float = 0.08
    extension_ratio: float = 1.2
    rotate_min_extended: int = 2
    upright_margin: float = 0.1
    middle_tip_margin: float = 0.03


@dataclass
class BlendFactors:
    """Per-frame exponential smoothing factors, one per controlled axis."""
    pitch: float = 0.1
    depth: float = 0.05
    grip_scale: float = 0.1
    drag_position: float = 0.15
    spread_scale: float = 0.06
    spread_position: float = 0.08
    release_position: float = 0.05
    idle_depth: float = 0.02
    idle_position: float = 0.05


@dataclass
class ManipulationConfig:
    anchor_x: float = -2.5
    anchor_y: float = 0.0
    initial_scale: float = 1.5

    tilt_input: tuple[float, float] = (-0.3, 0.3)
    pitch_range: tuple[float, float] = (-1.0, 1.0)
    yaw_input: tuple[float, float] = (0.0, 0.5)
    yaw_range: tuple[float, float] = (-1.5, 1.5)
    span_input: tuple[float, float] = (0.05, 0.25)
    depth_range: tuple[float, float] = (3.0, -8.0)
    pinch_input: tuple[float, float] = (0.08, 0.25)
    scale_range: tuple[float, float] = (0.5, 2.5)

    rotate_step: float = 0.25
    grip_scale: float = 0.8
    idle_yaw_drift: float = 0.002

    camera_z: float = 5.0
    fov_deg: float = 45.0
    aspect: float = 16 / 9

    blend: BlendFactors = field(default_factory=BlendFactors)


@dataclass
class EliminationConfig:
    locking_seconds: float = 3.0
    exploding_seconds: float = 2.0
    destroyed_seconds: float = 8.0

    locking_label: str = "Demo mode: locking anomalous node"
    exploding_label: str = "Demo mode: scrubbing traffic"
    destroyed_label: str = "Demo complete: node isolated"

    announce_text: str = (
        "High-risk gesture detected. Entering safety demo mode and isolating "
        "the anomalous node."
    )
    aftermath_text: str = (
        "Simulated scrub complete. Core links are stable. Preparing to leave "
        "demo mode."
    )

    focus_position: tuple[float, float, float] = (0.0, -0.5, 0.0)
    focus_yaw: float = -4.0
    focus_scale: float = 1.2


@dataclass
class StatusLabels:
    standby: str = "Standby"
    dual: str = "Dual-link mode"
    left: str = "Attitude control (push/pull)"
    rotate: str = "Gravity rotation"
    grab: str = "Object grabbed"
    scale: str = "Precision scale (pinch)"
    scanning: str = "Scanning..."


@dataclass
class CameraConfig:
    index: int = 0
    width: int = 1280
    height: int = 720
    model_path: str = "models/hand_landmarker.task"
    max_hands: int = 2
    min_detection_confidence: float = 0.5
    min_tracking_confidence: float = 0.5
    demo_tick_hz: float = 30.0


@dataclass
class ServerConfig:
    host: str = "0.0.0.0"
    port: int = 8765
    log_level: str = "info"
    hold_stale_frames: bool = False


_SECTIONS = {
    "gestures": GestureConfig,
    "manipulation": ManipulationConfig,
    "elimination": EliminationConfig,
    "labels": StatusLabels,
    "camera": CameraConfig,
    "server": ServerConfig,
}


def _build(cls: type, data: dict[str, Any]) -> Any:
    """Instantiate a config dataclass from a dict, dropping unknown keys."""
    kwargs: dict[str, Any] = {}
    defaults = cls()
    for f in fields(cls):
        if f.name not in data:
            continue
        value = data[f.name]
        current = getattr(defaults, f.name)
        if f.name == "blend" and isinstance(value, dict):
            value = _build(BlendFactors, value)
        elif isinstance(current, tuple) and isinstance(value, (list, tuple)):
            value = tuple(float(v) for v in value)
        kwargs[f.name] = value
    return cls(**kwargs)


@dataclass
class HoloConfig:
    gestures: GestureConfig = field(default_factory=GestureConfig)
    manipulation: ManipulationConfig = field(default_factory=ManipulationConfig)
    elimination: EliminationConfig = field(default_factory=EliminationConfig)
    labels: StatusLabels = field(default_factory=StatusLabels)
    camera: CameraConfig = field(default_factory=CameraConfig)
    server: ServerConfig = field(default_factory=ServerConfig)

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> HoloConfig:
        data = data or {}
        unknown = set(data) - set(_SECTIONS)
        if unknown:
            raise ValueError(f"Unknown config sections: {sorted(unknown)}")

        sections = {
            name: _build(section_cls, data.get(name) or {})
            for name, section_cls in _SECTIONS.items()
        }
        return cls(**sections)

    @classmethod
    def from_yaml(cls, path: str | Path) -> HoloConfig:
        with open(path) as f:
            return cls.from_dict(yaml.safe_load(f))

    def to_dict(self) -> dict[str, Any]:
        def plain(value: Any) -> Any:
            if isinstance(value, dict):
                return {k: plain(v) for k, v in value.items()}
            if isinstance(value, tuple):
                return list(value)
            return value

        return plain(asdict(self))

    def to_yaml(self, path: str | Path):
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            yaml.dump(self.to_dict(), f, default_flow_style=False, sort_keys=False)
