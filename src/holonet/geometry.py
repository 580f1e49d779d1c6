"""Small numeric helpers shared by the gesture detectors and the controller."""

from __future__ import annotations

import math
from typing import Sequence


def distance(a: Sequence[float], b: Sequence[float]) -> float:
    """Euclidean distance between two points, using only x and y."""
    return math.hypot(float(b[0]) - float(a[0]), float(b[1]) - float(a[1]))


def map_range(
    value: float, in_min: float, in_max: float, out_min: float, out_max: float
) -> float:
    """Linearly remap `value` from [in_min, in_max] to [out_min, out_max].

    The result is not clamped; values outside the input range extrapolate.
    """
    return (value - in_min) * (out_max - out_min) / (in_max - in_min) + out_min


def lerp(start: float, end: float, t: float) -> float:
    """Move `start` toward `end` by fraction `t` (exponential smoothing step)."""
    return start * (1 - t) + end * t


def clamp(value: float, lo: float, hi: float) -> float:
    if lo > hi:
        lo, hi = hi, lo
    return max(lo, min(hi, value))


def visible_extent(
    fov_deg: float, aspect: float, distance_to_camera: float
) -> tuple[float, float]:
    """World-space (width, height) visible at a given distance from a perspective camera."""
    height = 2.0 * math.tan(math.radians(fov_deg) / 2.0) * distance_to_camera
    return height * aspect, height


def unproject(
    screen_x: float,
    screen_y: float,
    object_z: float,
    camera_z: float = 5.0,
    fov_deg: float = 45.0,
    aspect: float = 16 / 9,
) -> tuple[float, float]:
    """Map a normalized screen point to world x/y on the plane z = object_z.

    Screen coordinates are in [0, 1] with y growing downward; the returned
    world y grows upward. The camera looks down -z from (0, 0, camera_z).
    """
    width, height = visible_extent(fov_deg, aspect, camera_z - object_z)
    return (screen_x - 0.5) * width, -(screen_y - 0.5) * height
