"""Hand landmark records and per-frame left/right role assignment."""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import Iterable, Optional, Sequence

import numpy as np


class Landmark(IntEnum):
    """MediaPipe hand landmark indices."""
    WRIST = 0
    THUMB_CMC = 1
    THUMB_MCP = 2
    THUMB_IP = 3
    THUMB_TIP = 4
    INDEX_MCP = 5
    INDEX_PIP = 6
    INDEX_DIP = 7
    INDEX_TIP = 8
    MIDDLE_MCP = 9
    MIDDLE_PIP = 10
    MIDDLE_DIP = 11
    MIDDLE_TIP = 12
    RING_MCP = 13
    RING_PIP = 14
    RING_DIP = 15
    RING_TIP = 16
    PINKY_MCP = 17
    PINKY_PIP = 18
    PINKY_DIP = 19
    PINKY_TIP = 20


NUM_LANDMARKS = len(Landmark)


class Hand:
    """21 normalized landmarks for one detected hand.

    Coordinates are (x, y, z) with x and y in [0, 1] relative to the camera
    frame (y grows downward). 2D input is accepted and padded with z = 0.
    The underlying array is read-only.
    """

    __slots__ = ("_points",)

    def __init__(self, points: Sequence[Sequence[float]] | np.ndarray):
        if isinstance(points, Hand):
            points = points.points
        arr = np.array(points, dtype=np.float64)
        if arr.ndim != 2 or arr.shape[0] != NUM_LANDMARKS or arr.shape[1] not in (2, 3):
            raise ValueError(
                f"Hand expects {NUM_LANDMARKS} landmarks of 2 or 3 coordinates, "
                f"got shape {arr.shape}"
            )
        if arr.shape[1] == 2:
            arr = np.hstack([arr, np.zeros((NUM_LANDMARKS, 1), dtype=np.float64)])
        arr.setflags(write=False)
        self._points = arr

    @property
    def points(self) -> np.ndarray:
        return self._points

    def __getitem__(self, index: Landmark | int) -> np.ndarray:
        return self._points[int(index)]

    def point(self, index: Landmark | int) -> tuple[float, float, float]:
        x, y, z = self._points[int(index)]
        return float(x), float(y), float(z)

    @property
    def wrist(self) -> np.ndarray:
        return self._points[Landmark.WRIST]

    def to_list(self) -> list[list[float]]:
        return self._points.tolist()

    def __len__(self) -> int:
        return NUM_LANDMARKS

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Hand):
            return NotImplemented
        return bool(np.array_equal(self._points, other._points))

    def __hash__(self) -> int:
        return hash(self._points.tobytes())

    def __repr__(self) -> str:
        x, y, _ = self.point(Landmark.WRIST)
        return f"Hand(wrist=({x:.3f}, {y:.3f}))"


@dataclass(frozen=True)
class DetectionFrame:
    """Hands reported by the detector for one video frame."""
    hands: tuple[Hand, ...] = ()
    timestamp: float = 0.0

    @classmethod
    def from_arrays(
        cls, hands: Iterable[Sequence[Sequence[float]] | np.ndarray], timestamp: float = 0.0
    ) -> DetectionFrame:
        return cls(hands=tuple(h if isinstance(h, Hand) else Hand(h) for h in hands), timestamp=timestamp)

    def __len__(self) -> int:
        return len(self.hands)


@dataclass
class HandRoles:
    """At most one hand per role for the current frame."""
    left: Optional[Hand] = None
    right: Optional[Hand] = None

    @property
    def count(self) -> int:
        return (self.left is not None) + (self.right is not None)

    @property
    def any(self) -> bool:
        return self.left is not None or self.right is not None

    @property
    def both(self) -> bool:
        return self.left is not None and self.right is not None

    def present(self) -> list[Hand]:
        return [h for h in (self.left, self.right) if h is not None]


def classify_hands(hands: Iterable[Hand], split_x: float = 0.5) -> HandRoles:
    """Assign hands to left/right by wrist x position.

    Wrist x below `split_x` is left, otherwise right. Roles are recomputed
    from scratch every frame; when two hands land on the same side the later
    one replaces the earlier one.
    """
    roles = HandRoles()
    for hand in hands:
        if float(hand.wrist[0]) < split_x:
            roles.left = hand
        else:
            roles.right = hand
    return roles
