"""Per-frame gesture predicates over a single hand.

Every function here is pure: it looks at one `Hand` and returns a scalar or
a boolean, with no memory of earlier frames. Stateful interpretation (grab
hysteresis, mode selection) lives in `holonet.controller`.

Distances are measured in the image plane (x, y) in normalized units.
Image y grows downward, so "higher on screen" means a smaller y.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from holonet.config import GestureConfig
from holonet.geometry import distance
from holonet.hands import Hand, HandRoles, Landmark

# (tip, pip) pairs consulted by the rotate trigger
_TRIGGER_FINGERS = (
    (Landmark.MIDDLE_TIP, Landmark.MIDDLE_PIP),
    (Landmark.RING_TIP, Landmark.RING_PIP),
    (Landmark.PINKY_TIP, Landmark.PINKY_PIP),
)

_OTHER_TIPS = (Landmark.INDEX_TIP, Landmark.RING_TIP, Landmark.PINKY_TIP)


def pinch_distance(hand: Hand) -> float:
    """Distance between thumb tip and index tip."""
    return distance(hand[Landmark.THUMB_TIP], hand[Landmark.INDEX_TIP])


def hand_span(hand: Hand) -> float:
    """Wrist to middle-finger MCP distance, a proxy for distance from the camera."""
    return distance(hand[Landmark.WRIST], hand[Landmark.MIDDLE_MCP])


def is_finger_extended(
    hand: Hand, tip: Landmark | int, pip: Landmark | int, ratio: float = 1.2
) -> bool:
    """True when the fingertip is markedly farther from the wrist than its PIP joint.

    Comparing distances from the wrist rather than raw y values keeps the
    test usable when the hand is rotated in the image plane.
    """
    wrist = hand[Landmark.WRIST]
    return distance(wrist, hand[tip]) > distance(wrist, hand[pip]) * ratio


def extended_finger_count(hand: Hand, ratio: float = 1.2) -> int:
    """How many of middle, ring and pinky are extended."""
    return sum(
        1 for tip, pip in _TRIGGER_FINGERS if is_finger_extended(hand, tip, pip, ratio)
    )


def is_rotate_trigger(hand: Hand, min_extended: int = 2, ratio: float = 1.2) -> bool:
    """The "OK" shape: at least `min_extended` of middle/ring/pinky stretched out.

    Only meaningful while the hand is already pinching; the controller
    consults it inside the grab branch.
    """
    return extended_finger_count(hand, ratio) >= min_extended


def is_offensive_gesture(
    hand: Hand, upright_margin: float = 0.1, tip_margin: float = 0.03
) -> bool:
    """Raised middle finger with the others folded.

    The hand must be upright (wrist below the middle tip by more than
    `upright_margin`) and the middle tip must sit above each of the index,
    ring and pinky tips by more than `tip_margin`.
    """
    tip_y = float(hand[Landmark.MIDDLE_TIP][1])
    wrist_y = float(hand[Landmark.WRIST][1])

    if not wrist_y > tip_y + upright_margin:
        return False

    return all(tip_y < float(hand[other][1]) - tip_margin for other in _OTHER_TIPS)


def any_offensive(roles: HandRoles, config: Optional[GestureConfig] = None) -> bool:
    """True when either classified hand shows the offensive gesture."""
    config = config or GestureConfig()
    return any(
        is_offensive_gesture(hand, config.upright_margin, config.middle_tip_margin)
        for hand in roles.present()
    )


@dataclass
class GestureReading:
    """Snapshot of every predicate for one hand, for diagnostics and the HUD."""
    pinch: float
    span: float
    extended: int
    rotate_trigger: bool
    offensive: bool

    @classmethod
    def of(cls, hand: Hand, config: Optional[GestureConfig] = None) -> GestureReading:
        config = config or GestureConfig()
        extended = extended_finger_count(hand, config.extension_ratio)
        return cls(
            pinch=pinch_distance(hand),
            span=hand_span(hand),
            extended=extended,
            rotate_trigger=extended >= config.rotate_min_extended,
            offensive=is_offensive_gesture(
                hand, config.upright_margin, config.middle_tip_margin
            ),
        )

    def to_dict(self) -> dict:
        return {
            "pinch": round(self.pinch, 4),
            "span": round(self.span, 4),
            "extended": self.extended,
            "rotate_trigger": self.rotate_trigger,
            "offensive": self.offensive,
        }
