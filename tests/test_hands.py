"""Tests for hand records and left/right classification."""

import numpy as np
import pytest

from holonet.hands import DetectionFrame, Hand, HandRoles, Landmark, classify_hands


def _make_hand(x: float = 0.5, y: float = 0.5) -> Hand:
    lm = np.zeros((21, 3))
    for i in range(21):
        lm[i] = [x + i * 0.005, y - i * 0.01, 0.0]
    lm[Landmark.WRIST] = [x, y, 0.0]
    return Hand(lm)


class TestHand:
    def test_accepts_2d_points(self):
        hand = Hand([[0.1, 0.2]] * 21)
        assert hand.points.shape == (21, 3)
        assert hand.point(Landmark.INDEX_TIP) == (0.1, 0.2, 0.0)

    def test_rejects_wrong_shape(self):
        with pytest.raises(ValueError):
            Hand(np.zeros((20, 3)))
        with pytest.raises(ValueError):
            Hand(np.zeros((21, 4)))

    def test_read_only(self):
        hand = _make_hand()
        with pytest.raises(ValueError):
            hand.points[0, 0] = 1.0

    def test_copy_is_independent_of_source(self):
        src = np.zeros((21, 3))
        hand = Hand(src)
        src[0, 0] = 0.9
        assert hand.wrist[0] == 0.0

    def test_equality_and_hash(self):
        a, b = _make_hand(0.3), _make_hand(0.3)
        assert a == b
        assert hash(a) == hash(b)
        assert a != _make_hand(0.4)

    def test_wrap_existing_hand(self):
        hand = _make_hand(0.2)
        assert Hand(hand) == hand

    def test_to_list(self):
        assert len(_make_hand().to_list()) == 21


class TestDetectionFrame:
    def test_from_arrays(self):
        frame = DetectionFrame.from_arrays([np.zeros((21, 3)), _make_hand()], timestamp=1.5)
        assert len(frame) == 2
        assert all(isinstance(h, Hand) for h in frame.hands)
        assert frame.timestamp == 1.5

    def test_empty(self):
        assert len(DetectionFrame()) == 0


class TestClassifyHands:
    def test_left_and_right(self):
        left, right = _make_hand(0.2), _make_hand(0.8)
        roles = classify_hands([right, left])
        assert roles.left is left
        assert roles.right is right
        assert roles.both
        assert roles.count == 2

    def test_split_is_right_inclusive(self):
        roles = classify_hands([_make_hand(0.5)])
        assert roles.left is None
        assert roles.right is not None

    def test_same_side_last_wins(self):
        first, second = _make_hand(0.1), _make_hand(0.3)
        roles = classify_hands([first, second])
        assert roles.left is second
        assert roles.right is None
        assert roles.count == 1

    def test_no_hands(self):
        roles = classify_hands([])
        assert roles == HandRoles()
        assert not roles.any
        assert roles.present() == []

    def test_custom_split(self):
        roles = classify_hands([_make_hand(0.55)], split_x=0.6)
        assert roles.left is not None
