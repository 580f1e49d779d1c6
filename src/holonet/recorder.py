"""Record detection frames to disk and replay them without a camera.

Recordings make interaction sessions reproducible: replaying one through
`InteractionPipeline` with the recorded timestamps as the clock gives the
same poses, stages and effect requests every time.
"""

from __future__ import annotations

import json
import time
from pathlib import Path
from typing import Iterator, Optional

import numpy as np

from holonet.hands import NUM_LANDMARKS, DetectionFrame, Hand

FORMAT_VERSION = 1


class FrameRecorder:
    """Collects detection frames with timestamps relative to `start()`.

    Usage:
        recorder = FrameRecorder()
        recorder.start()
        recorder.add_frame(frame)  # in the capture loop
        recorder.save("session.json")
    """

    def __init__(self):
        self._frames: list[DetectionFrame] = []
        self._start_time: Optional[float] = None
        self._recording = False

    def start(self, now: Optional[float] = None):
        self._frames = []
        self._start_time = time.monotonic() if now is None else now
        self._recording = True

    def stop(self) -> int:
        """Stop recording. Returns number of frames captured."""
        self._recording = False
        return len(self._frames)

    @property
    def is_recording(self) -> bool:
        return self._recording

    @property
    def frame_count(self) -> int:
        return len(self._frames)

    @property
    def duration(self) -> float:
        if not self._frames:
            return 0.0
        return self._frames[-1].timestamp

    def add_frame(self, frame: Optional[DetectionFrame], now: Optional[float] = None):
        """Append a frame; `None` (nothing detected) is stored as an empty frame."""
        if not self._recording:
            return

        if now is None:
            now = frame.timestamp if frame is not None else time.monotonic()
        hands = frame.hands if frame is not None else ()
        self._frames.append(DetectionFrame(hands=hands, timestamp=now - self._start_time))

    def save(self, path: str | Path):
        """Save as JSON."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)

        data = {
            "version": FORMAT_VERSION,
            "frame_count": len(self._frames),
            "duration": self.duration,
            "frames": [
                {"timestamp": f.timestamp, "hands": [h.to_list() for h in f.hands]}
                for f in self._frames
            ],
        }
        with open(path, "w") as f:
            json.dump(data, f)

    def save_compact(self, path: str | Path) -> Path:
        """Save as compressed numpy arrays, hands padded to the per-frame maximum."""
        path = Path(path).with_suffix(".npz")
        path.parent.mkdir(parents=True, exist_ok=True)

        n = len(self._frames)
        max_hands = max((len(f.hands) for f in self._frames), default=0)
        hands_array = np.zeros((n, max(max_hands, 1), NUM_LANDMARKS, 3), dtype=np.float32)
        hand_counts = np.zeros(n, dtype=np.int32)
        for i, f in enumerate(self._frames):
            hand_counts[i] = len(f.hands)
            for j, h in enumerate(f.hands):
                hands_array[i, j] = h.points

        np.savez_compressed(
            path,
            timestamps=np.array([f.timestamp for f in self._frames], dtype=np.float64),
            hands=hands_array,
            hand_counts=hand_counts,
        )
        return path


class FramePlayer:
    """Replays a recording as `DetectionFrame`s.

    Usage:
        player = FramePlayer.load("session.json")
        for frame in player.play():
            pipeline.tick(frame, now=frame.timestamp)
    """

    def __init__(self, frames: list[DetectionFrame]):
        self._frames = frames

    @classmethod
    def load(cls, path: str | Path) -> FramePlayer:
        path = Path(path)
        if path.suffix == ".npz":
            return cls._load_compact(path)

        with open(path) as f:
            data = json.load(f)

        version = data.get("version", FORMAT_VERSION)
        if version != FORMAT_VERSION:
            raise ValueError(f"Unsupported recording version: {version}")

        frames = [
            DetectionFrame(
                hands=tuple(Hand(h) for h in entry.get("hands", [])),
                timestamp=float(entry["timestamp"]),
            )
            for entry in data["frames"]
        ]
        return cls(frames)

    @classmethod
    def _load_compact(cls, path: Path) -> FramePlayer:
        data = np.load(path, allow_pickle=False)
        timestamps = data["timestamps"]
        hands_array = data["hands"]
        hand_counts = data["hand_counts"]

        frames = []
        for i in range(len(timestamps)):
            hands = tuple(Hand(hands_array[i, j]) for j in range(int(hand_counts[i])))
            frames.append(DetectionFrame(hands=hands, timestamp=float(timestamps[i])))
        return cls(frames)

    @property
    def frame_count(self) -> int:
        return len(self._frames)

    @property
    def duration(self) -> float:
        if not self._frames:
            return 0.0
        return self._frames[-1].timestamp

    def play(self) -> Iterator[DetectionFrame]:
        """Yield every frame immediately."""
        yield from self._frames

    def play_realtime(self, speed: float = 1.0) -> Iterator[DetectionFrame]:
        """Yield frames at their recorded pace (scaled by `speed`)."""
        if not self._frames:
            return

        start = time.monotonic()
        for frame in self._frames:
            target_time = frame.timestamp / speed
            elapsed = time.monotonic() - start
            if target_time > elapsed:
                time.sleep(target_time - elapsed)
            yield frame

    def get_frame(self, index: int) -> Optional[DetectionFrame]:
        if 0 <= index < len(self._frames):
            return self._frames[index]
        return None
