"""Side-effect requests sent to the audio and speech front end.

The interaction core never plays sound itself. It emits fire-and-forget
`EffectRequest`s; whoever renders the scene (the browser client behind the
WebSocket server, a test, a log) subscribes to them.

Usage:
    effects = EffectDispatcher()

    @effects.on_cue
    def play(request):
        audio.play(request.name)

    effects.cue(Cue.CHARGE)
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

logger = logging.getLogger("holonet.effects")


class Cue(Enum):
    CHARGE = "charge"
    EXPLOSION = "explosion"


class EffectKind(Enum):
    CUE = "cue"
    SPEECH = "speech"


@dataclass
class EffectRequest:
    kind: EffectKind
    name: str = ""  # cue name for CUE requests
    text: str = ""  # spoken line for SPEECH requests
    timestamp: float = 0.0

    def to_dict(self) -> dict:
        return {
            "type": "effect",
            "kind": self.kind.value,
            "name": self.name,
            "text": self.text,
            "timestamp": self.timestamp,
        }


Handler = Callable[[EffectRequest], None]


class EffectDispatcher:
    """Routes effect requests to registered handlers.

    A failing handler is logged and skipped; requests never raise back into
    the frame loop.
    """

    def __init__(self, history_size: int = 50):
        self._handlers: dict[Optional[EffectKind], list[Handler]] = {}
        self._history: list[EffectRequest] = []
        self._history_size = history_size

    def on_cue(self, handler: Handler) -> Handler:
        self._handlers.setdefault(EffectKind.CUE, []).append(handler)
        return handler

    def on_speech(self, handler: Handler) -> Handler:
        self._handlers.setdefault(EffectKind.SPEECH, []).append(handler)
        return handler

    def on_any(self, handler: Handler) -> Handler:
        self._handlers.setdefault(None, []).append(handler)
        return handler

    def cue(self, cue: Cue, timestamp: Optional[float] = None):
        self.request(EffectRequest(
            kind=EffectKind.CUE,
            name=cue.value,
            timestamp=timestamp if timestamp is not None else time.monotonic(),
        ))

    def speak(self, text: str, timestamp: Optional[float] = None):
        self.request(EffectRequest(
            kind=EffectKind.SPEECH,
            text=text,
            timestamp=timestamp if timestamp is not None else time.monotonic(),
        ))

    def request(self, request: EffectRequest):
        if request.kind == EffectKind.CUE:
            logger.info("Cue: %s", request.name)
        else:
            logger.info("Speech: %s", request.text)

        self._history.append(request)
        if len(self._history) > self._history_size:
            del self._history[0]

        handlers = self._handlers.get(request.kind, []) + self._handlers.get(None, [])
        for handler in handlers:
            try:
                handler(request)
            except Exception as e:
                logger.error("Effect handler %r failed: %s", handler, e)

    @property
    def history(self) -> list[EffectRequest]:
        return list(self._history)

    def clear_history(self):
        self._history.clear()
