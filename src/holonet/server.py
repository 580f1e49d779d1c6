"""WebSocket/REST server streaming interaction state to the renderer.

Captures from the server's webcam, runs the interaction pipeline once per
frame and pushes each snapshot plus every effect request (audio cue,
spoken line) to all connected WebSocket clients as JSON. The browser client
owns rendering, audio and speech.

If the camera or the hand detector cannot be set up, the failure is logged
once and the server switches to demo mode: it keeps ticking with empty
frames so clients still see the idle scene. There is no automatic retry.

Usage:
    holonet serve
    # or
    uvicorn holonet.server:app --host 0.0.0.0 --port 8765
"""

from __future__ import annotations

import asyncio
import json
import logging
import time
from contextlib import asynccontextmanager
from typing import Any, Optional

from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from fastapi.responses import PlainTextResponse

try:
    import cv2
except ImportError:
    cv2 = None

from holonet import __version__
from holonet.config import HoloConfig
from holonet.detector import HandDetector
from holonet.effects import EffectDispatcher, EffectRequest
from holonet.metrics import MetricsCollector
from holonet.pipeline import InteractionPipeline

logger = logging.getLogger("holonet.server")


class ServerState:
    def __init__(self):
        self.clients: set[WebSocket] = set()
        self.config = HoloConfig()
        self.metrics = MetricsCollector()
        self.effects = EffectDispatcher()
        self.pipeline: Optional[InteractionPipeline] = None
        self.pending: list[dict] = []
        self.capture_task: Optional[asyncio.Task] = None
        self.capture_enabled = True
        self.running = False
        self.mode = "stopped"  # "live" | "demo" | "stopped"

    def configure(self, config: HoloConfig):
        """Replace the config and rebuild the pipeline around it."""
        self.config = config
        self.effects = EffectDispatcher()
        self.effects.on_any(self._queue_effect)
        self.pipeline = InteractionPipeline(
            config=config, effects=self.effects, metrics=self.metrics
        )

    def _queue_effect(self, request: EffectRequest):
        self.pending.append(request.to_dict())


state = ServerState()
state.configure(state.config)


async def broadcast(message: dict):
    """Send a message to every connected client, dropping dead sockets."""
    if not state.clients:
        return
    dead = set()
    payload = json.dumps(message)
    for ws in state.clients:
        try:
            await ws.send_text(payload)
        except Exception:
            dead.add(ws)
    state.clients -= dead


async def flush_effects():
    pending, state.pending = state.pending, []
    for message in pending:
        await broadcast(message)


def _open_camera() -> tuple[Optional[Any], Optional[HandDetector]]:
    """Open camera and detector; (None, None) if either is unavailable."""
    if cv2 is None:
        logger.error("opencv-python is required for camera capture")
        return None, None

    try:
        detector = HandDetector(state.config.camera)
    except (ImportError, OSError, RuntimeError, ValueError) as e:
        logger.error("Hand detector unavailable: %s", e)
        return None, None

    cam = state.config.camera
    capture = cv2.VideoCapture(cam.index)
    capture.set(cv2.CAP_PROP_FRAME_WIDTH, cam.width)
    capture.set(cv2.CAP_PROP_FRAME_HEIGHT, cam.height)
    if not capture.isOpened():
        logger.error("Could not open camera %d", cam.index)
        capture.release()
        detector.close()
        return None, None

    return capture, detector


async def capture_loop():
    """Main loop: read a frame, tick the pipeline, broadcast the snapshot."""
    pipeline = state.pipeline
    capture, detector = _open_camera()
    state.mode = "live" if capture is not None else "demo"
    if capture is None:
        logger.error("Camera or detector unavailable, running in demo mode")
    else:
        logger.info("Camera capture started")

    state.running = True
    demo_interval = 1.0 / state.config.camera.demo_tick_hz

    try:
        while state.running:
            if capture is not None:
                ret, frame = capture.read()
                if not ret:
                    await asyncio.sleep(0.01)
                    continue
                now = time.monotonic()
                frame_rgb = cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)
                snapshot = pipeline.tick(detector.detect(frame_rgb, now), now=now)
                await broadcast(snapshot.to_dict())
                await flush_effects()
                await asyncio.sleep(0.001)
            else:
                snapshot = pipeline.tick(None)
                await broadcast(snapshot.to_dict())
                await flush_effects()
                await asyncio.sleep(demo_interval)
    finally:
        state.running = False
        state.mode = "stopped"
        if capture is not None:
            capture.release()
        if detector is not None:
            detector.close()
        logger.info("Capture loop stopped")


@asynccontextmanager
async def lifespan(app: FastAPI):
    if state.capture_enabled:
        state.capture_task = asyncio.create_task(capture_loop())

    yield

    state.running = False
    if state.capture_task is not None:
        state.capture_task.cancel()
        try:
            await state.capture_task
        except asyncio.CancelledError:
            pass
        state.capture_task = None


app = FastAPI(title="HoloNet", version=__version__, lifespan=lifespan)


# --- API endpoints ---

@app.get("/api/status")
async def api_status():
    snapshot = state.pipeline.snapshot()
    return {
        "running": state.running,
        "mode": state.mode,
        "clients": len(state.clients),
        "fps": round(snapshot.fps, 1),
        "ticks": state.pipeline.total_ticks,
        "stage": snapshot.stage.value,
    }


@app.get("/api/state")
async def api_state():
    return state.pipeline.snapshot().to_dict()


@app.get("/api/config")
async def api_config():
    return state.config.to_dict()


@app.get("/api/profile")
async def api_profile():
    return {"stages": state.pipeline.profiler.summary()}


@app.get("/metrics")
async def metrics():
    state.metrics.set_connections(len(state.clients))
    return PlainTextResponse(
        state.metrics.render(),
        media_type="text/plain; version=0.0.4; charset=utf-8",
    )


# --- WebSocket ---

@app.websocket("/ws")
async def websocket_endpoint(ws: WebSocket):
    await ws.accept()
    state.clients.add(ws)
    logger.info("Client connected (%d total)", len(state.clients))

    try:
        await ws.send_json({
            "type": "connected",
            "version": __version__,
            "mode": state.mode,
            "state": state.pipeline.snapshot().to_dict(),
        })

        while True:
            try:
                msg = await asyncio.wait_for(ws.receive_text(), timeout=30)
                data = json.loads(msg)
                if data.get("type") == "ping":
                    await ws.send_json({"type": "pong", "server_time": time.time()})
                elif data.get("type") == "get_state":
                    await ws.send_json(state.pipeline.snapshot().to_dict())
            except asyncio.TimeoutError:
                await ws.send_json({"type": "ping"})
            except json.JSONDecodeError:
                await ws.send_json({"type": "error", "message": "invalid JSON"})
    except WebSocketDisconnect:
        pass
    except Exception as e:
        logger.debug("WebSocket error: %s", e)
    finally:
        state.clients.discard(ws)
        logger.info("Client disconnected (%d total)", len(state.clients))


def main():
    import argparse
    import uvicorn

    parser = argparse.ArgumentParser(description="HoloNet gesture server")
    parser.add_argument("--host", default=state.config.server.host)
    parser.add_argument("--port", type=int, default=state.config.server.port)
    parser.add_argument("--log-level", default=state.config.server.log_level)
    args = parser.parse_args()

    uvicorn.run(app, host=args.host, port=args.port, log_level=args.log_level)


if __name__ == "__main__":
    main()
