"""HoloNet CLI: the main entry point for all operations.

Usage:
    holonet serve       Start the WebSocket server
    holonet record      Record detection frames from a camera
    holonet replay      Replay a recorded session through the pipeline
"""

from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Optional

import typer

from holonet.config import HoloConfig

app = typer.Typer(
    name="holonet",
    help="🌍 Hand-gesture control for a holographic globe.",
    add_completion=False,
)


def _setup_logging(level: str):
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="[%(levelname)s] %(name)s: %(message)s",
    )


def _load_config(path: Optional[str]) -> HoloConfig:
    if not path:
        return HoloConfig()
    if not Path(path).exists():
        typer.echo(f"❌ Config not found: {path}", err=True)
        raise typer.Exit(1)
    try:
        return HoloConfig.from_yaml(path)
    except ValueError as e:
        typer.echo(f"❌ Invalid config {path}: {e}", err=True)
        raise typer.Exit(1)


@app.command()
def serve(
    host: Optional[str] = typer.Option(None, help="Bind address"),
    port: Optional[int] = typer.Option(None, help="Port"),
    config: Optional[str] = typer.Option(None, help="Path to YAML config"),
    log_level: Optional[str] = typer.Option(None, help="Log level"),
):
    """Start the WebSocket streaming server."""
    import uvicorn
    from holonet.server import app as fastapi_app, state

    cfg = _load_config(config)
    host = host or cfg.server.host
    port = port or cfg.server.port
    log_level = log_level or cfg.server.log_level
    _setup_logging(log_level)

    state.configure(cfg)
    if config:
        typer.echo(f"⚙️  Loaded config: {config}")

    typer.echo(f"🚀 Starting HoloNet server on {host}:{port}")
    typer.echo(f"   WebSocket stream at ws://{host}:{port}/ws")
    uvicorn.run(fastapi_app, host=host, port=port, log_level=log_level)


@app.command()
def record(
    output: str = typer.Option("recording.json", "-o", help="Output file path"),
    duration: float = typer.Option(0, help="Recording duration in seconds (0 = until Ctrl+C)"),
    compact: bool = typer.Option(False, help="Save in compact .npz format"),
    camera: int = typer.Option(0, help="Camera device index"),
    model: Optional[str] = typer.Option(None, help="Path to hand_landmarker.task"),
    log_level: str = typer.Option("warning", help="Log level"),
):
    """Record hand detection frames from the camera."""
    import cv2
    from holonet.config import CameraConfig
    from holonet.detector import HandDetector
    from holonet.recorder import FrameRecorder

    _setup_logging(log_level)

    cam_config = CameraConfig(index=camera)
    if model:
        cam_config.model_path = model

    try:
        detector = HandDetector(cam_config)
    except (ImportError, OSError, RuntimeError, ValueError) as e:
        typer.echo(f"❌ {e}", err=True)
        raise typer.Exit(1)

    cap = cv2.VideoCapture(camera)
    if not cap.isOpened():
        detector.close()
        typer.echo(f"❌ Could not open camera {camera}", err=True)
        raise typer.Exit(1)

    recorder = FrameRecorder()

    typer.echo(f"🎥 Recording from camera {camera}...")
    typer.echo("   Press Ctrl+C to stop")
    start = time.monotonic()
    recorder.start(start)
    frame_count = 0

    try:
        while True:
            ret, frame = cap.read()
            if not ret:
                continue

            now = time.monotonic()
            detection = detector.detect(cv2.cvtColor(frame, cv2.COLOR_BGR2RGB), now)
            if detection is None:
                continue
            recorder.add_frame(detection, now)
            frame_count += 1

            if frame_count % 30 == 0:
                typer.echo(
                    f"\r   Frames: {frame_count} | Duration: {now - start:.1f}s | Hands: {len(detection)}",
                    nl=False,
                )

            if duration > 0 and (now - start) >= duration:
                break

    except KeyboardInterrupt:
        pass
    finally:
        recorder.stop()
        cap.release()
        detector.close()

    typer.echo(f"\n\n📼 Recorded {recorder.frame_count} frames ({recorder.duration:.1f}s)")

    if compact:
        output = str(recorder.save_compact(output))
    else:
        recorder.save(output)

    typer.echo(f"💾 Saved to: {output}")


@app.command()
def replay(
    recording: str = typer.Argument(..., help="Path to recording file"),
    config: Optional[str] = typer.Option(None, help="Path to YAML config"),
    speed: float = typer.Option(1.0, help="Playback speed multiplier"),
    realtime: bool = typer.Option(True, help="Play at original timing"),
    log_level: str = typer.Option("warning", help="Log level"),
):
    """Replay a recorded session through the interaction pipeline."""
    from holonet.effects import EffectKind
    from holonet.pipeline import InteractionPipeline
    from holonet.recorder import FramePlayer

    _setup_logging(log_level)

    path = Path(recording)
    if not path.exists():
        typer.echo(f"❌ Recording not found: {recording}", err=True)
        raise typer.Exit(1)

    cfg = _load_config(config)
    player = FramePlayer.load(path)
    typer.echo(f"▶️  Replaying {path.name} ({player.frame_count} frames, {player.duration:.1f}s)")

    pipeline = InteractionPipeline(config=cfg)
    effect_count = 0

    @pipeline.effects.on_any
    def on_effect(request):
        nonlocal effect_count
        effect_count += 1
        if request.kind is EffectKind.CUE:
            typer.echo(f"   🔊 [{request.timestamp:7.2f}s] cue: {request.name}")
        else:
            typer.echo(f"   🗣️  [{request.timestamp:7.2f}s] say: {request.text}")

    last = {"mode": None, "stage": None}

    def on_tick(snapshot):
        if snapshot.stage is not last["stage"]:
            typer.echo(f"   ⏱️  [{snapshot.timestamp:7.2f}s] stage: {snapshot.stage.value}")
            last["stage"] = snapshot.stage
        if snapshot.mode is not last["mode"]:
            typer.echo(f"   🤚 [{snapshot.timestamp:7.2f}s] {snapshot.mode.value}: {snapshot.status}")
            last["mode"] = snapshot.mode

    pipeline.on_tick(on_tick)

    frames = player.play_realtime(speed=speed) if realtime else player.play()
    for frame in frames:
        pipeline.tick(frame, now=frame.timestamp)

    final = pipeline.snapshot()
    typer.echo(
        f"\n✅ Replay complete. {pipeline.total_ticks} ticks, {effect_count} effects, "
        f"region: {final.region}"
    )


def main():
    app()


if __name__ == "__main__":
    main()
