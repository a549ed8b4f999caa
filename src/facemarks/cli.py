from __future__ import annotations

from pathlib import Path
from typing import Optional

import cv2
import typer
from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from facemarks.capture.camera_session import list_devices
from facemarks.capture.video_reader import Frame, iter_frames, probe_video
from facemarks.config import (
    CROP_PRESETS,
    CaptureQuality,
    FacingDirection,
    RegionMode,
    SessionConfig,
    load_session_config,
    resolve_crop,
)
from facemarks.errors import CameraUnavailableError, LandmarkShapeError
from facemarks.landmarks.haar_face_detector import HaarFaceDetector
from facemarks.landmarks.mediapipe_face_landmarker import (
    OFFICIAL_FACE_LANDMARKER_MODEL_URL,
    MediaPipeLandmarkInferencer,
)
from facemarks.landmarks.provider_base import FaceDetector, LandmarkInferencer
from facemarks.logging_config import setup_logging
from facemarks.session.controller import CallbackConsumer, SessionController, SessionState

app = typer.Typer(
    add_completion=False,
    no_args_is_help=True,
    help="FaceMarks: live 68-point face landmark overlay.",
)
console = Console()

PREVIEW_WINDOW = "FaceMarks"

CONFIG_OPTION = typer.Option(None, "--config", "-c", help="JSON session config file.")
FACING_OPTION = typer.Option(None, "--facing", help="Camera facing direction: front, back.")
QUALITY_OPTION = typer.Option(None, "--quality", help="Capture quality: low, medium, high.")
CROP_PRESET_OPTION = typer.Option(
    None,
    "--crop-preset",
    help=f"Named crop region: {', '.join(sorted(CROP_PRESETS))}.",
)
CROP_OPTION = typer.Option(None, "--crop", help="Crop region as 'x,y,width,height' in pixels.")
REGION_MODE_OPTION = typer.Option(
    None,
    "--region-mode",
    help="Inference region: fixed-crop or detected-face.",
)
MODEL_OPTION = typer.Option(None, "--model", help="MediaPipe Face Landmarker .task model path.")


def _bool_mark(value: bool) -> str:
    return escape("[x]") if value else escape("[ ]")


def _build_config(
    config_path: Optional[Path] = None,
    facing: Optional[FacingDirection] = None,
    quality: Optional[CaptureQuality] = None,
    crop_preset: Optional[str] = None,
    crop: Optional[str] = None,
    region_mode: Optional[RegionMode] = None,
    model: Optional[Path] = None,
) -> SessionConfig:
    try:
        crop_geometry = resolve_crop(preset=crop_preset, crop=crop)
    except ValueError as exc:
        hint = "--crop" if crop is not None else "--crop-preset"
        raise typer.BadParameter(str(exc), param_hint=hint) from exc
    try:
        return load_session_config(
            config_path,
            facing=facing,
            quality=quality,
            crop=crop_geometry,
            region_mode=region_mode,
            model_path=model,
        )
    except FileNotFoundError as exc:
        raise typer.BadParameter(str(exc), param_hint="--config") from exc
    except ValidationError as exc:
        message = exc.errors()[0].get("msg", "Invalid configuration")
        raise typer.BadParameter(message) from exc


def _build_inferencer(config: SessionConfig) -> LandmarkInferencer:
    return MediaPipeLandmarkInferencer(config.model_path)


def _build_face_detector(config: SessionConfig) -> FaceDetector | None:
    if config.region_mode is RegionMode.detected_face:
        return HaarFaceDetector()
    return None


def _load_inferencer_or_exit(config: SessionConfig) -> LandmarkInferencer:
    try:
        return _build_inferencer(config)
    except (FileNotFoundError, ImportError) as exc:
        console.print(f"[bold red]{escape(str(exc))}[/bold red]")
        raise typer.Exit(code=1) from exc


@app.callback()
def main(
    log_level: str = typer.Option("INFO", "--log-level", help="Logging level (DEBUG, INFO, ...)."),
) -> None:
    try:
        setup_logging(log_level)
    except ValueError as exc:
        raise typer.BadParameter(str(exc), param_hint="--log-level") from exc


@app.command("run")
def run_live(
    config_path: Optional[Path] = CONFIG_OPTION,
    facing: Optional[FacingDirection] = FACING_OPTION,
    quality: Optional[CaptureQuality] = QUALITY_OPTION,
    crop_preset: Optional[str] = CROP_PRESET_OPTION,
    crop: Optional[str] = CROP_OPTION,
    region_mode: Optional[RegionMode] = REGION_MODE_OPTION,
    model: Optional[Path] = MODEL_OPTION,
) -> None:
    """Open a live preview window. Keys: q quits, f flips the camera."""
    config = _build_config(config_path, facing, quality, crop_preset, crop, region_mode, model)
    inferencer = _load_inferencer_or_exit(config)
    controller = SessionController(
        config,
        inferencer,
        consumer=CallbackConsumer(lambda image: cv2.imshow(PREVIEW_WINDOW, image)),
        face_detector=_build_face_detector(config),
    )
    try:
        state = controller.start().result()
        if state is SessionState.denied:
            console.print("[yellow]Camera access denied. Nothing to show.[/yellow]")
            return
        controller.session.require_configured()

        console.print("[bold green]Live preview[/bold green]: press 'q' to quit, 'f' to flip.")
        while True:
            controller.step()
            key = cv2.waitKey(1) & 0xFF
            if key == ord("q"):
                break
            if key == ord("f"):
                controller.flip()
    except LandmarkShapeError as exc:
        console.print(f"[bold red]Landmark model output mismatch: {escape(str(exc))}[/bold red]")
        raise typer.Exit(code=1) from exc
    except CameraUnavailableError as exc:
        console.print(f"[bold red]{escape(str(exc))}.[/bold red]")
        raise typer.Exit(code=1) from exc
    finally:
        controller.close()
        inferencer.close()
        cv2.destroyAllWindows()


@app.command("annotate-image")
def annotate_image(
    image: Path = typer.Argument(..., help="Input image file."),
    out: Path = typer.Option(..., "--out", "-o", help="Output image path (.png or .jpg)."),
    config_path: Optional[Path] = CONFIG_OPTION,
    crop_preset: Optional[str] = CROP_PRESET_OPTION,
    crop: Optional[str] = CROP_OPTION,
    region_mode: Optional[RegionMode] = REGION_MODE_OPTION,
    model: Optional[Path] = MODEL_OPTION,
) -> None:
    """Draw landmarks onto a single image."""
    source = cv2.imread(str(image))
    if source is None:
        raise typer.BadParameter(f"Could not read image: {image}", param_hint="IMAGE")

    config = _build_config(config_path, None, None, crop_preset, crop, region_mode, model)
    inferencer = _load_inferencer_or_exit(config)
    controller = SessionController(
        config,
        inferencer,
        face_detector=_build_face_detector(config),
        inline_inference=True,
    )
    try:
        rendered = controller.process_frame(Frame(idx=0, timestamp_ms=0, image=source))
        found = controller.store.latest() is not None
    except LandmarkShapeError as exc:
        console.print(f"[bold red]Landmark model output mismatch: {escape(str(exc))}[/bold red]")
        raise typer.Exit(code=1) from exc
    finally:
        controller.close()
        inferencer.close()

    out.parent.mkdir(parents=True, exist_ok=True)
    if not cv2.imwrite(str(out), rendered):
        console.print(f"[bold red]Failed to write image to: {out}[/bold red]")
        raise typer.Exit(code=1)
    if not found:
        console.print("[yellow]No face found in the inference region.[/yellow]")
    console.print(f"- Written: {out}")


@app.command("annotate-video")
def annotate_video(
    video: Path = typer.Argument(..., help="Input video file."),
    out: Path = typer.Option(..., "--out", "-o", help="Output video path (.mp4)."),
    stride: int = typer.Option(1, "--stride", min=1, help="Process every Nth frame."),
    start: int = typer.Option(0, "--start", min=0, help="First frame index to annotate."),
    end: Optional[int] = typer.Option(None, "--end", min=0, help="Stop before this frame index."),
    config_path: Optional[Path] = CONFIG_OPTION,
    crop_preset: Optional[str] = CROP_PRESET_OPTION,
    crop: Optional[str] = CROP_OPTION,
    region_mode: Optional[RegionMode] = REGION_MODE_OPTION,
    model: Optional[Path] = MODEL_OPTION,
) -> None:
    """Draw landmarks onto every frame of a video file."""
    try:
        info = probe_video(video)
    except (FileNotFoundError, ValueError, RuntimeError) as exc:
        raise typer.BadParameter(str(exc), param_hint="VIDEO") from exc
    if end is not None and end < start:
        raise typer.BadParameter(f"--end ({end}) must not be before --start ({start})", param_hint="--end")

    config = _build_config(config_path, None, None, crop_preset, crop, region_mode, model)
    inferencer = _load_inferencer_or_exit(config)
    controller = SessionController(
        config,
        inferencer,
        face_detector=_build_face_detector(config),
        inline_inference=True,
    )
    out.parent.mkdir(parents=True, exist_ok=True)
    writer = cv2.VideoWriter(
        str(out),
        cv2.VideoWriter_fourcc(*"mp4v"),
        info.fps / stride,
        (info.width, info.height),
    )
    if not writer.isOpened():
        controller.close()
        inferencer.close()
        console.print(f"[bold red]Failed to open video writer for: {out}[/bold red]")
        raise typer.Exit(code=1)

    written = 0
    try:
        for frame in iter_frames(video, stride=stride, start=start, end=end):
            writer.write(controller.process_frame(frame))
            written += 1
    except LandmarkShapeError as exc:
        console.print(f"[bold red]Landmark model output mismatch: {escape(str(exc))}[/bold red]")
        raise typer.Exit(code=1) from exc
    finally:
        writer.release()
        controller.close()
        inferencer.close()

    console.print(f"[bold green]Annotated {written} frames[/bold green]")
    console.print(f"- Written: {out}")


@app.command("devices")
def devices(
    max_index: int = typer.Option(8, "--max-index", min=1, help="Probe indices below this."),
) -> None:
    """List capture device indices that can be opened."""
    available = list_devices(max_index=max_index)
    table = Table(title="Capture devices")
    table.add_column("Index")
    table.add_column("Status")
    for index in range(max_index):
        table.add_row(str(index), _bool_mark(index in available))
    console.print(table)
    if not available:
        console.print("[yellow]No capture device could be opened.[/yellow]")


@app.command("status")
def status(
    config_path: Optional[Path] = CONFIG_OPTION,
    facing: Optional[FacingDirection] = FACING_OPTION,
    quality: Optional[CaptureQuality] = QUALITY_OPTION,
    crop_preset: Optional[str] = CROP_PRESET_OPTION,
    crop: Optional[str] = CROP_OPTION,
    region_mode: Optional[RegionMode] = REGION_MODE_OPTION,
    model: Optional[Path] = MODEL_OPTION,
) -> None:
    """Show the effective session config and whether the model file exists."""
    config = _build_config(config_path, facing, quality, crop_preset, crop, region_mode, model)
    model_exists = config.model_path.is_file()

    table = Table(title="FaceMarks status")
    table.add_column("Item")
    table.add_column("Status")
    table.add_column("Value")
    table.add_row("model file", _bool_mark(model_exists), str(config.model_path))
    table.add_row("facing", "", config.facing.value)
    table.add_row("quality", "", f"{config.quality.value} {config.resolution[0]}x{config.resolution[1]}")
    crop_value = config.crop
    table.add_row(
        "crop",
        "",
        f"offset ({crop_value.x}, {crop_value.y}) size ({crop_value.width}, {crop_value.height})",
    )
    table.add_row("region mode", "", config.region_mode.value)
    console.print(table)
    console.print_json(data=config.as_summary())

    if not model_exists:
        console.print(
            "\n[bold]Download the model[/bold]\n"
            f'curl -L -o "{config.model_path}" "{OFFICIAL_FACE_LANDMARKER_MODEL_URL}"'
        )


@app.command("desktop")
def desktop(
    config_path: Optional[Path] = CONFIG_OPTION,
    facing: Optional[FacingDirection] = FACING_OPTION,
    quality: Optional[CaptureQuality] = QUALITY_OPTION,
    crop_preset: Optional[str] = CROP_PRESET_OPTION,
    crop: Optional[str] = CROP_OPTION,
    region_mode: Optional[RegionMode] = REGION_MODE_OPTION,
    model: Optional[Path] = MODEL_OPTION,
) -> None:
    """Launch the PySide6 live viewer."""
    config = _build_config(config_path, facing, quality, crop_preset, crop, region_mode, model)
    from facemarks.desktop.app import main as desktop_main

    desktop_main(config)


if __name__ == "__main__":
    app()
