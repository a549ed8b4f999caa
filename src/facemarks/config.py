from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from facemarks.runtime_paths import get_model_path


class FacingDirection(str, Enum):
    front = "front"
    back = "back"

    def flipped(self) -> "FacingDirection":
        return FacingDirection.back if self is FacingDirection.front else FacingDirection.front


class CaptureQuality(str, Enum):
    low = "low"
    medium = "medium"
    high = "high"


# Requested (width, height); drivers may round to the nearest supported mode.
QUALITY_RESOLUTIONS: dict[CaptureQuality, tuple[int, int]] = {
    CaptureQuality.low: (352, 288),
    CaptureQuality.medium: (480, 360),
    CaptureQuality.high: (1280, 720),
}


class RegionMode(str, Enum):
    fixed_crop = "fixed-crop"
    detected_face = "detected-face"


class PixelRect(BaseModel):
    model_config = ConfigDict(frozen=True)

    x: int = Field(ge=0)
    y: int = Field(ge=0)
    width: int = Field(gt=0)
    height: int = Field(gt=0)

    def slices(self) -> tuple[slice, slice]:
        return slice(self.y, self.y + self.height), slice(self.x, self.x + self.width)


class CropGeometry(BaseModel):
    """Pixel region of each frame handed to the landmark inferencer."""

    model_config = ConfigDict(frozen=True)

    x: int = Field(default=30, ge=0, description="Horizontal offset in pixels")
    y: int = Field(default=90, ge=0, description="Vertical offset in pixels")
    width: int = Field(default=300, gt=0)
    height: int = Field(default=300, gt=0)

    @classmethod
    def parse(cls, text: str) -> "CropGeometry":
        parts = [part.strip() for part in str(text).split(",")]
        if len(parts) != 4:
            raise ValueError(f"Crop must be 'x,y,width,height', got: {text!r}")
        try:
            x, y, width, height = (int(part) for part in parts)
        except ValueError as exc:
            raise ValueError(f"Crop values must be integers, got: {text!r}") from exc
        return cls(x=x, y=y, width=width, height=height)

    def clip_to(self, frame_width: int, frame_height: int) -> PixelRect:
        """Intersect the crop with a frame of the given size."""
        right = min(self.x + self.width, frame_width)
        bottom = min(self.y + self.height, frame_height)
        if right <= self.x or bottom <= self.y:
            raise ValueError(
                f"Crop {self.x},{self.y},{self.width},{self.height} lies outside "
                f"a {frame_width}x{frame_height} frame"
            )
        return PixelRect(x=self.x, y=self.y, width=right - self.x, height=bottom - self.y)


CROP_PRESETS: dict[str, CropGeometry] = {
    "offset-300": CropGeometry(x=30, y=90, width=300, height=300),
    "origin-360": CropGeometry(x=0, y=0, width=360, height=360),
}
DEFAULT_CROP_PRESET = "offset-300"


class FaceBox(BaseModel):
    """Face rectangle normalized to the full frame."""

    model_config = ConfigDict(frozen=True)

    x: float = Field(ge=0.0, le=1.0)
    y: float = Field(ge=0.0, le=1.0)
    width: float = Field(gt=0.0, le=1.0)
    height: float = Field(gt=0.0, le=1.0)

    @model_validator(mode="after")
    def validate_extent(self) -> "FaceBox":
        # Small tolerance for float rounding from pixel conversions.
        if self.x + self.width > 1.0 + 1e-6 or self.y + self.height > 1.0 + 1e-6:
            raise ValueError("Face box extends beyond the frame")
        return self

    def to_pixels(self, frame_width: int, frame_height: int) -> PixelRect:
        # Keep at least one pixel inside the frame for boxes hugging the far edge.
        left = min(int(round(self.x * frame_width)), frame_width - 1)
        top = min(int(round(self.y * frame_height)), frame_height - 1)
        right = min(int(round((self.x + self.width) * frame_width)), frame_width)
        bottom = min(int(round((self.y + self.height) * frame_height)), frame_height)
        return PixelRect(
            x=left,
            y=top,
            width=max(right - left, 1),
            height=max(bottom - top, 1),
        )


class OverlayStyle(BaseModel):
    model_config = ConfigDict(frozen=True)

    marker_radius: int = Field(default=2, ge=1)
    marker_color: tuple[int, int, int] = (0, 255, 0)
    box_color: tuple[int, int, int] = (0, 200, 255)
    line_thickness: int = Field(default=2, ge=1)


class SessionConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    facing: FacingDirection = FacingDirection.front
    quality: CaptureQuality = CaptureQuality.medium
    device_indices: dict[FacingDirection, int] = Field(
        default_factory=lambda: {FacingDirection.front: 0, FacingDirection.back: 1},
        description="Capture device index for each facing direction",
    )
    crop: CropGeometry = Field(default_factory=lambda: CROP_PRESETS[DEFAULT_CROP_PRESET])
    region_mode: RegionMode = RegionMode.fixed_crop
    draw_box: bool = True
    mirror_front: bool = True
    model_path: Path = Field(default_factory=get_model_path)
    inference_workers: int = Field(default=1, ge=1)
    style: OverlayStyle = Field(default_factory=OverlayStyle)

    @field_validator("device_indices")
    @classmethod
    def validate_device_indices(cls, value: dict[FacingDirection, int]) -> dict[FacingDirection, int]:
        for facing, index in value.items():
            if index < 0:
                raise ValueError(f"Device index for {facing.value} must be >= 0, got: {index}")
        return value

    @field_validator("model_path")
    @classmethod
    def validate_model_path(cls, value: Path) -> Path:
        if value.exists() and not value.is_file():
            raise ValueError(f"Model path is not a file: {value}")
        return value

    @property
    def resolution(self) -> tuple[int, int]:
        return QUALITY_RESOLUTIONS[self.quality]

    def device_index(self, facing: FacingDirection | None = None) -> int | None:
        return self.device_indices.get(facing or self.facing)

    def flipped(self) -> "SessionConfig":
        return self.model_copy(update={"facing": self.facing.flipped()})

    def as_summary(self) -> dict[str, Any]:
        return {
            "facing": self.facing.value,
            "quality": self.quality.value,
            "resolution": list(self.resolution),
            "device_indices": {key.value: value for key, value in self.device_indices.items()},
            "crop": self.crop.model_dump(),
            "region_mode": self.region_mode.value,
            "draw_box": self.draw_box,
            "mirror_front": self.mirror_front,
            "model_path": str(self.model_path),
        }


def load_session_config(path: str | Path | None = None, **overrides: Any) -> SessionConfig:
    """Read a JSON config file (optional) and apply non-``None`` overrides."""
    payload: dict[str, Any] = {}
    if path is not None:
        config_path = Path(path)
        if not config_path.exists():
            raise FileNotFoundError(f"Config file does not exist: {config_path}")
        payload = SessionConfig.model_validate_json(
            config_path.read_text(encoding="utf-8")
        ).model_dump()
    payload.update({key: value for key, value in overrides.items() if value is not None})
    return SessionConfig.model_validate(payload)


def resolve_crop(preset: str | None = None, crop: str | None = None) -> CropGeometry | None:
    if crop is not None:
        return CropGeometry.parse(crop)
    if preset is None:
        return None
    if preset not in CROP_PRESETS:
        valid = ", ".join(sorted(CROP_PRESETS))
        raise ValueError(f"Unknown crop preset '{preset}'. Expected one of: {valid}")
    return CROP_PRESETS[preset]
