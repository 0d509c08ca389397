"""Data model for manifests, render plans, and jobs.

Enum values equal their wire strings, so ``SceneType("IMAGE")`` parses a
manifest field directly. Scene kinds, transition kinds, and filter kinds
are plain enums; kind-specific behavior is dispatched once, when the
filter graph is built.

Two families of types:
  - Manifest side (Scene, Caption, Transition, VisualEdit, Manifest):
    the normalized form produced by the validator. Optional fields are
    already resolved to their defaults.
  - Execution side (ScenePlan, RenderPlan): the fully resolved form the
    renderer consumes, with concrete durations and file paths.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path


# ── Enumerations ──────────────────────────────────────────────────


class OutputPreset(Enum):
    LANDSCAPE_16_9 = "LANDSCAPE_16_9"
    PORTRAIT_9_16 = "PORTRAIT_9_16"
    SQUARE_1_1 = "SQUARE_1_1"

    @property
    def width(self) -> int:
        return _PRESET_SIZES[self][0]

    @property
    def height(self) -> int:
        return _PRESET_SIZES[self][1]


_PRESET_SIZES = {
    OutputPreset.LANDSCAPE_16_9: (1920, 1080),
    OutputPreset.PORTRAIT_9_16: (1080, 1920),
    OutputPreset.SQUARE_1_1: (1080, 1080),
}


class SceneType(Enum):
    IMAGE = "IMAGE"
    VIDEO = "VIDEO"


class MotionType(Enum):
    NONE = "NONE"
    ZOOM_IN = "ZOOM_IN"
    ZOOM_OUT = "ZOOM_OUT"
    PAN_LEFT = "PAN_LEFT"
    PAN_RIGHT = "PAN_RIGHT"


class CaptionPosition(Enum):
    TOP = "TOP"
    CENTER = "CENTER"
    BOTTOM = "BOTTOM"

    @property
    def y_expression(self) -> str:
        """drawtext y expression placing the caption box."""
        return _CAPTION_Y[self]


_CAPTION_Y = {
    CaptionPosition.TOP: "h*0.08",
    CaptionPosition.CENTER: "(h-text_h)/2",
    CaptionPosition.BOTTOM: "h-text_h-h*0.08",
}


class TransitionType(Enum):
    CUT = "CUT"
    CROSSFADE = "CROSSFADE"


class VisualFilterType(Enum):
    NONE = "NONE"
    GRAYSCALE = "GRAYSCALE"
    SEPIA = "SEPIA"
    COOL = "COOL"
    WARM = "WARM"


class JobState(Enum):
    QUEUED = "QUEUED"
    PROCESSING = "PROCESSING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"

    @property
    def is_terminal(self) -> bool:
        return self in (JobState.COMPLETED, JobState.FAILED)


class PrivacyStatus(Enum):
    PRIVATE = "PRIVATE"
    UNLISTED = "UNLISTED"
    PUBLIC = "PUBLIC"

    @property
    def api_value(self) -> str:
        return self.value.lower()


# ── Normalized manifest ───────────────────────────────────────────


@dataclass(frozen=True)
class Caption:
    text: str
    start_offset_sec: float
    end_offset_sec: float
    position: CaptionPosition = CaptionPosition.BOTTOM


@dataclass(frozen=True)
class Transition:
    type: TransitionType = TransitionType.CUT
    duration_sec: float | None = None


@dataclass(frozen=True)
class ColorGrade:
    brightness: float = 0.0
    contrast: float = 1.0
    saturation: float = 1.0


@dataclass(frozen=True)
class Overlay:
    hex_color: str
    opacity: float


@dataclass(frozen=True)
class VisualEdit:
    filter: VisualFilterType = VisualFilterType.NONE
    color_grade: ColorGrade = field(default_factory=ColorGrade)
    overlay: Overlay | None = None


@dataclass(frozen=True)
class Scene:
    """One normalized timeline entry.

    IMAGE scenes carry ``duration_sec`` and never a clip duration; VIDEO
    scenes carry ``clip_duration_sec`` and never ``duration_sec``.
    """

    asset_id: str
    type: SceneType
    duration_sec: float | None = None
    clip_start_sec: float = 0.0
    clip_duration_sec: float | None = None
    motion: MotionType = MotionType.NONE
    caption: Caption | None = None
    transition: Transition = field(default_factory=Transition)
    visual_edit: VisualEdit = field(default_factory=VisualEdit)

    @property
    def resolved_duration_sec(self) -> float:
        if self.type is SceneType.IMAGE:
            return self.duration_sec
        return self.clip_duration_sec


@dataclass(frozen=True)
class Manifest:
    output_preset: OutputPreset
    scenes: tuple[Scene, ...]
    total_duration_sec: float = 0.0


# ── Render plan ───────────────────────────────────────────────────


@dataclass(frozen=True)
class ScenePlan:
    asset_id: str
    type: SceneType
    duration_sec: float
    clip_start_sec: float
    motion: MotionType
    caption: Caption | None
    transition_type: TransitionType
    transition_duration_sec: float
    visual_edit: VisualEdit


@dataclass(frozen=True)
class RenderPlan:
    output_preset: OutputPreset
    scenes: tuple[ScenePlan, ...]
    audio_path: Path
    asset_paths: dict[str, Path]
    total_duration_sec: float

    @property
    def has_crossfade(self) -> bool:
        return any(
            s.transition_type is TransitionType.CROSSFADE for s in self.scenes[1:]
        )


# ── Publishing and jobs ───────────────────────────────────────────


@dataclass(frozen=True)
class PublishOptions:
    privacy_status: PrivacyStatus = PrivacyStatus.PRIVATE
    tags: tuple[str, ...] = ()
    category_id: str | None = None
    publish_at: datetime | None = None

    @property
    def is_scheduled(self) -> bool:
        return self.publish_at is not None


@dataclass(frozen=True)
class UploadResult:
    artifact_id: str
    warning: str | None = None


@dataclass(frozen=True)
class JobStatus:
    job_id: str
    state: JobState
    message: str
    created_at: datetime
    updated_at: datetime
    publish_options: PublishOptions = field(default_factory=PublishOptions)
    artifact_id: str | None = None
    artifact_url: str | None = None
    warning: str | None = None
