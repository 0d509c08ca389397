"""Composition manifest loader and validator.

Validates a raw scene-timeline manifest (the camelCase wire format, as
parsed from JSON or YAML) against the uploaded assets, fills in defaults,
and computes the global timeline duration.

Manifest schema:
  outputPreset: LANDSCAPE_16_9        # or PORTRAIT_9_16, SQUARE_1_1
  paths:                              # optional, file-based manifests only
    media: "/data/media"
  assets:                             # optional, file-based manifests only
    intro: "${media}/intro.png"
  scenes:
    - assetId: intro
      type: IMAGE
      durationSec: 3.0
      motion: ZOOM_IN
      caption: {text: "Hello", startOffsetSec: 0.5, position: BOTTOM}
      visualEdit:
        filter: WARM
        colorGrade: {brightness: 0.05, contrast: 1.1, saturation: 1.2}
        overlay: {hexColor: "#102030", opacity: 0.2}
    - assetId: clip
      type: VIDEO
      clipStartSec: 2.0
      clipDurationSec: 4.0            # optional, else probed length - start
      transition: {type: CROSSFADE, transitionDurationSec: 0.5}

Validation is fail-fast: the first violation raises a ValidationError
naming the dotted field path, e.g. ``manifest.scenes[2].caption.endOffsetSec``.
"""

import math
import re
from pathlib import Path
from typing import Callable

import yaml

from .common import Upload, resolve_path_vars
from .errors import ProbeError, ValidationError
from .models import (
    Caption,
    CaptionPosition,
    ColorGrade,
    Manifest,
    MotionType,
    OutputPreset,
    Overlay,
    Scene,
    SceneType,
    Transition,
    TransitionType,
    VisualEdit,
    VisualFilterType,
)
from .probe import probe_upload


# ── Limits ────────────────────────────────────────────────────────

MAX_SCENES = 50
MIN_IMAGE_DURATION_SECONDS = 0.5
MAX_IMAGE_DURATION_SECONDS = 600.0
MAX_TOTAL_DURATION_SECONDS = 10 * 60 * 60
MIN_CROSSFADE_DURATION_SECONDS = 0.2
MAX_CROSSFADE_DURATION_SECONDS = 2.0

BRIGHTNESS_RANGE = (-1.0, 1.0)
CONTRAST_RANGE = (0.2, 3.0)
SATURATION_RANGE = (0.0, 3.0)
OPACITY_RANGE = (0.0, 1.0)

DEFAULT_BRIGHTNESS = 0.0
DEFAULT_CONTRAST = 1.0
DEFAULT_SATURATION = 1.0
DEFAULT_OVERLAY_OPACITY = 0.25

EPSILON = 1e-9

HEX_COLOR_PATTERN = re.compile(r"^#[0-9a-fA-F]{6}$")


# ── Manifest loading ──────────────────────────────────────────────


def load_manifest(manifest_path: str | Path) -> dict:
    """Load a manifest file (YAML or JSON) and resolve its asset paths.

    Resolves ${name} variables from the optional ``paths`` mapping in every
    value of the optional ``assets`` mapping. The scene timeline itself is
    returned untouched; pass it to validate_manifest.

    Raises:
        ValidationError: The file does not hold a mapping.
        FileNotFoundError: Missing manifest file.
    """
    with open(manifest_path) as f:
        raw = yaml.safe_load(f)

    if not isinstance(raw, dict):
        raise ValidationError("manifest", "must be an object.")

    paths = raw.get("paths") or {}
    assets = raw.get("assets") or {}
    raw["assets"] = {
        str(asset_id): resolve_path_vars(str(path), paths)
        for asset_id, path in assets.items()
    }
    return raw


def validate_manifest(
    raw: dict | None,
    assets: dict[str, Upload] | None,
    probe: Callable[[Upload], float] = probe_upload,
) -> Manifest:
    """Validate and normalize a raw manifest.

    Processing pipeline, scene by scene, carrying the previous scene's
    duration forward for crossfade checks:
      1. Resolve the asset: non-blank id, upload present and non-empty,
         content type matching the scene kind.
      2. Resolve the scene duration (explicit for IMAGE, clip bounds or
         probed source length for VIDEO).
      3. Normalize caption, transition, and visual edit.
      4. Accumulate the timeline total, subtracting crossfade overlaps.

    Args:
        raw: Manifest dict in wire format.
        assets: Uploaded assets keyed by asset id.
        probe: Returns a video upload's duration in seconds.

    Returns:
        Normalized Manifest with every optional field resolved.

    Raises:
        ValidationError: First violation found, with its field path.
    """
    if raw is None:
        raise ValidationError("manifest", "is required.")
    _require_mapping(raw, "manifest")

    if raw.get("outputPreset") is None:
        raise ValidationError("manifest.outputPreset", "is required.")
    preset = _parse_enum(OutputPreset, raw["outputPreset"], "manifest.outputPreset")

    scenes = raw.get("scenes")
    if not isinstance(scenes, list) or not scenes:
        raise ValidationError("manifest.scenes", "must contain at least one scene.")
    if len(scenes) > MAX_SCENES:
        raise ValidationError(
            "manifest.scenes", f"supports at most {MAX_SCENES} scenes."
        )

    assets = assets or {}
    normalized = []
    total_duration = 0.0
    previous_duration = 0.0

    for index, scene in enumerate(scenes):
        prefix = f"manifest.scenes[{index}]"
        if scene is None:
            raise ValidationError(prefix, "must not be null.")
        _require_mapping(scene, prefix)

        result = _normalize_scene(scene, index, assets, previous_duration, probe)
        duration = result.resolved_duration_sec

        total_duration += duration
        if result.transition.type is TransitionType.CROSSFADE:
            total_duration -= result.transition.duration_sec

        normalized.append(result)
        previous_duration = duration

    if total_duration > MAX_TOTAL_DURATION_SECONDS + EPSILON:
        raise ValidationError(
            "manifest.scenes",
            "total timeline duration must be less than or equal to "
            f"{MAX_TOTAL_DURATION_SECONDS} seconds.",
        )

    return Manifest(
        output_preset=preset,
        scenes=tuple(normalized),
        total_duration_sec=total_duration,
    )


# ── Scene normalization ───────────────────────────────────────────


def _normalize_scene(
    scene: dict,
    index: int,
    assets: dict[str, Upload],
    previous_duration: float,
    probe: Callable[[Upload], float],
) -> Scene:
    prefix = f"manifest.scenes[{index}]"

    asset_id = scene.get("assetId")
    if not isinstance(asset_id, str) or not asset_id.strip():
        raise ValidationError(f"{prefix}.assetId", "is required.")
    asset_id = asset_id.strip()

    asset = assets.get(asset_id)
    if asset is None or asset.is_empty:
        raise ValidationError(
            f"asset.{asset_id}", f"is required for scene index {index}."
        )

    if scene.get("type") is None:
        raise ValidationError(f"{prefix}.type", "is required.")
    scene_type = _parse_enum(SceneType, scene["type"], f"{prefix}.type")

    motion = _parse_enum(
        MotionType, scene.get("motion"), f"{prefix}.motion", MotionType.NONE,
    )
    clip_start = _non_negative_or_default(
        scene.get("clipStartSec"), 0.0, f"{prefix}.clipStartSec",
    )

    if scene_type is SceneType.IMAGE:
        duration = _resolve_image_duration(scene, index, asset, asset_id)
    else:
        duration = _resolve_video_duration(
            scene, index, asset, asset_id, clip_start, probe,
        )

    caption = _normalize_caption(scene.get("caption"), index, duration)
    transition = _normalize_transition(
        scene.get("transition"), index, previous_duration, duration,
    )
    visual_edit = _normalize_visual_edit(scene.get("visualEdit"), index)

    if scene_type is SceneType.IMAGE:
        return Scene(
            asset_id=asset_id,
            type=scene_type,
            duration_sec=duration,
            clip_start_sec=0.0,
            clip_duration_sec=None,
            motion=motion,
            caption=caption,
            transition=transition,
            visual_edit=visual_edit,
        )
    return Scene(
        asset_id=asset_id,
        type=scene_type,
        duration_sec=None,
        clip_start_sec=clip_start,
        clip_duration_sec=duration,
        motion=motion,
        caption=caption,
        transition=transition,
        visual_edit=visual_edit,
    )


def _resolve_image_duration(
    scene: dict, index: int, asset: Upload, asset_id: str,
) -> float:
    prefix = f"manifest.scenes[{index}]"
    _require_content_type(asset, asset_id, index, SceneType.IMAGE, "image/")

    if scene.get("clipDurationSec") is not None:
        raise ValidationError(
            f"{prefix}.clipDurationSec", "is not supported for IMAGE scenes."
        )
    clip_start = scene.get("clipStartSec")
    if clip_start is not None and _require_finite(clip_start, f"{prefix}.clipStartSec") > EPSILON:
        raise ValidationError(f"{prefix}.clipStartSec", "must be 0 for IMAGE scenes.")

    duration = _require_finite(scene.get("durationSec"), f"{prefix}.durationSec")
    if not MIN_IMAGE_DURATION_SECONDS <= duration <= MAX_IMAGE_DURATION_SECONDS:
        raise ValidationError(
            f"{prefix}.durationSec",
            f"must be between {MIN_IMAGE_DURATION_SECONDS} and "
            f"{MAX_IMAGE_DURATION_SECONDS} seconds.",
        )
    return duration


def _resolve_video_duration(
    scene: dict,
    index: int,
    asset: Upload,
    asset_id: str,
    clip_start: float,
    probe: Callable[[Upload], float],
) -> float:
    prefix = f"manifest.scenes[{index}]"
    _require_content_type(asset, asset_id, index, SceneType.VIDEO, "video/")

    if scene.get("durationSec") is not None:
        raise ValidationError(
            f"{prefix}.durationSec", "is only supported for IMAGE scenes."
        )

    if scene.get("clipDurationSec") is not None:
        clip_duration = _require_finite(
            scene["clipDurationSec"], f"{prefix}.clipDurationSec",
        )
        if clip_duration <= EPSILON:
            raise ValidationError(
                f"{prefix}.clipDurationSec", "must be greater than 0."
            )
        return clip_duration

    try:
        source_duration = probe(asset)
    except ProbeError as e:
        raise ValidationError(
            prefix, f"video asset duration could not be determined: {e}"
        ) from e

    remaining = source_duration - clip_start
    if remaining <= EPSILON:
        raise ValidationError(
            f"{prefix}.clipStartSec", "exceeds the source video duration."
        )
    return remaining


def _normalize_caption(caption: dict | None, index: int, scene_duration: float):
    if caption is None:
        return None
    prefix = f"manifest.scenes[{index}].caption"
    _require_mapping(caption, prefix)

    text = caption.get("text")
    if not isinstance(text, str) or not text.strip():
        raise ValidationError(f"{prefix}.text", "must not be blank.")

    start = _non_negative_or_default(
        caption.get("startOffsetSec"), 0.0, f"{prefix}.startOffsetSec",
    )
    if caption.get("endOffsetSec") is None:
        end = scene_duration
    else:
        end = _require_finite(caption["endOffsetSec"], f"{prefix}.endOffsetSec")

    if end <= start + EPSILON:
        raise ValidationError(
            f"{prefix}.endOffsetSec", "must be greater than caption.startOffsetSec."
        )
    if end > scene_duration + EPSILON:
        raise ValidationError(
            f"{prefix}.endOffsetSec", "must not exceed the scene duration."
        )

    position = _parse_enum(
        CaptionPosition, caption.get("position"), f"{prefix}.position",
        CaptionPosition.BOTTOM,
    )
    return Caption(
        text=text.strip(),
        start_offset_sec=start,
        end_offset_sec=end,
        position=position,
    )


def _normalize_transition(
    transition: dict | None,
    index: int,
    previous_duration: float,
    scene_duration: float,
) -> Transition:
    prefix = f"manifest.scenes[{index}].transition"
    if transition is not None:
        _require_mapping(transition, prefix)
    requested = _parse_enum(
        TransitionType,
        None if transition is None else transition.get("type"),
        f"{prefix}.type",
        TransitionType.CUT,
    )

    if index == 0:
        if requested is not TransitionType.CUT:
            raise ValidationError(f"{prefix}.type", "must be CUT for the first scene.")
        return Transition(TransitionType.CUT)

    if requested is TransitionType.CUT:
        return Transition(TransitionType.CUT)

    field = f"{prefix}.transitionDurationSec"
    duration = _require_finite(transition.get("transitionDurationSec"), field)
    if not MIN_CROSSFADE_DURATION_SECONDS <= duration <= MAX_CROSSFADE_DURATION_SECONDS:
        raise ValidationError(
            field,
            f"must be between {MIN_CROSSFADE_DURATION_SECONDS} and "
            f"{MAX_CROSSFADE_DURATION_SECONDS} seconds.",
        )
    if (duration >= previous_duration - EPSILON
            or duration >= scene_duration - EPSILON):
        raise ValidationError(field, "must be smaller than adjacent scene durations.")

    return Transition(TransitionType.CROSSFADE, duration)


def _normalize_visual_edit(visual_edit: dict | None, index: int) -> VisualEdit:
    prefix = f"manifest.scenes[{index}].visualEdit"
    if visual_edit is None:
        visual_edit = {}
    _require_mapping(visual_edit, prefix)

    filter_type = _parse_enum(
        VisualFilterType, visual_edit.get("filter"), f"{prefix}.filter",
        VisualFilterType.NONE,
    )
    color_grade = _normalize_color_grade(visual_edit.get("colorGrade"), prefix)
    overlay = _normalize_overlay(visual_edit.get("overlay"), prefix)
    return VisualEdit(filter=filter_type, color_grade=color_grade, overlay=overlay)


def _normalize_color_grade(color_grade: dict | None, parent: str) -> ColorGrade:
    prefix = f"{parent}.colorGrade"
    if color_grade is None:
        color_grade = {}
    _require_mapping(color_grade, prefix)

    return ColorGrade(
        brightness=_in_range_or_default(
            color_grade.get("brightness"), DEFAULT_BRIGHTNESS,
            BRIGHTNESS_RANGE, f"{prefix}.brightness",
        ),
        contrast=_in_range_or_default(
            color_grade.get("contrast"), DEFAULT_CONTRAST,
            CONTRAST_RANGE, f"{prefix}.contrast",
        ),
        saturation=_in_range_or_default(
            color_grade.get("saturation"), DEFAULT_SATURATION,
            SATURATION_RANGE, f"{prefix}.saturation",
        ),
    )


def _normalize_overlay(overlay: dict | None, parent: str) -> Overlay | None:
    """Validate an overlay; an effectively transparent one becomes None."""
    if overlay is None:
        return None
    prefix = f"{parent}.overlay"
    _require_mapping(overlay, prefix)

    hex_color = overlay.get("hexColor")
    if not isinstance(hex_color, str) or not hex_color.strip():
        raise ValidationError(
            f"{prefix}.hexColor", "is required when overlay is provided."
        )
    hex_color = hex_color.strip()
    if not HEX_COLOR_PATTERN.match(hex_color):
        raise ValidationError(f"{prefix}.hexColor", "must match #RRGGBB.")

    opacity = _in_range_or_default(
        overlay.get("opacity"), DEFAULT_OVERLAY_OPACITY,
        OPACITY_RANGE, f"{prefix}.opacity",
    )
    if opacity <= EPSILON:
        return None
    return Overlay(hex_color=hex_color.upper(), opacity=opacity)


# ── Field helpers ─────────────────────────────────────────────────


def _require_mapping(value, field: str) -> None:
    if not isinstance(value, dict):
        raise ValidationError(field, "must be an object.")


def _require_content_type(
    asset: Upload, asset_id: str, index: int, scene_type: SceneType, prefix: str,
) -> None:
    content_type = (asset.content_type or "").lower()
    if not content_type.startswith(prefix):
        raise ValidationError(
            f"asset.{asset_id}",
            f"must have content type {prefix}* for {scene_type.value} scene "
            f"manifest.scenes[{index}].",
        )


def _parse_enum(enum_cls, value, field: str, default=None):
    """Parse a wire enum string. None yields *default*."""
    if value is None:
        return default
    if isinstance(value, enum_cls):
        return value
    if isinstance(value, str):
        try:
            return enum_cls(value.strip().upper())
        except ValueError:
            pass
    valid = ", ".join(member.value for member in enum_cls)
    raise ValidationError(field, f"must be one of {valid}, got {value!r}.")


def _require_finite(value, field: str) -> float:
    # bool is an int subclass; true/false is never a valid number here.
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValidationError(field, "must be a finite number.")
    value = float(value)
    if not math.isfinite(value):
        raise ValidationError(field, "must be a finite number.")
    return value


def _non_negative_or_default(value, default: float, field: str) -> float:
    if value is None:
        return default
    value = _require_finite(value, field)
    if value < 0.0:
        raise ValidationError(field, "must be greater than or equal to 0.")
    return value


def _in_range_or_default(value, default: float, bounds: tuple[float, float], field: str) -> float:
    if value is None:
        return default
    value = _require_finite(value, field)
    low, high = bounds
    if value < low or value > high:
        raise ValidationError(field, f"must be between {low} and {high}.")
    return value
