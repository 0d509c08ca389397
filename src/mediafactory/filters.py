"""Filter graph builder — ffmpeg filter expressions and stage commands.

Per-scene filter chain, always in this order:
  1. scale-to-fit + letterbox pad to the preset's exact size, centered.
  2. motion (IMAGE scenes only): zoompan zoom in/out or pan left/right.
  3. visual edit: color preset, then color grade (only if any value is
     off neutral), then a full-frame color overlay (only if visible).
  4. caption: a boxed drawtext, enabled only within its scene-local
     [start, end] window.

Scene combination:
  - one scene: nothing to combine.
  - no crossfades: sequential concat filter.
  - any crossfade: every boundary becomes an xfade in one chain. A CUT
    between crossfading scenes becomes a near-instant xfade so the chain
    stays uniform. Offsets walk an accumulated-duration cursor that
    shrinks by each transition's overlap.

All builders return argument lists; nothing here runs a process.
"""

from pathlib import Path

from .common import fmt
from .models import (
    Caption,
    ColorGrade,
    MotionType,
    Overlay,
    RenderPlan,
    ScenePlan,
    SceneType,
    TransitionType,
    VisualEdit,
    VisualFilterType,
)


# ── Constants ────────────────────────────────────────────────────

FRAME_RATE = 30
ZOOM_STEP = 0.0015
ZOOM_CEILING = 1.15
PAN_ZOOM = 1.08
CUT_TRANSITION_DURATION_SECONDS = 0.001
EPSILON = 1e-9

CAPTION_FONT_DIVISOR = 24
CAPTION_BOX_COLOR = "black@0.45"
CAPTION_BOX_BORDER = 12

VIDEO_CODEC_ARGS = [
    "-c:v", "libx264", "-preset", "veryfast", "-crf", "23", "-pix_fmt", "yuv420p",
]
AUDIO_CODEC_ARGS = ["-c:a", "aac", "-b:a", "192k"]

FILTER_PRESETS = {
    VisualFilterType.GRAYSCALE: "hue=s=0",
    VisualFilterType.SEPIA: (
        "colorchannelmixer=.393:.769:.189:.349:.686:.168:.272:.534:.131"
    ),
    VisualFilterType.COOL: "colorbalance=rs=-0.05:gs=0.00:bs=0.08",
    VisualFilterType.WARM: "colorbalance=rs=0.08:gs=0.03:bs=-0.03",
}


# ── Per-scene filters ────────────────────────────────────────────


def scale_pad_filter(width: int, height: int) -> str:
    return (
        f"scale={width}:{height}:force_original_aspect_ratio=decrease,"
        f"pad={width}:{height}:(ow-iw)/2:(oh-ih)/2:black,setsar=1"
    )


def motion_filter(motion: MotionType, duration: float, width: int, height: int) -> str | None:
    """zoompan expression for an image scene, or None for NONE.

    Zooms ramp by ZOOM_STEP per output frame between 1.0 and ZOOM_CEILING.
    Pans hold a fixed zoom and sweep the crop window across the scene's
    frame count (FRAME_RATE * duration).
    """
    tail = f"d=1:fps={FRAME_RATE}:s={width}x{height}"
    center_x = "x='iw/2-(iw/zoom/2)'"
    center_y = "y='ih/2-(ih/zoom/2)'"
    frames = f"({FRAME_RATE}*{fmt(duration)})"

    if motion is MotionType.ZOOM_IN:
        return (
            f"zoompan=z='if(lte(on,1),1.0,min(zoom+{ZOOM_STEP},{ZOOM_CEILING}))':"
            f"{center_x}:{center_y}:{tail}"
        )
    if motion is MotionType.ZOOM_OUT:
        return (
            f"zoompan=z='if(lte(on,1),{ZOOM_CEILING},max(zoom-{ZOOM_STEP},1.0))':"
            f"{center_x}:{center_y}:{tail}"
        )
    if motion is MotionType.PAN_LEFT:
        return (
            f"zoompan=z='{PAN_ZOOM}':x='max(iw/zoom-(iw/zoom)*on/{frames},0)':"
            f"{center_y}:{tail}"
        )
    if motion is MotionType.PAN_RIGHT:
        return (
            f"zoompan=z='{PAN_ZOOM}':x='min((iw/zoom)*on/{frames},iw/zoom)':"
            f"{center_y}:{tail}"
        )
    return None


def has_color_grade_adjustments(grade: ColorGrade) -> bool:
    return (
        abs(grade.brightness) > EPSILON
        or abs(grade.contrast - 1.0) > EPSILON
        or abs(grade.saturation - 1.0) > EPSILON
    )


def color_grade_filter(grade: ColorGrade) -> str:
    return (
        f"eq=brightness={fmt(grade.brightness)}"
        f":contrast={fmt(grade.contrast)}"
        f":saturation={fmt(grade.saturation)}"
    )


def overlay_filter(overlay: Overlay) -> str:
    color = overlay.hex_color
    if color.startswith("#"):
        color = "0x" + color[1:]
    return f"drawbox=x=0:y=0:w=iw:h=ih:color={color}@{fmt(overlay.opacity)}:t=fill"


def visual_edit_filters(visual_edit: VisualEdit | None) -> list[str]:
    if visual_edit is None:
        return []
    filters = []
    preset = FILTER_PRESETS.get(visual_edit.filter)
    if preset:
        filters.append(preset)
    if visual_edit.color_grade is not None and has_color_grade_adjustments(visual_edit.color_grade):
        filters.append(color_grade_filter(visual_edit.color_grade))
    if visual_edit.overlay is not None and visual_edit.overlay.opacity > EPSILON:
        filters.append(overlay_filter(visual_edit.overlay))
    return filters


def escape_drawtext(text: str) -> str:
    """Escape drawtext's reserved characters. Backslash goes first."""
    return (
        text.replace("\\", "\\\\")
        .replace(":", "\\:")
        .replace("'", "\\'")
        .replace("%", "\\%")
    )


def caption_filter(caption: Caption, width: int, height: int) -> str:
    font_size = max(width, height) // CAPTION_FONT_DIVISOR
    return (
        f"drawtext=text='{escape_drawtext(caption.text)}'"
        f":fontcolor=white:fontsize={font_size}"
        f":box=1:boxcolor={CAPTION_BOX_COLOR}:boxborderw={CAPTION_BOX_BORDER}"
        f":x=(w-text_w)/2:y={caption.position.y_expression}"
        f":enable='between(t,{fmt(caption.start_offset_sec)},{fmt(caption.end_offset_sec)})'"
    )


def build_scene_filter(scene: ScenePlan, width: int, height: int) -> str:
    """Full -vf chain for one scene."""
    filters = [scale_pad_filter(width, height)]

    if scene.type is SceneType.IMAGE and scene.motion is not MotionType.NONE:
        filters.append(motion_filter(scene.motion, scene.duration_sec, width, height))

    filters.extend(visual_edit_filters(scene.visual_edit))

    if scene.caption is not None:
        filters.append(caption_filter(scene.caption, width, height))

    return ",".join(filters)


# ── Scene combination ────────────────────────────────────────────


def build_concat_graph(n: int) -> tuple[str, str]:
    """Sequential concat of n video inputs. Returns (graph, output_label)."""
    inputs = "".join(f"[{i}:v]" for i in range(n))
    return f"{inputs}concat=n={n}:v=1:a=0[v]", "[v]"


def build_crossfade_graph(scenes: list[ScenePlan]) -> tuple[str, str, list[float]]:
    """Chain every scene boundary through xfade.

    Walks scenes left to right with an accumulated output-duration cursor.
    Each blend starts at max(cursor - transition, 0); the cursor then grows
    by the incoming scene's duration minus the overlap.

    Returns:
        (filter_graph, output_label, offsets) where offsets[i] is the blend
        offset of the boundary into scene i + 1.
    """
    current = "[0:v]"
    accumulated = scenes[0].duration_sec
    parts = []
    offsets = []

    for index in range(1, len(scenes)):
        scene = scenes[index]
        if scene.transition_type is TransitionType.CROSSFADE:
            duration = scene.transition_duration_sec
        else:
            duration = CUT_TRANSITION_DURATION_SECONDS
        offset = max(accumulated - duration, 0.0)
        offsets.append(offset)

        label = f"[xf{index}]"
        parts.append(
            f"{current}[{index}:v]xfade=transition=fade"
            f":duration={fmt(duration)}:offset={fmt(offset)}{label}"
        )
        current = label
        accumulated += scene.duration_sec - duration

    return ";".join(parts), current, offsets


# ── Stage commands ───────────────────────────────────────────────


def image_scene_command(
    ffmpeg: str, scene: ScenePlan, asset: Path, width: int, height: int, output: Path,
) -> list[str]:
    return [
        ffmpeg, "-y",
        "-loop", "1",
        "-i", str(asset),
        "-t", fmt(scene.duration_sec),
        "-vf", build_scene_filter(scene, width, height),
        "-r", str(FRAME_RATE),
        "-an",
        *VIDEO_CODEC_ARGS,
        str(output),
    ]


def video_scene_command(
    ffmpeg: str, scene: ScenePlan, asset: Path, width: int, height: int, output: Path,
) -> list[str]:
    return [
        ffmpeg, "-y",
        "-ss", fmt(scene.clip_start_sec),
        "-t", fmt(scene.duration_sec),
        "-i", str(asset),
        "-vf", build_scene_filter(scene, width, height),
        "-an",
        "-r", str(FRAME_RATE),
        *VIDEO_CODEC_ARGS,
        str(output),
    ]


def scene_command(ffmpeg: str, plan: RenderPlan, index: int, output: Path) -> list[str]:
    """Dispatch a scene to the image or video command builder."""
    scene = plan.scenes[index]
    asset = plan.asset_paths[scene.asset_id]
    width, height = plan.output_preset.width, plan.output_preset.height
    if scene.type is SceneType.IMAGE:
        return image_scene_command(ffmpeg, scene, asset, width, height, output)
    return video_scene_command(ffmpeg, scene, asset, width, height, output)


def combine_command(
    ffmpeg: str, clips: list[Path], scenes: list[ScenePlan], output: Path, crossfade: bool,
) -> list[str]:
    inputs = []
    for clip in clips:
        inputs.extend(["-i", str(clip)])

    if crossfade:
        graph, label, _ = build_crossfade_graph(scenes)
    else:
        graph, label = build_concat_graph(len(clips))

    return [
        ffmpeg, "-y",
        *inputs,
        "-filter_complex", graph,
        "-map", label,
        *VIDEO_CODEC_ARGS,
        str(output),
    ]


def audio_mux_command(ffmpeg: str, audio: Path, visual: Path, output: Path) -> list[str]:
    """Loop the audio under the visual track; stop at the shorter stream."""
    return [
        ffmpeg, "-y",
        "-stream_loop", "-1",
        "-i", str(audio),
        "-i", str(visual),
        "-map", "1:v:0",
        "-map", "0:a:0",
        "-c:v", "copy",
        *AUDIO_CODEC_ARGS,
        "-shortest",
        str(output),
    ]


def still_command(
    ffmpeg: str, image: Path, audio: Path, duration_sec: float, output: Path,
) -> list[str]:
    """Single image + looping audio, cut at duration_sec."""
    return [
        ffmpeg,
        "-loop", "1",
        "-i", str(image),
        "-stream_loop", "-1",
        "-i", str(audio),
        # libx264 with yuv420p needs even dimensions.
        "-vf", "scale=trunc(iw/2)*2:trunc(ih/2)*2",
        *VIDEO_CODEC_ARGS,
        *AUDIO_CODEC_ARGS,
        "-t", fmt(duration_sec),
        "-shortest",
        "-y",
        str(output),
    ]
