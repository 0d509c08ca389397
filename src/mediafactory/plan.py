"""Render plan compiler — map a normalized manifest onto execution terms.

A pure transformation. Every scene gets a concrete duration and clip
offset, transitions collapse into a uniform (type, duration) pair with
CUT meaning duration 0, and the total duration is recomputed with the
same overlap rule as the validator, since the manifest handed in may not
have come through validate_manifest.
"""

from pathlib import Path

from .errors import ValidationError
from .models import (
    Manifest,
    RenderPlan,
    SceneType,
    ScenePlan,
    TransitionType,
)


def compile_render_plan(
    manifest: Manifest,
    asset_paths: dict[str, str | Path],
    audio_path: str | Path,
) -> RenderPlan:
    """Compile a normalized manifest into a RenderPlan.

    Args:
        manifest: Normalized manifest (see manifest.validate_manifest).
        asset_paths: Local file path for every asset id the scenes use.
        audio_path: Local path of the soundtrack.

    Raises:
        ValidationError: A scene references an asset with no local path,
            or the manifest has no scenes.
    """
    if not manifest.scenes:
        raise ValidationError("manifest.scenes", "must contain at least one scene.")

    resolved_paths = {asset_id: Path(p) for asset_id, p in asset_paths.items()}
    scene_plans = []
    total = 0.0

    for index, scene in enumerate(manifest.scenes):
        if scene.asset_id not in resolved_paths:
            raise ValidationError(
                f"manifest.scenes[{index}].assetId",
                f"has no resolved file for asset '{scene.asset_id}'.",
            )

        if scene.type is SceneType.IMAGE:
            duration = scene.duration_sec
        else:
            duration = scene.clip_duration_sec

        transition = scene.transition
        if transition is None or transition.type is not TransitionType.CROSSFADE:
            transition_type, transition_duration = TransitionType.CUT, 0.0
        else:
            transition_type = TransitionType.CROSSFADE
            transition_duration = transition.duration_sec

        scene_plans.append(ScenePlan(
            asset_id=scene.asset_id,
            type=scene.type,
            duration_sec=duration,
            clip_start_sec=scene.clip_start_sec or 0.0,
            motion=scene.motion,
            caption=scene.caption,
            transition_type=transition_type,
            transition_duration_sec=transition_duration,
            visual_edit=scene.visual_edit,
        ))

        total += duration - transition_duration

    return RenderPlan(
        output_preset=manifest.output_preset,
        scenes=tuple(scene_plans),
        audio_path=Path(audio_path),
        asset_paths=resolved_paths,
        total_duration_sec=total,
    )
