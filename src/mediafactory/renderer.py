"""Composition renderer — execute a RenderPlan as a sequence of ffmpeg stages.

Stages, all inside a private temp working directory:
  1. render scene i  -> scene-<i>.mp4  (one per scene)
  2. combine         -> visual.mp4     (copy, concat, or xfade chain)
  3. mux audio       -> final output   (looped audio, -shortest)

Every stage is bounded by STAGE_TIMEOUT_SECONDS. A non-zero exit or a
timeout raises RenderError with the stage name and captured output. The
working directory and everything in it are removed on every exit path.
"""

import logging
import shutil
import tempfile
from pathlib import Path

from . import filters
from .common import TEMP_PREFIX, delete_quietly
from .errors import RenderError
from .models import RenderPlan
from .tools import SubprocessToolRunner, ToolRunner, resolve_ffmpeg

logger = logging.getLogger(__name__)

STAGE_TIMEOUT_SECONDS = 10 * 60


class CompositionRenderer:
    """Render plans and still-image videos through an external tool runner."""

    def __init__(
        self,
        runner: ToolRunner | None = None,
        ffmpeg: str | None = None,
        stage_timeout: float = STAGE_TIMEOUT_SECONDS,
    ):
        self.runner = runner or SubprocessToolRunner()
        self.ffmpeg = ffmpeg
        self.stage_timeout = stage_timeout

    def _binary(self) -> str:
        return self.ffmpeg or resolve_ffmpeg()

    def render(self, plan: RenderPlan, output_path: str | Path) -> None:
        """Render a composition plan to *output_path*.

        Raises:
            ValueError: The plan has no scenes.
            RenderError: Any stage failed or timed out.
        """
        if not plan.scenes:
            raise ValueError("Composition render plan must include at least one scene.")

        ffmpeg = self._binary()
        output_path = Path(output_path)
        work_dir = Path(tempfile.mkdtemp(prefix=TEMP_PREFIX + "composition-"))
        visual = work_dir / "visual.mp4"

        try:
            clips = []
            for index, scene in enumerate(plan.scenes):
                if scene.asset_id not in plan.asset_paths:
                    raise ValueError(f"Missing asset path for scene assetId={scene.asset_id}")
                clip = work_dir / f"scene-{index}.mp4"
                self._run(
                    f"render scene {index}",
                    filters.scene_command(ffmpeg, plan, index, clip),
                )
                clips.append(clip)

            if len(clips) == 1:
                shutil.copyfile(clips[0], visual)
            else:
                self._run(
                    "combine scene clips",
                    filters.combine_command(
                        ffmpeg, clips, list(plan.scenes), visual,
                        crossfade=plan.has_crossfade,
                    ),
                )

            self._run(
                "mux audio and visual tracks",
                filters.audio_mux_command(ffmpeg, plan.audio_path, visual, output_path),
            )
            logger.info(
                "Rendered %d scene(s), %.3fs, to %s",
                len(plan.scenes), plan.total_duration_sec, output_path,
            )
        finally:
            delete_quietly(work_dir)

    def render_still(
        self,
        image_path: str | Path,
        audio_path: str | Path,
        duration_sec: float,
        output_path: str | Path,
    ) -> None:
        """Render one image over looping audio for *duration_sec* seconds."""
        self._run(
            "render still video",
            filters.still_command(
                self._binary(), Path(image_path), Path(audio_path),
                duration_sec, Path(output_path),
            ),
        )

    def _run(self, stage: str, args: list[str]) -> None:
        try:
            result = self.runner.invoke(stage, args, self.stage_timeout)
        except OSError as e:
            raise RenderError(stage, f"FFmpeg could not be started: {e}") from e

        if result.timed_out:
            raise RenderError(stage, "FFmpeg timed out", result.output)
        if result.exit_code != 0:
            raise RenderError(
                stage,
                f"FFmpeg failed with exit code {result.exit_code}. "
                f"Output: {result.output}",
                result.output,
            )
