"""External tool seam — run ffmpeg as a subprocess behind a narrow interface.

The probe and the renderer never call subprocess directly. They go through
a ToolRunner, so tests can swap in a fake that records argument lists and
returns canned output.
"""

import logging
import os
import subprocess
from dataclasses import dataclass

import imageio_ffmpeg

logger = logging.getLogger(__name__)

FFMPEG_PATH_ENV = "FFMPEG_PATH"

PREFLIGHT_TIMEOUT_SECONDS = 10


def resolve_ffmpeg() -> str:
    """Return the ffmpeg executable: $FFMPEG_PATH, else the bundled binary."""
    configured = os.environ.get(FFMPEG_PATH_ENV, "").strip()
    if configured:
        return configured
    return imageio_ffmpeg.get_ffmpeg_exe()


@dataclass(frozen=True)
class ToolResult:
    exit_code: int | None
    output: str
    timed_out: bool = False

    @property
    def ok(self) -> bool:
        return not self.timed_out and self.exit_code == 0


class ToolRunner:
    """Invoke an external tool for a named stage with a hard timeout."""

    def invoke(self, stage: str, args: list[str], timeout: float) -> ToolResult:
        raise NotImplementedError


class SubprocessToolRunner(ToolRunner):
    """Run commands with stdout and stderr merged into one captured stream."""

    def invoke(self, stage: str, args: list[str], timeout: float) -> ToolResult:
        logger.info("Running %s: %s", stage, " ".join(args))
        try:
            proc = subprocess.run(
                args,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                timeout=timeout,
                text=True,
                errors="replace",
            )
        except subprocess.TimeoutExpired as e:
            output = e.output or ""
            if isinstance(output, bytes):
                output = output.decode(errors="replace")
            return ToolResult(exit_code=None, output=output, timed_out=True)
        return ToolResult(exit_code=proc.returncode, output=proc.stdout or "")


def check_ffmpeg(runner: ToolRunner | None = None) -> str:
    """Preflight: confirm ffmpeg runs. Returns its version banner line.

    Raises:
        RuntimeError: If $FFMPEG_PATH points at a missing file, or ffmpeg
            does not answer -version within the preflight timeout.
    """
    configured = os.environ.get(FFMPEG_PATH_ENV, "").strip()
    if configured and not os.path.isfile(configured):
        raise RuntimeError(
            f"FFmpeg binary not found at {os.path.abspath(configured)}. "
            f"Set {FFMPEG_PATH_ENV} to a valid ffmpeg executable path."
        )

    runner = runner or SubprocessToolRunner()
    try:
        result = runner.invoke(
            "preflight", [resolve_ffmpeg(), "-version"], PREFLIGHT_TIMEOUT_SECONDS,
        )
    except OSError as e:
        raise RuntimeError(
            f"FFmpeg is not available. Install FFmpeg or set {FFMPEG_PATH_ENV}."
        ) from e
    if not result.ok:
        raise RuntimeError(
            f"FFmpeg is not available. Install FFmpeg or set {FFMPEG_PATH_ENV}."
        )
    lines = result.output.splitlines()
    return lines[0] if lines else ""
