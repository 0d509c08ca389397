"""Media probe — discover a video asset's duration with ffmpeg.

``ffmpeg -i <file>`` prints the container header, including a line like
``Duration: 00:01:02.50``, then exits non-zero because no output file was
given. Only the printed header matters, so the exit status is ignored and
the duration is parsed from the merged output.
"""

import re
from pathlib import Path

from .common import Upload, asset_suffix, copy_to_temp, delete_quietly
from .errors import ProbeError
from .tools import SubprocessToolRunner, ToolRunner, resolve_ffmpeg

PROBE_TIMEOUT_SECONDS = 15

DURATION_PATTERN = re.compile(r"Duration: (\d+):(\d+):(\d+(?:\.\d+)?)")


def parse_duration(output: str) -> float | None:
    """Parse the first ``Duration: H:MM:SS(.frac)`` in tool output, in seconds."""
    match = DURATION_PATTERN.search(output)
    if match is None:
        return None
    hours, minutes, seconds = match.groups()
    return int(hours) * 3600 + int(minutes) * 60 + float(seconds)


def probe_duration(
    path: str | Path,
    runner: ToolRunner | None = None,
    timeout: float = PROBE_TIMEOUT_SECONDS,
) -> float:
    """Return the duration in seconds of the media file at *path*.

    Raises:
        ProbeError: ffmpeg could not be started, timed out, or printed no
            parseable duration.
    """
    runner = runner or SubprocessToolRunner()
    try:
        result = runner.invoke("probe", [resolve_ffmpeg(), "-i", str(path)], timeout)
    except OSError as e:
        raise ProbeError(f"Unable to run ffmpeg to probe {path}: {e}") from e

    if result.timed_out:
        raise ProbeError(f"Timed out while probing duration of {path}")

    duration = parse_duration(result.output)
    if duration is None:
        raise ProbeError(f"Unable to determine duration of {path}")
    return duration


def probe_upload(
    upload: Upload,
    runner: ToolRunner | None = None,
    timeout: float = PROBE_TIMEOUT_SECONDS,
) -> float:
    """Probe an upload's duration via a private temp copy.

    The temp copy is deleted on every exit path.
    """
    try:
        temp_path = copy_to_temp(upload, "probe-", asset_suffix(upload))
    except OSError as e:
        raise ProbeError(f"Unable to stage asset for probing: {e}") from e
    try:
        return probe_duration(temp_path, runner=runner, timeout=timeout)
    finally:
        delete_quietly(temp_path)
