"""Shared test fixtures for mediafactory tests."""

import subprocess
from pathlib import Path

import imageio_ffmpeg
import numpy as np
import pytest
from PIL import Image

from mediafactory.tools import ToolResult, ToolRunner

_FFMPEG = imageio_ffmpeg.get_ffmpeg_exe()


class FakeToolRunner(ToolRunner):
    """Records invocations instead of running ffmpeg.

    By default every stage succeeds and creates its output file (the last
    argument), so stages that read a previous stage's output find it.
    ``results`` maps a stage name to the ToolResult to return instead;
    ``probe_output`` is what the "probe" stage prints.
    """

    def __init__(self, results=None, probe_output="Duration: 00:00:10.00, start: 0"):
        self.calls = []
        self.results = dict(results or {})
        self.probe_output = probe_output

    def invoke(self, stage, args, timeout):
        self.calls.append((stage, list(args), timeout))
        if stage in self.results:
            return self.results[stage]
        if stage == "probe":
            return ToolResult(exit_code=1, output=self.probe_output)
        Path(args[-1]).write_bytes(b"fake media")
        return ToolResult(exit_code=0, output="ok")

    def stages(self):
        return [stage for stage, _, _ in self.calls]

    def args_for(self, stage):
        for name, args, _ in self.calls:
            if name == stage:
                return args
        raise KeyError(stage)


@pytest.fixture
def source_video(tmp_path):
    """Create a 5-second test video (320x240, 10fps) with audio using ffmpeg."""
    out = tmp_path / "source.mp4"
    subprocess.run(
        [
            _FFMPEG, "-y",
            "-f", "lavfi", "-i", "color=c=blue:s=320x240:d=5:r=10",
            "-f", "lavfi", "-i", "anullsrc=r=44100:cl=mono",
            "-shortest",
            "-c:v", "libx264", "-crf", "28", "-pix_fmt", "yuv420p",
            "-c:a", "aac", "-b:a", "32k",
            str(out),
        ],
        check=True,
        capture_output=True,
    )
    return out


@pytest.fixture
def source_audio(tmp_path):
    """Create a 2-second sine tone (shorter than the renders, so it loops)."""
    out = tmp_path / "tone.wav"
    subprocess.run(
        [
            _FFMPEG, "-y",
            "-f", "lavfi", "-i", "sine=frequency=440:duration=2",
            "-c:a", "pcm_s16le",
            str(out),
        ],
        check=True,
        capture_output=True,
    )
    return out


@pytest.fixture
def source_images(tmp_path):
    """Two small solid-color PNGs with different aspect ratios."""
    paths = []
    for name, color, size in (("red", (220, 40, 40), (320, 240)), ("blue", (40, 40, 220), (200, 300))):
        frame = np.full((size[1], size[0], 3), color, dtype=np.uint8)
        path = tmp_path / f"{name}.png"
        Image.fromarray(frame).save(path)
        paths.append(path)
    return paths
