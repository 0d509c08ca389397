"""Tests for the media probe.

Most tests use the FakeToolRunner from conftest.py; the last class probes
the real source_video fixture with the bundled ffmpeg.
"""

import os

import pytest

from mediafactory.common import Upload
from mediafactory.errors import ProbeError
from mediafactory.probe import parse_duration, probe_duration, probe_upload
from mediafactory.tools import ToolResult

from conftest import FakeToolRunner


class TestParseDuration:
    def test_hours_minutes_seconds(self):
        assert parse_duration("  Duration: 01:02:03.50, start: 0.0") == pytest.approx(3723.5)

    def test_whole_seconds(self):
        assert parse_duration("Duration: 00:00:07, bitrate") == 7.0

    def test_first_match_wins(self):
        output = "Duration: 00:00:04.00\nDuration: 00:00:09.00"
        assert parse_duration(output) == 4.0

    def test_no_match(self):
        assert parse_duration("Invalid data found when processing input") is None


class TestProbeDuration:
    def test_ignores_exit_code(self, tmp_path):
        runner = FakeToolRunner(probe_output="Duration: 00:00:12.25, start: 0.000")
        assert probe_duration(tmp_path / "x.mp4", runner=runner) == 12.25
        stage, args, timeout = runner.calls[0]
        assert stage == "probe"
        assert args[1:] == ["-i", str(tmp_path / "x.mp4")]
        assert timeout == 15

    def test_timeout(self, tmp_path):
        runner = FakeToolRunner(results={
            "probe": ToolResult(exit_code=None, output="", timed_out=True),
        })
        with pytest.raises(ProbeError, match="Timed out"):
            probe_duration(tmp_path / "x.mp4", runner=runner)

    def test_unparseable_output(self, tmp_path):
        runner = FakeToolRunner(probe_output="moov atom not found")
        with pytest.raises(ProbeError, match="Unable to determine"):
            probe_duration(tmp_path / "x.mp4", runner=runner)

    def test_tool_not_startable(self, tmp_path):
        class Broken(FakeToolRunner):
            def invoke(self, stage, args, timeout):
                raise FileNotFoundError("ffmpeg")

        with pytest.raises(ProbeError, match="Unable to run ffmpeg"):
            probe_duration(tmp_path / "x.mp4", runner=Broken())


class TestProbeUpload:
    def test_temp_copy_removed(self):
        runner = FakeToolRunner()
        upload = Upload.from_bytes(b"data", content_type="video/webm")
        assert probe_upload(upload, runner=runner) == 10.0

        probed = runner.calls[0][1][-1]
        assert probed.endswith(".webm")
        assert not os.path.exists(probed)

    def test_temp_copy_removed_on_failure(self):
        runner = FakeToolRunner(probe_output="garbage")
        upload = Upload.from_bytes(b"data", content_type="video/mp4", filename="c.mov")
        with pytest.raises(ProbeError):
            probe_upload(upload, runner=runner)
        assert not os.path.exists(runner.calls[0][1][-1])

    def test_unreadable_upload(self, tmp_path):
        upload = Upload.from_path(tmp_path / "gone.mp4", content_type="video/mp4")
        with pytest.raises(ProbeError, match="stage"):
            probe_upload(upload, runner=FakeToolRunner())

    @pytest.mark.parametrize("upload,suffix", [
        (Upload.from_bytes(b"x", content_type="video/quicktime"), ".mov"),
        (Upload.from_bytes(b"x", content_type="video/mp4", filename="clip.mkv"), ".mkv"),
        (Upload.from_bytes(b"x", content_type=None), ".mp4"),
    ])
    def test_temp_copy_suffix(self, upload, suffix):
        runner = FakeToolRunner()
        probe_upload(upload, runner=runner)
        assert runner.calls[0][1][-1].endswith(suffix)


class TestProbeRealFile:
    def test_source_video(self, source_video):
        assert probe_duration(source_video) == pytest.approx(5.0, abs=0.2)
