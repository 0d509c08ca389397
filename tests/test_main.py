"""Tests for the subcommand dispatcher and the CLI entry points."""

import json
from pathlib import Path

import pytest


class TestMainDispatcher:
    def test_no_subcommand_shows_help(self, capsys):
        from mediafactory.main import main

        with pytest.raises(SystemExit) as exc_info:
            main([])
        assert exc_info.value.code != 0  # should error without subcommand

    def test_render_subcommand_exists(self):
        """Verify render subcommand is registered (will fail on missing --manifest)."""
        from mediafactory.main import main

        with pytest.raises(SystemExit):
            main(["render"])

    def test_generate_subcommand_exists(self):
        from mediafactory.main import main

        with pytest.raises(SystemExit):
            main(["generate"])

    def test_submit_subcommand_exists(self):
        from mediafactory.main import main

        with pytest.raises(SystemExit):
            main(["submit"])

    def test_invalid_subcommand_errors(self, capsys):
        from mediafactory.main import main

        with pytest.raises(SystemExit) as exc_info:
            main(["nonexistent"])
        assert exc_info.value.code != 0

    def test_check_prints_version(self, capsys, monkeypatch):
        from mediafactory.main import main

        monkeypatch.delenv("FFMPEG_PATH", raising=False)
        main(["check"])
        assert "ffmpeg" in capsys.readouterr().out.lower()

    def test_check_fails_on_bad_path(self, capsys, monkeypatch, tmp_path):
        from mediafactory.main import main

        monkeypatch.setenv("FFMPEG_PATH", str(tmp_path / "missing-ffmpeg"))
        with pytest.raises(SystemExit) as exc_info:
            main(["check"])
        assert exc_info.value.code == 1
        assert "not found" in capsys.readouterr().err


def _write_manifest(tmp_path, images):
    red, blue = images
    manifest = {
        "outputPreset": "SQUARE_1_1",
        "paths": {"media": str(red.parent)},
        "assets": {"red": "${media}/" + red.name, "blue": "${media}/" + blue.name},
        "scenes": [
            {"assetId": "red", "type": "IMAGE", "durationSec": 1.5},
            {
                "assetId": "blue", "type": "IMAGE", "durationSec": 1.5,
                "transition": {"type": "CROSSFADE", "transitionDurationSec": 0.5},
            },
        ],
    }
    path = tmp_path / "manifest.json"
    path.write_text(json.dumps(manifest))
    return path


class TestRenderCli:
    def test_parse_asset_args(self):
        from mediafactory.render_cli import parse_asset_args

        assert parse_asset_args(["a=/x/a.png", " b = b.mp4 "]) == {
            "a": "/x/a.png", "b": "b.mp4",
        }
        assert parse_asset_args(None) == {}

    @pytest.mark.parametrize("value", ["noequals", "=path", "id="])
    def test_parse_asset_args_rejects(self, value):
        from mediafactory.render_cli import parse_asset_args

        with pytest.raises(ValueError, match="id=path"):
            parse_asset_args([value])

    def test_build_uploads_guesses_content_type(self, tmp_path):
        from mediafactory.render_cli import build_uploads

        uploads = build_uploads({"a": str(tmp_path / "a.png"), "v": str(tmp_path / "v.mp4")})
        assert uploads["a"].content_type == "image/png"
        assert uploads["v"].content_type == "video/mp4"

    def test_missing_asset_file(self, tmp_path, source_images):
        from mediafactory.render_cli import load_composition

        path = _write_manifest(tmp_path, source_images)
        with pytest.raises(FileNotFoundError, match="Missing 1 asset"):
            load_composition(str(path), ["red=" + str(tmp_path / "gone.png")])

    def test_validate_only(self, tmp_path, source_images, capsys):
        from mediafactory.render_cli import main

        path = _write_manifest(tmp_path, source_images)
        main(["--manifest", str(path), "--validate"])
        out = capsys.readouterr().out
        assert "2 scenes" in out
        assert "2.500s total" in out
        assert "All assets verified." in out

    def test_render_requires_output(self, tmp_path, source_images):
        from mediafactory.render_cli import main

        path = _write_manifest(tmp_path, source_images)
        with pytest.raises(SystemExit):
            main(["--manifest", str(path)])

    def test_render(self, tmp_path, source_images, source_audio):
        from mediafactory.render_cli import main

        path = _write_manifest(tmp_path, source_images)
        out = tmp_path / "out" / "final.mp4"
        main(["--manifest", str(path), "--audio", str(source_audio), "--output", str(out)])
        assert out.exists()


class TestGenerateCli:
    def test_rejects_non_positive_duration(self, tmp_path):
        from mediafactory.generate_cli import main

        with pytest.raises(SystemExit):
            main(["--image", "a.png", "--audio", "a.mp3", "--duration", "0",
                  "--output", str(tmp_path / "o.mp4")])

    def test_missing_input(self, tmp_path):
        from mediafactory.generate_cli import main

        with pytest.raises(FileNotFoundError):
            main(["--image", str(tmp_path / "a.png"), "--audio", str(tmp_path / "a.mp3"),
                  "--duration", "2", "--output", str(tmp_path / "o.mp4")])

    def test_generate(self, tmp_path, source_images, source_audio):
        from mediafactory.generate_cli import main

        out = tmp_path / "still.mp4"
        main(["--image", str(source_images[0]), "--audio", str(source_audio),
              "--duration", "2", "--output", str(out)])
        assert out.exists()


class TestSubmitCli:
    def test_image_requires_duration(self, tmp_path):
        from mediafactory.submit_cli import main

        with pytest.raises(SystemExit):
            main(["--image", "a.png", "--audio", "a.mp3", "--title", "t",
                  "--description", "d", "--publish-dir", str(tmp_path)])

    def test_submit_image_job(self, tmp_path, source_images, source_audio, capsys):
        from mediafactory.submit_cli import main

        publish_dir = tmp_path / "published"
        main(["--image", str(source_images[0]), "--duration", "2",
              "--audio", str(source_audio), "--title", "Demo", "--description", "d",
              "--tag", "demo", "--publish-dir", str(publish_dir)])

        out = capsys.readouterr().out
        assert "COMPLETED" in out
        assert len(list(publish_dir.glob("*.mp4"))) == 1
        assert len(list(publish_dir.glob("*.yaml"))) == 1

    def test_submit_composition_job(self, tmp_path, source_images, source_audio, capsys):
        from mediafactory.submit_cli import main

        path = _write_manifest(tmp_path, source_images)
        publish_dir = tmp_path / "published"
        main(["--manifest", str(path), "--audio", str(source_audio),
              "--title", "Demo", "--description", "d",
              "--thumbnail", str(source_images[1]), "--publish-dir", str(publish_dir)])

        assert "COMPLETED" in capsys.readouterr().out
        assert len(list(publish_dir.glob("*.thumbnail.png"))) == 1
