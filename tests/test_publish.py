"""Tests for publishing collaborators and publish option validation."""

from datetime import datetime, timezone

import pytest
import yaml

from mediafactory.errors import ValidationError
from mediafactory.models import PrivacyStatus, PublishOptions
from mediafactory.publish import (
    DirectoryPublisher,
    Publisher,
    build_artifact_url,
    build_publish_options,
    combine_warnings,
)

NOW = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)


class TestArtifactUrl:
    def test_watch_url(self):
        assert build_artifact_url("abc123") == "https://www.youtube.com/watch?v=abc123"

    @pytest.mark.parametrize("artifact_id", [None, "", "   "])
    def test_blank_id(self, artifact_id):
        assert build_artifact_url(artifact_id) is None

    def test_publisher_default(self):
        assert Publisher().artifact_url("x") == "https://www.youtube.com/watch?v=x"


class TestCombineWarnings:
    def test_both(self):
        assert combine_warnings("First.", "Second.") == "First. Second."

    def test_blank_existing(self):
        assert combine_warnings(None, "Second.") == "Second."
        assert combine_warnings("  ", "Second.") == "Second."

    def test_blank_new(self):
        assert combine_warnings("First.", None) == "First."

    def test_neither(self):
        assert combine_warnings(None, None) is None


class TestBuildPublishOptions:
    def test_defaults(self):
        assert build_publish_options(now=NOW) == PublishOptions()

    def test_privacy_case_insensitive(self):
        options = build_publish_options(privacy=" unlisted ", now=NOW)
        assert options.privacy_status is PrivacyStatus.UNLISTED
        assert options.privacy_status.api_value == "unlisted"

    def test_unknown_privacy(self):
        with pytest.raises(ValidationError) as excinfo:
            build_publish_options(privacy="friends", now=NOW)
        assert excinfo.value.field_path == "privacyStatus"

    def test_tags_trimmed_and_deduplicated(self):
        options = build_publish_options(tags=[" Music ", "music", "", "Live"], now=NOW)
        assert options.tags == ("Music", "Live")

    def test_too_many_tags(self):
        with pytest.raises(ValidationError, match="maximum of 20") as excinfo:
            build_publish_options(tags=[f"tag{i}" for i in range(21)], now=NOW)
        assert excinfo.value.field_path == "tags"

    def test_duplicates_do_not_count_toward_limit(self):
        tags = [f"tag{i}" for i in range(20)] + ["TAG0"]
        assert len(build_publish_options(tags=tags, now=NOW).tags) == 20

    def test_tag_too_long(self):
        with pytest.raises(ValidationError, match="50 characters"):
            build_publish_options(tags=["x" * 51], now=NOW)

    def test_category(self):
        assert build_publish_options(category_id=" 22 ", now=NOW).category_id == "22"

    @pytest.mark.parametrize("category", ["1234", "music", "2a"])
    def test_bad_category(self, category):
        with pytest.raises(ValidationError) as excinfo:
            build_publish_options(category_id=category, now=NOW)
        assert excinfo.value.field_path == "categoryId"

    def test_scheduled_publish(self):
        options = build_publish_options(publish_at="2026-01-01T12:10:00Z", now=NOW)
        assert options.publish_at == datetime(2026, 1, 1, 12, 10, tzinfo=timezone.utc)
        assert options.is_scheduled

    def test_publish_at_needs_z_suffix(self):
        with pytest.raises(ValidationError, match="ending with Z"):
            build_publish_options(publish_at="2026-01-01T12:10:00+00:00", now=NOW)

    def test_publish_at_unparseable(self):
        with pytest.raises(ValidationError, match="valid"):
            build_publish_options(publish_at="tomorrowZ", now=NOW)

    def test_publish_at_too_soon(self):
        with pytest.raises(ValidationError, match="5 minutes"):
            build_publish_options(publish_at="2026-01-01T12:04:00Z", now=NOW)

    def test_publish_at_requires_private(self):
        with pytest.raises(ValidationError, match="PRIVATE") as excinfo:
            build_publish_options(
                privacy="PUBLIC", publish_at="2026-01-02T00:00:00Z", now=NOW,
            )
        assert excinfo.value.field_path == "publishAt"


class TestDirectoryPublisher:
    def test_upload_writes_video_and_metadata(self, tmp_path):
        video = tmp_path / "render.mp4"
        video.write_bytes(b"video")
        publisher = DirectoryPublisher(tmp_path / "out")
        options = PublishOptions(tags=("a", "b"), category_id="10")

        result = publisher.upload(video, "Title", "Description", options)

        assert len(result.artifact_id) == 11
        assert result.warning is None
        published = tmp_path / "out" / f"{result.artifact_id}.mp4"
        assert published.read_bytes() == b"video"
        with open(tmp_path / "out" / f"{result.artifact_id}.yaml") as f:
            metadata = yaml.safe_load(f)
        assert metadata["title"] == "Title"
        assert metadata["privacy"] == "private"
        assert metadata["tags"] == ["a", "b"]
        assert metadata["category"] == "10"
        assert metadata["publish_at"] is None
        assert publisher.artifact_url(result.artifact_id) == published.resolve().as_uri()

    def test_thumbnail(self, tmp_path):
        video = tmp_path / "render.mp4"
        video.write_bytes(b"video")
        thumb = tmp_path / "t.png"
        thumb.write_bytes(b"png")
        publisher = DirectoryPublisher(tmp_path / "out")
        artifact_id = publisher.upload(video, "T", "D", PublishOptions()).artifact_id

        publisher.upload_thumbnail(artifact_id, thumb, "image/png")
        assert (tmp_path / "out" / f"{artifact_id}.thumbnail.png").read_bytes() == b"png"

        publisher.upload_thumbnail(artifact_id, thumb, "image/jpeg")
        assert (tmp_path / "out" / f"{artifact_id}.thumbnail.jpg").exists()

    def test_missing_video(self, tmp_path):
        from mediafactory.errors import PublishError

        with pytest.raises(PublishError):
            DirectoryPublisher(tmp_path / "out").upload(
                tmp_path / "nope.mp4", "T", "D", PublishOptions(),
            )
