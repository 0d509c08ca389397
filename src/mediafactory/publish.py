"""Publishing collaborators.

The job manager publishes through a Publisher: one primary upload of the
rendered video, then an optional thumbnail upload. Either can fail on its
own; only the primary upload is fatal to a job.

DirectoryPublisher is the local destination used by the CLI: it files the
video (and thumbnail) under a generated id in a directory.
"""

import logging
import re
import shutil
import uuid
from datetime import datetime, timedelta, timezone
from pathlib import Path

import yaml

from .common import thumbnail_suffix
from .errors import PublishError, ValidationError
from .models import PrivacyStatus, PublishOptions, UploadResult

logger = logging.getLogger(__name__)

ARTIFACT_URL_TEMPLATE = "https://www.youtube.com/watch?v={}"


class Publisher:
    """Destination for rendered videos."""

    def upload(
        self,
        video_path: str | Path,
        title: str,
        description: str,
        options: PublishOptions,
    ) -> UploadResult:
        raise NotImplementedError

    def upload_thumbnail(
        self, artifact_id: str, image_path: str | Path, content_type: str | None,
    ) -> None:
        raise NotImplementedError

    def artifact_url(self, artifact_id: str | None) -> str | None:
        return build_artifact_url(artifact_id)


def build_artifact_url(artifact_id: str | None) -> str | None:
    if not artifact_id or not artifact_id.strip():
        return None
    return ARTIFACT_URL_TEMPLATE.format(artifact_id)


def combine_warnings(existing: str | None, new: str | None) -> str | None:
    """Join two optional warnings with a space, skipping blanks."""
    if not existing or not existing.strip():
        return new
    if not new or not new.strip():
        return existing
    return f"{existing} {new}"


class DirectoryPublisher(Publisher):
    """Publish into a local directory: <root>/<id>.mp4 plus <id>.yaml metadata."""

    def __init__(self, root: str | Path):
        self.root = Path(root)

    def upload(self, video_path, title, description, options):
        artifact_id = uuid.uuid4().hex[:11]
        try:
            self.root.mkdir(parents=True, exist_ok=True)
            shutil.copyfile(video_path, self.root / f"{artifact_id}.mp4")
            self._write_metadata(artifact_id, title, description, options)
        except OSError as e:
            raise PublishError(f"Could not publish {video_path} to {self.root}: {e}") from e
        logger.info("Published %s as %s", video_path, artifact_id)
        return UploadResult(artifact_id)

    def upload_thumbnail(self, artifact_id, image_path, content_type):
        suffix = thumbnail_suffix(content_type)
        try:
            shutil.copyfile(image_path, self.root / f"{artifact_id}.thumbnail{suffix}")
        except OSError as e:
            raise PublishError(f"Could not publish thumbnail for {artifact_id}: {e}") from e

    def artifact_url(self, artifact_id):
        if not artifact_id:
            return None
        return (self.root / f"{artifact_id}.mp4").resolve().as_uri()

    def _write_metadata(self, artifact_id, title, description, options):
        metadata = {
            "title": title,
            "description": description,
            "privacy": options.privacy_status.api_value,
            "tags": list(options.tags),
            "category": options.category_id,
            "publish_at": options.publish_at.isoformat() if options.publish_at else None,
        }
        with open(self.root / f"{artifact_id}.yaml", "w") as f:
            yaml.safe_dump(metadata, f, sort_keys=False)


# ── Publish options ───────────────────────────────────────────────

MAX_TAGS = 20
MAX_TAG_LENGTH = 50
MIN_PUBLISH_DELAY = timedelta(minutes=5)
CATEGORY_ID_PATTERN = re.compile(r"^\d{1,3}$")


def build_publish_options(
    privacy: str | None = None,
    tags: list[str] | None = None,
    category_id: str | None = None,
    publish_at: str | None = None,
    now: datetime | None = None,
) -> PublishOptions:
    """Validate caller-supplied publish settings into PublishOptions.

    Tags are trimmed and de-duplicated case-insensitively, keeping the
    first spelling. A scheduled publish time must be an ISO-8601 UTC
    instant ending in Z, at least five minutes out, and only applies to
    PRIVATE uploads (the destination flips them public at that time).

    Raises:
        ValidationError: First invalid setting.
    """
    if privacy is None or not privacy.strip():
        privacy_status = PrivacyStatus.PRIVATE
    else:
        try:
            privacy_status = PrivacyStatus(privacy.strip().upper())
        except ValueError:
            raise ValidationError(
                "privacyStatus", "must be one of PRIVATE, UNLISTED, PUBLIC."
            ) from None

    normalized_tags = []
    seen = set()
    for tag in tags or []:
        tag = tag.strip()
        if not tag:
            continue
        if len(tag) > MAX_TAG_LENGTH:
            raise ValidationError(
                "tags", f"each tag must be at most {MAX_TAG_LENGTH} characters."
            )
        if tag.lower() not in seen:
            seen.add(tag.lower())
            normalized_tags.append(tag)
    if len(normalized_tags) > MAX_TAGS:
        raise ValidationError("tags", f"a maximum of {MAX_TAGS} unique tags is allowed.")

    category = category_id.strip() if category_id else None
    if category and not CATEGORY_ID_PATTERN.match(category):
        raise ValidationError("categoryId", "must match ^\\d{1,3}$.")

    scheduled = _parse_publish_at(publish_at, now or datetime.now(timezone.utc))
    if scheduled is not None and privacy_status is not PrivacyStatus.PRIVATE:
        raise ValidationError("publishAt", "can only be used with privacyStatus=PRIVATE.")

    return PublishOptions(
        privacy_status=privacy_status,
        tags=tuple(normalized_tags),
        category_id=category or None,
        publish_at=scheduled,
    )


def _parse_publish_at(value: str | None, now: datetime) -> datetime | None:
    if value is None or not value.strip():
        return None
    value = value.strip()
    if not value.endswith("Z"):
        raise ValidationError("publishAt", "must be an ISO-8601 UTC instant ending with Z.")
    try:
        parsed = datetime.fromisoformat(value[:-1]).replace(tzinfo=timezone.utc)
    except ValueError:
        raise ValidationError("publishAt", "must be a valid ISO-8601 UTC instant.") from None
    if parsed < now + MIN_PUBLISH_DELAY:
        raise ValidationError("publishAt", "must be at least 5 minutes in the future.")
    return parsed
