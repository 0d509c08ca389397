"""mediafactory.common — shared utilities.

Contains: uploaded-file handles, temp-file copying and cleanup,
suffix guessing from content types, path variable resolution, and
number formatting for ffmpeg arguments.
"""

import io
import logging
import os
import re
import shutil
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO

logger = logging.getLogger(__name__)

TEMP_PREFIX = "media-factory-"


# ── Uploads ────────────────────────────────────────────────────────

@dataclass(frozen=True)
class Upload:
    """An input file as received from a caller.

    Exactly one of ``path`` or ``data`` is set. ``content_type`` is the
    caller-declared MIME type; ``filename`` is the caller-side name and is
    only used to pick a temp-file suffix.
    """

    content_type: str | None = None
    filename: str | None = None
    path: Path | None = None
    data: bytes | None = None

    @classmethod
    def from_path(cls, path: str | Path, content_type: str | None = None) -> "Upload":
        path = Path(path)
        return cls(content_type=content_type, filename=path.name, path=path)

    @classmethod
    def from_bytes(
        cls, data: bytes, content_type: str | None = None, filename: str | None = None,
    ) -> "Upload":
        return cls(content_type=content_type, filename=filename, data=data)

    @property
    def is_empty(self) -> bool:
        if self.data is not None:
            return len(self.data) == 0
        if self.path is not None:
            return not self.path.is_file() or self.path.stat().st_size == 0
        return True

    def open(self) -> BinaryIO:
        if self.data is not None:
            return io.BytesIO(self.data)
        return open(self.path, "rb")


def copy_to_temp(upload: Upload, prefix: str, suffix: str) -> Path:
    """Copy an upload into a fresh temp file and return its path.

    The temp file is removed again if the copy fails.
    """
    fd, name = tempfile.mkstemp(prefix=TEMP_PREFIX + prefix, suffix=suffix)
    path = Path(name)
    try:
        with os.fdopen(fd, "wb") as dst, upload.open() as src:
            shutil.copyfileobj(src, dst)
    except BaseException:
        delete_quietly(path)
        raise
    return path


def delete_quietly(path: str | Path | None) -> None:
    """Delete a file or directory tree. Failures are logged, never raised."""
    if path is None:
        return
    path = Path(path)
    try:
        if path.is_dir():
            shutil.rmtree(path)
        else:
            path.unlink(missing_ok=True)
    except OSError as e:
        logger.warning("Could not delete temporary path %s: %s", path, e)


# ── Suffix guessing ────────────────────────────────────────────────

_CONTENT_TYPE_SUFFIXES = [
    ("png", ".png"),
    ("jpeg", ".jpg"),
    ("jpg", ".jpg"),
    ("gif", ".gif"),
    ("webm", ".webm"),
    ("quicktime", ".mov"),
    ("ogg", ".ogv"),
]

_AUDIO_SUFFIXES = [
    ("wav", ".wav"),
    ("ogg", ".ogg"),
    ("aac", ".aac"),
]


def _match_suffix(content_type: str | None, table, default: str) -> str:
    normalized = (content_type or "").lower()
    for needle, suffix in table:
        if needle in normalized:
            return suffix
    return default


def asset_suffix(upload: Upload) -> str:
    """Suffix for a scene asset: filename extension, else content type, else .mp4."""
    if upload.filename:
        ext = Path(upload.filename).suffix
        if len(ext) > 1:
            return ext
    return _match_suffix(upload.content_type, _CONTENT_TYPE_SUFFIXES, ".mp4")


def audio_suffix(upload: Upload) -> str:
    return _match_suffix(upload.content_type, _AUDIO_SUFFIXES, ".mp3")


def thumbnail_suffix(content_type: str | None) -> str:
    return ".png" if "png" in (content_type or "").lower() else ".jpg"


# ── Path utilities ─────────────────────────────────────────────────

def resolve_path_vars(text: str, paths: dict[str, str]) -> str:
    """Replace ${name} variables in a string using the paths dict."""
    def _replace(match):
        key = match.group(1)
        if key not in paths:
            raise ValueError(f"Unknown path variable: ${{{key}}}")
        return paths[key]
    return re.sub(r"\$\{(\w+)\}", _replace, text)


# ── Formatting ─────────────────────────────────────────────────────

def fmt(value: float) -> str:
    """Format seconds or filter coefficients for ffmpeg: 3 decimals, dot separator."""
    return f"{value:.3f}"
