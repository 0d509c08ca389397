"""Job lifecycle manager — submit, render, publish, and track video jobs.

State machine per job, one direction only:

    QUEUED -> PROCESSING -> COMPLETED | FAILED

Submission is synchronous up to dispatch: inputs are copied to temp
files (I/O errors propagate to the caller, with any partial copies
removed), a composition manifest is validated (ValidationError propagates
to the caller), the job is registered as QUEUED, and a worker task is
handed to the executor. The returned id can be polled right away.

The worker marks the job PROCESSING, renders, uploads, and optionally
uploads a thumbnail. A thumbnail failure after a successful upload still
completes the job, with a warning. Any other failure marks the job FAILED
with a generic message; details go to the log only. All temp files the
job owns are deleted when the worker finishes, whatever the outcome.
"""

import logging
import tempfile
import threading
import uuid
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import replace
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable

from .common import (
    TEMP_PREFIX,
    Upload,
    asset_suffix,
    audio_suffix,
    copy_to_temp,
    delete_quietly,
    thumbnail_suffix,
)
from .errors import JobNotFoundError, ValidationError
from .manifest import MAX_TOTAL_DURATION_SECONDS, validate_manifest
from .models import JobState, JobStatus, Manifest, PublishOptions
from .plan import compile_render_plan
from .probe import probe_upload
from .publish import Publisher, combine_warnings
from .renderer import CompositionRenderer

logger = logging.getLogger(__name__)

DEFAULT_WORKERS = 2

MIN_STILL_DURATION_SECONDS = 1

QUEUED_MESSAGE = "Job queued."
PROCESSING_STILL_MESSAGE = "Generating video and uploading."
PROCESSING_COMPOSITION_MESSAGE = "Generating composition and uploading."
COMPLETED_MESSAGE = "Video generated and uploaded successfully."
COMPLETED_WITH_WARNINGS_MESSAGE = "Video generated and uploaded with warnings."
FAILED_MESSAGE = "Video processing failed. Check server logs."
THUMBNAIL_WARNING = "Video uploaded, but thumbnail upload failed."


def _now() -> datetime:
    return datetime.now(timezone.utc)


class JobManager:
    """Owns job identity and state, and dispatches workers onto an executor.

    Job state lives in one dict guarded by a lock. Every mutation is a
    compute-if-present update keyed by job id, and ids are unique per
    submission, so no two workers ever touch the same entry.
    """

    def __init__(
        self,
        renderer: CompositionRenderer,
        publisher: Publisher,
        executor: ThreadPoolExecutor | None = None,
        probe: Callable[[Upload], float] = probe_upload,
    ):
        self.renderer = renderer
        self.publisher = publisher
        self.executor = executor or ThreadPoolExecutor(
            max_workers=DEFAULT_WORKERS, thread_name_prefix="mediafactory-job",
        )
        self.probe = probe
        self._jobs: dict[str, JobStatus] = {}
        self._futures: dict[str, Future] = {}
        self._lock = threading.Lock()

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.shutdown()

    def shutdown(self, wait: bool = True) -> None:
        self.executor.shutdown(wait=wait)

    # ── Submission ────────────────────────────────────────────────

    def submit_job(
        self,
        image: Upload,
        audio: Upload,
        duration_sec: int,
        title: str,
        description: str,
        options: PublishOptions | None = None,
        thumbnail: Upload | None = None,
    ) -> str:
        """Submit a single image + audio job. Returns the job id."""
        if (isinstance(duration_sec, bool)
                or not MIN_STILL_DURATION_SECONDS <= duration_sec <= MAX_TOTAL_DURATION_SECONDS):
            raise ValidationError(
                "duration",
                f"must be between {MIN_STILL_DURATION_SECONDS} and "
                f"{MAX_TOTAL_DURATION_SECONDS} seconds.",
            )
        options = options or PublishOptions()

        staged = []
        try:
            image_path = copy_to_temp(image, "image-", asset_suffix(image))
            staged.append(image_path)
            audio_path = copy_to_temp(audio, "audio-", audio_suffix(audio))
            staged.append(audio_path)
            thumbnail_path = self._stage_thumbnail(thumbnail, staged)
        except OSError:
            for path in staged:
                delete_quietly(path)
            raise

        job_id = self._register(options)
        logger.info(
            "Accepted video job %s privacy=%s scheduled=%s thumbnail=%s",
            job_id, options.privacy_status.value, options.is_scheduled,
            thumbnail_path is not None,
        )
        self._dispatch(
            job_id, staged,
            self._process_still_job,
            job_id, image_path, audio_path, thumbnail_path,
            thumbnail.content_type if thumbnail else None,
            duration_sec, title, description, options,
        )
        return job_id

    def submit_composition_job(
        self,
        assets: dict[str, Upload],
        audio: Upload,
        manifest: dict | Manifest | None,
        title: str,
        description: str,
        options: PublishOptions | None = None,
        thumbnail: Upload | None = None,
    ) -> str:
        """Validate a manifest and submit a composition job. Returns the job id.

        Raises:
            ValidationError: The manifest is invalid. Nothing is queued.
            OSError: An input could not be staged. Nothing is queued.
        """
        assets = assets or {}
        if isinstance(manifest, Manifest):
            normalized = manifest
        else:
            normalized = validate_manifest(manifest, assets, probe=self.probe)
        options = options or PublishOptions()

        staged = []
        asset_paths = {}
        try:
            audio_path = copy_to_temp(audio, "composition-audio-", audio_suffix(audio))
            staged.append(audio_path)
            for asset_id, upload in assets.items():
                path = copy_to_temp(upload, "composition-asset-", asset_suffix(upload))
                staged.append(path)
                asset_paths[asset_id] = path
            thumbnail_path = self._stage_thumbnail(thumbnail, staged)
        except OSError:
            for path in staged:
                delete_quietly(path)
            raise

        job_id = self._register(options)
        logger.info(
            "Accepted composition job %s scenes=%d privacy=%s scheduled=%s thumbnail=%s",
            job_id, len(normalized.scenes), options.privacy_status.value,
            options.is_scheduled, thumbnail_path is not None,
        )
        self._dispatch(
            job_id, staged,
            self._process_composition_job,
            job_id, normalized, asset_paths, audio_path, thumbnail_path,
            thumbnail.content_type if thumbnail else None,
            title, description, options,
        )
        return job_id

    # ── Status ────────────────────────────────────────────────────

    def get_job_status(self, job_id: str) -> JobStatus:
        """Point-in-time snapshot of a job.

        Raises:
            JobNotFoundError: No job with this id.
        """
        with self._lock:
            status = self._jobs.get(job_id)
        if status is None:
            raise JobNotFoundError(job_id)
        return status

    def wait(self, job_id: str, timeout: float | None = None) -> JobStatus:
        """Block until the job's worker finishes, then return its status.

        Futures are dropped once they finish, so a job with no pending
        future has already reached its final state.

        Raises:
            JobNotFoundError: No job with this id.
        """
        with self._lock:
            future = self._futures.get(job_id)
        if future is not None:
            future.result(timeout=timeout)
        return self.get_job_status(job_id)

    # ── Workers ───────────────────────────────────────────────────

    def _process_still_job(
        self, job_id, image_path, audio_path, thumbnail_path, thumbnail_type,
        duration_sec, title, description, options,
    ):
        output_path = None
        self._update(job_id, state=JobState.PROCESSING, message=PROCESSING_STILL_MESSAGE)
        try:
            output_path = self._output_path("output-")
            self.renderer.render_still(image_path, audio_path, duration_sec, output_path)
            self._publish(
                job_id, output_path, title, description, options,
                thumbnail_path, thumbnail_type,
            )
            logger.info("Completed video job %s", job_id)
        except Exception:
            logger.exception("Video processing job %s failed", job_id)
            self._update(job_id, state=JobState.FAILED, message=FAILED_MESSAGE)
        finally:
            for path in (image_path, audio_path, thumbnail_path, output_path):
                delete_quietly(path)

    def _process_composition_job(
        self, job_id, manifest, asset_paths, audio_path, thumbnail_path,
        thumbnail_type, title, description, options,
    ):
        output_path = None
        self._update(
            job_id, state=JobState.PROCESSING, message=PROCESSING_COMPOSITION_MESSAGE,
        )
        try:
            output_path = self._output_path("composition-output-")
            plan = compile_render_plan(manifest, asset_paths, audio_path)
            self.renderer.render(plan, output_path)
            self._publish(
                job_id, output_path, title, description, options,
                thumbnail_path, thumbnail_type,
            )
            logger.info("Completed composition job %s", job_id)
        except Exception:
            logger.exception("Composition processing job %s failed", job_id)
            self._update(job_id, state=JobState.FAILED, message=FAILED_MESSAGE)
        finally:
            for path in (audio_path, thumbnail_path, output_path, *asset_paths.values()):
                delete_quietly(path)

    def _publish(
        self, job_id, video_path, title, description, options,
        thumbnail_path, thumbnail_type,
    ):
        """Primary upload (fatal on failure), then the optional thumbnail."""
        result = self.publisher.upload(video_path, title, description, options)
        artifact_id = result.artifact_id
        warning = result.warning

        if thumbnail_path is not None:
            try:
                self.publisher.upload_thumbnail(artifact_id, thumbnail_path, thumbnail_type)
            except Exception:
                logger.exception(
                    "Thumbnail upload failed for job %s and artifact %s",
                    job_id, artifact_id,
                )
                warning = combine_warnings(warning, THUMBNAIL_WARNING)

        self._update(
            job_id,
            state=JobState.COMPLETED,
            message=COMPLETED_MESSAGE if warning is None else COMPLETED_WITH_WARNINGS_MESSAGE,
            artifact_id=artifact_id,
            artifact_url=self.publisher.artifact_url(artifact_id),
            warning=warning,
        )

    # ── Store ─────────────────────────────────────────────────────

    def _register(self, options: PublishOptions) -> str:
        job_id = str(uuid.uuid4())
        now = _now()
        with self._lock:
            self._jobs[job_id] = JobStatus(
                job_id=job_id,
                state=JobState.QUEUED,
                message=QUEUED_MESSAGE,
                created_at=now,
                updated_at=now,
                publish_options=options,
            )
        return job_id

    def _dispatch(self, job_id: str, staged: list, fn, *args) -> None:
        """Hand the worker to the executor.

        If the executor refuses the task, the job is unregistered and its
        staged inputs are deleted before the error propagates.
        """
        try:
            future = self.executor.submit(fn, *args)
        except BaseException:
            with self._lock:
                self._jobs.pop(job_id, None)
            for path in staged:
                delete_quietly(path)
            raise
        with self._lock:
            if not future.done():
                self._futures[job_id] = future
        future.add_done_callback(lambda _: self._forget(job_id))

    def _forget(self, job_id: str) -> None:
        with self._lock:
            self._futures.pop(job_id, None)

    def _update(self, job_id: str, **changes) -> None:
        """Compute-if-present: replace the job's status atomically."""
        with self._lock:
            current = self._jobs.get(job_id)
            if current is None:
                return
            if current.state.is_terminal:
                logger.warning(
                    "Ignoring %s update for job %s already %s",
                    changes.get("state"), job_id, current.state.value,
                )
                return
            self._jobs[job_id] = replace(current, updated_at=_now(), **changes)

    def _stage_thumbnail(self, thumbnail: Upload | None, staged: list) -> Path | None:
        if thumbnail is None:
            return None
        path = copy_to_temp(thumbnail, "thumbnail-", thumbnail_suffix(thumbnail.content_type))
        staged.append(path)
        return path

    @staticmethod
    def _output_path(prefix: str) -> Path:
        with tempfile.NamedTemporaryFile(
            prefix=TEMP_PREFIX + prefix, suffix=".mp4", delete=False,
        ) as f:
            return Path(f.name)
