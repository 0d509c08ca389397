"""CLI for jobs — run a full render + publish job and report its status.

Publishes into a local directory (DirectoryPublisher). Either a
composition manifest or a single image is rendered.

Usage:
    mediafactory submit --manifest manifest.yaml --audio a.mp3 \
        --title "Demo" --description "..." --publish-dir published/

    mediafactory submit --image cover.png --duration 60 --audio a.mp3 \
        --title "Demo" --description "..." --publish-dir published/ \
        --thumbnail thumb.png --tag demo --privacy UNLISTED
"""

import argparse
import logging
import mimetypes

from .common import Upload
from .jobs import JobManager
from .models import JobState
from .publish import DirectoryPublisher, build_publish_options
from .render_cli import load_composition
from .renderer import CompositionRenderer


def _upload(path: str | None) -> Upload | None:
    if path is None:
        return None
    content_type, _ = mimetypes.guess_type(path)
    return Upload.from_path(path, content_type=content_type)


def _print_status(status) -> None:
    print(f"Job {status.job_id}: {status.state.value}")
    print(f"  {status.message}")
    if status.artifact_id:
        print(f"  artifact: {status.artifact_id}")
        print(f"  url:      {status.artifact_url}")
    if status.warning:
        print(f"  warning:  {status.warning}")


def main(args=None):
    parser = argparse.ArgumentParser(
        description="Render and publish a video job, then report its status.",
    )
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument("--manifest", help="Composition manifest (YAML or JSON)")
    source.add_argument("--image", help="Single image for the simple path")
    parser.add_argument(
        "--asset", action="append", default=None, metavar="ID=PATH",
        help="Asset file for a scene assetId (repeatable)",
    )
    parser.add_argument(
        "--duration", type=int, default=None,
        help="Video duration in seconds (with --image)",
    )
    parser.add_argument("--audio", required=True, help="Soundtrack file")
    parser.add_argument("--title", required=True)
    parser.add_argument("--description", required=True)
    parser.add_argument("--thumbnail", default=None, help="Thumbnail image (jpeg/png)")
    parser.add_argument("--privacy", default=None, help="PRIVATE, UNLISTED, or PUBLIC")
    parser.add_argument("--tag", action="append", default=None, help="Tag (repeatable)")
    parser.add_argument("--category", default=None, help="Numeric category id")
    parser.add_argument(
        "--publish-at", default=None,
        help="Scheduled publish instant, ISO-8601 UTC ending in Z",
    )
    parser.add_argument(
        "--publish-dir", required=True,
        help="Directory the published video is written to",
    )
    parser.add_argument("--verbose", action="store_true", help="Log job progress")
    parsed = parser.parse_args(args)

    if parsed.image and parsed.duration is None:
        parser.error("--duration is required with --image")

    if parsed.verbose:
        logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    options = build_publish_options(
        privacy=parsed.privacy,
        tags=parsed.tag,
        category_id=parsed.category,
        publish_at=parsed.publish_at,
    )

    with JobManager(CompositionRenderer(), DirectoryPublisher(parsed.publish_dir)) as jobs:
        if parsed.manifest:
            raw, uploads = load_composition(parsed.manifest, parsed.asset)
            job_id = jobs.submit_composition_job(
                uploads, _upload(parsed.audio), raw,
                parsed.title, parsed.description, options, _upload(parsed.thumbnail),
            )
        else:
            job_id = jobs.submit_job(
                _upload(parsed.image), _upload(parsed.audio), parsed.duration,
                parsed.title, parsed.description, options, _upload(parsed.thumbnail),
            )
        print(f"Submitted job {job_id}")
        status = jobs.wait(job_id)

    _print_status(status)
    if status.state is JobState.FAILED:
        raise SystemExit(1)


if __name__ == "__main__":
    main()
