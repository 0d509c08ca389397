"""CLI for the simple path — one image over looping audio.

Usage:
    mediafactory generate --image cover.png --audio track.mp3 \
        --duration 60 --output video.mp4
"""

import argparse
import logging
from pathlib import Path

from .renderer import CompositionRenderer


def main(args=None):
    parser = argparse.ArgumentParser(
        description="Render a single image over looping audio.",
    )
    parser.add_argument("--image", required=True, help="Still image file")
    parser.add_argument("--audio", required=True, help="Audio file (looped)")
    parser.add_argument(
        "--duration", type=float, required=True,
        help="Video duration in seconds",
    )
    parser.add_argument("--output", required=True, help="Output mp4 path")
    parser.add_argument(
        "--verbose", action="store_true",
        help="Log the ffmpeg command",
    )
    parsed = parser.parse_args(args)

    if parsed.duration <= 0:
        parser.error("--duration must be positive")

    if parsed.verbose:
        logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    for p in (parsed.image, parsed.audio):
        if not Path(p).exists():
            raise FileNotFoundError(f"Input not found: {p}")

    Path(parsed.output).parent.mkdir(parents=True, exist_ok=True)
    print(f"Generating {parsed.duration:.1f}s video from {parsed.image}")
    CompositionRenderer().render_still(
        parsed.image, parsed.audio, parsed.duration, parsed.output,
    )
    print(f"Done: {parsed.output}")


if __name__ == "__main__":
    main()
