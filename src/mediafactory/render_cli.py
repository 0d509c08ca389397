"""CLI for composition — validate a manifest and render it locally.

Reads a YAML/JSON composition manifest, resolves asset files from its
``assets`` mapping (and/or --asset overrides), validates the timeline,
compiles a render plan, and renders it with ffmpeg.

Usage:
    # Validate only (probes video assets, no rendering)
    mediafactory render --manifest manifest.yaml --validate

    # Render
    mediafactory render \
        --manifest manifest.yaml --audio soundtrack.mp3 --output final.mp4

    # Override or add assets on the command line
    mediafactory render --manifest manifest.yaml \
        --asset intro=/data/intro.png --audio a.mp3 --output final.mp4
"""

import argparse
import logging
import mimetypes
from pathlib import Path

from .common import Upload
from .manifest import load_manifest, validate_manifest
from .plan import compile_render_plan
from .renderer import CompositionRenderer


def parse_asset_args(values: list[str] | None) -> dict[str, str]:
    """Parse repeated ``id=path`` arguments into a dict."""
    assets = {}
    for value in values or []:
        asset_id, sep, path = value.partition("=")
        if not sep or not asset_id.strip() or not path.strip():
            raise ValueError(f"--asset expects id=path, got '{value}'")
        assets[asset_id.strip()] = path.strip()
    return assets


def build_uploads(asset_paths: dict[str, str]) -> dict[str, Upload]:
    """Wrap local files as uploads, guessing content types from extensions."""
    uploads = {}
    for asset_id, path in asset_paths.items():
        content_type, _ = mimetypes.guess_type(path)
        uploads[asset_id] = Upload.from_path(path, content_type=content_type)
    return uploads


def load_composition(manifest_path: str, asset_overrides: list[str] | None):
    """Load a manifest file and its assets. Returns (raw, uploads)."""
    raw = load_manifest(manifest_path)
    asset_paths = dict(raw.get("assets", {}))
    asset_paths.update(parse_asset_args(asset_overrides))

    missing = [p for p in asset_paths.values() if not Path(p).exists()]
    if missing:
        msg = f"Missing {len(missing)} asset file(s):\n"
        for p in missing:
            msg += f"  - {p}\n"
        raise FileNotFoundError(msg)

    return raw, build_uploads(asset_paths)


def _describe(manifest) -> None:
    preset = manifest.output_preset
    print(
        f"Manifest valid: {len(manifest.scenes)} scenes, "
        f"{preset.value} ({preset.width}x{preset.height}), "
        f"{manifest.total_duration_sec:.3f}s total"
    )
    for i, scene in enumerate(manifest.scenes):
        transition = scene.transition.type.value
        if scene.transition.duration_sec:
            transition += f" {scene.transition.duration_sec:.2f}s"
        print(
            f"  {i}: {scene.type.value} {scene.asset_id} "
            f"{scene.resolved_duration_sec:.3f}s <- {transition}"
        )


def render(
    manifest_path: str,
    audio_path: str,
    output_path: str,
    asset_overrides: list[str] | None = None,
) -> None:
    """Validate, compile, and render a manifest to output_path."""
    raw, uploads = load_composition(manifest_path, asset_overrides)
    manifest = validate_manifest(raw, uploads)
    _describe(manifest)

    plan = compile_render_plan(
        manifest,
        {asset_id: upload.path for asset_id, upload in uploads.items()},
        audio_path,
    )

    Path(output_path).parent.mkdir(parents=True, exist_ok=True)
    print(f"\nRendering {len(plan.scenes)} scenes...")
    print(f"Writing to: {output_path}")
    CompositionRenderer().render(plan, output_path)
    print(f"\nDone: {output_path}")


def main(args=None):
    parser = argparse.ArgumentParser(
        description="Render a composition manifest to mp4.",
    )
    parser.add_argument(
        "--manifest", required=True,
        help="Path to YAML or JSON composition manifest",
    )
    parser.add_argument(
        "--asset", action="append", default=None, metavar="ID=PATH",
        help="Asset file for a scene assetId (repeatable; overrides manifest assets)",
    )
    parser.add_argument(
        "--audio",
        help="Soundtrack file (required unless --validate)",
    )
    parser.add_argument(
        "--output",
        help="Output mp4 path (required unless --validate)",
    )
    parser.add_argument(
        "--validate", action="store_true",
        help="Validate manifest only — check assets and timeline, don't render",
    )
    parser.add_argument(
        "--verbose", action="store_true",
        help="Log every ffmpeg command",
    )
    args = parser.parse_args(args)

    if args.verbose:
        logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    if args.validate:
        raw, uploads = load_composition(args.manifest, args.asset)
        _describe(validate_manifest(raw, uploads))
        print("All assets verified.")
        return

    if not args.output or not args.audio:
        parser.error("--audio and --output are required (unless using --validate)")

    render(args.manifest, args.audio, args.output, asset_overrides=args.asset)


if __name__ == "__main__":
    main()
