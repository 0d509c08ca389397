"""Subcommand dispatcher for mediafactory.

Usage:
    mediafactory render    --manifest ... --audio ... --output ...
    mediafactory generate  --image ... --audio ... --duration 60 --output ...
    mediafactory submit    --manifest ... --audio ... --publish-dir ...
    mediafactory check
"""

import argparse
import sys


def main(args=None):
    parser = argparse.ArgumentParser(
        prog="mediafactory",
        description="Manifest-driven video rendering and publishing jobs.",
    )
    subparsers = parser.add_subparsers(dest="command")

    # Register subcommands. Each delegates to its own module's main().
    subparsers.add_parser("render", help="Validate and render a composition manifest")
    subparsers.add_parser("generate", help="Render a single image over looping audio")
    subparsers.add_parser("submit", help="Run a render + publish job")
    subparsers.add_parser("check", help="Verify that ffmpeg is available")

    # Parse only the subcommand name, pass the rest to the subcommand's parser.
    parsed, remaining = parser.parse_known_args(args)

    if parsed.command is None:
        parser.print_help()
        sys.exit(1)

    if parsed.command == "render":
        from .render_cli import main as render_main
        render_main(remaining)
    elif parsed.command == "generate":
        from .generate_cli import main as generate_main
        generate_main(remaining)
    elif parsed.command == "submit":
        from .submit_cli import main as submit_main
        submit_main(remaining)
    elif parsed.command == "check":
        from .tools import check_ffmpeg
        try:
            print(check_ffmpeg())
        except RuntimeError as e:
            print(e, file=sys.stderr)
            sys.exit(1)


if __name__ == "__main__":
    main()
