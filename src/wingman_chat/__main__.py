"""Command line entry for wingman-chat."""

from __future__ import annotations

import argparse
from collections.abc import Sequence
from importlib import metadata
from pathlib import Path

from .app import WingmanChatApp
from .config import CONFIG_PATH, ensure_config_dir, load_config


def _package_version() -> str:
    try:
        return metadata.version("wingman-chat")
    except metadata.PackageNotFoundError:
        return "0.0.0"


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="wingman-chat",
        description="Terminal client for the wingman reply assistant.",
    )
    parser.add_argument(
        "-c",
        "--config",
        type=Path,
        metavar="PATH",
        help=f"Read settings from PATH instead of {CONFIG_PATH}",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"wingman-chat {_package_version()}",
    )
    return parser


def main(argv: Sequence[str] | None = None) -> None:
    """Load settings, then run the chat TUI until the user quits."""
    args = _build_parser().parse_args(list(argv) if argv is not None else None)

    if args.config is None:
        ensure_config_dir()
        app = WingmanChatApp()
    else:
        app = WingmanChatApp(config=load_config(args.config.expanduser()))
    app.run()


if __name__ == "__main__":
    main()
