"""Command-line trigger: ``drive-sync run`` / ``python -m drive_sync run``."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import TYPE_CHECKING

from pydantic import ValidationError

from drive_sync.errors import ConfigurationError

if TYPE_CHECKING:
    from drive_sync.config import Settings

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_CONFIG = 2


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="drive-sync",
        description="Synchronise a Google Drive folder into a vector search index",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    run = sub.add_parser("run", help="Run one synchronisation and print its summary")
    run.add_argument("--folder-id", help="Override GOOGLE_DRIVE_FOLDER_ID")
    run.add_argument(
        "--index-backend",
        choices=["vertexai", "chroma", "memory"],
        help="Override INDEX_BACKEND",
    )
    run.add_argument("--log-level", help="Override LOG_LEVEL")
    run.add_argument("--indent", type=int, default=2, help="JSON indentation of the summary")
    return parser


def _load_settings(args: argparse.Namespace) -> Settings:
    # the config module validates the environment on import
    from drive_sync.config import Settings

    overrides = {
        "google_drive_folder_id": args.folder_id,
        "index_backend": args.index_backend,
        "log_level": args.log_level,
    }
    return Settings(**{k: v for k, v in overrides.items() if v is not None})


def run(args: argparse.Namespace) -> int:
    try:
        settings = _load_settings(args)
        from drive_sync.pipeline import build_pipeline
    except ValidationError as exc:
        print(f"Invalid configuration:\n{exc}", file=sys.stderr)
        return EXIT_CONFIG

    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )
    try:
        pipeline = build_pipeline(settings)
    except ConfigurationError as exc:
        logger.error("%s", exc)
        return EXIT_CONFIG

    summary = pipeline.run()
    print(json.dumps(summary.to_response(), indent=args.indent or None))
    return EXIT_OK if summary.succeeded else EXIT_FAILED


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    if args.command == "run":
        return run(args)
    return EXIT_CONFIG  # pragma: no cover


if __name__ == "__main__":
    sys.exit(main())
