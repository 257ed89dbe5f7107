#!/usr/bin/env python3
"""Command-line access to the translation cache.

Usage:
    python -m autotranslate.cli.translate_cli translate "Settings" "Hotkeys"
    python -m autotranslate.cli.translate_cli prebuild strings.txt
    python -m autotranslate.cli.translate_cli export [--path cache/my-export.json]
    python -m autotranslate.cli.translate_cli import cache/export-ko.json
    python -m autotranslate.cli.translate_cli diagnose [TEXT]

Configuration comes from AUTOTRANSLATE_* environment variables or the .env file
(provider, keys, languages, rate limit, storage root).

``prebuild`` reads one string per line, translates everything that is not cached
yet and turns on cache-only mode for the rest of the run.
"""
import argparse
import asyncio
import sys
from pathlib import Path

import structlog

from autotranslate.config import get_settings
from autotranslate.logging_config import configure_logging
from autotranslate.services.providers import ProviderError
from autotranslate.services.translation_controller import (
    CacheImportError,
    TranslationController,
    build_translation_controller,
)

logger = structlog.get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="autotranslate",
        description="Translate UI strings through the two-tier translation cache",
    )
    parser.add_argument("--target", "-t", help="Target language (overrides configuration)")
    subparsers = parser.add_subparsers(dest="command", required=True)

    translate = subparsers.add_parser("translate", help="Translate strings and print the results")
    translate.add_argument("texts", nargs="+")

    prebuild = subparsers.add_parser("prebuild", help="Build the cache from a newline-separated file")
    prebuild.add_argument("file", type=Path)

    export = subparsers.add_parser("export", help="Export the cache for the target language")
    export.add_argument("--path", help="Destination path relative to the storage root")

    import_ = subparsers.add_parser("import", help="Replace the cache with a JSON export")
    import_.add_argument("path")

    diagnose = subparsers.add_parser("diagnose", help="Run a test translation")
    diagnose.add_argument("text", nargs="?", default="Hello")

    return parser


async def run_command(controller: TranslationController, args: argparse.Namespace) -> int:
    if args.target:
        await controller.set_target_lang(args.target)

    if args.command == "translate":
        stamped = await controller.translate(args.texts)
        for source, translated in zip(stamped.texts, stamped.translations):
            print(f"{source}\t{translated}")
        return 0

    if args.command == "prebuild":
        lines = args.file.read_text(encoding="utf-8").splitlines()
        count = await controller.prebuild_cache(lines)
        print(f"Pre-translation done: {count} entries. Cache-only mode ON")
        return 0

    if args.command == "export":
        path = await controller.export_cache(args.path)
        print(f"Exported cache to {path}")
        return 0

    if args.command == "import":
        count = await controller.import_cache(args.path)
        print(f"Imported {count} entries from {args.path}")
        return 0

    if args.command == "diagnose":
        print(f"Result: {await controller.diagnose(args.text)}")
        return 0

    return 2


async def main_async(argv=None) -> int:
    args = build_parser().parse_args(argv)
    settings = get_settings()
    with structlog.contextvars.bound_contextvars(
        command=args.command,
        target_lang=args.target or settings.target_lang,
    ):
        controller = build_translation_controller(settings)
        await controller.start()
        try:
            return await run_command(controller, args)
        except (ProviderError, CacheImportError, OSError) as e:
            logger.error("command_failed", error=str(e))
            print(f"Error: {e}", file=sys.stderr)
            return 1
        finally:
            await controller.close()


def main() -> None:
    configure_logging()
    sys.exit(asyncio.run(main_async()))


if __name__ == "__main__":
    main()
