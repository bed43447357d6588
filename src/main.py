# src/main.py — v2
"""CLI entry point: sync, init and cache commands.

Usage:
    i18ndiff sync [-w] [-f] [-l LANG ...]
    i18ndiff init [path]
    i18ndiff cache stats
    i18ndiff cache clear
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from i18ndiff.cache.json_store import JsonTranslationCache
from i18ndiff.config.settings import (
    ConfigurationError,
    Settings,
    find_config_file,
    load_settings,
    read_config_file,
    write_default_config,
)
from i18ndiff.core.models import TranslationStats
from i18ndiff.logging.logger import setup_logging
from i18ndiff.version import __version__

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_NAME = "i18n-diff.config.json"


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    setup_logging(level="DEBUG" if args.verbose else "INFO")

    if not hasattr(args, "func"):
        parser.print_help()
        return 1

    try:
        return asyncio.run(args.func(args))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130
    except ConfigurationError as exc:
        logger.error("%s", exc)
        return 1
    except Exception as exc:
        logger.error("Fatal error: %s", exc, exc_info=args.verbose)
        return 1


def _build_parser() -> argparse.ArgumentParser:
    """Build CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="i18ndiff",
        description=f"i18n-diff v{__version__}: incremental LLM translation of JSON locale files",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true",
        help="Enable debug logging and keep prompts in the failure report",
    )
    parser.add_argument(
        "-c", "--config", type=Path, default=None,
        help="Config file (default: search the working directory)",
    )

    subparsers = parser.add_subparsers(dest="command")

    # --- sync ---
    p_sync = subparsers.add_parser(
        "sync", help="Translate new and changed keys",
    )
    p_sync.add_argument(
        "-w", "--watch", action="store_true",
        help="Keep watching the base language directory after the first pass",
    )
    p_sync.add_argument(
        "-f", "--force", action="store_true",
        help="Retranslate every key, ignoring cache and snapshot",
    )
    p_sync.add_argument(
        "-l", "--langs", nargs="+", default=None, metavar="LANG",
        help="Only process these target languages",
    )
    p_sync.add_argument(
        "--no-progress", action="store_true",
        help="Disable the progress bar",
    )
    p_sync.set_defaults(func=_cmd_sync)

    # --- init ---
    p_init = subparsers.add_parser(
        "init", help="Write a starter config file",
    )
    p_init.add_argument(
        "path", nargs="?", type=Path, default=Path(DEFAULT_CONFIG_NAME),
        help=f"Config file to create (default: {DEFAULT_CONFIG_NAME})",
    )
    p_init.set_defaults(func=_cmd_init)

    # --- cache ---
    p_cache = subparsers.add_parser(
        "cache", help="Inspect or clear the translation cache",
    )
    cache_sub = p_cache.add_subparsers(dest="cache_command", required=True)
    p_stats = cache_sub.add_parser("stats", help="Show cache statistics")
    p_stats.set_defaults(func=_cmd_cache_stats)
    p_clear = cache_sub.add_parser("clear", help="Delete every cached translation")
    p_clear.set_defaults(func=_cmd_cache_clear)

    return parser


async def _cmd_sync(args: argparse.Namespace) -> int:
    """One full pass, then optionally watch for changes."""
    from i18ndiff.pipeline.translator import Translator

    overrides = {}
    if args.langs:
        overrides["target_langs"] = args.langs
    settings = load_settings(args.config, **overrides)
    _configure_logging(settings, args.verbose)
    _print_config(settings)

    translator = Translator(settings)
    translator.set_verbose(args.verbose)
    await translator.initialize()
    if args.force:
        logger.warning("Force mode: cache cleared, every key will be retranslated")
        translator.set_force(True)

    stats = await translator.translate_all(progress=not args.no_progress)
    _print_stats(stats)
    exit_code = 1 if stats.failed_files > 0 else 0

    if args.watch:
        from i18ndiff.watch.file_watcher import LocaleWatcher

        # Watch cycles after a forced pass are incremental again.
        translator.set_force(False)
        watcher = LocaleWatcher(settings, translator)
        try:
            await watcher.run()
        finally:
            watcher.stop()
            await translator.save_state()

    return exit_code


async def _cmd_init(args: argparse.Namespace) -> int:
    """Write a starter config file."""
    path = write_default_config(args.path)
    print(f"Created {path}")
    print("Set OPENAI_API_KEY (or llm.api_key) before running `i18ndiff sync`.")
    return 0


async def _cmd_cache_stats(args: argparse.Namespace) -> int:
    """Display cache statistics."""
    cache = await _open_cache(args.config)
    stats = cache.stats()
    print(f"\nCache {cache.path}:")
    print(f"  Entries:    {stats.total_entries}")
    for lang, count in sorted(stats.languages.items()):
        print(f"  {lang:10s}  {count}")
    return 0


async def _cmd_cache_clear(args: argparse.Namespace) -> int:
    """Delete every cached translation."""
    cache = await _open_cache(args.config)
    count = len(cache)
    cache.clear()
    await cache.save()
    print(f"Cleared {count} cache entries from {cache.path}")
    return 0


async def _open_cache(config_path: Path | None) -> JsonTranslationCache:
    """Load the cache named by the config file without full validation.

    Cache maintenance must work without an API key, so only the
    ``cache_path`` entry of the config file is read.
    """
    path = config_path if config_path is not None else find_config_file()
    cache_path: Path | str = Settings.model_fields["cache_path"].default
    if path is not None:
        if not Path(path).is_file():
            raise ConfigurationError(f"Config file not found: {path}")
        cache_path = read_config_file(Path(path)).get("cache_path", cache_path)

    cache = JsonTranslationCache(cache_path)
    await cache.load()
    return cache


def _configure_logging(settings: Settings, verbose: bool) -> None:
    """Re-apply logging with the configured format and optional log file."""
    setup_logging(
        level="DEBUG" if verbose else settings.log_level,
        log_format=settings.log_format,
        log_file=str(settings.log_file) if settings.log_file else None,
        rotation=settings.log_rotation,
        retention=settings.log_retention,
    )


def _print_config(settings: Settings) -> None:
    logger.info(
        "Base: %s -> %s | dir: %s | model: %s | concurrency: %d",
        settings.base_lang,
        ", ".join(settings.target_langs),
        settings.locales_dir,
        settings.llm_model,
        settings.concurrency,
    )


def _print_stats(stats: TranslationStats) -> None:
    """Print a human-readable run summary."""
    print("\nSync complete:")
    print(f"  Files:        {stats.success_files}/{stats.total_files} ok, {stats.failed_files} failed")
    print(f"  Added:        {stats.total_added}")
    print(f"  Updated:      {stats.total_updated}")
    print(f"  Removed:      {stats.total_removed}")
    print(f"  Skipped:      {stats.total_skipped}")
    print(f"  Failed keys:  {stats.total_failed_keys}")
    print(f"  Cache hits:   {stats.cache_hits} (~{stats.estimated_saved_tokens} tokens saved)")
    print(f"  Tokens used:  {stats.actual_used_tokens}")
    print(f"  Duration:     {stats.duration_seconds:.1f}s")


if __name__ == "__main__":
    sys.exit(main())
