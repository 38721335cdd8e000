import argparse
import asyncio
import logging
import sys
from typing import List, Optional

from aiolimiter import AsyncLimiter

from json_locale_translator.app_config import AppConfig, load_app_config
from json_locale_translator.errors import ConfigError, OutputError, PipelineError
from json_locale_translator.file_io import (
    load_source_tree,
    validate_paths,
    write_failure_report,
    write_translated_tree
)
from json_locale_translator.logging_config import LOGGER_NAME
from json_locale_translator.pipeline import PipelineResult, run_pipeline
from json_locale_translator.translation_client import create_translation_client

logger = logging.getLogger(__name__)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="json-locale-translator",
        description="Translate nested JSON localization files into several languages."
    )
    parser.add_argument("-s", "--source", dest="source_dir", help="Directory with the source language JSON files.")
    parser.add_argument("-o", "--output", dest="output_dir",
                        help="Output root; one sub-directory per target language is written below it.")
    parser.add_argument("-l", "--langs", dest="target_langs", help="Comma-separated target language codes.")
    parser.add_argument("-c", "--concurrency", dest="concurrency_limit", type=int,
                        help="Maximum number of simultaneous translation requests.")
    parser.add_argument("-u", "--url", dest="api_url", help="Translation endpoint URL.")
    parser.add_argument("--token", dest="api_token", help="Bearer token for the translation endpoint.")
    parser.add_argument("--config", dest="config_file", help="Path of the YAML configuration file.")
    parser.add_argument("--provider", choices=["libretranslate", "openai"], help="Translation backend.")
    parser.add_argument("--source-lang", dest="source_lang", help="Language code of the source files.")
    parser.add_argument("--translate-empty-strings", dest="translate_empty_strings", action="store_true",
                        default=None, help="Send empty strings for translation instead of copying them.")
    parser.add_argument("--dry-run", dest="dry_run", action="store_true", default=None,
                        help="Do not call the translation service or write any file.")
    parser.add_argument("--no-progress", dest="show_progress", action="store_false", default=None,
                        help="Hide the progress bars.")
    return parser.parse_args(argv)


def _log_summary(result: PipelineResult) -> None:
    for line in result.summary_lines():
        if "FAILED" in line or line.startswith(" "):
            logger.error(line)
        else:
            logger.info(line)


async def translate_locales(config: AppConfig) -> int:
    """
    Run a full translation: load, translate, write, report.

    Returns:
        int: The process exit code.
    """
    validate_paths(config.source_dir, config.output_dir)

    source_tree, parse_errors = load_source_tree(config.source_dir)
    if not source_tree:
        logger.info("No JSON files to translate in '%s'. Exiting.", config.source_dir)
        write_failure_report(config.failure_report_path, None, parse_errors)
        return 1 if parse_errors else 0

    rate_limiter = None
    if config.requests_per_minute:
        rate_limiter = AsyncLimiter(max_rate=config.requests_per_minute, time_period=60)

    async with create_translation_client(config) as client:
        try:
            result = await run_pipeline(
                source_tree,
                config.target_langs,
                client,
                config.concurrency_limit,
                translate_empty_strings=config.translate_empty_strings,
                rate_limiter=rate_limiter,
                show_progress=config.show_progress
            )
        except PipelineError as e:
            logger.error("%s", e)
            if e.result is not None:
                _log_summary(e.result)
            write_failure_report(config.failure_report_path, e.result, parse_errors)
            return 1

    for lang, documents in list(result.translated.items()):
        try:
            written = write_translated_tree(config.output_dir, lang, documents, dry_run=config.dry_run)
        except OSError as e:
            logger.error("Failed to write translations for '%s': %s", lang, e)
            del result.translated[lang]
            result.failures[lang] = OutputError(lang, str(e))
            continue
        logger.info("'%s': %d file(s) written, %d unchanged.", lang, written, len(documents) - written)

    _log_summary(result)
    write_failure_report(config.failure_report_path, result, parse_errors)

    if result.ok and not parse_errors:
        logger.info("All translations saved to '%s'.", config.output_dir)
        return 0
    return 1


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    overrides = {key: value for key, value in vars(args).items() if key != 'config_file'}
    try:
        config = load_app_config(overrides, config_file=args.config_file)
        return asyncio.run(translate_locales(config))
    except ConfigError as e:
        if logging.getLogger(LOGGER_NAME).handlers:
            logger.critical("Configuration error: %s", e)
        else:
            print(f"Configuration error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
