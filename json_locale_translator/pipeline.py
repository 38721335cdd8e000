import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple

from aiolimiter import AsyncLimiter

from json_locale_translator.errors import (
    AggregateError,
    ConfigError,
    PipelineError,
    RebuildError,
    TranslatorError
)
from json_locale_translator.json_flattener import FlatDocument, flatten, format_path
from json_locale_translator.rebuilder import rebuild_document
from json_locale_translator.scheduler import TranslationScheduler
from json_locale_translator.string_index import UniqueStringIndex, build_unique_string_index
from json_locale_translator.translation_client import TranslationClient

logger = logging.getLogger(__name__)

SourceTree = List[Tuple[str, Any]]


@dataclass
class PipelineResult:
    """
    Outcome of a run, per target language.

    Attributes:
        translated: Language -> translated (file_id, tree) pairs, in source order.
        failures: Language -> the error that stopped it.
        index: The string index shared by all languages.
    """
    translated: Dict[str, List[Tuple[str, Any]]] = field(default_factory=dict)
    failures: Dict[str, TranslatorError] = field(default_factory=dict)
    index: Optional[UniqueStringIndex] = None

    @property
    def succeeded_languages(self) -> List[str]:
        return list(self.translated)

    @property
    def failed_languages(self) -> List[str]:
        return list(self.failures)

    @property
    def ok(self) -> bool:
        return not self.failures

    def summary_lines(self) -> List[str]:
        """Human readable summary: one line per language plus failure details."""
        lines = []
        for lang, documents in self.translated.items():
            lines.append(f"{lang}: OK ({len(documents)} file(s))")
        for lang, error in self.failures.items():
            lines.append(f"{lang}: FAILED - {error}")
            if isinstance(error, AggregateError):
                for text, failure in error.failures.items():
                    lines.append(f"  - {text!r}: {failure.kind} - {failure}")
                    for location in self._locations(text):
                        lines.append(f"      in {location}")
        return lines

    def _locations(self, text: str) -> List[str]:
        if self.index is None:
            return []
        return [
            f"{location.file_id}: {format_path(location.path) or '<root>'}"
            for location in self.index.occurrences.get(text, [])
        ]


def _unique_languages(target_langs: Sequence[str]) -> List[str]:
    languages = [lang.strip() for lang in target_langs if lang and lang.strip()]
    if not languages:
        raise ConfigError("At least one target language is required")
    return list(dict.fromkeys(languages))


async def run_pipeline(
        source_tree: SourceTree,
        target_langs: Sequence[str],
        client: TranslationClient,
        concurrency_limit: int,
        translate_empty_strings: bool = False,
        rate_limiter: Optional[AsyncLimiter] = None,
        show_progress: bool = True
) -> PipelineResult:
    """
    Translate a set of parsed JSON documents into several languages.

    Every document is flattened once and all strings are deduplicated across
    files, so each distinct string is requested at most once per language.
    Languages run one after another so no more than `concurrency_limit`
    requests are ever in flight. A language that fails does not stop the
    others.

    Args:
        source_tree: (file_id, parsed JSON) pairs.
        target_langs: Target language codes.
        client: The translation client to use.
        concurrency_limit: Maximum number of simultaneous requests.
        translate_empty_strings: Send empty strings for translation as well.
        rate_limiter: Optional limiter applied to every request.
        show_progress: Display a progress bar per language.

    Returns:
        PipelineResult: Translated trees and failures per language.

    Raises:
        ConfigError: Invalid concurrency limit or empty language list.
        PipelineError: If every language failed.
    """
    scheduler = TranslationScheduler(client, concurrency_limit, rate_limiter, show_progress)
    languages = _unique_languages(target_langs)

    documents: List[FlatDocument] = [flatten(tree, file_id) for file_id, tree in source_tree]
    index = build_unique_string_index(documents, translate_empty_strings)
    result = PipelineResult(index=index)

    logger.info(
        "Flattened %d file(s): %d translatable string occurrence(s), %d unique string(s), %d passed through.",
        len(documents), index.occurrence_count(), len(index), len(index.passthrough)
    )

    strings_to_translate = index.strings_to_translate()
    for lang in languages:
        logger.info("Translating %d unique string(s) into '%s'...", len(strings_to_translate), lang)
        try:
            translations = await scheduler.translate_all(strings_to_translate, lang)
        except AggregateError as exc:
            logger.error("Language '%s' failed: %s. No output will be produced for it.", lang, exc)
            result.failures[lang] = exc
            continue

        try:
            result.translated[lang] = [
                (document.file_id, rebuild_document(document, translations, translate_empty_strings))
                for document in documents
            ]
        except RebuildError as exc:
            logger.critical("Could not rebuild documents for '%s': %s", lang, exc)
            result.failures[lang] = exc
            continue
        logger.info("Finished '%s'.", lang)

    if documents and not result.translated:
        raise PipelineError(
            "All target languages failed: " + "; ".join(f"{lang}: {err}" for lang, err in result.failures.items()),
            result
        )
    return result
