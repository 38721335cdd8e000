"""Exception hierarchy for the JSON locale translator."""
from typing import Dict, Optional, Tuple, Union

PathSegment = Union[str, int]


class TranslatorError(Exception):
    """Base class for every error raised by this package."""


class ConfigError(TranslatorError):
    """Invalid configuration, detected before any work begins."""


class ParseError(TranslatorError):
    """A source file could not be read or decoded as JSON."""

    def __init__(self, file_id: str, reason: str):
        super().__init__(f"Could not parse '{file_id}': {reason}")
        self.file_id = file_id
        self.reason = reason


class TranslationError(TranslatorError):
    """A single translation request failed."""

    kind = "TranslationError"

    def __init__(self, text: str, target_lang: str, message: str):
        super().__init__(message)
        self.text = text
        self.target_lang = target_lang
        self.message = message


class NetworkFailure(TranslationError):
    """Connection refused, DNS failure or timeout."""

    kind = "NetworkFailure"


class ApiError(TranslationError):
    """The endpoint answered with a non-success status code."""

    kind = "ApiError"

    def __init__(self, text: str, target_lang: str, status: int, body: str):
        super().__init__(text, target_lang, f"HTTP {status}: {body}")
        self.status = status
        self.body = body


class MalformedResponse(TranslationError):
    """The response did not carry a usable translated text."""

    kind = "MalformedResponse"


class AggregateError(TranslatorError):
    """
    One or more translations failed for a target language.

    Carries every failure keyed by source string, plus the translations that
    did succeed so callers can decide whether partial output is usable.
    """

    def __init__(
            self,
            target_lang: str,
            failures: Dict[str, TranslationError],
            results: Optional[Dict[str, str]] = None
    ):
        super().__init__(
            f"{len(failures)} translation(s) failed for language '{target_lang}'"
        )
        self.target_lang = target_lang
        self.failures = failures
        self.results = results or {}


class RebuildError(TranslatorError):
    """A translated document could not be reconstructed."""


class MissingTranslationError(RebuildError):
    """A flattened leaf has no translation to substitute back in."""

    def __init__(self, path: Tuple[PathSegment, ...], file_id: str = ""):
        # json_flattener imports this module at load time.
        from json_locale_translator.json_flattener import format_path

        location = f"'{file_id}' at " if file_id else ""
        super().__init__(f"Missing translation for {location}'{format_path(path) or '<root>'}'")
        self.path = path
        self.file_id = file_id


class OutputError(TranslatorError):
    """Translated files for a language could not be written."""

    def __init__(self, target_lang: str, reason: str):
        super().__init__(f"Could not write output for '{target_lang}': {reason}")
        self.target_lang = target_lang
        self.reason = reason


class PipelineError(TranslatorError):
    """No target language could be processed. `result` holds the per-language failures."""

    def __init__(self, message: str, result=None):
        super().__init__(message)
        self.result = result
