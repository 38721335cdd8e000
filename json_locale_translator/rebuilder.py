from typing import Any, Dict, Mapping

from json_locale_translator.errors import MissingTranslationError
from json_locale_translator.json_flattener import FlatDocument, Path, rebuild


def rebuild_document(
        document: FlatDocument,
        translations: Mapping[str, str],
        translate_empty_strings: bool = False
) -> Any:
    """
    Rebuild a translated tree from a flattened document.

    Every string leaf is looked up by its source text in `translations`.
    Empty strings that were excluded from translation keep their value.

    Args:
        document: The flattened source document.
        translations: Source text -> translated text for one language.
        translate_empty_strings: Must match the setting the string index was
            built with.

    Returns:
        The translated JSON tree.

    Raises:
        MissingTranslationError: If a translatable leaf has no translation.
            The scheduler only reports success with a complete mapping, so
            this means an internal bug.
    """
    by_path: Dict[Path, str] = {}
    for entry in document.entries:
        if entry.value in translations:
            by_path[entry.path] = translations[entry.value]
        elif entry.value == "" and not translate_empty_strings:
            by_path[entry.path] = entry.value
        else:
            raise MissingTranslationError(entry.path, document.file_id)
    return rebuild(document.skeleton, by_path, document.file_id)
