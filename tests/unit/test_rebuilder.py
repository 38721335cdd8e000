import pytest

from json_locale_translator.errors import MissingTranslationError, RebuildError
from json_locale_translator.json_flattener import flatten
from json_locale_translator.rebuilder import rebuild_document


def test_rebuild_greeting_document(greeting_document, german_translations):
    document = flatten(greeting_document, "common.json")

    rebuilt = rebuild_document(document, german_translations["de"])

    assert rebuilt == {
        "greeting": {"morning": "Guten Morgen", "evening": "Guten Abend"},
        "farewell": "Auf Wiedersehen"
    }


def test_duplicate_strings_use_the_same_translation():
    document = flatten({"a": "Save", "b": {"c": "Save"}, "d": ["Save"]})

    rebuilt = rebuild_document(document, {"Save": "Speichern"})

    assert rebuilt == {"a": "Speichern", "b": {"c": "Speichern"}, "d": ["Speichern"]}


def test_empty_strings_are_kept_when_not_translated():
    document = flatten({"label": "", "title": "Title", "count": 0})

    rebuilt = rebuild_document(document, {"Title": "Titel"})

    assert rebuilt == {"label": "", "title": "Titel", "count": 0}


def test_empty_strings_need_a_translation_when_translated():
    document = flatten({"label": ""}, "form.json")

    with pytest.raises(MissingTranslationError):
        rebuild_document(document, {}, translate_empty_strings=True)


def test_missing_translation_names_file_and_path():
    document = flatten({"menu": {"items": ["Open", "Close"]}}, "menu.json")

    with pytest.raises(RebuildError) as exc_info:
        rebuild_document(document, {"Open": "Öffnen"})

    assert isinstance(exc_info.value, MissingTranslationError)
    assert exc_info.value.path == ("menu", "items", 1)
    assert "menu.json" in str(exc_info.value)
    assert "menu.items[1]" in str(exc_info.value)
