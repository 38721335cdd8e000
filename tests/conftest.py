import asyncio
import json
import os
from typing import Dict, Optional, Tuple

import pytest

from json_locale_translator.errors import TranslationError
from json_locale_translator.translation_client import TranslationClient


class FakeTranslationClient(TranslationClient):
    """
    In-memory translation client for tests.

    Records every call and the highest number of simultaneous calls, so tests
    can check deduplication and the concurrency bound.
    """

    def __init__(
            self,
            translations: Optional[Dict[str, Dict[str, str]]] = None,
            failures: Optional[Dict[Tuple[str, str], TranslationError]] = None,
            delay: float = 0.0
    ):
        super().__init__("en")
        self.translations = translations or {}
        self.failures = failures or {}
        self.delay = delay
        self.calls = []
        self.in_flight = 0
        self.max_in_flight = 0
        self.completed = []
        self.closed = False

    async def translate_one(self, text: str, target_lang: str) -> str:
        self.calls.append((text, target_lang))
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            # Always yield so workers actually overlap.
            await asyncio.sleep(self.delay)
            if (text, target_lang) in self.failures:
                raise self.failures[(text, target_lang)]
            translated = self.translations.get(target_lang, {}).get(text, f"[{target_lang}] {text}")
            self.completed.append(text)
            return translated
        finally:
            self.in_flight -= 1

    async def close(self) -> None:
        self.closed = True

    def calls_for(self, target_lang: str):
        return [text for text, lang in self.calls if lang == target_lang]


@pytest.fixture
def fake_client_factory():
    """Factory fixture for FakeTranslationClient instances."""
    return FakeTranslationClient


@pytest.fixture
def greeting_document():
    return {
        "greeting": {
            "morning": "Good morning",
            "evening": "Good evening"
        },
        "farewell": "Goodbye"
    }


@pytest.fixture
def german_translations():
    return {
        "de": {
            "Good morning": "Guten Morgen",
            "Good evening": "Guten Abend",
            "Goodbye": "Auf Wiedersehen"
        }
    }


@pytest.fixture
def source_locale_dir(tmp_path, greeting_document):
    """
    A small source locale tree on disk:

        en/common.json
        en/pages/home.json
    """
    source_dir = tmp_path / "locales" / "en"
    (source_dir / "pages").mkdir(parents=True)
    with open(source_dir / "common.json", 'w', encoding='utf-8') as f:
        json.dump(greeting_document, f, ensure_ascii=False, indent=2)
    with open(source_dir / "pages" / "home.json", 'w', encoding='utf-8') as f:
        json.dump({"title": "Home", "footer": {"bye": "Goodbye", "empty": ""}, "items": ["Home", 3, True, None]},
                  f, ensure_ascii=False, indent=2)
    return str(source_dir)


@pytest.fixture(autouse=True)
def isolated_translator_env():
    """Keep translator environment variables from leaking into tests."""
    names = ['TRANSLATE_API_URL', 'TRANSLATE_API_TOKEN', 'TRANSLATE_CONCURRENCY',
             'TRANSLATOR_CONFIG_FILE', 'OPENAI_API_KEY']
    saved = {name: os.environ.pop(name) for name in names if name in os.environ}
    yield
    for name in names:
        os.environ.pop(name, None)
    os.environ.update(saved)
