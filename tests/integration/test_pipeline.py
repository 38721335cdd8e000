"""
Integration tests for the flatten / translate / rebuild pipeline.

Translation is served either by the in-memory fake client or by a local
LibreTranslate style endpoint running on aiohttp's test server.
"""
import pytest
from aiohttp import test_utils, web

from json_locale_translator.errors import AggregateError, ApiError, ConfigError, MalformedResponse, PipelineError
from json_locale_translator.file_io import load_source_tree
from json_locale_translator.pipeline import run_pipeline
from json_locale_translator.translation_client import LibreTranslateClient


@pytest.mark.asyncio
async def test_greeting_document_into_german(fake_client_factory, greeting_document, german_translations):
    client = fake_client_factory(german_translations)

    result = await run_pipeline([("common.json", greeting_document)], ["de"], client, 10, show_progress=False)

    assert result.ok
    assert result.translated == {
        "de": [("common.json", {
            "greeting": {"morning": "Guten Morgen", "evening": "Guten Abend"},
            "farewell": "Auf Wiedersehen"
        })]
    }


@pytest.mark.asyncio
async def test_duplicates_are_translated_once_per_language(fake_client_factory):
    source_tree = [
        ("a.json", {"farewell": "Goodbye", "menu": {"exit": "Goodbye"}}),
        ("b.json", {"buttons": ["Goodbye", "OK"]}),
        ("c.json", {"footer": {"bye": "Goodbye"}}),
    ]
    client = fake_client_factory({"de": {"Goodbye": "Tschüss"}})

    result = await run_pipeline(source_tree, ["de", "ja"], client, 3, show_progress=False)

    assert result.index.occurrences["Goodbye"] and len(result.index.occurrences["Goodbye"]) == 4
    assert client.calls_for("de").count("Goodbye") == 1
    assert client.calls_for("ja").count("Goodbye") == 1
    assert len(client.calls) == 4
    de_files = dict(result.translated["de"])
    assert de_files["b.json"] == {"buttons": ["Tschüss", "[de] OK"]}
    assert de_files["c.json"] == {"footer": {"bye": "Tschüss"}}


@pytest.mark.asyncio
async def test_empty_strings_pass_through_without_calls(fake_client_factory):
    client = fake_client_factory()

    result = await run_pipeline([("form.json", {"label": "", "hint": ""})], ["de"], client, 2, show_progress=False)

    assert result.translated["de"] == [("form.json", {"label": "", "hint": ""})]
    assert client.calls == []


@pytest.mark.asyncio
async def test_empty_strings_translated_when_enabled(fake_client_factory):
    client = fake_client_factory({"de": {"": "(leer)"}})

    result = await run_pipeline(
        [("form.json", {"label": ""})], ["de"], client, 2, translate_empty_strings=True, show_progress=False
    )

    assert result.translated["de"] == [("form.json", {"label": "(leer)"})]
    assert client.calls == [("", "de")]


@pytest.mark.asyncio
async def test_failed_language_does_not_stop_others(fake_client_factory, greeting_document, german_translations):
    failure = ApiError("Good evening", "ja", 500, "internal error")
    client = fake_client_factory(german_translations, failures={("Good evening", "ja"): failure})

    result = await run_pipeline([("common.json", greeting_document)], ["ja", "de"], client, 2, show_progress=False)

    assert not result.ok
    assert result.failed_languages == ["ja"]
    assert result.succeeded_languages == ["de"]
    error = result.failures["ja"]
    assert isinstance(error, AggregateError)
    assert list(error.failures) == ["Good evening"]
    assert error.failures["Good evening"].status == 500
    assert dict(result.translated["de"])["common.json"]["farewell"] == "Auf Wiedersehen"

    summary = "\n".join(result.summary_lines())
    assert "de: OK (1 file(s))" in summary
    assert "ja: FAILED" in summary
    assert "ApiError - HTTP 500: internal error" in summary
    assert "common.json: greeting.evening" in summary


@pytest.mark.asyncio
async def test_all_languages_failing_raises_pipeline_error(fake_client_factory):
    failures = {("Hello", lang): ApiError("Hello", lang, 503, "down") for lang in ("de", "ja")}
    client = fake_client_factory(failures=failures)

    with pytest.raises(PipelineError) as exc_info:
        await run_pipeline([("a.json", {"k": "Hello"})], ["de", "ja"], client, 2, show_progress=False)

    assert exc_info.value.result.failed_languages == ["de", "ja"]


@pytest.mark.asyncio
async def test_zero_concurrency_rejected_before_any_call(fake_client_factory, greeting_document):
    client = fake_client_factory()

    with pytest.raises(ConfigError):
        await run_pipeline([("common.json", greeting_document)], ["de"], client, 0, show_progress=False)

    assert client.calls == []


@pytest.mark.asyncio
async def test_empty_language_list_rejected(fake_client_factory, greeting_document):
    with pytest.raises(ConfigError):
        await run_pipeline([("common.json", greeting_document)], [" "], fake_client_factory(), 1)


@pytest.mark.asyncio
async def test_duplicate_languages_processed_once(fake_client_factory):
    client = fake_client_factory()

    result = await run_pipeline([("a.json", {"k": "Hello"})], ["de", "de"], client, 1, show_progress=False)

    assert result.succeeded_languages == ["de"]
    assert client.calls == [("Hello", "de")]


@pytest.mark.asyncio
async def test_concurrency_bound_across_files_and_languages(fake_client_factory):
    source_tree = [(f"file{i}.json", {"items": [f"Text {i}-{j}" for j in range(10)]}) for i in range(5)]
    client = fake_client_factory(delay=0.005)

    result = await run_pipeline(source_tree, ["de", "fr", "ja"], client, 4, show_progress=False)

    assert result.ok
    assert client.max_in_flight == 4
    assert len(client.calls) == 150


@pytest.mark.asyncio
async def test_non_string_leaves_survive(fake_client_factory, source_locale_dir):
    source_tree, _ = load_source_tree(source_locale_dir)
    client = fake_client_factory({"de": {"Home": "Start"}})

    result = await run_pipeline(source_tree, ["de"], client, 2, show_progress=False)

    home = dict(result.translated["de"])["pages/home.json"]
    assert home == {
        "title": "Start",
        "footer": {"bye": "[de] Goodbye", "empty": ""},
        "items": ["Start", 3, True, None]
    }


@pytest.mark.asyncio
async def test_pipeline_against_libretranslate_endpoint(greeting_document):
    dictionary = {
        ("Good morning", "de"): "Guten Morgen",
        ("Good evening", "de"): "Guten Abend",
        ("Goodbye", "de"): "Auf Wiedersehen",
    }
    requests = []

    async def handler(request):
        payload = await request.json()
        requests.append(payload)
        translated = dictionary.get((payload["q"], payload["target"]))
        if translated is None:
            return web.json_response({"error": f"{payload['target']} is not supported"}, status=400)
        return web.json_response({"translatedText": translated})

    app = web.Application()
    app.router.add_post('/translate', handler)

    async with test_utils.TestServer(app) as server:
        async with LibreTranslateClient(str(server.make_url('/translate'))) as client:
            result = await run_pipeline(
                [("common.json", greeting_document)], ["de", "xx"], client, 2, show_progress=False
            )

    assert result.translated["de"][0][1]["greeting"]["morning"] == "Guten Morgen"
    assert result.failed_languages == ["xx"]
    assert all(f.status == 400 for f in result.failures["xx"].failures.values())
    assert len(requests) == 6


@pytest.mark.asyncio
async def test_undecodable_response_fails_only_that_language(greeting_document):
    async def handler(request):
        payload = await request.json()
        if payload["target"] == "ja":
            return web.Response(body=b'\xff', content_type='application/json', charset='utf-8')
        return web.json_response({"translatedText": f"de:{payload['q']}"})

    app = web.Application()
    app.router.add_post('/translate', handler)

    async with test_utils.TestServer(app) as server:
        async with LibreTranslateClient(str(server.make_url('/translate'))) as client:
            result = await run_pipeline(
                [("common.json", greeting_document)], ["ja", "de"], client, 2, show_progress=False
            )

    assert result.failed_languages == ["ja"]
    assert result.succeeded_languages == ["de"]
    assert all(isinstance(f, MalformedResponse) for f in result.failures["ja"].failures.values())
    assert result.translated["de"][0][1]["farewell"] == "de:Goodbye"
