"""Clients that translate one string per call against a remote service."""
import asyncio
import json
import logging
from abc import ABC, abstractmethod
from typing import Dict, Optional

import aiohttp
import jsonschema
from openai import (
    APIConnectionError,
    APIResponseValidationError,
    APIStatusError,
    AsyncOpenAI
)
from openai.types.chat import (
    ChatCompletionSystemMessageParam,
    ChatCompletionUserMessageParam
)

from json_locale_translator.errors import (
    ApiError,
    ConfigError,
    MalformedResponse,
    NetworkFailure
)
from json_locale_translator.text_protection import (
    clean_translated_text,
    extract_placeholders,
    restore_placeholders
)

logger = logging.getLogger(__name__)

DEFAULT_REQUEST_TIMEOUT = 60.0
DEFAULT_CONNECT_TIMEOUT = 10.0

# Expected body of a LibreTranslate style /translate response.
TRANSLATION_RESPONSE_SCHEMA = {
    "type": "object",
    "properties": {
        "translatedText": {"type": "string"}
    },
    "required": ["translatedText"]
}

# Error bodies can be whole HTML pages; keep reports readable.
MAX_ERROR_BODY_LENGTH = 500


class TranslationClient(ABC):
    """
    Translates a single text into one target language.

    Implementations make exactly one outbound request per call and never
    retry. Failures are raised as TranslationError subclasses.
    """

    def __init__(self, source_lang: str = "en"):
        self.source_lang = source_lang

    @abstractmethod
    async def translate_one(self, text: str, target_lang: str) -> str:
        """Return the translation of `text` into `target_lang`."""

    async def close(self) -> None:
        """Release network resources held by the client."""

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()


class LibreTranslateClient(TranslationClient):
    """
    Client for LibreTranslate compatible HTTP endpoints.

    Posts `{"q", "source", "target", "format"}` as JSON and reads the
    `translatedText` field of the response. A bearer token is sent only when
    one is configured.
    """

    def __init__(
            self,
            api_url: str,
            source_lang: str = "en",
            auth_token: Optional[str] = None,
            request_timeout: float = DEFAULT_REQUEST_TIMEOUT,
            connect_timeout: float = DEFAULT_CONNECT_TIMEOUT,
            session: Optional[aiohttp.ClientSession] = None
    ):
        super().__init__(source_lang)
        self.api_url = api_url
        self.auth_token = auth_token
        self.timeout = aiohttp.ClientTimeout(total=request_timeout, connect=connect_timeout)
        self._session = session
        self._owns_session = session is None

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=self.timeout)
            self._owns_session = True
        return self._session

    async def close(self) -> None:
        if self._session is not None and self._owns_session and not self._session.closed:
            await self._session.close()
        self._session = None

    def _headers(self) -> Dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.auth_token:
            headers["Authorization"] = f"Bearer {self.auth_token}"
        return headers

    async def translate_one(self, text: str, target_lang: str) -> str:
        payload = {
            "q": text,
            "source": self.source_lang,
            "target": target_lang,
            "format": "text"
        }
        session = self._get_session()
        try:
            async with session.post(
                    self.api_url,
                    json=payload,
                    headers=self._headers(),
                    timeout=self.timeout
            ) as response:
                raw_body = await response.read()
                status = response.status
        except asyncio.TimeoutError:
            raise NetworkFailure(
                text, target_lang, f"Request to {self.api_url} timed out after {self.timeout.total}s"
            ) from None
        except aiohttp.ClientError as exc:
            raise NetworkFailure(
                text, target_lang, f"{exc.__class__.__name__}: {exc}"
            ) from exc

        if not 200 <= status < 300:
            body = raw_body.decode('utf-8', errors='replace')
            raise ApiError(text, target_lang, status, body[:MAX_ERROR_BODY_LENGTH])

        try:
            data = json.loads(raw_body.decode('utf-8'))
            jsonschema.validate(instance=data, schema=TRANSLATION_RESPONSE_SCHEMA)
        except UnicodeDecodeError as exc:
            raise MalformedResponse(text, target_lang, f"Response is not valid UTF-8: {exc}") from exc
        except json.JSONDecodeError as exc:
            raise MalformedResponse(text, target_lang, f"Response is not valid JSON: {exc}") from exc
        except jsonschema.ValidationError as exc:
            raise MalformedResponse(
                text, target_lang, f"Response has no usable 'translatedText': {exc.message}"
            ) from exc

        logger.debug("Translated %r into '%s'.", text, target_lang)
        return data["translatedText"]


class OpenAITranslationClient(TranslationClient):
    """Translates with one chat completion per string."""

    SYSTEM_PROMPT = """
You are an expert translator specializing in software localization. Translate the following text from {source_language} to {target_language}.

**Instructions**:
- **Do not translate or modify placeholder tokens**: Any text enclosed within double underscores `__` (e.g., `__PH_abc123__`) should remain exactly as is.
- **Preserve formatting**: Keep special characters and formatting such as `\\n` and `\\t`.
- **Do not add** any additional characters or punctuation (e.g., no square brackets, quotation marks, etc.).
- **Provide only** the translated text.

The text is a user interface string of an application. Keep the translation brief and consistent with typical software terminology.
"""

    def __init__(
            self,
            client: AsyncOpenAI,
            model_name: str,
            source_lang: str = "en",
            language_names: Optional[Dict[str, str]] = None,
            request_timeout: float = DEFAULT_REQUEST_TIMEOUT,
            temperature: float = 0.3
    ):
        super().__init__(source_lang)
        self.client = client
        self.model_name = model_name
        self.language_names = language_names or {}
        self.request_timeout = request_timeout
        self.temperature = temperature

    def _language_name(self, code: str) -> str:
        return self.language_names.get(code, code)

    async def close(self) -> None:
        await self.client.close()

    async def translate_one(self, text: str, target_lang: str) -> str:
        # The model answers blank input with blank content, which reads as a bad reply.
        if not text.strip():
            return text

        processed_text, placeholder_mapping = extract_placeholders(text)
        system_prompt = self.SYSTEM_PROMPT.format(
            source_language=self._language_name(self.source_lang),
            target_language=self._language_name(target_lang)
        )
        try:
            response = await self.client.chat.completions.create(
                model=self.model_name,
                messages=[
                    ChatCompletionSystemMessageParam(role="system", content=system_prompt),
                    ChatCompletionUserMessageParam(role="user", content=processed_text)
                ],
                temperature=self.temperature,
                timeout=self.request_timeout,
            )
        except APIConnectionError as exc:
            # Also covers APITimeoutError.
            raise NetworkFailure(text, target_lang, f"{exc.__class__.__name__}: {exc}") from exc
        except APIStatusError as exc:
            raise ApiError(text, target_lang, exc.status_code, str(exc.message)[:MAX_ERROR_BODY_LENGTH]) from exc
        except APIResponseValidationError as exc:
            raise MalformedResponse(text, target_lang, str(exc)) from exc

        content = response.choices[0].message.content if response.choices else None
        if not content or not content.strip():
            raise MalformedResponse(text, target_lang, "Completion contained no translated text")

        translated_text = restore_placeholders(content.strip(), placeholder_mapping)
        return clean_translated_text(translated_text, text)


class DryRunTranslationClient(TranslationClient):
    """Echoes the source text back without touching the network."""

    async def translate_one(self, text: str, target_lang: str) -> str:
        logger.debug("[Dry Run] Would translate %r into '%s'.", text, target_lang)
        return text


def create_translation_client(config) -> TranslationClient:
    """
    Build the translation client selected by an AppConfig.

    Raises:
        ConfigError: If the provider is unknown or lacks credentials.
    """
    if config.dry_run:
        logger.info("Running in dry-run mode, no translation requests will be sent")
        return DryRunTranslationClient(config.source_lang)

    if config.provider == "libretranslate":
        logger.info("Using translation endpoint %s", config.api_url)
        return LibreTranslateClient(
            api_url=config.api_url,
            source_lang=config.source_lang,
            auth_token=config.api_token or None,
            request_timeout=config.request_timeout,
            connect_timeout=config.connect_timeout
        )

    if config.provider == "openai":
        if not config.openai_api_key:
            raise ConfigError(
                "OPENAI_API_KEY environment variable not found. "
                "Set it or enable dry_run mode in configuration."
            )
        logger.info("Using OpenAI model '%s' for translation", config.model_name)
        return OpenAITranslationClient(
            client=AsyncOpenAI(api_key=config.openai_api_key),
            model_name=config.model_name,
            source_lang=config.source_lang,
            language_names=config.language_codes,
            request_timeout=config.request_timeout
        )

    raise ConfigError(f"Unknown translation provider '{config.provider}'")
