import asyncio
import logging
from typing import Dict, Iterable, Optional

from aiolimiter import AsyncLimiter
from tqdm import tqdm

from json_locale_translator.errors import AggregateError, ConfigError, TranslationError
from json_locale_translator.translation_client import TranslationClient

logger = logging.getLogger(__name__)


def validate_concurrency_limit(concurrency_limit) -> int:
    """Return the limit if it is a positive integer, raise ConfigError otherwise."""
    if isinstance(concurrency_limit, bool) or not isinstance(concurrency_limit, int) or concurrency_limit <= 0:
        raise ConfigError(
            f"Concurrency limit must be a positive integer, got {concurrency_limit!r}"
        )
    return concurrency_limit


class TranslationScheduler:
    """
    Drives a TranslationClient over a set of unique strings with a bounded
    worker pool.

    At most `concurrency_limit` requests are in flight at any time. Each
    worker pulls the next pending string as soon as its previous request
    finishes, so one slow request never holds back a whole batch.

    Failures are collected rather than cancelling the rest of the work: every
    string is attempted, then an AggregateError lists all failures.
    """

    def __init__(
            self,
            client: TranslationClient,
            concurrency_limit: int,
            rate_limiter: Optional[AsyncLimiter] = None,
            show_progress: bool = True
    ):
        self.client = client
        self.concurrency_limit = validate_concurrency_limit(concurrency_limit)
        self.rate_limiter = rate_limiter
        self.show_progress = show_progress

    async def _translate_one(self, text: str, target_lang: str) -> str:
        if self.rate_limiter is None:
            return await self.client.translate_one(text, target_lang)
        async with self.rate_limiter:
            return await self.client.translate_one(text, target_lang)

    async def translate_all(self, unique_strings: Iterable[str], target_lang: str) -> Dict[str, str]:
        """
        Translate every unique string into `target_lang`.

        Args:
            unique_strings: Distinct source strings. Each is requested once.
            target_lang: The target language code.

        Returns:
            Dict[str, str]: Source string -> translated string.

        Raises:
            AggregateError: If any request failed, after all requests finished.
        """
        pending: asyncio.Queue = asyncio.Queue()
        for text in dict.fromkeys(unique_strings):
            pending.put_nowait(text)

        total = pending.qsize()
        results: Dict[str, str] = {}
        failures: Dict[str, TranslationError] = {}
        if total == 0:
            return results

        progress = tqdm(
            total=total,
            desc=f"Translating into {target_lang}",
            unit="string",
            disable=not self.show_progress
        )

        async def worker() -> None:
            while True:
                try:
                    text = pending.get_nowait()
                except asyncio.QueueEmpty:
                    return
                try:
                    results[text] = await self._translate_one(text, target_lang)
                except TranslationError as exc:
                    logger.error("Translation into '%s' failed for %r: %s - %s",
                                 target_lang, text, exc.kind, exc)
                    failures[text] = exc
                finally:
                    progress.update(1)

        worker_count = min(self.concurrency_limit, total)
        logger.debug("Starting %d worker(s) for %d string(s) into '%s'.", worker_count, total, target_lang)
        workers = [asyncio.create_task(worker()) for _ in range(worker_count)]
        try:
            await asyncio.gather(*workers)
        except BaseException:
            for task in workers:
                task.cancel()
            await asyncio.gather(*workers, return_exceptions=True)
            raise
        finally:
            progress.close()

        if failures:
            raise AggregateError(target_lang, failures, results)
        return results
