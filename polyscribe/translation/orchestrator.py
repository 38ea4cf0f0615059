"""
polyscribe/translation/orchestrator.py
=======================================
Translation Orchestrator — PolyScribe

Responsibility:
    - Route translation requests through: cache → preferred (sticky)
      engine → first available engine in priority order → guaranteed
      last engine
    - Coalesce identical in-flight requests onto one shared future so N
      concurrent callers cause exactly one engine call and one cache write
    - Keep a bounded FIFO result cache keyed by (source, target, text)
    - Fan out batches, turning per-item failures into degraded results

Engine list order is priority order; the LAST engine is the guaranteed
fallback (the offline dictionary engine by default).

This module does NOT:
    - Implement any translation itself (see polyscribe.translation.engines)
    - Apply timeouts; callers wrap calls in asyncio.wait_for when needed
"""

import asyncio
import logging
import time
from collections import OrderedDict
from dataclasses import dataclass, replace
from datetime import datetime

from polyscribe.config import TranslationOptions
from polyscribe.errors import AllTranslationEnginesUnavailable, UnsupportedLanguagePair
from polyscribe.languages import Language
from polyscribe.translation.engines import (
    OfflineDictionaryEngine,
    OpenAITranslationEngine,
    TranslationEngine,
    TranslationRequest,
    TranslationResult,
)

logger = logging.getLogger("polyscribe.translation.orchestrator")

CacheKey = tuple[str, str, str]


@dataclass(frozen=True)
class TranslationCacheEntry:
    result: TranslationResult
    timestamp: datetime


def default_engines(options: TranslationOptions) -> list[TranslationEngine]:
    """OpenAI first (when configured), offline dictionary last."""
    return [
        OpenAITranslationEngine(api_key=options.openai_api_key, model=options.openai_model),
        OfflineDictionaryEngine(),
    ]


class TranslationOrchestrator:
    """Cached, coalescing, fallback-aware translation front end."""

    def __init__(
        self,
        options: TranslationOptions | None = None,
        engines: list[TranslationEngine] | None = None,
    ):
        self.options = options or TranslationOptions()
        self.engines = list(engines) if engines is not None else default_engines(self.options)
        if not self.engines:
            raise ValueError("TranslationOrchestrator needs at least one engine")

        self._cache: OrderedDict[CacheKey, TranslationCacheEntry] = OrderedDict()
        self._in_flight: dict[CacheKey, asyncio.Future] = {}
        self._preferred: TranslationEngine | None = None

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def translate(self, request: TranslationRequest) -> TranslationResult:
        """Translate one request.

        Raises:
            UnsupportedLanguagePair: explicit source equals target, or the
                engine that served the request has no route for the pair.
            AllTranslationEnginesUnavailable: every fallback path failed.
        """
        if request.source == request.target.value:
            raise UnsupportedLanguagePair(request.source, request.target.value)

        key = request.cache_key
        cached = self._cache.get(key)
        if cached is not None:
            logger.debug("Translation cache hit for %s→%s", key[0], key[1])
            return replace(cached.result, processing_time_ms=0.0)

        pending = self._in_flight.get(key)
        if pending is None:
            pending = asyncio.ensure_future(self._translate_uncached(key, request))
            self._in_flight[key] = pending
            pending.add_done_callback(lambda _f, k=key: self._in_flight.pop(k, None))
        else:
            logger.debug("Joining in-flight translation for %s→%s", key[0], key[1])

        # Shield so one caller's cancellation does not cancel the shared call
        return await asyncio.shield(pending)

    async def translate_text(
        self,
        text: str,
        source: "str | Language",
        target: "str | Language",
        context: str | None = None,
        formality: str | None = None,
    ) -> TranslationResult:
        return await self.translate(
            TranslationRequest(
                text=text, source=source, target=target,
                context=context, formality=formality,
            )
        )

    async def translate_batch(
        self, requests: list[TranslationRequest],
    ) -> list[TranslationResult]:
        """Translate concurrently; failed items degrade, siblings continue."""
        outcomes = await asyncio.gather(
            *(self.translate(r) for r in requests), return_exceptions=True,
        )

        results: list[TranslationResult] = []
        for request, outcome in zip(requests, outcomes):
            if isinstance(outcome, BaseException):
                logger.warning("Batch translation item failed: %s", outcome)
                results.append(
                    TranslationResult(
                        translated_text=request.text,
                        confidence=0.0,
                        contextual_notes=[f"Translation failed: {outcome}"],
                    )
                )
            else:
                results.append(outcome)
        return results

    def supported_language_pairs(self) -> list[tuple[Language, Language]]:
        pairs: list[tuple[Language, Language]] = []
        for engine in self.engines:
            for pair in engine.supported_language_pairs():
                if pair not in pairs:
                    pairs.append(pair)
        return pairs

    def statistics(self) -> dict:
        return {
            "cache_size": len(self._cache),
            "preferred_engine": self._preferred.name if self._preferred else None,
            "supported_languages": [lang.value for lang in Language],
            "engines": [engine.name for engine in self.engines],
        }

    def clear_cache(self) -> None:
        self._cache.clear()
        logger.info("Translation cache cleared.")

    @property
    def preferred_engine(self) -> TranslationEngine | None:
        return self._preferred

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _translate_uncached(
        self, key: CacheKey, request: TranslationRequest,
    ) -> TranslationResult:
        start = time.perf_counter()
        engine = await self._select_engine()

        try:
            result = await engine.translate(request)
        except UnsupportedLanguagePair:
            raise
        except Exception as exc:
            fallback = self.engines[-1]
            if engine is fallback:
                logger.error("Fallback translation engine %s failed: %s", engine.name, exc)
                raise AllTranslationEnginesUnavailable(str(exc)) from exc

            logger.warning(
                "Translation engine %s failed: %s — retrying on %s.",
                engine.name, exc, fallback.name,
            )
            try:
                result = await fallback.translate(request)
            except UnsupportedLanguagePair:
                raise
            except Exception as fallback_exc:
                logger.error(
                    "Fallback translation engine %s failed: %s", fallback.name, fallback_exc,
                )
                raise AllTranslationEnginesUnavailable(str(fallback_exc)) from fallback_exc

        result = replace(result, processing_time_ms=(time.perf_counter() - start) * 1000)
        self._store(key, result)
        return result

    async def _select_engine(self) -> TranslationEngine:
        preferred = self._preferred
        if self.options.sticky_engine and preferred is not None:
            if await self._probe(preferred):
                return preferred

        for engine in self.engines:
            if await self._probe(engine):
                if engine is not preferred:
                    logger.info("Translation engine selected: %s", engine.name)
                self._preferred = engine
                return engine

        raise AllTranslationEnginesUnavailable("no engine reported itself available")

    @staticmethod
    async def _probe(engine: TranslationEngine) -> bool:
        try:
            return await engine.is_available()
        except Exception as exc:
            logger.warning("Availability check for %s failed: %s", engine.name, exc)
            return False

    def _store(self, key: CacheKey, result: TranslationResult) -> None:
        if self.options.cache_size <= 0:
            return
        # FIFO: evict by insertion order, hits do not refresh position
        while len(self._cache) >= self.options.cache_size:
            self._cache.popitem(last=False)
        self._cache[key] = TranslationCacheEntry(result=result, timestamp=datetime.now())
