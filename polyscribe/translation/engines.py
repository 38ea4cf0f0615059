"""
polyscribe/translation/engines.py
==================================
Translation Engines — PolyScribe

Responsibility:
    - Define the request / result records shared by every engine
    - Define the TranslationEngine capability interface
    - Provide the guaranteed offline dictionary engine and the online
      OpenAI chat-completions engine

Engines are stateless apart from their configuration; caching, engine
selection, fallback and in-flight coalescing live in the orchestrator.

This module does NOT:
    - Cache results or pick between engines
    - Detect languages beyond a cheap script / keyword check for "auto"
"""

import asyncio
import logging
import re
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field

from polyscribe.errors import UnsupportedLanguagePair
from polyscribe.languages import LANGUAGE_NAMES, Language, parse_language
from polyscribe.nlp.language_rules import CJK_CHAR_CLASS
from polyscribe.openai_retry import RetryPolicy, chat_completions_with_retry
from polyscribe.translation.dictionaries import CULTURAL_ADAPTATIONS, PHRASE_TABLES

logger = logging.getLogger("polyscribe.translation.engines")

AUTO = "auto"

_CJK_PATTERN: re.Pattern[str] = re.compile(rf"[{CJK_CHAR_CLASS}]")
_MALAY_HINT_PATTERN: re.Pattern[str] = re.compile(
    r"\b(?:saya|anda|dan|yang|untuk|dengan|terima|kasih|selamat|mesyuarat|tidak)\b",
    re.IGNORECASE,
)


# ---------------------------------------------------------------------------
# Request / result records
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TranslationRequest:
    """One unit of translation work. ``source`` may be "auto"."""

    text: str
    source: str
    target: Language
    context: str | None = None
    formality: str | None = None  # "formal" | "informal" | None

    def __post_init__(self) -> None:
        source = str(getattr(self.source, "value", self.source)).strip().lower()
        if source != AUTO:
            source = parse_language(source).value
        object.__setattr__(self, "source", source)
        object.__setattr__(self, "target", parse_language(self.target))

    @property
    def cache_key(self) -> tuple[str, str, str]:
        return (self.source, self.target.value, self.text)


@dataclass(frozen=True)
class TranslationResult:
    """Outcome of a translation."""

    translated_text: str
    confidence: float
    detected_source_language: str | None = None
    alternatives: list[str] = field(default_factory=list)
    contextual_notes: list[str] = field(default_factory=list)
    cultural_adaptations: list[str] = field(default_factory=list)
    processing_time_ms: float = 0.0
    engine: str | None = None

    def to_dict(self) -> dict:
        return {
            "translated_text": self.translated_text,
            "confidence": self.confidence,
            "detected_source_language": self.detected_source_language,
            "alternatives": list(self.alternatives),
            "contextual_notes": list(self.contextual_notes),
            "cultural_adaptations": list(self.cultural_adaptations),
            "processing_time_ms": self.processing_time_ms,
            "engine": self.engine,
        }


def guess_source_language(text: str) -> Language:
    """Cheap script / keyword check used to resolve an "auto" source."""
    if _CJK_PATTERN.search(text):
        return Language.ZH
    if _MALAY_HINT_PATTERN.search(text):
        return Language.MS
    return Language.EN


def resolve_source(request: TranslationRequest) -> Language:
    if request.source == AUTO:
        return guess_source_language(request.text)
    return Language(request.source)


# ---------------------------------------------------------------------------
# Engine interface
# ---------------------------------------------------------------------------


class TranslationEngine(ABC):
    """Capability interface every translation backend implements."""

    name: str = "engine"
    is_online: bool = False

    @abstractmethod
    async def translate(self, request: TranslationRequest) -> TranslationResult:
        """Translate ``request``; raise on failure."""

    @abstractmethod
    async def is_available(self) -> bool:
        """True if the engine can currently serve requests."""

    def supported_language_pairs(self) -> list[tuple[Language, Language]]:
        return [(s, t) for s in Language for t in Language if s is not t]


# ---------------------------------------------------------------------------
# Offline dictionary engine
# ---------------------------------------------------------------------------


def _term_pattern(term: str) -> str:
    escaped = re.escape(term)
    if _CJK_PATTERN.search(term):
        return escaped
    return rf"(?<![a-z]){escaped}(?![a-z])"


class OfflineDictionaryEngine(TranslationEngine):
    """Word / phrase substitution over fixed per-pair tables. Always available."""

    name = "offline-dictionary"
    is_online = False

    BASE_CONFIDENCE = 0.3
    TERM_CONFIDENCE = 0.2
    UNMATCHED_CONFIDENCE = 0.1

    def __init__(
        self,
        tables: dict[tuple[Language, Language], dict[str, str]] | None = None,
        adaptations: dict[tuple[Language, Language], list[tuple[str, str]]] | None = None,
    ):
        self.tables = tables if tables is not None else PHRASE_TABLES
        self.adaptations = adaptations if adaptations is not None else CULTURAL_ADAPTATIONS
        # Longest term first so "thank you" wins over any shorter overlap
        self._patterns: dict[tuple[Language, Language], re.Pattern[str]] = {
            pair: re.compile(
                "|".join(_term_pattern(t) for t in sorted(table, key=len, reverse=True))
            )
            for pair, table in self.tables.items()
            if table
        }

    async def is_available(self) -> bool:
        return True

    def supported_language_pairs(self) -> list[tuple[Language, Language]]:
        return list(self._patterns)

    async def translate(self, request: TranslationRequest) -> TranslationResult:
        return self.translate_sync(request)

    def translate_sync(self, request: TranslationRequest) -> TranslationResult:
        start = time.perf_counter()
        source = resolve_source(request)
        target = request.target
        pair = (source, target)

        pattern = self._patterns.get(pair)
        if source is target or pattern is None:
            raise UnsupportedLanguagePair(source.value, target.value)

        table = self.tables[pair]
        matched: set[str] = set()

        def _substitute(match: re.Match) -> str:
            term = match.group(0)
            matched.add(term)
            return table[term]

        translated = pattern.sub(_substitute, request.text.lower())
        notes: list[str] = []

        if matched:
            confidence = min(self.BASE_CONFIDENCE + self.TERM_CONFIDENCE * len(matched), 1.0)
            translated = translated[:1].upper() + translated[1:]
        else:
            translated = f"[{request.text}]"
            confidence = self.UNMATCHED_CONFIDENCE
            notes.append("Untranslated: no dictionary terms matched.")

        return TranslationResult(
            translated_text=translated,
            confidence=confidence,
            detected_source_language=source.value,
            contextual_notes=notes,
            cultural_adaptations=self._cultural_adaptations(request.text, pair),
            processing_time_ms=(time.perf_counter() - start) * 1000,
            engine=self.name,
        )

    def _cultural_adaptations(
        self, text: str, pair: tuple[Language, Language],
    ) -> list[str]:
        lowered = text.lower()
        return [
            note
            for phrase, note in self.adaptations.get(pair, [])
            if re.search(_term_pattern(phrase), lowered)
        ]


# ---------------------------------------------------------------------------
# Online engine (OpenAI)
# ---------------------------------------------------------------------------


class OpenAITranslationEngine(TranslationEngine):
    """Chat-completions translation. Available iff an API key is configured."""

    name = "openai"
    is_online = True
    CONFIDENCE = 0.9

    def __init__(
        self,
        api_key: str | None,
        model: str = "gpt-4o-mini",
        retry_policy: RetryPolicy | None = None,
    ):
        self.api_key = api_key
        self.model = model
        self.retry_policy = retry_policy or RetryPolicy()
        self._client = None

    async def is_available(self) -> bool:
        return bool(self.api_key)

    async def translate(self, request: TranslationRequest) -> TranslationResult:
        if not self.api_key:
            raise RuntimeError("OPENAI_API_KEY not set")

        start = time.perf_counter()
        source = resolve_source(request)
        if source is request.target:
            raise UnsupportedLanguagePair(source.value, request.target.value)

        translated = await asyncio.to_thread(self._complete, self._prompt(request))
        if not translated:
            raise RuntimeError("OpenAI returned an empty translation")

        return TranslationResult(
            translated_text=translated,
            confidence=self.CONFIDENCE,
            detected_source_language=source.value,
            processing_time_ms=(time.perf_counter() - start) * 1000,
            engine=self.name,
        )

    def _prompt(self, request: TranslationRequest) -> str:
        target_name = LANGUAGE_NAMES[request.target]
        if request.source == AUTO:
            source_clause = "from its original language"
        else:
            source_clause = f"from {LANGUAGE_NAMES[Language(request.source)]}"

        prompt = (
            f"Translate the following meeting utterance {source_clause} to {target_name}. "
            "Preserve the meaning exactly — do not add, remove, or interpret anything. "
        )
        if request.formality:
            prompt += f"Use a {request.formality} register. "
        if request.context:
            prompt += f"Conversation context: {request.context}\n"
        prompt += f"Return ONLY the translation.\n\n{request.text}"
        return prompt

    def _complete(self, prompt: str) -> str:
        if self._client is None:
            from openai import OpenAI

            self._client = OpenAI(api_key=self.api_key)

        response = chat_completions_with_retry(
            self._client,
            policy=self.retry_policy,
            model=self.model,
            messages=[{"role": "user", "content": prompt}],
            temperature=0.0,
            max_tokens=1024,
        )
        content = response.choices[0].message.content or ""
        return content.strip()
