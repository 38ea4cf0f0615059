"""
polyscribe/nlp/language_detector.py
====================================
Language Detection Engine — PolyScribe

Responsibility:
    - Score text against the zh / en / ms rule tables DETERMINISTICALLY
      (lexicon + regex, no ML, no external API)
    - Produce a normalized LanguageBreakdown, a primary language, the
      mixed-language flag, code-switching token indices and cultural
      marker tags
    - Blend confidence with a bounded rolling detection history and expose
      history statistics

Detection steps:
    1. Preprocess: lowercase, keep word chars / whitespace / CJK ideographs,
       collapse whitespace
    2. Score each language (pattern, common-word, CJK and affix weights from
       the LanguageRuleSet)
    3. Normalize onto the simplex; no signal → fallback language gets 1
    4. Primary = arg-max; below min_confidence → fallback language
    5. Mixed when the runner-up share exceeds mixed_threshold
    6. Code-switching: classify each token, record every index whose
       language differs from the previous token's
    7. Cultural markers: substring hits emitted as "culture:keyword"
    8. Confidence: primary share, blended with same-language confidence
       from the recent history window
    9. Append (primary-or-mixed, confidence, now) to the history

This module does NOT:
    - Translate text
    - Touch audio or the transcript store
    - Raise to callers: any internal fault returns the fallback result
"""

import logging
import re
import threading
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable

from polyscribe.config import DetectionOptions
from polyscribe.languages import (
    LANGUAGE_ORDER,
    Language,
    LanguageBreakdown,
    PrimaryLanguage,
)
from polyscribe.nlp.language_rules import CJK_CHAR_CLASS, LanguageRuleSet

logger = logging.getLogger("polyscribe.nlp.language_detector")

_STRIP_PATTERN: re.Pattern[str] = re.compile(rf"[^{CJK_CHAR_CLASS}\w\s]")
_WHITESPACE_PATTERN: re.Pattern[str] = re.compile(r"\s+")


# ---------------------------------------------------------------------------
# Data types
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class DetectionHistoryRecord:
    """One past detection outcome."""

    language: PrimaryLanguage
    confidence: float
    timestamp: datetime


@dataclass
class DetectionResult:
    """Outcome of a single detect() call."""

    detected_language: PrimaryLanguage
    primary_language: Language
    confidence: float
    breakdown: LanguageBreakdown
    code_switching_points: list[int] = field(default_factory=list)
    cultural_markers: list[str] = field(default_factory=list)
    scores: dict[Language, float] = field(default_factory=dict)

    @property
    def is_mixed(self) -> bool:
        return self.detected_language is PrimaryLanguage.MIXED

    def ranked_languages(self) -> list[tuple[Language, float]]:
        """Non-zero (language, share) pairs, highest first."""
        return [(lang, share) for lang, share in self.breakdown.ranked() if share > 0]

    def to_dict(self) -> dict:
        return {
            "detected_language": self.detected_language.value,
            "primary_language": self.primary_language.value,
            "confidence": self.confidence,
            "language_breakdown": self.breakdown.to_dict(),
            "code_switching_points": list(self.code_switching_points),
            "cultural_markers": list(self.cultural_markers),
        }


@dataclass(frozen=True)
class DetectionStatistics:
    """Aggregates over the rolling detection history."""

    distribution: LanguageBreakdown
    code_switching_frequency: float
    average_confidence: float

    def to_dict(self) -> dict:
        return {
            "distribution": self.distribution.to_dict(),
            "code_switching_frequency": self.code_switching_frequency,
            "average_confidence": self.average_confidence,
        }


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------


class LanguageDetectionEngine:
    """Heuristic, history-aware zh / en / ms detector."""

    def __init__(
        self,
        options: DetectionOptions | None = None,
        rules: LanguageRuleSet | None = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.options = options or DetectionOptions()
        self.rules = rules or LanguageRuleSet.default()
        self._clock = clock
        self._history: deque[DetectionHistoryRecord] = deque(
            maxlen=max(1, self.options.history_size)
        )
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def detect(
        self,
        text: str,
        use_history: bool = True,
        detect_code_switching: bool = True,
    ) -> DetectionResult:
        """Detect the language of ``text``. Never raises."""
        if not text or not text.strip():
            return self._fallback_result()

        try:
            return self._detect(text, use_history, detect_code_switching)
        except Exception as exc:
            logger.error("Language detection failed: %s — returning fallback.", exc)
            return self._fallback_result()

    def history(self) -> list[DetectionHistoryRecord]:
        with self._lock:
            return list(self._history)

    def clear_history(self) -> None:
        with self._lock:
            self._history.clear()
        logger.info("Detection history cleared.")

    def statistics(self) -> DetectionStatistics:
        with self._lock:
            records = list(self._history)

        if not records:
            return DetectionStatistics(
                distribution=LanguageBreakdown.only(self.options.fallback_language),
                code_switching_frequency=0.0,
                average_confidence=0.0,
            )

        counts = {lang: 0.0 for lang in Language}
        for record in records:
            language = record.language.language
            if language is not None:
                counts[language] += 1

        switches = sum(
            1 for prev, curr in zip(records, records[1:]) if prev.language != curr.language
        )

        return DetectionStatistics(
            distribution=LanguageBreakdown.from_scores(counts).normalized(
                self.options.fallback_language
            ),
            code_switching_frequency=switches / max(len(records) - 1, 1),
            average_confidence=sum(r.confidence for r in records) / len(records),
        )

    def raw_scores(self, text: str) -> dict[Language, float]:
        """Un-normalized per-language scores for ``text``."""
        return self._score(self.preprocess(text))

    @staticmethod
    def preprocess(text: str) -> str:
        cleaned = _STRIP_PATTERN.sub(" ", text.lower())
        return _WHITESPACE_PATTERN.sub(" ", cleaned).strip()

    def classify_token(self, token: str) -> Language:
        """Language of a single token: CJK → zh, else first word-list hit."""
        if self.rules.cjk_pattern.search(token):
            return Language.ZH
        lowered = token.lower()
        for lang in LANGUAGE_ORDER:
            if lowered in self.rules.rules[lang].common_words:
                return lang
        return self.options.fallback_language

    # ------------------------------------------------------------------
    # Internal steps
    # ------------------------------------------------------------------

    def _detect(
        self,
        text: str,
        use_history: bool,
        detect_code_switching: bool,
    ) -> DetectionResult:
        clean = self.preprocess(text)
        scores = self._score(clean)
        breakdown = LanguageBreakdown.from_scores(scores).normalized(
            self.options.fallback_language
        )

        primary = self._primary_language(breakdown)
        mixed = self._is_mixed(breakdown)
        switching_points = self._code_switching_points(clean) if detect_code_switching else []
        markers = self._cultural_markers(clean)
        confidence = self._confidence(breakdown, primary, use_history)

        detected = PrimaryLanguage.MIXED if mixed else PrimaryLanguage.of(primary)
        result = DetectionResult(
            detected_language=detected,
            primary_language=primary,
            confidence=confidence,
            breakdown=breakdown,
            code_switching_points=switching_points,
            cultural_markers=markers,
            scores=scores,
        )

        if use_history:
            self._record(detected, confidence)

        logger.debug(
            "Detected %s (confidence=%.3f, breakdown=%s, switches=%d)",
            detected.value, confidence, breakdown.to_dict(), len(switching_points),
        )
        return result

    def _score(self, clean: str) -> dict[Language, float]:
        rules = self.rules
        tokens = clean.split()
        scores: dict[Language, float] = {}

        for lang in LANGUAGE_ORDER:
            lang_rules = rules.rules[lang]
            score = 0.0
            for pattern in lang_rules.patterns:
                score += len(pattern.findall(clean)) * rules.pattern_weight
            for token in tokens:
                if token in lang_rules.common_words:
                    score += rules.common_word_weight
            if lang is Language.ZH:
                score += len(rules.cjk_pattern.findall(clean)) * rules.cjk_weight
            if lang is Language.MS:
                score += len(rules.affix_pattern.findall(clean)) * rules.affix_weight
            scores[lang] = score

        return scores

    def _primary_language(self, breakdown: LanguageBreakdown) -> Language:
        language, share = breakdown.ranked()[0]
        if share < self.options.min_confidence:
            return self.options.fallback_language
        return language

    def _is_mixed(self, breakdown: LanguageBreakdown) -> bool:
        return breakdown.ranked()[1][1] > self.options.mixed_threshold

    def _code_switching_points(self, clean: str) -> list[int]:
        points: list[int] = []
        previous: Language | None = None
        for index, token in enumerate(clean.split()):
            language = self.classify_token(token)
            if previous is not None and language is not previous:
                points.append(index)
            previous = language
        return points

    def _cultural_markers(self, clean: str) -> list[str]:
        markers: list[str] = []
        for culture, keywords in self.rules.cultural_markers.items():
            for keyword in keywords:
                if keyword in clean:
                    markers.append(f"{culture}:{keyword}")
        return markers

    def _confidence(
        self,
        breakdown: LanguageBreakdown,
        primary: Language,
        use_history: bool,
    ) -> float:
        confidence = breakdown.get(primary)

        if use_history:
            label = PrimaryLanguage.of(primary)
            with self._lock:
                recent = list(self._history)[-self.options.history_blend_window:]
            same = [r.confidence for r in recent if r.language is label]
            if same:
                historical = sum(same) / len(same)
                confidence = (
                    confidence * self.options.current_weight
                    + historical * self.options.history_weight
                )

        return min(confidence, 1.0)

    def _record(self, language: PrimaryLanguage, confidence: float) -> None:
        record = DetectionHistoryRecord(
            language=language, confidence=confidence, timestamp=self._clock(),
        )
        with self._lock:
            self._history.append(record)

    def _fallback_result(self) -> DetectionResult:
        fallback = self.options.fallback_language
        return DetectionResult(
            detected_language=PrimaryLanguage.of(fallback),
            primary_language=fallback,
            confidence=0.0,
            breakdown=LanguageBreakdown.only(fallback),
        )
