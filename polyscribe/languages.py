"""
polyscribe/languages.py
========================
Supported Languages — PolyScribe

Responsibility:
    - Define the closed set of conversation languages (zh / en / ms)
    - Define the primary-language label set, which adds "mixed"
    - Provide LanguageBreakdown, the per-language proportion record with an
      exhaustive accessor

"mixed" is a detection outcome, never a fourth language: it may appear as
a primary label but is rejected anywhere a Language is required.

This module does NOT:
    - Score or detect languages (see polyscribe.nlp.language_detector)
    - Translate text
"""

from dataclasses import dataclass
from enum import Enum


class Language(str, Enum):
    """The three conversation languages."""

    ZH = "zh"
    EN = "en"
    MS = "ms"


class PrimaryLanguage(str, Enum):
    """Primary label of an utterance: one language, or mixed."""

    ZH = "zh"
    EN = "en"
    MS = "ms"
    MIXED = "mixed"

    @classmethod
    def of(cls, language: Language) -> "PrimaryLanguage":
        return cls(language.value)

    @property
    def language(self) -> Language | None:
        """The underlying Language, or None for MIXED."""
        if self is PrimaryLanguage.MIXED:
            return None
        return Language(self.value)


LANGUAGE_NAMES: dict[Language, str] = {
    Language.ZH: "Chinese",
    Language.EN: "English",
    Language.MS: "Malay",
}

# Tie-break order for arg-max over a breakdown
LANGUAGE_ORDER: tuple[Language, ...] = (Language.ZH, Language.EN, Language.MS)


def parse_language(value: "str | Language") -> Language:
    """Coerce a code to Language; raises ValueError for anything else."""
    if isinstance(value, Language):
        return value
    try:
        return Language(str(value).strip().lower())
    except ValueError:
        raise ValueError(
            f"Unsupported language code: {value!r} "
            f"(expected one of {[lang.value for lang in Language]})"
        ) from None


@dataclass(frozen=True)
class LanguageBreakdown:
    """Per-language proportions. Normalized breakdowns sum to 1."""

    zh: float = 0.0
    en: float = 0.0
    ms: float = 0.0

    def get(self, language: Language) -> float:
        if language is Language.ZH:
            return self.zh
        if language is Language.EN:
            return self.en
        if language is Language.MS:
            return self.ms
        raise ValueError(f"Not a supported language: {language!r}")

    @classmethod
    def from_scores(cls, scores: dict[Language, float]) -> "LanguageBreakdown":
        return cls(
            zh=scores.get(Language.ZH, 0.0),
            en=scores.get(Language.EN, 0.0),
            ms=scores.get(Language.MS, 0.0),
        )

    @classmethod
    def only(cls, language: Language) -> "LanguageBreakdown":
        """Degenerate breakdown assigning full weight to one language."""
        return cls.from_scores({language: 1.0})

    def total(self) -> float:
        return self.zh + self.en + self.ms

    def normalized(self, fallback: Language) -> "LanguageBreakdown":
        """Scale onto the probability simplex; all-zero → fallback gets 1."""
        total = self.total()
        if total <= 0:
            return LanguageBreakdown.only(fallback)
        return LanguageBreakdown(
            zh=self.zh / total,
            en=self.en / total,
            ms=self.ms / total,
        )

    def ranked(self) -> list[tuple[Language, float]]:
        """(language, share) pairs, highest first; ties keep zh/en/ms order."""
        pairs = [(lang, self.get(lang)) for lang in LANGUAGE_ORDER]
        return sorted(pairs, key=lambda pair: pair[1], reverse=True)

    def to_dict(self) -> dict[str, float]:
        return {"zh": self.zh, "en": self.en, "ms": self.ms}
