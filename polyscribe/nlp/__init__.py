# polyscribe/nlp/__init__.py
# ===========================
# Language Detection Layer — PolyScribe
#
#   - language_rules.py    — editable pattern / word-list / marker tables
#   - language_detector.py — deterministic zh / en / ms detection engine
#   - debounce.py          — last-writer-wins debounced detection
#
# Detection is lexicon / regex driven only. No ML, no external API.

from polyscribe.nlp.language_detector import (  # noqa: F401
    DetectionHistoryRecord,
    DetectionResult,
    DetectionStatistics,
    LanguageDetectionEngine,
)
from polyscribe.nlp.language_rules import LanguageRuleSet  # noqa: F401
from polyscribe.nlp.debounce import DebouncedDetector  # noqa: F401

__all__ = [
    "DetectionHistoryRecord",
    "DetectionResult",
    "DetectionStatistics",
    "LanguageDetectionEngine",
    "LanguageRuleSet",
    "DebouncedDetector",
]
