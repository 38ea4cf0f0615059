"""
tests/test_languages_config.py
===============================
Shared types and configuration

Test categories:
    1. Language / PrimaryLanguage enums and parse_language
    2. LanguageBreakdown accessor, normalization and ranking
    3. Options from_env() parsing and invalid-value fallbacks
"""

import os
import sys
import unittest
from unittest.mock import patch

# Ensure project root is on sys.path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from polyscribe.config import (
    AudioOptions,
    DetectionOptions,
    SessionOptions,
    StoreOptions,
    TranslationOptions,
)
from polyscribe.languages import (
    Language,
    LanguageBreakdown,
    PrimaryLanguage,
    parse_language,
)


class TestLanguageEnums(unittest.TestCase):

    def test_parse_language_accepts_codes_and_enums(self):
        self.assertIs(parse_language("zh"), Language.ZH)
        self.assertIs(parse_language(" MS "), Language.MS)
        self.assertIs(parse_language(Language.EN), Language.EN)

    def test_parse_language_rejects_unknown(self):
        with self.assertRaises(ValueError):
            parse_language("fr")

    def test_mixed_is_not_a_language(self):
        self.assertIsNone(PrimaryLanguage.MIXED.language)
        with self.assertRaises(ValueError):
            parse_language("mixed")

    def test_primary_language_of(self):
        self.assertIs(PrimaryLanguage.of(Language.ZH), PrimaryLanguage.ZH)
        self.assertIs(PrimaryLanguage.EN.language, Language.EN)


class TestLanguageBreakdown(unittest.TestCase):

    def test_get_is_exhaustive(self):
        breakdown = LanguageBreakdown(zh=0.2, en=0.3, ms=0.5)
        self.assertEqual(breakdown.get(Language.ZH), 0.2)
        self.assertEqual(breakdown.get(Language.EN), 0.3)
        self.assertEqual(breakdown.get(Language.MS), 0.5)
        with self.assertRaises(ValueError):
            breakdown.get("fr")

    def test_normalized_sums_to_one(self):
        breakdown = LanguageBreakdown(zh=2, en=6, ms=2).normalized(Language.EN)
        self.assertAlmostEqual(breakdown.total(), 1.0)
        self.assertAlmostEqual(breakdown.en, 0.6)

    def test_zero_scores_fall_back(self):
        breakdown = LanguageBreakdown().normalized(Language.MS)
        self.assertEqual(breakdown, LanguageBreakdown(ms=1.0))

    def test_ranked_ties_keep_declared_order(self):
        ranked = LanguageBreakdown(zh=0.25, en=0.5, ms=0.25).ranked()
        self.assertEqual([lang for lang, _ in ranked], [Language.EN, Language.ZH, Language.MS])

    def test_to_dict(self):
        self.assertEqual(
            LanguageBreakdown.only(Language.ZH).to_dict(),
            {"zh": 1.0, "en": 0.0, "ms": 0.0},
        )


class TestOptionsFromEnv(unittest.TestCase):

    @patch.dict(os.environ, {}, clear=True)
    def test_defaults(self):
        options = SessionOptions.from_env()
        self.assertEqual(options.detection, DetectionOptions())
        self.assertEqual(options.translation.cache_size, 100)
        self.assertIsNone(options.translation.openai_api_key)
        self.assertEqual(options.audio.mode, "synthetic")
        self.assertEqual(options.store.max_undo_steps, 50)
        self.assertIsNone(options.sync_base_url)

    @patch.dict(
        os.environ,
        {
            "DETECTION_MIN_CONFIDENCE": "0.4",
            "DETECTION_HISTORY_SIZE": "10",
            "DETECTION_FALLBACK_LANGUAGE": "ms",
            "TRANSLATION_CACHE_SIZE": "5",
            "TRANSLATION_STICKY_ENGINE": "false",
            "OPENAI_API_KEY": "sk-test",
            "AUDIO_MODE": "LIVE",
            "AUDIO_FFT_SIZE": "1024",
            "UNDO_MAX_STEPS": "7",
            "SYNC_BASE_URL": "http://sync.local",
        },
        clear=True,
    )
    def test_overrides(self):
        options = SessionOptions.from_env()
        self.assertEqual(options.detection.min_confidence, 0.4)
        self.assertEqual(options.detection.history_size, 10)
        self.assertIs(options.detection.fallback_language, Language.MS)
        self.assertEqual(options.translation.cache_size, 5)
        self.assertFalse(options.translation.sticky_engine)
        self.assertEqual(options.translation.openai_api_key, "sk-test")
        self.assertEqual(options.audio.mode, "live")
        self.assertEqual(options.audio.buffer_length, 512)
        self.assertEqual(options.store.max_undo_steps, 7)
        self.assertEqual(options.sync_base_url, "http://sync.local")

    @patch.dict(
        os.environ,
        {
            "DETECTION_MIN_CONFIDENCE": "high",
            "DETECTION_FALLBACK_LANGUAGE": "klingon",
            "TRANSLATION_CACHE_SIZE": "many",
        },
        clear=True,
    )
    def test_invalid_values_use_defaults(self):
        with self.assertLogs("polyscribe.config", level="WARNING"):
            detection = DetectionOptions.from_env()
            translation = TranslationOptions.from_env()
        self.assertEqual(detection.min_confidence, 0.3)
        self.assertIs(detection.fallback_language, Language.EN)
        self.assertEqual(translation.cache_size, 100)

    @patch.dict(os.environ, {"AUDIO_SAMPLE_RATE": "44100"}, clear=True)
    def test_audio_and_store(self):
        self.assertEqual(AudioOptions.from_env().sample_rate, 44100)
        self.assertEqual(StoreOptions.from_env().max_undo_steps, 50)


if __name__ == "__main__":
    unittest.main(verbosity=2)
