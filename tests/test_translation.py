"""
tests/test_translation.py
==========================
Translation engines, orchestrator and OpenAI retry helper

Test categories:
    1. OFFLINE DICTIONARY ENGINE — substitution, confidence, boundaries,
       cultural notes, unsupported pairs, auto source
    2. ORCHESTRATOR — cache, in-flight coalescing, fallback, sticky engine,
       FIFO eviction, batch degradation
    3. OPENAI ENGINE — mocked chat completions
    4. RETRY HELPER — transient vs. permanent failures
"""

import asyncio
import os
import sys
import unittest
from unittest.mock import MagicMock, patch

# Ensure project root is on sys.path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from polyscribe.config import TranslationOptions
from polyscribe.errors import AllTranslationEnginesUnavailable, UnsupportedLanguagePair
from polyscribe.languages import Language
from polyscribe.openai_retry import RetryPolicy, call_with_retry, is_retryable
from polyscribe.translation.engines import (
    OfflineDictionaryEngine,
    OpenAITranslationEngine,
    TranslationEngine,
    TranslationRequest,
    TranslationResult,
    guess_source_language,
)
from polyscribe.translation.orchestrator import TranslationOrchestrator


# ===================================================================
# Fixtures
# ===================================================================


class FakeEngine(TranslationEngine):
    """Scriptable engine that counts calls."""

    def __init__(self, name="fake", available=True, fail=False, delay=0.0, fail_texts=()):
        self.name = name
        self.available = available
        self.fail = fail
        self.delay = delay
        self.fail_texts = set(fail_texts)
        self.calls = 0

    async def is_available(self) -> bool:
        return self.available

    async def translate(self, request: TranslationRequest) -> TranslationResult:
        self.calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail or request.text in self.fail_texts:
            raise RuntimeError(f"{self.name} failed")
        return TranslationResult(
            translated_text=f"{self.name}:{request.text}",
            confidence=0.8,
            processing_time_ms=5.0,
            engine=self.name,
        )


def _request(text="thank you", source="en", target="ms") -> TranslationRequest:
    return TranslationRequest(text=text, source=source, target=target)


def _openai_response(content):
    message = MagicMock()
    message.content = content
    choice = MagicMock()
    choice.message = message
    response = MagicMock()
    response.choices = [choice]
    return response


# ===================================================================
# 1. Offline dictionary engine
# ===================================================================


class TestOfflineDictionaryEngine(unittest.IsolatedAsyncioTestCase):

    def setUp(self):
        self.engine = OfflineDictionaryEngine()

    async def test_thank_you_english_to_malay(self):
        result = await self.engine.translate(_request("thank you", "en", "ms"))
        self.assertEqual(result.translated_text.lower(), "terima kasih")
        self.assertEqual(result.translated_text, "Terima kasih")
        self.assertAlmostEqual(result.confidence, 0.5)
        self.assertEqual(result.detected_source_language, "en")
        self.assertEqual(result.engine, "offline-dictionary")

    async def test_confidence_grows_per_matched_term(self):
        result = await self.engine.translate(_request("good morning team, thank you", "en", "ms"))
        self.assertEqual(result.translated_text, "Selamat pagi pasukan, terima kasih")
        self.assertAlmostEqual(result.confidence, 0.9)

    async def test_confidence_is_capped(self):
        text = "today tomorrow project team work task"
        result = await self.engine.translate(_request(text, "en", "ms"))
        self.assertEqual(result.confidence, 1.0)

    async def test_terms_match_whole_words_only(self):
        result = await self.engine.translate(_request("nothing", "en", "ms"))
        self.assertEqual(result.translated_text, "[nothing]")
        self.assertAlmostEqual(result.confidence, 0.1)
        self.assertTrue(result.contextual_notes)

    async def test_chinese_to_english(self):
        result = await self.engine.translate(_request("会议", "zh", "en"))
        self.assertEqual(result.translated_text, "Meeting")

    async def test_cultural_adaptation_notes(self):
        zh = await self.engine.translate(_request("老板，谢谢", "zh", "en"))
        self.assertEqual(len(zh.cultural_adaptations), 1)
        self.assertIn("manager", zh.cultural_adaptations[0])

        ms = await self.engine.translate(_request("thank you sir", "en", "ms"))
        self.assertEqual(len(ms.cultural_adaptations), 1)
        self.assertIn("Encik", ms.cultural_adaptations[0])

    async def test_same_language_is_unsupported(self):
        with self.assertRaises(UnsupportedLanguagePair):
            await self.engine.translate(_request("hello", "en", "en"))

    async def test_pair_without_table_is_unsupported(self):
        engine = OfflineDictionaryEngine(tables={(Language.EN, Language.MS): {"yes": "ya"}})
        self.assertEqual(engine.supported_language_pairs(), [(Language.EN, Language.MS)])
        with self.assertRaises(UnsupportedLanguagePair):
            await engine.translate(_request("ya", "ms", "en"))

    async def test_auto_source_is_resolved(self):
        result = await self.engine.translate(_request("terima kasih", "auto", "en"))
        self.assertEqual(result.translated_text, "Thank you")
        self.assertEqual(result.detected_source_language, "ms")

    async def test_always_available(self):
        self.assertTrue(await self.engine.is_available())

    def test_guess_source_language(self):
        self.assertIs(guess_source_language("你好"), Language.ZH)
        self.assertIs(guess_source_language("Saya setuju"), Language.MS)
        self.assertIs(guess_source_language("Sounds good"), Language.EN)

    def test_request_validation(self):
        request = TranslationRequest(text="x", source=Language.ZH, target="en")
        self.assertEqual(request.source, "zh")
        self.assertIs(request.target, Language.EN)
        self.assertEqual(request.cache_key, ("zh", "en", "x"))
        with self.assertRaises(ValueError):
            TranslationRequest(text="x", source="fr", target="en")
        with self.assertRaises(ValueError):
            TranslationRequest(text="x", source="auto", target="auto")


# ===================================================================
# 2. Orchestrator
# ===================================================================


class TestTranslationOrchestrator(unittest.IsolatedAsyncioTestCase):

    async def test_cache_hit_returns_same_text_with_zero_time(self):
        engine = FakeEngine()
        orchestrator = TranslationOrchestrator(engines=[engine])
        first = await orchestrator.translate(_request())
        second = await orchestrator.translate(_request())
        self.assertEqual(first.translated_text, second.translated_text)
        self.assertEqual(second.processing_time_ms, 0.0)
        self.assertEqual(engine.calls, 1)

    async def test_concurrent_identical_requests_call_engine_once(self):
        engine = FakeEngine(delay=0.02)
        orchestrator = TranslationOrchestrator(engines=[engine])
        results = await asyncio.gather(*(orchestrator.translate(_request()) for _ in range(10)))
        self.assertEqual(engine.calls, 1)
        self.assertEqual({r.translated_text for r in results}, {"fake:thank you"})
        self.assertEqual(orchestrator.statistics()["cache_size"], 1)

    async def test_concurrent_failure_is_shared(self):
        engine = FakeEngine(fail=True, delay=0.01)
        orchestrator = TranslationOrchestrator(engines=[engine])
        outcomes = await asyncio.gather(
            *(orchestrator.translate(_request()) for _ in range(3)), return_exceptions=True,
        )
        self.assertEqual(engine.calls, 1)
        for outcome in outcomes:
            self.assertIsInstance(outcome, AllTranslationEnginesUnavailable)

    async def test_failure_falls_back_to_last_engine(self):
        primary = FakeEngine("primary", fail=True)
        fallback = FakeEngine("fallback")
        orchestrator = TranslationOrchestrator(engines=[primary, fallback])
        result = await orchestrator.translate(_request())
        self.assertEqual(result.translated_text, "fallback:thank you")
        self.assertEqual((primary.calls, fallback.calls), (1, 1))

    async def test_all_engines_failing_raises(self):
        orchestrator = TranslationOrchestrator(
            engines=[FakeEngine("primary", fail=True), FakeEngine("fallback", fail=True)],
        )
        with self.assertRaises(AllTranslationEnginesUnavailable):
            await orchestrator.translate(_request())

    async def test_no_available_engine_raises(self):
        orchestrator = TranslationOrchestrator(engines=[FakeEngine(available=False)])
        with self.assertRaises(AllTranslationEnginesUnavailable):
            await orchestrator.translate(_request())

    async def test_unsupported_pair_is_distinct_from_unavailable(self):
        orchestrator = TranslationOrchestrator(engines=[FakeEngine()])
        with self.assertRaises(UnsupportedLanguagePair):
            await orchestrator.translate(_request("hello", "en", "en"))

    async def test_preferred_engine_is_sticky(self):
        primary = FakeEngine("primary", available=False)
        fallback = FakeEngine("fallback")
        orchestrator = TranslationOrchestrator(engines=[primary, fallback])

        await orchestrator.translate(_request("one"))
        self.assertEqual(orchestrator.statistics()["preferred_engine"], "fallback")

        primary.available = True
        result = await orchestrator.translate(_request("two"))
        self.assertEqual(result.engine, "fallback")

    async def test_non_sticky_probes_in_priority_order(self):
        primary = FakeEngine("primary", available=False)
        fallback = FakeEngine("fallback")
        orchestrator = TranslationOrchestrator(
            TranslationOptions(sticky_engine=False), engines=[primary, fallback],
        )
        await orchestrator.translate(_request("one"))
        primary.available = True
        result = await orchestrator.translate(_request("two"))
        self.assertEqual(result.engine, "primary")

    async def test_cache_evicts_in_insertion_order(self):
        engine = FakeEngine()
        orchestrator = TranslationOrchestrator(TranslationOptions(cache_size=2), engines=[engine])
        await orchestrator.translate(_request("a"))
        await orchestrator.translate(_request("b"))
        await orchestrator.translate(_request("a"))  # hit; does not refresh position
        await orchestrator.translate(_request("c"))  # evicts "a"
        self.assertEqual(engine.calls, 3)

        await orchestrator.translate(_request("b"))  # still cached
        self.assertEqual(engine.calls, 3)
        await orchestrator.translate(_request("a"))  # evicted → engine call
        self.assertEqual(engine.calls, 4)

    async def test_clear_cache(self):
        engine = FakeEngine()
        orchestrator = TranslationOrchestrator(engines=[engine])
        await orchestrator.translate(_request())
        orchestrator.clear_cache()
        self.assertEqual(orchestrator.statistics()["cache_size"], 0)
        await orchestrator.translate(_request())
        self.assertEqual(engine.calls, 2)

    async def test_batch_degrades_failed_items(self):
        engine = FakeEngine(fail_texts={"bad"})
        orchestrator = TranslationOrchestrator(engines=[engine])
        results = await orchestrator.translate_batch(
            [_request("good"), _request("bad"), _request("same", "en", "en")],
        )
        self.assertEqual(results[0].translated_text, "fake:good")
        self.assertEqual(results[1].translated_text, "bad")
        self.assertEqual(results[1].confidence, 0.0)
        self.assertIn("Translation failed", results[1].contextual_notes[0])
        self.assertEqual(results[2].translated_text, "same")
        self.assertEqual(results[2].confidence, 0.0)

    async def test_default_engines_without_api_key_use_offline_dictionary(self):
        orchestrator = TranslationOrchestrator(TranslationOptions(openai_api_key=None))
        result = await orchestrator.translate_text("thank you", "en", "ms")
        self.assertEqual(result.translated_text.lower(), "terima kasih")
        self.assertGreaterEqual(result.confidence, 0.5 - 1e-9)
        self.assertEqual(result.engine, "offline-dictionary")

    def test_supported_pairs_and_statistics(self):
        orchestrator = TranslationOrchestrator(engines=[OfflineDictionaryEngine()])
        pairs = orchestrator.supported_language_pairs()
        self.assertEqual(len(pairs), 6)
        self.assertIn((Language.EN, Language.MS), pairs)
        stats = orchestrator.statistics()
        self.assertEqual(stats["supported_languages"], ["zh", "en", "ms"])
        self.assertIsNone(stats["preferred_engine"])

    def test_requires_an_engine(self):
        with self.assertRaises(ValueError):
            TranslationOrchestrator(engines=[])


# ===================================================================
# 3. OpenAI engine
# ===================================================================


class TestOpenAITranslationEngine(unittest.IsolatedAsyncioTestCase):

    async def test_unavailable_without_key(self):
        self.assertFalse(await OpenAITranslationEngine(api_key=None).is_available())
        self.assertTrue(await OpenAITranslationEngine(api_key="sk-test").is_available())

    @patch("openai.OpenAI")
    async def test_translate(self, mock_openai_cls):
        mock_client = MagicMock()
        mock_openai_cls.return_value = mock_client
        mock_client.chat.completions.create.return_value = _openai_response(" Terima kasih. ")

        engine = OpenAITranslationEngine(api_key="sk-test", model="gpt-4o-mini")
        result = await engine.translate(_request("Thank you.", "en", "ms"))

        self.assertEqual(result.translated_text, "Terima kasih.")
        self.assertAlmostEqual(result.confidence, 0.9)
        self.assertEqual(result.engine, "openai")
        kwargs = mock_client.chat.completions.create.call_args.kwargs
        self.assertEqual(kwargs["model"], "gpt-4o-mini")
        prompt = kwargs["messages"][0]["content"]
        self.assertIn("from English to Malay", prompt)
        self.assertIn("Thank you.", prompt)

    @patch("openai.OpenAI")
    async def test_empty_response_raises(self, mock_openai_cls):
        mock_client = MagicMock()
        mock_openai_cls.return_value = mock_client
        mock_client.chat.completions.create.return_value = _openai_response("")

        with self.assertRaises(RuntimeError):
            await OpenAITranslationEngine(api_key="sk-test").translate(_request())

    @patch("openai.OpenAI")
    async def test_orchestrator_falls_back_to_offline_on_api_error(self, mock_openai_cls):
        mock_client = MagicMock()
        mock_openai_cls.return_value = mock_client
        mock_client.chat.completions.create.side_effect = ValueError("bad request")

        orchestrator = TranslationOrchestrator(TranslationOptions(openai_api_key="sk-test"))
        with self.assertLogs("polyscribe.translation.orchestrator", level="WARNING"):
            result = await orchestrator.translate(_request())
        self.assertEqual(result.translated_text, "Terima kasih")
        self.assertEqual(result.engine, "offline-dictionary")


# ===================================================================
# 4. Retry helper
# ===================================================================


class RateLimitError(Exception):
    pass


class TestRetryHelper(unittest.TestCase):

    def test_retries_transient_errors(self):
        fn = MagicMock(side_effect=[RateLimitError("slow down"), "ok"])
        sleep = MagicMock()
        self.assertEqual(call_with_retry(fn, RetryPolicy(max_retries=2), sleep=sleep, x=1), "ok")
        self.assertEqual(fn.call_count, 2)
        sleep.assert_called_once_with(0.5)
        fn.assert_called_with(x=1)

    def test_gives_up_after_max_retries(self):
        fn = MagicMock(side_effect=RateLimitError("slow down"))
        sleep = MagicMock()
        with self.assertRaises(RateLimitError):
            call_with_retry(fn, RetryPolicy(max_retries=2, base_delay=1.0), sleep=sleep)
        self.assertEqual(fn.call_count, 3)
        self.assertEqual([c.args[0] for c in sleep.call_args_list], [1.0, 2.0])

    def test_non_retryable_raises_immediately(self):
        fn = MagicMock(side_effect=ValueError("bad request"))
        with self.assertRaises(ValueError):
            call_with_retry(fn, sleep=MagicMock())
        self.assertEqual(fn.call_count, 1)

    def test_status_code_classification(self):
        server_error = Exception("server")
        server_error.status_code = 503
        client_error = Exception("client")
        client_error.status_code = 400
        self.assertTrue(is_retryable(server_error))
        self.assertFalse(is_retryable(client_error))


if __name__ == "__main__":
    unittest.main(verbosity=2)
