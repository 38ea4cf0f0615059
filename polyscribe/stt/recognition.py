"""
polyscribe/stt/recognition.py
==============================
Speech recognition boundary — PolyScribe

Responsibility:
    - Define RecognitionResult, the record a speech recognizer emits
    - Define the SpeechRecognizer capability interface (start / stop /
      on_result callbacks)
    - Provide MockSpeechRecognizer, which replays the demo conversation
      deterministically

Only final results become transcript entries; interim results are meant
for the debounced detector.

This module does NOT:
    - Talk to any real speech-to-text service
    - Detect languages (the language hint is advisory only)
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable

from polyscribe.languages import Language
from polyscribe.stt.mock_conversation import MOCK_CONVERSATION, MockUtterance

logger = logging.getLogger("polyscribe.stt.recognition")


@dataclass(frozen=True)
class RecognitionResult:
    """One recognized utterance (or interim hypothesis)."""

    text: str
    confidence: float
    is_final: bool = True
    language_hint: Language | None = None
    speaker_id: str = "unknown"
    duration_s: float | None = None


ResultCallback = Callable[[RecognitionResult], None]


class SpeechRecognizer(ABC):
    """Capability interface for speech-to-text sources."""

    def __init__(self):
        self._callbacks: list[ResultCallback] = []
        self._running = False

    @property
    def is_running(self) -> bool:
        return self._running

    def on_result(self, callback: ResultCallback) -> None:
        self._callbacks.append(callback)

    @abstractmethod
    def start(self) -> None:
        ...

    @abstractmethod
    def stop(self) -> None:
        ...

    def _emit(self, result: RecognitionResult) -> None:
        for callback in list(self._callbacks):
            try:
                callback(result)
            except Exception as exc:
                logger.warning("Recognition callback failed: %s", exc)


class MockSpeechRecognizer(SpeechRecognizer):
    """Replays a scripted conversation, one utterance per step()."""

    def __init__(
        self,
        conversation: tuple[MockUtterance, ...] = MOCK_CONVERSATION,
        confidence: float = 0.9,
        emit_interim: bool = False,
        loop: bool = False,
    ):
        super().__init__()
        if not conversation:
            raise ValueError("Mock conversation must not be empty")
        self.conversation = conversation
        self.confidence = confidence
        self.emit_interim = emit_interim
        self.loop = loop
        self._index = 0

    def start(self) -> None:
        if self._running:
            return
        self._running = True
        self._index = 0
        logger.info("Mock speech recognizer started (%d utterances).", len(self.conversation))

    def stop(self) -> None:
        self._running = False
        logger.info("Mock speech recognizer stopped.")

    @property
    def exhausted(self) -> bool:
        return not self.loop and self._index >= len(self.conversation)

    def step(self) -> RecognitionResult | None:
        """Emit the next utterance; None when stopped or exhausted."""
        if not self._running or self.exhausted:
            return None

        utterance = self.conversation[self._index % len(self.conversation)]
        self._index += 1

        if self.emit_interim:
            words = utterance.text.split()
            if len(words) > 1:
                self._emit(self._result(utterance, " ".join(words[: len(words) // 2]), False))

        final = self._result(utterance, utterance.text, True)
        self._emit(final)
        return final

    def replay(self) -> list[RecognitionResult]:
        """Emit the whole conversation once and return the final results."""
        self.start()
        results = []
        for _ in range(len(self.conversation)):
            result = self.step()
            if result is None:
                break
            results.append(result)
        self.stop()
        return results

    async def run(self, speed: float = 1.0) -> None:
        """Emit utterances in real time, scaled by ``speed``."""
        self.start()
        elapsed_ms = 0
        while self._running and not self.exhausted:
            utterance = self.conversation[self._index % len(self.conversation)]
            wait_ms = max(utterance.offset_ms - elapsed_ms, 0)
            await asyncio.sleep(wait_ms / 1000.0 / max(speed, 1e-6))
            elapsed_ms = utterance.offset_ms
            self.step()
            if self._index % len(self.conversation) == 0:
                elapsed_ms = 0

    def _result(self, utterance: MockUtterance, text: str, is_final: bool) -> RecognitionResult:
        return RecognitionResult(
            text=text,
            confidence=self.confidence,
            is_final=is_final,
            language_hint=utterance.language,
            speaker_id=utterance.speaker_id,
        )
