"""
polyscribe/session.py
======================
Meeting Session — PolyScribe

Responsibility:
    - Own one instance of each engine for a meeting: detector, audio
      monitor, translation orchestrator, transcript store, debouncer and
      (optionally) the persistence channel
    - Turn final recognition results into transcript entries:
      text → detect → attach the current audio snapshot → append
    - Route interim results to the debounced detector
    - Translate entries on demand and merge the result back into the store
    - Push / pull the transcript through the persistence channel

There are no module-level engine instances; every collaborator is passed
in or built from the session's options.

This module does NOT:
    - Serve HTTP (see polyscribe.api.service)
    - Capture speech (see polyscribe.stt.recognition)
"""

import asyncio
import copy
import logging
from datetime import datetime
from typing import Callable, Iterable

from polyscribe.audio.analyzer import AudioMetrics, AudioSignalAnalyzer
from polyscribe.audio.monitor import AudioMonitor
from polyscribe.audio.sources import open_audio_source
from polyscribe.config import SessionOptions
from polyscribe.errors import EntryNotFound
from polyscribe.languages import Language, PrimaryLanguage, parse_language
from polyscribe.nlp.debounce import DebouncedDetector
from polyscribe.nlp.language_detector import DetectionResult, LanguageDetectionEngine
from polyscribe.stt.recognition import RecognitionResult
from polyscribe.sync.channel import TranscriptSyncChannel
from polyscribe.transcript.models import (
    AudioMetadata,
    LanguageData,
    TranscriptEntry,
    new_entry_id,
)
from polyscribe.transcript.store import TranscriptStore
from polyscribe.translation.engines import AUTO, TranslationRequest, TranslationResult
from polyscribe.translation.orchestrator import TranslationOrchestrator

logger = logging.getLogger("polyscribe.session")

DEFAULT_SPEAKING_SPEED = 1.0
DEFAULT_EMOTIONAL_TONE = "neutral"


class MeetingSession:
    """All per-meeting state, wired together."""

    def __init__(
        self,
        meeting_id: str,
        options: SessionOptions | None = None,
        detector: LanguageDetectionEngine | None = None,
        monitor: AudioMonitor | None = None,
        orchestrator: TranslationOrchestrator | None = None,
        store: TranscriptStore | None = None,
        sync_channel: TranscriptSyncChannel | None = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.meeting_id = meeting_id
        self.options = options or SessionOptions()
        self._clock = clock

        # Explicit None checks: an empty TranscriptStore is falsy
        if detector is None:
            detector = LanguageDetectionEngine(self.options.detection)
        if monitor is None:
            monitor = AudioMonitor(
                open_audio_source(self.options.audio),
                AudioSignalAnalyzer(self.options.audio),
            )
        if orchestrator is None:
            orchestrator = TranslationOrchestrator(self.options.translation)
        if store is None:
            store = TranscriptStore(options=self.options.store)

        self.detector = detector
        self.monitor = monitor
        self.orchestrator = orchestrator
        self.store = store
        self.debouncer = DebouncedDetector(self.detector)

        if sync_channel is None and self.options.sync_base_url:
            sync_channel = TranscriptSyncChannel(self.options.sync_base_url)
        self.sync_channel = sync_channel

        logger.info(
            "Session %s ready (audio=%s, translation engines=%s, sync=%s)",
            meeting_id,
            "live" if self.monitor.is_live else "synthetic",
            [engine.name for engine in self.orchestrator.engines],
            "on" if self.sync_channel else "off",
        )

    # ------------------------------------------------------------------
    # Ingestion
    # ------------------------------------------------------------------

    def ingest(self, result: RecognitionResult) -> TranscriptEntry | None:
        """Append a final recognition result as a new entry.

        Interim or blank results are ignored (returns None).
        """
        if not result.is_final or not result.text.strip():
            return None

        content = result.text.strip()
        detection = self.detector.detect(content)
        entry = TranscriptEntry(
            id=new_entry_id(),
            speaker_id=result.speaker_id,
            content=content,
            timestamp=self._clock(),
            language_data=self._language_data(result, detection),
            metadata=self._audio_metadata(content, result.duration_s, self.monitor.latest()),
        )

        stored = self.store.append(entry)
        logger.info(
            "Entry %s appended (speaker=%s, language=%s, confidence=%.2f)",
            stored.id, stored.speaker_id,
            stored.language_data.primary_language.value, stored.language_data.confidence,
        )
        return stored

    def ingest_many(self, results: Iterable[RecognitionResult]) -> list[TranscriptEntry]:
        entries = []
        for result in results:
            entry = self.ingest(result)
            if entry is not None:
                entries.append(entry)
        return entries

    def submit_interim(self, result: RecognitionResult) -> asyncio.Future:
        """Debounced detection of live text, one stream per speaker."""
        return self.debouncer.submit(result.text, stream_id=result.speaker_id)

    def sample_audio(self) -> AudioMetrics:
        return self.monitor.sample()

    # ------------------------------------------------------------------
    # Translation
    # ------------------------------------------------------------------

    async def translate_entry(
        self, entry_id: str, target: "str | Language",
    ) -> TranslationResult:
        """Translate one entry and store the result in its translations."""
        entry = self.store.get(entry_id)
        if entry is None:
            raise EntryNotFound(entry_id)

        result = await self.orchestrator.translate(self._request_for(entry, target))
        self._merge_translation(entry, parse_language(target), result)
        return result

    async def translate_all(self, target: "str | Language") -> dict[str, TranslationResult]:
        """Translate every entry not already in ``target``; failures degrade per entry."""
        target = parse_language(target)
        pending = [
            entry for entry in self.store.entries()
            if entry.language_data.primary_language is not PrimaryLanguage.of(target)
        ]
        results = await self.orchestrator.translate_batch(
            [self._request_for(entry, target) for entry in pending]
        )

        translated: dict[str, TranslationResult] = {}
        for entry, result in zip(pending, results):
            if result.confidence > 0:
                self._merge_translation(entry, target, result)
            translated[entry.id] = result
        return translated

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    async def push(self) -> int:
        channel = self._require_sync()
        return await channel.push(self.meeting_id, self.store.entries())

    async def pull(self) -> int:
        """Replace the local transcript with the remote one (undoable)."""
        channel = self._require_sync()
        entries = await channel.pull(self.meeting_id)
        self.store.replace_all(entries)
        logger.info("Pulled %d entries for meeting %s", len(entries), self.meeting_id)
        return len(entries)

    def close(self) -> None:
        for stream_id in self.debouncer.pending_streams():
            self.debouncer.cancel(stream_id)
        self.monitor.close()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _language_data(
        self, result: RecognitionResult, detection: DetectionResult,
    ) -> LanguageData:
        confidence = max(result.confidence, detection.confidence)
        primary = detection.detected_language
        detected = detection.ranked_languages()

        # No lexical signal at all: trust the recognizer's hint
        if result.language_hint is not None and not any(detection.scores.values()):
            primary = PrimaryLanguage.of(result.language_hint)
            detected = [(result.language_hint, result.confidence)]
            confidence = result.confidence

        return LanguageData(
            primary_language=primary,
            detected_languages=detected,
            confidence=min(confidence, 1.0),
            cultural_notes=list(detection.cultural_markers),
        )

    @staticmethod
    def _audio_metadata(
        content: str, duration_s: float | None, metrics: AudioMetrics,
    ) -> AudioMetadata:
        speed = DEFAULT_SPEAKING_SPEED
        if duration_s and duration_s > 0:
            speed = len(content.split()) / duration_s
        return AudioMetadata(
            volume=metrics.volume,
            background_noise=metrics.background_noise,
            audio_quality=metrics.quality,
            speaking_speed=speed,
            emotional_tone=DEFAULT_EMOTIONAL_TONE,
            pitch=metrics.pitch,
        )

    @staticmethod
    def _request_for(entry: TranscriptEntry, target: "str | Language") -> TranslationRequest:
        language = entry.language_data.primary_language.language
        return TranslationRequest(
            text=entry.content,
            source=language.value if language is not None else AUTO,
            target=target,
        )

    def _merge_translation(
        self, entry: TranscriptEntry, target: Language, result: TranslationResult,
    ) -> None:
        language_data = copy.deepcopy(entry.language_data)
        language_data.translations[target] = result.translated_text
        for note in result.cultural_adaptations:
            if note not in language_data.cultural_notes:
                language_data.cultural_notes.append(note)
        if not self.store.update(entry.id, language_data=language_data):
            logger.warning("Entry %s disappeared before its translation was stored", entry.id)

    def _require_sync(self) -> TranscriptSyncChannel:
        if self.sync_channel is None:
            raise RuntimeError("No persistence channel configured (set SYNC_BASE_URL)")
        return self.sync_channel
