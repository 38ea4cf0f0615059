"""
polyscribe/nlp/debounce.py
===========================
Debounced Detection — PolyScribe

Live (interim) recognition text changes many times per second. Detection
on such a stream is debounced per stream id with a last-writer-wins
policy: a new submission supersedes the pending one, and only the most
recent text is detected once the quiet period elapses. Nothing is
accumulated.

Superseded submissions have their futures cancelled.
"""

import asyncio
import logging
from typing import Callable

from polyscribe.nlp.language_detector import DetectionResult, LanguageDetectionEngine

logger = logging.getLogger("polyscribe.nlp.debounce")


class DebouncedDetector:
    def __init__(
        self,
        engine: LanguageDetectionEngine,
        delay_ms: int | None = None,
        on_result: Callable[[str, DetectionResult], None] | None = None,
    ):
        self.engine = engine
        self.delay_s = (engine.options.debounce_ms if delay_ms is None else delay_ms) / 1000.0
        self.on_result = on_result
        # stream id → (timer handle, pending text, caller future)
        self._pending: dict[str, tuple[asyncio.TimerHandle, str, asyncio.Future]] = {}

    def submit(self, text: str, stream_id: str = "default") -> asyncio.Future:
        """Schedule detection of ``text``; supersedes any pending call."""
        loop = asyncio.get_running_loop()
        self._supersede(stream_id)

        future: asyncio.Future = loop.create_future()
        handle = loop.call_later(self.delay_s, self._fire, stream_id)
        self._pending[stream_id] = (handle, text, future)
        return future

    def flush(self, stream_id: str = "default") -> DetectionResult | None:
        """Run the pending call for ``stream_id`` immediately."""
        pending = self._pending.get(stream_id)
        if pending is None:
            return None
        pending[0].cancel()
        return self._fire(stream_id)

    def cancel(self, stream_id: str = "default") -> bool:
        """Drop the pending call without running it."""
        return self._supersede(stream_id)

    def pending_streams(self) -> list[str]:
        return list(self._pending)

    def _supersede(self, stream_id: str) -> bool:
        pending = self._pending.pop(stream_id, None)
        if pending is None:
            return False
        handle, _, future = pending
        handle.cancel()
        if not future.done():
            future.cancel()
        return True

    def _fire(self, stream_id: str) -> DetectionResult | None:
        pending = self._pending.pop(stream_id, None)
        if pending is None:
            return None
        _, text, future = pending

        result = self.engine.detect(text)
        if not future.done():
            future.set_result(result)
        if self.on_result is not None:
            try:
                self.on_result(stream_id, result)
            except Exception as exc:
                logger.warning("Debounced detection callback failed: %s", exc)
        return result
