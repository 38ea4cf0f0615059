"""
polyscribe/audio/monitor.py
============================
Audio Monitor — PolyScribe

Keeps the latest AudioMetrics snapshot for a session. Callers sample on
their own cadence (e.g. once per display refresh); a new transcript entry
copies whatever snapshot is current at capture time.
"""

import logging
import threading

from polyscribe.audio.analyzer import AudioMetrics, AudioSignalAnalyzer, zero_metrics
from polyscribe.audio.sources import AudioSource

logger = logging.getLogger("polyscribe.audio.monitor")


class AudioMonitor:
    def __init__(self, source: AudioSource, analyzer: AudioSignalAnalyzer):
        self.source = source
        self.analyzer = analyzer
        self._latest = zero_metrics(analyzer.options.visualization_buckets)
        self._lock = threading.Lock()

    @property
    def is_live(self) -> bool:
        return self.source.is_live

    def sample(self) -> AudioMetrics:
        """Read one tick from the source and store the resulting metrics."""
        try:
            time_domain, frequency = self.source.read_buffers()
        except Exception as exc:
            logger.warning("Audio source read failed: %s — keeping last snapshot.", exc)
            return self.latest()

        metrics = self.analyzer.analyze(time_domain, frequency)
        with self._lock:
            self._latest = metrics
        return metrics

    def latest(self) -> AudioMetrics:
        with self._lock:
            return self._latest

    def close(self) -> None:
        self.source.stop()
