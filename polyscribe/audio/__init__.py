# polyscribe/audio/__init__.py
# =============================
# Audio Layer — PolyScribe
#
#   - analyzer.py — volume / pitch / quality / noise / visualization metrics
#   - sources.py  — live (sounddevice) and synthetic capture sources
#   - monitor.py  — latest-metrics snapshot per session

from polyscribe.audio.analyzer import AudioMetrics, AudioSignalAnalyzer  # noqa: F401
from polyscribe.audio.monitor import AudioMonitor  # noqa: F401
from polyscribe.audio.sources import (  # noqa: F401
    AudioSource,
    LiveAudioSource,
    SyntheticAudioSource,
    open_audio_source,
)

__all__ = [
    "AudioMetrics",
    "AudioSignalAnalyzer",
    "AudioMonitor",
    "AudioSource",
    "LiveAudioSource",
    "SyntheticAudioSource",
    "open_audio_source",
]
