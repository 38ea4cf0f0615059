"""
polyscribe/config.py
=====================
Configuration — PolyScribe

Every engine takes an explicit options object; nothing reads ambient
state at call time. Each options class has a ``from_env()`` constructor
that reads environment variables (``main.py`` loads ``.env`` via
python-dotenv before anything calls it).

Environment variables:
    DETECTION_MIN_CONFIDENCE     float, default 0.3
    DETECTION_HISTORY_SIZE       int,   default 50
    DETECTION_DEBOUNCE_MS        int,   default 300
    DETECTION_FALLBACK_LANGUAGE  zh|en|ms, default en
    TRANSLATION_CACHE_SIZE       int,   default 100
    TRANSLATION_STICKY_ENGINE    true|false, default true
    TRANSLATION_OPENAI_MODEL     default gpt-4o-mini
    OPENAI_API_KEY               enables the online translation engine
    AUDIO_MODE                   live|synthetic, default synthetic
    AUDIO_SAMPLE_RATE            int, default 16000
    AUDIO_CHANNELS               int, default 1
    AUDIO_FFT_SIZE               int, default 2048
    UNDO_MAX_STEPS               int, default 50
    SYNC_BASE_URL                persistence channel base URL (optional)
"""

import logging
import os
from dataclasses import dataclass, field

from polyscribe.languages import Language, parse_language

logger = logging.getLogger("polyscribe.config")


# ---------------------------------------------------------------------------
# Environment helpers
# ---------------------------------------------------------------------------


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning("Invalid float for %s=%r — using default %s.", name, raw, default)
        return default


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning("Invalid int for %s=%r — using default %s.", name, raw, default)
        return default


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


# ---------------------------------------------------------------------------
# Options
# ---------------------------------------------------------------------------


@dataclass
class DetectionOptions:
    """Language detection engine settings."""

    min_confidence: float = 0.3
    history_size: int = 50
    debounce_ms: int = 300
    fallback_language: Language = Language.EN
    # Second-highest share above this marks the utterance as mixed
    mixed_threshold: float = 0.3
    # Confidence blend: current * current_weight + history * history_weight
    current_weight: float = 0.7
    history_weight: float = 0.3
    history_blend_window: int = 10

    @classmethod
    def from_env(cls) -> "DetectionOptions":
        fallback_raw = os.environ.get("DETECTION_FALLBACK_LANGUAGE", "en")
        try:
            fallback = parse_language(fallback_raw)
        except ValueError:
            logger.warning(
                "Invalid DETECTION_FALLBACK_LANGUAGE=%r — using 'en'.", fallback_raw,
            )
            fallback = Language.EN
        return cls(
            min_confidence=_env_float("DETECTION_MIN_CONFIDENCE", 0.3),
            history_size=_env_int("DETECTION_HISTORY_SIZE", 50),
            debounce_ms=_env_int("DETECTION_DEBOUNCE_MS", 300),
            fallback_language=fallback,
        )


@dataclass
class TranslationOptions:
    """Translation orchestrator settings."""

    cache_size: int = 100
    sticky_engine: bool = True
    openai_model: str = "gpt-4o-mini"
    openai_api_key: str | None = None

    @classmethod
    def from_env(cls) -> "TranslationOptions":
        return cls(
            cache_size=_env_int("TRANSLATION_CACHE_SIZE", 100),
            sticky_engine=_env_bool("TRANSLATION_STICKY_ENGINE", True),
            openai_model=os.environ.get("TRANSLATION_OPENAI_MODEL", "gpt-4o-mini"),
            openai_api_key=os.environ.get("OPENAI_API_KEY") or None,
        )


@dataclass
class AudioOptions:
    """Audio capture and analysis settings."""

    mode: str = "synthetic"  # "live" | "synthetic"
    sample_rate: int = 16000
    channels: int = 1
    fft_size: int = 2048
    visualization_buckets: int = 20
    # Pitch search range in samples (8 ≈ 2 kHz, 1000 ≈ 16 Hz at 16 kHz)
    min_period: int = 8
    max_period: int = 1000
    synthetic_seed: int | None = None

    @property
    def buffer_length(self) -> int:
        """Samples per tick; frequency bins are half of the FFT size."""
        return self.fft_size // 2

    @classmethod
    def from_env(cls) -> "AudioOptions":
        return cls(
            mode=os.environ.get("AUDIO_MODE", "synthetic").strip().lower(),
            sample_rate=_env_int("AUDIO_SAMPLE_RATE", 16000),
            channels=_env_int("AUDIO_CHANNELS", 1),
            fft_size=_env_int("AUDIO_FFT_SIZE", 2048),
        )


@dataclass
class StoreOptions:
    """Transcript store settings."""

    max_undo_steps: int = 50

    @classmethod
    def from_env(cls) -> "StoreOptions":
        return cls(max_undo_steps=_env_int("UNDO_MAX_STEPS", 50))


@dataclass
class ExportOptions:
    """Inclusion flags for TranscriptStore.export()."""

    include_timestamps: bool = True
    include_speaker_info: bool = True
    include_language_info: bool = False
    include_translations: bool = False
    include_metadata: bool = False
    target_language: Language | None = None
    speaker_names: dict[str, str] = field(default_factory=dict)


@dataclass
class SessionOptions:
    """Bundle of per-meeting engine options."""

    detection: DetectionOptions = field(default_factory=DetectionOptions)
    translation: TranslationOptions = field(default_factory=TranslationOptions)
    audio: AudioOptions = field(default_factory=AudioOptions)
    store: StoreOptions = field(default_factory=StoreOptions)
    sync_base_url: str | None = None

    @classmethod
    def from_env(cls) -> "SessionOptions":
        return cls(
            detection=DetectionOptions.from_env(),
            translation=TranslationOptions.from_env(),
            audio=AudioOptions.from_env(),
            store=StoreOptions.from_env(),
            sync_base_url=os.environ.get("SYNC_BASE_URL") or None,
        )
