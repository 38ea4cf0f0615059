"""
polyscribe/transcript/models.py
================================
Transcript data model — PolyScribe

TranscriptEntry is one attributed utterance. Entries are owned by the
TranscriptStore; callers always receive copies. AudioMetadata is frozen
once created.

``to_dict`` / ``from_dict`` give the JSON shape used by the HTTP service,
the JSON export and the persistence channel.
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from polyscribe.languages import Language, PrimaryLanguage


def new_entry_id(prefix: str = "entry") -> str:
    return f"{prefix}-{uuid.uuid4().hex[:12]}"


@dataclass(frozen=True)
class AudioMetadata:
    """Audio conditions observed when the utterance was captured."""

    volume: float = 0.0
    background_noise: float = 0.0
    audio_quality: float = 0.0
    speaking_speed: float = 1.0
    emotional_tone: str = "neutral"
    pitch: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "volume": self.volume,
            "background_noise": self.background_noise,
            "audio_quality": self.audio_quality,
            "speaking_speed": self.speaking_speed,
            "emotional_tone": self.emotional_tone,
            "pitch": self.pitch,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "AudioMetadata":
        return cls(
            volume=float(data.get("volume", 0.0)),
            background_noise=float(data.get("background_noise", 0.0)),
            audio_quality=float(data.get("audio_quality", 0.0)),
            speaking_speed=float(data.get("speaking_speed", 1.0)),
            emotional_tone=str(data.get("emotional_tone", "neutral")),
            pitch=float(data.get("pitch", 0.0)),
        )


@dataclass
class LanguageData:
    """Detection outcome and translations attached to an entry."""

    primary_language: PrimaryLanguage
    detected_languages: list[tuple[Language, float]] = field(default_factory=list)
    confidence: float = 0.0
    translations: dict[Language, str] = field(default_factory=dict)
    cultural_notes: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "primary_language": self.primary_language.value,
            "detected_languages": [
                {"language": lang.value, "confidence": conf}
                for lang, conf in self.detected_languages
            ],
            "confidence": self.confidence,
            "translations": {lang.value: text for lang, text in self.translations.items()},
            "cultural_notes": list(self.cultural_notes),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "LanguageData":
        return cls(
            primary_language=PrimaryLanguage(data.get("primary_language", "en")),
            detected_languages=[
                (Language(item["language"]), float(item["confidence"]))
                for item in data.get("detected_languages", [])
            ],
            confidence=float(data.get("confidence", 0.0)),
            translations={
                Language(lang): text for lang, text in (data.get("translations") or {}).items()
            },
            cultural_notes=list(data.get("cultural_notes") or []),
        )


@dataclass
class TranscriptEntry:
    """One attributed utterance in a meeting transcript."""

    id: str
    speaker_id: str
    content: str
    timestamp: datetime
    language_data: LanguageData
    metadata: AudioMetadata = field(default_factory=AudioMetadata)
    # Ids of the entries this one was merged from, if any
    merged_from: list[str] = field(default_factory=list)

    @property
    def word_count(self) -> int:
        return len(self.content.split())

    def to_dict(self) -> dict[str, Any]:
        data = {
            "id": self.id,
            "speaker_id": self.speaker_id,
            "content": self.content,
            "timestamp": self.timestamp.isoformat(),
            "language_data": self.language_data.to_dict(),
            "metadata": self.metadata.to_dict(),
        }
        if self.merged_from:
            data["merged_from"] = list(self.merged_from)
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TranscriptEntry":
        timestamp = data["timestamp"]
        if not isinstance(timestamp, datetime):
            timestamp = datetime.fromisoformat(timestamp)
        return cls(
            id=data.get("id") or new_entry_id(),
            speaker_id=data.get("speaker_id", "unknown"),
            content=data.get("content", ""),
            timestamp=timestamp,
            language_data=LanguageData.from_dict(data.get("language_data") or {}),
            metadata=AudioMetadata.from_dict(data.get("metadata") or {}),
            merged_from=list(data.get("merged_from") or []),
        )
