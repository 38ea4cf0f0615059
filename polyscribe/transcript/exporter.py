"""
polyscribe/transcript/exporter.py
==================================
Transcript Export — PolyScribe

Renders an ordered entry list to txt, md, json, srt or vtt. The format
name is always explicit; unknown names raise ValueError.

Subtitle cues: each cue ends one second before the next entry starts;
the last cue ends three seconds after its own start. Cue times are the
entries' wall-clock times of day (srt uses a comma before milliseconds,
vtt a dot).
"""

import json
from datetime import datetime, timedelta
from enum import Enum
from typing import Any

from polyscribe.config import ExportOptions
from polyscribe.languages import Language
from polyscribe.transcript.models import TranscriptEntry

CUE_GAP = timedelta(seconds=1)
LAST_CUE_LENGTH = timedelta(seconds=3)


class ExportFormat(str, Enum):
    TXT = "txt"
    MD = "md"
    JSON = "json"
    SRT = "srt"
    VTT = "vtt"

    @classmethod
    def parse(cls, value: "str | ExportFormat") -> "ExportFormat":
        try:
            return cls(str(getattr(value, "value", value)).strip().lower())
        except ValueError:
            raise ValueError(
                f"Unsupported export format: {value!r} "
                f"(expected one of {[f.value for f in cls]})"
            ) from None


def export_entries(
    entries: list[TranscriptEntry],
    fmt: "str | ExportFormat",
    options: ExportOptions | None = None,
    statistics: dict[str, Any] | None = None,
) -> str:
    """Render ``entries`` in ``fmt``. ``statistics`` feeds the metadata block."""
    options = options or ExportOptions()
    renderer = _RENDERERS[ExportFormat.parse(fmt)]
    return renderer(entries, options, statistics or {})


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def speaker_name(speaker_id: str, options: ExportOptions) -> str:
    return options.speaker_names.get(speaker_id, speaker_id)


def format_clock(moment: datetime) -> str:
    return moment.strftime("%H:%M:%S")


def format_cue_time(moment: datetime, decimal_mark: str) -> str:
    millis = moment.microsecond // 1000
    return f"{moment:%H:%M:%S}{decimal_mark}{millis:03d}"


def _selected_translations(
    entry: TranscriptEntry, options: ExportOptions,
) -> list[tuple[Language, str]]:
    return [
        (lang, text)
        for lang, text in entry.language_data.translations.items()
        if options.target_language is None or lang is options.target_language
    ]


def _cue_windows(entries: list[TranscriptEntry]) -> list[tuple[datetime, datetime]]:
    windows = []
    for index, entry in enumerate(entries):
        if index + 1 < len(entries):
            end = entries[index + 1].timestamp - CUE_GAP
        else:
            end = entry.timestamp + LAST_CUE_LENGTH
        windows.append((entry.timestamp, end))
    return windows


def _summary_lines(statistics: dict[str, Any]) -> list[tuple[str, str]]:
    return [
        ("Total entries", str(statistics.get("total_entries", 0))),
        ("Total words", str(statistics.get("total_words", 0))),
        ("Average confidence", f"{round(statistics.get('average_confidence', 0.0) * 100)}%"),
        ("Duration", f"{round(statistics.get('duration_seconds', 0.0) / 60)} min"),
    ]


# ---------------------------------------------------------------------------
# Renderers
# ---------------------------------------------------------------------------


def _render_txt(entries, options: ExportOptions, statistics) -> str:
    lines: list[str] = []

    if options.include_metadata:
        lines.append("Meeting transcript statistics")
        lines.extend(f"{label}: {value}" for label, value in _summary_lines(statistics))
        lines.append("")

    for entry in entries:
        line = ""
        if options.include_timestamps:
            line += f"[{format_clock(entry.timestamp)}] "
        if options.include_speaker_info:
            line += f"{speaker_name(entry.speaker_id, options)}: "
        line += entry.content
        if options.include_language_info:
            line += f" ({entry.language_data.primary_language.value.upper()})"
        lines.append(line)

        if options.include_translations:
            for lang, text in _selected_translations(entry, options):
                lines.append(f"  Translation ({lang.value.upper()}): {text}")
        lines.append("")

    return "\n".join(lines) + "\n" if lines else ""


def _render_md(entries, options: ExportOptions, statistics) -> str:
    parts = ["# Meeting Transcript", ""]

    if options.include_metadata:
        parts += ["## Statistics", ""]
        parts += [f"- **{label}**: {value}" for label, value in _summary_lines(statistics)]
        parts.append("")

    parts += ["## Transcript", ""]

    for entry in entries:
        prefix = ""
        if options.include_speaker_info:
            prefix += f"**{speaker_name(entry.speaker_id, options)}**"
        if options.include_timestamps:
            prefix += f" *{format_clock(entry.timestamp)}*"
        if options.include_language_info:
            prefix += f" `{entry.language_data.primary_language.value.upper()}`"
        line = f"{prefix.strip()}: {entry.content}" if prefix else entry.content
        parts += [line, ""]

        translations = _selected_translations(entry, options) if options.include_translations else []
        if translations:
            parts.append("> **Translations**:")
            parts += [f"> - **{lang.value.upper()}**: {text}" for lang, text in translations]
            parts.append("")

    return "\n".join(parts)


def _render_json(entries, options: ExportOptions, statistics) -> str:
    items = []
    for entry in entries:
        item: dict[str, Any] = {"id": entry.id, "content": entry.content}
        if options.include_speaker_info:
            item["speaker_id"] = entry.speaker_id
            item["speaker_name"] = speaker_name(entry.speaker_id, options)
        if options.include_timestamps:
            item["timestamp"] = entry.timestamp.isoformat()
        if options.include_language_info:
            language_data = entry.language_data.to_dict()
            language_data.pop("translations", None)
            item["language_data"] = language_data
        if options.include_translations:
            item["translations"] = {
                lang.value: text for lang, text in _selected_translations(entry, options)
            }
        if options.include_metadata:
            item["metadata"] = entry.metadata.to_dict()
        items.append(item)

    document: dict[str, Any] = {}
    if options.include_metadata:
        document["metadata"] = statistics
    document["transcripts"] = items
    document["export_options"] = {
        "include_timestamps": options.include_timestamps,
        "include_speaker_info": options.include_speaker_info,
        "include_language_info": options.include_language_info,
        "include_translations": options.include_translations,
        "include_metadata": options.include_metadata,
        "target_language": options.target_language.value if options.target_language else None,
    }
    document["export_time"] = datetime.now().isoformat()
    return json.dumps(document, ensure_ascii=False, indent=2)


def _render_srt(entries, options: ExportOptions, statistics) -> str:
    blocks = []
    for number, (entry, (start, end)) in enumerate(zip(entries, _cue_windows(entries)), 1):
        text = entry.content
        if options.include_speaker_info:
            text = f"{speaker_name(entry.speaker_id, options)}: {text}"
        blocks.append(
            f"{number}\n"
            f"{format_cue_time(start, ',')} --> {format_cue_time(end, ',')}\n"
            f"{text}\n"
        )
    return "\n".join(blocks)


def _render_vtt(entries, options: ExportOptions, statistics) -> str:
    blocks = ["WEBVTT\n"]
    for entry, (start, end) in zip(entries, _cue_windows(entries)):
        text = entry.content
        if options.include_speaker_info:
            text = f"<v {speaker_name(entry.speaker_id, options)}>{text}"
        blocks.append(
            f"{format_cue_time(start, '.')} --> {format_cue_time(end, '.')}\n{text}\n"
        )
    return "\n".join(blocks)


_RENDERERS = {
    ExportFormat.TXT: _render_txt,
    ExportFormat.MD: _render_md,
    ExportFormat.JSON: _render_json,
    ExportFormat.SRT: _render_srt,
    ExportFormat.VTT: _render_vtt,
}
