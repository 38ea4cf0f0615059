"""
polyscribe/transcript/store.py
===============================
Transcript Store — PolyScribe

Responsibility:
    - Own the ordered collection of TranscriptEntry records for a meeting
    - Apply edits: append, update, delete, merge, split, clear, replace_all
    - Keep bounded undo history (full deep-copy snapshots) and a redo stack
    - Search with filters and <mark> highlighting
    - Compute transcript statistics and render exports

Every structural mutation pushes a snapshot of the whole collection onto
the undo stack first and clears the redo stack. All operations, reads
included, run under a single re-entrant lock per store.

Entries handed out are copies; callers never alias stored state.

This module does NOT:
    - Detect languages or translate
    - Persist anywhere (see polyscribe.sync.channel)
"""

import copy
import logging
import re
import threading
from collections import Counter, deque
from dataclasses import dataclass, field, fields
from datetime import datetime, timedelta
from typing import Any, Iterable

from polyscribe.config import ExportOptions, StoreOptions
from polyscribe.errors import EntryNotFound, InvalidStructuralEdit
from polyscribe.languages import PrimaryLanguage
from polyscribe.transcript.exporter import ExportFormat, export_entries
from polyscribe.transcript.models import LanguageData, TranscriptEntry, new_entry_id

logger = logging.getLogger("polyscribe.transcript.store")

SPLIT_OFFSET = timedelta(seconds=1)

# Audio metadata is captured at creation; merged_from is provenance
_UPDATABLE_FIELDS = frozenset(f.name for f in fields(TranscriptEntry)) - {
    "id", "metadata", "merged_from",
}


# ---------------------------------------------------------------------------
# Search / statistics records
# ---------------------------------------------------------------------------


@dataclass
class SearchOptions:
    query: str
    regex: bool = True
    case_sensitive: bool = False
    whole_word: bool = False
    include_translations: bool = False
    include_speaker: bool = True
    speaker_id: str | None = None
    language: PrimaryLanguage | None = None
    start: datetime | None = None
    end: datetime | None = None


@dataclass(frozen=True)
class SearchMatches:
    content: bool = False
    translation: bool = False
    speaker: bool = False

    def any(self) -> bool:
        return self.content or self.translation or self.speaker


@dataclass
class SearchResult:
    entry_id: str
    entry: TranscriptEntry
    matches: SearchMatches
    highlighted_content: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "entry_id": self.entry_id,
            "entry": self.entry.to_dict(),
            "matches": {
                "content": self.matches.content,
                "translation": self.matches.translation,
                "speaker": self.matches.speaker,
            },
            "highlighted_content": self.highlighted_content,
        }


@dataclass
class TranscriptStatistics:
    total_entries: int = 0
    total_words: int = 0
    language_distribution: dict[str, int] = field(default_factory=dict)
    speaker_distribution: dict[str, int] = field(default_factory=dict)
    average_confidence: float = 0.0
    duration_seconds: float = 0.0
    code_switching_frequency: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_entries": self.total_entries,
            "total_words": self.total_words,
            "language_distribution": dict(self.language_distribution),
            "speaker_distribution": dict(self.speaker_distribution),
            "average_confidence": self.average_confidence,
            "duration_seconds": self.duration_seconds,
            "code_switching_frequency": self.code_switching_frequency,
        }


# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------


class TranscriptStore:
    """Editable, undoable, thread-safe transcript collection."""

    def __init__(
        self,
        entries: Iterable[TranscriptEntry] | None = None,
        options: StoreOptions | None = None,
    ):
        self.options = options or StoreOptions()
        self._entries: list[TranscriptEntry] = copy.deepcopy(list(entries or []))
        self._undo: deque[list[TranscriptEntry]] = deque(
            maxlen=max(1, self.options.max_undo_steps)
        )
        self._redo: list[list[TranscriptEntry]] = []
        self._lock = threading.RLock()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def entries(self) -> list[TranscriptEntry]:
        with self._lock:
            return copy.deepcopy(self._entries)

    def get(self, entry_id: str) -> TranscriptEntry | None:
        with self._lock:
            index = self._index_of(entry_id)
            return None if index is None else copy.deepcopy(self._entries[index])

    def undo_state(self) -> dict[str, bool]:
        with self._lock:
            return {"can_undo": bool(self._undo), "can_redo": bool(self._redo)}

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def append(self, entry: TranscriptEntry) -> TranscriptEntry:
        with self._lock:
            self._save_state()
            self._entries.append(copy.deepcopy(entry))
            return copy.deepcopy(entry)

    def append_many(self, entries: Iterable[TranscriptEntry]) -> int:
        batch = copy.deepcopy(list(entries))
        with self._lock:
            self._save_state()
            self._entries.extend(batch)
            return len(batch)

    def update(self, entry_id: str, **changes: Any) -> bool:
        """Replace fields of one entry. Unknown id → False."""
        unknown = set(changes) - _UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Cannot update fields: {sorted(unknown)}")

        with self._lock:
            index = self._index_of(entry_id)
            if index is None:
                return False
            self._save_state()
            updated = copy.deepcopy(self._entries[index])
            for name, value in changes.items():
                setattr(updated, name, copy.deepcopy(value))
            self._entries[index] = updated
            return True

    def delete(self, entry_id: str) -> bool:
        with self._lock:
            index = self._index_of(entry_id)
            if index is None:
                return False
            self._save_state()
            del self._entries[index]
            return True

    def merge(self, entry_ids: list[str]) -> TranscriptEntry:
        """Merge entries (in the given order) into one new entry.

        Raises:
            InvalidStructuralEdit: fewer than two ids, duplicates, or any
                id unknown.
        """
        if len(entry_ids) < 2:
            raise InvalidStructuralEdit("merge", "at least two entry ids are required")
        if len(set(entry_ids)) != len(entry_ids):
            raise InvalidStructuralEdit("merge", "entry ids must be distinct")

        with self._lock:
            by_id = {entry.id: entry for entry in self._entries}
            missing = [eid for eid in entry_ids if eid not in by_id]
            if missing:
                raise InvalidStructuralEdit("merge", f"unknown entry ids: {missing}")

            parts = [by_id[eid] for eid in entry_ids]
            merged = _merged_entry(parts)

            self._save_state()
            removed = set(entry_ids)
            remaining = [e for e in self._entries if e.id not in removed]
            remaining.append(merged)
            # Stable: equal timestamps keep their relative order
            remaining.sort(key=lambda e: e.timestamp)
            self._entries = remaining

            logger.info("Merged %d entries into %s", len(parts), merged.id)
            return copy.deepcopy(merged)

    def split(self, entry_id: str, index: int) -> tuple[TranscriptEntry, TranscriptEntry]:
        """Split one entry's content at character ``index``.

        Raises:
            EntryNotFound: unknown id.
            InvalidStructuralEdit: index outside (0, len(content)).
        """
        with self._lock:
            position = self._index_of(entry_id)
            if position is None:
                raise EntryNotFound(entry_id)

            original = self._entries[position]
            if index <= 0 or index >= len(original.content):
                raise InvalidStructuralEdit(
                    "split",
                    f"index {index} outside 1..{len(original.content) - 1}",
                )

            first_id, second_id = f"{original.id}-1", f"{original.id}-2"
            taken = {entry.id for entry in self._entries}
            if first_id in taken or second_id in taken:
                first_id, second_id = new_entry_id("split"), new_entry_id("split")

            first = copy.deepcopy(original)
            first.id = first_id
            first.content = original.content[:index].strip()

            second = copy.deepcopy(original)
            second.id = second_id
            second.content = original.content[index:].strip()
            second.timestamp = original.timestamp + SPLIT_OFFSET

            self._save_state()
            self._entries[position:position + 1] = [first, second]
            return copy.deepcopy(first), copy.deepcopy(second)

    def clear(self) -> None:
        with self._lock:
            self._save_state()
            self._entries = []

    def replace_all(self, entries: Iterable[TranscriptEntry]) -> None:
        replacement = copy.deepcopy(list(entries))
        with self._lock:
            self._save_state()
            self._entries = replacement

    # ------------------------------------------------------------------
    # Undo / redo
    # ------------------------------------------------------------------

    def undo(self) -> bool:
        with self._lock:
            if not self._undo:
                return False
            self._redo.append(self._entries)
            self._entries = self._undo.pop()
            return True

    def redo(self) -> bool:
        with self._lock:
            if not self._redo:
                return False
            self._undo.append(self._entries)
            self._entries = self._redo.pop()
            return True

    # ------------------------------------------------------------------
    # Search / statistics / export
    # ------------------------------------------------------------------

    def search(self, options: "SearchOptions | str") -> list[SearchResult]:
        if isinstance(options, str):
            options = SearchOptions(query=options)
        if not options.query:
            return []

        pattern = _compile_query(options)
        results: list[SearchResult] = []

        with self._lock:
            for entry in self._entries:
                if options.speaker_id and entry.speaker_id != options.speaker_id:
                    continue
                if options.language and entry.language_data.primary_language != options.language:
                    continue
                if options.start and entry.timestamp < options.start:
                    continue
                if options.end and entry.timestamp > options.end:
                    continue

                content_hit = bool(pattern.search(entry.content))
                matches = SearchMatches(
                    content=content_hit,
                    translation=options.include_translations and any(
                        pattern.search(text)
                        for text in entry.language_data.translations.values()
                    ),
                    speaker=options.include_speaker and bool(pattern.search(entry.speaker_id)),
                )
                if not matches.any():
                    continue

                highlighted = entry.content
                if content_hit:
                    highlighted = pattern.sub(lambda m: f"<mark>{m.group(0)}</mark>", entry.content)

                results.append(
                    SearchResult(
                        entry_id=entry.id,
                        entry=copy.deepcopy(entry),
                        matches=matches,
                        highlighted_content=highlighted,
                    )
                )

        return results

    def statistics(self) -> TranscriptStatistics:
        with self._lock:
            entries = list(self._entries)

        if not entries:
            return TranscriptStatistics()

        labels = [e.language_data.primary_language.value for e in entries]
        switches = sum(1 for prev, curr in zip(labels, labels[1:]) if prev != curr)

        return TranscriptStatistics(
            total_entries=len(entries),
            total_words=sum(e.word_count for e in entries),
            language_distribution=dict(Counter(labels)),
            speaker_distribution=dict(Counter(e.speaker_id for e in entries)),
            average_confidence=sum(e.language_data.confidence for e in entries) / len(entries),
            duration_seconds=(entries[-1].timestamp - entries[0].timestamp).total_seconds(),
            code_switching_frequency=switches / (len(entries) - 1) if len(entries) > 1 else 0.0,
        )

    def export(
        self, fmt: "str | ExportFormat", options: ExportOptions | None = None,
    ) -> str:
        with self._lock:
            entries = copy.deepcopy(self._entries)
            stats = self.statistics().to_dict()
        return export_entries(entries, fmt, options, stats)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _index_of(self, entry_id: str) -> int | None:
        for index, entry in enumerate(self._entries):
            if entry.id == entry_id:
                return index
        return None

    def _save_state(self) -> None:
        self._undo.append(copy.deepcopy(self._entries))
        self._redo.clear()


def _compile_query(options: SearchOptions) -> re.Pattern[str]:
    body = options.query if options.regex else re.escape(options.query)
    if options.whole_word:
        body = rf"\b(?:{body})\b"
    flags = 0 if options.case_sensitive else re.IGNORECASE
    try:
        return re.compile(body, flags)
    except re.error as exc:
        raise ValueError(f"Invalid search pattern {options.query!r}: {exc}") from exc


def _merged_entry(parts: list[TranscriptEntry]) -> TranscriptEntry:
    first = parts[0]

    translations: dict = {}
    for part in parts:
        for lang, text in part.language_data.translations.items():
            translations[lang] = f"{translations[lang]} {text}" if lang in translations else text

    return TranscriptEntry(
        id=new_entry_id("merged"),
        speaker_id=first.speaker_id,
        content=" ".join(part.content for part in parts),
        timestamp=first.timestamp,
        language_data=LanguageData(
            primary_language=first.language_data.primary_language,
            detected_languages=list(first.language_data.detected_languages),
            confidence=sum(p.language_data.confidence for p in parts) / len(parts),
            translations=translations,
            cultural_notes=[note for p in parts for note in p.language_data.cultural_notes],
        ),
        metadata=first.metadata,
        merged_from=[part.id for part in parts],
    )
