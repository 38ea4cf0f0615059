# polyscribe/transcript/__init__.py
# Transcript — entry model, undoable store and exporters

from polyscribe.transcript.exporter import ExportFormat, export_entries  # noqa: F401
from polyscribe.transcript.models import (  # noqa: F401
    AudioMetadata,
    LanguageData,
    TranscriptEntry,
    new_entry_id,
)
from polyscribe.transcript.store import (  # noqa: F401
    SearchMatches,
    SearchOptions,
    SearchResult,
    TranscriptStatistics,
    TranscriptStore,
)
