"""
polyscribe/api/service.py
==========================
HTTP service — PolyScribe

Thin FastAPI surface over one MeetingSession per meeting id, plus
stateless-ish translate / detect endpoints backed by service-level engine
instances.

Error mapping:
    EntryNotFound                     → 404
    InvalidStructuralEdit             → 422
    UnsupportedLanguagePair           → 400
    AllTranslationEnginesUnavailable  → 503
    ValueError (bad language, format, pattern, field) → 400

This module does NOT:
    - Implement any transcript, detection or translation logic itself
    - Persist sessions across restarts
"""

import logging
import threading
from datetime import datetime

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from pydantic import BaseModel, Field

from polyscribe import __version__
from polyscribe.config import ExportOptions, SessionOptions
from polyscribe.errors import (
    AllTranslationEnginesUnavailable,
    EntryNotFound,
    InvalidStructuralEdit,
    UnsupportedLanguagePair,
)
from polyscribe.languages import PrimaryLanguage, parse_language
from polyscribe.nlp.language_detector import LanguageDetectionEngine
from polyscribe.session import MeetingSession
from polyscribe.stt.recognition import RecognitionResult
from polyscribe.transcript.exporter import ExportFormat
from polyscribe.transcript.store import SearchOptions
from polyscribe.translation.engines import TranslationRequest
from polyscribe.translation.orchestrator import TranslationOrchestrator

logger = logging.getLogger("polyscribe.api.service")


# ---------------------------------------------------------------------------
# Request bodies
# ---------------------------------------------------------------------------


class UtteranceIn(BaseModel):
    text: str
    confidence: float = Field(default=1.0, ge=0.0, le=1.0)
    is_final: bool = True
    language_hint: str | None = None
    speaker_id: str = "unknown"
    duration_s: float | None = None


class MergeIn(BaseModel):
    entry_ids: list[str]


class SplitIn(BaseModel):
    index: int


class EntryPatch(BaseModel):
    content: str | None = None
    speaker_id: str | None = None


class TranslateEntryIn(BaseModel):
    target: str


class TranslateIn(BaseModel):
    text: str
    source: str = "auto"
    target: str
    context: str | None = None
    formality: str | None = None


class DetectIn(BaseModel):
    text: str
    use_history: bool = False
    detect_code_switching: bool = True


# ---------------------------------------------------------------------------
# Session registry
# ---------------------------------------------------------------------------


class SessionRegistry:
    """Meeting id → MeetingSession, plus the service-level engines."""

    def __init__(self, options: SessionOptions | None = None):
        self._options = options
        self._sessions: dict[str, MeetingSession] = {}
        self._lock = threading.Lock()
        self.translator = TranslationOrchestrator(self.options.translation)
        self.detector = LanguageDetectionEngine(self.options.detection)

    @property
    def options(self) -> SessionOptions:
        if self._options is None:
            self._options = SessionOptions.from_env()
        return self._options

    def get_or_create(self, meeting_id: str) -> MeetingSession:
        with self._lock:
            session = self._sessions.get(meeting_id)
            if session is None:
                session = MeetingSession(meeting_id, self.options)
                self._sessions[meeting_id] = session
            return session

    def get(self, meeting_id: str) -> MeetingSession:
        with self._lock:
            session = self._sessions.get(meeting_id)
        if session is None:
            raise HTTPException(status_code=404, detail=f"Meeting not found: {meeting_id}")
        return session

    def close(self, meeting_id: str) -> bool:
        with self._lock:
            session = self._sessions.pop(meeting_id, None)
        if session is None:
            return False
        session.close()
        return True

    def meeting_ids(self) -> list[str]:
        with self._lock:
            return list(self._sessions)


# ---------------------------------------------------------------------------
# Application
# ---------------------------------------------------------------------------


def create_app(registry: SessionRegistry | None = None) -> FastAPI:
    app = FastAPI(
        title="PolyScribe",
        description="Multilingual (zh / en / ms) meeting transcript service.",
        version=__version__,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.state.sessions = registry or SessionRegistry()

    _register_error_handlers(app)
    _register_routes(app)
    return app


def _error_response(status_code: int, exc: Exception) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"detail": str(exc)})


def _register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(EntryNotFound)
    async def _entry_not_found(request: Request, exc: EntryNotFound):
        return _error_response(404, exc)

    @app.exception_handler(InvalidStructuralEdit)
    async def _invalid_edit(request: Request, exc: InvalidStructuralEdit):
        return _error_response(422, exc)

    @app.exception_handler(UnsupportedLanguagePair)
    async def _unsupported_pair(request: Request, exc: UnsupportedLanguagePair):
        return _error_response(400, exc)

    @app.exception_handler(AllTranslationEnginesUnavailable)
    async def _engines_unavailable(request: Request, exc: AllTranslationEnginesUnavailable):
        logger.error("Translation unavailable: %s", exc)
        return _error_response(503, exc)

    @app.exception_handler(ValueError)
    async def _bad_value(request: Request, exc: ValueError):
        return _error_response(400, exc)


def _register_routes(app: FastAPI) -> None:
    registry: SessionRegistry = app.state.sessions

    # -- meetings -----------------------------------------------------------

    @app.post("/api/v1/meetings/{meeting_id}/utterances")
    def ingest_utterance(meeting_id: str, body: UtteranceIn):
        session = registry.get_or_create(meeting_id)
        session.sample_audio()
        result = RecognitionResult(
            text=body.text,
            confidence=body.confidence,
            is_final=body.is_final,
            language_hint=parse_language(body.language_hint) if body.language_hint else None,
            speaker_id=body.speaker_id,
            duration_s=body.duration_s,
        )
        entry = session.ingest(result)
        return {"entry": entry.to_dict() if entry else None}

    @app.delete("/api/v1/meetings/{meeting_id}")
    def close_meeting(meeting_id: str):
        if not registry.close(meeting_id):
            raise HTTPException(status_code=404, detail=f"Meeting not found: {meeting_id}")
        return {"closed": meeting_id}

    @app.get("/api/v1/meetings/{meeting_id}/transcript")
    def get_transcript(meeting_id: str):
        store = registry.get(meeting_id).store
        return {
            "meeting_id": meeting_id,
            "entries": [entry.to_dict() for entry in store.entries()],
            "undo_state": store.undo_state(),
        }

    @app.post("/api/v1/meetings/{meeting_id}/entries/merge")
    def merge_entries(meeting_id: str, body: MergeIn):
        merged = registry.get(meeting_id).store.merge(body.entry_ids)
        return {"entry": merged.to_dict()}

    @app.post("/api/v1/meetings/{meeting_id}/entries/{entry_id}/split")
    def split_entry(meeting_id: str, entry_id: str, body: SplitIn):
        first, second = registry.get(meeting_id).store.split(entry_id, body.index)
        return {"entries": [first.to_dict(), second.to_dict()]}

    @app.patch("/api/v1/meetings/{meeting_id}/entries/{entry_id}")
    def patch_entry(meeting_id: str, entry_id: str, body: EntryPatch):
        store = registry.get(meeting_id).store
        changes = body.model_dump(exclude_none=True)
        if not changes:
            raise HTTPException(status_code=400, detail="No fields to update.")
        if not store.update(entry_id, **changes):
            raise EntryNotFound(entry_id)
        return {"entry": store.get(entry_id).to_dict()}

    @app.delete("/api/v1/meetings/{meeting_id}/entries/{entry_id}")
    def delete_entry(meeting_id: str, entry_id: str):
        if not registry.get(meeting_id).store.delete(entry_id):
            raise EntryNotFound(entry_id)
        return {"deleted": entry_id}

    @app.post("/api/v1/meetings/{meeting_id}/entries/{entry_id}/translate")
    async def translate_entry(meeting_id: str, entry_id: str, body: TranslateEntryIn):
        session = registry.get(meeting_id)
        result = await session.translate_entry(entry_id, body.target)
        return {"translation": result.to_dict(), "entry": session.store.get(entry_id).to_dict()}

    @app.post("/api/v1/meetings/{meeting_id}/undo")
    def undo(meeting_id: str):
        store = registry.get(meeting_id).store
        return {"applied": store.undo(), **store.undo_state()}

    @app.post("/api/v1/meetings/{meeting_id}/redo")
    def redo(meeting_id: str):
        store = registry.get(meeting_id).store
        return {"applied": store.redo(), **store.undo_state()}

    @app.get("/api/v1/meetings/{meeting_id}/search")
    def search(
        meeting_id: str,
        q: str,
        regex: bool = True,
        case_sensitive: bool = False,
        whole_word: bool = False,
        include_translations: bool = False,
        include_speaker: bool = True,
        speaker_id: str | None = None,
        language: str | None = None,
        start: datetime | None = None,
        end: datetime | None = None,
    ):
        options = SearchOptions(
            query=q,
            regex=regex,
            case_sensitive=case_sensitive,
            whole_word=whole_word,
            include_translations=include_translations,
            include_speaker=include_speaker,
            speaker_id=speaker_id,
            language=PrimaryLanguage(language) if language else None,
            start=start,
            end=end,
        )
        results = registry.get(meeting_id).store.search(options)
        return {"query": q, "results": [r.to_dict() for r in results]}

    @app.get("/api/v1/meetings/{meeting_id}/export/{fmt}")
    def export(
        meeting_id: str,
        fmt: str,
        timestamps: bool = True,
        speakers: bool = True,
        languages: bool = False,
        translations: bool = False,
        metadata: bool = False,
        target_language: str | None = None,
    ):
        export_format = ExportFormat.parse(fmt)
        options = ExportOptions(
            include_timestamps=timestamps,
            include_speaker_info=speakers,
            include_language_info=languages,
            include_translations=translations,
            include_metadata=metadata,
            target_language=parse_language(target_language) if target_language else None,
        )
        body = registry.get(meeting_id).store.export(export_format, options)
        media_type = "application/json" if export_format is ExportFormat.JSON else "text/plain"
        return PlainTextResponse(content=body, media_type=media_type)

    @app.get("/api/v1/meetings/{meeting_id}/statistics")
    def statistics(meeting_id: str):
        session = registry.get(meeting_id)
        return {
            "transcript": session.store.statistics().to_dict(),
            "detection": session.detector.statistics().to_dict(),
            "translation": session.orchestrator.statistics(),
            "audio": session.monitor.latest().to_dict(),
        }

    # -- stateless helpers ----------------------------------------------------

    @app.post("/api/v1/translate")
    async def translate(body: TranslateIn):
        request = TranslationRequest(
            text=body.text,
            source=body.source,
            target=body.target,
            context=body.context,
            formality=body.formality,
        )
        result = await registry.translator.translate(request)
        return result.to_dict()

    @app.post("/api/v1/detect")
    def detect(body: DetectIn):
        result = registry.detector.detect(
            body.text,
            use_history=body.use_history,
            detect_code_switching=body.detect_code_switching,
        )
        return result.to_dict()

    @app.get("/health")
    def health():
        return {"status": "ok", "version": __version__, "meetings": len(registry.meeting_ids())}


app = create_app()
