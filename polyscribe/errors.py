"""
polyscribe/errors.py
=====================
Error taxonomy — PolyScribe

Propagation policy:
    - Detection and audio metrics never raise; they log and return a safe
      fallback result.
    - TranscriptStore.update / delete return False for unknown ids.
    - TranscriptStore.merge / split raise InvalidStructuralEdit (or
      EntryNotFound) because their preconditions are the caller's to check.
    - Translation raises only after cache → preferred engine → guaranteed
      fallback engine are all exhausted.
"""


class PolyScribeError(Exception):
    """Base class for all PolyScribe errors."""


class InitializationFailure(PolyScribeError):
    """Raised when an engine or capture source cannot be constructed.

    Recoverable: callers switch to the degraded / synthetic implementation.
    """

    def __init__(self, component: str, reason: str = ""):
        self.component = component
        self.reason = reason
        message = f"Failed to initialize {component}"
        if reason:
            message += f": {reason}"
        super().__init__(message)


class UnsupportedLanguagePair(PolyScribeError):
    """Raised when no dictionary or route exists for source → target."""

    def __init__(self, source: str, target: str):
        self.source = source
        self.target = target
        super().__init__(f"Unsupported language pair: {source} -> {target}")


class AllTranslationEnginesUnavailable(PolyScribeError):
    """Raised when every translation fallback path is exhausted."""

    def __init__(self, reason: str = ""):
        self.reason = reason
        message = "All translation engines are unavailable"
        if reason:
            message += f" ({reason})"
        super().__init__(message)


class EntryNotFound(PolyScribeError):
    """Raised when a transcript entry id is unknown."""

    def __init__(self, entry_id: str):
        self.entry_id = entry_id
        super().__init__(f"Transcript entry not found: {entry_id}")


class InvalidStructuralEdit(PolyScribeError):
    """Raised for merge with < 2 ids or split at an out-of-range index."""

    def __init__(self, operation: str, message: str):
        self.operation = operation
        self.message = message
        super().__init__(f"Invalid {operation}: {message}")


class SyncError(PolyScribeError):
    """Raised when the remote transcript store rejects or fails a request."""

    def __init__(self, operation: str, meeting_id: str, reason: str):
        self.operation = operation
        self.meeting_id = meeting_id
        self.reason = reason
        super().__init__(f"Transcript {operation} failed for meeting {meeting_id}: {reason}")
