# polyscribe/sync/__init__.py
# Persistence channel — full-replace transcript push / pull over HTTP

from polyscribe.sync.channel import SyncError, TranscriptSyncChannel  # noqa: F401
