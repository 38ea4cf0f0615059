"""
polyscribe/sync/channel.py
===========================
Transcript persistence channel — PolyScribe

Pushes and pulls a meeting's full entry collection to / from a remote
JSON document store over HTTP. Semantics are full-replace: a push
overwrites the remote collection, a pull returns the remote collection
which the caller installs with TranscriptStore.replace_all().

    PUT  {base_url}/meetings/{meeting_id}/transcript   body: {"entries": [...]}
    GET  {base_url}/meetings/{meeting_id}/transcript   → {"entries": [...]}

This module does NOT:
    - Merge remote and local edits
    - Retry failed requests
"""

import logging
from datetime import datetime
from typing import Any, Callable

import aiohttp

from polyscribe.errors import SyncError
from polyscribe.transcript.models import TranscriptEntry

logger = logging.getLogger("polyscribe.sync.channel")


class TranscriptSyncChannel:
    def __init__(
        self,
        base_url: str,
        timeout_s: float = 30.0,
        session_factory: Callable[..., Any] = aiohttp.ClientSession,
    ):
        if not base_url:
            raise ValueError("TranscriptSyncChannel needs a base URL")
        self.base_url = base_url.rstrip("/")
        self.timeout = aiohttp.ClientTimeout(total=timeout_s)
        self._session_factory = session_factory

    def url_for(self, meeting_id: str) -> str:
        return f"{self.base_url}/meetings/{meeting_id}/transcript"

    async def push(self, meeting_id: str, entries: list[TranscriptEntry]) -> int:
        """Replace the remote collection; returns the number of entries sent."""
        url = self.url_for(meeting_id)
        payload = {
            "meeting_id": meeting_id,
            "entries": [entry.to_dict() for entry in entries],
            "updated_at": datetime.now().isoformat(),
        }

        try:
            async with self._session_factory() as session:
                async with session.put(
                    url,
                    json=payload,
                    headers={"Content-Type": "application/json"},
                    timeout=self.timeout,
                ) as resp:
                    logger.info("Transcript PUT to %s — status %d", url, resp.status)
                    if resp.status >= 400:
                        raise SyncError("push", meeting_id, f"HTTP {resp.status}")
        except aiohttp.ClientError as exc:
            logger.error("Transcript PUT failed: %s", exc)
            raise SyncError("push", meeting_id, str(exc)) from exc

        return len(entries)

    async def pull(self, meeting_id: str) -> list[TranscriptEntry]:
        """Fetch the remote collection. A missing document is an empty one."""
        url = self.url_for(meeting_id)

        try:
            async with self._session_factory() as session:
                async with session.get(url, timeout=self.timeout) as resp:
                    logger.info("Transcript GET from %s — status %d", url, resp.status)
                    if resp.status == 404:
                        return []
                    if resp.status >= 400:
                        raise SyncError("pull", meeting_id, f"HTTP {resp.status}")
                    body = await resp.json()
        except aiohttp.ClientError as exc:
            logger.error("Transcript GET failed: %s", exc)
            raise SyncError("pull", meeting_id, str(exc)) from exc

        raw_entries = body.get("entries", []) if isinstance(body, dict) else body
        try:
            return [TranscriptEntry.from_dict(item) for item in raw_entries or []]
        except (KeyError, TypeError, ValueError) as exc:
            raise SyncError("pull", meeting_id, f"malformed payload: {exc}") from exc
