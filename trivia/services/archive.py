"""Sinks that receive a finished game's snapshot.

The coordinator hands over a JSON-ready dict and never reads it back. A sink
may raise; the caller logs the failure and moves on.
"""
import logging
from datetime import datetime
from typing import Any, Optional, Protocol

import httpx
from pydantic import TypeAdapter

from trivia.core.config import Settings

logger = logging.getLogger("archive")

_datetime_adapter = TypeAdapter(Optional[datetime])


class ArchiveSink(Protocol):
    async def store(self, document: dict) -> None: ...


def to_firestore_fields(value: Any) -> dict:
    """Wrap a JSON value in Firestore REST typed values."""
    # bool first: it is a subclass of int
    if isinstance(value, bool):
        return {"booleanValue": value}
    if isinstance(value, int):
        return {"integerValue": str(value)}
    if isinstance(value, float):
        return {"doubleValue": value}
    if isinstance(value, str):
        return {"stringValue": value}
    if value is None:
        return {"nullValue": None}
    if isinstance(value, (list, tuple)):
        return {"arrayValue": {"values": [to_firestore_fields(item) for item in value]}}
    if isinstance(value, dict):
        return {"mapValue": {"fields": {key: to_firestore_fields(item) for key, item in value.items()}}}
    return {"stringValue": str(value)}


class NullArchiveSink:
    async def store(self, document: dict) -> None:
        logger.info("Archive disabled, dropping game=%s", document.get("id"))


class HttpArchiveSink:
    """POST the snapshot to a document-store endpoint."""

    def __init__(
        self,
        url: str,
        timeout: float = 5.0,
        firestore: bool = False,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.url = url
        self.timeout = timeout
        self.firestore = firestore
        self.transport = transport

    def build_body(self, document: dict) -> dict:
        if self.firestore:
            return {"fields": to_firestore_fields(document)["mapValue"]["fields"]}
        return document

    async def store(self, document: dict) -> None:
        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            resp = await client.post(self.url, json=self.build_body(document))
        resp.raise_for_status()
        logger.info("Archived game=%s status=%s", document.get("id"), resp.status_code)


class SqlArchiveSink:
    """Insert the snapshot as a row in ``archived_games``."""

    def __init__(self, engine=None):
        self.engine = engine

    async def store(self, document: dict) -> None:
        from trivia.db import get_session
        from trivia.models import ArchivedGame

        async with get_session(self.engine) as db:
            db.add(
                ArchivedGame(
                    room_id=document["id"],
                    quiz_id=document.get("quizId"),
                    quiz_title=document.get("quizTitle"),
                    participant_count=len(document.get("participants") or []),
                    document=document,
                    finished_at=_datetime_adapter.validate_python(document.get("finishedAt")),
                )
            )
            await db.commit()
        logger.info("Archived game=%s to database", document["id"])


def build_archive_sink(config: Settings) -> ArchiveSink:
    if config.archive_backend == "http":
        if not config.archive_url:
            raise ValueError("TRIVIA_ARCHIVE_URL is required for the http archive backend")
        return HttpArchiveSink(
            config.archive_url,
            timeout=config.archive_timeout,
            firestore=config.archive_format == "firestore",
        )
    if config.archive_backend == "sql":
        return SqlArchiveSink()
    return NullArchiveSink()
