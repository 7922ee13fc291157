# backend/eventhub/services.py
"""
Write-side services: event submission and image upload.

Both take their store in the constructor, do exactly one store operation
per call and never retry. Store failures are logged with a correlation id
and re-raised as a generic error that carries only that id.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import List
import logging
import time
import uuid

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from .blob import BlobStoreError, LocalBlobStore
from .db import Database
from .models import SubmittedEvent
from .validation import EventSubmission

logger = logging.getLogger(__name__)


def new_correlation_id() -> str:
    return uuid.uuid4().hex


class StoreError(RuntimeError):
    """Base for store failures surfaced to callers without their cause."""

    message = "Store operation failed"

    def __init__(self, correlation_id: str) -> None:
        super().__init__(self.message)
        self.correlation_id = correlation_id


class SubmissionError(StoreError):
    message = "Failed to save event"


class QueryError(StoreError):
    message = "Failed to fetch events"


class UploadError(StoreError):
    message = "Upload failed"


def _as_utc(dt: datetime) -> datetime:
    # sqlite hands back naive datetimes even for timezone=True columns
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


class SubmissionService:
    def __init__(self, database: Database) -> None:
        self.database = database

    def submit(self, submission: EventSubmission) -> SubmittedEvent:
        """
        Persist one validated submission and return the stored row.

        The id is a random UUID, never client supplied. The insert runs in
        a single transaction: on any store error it is rolled back and
        SubmissionError is raised.
        """
        correlation_id = new_correlation_id()
        row = SubmittedEvent(
            id=str(uuid.uuid4()),
            created_at=datetime.now(timezone.utc),
            **submission.model_dump(),
        )
        db = self.database.session()
        try:
            db.add(row)
            db.commit()
            db.refresh(row)
        except SQLAlchemyError:
            db.rollback()
            logger.exception("[%s] failed to insert submitted event", correlation_id)
            raise SubmissionError(correlation_id) from None
        finally:
            db.close()

        row.created_at = _as_utc(row.created_at)
        logger.info("[%s] submitted event %s", correlation_id, row.id)
        return row

    def recent(self, limit: int = 10) -> List[SubmittedEvent]:
        """Newest submissions first."""
        correlation_id = new_correlation_id()
        q = (
            select(SubmittedEvent)
            .order_by(SubmittedEvent.created_at.desc())
            .limit(limit)
        )
        db = self.database.session()
        try:
            rows = db.execute(q).scalars().all()
        except SQLAlchemyError:
            logger.exception("[%s] failed to fetch recent submissions", correlation_id)
            raise QueryError(correlation_id) from None
        finally:
            db.close()

        for row in rows:
            row.created_at = _as_utc(row.created_at)
        return list(rows)


class ImageUploadService:
    def __init__(self, store: LocalBlobStore) -> None:
        self.store = store

    @staticmethod
    def object_key() -> str:
        return f"{uuid.uuid4().hex}-{int(time.time() * 1000)}"

    def upload(self, data: bytes, content_type: str) -> str:
        """
        Write already-validated image bytes as one object and return its
        public URL. Raises UploadError if the store write fails.
        """
        correlation_id = new_correlation_id()
        try:
            url = self.store.put(self.object_key(), data, content_type)
        except (BlobStoreError, OSError):
            logger.exception("[%s] image upload failed", correlation_id)
            raise UploadError(correlation_id) from None

        logger.info("[%s] uploaded image %s (%d bytes)", correlation_id, url, len(data))
        return url
