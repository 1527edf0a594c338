# railclub/services/email_queue_store.py
from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Any, Callable, Iterator, Protocol

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from railclub.clock import Clock, SystemClock
from railclub.errors import CreationError, NotFoundError, RailclubError, StoreError, ValidationError
from railclub.models.email_queue import EmailQueueItem

logger = logging.getLogger(__name__)

STATUS_PENDING = "pending"
STATUS_IN_PROGRESS = "in_progress"
STATUS_SENT = "sent"
STATUS_FAILED = "failed"

STATUSES = (STATUS_PENDING, STATUS_IN_PROGRESS, STATUS_SENT, STATUS_FAILED)

DEFAULT_MAX_RETRIES = 3

# Fields a raw update may touch; everything else is fixed at creation
UPDATABLE_FIELDS = frozenset({"status", "retry_count", "last_error", "sent_at"})


def _iso(dt: datetime | None) -> str | None:
    return dt.isoformat() if dt else None


@dataclass(frozen=True)
class EmailMessage:
    id: int
    recipient_email: str
    subject: str
    body: str
    html_body: str | None
    status: str
    retry_count: int
    max_retries: int
    last_error: str | None
    scheduled_at: datetime | None
    sent_at: datetime | None
    created_at: datetime
    updated_at: datetime

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "recipient_email": self.recipient_email,
            "subject": self.subject,
            "body": self.body,
            "html_body": self.html_body,
            "status": self.status,
            "retry_count": self.retry_count,
            "max_retries": self.max_retries,
            "last_error": self.last_error,
            "scheduled_at": _iso(self.scheduled_at),
            "sent_at": _iso(self.sent_at),
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }


@dataclass
class NewEmail:
    recipient_email: str
    subject: str
    body: str
    html_body: str | None = None
    max_retries: int = DEFAULT_MAX_RETRIES
    scheduled_at: datetime | None = None


class EmailQueueRepository(Protocol):
    """
    Persistence access for the outbox.
    Implementations raise NotFoundError / StoreError / ValidationError; they do not
    decide retries.
    """

    def create(self, new: NewEmail) -> EmailMessage: ...

    def get(self, email_id: int) -> EmailMessage: ...

    def list(
        self,
        status: str | None = None,
        limit: int = 50,
        offset: int = 0,
        order: str = "desc",
    ) -> list[EmailMessage]: ...

    def update(self, email_id: int, fields: dict[str, Any]) -> EmailMessage: ...

    def delete(self, email_id: int) -> int: ...

    def get_pending(self, limit: int = 10) -> list[EmailMessage]: ...

    def get_failed(self, limit: int = 10) -> list[EmailMessage]: ...

    def count_by_status(self) -> dict[str, int]: ...

    def modify(self, email_id: int, change: Callable[[EmailMessage], dict[str, Any]]) -> EmailMessage: ...

    def reset(self, email_ids: list[int]) -> list[EmailMessage]: ...

    def claim(self, limit: int = 10) -> list[EmailMessage]: ...

    def release_claims(self, older_than: datetime) -> list[EmailMessage]: ...


def _check_fields(fields: dict[str, Any]) -> None:
    unknown = sorted(set(fields) - UPDATABLE_FIELDS)
    if unknown:
        raise ValidationError(f"Unknown fields: {', '.join(unknown)}")


def _to_message(row: EmailQueueItem) -> EmailMessage:
    return EmailMessage(
        id=int(row.id),
        recipient_email=row.recipient_email,
        subject=row.subject,
        body=row.body,
        html_body=row.html_body,
        status=row.status,
        retry_count=int(row.retry_count or 0),
        max_retries=int(row.max_retries),
        last_error=row.last_error,
        scheduled_at=row.scheduled_at,
        sent_at=row.sent_at,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


class SqlEmailQueueRepository:
    def __init__(self, db: Session, clock: Clock | None = None) -> None:
        self.db = db
        self.clock = clock or SystemClock()

    @contextmanager
    def _unit(self, action: str) -> Iterator[None]:
        # Any failure rolls back so row locks taken inside are released
        try:
            yield
        except RailclubError:
            self.db.rollback()
            raise
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error("email_queue: failed to %s: %s", action, e)
            raise StoreError(f"Failed to {action}") from e

    def _row(self, email_id: int, *, lock: bool = False) -> EmailQueueItem:
        q = self.db.query(EmailQueueItem).filter(EmailQueueItem.id == int(email_id))
        if lock:
            q = q.with_for_update()
        row = q.first()
        if not row:
            raise NotFoundError("Email not found")
        return row

    def create(self, new: NewEmail) -> EmailMessage:
        now = self.clock.now()
        row = EmailQueueItem(
            recipient_email=new.recipient_email,
            subject=new.subject,
            body=new.body,
            html_body=new.html_body,
            status=STATUS_PENDING,
            retry_count=0,
            max_retries=int(new.max_retries),
            scheduled_at=new.scheduled_at,
            created_at=now,
            updated_at=now,
        )
        try:
            self.db.add(row)
            self.db.commit()
            self.db.refresh(row)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error("email_queue: insert rejected: %s", e)
            raise CreationError("Failed to create email") from e
        return _to_message(row)

    def get(self, email_id: int) -> EmailMessage:
        with self._unit("load email"):
            return _to_message(self._row(email_id))

    def list(
        self,
        status: str | None = None,
        limit: int = 50,
        offset: int = 0,
        order: str = "desc",
    ) -> list[EmailMessage]:
        with self._unit("list emails"):
            q = self.db.query(EmailQueueItem)
            if status:
                q = q.filter(EmailQueueItem.status == status)
            if order == "asc":
                q = q.order_by(EmailQueueItem.created_at.asc(), EmailQueueItem.id.asc())
            else:
                q = q.order_by(EmailQueueItem.created_at.desc(), EmailQueueItem.id.desc())
            rows = q.offset(int(offset)).limit(int(limit)).all()
            return [_to_message(r) for r in rows]

    def update(self, email_id: int, fields: dict[str, Any]) -> EmailMessage:
        _check_fields(fields)
        with self._unit("update email"):
            row = self._row(email_id)
            for key, value in fields.items():
                setattr(row, key, value)
            row.updated_at = self.clock.now()
            self.db.commit()
            self.db.refresh(row)
            return _to_message(row)

    def delete(self, email_id: int) -> int:
        with self._unit("delete email"):
            row = self._row(email_id)
            deleted_id = int(row.id)
            self.db.delete(row)
            self.db.commit()
            return deleted_id

    def get_pending(self, limit: int = 10) -> list[EmailMessage]:
        return self.list(status=STATUS_PENDING, limit=limit, offset=0, order="asc")

    def get_failed(self, limit: int = 10) -> list[EmailMessage]:
        with self._unit("list failed emails"):
            rows = (
                self.db.query(EmailQueueItem)
                .filter(EmailQueueItem.status == STATUS_FAILED)
                .order_by(EmailQueueItem.updated_at.desc(), EmailQueueItem.id.desc())
                .limit(int(limit))
                .all()
            )
            return [_to_message(r) for r in rows]

    def count_by_status(self) -> dict[str, int]:
        with self._unit("count emails"):
            rows = (
                self.db.query(EmailQueueItem.status, func.count(EmailQueueItem.id))
                .group_by(EmailQueueItem.status)
                .all()
            )
        counts = {s: 0 for s in STATUSES}
        for status, n in rows:
            counts[status] = int(n)
        return counts

    def modify(self, email_id: int, change: Callable[[EmailMessage], dict[str, Any]]) -> EmailMessage:
        """
        Read-decide-write under a row lock (SELECT ... FOR UPDATE where supported),
        so concurrent failure reports cannot lose an increment.
        """
        with self._unit("update email"):
            row = self._row(email_id, lock=True)
            fields = change(_to_message(row))
            _check_fields(fields)
            for key, value in fields.items():
                setattr(row, key, value)
            row.updated_at = self.clock.now()
            self.db.commit()
            self.db.refresh(row)
            return _to_message(row)

    def reset(self, email_ids: list[int]) -> list[EmailMessage]:
        if not email_ids:
            return []
        with self._unit("reset emails"):
            rows = (
                self.db.query(EmailQueueItem)
                .filter(EmailQueueItem.id.in_([int(i) for i in email_ids]))
                .filter(EmailQueueItem.status == STATUS_FAILED)
                .order_by(EmailQueueItem.id.asc())
                .with_for_update()
                .all()
            )
            now = self.clock.now()
            for row in rows:
                row.status = STATUS_PENDING
                row.retry_count = 0
                row.last_error = None
                row.updated_at = now
            self.db.commit()
            return [_to_message(r) for r in rows]

    def claim(self, limit: int = 10) -> list[EmailMessage]:
        with self._unit("claim emails"):
            # SKIP LOCKED lets concurrent claimers take disjoint rows (no-op on SQLite)
            candidates = [
                i
                for (i,) in self.db.query(EmailQueueItem.id)
                .filter(EmailQueueItem.status == STATUS_PENDING)
                .order_by(EmailQueueItem.created_at.asc(), EmailQueueItem.id.asc())
                .limit(int(limit))
                .with_for_update(skip_locked=True)
                .all()
            ]

            now = self.clock.now()
            claimed: list[int] = []
            for email_id in candidates:
                moved = (
                    self.db.query(EmailQueueItem)
                    .filter(EmailQueueItem.id == email_id, EmailQueueItem.status == STATUS_PENDING)
                    .update(
                        {EmailQueueItem.status: STATUS_IN_PROGRESS, EmailQueueItem.updated_at: now},
                        synchronize_session=False,
                    )
                )
                if moved:
                    claimed.append(email_id)
            self.db.commit()

            if not claimed:
                return []
            rows = (
                self.db.query(EmailQueueItem)
                .filter(EmailQueueItem.id.in_(claimed))
                .order_by(EmailQueueItem.created_at.asc(), EmailQueueItem.id.asc())
                .all()
            )
            return [_to_message(r) for r in rows]

    def release_claims(self, older_than: datetime) -> list[EmailMessage]:
        with self._unit("release claims"):
            rows = (
                self.db.query(EmailQueueItem)
                .filter(EmailQueueItem.status == STATUS_IN_PROGRESS)
                .filter(EmailQueueItem.updated_at < older_than)
                .order_by(EmailQueueItem.id.asc())
                .with_for_update()
                .all()
            )
            now = self.clock.now()
            for row in rows:
                row.status = STATUS_PENDING
                row.updated_at = now
            self.db.commit()
            return [_to_message(r) for r in rows]


class InMemoryEmailQueueRepository:
    """Dict-backed outbox for tests and local tooling. Thread-safe."""

    def __init__(self, clock: Clock | None = None) -> None:
        self.clock = clock or SystemClock()
        self._rows: dict[int, EmailMessage] = {}
        self._next_id = 1
        self._lock = threading.Lock()

    def _require(self, email_id: int) -> EmailMessage:
        msg = self._rows.get(int(email_id))
        if msg is None:
            raise NotFoundError("Email not found")
        return msg

    def _store(self, msg: EmailMessage, fields: dict[str, Any]) -> EmailMessage:
        updated = replace(msg, **fields, updated_at=self.clock.now())
        self._rows[updated.id] = updated
        return updated

    def create(self, new: NewEmail) -> EmailMessage:
        with self._lock:
            now = self.clock.now()
            msg = EmailMessage(
                id=self._next_id,
                recipient_email=new.recipient_email,
                subject=new.subject,
                body=new.body,
                html_body=new.html_body,
                status=STATUS_PENDING,
                retry_count=0,
                max_retries=int(new.max_retries),
                last_error=None,
                scheduled_at=new.scheduled_at,
                sent_at=None,
                created_at=now,
                updated_at=now,
            )
            self._rows[msg.id] = msg
            self._next_id += 1
            return msg

    def get(self, email_id: int) -> EmailMessage:
        with self._lock:
            return self._require(email_id)

    def list(
        self,
        status: str | None = None,
        limit: int = 50,
        offset: int = 0,
        order: str = "desc",
    ) -> list[EmailMessage]:
        with self._lock:
            rows = [m for m in self._rows.values() if not status or m.status == status]
        rows.sort(key=lambda m: (m.created_at, m.id), reverse=(order != "asc"))
        return rows[int(offset): int(offset) + int(limit)]

    def update(self, email_id: int, fields: dict[str, Any]) -> EmailMessage:
        _check_fields(fields)
        with self._lock:
            return self._store(self._require(email_id), fields)

    def delete(self, email_id: int) -> int:
        with self._lock:
            msg = self._require(email_id)
            del self._rows[msg.id]
            return msg.id

    def get_pending(self, limit: int = 10) -> list[EmailMessage]:
        return self.list(status=STATUS_PENDING, limit=limit, offset=0, order="asc")

    def get_failed(self, limit: int = 10) -> list[EmailMessage]:
        with self._lock:
            rows = [m for m in self._rows.values() if m.status == STATUS_FAILED]
        rows.sort(key=lambda m: (m.updated_at, m.id), reverse=True)
        return rows[: int(limit)]

    def count_by_status(self) -> dict[str, int]:
        counts = {s: 0 for s in STATUSES}
        with self._lock:
            for m in self._rows.values():
                counts[m.status] = counts.get(m.status, 0) + 1
        return counts

    def modify(self, email_id: int, change: Callable[[EmailMessage], dict[str, Any]]) -> EmailMessage:
        with self._lock:
            msg = self._require(email_id)
            fields = change(msg)
            _check_fields(fields)
            return self._store(msg, fields)

    def reset(self, email_ids: list[int]) -> list[EmailMessage]:
        out: list[EmailMessage] = []
        with self._lock:
            for email_id in sorted({int(i) for i in email_ids}):
                msg = self._rows.get(email_id)
                if msg is None or msg.status != STATUS_FAILED:
                    continue
                out.append(self._store(msg, {"status": STATUS_PENDING, "retry_count": 0, "last_error": None}))
        return out

    def claim(self, limit: int = 10) -> list[EmailMessage]:
        with self._lock:
            pending = sorted(
                (m for m in self._rows.values() if m.status == STATUS_PENDING),
                key=lambda m: (m.created_at, m.id),
            )
            return [self._store(m, {"status": STATUS_IN_PROGRESS}) for m in pending[: int(limit)]]

    def release_claims(self, older_than: datetime) -> list[EmailMessage]:
        with self._lock:
            stale = sorted(
                (m for m in self._rows.values() if m.status == STATUS_IN_PROGRESS and m.updated_at < older_than),
                key=lambda m: m.id,
            )
            return [self._store(m, {"status": STATUS_PENDING}) for m in stale]
