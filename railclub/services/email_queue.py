# railclub/services/email_queue.py
from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Any, Callable

from railclub import config
from railclub.clock import Clock, SystemClock, to_naive_utc
from railclub.errors import RailclubError, Result, ValidationError
from railclub.services.email_queue_store import (
    STATUS_FAILED,
    STATUS_IN_PROGRESS,
    STATUS_PENDING,
    STATUS_SENT,
    STATUSES,
    EmailMessage,
    EmailQueueRepository,
    NewEmail,
)

logger = logging.getLogger(__name__)

# How far back retry_all_recoverable looks
RECOVERY_SCAN_LIMIT = 1000

DEFAULT_STALE_CLAIM_SECONDS = 900


def _require_limit(limit: int) -> int:
    if int(limit) < 1:
        raise ValidationError("limit must be at least 1")
    return int(limit)


class EmailQueueService:
    """
    Outbox state machine on top of an EmailQueueRepository.

        pending -> sent                     (delivery reported)
        pending -> pending, retry_count+1   (failure, retries left)
        pending -> failed                   (failure, retries exhausted)
        pending -> in_progress -> ...       (claimed by a sender)

    Every public method returns a Result; repository errors come back as
    Result.error instead of propagating.
    """

    def __init__(self, repository: EmailQueueRepository, clock: Clock | None = None) -> None:
        self.repository = repository
        self.clock = clock or SystemClock()

    def _run(self, fn: Callable[[], Any]) -> Result:
        try:
            return Result.success(fn())
        except RailclubError as e:
            return Result.failure(e)

    # ---- CRUD ----

    def create_email(
        self,
        *,
        recipient_email: str | None,
        subject: str | None,
        body: str | None,
        html_body: str | None = None,
        max_retries: int | None = None,
        scheduled_at: datetime | None = None,
    ) -> Result[EmailMessage]:
        def _create() -> EmailMessage:
            if not recipient_email or not subject or not body:
                raise ValidationError("Missing required fields: recipient_email, subject, body")

            retries = config.EMAIL_QUEUE_DEFAULT_MAX_RETRIES if max_retries is None else int(max_retries)
            if retries < 1:
                raise ValidationError("max_retries must be at least 1")

            msg = self.repository.create(
                NewEmail(
                    recipient_email=recipient_email,
                    subject=subject,
                    body=body,
                    html_body=html_body,
                    max_retries=retries,
                    scheduled_at=to_naive_utc(scheduled_at),
                )
            )
            logger.info("email_queue: queued email %s (max_retries=%s)", msg.id, msg.max_retries)
            return msg

        return self._run(_create)

    def get_email(self, email_id: int) -> Result[EmailMessage]:
        return self._run(lambda: self.repository.get(email_id))

    def list_emails(
        self,
        *,
        status: str | None = None,
        limit: int = 50,
        offset: int = 0,
        order: str = "desc",
    ) -> Result[list[EmailMessage]]:
        def _list() -> list[EmailMessage]:
            if status and status not in STATUSES:
                raise ValidationError(f"Invalid status: {status}")
            if order not in ("asc", "desc"):
                raise ValidationError("order must be 'asc' or 'desc'")
            if int(offset) < 0:
                raise ValidationError("offset must be non-negative")
            return self.repository.list(status=status, limit=_require_limit(limit), offset=offset, order=order)

        return self._run(_list)

    def update_email(self, email_id: int, fields: dict[str, Any]) -> Result[EmailMessage]:
        """Raw field update. Does not enforce the state machine."""

        def _update() -> EmailMessage:
            if not fields:
                raise ValidationError("No fields to update")
            if "status" in fields and fields["status"] not in STATUSES:
                raise ValidationError(f"Invalid status: {fields['status']}")
            if "retry_count" in fields:
                retry_count = fields["retry_count"]
                if not isinstance(retry_count, int) or isinstance(retry_count, bool) or retry_count < 0:
                    raise ValidationError("retry_count must be a non-negative integer")
            if "sent_at" in fields and not (fields["sent_at"] is None or isinstance(fields["sent_at"], datetime)):
                raise ValidationError("sent_at must be a timestamp")

            clean = dict(fields)
            if "sent_at" in clean:
                clean["sent_at"] = to_naive_utc(clean["sent_at"])
            return self.repository.update(email_id, clean)

        return self._run(_update)

    def delete_email(self, email_id: int) -> Result[int]:
        def _delete() -> int:
            deleted = self.repository.delete(email_id)
            logger.info("email_queue: deleted email %s", deleted)
            return deleted

        return self._run(_delete)

    # ---- sender workflow ----

    def get_next_batch(self, limit: int = 10) -> Result[list[EmailMessage]]:
        return self._run(lambda: self.repository.get_pending(_require_limit(limit)))

    def get_failed_batch(self, limit: int = 10) -> Result[list[EmailMessage]]:
        return self._run(lambda: self.repository.get_failed(_require_limit(limit)))

    def claim_next_batch(self, limit: int = 10) -> Result[list[EmailMessage]]:
        def _claim() -> list[EmailMessage]:
            claimed = self.repository.claim(_require_limit(limit))
            if claimed:
                logger.info("email_queue: claimed %d email(s): %s", len(claimed), [m.id for m in claimed])
            return claimed

        return self._run(_claim)

    def mark_as_sent(self, email_id: int) -> Result[EmailMessage]:
        def _sent() -> EmailMessage:
            msg = self.repository.modify(email_id, lambda _msg: {"status": STATUS_SENT, "sent_at": self.clock.now()})
            logger.info("email_queue: email %s sent", msg.id)
            return msg

        return self._run(_sent)

    def mark_as_failed(self, email_id: int, error_message: str | None) -> Result[EmailMessage]:
        def _decide(msg: EmailMessage) -> dict[str, Any]:
            new_retry_count = msg.retry_count + 1
            should_retry = new_retry_count < msg.max_retries
            return {
                "status": STATUS_PENDING if should_retry else STATUS_FAILED,
                "retry_count": new_retry_count,
                "last_error": error_message,
            }

        def _failed() -> EmailMessage:
            if not error_message or not error_message.strip():
                raise ValidationError("Missing required field: error")

            msg = self.repository.modify(email_id, _decide)
            if msg.status == STATUS_FAILED:
                logger.warning(
                    "email_queue: email %s failed permanently after %d attempt(s): %s",
                    msg.id, msg.retry_count, error_message,
                )
            else:
                logger.info(
                    "email_queue: email %s failed (attempt %d/%d), retry scheduled: %s",
                    msg.id, msg.retry_count, msg.max_retries, error_message,
                )
            return msg

        return self._run(_failed)

    def retry_one(self, email_id: int) -> Result[EmailMessage]:
        def _retry() -> EmailMessage:
            msg = self.repository.update(
                email_id,
                {"status": STATUS_PENDING, "retry_count": 0, "last_error": None},
            )
            logger.info("email_queue: email %s reset for retry", msg.id)
            return msg

        return self._run(_retry)

    def retry_all_recoverable(self) -> Result[list[EmailMessage]]:
        """
        Reset failed emails that still have retries left.
        Emails with retry_count >= max_retries stay failed.
        """

        def _retry_all() -> list[EmailMessage]:
            failed = self.repository.get_failed(RECOVERY_SCAN_LIMIT)
            eligible = [m.id for m in failed if m.retry_count < m.max_retries]
            reset = self.repository.reset(eligible)
            logger.info(
                "email_queue: bulk retry reset %d of %d failed email(s)",
                len(reset), len(failed),
            )
            return reset

        return self._run(_retry_all)

    def release_stale_claims(self, max_age_seconds: int = DEFAULT_STALE_CLAIM_SECONDS) -> Result[list[EmailMessage]]:
        def _release() -> list[EmailMessage]:
            if int(max_age_seconds) < 0:
                raise ValidationError("max_age_seconds must be non-negative")
            cutoff = self.clock.now() - timedelta(seconds=int(max_age_seconds))
            released = self.repository.release_claims(cutoff)
            if released:
                logger.warning(
                    "email_queue: released %d stale claim(s): %s",
                    len(released), [m.id for m in released],
                )
            return released

        return self._run(_release)

    def get_queue_stats(self) -> Result[dict[str, int]]:
        def _stats() -> dict[str, int]:
            counts = self.repository.count_by_status()
            return {
                "pending_count": counts.get(STATUS_PENDING, 0),
                "sent_count": counts.get(STATUS_SENT, 0),
                "failed_count": counts.get(STATUS_FAILED, 0),
                "in_progress_count": counts.get(STATUS_IN_PROGRESS, 0),
            }

        return self._run(_stats)
