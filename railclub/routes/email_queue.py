# railclub/routes/email_queue.py
from __future__ import annotations

import logging
import secrets
from datetime import datetime

from fastapi import APIRouter, Depends, Header, HTTPException, Query
from pydantic import BaseModel, ConfigDict
from sqlalchemy.orm import Session

from railclub import config
from railclub.database import get_db
from railclub.routes.auth import get_current_user
from railclub.routes.envelope import unwrap
from railclub.services.email_queue import DEFAULT_STALE_CLAIM_SECONDS, EmailQueueService
from railclub.services.email_queue_store import SqlEmailQueueRepository

logger = logging.getLogger(__name__)


def require_api_key(x_api_key: str | None = Header(default=None, alias="X-API-Key")) -> None:
    expected = config.EMAIL_QUEUE_API_KEY
    if not expected:
        logger.error("email_queue: EMAIL_QUEUE_API_KEY is not configured")
        raise HTTPException(status_code=503, detail="Email queue is not configured")
    if not x_api_key or not secrets.compare_digest(x_api_key, expected):
        logger.info("email_queue: rejected request with missing or invalid API key")
        raise HTTPException(status_code=401, detail="Invalid API key")


router = APIRouter(
    prefix="/api/email-queue",
    tags=["email-queue"],
    dependencies=[Depends(require_api_key), Depends(get_current_user)],
)


def get_email_queue_service(db: Session = Depends(get_db)) -> EmailQueueService:
    return EmailQueueService(SqlEmailQueueRepository(db))


class EmailCreate(BaseModel):
    # Optional here so the service reports every missing field at once
    recipient_email: str | None = None
    subject: str | None = None
    body: str | None = None
    html_body: str | None = None
    max_retries: int | None = None
    scheduled_at: datetime | None = None


class EmailUpdate(BaseModel):
    # Payload, max_retries and scheduled_at are fixed once queued
    model_config = ConfigDict(extra="forbid")

    status: str | None = None
    retry_count: int | None = None
    last_error: str | None = None
    sent_at: datetime | None = None


class FailureReport(BaseModel):
    error: str | None = None


def _parse_id(email_id: str) -> int:
    try:
        value = int(email_id)
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid email ID")
    if value < 1:
        raise HTTPException(status_code=400, detail="Invalid email ID")
    return value


def _many(result) -> dict:
    return {"data": [m.to_dict() for m in unwrap(result)]}


@router.post("/", status_code=201)
def create_email(payload: EmailCreate, svc: EmailQueueService = Depends(get_email_queue_service)) -> dict:
    msg = unwrap(svc.create_email(**payload.model_dump()))
    return {"data": msg.to_dict()}


@router.get("/")
def list_emails(
    status: str | None = Query(default=None),
    limit: int = Query(default=50, ge=1, le=1000),
    offset: int = Query(default=0, ge=0),
    order: str = Query(default="desc"),
    svc: EmailQueueService = Depends(get_email_queue_service),
) -> dict:
    return _many(svc.list_emails(status=status, limit=limit, offset=offset, order=order))


@router.get("/pending/list")
def pending_emails(
    limit: int = Query(default=10, ge=1, le=1000),
    svc: EmailQueueService = Depends(get_email_queue_service),
) -> dict:
    return _many(svc.get_next_batch(limit))


@router.get("/failed/list")
def failed_emails(
    limit: int = Query(default=10, ge=1, le=1000),
    svc: EmailQueueService = Depends(get_email_queue_service),
) -> dict:
    return _many(svc.get_failed_batch(limit))


@router.get("/stats")
def queue_stats(svc: EmailQueueService = Depends(get_email_queue_service)) -> dict:
    return {"data": unwrap(svc.get_queue_stats())}


@router.post("/claim")
def claim_emails(
    limit: int = Query(default=10, ge=1, le=1000),
    svc: EmailQueueService = Depends(get_email_queue_service),
) -> dict:
    return _many(svc.claim_next_batch(limit))


@router.post("/retry-failed")
def retry_failed(svc: EmailQueueService = Depends(get_email_queue_service)) -> dict:
    return _many(svc.retry_all_recoverable())


@router.post("/release-stale")
def release_stale(
    max_age_seconds: int = Query(default=DEFAULT_STALE_CLAIM_SECONDS, ge=0),
    svc: EmailQueueService = Depends(get_email_queue_service),
) -> dict:
    return _many(svc.release_stale_claims(max_age_seconds))


@router.get("/{email_id}")
def get_email(email_id: str, svc: EmailQueueService = Depends(get_email_queue_service)) -> dict:
    msg = unwrap(svc.get_email(_parse_id(email_id)))
    return {"data": msg.to_dict()}


@router.put("/{email_id}")
def update_email(
    email_id: str,
    payload: EmailUpdate,
    svc: EmailQueueService = Depends(get_email_queue_service),
) -> dict:
    msg = unwrap(svc.update_email(_parse_id(email_id), payload.model_dump(exclude_unset=True)))
    return {"data": msg.to_dict()}


@router.delete("/{email_id}")
def delete_email(email_id: str, svc: EmailQueueService = Depends(get_email_queue_service)) -> dict:
    deleted = unwrap(svc.delete_email(_parse_id(email_id)))
    return {"data": {"id": deleted}}


@router.post("/{email_id}/sent")
def mark_sent(email_id: str, svc: EmailQueueService = Depends(get_email_queue_service)) -> dict:
    msg = unwrap(svc.mark_as_sent(_parse_id(email_id)))
    return {"data": msg.to_dict()}


@router.post("/{email_id}/failed")
def mark_failed(
    email_id: str,
    payload: FailureReport | None = None,
    svc: EmailQueueService = Depends(get_email_queue_service),
) -> dict:
    error_message = payload.error if payload else None
    msg = unwrap(svc.mark_as_failed(_parse_id(email_id), error_message))
    return {"data": msg.to_dict()}


@router.post("/{email_id}/retry")
def retry_email(email_id: str, svc: EmailQueueService = Depends(get_email_queue_service)) -> dict:
    msg = unwrap(svc.retry_one(_parse_id(email_id)))
    return {"data": msg.to_dict()}
