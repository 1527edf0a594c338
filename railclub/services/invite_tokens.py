# railclub/services/invite_tokens.py
from __future__ import annotations

import secrets
from datetime import datetime, timedelta

from sqlalchemy.orm import Session

from railclub import config
from railclub.clock import utc_now_naive
from railclub.errors import NotFoundError, ValidationError
from railclub.models.invite_token import InviteToken


def create_invite_token(
    db: Session,
    *,
    club_id: int,
    role_permission: int | None = None,
    expires_in_days: int | None = None,
    expires_at: datetime | None = None,
    now: datetime | None = None,
) -> InviteToken:
    now = now or utc_now_naive()
    if expires_at is None:
        days = config.INVITE_TOKEN_DAYS if expires_in_days is None else int(expires_in_days)
        if days < 1:
            raise ValidationError("expires_in_days must be at least 1")
        expires_at = now + timedelta(days=days)
    elif expires_at <= now:
        raise ValidationError("expires_at must be in the future")

    tok = InviteToken(
        token=secrets.token_urlsafe(24),
        club_id=int(club_id),
        role_permission=role_permission,
        expires_at=expires_at,
        created_at=now,
    )
    db.add(tok)
    db.commit()
    db.refresh(tok)
    return tok


def validate_invite_token(db: Session, token: str | None, *, now: datetime | None = None) -> InviteToken:
    if not token:
        raise ValidationError("Invite token is required")
    tok = db.query(InviteToken).filter(InviteToken.token == token).first()
    if not tok:
        raise ValidationError("Invalid invite token")
    if tok.expires_at <= (now or utc_now_naive()):
        raise ValidationError("Invite token has expired")
    return tok


def list_active_tokens(db: Session, club_id: int, *, now: datetime | None = None) -> list[InviteToken]:
    return (
        db.query(InviteToken)
        .filter(InviteToken.club_id == int(club_id), InviteToken.expires_at > (now or utc_now_naive()))
        .order_by(InviteToken.created_at.desc(), InviteToken.id.desc())
        .all()
    )


def delete_invite_token(db: Session, *, club_id: int, token: str) -> None:
    tok = (
        db.query(InviteToken)
        .filter(InviteToken.club_id == int(club_id), InviteToken.token == token)
        .first()
    )
    if not tok:
        raise NotFoundError("Invite token not found")
    db.delete(tok)
    db.commit()
