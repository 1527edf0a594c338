# railclub/routes/invite_tokens.py
from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from railclub.clock import to_naive_utc
from railclub.database import get_db
from railclub.models.invite_token import InviteToken
from railclub.models.user import User
from railclub.routes.access import get_club_or_404, require_admin
from railclub.routes.envelope import iso
from railclub.services.invite_tokens import (
    create_invite_token,
    delete_invite_token,
    list_active_tokens,
)

router = APIRouter(prefix="/api/clubs/{club_id}/invite-tokens", tags=["invite-tokens"])


class InviteTokenCreate(BaseModel):
    expires_in_days: int | None = Field(default=None, ge=1, le=365)
    expires_at: datetime | None = None
    role_permission: int | None = None


def _to_dict(t: InviteToken) -> dict:
    return {
        "id": t.id,
        "token": t.token,
        "club_id": t.club_id,
        "role_permission": t.role_permission,
        "expires_at": iso(t.expires_at),
        "created_at": iso(t.created_at),
    }


@router.post("/", status_code=201)
def create_token(
    club_id: int,
    payload: InviteTokenCreate | None = None,
    db: Session = Depends(get_db),
    _admin: User = Depends(require_admin),
) -> dict:
    payload = payload or InviteTokenCreate()
    get_club_or_404(db, club_id)
    tok = create_invite_token(
        db,
        club_id=club_id,
        role_permission=payload.role_permission,
        expires_in_days=payload.expires_in_days,
        expires_at=to_naive_utc(payload.expires_at),
    )
    return {"data": _to_dict(tok)}


@router.get("/")
def list_tokens(
    club_id: int,
    db: Session = Depends(get_db),
    _admin: User = Depends(require_admin),
) -> dict:
    get_club_or_404(db, club_id)
    return {"data": [_to_dict(t) for t in list_active_tokens(db, club_id)]}


@router.delete("/{token}")
def delete_token(
    club_id: int,
    token: str,
    db: Session = Depends(get_db),
    _admin: User = Depends(require_admin),
) -> dict:
    delete_invite_token(db, club_id=club_id, token=token)
    return {"data": {"token": token}}
