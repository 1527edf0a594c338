# railclub/routes/notices.py
from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends, Header, HTTPException, Query
from fastapi.security import HTTPAuthorizationCredentials
from pydantic import BaseModel, Field
from sqlalchemy import or_
from sqlalchemy.orm import Session

from railclub.clock import to_naive_utc, utc_now_naive
from railclub.database import get_db
from railclub.models.club import Club
from railclub.models.notice import Notice
from railclub.routes.access import get_club_or_404, require_club_member
from railclub.routes.auth import bearer_scheme, get_current_session, get_current_user
from railclub.routes.envelope import iso

router = APIRouter(prefix="/api/clubs/{club_id}/notices", tags=["notices"])


class NoticeCreate(BaseModel):
    description: str = Field(min_length=1)
    type: str | None = Field(default=None, max_length=32)
    is_public: bool = False
    expires_at: datetime | None = None


class NoticeUpdate(BaseModel):
    description: str | None = Field(default=None, min_length=1)
    type: str | None = Field(default=None, max_length=32)
    is_public: bool | None = None
    expires_at: datetime | None = None


def _to_dict(n: Notice) -> dict:
    return {
        "id": n.id,
        "club_id": n.club_id,
        "description": n.description,
        "type": n.type,
        "is_public": bool(n.is_public),
        "expires_at": iso(n.expires_at),
        "created_at": iso(n.created_at),
        "updated_at": iso(n.updated_at),
    }


def _get_notice(db: Session, club_id: int, notice_id: int) -> Notice:
    n = db.query(Notice).filter(Notice.id == int(notice_id), Notice.club_id == int(club_id)).first()
    if not n:
        raise HTTPException(status_code=404, detail="Notice not found")
    return n


@router.get("/")
def list_notices(
    club_id: int,
    public: bool = Query(default=False),
    db: Session = Depends(get_db),
    creds: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    x_admin_key: str | None = Header(default=None, alias="X-Admin-Key"),
) -> dict:
    if public:
        # Landing-page view: no session needed
        club = get_club_or_404(db, club_id)
        now = utc_now_naive()
        rows = (
            db.query(Notice)
            .filter(Notice.club_id == club.id, Notice.is_public.is_(True))
            .filter(or_(Notice.expires_at.is_(None), Notice.expires_at > now))
            .order_by(Notice.created_at.desc(), Notice.id.desc())
            .all()
        )
        return {"data": [_to_dict(n) for n in rows]}

    user = get_current_user(get_current_session(creds, db), db)
    club = require_club_member(club_id, db, user, x_admin_key)
    rows = (
        db.query(Notice)
        .filter(Notice.club_id == club.id)
        .order_by(Notice.created_at.desc(), Notice.id.desc())
        .all()
    )
    return {"data": [_to_dict(n) for n in rows]}


@router.get("/{notice_id}")
def get_notice(notice_id: int, club: Club = Depends(require_club_member), db: Session = Depends(get_db)) -> dict:
    return {"data": _to_dict(_get_notice(db, club.id, notice_id))}


@router.post("/", status_code=201)
def create_notice(
    payload: NoticeCreate,
    club: Club = Depends(require_club_member),
    db: Session = Depends(get_db),
) -> dict:
    now = utc_now_naive()
    n = Notice(
        club_id=club.id,
        description=payload.description,
        type=payload.type,
        is_public=payload.is_public,
        expires_at=to_naive_utc(payload.expires_at),
        created_at=now,
        updated_at=now,
    )
    db.add(n)
    db.commit()
    db.refresh(n)
    return {"data": _to_dict(n)}


@router.put("/{notice_id}")
def update_notice(
    notice_id: int,
    payload: NoticeUpdate,
    club: Club = Depends(require_club_member),
    db: Session = Depends(get_db),
) -> dict:
    fields = payload.model_dump(exclude_unset=True)
    if not fields:
        raise HTTPException(status_code=400, detail="No fields to update")
    n = _get_notice(db, club.id, notice_id)
    for key in ("description", "is_public"):
        if fields.get(key) is not None:
            setattr(n, key, fields[key])
    if "type" in fields:
        n.type = fields["type"]
    if "expires_at" in fields:
        n.expires_at = to_naive_utc(fields["expires_at"])
    n.updated_at = utc_now_naive()
    db.commit()
    db.refresh(n)
    return {"data": _to_dict(n)}


@router.delete("/{notice_id}")
def delete_notice(notice_id: int, club: Club = Depends(require_club_member), db: Session = Depends(get_db)) -> dict:
    n = _get_notice(db, club.id, notice_id)
    db.delete(n)
    db.commit()
    return {"data": {"id": notice_id}}
