# railclub/routes/scheduled_sessions.py
from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel
from sqlalchemy.orm import Session

from railclub.clock import to_naive_utc
from railclub.database import get_db
from railclub.models.club import Club
from railclub.models.scheduled_session import ScheduledSession
from railclub.routes.access import require_club_member
from railclub.routes.envelope import iso

router = APIRouter(prefix="/api/clubs/{club_id}/scheduled-sessions", tags=["scheduled-sessions"])


class SessionCreate(BaseModel):
    schedule: datetime
    description: str | None = None


class SessionUpdate(BaseModel):
    schedule: datetime | None = None
    description: str | None = None


def _to_dict(s: ScheduledSession) -> dict:
    return {
        "id": s.id,
        "schedule": iso(s.schedule),
        "club_id": s.club_id,
        "description": s.description,
    }


def get_club_session(db: Session, club_id: int, session_id: int) -> ScheduledSession:
    s = (
        db.query(ScheduledSession)
        .filter(ScheduledSession.id == int(session_id), ScheduledSession.club_id == int(club_id))
        .first()
    )
    if not s:
        raise HTTPException(status_code=404, detail="Scheduled session not found")
    return s


@router.get("/")
def list_sessions(
    start: datetime | None = Query(default=None),
    end: datetime | None = Query(default=None),
    club: Club = Depends(require_club_member),
    db: Session = Depends(get_db),
) -> dict:
    start, end = to_naive_utc(start), to_naive_utc(end)
    if start and end and start > end:
        raise HTTPException(status_code=400, detail="start must not be after end")

    q = db.query(ScheduledSession).filter(ScheduledSession.club_id == club.id)
    # Inclusive on both ends
    if start:
        q = q.filter(ScheduledSession.schedule >= start)
    if end:
        q = q.filter(ScheduledSession.schedule <= end)
    rows = q.order_by(ScheduledSession.schedule.asc(), ScheduledSession.id.asc()).all()
    return {"data": [_to_dict(s) for s in rows]}


@router.get("/{session_id}")
def get_session(session_id: int, club: Club = Depends(require_club_member), db: Session = Depends(get_db)) -> dict:
    return {"data": _to_dict(get_club_session(db, club.id, session_id))}


@router.post("/", status_code=201)
def create_session(
    payload: SessionCreate,
    club: Club = Depends(require_club_member),
    db: Session = Depends(get_db),
) -> dict:
    s = ScheduledSession(
        schedule=to_naive_utc(payload.schedule),
        club_id=club.id,
        description=payload.description,
    )
    db.add(s)
    db.commit()
    db.refresh(s)
    return {"data": _to_dict(s)}


@router.put("/{session_id}")
def update_session(
    session_id: int,
    payload: SessionUpdate,
    club: Club = Depends(require_club_member),
    db: Session = Depends(get_db),
) -> dict:
    fields = payload.model_dump(exclude_unset=True)
    if not fields:
        raise HTTPException(status_code=400, detail="No fields to update")
    s = get_club_session(db, club.id, session_id)
    if fields.get("schedule") is not None:
        s.schedule = to_naive_utc(fields["schedule"])
    if "description" in fields:
        s.description = fields["description"]
    db.commit()
    db.refresh(s)
    return {"data": _to_dict(s)}


@router.delete("/{session_id}")
def delete_session(session_id: int, club: Club = Depends(require_club_member), db: Session = Depends(get_db)) -> dict:
    s = get_club_session(db, club.id, session_id)
    db.delete(s)
    db.commit()
    return {"data": {"id": session_id}}
