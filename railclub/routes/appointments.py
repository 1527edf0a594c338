# railclub/routes/appointments.py
from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends, Header, HTTPException
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from railclub.clock import to_naive_utc
from railclub.database import get_db
from railclub.models.appointment import Appointment
from railclub.models.club import Club
from railclub.models.scheduled_session import ScheduledSession
from railclub.models.user import User
from railclub.routes.access import is_admin, require_club_member
from railclub.routes.auth import get_current_user
from railclub.routes.envelope import iso
from railclub.services.memberships import is_member

router = APIRouter(prefix="/api/appointments", tags=["appointments"])

club_router = APIRouter(prefix="/api/clubs/{club_id}/appointments", tags=["appointments"])


class AppointmentCreate(BaseModel):
    schedule: datetime
    duration: int = Field(gt=0, le=24 * 60)  # minutes
    scheduled_session_id: int | None = None


class AppointmentUpdate(BaseModel):
    schedule: datetime | None = None
    duration: int | None = Field(default=None, gt=0, le=24 * 60)
    scheduled_session_id: int | None = None


def _to_dict(a: Appointment) -> dict:
    return {
        "id": a.id,
        "schedule": iso(a.schedule),
        "duration": a.duration,
        "user_id": a.user_id,
        "scheduled_session_id": a.scheduled_session_id,
    }


def _check_session_access(db: Session, session_id: int, user: User, admin: bool) -> None:
    s = db.query(ScheduledSession).filter(ScheduledSession.id == int(session_id)).first()
    if not s:
        raise HTTPException(status_code=404, detail="Scheduled session not found")
    if not admin and not is_member(db, user_id=user.id, club_id=s.club_id):
        raise HTTPException(status_code=403, detail="User does not belong to this club")


def _get_owned(db: Session, appointment_id: int, user: User, admin: bool) -> Appointment:
    q = db.query(Appointment).filter(Appointment.id == int(appointment_id))
    if not admin:
        q = q.filter(Appointment.user_id == user.id)
    a = q.first()
    if not a:
        raise HTTPException(status_code=404, detail="Appointment not found")
    return a


@router.get("/")
def list_appointments(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    x_admin_key: str | None = Header(default=None, alias="X-Admin-Key"),
) -> dict:
    q = db.query(Appointment)
    if not is_admin(current_user, x_admin_key):
        q = q.filter(Appointment.user_id == current_user.id)
    rows = q.order_by(Appointment.schedule.asc(), Appointment.id.asc()).all()
    return {"data": [_to_dict(a) for a in rows]}


@router.post("/", status_code=201)
def create_appointment(
    payload: AppointmentCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    x_admin_key: str | None = Header(default=None, alias="X-Admin-Key"),
) -> dict:
    if payload.scheduled_session_id is not None:
        _check_session_access(db, payload.scheduled_session_id, current_user, is_admin(current_user, x_admin_key))

    a = Appointment(
        schedule=to_naive_utc(payload.schedule),
        duration=payload.duration,
        user_id=current_user.id,
        scheduled_session_id=payload.scheduled_session_id,
    )
    db.add(a)
    db.commit()
    db.refresh(a)
    return {"data": _to_dict(a)}


@router.put("/{appointment_id}")
def update_appointment(
    appointment_id: int,
    payload: AppointmentUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    x_admin_key: str | None = Header(default=None, alias="X-Admin-Key"),
) -> dict:
    admin = is_admin(current_user, x_admin_key)
    fields = payload.model_dump(exclude_unset=True)
    if not fields:
        raise HTTPException(status_code=400, detail="No fields to update")

    a = _get_owned(db, appointment_id, current_user, admin)
    if fields.get("schedule") is not None:
        a.schedule = to_naive_utc(fields["schedule"])
    if fields.get("duration") is not None:
        a.duration = fields["duration"]
    if "scheduled_session_id" in fields:
        if fields["scheduled_session_id"] is not None:
            _check_session_access(db, fields["scheduled_session_id"], current_user, admin)
        a.scheduled_session_id = fields["scheduled_session_id"]

    db.commit()
    db.refresh(a)
    return {"data": _to_dict(a)}


@router.delete("/{appointment_id}")
def delete_appointment(
    appointment_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    x_admin_key: str | None = Header(default=None, alias="X-Admin-Key"),
) -> dict:
    a = _get_owned(db, appointment_id, current_user, is_admin(current_user, x_admin_key))
    db.delete(a)
    db.commit()
    return {"data": {"id": appointment_id}}


@club_router.get("/")
def list_club_appointments(club: Club = Depends(require_club_member), db: Session = Depends(get_db)) -> dict:
    rows = (
        db.query(Appointment)
        .join(ScheduledSession, ScheduledSession.id == Appointment.scheduled_session_id)
        .filter(ScheduledSession.club_id == club.id)
        .order_by(Appointment.schedule.asc(), Appointment.id.asc())
        .all()
    )
    return {"data": [_to_dict(a) for a in rows]}
