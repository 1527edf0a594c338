# railclub/routes/applications.py
from __future__ import annotations

import logging
from datetime import date

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from railclub.clock import utc_now_naive
from railclub.database import get_db
from railclub.models.application import Application
from railclub.models.club import Club
from railclub.routes.access import get_club_or_404, require_club_member
from railclub.routes.envelope import iso

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/clubs/{club_id}/applications", tags=["applications"])


class ApplicationForm(BaseModel):
    name: str | None = Field(default=None, max_length=120)
    email: str | None = Field(default=None, max_length=255)
    birthday: date | None = None
    occupation: str | None = Field(default=None, max_length=120)
    interested_scale: str | None = Field(default=None, max_length=32)
    special_interests: str | None = None
    has_home_layout: bool | None = None
    collection_size: str | None = Field(default=None, max_length=64)
    has_other_model_railroad_associations: bool | None = None
    will_agree_to_club_rules: bool | None = None


FORM_FIELDS = tuple(ApplicationForm.model_fields)


def _to_dict(a: Application) -> dict:
    d = {"id": a.id, "club_id": a.club_id}
    for key in FORM_FIELDS:
        d[key] = getattr(a, key)
    d["birthday"] = iso(a.birthday)
    d["created_at"] = iso(a.created_at)
    d["updated_at"] = iso(a.updated_at)
    return d


def _get_application(db: Session, club_id: int, application_id: int) -> Application:
    a = (
        db.query(Application)
        .filter(Application.id == int(application_id), Application.club_id == int(club_id))
        .first()
    )
    if not a:
        raise HTTPException(status_code=404, detail="Application not found")
    return a


@router.post("/", status_code=201)
def submit_application(club_id: int, payload: ApplicationForm, db: Session = Depends(get_db)) -> dict:
    # Public form: prospective members have no account yet
    club = get_club_or_404(db, club_id)
    now = utc_now_naive()
    a = Application(club_id=club.id, created_at=now, updated_at=now, **payload.model_dump())
    db.add(a)
    db.commit()
    db.refresh(a)
    logger.info("applications: new application %s for club %s", a.id, club.id)
    return {"data": _to_dict(a)}


@router.get("/")
def list_applications(club: Club = Depends(require_club_member), db: Session = Depends(get_db)) -> dict:
    rows = (
        db.query(Application)
        .filter(Application.club_id == club.id)
        .order_by(Application.created_at.desc(), Application.id.desc())
        .all()
    )
    return {"data": [_to_dict(a) for a in rows]}


@router.get("/{application_id}")
def get_application(
    application_id: int,
    club: Club = Depends(require_club_member),
    db: Session = Depends(get_db),
) -> dict:
    return {"data": _to_dict(_get_application(db, club.id, application_id))}


@router.put("/{application_id}")
def update_application(
    application_id: int,
    payload: ApplicationForm,
    club: Club = Depends(require_club_member),
    db: Session = Depends(get_db),
) -> dict:
    fields = payload.model_dump(exclude_unset=True)
    if not fields:
        raise HTTPException(status_code=400, detail="No fields to update")
    a = _get_application(db, club.id, application_id)
    for key, value in fields.items():
        setattr(a, key, value)
    a.updated_at = utc_now_naive()
    db.commit()
    db.refresh(a)
    return {"data": _to_dict(a)}


@router.delete("/{application_id}")
def delete_application(
    application_id: int,
    club: Club = Depends(require_club_member),
    db: Session = Depends(get_db),
) -> dict:
    a = _get_application(db, club.id, application_id)
    db.delete(a)
    db.commit()
    return {"data": {"id": application_id}}
