# railclub/routes/tower_reports.py
from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel
from sqlalchemy.orm import Session

from railclub.clock import to_naive_utc, utc_now_naive
from railclub.database import get_db
from railclub.models.club import Club
from railclub.models.tower import Tower
from railclub.models.tower_report import TowerReport
from railclub.models.user import User
from railclub.routes.access import require_club_member
from railclub.routes.auth import get_current_user
from railclub.routes.envelope import iso
from railclub.routes.towers import get_club_tower

router = APIRouter(prefix="/api/clubs/{club_id}/towers/{tower_id}/reports", tags=["tower-reports"])

# Club-wide listing lives outside the per-tower prefix
club_router = APIRouter(prefix="/api/clubs/{club_id}/tower-reports", tags=["tower-reports"])


class ReportCreate(BaseModel):
    description: str | None = None
    report_at: datetime | None = None


class ReportUpdate(BaseModel):
    description: str | None = None
    report_at: datetime | None = None


def _to_dict(r: TowerReport) -> dict:
    return {
        "id": r.id,
        "tower_id": r.tower_id,
        "user_id": r.user_id,
        "description": r.description,
        "report_at": iso(r.report_at),
        "created_at": iso(r.created_at),
        "updated_at": iso(r.updated_at),
    }


def report_window(year: int | None, month: int | None) -> tuple[datetime, datetime] | None:
    """Half-open [start, end) range for a year or a single month of that year."""
    if year is None:
        if month is not None:
            raise HTTPException(status_code=400, detail="month requires year")
        return None
    if month is None:
        return datetime(year, 1, 1), datetime(year + 1, 1, 1)
    if month == 12:
        return datetime(year, 12, 1), datetime(year + 1, 1, 1)
    return datetime(year, month, 1), datetime(year, month + 1, 1)


def _get_report(db: Session, tower_id: int, report_id: int) -> TowerReport:
    r = (
        db.query(TowerReport)
        .filter(TowerReport.id == int(report_id), TowerReport.tower_id == int(tower_id))
        .first()
    )
    if not r:
        raise HTTPException(status_code=404, detail="Tower report not found")
    return r


@club_router.get("/")
def list_club_reports(
    year: int | None = Query(default=None, ge=1900, le=9999),
    month: int | None = Query(default=None, ge=1, le=12),
    club: Club = Depends(require_club_member),
    db: Session = Depends(get_db),
) -> dict:
    q = (
        db.query(TowerReport)
        .join(Tower, Tower.id == TowerReport.tower_id)
        .filter(Tower.club_id == club.id)
    )
    window = report_window(year, month)
    if window:
        start, end = window
        q = q.filter(TowerReport.report_at >= start, TowerReport.report_at < end)
    rows = q.order_by(TowerReport.report_at.desc(), TowerReport.id.desc()).all()
    return {"data": [_to_dict(r) for r in rows]}


@router.get("/")
def list_reports(tower_id: int, club: Club = Depends(require_club_member), db: Session = Depends(get_db)) -> dict:
    tower = get_club_tower(db, club.id, tower_id)
    rows = (
        db.query(TowerReport)
        .filter(TowerReport.tower_id == tower.id)
        .order_by(TowerReport.report_at.desc(), TowerReport.id.desc())
        .all()
    )
    return {"data": [_to_dict(r) for r in rows]}


@router.get("/{report_id}")
def get_report(
    tower_id: int,
    report_id: int,
    club: Club = Depends(require_club_member),
    db: Session = Depends(get_db),
) -> dict:
    tower = get_club_tower(db, club.id, tower_id)
    return {"data": _to_dict(_get_report(db, tower.id, report_id))}


@router.post("/", status_code=201)
def create_report(
    tower_id: int,
    payload: ReportCreate,
    club: Club = Depends(require_club_member),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> dict:
    tower = get_club_tower(db, club.id, tower_id)
    now = utc_now_naive()
    r = TowerReport(
        tower_id=tower.id,
        user_id=current_user.id,
        description=payload.description,
        report_at=to_naive_utc(payload.report_at) or now,
        created_at=now,
        updated_at=now,
    )
    db.add(r)
    db.commit()
    db.refresh(r)
    return {"data": _to_dict(r)}


@router.put("/{report_id}")
def update_report(
    tower_id: int,
    report_id: int,
    payload: ReportUpdate,
    club: Club = Depends(require_club_member),
    db: Session = Depends(get_db),
) -> dict:
    fields = payload.model_dump(exclude_unset=True)
    if not fields:
        raise HTTPException(status_code=400, detail="No fields to update")
    tower = get_club_tower(db, club.id, tower_id)
    r = _get_report(db, tower.id, report_id)
    if "description" in fields:
        r.description = fields["description"]
    if fields.get("report_at") is not None:
        r.report_at = to_naive_utc(fields["report_at"])
    r.updated_at = utc_now_naive()
    db.commit()
    db.refresh(r)
    return {"data": _to_dict(r)}


@router.delete("/{report_id}")
def delete_report(
    tower_id: int,
    report_id: int,
    club: Club = Depends(require_club_member),
    db: Session = Depends(get_db),
) -> dict:
    tower = get_club_tower(db, club.id, tower_id)
    r = _get_report(db, tower.id, report_id)
    db.delete(r)
    db.commit()
    return {"data": {"id": report_id}}
