# railclub/routes/issues.py
from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from railclub.clock import utc_now_naive
from railclub.database import get_db
from railclub.models.club import Club
from railclub.models.issue import Issue
from railclub.models.user import User
from railclub.routes.access import require_club_member
from railclub.routes.auth import get_current_user
from railclub.routes.envelope import iso
from railclub.routes.towers import get_club_tower

router = APIRouter(prefix="/api/clubs/{club_id}/towers/{tower_id}/issues", tags=["issues"])


class IssueCreate(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    type: str = Field(min_length=1, max_length=32)
    status: str = Field(default="open", min_length=1, max_length=24)
    description: str | None = None


class IssueUpdate(BaseModel):
    title: str | None = Field(default=None, min_length=1, max_length=200)
    type: str | None = Field(default=None, min_length=1, max_length=32)
    status: str | None = Field(default=None, min_length=1, max_length=24)
    description: str | None = None


def _to_dict(i: Issue) -> dict:
    return {
        "id": i.id,
        "tower_id": i.tower_id,
        "user_id": i.user_id,
        "title": i.title,
        "type": i.type,
        "status": i.status,
        "description": i.description,
        "created_at": iso(i.created_at),
        "updated_at": iso(i.updated_at),
    }


def _get_issue(db: Session, tower_id: int, issue_id: int) -> Issue:
    i = db.query(Issue).filter(Issue.id == int(issue_id), Issue.tower_id == int(tower_id)).first()
    if not i:
        raise HTTPException(status_code=404, detail="Issue not found")
    return i


@router.get("/")
def list_issues(
    tower_id: int,
    status: str | None = Query(default=None),
    club: Club = Depends(require_club_member),
    db: Session = Depends(get_db),
) -> dict:
    tower = get_club_tower(db, club.id, tower_id)
    q = db.query(Issue).filter(Issue.tower_id == tower.id)
    if status:
        q = q.filter(Issue.status == status)
    rows = q.order_by(Issue.created_at.desc(), Issue.id.desc()).all()
    return {"data": [_to_dict(i) for i in rows]}


@router.get("/{issue_id}")
def get_issue(
    tower_id: int,
    issue_id: int,
    club: Club = Depends(require_club_member),
    db: Session = Depends(get_db),
) -> dict:
    tower = get_club_tower(db, club.id, tower_id)
    return {"data": _to_dict(_get_issue(db, tower.id, issue_id))}


@router.post("/", status_code=201)
def create_issue(
    tower_id: int,
    payload: IssueCreate,
    club: Club = Depends(require_club_member),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> dict:
    tower = get_club_tower(db, club.id, tower_id)
    now = utc_now_naive()
    i = Issue(
        tower_id=tower.id,
        user_id=current_user.id,
        title=payload.title,
        type=payload.type,
        status=payload.status,
        description=payload.description,
        created_at=now,
        updated_at=now,
    )
    db.add(i)
    db.commit()
    db.refresh(i)
    return {"data": _to_dict(i)}


@router.put("/{issue_id}")
def update_issue(
    tower_id: int,
    issue_id: int,
    payload: IssueUpdate,
    club: Club = Depends(require_club_member),
    db: Session = Depends(get_db),
) -> dict:
    fields = payload.model_dump(exclude_unset=True, exclude_none=True)
    if not fields:
        raise HTTPException(status_code=400, detail="No fields to update")
    tower = get_club_tower(db, club.id, tower_id)
    i = _get_issue(db, tower.id, issue_id)
    for key, value in fields.items():
        setattr(i, key, value)
    i.updated_at = utc_now_naive()
    db.commit()
    db.refresh(i)
    return {"data": _to_dict(i)}


@router.delete("/{issue_id}")
def delete_issue(
    tower_id: int,
    issue_id: int,
    club: Club = Depends(require_club_member),
    db: Session = Depends(get_db),
) -> dict:
    tower = get_club_tower(db, club.id, tower_id)
    i = _get_issue(db, tower.id, issue_id)
    db.delete(i)
    db.commit()
    return {"data": {"id": issue_id}}
