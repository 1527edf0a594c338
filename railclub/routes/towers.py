# railclub/routes/towers.py
from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from railclub.clock import utc_now_naive
from railclub.database import get_db
from railclub.models.club import Club
from railclub.models.tower import Tower
from railclub.models.user import User
from railclub.routes.access import require_club_member
from railclub.routes.auth import get_current_user
from railclub.routes.envelope import iso

router = APIRouter(prefix="/api/clubs/{club_id}/towers", tags=["towers"])


class TowerCreate(BaseModel):
    name: str = Field(min_length=1, max_length=120)
    description: str | None = None
    owner_id: int | None = None


class TowerUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=120)
    description: str | None = None
    owner_id: int | None = None


def tower_to_dict(t: Tower) -> dict:
    return {
        "id": t.id,
        "name": t.name,
        "description": t.description,
        "club_id": t.club_id,
        "owner_id": t.owner_id,
        "created_at": iso(t.created_at),
        "updated_at": iso(t.updated_at),
    }


def get_club_tower(db: Session, club_id: int, tower_id: int) -> Tower:
    t = db.query(Tower).filter(Tower.id == int(tower_id), Tower.club_id == int(club_id)).first()
    if not t:
        raise HTTPException(status_code=404, detail="Tower not found")
    return t


@router.get("/")
def list_towers(club: Club = Depends(require_club_member), db: Session = Depends(get_db)) -> dict:
    rows = db.query(Tower).filter(Tower.club_id == club.id).order_by(Tower.name.asc(), Tower.id.asc()).all()
    return {"data": [tower_to_dict(t) for t in rows]}


@router.get("/{tower_id}")
def get_tower(tower_id: int, club: Club = Depends(require_club_member), db: Session = Depends(get_db)) -> dict:
    return {"data": tower_to_dict(get_club_tower(db, club.id, tower_id))}


@router.post("/", status_code=201)
def create_tower(
    payload: TowerCreate,
    club: Club = Depends(require_club_member),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> dict:
    now = utc_now_naive()
    t = Tower(
        name=payload.name,
        description=payload.description,
        club_id=club.id,
        owner_id=payload.owner_id or current_user.id,
        created_at=now,
        updated_at=now,
    )
    db.add(t)
    db.commit()
    db.refresh(t)
    return {"data": tower_to_dict(t)}


@router.put("/{tower_id}")
def update_tower(
    tower_id: int,
    payload: TowerUpdate,
    club: Club = Depends(require_club_member),
    db: Session = Depends(get_db),
) -> dict:
    fields = payload.model_dump(exclude_unset=True, exclude_none=True)
    if not fields:
        raise HTTPException(status_code=400, detail="No fields to update")
    t = get_club_tower(db, club.id, tower_id)
    for key, value in fields.items():
        setattr(t, key, value)
    t.updated_at = utc_now_naive()
    db.commit()
    db.refresh(t)
    return {"data": tower_to_dict(t)}


@router.delete("/{tower_id}")
def delete_tower(tower_id: int, club: Club = Depends(require_club_member), db: Session = Depends(get_db)) -> dict:
    t = get_club_tower(db, club.id, tower_id)
    db.delete(t)
    db.commit()
    return {"data": {"id": tower_id}}
