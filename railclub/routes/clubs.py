# railclub/routes/clubs.py
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Header, HTTPException, Query
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from railclub.database import get_db
from railclub.models.club import Club, ClubMembership
from railclub.models.permission import Permission
from railclub.models.user import User
from railclub.routes.access import get_club_or_404, is_admin, require_admin, require_club_member
from railclub.routes.auth import get_current_user
from railclub.routes.envelope import iso
from railclub.services.invite_tokens import validate_invite_token
from railclub.services.memberships import add_member

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/clubs", tags=["clubs"])


class ClubCreate(BaseModel):
    name: str = Field(min_length=1, max_length=120)
    description: str | None = None
    hero_image: str | None = None


class ClubUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=120)
    description: str | None = None
    hero_image: str | None = None


def club_to_dict(c: Club) -> dict:
    return {
        "id": c.id,
        "name": c.name,
        "description": c.description,
        "hero_image": c.hero_image,
    }


@router.get("/")
def list_clubs(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    x_admin_key: str | None = Header(default=None, alias="X-Admin-Key"),
) -> dict:
    q = db.query(Club)
    if not is_admin(current_user, x_admin_key):
        q = q.join(ClubMembership, ClubMembership.club_id == Club.id).filter(
            ClubMembership.user_id == current_user.id
        )
    clubs = q.order_by(Club.id.asc()).all()
    return {"data": [club_to_dict(c) for c in clubs]}


@router.post("/", status_code=201)
def create_club(
    payload: ClubCreate,
    db: Session = Depends(get_db),
    _admin: User = Depends(require_admin),
) -> dict:
    c = Club(name=payload.name, description=payload.description, hero_image=payload.hero_image)
    db.add(c)
    db.commit()
    db.refresh(c)
    logger.info("clubs: created club %s", c.id)
    return {"data": club_to_dict(c)}


@router.get("/invite/validate")
def validate_invite(
    token: str | None = Query(default=None),
    db: Session = Depends(get_db),
    _user: User = Depends(get_current_user),
) -> dict:
    if not token:
        raise HTTPException(status_code=400, detail="Missing invite token")

    tok = validate_invite_token(db, token)
    club = get_club_or_404(db, tok.club_id)

    role = None
    if tok.role_permission is not None:
        perm = db.query(Permission).filter(Permission.id == tok.role_permission).first()
        if perm:
            role = {"id": perm.id, "title": perm.title}

    return {
        "data": {
            "valid": True,
            "token": {
                "token": tok.token,
                "club_id": tok.club_id,
                "role_permission": tok.role_permission,
                "expires_at": iso(tok.expires_at),
            },
            "club": club_to_dict(club),
            "role": role,
        }
    }


@router.get("/{club_id}")
def get_club(club: Club = Depends(require_club_member)) -> dict:
    return {"data": club_to_dict(club)}


@router.put("/{club_id}")
def update_club(
    payload: ClubUpdate,
    club: Club = Depends(require_club_member),
    db: Session = Depends(get_db),
) -> dict:
    fields = payload.model_dump(exclude_unset=True)
    if not fields:
        raise HTTPException(status_code=400, detail="No fields to update")
    for key, value in fields.items():
        setattr(club, key, value)
    db.commit()
    db.refresh(club)
    return {"data": club_to_dict(club)}


@router.delete("/{club_id}")
def delete_club(
    club_id: int,
    db: Session = Depends(get_db),
    _admin: User = Depends(require_admin),
) -> dict:
    club = get_club_or_404(db, club_id)
    db.delete(club)
    db.commit()
    logger.info("clubs: deleted club %s", club_id)
    return {"data": {"id": club_id}}


@router.post("/{club_id}/join")
def join_club(
    club_id: int,
    invite: str | None = Query(default=None),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> dict:
    if not invite:
        raise HTTPException(status_code=400, detail="Missing invite token")

    tok = validate_invite_token(db, invite)
    if tok.club_id != club_id:
        raise HTTPException(status_code=400, detail="Invalid invite token for this club")

    club = get_club_or_404(db, club_id)

    # Role comes from the token only; joiners cannot pick their own
    add_member(db, user=current_user, club_id=club.id, permission_id=tok.role_permission)
    db.commit()

    logger.info("clubs: user %s joined club %s via invite", current_user.id, club.id)
    return {
        "data": {
            "joined": True,
            "club_id": club.id,
            "user_id": current_user.id,
            "club_name": club.name,
            "role_assigned": tok.role_permission,
        }
    }
