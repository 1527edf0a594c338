# railclub/routes/club_users.py
from __future__ import annotations

from fastapi import APIRouter, Depends, Header, HTTPException
from pydantic import BaseModel
from sqlalchemy.orm import Session

from railclub.database import get_db
from railclub.models.club import Club, ClubMembership
from railclub.models.user import User
from railclub.routes.access import is_admin, require_club_member
from railclub.routes.auth import get_current_user, user_to_dict
from railclub.services.memberships import add_member, is_member, remove_member

router = APIRouter(prefix="/api/clubs/{club_id}/users", tags=["club-users"])


class AssignUser(BaseModel):
    user_id: int
    permission_id: int | None = None


class ChangeRole(BaseModel):
    permission_id: int


def _require_role_admin(current_user: User, x_admin_key: str | None) -> None:
    if not is_admin(current_user, x_admin_key):
        raise HTTPException(status_code=403, detail="Admin permission required")


def _get_user_or_404(db: Session, user_id: int) -> User:
    u = db.query(User).filter(User.id == int(user_id)).first()
    if not u:
        raise HTTPException(status_code=404, detail="User not found")
    return u


@router.get("/")
def list_club_users(club: Club = Depends(require_club_member), db: Session = Depends(get_db)) -> dict:
    users = (
        db.query(User)
        .join(ClubMembership, ClubMembership.user_id == User.id)
        .filter(ClubMembership.club_id == club.id)
        .order_by(User.id.asc())
        .all()
    )
    return {"data": [user_to_dict(u) for u in users]}


@router.post("/", status_code=201)
def assign_user(
    payload: AssignUser,
    club: Club = Depends(require_club_member),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    x_admin_key: str | None = Header(default=None, alias="X-Admin-Key"),
) -> dict:
    # Members may add people; only admins hand out roles
    if payload.permission_id is not None:
        _require_role_admin(current_user, x_admin_key)

    user = _get_user_or_404(db, payload.user_id)
    role_assigned = add_member(db, user=user, club_id=club.id, permission_id=payload.permission_id)
    db.commit()
    db.refresh(user)
    return {
        "data": {
            "club_id": club.id,
            "user": user_to_dict(user),
            "role_assigned": payload.permission_id if role_assigned else None,
        }
    }


@router.put("/{user_id}")
def change_role(
    user_id: int,
    payload: ChangeRole,
    club: Club = Depends(require_club_member),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    x_admin_key: str | None = Header(default=None, alias="X-Admin-Key"),
) -> dict:
    _require_role_admin(current_user, x_admin_key)

    user = _get_user_or_404(db, user_id)
    if not is_member(db, user_id=user.id, club_id=club.id):
        raise HTTPException(status_code=404, detail="User is not a member of this club")

    add_member(db, user=user, club_id=club.id, permission_id=payload.permission_id)
    db.commit()
    db.refresh(user)
    return {"data": user_to_dict(user)}


@router.delete("/{user_id}")
def remove_club_user(
    user_id: int,
    club: Club = Depends(require_club_member),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    x_admin_key: str | None = Header(default=None, alias="X-Admin-Key"),
) -> dict:
    # Members can leave; removing someone else takes an admin
    if user_id != current_user.id:
        _require_role_admin(current_user, x_admin_key)

    remove_member(db, user_id=user_id, club_id=club.id)
    db.commit()
    return {"data": {"club_id": club.id, "user_id": user_id}}
