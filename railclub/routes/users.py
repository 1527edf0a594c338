# railclub/routes/users.py
from __future__ import annotations

from fastapi import APIRouter, Depends, Header, HTTPException
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from railclub.database import get_db
from railclub.models.club import ClubMembership
from railclub.models.user import User
from railclub.routes.access import is_admin, require_admin
from railclub.routes.auth import get_current_user, user_to_dict
from railclub.services.memberships import club_ids_for_user
from railclub.services.permissions import get_permission

router = APIRouter(prefix="/api/users", tags=["users"])


class UserUpdate(BaseModel):
    first_name: str | None = Field(default=None, max_length=64)
    last_name: str | None = Field(default=None, max_length=64)
    email: str | None = Field(default=None, max_length=255)
    permission_id: int | None = None


@router.get("/")
def list_users(db: Session = Depends(get_db), _admin: User = Depends(require_admin)) -> dict:
    users = db.query(User).order_by(User.id.asc()).all()

    clubs_by_user: dict[int, list[int]] = {}
    for user_id, club_id in (
        db.query(ClubMembership.user_id, ClubMembership.club_id)
        .order_by(ClubMembership.club_id.asc())
        .all()
    ):
        clubs_by_user.setdefault(int(user_id), []).append(int(club_id))

    return {"data": [user_to_dict(u, club_ids=clubs_by_user.get(u.id, [])) for u in users]}


@router.get("/me")
def get_me(current_user: User = Depends(get_current_user), db: Session = Depends(get_db)) -> dict:
    return {"data": user_to_dict(current_user, club_ids=club_ids_for_user(db, current_user.id))}


def _get_visible_user(
    db: Session,
    user_id: int,
    current_user: User,
    x_admin_key: str | None,
) -> User:
    if user_id != current_user.id and not is_admin(current_user, x_admin_key):
        raise HTTPException(status_code=403, detail="Admin permission required")
    u = db.query(User).filter(User.id == user_id).first()
    if not u:
        raise HTTPException(status_code=404, detail="User not found")
    return u


@router.get("/{user_id}")
def get_user(
    user_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    x_admin_key: str | None = Header(default=None, alias="X-Admin-Key"),
) -> dict:
    u = _get_visible_user(db, user_id, current_user, x_admin_key)
    return {"data": user_to_dict(u, club_ids=club_ids_for_user(db, u.id))}


@router.put("/{user_id}")
def update_user(
    user_id: int,
    payload: UserUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    x_admin_key: str | None = Header(default=None, alias="X-Admin-Key"),
) -> dict:
    u = _get_visible_user(db, user_id, current_user, x_admin_key)
    fields = payload.model_dump(exclude_unset=True)
    if not fields:
        raise HTTPException(status_code=400, detail="No fields to update")

    if "permission_id" in fields:
        if not is_admin(current_user, x_admin_key):
            raise HTTPException(status_code=403, detail="Admin permission required")
        if fields["permission_id"] is None or not get_permission(db, fields["permission_id"]):
            raise HTTPException(status_code=400, detail="Invalid permission_id")

    for key, value in fields.items():
        setattr(u, key, value)
    db.commit()
    db.refresh(u)
    return {"data": user_to_dict(u, club_ids=club_ids_for_user(db, u.id))}
