# railclub/routes/access.py
from __future__ import annotations

import logging
import secrets

from fastapi import Depends, Header, HTTPException
from sqlalchemy.orm import Session

from railclub import config
from railclub.database import get_db
from railclub.models.club import Club
from railclub.models.user import User
from railclub.routes.auth import get_current_user
from railclub.services.memberships import is_member
from railclub.services.permissions import ADMIN_TITLES

logger = logging.getLogger(__name__)


def is_admin_key(x_admin_key: str | None) -> bool:
    key = config.ADMIN_KEY
    return bool(key) and bool(x_admin_key) and secrets.compare_digest(x_admin_key, key)


def user_is_admin(user: User) -> bool:
    return bool(user.permission) and user.permission.title in ADMIN_TITLES


def is_admin(user: User, x_admin_key: str | None) -> bool:
    return is_admin_key(x_admin_key) or user_is_admin(user)


def require_admin(
    current_user: User = Depends(get_current_user),
    x_admin_key: str | None = Header(default=None, alias="X-Admin-Key"),
) -> User:
    if not is_admin(current_user, x_admin_key):
        logger.info("access: user %s denied admin route", current_user.id)
        raise HTTPException(status_code=403, detail="Admin permission required")
    return current_user


def get_club_or_404(db: Session, club_id: int) -> Club:
    club = db.query(Club).filter(Club.id == int(club_id)).first()
    if not club:
        raise HTTPException(status_code=404, detail="Club not found")
    return club


def require_club_member(
    club_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    x_admin_key: str | None = Header(default=None, alias="X-Admin-Key"),
) -> Club:
    """Resolve the route's club; admins pass, everyone else must belong to it."""
    club = get_club_or_404(db, club_id)
    if is_admin(current_user, x_admin_key):
        return club
    if not is_member(db, user_id=current_user.id, club_id=club.id):
        logger.info("access: user %s denied club %s", current_user.id, club.id)
        raise HTTPException(status_code=403, detail="User does not belong to this club")
    return club
