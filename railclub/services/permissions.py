# railclub/services/permissions.py
from __future__ import annotations

from sqlalchemy.orm import Session

from railclub.models.permission import Permission

MEMBER = "member"
ADMIN = "admin"
SUPER_ADMIN = "super-admin"

DEFAULT_PERMISSIONS = (MEMBER, ADMIN, SUPER_ADMIN)
ADMIN_TITLES = frozenset({ADMIN, SUPER_ADMIN})


def ensure_default_permissions(db: Session) -> None:
    """Insert any missing default permission rows. Safe to call repeatedly."""
    existing = {p.title for p in db.query(Permission).all()}
    missing = [t for t in DEFAULT_PERMISSIONS if t not in existing]
    for title in missing:
        db.add(Permission(title=title))
    if missing:
        db.commit()


def get_permission_by_title(db: Session, title: str) -> Permission | None:
    return db.query(Permission).filter(Permission.title == title).first()


def get_permission(db: Session, permission_id: int) -> Permission | None:
    return db.query(Permission).filter(Permission.id == int(permission_id)).first()
