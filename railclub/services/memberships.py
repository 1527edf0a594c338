# railclub/services/memberships.py
from __future__ import annotations

from sqlalchemy.orm import Session

from railclub.errors import NotFoundError
from railclub.models.club import ClubMembership
from railclub.models.permission import Permission
from railclub.models.user import User


def is_member(db: Session, *, user_id: int, club_id: int) -> bool:
    return (
        db.query(ClubMembership)
        .filter(ClubMembership.user_id == int(user_id), ClubMembership.club_id == int(club_id))
        .first()
        is not None
    )


def club_ids_for_user(db: Session, user_id: int) -> list[int]:
    rows = (
        db.query(ClubMembership.club_id)
        .filter(ClubMembership.user_id == int(user_id))
        .order_by(ClubMembership.club_id.asc())
        .all()
    )
    return [int(r[0]) for r in rows]


def add_member(
    db: Session,
    *,
    user: User,
    club_id: int,
    permission_id: int | None = None,
) -> bool:
    """
    Link user to club (no-op if already linked) and optionally change their role.
    Returns True when a role was assigned. Caller commits.
    """
    if not is_member(db, user_id=user.id, club_id=club_id):
        db.add(ClubMembership(user_id=int(user.id), club_id=int(club_id)))

    if permission_id is None:
        return False

    perm = db.query(Permission).filter(Permission.id == int(permission_id)).first()
    if not perm:
        raise NotFoundError("Permission not found")
    user.permission_id = perm.id
    return True


def remove_member(db: Session, *, user_id: int, club_id: int) -> None:
    link = (
        db.query(ClubMembership)
        .filter(ClubMembership.user_id == int(user_id), ClubMembership.club_id == int(club_id))
        .first()
    )
    if not link:
        raise NotFoundError("User is not a member of this club")
    db.delete(link)
