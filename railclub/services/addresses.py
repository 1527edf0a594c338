# railclub/services/addresses.py
from __future__ import annotations

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from railclub.errors import ConflictError, NotFoundError, ValidationError
from railclub.models.address import Address
from railclub.models.user import User
from railclub.services.memberships import is_member


def _conflict(number: int) -> ConflictError:
    return ConflictError(f"Address number {number} already exists in this club")


def number_taken(db: Session, *, club_id: int, number: int, exclude_id: int | None = None) -> bool:
    q = db.query(Address.id).filter(Address.club_id == int(club_id), Address.number == int(number))
    if exclude_id is not None:
        q = q.filter(Address.id != int(exclude_id))
    return q.first() is not None


def get_club_address(db: Session, *, club_id: int, address_id: int) -> Address:
    # Addresses from another club are reported as missing
    a = (
        db.query(Address)
        .filter(Address.id == int(address_id), Address.club_id == int(club_id))
        .first()
    )
    if not a:
        raise NotFoundError("Address not found")
    return a


def check_address_owner(db: Session, *, club_id: int, user_id: int) -> None:
    """The owner must be an existing user who belongs to the club."""
    if not db.query(User.id).filter(User.id == int(user_id)).first():
        raise NotFoundError("User not found")
    if not is_member(db, user_id=int(user_id), club_id=int(club_id)):
        raise ValidationError("Address owner does not belong to this club")


def _is_number_conflict(e: IntegrityError) -> bool:
    # Postgres names the constraint; SQLite names the columns
    text = str(e.orig).lower()
    return "uq_addresses_club_number" in text or ("unique" in text and "addresses.number" in text)


def _commit(db: Session, number: int) -> None:
    # The (club_id, number) unique constraint catches concurrent inserts the pre-check missed
    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        if _is_number_conflict(e):
            raise _conflict(number) from e
        raise ValidationError("Address references a missing user or club") from e


def create_address(
    db: Session,
    *,
    club_id: int,
    user_id: int,
    number: int,
    description: str,
    in_use: bool = False,
) -> Address:
    if number is None or not description:
        raise ValidationError("Missing required fields: number, description")
    if number_taken(db, club_id=club_id, number=number):
        raise _conflict(number)

    a = Address(
        club_id=int(club_id),
        user_id=int(user_id),
        number=int(number),
        description=description,
        in_use=bool(in_use),
    )
    db.add(a)
    _commit(db, number)
    db.refresh(a)
    return a


def update_address(db: Session, a: Address, fields: dict) -> Address:
    if "number" in fields and fields["number"] is not None:
        number = int(fields["number"])
        if number_taken(db, club_id=a.club_id, number=number, exclude_id=a.id):
            raise _conflict(number)
        a.number = number
    if fields.get("description") is not None:
        a.description = fields["description"]
    if fields.get("in_use") is not None:
        a.in_use = bool(fields["in_use"])
    if fields.get("user_id") is not None:
        a.user_id = int(fields["user_id"])

    _commit(db, a.number)
    db.refresh(a)
    return a
