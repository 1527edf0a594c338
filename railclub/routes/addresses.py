# railclub/routes/addresses.py
from __future__ import annotations

from fastapi import APIRouter, Depends, Header, HTTPException
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from railclub.database import get_db
from railclub.models.address import Address
from railclub.models.club import Club
from railclub.models.user import User
from railclub.routes.auth import get_current_user
from railclub.routes.access import is_admin, require_club_member
from railclub.services.addresses import check_address_owner, create_address, get_club_address, update_address

router = APIRouter(prefix="/api/clubs/{club_id}/addresses", tags=["addresses"])


class AddressCreate(BaseModel):
    number: int = Field(ge=0, le=10239)  # DCC long address range
    description: str = Field(min_length=1)
    in_use: bool = False
    user_id: int | None = None


class AddressUpdate(BaseModel):
    number: int | None = Field(default=None, ge=0, le=10239)
    description: str | None = Field(default=None, min_length=1)
    in_use: bool | None = None
    user_id: int | None = None


def _to_dict(a: Address) -> dict:
    return {
        "id": a.id,
        "number": a.number,
        "description": a.description,
        "in_use": bool(a.in_use),
        "user_id": a.user_id,
        "club_id": a.club_id,
    }


def _require_owner(a: Address, current_user: User, x_admin_key: str | None, action: str) -> None:
    if a.user_id != current_user.id and not is_admin(current_user, x_admin_key):
        raise HTTPException(status_code=403, detail=f"You can only {action} your own addresses")


@router.get("/")
def list_addresses(club: Club = Depends(require_club_member), db: Session = Depends(get_db)) -> dict:
    rows = db.query(Address).filter(Address.club_id == club.id).order_by(Address.number.asc()).all()
    return {"data": [_to_dict(a) for a in rows]}


@router.get("/{address_id}")
def get_address(address_id: int, club: Club = Depends(require_club_member), db: Session = Depends(get_db)) -> dict:
    return {"data": _to_dict(get_club_address(db, club_id=club.id, address_id=address_id))}


@router.post("/", status_code=201)
def add_address(
    payload: AddressCreate,
    club: Club = Depends(require_club_member),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    x_admin_key: str | None = Header(default=None, alias="X-Admin-Key"),
) -> dict:
    owner_id = payload.user_id or current_user.id
    if owner_id != current_user.id:
        if not is_admin(current_user, x_admin_key):
            raise HTTPException(status_code=403, detail="You can only create addresses for yourself")
        check_address_owner(db, club_id=club.id, user_id=owner_id)

    a = create_address(
        db,
        club_id=club.id,
        user_id=owner_id,
        number=payload.number,
        description=payload.description,
        in_use=payload.in_use,
    )
    return {"data": _to_dict(a)}


@router.put("/{address_id}")
def edit_address(
    address_id: int,
    payload: AddressUpdate,
    club: Club = Depends(require_club_member),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    x_admin_key: str | None = Header(default=None, alias="X-Admin-Key"),
) -> dict:
    fields = payload.model_dump(exclude_unset=True)
    if not fields:
        raise HTTPException(status_code=400, detail="No fields to update")
    a = get_club_address(db, club_id=club.id, address_id=address_id)
    _require_owner(a, current_user, x_admin_key, "edit")

    new_owner = fields.get("user_id")
    if new_owner is not None and new_owner != a.user_id:
        if not is_admin(current_user, x_admin_key):
            raise HTTPException(status_code=403, detail="Only admins can reassign addresses")
        check_address_owner(db, club_id=club.id, user_id=new_owner)

    return {"data": _to_dict(update_address(db, a, fields))}


@router.delete("/{address_id}")
def delete_address(
    address_id: int,
    club: Club = Depends(require_club_member),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    x_admin_key: str | None = Header(default=None, alias="X-Admin-Key"),
) -> dict:
    a = get_club_address(db, club_id=club.id, address_id=address_id)
    _require_owner(a, current_user, x_admin_key, "delete")
    db.delete(a)
    db.commit()
    return {"data": {"id": address_id}}
