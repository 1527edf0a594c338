# railclub/routes/consists.py
from __future__ import annotations

from fastapi import APIRouter, Depends, Header, HTTPException
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from railclub.clock import utc_now_naive
from railclub.database import get_db
from railclub.models.club import Club
from railclub.models.consist import Consist
from railclub.models.user import User
from railclub.routes.access import is_admin, require_club_member
from railclub.routes.auth import get_current_user
from railclub.routes.envelope import iso
from railclub.services.addresses import check_address_owner

router = APIRouter(prefix="/api/clubs/{club_id}/consists", tags=["consists"])


class ConsistCreate(BaseModel):
    number: int = Field(ge=1, le=127)  # CV19 advanced consist range
    in_use: bool = False
    user_id: int | None = None


def _to_dict(c: Consist) -> dict:
    return {
        "id": c.id,
        "number": c.number,
        "in_use": bool(c.in_use),
        "user_id": c.user_id,
        "club_id": c.club_id,
        "created_at": iso(c.created_at),
    }


@router.get("/")
def list_consists(club: Club = Depends(require_club_member), db: Session = Depends(get_db)) -> dict:
    rows = db.query(Consist).filter(Consist.club_id == club.id).order_by(Consist.number.asc(), Consist.id.asc()).all()
    return {"data": [_to_dict(c) for c in rows]}


@router.post("/", status_code=201)
def create_consist(
    payload: ConsistCreate,
    club: Club = Depends(require_club_member),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    x_admin_key: str | None = Header(default=None, alias="X-Admin-Key"),
) -> dict:
    owner_id = payload.user_id or current_user.id
    if owner_id != current_user.id:
        if not is_admin(current_user, x_admin_key):
            raise HTTPException(status_code=403, detail="You can only create consists for yourself")
        check_address_owner(db, club_id=club.id, user_id=owner_id)

    c = Consist(
        number=payload.number,
        in_use=payload.in_use,
        user_id=owner_id,
        club_id=club.id,
        created_at=utc_now_naive(),
    )
    db.add(c)
    db.commit()
    db.refresh(c)
    return {"data": _to_dict(c)}


@router.delete("/{consist_id}")
def delete_consist(
    consist_id: int,
    club: Club = Depends(require_club_member),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    x_admin_key: str | None = Header(default=None, alias="X-Admin-Key"),
) -> dict:
    c = db.query(Consist).filter(Consist.id == int(consist_id), Consist.club_id == club.id).first()
    if not c:
        raise HTTPException(status_code=404, detail="Consist not found")
    if c.user_id != current_user.id and not is_admin(current_user, x_admin_key):
        raise HTTPException(status_code=403, detail="You can only delete your own consists")
    db.delete(c)
    db.commit()
    return {"data": {"id": consist_id}}
