# railclub/routes/auth.py
from __future__ import annotations

import logging
import secrets
from datetime import timedelta

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from passlib.context import CryptContext
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from railclub import config
from railclub.clock import utc_now_naive
from railclub.database import get_db
from railclub.models.session import SessionToken
from railclub.models.user import User
from railclub.services.memberships import club_ids_for_user
from railclub.services.permissions import MEMBER, get_permission_by_title

logger = logging.getLogger(__name__)

# auto_error=False so a missing header is a 401, not FastAPI's default 403
bearer_scheme = HTTPBearer(auto_error=False)
router = APIRouter(prefix="/auth", tags=["auth"])

# Pure-python hashing (no native deps)
pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


class RegisterRequest(BaseModel):
    username: str = Field(min_length=3, max_length=32)
    password: str = Field(min_length=8, max_length=128)
    first_name: str | None = Field(default=None, max_length=64)
    last_name: str | None = Field(default=None, max_length=64)
    email: str | None = Field(default=None, max_length=255)


class LoginRequest(BaseModel):
    username: str
    password: str


def user_to_dict(u: User, club_ids: list[int] | None = None) -> dict:
    d = {
        "id": u.id,
        "username": u.username,
        "first_name": u.first_name,
        "last_name": u.last_name,
        "email": u.email,
        "permission_id": u.permission_id,
        "permission": u.permission.title if u.permission else None,
    }
    if club_ids is not None:
        d["club_ids"] = club_ids
    return d


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=detail)


def get_current_session(
    creds: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> SessionToken:
    if creds is None or not creds.credentials:
        raise _unauthorized("Missing bearer token")

    sess = db.query(SessionToken).filter(SessionToken.token == creds.credentials).first()
    if not sess:
        raise _unauthorized("Invalid token")

    if sess.expires_at <= utc_now_naive():
        raise _unauthorized("Token expired")

    return sess


def get_current_user(
    sess: SessionToken = Depends(get_current_session),
    db: Session = Depends(get_db),
) -> User:
    user = db.query(User).filter(User.id == sess.user_id).first()
    if not user:
        raise _unauthorized("Invalid session user")
    return user


@router.post("/register", status_code=status.HTTP_201_CREATED)
def register(payload: RegisterRequest, db: Session = Depends(get_db)) -> dict:
    existing = db.query(User).filter(User.username == payload.username).first()
    if existing:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Username already exists")

    perm = get_permission_by_title(db, MEMBER)
    if not perm:
        raise HTTPException(status_code=500, detail="Permissions are not seeded")

    user = User(
        username=payload.username,
        password_hash=pwd_context.hash(payload.password),
        first_name=payload.first_name,
        last_name=payload.last_name,
        email=payload.email,
        permission_id=perm.id,
    )
    db.add(user)
    db.commit()
    db.refresh(user)

    logger.info("auth: registered user %s", user.id)
    return {"data": user_to_dict(user, club_ids=[])}


@router.post("/login")
def login(payload: LoginRequest, db: Session = Depends(get_db)) -> dict:
    user = db.query(User).filter(User.username == payload.username).first()
    if not user or not pwd_context.verify(payload.password, user.password_hash):
        logger.info("auth: failed login for username=%r", payload.username)
        raise _unauthorized("Invalid username or password")

    now = utc_now_naive()
    sess = SessionToken(
        user_id=user.id,
        token=secrets.token_hex(32),
        created_at=now,
        expires_at=now + timedelta(hours=config.SESSION_HOURS),
    )
    db.add(sess)
    db.commit()

    return {
        "data": {
            "token": sess.token,
            "token_type": "bearer",
            "expires_at": sess.expires_at.isoformat(),
        }
    }


@router.get("/me")
def me(current_user: User = Depends(get_current_user), db: Session = Depends(get_db)) -> dict:
    return {"data": user_to_dict(current_user, club_ids=club_ids_for_user(db, current_user.id))}


@router.post("/logout")
def logout(sess: SessionToken = Depends(get_current_session), db: Session = Depends(get_db)) -> dict:
    db.delete(sess)
    db.commit()
    return {"data": {"logged_out": True}}
