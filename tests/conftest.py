"""
Shared fixtures: an isolated in-memory SQLite database per test, a TestClient wired
to it, and small factories for users, clubs and bearer sessions.
"""
from __future__ import annotations

import itertools
import os
import secrets
from datetime import timedelta

# Keep the module-level engine off the on-disk dev database
os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from railclub import config  # noqa: E402
from railclub.clock import utc_now_naive  # noqa: E402
from railclub.database import Base, enforce_sqlite_foreign_keys, get_db, init_db  # noqa: E402
from railclub.main import app  # noqa: E402
from railclub.models.club import Club, ClubMembership  # noqa: E402
from railclub.models.session import SessionToken  # noqa: E402
from railclub.models.user import User  # noqa: E402
from railclub.services.permissions import get_permission_by_title  # noqa: E402

QUEUE_API_KEY = "test-queue-key"


@pytest.fixture()
def engine():
    eng = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    enforce_sqlite_foreign_keys(eng)
    init_db(bind=eng)
    yield eng
    Base.metadata.drop_all(eng)
    eng.dispose()


@pytest.fixture()
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)


@pytest.fixture()
def db_session(session_factory):
    db = session_factory()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture()
def client(session_factory, monkeypatch):
    def _get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    monkeypatch.setattr(config, "EMAIL_QUEUE_API_KEY", QUEUE_API_KEY)
    monkeypatch.setattr(config, "ADMIN_KEY", "")

    app.dependency_overrides[get_db] = _get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture()
def make_user(db_session):
    counter = itertools.count(1)

    def _make(role: str = "member", username: str | None = None) -> User:
        perm = get_permission_by_title(db_session, role)
        user = User(
            username=username or f"member{next(counter)}",
            password_hash="not-a-real-hash",
            permission_id=perm.id,
        )
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return user

    return _make


@pytest.fixture()
def make_club(db_session):
    def _make(name: str = "Valley Junction MRC", members=()) -> Club:
        club = Club(name=name, description="HO scale club layout")
        db_session.add(club)
        db_session.flush()
        for user in members:
            db_session.add(ClubMembership(user_id=user.id, club_id=club.id))
        db_session.commit()
        db_session.refresh(club)
        return club

    return _make


@pytest.fixture()
def auth_headers(db_session):
    def _headers(user: User) -> dict:
        sess = SessionToken(
            user_id=user.id,
            token=secrets.token_hex(32),
            expires_at=utc_now_naive() + timedelta(hours=1),
        )
        db_session.add(sess)
        db_session.commit()
        return {"Authorization": f"Bearer {sess.token}"}

    return _headers


@pytest.fixture()
def queue_api_key() -> str:
    return QUEUE_API_KEY
