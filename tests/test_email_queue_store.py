from __future__ import annotations

from datetime import timedelta

import pytest

from railclub.clock import FrozenClock
from railclub.errors import NotFoundError, ValidationError
from railclub.models.email_queue import EmailQueueItem
from railclub.services.email_queue import EmailQueueService
from railclub.services.email_queue_store import (
    STATUS_FAILED,
    STATUS_IN_PROGRESS,
    STATUS_PENDING,
    STATUS_SENT,
    NewEmail,
    SqlEmailQueueRepository,
)


@pytest.fixture()
def clock():
    return FrozenClock()


@pytest.fixture()
def repo(db_session, clock):
    return SqlEmailQueueRepository(db_session, clock)


def _new(i: int = 0, **kw) -> NewEmail:
    return NewEmail(
        recipient_email=f"member{i}@example.org",
        subject=kw.pop("subject", "Newsletter"),
        body=kw.pop("body", "Spring open house"),
        **kw,
    )


def test_create_persists_defaults(repo, db_session, clock):
    msg = repo.create(_new(html_body="<b>hi</b>"))
    row = db_session.query(EmailQueueItem).filter(EmailQueueItem.id == msg.id).one()
    assert row.status == STATUS_PENDING
    assert row.retry_count == 0
    assert row.max_retries == 3
    assert row.html_body == "<b>hi</b>"
    assert row.created_at == clock.now() == row.updated_at


def test_get_missing_raises_not_found(repo):
    with pytest.raises(NotFoundError):
        repo.get(999)


def test_update_refreshes_updated_at(repo, clock):
    msg = repo.create(_new())
    clock.advance(minutes=5)
    updated = repo.update(msg.id, {"last_error": "greylisted"})
    assert updated.last_error == "greylisted"
    assert updated.updated_at == clock.now()
    assert updated.created_at == msg.created_at


@pytest.mark.parametrize(
    "fields",
    [
        {"recipient_email": "other@example.org"},
        {"max_retries": 10},
        {"scheduled_at": None},
        {"created_at": None},
    ],
)
def test_update_rejects_fields_fixed_at_creation(repo, fields):
    msg = repo.create(_new())
    with pytest.raises(ValidationError):
        repo.update(msg.id, fields)
    assert repo.get(msg.id) == msg


def test_delete_returns_id_then_not_found(repo):
    msg = repo.create(_new())
    assert repo.delete(msg.id) == msg.id
    with pytest.raises(NotFoundError):
        repo.delete(msg.id)


def test_pending_ascending_failed_descending(repo, clock):
    msgs = []
    for i in range(4):
        msgs.append(repo.create(_new(i)))
        clock.advance(seconds=1)

    for m in msgs[2:]:
        clock.advance(seconds=1)
        repo.update(m.id, {"status": STATUS_FAILED})

    pending = repo.get_pending(10)
    assert [m.id for m in pending] == [msgs[0].id, msgs[1].id]

    failed = repo.get_failed(10)
    assert [m.id for m in failed] == [msgs[3].id, msgs[2].id]

    assert len(repo.get_pending(1)) == 1


def test_count_by_status_uses_real_counts(repo):
    msgs = [repo.create(_new(i)) for i in range(8)]
    for m in msgs[5:7]:
        repo.update(m.id, {"status": STATUS_SENT})
    repo.update(msgs[7].id, {"status": STATUS_FAILED})

    counts = repo.count_by_status()
    assert counts[STATUS_PENDING] == 5
    assert counts[STATUS_SENT] == 2
    assert counts[STATUS_FAILED] == 1
    assert counts[STATUS_IN_PROGRESS] == 0


def test_claim_moves_rows_once(repo):
    msgs = [repo.create(_new(i)) for i in range(3)]

    first = repo.claim(2)
    second = repo.claim(2)

    assert [m.id for m in first] == [msgs[0].id, msgs[1].id]
    assert [m.id for m in second] == [msgs[2].id]
    assert all(m.status == STATUS_IN_PROGRESS for m in first + second)
    assert repo.claim(2) == []


def test_release_claims_only_touches_old_claims(repo, clock):
    old = repo.create(_new(0))
    fresh = repo.create(_new(1))
    repo.claim(1)
    clock.advance(minutes=30)
    repo.claim(1)

    released = repo.release_claims(clock.now() - timedelta(minutes=15))
    assert [m.id for m in released] == [old.id]
    assert repo.get(old.id).status == STATUS_PENDING
    assert repo.get(fresh.id).status == STATUS_IN_PROGRESS


def test_reset_only_resets_failed_rows(repo):
    failed = repo.create(_new(0))
    sent = repo.create(_new(1))
    repo.update(failed.id, {"status": STATUS_FAILED, "retry_count": 2, "last_error": "bounced"})
    repo.update(sent.id, {"status": STATUS_SENT})

    reset = repo.reset([failed.id, sent.id])
    assert [m.id for m in reset] == [failed.id]
    assert (reset[0].status, reset[0].retry_count, reset[0].last_error) == (STATUS_PENDING, 0, None)
    assert repo.get(sent.id).status == STATUS_SENT


def test_service_failure_path_against_sql(db_session, clock):
    svc = EmailQueueService(SqlEmailQueueRepository(db_session, clock), clock)
    msg = svc.create_email(
        recipient_email="treasurer@example.org",
        subject="Dues reminder",
        body="Dues are due.",
        max_retries=2,
    ).data

    assert svc.mark_as_failed(msg.id, "timeout").data.status == STATUS_PENDING
    final = svc.mark_as_failed(msg.id, "timeout2").data
    assert (final.status, final.retry_count, final.last_error) == (STATUS_FAILED, 2, "timeout2")

    assert svc.retry_all_recoverable().data == []
    assert svc.get_queue_stats().data["failed_count"] == 1
