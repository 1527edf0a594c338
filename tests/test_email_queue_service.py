from __future__ import annotations

import pytest

from railclub.clock import FrozenClock
from railclub.errors import NotFoundError, ValidationError
from railclub.services.email_queue import EmailQueueService
from railclub.services.email_queue_store import (
    STATUS_FAILED,
    STATUS_IN_PROGRESS,
    STATUS_PENDING,
    STATUS_SENT,
    InMemoryEmailQueueRepository,
)


@pytest.fixture()
def clock():
    return FrozenClock()


@pytest.fixture()
def repo(clock):
    return InMemoryEmailQueueRepository(clock)


@pytest.fixture()
def svc(repo, clock):
    return EmailQueueService(repo, clock)


def _queue(svc, n=1, **kw):
    out = []
    for i in range(n):
        res = svc.create_email(
            recipient_email=kw.get("recipient_email", f"member{i}@example.org"),
            subject=kw.get("subject", "Operating session Friday"),
            body=kw.get("body", "Doors open at 7pm."),
            max_retries=kw.get("max_retries"),
        )
        assert res.ok, res.error
        out.append(res.data)
    return out


def test_create_sets_server_fields_and_round_trips(svc, clock):
    res = svc.create_email(
        recipient_email="dispatcher@example.org",
        subject="Track warrant",
        body="Plain text",
        html_body="<p>Plain text</p>",
    )
    assert res.ok and res.error is None
    msg = res.data
    assert msg.status == STATUS_PENDING
    assert msg.retry_count == 0
    assert msg.max_retries == 3
    assert msg.sent_at is None
    assert msg.created_at == clock.now()

    fetched = svc.get_email(msg.id).data
    assert fetched == msg


@pytest.mark.parametrize("missing", ["recipient_email", "subject", "body"])
def test_create_requires_payload_fields(svc, missing):
    fields = {"recipient_email": "a@example.org", "subject": "s", "body": "b"}
    fields[missing] = ""
    res = svc.create_email(**fields)
    assert not res.ok and res.data is None
    assert isinstance(res.error, ValidationError)
    assert str(res.error) == "Missing required fields: recipient_email, subject, body"


def test_create_rejects_non_positive_max_retries(svc):
    res = svc.create_email(recipient_email="a@example.org", subject="s", body="b", max_retries=0)
    assert isinstance(res.error, ValidationError)


def test_failures_retry_until_max_then_fail(svc):
    (msg,) = _queue(svc, max_retries=3)

    first = svc.mark_as_failed(msg.id, "smtp timeout").data
    assert (first.status, first.retry_count, first.last_error) == (STATUS_PENDING, 1, "smtp timeout")

    second = svc.mark_as_failed(msg.id, "smtp timeout").data
    assert (second.status, second.retry_count) == (STATUS_PENDING, 2)

    third = svc.mark_as_failed(msg.id, "mailbox full").data
    assert (third.status, third.retry_count, third.last_error) == (STATUS_FAILED, 3, "mailbox full")


def test_two_retry_scenario(svc):
    (msg,) = _queue(svc, max_retries=2)

    after_first = svc.mark_as_failed(msg.id, "timeout").data
    assert (after_first.status, after_first.retry_count, after_first.last_error) == (
        STATUS_PENDING, 1, "timeout",
    )

    after_second = svc.mark_as_failed(msg.id, "timeout2").data
    assert (after_second.status, after_second.retry_count, after_second.last_error) == (
        STATUS_FAILED, 2, "timeout2",
    )


def test_single_attempt_fails_immediately(svc):
    (msg,) = _queue(svc, max_retries=1)
    res = svc.mark_as_failed(msg.id, "bounced").data
    assert res.status == STATUS_FAILED
    assert res.retry_count == 1


def test_mark_as_failed_requires_error_message(svc):
    (msg,) = _queue(svc)
    res = svc.mark_as_failed(msg.id, "  ")
    assert isinstance(res.error, ValidationError)
    assert svc.get_email(msg.id).data.retry_count == 0


def test_mark_as_failed_unknown_id(svc):
    res = svc.mark_as_failed(404, "timeout")
    assert isinstance(res.error, NotFoundError)


def test_mark_as_sent_sets_sent_at(svc, clock):
    (msg,) = _queue(svc)
    clock.advance(seconds=30)
    sent = svc.mark_as_sent(msg.id).data
    assert sent.status == STATUS_SENT
    assert sent.sent_at == clock.now()
    assert sent.sent_at >= sent.created_at
    assert sent.updated_at == clock.now()


def test_retry_one_resets_from_any_state(svc):
    a, b = _queue(svc, n=2, max_retries=1)
    svc.mark_as_failed(a.id, "bounced")
    svc.mark_as_sent(b.id)

    for email_id in (a.id, b.id):
        msg = svc.retry_one(email_id).data
        assert (msg.status, msg.retry_count, msg.last_error) == (STATUS_PENDING, 0, None)


def test_retry_all_recoverable_skips_exhausted(svc):
    (exhausted,) = _queue(svc, max_retries=1)
    (recoverable,) = _queue(svc, max_retries=3)
    svc.mark_as_failed(exhausted.id, "bounced")
    # Operator parked this one by hand before its retries ran out
    svc.update_email(recoverable.id, {"status": STATUS_FAILED, "retry_count": 1})

    reset = svc.retry_all_recoverable().data
    assert [m.id for m in reset] == [recoverable.id]

    assert svc.get_email(recoverable.id).data.status == STATUS_PENDING
    untouched = svc.get_email(exhausted.id).data
    assert (untouched.status, untouched.retry_count) == (STATUS_FAILED, 1)


def test_retry_all_recoverable_with_nothing_failed(svc):
    _queue(svc, n=2)
    assert svc.retry_all_recoverable().data == []


def test_next_batch_is_oldest_pending_first(svc, clock):
    created = []
    for _ in range(4):
        created.extend(_queue(svc))
        clock.advance(minutes=1)
    svc.mark_as_sent(created[0].id)

    batch = svc.get_next_batch(2).data
    assert [m.id for m in batch] == [created[1].id, created[2].id]
    assert all(m.status == STATUS_PENDING for m in batch)
    assert batch[0].created_at <= batch[1].created_at


def test_failed_batch_is_newest_failure_first(svc, clock):
    msgs = _queue(svc, n=3, max_retries=1)
    for m in msgs:
        clock.advance(seconds=10)
        svc.mark_as_failed(m.id, "bounced")

    batch = svc.get_failed_batch(10).data
    assert [m.id for m in batch] == [msgs[2].id, msgs[1].id, msgs[0].id]
    assert all(m.status == STATUS_FAILED for m in batch)


def test_batch_limit_must_be_positive(svc):
    assert isinstance(svc.get_next_batch(0).error, ValidationError)


def test_delete_missing_returns_not_found(svc):
    res = svc.delete_email(12345)
    assert isinstance(res.error, NotFoundError)
    assert res.data is None


def test_delete_returns_id(svc):
    (msg,) = _queue(svc)
    assert svc.delete_email(msg.id).data == msg.id
    assert isinstance(svc.get_email(msg.id).error, NotFoundError)


def test_queue_stats_counts_every_row(svc):
    msgs = _queue(svc, n=8, max_retries=1)
    for m in msgs[5:7]:
        svc.mark_as_sent(m.id)
    svc.mark_as_failed(msgs[7].id, "bounced")

    assert svc.get_queue_stats().data == {
        "pending_count": 5,
        "sent_count": 2,
        "failed_count": 1,
        "in_progress_count": 0,
    }


def test_claims_never_overlap(svc):
    _queue(svc, n=5)
    first = svc.claim_next_batch(3).data
    second = svc.claim_next_batch(3).data

    assert len(first) == 3 and len(second) == 2
    assert not {m.id for m in first} & {m.id for m in second}
    assert all(m.status == STATUS_IN_PROGRESS for m in first + second)
    assert svc.get_next_batch(10).data == []


def test_release_stale_claims(svc, clock):
    old, fresh = _queue(svc, n=2)
    svc.claim_next_batch(1)
    clock.advance(minutes=20)
    svc.claim_next_batch(1)

    released = svc.release_stale_claims(900).data
    assert [m.id for m in released] == [old.id]
    assert svc.get_email(old.id).data.status == STATUS_PENDING
    assert svc.get_email(fresh.id).data.status == STATUS_IN_PROGRESS


def test_update_validates_status(svc):
    (msg,) = _queue(svc)
    assert isinstance(svc.update_email(msg.id, {"status": "bounced"}).error, ValidationError)
    assert isinstance(svc.update_email(msg.id, {"retry_count": -1}).error, ValidationError)
    assert isinstance(svc.update_email(msg.id, {}).error, ValidationError)


@pytest.mark.parametrize(
    "fields",
    [
        {"max_retries": 99},
        {"scheduled_at": None},
        {"subject": "Changed"},
        {"created_at": None},
        {"status": None},
        {"retry_count": None},
        {"retry_count": "2"},
        {"sent_at": "yesterday"},
    ],
)
def test_update_rejects_fixed_or_malformed_fields(svc, fields):
    (msg,) = _queue(svc, max_retries=3)
    res = svc.update_email(msg.id, fields)
    assert isinstance(res.error, ValidationError)
    assert svc.get_email(msg.id).data == msg


def test_mark_as_sent_goes_through_locked_modify(clock):
    calls = []

    class RecordingRepository(InMemoryEmailQueueRepository):
        def modify(self, email_id, change):
            calls.append(email_id)
            return super().modify(email_id, change)

    svc = EmailQueueService(RecordingRepository(clock), clock)
    (msg,) = _queue(svc)
    assert svc.mark_as_sent(msg.id).data.status == STATUS_SENT
    assert calls == [msg.id]


def test_list_filters_and_orders(svc, clock):
    msgs = []
    for _ in range(3):
        msgs.extend(_queue(svc))
        clock.advance(seconds=1)
    svc.mark_as_sent(msgs[1].id)

    newest_first = svc.list_emails().data
    assert [m.id for m in newest_first] == [msgs[2].id, msgs[1].id, msgs[0].id]

    pending_asc = svc.list_emails(status=STATUS_PENDING, order="asc").data
    assert [m.id for m in pending_asc] == [msgs[0].id, msgs[2].id]

    page = svc.list_emails(limit=1, offset=1).data
    assert [m.id for m in page] == [msgs[1].id]

    assert isinstance(svc.list_emails(order="sideways").error, ValidationError)
