from __future__ import annotations

import pytest

from railclub import config

BASE = "/api/email-queue"


@pytest.fixture()
def headers(make_user, auth_headers, queue_api_key):
    user = make_user()
    return {**auth_headers(user), "X-API-Key": queue_api_key}


def _create(client, headers, **overrides):
    payload = {
        "recipient_email": "secretary@example.org",
        "subject": "Board meeting",
        "body": "Tuesday 7pm in the clubhouse.",
    }
    payload.update(overrides)
    r = client.post(f"{BASE}/", json=payload, headers=headers)
    assert r.status_code == 201, r.text
    return r.json()["data"]


def test_missing_api_key_is_401(client, make_user, auth_headers):
    r = client.get(f"{BASE}/stats", headers=auth_headers(make_user()))
    assert r.status_code == 401
    assert r.json() == {"error": "Invalid API key"}


def test_wrong_api_key_is_401(client, make_user, auth_headers):
    r = client.get(f"{BASE}/stats", headers={**auth_headers(make_user()), "X-API-Key": "nope"})
    assert r.status_code == 401


def test_unconfigured_api_key_is_503(client, headers, monkeypatch):
    monkeypatch.setattr(config, "EMAIL_QUEUE_API_KEY", "")
    r = client.get(f"{BASE}/stats", headers=headers)
    assert r.status_code == 503


def test_bearer_session_still_required(client, queue_api_key):
    r = client.get(f"{BASE}/stats", headers={"X-API-Key": queue_api_key})
    assert r.status_code == 401


def test_create_returns_201_with_defaults(client, headers):
    data = _create(client, headers, html_body="<p>Tuesday</p>")
    assert data["status"] == "pending"
    assert data["retry_count"] == 0
    assert data["max_retries"] == 3
    assert data["sent_at"] is None
    assert data["html_body"] == "<p>Tuesday</p>"


def test_create_missing_fields_is_400(client, headers):
    r = client.post(f"{BASE}/", json={"subject": "No recipient"}, headers=headers)
    assert r.status_code == 400
    assert r.json() == {"error": "Missing required fields: recipient_email, subject, body"}


def test_get_unknown_is_404(client, headers):
    r = client.get(f"{BASE}/999", headers=headers)
    assert r.status_code == 404
    assert r.json() == {"error": "Email not found"}


def test_non_numeric_id_is_400(client, headers):
    r = client.get(f"{BASE}/abc", headers=headers)
    assert r.status_code == 400
    assert r.json() == {"error": "Invalid email ID"}


def test_sender_workflow(client, headers):
    first = _create(client, headers, max_retries=2)
    second = _create(client, headers)

    pending = client.get(f"{BASE}/pending/list", params={"limit": 10}, headers=headers).json()["data"]
    assert [m["id"] for m in pending] == [first["id"], second["id"]]

    r = client.post(f"{BASE}/{first['id']}/failed", json={"error": "timeout"}, headers=headers)
    assert r.status_code == 200
    assert (r.json()["data"]["status"], r.json()["data"]["retry_count"]) == ("pending", 1)

    r = client.post(f"{BASE}/{first['id']}/failed", json={"error": "timeout2"}, headers=headers)
    body = r.json()["data"]
    assert (body["status"], body["retry_count"], body["last_error"]) == ("failed", 2, "timeout2")

    sent = client.post(f"{BASE}/{second['id']}/sent", headers=headers).json()["data"]
    assert sent["status"] == "sent"
    assert sent["sent_at"] is not None

    stats = client.get(f"{BASE}/stats", headers=headers).json()["data"]
    assert stats == {"pending_count": 0, "sent_count": 1, "failed_count": 1, "in_progress_count": 0}

    failed = client.get(f"{BASE}/failed/list", headers=headers).json()["data"]
    assert [m["id"] for m in failed] == [first["id"]]

    retried = client.post(f"{BASE}/{first['id']}/retry", headers=headers).json()["data"]
    assert (retried["status"], retried["retry_count"], retried["last_error"]) == ("pending", 0, None)


def test_failed_requires_error_message(client, headers):
    msg = _create(client, headers)
    r = client.post(f"{BASE}/{msg['id']}/failed", json={}, headers=headers)
    assert r.status_code == 400


def test_retry_failed_skips_exhausted(client, headers):
    msg = _create(client, headers, max_retries=1)
    client.post(f"{BASE}/{msg['id']}/failed", json={"error": "bounced"}, headers=headers)

    r = client.post(f"{BASE}/retry-failed", headers=headers)
    assert r.status_code == 200
    assert r.json()["data"] == []


def test_claim_and_release(client, headers):
    ids = [_create(client, headers)["id"] for _ in range(3)]

    first = client.post(f"{BASE}/claim", params={"limit": 2}, headers=headers).json()["data"]
    second = client.post(f"{BASE}/claim", params={"limit": 2}, headers=headers).json()["data"]
    assert [m["id"] for m in first] == ids[:2]
    assert [m["id"] for m in second] == ids[2:]

    released = client.post(f"{BASE}/release-stale", params={"max_age_seconds": 3600}, headers=headers)
    assert released.status_code == 200
    assert released.json()["data"] == []


def test_update_and_delete(client, headers):
    msg = _create(client, headers)

    r = client.put(f"{BASE}/{msg['id']}", json={"status": "failed", "last_error": "manual"}, headers=headers)
    assert r.status_code == 200
    assert r.json()["data"]["status"] == "failed"

    bad = client.put(f"{BASE}/{msg['id']}", json={"status": "lost"}, headers=headers)
    assert bad.status_code == 400

    r = client.delete(f"{BASE}/{msg['id']}", headers=headers)
    assert r.json() == {"data": {"id": msg["id"]}}

    assert client.delete(f"{BASE}/{msg['id']}", headers=headers).status_code == 404


@pytest.mark.parametrize(
    "body",
    [
        {"max_retries": 99},
        {"recipient_email": "someone@example.org"},
        {"subject": "Changed"},
        {"body": "Changed"},
        {"created_at": "2025-01-01T00:00:00"},
        {"scheduled_at": "2025-01-01T00:00:00"},
    ],
)
def test_put_cannot_change_fixed_fields(client, headers, body):
    msg = _create(client, headers)

    r = client.put(f"{BASE}/{msg['id']}", json=body, headers=headers)
    assert r.status_code == 400

    after = client.get(f"{BASE}/{msg['id']}", headers=headers).json()["data"]
    assert after == msg


@pytest.mark.parametrize(
    "body",
    [
        {"retry_count": None},
        {"status": None},
        {"retry_count": "lots"},
        {"sent_at": "not a date"},
    ],
)
def test_put_with_null_or_wrong_type_is_400(client, headers, body):
    msg = _create(client, headers)
    r = client.put(f"{BASE}/{msg['id']}", json=body, headers=headers)
    assert r.status_code == 400
    assert "error" in r.json()


def test_list_filters_by_status(client, headers):
    a = _create(client, headers)
    b = _create(client, headers)
    client.post(f"{BASE}/{a['id']}/sent", headers=headers)

    rows = client.get(f"{BASE}/", params={"status": "pending"}, headers=headers).json()["data"]
    assert [m["id"] for m in rows] == [b["id"]]

    bad = client.get(f"{BASE}/", params={"order": "random"}, headers=headers)
    assert bad.status_code == 400
