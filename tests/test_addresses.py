from __future__ import annotations

import pytest

from railclub.errors import ConflictError, ValidationError
from railclub.services.addresses import create_address, number_taken, update_address


def test_number_unique_within_club(db_session, make_user, make_club):
    owner = make_user()
    club = make_club(members=[owner])
    create_address(db_session, club_id=club.id, user_id=owner.id, number=3, description="GP9 #3")

    with pytest.raises(ConflictError) as exc:
        create_address(db_session, club_id=club.id, user_id=owner.id, number=3, description="SD40")
    assert str(exc.value) == "Address number 3 already exists in this club"


def test_same_number_allowed_in_other_club(db_session, make_user, make_club):
    owner = make_user()
    east = make_club(name="East", members=[owner])
    west = make_club(name="West", members=[owner])
    create_address(db_session, club_id=east.id, user_id=owner.id, number=1234, description="Mikado")
    a = create_address(db_session, club_id=west.id, user_id=owner.id, number=1234, description="Mikado")
    assert a.club_id == west.id


def test_update_keeping_own_number(db_session, make_user, make_club):
    owner = make_user()
    club = make_club(members=[owner])
    a = create_address(db_session, club_id=club.id, user_id=owner.id, number=7, description="Switcher")
    other = create_address(db_session, club_id=club.id, user_id=owner.id, number=8, description="Road")

    same = update_address(db_session, a, {"number": 7, "in_use": True})
    assert (same.number, same.in_use) == (7, True)
    assert not number_taken(db_session, club_id=club.id, number=7, exclude_id=a.id)

    with pytest.raises(ConflictError):
        update_address(db_session, other, {"number": 7})


def test_address_endpoints(client, make_user, make_club, auth_headers):
    member = make_user()
    club = make_club(members=[member])
    headers = auth_headers(member)
    url = f"/api/clubs/{club.id}/addresses/"

    r = client.post(url, json={"number": 44, "description": "RS-3"}, headers=headers)
    assert r.status_code == 201
    created = r.json()["data"]
    assert created["user_id"] == member.id
    assert created["in_use"] is False

    r = client.post(url, json={"number": 44, "description": "Duplicate"}, headers=headers)
    assert r.status_code == 409
    assert r.json() == {"error": "Address number 44 already exists in this club"}

    r = client.put(f"{url}{created['id']}", json={"number": 44, "description": "RS-3 sound"}, headers=headers)
    assert r.status_code == 200

    assert [a["number"] for a in client.get(url, headers=headers).json()["data"]] == [44]

    assert client.delete(f"{url}{created['id']}", headers=headers).status_code == 200
    assert client.get(f"{url}{created['id']}", headers=headers).status_code == 404


def test_address_from_other_club_is_404(client, make_user, make_club, auth_headers):
    member = make_user()
    home = make_club(name="Home", members=[member])
    away = make_club(name="Away", members=[member])
    headers = auth_headers(member)

    r = client.post(f"/api/clubs/{away.id}/addresses/", json={"number": 5, "description": "x"}, headers=headers)
    address_id = r.json()["data"]["id"]

    assert client.get(f"/api/clubs/{home.id}/addresses/{address_id}", headers=headers).status_code == 404


@pytest.fixture()
def two_members(make_user, make_club, auth_headers):
    alice = make_user(username="alice")
    bob = make_user(username="bob")
    club = make_club(members=[alice, bob])
    return club, alice, bob, auth_headers(alice), auth_headers(bob)


def test_members_only_manage_their_own_addresses(client, two_members):
    club, alice, bob, alice_headers, bob_headers = two_members
    url = f"/api/clubs/{club.id}/addresses/"

    r = client.post(url, json={"number": 10, "description": "Alice's Pacific"}, headers=alice_headers)
    address_id = r.json()["data"]["id"]

    r = client.put(f"{url}{address_id}", json={"in_use": True}, headers=bob_headers)
    assert r.status_code == 403
    assert r.json() == {"error": "You can only edit your own addresses"}

    r = client.delete(f"{url}{address_id}", headers=bob_headers)
    assert r.status_code == 403
    assert r.json() == {"error": "You can only delete your own addresses"}

    r = client.post(url, json={"number": 11, "description": "Sneaky", "user_id": alice.id}, headers=bob_headers)
    assert r.status_code == 403
    assert r.json() == {"error": "You can only create addresses for yourself"}

    r = client.put(f"{url}{address_id}", json={"user_id": bob.id}, headers=alice_headers)
    assert r.status_code == 403

    assert client.get(f"{url}{address_id}", headers=bob_headers).json()["data"]["in_use"] is False


def test_admin_assigns_addresses_to_members(client, make_user, two_members, auth_headers):
    club, alice, bob, _, _ = two_members
    admin_headers = auth_headers(make_user(role="admin"))
    url = f"/api/clubs/{club.id}/addresses/"

    r = client.post(url, json={"number": 20, "description": "Club switcher", "user_id": alice.id}, headers=admin_headers)
    assert r.status_code == 201
    address_id = r.json()["data"]["id"]

    r = client.put(f"{url}{address_id}", json={"user_id": bob.id}, headers=admin_headers)
    assert r.json()["data"]["user_id"] == bob.id

    r = client.post(url, json={"number": 21, "description": "Ghost", "user_id": 9999}, headers=admin_headers)
    assert r.status_code == 404
    assert r.json() == {"error": "User not found"}

    outsider = make_user()
    r = client.post(url, json={"number": 22, "description": "Visitor", "user_id": outsider.id}, headers=admin_headers)
    assert r.status_code == 400
    assert r.json() == {"error": "Address owner does not belong to this club"}


def test_missing_owner_is_not_reported_as_number_conflict(db_session, make_user, make_club):
    owner = make_user()
    club = make_club(members=[owner])

    with pytest.raises(ValidationError) as exc:
        create_address(db_session, club_id=club.id, user_id=9999, number=30, description="Orphan")
    assert str(exc.value) == "Address references a missing user or club"
    assert not number_taken(db_session, club_id=club.id, number=30)
