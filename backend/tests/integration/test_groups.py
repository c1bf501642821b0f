"""
tests/integration/test_groups.py — Integration tests for group and member endpoints.

Endpoints covered:
  POST   /groups                  → 201
  GET    /groups                  → 200
  GET    /groups/:id              → 200 / 403 / 404
  PATCH  /groups/:id              → 200 / 403
  DELETE /groups/:id              → 200 / 403 (cascades to events)
  POST   /groups/:id/join         → 200 (idempotent)
  POST   /groups/:id/members      → 201 (append-union)
  PUT    /groups/:id/members      → 200 / 403 / 400 DUPLICATE_MEMBER
"""

from __future__ import annotations

from .conftest import (
    ALICE,
    BOB,
    CAROL,
    auth_headers,
    event_url,
    join_group,
    make_event,
    make_group,
    make_trio,
)


def _group_url(group_id: int, suffix: str = "") -> str:
    return f"/api/v1/groups/{group_id}{suffix}"


# ═══════════════════════════════════════════════════════════════════════════
# Create / list / get
# ═══════════════════════════════════════════════════════════════════════════

class TestCreateGroup:

    def test_creator_is_owner_and_first_member(self, client):
        group = make_group(client, ALICE, "Okinawa")
        assert group["name"] == "Okinawa"
        assert group["owner_id"] == "alice"
        assert group["members"] == [{"id": "alice", "name": "Alice"}]
        assert group["created_at"]

    def test_owner_name_overrides_token_name(self, client):
        resp = client.post(
            "/api/v1/groups/",
            json={"name": "Trip", "owner_name": "Ali"},
            headers=auth_headers(ALICE),
        )
        assert resp.status_code == 201
        assert resp.get_json()["data"]["members"] == [{"id": "alice", "name": "Ali"}]

    def test_blank_name_returns_400(self, client):
        resp = client.post("/api/v1/groups/", json={"name": "   "}, headers=auth_headers(ALICE))
        assert resp.status_code == 400
        error = resp.get_json()["error"]
        assert error["code"] == "INVALID_FIELD"
        assert error["field"] == "name"


class TestListAndGetGroups:

    def test_list_returns_only_callers_groups_oldest_first(self, client):
        first = make_group(client, ALICE, "First")
        second = make_group(client, ALICE, "Second")
        make_group(client, BOB, "Bob's")

        resp = client.get("/api/v1/groups/", headers=auth_headers(ALICE))

        assert resp.status_code == 200
        assert [g["id"] for g in resp.get_json()["data"]] == [first["id"], second["id"]]

    def test_joined_group_is_listed(self, client):
        group = make_group(client, ALICE)
        join_group(client, BOB, group["id"])

        resp = client.get("/api/v1/groups/", headers=auth_headers(BOB))
        assert [g["id"] for g in resp.get_json()["data"]] == [group["id"]]

    def test_get_group_returns_members_in_join_order(self, client):
        group = make_trio(client)
        resp = client.get(_group_url(group["id"]), headers=auth_headers(BOB))

        assert resp.status_code == 200
        assert [m["id"] for m in resp.get_json()["data"]["members"]] == ["alice", "bob", "carol"]

    def test_non_member_gets_403(self, client):
        group = make_group(client, ALICE)
        resp = client.get(_group_url(group["id"]), headers=auth_headers(BOB))
        assert resp.status_code == 403
        assert resp.get_json()["error"]["code"] == "FORBIDDEN"

    def test_unknown_group_returns_404(self, client):
        resp = client.get(_group_url(99999), headers=auth_headers(ALICE))
        assert resp.status_code == 404
        assert resp.get_json()["error"]["code"] == "GROUP_NOT_FOUND"


# ═══════════════════════════════════════════════════════════════════════════
# Join / members
# ═══════════════════════════════════════════════════════════════════════════

class TestJoin:

    def test_join_adds_caller_under_token_name(self, client):
        group = make_group(client, ALICE)
        data = join_group(client, BOB, group["id"])
        assert data["members"] == [
            {"id": "alice", "name": "Alice"},
            {"id": "bob", "name": "Bob"},
        ]

    def test_join_with_custom_name(self, client):
        group = make_group(client, ALICE)
        resp = client.post(
            _group_url(group["id"], "/join"),
            json={"name": "Bobby"},
            headers=auth_headers(BOB),
        )
        assert resp.get_json()["data"]["members"][1] == {"id": "bob", "name": "Bobby"}

    def test_join_is_idempotent(self, client):
        group = make_group(client, ALICE)
        join_group(client, BOB, group["id"])
        data = join_group(client, BOB, group["id"])
        assert [m["id"] for m in data["members"]] == ["alice", "bob"]

    def test_join_without_body(self, client):
        group = make_group(client, ALICE)
        resp = client.post(_group_url(group["id"], "/join"), headers=auth_headers(BOB))
        assert resp.status_code == 200

    def test_join_unknown_group_returns_404(self, client):
        resp = client.post(_group_url(99999, "/join"), json={}, headers=auth_headers(BOB))
        assert resp.status_code == 404


class TestAddMember:

    def test_named_participant_gets_generated_id(self, client):
        group = make_group(client, ALICE)
        resp = client.post(
            _group_url(group["id"], "/members"),
            json={"name": "Grandma"},
            headers=auth_headers(ALICE),
        )
        assert resp.status_code == 201
        members = resp.get_json()["data"]["members"]
        assert members[1]["name"] == "Grandma"
        assert len(members[1]["id"]) == 32

    def test_existing_id_is_not_duplicated(self, client):
        group = make_group(client, ALICE)
        resp = client.post(
            _group_url(group["id"], "/members"),
            json={"id": "alice", "name": "Someone else"},
            headers=auth_headers(ALICE),
        )
        assert resp.status_code == 201
        assert resp.get_json()["data"]["members"] == [{"id": "alice", "name": "Alice"}]

    def test_any_member_may_add(self, client):
        group = make_group(client, ALICE)
        join_group(client, BOB, group["id"])
        resp = client.post(
            _group_url(group["id"], "/members"),
            json={"id": "dan", "name": "Dan"},
            headers=auth_headers(BOB),
        )
        assert resp.status_code == 201
        assert len(resp.get_json()["data"]["members"]) == 3

    def test_non_member_gets_403(self, client):
        group = make_group(client, ALICE)
        resp = client.post(
            _group_url(group["id"], "/members"),
            json={"name": "Dan"},
            headers=auth_headers(BOB),
        )
        assert resp.status_code == 403


class TestReplaceMembers:

    def test_owner_rewrites_member_set(self, client):
        group = make_trio(client)
        resp = client.put(
            _group_url(group["id"], "/members"),
            json={"members": [
                {"id": "alice", "name": "Alice A."},
                {"id": "carol", "name": "Carol"},
                {"name": "Dan"},
            ]},
            headers=auth_headers(ALICE),
        )
        assert resp.status_code == 200
        members = resp.get_json()["data"]["members"]
        assert [m["name"] for m in members] == ["Alice A.", "Carol", "Dan"]
        assert "bob" not in [m["id"] for m in members]

    def test_removed_member_loses_access(self, client):
        group = make_trio(client)
        client.put(
            _group_url(group["id"], "/members"),
            json={"members": [{"id": "alice", "name": "Alice"}]},
            headers=auth_headers(ALICE),
        )
        resp = client.get(_group_url(group["id"]), headers=auth_headers(BOB))
        assert resp.status_code == 403

    def test_non_owner_gets_403(self, client):
        group = make_trio(client)
        resp = client.put(
            _group_url(group["id"], "/members"),
            json={"members": [{"id": "bob", "name": "Bob"}]},
            headers=auth_headers(BOB),
        )
        assert resp.status_code == 403
        assert resp.get_json()["error"]["code"] == "FORBIDDEN"

    def test_duplicate_ids_return_400_duplicate_member(self, client):
        group = make_group(client, ALICE)
        resp = client.put(
            _group_url(group["id"], "/members"),
            json={"members": [{"id": "x", "name": "X"}, {"id": "x", "name": "Y"}]},
            headers=auth_headers(ALICE),
        )
        assert resp.status_code == 400
        error = resp.get_json()["error"]
        assert error["code"] == "DUPLICATE_MEMBER"
        assert error["field"] == "members"


# ═══════════════════════════════════════════════════════════════════════════
# Rename / delete
# ═══════════════════════════════════════════════════════════════════════════

class TestRenameAndDelete:

    def test_owner_renames(self, client):
        group = make_group(client, ALICE)
        resp = client.patch(_group_url(group["id"]), json={"name": "Renamed"}, headers=auth_headers(ALICE))
        assert resp.status_code == 200
        assert resp.get_json()["data"]["name"] == "Renamed"

    def test_member_cannot_rename(self, client):
        group = make_group(client, ALICE)
        join_group(client, BOB, group["id"])
        resp = client.patch(_group_url(group["id"]), json={"name": "Mine"}, headers=auth_headers(BOB))
        assert resp.status_code == 403

    def test_owner_deletes_group_and_its_events(self, client):
        group = make_group(client, ALICE)
        event = make_event(client, ALICE, group["id"])

        resp = client.delete(_group_url(group["id"]), headers=auth_headers(ALICE))
        assert resp.status_code == 200
        assert resp.get_json()["data"] == {"deleted": True, "group_id": group["id"]}

        resp = client.get(event_url(group["id"], event["id"]), headers=auth_headers(ALICE))
        assert resp.status_code == 404
        assert resp.get_json()["error"]["code"] == "GROUP_NOT_FOUND"

    def test_member_cannot_delete(self, client):
        group = make_trio(client)
        resp = client.delete(_group_url(group["id"]), headers=auth_headers(CAROL))
        assert resp.status_code == 403
