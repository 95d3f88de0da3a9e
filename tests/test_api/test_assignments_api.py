"""
HTTP tests for /assignments.

Each test gets a fresh in-memory database with the standard roster (see
conftest.py) and signs requests with tokens for roster members.
"""
from __future__ import annotations


def test_tech_lists_own_open_assignments(client, api_roster, auth_headers):
    resp = client.get("/assignments", headers=auth_headers("t1"))

    assert resp.status_code == 200
    assert [a["id"] for a in resp.json()] == [api_roster.a1]


def test_include_canceled_query(client, api_roster, auth_headers):
    resp = client.get("/assignments", params={"include_canceled": "true"}, headers=auth_headers("t1"))

    assert {a["id"] for a in resp.json()} == {api_roster.a1, api_roster.a_cancelled}


def test_get_sets_etag(client, api_roster, auth_headers):
    resp = client.get(f"/assignments/{api_roster.a1}", headers=auth_headers("t1"))

    assert resp.status_code == 200
    assert resp.headers["ETag"] == '"1"'


def test_get_out_of_scope_is_404(client, api_roster, auth_headers):
    resp = client.get(f"/assignments/{api_roster.a2}", headers=auth_headers("t1"))

    assert resp.status_code == 404
    assert resp.json() == {"error": "NOT_FOUND", "message": "Assignment not found"}


def test_tech_starts_work(client, api_roster, auth_headers):
    resp = client.patch(f"/assignments/{api_roster.a1}", json={"status": "in_progress"}, headers=auth_headers("t1"))

    assert resp.status_code == 200
    body = resp.json()
    assert body["status"] == "in_progress"
    assert body["version"] == 2
    assert resp.headers["ETag"] == '"2"'


def test_tech_cancel_is_403_with_reason(client, api_roster, auth_headers):
    resp = client.patch(f"/assignments/{api_roster.a1}", json={"status": "cancelled"}, headers=auth_headers("t1"))

    assert resp.status_code == 403
    assert resp.json()["error"] == "TECH_CANNOT_CANCEL"
    assert resp.json()["details"] == {"field": "status"}


def test_tech_priority_is_403_field(client, api_roster, auth_headers):
    resp = client.patch(
        f"/assignments/{api_roster.a1}",
        json={"status": "in_progress", "priority": "high"},
        headers=auth_headers("t1"),
    )

    assert resp.status_code == 403
    assert resp.json()["error"] == "FIELD_NOT_PERMITTED"
    assert resp.json()["details"] == {"field": "priority"}


def test_invalid_transition_is_400(client, api_roster, auth_headers):
    resp = client.patch(f"/assignments/{api_roster.a1}", json={"status": "completed"}, headers=auth_headers("t1"))

    assert resp.status_code == 400
    assert resp.json()["error"] == "INVALID_TRANSITION"


def test_supervisor_other_team_patch_is_404(client, api_roster, auth_headers):
    resp = client.patch(f"/assignments/{api_roster.a2}", json={"notes": "hi"}, headers=auth_headers("s1"))

    assert resp.status_code == 404


def test_supervisor_cancels_with_legacy_spelling(client, api_roster, auth_headers):
    resp = client.patch(
        f"/assignments/{api_roster.a1}",
        json={"status": "canceled", "canceled_reason": "rescheduled"},
        headers=auth_headers("s1"),
    )

    assert resp.status_code == 200
    body = resp.json()
    assert body["status"] == "cancelled"
    assert body["canceled_reason"] == "rescheduled"
    assert body["canceled_at"] is not None


def test_stale_if_match_is_409(client, api_roster, auth_headers):
    resp = client.patch(
        f"/assignments/{api_roster.a1}",
        json={"notes": "gate code 1234"},
        headers={**auth_headers("t1"), "If-Match": '"9"'},
    )

    assert resp.status_code == 409
    assert resp.json()["error"] == "CONFLICT"


def test_matching_if_match_succeeds(client, api_roster, auth_headers):
    resp = client.patch(
        f"/assignments/{api_roster.a1}",
        json={"notes": "gate code 1234"},
        headers={**auth_headers("t1"), "If-Match": '"1"'},
    )

    assert resp.status_code == 200
    assert resp.json()["notes"] == "gate code 1234"


def test_unknown_field_is_422(client, api_roster, auth_headers):
    resp = client.patch(f"/assignments/{api_roster.a1}", json={"version": 5}, headers=auth_headers("admin"))

    assert resp.status_code == 422


def test_tech_cannot_create(client, api_roster, auth_headers):
    resp = client.post(
        "/assignments",
        json={"property_id": api_roster.mid, "technician_id": api_roster.t1, "scheduled_date": "2026-07-01T09:00:00Z"},
        headers=auth_headers("t1"),
    )

    assert resp.status_code == 403


def test_supervisor_creates_for_team(client, api_roster, auth_headers):
    resp = client.post(
        "/assignments",
        json={"property_id": api_roster.north, "technician_id": api_roster.t1, "scheduled_date": "2026-07-01T09:00:00Z"},
        headers=auth_headers("s1"),
    )

    assert resp.status_code == 201
    assert resp.json()["status"] == "pending"
    assert resp.json()["priority"] == "med"


def test_supervisor_creates_for_other_team_is_403(client, api_roster, auth_headers):
    resp = client.post(
        "/assignments",
        json={"property_id": api_roster.north, "technician_id": api_roster.t2, "scheduled_date": "2026-07-01T09:00:00Z"},
        headers=auth_headers("s1"),
    )

    assert resp.status_code == 403
    assert resp.json()["error"] == "NOT_SAME_TEAM"


def test_legacy_status_spelling_in_query(client, api_roster, auth_headers):
    resp = client.get("/assignments", params={"status": "canceled"}, headers=auth_headers("t1"))

    assert resp.status_code == 200
    assert [a["id"] for a in resp.json()] == [api_roster.a_cancelled]


def test_created_list_is_for_managers_only(client, api_roster, auth_headers):
    resp = client.get("/assignments/created", headers=auth_headers("t1"))

    assert resp.status_code == 403


def test_supervisor_created_list_is_team_scoped(client, api_roster, auth_headers):
    resp = client.get("/assignments/created", headers=auth_headers("s2"))

    assert resp.status_code == 200
    assert [a["id"] for a in resp.json()] == [api_roster.a2]


def test_admin_created_list_hides_cancelled_by_default(client, api_roster, auth_headers):
    default = client.get("/assignments/created", headers=auth_headers("admin")).json()
    everything = client.get(
        "/assignments/created", params={"include_canceled": "true"}, headers=auth_headers("admin")
    ).json()

    assert api_roster.a_cancelled not in {a["id"] for a in default}
    assert len(everything) == len(default) + 1
