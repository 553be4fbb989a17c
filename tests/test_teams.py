"""Team CRUD and rule endpoint tests."""

from __future__ import annotations

import pytest
from _fakes import auth_headers


def _team_with(env, role: str = "admin", custom_rules=None):
    user = env.users.seed()
    team = env.teams.seed_team(custom_rules=custom_rules)
    env.teams.seed_member(team.id, user.id, role)
    return user, team


# ---------------------------------------------------------------------------
# Create / list / get
# ---------------------------------------------------------------------------


def test_create_team_makes_creator_admin(client, env):
    user = env.users.seed()
    resp = client.post("/api/v1/teams/create", json={"name": "Design"}, headers=auth_headers(user))
    assert resp.status_code == 201
    team = resp.json()["team"]
    assert team["name"] == "Design"
    assert team["role"] == "admin"
    assert team["defaultRole"] == "member"
    assert env.teams.members_of(team["id"])[0].user_id == user.id


def test_create_team_requires_name(client, env):
    user = env.users.seed()
    resp = client.post("/api/v1/teams/create", json={}, headers=auth_headers(user))
    assert resp.status_code == 400


def test_create_team_rejects_invalid_rules(client, env):
    user = env.users.seed()
    resp = client.post(
        "/api/v1/teams/create",
        json={"name": "Design", "customRules": {"create": {"file": "yes"}}},
        headers=auth_headers(user),
    )
    assert resp.status_code == 400
    assert resp.json()["detail"] == "Invalid permissions payload"


def test_create_team_rejects_unknown_default_role(client, env):
    user = env.users.seed()
    resp = client.post(
        "/api/v1/teams/create",
        json={"name": "Design", "defaultRole": "owner"},
        headers=auth_headers(user),
    )
    assert resp.status_code == 400
    assert resp.json()["detail"] == "Invalid default role"


@pytest.mark.parametrize(
    "body",
    [
        {"name": 42},
        {"name": ["Design"]},
        {"name": "Design", "customRules": {"create": {"file": 1}}},
        {"name": "Design", "customRules": {"create": True}},
    ],
)
def test_create_team_rejects_mistyped_fields(client, env, body):
    user = env.users.seed()
    resp = client.post("/api/v1/teams/create", json=body, headers=auth_headers(user))
    assert resp.status_code == 400
    assert env.teams.members_of(1) == []


def test_list_teams_returns_only_memberships(client, env):
    user, team = _team_with(env, role="viewer")
    env.teams.seed_team(name="Someone else's")
    resp = client.get("/api/v1/teams/list", headers=auth_headers(user))
    assert resp.status_code == 200
    teams = resp.json()["teams"]
    assert [t["id"] for t in teams] == [team.id]
    assert teams[0]["role"] == "viewer"


def test_get_team_for_non_member_returns_403(client, env):
    user = env.users.seed()
    team = env.teams.seed_team()
    resp = client.get(f"/api/v1/teams/{team.id}/get", headers=auth_headers(user))
    assert resp.status_code == 403


def test_get_team_non_numeric_id_returns_400(client, env):
    user = env.users.seed()
    resp = client.get("/api/v1/teams/abc/get", headers=auth_headers(user))
    assert resp.status_code == 400


# ---------------------------------------------------------------------------
# Update / delete
# ---------------------------------------------------------------------------


def test_member_cannot_rename_team(client, env):
    user, team = _team_with(env, role="member")
    resp = client.patch(
        f"/api/v1/teams/{team.id}/update", json={"name": "Renamed"}, headers=auth_headers(user)
    )
    assert resp.status_code == 403
    assert team.name == "Acme"


def test_admin_updates_name_and_default_role(client, env):
    user, team = _team_with(env)
    resp = client.patch(
        f"/api/v1/teams/{team.id}/update",
        json={"name": "Renamed", "defaultRole": "viewer"},
        headers=auth_headers(user),
    )
    assert resp.status_code == 200
    assert team.name == "Renamed"
    assert team.default_role == "viewer"
    assert team.custom_rules is None


def test_delete_team_is_admin_only_and_soft(client, env):
    member, team = _team_with(env, role="member")
    resp = client.delete(f"/api/v1/teams/{team.id}/delete", headers=auth_headers(member))
    assert resp.status_code == 403

    admin = env.users.seed(email="admin@example.com", username="admin")
    env.teams.seed_member(team.id, admin.id, "admin")
    resp = client.delete(f"/api/v1/teams/{team.id}/delete", headers=auth_headers(admin))
    assert resp.status_code == 200
    assert team.deleted_at is not None

    resp = client.get(f"/api/v1/teams/{team.id}/get", headers=auth_headers(admin))
    assert resp.status_code == 404


# ---------------------------------------------------------------------------
# Rules
# ---------------------------------------------------------------------------


def test_admin_replaces_rules(client, env):
    user, team = _team_with(env, custom_rules={"read": {"file": False}})
    resp = client.patch(
        f"/api/v1/teams/{team.id}/rules",
        json={"customRules": {"create": {"file": None}}},
        headers=auth_headers(user),
    )
    assert resp.status_code == 200
    assert team.custom_rules == {"create": {"file": None}}
    assert resp.json()["team"]["customRules"] == {"create": {"file": None}}


def test_member_cannot_modify_rules(client, env):
    user, team = _team_with(env, role="member")
    resp = client.patch(
        f"/api/v1/teams/{team.id}/rules",
        json={"customRules": {"create": {"file": True}}},
        headers=auth_headers(user),
    )
    assert resp.status_code == 403
    assert resp.json()["detail"] == "Insufficient permissions"
    assert team.custom_rules is None


def test_invalid_rules_payload_returns_400_before_membership_check(client, env):
    user = env.users.seed()
    team = env.teams.seed_team()
    resp = client.patch(
        f"/api/v1/teams/{team.id}/rules", json={"customRules": []}, headers=auth_headers(user)
    )
    assert resp.status_code == 400


def test_rules_for_missing_team_returns_404(client, env):
    user = env.users.seed()
    team = env.teams.seed_team()
    env.teams.seed_member(team.id, user.id, "admin")
    team.deleted_at = team.created_at
    resp = client.patch(
        f"/api/v1/teams/{team.id}/rules",
        json={"customRules": {}},
        headers=auth_headers(user),
    )
    assert resp.status_code == 404


def test_get_effective_rules_applies_overrides(client, env):
    user, team = _team_with(env, role="member", custom_rules={"list": {"bucket": True}})
    resp = client.get(f"/api/v1/teams/{team.id}/rules", headers=auth_headers(user))
    assert resp.status_code == 200
    data = resp.json()
    assert data["role"] == "member"
    assert data["rules"]["list"] == {"bucket": True}
    assert data["rules"]["create"] == {"bucket": False, "file": True, "folder": True}
