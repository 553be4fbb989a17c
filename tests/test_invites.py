"""Invite lifecycle tests: create, resend, revoke, resolve and accept."""

from __future__ import annotations

import asyncio

import pytest
from _fakes import FakeInvitesRepo, FakeTeamsRepo, auth_headers

from umlpro_service.domain.invites import InviteService
from umlpro_service.errors import NotFoundError


def _admin_team(env, default_role: str = "member"):
    admin = env.users.seed(email="admin@example.com", username="admin")
    team = env.teams.seed_team(default_role=default_role)
    env.teams.seed_member(team.id, admin.id, "admin")
    return admin, team


def _service(env, teams=None, invites=None) -> InviteService:
    return InviteService(env.users, teams or env.teams, invites or env.invites, env.mailer)


# ---------------------------------------------------------------------------
# Create
# ---------------------------------------------------------------------------


def test_create_invite_sends_token(client, env):
    admin, team = _admin_team(env)
    resp = client.post(
        f"/api/v1/teams/{team.id}/members/invite",
        json={"email": "new@example.com", "role": "viewer"},
        headers=auth_headers(admin),
    )
    assert resp.status_code == 201
    invite = resp.json()["invite"]
    assert invite["role"] == "viewer"
    assert len(invite["token"]) == 64
    kind, sent = env.mailer.sent[0]
    assert kind == "team_invite"
    assert sent == {"email": "new@example.com", "team_name": "Acme", "token": invite["token"]}


def test_create_invite_defaults_to_team_role(client, env):
    admin, team = _admin_team(env, default_role="viewer")
    resp = client.post(
        f"/api/v1/teams/{team.id}/members/invite",
        json={"email": "new@example.com"},
        headers=auth_headers(admin),
    )
    assert resp.status_code == 201
    assert resp.json()["invite"]["role"] == "viewer"


def test_create_invite_deleted_when_mail_fails(client, env):
    admin, team = _admin_team(env)
    env.mailer.fail = True
    resp = client.post(
        f"/api/v1/teams/{team.id}/members/invite",
        json={"email": "new@example.com"},
        headers=auth_headers(admin),
    )
    assert resp.status_code == 500
    assert resp.json()["detail"] == "Invite created but email failed to send and invite was deleted"
    assert env.invites.all() == []


@pytest.mark.parametrize(
    "body",
    [{}, {"email": "nope"}, {"email": 7}, {"email": "a@b.c", "role": "owner"}],
)
def test_create_invite_validation_returns_400(client, env, body):
    admin, team = _admin_team(env)
    resp = client.post(
        f"/api/v1/teams/{team.id}/members/invite", json=body, headers=auth_headers(admin)
    )
    assert resp.status_code == 400
    assert env.invites.all() == []
    assert env.mailer.sent == []


def test_create_invite_bad_email_message(client, env):
    admin, team = _admin_team(env)
    resp = client.post(
        f"/api/v1/teams/{team.id}/members/invite",
        json={"email": "not-an-email"},
        headers=auth_headers(admin),
    )
    assert resp.status_code == 400
    assert resp.json()["detail"] == "Valid email is required"


def test_non_admin_cannot_invite(client, env):
    _, team = _admin_team(env)
    member = env.users.seed(email="m@example.com", username="m")
    env.teams.seed_member(team.id, member.id, "member")
    resp = client.post(
        f"/api/v1/teams/{team.id}/members/invite",
        json={"email": "new@example.com"},
        headers=auth_headers(member),
    )
    assert resp.status_code == 403


def test_list_pending_invites(client, env):
    admin, team = _admin_team(env)
    env.invites.seed(team.id, "a@example.com", token="t1")
    env.invites.seed(team.id, "b@example.com", token="t2", status="revoked")
    resp = client.get(f"/api/v1/teams/{team.id}/members/invite/list", headers=auth_headers(admin))
    assert resp.status_code == 200
    invites = resp.json()["invites"]
    assert [i["email"] for i in invites] == ["a@example.com"]
    assert invites[0]["token"] is None


# ---------------------------------------------------------------------------
# Resend / revoke
# ---------------------------------------------------------------------------


def test_resend_rotates_token(client, env):
    admin, team = _admin_team(env)
    invite = env.invites.seed(team.id, "a@example.com", token="original")
    resp = client.post(
        f"/api/v1/teams/{team.id}/members/invite/resend",
        json={"inviteId": invite.id},
        headers=auth_headers(admin),
    )
    assert resp.status_code == 200
    assert invite.token != "original"
    assert env.mailer.sent[0][1]["token"] == invite.token


def test_resend_restores_token_when_mail_fails(client, env):
    admin, team = _admin_team(env)
    invite = env.invites.seed(team.id, "a@example.com", token="original")
    env.mailer.fail = True
    resp = client.post(
        f"/api/v1/teams/{team.id}/members/invite/resend",
        json={"inviteId": invite.id},
        headers=auth_headers(admin),
    )
    assert resp.status_code == 500
    assert invite.token == "original"
    assert invite.status == "pending"
    # Exactly one rotation followed by one revert.
    assert env.invites.saves == 2


def test_resend_non_pending_returns_400(client, env):
    admin, team = _admin_team(env)
    invite = env.invites.seed(team.id, "a@example.com", status="accepted")
    resp = client.post(
        f"/api/v1/teams/{team.id}/members/invite/resend",
        json={"inviteId": invite.id},
        headers=auth_headers(admin),
    )
    assert resp.status_code == 400


def test_resend_missing_invite_id_returns_400(client, env):
    admin, team = _admin_team(env)
    resp = client.post(
        f"/api/v1/teams/{team.id}/members/invite/resend", json={}, headers=auth_headers(admin)
    )
    assert resp.status_code == 400


def test_revoke_is_terminal(client, env):
    admin, team = _admin_team(env)
    invitee = env.users.seed(email="a@example.com", username="a")
    invite = env.invites.seed(team.id, "a@example.com", token="tok")
    resp = client.post(
        f"/api/v1/teams/{team.id}/members/invite/revoke",
        json={"inviteId": invite.id},
        headers=auth_headers(admin),
    )
    assert resp.status_code == 200
    assert invite.status == "revoked"

    resp = client.post(
        f"/api/v1/teams/{team.id}/members/invite/accept",
        json={"token": "tok"},
        headers=auth_headers(invitee),
    )
    assert resp.status_code == 404
    assert all(m.user_id != invitee.id for m in env.teams.members_of(team.id))

    resp = client.post(
        f"/api/v1/teams/{team.id}/members/invite/revoke",
        json={"inviteId": invite.id},
        headers=auth_headers(admin),
    )
    assert resp.status_code == 404


# ---------------------------------------------------------------------------
# Resolve / accept
# ---------------------------------------------------------------------------


def test_resolve_is_public(client, env):
    _, team = _admin_team(env)
    env.invites.seed(team.id, "a@example.com", token="tok")
    resp = client.get("/api/v1/invites/resolve", params={"token": "tok"})
    assert resp.status_code == 200
    assert resp.json() == {"teamId": team.id, "email": "a@example.com"}


def test_resolve_unknown_token_returns_404(client):
    resp = client.get("/api/v1/invites/resolve", params={"token": "missing"})
    assert resp.status_code == 404


def test_accept_adds_membership_with_invite_role(client, env):
    _, team = _admin_team(env)
    invitee = env.users.seed(email="a@example.com", username="a")
    invite = env.invites.seed(team.id, "A@Example.com", token="tok", role="viewer")
    resp = client.post(
        f"/api/v1/teams/{team.id}/members/invite/accept",
        json={"token": "tok"},
        headers=auth_headers(invitee),
    )
    assert resp.status_code == 200
    membership = [m for m in env.teams.members_of(team.id) if m.user_id == invitee.id]
    assert [m.role for m in membership] == ["viewer"]
    assert invite.status == "accepted"
    assert invite.accepted_at is not None


def test_accept_with_other_email_returns_403(client, env):
    _, team = _admin_team(env)
    intruder = env.users.seed(email="eve@example.com", username="eve")
    invite = env.invites.seed(team.id, "a@example.com", token="tok")
    resp = client.post(
        f"/api/v1/teams/{team.id}/members/invite/accept",
        json={"token": "tok"},
        headers=auth_headers(intruder),
    )
    assert resp.status_code == 403
    assert invite.status == "pending"
    assert all(m.user_id != intruder.id for m in env.teams.members_of(team.id))


def test_accept_falls_back_to_token_only_lookup(client, env):
    _, team = _admin_team(env)
    invitee = env.users.seed(email="a@example.com", username="a")
    env.invites.seed(team.id, "a@example.com", token="tok")
    resp = client.post(
        "/api/v1/teams/999/members/invite/accept",
        json={"token": "tok"},
        headers=auth_headers(invitee),
    )
    assert resp.status_code == 200
    assert any(m.user_id == invitee.id for m in env.teams.members_of(team.id))


def test_accept_keeps_existing_role(client, env):
    _, team = _admin_team(env)
    invitee = env.users.seed(email="a@example.com", username="a")
    env.teams.seed_member(team.id, invitee.id, "admin")
    invite = env.invites.seed(team.id, "a@example.com", token="tok", role="viewer")
    resp = client.post(
        f"/api/v1/teams/{team.id}/members/invite/accept",
        json={"token": "tok"},
        headers=auth_headers(invitee),
    )
    assert resp.status_code == 200
    roles = [m.role for m in env.teams.members_of(team.id) if m.user_id == invitee.id]
    assert roles == ["admin"]
    assert invite.status == "accepted"


def test_accept_missing_token_returns_400(client, env):
    _, team = _admin_team(env)
    invitee = env.users.seed(email="a@example.com", username="a")
    resp = client.post(
        f"/api/v1/teams/{team.id}/members/invite/accept", json={}, headers=auth_headers(invitee)
    )
    assert resp.status_code == 400


class _InterleavingTeamsRepo(FakeTeamsRepo):
    """Both callers read "not a member" before either inserts."""

    def __init__(self, parties: int):
        super().__init__()
        self._barrier = asyncio.Barrier(parties)

    async def get_membership(self, user_id, team_id):
        membership = await super().get_membership(user_id, team_id)
        await self._barrier.wait()
        return membership


@pytest.mark.asyncio
async def test_concurrent_accepts_both_succeed_with_one_membership(env):
    teams = _InterleavingTeamsRepo(parties=2)
    team = teams.seed_team()
    invitee = env.users.seed(email="a@example.com", username="a")
    invites = FakeInvitesRepo(teams)
    invite = invites.seed(team.id, "a@example.com", token="tok")
    service = _service(env, teams=teams, invites=invites)

    results = await asyncio.gather(
        service.accept(team.id, "tok", invitee.id),
        service.accept(team.id, "tok", invitee.id),
        return_exceptions=True,
    )

    assert results == [None, None]
    assert len(teams.members_of(team.id)) == 1
    assert invite.status == "accepted"


@pytest.mark.asyncio
async def test_accept_after_accept_returns_not_found(env):
    _, team = _admin_team(env)
    invitee = env.users.seed(email="a@example.com", username="a")
    env.invites.seed(team.id, "a@example.com", token="tok")
    service = _service(env)

    await service.accept(team.id, "tok", invitee.id)
    with pytest.raises(NotFoundError):
        await service.accept(team.id, "tok", invitee.id)


class _RevokingTeamsRepo(FakeTeamsRepo):
    """An admin revokes the invite between the accept's read and its write."""

    def __init__(self):
        super().__init__()
        self.invites: FakeInvitesRepo | None = None
        self.invite_id: int | None = None

    async def get_membership(self, user_id, team_id):
        membership = await super().get_membership(user_id, team_id)
        if self.invite_id is not None:
            await self.invites.revoke(self.invite_id, team_id)
            self.invite_id = None
        return membership


@pytest.mark.asyncio
async def test_revoke_during_accept_wins(env):
    teams = _RevokingTeamsRepo()
    invites = FakeInvitesRepo(teams)
    team = teams.seed_team()
    invitee = env.users.seed(email="a@example.com", username="a")
    invite = invites.seed(team.id, "a@example.com", token="tok")
    teams.invites, teams.invite_id = invites, invite.id

    with pytest.raises(NotFoundError):
        await _service(env, teams=teams, invites=invites).accept(team.id, "tok", invitee.id)

    assert invite.status == "revoked"
    assert teams.members_of(team.id) == []


@pytest.mark.asyncio
async def test_revoke_after_accept_returns_not_found(env):
    admin, team = _admin_team(env)
    invitee = env.users.seed(email="a@example.com", username="a")
    invite = env.invites.seed(team.id, "a@example.com", token="tok")
    service = _service(env)

    await service.accept(team.id, "tok", invitee.id)
    with pytest.raises(NotFoundError):
        await service.revoke(team.id, admin.id, invite.id)

    assert invite.status == "accepted"
    assert any(m.user_id == invitee.id for m in env.teams.members_of(team.id))


class _BrokenInsertTeamsRepo(FakeTeamsRepo):
    async def add_member(self, team_id, user_id, role):
        raise RuntimeError("connection reset")


@pytest.mark.asyncio
async def test_accept_insert_failure_leaves_invite_pending(env):
    teams = _BrokenInsertTeamsRepo()
    invites = FakeInvitesRepo(teams)
    team = teams.seed_team()
    invitee = env.users.seed(email="a@example.com", username="a")
    invite = invites.seed(team.id, "a@example.com", token="tok")

    with pytest.raises(RuntimeError):
        await _service(env, teams=teams, invites=invites).accept(team.id, "tok", invitee.id)

    assert invite.status == "pending"
    assert invite.accepted_at is None
    assert teams.members_of(team.id) == []
