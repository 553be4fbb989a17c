"""Team invitation lifecycle.

An invite is ``pending`` until it is either ``accepted`` or ``revoked``; both
are terminal. The token only means something while the invite is pending.
"""

from __future__ import annotations

import re
import secrets
from typing import Any

import structlog

from umlpro_service.clients.mail import Mailer
from umlpro_service.db.models import InviteStatus, TeamInviteModel
from umlpro_service.db.repositories.invites import InvitesRepo
from umlpro_service.db.repositories.teams import TeamsRepo
from umlpro_service.db.repositories.users import UsersRepo
from umlpro_service.domain.compensation import change_field, create_with_rollback
from umlpro_service.domain.teams import require_admin, require_team, validate_role
from umlpro_service.errors import (
    AuthorizationError,
    NotFoundError,
    ValidationError,
)

log = structlog.get_logger(__name__)

_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def new_invite_token() -> str:
    """32 random bytes, hex encoded."""
    return secrets.token_hex(32)


def _redact(token: str) -> str:
    return token[:4] + "..."


class InviteService:
    def __init__(
        self,
        users: UsersRepo,
        teams: TeamsRepo,
        invites: InvitesRepo,
        mailer: Mailer,
    ) -> None:
        self._users = users
        self._teams = teams
        self._invites = invites
        self._mailer = mailer

    async def create(
        self, team_id: int, inviter_id: int, email: Any, role: Any = None
    ) -> TeamInviteModel:
        """Persist a pending invite and mail its token.

        If the mail cannot be sent the invite row is deleted again.
        """
        if not email or not isinstance(email, str) or not _EMAIL_RE.match(email):
            raise ValidationError("Valid email is required")
        if role:
            validate_role(role)

        await require_admin(self._teams, inviter_id, team_id)
        team = await require_team(self._teams, team_id)
        team_name = team.name
        token = new_invite_token()

        async def _create() -> TeamInviteModel:
            return await self._invites.create(
                team_id=team_id,
                invited_by_id=inviter_id,
                email=email,
                role=role or team.default_role,
                token=token,
            )

        async def _send(invite: TeamInviteModel) -> None:
            await self._mailer.send_team_invite(email=email, team_name=team_name, token=token)

        async def _delete(invite: TeamInviteModel) -> None:
            if invite.id:
                await self._invites.delete(invite.id)
            else:
                await self._invites.delete_by_token(token)

        invite = await create_with_rollback(
            _create,
            _send,
            _delete,
            operation="invite_create",
            failure_message="Invite created but email failed to send and invite was deleted",
            team_id=team_id,
        )
        log.info("invite_created", team_id=team_id, invite_id=invite.id)
        return invite

    async def list_pending(self, team_id: int, actor_id: int) -> list[TeamInviteModel]:
        await require_admin(self._teams, actor_id, team_id)
        return await self._invites.list_pending(team_id)

    async def resend(self, team_id: int, actor_id: int, invite_id: int) -> TeamInviteModel:
        """Rotate the token and mail it again; the old token is restored on failure."""
        await require_admin(self._teams, actor_id, team_id)
        invite = await self._invites.get_by_id(invite_id, team_id)
        if invite is None:
            raise NotFoundError("Invite not found")
        if invite.status != InviteStatus.PENDING.value:
            raise ValidationError("Invite is not pending")
        team = await require_team(self._teams, team_id)
        team_name = team.name

        async def _send(rotated: TeamInviteModel) -> None:
            await self._mailer.send_team_invite(
                email=rotated.email, team_name=team_name, token=rotated.token
            )

        invite = await change_field(
            invite,
            "token",
            new_invite_token(),
            save=self._invites.save,
            effect=_send,
            operation="invite_resend",
            failure_message="Invite updated but email failed to send",
            team_id=team_id,
            invite_id=invite_id,
        )
        log.info("invite_resent", team_id=team_id, invite_id=invite_id)
        return invite

    async def revoke(self, team_id: int, actor_id: int, invite_id: int) -> None:
        await require_admin(self._teams, actor_id, team_id)
        # Accepted and revoked invites are reported as missing.
        if not await self._invites.revoke(invite_id, team_id):
            raise NotFoundError("Invite not found")
        log.info("invite_revoked", team_id=team_id, invite_id=invite_id)

    async def resolve(self, token: Any) -> TeamInviteModel:
        if not token or not isinstance(token, str):
            raise ValidationError("Invite token is required")
        invite = await self._invites.get_by_token(token)
        if invite is None or invite.status != InviteStatus.PENDING.value:
            raise NotFoundError("Invite not found")
        return invite

    async def accept(self, team_id: int, token: Any, user_id: int) -> None:
        """Join the invite's team.

        Safe to call concurrently for the same token: membership uniqueness
        is enforced by the database, and losing that race counts as success
        because the caller is a member either way. An invite revoked while
        the accept is in flight wins: no membership is kept and the invite
        is reported as missing.
        """
        if not token or not isinstance(token, str):
            raise ValidationError("Invite token is required")

        user = await self._users.get(user_id)
        if user is None:
            raise NotFoundError("User not found")

        invite = await self._invites.get_by_token(token, team_id=team_id)
        if invite is None:
            invite = await self._invites.get_by_token(token)
        if invite is None or invite.status != InviteStatus.PENDING.value:
            raise NotFoundError("Invite not found")

        if invite.email.lower() != user.email.lower():
            raise AuthorizationError("Invite email mismatch")

        # A failed insert rolls the session back and expires loaded rows.
        invite_id = invite.id
        invite_team_id = invite.team_id
        invite_role = invite.role

        existing = await self._teams.get_membership(user_id, invite_team_id)
        if existing is not None:
            log.info(
                "invite_accept_existing_member",
                team_id=invite_team_id,
                user_id=user_id,
                ignored_role=invite_role,
            )

        claim = await self._invites.accept(
            invite_id, invite_team_id, user_id, None if existing is not None else invite_role
        )
        if not claim.claimed:
            if claim.status == InviteStatus.ACCEPTED.value:
                log.info("invite_already_accepted", invite_id=invite_id, team_id=invite_team_id)
                return
            log.info(
                "invite_accept_lost",
                invite_id=invite_id,
                team_id=invite_team_id,
                status=claim.status,
                token=_redact(token),
            )
            raise NotFoundError("Invite not found")

        if existing is None and not claim.joined:
            log.info(
                "invite_accept_race_member_exists",
                team_id=invite_team_id,
                user_id=user_id,
                token=_redact(token),
            )
        log.info("invite_accepted", invite_id=invite_id, team_id=invite_team_id, user_id=user_id)
