"""Repository for team invitations."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from umlpro_service.db.integrity import commit, is_unique_violation
from umlpro_service.db.models import InviteStatus, TeamInviteModel, TeamMemberModel


@dataclass
class InviteClaim:
    """Outcome of :meth:`InvitesRepo.accept`.

    ``claimed`` is True when this call moved the invite out of pending.
    Otherwise ``status`` is what a concurrent request left behind (None if
    the row is gone). ``joined`` is True when this call inserted the
    membership.
    """

    claimed: bool
    status: str | None
    joined: bool = False


class InvitesRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(
        self,
        team_id: int,
        invited_by_id: int,
        email: str,
        role: str,
        token: str,
    ) -> TeamInviteModel:
        invite = TeamInviteModel(
            team_id=team_id,
            invited_by_id=invited_by_id,
            email=email,
            role=role,
            token=token,
            status=InviteStatus.PENDING.value,
        )
        self._session.add(invite)
        await commit(self._session, "Invite token collision")
        await self._session.refresh(invite)
        return invite

    async def get_by_id(self, invite_id: int, team_id: int) -> TeamInviteModel | None:
        result = await self._session.execute(
            select(TeamInviteModel).where(
                TeamInviteModel.id == invite_id,
                TeamInviteModel.team_id == team_id,
            )
        )
        return result.scalars().first()

    async def get_by_token(self, token: str, team_id: int | None = None) -> TeamInviteModel | None:
        query = select(TeamInviteModel).where(TeamInviteModel.token == token)
        if team_id is not None:
            query = query.where(TeamInviteModel.team_id == team_id)
        result = await self._session.execute(query)
        return result.scalars().first()

    async def list_pending(self, team_id: int) -> list[TeamInviteModel]:
        result = await self._session.execute(
            select(TeamInviteModel)
            .where(
                TeamInviteModel.team_id == team_id,
                TeamInviteModel.status == InviteStatus.PENDING.value,
            )
            .order_by(TeamInviteModel.created_at.desc(), TeamInviteModel.id.desc())
        )
        return list(result.scalars().all())

    async def save(self, invite: TeamInviteModel) -> TeamInviteModel:
        self._session.add(invite)
        await commit(self._session, "Invite token collision")
        return invite

    async def delete(self, invite_id: int) -> None:
        await self._session.execute(delete(TeamInviteModel).where(TeamInviteModel.id == invite_id))
        await self._session.commit()

    async def delete_by_token(self, token: str) -> None:
        await self._session.execute(delete(TeamInviteModel).where(TeamInviteModel.token == token))
        await self._session.commit()

    async def revoke(self, invite_id: int, team_id: int) -> bool:
        """Move a pending invite to revoked. False if it was not pending."""
        result = await self._session.execute(
            update(TeamInviteModel)
            .where(
                TeamInviteModel.id == invite_id,
                TeamInviteModel.team_id == team_id,
                TeamInviteModel.status == InviteStatus.PENDING.value,
            )
            .values(status=InviteStatus.REVOKED.value)
            .execution_options(synchronize_session=False)
        )
        await self._session.commit()
        return result.rowcount == 1

    async def accept(
        self, invite_id: int, team_id: int, user_id: int, role: str | None
    ) -> InviteClaim:
        """Add the membership and claim the invite in one transaction.

        ``role=None`` skips the membership insert. A unique violation on the
        insert means the user is already a member and is not an error. The
        claim only matches a pending invite; when it matches nothing the
        membership insert is rolled back and the status that won is returned.
        """
        joined = False
        if role is not None:
            self._session.add(TeamMemberModel(team_id=team_id, user_id=user_id, role=role))
            try:
                await self._session.flush()
                joined = True
            except IntegrityError as exc:
                await self._session.rollback()
                if not is_unique_violation(exc):
                    raise

        result = await self._session.execute(
            update(TeamInviteModel)
            .where(
                TeamInviteModel.id == invite_id,
                TeamInviteModel.status == InviteStatus.PENDING.value,
            )
            .values(status=InviteStatus.ACCEPTED.value, accepted_at=datetime.now(UTC))
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            await self._session.rollback()
            status = await self._session.scalar(
                select(TeamInviteModel.status).where(TeamInviteModel.id == invite_id)
            )
            return InviteClaim(claimed=False, status=status)

        await self._session.commit()
        return InviteClaim(claimed=True, status=InviteStatus.ACCEPTED.value, joined=joined)
