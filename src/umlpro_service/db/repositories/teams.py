"""Repository for teams and memberships."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from umlpro_service.db.integrity import commit
from umlpro_service.db.models import TeamMemberModel, TeamModel, TeamRole


class TeamsRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create_team(
        self,
        name: str,
        owner_id: int,
        default_role: str = TeamRole.MEMBER.value,
        custom_rules: dict[str, Any] | None = None,
    ) -> tuple[TeamModel, TeamMemberModel]:
        """Create a team and make ``owner_id`` its first admin."""
        team = TeamModel(name=name, default_role=default_role, custom_rules=custom_rules)
        self._session.add(team)
        await self._session.flush()
        member = TeamMemberModel(team_id=team.id, user_id=owner_id, role=TeamRole.ADMIN.value)
        self._session.add(member)
        await commit(self._session)
        await self._session.refresh(team)
        return team, member

    async def get_team(self, team_id: int) -> TeamModel | None:
        result = await self._session.execute(
            select(TeamModel).where(TeamModel.id == team_id, TeamModel.deleted_at.is_(None))
        )
        return result.scalars().first()

    async def save_team(self, team: TeamModel) -> TeamModel:
        self._session.add(team)
        await commit(self._session)
        return team

    async def soft_delete_team(self, team_id: int) -> None:
        team = await self.get_team(team_id)
        if team is not None:
            team.deleted_at = datetime.now(UTC)
            await commit(self._session)

    async def get_membership(self, user_id: int, team_id: int) -> TeamMemberModel | None:
        result = await self._session.execute(
            select(TeamMemberModel).where(
                TeamMemberModel.team_id == team_id,
                TeamMemberModel.user_id == user_id,
            )
        )
        return result.scalars().first()

    async def list_for_user(self, user_id: int) -> list[tuple[TeamModel, TeamMemberModel]]:
        result = await self._session.execute(
            select(TeamModel, TeamMemberModel)
            .join(TeamMemberModel, TeamMemberModel.team_id == TeamModel.id)
            .where(TeamMemberModel.user_id == user_id, TeamModel.deleted_at.is_(None))
            .order_by(TeamModel.id)
        )
        return [(team, member) for team, member in result.all()]
