"""Team directory: team CRUD, membership lookups and rule management."""

from __future__ import annotations

from typing import Any

import structlog

from umlpro_service.db.models import TeamMemberModel, TeamModel, TeamRole
from umlpro_service.db.repositories.teams import TeamsRepo
from umlpro_service.domain import rules
from umlpro_service.errors import AuthorizationError, NotFoundError, ValidationError

log = structlog.get_logger(__name__)

VALID_ROLES = {role.value for role in TeamRole}


def validate_role(role: Any, message: str = "Invalid role") -> str:
    if role not in VALID_ROLES:
        raise ValidationError(message)
    return role


def validate_custom_rules(custom_rules: Any) -> rules.CustomRules:
    if not rules.is_valid_custom_rules(custom_rules):
        raise ValidationError("Invalid permissions payload")
    return custom_rules


async def require_membership(teams: TeamsRepo, user_id: int, team_id: int) -> TeamMemberModel:
    membership = await teams.get_membership(user_id, team_id)
    if membership is None:
        raise AuthorizationError("Forbidden")
    return membership


async def require_admin(teams: TeamsRepo, user_id: int, team_id: int) -> TeamMemberModel:
    membership = await teams.get_membership(user_id, team_id)
    if membership is None or membership.role != TeamRole.ADMIN.value:
        raise AuthorizationError("Forbidden")
    return membership


async def require_team(teams: TeamsRepo, team_id: int) -> TeamModel:
    team = await teams.get_team(team_id)
    if team is None:
        raise NotFoundError("Team not found")
    return team


def require_permission(
    team: TeamModel, membership: TeamMemberModel, action: str, resource: str
) -> rules.Permission:
    """Refuse only an explicit DENY; UNSET lets the operation through."""
    permission = rules.evaluate(membership.role, action, resource, team.custom_rules)
    if permission.denied:
        raise AuthorizationError("Forbidden")
    return permission


class TeamService:
    def __init__(self, teams: TeamsRepo) -> None:
        self._teams = teams

    async def create(
        self,
        user_id: int,
        name: Any,
        custom_rules: Any = None,
        default_role: Any = None,
    ) -> tuple[TeamModel, TeamMemberModel]:
        if not name or not isinstance(name, str):
            raise ValidationError("Team name is required")
        if custom_rules is not None:
            validate_custom_rules(custom_rules)
        if default_role:
            validate_role(default_role, "Invalid default role")

        team, member = await self._teams.create_team(
            name=name,
            owner_id=user_id,
            default_role=default_role or TeamRole.MEMBER.value,
            custom_rules=dict(custom_rules) if custom_rules else None,
        )
        log.info("team_created", team_id=team.id, user_id=user_id)
        return team, member

    async def list_for_user(self, user_id: int) -> list[tuple[TeamModel, TeamMemberModel]]:
        return await self._teams.list_for_user(user_id)

    async def get(self, team_id: int, user_id: int) -> tuple[TeamModel, TeamMemberModel]:
        membership = await require_membership(self._teams, user_id, team_id)
        team = await require_team(self._teams, team_id)
        return team, membership

    async def update(
        self,
        team_id: int,
        user_id: int,
        fields: dict[str, Any],
    ) -> tuple[TeamModel, TeamMemberModel]:
        """Partial update. Only keys present in ``fields`` are touched."""
        custom_rules = fields.get("customRules")
        default_role = fields.get("defaultRole")
        if "customRules" in fields:
            validate_custom_rules(custom_rules)
        if default_role:
            validate_role(default_role, "Invalid default role")

        membership = await require_membership(self._teams, user_id, team_id)
        team = await require_team(self._teams, team_id)

        if ("name" in fields or "defaultRole" in fields) and membership.role != TeamRole.ADMIN.value:
            raise AuthorizationError("Forbidden")

        if "name" in fields:
            name = fields["name"]
            if not name or not isinstance(name, str):
                raise ValidationError("Team name must be a string")
            team.name = name
        if default_role:
            team.default_role = default_role
        if "customRules" in fields:
            if not rules.can_modify_team_rules(membership.role):
                raise AuthorizationError("Insufficient permissions")
            rules.set_custom_rules(team, membership.role, custom_rules)

        await self._teams.save_team(team)
        log.info("team_updated", team_id=team_id, user_id=user_id, fields=sorted(fields))
        return team, membership

    async def update_rules(
        self, team_id: int, user_id: int, custom_rules: Any
    ) -> tuple[TeamModel, TeamMemberModel]:
        validate_custom_rules(custom_rules)
        membership = await require_membership(self._teams, user_id, team_id)
        team = await require_team(self._teams, team_id)
        if not rules.can_modify_team_rules(membership.role):
            raise AuthorizationError("Insufficient permissions")

        rules.set_custom_rules(team, membership.role, custom_rules)
        await self._teams.save_team(team)
        log.info("team_rules_replaced", team_id=team_id, user_id=user_id)
        return team, membership

    async def effective_rules(self, team_id: int, user_id: int) -> tuple[str, rules.CustomRules]:
        membership = await require_membership(self._teams, user_id, team_id)
        team = await require_team(self._teams, team_id)
        if not rules.can_list_team_rules(membership.role):
            raise AuthorizationError("Insufficient permissions")
        return membership.role, rules.effective_rules(membership.role, team.custom_rules)

    async def delete(self, team_id: int, user_id: int) -> None:
        await require_admin(self._teams, user_id, team_id)
        await require_team(self._teams, team_id)
        await self._teams.soft_delete_team(team_id)
        log.info("team_deleted", team_id=team_id, user_id=user_id)
