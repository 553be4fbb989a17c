"""Team CRUD and team rule endpoints."""

from __future__ import annotations

from fastapi import APIRouter

from umlpro_service.auth.deps import CurrentUserDep
from umlpro_service.db.models import TeamModel
from umlpro_service.rest.deps import TeamServiceDep
from umlpro_service.rest.schemas import (
    RulesResponse,
    RulesUpdateRequest,
    SuccessResponse,
    TeamCreateRequest,
    TeamListResponse,
    TeamResponse,
    TeamSchema,
    TeamUpdateRequest,
)

router = APIRouter(prefix="/teams")


def team_to_schema(team: TeamModel, role: str | None = None) -> TeamSchema:
    return TeamSchema(
        id=team.id,
        name=team.name,
        customRules=team.custom_rules,
        defaultRole=team.default_role,
        role=role,
        createdAt=team.created_at,
        updatedAt=team.updated_at,
    )


@router.post("/create", response_model=TeamResponse, status_code=201)
async def create_team(
    request: TeamCreateRequest, current_user: CurrentUserDep, teams: TeamServiceDep
) -> TeamResponse:
    team, member = await teams.create(
        current_user.user_id,
        request.name,
        custom_rules=request.customRules,
        default_role=request.defaultRole,
    )
    return TeamResponse(team=team_to_schema(team, member.role))


@router.get("/list", response_model=TeamListResponse)
async def list_teams(current_user: CurrentUserDep, teams: TeamServiceDep) -> TeamListResponse:
    rows = await teams.list_for_user(current_user.user_id)
    return TeamListResponse(teams=[team_to_schema(team, member.role) for team, member in rows])


@router.get("/{team_id}/get", response_model=TeamResponse)
async def get_team(team_id: int, current_user: CurrentUserDep, teams: TeamServiceDep) -> TeamResponse:
    team, membership = await teams.get(team_id, current_user.user_id)
    return TeamResponse(team=team_to_schema(team, membership.role))


@router.patch("/{team_id}/update", response_model=TeamResponse)
async def update_team(
    team_id: int,
    request: TeamUpdateRequest,
    current_user: CurrentUserDep,
    teams: TeamServiceDep,
) -> TeamResponse:
    team, membership = await teams.update(
        team_id, current_user.user_id, request.model_dump(exclude_unset=True)
    )
    return TeamResponse(team=team_to_schema(team, membership.role))


@router.delete("/{team_id}/delete", response_model=SuccessResponse)
async def delete_team(
    team_id: int, current_user: CurrentUserDep, teams: TeamServiceDep
) -> SuccessResponse:
    await teams.delete(team_id, current_user.user_id)
    return SuccessResponse()


@router.get("/{team_id}/rules", response_model=RulesResponse)
async def get_rules(
    team_id: int, current_user: CurrentUserDep, teams: TeamServiceDep
) -> RulesResponse:
    """Effective rules for the caller's role: defaults with team overrides applied."""
    role, rules = await teams.effective_rules(team_id, current_user.user_id)
    return RulesResponse(role=role, rules=rules)


@router.patch("/{team_id}/rules", response_model=TeamResponse)
async def update_rules(
    team_id: int,
    request: RulesUpdateRequest,
    current_user: CurrentUserDep,
    teams: TeamServiceDep,
) -> TeamResponse:
    team, membership = await teams.update_rules(team_id, current_user.user_id, request.customRules)
    return TeamResponse(team=team_to_schema(team, membership.role))
