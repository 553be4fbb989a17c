"""Team invitation endpoints."""

from __future__ import annotations

from fastapi import APIRouter

from umlpro_service.auth.deps import CurrentUserDep
from umlpro_service.db.models import TeamInviteModel
from umlpro_service.errors import ValidationError
from umlpro_service.rest.deps import InviteServiceDep
from umlpro_service.rest.schemas import (
    InviteAcceptRequest,
    InviteActionRequest,
    InviteCreateRequest,
    InviteListResponse,
    InviteResolveResponse,
    InviteResponse,
    InviteSchema,
    SuccessResponse,
)

router = APIRouter()


def _invite_to_schema(invite: TeamInviteModel, include_token: bool = False) -> InviteSchema:
    return InviteSchema(
        id=invite.id,
        email=invite.email,
        role=invite.role,
        status=invite.status,
        token=invite.token if include_token else None,
        createdAt=invite.created_at,
    )


def _require_invite_id(request: InviteActionRequest) -> int:
    if not request.inviteId or request.inviteId < 1:
        raise ValidationError("Invalid inviteId")
    return request.inviteId


@router.post("/teams/{team_id}/members/invite", response_model=InviteResponse, status_code=201)
async def create_invite(
    team_id: int,
    request: InviteCreateRequest,
    current_user: CurrentUserDep,
    invites: InviteServiceDep,
) -> InviteResponse:
    invite = await invites.create(team_id, current_user.user_id, request.email, request.role)
    return InviteResponse(invite=_invite_to_schema(invite, include_token=True))


@router.get("/teams/{team_id}/members/invite/list", response_model=InviteListResponse)
async def list_invites(
    team_id: int, current_user: CurrentUserDep, invites: InviteServiceDep
) -> InviteListResponse:
    pending = await invites.list_pending(team_id, current_user.user_id)
    return InviteListResponse(invites=[_invite_to_schema(invite) for invite in pending])


@router.post("/teams/{team_id}/members/invite/resend", response_model=SuccessResponse)
async def resend_invite(
    team_id: int,
    request: InviteActionRequest,
    current_user: CurrentUserDep,
    invites: InviteServiceDep,
) -> SuccessResponse:
    await invites.resend(team_id, current_user.user_id, _require_invite_id(request))
    return SuccessResponse()


@router.post("/teams/{team_id}/members/invite/revoke", response_model=SuccessResponse)
async def revoke_invite(
    team_id: int,
    request: InviteActionRequest,
    current_user: CurrentUserDep,
    invites: InviteServiceDep,
) -> SuccessResponse:
    await invites.revoke(team_id, current_user.user_id, _require_invite_id(request))
    return SuccessResponse()


@router.post("/teams/{team_id}/members/invite/accept", response_model=SuccessResponse)
async def accept_invite(
    team_id: int,
    request: InviteAcceptRequest,
    current_user: CurrentUserDep,
    invites: InviteServiceDep,
) -> SuccessResponse:
    await invites.accept(team_id, request.token, current_user.user_id)
    return SuccessResponse()


@router.get("/invites/resolve", response_model=InviteResolveResponse)
async def resolve_invite(invites: InviteServiceDep, token: str | None = None) -> InviteResolveResponse:
    """Public lookup used by the accept page before the user signs in."""
    invite = await invites.resolve(token)
    return InviteResolveResponse(teamId=invite.team_id, email=invite.email)
