"""User directory lookups for signed-in callers."""

from __future__ import annotations

from fastapi import APIRouter

from umlpro_service.auth.deps import CurrentUserDep
from umlpro_service.rest.deps import AccountServiceDep
from umlpro_service.rest.routes.auth import user_to_schema
from umlpro_service.rest.schemas import UserSearchResponse

router = APIRouter(prefix="/users")


@router.get("/search", response_model=UserSearchResponse)
async def search_users(
    current_user: CurrentUserDep, accounts: AccountServiceDep, q: str | None = None
) -> UserSearchResponse:
    """Up to ten users whose email, username or name contains ``q``."""
    users = await accounts.search(q)
    return UserSearchResponse(users=[user_to_schema(user) for user in users])
