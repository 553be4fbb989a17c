"""Per-field account changes."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends

from umlpro_service.auth.deps import CurrentUserDep
from umlpro_service.domain.accounts import CHANGEABLE_ITEMS
from umlpro_service.errors import ValidationError
from umlpro_service.rest.deps import AccountServiceDep
from umlpro_service.rest.routes.auth import user_to_schema
from umlpro_service.rest.schemas import ChangeRequest, UserResponse

router = APIRouter()


def changeable_item(item: str) -> str:
    if item not in CHANGEABLE_ITEMS:
        raise ValidationError(f"Unknown item '{item}'")
    return item


# Declared ahead of CurrentUserDep so an unsupported item is a 400 even without a token.
ChangeableItemDep = Annotated[str, Depends(changeable_item)]


@router.put("/change/{item}", response_model=UserResponse)
async def change_item(
    item: ChangeableItemDep,
    request: ChangeRequest,
    current_user: CurrentUserDep,
    accounts: AccountServiceDep,
) -> UserResponse:
    user = await accounts.change(current_user.user_id, item, request.model_dump())
    return UserResponse(user=user_to_schema(user))
