"""Auth endpoints: signup, signin, /me."""

from __future__ import annotations

from fastapi import APIRouter

from umlpro_service.auth.deps import CurrentUserDep
from umlpro_service.auth.jwt import create_access_token
from umlpro_service.db.models import UserModel
from umlpro_service.rest.deps import AccountServiceDep
from umlpro_service.rest.schemas import (
    AuthResponse,
    SigninRequest,
    SignupRequest,
    UserResponse,
    UserSchema,
)

router = APIRouter()


def user_to_schema(user: UserModel) -> UserSchema:
    return UserSchema(
        id=user.id,
        email=user.email,
        username=user.username,
        firstname=user.firstname,
        lastname=user.lastname,
    )


@router.post("/signup", response_model=AuthResponse, status_code=201)
async def signup(request: SignupRequest, accounts: AccountServiceDep) -> AuthResponse:
    """Create a new account and return an access token."""
    user = await accounts.signup(request.model_dump())
    token = create_access_token(user_id=user.id, email=user.email, username=user.username)
    return AuthResponse(token=token, user=user_to_schema(user))


@router.post("/signin", response_model=AuthResponse)
async def signin(request: SigninRequest, accounts: AccountServiceDep) -> AuthResponse:
    """Verify credentials (email or username) and return an access token."""
    user, token = await accounts.signin(request.identifier, request.password)
    return AuthResponse(token=token, user=user_to_schema(user))


@router.get("/me", response_model=UserResponse)
async def me(current_user: CurrentUserDep, accounts: AccountServiceDep) -> UserResponse:
    """Return the currently authenticated user."""
    user = await accounts.get(current_user.user_id)
    return UserResponse(user=user_to_schema(user))
