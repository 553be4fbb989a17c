"""FastAPI auth dependencies."""

from __future__ import annotations

from typing import Annotated

import jwt
from fastapi import Depends, Request

from umlpro_service.auth.jwt import decode_token
from umlpro_service.auth.models import CurrentUser
from umlpro_service.errors import AuthenticationError


def _user_from_token(token: str) -> CurrentUser:
    """Decode a Bearer JWT and return the CurrentUser."""
    try:
        payload = decode_token(token)
    except jwt.PyJWTError as exc:
        raise AuthenticationError("Invalid or expired token") from exc

    if payload.get("type") != "access":
        raise AuthenticationError("Not an access token")

    try:
        user_id = int(payload["sub"])
    except (KeyError, ValueError) as exc:
        raise AuthenticationError("Malformed token payload") from exc

    return CurrentUser(
        user_id=user_id,
        email=payload.get("email", ""),
        username=payload.get("username", ""),
    )


async def get_current_user(request: Request) -> CurrentUser:
    """Resolve the current authenticated user from ``Authorization: Bearer <token>``."""
    auth_header = request.headers.get("Authorization", "")
    if not auth_header.startswith("Bearer "):
        raise AuthenticationError("Unauthorized")

    token = auth_header.removeprefix("Bearer ").strip()
    return _user_from_token(token)


CurrentUserDep = Annotated[CurrentUser, Depends(get_current_user)]
