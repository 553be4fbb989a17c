"""Account signup, signin and per-field profile changes."""

from __future__ import annotations

import re
from typing import Any

import structlog

from umlpro_service.auth.jwt import create_access_token
from umlpro_service.auth.passwords import hash_password, verify_password
from umlpro_service.clients.mail import Mailer
from umlpro_service.db.models import UserModel
from umlpro_service.db.repositories.users import UsersRepo
from umlpro_service.domain.compensation import change_field
from umlpro_service.errors import (
    AuthenticationError,
    ConflictError,
    NotFoundError,
    ValidationError,
)

log = structlog.get_logger(__name__)

_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

CHANGEABLE_ITEMS = ("firstname", "lastname", "email", "username", "password")

_SIGNUP_FIELDS = ("firstName", "lastName", "age", "email", "username", "password", "cofPassword")


def _require_str(value: Any, message: str) -> str:
    if not value or not isinstance(value, str):
        raise ValidationError(message)
    return value


class AccountService:
    def __init__(self, users: UsersRepo, mailer: Mailer) -> None:
        self._users = users
        self._mailer = mailer

    async def signup(self, body: dict[str, Any]) -> UserModel:
        missing = [field for field in _SIGNUP_FIELDS if body.get(field) in (None, "")]
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")
        if body["password"] != body["cofPassword"]:
            raise ValidationError("Passwords do not match")
        if not _EMAIL_RE.match(str(body["email"])):
            raise ValidationError("Valid email is required")
        try:
            age = int(body["age"])
        except (TypeError, ValueError):
            raise ValidationError("Age must be a number")

        existing = await self._users.get_by_email(body["email"])
        if existing is None:
            existing = await self._users.get_by_username(body["username"])
        if existing is not None:
            if existing.deleted_at is not None:
                raise ValidationError("User was deleted")
            raise ConflictError("User already exists")

        user = await self._users.create(
            firstname=body["firstName"],
            lastname=body["lastName"],
            age=age,
            email=body["email"],
            username=body["username"],
            password=body["password"],
        )
        log.info("user_signed_up", user_id=user.id)
        return user

    async def signin(self, identifier: Any, password: Any) -> tuple[UserModel, str]:
        """Authenticate by email or username and issue an access token."""
        if not identifier or not password:
            raise ValidationError("Identifier and password are required")

        user = await self._users.get_by_identifier(identifier)
        if user is None or user.deleted_at is not None:
            raise AuthenticationError("Invalid credentials")
        if not verify_password(password, user.password_hash):
            log.info("signin_rejected", user_id=user.id)
            raise AuthenticationError("Invalid credentials")

        token = create_access_token(user_id=user.id, email=user.email, username=user.username)
        return user, token

    async def get(self, user_id: int) -> UserModel:
        user = await self._users.get(user_id)
        if user is None:
            raise NotFoundError("User not found")
        return user

    async def search(self, query: Any, limit: int = 10) -> list[UserModel]:
        if not isinstance(query, str) or not query.strip():
            raise ValidationError("Query is required")
        return await self._users.search(query.strip(), limit=limit)

    async def change(self, user_id: int, item: str, body: dict[str, Any]) -> UserModel:
        """Change one profile field.

        Email, username and password changes notify the user; if that
        notification fails the field is put back and a 500 is raised.
        """
        if item not in CHANGEABLE_ITEMS:
            raise ValidationError(f"Unknown item '{item}'")

        if item == "password":
            return await self._change_password(user_id, body)

        value = _require_str(body.get("value"), "Value is required")
        user = await self.get(user_id)

        if item in ("firstname", "lastname"):
            setattr(user, item, value)
            await self._users.save(user)
            log.info("user_field_changed", user_id=user_id, item=item)
            return user

        if item == "email":
            return await self._change_email(user, value)
        return await self._change_username(user, value)

    async def _change_email(self, user: UserModel, new_email: str) -> UserModel:
        if not _EMAIL_RE.match(new_email):
            raise ValidationError("Valid email is required")
        holder = await self._users.get_by_email(new_email)
        if holder is not None and holder.id != user.id:
            raise ConflictError("Email already in use")

        old_email = user.email

        async def _notify(changed: UserModel) -> None:
            await self._mailer.send_email_changed(
                to=changed.email, old_email=old_email, context="account settings"
            )

        return await change_field(
            user,
            "email",
            new_email,
            save=self._users.save,
            effect=_notify,
            operation="email_change",
            failure_message="Email updated but notification failed; change was reverted",
            user_id=user.id,
        )

    async def _change_username(self, user: UserModel, new_username: str) -> UserModel:
        holder = await self._users.get_by_username(new_username)
        if holder is not None and holder.id != user.id:
            raise ConflictError("Username already in use")

        async def _notify(changed: UserModel) -> None:
            await self._mailer.send_username_changed(
                email=changed.email, username=changed.username
            )

        return await change_field(
            user,
            "username",
            new_username,
            save=self._users.save,
            effect=_notify,
            operation="username_change",
            failure_message="Username updated but notification failed; change was reverted",
            user_id=user.id,
        )

    async def _change_password(self, user_id: int, body: dict[str, Any]) -> UserModel:
        current = _require_str(body.get("currentPassword"), "currentPassword is required")
        new = _require_str(body.get("newPassword"), "newPassword is required")

        user = await self.get(user_id)
        if not verify_password(current, user.password_hash):
            raise AuthenticationError("Current password is incorrect")

        async def _notify(changed: UserModel) -> None:
            await self._mailer.send_password_changed(email=changed.email)

        return await change_field(
            user,
            "password_hash",
            hash_password(new),
            save=self._users.save,
            effect=_notify,
            operation="password_change",
            failure_message="Password updated but notification failed; change was reverted",
            user_id=user.id,
        )
