"""Pydantic request/response models for REST API.

Field names follow the camelCase payloads the web client sends.
"""

from __future__ import annotations

import re
from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field, field_validator

from umlpro_service.domain.rules import CustomRules, is_valid_custom_rules
from umlpro_service.domain.teams import VALID_ROLES

_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

# ---------------------------------------------------------------------------
# Accounts
# ---------------------------------------------------------------------------


class SignupRequest(BaseModel):
    firstName: str | None = None
    lastName: str | None = None
    age: int | None = None
    email: str | None = None
    username: str | None = None
    password: str | None = None
    cofPassword: str | None = None


class SigninRequest(BaseModel):
    identifier: str | None = None
    password: str | None = None


class ChangeRequest(BaseModel):
    value: str | None = None
    currentPassword: str | None = None
    newPassword: str | None = None


class UserSchema(BaseModel):
    id: int
    email: str
    username: str
    firstname: str | None = None
    lastname: str | None = None


class AuthResponse(BaseModel):
    success: bool = True
    token: str
    user: UserSchema


class UserResponse(BaseModel):
    success: bool = True
    user: UserSchema


class UserSearchResponse(BaseModel):
    users: list[UserSchema] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Teams
# ---------------------------------------------------------------------------


def _check_rules(value: Any) -> Any:
    if value is not None and not is_valid_custom_rules(value):
        raise ValueError("Invalid permissions payload")
    return value


def _check_role(value: str | None, message: str) -> str | None:
    if value and value not in VALID_ROLES:
        raise ValueError(message)
    return value


class TeamCreateRequest(BaseModel):
    name: str | None = None
    customRules: CustomRules | None = None
    defaultRole: str | None = None

    @field_validator("customRules", mode="before")
    @classmethod
    def rules_shape(cls, v: Any) -> Any:
        return _check_rules(v)

    @field_validator("defaultRole")
    @classmethod
    def known_default_role(cls, v: str | None) -> str | None:
        return _check_role(v, "Invalid default role")


class TeamUpdateRequest(TeamCreateRequest):
    """Only fields present in the body are applied."""


class RulesUpdateRequest(BaseModel):
    customRules: CustomRules | None = None

    @field_validator("customRules", mode="before")
    @classmethod
    def rules_shape(cls, v: Any) -> Any:
        return _check_rules(v)


class TeamSchema(BaseModel):
    id: int
    name: str
    customRules: dict[str, dict[str, bool | None]] | None = None
    defaultRole: str
    role: str | None = None
    createdAt: datetime | None = None
    updatedAt: datetime | None = None


class TeamResponse(BaseModel):
    team: TeamSchema


class TeamListResponse(BaseModel):
    teams: list[TeamSchema]


class RulesResponse(BaseModel):
    role: str
    rules: dict[str, dict[str, bool | None]]


class SuccessResponse(BaseModel):
    success: bool = True


# ---------------------------------------------------------------------------
# Invites
# ---------------------------------------------------------------------------


class InviteCreateRequest(BaseModel):
    email: str | None = None
    role: str | None = None

    @field_validator("email")
    @classmethod
    def email_format(cls, v: str | None) -> str | None:
        if v is not None and not _EMAIL_RE.match(v):
            raise ValueError("Valid email is required")
        return v

    @field_validator("role")
    @classmethod
    def known_role(cls, v: str | None) -> str | None:
        return _check_role(v, "Invalid role")


class InviteActionRequest(BaseModel):
    inviteId: int | None = None


class InviteAcceptRequest(BaseModel):
    token: str | None = None


class InviteSchema(BaseModel):
    id: int
    email: str
    role: str
    status: str
    token: str | None = None
    createdAt: datetime | None = None


class InviteResponse(BaseModel):
    invite: InviteSchema


class InviteListResponse(BaseModel):
    invites: list[InviteSchema]


class InviteResolveResponse(BaseModel):
    teamId: int
    email: str


# ---------------------------------------------------------------------------
# Projects and files
# ---------------------------------------------------------------------------


class ProjectCreateRequest(BaseModel):
    name: str | None = None
    description: str | None = None
    visibility: str | None = None


class ProjectUpdateRequest(BaseModel):
    name: str | None = None
    description: str | None = None
    visibility: str | None = None


class ProjectSchema(BaseModel):
    id: int
    uuid: str
    name: str
    description: str | None = None
    visibility: str
    teamId: int | None = None
    createdAt: datetime | None = None
    updatedAt: datetime | None = None


class ProjectResponse(BaseModel):
    project: ProjectSchema


class ProjectListResponse(BaseModel):
    projects: list[ProjectSchema] = Field(default_factory=list)


class StoreFileRequest(BaseModel):
    projectId: int | None = None
    filePath: str | None = None
    content: str | None = None
    encoding: str = "utf8"
    mimeType: str | None = None


class RenameFileRequest(BaseModel):
    projectId: int | None = None
    filePath: str | None = None
    newFilePath: str | None = None


class StoredFileSchema(BaseModel):
    path: str
    size: int
    mimeType: str | None = None


class StoreFileResponse(BaseModel):
    success: bool = True
    file: StoredFileSchema


class FileContentResponse(BaseModel):
    filePath: str
    contentBase64: str
    mimeType: str
