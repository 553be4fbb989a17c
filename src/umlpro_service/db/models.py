"""SQLAlchemy ORM models."""

from __future__ import annotations

import uuid
from datetime import UTC, datetime
from enum import Enum

from sqlalchemy import (
    JSON,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, relationship, validates

from umlpro_service.auth.passwords import hash_password
from umlpro_service.errors import ValidationError
from umlpro_service.settings import settings


class Base(DeclarativeBase):
    pass


def _now() -> datetime:
    return datetime.now(UTC)


class TeamRole(str, Enum):
    ADMIN = "admin"
    MEMBER = "member"
    VIEWER = "viewer"


class InviteStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REVOKED = "revoked"


class Visibility(str, Enum):
    PUBLIC = "public"
    PRIVATE = "private"


# ---------------------------------------------------------------------------
# Accounts
# ---------------------------------------------------------------------------


class UserModel(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    firstname = Column(Text, nullable=False)
    lastname = Column(Text, nullable=False)
    age = Column(Integer, nullable=False)
    email = Column(Text, unique=True, nullable=False)
    username = Column(Text, unique=True, nullable=False)
    password_hash = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), default=_now)
    deleted_at = Column(DateTime(timezone=True), nullable=True)

    memberships = relationship("TeamMemberModel", back_populates="user")

    @validates("age")
    def _check_age(self, key: str, value: int) -> int:
        if value is None or value < settings.min_user_age:
            raise ValidationError(
                f"User must be at least {settings.min_user_age} years old to register"
            )
        return value

    def set_password(self, password: str) -> None:
        """Hash and store a new plaintext password."""
        self.password_hash = hash_password(password)


# ---------------------------------------------------------------------------
# Teams
# ---------------------------------------------------------------------------


class TeamModel(Base):
    __tablename__ = "teams"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(Text, nullable=False)
    # action -> resource -> true | false | null
    custom_rules = Column(JSON, nullable=True)
    default_role = Column(String, nullable=False, default=TeamRole.MEMBER.value)
    created_at = Column(DateTime(timezone=True), default=_now)
    updated_at = Column(DateTime(timezone=True), default=_now, onupdate=_now)
    deleted_at = Column(DateTime(timezone=True), nullable=True)

    members = relationship("TeamMemberModel", back_populates="team")


class TeamMemberModel(Base):
    __tablename__ = "team_members"
    __table_args__ = (UniqueConstraint("team_id", "user_id", name="uq_team_members_team_user"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    team_id = Column(Integer, ForeignKey("teams.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    role = Column(String, nullable=False, default=TeamRole.MEMBER.value)
    created_at = Column(DateTime(timezone=True), default=_now)
    updated_at = Column(DateTime(timezone=True), default=_now, onupdate=_now)

    team = relationship("TeamModel", back_populates="members")
    user = relationship("UserModel", back_populates="memberships")


class TeamInviteModel(Base):
    __tablename__ = "team_invites"

    id = Column(Integer, primary_key=True, autoincrement=True)
    team_id = Column(Integer, ForeignKey("teams.id", ondelete="CASCADE"), nullable=False)
    invited_by_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    email = Column(Text, nullable=False)
    role = Column(String, nullable=False, default=TeamRole.MEMBER.value)
    token = Column(Text, unique=True, nullable=False)
    status = Column(String, nullable=False, default=InviteStatus.PENDING.value)
    accepted_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=_now)
    updated_at = Column(DateTime(timezone=True), default=_now, onupdate=_now)


# ---------------------------------------------------------------------------
# Projects
# ---------------------------------------------------------------------------

PROJECT_BUCKET_KINDS = ("files", "rules", "backups")


class ProjectModel(Base):
    __tablename__ = "projects"

    id = Column(Integer, primary_key=True, autoincrement=True)
    uuid = Column(String(36), nullable=False, default=lambda: str(uuid.uuid4()))
    name = Column(Text, nullable=False)
    description = Column(Text, nullable=True)
    visibility = Column(String, nullable=False, default=Visibility.PUBLIC.value)
    team_id = Column(Integer, ForeignKey("teams.id", ondelete="CASCADE"), nullable=True)
    created_at = Column(DateTime(timezone=True), default=_now)
    updated_at = Column(DateTime(timezone=True), default=_now, onupdate=_now)
    deleted_at = Column(DateTime(timezone=True), nullable=True)

    files = relationship("ProjectFileModel", back_populates="project")

    def bucket_name(self, kind: str = "files") -> str:
        return f"project-{self.uuid}-{kind}"

    def bucket_names(self) -> list[str]:
        return [self.bucket_name(kind) for kind in PROJECT_BUCKET_KINDS]


class ProjectFileModel(Base):
    __tablename__ = "project_files"
    __table_args__ = (
        UniqueConstraint("project_id", "file_name", name="uq_project_files_project_name"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    project_id = Column(Integer, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False)
    file_name = Column(Text, nullable=False)
    s3_key = Column(Text, nullable=False)
    s3_bucket = Column(Text, nullable=False)
    file_size = Column(Integer, nullable=True)
    mime_type = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=_now)
    updated_at = Column(DateTime(timezone=True), default=_now, onupdate=_now)

    project = relationship("ProjectModel", back_populates="files")
