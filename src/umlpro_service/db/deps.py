"""FastAPI dependency injection for database sessions and repositories."""

from __future__ import annotations

from collections.abc import AsyncIterator
from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from umlpro_service.db.engine import get_session_factory
from umlpro_service.db.repositories.invites import InvitesRepo
from umlpro_service.db.repositories.projects import ProjectsRepo
from umlpro_service.db.repositories.teams import TeamsRepo
from umlpro_service.db.repositories.users import UsersRepo


async def get_session() -> AsyncIterator[AsyncSession]:
    """Yield an async DB session, auto-closing on exit."""
    factory = get_session_factory()
    async with factory() as session:
        yield session


SessionDep = Annotated[AsyncSession, Depends(get_session)]


def get_users_repo(session: SessionDep) -> UsersRepo:
    return UsersRepo(session)


def get_teams_repo(session: SessionDep) -> TeamsRepo:
    return TeamsRepo(session)


def get_invites_repo(session: SessionDep) -> InvitesRepo:
    return InvitesRepo(session)


def get_projects_repo(session: SessionDep) -> ProjectsRepo:
    return ProjectsRepo(session)


UsersRepoDep = Annotated[UsersRepo, Depends(get_users_repo)]
TeamsRepoDep = Annotated[TeamsRepo, Depends(get_teams_repo)]
InvitesRepoDep = Annotated[InvitesRepo, Depends(get_invites_repo)]
ProjectsRepoDep = Annotated[ProjectsRepo, Depends(get_projects_repo)]
