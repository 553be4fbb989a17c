"""Service wiring for route handlers."""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends

from umlpro_service.clients.deps import MailerDep, StorageDep
from umlpro_service.db.deps import InvitesRepoDep, ProjectsRepoDep, TeamsRepoDep, UsersRepoDep
from umlpro_service.domain.accounts import AccountService
from umlpro_service.domain.invites import InviteService
from umlpro_service.domain.projects import ProjectService
from umlpro_service.domain.teams import TeamService


def get_account_service(users: UsersRepoDep, mailer: MailerDep) -> AccountService:
    return AccountService(users, mailer)


def get_team_service(teams: TeamsRepoDep) -> TeamService:
    return TeamService(teams)


def get_invite_service(
    users: UsersRepoDep, teams: TeamsRepoDep, invites: InvitesRepoDep, mailer: MailerDep
) -> InviteService:
    return InviteService(users, teams, invites, mailer)


def get_project_service(
    teams: TeamsRepoDep, projects: ProjectsRepoDep, storage: StorageDep
) -> ProjectService:
    return ProjectService(teams, projects, storage)


AccountServiceDep = Annotated[AccountService, Depends(get_account_service)]
TeamServiceDep = Annotated[TeamService, Depends(get_team_service)]
InviteServiceDep = Annotated[InviteService, Depends(get_invite_service)]
ProjectServiceDep = Annotated[ProjectService, Depends(get_project_service)]
