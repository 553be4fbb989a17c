"""Service test fixtures with in-memory fake repos."""

from __future__ import annotations

import sys
from pathlib import Path
from types import SimpleNamespace

import pytest
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.testclient import TestClient

# Make _fakes importable from test files
sys.path.insert(0, str(Path(__file__).parent))

from _fakes import (  # noqa: E402
    FakeInvitesRepo,
    FakeMailer,
    FakeProjectsRepo,
    FakeStorage,
    FakeTeamsRepo,
    FakeUsersRepo,
)

from umlpro_service.clients.deps import get_mailer, get_storage  # noqa: E402
from umlpro_service.db.deps import (  # noqa: E402
    get_invites_repo,
    get_projects_repo,
    get_teams_repo,
    get_users_repo,
)
from umlpro_service.rest.errors import register_error_handlers  # noqa: E402
from umlpro_service.rest.routes.auth import router as auth_router  # noqa: E402
from umlpro_service.rest.routes.change import router as change_router  # noqa: E402
from umlpro_service.rest.routes.health import router as health_router  # noqa: E402
from umlpro_service.rest.routes.invites import router as invites_router  # noqa: E402
from umlpro_service.rest.routes.projects import router as projects_router  # noqa: E402
from umlpro_service.rest.routes.teams import router as teams_router  # noqa: E402
from umlpro_service.rest.routes.users import router as users_router  # noqa: E402
from umlpro_service.settings import settings  # noqa: E402

# Cheap hashes keep the suite fast.
settings.bcrypt_rounds = 4


@pytest.fixture
def env() -> SimpleNamespace:
    """Fresh fakes for every collaborator a service can touch."""
    teams = FakeTeamsRepo()
    return SimpleNamespace(
        users=FakeUsersRepo(),
        teams=teams,
        invites=FakeInvitesRepo(teams),
        projects=FakeProjectsRepo(),
        mailer=FakeMailer(),
        storage=FakeStorage(),
    )


@pytest.fixture
def client(env) -> TestClient:
    """Create a test client wired to the fakes (no database, no network)."""
    app = FastAPI(title="UML Pro API (test)")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_error_handlers(app)

    app.include_router(health_router, tags=["health"])
    app.include_router(auth_router, prefix="/api/v1", tags=["auth"])
    app.include_router(change_router, prefix="/api/v1", tags=["auth"])
    app.include_router(users_router, prefix="/api/v1", tags=["users"])
    app.include_router(teams_router, prefix="/api/v1", tags=["teams"])
    app.include_router(invites_router, prefix="/api/v1", tags=["invites"])
    app.include_router(projects_router, prefix="/api/v1", tags=["projects"])

    app.dependency_overrides[get_users_repo] = lambda: env.users
    app.dependency_overrides[get_teams_repo] = lambda: env.teams
    app.dependency_overrides[get_invites_repo] = lambda: env.invites
    app.dependency_overrides[get_projects_repo] = lambda: env.projects
    app.dependency_overrides[get_mailer] = lambda: env.mailer
    app.dependency_overrides[get_storage] = lambda: env.storage

    return TestClient(app)
