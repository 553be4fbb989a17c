"""FastAPI application factory."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from umlpro_service.db.engine import close_db, init_db
from umlpro_service.rest.errors import register_error_handlers
from umlpro_service.rest.routes.auth import router as auth_router
from umlpro_service.rest.routes.change import router as change_router
from umlpro_service.rest.routes.health import router as health_router
from umlpro_service.rest.routes.invites import router as invites_router
from umlpro_service.rest.routes.projects import router as projects_router
from umlpro_service.rest.routes.teams import router as teams_router
from umlpro_service.rest.routes.users import router as users_router
from umlpro_service.settings import settings


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    await init_db(create_tables=settings.create_tables)
    yield
    await close_db()


def create_app() -> FastAPI:
    app = FastAPI(
        title="UML Pro API",
        description="Accounts, teams, invitations and project storage",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_error_handlers(app)

    # Public routes
    app.include_router(health_router, tags=["health"])

    # signup/signin and /invites/resolve are public; everything else needs a Bearer token
    app.include_router(auth_router, prefix="/api/v1", tags=["auth"])
    app.include_router(change_router, prefix="/api/v1", tags=["auth"])
    app.include_router(users_router, prefix="/api/v1", tags=["users"])
    app.include_router(teams_router, prefix="/api/v1", tags=["teams"])
    app.include_router(invites_router, prefix="/api/v1", tags=["invites"])
    app.include_router(projects_router, prefix="/api/v1", tags=["projects"])

    return app
