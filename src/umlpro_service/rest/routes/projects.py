"""Team project and file store endpoints."""

from __future__ import annotations

import base64

from fastapi import APIRouter

from umlpro_service.auth.deps import CurrentUserDep
from umlpro_service.db.models import ProjectModel
from umlpro_service.errors import ValidationError
from umlpro_service.rest.deps import ProjectServiceDep
from umlpro_service.rest.schemas import (
    FileContentResponse,
    ProjectCreateRequest,
    ProjectListResponse,
    ProjectResponse,
    ProjectSchema,
    ProjectUpdateRequest,
    RenameFileRequest,
    StoredFileSchema,
    StoreFileRequest,
    StoreFileResponse,
    SuccessResponse,
)

router = APIRouter(prefix="/teams/{team_id}")


def _project_to_schema(project: ProjectModel) -> ProjectSchema:
    return ProjectSchema(
        id=project.id,
        uuid=project.uuid,
        name=project.name,
        description=project.description,
        visibility=project.visibility,
        teamId=project.team_id,
        createdAt=project.created_at,
        updatedAt=project.updated_at,
    )


def _require_project_id(project_id: int | None) -> int:
    if not project_id or project_id < 1:
        raise ValidationError("Invalid projectId")
    return project_id


# ---------------------------------------------------------------------------
# Projects
# ---------------------------------------------------------------------------


@router.post("/projects/create", response_model=ProjectResponse, status_code=201)
async def create_project(
    team_id: int,
    request: ProjectCreateRequest,
    current_user: CurrentUserDep,
    projects: ProjectServiceDep,
) -> ProjectResponse:
    project = await projects.create(
        team_id,
        current_user.user_id,
        request.name,
        description=request.description,
        visibility=request.visibility,
    )
    return ProjectResponse(project=_project_to_schema(project))


@router.get("/projects/list", response_model=ProjectListResponse)
async def list_projects(
    team_id: int, current_user: CurrentUserDep, projects: ProjectServiceDep
) -> ProjectListResponse:
    rows = await projects.list(team_id, current_user.user_id)
    return ProjectListResponse(projects=[_project_to_schema(p) for p in rows])


@router.put("/projects/{project_id}/update", response_model=ProjectResponse)
async def update_project(
    team_id: int,
    project_id: int,
    request: ProjectUpdateRequest,
    current_user: CurrentUserDep,
    projects: ProjectServiceDep,
) -> ProjectResponse:
    project = await projects.update(
        team_id, project_id, current_user.user_id, request.model_dump(exclude_unset=True)
    )
    return ProjectResponse(project=_project_to_schema(project))


@router.delete("/projects/{project_id}/delete", response_model=SuccessResponse)
async def delete_project(
    team_id: int,
    project_id: int,
    current_user: CurrentUserDep,
    projects: ProjectServiceDep,
) -> SuccessResponse:
    await projects.delete(team_id, project_id, current_user.user_id)
    return SuccessResponse()


# ---------------------------------------------------------------------------
# File store
# ---------------------------------------------------------------------------


@router.put("/store", response_model=StoreFileResponse)
async def store_file(
    team_id: int,
    request: StoreFileRequest,
    current_user: CurrentUserDep,
    projects: ProjectServiceDep,
) -> StoreFileResponse:
    record = await projects.store_file(
        team_id,
        current_user.user_id,
        _require_project_id(request.projectId),
        request.filePath,
        request.content,
        encoding=request.encoding,
        mime_type=request.mimeType,
    )
    return StoreFileResponse(
        file=StoredFileSchema(path=record.file_name, size=record.file_size, mimeType=record.mime_type)
    )


@router.get("/store", response_model=FileContentResponse)
async def read_file(
    team_id: int,
    current_user: CurrentUserDep,
    projects: ProjectServiceDep,
    projectId: int | None = None,
    filePath: str | None = None,
) -> FileContentResponse:
    path, content, mime_type = await projects.read_file(
        team_id, current_user.user_id, _require_project_id(projectId), filePath
    )
    return FileContentResponse(
        filePath=path,
        contentBase64=base64.b64encode(content).decode("ascii"),
        mimeType=mime_type,
    )


@router.patch("/store/rename", response_model=StoreFileResponse)
async def rename_file(
    team_id: int,
    request: RenameFileRequest,
    current_user: CurrentUserDep,
    projects: ProjectServiceDep,
) -> StoreFileResponse:
    record = await projects.rename_file(
        team_id,
        current_user.user_id,
        _require_project_id(request.projectId),
        request.filePath,
        request.newFilePath,
    )
    return StoreFileResponse(
        file=StoredFileSchema(
            path=record.file_name, size=record.file_size or 0, mimeType=record.mime_type
        )
    )
