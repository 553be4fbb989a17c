"""Team projects and the files stored in their buckets.

Each project owns three storage buckets. Creating, deleting and renaming go
through the compensation helpers since the bucket calls cannot share a
transaction with the database.
"""

from __future__ import annotations

import base64
import binascii
from typing import Any

import structlog

from umlpro_service.clients.storage import StorageClient
from umlpro_service.db.models import (
    ProjectFileModel,
    ProjectModel,
    TeamMemberModel,
    TeamModel,
    Visibility,
)
from umlpro_service.db.repositories.projects import ProjectsRepo
from umlpro_service.db.repositories.teams import TeamsRepo
from umlpro_service.domain.compensation import (
    change_fields,
    create_with_rollback,
    run_with_compensation,
)
from umlpro_service.domain.teams import require_membership, require_permission, require_team
from umlpro_service.errors import (
    ConflictError,
    ExternalServiceError,
    NotFoundError,
    ValidationError,
)

log = structlog.get_logger(__name__)

VISIBILITIES = {v.value for v in Visibility}

SAVED_PAGE_SUFFIX = "/page.svg"


def guess_mime_type(path: str) -> str:
    if path.endswith(".svg"):
        return "image/svg+xml"
    if path.endswith(".png"):
        return "image/png"
    return "application/octet-stream"


def decode_content(content: Any, encoding: str = "utf8") -> bytes:
    if not content or not isinstance(content, str):
        raise ValidationError("content is required")
    if encoding == "base64":
        try:
            return base64.b64decode(content, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise ValidationError("content is not valid base64") from exc
    if encoding == "utf8":
        return content.encode("utf-8")
    raise ValidationError(f"Unsupported encoding '{encoding}'")


def _require_path(value: Any, field: str) -> str:
    if not value or not isinstance(value, str):
        raise ValidationError(f"{field} is required")
    return value


class ProjectService:
    def __init__(self, teams: TeamsRepo, projects: ProjectsRepo, storage: StorageClient) -> None:
        self._teams = teams
        self._projects = projects
        self._storage = storage

    async def _context(self, team_id: int, user_id: int) -> tuple[TeamModel, TeamMemberModel]:
        membership = await require_membership(self._teams, user_id, team_id)
        team = await require_team(self._teams, team_id)
        return team, membership

    async def _project(self, team_id: int, project_id: int) -> ProjectModel:
        project = await self._projects.get(team_id, project_id)
        if project is None:
            raise NotFoundError("Project not found")
        return project

    # -- projects -----------------------------------------------------------

    async def create(
        self,
        team_id: int,
        user_id: int,
        name: Any,
        description: str | None = None,
        visibility: str | None = None,
    ) -> ProjectModel:
        """Insert the project row, then create its buckets.

        A bucket that already exists counts as a failure. On failure the
        buckets created so far and the row are removed again.
        """
        if not name or not isinstance(name, str):
            raise ValidationError("Project name is required")
        team, membership = await self._context(team_id, user_id)
        require_permission(team, membership, "create", "bucket")

        created: list[str] = []

        async def _create() -> ProjectModel:
            return await self._projects.create(
                team_id=team_id,
                name=name,
                description=description,
                visibility=visibility if visibility in VISIBILITIES else Visibility.PUBLIC.value,
            )

        async def _create_buckets(project: ProjectModel) -> None:
            for bucket in project.bucket_names():
                if await self._storage.bucket_exists(bucket):
                    raise ExternalServiceError(f"Bucket '{bucket}' already exists")
                (await self._storage.create_bucket(bucket)).raise_for_error()
                created.append(bucket)

        async def _remove(project: ProjectModel) -> None:
            failed = []
            for bucket in created:
                if not (await self._storage.delete_bucket(bucket)).ok:
                    failed.append(bucket)
            await self._projects.delete(project)
            if failed:
                raise ExternalServiceError(f"Could not delete buckets: {', '.join(failed)}")

        project = await create_with_rollback(
            _create,
            _create_buckets,
            _remove,
            operation="project_create",
            failure_message="Project storage could not be created; project was removed",
            team_id=team_id,
        )
        log.info("project_created", team_id=team_id, project_id=project.id)
        return project

    async def list(self, team_id: int, user_id: int) -> list[ProjectModel]:
        team, membership = await self._context(team_id, user_id)
        require_permission(team, membership, "read", "bucket")
        return await self._projects.list_for_team(team_id)

    async def update(
        self, team_id: int, project_id: int, user_id: int, fields: dict[str, Any]
    ) -> ProjectModel:
        team, membership = await self._context(team_id, user_id)
        require_permission(team, membership, "update", "bucket")
        project = await self._project(team_id, project_id)

        if "name" in fields:
            name = fields["name"]
            if not name or not isinstance(name, str):
                raise ValidationError("Project name must be a string")
            project.name = name
        if "description" in fields:
            project.description = fields["description"]
        # Unknown visibilities are ignored.
        if fields.get("visibility") in VISIBILITIES:
            project.visibility = fields["visibility"]

        await self._projects.save(project)
        return project

    async def delete(self, team_id: int, project_id: int, user_id: int) -> None:
        team, membership = await self._context(team_id, user_id)
        require_permission(team, membership, "delete", "bucket")
        project = await self._project(team_id, project_id)

        async def _soft_delete() -> ProjectModel:
            await self._projects.soft_delete(project)
            return project

        async def _delete_buckets(deleted: ProjectModel) -> None:
            # A retry after a partial failure finds some buckets already gone.
            for bucket in deleted.bucket_names():
                if not await self._storage.bucket_exists(bucket):
                    continue
                (await self._storage.delete_bucket(bucket)).raise_for_error()

        await run_with_compensation(
            _soft_delete,
            _delete_buckets,
            self._projects.restore,
            operation="project_delete",
            failure_message="Project storage could not be deleted; project was restored",
            team_id=team_id,
            project_id=project_id,
        )
        log.info("project_deleted", team_id=team_id, project_id=project_id)

    # -- files --------------------------------------------------------------

    async def store_file(
        self,
        team_id: int,
        user_id: int,
        project_id: int,
        file_path: Any,
        content: Any,
        encoding: str = "utf8",
        mime_type: str | None = None,
    ) -> ProjectFileModel:
        """Write ``content`` to the project's files bucket, replacing any existing object."""
        file_path = _require_path(file_path, "filePath")
        data = decode_content(content, encoding)

        team, membership = await self._context(team_id, user_id)
        project = await self._project(team_id, project_id)
        project_pk = project.id
        bucket = project.bucket_name("files")

        exists = await self._storage.file_exists(bucket, file_path)
        require_permission(team, membership, "update" if exists else "create", "file")

        if exists:
            (await self._storage.delete_file(bucket, file_path)).raise_for_error()
        (
            await self._storage.upload_file(
                bucket, file_path, data, mime_type or "application/octet-stream"
            )
        ).raise_for_error()

        record = await self._projects.get_file(project_pk, file_path)
        if record is None:
            record = ProjectFileModel(project_id=project_pk, file_name=file_path)
        record.s3_bucket = bucket
        record.s3_key = file_path
        record.file_size = len(data)
        record.mime_type = mime_type
        await self._projects.save_file(record)
        log.info("project_file_stored", project_id=project_pk, size=len(data), replaced=exists)
        return record

    async def read_file(
        self, team_id: int, user_id: int, project_id: int, file_path: str | None = None
    ) -> tuple[str, bytes, str]:
        """Return ``(path, content, mime_type)``.

        Without a path the most recently saved page (the last ``*/page.svg``
        in name order) is returned.
        """
        team, membership = await self._context(team_id, user_id)
        project = await self._project(team_id, project_id)
        require_permission(team, membership, "read", "file")
        bucket = project.bucket_name("files")

        if not file_path:
            listing = (await self._storage.list_files(bucket)).raise_for_error()
            candidates = sorted(
                item["name"]
                for item in listing or []
                if item.get("name", "").endswith(SAVED_PAGE_SUFFIX)
            )
            if not candidates:
                raise NotFoundError("No saved project found")
            file_path = candidates[-1]

        data = (await self._storage.get_file(bucket, file_path)).raise_for_error()
        if isinstance(data, str):
            data = data.encode("utf-8")
        return file_path, data or b"", guess_mime_type(file_path)

    async def rename_file(
        self, team_id: int, user_id: int, project_id: int, old_path: Any, new_path: Any
    ) -> ProjectFileModel:
        old_path = _require_path(old_path, "filePath")
        new_path = _require_path(new_path, "newFilePath")
        if old_path == new_path:
            raise ValidationError("New path must differ from the current path")

        team, membership = await self._context(team_id, user_id)
        project = await self._project(team_id, project_id)
        require_permission(team, membership, "update", "file")

        record = await self._projects.get_file(project.id, old_path)
        if record is None:
            raise NotFoundError("File not found")
        if await self._projects.get_file(project.id, new_path) is not None:
            raise ConflictError("A file with that name already exists")
        bucket = record.s3_bucket

        async def _move(renamed: ProjectFileModel) -> None:
            (await self._storage.move_file(bucket, old_path, new_path)).raise_for_error()

        return await change_fields(
            record,
            {"file_name": new_path, "s3_key": new_path},
            save=self._projects.save_file,
            effect=_move,
            operation="file_rename",
            failure_message="File rename failed in storage; name was reverted",
            project_id=project_id,
        )
