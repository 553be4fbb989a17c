"""Repository for team projects and their stored files."""

from __future__ import annotations

from datetime import UTC, datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from umlpro_service.db.integrity import commit
from umlpro_service.db.models import ProjectFileModel, ProjectModel, Visibility


class ProjectsRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(
        self,
        team_id: int,
        name: str,
        description: str | None = None,
        visibility: str = Visibility.PUBLIC.value,
    ) -> ProjectModel:
        project = ProjectModel(
            team_id=team_id,
            name=name,
            description=description,
            visibility=visibility,
        )
        self._session.add(project)
        await commit(self._session)
        await self._session.refresh(project)
        return project

    async def get(self, team_id: int, project_id: int) -> ProjectModel | None:
        result = await self._session.execute(
            select(ProjectModel).where(
                ProjectModel.id == project_id,
                ProjectModel.team_id == team_id,
                ProjectModel.deleted_at.is_(None),
            )
        )
        return result.scalars().first()

    async def list_for_team(self, team_id: int) -> list[ProjectModel]:
        result = await self._session.execute(
            select(ProjectModel)
            .where(ProjectModel.team_id == team_id, ProjectModel.deleted_at.is_(None))
            .order_by(ProjectModel.id)
        )
        return list(result.scalars().all())

    async def save(self, project: ProjectModel) -> ProjectModel:
        self._session.add(project)
        await commit(self._session)
        return project

    async def delete(self, project: ProjectModel) -> None:
        """Hard delete, used to roll back a project whose buckets never materialised."""
        await self._session.delete(project)
        await self._session.commit()

    async def soft_delete(self, project: ProjectModel) -> None:
        project.deleted_at = datetime.now(UTC)
        await self.save(project)

    async def restore(self, project: ProjectModel) -> None:
        project.deleted_at = None
        await self.save(project)

    async def get_file(self, project_id: int, file_name: str) -> ProjectFileModel | None:
        result = await self._session.execute(
            select(ProjectFileModel).where(
                ProjectFileModel.project_id == project_id,
                ProjectFileModel.file_name == file_name,
            )
        )
        return result.scalars().first()

    async def save_file(self, project_file: ProjectFileModel) -> ProjectFileModel:
        self._session.add(project_file)
        await commit(self._session, "A file with that name already exists")
        return project_file
