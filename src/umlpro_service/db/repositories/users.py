"""Repository for user accounts."""

from __future__ import annotations

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from umlpro_service.db.integrity import commit
from umlpro_service.db.models import UserModel


class UsersRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(
        self,
        firstname: str,
        lastname: str,
        age: int,
        email: str,
        username: str,
        password: str,
    ) -> UserModel:
        """Create a new user with a bcrypt-hashed password."""
        user = UserModel(
            firstname=firstname,
            lastname=lastname,
            age=age,
            email=email,
            username=username,
        )
        user.set_password(password)
        self._session.add(user)
        await commit(self._session, "User already exists")
        await self._session.refresh(user)
        return user

    async def get(self, user_id: int) -> UserModel | None:
        result = await self._session.execute(
            select(UserModel).where(UserModel.id == user_id, UserModel.deleted_at.is_(None))
        )
        return result.scalars().first()

    async def get_by_email(self, email: str) -> UserModel | None:
        result = await self._session.execute(select(UserModel).where(UserModel.email == email))
        return result.scalars().first()

    async def get_by_username(self, username: str) -> UserModel | None:
        result = await self._session.execute(
            select(UserModel).where(UserModel.username == username)
        )
        return result.scalars().first()

    async def get_by_identifier(self, identifier: str) -> UserModel | None:
        """Look up by email or username, including soft-deleted accounts."""
        result = await self._session.execute(
            select(UserModel).where(
                or_(UserModel.email == identifier, UserModel.username == identifier)
            )
        )
        return result.scalars().first()

    async def search(self, query: str, limit: int = 10) -> list[UserModel]:
        """Case-insensitive substring match on email, username and names.

        LIKE wildcards in ``query`` match literally.
        """
        escaped = query.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
        pattern = f"%{escaped}%"
        result = await self._session.execute(
            select(UserModel)
            .where(
                UserModel.deleted_at.is_(None),
                or_(
                    UserModel.email.ilike(pattern, escape="\\"),
                    UserModel.username.ilike(pattern, escape="\\"),
                    UserModel.firstname.ilike(pattern, escape="\\"),
                    UserModel.lastname.ilike(pattern, escape="\\"),
                ),
            )
            .order_by(UserModel.id)
            .limit(limit)
        )
        return list(result.scalars().all())

    async def save(self, user: UserModel) -> UserModel:
        self._session.add(user)
        await commit(self._session, "Email or username already in use")
        return user
