"""Translation of storage-level uniqueness violations."""

from __future__ import annotations

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from umlpro_service.errors import ConflictError

_UNIQUE_VIOLATION = "23505"


def is_unique_violation(exc: IntegrityError) -> bool:
    """True if the IntegrityError was raised by a unique constraint.

    asyncpg exposes the SQLSTATE as ``sqlstate``, psycopg as ``pgcode``;
    SQLite only reports it in the message.
    """
    orig = exc.orig
    code = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    if code == _UNIQUE_VIOLATION:
        return True
    return "UNIQUE constraint failed" in str(orig)


async def commit(session: AsyncSession, conflict_message: str = "Already exists") -> None:
    """Commit the session, re-raising unique violations as ConflictError."""
    try:
        await session.commit()
    except IntegrityError as exc:
        await session.rollback()
        if is_unique_violation(exc):
            raise ConflictError(conflict_message) from exc
        raise
