"""Apply a local change, run one external effect, compensate if it fails.

There is no transaction spanning the external call. Between ``apply`` and a
compensation, other readers can observe the new value; that window is
accepted. Nothing is retried: one failed effect triggers exactly one
compensation attempt.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, TypeVar

import structlog

from umlpro_service.errors import CompensationFailedError, ExternalEffectError

log = structlog.get_logger(__name__)

T = TypeVar("T")


async def run_with_compensation(
    apply: Callable[[], Awaitable[T]],
    effect: Callable[[T], Awaitable[Any]],
    compensate: Callable[[T], Awaitable[Any]],
    *,
    operation: str,
    failure_message: str | None = None,
    **context: Any,
) -> T:
    """Run ``apply``, then ``effect``; on effect failure run ``compensate``.

    Errors from ``apply`` propagate unchanged since nothing was persisted.
    An effect failure raises ExternalEffectError once compensation has
    succeeded, or CompensationFailedError if compensation itself failed.
    """
    applied = await apply()

    try:
        await effect(applied)
    except Exception as exc:
        log.warning("external_effect_failed", operation=operation, error=str(exc), **context)
        try:
            await compensate(applied)
        except Exception as comp_exc:
            log.critical(
                "compensation_failed",
                operation=operation,
                effect_error=str(exc),
                error=str(comp_exc),
                **context,
            )
            raise CompensationFailedError(
                f"{operation} failed and could not be reverted; record may be inconsistent"
            ) from comp_exc
        log.info("compensation_applied", operation=operation, **context)
        raise ExternalEffectError(failure_message or f"{operation} failed: {exc}") from exc

    return applied


@dataclass
class FieldSnapshot:
    """Pre-mutation value of one attribute, captured before it changes."""

    entity: Any
    field: str
    previous: Any

    @classmethod
    def capture(cls, entity: Any, field: str) -> FieldSnapshot:
        return cls(entity=entity, field=field, previous=getattr(entity, field))

    def restore(self) -> None:
        setattr(self.entity, self.field, self.previous)


async def change_fields(
    entity: T,
    changes: dict[str, Any],
    *,
    save: Callable[[T], Awaitable[Any]],
    effect: Callable[[T], Awaitable[Any]],
    operation: str,
    failure_message: str | None = None,
    **context: Any,
) -> T:
    """Revert-in-place: set fields, save once, run the effect.

    On failure every field is put back to its captured value and the entity
    is saved once more.
    """
    snapshots = [FieldSnapshot.capture(entity, field) for field in changes]

    async def _apply() -> T:
        for field, value in changes.items():
            setattr(entity, field, value)
        await save(entity)
        return entity

    async def _compensate(_: T) -> None:
        for snapshot in snapshots:
            snapshot.restore()
        await save(entity)

    return await run_with_compensation(
        _apply,
        effect,
        _compensate,
        operation=operation,
        failure_message=failure_message,
        **context,
    )


async def change_field(
    entity: T,
    field: str,
    value: Any,
    *,
    save: Callable[[T], Awaitable[Any]],
    effect: Callable[[T], Awaitable[Any]],
    operation: str,
    failure_message: str | None = None,
    **context: Any,
) -> T:
    return await change_fields(
        entity,
        {field: value},
        save=save,
        effect=effect,
        operation=operation,
        failure_message=failure_message,
        **context,
    )


async def create_with_rollback(
    create: Callable[[], Awaitable[T]],
    effect: Callable[[T], Awaitable[Any]],
    delete: Callable[[T], Awaitable[Any]],
    *,
    operation: str,
    failure_message: str | None = None,
    **context: Any,
) -> T:
    """Delete-on-failure: the row did not exist before, so undo means delete it."""
    return await run_with_compensation(
        create,
        effect,
        delete,
        operation=operation,
        failure_message=failure_message,
        **context,
    )
