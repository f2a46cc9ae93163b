"""Record-store gateway used by the pipeline.

Each operation opens its own session, so several writes can be awaited
concurrently and checked together with :meth:`PersistenceGateway.run_batch`.
"""

import asyncio
import logging
from collections.abc import Awaitable, Iterable
from typing import Any

from sqlalchemy import func, insert, select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import selectinload

from sitevoice.database import Base, new_id
from sitevoice.errors import PersistenceError
from sitevoice.models import (
    AIAnalysis,
    ActionItem,
    ApprovalRequest,
    LaborRequest,
    MaterialRequest,
    Notification,
    ProjectEvent,
    Prompt,
    User,
    VoiceNote,
)

logger = logging.getLogger("sitevoice.persistence")

TABLES: dict[str, type[Base]] = {
    model.__tablename__: model
    for model in (
        VoiceNote,
        AIAnalysis,
        MaterialRequest,
        LaborRequest,
        ApprovalRequest,
        ProjectEvent,
        ActionItem,
        Notification,
    )
}

MANAGER_ROLES = ("admin", "manager")


def _model(table: str) -> type[Base]:
    try:
        return TABLES[table]
    except KeyError:
        raise PersistenceError(f"Unknown table: {table}") from None


class PersistenceGateway:
    """Reads and writes pipeline records through SQLAlchemy's async ORM."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._sessions = session_factory

    async def read_record(self, table: str, record_id: str, relations: Iterable[str] = ()) -> Any | None:
        """Load one row with the named relationships eagerly populated, or None."""
        model = _model(table)
        stmt = select(model).where(model.id == record_id)
        for relation in relations:
            stmt = stmt.options(selectinload(getattr(model, relation)))
        async with self._sessions() as session:
            return (await session.execute(stmt)).scalar_one_or_none()

    async def update_record(
        self,
        table: str,
        record_id: str,
        fields: dict[str, Any],
        *,
        first_write: dict[str, Any] | None = None,
        status_from: Iterable[str] | None = None,
    ) -> None:
        """Update a row.

        ``first_write`` columns are only set while still NULL in the store.
        When ``status_from`` is given, ``fields`` are only applied if the stored
        status is one of those values, so a status never moves backwards.
        """
        model = _model(table)
        conditions = [model.id == record_id]
        if status_from is not None:
            conditions.append(model.status.in_(tuple(status_from)))

        async with self._sessions() as session, session.begin():
            for column, value in (first_write or {}).items():
                if value is None:
                    continue
                await session.execute(
                    update(model)
                    .where(model.id == record_id, getattr(model, column).is_(None))
                    .values({column: value})
                )
            if fields:
                result = await session.execute(update(model).where(*conditions).values(**fields))
                if result.rowcount == 0:
                    logger.info("%s %s: update skipped (status guard or missing row)", table, record_id)

    async def insert_batch(self, table: str, rows: list[dict[str, Any]]) -> None:
        """Insert all rows for one table in a single statement."""
        if not rows:
            return
        model = _model(table)
        rows = [{"id": new_id(), **row} for row in rows]
        async with self._sessions() as session, session.begin():
            await session.execute(insert(model), rows)

    async def insert_one(self, table: str, row: dict[str, Any]) -> None:
        model = _model(table)
        async with self._sessions() as session, session.begin():
            session.add(model(**row))

    async def run_batch(self, writes: dict[str, Awaitable[None]]) -> None:
        """Await every write concurrently; raise for the first one that failed."""
        labels = list(writes)
        results = await asyncio.gather(*writes.values(), return_exceptions=True)
        failures = [(label, result) for label, result in zip(labels, results) if isinstance(result, BaseException)]
        for label, error in failures:
            logger.error("Write '%s' failed: %r", label, error)
        if failures:
            label, error = failures[0]
            raise PersistenceError(f"{label} failed: {error}") from error

    # --- Context queries ---

    async def exists(self, table: str, **filters: Any) -> bool:
        model = _model(table)
        async with self._sessions() as session:
            found = await session.execute(select(model.id).filter_by(**filters).limit(1))
            return found.first() is not None

    async def get_active_prompt(self, provider: str, purpose: str) -> Prompt | None:
        """Highest active version of the prompt for (provider, purpose)."""
        stmt = (
            select(Prompt)
            .where(Prompt.provider == provider, Prompt.purpose == purpose, Prompt.is_active.is_(True))
            .order_by(Prompt.version.desc())
            .limit(1)
        )
        async with self._sessions() as session:
            return (await session.execute(stmt)).scalar_one_or_none()

    async def resolve_assignee(self, user: User) -> str | None:
        """Reporting manager of ``user`` if linked, else the first active admin/manager on the account."""
        async with self._sessions() as session:
            if user.reports_to_id:
                manager = await session.get(User, user.reports_to_id)
                if manager is not None and manager.is_active:
                    return manager.id
            stmt = (
                select(User.id)
                .where(User.account_id == user.account_id, User.role.in_(MANAGER_ROLES), User.is_active.is_(True))
                .order_by(User.created_at, User.id)
                .limit(1)
            )
            return (await session.execute(stmt)).scalar_one_or_none()

    async def recipient_languages(self, account_id: str, exclude_user_id: str | None = None) -> set[str]:
        """Preferred languages of the account's other active users."""
        stmt = select(User.preferred_language).where(User.account_id == account_id, User.is_active.is_(True))
        if exclude_user_id:
            stmt = stmt.where(User.id != exclude_user_id)
        async with self._sessions() as session:
            return {lang.lower() for lang in (await session.execute(stmt)).scalars() if lang}

    async def next_analysis_version(self, voice_note_id: str) -> int:
        stmt = select(func.max(AIAnalysis.version)).where(AIAnalysis.voice_note_id == voice_note_id)
        async with self._sessions() as session:
            current = (await session.execute(stmt)).scalar_one_or_none()
        return (current or 0) + 1
