from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Iterable, Optional, TypeVar

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from services.errors import ConflictError

T = TypeVar("T")


class RecordStore:
    """
    Read, conditional update and simple lookups over one AsyncSession.
    Nothing here commits; the caller owns the transaction boundary.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self, model: type[T], record_id: str) -> Optional[T]:
        # populate_existing: never trust a row cached from an earlier read in this session
        result = await self.session.execute(
            select(model).where(model.id == record_id).execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def query(
        self,
        model: type[T],
        filters: Optional[dict[str, Any]] = None,
        order_by: Iterable[Any] = (),
        limit: Optional[int] = None,
    ) -> list[T]:
        stmt = select(model).filter_by(**(filters or {})).execution_options(populate_existing=True)
        for clause in order_by:
            stmt = stmt.order_by(clause)
        if limit is not None:
            stmt = stmt.limit(limit)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def add(self, record: T) -> T:
        self.session.add(record)
        try:
            await self.session.flush()
        except IntegrityError as e:
            raise ConflictError(f"Concurrent write rejected for {type(record).__name__}") from e
        return record

    async def conditional_update(
        self, model: type[T], record_id: str, expected_version: int, patch: dict[str, Any]
    ) -> int:
        """
        Apply `patch` only if the row is still at `expected_version`; bumps the version.
        Raises ConflictError when another writer got there first.
        """
        values = {**patch, "version": expected_version + 1, "updated_at": datetime.now(timezone.utc)}
        result = await self.session.execute(
            update(model)
            .where(model.id == record_id, model.version == expected_version)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise ConflictError(
                f"{model.__tablename__} {record_id} changed since version {expected_version}"
            )
        return expected_version + 1

    async def compare_and_set_status(
        self, model: type[T], record_id: str, expected_statuses: Iterable[str], patch: dict[str, Any]
    ) -> None:
        """Conditional write keyed on the current `status` for records without a version column."""
        values = {**patch, "updated_at": datetime.now(timezone.utc)}
        result = await self.session.execute(
            update(model)
            .where(model.id == record_id, model.status.in_(list(expected_statuses)))
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise ConflictError(f"{model.__tablename__} {record_id} changed concurrently")

    async def refresh(self, record: T) -> T:
        await self.session.refresh(record)
        return record
