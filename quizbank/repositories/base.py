"""Generic async table repository.

One implementation of the storage capability (get/find/count/insert/update/
soft-delete) parameterized by the ORM model. Services compose a
``Repository`` per entity rather than inheriting from it. For models with a
``deleted_at`` column the soft-delete predicate is applied to every read
automatically unless ``include_deleted=True`` is passed.
"""

import logging
from typing import Any, Generic, Optional, Sequence, Type, TypeVar
from uuid import UUID

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.exc import TimeoutError as SQLAlchemyTimeoutError
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import Base, utcnow
from ..errors import BusinessLogicError, DatabaseError

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=Base)

# Unique or foreign key violation, usually a concurrent request winning a race
CONFLICT_MESSAGE = "The change conflicts with existing data, please retry"


class Repository(Generic[ModelT]):
    """
    CRUD access to one table.

    Args:
        db: SQLAlchemy async session shared by the whole request
        model: ORM model class backing the table
    """

    def __init__(self, db: AsyncSession, model: Type[ModelT]):
        self.db = db
        self.model = model
        self._soft_delete = hasattr(model, "live")

    def _scoped(self, conditions: Sequence[Any], include_deleted: bool) -> list[Any]:
        where = list(conditions)
        if self._soft_delete and not include_deleted:
            where.append(self.model.live())
        return where

    async def execute(self, statement):
        """Execute a statement, mapping store failures to DatabaseError."""
        try:
            return await self.db.execute(statement)
        except SQLAlchemyTimeoutError:
            raise
        except IntegrityError as e:
            logger.warning(f"{self.model.__tablename__}: constraint violated: {e.orig}")
            raise BusinessLogicError(CONFLICT_MESSAGE) from e
        except SQLAlchemyError as e:
            logger.error(f"{self.model.__tablename__}: query failed: {e}")
            raise DatabaseError(original_error=e) from e

    async def get(self, id: UUID, include_deleted: bool = False) -> Optional[ModelT]:
        """Fetch one row by primary key, or None."""
        if id is None:
            return None
        result = await self.execute(
            select(self.model).where(*self._scoped([self.model.id == id], include_deleted))
        )
        return result.scalar_one_or_none()

    async def first(self, *conditions: Any, include_deleted: bool = False) -> Optional[ModelT]:
        result = await self.execute(
            select(self.model).where(*self._scoped(conditions, include_deleted)).limit(1)
        )
        return result.scalars().first()

    async def find(
        self,
        *conditions: Any,
        order_by: Optional[Sequence[Any]] = None,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
        include_deleted: bool = False,
    ) -> list[ModelT]:
        """Fetch rows matching all conditions."""
        query = select(self.model).where(*self._scoped(conditions, include_deleted))
        if order_by:
            query = query.order_by(*order_by)
        if offset:
            query = query.offset(offset)
        if limit is not None:
            query = query.limit(limit)
        result = await self.execute(query)
        return list(result.scalars().all())

    async def ids(self, *conditions: Any, include_deleted: bool = False) -> list[UUID]:
        """Primary keys of matching rows, without loading the rows."""
        result = await self.execute(
            select(self.model.id).where(*self._scoped(conditions, include_deleted))
        )
        return list(result.scalars().all())

    async def count(self, *conditions: Any, include_deleted: bool = False) -> int:
        result = await self.execute(
            select(func.count())
            .select_from(self.model)
            .where(*self._scoped(conditions, include_deleted))
        )
        return result.scalar_one()

    async def exists(self, *conditions: Any, include_deleted: bool = False) -> bool:
        return await self.count(*conditions, include_deleted=include_deleted) > 0

    async def insert(self, **values: Any) -> ModelT:
        """Add a new row and flush so generated ids are available."""
        obj = self.model(**values)
        self.db.add(obj)
        await self.flush()
        return obj

    async def update(self, obj: ModelT, **values: Any) -> ModelT:
        """Apply a partial update to a loaded row."""
        for field, value in values.items():
            setattr(obj, field, value)
        if hasattr(obj, "updated_at") and "updated_at" not in values:
            obj.updated_at = utcnow()
        await self.flush()
        return obj

    async def update_where(self, conditions: Sequence[Any], values: dict, include_deleted: bool = False) -> int:
        """Bulk update matching rows. Returns the number of rows changed."""
        result = await self.execute(
            update(self.model)
            .where(*self._scoped(conditions, include_deleted))
            .values(**values)
            .execution_options(synchronize_session="fetch")
        )
        return result.rowcount

    async def soft_delete(self, obj: ModelT) -> ModelT:
        """Mark a row deleted via its ``deleted_at`` timestamp."""
        now = utcnow()
        return await self.update(obj, deleted_at=now, updated_at=now)

    async def delete_where(self, *conditions: Any) -> int:
        """Physically delete matching rows (soft-delete filter not applied)."""
        result = await self.execute(
            delete(self.model).where(*conditions).execution_options(synchronize_session="fetch")
        )
        return result.rowcount

    async def flush(self) -> None:
        try:
            await self.db.flush()
        except SQLAlchemyTimeoutError:
            raise
        except IntegrityError as e:
            logger.warning(f"{self.model.__tablename__}: constraint violated: {e.orig}")
            raise BusinessLogicError(CONFLICT_MESSAGE) from e
        except SQLAlchemyError as e:
            logger.error(f"{self.model.__tablename__}: flush failed: {e}")
            raise DatabaseError(original_error=e) from e
