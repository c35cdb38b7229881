"""
Generic async repository keyed by the model's primary key.

Reads that precede a mutation pass for_update=True so the row is locked
(SELECT ... FOR UPDATE on PostgreSQL) for the rest of the transaction.
"""

from typing import Any, Generic, Optional, Sequence, Type, TypeVar

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from riskcover.db.engine import Base
from riskcover.errors import NotFound

ModelT = TypeVar("ModelT", bound=Base)


class BaseRepository(Generic[ModelT]):
    """Generic async lookup and listing operations."""

    label: str = "record"

    def __init__(self, model: Type[ModelT]):
        self.model = model
        self.pk = model.__mapper__.primary_key[0]

    async def get(
        self,
        db: AsyncSession,
        key: str,
        *,
        for_update: bool = False,
    ) -> Optional[ModelT]:
        stmt = select(self.model).where(self.pk == key)
        if for_update:
            stmt = stmt.with_for_update()
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_or_raise(
        self,
        db: AsyncSession,
        key: str,
        *,
        for_update: bool = False,
    ) -> ModelT:
        """Like get(), but raises NotFound for a missing key."""
        obj = await self.get(db, key, for_update=for_update)
        if obj is None:
            raise NotFound(f"{self.label} not found", key=key)
        return obj

    async def exists(self, db: AsyncSession, key: str) -> bool:
        result = await db.execute(
            select(func.count()).select_from(self.model).where(self.pk == key)
        )
        return result.scalar_one() > 0

    async def add(self, db: AsyncSession, obj: ModelT) -> ModelT:
        db.add(obj)
        await db.flush()
        return obj

    async def list(
        self,
        db: AsyncSession,
        *criteria: Any,
        order_by: Any = None,
        offset: int = 0,
        limit: Optional[int] = None,
    ) -> Sequence[ModelT]:
        stmt = select(self.model).where(*criteria)
        stmt = stmt.order_by(order_by if order_by is not None else self.pk)
        if offset:
            stmt = stmt.offset(offset)
        if limit is not None:
            stmt = stmt.limit(limit)
        result = await db.execute(stmt)
        return result.scalars().all()

    async def count(self, db: AsyncSession, *criteria: Any) -> int:
        result = await db.execute(
            select(func.count()).select_from(self.model).where(*criteria)
        )
        return result.scalar_one()
