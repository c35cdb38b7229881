"""Capital pool and capital provider repositories."""

from typing import Optional, Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from riskcover.db.keys import pool_key, provider_key
from riskcover.db.models import CapitalPool, CapitalProvider
from riskcover.db.repositories.base import BaseRepository
from riskcover.schemas.common import PoolType


class CapitalPoolRepository(BaseRepository[CapitalPool]):
    label = "capital pool"

    def __init__(self):
        super().__init__(CapitalPool)

    async def get_by_type(
        self,
        db: AsyncSession,
        pool_type: PoolType,
        *,
        for_update: bool = False,
    ) -> CapitalPool:
        return await self.get_or_raise(db, pool_key(pool_type), for_update=for_update)

    async def list_pools(self, db: AsyncSession) -> Sequence[CapitalPool]:
        return await self.list(db, order_by=CapitalPool.created_at)


class CapitalProviderRepository(BaseRepository[CapitalProvider]):
    label = "capital provider"

    def __init__(self):
        super().__init__(CapitalProvider)

    async def get_for(
        self,
        db: AsyncSession,
        owner: str,
        pool_id: str,
        *,
        for_update: bool = False,
    ) -> Optional[CapitalProvider]:
        return await self.get(db, provider_key(owner, pool_id), for_update=for_update)

    async def list_by_pool(self, db: AsyncSession, pool_id: str) -> Sequence[CapitalProvider]:
        return await self.list(
            db, CapitalProvider.pool_id == pool_id, order_by=CapitalProvider.deposited_at,
        )


pool_repo = CapitalPoolRepository()
provider_repo = CapitalProviderRepository()
