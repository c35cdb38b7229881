"""Policy repository."""

from typing import Optional, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from riskcover.db.models import Policy
from riskcover.db.repositories.base import BaseRepository


class PolicyRepository(BaseRepository[Policy]):
    label = "policy"

    def __init__(self):
        super().__init__(Policy)

    async def latest_for(
        self,
        db: AsyncSession,
        insured: str,
        protocol_id: str,
    ) -> Optional[Policy]:
        """Most recent policy generation for an (insured, protocol) pair."""
        result = await db.execute(
            select(Policy)
            .where(Policy.insured == insured, Policy.protocol_id == protocol_id)
            .order_by(Policy.generation.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def list_policies(
        self,
        db: AsyncSession,
        insured: Optional[str] = None,
        protocol_id: Optional[str] = None,
        offset: int = 0,
        limit: Optional[int] = None,
    ) -> Sequence[Policy]:
        criteria = []
        if insured is not None:
            criteria.append(Policy.insured == insured)
        if protocol_id is not None:
            criteria.append(Policy.protocol_id == protocol_id)
        return await self.list(
            db, *criteria, order_by=Policy.start_time, offset=offset, limit=limit,
        )


policy_repo = PolicyRepository()
