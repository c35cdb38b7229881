"""Claim repository."""

from typing import Optional, Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from riskcover.db.models import Claim
from riskcover.db.repositories.base import BaseRepository
from riskcover.schemas.common import ClaimStatus


class ClaimRepository(BaseRepository[Claim]):
    label = "claim"

    def __init__(self):
        super().__init__(Claim)

    async def list_claims(
        self,
        db: AsyncSession,
        status: Optional[ClaimStatus] = None,
        protocol_id: Optional[str] = None,
        offset: int = 0,
        limit: Optional[int] = None,
    ) -> Sequence[Claim]:
        criteria = []
        if status is not None:
            criteria.append(Claim.status == status.value)
        if protocol_id is not None:
            criteria.append(Claim.protocol_id == protocol_id)
        return await self.list(
            db, *criteria, order_by=Claim.submitted_at, offset=offset, limit=limit,
        )


claim_repo = ClaimRepository()
