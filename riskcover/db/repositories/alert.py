"""Exploit alert repository."""

from typing import Optional, Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from riskcover.db.models import ExploitAlert
from riskcover.db.repositories.base import BaseRepository


class ExploitAlertRepository(BaseRepository[ExploitAlert]):
    label = "exploit alert"

    def __init__(self):
        super().__init__(ExploitAlert)

    async def list_by_protocol(
        self,
        db: AsyncSession,
        protocol_id: str,
        unresolved_only: bool = False,
        offset: int = 0,
        limit: Optional[int] = None,
    ) -> Sequence[ExploitAlert]:
        criteria = [ExploitAlert.protocol_id == protocol_id]
        if unresolved_only:
            criteria.append(ExploitAlert.is_resolved.is_(False))
        return await self.list(
            db, *criteria, order_by=ExploitAlert.sequence, offset=offset, limit=limit,
        )


alert_repo = ExploitAlertRepository()
