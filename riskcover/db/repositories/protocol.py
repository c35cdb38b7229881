"""Protocol state, registry and protocol info repositories."""

from typing import Optional, Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from riskcover.db.keys import protocol_key, protocol_registry_key, protocol_state_key
from riskcover.db.models import ProtocolInfo, ProtocolRegistry, ProtocolState
from riskcover.db.repositories.base import BaseRepository
from riskcover.errors import NotFound


class ProtocolStateRepository(BaseRepository[ProtocolState]):
    label = "protocol state"

    def __init__(self):
        super().__init__(ProtocolState)

    async def load(self, db: AsyncSession, *, for_update: bool = False) -> ProtocolState:
        """Load the singleton; NotFound until initialize_protocol has run."""
        state = await self.get(db, protocol_state_key(), for_update=for_update)
        if state is None:
            raise NotFound("protocol has not been initialized")
        return state


class ProtocolRegistryRepository(BaseRepository[ProtocolRegistry]):
    label = "protocol registry"

    def __init__(self):
        super().__init__(ProtocolRegistry)

    async def load(self, db: AsyncSession, *, for_update: bool = False) -> ProtocolRegistry:
        return await self.get_or_raise(db, protocol_registry_key(), for_update=for_update)


class ProtocolInfoRepository(BaseRepository[ProtocolInfo]):
    label = "protocol"

    def __init__(self):
        super().__init__(ProtocolInfo)

    async def get_by_authority(self, db: AsyncSession, authority: str) -> Optional[ProtocolInfo]:
        return await self.get(db, protocol_key(authority))

    async def list_protocols(
        self,
        db: AsyncSession,
        active_only: bool = False,
        offset: int = 0,
        limit: Optional[int] = None,
    ) -> Sequence[ProtocolInfo]:
        criteria = [ProtocolInfo.is_active.is_(True)] if active_only else []
        return await self.list(
            db, *criteria, order_by=ProtocolInfo.registered_at, offset=offset, limit=limit,
        )


protocol_state_repo = ProtocolStateRepository()
protocol_registry_repo = ProtocolRegistryRepository()
protocol_repo = ProtocolInfoRepository()
