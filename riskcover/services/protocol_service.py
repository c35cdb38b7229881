"""
Protocol administration and registry.

- initialize_protocol: one-time bootstrap of ProtocolState + ProtocolRegistry
- update_protocol_fee / set_protocol_active: administrator only
- register_protocol: one ProtocolInfo per authority, default risk score
- update_risk: protocol authority re-scores its own protocol

All methods take the caller's session and never commit.
"""

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from riskcover.config import Settings
from riskcover.db.keys import protocol_key, protocol_registry_key, protocol_state_key
from riskcover.db.models import ProtocolInfo, ProtocolRegistry, ProtocolState
from riskcover.db.repositories.protocol import (
    protocol_registry_repo,
    protocol_repo,
    protocol_state_repo,
)
from riskcover.engine.checked import checked_add, ensure_u64
from riskcover.engine.risk_engine import (
    CodeRiskParams,
    EconomicRiskParams,
    OperationalRiskParams,
    RiskBreakdown,
    RiskEngine,
)
from riskcover.errors import (
    AlreadyInitialized,
    DuplicateRegistration,
    InvalidAmount,
    InvalidBasisPoints,
    InvalidParameter,
    InvalidTokenAccount,
    Unauthorized,
)
from riskcover.services.asset_ledger import AssetLedger
from riskcover.services.clock import Clock

logger = structlog.get_logger(__name__)

MAX_BPS = 10_000


def check_bps(value: int, name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value <= MAX_BPS:
        raise InvalidBasisPoints(f"{name} must be within [0, {MAX_BPS}]", field=name, value=str(value))
    return value


def require_admin(state: ProtocolState, signer: str) -> None:
    if signer != state.authority:
        raise Unauthorized("only the protocol administrator may do this", signer=signer)


class ProtocolService:
    """Protocol-level administration and the protocol registry."""

    def __init__(
        self,
        settings: Settings,
        clock: Clock,
        ledger: AssetLedger,
        risk_engine: RiskEngine,
    ):
        self.settings = settings
        self.clock = clock
        self.ledger = ledger
        self.risk_engine = risk_engine

    # ── Administration ────────────────────────────────────────────────

    async def initialize_protocol(
        self,
        session: AsyncSession,
        signer: str,
        protocol_fee_bps: int,
        treasury_account: str,
    ) -> ProtocolState:
        if await protocol_state_repo.exists(session, protocol_state_key()):
            raise AlreadyInitialized("protocol is already initialized")
        check_bps(protocol_fee_bps, "protocol_fee_bps")

        treasury = await self.ledger.get_account(session, treasury_account)
        if treasury is None:
            raise InvalidTokenAccount("treasury token account does not exist", address=treasury_account)

        now = self.clock.now()
        state = ProtocolState(
            id=protocol_state_key(),
            authority=signer,
            protocol_fee_bps=protocol_fee_bps,
            treasury_account=treasury_account,
            created_at=now,
            updated_at=now,
        )
        await protocol_state_repo.add(session, state)
        await protocol_registry_repo.add(
            session, ProtocolRegistry(id=protocol_registry_key(), protocol_count=0),
        )

        logger.info(
            "protocol_initialized",
            authority=signer,
            protocol_fee_bps=protocol_fee_bps,
            treasury_account=treasury_account,
        )
        return state

    async def update_protocol_fee(
        self,
        session: AsyncSession,
        signer: str,
        protocol_fee_bps: int,
    ) -> ProtocolState:
        state = await protocol_state_repo.load(session, for_update=True)
        require_admin(state, signer)
        check_bps(protocol_fee_bps, "protocol_fee_bps")

        old = state.protocol_fee_bps
        state.protocol_fee_bps = protocol_fee_bps
        state.updated_at = self.clock.now()
        await session.flush()

        logger.info("protocol_fee_updated", old_fee_bps=old, new_fee_bps=protocol_fee_bps)
        return state

    async def set_protocol_active(
        self,
        session: AsyncSession,
        signer: str,
        protocol_id: str,
        is_active: bool,
    ) -> ProtocolInfo:
        state = await protocol_state_repo.load(session)
        require_admin(state, signer)
        protocol = await protocol_repo.get_or_raise(session, protocol_id, for_update=True)

        protocol.is_active = bool(is_active)
        await session.flush()

        logger.info("protocol_active_set", protocol_id=protocol_id, is_active=protocol.is_active)
        return protocol

    # ── Registry ──────────────────────────────────────────────────────

    async def register_protocol(
        self,
        session: AsyncSession,
        signer: str,
        name: str,
        tvl_usd: int,
    ) -> ProtocolInfo:
        registry = await protocol_registry_repo.load(session, for_update=True)

        if not isinstance(name, str) or not name.strip():
            raise InvalidParameter("protocol name must not be empty", field="name")
        if len(name) > self.settings.max_protocol_name_length:
            raise InvalidParameter(
                f"protocol name exceeds {self.settings.max_protocol_name_length} characters",
                field="name",
            )
        if isinstance(tvl_usd, bool) or not isinstance(tvl_usd, int) or tvl_usd < 0:
            raise InvalidAmount("tvl_usd must be a non-negative integer", field="tvl_usd")
        ensure_u64(tvl_usd, "tvl_usd")

        key = protocol_key(signer)
        if await protocol_repo.exists(session, key):
            raise DuplicateRegistration("authority already registered a protocol", authority=signer)

        protocol = ProtocolInfo(
            id=key,
            authority=signer,
            name=name,
            tvl_usd=tvl_usd,
            risk_score=self.settings.default_risk_score,
            is_active=True,
            alert_count=0,
            registered_at=self.clock.now(),
        )
        await protocol_repo.add(session, protocol)
        registry.protocol_count = checked_add(registry.protocol_count, 1)
        await session.flush()

        logger.info(
            "protocol_registered",
            protocol_id=key,
            authority=signer,
            name=name,
            tvl_usd=tvl_usd,
            protocol_count=registry.protocol_count,
        )
        return protocol

    # ── Risk ──────────────────────────────────────────────────────────

    async def update_risk(
        self,
        session: AsyncSession,
        signer: str,
        protocol_id: str,
        code: CodeRiskParams,
        economic: EconomicRiskParams,
        operational: OperationalRiskParams,
    ) -> tuple[ProtocolInfo, RiskBreakdown]:
        protocol = await protocol_repo.get_or_raise(session, protocol_id, for_update=True)
        if signer != protocol.authority:
            raise Unauthorized("only the protocol authority may update its risk", signer=signer)

        breakdown = self.risk_engine.assess(protocol.tvl_usd, code, economic, operational)

        old_score = protocol.risk_score
        protocol.risk_score = breakdown.risk_score
        protocol.code_risk = breakdown.code_risk
        protocol.economic_risk = breakdown.economic_risk
        protocol.operational_risk = breakdown.operational_risk
        protocol.risk_updated_at = self.clock.now()
        await session.flush()

        logger.info(
            "risk_updated",
            protocol_id=protocol_id,
            old_score=old_score,
            new_score=breakdown.risk_score,
            category=breakdown.category.value,
        )
        return protocol, breakdown
