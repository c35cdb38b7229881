"""
InsuranceService — the transactional entry point to the protocol core.

Each public mutation runs in exactly one database transaction: it either
commits every change it made (entity rows and token balances alike) or
none of them. Callers identify themselves with a `signer` address;
signature verification happens upstream.

Usage:
    service = InsuranceService(get_session_factory())
    await service.initialize_protocol(admin, 500, treasury)
    protocol = await service.register_protocol(authority, "Lending", 10_000_000)
"""

from typing import Optional, Sequence

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from riskcover.config import Settings, settings as default_settings
from riskcover.db.engine import transaction
from riskcover.db.keys import pool_key
from riskcover.db.models import (
    CapitalPool,
    CapitalProvider,
    Claim,
    ExploitAlert,
    Policy,
    ProtocolInfo,
    ProtocolRegistry,
    ProtocolState,
    TokenAccount,
)
from riskcover.db.repositories.alert import alert_repo
from riskcover.db.repositories.claim import claim_repo
from riskcover.db.repositories.policy import policy_repo
from riskcover.db.repositories.pool import pool_repo, provider_repo
from riskcover.db.repositories.protocol import (
    protocol_registry_repo,
    protocol_repo,
    protocol_state_repo,
)
from riskcover.db.repositories.token_account import token_account_repo
from riskcover.engine.pricing import quote_premium
from riskcover.engine.risk_engine import (
    CodeRiskParams,
    EconomicRiskParams,
    OperationalRiskParams,
    RiskBreakdown,
    RiskEngine,
)
from riskcover.schemas.common import ClaimStatus, PoolType
from riskcover.services.alert_service import AlertService
from riskcover.services.asset_ledger import AssetLedger, SqlAssetLedger
from riskcover.services.capital_service import CapitalService
from riskcover.services.claims_service import ClaimsService
from riskcover.services.clock import Clock, SystemClock
from riskcover.services.policy_service import PolicyService, mark_expired
from riskcover.services.protocol_service import ProtocolService


class InsuranceService:
    """Facade over the protocol, capital, policy, claims and alert services."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        ledger: Optional[AssetLedger] = None,
        clock: Optional[Clock] = None,
        settings: Optional[Settings] = None,
    ):
        self.session_factory = session_factory
        self.settings = settings or default_settings
        self.ledger = ledger or SqlAssetLedger()
        self.clock = clock or SystemClock()
        self.risk_engine = RiskEngine(self.settings.risk_weights)

        self.protocols = ProtocolService(self.settings, self.clock, self.ledger, self.risk_engine)
        self.capital = CapitalService(self.clock, self.ledger)
        self.policies = PolicyService(self.settings, self.clock, self.ledger)
        self.claims = ClaimsService(self.settings, self.clock, self.capital)
        self.alerts = AlertService(self.settings, self.clock)

    def _tx(self):
        return transaction(self.session_factory)

    # ── Token accounts ────────────────────────────────────────────────

    async def open_account(self, address: str, owner: str, mint: str) -> TokenAccount:
        async with self._tx() as session:
            return await self.ledger.open_account(session, address, owner, mint)

    async def mint_to(self, address: str, amount: int) -> int:
        async with self._tx() as session:
            return await self.ledger.mint_to(session, address, amount)

    async def balance(self, address: str) -> int:
        async with self._tx() as session:
            return await self.ledger.balance(session, address)

    async def get_account(self, address: str) -> TokenAccount:
        async with self._tx() as session:
            return await token_account_repo.get_or_raise(session, address)

    # ── Protocol administration ───────────────────────────────────────

    async def initialize_protocol(
        self, signer: str, protocol_fee_bps: int, treasury_account: str,
    ) -> ProtocolState:
        async with self._tx() as session:
            return await self.protocols.initialize_protocol(
                session, signer, protocol_fee_bps, treasury_account,
            )

    async def update_protocol_fee(self, signer: str, protocol_fee_bps: int) -> ProtocolState:
        async with self._tx() as session:
            return await self.protocols.update_protocol_fee(session, signer, protocol_fee_bps)

    async def register_protocol(self, signer: str, name: str, tvl_usd: int) -> ProtocolInfo:
        async with self._tx() as session:
            return await self.protocols.register_protocol(session, signer, name, tvl_usd)

    async def set_protocol_active(self, signer: str, protocol_id: str, is_active: bool) -> ProtocolInfo:
        async with self._tx() as session:
            return await self.protocols.set_protocol_active(session, signer, protocol_id, is_active)

    async def update_risk(
        self,
        signer: str,
        protocol_id: str,
        code: CodeRiskParams,
        economic: EconomicRiskParams,
        operational: OperationalRiskParams,
    ) -> RiskBreakdown:
        async with self._tx() as session:
            _, breakdown = await self.protocols.update_risk(
                session, signer, protocol_id, code, economic, operational,
            )
            return breakdown

    # ── Capital ───────────────────────────────────────────────────────

    async def initialize_pool(
        self,
        signer: str,
        pool_type,
        yield_rate_bps: int,
        token_mint: str,
        token_account: str,
    ) -> CapitalPool:
        async with self._tx() as session:
            return await self.capital.initialize_pool(
                session, signer, pool_type, yield_rate_bps, token_mint, token_account,
            )

    async def provide_capital(
        self, owner: str, pool_type, amount: int, source_account: str,
    ) -> CapitalProvider:
        async with self._tx() as session:
            return await self.capital.provide_capital(session, owner, pool_type, amount, source_account)

    async def withdraw_capital(
        self, owner: str, pool_type, amount: int, destination_account: str,
    ) -> CapitalProvider:
        async with self._tx() as session:
            return await self.capital.withdraw_capital(
                session, owner, pool_type, amount, destination_account,
            )

    # ── Policies & claims ─────────────────────────────────────────────

    async def create_policy(
        self,
        insured: str,
        protocol_id: str,
        coverage_amount: int,
        premium_amount: int,
        duration_days: int,
        source_account: str,
    ) -> Policy:
        async with self._tx() as session:
            return await self.policies.create_policy(
                session, insured, protocol_id, coverage_amount, premium_amount,
                duration_days, source_account,
            )

    async def submit_claim(self, claimant: str, policy_id: str, amount: int, evidence: str) -> Claim:
        async with self._tx() as session:
            return await self.claims.submit_claim(session, claimant, policy_id, amount, evidence)

    async def resolve_claim(
        self,
        resolver: str,
        claim_id: str,
        approve: bool,
        notes: str,
        claimant_account: Optional[str] = None,
        pool_type=None,
    ) -> Claim:
        async with self._tx() as session:
            return await self.claims.resolve_claim(
                session, resolver, claim_id, approve, notes, claimant_account, pool_type,
            )

    # ── Exploit alerts ────────────────────────────────────────────────

    async def create_alert(
        self, signer: str, protocol_id: str, anomaly_type, severity: int, details: str,
    ) -> ExploitAlert:
        async with self._tx() as session:
            return await self.alerts.create_alert(
                session, signer, protocol_id, anomaly_type, severity, details,
            )

    async def resolve_alert(
        self, signer: str, alert_id: str, is_confirmed: bool, notes: str,
    ) -> ExploitAlert:
        async with self._tx() as session:
            return await self.alerts.resolve_alert(session, signer, alert_id, is_confirmed, notes)

    # ── Queries ───────────────────────────────────────────────────────

    async def quote(self, protocol_id: str, coverage_amount: int, duration_days: int) -> tuple[int, int]:
        """(risk_score, premium) for a prospective policy on a protocol."""
        async with self._tx() as session:
            protocol = await protocol_repo.get_or_raise(session, protocol_id)
            score = protocol.risk_score
        return score, quote_premium(score, coverage_amount, duration_days)

    async def get_state(self) -> tuple[ProtocolState, ProtocolRegistry]:
        async with self._tx() as session:
            state = await protocol_state_repo.load(session)
            registry = await protocol_registry_repo.load(session)
            return state, registry

    async def get_protocol(self, protocol_id: str) -> ProtocolInfo:
        async with self._tx() as session:
            return await protocol_repo.get_or_raise(session, protocol_id)

    async def get_protocol_by_authority(self, authority: str) -> Optional[ProtocolInfo]:
        async with self._tx() as session:
            return await protocol_repo.get_by_authority(session, authority)

    async def list_protocols(self, active_only: bool = False) -> Sequence[ProtocolInfo]:
        async with self._tx() as session:
            return await protocol_repo.list_protocols(session, active_only=active_only)

    async def get_pool(self, pool_type) -> CapitalPool:
        async with self._tx() as session:
            return await pool_repo.get_by_type(session, PoolType.parse(pool_type))

    async def list_pools(self) -> Sequence[CapitalPool]:
        async with self._tx() as session:
            return await pool_repo.list_pools(session)

    async def get_provider(self, owner: str, pool_type) -> Optional[CapitalProvider]:
        async with self._tx() as session:
            return await provider_repo.get_for(session, owner, pool_key(PoolType.parse(pool_type)))

    async def list_providers(self, pool_type) -> Sequence[CapitalProvider]:
        async with self._tx() as session:
            return await provider_repo.list_by_pool(session, pool_key(PoolType.parse(pool_type)))

    async def get_policy(self, policy_id: str) -> Policy:
        async with self._tx() as session:
            policy = await policy_repo.get_or_raise(session, policy_id)
            mark_expired([policy], self.clock.now())
            return policy

    async def list_policies(
        self, insured: Optional[str] = None, protocol_id: Optional[str] = None,
    ) -> Sequence[Policy]:
        async with self._tx() as session:
            policies = await policy_repo.list_policies(session, insured=insured, protocol_id=protocol_id)
            mark_expired(policies, self.clock.now())
            return policies

    async def get_claim(self, claim_id: str) -> Claim:
        async with self._tx() as session:
            return await claim_repo.get_or_raise(session, claim_id)

    async def list_claims(
        self, status: Optional[ClaimStatus] = None, protocol_id: Optional[str] = None,
    ) -> Sequence[Claim]:
        async with self._tx() as session:
            return await claim_repo.list_claims(session, status=status, protocol_id=protocol_id)

    async def get_alert(self, alert_id: str) -> ExploitAlert:
        async with self._tx() as session:
            return await alert_repo.get_or_raise(session, alert_id)

    async def list_alerts(self, protocol_id: str, unresolved_only: bool = False) -> Sequence[ExploitAlert]:
        async with self._tx() as session:
            return await alert_repo.list_by_protocol(session, protocol_id, unresolved_only=unresolved_only)
