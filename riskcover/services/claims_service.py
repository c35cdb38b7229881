"""
Claims Resolution Engine.

State machine (both outcomes terminal):

    pending ──approve──▶ approved   (pool pays the claimant, policy claimed)
            └─reject───▶ rejected   (no funds move)

Approval and payout are one step: a claim is only marked approved in the
same transaction that moves the funds. A pool that cannot cover the
amount fails the resolution with InsufficientPoolFunds and the claim
stays pending.
"""

from typing import Optional

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from riskcover.config import Settings
from riskcover.db.keys import claim_key
from riskcover.db.models import Claim
from riskcover.db.repositories.claim import claim_repo
from riskcover.db.repositories.policy import policy_repo
from riskcover.db.repositories.protocol import protocol_repo, protocol_state_repo
from riskcover.engine.pricing import pool_type_for_score
from riskcover.errors import (
    AmountExceedsCoverage,
    ClaimAlreadyResolved,
    DuplicateClaim,
    InvalidParameter,
    PolicyAlreadyClaimed,
    PolicyExpired,
    PolicyInactive,
    Unauthorized,
)
from riskcover.schemas.common import ClaimStatus, PoolType
from riskcover.services.capital_service import CapitalService, require_positive_amount
from riskcover.services.clock import Clock

logger = structlog.get_logger(__name__)


class ClaimsService:
    """Submits and adjudicates claims."""

    def __init__(self, settings: Settings, clock: Clock, capital: CapitalService):
        self.settings = settings
        self.clock = clock
        self.capital = capital

    def _check_text(self, value: Optional[str], name: str) -> str:
        value = value or ""
        if len(value) > self.settings.max_claim_text_length:
            raise InvalidParameter(
                f"{name} exceeds {self.settings.max_claim_text_length} characters", field=name,
            )
        return value

    async def submit_claim(
        self,
        session: AsyncSession,
        claimant: str,
        policy_id: str,
        amount: int,
        evidence: str,
    ) -> Claim:
        policy = await policy_repo.get_or_raise(session, policy_id, for_update=True)
        if claimant != policy.insured:
            raise Unauthorized("only the insured may claim against a policy", signer=claimant)
        require_positive_amount(amount)

        now = self.clock.now()
        if now >= policy.expiry_time:
            raise PolicyExpired("policy has expired", policy_id=policy_id, expiry_time=policy.expiry_time)
        if not policy.is_active:
            raise PolicyInactive("policy is not active", policy_id=policy_id)
        if policy.is_claimed:
            raise PolicyAlreadyClaimed("policy has already paid a claim", policy_id=policy_id)
        if amount > policy.coverage_amount:
            raise AmountExceedsCoverage(
                "claim exceeds policy coverage",
                amount=amount,
                coverage_amount=policy.coverage_amount,
            )
        evidence = self._check_text(evidence, "evidence")

        key = claim_key(policy_id)
        if await claim_repo.exists(session, key):
            raise DuplicateClaim("a claim was already filed for this policy", policy_id=policy_id)

        claim = Claim(
            id=key,
            policy_id=policy_id,
            protocol_id=policy.protocol_id,
            claimant=claimant,
            amount=amount,
            evidence=evidence,
            status=ClaimStatus.PENDING.value,
            submitted_at=now,
        )
        await claim_repo.add(session, claim)

        logger.info(
            "claim_submitted",
            claim_id=key,
            policy_id=policy_id,
            claimant=claimant,
            amount=amount,
        )
        return claim

    async def resolve_claim(
        self,
        session: AsyncSession,
        resolver: str,
        claim_id: str,
        approve: bool,
        notes: str,
        claimant_account: Optional[str] = None,
        pool_type=None,
    ) -> Claim:
        claim = await claim_repo.get_or_raise(session, claim_id, for_update=True)
        protocol = await protocol_repo.get_or_raise(session, claim.protocol_id)
        state = await protocol_state_repo.load(session)
        if resolver not in (protocol.authority, state.authority):
            raise Unauthorized("only the protocol authority or administrator may resolve claims",
                               signer=resolver)

        if ClaimStatus(claim.status).is_terminal:
            raise ClaimAlreadyResolved("claim is already resolved", claim_id=claim_id, status=claim.status)
        notes = self._check_text(notes, "notes")

        if approve:
            tier = PoolType.parse(pool_type) if pool_type is not None else pool_type_for_score(protocol.risk_score)
            policy = await policy_repo.get_or_raise(session, claim.policy_id, for_update=True)
            pool = await self.capital.pay_claim(
                session, tier, claim.amount, recipient=claim.claimant, recipient_account=claimant_account,
            )
            claim.status = ClaimStatus.APPROVED.value
            claim.pool_id = pool.id
            policy.is_claimed = True
        else:
            claim.status = ClaimStatus.REJECTED.value

        claim.resolver = resolver
        claim.resolution_notes = notes
        claim.resolved_at = self.clock.now()
        await session.flush()

        logger.info(
            "claim_resolved",
            claim_id=claim_id,
            status=claim.status,
            resolver=resolver,
            amount=claim.amount,
            pool_id=claim.pool_id,
        )
        return claim
