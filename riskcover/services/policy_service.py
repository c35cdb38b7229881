"""
Policy Lifecycle Manager.

Issues coverage against a registered, active protocol. The premium is
checked against the Pricing Engine quote for the protocol's current risk
score and moved from the insured to the protocol treasury in the same
transaction that creates the policy.

A pair (insured, protocol) holds at most one policy in force at a time.
Once that policy expires, is claimed or is deactivated, a new policy for
the same pair is issued under the next generation number.

is_active is cleared lazily: any transaction that loads a policy at or after
its expiry_time flips the flag before handing the row back.
"""

from typing import Iterable, List

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from riskcover.config import Settings
from riskcover.db.keys import policy_key
from riskcover.db.models import Policy
from riskcover.db.repositories.policy import policy_repo
from riskcover.db.repositories.protocol import protocol_repo, protocol_state_repo
from riskcover.engine.checked import checked_add, checked_mul, ensure_u64
from riskcover.engine.pricing import check_duration, quote_premium
from riskcover.errors import (
    DuplicatePolicy,
    InvalidAmount,
    PremiumMismatch,
    ProtocolInactive,
)
from riskcover.services.asset_ledger import AssetLedger
from riskcover.services.clock import SECONDS_PER_DAY, Clock

logger = structlog.get_logger(__name__)


def check_premium(premium: int, quote: int, mode: str) -> None:
    if mode == "exact":
        ok = premium == quote
    else:
        ok = premium >= quote
    if not ok:
        raise PremiumMismatch(
            "premium does not match the quoted premium",
            premium=premium,
            quote=quote,
            enforcement=mode,
        )


def mark_expired(policies: Iterable[Policy], now: int) -> List[Policy]:
    """Deactivate every still-active policy whose expiry has passed."""
    expired = []
    for policy in policies:
        if policy.is_active and now >= policy.expiry_time:
            policy.is_active = False
            expired.append(policy)
            logger.info("policy_expired", policy_id=policy.id, expiry_time=policy.expiry_time)
    return expired


class PolicyService:
    """Creates insurance policies."""

    def __init__(self, settings: Settings, clock: Clock, ledger: AssetLedger):
        self.settings = settings
        self.clock = clock
        self.ledger = ledger

    async def create_policy(
        self,
        session: AsyncSession,
        insured: str,
        protocol_id: str,
        coverage_amount: int,
        premium_amount: int,
        duration_days: int,
        source_account: str,
    ) -> Policy:
        protocol = await protocol_repo.get_or_raise(session, protocol_id)
        if not protocol.is_active:
            raise ProtocolInactive("protocol is not accepting new policies", protocol_id=protocol_id)

        if isinstance(coverage_amount, bool) or not isinstance(coverage_amount, int) or coverage_amount <= 0:
            raise InvalidAmount("coverage_amount must be a positive integer", field="coverage_amount")
        if isinstance(premium_amount, bool) or not isinstance(premium_amount, int) or premium_amount < 0:
            raise InvalidAmount("premium_amount must be a non-negative integer", field="premium_amount")
        ensure_u64(coverage_amount, "coverage_amount")
        ensure_u64(premium_amount, "premium_amount")
        check_duration(duration_days)

        now = self.clock.now()
        previous = await policy_repo.latest_for(session, insured, protocol_id)
        if previous is not None:
            mark_expired([previous], now)
        if previous is not None and previous.in_force(now):
            raise DuplicatePolicy(
                "a policy for this protocol is still in force",
                policy_id=previous.id,
                expiry_time=previous.expiry_time,
            )
        generation = 0 if previous is None else previous.generation + 1

        quote = quote_premium(protocol.risk_score, coverage_amount, duration_days)
        check_premium(premium_amount, quote, self.settings.premium_enforcement)

        state = await protocol_state_repo.load(session)
        await self.ledger.transfer(
            session, source_account, state.treasury_account, premium_amount, authority=insured,
        )

        policy = Policy(
            id=policy_key(insured, protocol_id, generation),
            insured=insured,
            protocol_id=protocol_id,
            generation=generation,
            coverage_amount=coverage_amount,
            premium_amount=premium_amount,
            start_time=now,
            expiry_time=checked_add(now, checked_mul(duration_days, SECONDS_PER_DAY)),
            is_active=True,
            is_claimed=False,
        )
        await policy_repo.add(session, policy)

        logger.info(
            "policy_created",
            policy_id=policy.id,
            insured=insured,
            protocol_id=protocol_id,
            generation=generation,
            coverage_amount=coverage_amount,
            premium_amount=premium_amount,
            quote=quote,
            expiry_time=policy.expiry_time,
        )
        return policy
