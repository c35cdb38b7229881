"""
Capital Pool Ledger.

One pool per risk tier. Providers deposit into and withdraw from a pool;
approved claims are paid out of it.

Accounting, per pool:
    total_capital     == sum(provider.capital_amount)
    total_capital     == available_capital + claimed_capital
    0 <= available_capital <= total_capital

A claim payout moves capital from available to claimed and leaves
total_capital alone, so provider positions stay equal to the pool total.
The pool's token account always holds exactly available_capital.

Provider rewards accrue on every provide/withdraw for the whole days
elapsed since the last accrual:

    rewards += capital * yield_bps // 10_000 // 365 * days
"""

from typing import Optional

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from riskcover.db.keys import pool_key, provider_key
from riskcover.db.models import CapitalPool, CapitalProvider
from riskcover.db.repositories.pool import pool_repo, provider_repo
from riskcover.db.repositories.protocol import protocol_state_repo
from riskcover.engine.checked import checked_add, checked_mul, checked_sub, ensure_u64
from riskcover.engine.pricing import BPS_DENOMINATOR, DAYS_PER_YEAR
from riskcover.errors import (
    DuplicatePool,
    InsufficientFunds,
    InsufficientPoolFunds,
    InvalidAmount,
    InvalidTokenAccount,
)
from riskcover.schemas.common import PoolType
from riskcover.services.asset_ledger import AssetLedger
from riskcover.services.clock import SECONDS_PER_DAY, Clock
from riskcover.services.protocol_service import check_bps, require_admin

logger = structlog.get_logger(__name__)


def require_positive_amount(amount: int, name: str = "amount") -> int:
    if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
        raise InvalidAmount(f"{name} must be a positive integer", field=name)
    return ensure_u64(amount, name)


def accrue_rewards(provider: CapitalProvider, yield_rate_bps: int, now: int) -> int:
    """
    Credit rewards for whole days since last accrual. Returns the reward.

    last_accrual_at advances by the whole days consumed, so a partial day
    carries over to the next accrual.
    """
    days = (now - provider.last_accrual_at) // SECONDS_PER_DAY
    if days <= 0:
        return 0
    daily = checked_mul(provider.capital_amount, yield_rate_bps) // BPS_DENOMINATOR // DAYS_PER_YEAR
    reward = checked_mul(daily, days)
    provider.rewards_earned = checked_add(provider.rewards_earned, reward)
    provider.last_accrual_at += days * SECONDS_PER_DAY
    return reward


class CapitalService:
    """Pool creation, provider deposits/withdrawals and claim payouts."""

    def __init__(self, clock: Clock, ledger: AssetLedger):
        self.clock = clock
        self.ledger = ledger

    async def initialize_pool(
        self,
        session: AsyncSession,
        signer: str,
        pool_type,
        yield_rate_bps: int,
        token_mint: str,
        token_account: str,
    ) -> CapitalPool:
        state = await protocol_state_repo.load(session)
        require_admin(state, signer)

        tier = PoolType.parse(pool_type)
        check_bps(yield_rate_bps, "yield_rate_bps")

        key = pool_key(tier)
        if await pool_repo.exists(session, key):
            raise DuplicatePool(f"{tier.value} pool already exists", pool_type=tier.value)

        account = await self.ledger.get_account(session, token_account)
        if account is None:
            raise InvalidTokenAccount("pool token account does not exist", address=token_account)
        if account.mint != token_mint:
            raise InvalidTokenAccount("pool token account holds a different mint", address=token_account)
        if account.owner != key:
            raise InvalidTokenAccount("pool token account must be owned by the pool", address=token_account)

        pool = CapitalPool(
            id=key,
            pool_type=tier.value,
            yield_rate_bps=yield_rate_bps,
            token_mint=token_mint,
            token_account=token_account,
            authority=signer,
            total_capital=0,
            available_capital=0,
            claimed_capital=0,
            created_at=self.clock.now(),
        )
        await pool_repo.add(session, pool)

        logger.info(
            "pool_initialized",
            pool_id=key,
            pool_type=tier.value,
            yield_rate_bps=yield_rate_bps,
            token_mint=token_mint,
        )
        return pool

    async def provide_capital(
        self,
        session: AsyncSession,
        owner: str,
        pool_type,
        amount: int,
        source_account: str,
    ) -> CapitalProvider:
        require_positive_amount(amount)
        tier = PoolType.parse(pool_type)
        pool = await pool_repo.get_by_type(session, tier, for_update=True)
        now = self.clock.now()

        provider = await provider_repo.get_for(session, owner, pool.id, for_update=True)
        if provider is None:
            provider = CapitalProvider(
                id=provider_key(owner, pool.id),
                owner=owner,
                pool_id=pool.id,
                capital_amount=0,
                rewards_earned=0,
                deposited_at=now,
                last_accrual_at=now,
            )
            session.add(provider)
        else:
            accrue_rewards(provider, pool.yield_rate_bps, now)
            if provider.capital_amount == 0:
                provider.deposited_at = now

        provider.capital_amount = checked_add(provider.capital_amount, amount)
        pool.total_capital = checked_add(pool.total_capital, amount)
        pool.available_capital = checked_add(pool.available_capital, amount)

        await self.ledger.transfer(session, source_account, pool.token_account, amount, authority=owner)
        await session.flush()

        logger.info(
            "capital_provided",
            pool_id=pool.id,
            pool_type=tier.value,
            owner=owner,
            amount=amount,
            provider_capital=provider.capital_amount,
            total_capital=pool.total_capital,
        )
        return provider

    async def withdraw_capital(
        self,
        session: AsyncSession,
        owner: str,
        pool_type,
        amount: int,
        destination_account: str,
    ) -> CapitalProvider:
        require_positive_amount(amount)
        tier = PoolType.parse(pool_type)
        pool = await pool_repo.get_by_type(session, tier, for_update=True)
        provider = await provider_repo.get_for(session, owner, pool.id, for_update=True)
        if provider is None:
            raise InsufficientFunds("no capital provided to this pool", owner=owner, pool_type=tier.value)

        accrue_rewards(provider, pool.yield_rate_bps, self.clock.now())

        if amount > provider.capital_amount:
            raise InsufficientFunds(
                "withdrawal exceeds provided capital",
                requested=amount,
                capital_amount=provider.capital_amount,
            )
        if amount > pool.available_capital:
            raise InsufficientFunds(
                "withdrawal exceeds available pool capital",
                requested=amount,
                available_capital=pool.available_capital,
            )

        destination = await self.ledger.get_account(session, destination_account)
        if destination is None or destination.owner != owner:
            raise InvalidTokenAccount("destination must be a token account owned by the provider",
                                      address=destination_account)

        provider.capital_amount = checked_sub(provider.capital_amount, amount)
        pool.total_capital = checked_sub(pool.total_capital, amount)
        pool.available_capital = checked_sub(pool.available_capital, amount)

        await self.ledger.transfer(session, pool.token_account, destination_account, amount, authority=pool.id)
        await session.flush()

        logger.info(
            "capital_withdrawn",
            pool_id=pool.id,
            pool_type=tier.value,
            owner=owner,
            amount=amount,
            provider_capital=provider.capital_amount,
            total_capital=pool.total_capital,
        )
        return provider

    async def pay_claim(
        self,
        session: AsyncSession,
        pool_type: PoolType,
        amount: int,
        recipient: str,
        recipient_account: Optional[str],
    ) -> CapitalPool:
        """
        Pay an approved claim from a pool.

        Raises InsufficientPoolFunds when the pool's available capital is
        short; nothing is moved in that case.
        """
        pool = await pool_repo.get_by_type(session, pool_type, for_update=True)
        if amount > pool.available_capital:
            raise InsufficientPoolFunds(
                "pool cannot cover the claim",
                pool_type=pool.pool_type,
                requested=amount,
                available_capital=pool.available_capital,
            )

        if recipient_account is None:
            raise InvalidTokenAccount("a claimant token account is required to pay a claim")
        account = await self.ledger.get_account(session, recipient_account)
        if account is None or account.owner != recipient:
            raise InvalidTokenAccount("payout account must be owned by the claimant", address=recipient_account)

        pool.available_capital = checked_sub(pool.available_capital, amount)
        pool.claimed_capital = checked_add(pool.claimed_capital, amount)

        await self.ledger.transfer(session, pool.token_account, recipient_account, amount, authority=pool.id)
        await session.flush()

        logger.info(
            "claim_paid",
            pool_id=pool.id,
            pool_type=pool.pool_type,
            amount=amount,
            available_capital=pool.available_capital,
            claimed_capital=pool.claimed_capital,
        )
        return pool
