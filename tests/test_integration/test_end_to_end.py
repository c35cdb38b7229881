"""
End-to-end lifecycle: register → score → fund → insure → claim → payout → withdraw.

Runs every step through InsuranceService so each one commits in its own
transaction, the way the API drives it.
"""

import pytest

from riskcover.engine.risk_engine import CodeRiskParams, EconomicRiskParams, OperationalRiskParams
from riskcover.schemas.common import ClaimStatus, PoolType, RiskCategory

ADMIN = "admin"
TREASURY = "treasury-usdc"
AUTHORITY = "lender-dao"


@pytest.mark.asyncio
async def test_full_insurance_lifecycle(initialized, make_pool, make_actor, clock):
    state, _ = await initialized.get_state()
    assert state.protocol_fee_bps == 500

    # Register and score the protocol
    protocol = await initialized.register_protocol(AUTHORITY, "Lender", 10_000_000)
    breakdown = await initialized.update_risk(
        AUTHORITY,
        protocol.id,
        CodeRiskParams(audit_count=2, bug_bounty_size=250_000, complexity_score=50),
        EconomicRiskParams(liquidity_depth=5_000_000, concentration_risk=30),
        OperationalRiskParams(governance_count=5, admin_count=3, oracle_dependency=True),
    )
    assert breakdown.risk_score == 54
    assert breakdown.category == RiskCategory.MEDIUM_HIGH

    # Seed the medium pool
    pool = await make_pool(PoolType.MEDIUM)
    lp = await make_actor("lp", 1_000)
    await initialized.provide_capital(lp.name, PoolType.MEDIUM, 1_000, lp.account)

    # Buy cover
    alice = await make_actor("alice", 1_000)
    score, quote = await initialized.quote(protocol.id, 100, 30)
    assert (score, quote) == (54, 0)

    clock.advance(60)
    policy = await initialized.create_policy(alice.name, protocol.id, 100, 5, 30, alice.account)
    assert await initialized.balance(alice.account) == 995
    assert await initialized.balance(TREASURY) == 5

    # Claim and payout
    clock.advance_days(3)
    claim = await initialized.submit_claim(alice.name, policy.id, 50, "oracle manipulated")
    resolved = await initialized.resolve_claim(
        AUTHORITY, claim.id, True, "exploit confirmed", claimant_account=alice.account,
    )
    assert resolved.status == ClaimStatus.APPROVED
    assert resolved.pool_id == pool.id
    assert await initialized.balance(alice.account) == 1_045

    funded = await initialized.get_pool(PoolType.MEDIUM)
    assert funded.available_capital == 950
    assert funded.claimed_capital == 50
    assert funded.total_capital == 1_000

    # Provider withdraws part of their position
    provider = await initialized.withdraw_capital(lp.name, PoolType.MEDIUM, 400, lp.account)
    final = await initialized.get_pool(PoolType.MEDIUM)
    assert provider.capital_amount == 600
    assert final.total_capital == 600
    assert provider.capital_amount == final.total_capital
    assert final.available_capital == 550
    assert await initialized.balance(final.token_account) == 550
    assert await initialized.balance(lp.account) == 400


@pytest.mark.asyncio
async def test_alert_and_rejected_claim_flow(initialized, protocol, make_actor):
    alice = await make_actor("alice", 1_000)
    policy = await initialized.create_policy(alice.name, protocol.id, 100, 5, 30, alice.account)

    alert = await initialized.create_alert(AUTHORITY, protocol.id, "tvl_drop", 65, "TVL fell 30%")
    await initialized.resolve_alert(ADMIN, alert.id, False, "rebalancing, not an exploit")

    claim = await initialized.submit_claim(alice.name, policy.id, 100, "TVL drop")
    rejected = await initialized.resolve_claim(ADMIN, claim.id, False, "no exploit")
    assert rejected.status == ClaimStatus.REJECTED

    assert await initialized.balance(alice.account) == 995
    assert await initialized.list_alerts(protocol.id, unresolved_only=True) == []
