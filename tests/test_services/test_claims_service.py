"""
Tests for the Claims Resolution Engine.

Covers:
- submit_claim validation order and one-claim-per-policy
- Approval pays the claimant from the pool in the same step
- Rejection moves nothing and keeps the policy closed to new claims
- Resolution authorization and terminal states
- Insufficient pool funds leave the claim pending
"""

import pytest
import pytest_asyncio

from riskcover.db.engine import transaction
from riskcover.db.keys import claim_key
from riskcover.db.models import Policy
from riskcover.errors import (
    AmountExceedsCoverage,
    ClaimAlreadyResolved,
    DuplicateClaim,
    InsufficientPoolFunds,
    InvalidAmount,
    InvalidParameter,
    InvalidTokenAccount,
    NotFound,
    PolicyAlreadyClaimed,
    PolicyExpired,
    PolicyInactive,
    Unauthorized,
)
from riskcover.schemas.common import ClaimStatus, PoolType

ADMIN = "admin"
AUTHORITY = "lender-dao"


@pytest_asyncio.fixture
async def policy(initialized, protocol, alice):
    return await initialized.create_policy(alice.name, protocol.id, 100, 5, 30, alice.account)


@pytest_asyncio.fixture
async def funded_pool(initialized, medium_pool, bob):
    await initialized.provide_capital(bob.name, PoolType.MEDIUM, 1_000, bob.account)
    return medium_pool


# ── Submission ─────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_submit_claim(initialized, policy, alice, clock):
    claim = await initialized.submit_claim(alice.name, policy.id, 50, "oracle manipulation")

    assert claim.id == claim_key(policy.id)
    assert claim.policy_id == policy.id
    assert claim.protocol_id == policy.protocol_id
    assert claim.claimant == alice.name
    assert claim.amount == 50
    assert claim.evidence == "oracle manipulation"
    assert claim.status == ClaimStatus.PENDING
    assert claim.submitted_at == clock.now()
    assert claim.resolved_at is None


@pytest.mark.asyncio
async def test_submit_unknown_policy(initialized, alice):
    with pytest.raises(NotFound):
        await initialized.submit_claim(alice.name, "0" * 64, 50, "")


@pytest.mark.asyncio
async def test_only_insured_may_claim(initialized, policy, bob):
    with pytest.raises(Unauthorized):
        await initialized.submit_claim(bob.name, policy.id, 50, "")


@pytest.mark.asyncio
@pytest.mark.parametrize("amount", [0, -1])
async def test_claim_amount_must_be_positive(initialized, policy, alice, amount):
    with pytest.raises(InvalidAmount):
        await initialized.submit_claim(alice.name, policy.id, amount, "")


@pytest.mark.asyncio
async def test_claim_over_coverage(initialized, policy, alice):
    with pytest.raises(AmountExceedsCoverage):
        await initialized.submit_claim(alice.name, policy.id, 101, "")


@pytest.mark.asyncio
async def test_claim_for_full_coverage(initialized, policy, alice):
    claim = await initialized.submit_claim(alice.name, policy.id, 100, "")
    assert claim.amount == 100


@pytest.mark.asyncio
async def test_claim_after_expiry(initialized, policy, alice, clock):
    clock.current = policy.expiry_time
    with pytest.raises(PolicyExpired):
        await initialized.submit_claim(alice.name, policy.id, 50, "")


@pytest.mark.asyncio
async def test_claim_after_expiry_once_flag_cleared(initialized, policy, alice, clock):
    clock.advance_days(31)
    assert (await initialized.get_policy(policy.id)).is_active is False

    with pytest.raises(PolicyExpired):
        await initialized.submit_claim(alice.name, policy.id, 50, "")


@pytest.mark.asyncio
async def test_claim_one_second_before_expiry(initialized, policy, alice, clock):
    clock.current = policy.expiry_time - 1
    claim = await initialized.submit_claim(alice.name, policy.id, 50, "")
    assert claim.status == ClaimStatus.PENDING


@pytest.mark.asyncio
async def test_claim_on_inactive_policy(initialized, session_factory, policy, alice):
    async with transaction(session_factory) as session:
        stored = await session.get(Policy, policy.id)
        stored.is_active = False

    with pytest.raises(PolicyInactive):
        await initialized.submit_claim(alice.name, policy.id, 50, "")


@pytest.mark.asyncio
async def test_second_claim_rejected(initialized, policy, alice):
    await initialized.submit_claim(alice.name, policy.id, 50, "")
    with pytest.raises(DuplicateClaim):
        await initialized.submit_claim(alice.name, policy.id, 10, "")


@pytest.mark.asyncio
async def test_evidence_length_limit(initialized, policy, alice):
    with pytest.raises(InvalidParameter):
        await initialized.submit_claim(alice.name, policy.id, 50, "x" * 97)

    claim = await initialized.submit_claim(alice.name, policy.id, 50, "x" * 96)
    assert len(claim.evidence) == 96


# ── Approval ───────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_approve_pays_claimant(initialized, funded_pool, policy, alice, clock):
    claim = await initialized.submit_claim(alice.name, policy.id, 50, "exploit tx")
    clock.advance(3_600)

    resolved = await initialized.resolve_claim(
        AUTHORITY, claim.id, True, "verified", claimant_account=alice.account,
    )

    assert resolved.status == ClaimStatus.APPROVED
    assert resolved.resolver == AUTHORITY
    assert resolved.resolution_notes == "verified"
    assert resolved.resolved_at == clock.now()
    assert resolved.pool_id == funded_pool.id

    # 1000 - 5 premium + 50 payout
    assert await initialized.balance(alice.account) == 1_045

    pool = await initialized.get_pool(PoolType.MEDIUM)
    assert pool.available_capital == 950
    assert pool.claimed_capital == 50
    assert pool.total_capital == 1_000
    assert await initialized.balance(pool.token_account) == 950

    stored = await initialized.get_policy(policy.id)
    assert stored.is_claimed is True


@pytest.mark.asyncio
async def test_claimed_policy_refuses_further_claims(initialized, funded_pool, policy, alice):
    claim = await initialized.submit_claim(alice.name, policy.id, 50, "")
    await initialized.resolve_claim(AUTHORITY, claim.id, True, "", claimant_account=alice.account)

    with pytest.raises(PolicyAlreadyClaimed):
        await initialized.submit_claim(alice.name, policy.id, 10, "")


@pytest.mark.asyncio
async def test_claimed_policy_frees_slot_for_new_policy(initialized, funded_pool, protocol, policy, alice):
    claim = await initialized.submit_claim(alice.name, policy.id, 50, "")
    await initialized.resolve_claim(AUTHORITY, claim.id, True, "", claimant_account=alice.account)

    renewed = await initialized.create_policy(alice.name, protocol.id, 100, 5, 30, alice.account)
    assert renewed.generation == 1


@pytest.mark.asyncio
async def test_admin_may_resolve(initialized, funded_pool, policy, alice):
    claim = await initialized.submit_claim(alice.name, policy.id, 50, "")
    resolved = await initialized.resolve_claim(ADMIN, claim.id, True, "", claimant_account=alice.account)
    assert resolved.resolver == ADMIN


@pytest.mark.asyncio
async def test_stranger_may_not_resolve(initialized, funded_pool, policy, alice, bob):
    claim = await initialized.submit_claim(alice.name, policy.id, 50, "")
    with pytest.raises(Unauthorized):
        await initialized.resolve_claim(bob.name, claim.id, True, "", claimant_account=alice.account)
    with pytest.raises(Unauthorized):
        await initialized.resolve_claim(alice.name, claim.id, True, "", claimant_account=alice.account)


@pytest.mark.asyncio
async def test_cannot_resolve_twice(initialized, funded_pool, policy, alice):
    claim = await initialized.submit_claim(alice.name, policy.id, 50, "")
    await initialized.resolve_claim(AUTHORITY, claim.id, True, "", claimant_account=alice.account)

    with pytest.raises(ClaimAlreadyResolved):
        await initialized.resolve_claim(AUTHORITY, claim.id, False, "")
    assert await initialized.balance(alice.account) == 1_045


@pytest.mark.asyncio
async def test_explicit_pool_type(initialized, make_pool, make_actor, policy, alice):
    high = await make_pool(PoolType.HIGH)
    lp = await make_actor("lp", 500)
    await initialized.provide_capital(lp.name, PoolType.HIGH, 500, lp.account)

    claim = await initialized.submit_claim(alice.name, policy.id, 80, "")
    resolved = await initialized.resolve_claim(
        AUTHORITY, claim.id, True, "", claimant_account=alice.account, pool_type="high",
    )
    assert resolved.pool_id == high.id
    pool = await initialized.get_pool(PoolType.HIGH)
    assert pool.available_capital == 420


@pytest.mark.asyncio
async def test_missing_pool(initialized, funded_pool, policy, alice):
    claim = await initialized.submit_claim(alice.name, policy.id, 50, "")
    with pytest.raises(NotFound):
        await initialized.resolve_claim(
            AUTHORITY, claim.id, True, "", claimant_account=alice.account, pool_type=PoolType.LOW,
        )


@pytest.mark.asyncio
async def test_insufficient_pool_funds_keeps_claim_pending(initialized, medium_pool, policy, alice, bob):
    await initialized.provide_capital(bob.name, PoolType.MEDIUM, 30, bob.account)
    claim = await initialized.submit_claim(alice.name, policy.id, 50, "")

    with pytest.raises(InsufficientPoolFunds):
        await initialized.resolve_claim(AUTHORITY, claim.id, True, "", claimant_account=alice.account)

    stored = await initialized.get_claim(claim.id)
    assert stored.status == ClaimStatus.PENDING
    assert stored.resolved_at is None
    assert await initialized.balance(alice.account) == 995
    pool = await initialized.get_pool(PoolType.MEDIUM)
    assert pool.available_capital == 30
    assert (await initialized.get_policy(policy.id)).is_claimed is False


@pytest.mark.asyncio
async def test_payout_requires_claimant_account(initialized, funded_pool, policy, alice, bob):
    claim = await initialized.submit_claim(alice.name, policy.id, 50, "")

    with pytest.raises(InvalidTokenAccount):
        await initialized.resolve_claim(AUTHORITY, claim.id, True, "")
    with pytest.raises(InvalidTokenAccount):
        await initialized.resolve_claim(AUTHORITY, claim.id, True, "", claimant_account=bob.account)

    assert (await initialized.get_claim(claim.id)).status == ClaimStatus.PENDING
    assert await initialized.balance(bob.account) == 9_000


# ── Rejection ──────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_reject_moves_nothing(initialized, funded_pool, policy, alice):
    claim = await initialized.submit_claim(alice.name, policy.id, 50, "")
    resolved = await initialized.resolve_claim(AUTHORITY, claim.id, False, "not an exploit")

    assert resolved.status == ClaimStatus.REJECTED
    assert resolved.pool_id is None
    assert await initialized.balance(alice.account) == 995
    pool = await initialized.get_pool(PoolType.MEDIUM)
    assert (pool.available_capital, pool.claimed_capital) == (1_000, 0)
    assert (await initialized.get_policy(policy.id)).is_claimed is False


@pytest.mark.asyncio
async def test_rejected_claim_cannot_be_refiled(initialized, policy, alice):
    claim = await initialized.submit_claim(alice.name, policy.id, 50, "")
    await initialized.resolve_claim(AUTHORITY, claim.id, False, "")

    with pytest.raises(DuplicateClaim):
        await initialized.submit_claim(alice.name, policy.id, 50, "more evidence")


@pytest.mark.asyncio
async def test_resolution_notes_length_limit(initialized, policy, alice):
    claim = await initialized.submit_claim(alice.name, policy.id, 50, "")
    with pytest.raises(InvalidParameter):
        await initialized.resolve_claim(AUTHORITY, claim.id, False, "n" * 97)


# ── Queries ────────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_list_claims_by_status(initialized, protocol, alice, bob, clock):
    first = await initialized.create_policy(alice.name, protocol.id, 100, 5, 30, alice.account)
    second = await initialized.create_policy(bob.name, protocol.id, 100, 5, 30, bob.account)
    a = await initialized.submit_claim(alice.name, first.id, 10, "")
    clock.advance(1)
    b = await initialized.submit_claim(bob.name, second.id, 20, "")
    await initialized.resolve_claim(AUTHORITY, b.id, False, "")

    pending = await initialized.list_claims(status=ClaimStatus.PENDING)
    assert [c.id for c in pending] == [a.id]
    rejected = await initialized.list_claims(status=ClaimStatus.REJECTED)
    assert [c.id for c in rejected] == [b.id]
    by_protocol = await initialized.list_claims(protocol_id=protocol.id)
    assert [c.id for c in by_protocol] == [a.id, b.id]
