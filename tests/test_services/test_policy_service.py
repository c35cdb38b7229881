"""
Tests for the Policy Lifecycle Manager.

Covers:
- Policy creation: fields, premium transfer to the treasury
- Protocol / amount / duration validation
- One policy in force per (insured, protocol); generations after expiry
- Expired policies read back as inactive
- Premium enforcement modes
"""

import pytest

from riskcover.config import Settings
from riskcover.db.keys import policy_key
from riskcover.errors import (
    DuplicatePolicy,
    InsufficientFunds,
    InvalidAmount,
    InvalidDuration,
    NotFound,
    PremiumMismatch,
    ProtocolInactive,
    Unauthorized,
)
from riskcover.services.insurance import InsuranceService

ADMIN = "admin"
TREASURY = "treasury-usdc"
START_TIME = 1_700_000_000
DAY = 86_400


@pytest.mark.asyncio
async def test_create_policy(initialized, protocol, alice):
    policy = await initialized.create_policy(alice.name, protocol.id, 100, 5, 30, alice.account)

    assert policy.id == policy_key(alice.name, protocol.id, 0)
    assert policy.insured == alice.name
    assert policy.protocol_id == protocol.id
    assert policy.generation == 0
    assert policy.coverage_amount == 100
    assert policy.premium_amount == 5
    assert policy.start_time == START_TIME
    assert policy.expiry_time == START_TIME + 30 * DAY
    assert policy.is_active is True
    assert policy.is_claimed is False

    assert await initialized.balance(alice.account) == 995
    assert await initialized.balance(TREASURY) == 5


@pytest.mark.asyncio
async def test_create_policy_unknown_protocol(initialized, alice):
    with pytest.raises(NotFound):
        await initialized.create_policy(alice.name, "f" * 64, 100, 5, 30, alice.account)


@pytest.mark.asyncio
async def test_create_policy_inactive_protocol(initialized, protocol, alice):
    await initialized.set_protocol_active(ADMIN, protocol.id, False)
    with pytest.raises(ProtocolInactive):
        await initialized.create_policy(alice.name, protocol.id, 100, 5, 30, alice.account)
    assert await initialized.balance(alice.account) == 1_000


@pytest.mark.asyncio
@pytest.mark.parametrize("coverage,premium", [(0, 5), (-100, 5), (100, -1)])
async def test_create_policy_invalid_amounts(initialized, protocol, alice, coverage, premium):
    with pytest.raises(InvalidAmount):
        await initialized.create_policy(alice.name, protocol.id, coverage, premium, 30, alice.account)


@pytest.mark.asyncio
@pytest.mark.parametrize("days", [0, -30, 65_536])
async def test_create_policy_invalid_duration(initialized, protocol, alice, days):
    with pytest.raises(InvalidDuration):
        await initialized.create_policy(alice.name, protocol.id, 100, 5, days, alice.account)


@pytest.mark.asyncio
async def test_zero_premium_accepted_when_quote_is_zero(initialized, protocol, alice):
    policy = await initialized.create_policy(alice.name, protocol.id, 100, 0, 30, alice.account)
    assert policy.premium_amount == 0
    assert await initialized.balance(alice.account) == 1_000


@pytest.mark.asyncio
async def test_premium_from_someone_elses_account(initialized, protocol, alice, bob):
    with pytest.raises(Unauthorized):
        await initialized.create_policy(alice.name, protocol.id, 100, 5, 30, bob.account)
    assert await initialized.list_policies(insured=alice.name) == []


# ── One policy in force ────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_duplicate_policy_while_in_force(initialized, protocol, alice, clock):
    await initialized.create_policy(alice.name, protocol.id, 100, 5, 30, alice.account)

    clock.advance_days(29)
    with pytest.raises(DuplicatePolicy):
        await initialized.create_policy(alice.name, protocol.id, 200, 5, 30, alice.account)
    assert await initialized.balance(alice.account) == 995


@pytest.mark.asyncio
async def test_new_generation_after_expiry(initialized, protocol, alice, clock):
    first = await initialized.create_policy(alice.name, protocol.id, 100, 5, 30, alice.account)

    clock.advance_days(30)
    second = await initialized.create_policy(alice.name, protocol.id, 100, 5, 30, alice.account)

    assert second.generation == 1
    assert second.id == policy_key(alice.name, protocol.id, 1)
    assert second.id != first.id
    assert second.start_time == START_TIME + 30 * DAY

    # The expired policy is still readable, and reads as inactive
    old = await initialized.get_policy(first.id)
    assert old.generation == 0
    assert old.is_active is False
    assert second.is_active is True


@pytest.mark.asyncio
async def test_different_insured_may_cover_same_protocol(initialized, protocol, alice, bob):
    a = await initialized.create_policy(alice.name, protocol.id, 100, 5, 30, alice.account)
    b = await initialized.create_policy(bob.name, protocol.id, 100, 5, 30, bob.account)
    assert a.id != b.id
    assert b.generation == 0


# ── Expiry ─────────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_policy_reads_inactive_at_expiry(initialized, protocol, alice, clock):
    policy = await initialized.create_policy(alice.name, protocol.id, 100, 5, 30, alice.account)

    clock.current = policy.expiry_time - 1
    assert (await initialized.get_policy(policy.id)).is_active is True

    clock.current = policy.expiry_time
    expired = await initialized.get_policy(policy.id)
    assert expired.is_active is False
    assert not expired.in_force(clock.now())


@pytest.mark.asyncio
async def test_listed_policies_reflect_expiry(initialized, protocol, alice, bob, clock):
    short = await initialized.create_policy(alice.name, protocol.id, 100, 5, 10, alice.account)
    long = await initialized.create_policy(bob.name, protocol.id, 100, 5, 60, bob.account)

    clock.advance_days(31)
    listed = {p.id: p.is_active for p in await initialized.list_policies(protocol_id=protocol.id)}
    assert listed == {short.id: False, long.id: True}

    # The cleared flag is stored, not recomputed per read
    clock.current = START_TIME
    assert (await initialized.get_policy(short.id)).is_active is False


# ── Premium enforcement ────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_premium_below_quote_rejected(initialized, protocol, bob):
    # score 50 → 50 bps: 10M * 50 // 10_000 // 365 * 365 = 49_640
    score, quote = await initialized.quote(protocol.id, 10_000_000, 365)
    assert (score, quote) == (50, 49_640)

    with pytest.raises(PremiumMismatch) as exc_info:
        await initialized.create_policy(bob.name, protocol.id, 10_000_000, 100, 365, bob.account)
    assert exc_info.value.details["quote"] == 49_640
    assert await initialized.balance(bob.account) == 10_000


@pytest.mark.asyncio
async def test_overpayment_accepted_in_minimum_mode(initialized, protocol, make_actor):
    whale = await make_actor("whale", 100_000)
    policy = await initialized.create_policy(whale.name, protocol.id, 10_000_000, 50_000, 365, whale.account)
    assert policy.premium_amount == 50_000
    assert await initialized.balance(TREASURY) == 50_000


@pytest.mark.asyncio
async def test_exact_mode_requires_quoted_premium(session_factory, clock, initialized, protocol, alice):
    exact = InsuranceService(
        session_factory,
        clock=clock,
        settings=Settings(DATABASE_URL="sqlite+aiosqlite:///:memory:", PREMIUM_ENFORCEMENT="exact"),
    )

    with pytest.raises(PremiumMismatch):
        await exact.create_policy(alice.name, protocol.id, 100, 5, 30, alice.account)

    policy = await exact.create_policy(alice.name, protocol.id, 100, 0, 30, alice.account)
    assert policy.premium_amount == 0


@pytest.mark.asyncio
async def test_insufficient_balance_creates_nothing(initialized, protocol, alice):
    with pytest.raises(InsufficientFunds):
        await initialized.create_policy(alice.name, protocol.id, 100, 2_000, 30, alice.account)

    assert await initialized.list_policies(insured=alice.name) == []
    assert await initialized.balance(alice.account) == 1_000
    assert await initialized.balance(TREASURY) == 0


# ── Queries ────────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_list_policies_filters(initialized, protocol, alice, bob, clock):
    other = await initialized.register_protocol("dex-dao", "Dex", 1_000_000)
    await initialized.create_policy(alice.name, protocol.id, 100, 5, 30, alice.account)
    clock.advance(1)
    await initialized.create_policy(alice.name, other.id, 100, 5, 30, alice.account)
    clock.advance(1)
    await initialized.create_policy(bob.name, protocol.id, 100, 5, 30, bob.account)

    assert len(await initialized.list_policies()) == 3
    mine = await initialized.list_policies(insured=alice.name)
    assert [p.protocol_id for p in mine] == [protocol.id, other.id]
    on_lender = await initialized.list_policies(protocol_id=protocol.id)
    assert [p.insured for p in on_lender] == [alice.name, bob.name]
    assert len(await initialized.list_policies(insured=bob.name, protocol_id=other.id)) == 0
