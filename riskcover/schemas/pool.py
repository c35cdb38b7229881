"""Pydantic schemas for capital pools and providers."""

from pydantic import BaseModel, Field

from riskcover.schemas.common import PoolType


class PoolCreate(BaseModel):
    pool_type: PoolType
    yield_rate_bps: int
    token_mint: str = Field(min_length=1, max_length=64)
    token_account: str = Field(min_length=1, max_length=64)


class CapitalMovement(BaseModel):
    """Deposit into or withdrawal from a pool via the given token account."""
    amount: int
    token_account: str = Field(min_length=1, max_length=64)


class PoolResponse(BaseModel):
    id: str
    pool_type: PoolType
    yield_rate_bps: int
    token_mint: str
    token_account: str
    authority: str
    total_capital: int
    available_capital: int
    claimed_capital: int
    created_at: int

    model_config = {"from_attributes": True}


class ProviderResponse(BaseModel):
    id: str
    owner: str
    pool_id: str
    capital_amount: int
    rewards_earned: int
    deposited_at: int
    last_accrual_at: int

    model_config = {"from_attributes": True}
