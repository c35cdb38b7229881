"""Pydantic schemas for policies."""

from pydantic import BaseModel, Field


class PolicyCreate(BaseModel):
    protocol_id: str = Field(min_length=1, max_length=64)
    coverage_amount: int
    premium_amount: int
    duration_days: int
    source_account: str = Field(min_length=1, max_length=64)


class PolicyResponse(BaseModel):
    id: str
    insured: str
    protocol_id: str
    generation: int
    coverage_amount: int
    premium_amount: int
    start_time: int
    expiry_time: int
    is_active: bool
    is_claimed: bool

    model_config = {"from_attributes": True}
