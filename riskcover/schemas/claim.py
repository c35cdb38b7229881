"""Pydantic schemas for claims."""

from typing import Optional

from pydantic import BaseModel, Field

from riskcover.schemas.common import ClaimStatus, PoolType


class ClaimCreate(BaseModel):
    policy_id: str = Field(min_length=1, max_length=64)
    amount: int
    evidence: str = ""


class ClaimResolve(BaseModel):
    approve: bool
    notes: str = ""
    claimant_account: Optional[str] = None
    pool_type: Optional[PoolType] = None


class ClaimResponse(BaseModel):
    id: str
    policy_id: str
    protocol_id: str
    claimant: str
    amount: int
    evidence: str
    status: ClaimStatus
    resolver: Optional[str]
    resolution_notes: Optional[str]
    pool_id: Optional[str]
    submitted_at: int
    resolved_at: Optional[int]

    model_config = {"from_attributes": True}
