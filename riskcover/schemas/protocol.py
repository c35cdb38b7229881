"""Pydantic schemas for protocol administration, registry and risk."""

from typing import Optional

from pydantic import BaseModel, Field

from riskcover.schemas.common import RiskCategory


class ProtocolInitialize(BaseModel):
    protocol_fee_bps: int
    treasury_account: str = Field(min_length=1, max_length=64)


class ProtocolFeeUpdate(BaseModel):
    protocol_fee_bps: int


class ProtocolRegister(BaseModel):
    name: str
    tvl_usd: int


class ProtocolActiveUpdate(BaseModel):
    is_active: bool


class CodeRiskInput(BaseModel):
    audit_count: int
    bug_bounty_size: int
    complexity_score: int


class EconomicRiskInput(BaseModel):
    liquidity_depth: int
    concentration_risk: int


class OperationalRiskInput(BaseModel):
    governance_count: int
    admin_count: int
    oracle_dependency: bool


class RiskUpdate(BaseModel):
    code: CodeRiskInput
    economic: EconomicRiskInput
    operational: OperationalRiskInput


class RiskBreakdownResponse(BaseModel):
    code_risk: int
    economic_risk: int
    operational_risk: int
    risk_score: int
    category: RiskCategory
    weights: tuple[int, int, int]

    model_config = {"from_attributes": True}


class ProtocolStateResponse(BaseModel):
    authority: str
    protocol_fee_bps: int
    treasury_account: str
    protocol_count: int
    created_at: int
    updated_at: int


class ProtocolResponse(BaseModel):
    id: str
    authority: str
    name: str
    tvl_usd: int
    risk_score: int
    code_risk: Optional[int]
    economic_risk: Optional[int]
    operational_risk: Optional[int]
    is_active: bool
    alert_count: int
    registered_at: int
    risk_updated_at: Optional[int]

    model_config = {"from_attributes": True}


class QuoteResponse(BaseModel):
    protocol_id: str
    risk_score: int
    coverage_amount: int
    duration_days: int
    premium: int
