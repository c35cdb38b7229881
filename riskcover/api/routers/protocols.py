"""Protocol administration, registry and risk endpoints."""

from fastapi import APIRouter, Depends, Query

from riskcover.api.deps import get_service, get_signer
from riskcover.engine.risk_engine import CodeRiskParams, EconomicRiskParams, OperationalRiskParams
from riskcover.schemas.protocol import (
    ProtocolActiveUpdate,
    ProtocolFeeUpdate,
    ProtocolInitialize,
    ProtocolRegister,
    ProtocolResponse,
    ProtocolStateResponse,
    QuoteResponse,
    RiskBreakdownResponse,
    RiskUpdate,
)
from riskcover.services.insurance import InsuranceService

router = APIRouter(prefix="/api/v1", tags=["protocols"])


async def _state_response(service: InsuranceService) -> ProtocolStateResponse:
    state, registry = await service.get_state()
    return ProtocolStateResponse(
        authority=state.authority,
        protocol_fee_bps=state.protocol_fee_bps,
        treasury_account=state.treasury_account,
        protocol_count=registry.protocol_count,
        created_at=state.created_at,
        updated_at=state.updated_at,
    )


# ── Protocol state ────────────────────────────────────────────────────


@router.post("/state", response_model=ProtocolStateResponse, status_code=201)
async def initialize_protocol(
    body: ProtocolInitialize,
    signer: str = Depends(get_signer),
    service: InsuranceService = Depends(get_service),
):
    await service.initialize_protocol(signer, body.protocol_fee_bps, body.treasury_account)
    return await _state_response(service)


@router.get("/state", response_model=ProtocolStateResponse)
async def get_protocol_state(service: InsuranceService = Depends(get_service)):
    return await _state_response(service)


@router.patch("/state/fee", response_model=ProtocolStateResponse)
async def update_protocol_fee(
    body: ProtocolFeeUpdate,
    signer: str = Depends(get_signer),
    service: InsuranceService = Depends(get_service),
):
    await service.update_protocol_fee(signer, body.protocol_fee_bps)
    return await _state_response(service)


# ── Protocols ─────────────────────────────────────────────────────────


@router.post("/protocols", response_model=ProtocolResponse, status_code=201)
async def register_protocol(
    body: ProtocolRegister,
    signer: str = Depends(get_signer),
    service: InsuranceService = Depends(get_service),
):
    return await service.register_protocol(signer, body.name, body.tvl_usd)


@router.get("/protocols", response_model=list[ProtocolResponse])
async def list_protocols(
    active_only: bool = Query(default=False),
    service: InsuranceService = Depends(get_service),
):
    return await service.list_protocols(active_only=active_only)


@router.get("/protocols/{protocol_id}", response_model=ProtocolResponse)
async def get_protocol(protocol_id: str, service: InsuranceService = Depends(get_service)):
    return await service.get_protocol(protocol_id)


@router.patch("/protocols/{protocol_id}/active", response_model=ProtocolResponse)
async def set_protocol_active(
    protocol_id: str,
    body: ProtocolActiveUpdate,
    signer: str = Depends(get_signer),
    service: InsuranceService = Depends(get_service),
):
    return await service.set_protocol_active(signer, protocol_id, body.is_active)


@router.post("/protocols/{protocol_id}/risk", response_model=RiskBreakdownResponse)
async def update_risk(
    protocol_id: str,
    body: RiskUpdate,
    signer: str = Depends(get_signer),
    service: InsuranceService = Depends(get_service),
):
    return await service.update_risk(
        signer,
        protocol_id,
        CodeRiskParams(**body.code.model_dump()),
        EconomicRiskParams(**body.economic.model_dump()),
        OperationalRiskParams(**body.operational.model_dump()),
    )


# ── Pricing ───────────────────────────────────────────────────────────


@router.get("/quote", response_model=QuoteResponse)
async def quote_premium(
    protocol_id: str = Query(...),
    coverage_amount: int = Query(...),
    duration_days: int = Query(...),
    service: InsuranceService = Depends(get_service),
):
    score, premium = await service.quote(protocol_id, coverage_amount, duration_days)
    return QuoteResponse(
        protocol_id=protocol_id,
        risk_score=score,
        coverage_amount=coverage_amount,
        duration_days=duration_days,
        premium=premium,
    )
