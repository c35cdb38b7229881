"""Policy endpoints."""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from riskcover.api.deps import get_service, get_signer
from riskcover.schemas.policy import PolicyCreate, PolicyResponse
from riskcover.services.insurance import InsuranceService

router = APIRouter(prefix="/api/v1/policies", tags=["policies"])


@router.post("", response_model=PolicyResponse, status_code=201)
async def create_policy(
    body: PolicyCreate,
    signer: str = Depends(get_signer),
    service: InsuranceService = Depends(get_service),
):
    return await service.create_policy(
        signer,
        body.protocol_id,
        body.coverage_amount,
        body.premium_amount,
        body.duration_days,
        body.source_account,
    )


@router.get("", response_model=list[PolicyResponse])
async def list_policies(
    insured: Optional[str] = Query(default=None),
    protocol_id: Optional[str] = Query(default=None),
    service: InsuranceService = Depends(get_service),
):
    return await service.list_policies(insured=insured, protocol_id=protocol_id)


@router.get("/{policy_id}", response_model=PolicyResponse)
async def get_policy(policy_id: str, service: InsuranceService = Depends(get_service)):
    return await service.get_policy(policy_id)
