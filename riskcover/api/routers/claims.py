"""Claim endpoints."""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from riskcover.api.deps import get_service, get_signer
from riskcover.schemas.claim import ClaimCreate, ClaimResolve, ClaimResponse
from riskcover.schemas.common import ClaimStatus
from riskcover.services.insurance import InsuranceService

router = APIRouter(prefix="/api/v1/claims", tags=["claims"])


@router.post("", response_model=ClaimResponse, status_code=201)
async def submit_claim(
    body: ClaimCreate,
    signer: str = Depends(get_signer),
    service: InsuranceService = Depends(get_service),
):
    return await service.submit_claim(signer, body.policy_id, body.amount, body.evidence)


@router.get("", response_model=list[ClaimResponse])
async def list_claims(
    status: Optional[ClaimStatus] = Query(default=None),
    protocol_id: Optional[str] = Query(default=None),
    service: InsuranceService = Depends(get_service),
):
    return await service.list_claims(status=status, protocol_id=protocol_id)


@router.get("/{claim_id}", response_model=ClaimResponse)
async def get_claim(claim_id: str, service: InsuranceService = Depends(get_service)):
    return await service.get_claim(claim_id)


@router.post("/{claim_id}/resolve", response_model=ClaimResponse)
async def resolve_claim(
    claim_id: str,
    body: ClaimResolve,
    signer: str = Depends(get_signer),
    service: InsuranceService = Depends(get_service),
):
    return await service.resolve_claim(
        signer,
        claim_id,
        body.approve,
        body.notes,
        claimant_account=body.claimant_account,
        pool_type=body.pool_type,
    )
