"""Token account endpoints."""

from fastapi import APIRouter, Depends

from riskcover.api.deps import get_service, get_signer
from riskcover.schemas.account import AccountOpen, AccountResponse
from riskcover.services.insurance import InsuranceService

router = APIRouter(prefix="/api/v1/accounts", tags=["accounts"])


@router.post("", response_model=AccountResponse, status_code=201)
async def open_account(
    body: AccountOpen,
    signer: str = Depends(get_signer),
    service: InsuranceService = Depends(get_service),
):
    return await service.open_account(body.address, body.owner or signer, body.mint)


@router.get("/{address}", response_model=AccountResponse)
async def get_account(address: str, service: InsuranceService = Depends(get_service)):
    return await service.get_account(address)
