"""Capital pool endpoints."""

from fastapi import APIRouter, Depends, HTTPException

from riskcover.api.deps import get_service, get_signer
from riskcover.schemas.common import PoolType
from riskcover.schemas.pool import CapitalMovement, PoolCreate, PoolResponse, ProviderResponse
from riskcover.services.insurance import InsuranceService

router = APIRouter(prefix="/api/v1/pools", tags=["pools"])


@router.post("", response_model=PoolResponse, status_code=201)
async def initialize_pool(
    body: PoolCreate,
    signer: str = Depends(get_signer),
    service: InsuranceService = Depends(get_service),
):
    return await service.initialize_pool(
        signer, body.pool_type, body.yield_rate_bps, body.token_mint, body.token_account,
    )


@router.get("", response_model=list[PoolResponse])
async def list_pools(service: InsuranceService = Depends(get_service)):
    return await service.list_pools()


@router.get("/{pool_type}", response_model=PoolResponse)
async def get_pool(pool_type: PoolType, service: InsuranceService = Depends(get_service)):
    return await service.get_pool(pool_type)


@router.get("/{pool_type}/providers", response_model=list[ProviderResponse])
async def list_providers(pool_type: PoolType, service: InsuranceService = Depends(get_service)):
    return await service.list_providers(pool_type)


@router.get("/{pool_type}/providers/{owner}", response_model=ProviderResponse)
async def get_provider(
    pool_type: PoolType,
    owner: str,
    service: InsuranceService = Depends(get_service),
):
    provider = await service.get_provider(owner, pool_type)
    if provider is None:
        raise HTTPException(status_code=404, detail="Provider not found")
    return provider


@router.post("/{pool_type}/provide", response_model=ProviderResponse)
async def provide_capital(
    pool_type: PoolType,
    body: CapitalMovement,
    signer: str = Depends(get_signer),
    service: InsuranceService = Depends(get_service),
):
    return await service.provide_capital(signer, pool_type, body.amount, body.token_account)


@router.post("/{pool_type}/withdraw", response_model=ProviderResponse)
async def withdraw_capital(
    pool_type: PoolType,
    body: CapitalMovement,
    signer: str = Depends(get_signer),
    service: InsuranceService = Depends(get_service),
):
    return await service.withdraw_capital(signer, pool_type, body.amount, body.token_account)
