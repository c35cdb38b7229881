"""Exploit alert endpoints."""

from fastapi import APIRouter, Depends, Query

from riskcover.api.deps import get_service, get_signer
from riskcover.schemas.alert import AlertCreate, AlertResolve, AlertResponse
from riskcover.services.insurance import InsuranceService

router = APIRouter(prefix="/api/v1/alerts", tags=["alerts"])


@router.post("", response_model=AlertResponse, status_code=201)
async def create_alert(
    body: AlertCreate,
    signer: str = Depends(get_signer),
    service: InsuranceService = Depends(get_service),
):
    return await service.create_alert(
        signer, body.protocol_id, body.anomaly_type, body.severity, body.details,
    )


@router.get("", response_model=list[AlertResponse])
async def list_alerts(
    protocol_id: str = Query(...),
    unresolved_only: bool = Query(default=False),
    service: InsuranceService = Depends(get_service),
):
    return await service.list_alerts(protocol_id, unresolved_only=unresolved_only)


@router.get("/{alert_id}", response_model=AlertResponse)
async def get_alert(alert_id: str, service: InsuranceService = Depends(get_service)):
    return await service.get_alert(alert_id)


@router.post("/{alert_id}/resolve", response_model=AlertResponse)
async def resolve_alert(
    alert_id: str,
    body: AlertResolve,
    signer: str = Depends(get_signer),
    service: InsuranceService = Depends(get_service),
):
    return await service.resolve_alert(signer, alert_id, body.is_confirmed, body.notes)
