"""Pydantic schemas for exploit alerts."""

from typing import Optional

from pydantic import BaseModel, Field

from riskcover.schemas.common import AnomalyType


class AlertCreate(BaseModel):
    protocol_id: str = Field(min_length=1, max_length=64)
    anomaly_type: AnomalyType
    severity: int
    details: str = ""


class AlertResolve(BaseModel):
    is_confirmed: bool
    notes: str = ""


class AlertResponse(BaseModel):
    id: str
    protocol_id: str
    sequence: int
    anomaly_type: AnomalyType
    severity: int
    details: str
    reporter: str
    is_confirmed: bool
    is_resolved: bool
    resolution_notes: Optional[str]
    resolved_at: Optional[int]
    created_at: int

    model_config = {"from_attributes": True}
