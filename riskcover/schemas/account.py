"""Pydantic schemas for token accounts."""

from typing import Optional

from pydantic import BaseModel, Field


class AccountOpen(BaseModel):
    address: str = Field(min_length=1, max_length=64)
    mint: str = Field(min_length=1, max_length=64)
    owner: Optional[str] = Field(default=None, max_length=64, description="Defaults to the signer")


class AccountResponse(BaseModel):
    address: str
    owner: str
    mint: str
    balance: int

    model_config = {"from_attributes": True}
