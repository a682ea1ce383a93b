"""Batch wallet operation schemas."""

import uuid
from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator

RowStatus = Literal["succeeded", "failed"]


class BatchRow(BaseModel):
    """One validated CSV record."""

    wallet_name: str
    token_transfer_amount_overwrite: Optional[int] = Field(None, ge=0)

    @field_validator("wallet_name")
    @classmethod
    def wallet_name_required(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("wallet_name is required")
        return v

    @field_validator("token_transfer_amount_overwrite", mode="before")
    @classmethod
    def blank_amount_is_absent(cls, v):
        if isinstance(v, str):
            v = v.strip()
            if not v:
                return None
            # "50.0" is accepted, "12.5" is not
            try:
                as_float = float(v)
            except ValueError:
                raise ValueError("token_transfer_amount_overwrite must be a number")
            if not as_float.is_integer():
                raise ValueError("token_transfer_amount_overwrite must be a whole number")
            return int(as_float)
        return v


class BatchRowResult(BaseModel):
    row: int
    wallet_name: Optional[str] = None
    status: RowStatus
    amount: Optional[int] = None
    wallet_id: Optional[uuid.UUID] = None
    reason: Optional[str] = None


class BatchResult(BaseModel):
    message: str
    succeeded: int
    failed: int
    file_path: Optional[str] = None
    results: list[BatchRowResult] = Field(default_factory=list)


class BatchOperationForm(BaseModel):
    """Form fields accompanying a batch upload."""

    sender_wallet: str = Field(..., min_length=1)
    token_transfer_amount_default: int = Field(0, ge=0)
    wallet_id: uuid.UUID
