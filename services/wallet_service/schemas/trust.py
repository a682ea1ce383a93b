"""Trust relationship request/response schemas."""

import enum
import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from services.wallet_service.models.enums import (
    TrustRequestType,
    TrustState,
    TrustType,
)
from services.wallet_service.schemas.wallet import Order, SortOrder


class TrustSortField(str, enum.Enum):
    CREATED_AT = "created_at"
    UPDATED_AT = "updated_at"
    STATE = "state"
    TYPE = "type"
    REQUEST_TYPE = "request_type"


class TrustResponse(BaseModel):
    id: uuid.UUID
    actor_wallet_id: uuid.UUID
    target_wallet_id: uuid.UUID
    originator_wallet_id: uuid.UUID
    type: TrustType
    request_type: TrustRequestType
    state: TrustState
    active: bool
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class TrustListResponse(BaseModel):
    trust_relationships: list[TrustResponse]
    total: int
    offset: int
    limit: int


class TrustFilter(BaseModel):
    """Filter for listing a wallet's trust edges. Unset fields do not filter."""

    state: Optional[TrustState] = None
    type: Optional[TrustType] = None
    request_type: Optional[TrustRequestType] = None
    offset: int = Field(0, ge=0)
    limit: int = Field(100, ge=1, le=1000)
    sort_by: TrustSortField = TrustSortField.CREATED_AT
    order: Order = SortOrder.DESC


class TrustRequestCreate(BaseModel):
    trust_request_type: TrustRequestType
    requestee_wallet: str = Field(..., min_length=1)
    # Defaults to the caller's own wallet.
    requester_wallet: Optional[str] = None
