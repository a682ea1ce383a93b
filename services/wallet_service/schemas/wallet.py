"""Wallet request/response schemas."""

import enum
import uuid
from datetime import date, datetime
from typing import Annotated, Optional

from pydantic import (
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)


class SortOrder(str, enum.Enum):
    ASC = "asc"
    DESC = "desc"


# Accept "ASC"/"DESC" as sent by older clients.
Order = Annotated[
    SortOrder, BeforeValidator(lambda v: v.lower() if isinstance(v, str) else v)
]


class WalletSortField(str, enum.Enum):
    NAME = "name"
    CREATED_AT = "created_at"
    ID = "id"


class WalletResponse(BaseModel):
    id: uuid.UUID
    name: str
    about: Optional[str] = None
    logo_url: Optional[str] = None
    cover_url: Optional[str] = None
    add_to_web_map: bool
    balance: int
    active: bool
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class WalletSummary(BaseModel):
    """Row returned by the reachability query."""

    id: uuid.UUID
    name: str
    logo_url: Optional[str] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class WalletListResponse(BaseModel):
    wallets: list[WalletSummary]
    total: Optional[int] = None
    offset: int
    limit: int


class WalletCreateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("name must not be blank")
        return v


class WalletUpdate(BaseModel):
    """Partial update. Only fields explicitly set are applied."""

    display_name: Optional[str] = Field(None, min_length=1, max_length=255)
    about: Optional[str] = None
    add_to_web_map: Optional[bool] = None

    def changes(self) -> dict:
        data = self.model_dump(exclude_unset=True)
        if "display_name" in data:
            data["name"] = data.pop("display_name")
        return data


class WalletQuery(BaseModel):
    """Filters for the reachability query (GET /wallets)."""

    name: Optional[str] = None
    sort_by: WalletSortField = WalletSortField.CREATED_AT
    order: Order = SortOrder.DESC
    created_at_start_date: Optional[date] = None
    created_at_end_date: Optional[date] = None
    offset: int = Field(0, ge=0)
    limit: int = Field(100, ge=1, le=1000)
    count: bool = False

    @model_validator(mode="after")
    def check_date_range(self):
        if (
            self.created_at_start_date
            and self.created_at_end_date
            and self.created_at_start_date > self.created_at_end_date
        ):
            raise ValueError("created_at_start_date must not be after created_at_end_date")
        return self
