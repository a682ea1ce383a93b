import uuid
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class AuthUser(BaseModel):
    """
    Represents an authenticated caller, decoded from the bearer token.
    """

    user_id: str = Field(..., alias="sub")
    wallet_id: uuid.UUID
    email: Optional[str] = None
    role: str = "authenticated"

    model_config = ConfigDict(populate_by_name=True)
