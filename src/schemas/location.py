# src/schemas/location.py
from typing import Optional
from datetime import datetime
from pydantic import BaseModel, Field, ConfigDict


# -------------------------------
# ADDRESS SCHEMAS
# -------------------------------
class AddressBase(BaseModel):
    street_address: str = Field(..., max_length=255)
    city: str = Field(..., max_length=120)
    state: str = Field(..., max_length=120)
    postal_code: str = Field(..., max_length=20)
    country: str = Field(..., max_length=120)
    is_primary: Optional[bool] = False


class AddressCreate(AddressBase):
    pass


class AddressOut(AddressBase):
    id: int
    user_id: int
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)
