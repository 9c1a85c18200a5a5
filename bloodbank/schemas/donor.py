"""Pydantic schemas for donor API requests and responses."""

from datetime import datetime
from typing import Optional

from pydantic import AwareDatetime, BaseModel, ConfigDict, Field, field_validator

from bloodbank.domain.models import BloodType
from bloodbank.schemas.common import ensure_timezone_aware


class DonorCreateRequest(BaseModel):
    """Request schema for registering a donor."""

    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(min_length=2, max_length=100, examples=["Jane Doe"])
    age: int = Field(ge=18, le=65, description="Donor age (18-65)")
    blood_type: BloodType = Field(examples=["O-"])
    phone: str = Field(min_length=10, max_length=15, examples=["+15550100200"])
    email: str = Field(
        max_length=254,
        pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$",
        examples=["jane.doe@example.com"],
    )
    address: str = Field(min_length=10, max_length=200)


class DonorResponse(BaseModel):
    """Response schema for donor details."""

    id: int
    name: str
    age: int
    blood_type: BloodType
    phone: str
    email: str
    address: str
    last_donation_at: Optional[AwareDatetime]
    is_active: bool
    created_at: AwareDatetime
    updated_at: AwareDatetime

    model_config = {"from_attributes": True}

    @field_validator("last_donation_at", "created_at", "updated_at", mode="before")
    @classmethod
    def ensure_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return ensure_timezone_aware(value)
