"""Pydantic schemas for inventory API requests and responses."""

from datetime import datetime
from typing import Optional

from pydantic import AwareDatetime, BaseModel, Field, field_validator, model_validator

from bloodbank.domain.models import BatchStatus, BloodType
from bloodbank.schemas.common import ensure_timezone_aware


class BatchCreateRequest(BaseModel):
    """Request schema for recording a donation intake."""

    blood_type: BloodType = Field(examples=["A+"])
    quantity: int = Field(ge=1, description="Number of units")
    collected_at: datetime = Field(description="Collection timestamp")
    expiry_date: Optional[datetime] = Field(
        default=None,
        description="Expiry timestamp (default: collected_at + configured shelf life)",
    )
    donor_id: Optional[int] = Field(default=None, ge=1, description="Donor reference")

    @model_validator(mode="after")
    def expiry_after_collection(self) -> "BatchCreateRequest":
        if self.expiry_date is not None:
            collected = ensure_timezone_aware(self.collected_at)
            expiry = ensure_timezone_aware(self.expiry_date)
            if expiry <= collected:  # type: ignore[operator]
                raise ValueError("expiry_date must be after collected_at")
        return self


class BatchResponse(BaseModel):
    """Response schema for batch details."""

    id: int
    blood_type: BloodType
    quantity: int
    collected_at: AwareDatetime
    expiry_date: AwareDatetime
    status: BatchStatus
    donor_id: Optional[int]
    split_from_id: Optional[int]
    allocated_request_id: Optional[int]
    version: int
    is_expired: bool
    created_at: AwareDatetime
    updated_at: AwareDatetime

    model_config = {"from_attributes": True}

    @field_validator("collected_at", "expiry_date", "created_at", "updated_at", mode="before")
    @classmethod
    def ensure_utc(cls, value: datetime) -> datetime:
        return ensure_timezone_aware(value)  # type: ignore[return-value]


class BloodTypeAvailability(BaseModel):
    """Available units of one blood type."""

    blood_type: BloodType
    available: int


class StockLevelResponse(BaseModel):
    """Units of one blood type in one status."""

    blood_type: BloodType
    status: BatchStatus
    quantity: int

    model_config = {"from_attributes": True}


class SweepResponse(BaseModel):
    """Result of an expiry sweep."""

    swept: int
