"""Pydantic schemas for blood request API requests and responses."""

from datetime import datetime
from typing import Optional

from pydantic import AwareDatetime, BaseModel, ConfigDict, Field, field_validator

from bloodbank.domain.models import BatchStatus, BloodType, RequestPriority, RequestStatus
from bloodbank.schemas.common import ensure_timezone_aware


class RequestCreateRequest(BaseModel):
    """Request schema for submitting a blood request."""

    model_config = ConfigDict(str_strip_whitespace=True)

    patient_name: str = Field(min_length=2, max_length=100)
    hospital: str = Field(min_length=2, max_length=100)
    blood_type: BloodType = Field(examples=["O-"])
    quantity: int = Field(ge=1, description="Units required")
    priority: RequestPriority = Field(examples=["High"])


class RequestStatusUpdate(BaseModel):
    """Request schema for rejecting or cancelling a request."""

    status: RequestStatus
    processed_by: Optional[str] = Field(default=None, max_length=100)


class ApproveRequest(BaseModel):
    """Optional body for approving a request."""

    processed_by: Optional[str] = Field(default=None, max_length=100)
    reserve: bool = Field(
        default=False,
        description="Reserve the units instead of marking them used",
    )


class RequestResponse(BaseModel):
    """Response schema for request details."""

    id: int
    patient_name: str
    hospital: str
    blood_type: BloodType
    quantity: int
    priority: RequestPriority
    status: RequestStatus
    requested_at: AwareDatetime
    processed_by: Optional[str]
    processed_at: Optional[AwareDatetime]
    created_at: AwareDatetime
    updated_at: AwareDatetime

    model_config = {"from_attributes": True}

    @field_validator(
        "requested_at", "processed_at", "created_at", "updated_at", mode="before"
    )
    @classmethod
    def ensure_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return ensure_timezone_aware(value)


class AllocationLineResponse(BaseModel):
    """Units taken from one batch while fulfilling a request."""

    batch_id: int
    blood_type: BloodType
    quantity: int
    status: BatchStatus
    expiry_date: AwareDatetime
    split_from_id: Optional[int]

    model_config = {"from_attributes": True}

    @field_validator("expiry_date", mode="before")
    @classmethod
    def ensure_utc(cls, value: datetime) -> datetime:
        return ensure_timezone_aware(value)  # type: ignore[return-value]


class FulfillmentResponse(BaseModel):
    """Response schema for an approved request."""

    request: RequestResponse
    allocations: list[AllocationLineResponse]
    units_allocated: int
