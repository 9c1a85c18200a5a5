"""Pydantic schemas for dashboard statistics."""

from pydantic import BaseModel

from bloodbank.domain.models import BloodType


class StatsResponse(BaseModel):
    """Dashboard figures."""

    total_donors: int
    total_units: int
    pending_requests: int
    critical_levels: int
    critical_blood_types: list[BloodType]

    model_config = {"from_attributes": True}
