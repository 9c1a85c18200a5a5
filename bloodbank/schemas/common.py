"""Response envelope shared by every endpoint."""

from datetime import datetime, timezone
from typing import Any, Generic, Optional, TypeVar

from pydantic import BaseModel

DataT = TypeVar("DataT")


class ApiResponse(BaseModel, Generic[DataT]):
    """Successful response: ``{"success": true, "message": ..., "data": ...}``."""

    success: bool = True
    message: Optional[str] = None
    data: Optional[DataT] = None


class ErrorResponse(BaseModel):
    """Failed response: ``{"success": false, "error": ..., "details": ...}``."""

    success: bool = False
    error: str
    details: Optional[list[Any]] = None


def ensure_timezone_aware(value: Optional[datetime]) -> Optional[datetime]:
    """Ensure datetime has timezone info, defaulting to UTC if naive."""
    if value and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value
