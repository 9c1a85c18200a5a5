"""API endpoint for dashboard statistics."""

from typing import Annotated

from fastapi import APIRouter, Depends
from sqlmodel import Session

from bloodbank.database import get_session
from bloodbank.domain.clock import Clock, get_clock
from bloodbank.domain.services.stats_service import StatsService
from bloodbank.schemas.common import ApiResponse
from bloodbank.schemas.stats import StatsResponse

router = APIRouter(prefix="/stats", tags=["stats"])


@router.get("", response_model=ApiResponse[StatsResponse])
def get_dashboard_stats(
    session: Annotated[Session, Depends(get_session)],
    clock: Annotated[Clock, Depends(get_clock)],
) -> ApiResponse[StatsResponse]:
    """Donor, stock and request figures for the dashboard."""
    stats = StatsService(session, clock=clock).dashboard()
    return ApiResponse[StatsResponse](data=StatsResponse.model_validate(stats))
