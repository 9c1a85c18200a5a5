"""Dashboard statistics."""

from dataclasses import dataclass

from sqlmodel import Session

from bloodbank.config import settings
from bloodbank.domain.clock import Clock, utcnow
from bloodbank.domain.models import BloodType, RequestStatus
from bloodbank.domain.services.inventory_service import InventoryService
from bloodbank.repositories.donor_repository import DonorRepository
from bloodbank.repositories.request_repository import RequestRepository


@dataclass(frozen=True)
class DashboardStats:
    total_donors: int
    total_units: int
    pending_requests: int
    critical_levels: int
    critical_blood_types: tuple[BloodType, ...]


class StatsService:
    """Aggregates donor, inventory and request figures for the dashboard."""

    def __init__(self, session: Session, clock: Clock = utcnow):
        self.inventory = InventoryService(session, clock=clock)
        self.donors = DonorRepository(session)
        self.requests = RequestRepository(session)

    def dashboard(self) -> DashboardStats:
        """
        Sweep expired stock and compute the dashboard figures.

        A blood type is at a critical level when its available units fall
        below ``settings.critical_stock_threshold``, including types with no
        stock at all.
        """
        availability = self.inventory.availability()
        critical = tuple(
            blood_type
            for blood_type, units in availability.items()
            if units < settings.critical_stock_threshold
        )
        return DashboardStats(
            total_donors=self.donors.count_active(),
            total_units=sum(availability.values()),
            pending_requests=self.requests.count_by_status(RequestStatus.PENDING),
            critical_levels=len(critical),
            critical_blood_types=critical,
        )
