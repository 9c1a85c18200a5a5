"""Business logic layer for inventory intake and catalogue operations."""

from datetime import datetime
from typing import List, Optional

from sqlmodel import Session

from bloodbank.config import settings
from bloodbank.domain.clock import Clock, as_utc, utcnow
from bloodbank.domain.models import BatchStatus, BloodType, InventoryBatch
from bloodbank.domain.services.inventory_ledger import InventoryLedger
from bloodbank.domain.value_objects import StockLevel
from bloodbank.repositories.donor_repository import DonorRepository


class InventoryService:
    """Service layer for inventory batches outside of allocation."""

    def __init__(self, session: Session, clock: Clock = utcnow):
        self.session = session
        self.clock = clock
        self.ledger = InventoryLedger(session)
        self.repository = self.ledger.repository
        self.donors = DonorRepository(session)

    def receive_batch(
        self,
        blood_type: BloodType,
        quantity: int,
        collected_at: datetime,
        expiry_date: Optional[datetime] = None,
        donor_id: Optional[int] = None,
    ) -> InventoryBatch:
        """
        Record a donation intake.

        When ``expiry_date`` is omitted it is collected_at plus
        ``settings.default_shelf_life_days``. If a donor is referenced, their
        last donation date moves forward to collected_at when it is newer.
        The batch and the donor update are committed together.

        Raises:
            DonorNotFoundError: Referenced donor doesn't exist or is deactivated
        """
        donor = self.donors.get_by_id(donor_id) if donor_id is not None else None

        batch = InventoryBatch.receive(
            blood_type=blood_type,
            quantity=quantity,
            collected_at=as_utc(collected_at),
            expiry_date=as_utc(expiry_date) if expiry_date is not None else None,
            shelf_life_days=settings.default_shelf_life_days,
            donor_id=donor_id,
        )
        try:
            self.repository.add(batch)
            if donor is not None:
                self.donors.record_donation(donor, batch.collected_at)
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise

        self.session.refresh(batch)
        return batch

    def get_batch(self, batch_id: int) -> InventoryBatch:
        """Retrieve batch by ID."""
        return self.repository.get_by_id(batch_id)

    def list_batches(
        self,
        skip: int = 0,
        limit: int = 100,
        blood_type: Optional[BloodType] = None,
        status: Optional[BatchStatus] = None,
    ) -> List[InventoryBatch]:
        """Sweep expired stock, then list batches newest first."""
        self.sweep_expired()
        return self.repository.list_batches(
            skip=skip, limit=limit, blood_type=blood_type, status=status
        )

    def delete_batch(self, batch_id: int) -> InventoryBatch:
        """Remove a batch from the ledger."""
        return self.repository.delete(batch_id)

    def sweep_expired(self) -> int:
        """Run the expiry sweep and commit it."""
        try:
            swept = self.ledger.sweep_expired(self.clock())
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise
        return swept

    def compute_availability(self, blood_type: BloodType) -> int:
        """Sweep, then return the available units of one blood type."""
        self.sweep_expired()
        return self.ledger.available_quantity(blood_type, self.clock())

    def availability(self) -> dict[BloodType, int]:
        """Sweep, then return available units for every blood type."""
        self.sweep_expired()
        return self.ledger.availability_by_blood_type(self.clock())

    def stock_summary(self) -> List[StockLevel]:
        """Sweep, then return quantity by blood type and status."""
        self.sweep_expired()
        return self.ledger.stock_summary()
