"""Inventory ledger: availability, expiry sweep and FIFO-by-expiry allocation."""

from datetime import datetime
from typing import List, Optional

from sqlmodel import Session

from bloodbank.domain.clock import as_utc
from bloodbank.domain.exceptions import InsufficientStockError
from bloodbank.domain.models import HOLD_STATUSES, BatchStatus, BloodType
from bloodbank.domain.value_objects import AllocationLine, StockLevel
from bloodbank.repositories.inventory_repository import InventoryRepository


class InventoryLedger:
    """
    Stock of blood units grouped by blood type.

    The ledger only flushes; committing or rolling back is up to the caller,
    so an allocation can share a transaction with the request update.
    """

    def __init__(self, session: Session):
        self.repository = InventoryRepository(session)

    def sweep_expired(self, now: datetime) -> int:
        """
        Mark every available batch whose expiry_date < now as expired.

        Idempotent: a second call with the same ``now`` changes nothing.

        Returns:
            Number of batches that changed status
        """
        return self.repository.mark_expired(as_utc(now))

    def available_quantity(self, blood_type: BloodType, now: datetime) -> int:
        """Units of ``blood_type`` that are available and expire after ``now``."""
        return self.repository.sum_available(blood_type, as_utc(now))

    def availability_by_blood_type(self, now: datetime) -> dict[BloodType, int]:
        """Available units for all eight blood types (zero where out of stock)."""
        totals = self.repository.sum_available_by_blood_type(as_utc(now))
        return {blood_type: totals.get(blood_type, 0) for blood_type in BloodType}

    def stock_summary(self) -> List[StockLevel]:
        """Quantity per blood type and status."""
        return [
            StockLevel(blood_type=blood_type, status=status, quantity=quantity)
            for blood_type, status, quantity in self.repository.sum_by_type_and_status()
        ]

    def allocate(
        self,
        blood_type: BloodType,
        quantity: int,
        now: datetime,
        hold: BatchStatus = BatchStatus.USED,
        request_id: Optional[int] = None,
    ) -> List[AllocationLine]:
        """
        Take ``quantity`` units of ``blood_type``, earliest expiry first.

        Batches are consumed in (expiry_date, id) order. A batch no larger
        than the outstanding need moves to ``hold`` as a whole; a larger one
        is split so that exactly the outstanding need moves to ``hold`` and
        the remainder stays available.

        Args:
            blood_type: Blood type to allocate
            quantity: Units required (>= 1)
            now: Batches expiring at or before this instant are ignored
            hold: Status the allocated units take (used or reserved)
            request_id: Request the units are allocated to

        Returns:
            One AllocationLine per batch touched, in consumption order

        Raises:
            InsufficientStockError: Fewer than ``quantity`` units available;
                nothing is modified
            PersistenceConflictError: A batch changed after it was read
        """
        if quantity < 1:
            raise ValueError(f"Allocation quantity must be positive, got {quantity}")
        if hold not in HOLD_STATUSES:
            raise ValueError(f"Cannot allocate into status {hold}")

        now = as_utc(now)
        batches = self.repository.list_allocatable(blood_type, now)
        available = sum(batch.quantity for batch in batches)
        if available < quantity:
            raise InsufficientStockError(
                blood_type=blood_type,
                available=available,
                required=quantity,
            )

        remaining = quantity
        lines: List[AllocationLine] = []
        for batch in batches:
            if remaining == 0:
                break

            batch_id = batch.id
            expiry_date = batch.expiry_date

            if batch.quantity <= remaining:
                taken = batch.quantity
                self.repository.take_whole(batch, hold, now, request_id=request_id)
                lines.append(
                    AllocationLine(
                        batch_id=batch_id,  # type: ignore[arg-type]
                        blood_type=blood_type,
                        quantity=taken,
                        status=hold,
                        expiry_date=expiry_date,
                    )
                )
            else:
                taken = remaining
                part = self.repository.take_part(
                    batch, taken, hold, now, request_id=request_id
                )
                lines.append(
                    AllocationLine(
                        batch_id=part.id,  # type: ignore[arg-type]
                        blood_type=blood_type,
                        quantity=taken,
                        status=hold,
                        expiry_date=expiry_date,
                        split_from_id=batch_id,
                    )
                )
            remaining -= taken

        return lines
