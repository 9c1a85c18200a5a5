"""Domain value objects for allocation results and stock figures."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Optional

from bloodbank.domain.models import BatchStatus, BloodType

if TYPE_CHECKING:
    from bloodbank.domain.models import BloodRequest


@dataclass(frozen=True)
class AllocationLine:
    """
    Immutable record of units taken from one batch by an allocation.

    ``batch_id`` is the record now holding the consumed units: the original
    batch when it was taken whole, or the split-off record otherwise, in which
    case ``split_from_id`` names the batch that remains available.
    """

    batch_id: int
    blood_type: BloodType
    quantity: int
    status: BatchStatus
    expiry_date: datetime
    split_from_id: Optional[int] = None

    def __post_init__(self) -> None:
        if self.quantity < 1:
            raise ValueError(f"Allocated quantity must be positive: {self.quantity}")

    @property
    def is_split(self) -> bool:
        return self.split_from_id is not None

    def __str__(self) -> str:
        return f"{self.quantity}x{self.blood_type} from batch {self.batch_id}"


@dataclass(frozen=True)
class Fulfillment:
    """Outcome of a successful approval: the updated request and what it consumed."""

    request: "BloodRequest"
    lines: tuple[AllocationLine, ...] = field(default_factory=tuple)

    @property
    def units_allocated(self) -> int:
        return sum(line.quantity for line in self.lines)


@dataclass(frozen=True)
class StockLevel:
    """Quantity of one blood type in one batch status."""

    blood_type: BloodType
    status: BatchStatus
    quantity: int

    def __post_init__(self) -> None:
        if self.quantity < 0:
            raise ValueError(f"Stock quantity cannot be negative: {self.quantity}")
