"""SQLModel database models for donors, inventory batches and blood requests."""

from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Optional

from sqlmodel import Field, SQLModel


class BloodType(str, Enum):
    """ABO/Rh blood groups."""

    A_POS = "A+"
    A_NEG = "A-"
    B_POS = "B+"
    B_NEG = "B-"
    AB_POS = "AB+"
    AB_NEG = "AB-"
    O_POS = "O+"
    O_NEG = "O-"

    def __str__(self) -> str:
        return self.value


class BatchStatus(str, Enum):
    """Lifecycle status of an inventory batch."""

    AVAILABLE = "available"
    RESERVED = "reserved"
    USED = "used"
    EXPIRED = "expired"

    def __str__(self) -> str:
        return self.value


class RequestPriority(str, Enum):
    """Clinical priority of a blood request."""

    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"
    CRITICAL = "Critical"

    def __str__(self) -> str:
        return self.value


class RequestStatus(str, Enum):
    """Lifecycle status of a blood request."""

    PENDING = "pending"
    FULFILLED = "fulfilled"
    REJECTED = "rejected"
    CANCELLED = "cancelled"

    def __str__(self) -> str:
        return self.value


# Allowed request status transitions; every non-pending status is terminal.
REQUEST_TRANSITIONS: dict[RequestStatus, frozenset[RequestStatus]] = {
    RequestStatus.PENDING: frozenset(
        {RequestStatus.FULFILLED, RequestStatus.REJECTED, RequestStatus.CANCELLED}
    ),
    RequestStatus.FULFILLED: frozenset(),
    RequestStatus.REJECTED: frozenset(),
    RequestStatus.CANCELLED: frozenset(),
}

# Statuses an allocation may move units into.
HOLD_STATUSES: frozenset[BatchStatus] = frozenset({BatchStatus.USED, BatchStatus.RESERVED})


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _aware(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; everything is stored as UTC.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class Donor(SQLModel, table=True):
    """
    A registered blood donor.

    Business Rules:
    - email is unique and stored lower-cased
    - deleted_at enables soft delete; deactivated donors are hidden from listings
    - last_donation_at only moves forward
    """

    __tablename__ = "donors"

    id: Optional[int] = Field(default=None, primary_key=True)

    name: str = Field(max_length=100)
    age: int = Field(ge=18, le=65)
    blood_type: BloodType = Field(index=True)
    phone: str = Field(max_length=15)
    email: str = Field(unique=True, index=True, max_length=254)
    address: str = Field(max_length=200)
    last_donation_at: Optional[datetime] = Field(default=None)

    # Soft Delete
    deleted_at: Optional[datetime] = Field(
        default=None,
        index=True,
        description="Timestamp of soft deletion (NULL if active)",
    )

    # Audit Trail
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    @property
    def is_active(self) -> bool:
        """Check if donor has not been soft-deleted."""
        return self.deleted_at is None

    def record_donation(self, collected_at: datetime) -> bool:
        """
        Move last_donation_at forward to collected_at.

        Returns:
            True if the donor was updated, False if collected_at is not newer.
        """
        collected_at = _aware(collected_at)
        if self.last_donation_at is not None and collected_at <= _aware(self.last_donation_at):
            return False
        self.last_donation_at = collected_at
        self.updated_at = _utcnow()
        return True


class InventoryBatch(SQLModel, table=True):
    """
    Units of one blood type collected together and sharing one expiry date.

    Business Rules:
    - quantity >= 1 while status is available
    - available -> used/reserved only through allocation (possibly via a split)
    - available -> expired only through the expiry sweep
    - version is incremented on every guarded write (optimistic concurrency)
    - a split-off record keeps the parent's blood type, dates and donor, and
      points back at it through split_from_id
    """

    __tablename__ = "inventory_batches"

    id: Optional[int] = Field(default=None, primary_key=True)

    blood_type: BloodType = Field(index=True)
    quantity: int = Field(ge=1, description="Number of units in this batch")
    collected_at: datetime = Field(description="Timestamp the units were collected")
    expiry_date: datetime = Field(index=True, description="Units unusable after this instant")
    status: BatchStatus = Field(default=BatchStatus.AVAILABLE, index=True)

    donor_id: Optional[int] = Field(default=None, foreign_key="donors.id", index=True)
    split_from_id: Optional[int] = Field(
        default=None,
        index=True,
        description="Batch this record was split off during allocation",
    )
    allocated_request_id: Optional[int] = Field(
        default=None,
        index=True,
        description="Request whose allocation consumed or reserved these units",
    )

    # Concurrency Control
    version: int = Field(default=1, description="Version number for optimistic locking")

    # Audit Trail
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    def is_expired_at(self, now: datetime) -> bool:
        """Check if the batch has passed its expiry date at ``now``."""
        return _aware(self.expiry_date) < _aware(now)

    def is_allocatable_at(self, now: datetime) -> bool:
        """Available and strictly before expiry at ``now``."""
        return self.status == BatchStatus.AVAILABLE and _aware(self.expiry_date) > _aware(now)

    @property
    def is_expired(self) -> bool:
        """Check if batch has passed expiry date (or was swept)."""
        return self.status == BatchStatus.EXPIRED or self.is_expired_at(_utcnow())

    @classmethod
    def receive(
        cls,
        blood_type: BloodType,
        quantity: int,
        collected_at: datetime,
        expiry_date: Optional[datetime] = None,
        shelf_life_days: int = 35,
        donor_id: Optional[int] = None,
    ) -> "InventoryBatch":
        """
        Factory method for donation intake.

        Args:
            blood_type: Blood group of the units
            quantity: Number of units (>= 1)
            collected_at: Collection timestamp
            expiry_date: Explicit expiry; computed from shelf_life_days if omitted
            shelf_life_days: Shelf life used when expiry_date is omitted
            donor_id: Optional donor reference

        Returns:
            New available InventoryBatch
        """
        if quantity < 1:
            raise ValueError(f"Batch quantity must be at least 1, got {quantity}")
        collected_at = _aware(collected_at)
        if expiry_date is None:
            expiry_date = collected_at + timedelta(days=shelf_life_days)
        return cls(
            blood_type=blood_type,
            quantity=quantity,
            collected_at=collected_at,
            expiry_date=_aware(expiry_date),
            donor_id=donor_id,
        )

    def split_off(
        self,
        quantity: int,
        status: BatchStatus,
        request_id: Optional[int] = None,
    ) -> "InventoryBatch":
        """
        Build the consumed part of a split, leaving this batch untouched.

        The caller is responsible for reducing this batch's quantity.
        """
        if not 0 < quantity < self.quantity:
            raise ValueError(
                f"Split quantity must be between 1 and {self.quantity - 1}, got {quantity}"
            )
        return InventoryBatch(
            blood_type=self.blood_type,
            quantity=quantity,
            collected_at=self.collected_at,
            expiry_date=self.expiry_date,
            status=status,
            donor_id=self.donor_id,
            split_from_id=self.id,
            allocated_request_id=request_id,
            created_at=self.created_at,
        )


class BloodRequest(SQLModel, table=True):
    """
    A hospital's request for units of one blood type.

    Business Rules:
    - status moves only pending -> fulfilled/rejected/cancelled (REQUEST_TRANSITIONS)
    - once non-pending the request is immutable with respect to allocation
    """

    __tablename__ = "blood_requests"

    id: Optional[int] = Field(default=None, primary_key=True)

    patient_name: str = Field(max_length=100)
    hospital: str = Field(max_length=100)
    blood_type: BloodType = Field(index=True)
    quantity: int = Field(ge=1, description="Units required")
    priority: RequestPriority = Field(default=RequestPriority.MEDIUM)
    status: RequestStatus = Field(default=RequestStatus.PENDING, index=True)

    requested_at: datetime = Field(default_factory=_utcnow, index=True)
    processed_by: Optional[str] = Field(default=None, max_length=100)
    processed_at: Optional[datetime] = Field(default=None)

    # Audit Trail
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    @property
    def is_pending(self) -> bool:
        return self.status == RequestStatus.PENDING

    def can_transition_to(self, target: RequestStatus) -> bool:
        """Check the transition table for current status -> target."""
        return target in REQUEST_TRANSITIONS[RequestStatus(self.status)]
