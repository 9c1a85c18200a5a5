"""Data access layer for inventory batch operations."""

from datetime import datetime
from typing import List, Optional

from sqlalchemy import func, update
from sqlmodel import Session, select

from bloodbank.domain.exceptions import BatchNotFoundError, PersistenceConflictError
from bloodbank.domain.models import BatchStatus, BloodType, InventoryBatch


class InventoryRepository:
    """Repository for inventory batch database operations."""

    def __init__(self, session: Session):
        self.session = session

    def add(self, batch: InventoryBatch) -> InventoryBatch:
        """
        Stage a newly received batch (flush only; no commit).

        Returns:
            The batch with its generated ID
        """
        self.session.add(batch)
        self.session.flush()
        return batch

    def get_by_id(self, batch_id: int) -> InventoryBatch:
        """
        Retrieve batch by ID.

        Raises:
            BatchNotFoundError: If batch doesn't exist
        """
        batch = self.session.get(InventoryBatch, batch_id)
        if not batch:
            raise BatchNotFoundError(batch_id)
        return batch

    def list_batches(
        self,
        skip: int = 0,
        limit: int = 100,
        blood_type: Optional[BloodType] = None,
        status: Optional[BatchStatus] = None,
    ) -> List[InventoryBatch]:
        """
        List batches, newest first, optionally filtered by blood type and status.

        Args:
            skip: Pagination offset
            limit: Page size
            blood_type: Only batches of this blood type
            status: Only batches in this status

        Returns:
            List of batches
        """
        statement = select(InventoryBatch)
        if blood_type is not None:
            statement = statement.where(InventoryBatch.blood_type == blood_type)
        if status is not None:
            statement = statement.where(InventoryBatch.status == status)
        statement = (
            statement.order_by(
                InventoryBatch.created_at.desc(),  # type: ignore[attr-defined]
                InventoryBatch.id.desc(),  # type: ignore[union-attr]
            )
            .offset(skip)
            .limit(limit)
        )
        return list(self.session.exec(statement).all())

    def delete(self, batch_id: int) -> InventoryBatch:
        """
        Remove a batch record (operator action).

        Raises:
            BatchNotFoundError: Batch doesn't exist
        """
        batch = self.get_by_id(batch_id)
        self.session.delete(batch)
        self.session.commit()
        return batch

    # ------------------------------------------------------------------ #
    # Ledger queries                                                       #
    # ------------------------------------------------------------------ #

    def list_allocatable(
        self,
        blood_type: BloodType,
        now: datetime,
        lock: bool = True,
    ) -> List[InventoryBatch]:
        """
        Available, unexpired batches of a blood type in consumption order.

        Ordered by expiry ascending, then by ID (creation order). With
        ``lock`` the rows are read with SELECT FOR UPDATE so that other
        transactions cannot allocate them until this one ends.
        """
        statement = (
            select(InventoryBatch)
            .where(
                InventoryBatch.blood_type == blood_type,
                InventoryBatch.status == BatchStatus.AVAILABLE,
                InventoryBatch.expiry_date > now,
            )
            .order_by(
                InventoryBatch.expiry_date.asc(),  # type: ignore[attr-defined]
                InventoryBatch.id.asc(),  # type: ignore[union-attr]
            )
        )
        if lock:
            statement = statement.with_for_update()
        return list(self.session.exec(statement).all())

    def sum_available(self, blood_type: BloodType, now: datetime) -> int:
        """Total quantity of available, unexpired units of a blood type."""
        statement = select(func.coalesce(func.sum(InventoryBatch.quantity), 0)).where(
            InventoryBatch.blood_type == blood_type,
            InventoryBatch.status == BatchStatus.AVAILABLE,
            InventoryBatch.expiry_date > now,
        )
        return int(self.session.exec(statement).one())

    def sum_available_by_blood_type(self, now: datetime) -> dict[BloodType, int]:
        """Available, unexpired quantity per blood type (types without stock omitted)."""
        statement = (
            select(InventoryBatch.blood_type, func.sum(InventoryBatch.quantity))
            .where(
                InventoryBatch.status == BatchStatus.AVAILABLE,
                InventoryBatch.expiry_date > now,
            )
            .group_by(InventoryBatch.blood_type)
        )
        return {
            BloodType(blood_type): int(total or 0)
            for blood_type, total in self.session.exec(statement).all()
        }

    def sum_by_type_and_status(self) -> list[tuple[BloodType, BatchStatus, int]]:
        """Quantity grouped by blood type and status."""
        statement = (
            select(
                InventoryBatch.blood_type,
                InventoryBatch.status,
                func.sum(InventoryBatch.quantity),
            )
            .group_by(InventoryBatch.blood_type, InventoryBatch.status)
            .order_by(InventoryBatch.blood_type, InventoryBatch.status)
        )
        return [
            (BloodType(blood_type), BatchStatus(status), int(total or 0))
            for blood_type, status, total in self.session.exec(statement).all()
        ]

    # ------------------------------------------------------------------ #
    # Ledger writes (flush only; the caller owns the transaction)          #
    # ------------------------------------------------------------------ #

    def mark_expired(self, now: datetime) -> int:
        """
        Move every available batch with expiry_date < now to expired.

        Returns:
            Number of batches changed
        """
        statement = (
            update(InventoryBatch)
            .where(
                InventoryBatch.status == BatchStatus.AVAILABLE,
                InventoryBatch.expiry_date < now,
            )
            .values(
                status=BatchStatus.EXPIRED,
                version=InventoryBatch.version + 1,
                updated_at=now,
            )
            .execution_options(synchronize_session=False)
        )
        result = self.session.exec(statement)  # type: ignore[call-overload]
        if result.rowcount:
            self.session.expire_all()
        return int(result.rowcount or 0)

    def take_whole(
        self,
        batch: InventoryBatch,
        status: BatchStatus,
        now: datetime,
        request_id: Optional[int] = None,
    ) -> InventoryBatch:
        """
        Move an entire available batch to ``status``.

        Raises:
            PersistenceConflictError: Batch changed since it was read
        """
        self._guarded_update(
            batch,
            now,
            status=status,
            allocated_request_id=request_id,
        )
        return batch

    def take_part(
        self,
        batch: InventoryBatch,
        quantity: int,
        status: BatchStatus,
        now: datetime,
        request_id: Optional[int] = None,
    ) -> InventoryBatch:
        """
        Split ``quantity`` units off an available batch into a new record.

        The original keeps the remainder and stays available.

        Returns:
            The new record holding the consumed units

        Raises:
            PersistenceConflictError: Batch changed since it was read
        """
        part = batch.split_off(quantity, status=status, request_id=request_id)
        part.updated_at = now
        self._guarded_update(batch, now, quantity=batch.quantity - quantity)
        self.session.add(part)
        self.session.flush()
        return part

    def _guarded_update(self, batch: InventoryBatch, now: datetime, **values: object) -> None:
        """Apply ``values`` only if the row still has the version and status we read."""
        statement = (
            update(InventoryBatch)
            .where(
                InventoryBatch.id == batch.id,
                InventoryBatch.version == batch.version,
                InventoryBatch.status == BatchStatus.AVAILABLE,
            )
            .values(version=batch.version + 1, updated_at=now, **values)
            .execution_options(synchronize_session=False)
        )
        result = self.session.exec(statement)  # type: ignore[call-overload]
        if result.rowcount != 1:
            raise PersistenceConflictError(
                f"Batch {batch.id} was modified concurrently (expected version {batch.version})"
            )
        self.session.expire(batch)

