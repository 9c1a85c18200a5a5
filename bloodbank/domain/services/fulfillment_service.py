"""Request fulfillment: approve, reject and cancel blood requests."""

from typing import Optional

from sqlmodel import Session

from bloodbank.config import settings
from bloodbank.domain.clock import Clock, utcnow
from bloodbank.domain.exceptions import (
    InsufficientStockError,
    InvalidRequestStateError,
    PersistenceConflictError,
)
from bloodbank.domain.models import BatchStatus, BloodRequest, RequestStatus
from bloodbank.domain.services.inventory_ledger import InventoryLedger
from bloodbank.domain.services.locks import BloodTypeLocks, allocation_locks
from bloodbank.domain.value_objects import Fulfillment
from bloodbank.repositories.request_repository import RequestRepository


class RequestFulfillmentService:
    """
    Moves pending requests to their terminal status.

    Approval holds the per-blood-type lock across sweep, availability check,
    allocation and the request update, and commits the last three as a single
    transaction. Guarded writes that lose a race raise
    PersistenceConflictError; the whole attempt is rolled back and retried.
    ``max_attempts`` counts the first try, so it defaults to
    ``settings.allocation_max_retries + 1``.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock = utcnow,
        locks: BloodTypeLocks = allocation_locks,
        max_attempts: Optional[int] = None,
        lock_timeout: Optional[float] = None,
    ):
        self.session = session
        self.clock = clock
        self.locks = locks
        if max_attempts is None:
            max_attempts = settings.allocation_max_retries + 1
        self.max_attempts = max(1, max_attempts)
        self.lock_timeout = (
            lock_timeout if lock_timeout is not None else settings.allocation_lock_timeout_seconds
        )
        self.requests = RequestRepository(session)
        self.ledger = InventoryLedger(session)

    def approve(
        self,
        request_id: int,
        processed_by: Optional[str] = None,
        hold: BatchStatus = BatchStatus.USED,
    ) -> Fulfillment:
        """
        Allocate stock to a pending request and mark it fulfilled.

        Args:
            request_id: Request to approve
            processed_by: Operator name (defaults to settings.default_processed_by)
            hold: ``used`` to consume the units, ``reserved`` to set them aside

        Returns:
            Fulfillment with the updated request and the allocation lines

        Raises:
            RequestNotFoundError: Request doesn't exist
            InvalidRequestStateError: Request is not pending
            InsufficientStockError: Not enough unexpired stock; nothing changed
            PersistenceConflictError: Conflicts persisted after every retry
        """
        request = self.requests.get_by_id(request_id)
        self._ensure_transition(request, RequestStatus.FULFILLED)
        blood_type = request.blood_type
        processed_by = processed_by or settings.default_processed_by

        with self.locks.hold(blood_type, timeout=self.lock_timeout):
            for _ in range(self.max_attempts):
                try:
                    return self._approve_once(request_id, processed_by, hold)
                except PersistenceConflictError:
                    continue

            available = self.ledger.available_quantity(blood_type, self.clock())
            request = self.requests.get_by_id(request_id)
            self._ensure_transition(request, RequestStatus.FULFILLED)
            if available < request.quantity:
                raise InsufficientStockError(
                    blood_type=blood_type,
                    available=available,
                    required=request.quantity,
                )
            raise PersistenceConflictError(
                f"Request {request_id} could not be approved after "
                f"{self.max_attempts} attempts due to concurrent updates"
            )

    def reject(self, request_id: int, processed_by: Optional[str] = None) -> BloodRequest:
        """Mark a pending request rejected. No inventory is touched."""
        return self._close(request_id, RequestStatus.REJECTED, processed_by)

    def cancel(self, request_id: int, processed_by: Optional[str] = None) -> BloodRequest:
        """Mark a pending request cancelled. No inventory is touched."""
        return self._close(request_id, RequestStatus.CANCELLED, processed_by)

    def _approve_once(
        self,
        request_id: int,
        processed_by: str,
        hold: BatchStatus,
    ) -> Fulfillment:
        now = self.clock()
        try:
            self.ledger.sweep_expired(now)
            self.session.commit()

            request = self.requests.get_by_id(request_id)
            self._ensure_transition(request, RequestStatus.FULFILLED)

            available = self.ledger.available_quantity(request.blood_type, now)
            if available < request.quantity:
                raise InsufficientStockError(
                    blood_type=request.blood_type,
                    available=available,
                    required=request.quantity,
                )

            lines = self.ledger.allocate(
                request.blood_type,
                request.quantity,
                now,
                hold=hold,
                request_id=request_id,
            )
            self.requests.mark_processed(request, RequestStatus.FULFILLED, processed_by, now)
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise

        self.session.refresh(request)
        return Fulfillment(request=request, lines=tuple(lines))

    def _close(
        self,
        request_id: int,
        status: RequestStatus,
        processed_by: Optional[str],
    ) -> BloodRequest:
        request = self.requests.get_by_id(request_id)
        self._ensure_transition(request, status)
        try:
            self.requests.mark_processed(
                request,
                status,
                processed_by or settings.default_processed_by,
                self.clock(),
            )
            self.session.commit()
        except PersistenceConflictError:
            self.session.rollback()
            request = self.requests.get_by_id(request_id)
            raise InvalidRequestStateError(request_id, request.status, status)
        except Exception:
            self.session.rollback()
            raise

        self.session.refresh(request)
        return request

    @staticmethod
    def _ensure_transition(request: BloodRequest, target: RequestStatus) -> None:
        if not request.can_transition_to(target):
            raise InvalidRequestStateError(
                request_id=request.id,  # type: ignore[arg-type]
                current=request.status,
                attempted=target,
            )
