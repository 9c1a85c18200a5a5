"""Data access layer for blood request operations."""

from datetime import datetime
from typing import List, Optional

from sqlalchemy import func, update
from sqlmodel import Session, select

from bloodbank.domain.exceptions import PersistenceConflictError, RequestNotFoundError
from bloodbank.domain.models import BloodRequest, RequestStatus


class RequestRepository:
    """Repository for blood request database operations."""

    def __init__(self, session: Session):
        self.session = session

    def create(self, request: BloodRequest) -> BloodRequest:
        """Persist a newly submitted request."""
        try:
            self.session.add(request)
            self.session.commit()
            self.session.refresh(request)
            return request
        except Exception:
            self.session.rollback()
            raise

    def get_by_id(self, request_id: int) -> BloodRequest:
        """
        Retrieve a request by ID.

        Raises:
            RequestNotFoundError: If request doesn't exist
        """
        request = self.session.get(BloodRequest, request_id)
        if not request:
            raise RequestNotFoundError(request_id)
        return request

    def list_requests(
        self,
        skip: int = 0,
        limit: int = 100,
        status: Optional[RequestStatus] = None,
    ) -> List[BloodRequest]:
        """List requests, most recently requested first."""
        statement = select(BloodRequest)
        if status is not None:
            statement = statement.where(BloodRequest.status == status)
        statement = (
            statement.order_by(
                BloodRequest.requested_at.desc(),  # type: ignore[attr-defined]
                BloodRequest.id.desc(),  # type: ignore[union-attr]
            )
            .offset(skip)
            .limit(limit)
        )
        return list(self.session.exec(statement).all())

    def count_by_status(self, status: RequestStatus) -> int:
        """Number of requests currently in ``status``."""
        statement = (
            select(func.count())
            .select_from(BloodRequest)
            .where(BloodRequest.status == status)
        )
        return int(self.session.exec(statement).one())

    def mark_processed(
        self,
        request: BloodRequest,
        status: RequestStatus,
        processed_by: str,
        now: datetime,
    ) -> BloodRequest:
        """
        Move a pending request to ``status`` (flush only; no commit).

        The write is conditioned on the row still being pending.

        Raises:
            PersistenceConflictError: Request left pending since it was read
        """
        request_id = request.id
        statement = (
            update(BloodRequest)
            .where(
                BloodRequest.id == request_id,
                BloodRequest.status == RequestStatus.PENDING,
            )
            .values(
                status=status,
                processed_by=processed_by,
                processed_at=now,
                updated_at=now,
            )
            .execution_options(synchronize_session=False)
        )
        result = self.session.exec(statement)  # type: ignore[call-overload]
        if result.rowcount != 1:
            raise PersistenceConflictError(
                f"Request {request_id} was processed concurrently"
            )
        self.session.expire(request)
        return request

    def delete(self, request_id: int) -> BloodRequest:
        """
        Remove a request record.

        Raises:
            RequestNotFoundError: Request doesn't exist
        """
        request = self.get_by_id(request_id)
        self.session.delete(request)
        self.session.commit()
        return request
