"""Business logic layer for blood request intake and catalogue operations."""

from datetime import datetime
from typing import List, Optional

from sqlmodel import Session

from bloodbank.domain.clock import Clock, as_utc, utcnow
from bloodbank.domain.models import BloodRequest, BloodType, RequestPriority, RequestStatus
from bloodbank.repositories.request_repository import RequestRepository


class RequestService:
    """Service layer for submitting and browsing blood requests."""

    def __init__(self, session: Session, clock: Clock = utcnow):
        self.clock = clock
        self.repository = RequestRepository(session)

    def submit_request(
        self,
        patient_name: str,
        hospital: str,
        blood_type: BloodType,
        quantity: int,
        priority: RequestPriority,
        requested_at: Optional[datetime] = None,
    ) -> BloodRequest:
        """Create a pending request."""
        now = self.clock()
        request = BloodRequest(
            patient_name=patient_name,
            hospital=hospital,
            blood_type=blood_type,
            quantity=quantity,
            priority=priority,
            status=RequestStatus.PENDING,
            requested_at=as_utc(requested_at) if requested_at else now,
            created_at=now,
            updated_at=now,
        )
        return self.repository.create(request)

    def get_request(self, request_id: int) -> BloodRequest:
        """Retrieve request by ID."""
        return self.repository.get_by_id(request_id)

    def list_requests(
        self,
        skip: int = 0,
        limit: int = 100,
        status: Optional[RequestStatus] = None,
    ) -> List[BloodRequest]:
        """List requests, most recent first."""
        return self.repository.list_requests(skip=skip, limit=limit, status=status)

    def delete_request(self, request_id: int) -> BloodRequest:
        """Remove a request record."""
        return self.repository.delete(request_id)
