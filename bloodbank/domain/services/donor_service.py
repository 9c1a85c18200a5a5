"""Business logic layer for donor operations."""

from typing import List

from sqlmodel import Session

from bloodbank.domain.models import BloodType, Donor
from bloodbank.repositories.donor_repository import DonorRepository


class DonorService:
    """Service layer for donor business logic."""

    def __init__(self, session: Session):
        self.repository = DonorRepository(session)

    def register_donor(
        self,
        name: str,
        age: int,
        blood_type: BloodType,
        phone: str,
        email: str,
        address: str,
    ) -> Donor:
        """Register a donor; the email is normalised to lower case."""
        donor = Donor(
            name=name.strip(),
            age=age,
            blood_type=blood_type,
            phone=phone.strip(),
            email=email.strip().lower(),
            address=address.strip(),
        )
        return self.repository.create(donor)

    def get_donor(self, donor_id: int) -> Donor:
        """Retrieve an active donor by ID."""
        return self.repository.get_by_id(donor_id)

    def list_donors(self, skip: int = 0, limit: int = 100) -> List[Donor]:
        """List active donors with pagination."""
        return self.repository.list_active(skip=skip, limit=limit)

    def deactivate_donor(self, donor_id: int) -> Donor:
        """Soft-delete a donor."""
        return self.repository.soft_delete(donor_id)
