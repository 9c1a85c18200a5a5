"""Data access layer for donor operations."""

from datetime import datetime, timezone
from typing import List

from sqlalchemy import func
from sqlmodel import Session, select

from bloodbank.domain.exceptions import DonorNotFoundError, DuplicateDonorEmailError
from bloodbank.domain.models import Donor


class DonorRepository:
    """Repository for donor database operations."""

    def __init__(self, session: Session):
        self.session = session

    def create(self, donor: Donor) -> Donor:
        """
        Register a new donor.

        Raises:
            DuplicateDonorEmailError: If the email is already registered
        """
        existing = self.session.exec(select(Donor).where(Donor.email == donor.email)).first()
        if existing:
            raise DuplicateDonorEmailError(email=donor.email)

        try:
            self.session.add(donor)
            self.session.commit()
            self.session.refresh(donor)
            return donor
        except Exception as e:
            self.session.rollback()
            if "unique constraint" in str(e).lower() or "duplicate key" in str(e).lower():
                raise DuplicateDonorEmailError(email=donor.email)
            raise

    def get_by_id(self, donor_id: int, include_deleted: bool = False) -> Donor:
        """
        Retrieve donor by ID.

        Raises:
            DonorNotFoundError: If donor doesn't exist or is deactivated
        """
        statement = select(Donor).where(Donor.id == donor_id)
        if not include_deleted:
            statement = statement.where(Donor.deleted_at.is_(None))  # type: ignore[union-attr]

        donor = self.session.exec(statement).first()
        if not donor:
            raise DonorNotFoundError(donor_id)
        return donor

    def list_active(self, skip: int = 0, limit: int = 100) -> List[Donor]:
        """List active (non-deleted) donors, newest first."""
        statement = (
            select(Donor)
            .where(Donor.deleted_at.is_(None))  # type: ignore[union-attr]
            .order_by(Donor.created_at.desc(), Donor.id.desc())  # type: ignore[attr-defined,union-attr]
            .offset(skip)
            .limit(limit)
        )
        return list(self.session.exec(statement).all())

    def count_active(self) -> int:
        """Number of active donors."""
        statement = (
            select(func.count())
            .select_from(Donor)
            .where(Donor.deleted_at.is_(None))  # type: ignore[union-attr]
        )
        return int(self.session.exec(statement).one())

    def soft_delete(self, donor_id: int) -> Donor:
        """
        Deactivate a donor.

        Raises:
            DonorNotFoundError: Donor doesn't exist or is already deactivated
        """
        donor = self.get_by_id(donor_id)

        now = datetime.now(timezone.utc)
        try:
            donor.deleted_at = now
            donor.updated_at = now
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise

        self.session.refresh(donor)
        return donor

    def record_donation(self, donor: Donor, collected_at: datetime) -> bool:
        """
        Advance the donor's last donation date if ``collected_at`` is newer.

        Flush only; the caller commits it with the intake it belongs to.

        Returns:
            True when the donor was updated
        """
        if not donor.record_donation(collected_at):
            return False
        self.session.add(donor)
        self.session.flush()
        return True
