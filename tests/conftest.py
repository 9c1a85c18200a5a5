"""Pytest fixtures for testing."""

from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session, SQLModel, create_engine
from sqlmodel.pool import StaticPool

from bloodbank.database import get_session
from bloodbank.domain.clock import get_clock
from bloodbank.domain.models import (
    BatchStatus,
    BloodRequest,
    BloodType,
    InventoryBatch,
    RequestPriority,
)
from bloodbank.main import app

# Fixed "current time" shared by unit and integration tests
NOW = datetime(2026, 3, 1, 12, 0, 0, tzinfo=timezone.utc)


def fixed_clock() -> datetime:
    return NOW


@pytest.fixture(name="session")
def session_fixture():
    """Create a fresh in-memory SQLite database for each test."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)

    with Session(engine) as session:
        yield session

    SQLModel.metadata.drop_all(engine)


@pytest.fixture(name="client")
def client_fixture(session: Session):
    """Create test client with overridden database session and a fixed clock."""

    def get_session_override():
        return session

    app.dependency_overrides[get_session] = get_session_override
    app.dependency_overrides[get_clock] = lambda: fixed_clock
    client = TestClient(app)

    yield client

    app.dependency_overrides.clear()


@pytest.fixture(name="make_batch")
def make_batch_fixture(session: Session) -> Callable[..., InventoryBatch]:
    """Factory persisting an inventory batch that expires ``expires_in_days`` after NOW."""

    def make_batch(
        blood_type: BloodType,
        quantity: int,
        expires_in_days: float,
        status: BatchStatus = BatchStatus.AVAILABLE,
        donor_id: Optional[int] = None,
    ) -> InventoryBatch:
        batch = InventoryBatch(
            blood_type=blood_type,
            quantity=quantity,
            collected_at=NOW - timedelta(days=1),
            expiry_date=NOW + timedelta(days=expires_in_days),
            status=status,
            donor_id=donor_id,
        )
        session.add(batch)
        session.commit()
        session.refresh(batch)
        return batch

    return make_batch


@pytest.fixture(name="make_request")
def make_request_fixture(session: Session) -> Callable[..., BloodRequest]:
    """Factory persisting a pending blood request."""

    def make_request(
        blood_type: BloodType,
        quantity: int,
        priority: RequestPriority = RequestPriority.HIGH,
    ) -> BloodRequest:
        request = BloodRequest(
            patient_name="Test Patient",
            hospital="General Hospital",
            blood_type=blood_type,
            quantity=quantity,
            priority=priority,
            requested_at=NOW,
        )
        session.add(request)
        session.commit()
        session.refresh(request)
        return request

    return make_request
