"""Unit tests for the inventory ledger."""

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import update
from sqlmodel import Session, select

from bloodbank.domain.exceptions import InsufficientStockError, PersistenceConflictError
from bloodbank.domain.models import BatchStatus, BloodType, InventoryBatch
from bloodbank.domain.services.inventory_ledger import InventoryLedger

NOW = datetime(2026, 3, 1, 12, 0, 0, tzinfo=timezone.utc)


def all_batches(session: Session, blood_type: BloodType) -> list[InventoryBatch]:
    statement = (
        select(InventoryBatch)
        .where(InventoryBatch.blood_type == blood_type)
        .order_by(InventoryBatch.id)
    )
    return list(session.exec(statement).all())


def snapshot(session: Session, blood_type: BloodType) -> list[tuple]:
    session.expire_all()
    return [
        (b.id, b.quantity, b.status, b.version)
        for b in all_batches(session, blood_type)
    ]


def total_quantity(session: Session, blood_type: BloodType) -> int:
    return sum(b.quantity for b in all_batches(session, blood_type))


class TestAvailableQuantity:
    """Tests for available_quantity."""

    def test_empty_ledger(self, session):
        assert InventoryLedger(session).available_quantity(BloodType.A_POS, NOW) == 0

    def test_sums_available_batches_of_type(self, session, make_batch):
        make_batch(BloodType.A_POS, 3, expires_in_days=5)
        make_batch(BloodType.A_POS, 4, expires_in_days=10)
        make_batch(BloodType.B_POS, 9, expires_in_days=10)

        assert InventoryLedger(session).available_quantity(BloodType.A_POS, NOW) == 7

    def test_excludes_non_available_statuses(self, session, make_batch):
        make_batch(BloodType.O_NEG, 3, expires_in_days=5)
        make_batch(BloodType.O_NEG, 2, expires_in_days=5, status=BatchStatus.USED)
        make_batch(BloodType.O_NEG, 2, expires_in_days=5, status=BatchStatus.RESERVED)
        make_batch(BloodType.O_NEG, 2, expires_in_days=5, status=BatchStatus.EXPIRED)

        assert InventoryLedger(session).available_quantity(BloodType.O_NEG, NOW) == 3

    def test_excludes_expired_even_before_sweep(self, session, make_batch):
        make_batch(BloodType.O_NEG, 3, expires_in_days=-1)
        make_batch(BloodType.O_NEG, 1, expires_in_days=0)
        make_batch(BloodType.O_NEG, 2, expires_in_days=1)

        assert InventoryLedger(session).available_quantity(BloodType.O_NEG, NOW) == 2

    def test_availability_covers_all_blood_types(self, session, make_batch):
        make_batch(BloodType.AB_NEG, 6, expires_in_days=3)

        availability = InventoryLedger(session).availability_by_blood_type(NOW)

        assert set(availability) == set(BloodType)
        assert availability[BloodType.AB_NEG] == 6
        assert availability[BloodType.O_POS] == 0


class TestSweepExpired:
    """Tests for sweep_expired."""

    def test_marks_only_past_expiry_available_batches(self, session, make_batch):
        stale = make_batch(BloodType.A_NEG, 3, expires_in_days=-2)
        fresh = make_batch(BloodType.A_NEG, 4, expires_in_days=2)
        used = make_batch(BloodType.A_NEG, 5, expires_in_days=-2, status=BatchStatus.USED)

        swept = InventoryLedger(session).sweep_expired(NOW)
        session.commit()

        assert swept == 1
        session.refresh(stale)
        session.refresh(fresh)
        session.refresh(used)
        assert stale.status == BatchStatus.EXPIRED
        assert stale.version == 2
        assert fresh.status == BatchStatus.AVAILABLE
        assert used.status == BatchStatus.USED

    def test_sweep_is_idempotent(self, session, make_batch):
        make_batch(BloodType.A_NEG, 3, expires_in_days=-2)
        make_batch(BloodType.A_NEG, 4, expires_in_days=2)
        ledger = InventoryLedger(session)

        assert ledger.sweep_expired(NOW) == 1
        session.commit()
        after_first = snapshot(session, BloodType.A_NEG)

        assert ledger.sweep_expired(NOW) == 0
        session.commit()
        assert snapshot(session, BloodType.A_NEG) == after_first

    def test_sweep_preserves_quantity(self, session, make_batch):
        make_batch(BloodType.B_NEG, 3, expires_in_days=-2)
        make_batch(BloodType.B_NEG, 4, expires_in_days=2)

        InventoryLedger(session).sweep_expired(NOW)
        session.commit()

        assert total_quantity(session, BloodType.B_NEG) == 7


class TestAllocate:
    """Tests for FIFO-by-expiry allocation."""

    def test_reference_scenario(self, session, make_batch):
        """3 units @5d + 4 units @10d, allocate 5: first used, second split 2/2."""
        first = make_batch(BloodType.A_POS, 3, expires_in_days=5)
        second = make_batch(BloodType.A_POS, 4, expires_in_days=10)
        ledger = InventoryLedger(session)

        lines = ledger.allocate(BloodType.A_POS, 5, NOW, request_id=42)
        session.commit()

        assert [(l.batch_id, l.quantity, l.split_from_id) for l in lines][0] == (first.id, 3, None)
        assert lines[1].quantity == 2
        assert lines[1].split_from_id == second.id
        assert sum(l.quantity for l in lines) == 5

        session.refresh(first)
        session.refresh(second)
        assert first.status == BatchStatus.USED
        assert first.quantity == 3
        assert first.allocated_request_id == 42
        assert second.status == BatchStatus.AVAILABLE
        assert second.quantity == 2

        part = session.get(InventoryBatch, lines[1].batch_id)
        assert part.status == BatchStatus.USED
        assert part.quantity == 2
        assert part.allocated_request_id == 42
        assert ledger.available_quantity(BloodType.A_POS, NOW) == 2

    def test_fifo_by_expiry_regardless_of_insert_order(self, session, make_batch):
        late = make_batch(BloodType.O_POS, 5, expires_in_days=20)
        early = make_batch(BloodType.O_POS, 5, expires_in_days=2)
        middle = make_batch(BloodType.O_POS, 5, expires_in_days=8)

        lines = InventoryLedger(session).allocate(BloodType.O_POS, 7, NOW)
        session.commit()

        assert lines[0].batch_id == early.id
        assert lines[1].split_from_id == middle.id
        session.refresh(late)
        assert late.quantity == 5
        assert late.status == BatchStatus.AVAILABLE

    def test_same_expiry_consumed_in_creation_order(self, session, make_batch):
        older = make_batch(BloodType.B_POS, 2, expires_in_days=4)
        newer = make_batch(BloodType.B_POS, 2, expires_in_days=4)

        lines = InventoryLedger(session).allocate(BloodType.B_POS, 2, NOW)
        session.commit()

        assert [l.batch_id for l in lines] == [older.id]
        session.refresh(newer)
        assert newer.status == BatchStatus.AVAILABLE

    def test_split_single_batch(self, session, make_batch):
        batch = make_batch(BloodType.AB_POS, 10, expires_in_days=7)

        lines = InventoryLedger(session).allocate(BloodType.AB_POS, 4, NOW)
        session.commit()

        assert len(lines) == 1
        session.refresh(batch)
        assert batch.quantity == 6
        assert batch.status == BatchStatus.AVAILABLE
        assert batch.version == 2
        part = session.get(InventoryBatch, lines[0].batch_id)
        assert part.quantity == 4
        assert part.expiry_date == batch.expiry_date
        assert part.split_from_id == batch.id

    def test_exact_quantity_consumes_without_split(self, session, make_batch):
        make_batch(BloodType.AB_POS, 3, expires_in_days=7)
        make_batch(BloodType.AB_POS, 3, expires_in_days=9)

        lines = InventoryLedger(session).allocate(BloodType.AB_POS, 6, NOW)
        session.commit()

        assert all(not l.is_split for l in lines)
        assert len(all_batches(session, BloodType.AB_POS)) == 2

    def test_stops_once_need_is_met(self, session, make_batch):
        make_batch(BloodType.A_NEG, 4, expires_in_days=1)
        untouched = make_batch(BloodType.A_NEG, 4, expires_in_days=2)

        lines = InventoryLedger(session).allocate(BloodType.A_NEG, 4, NOW)
        session.commit()

        assert len(lines) == 1
        session.refresh(untouched)
        assert untouched.version == 1

    def test_conservation_of_quantity(self, session, make_batch):
        for quantity, days in [(3, 1), (7, 3), (2, 3), (9, 12)]:
            make_batch(BloodType.O_NEG, quantity, expires_in_days=days)
        make_batch(BloodType.O_NEG, 5, expires_in_days=-1, status=BatchStatus.EXPIRED)
        before = total_quantity(session, BloodType.O_NEG)

        InventoryLedger(session).allocate(BloodType.O_NEG, 11, NOW)
        session.commit()

        assert total_quantity(session, BloodType.O_NEG) == before
        by_status: dict[BatchStatus, int] = {}
        for batch in all_batches(session, BloodType.O_NEG):
            by_status[batch.status] = by_status.get(batch.status, 0) + batch.quantity
        assert by_status[BatchStatus.USED] == 11
        assert by_status[BatchStatus.AVAILABLE] == 10
        assert by_status[BatchStatus.EXPIRED] == 5

    def test_skips_expired_batches(self, session, make_batch):
        expired = make_batch(BloodType.B_NEG, 10, expires_in_days=-1)
        fresh = make_batch(BloodType.B_NEG, 3, expires_in_days=3)

        lines = InventoryLedger(session).allocate(BloodType.B_NEG, 3, NOW)
        session.commit()

        assert [l.batch_id for l in lines] == [fresh.id]
        session.refresh(expired)
        assert expired.quantity == 10

    def test_reserve_hold(self, session, make_batch):
        batch = make_batch(BloodType.O_POS, 5, expires_in_days=3)

        lines = InventoryLedger(session).allocate(
            BloodType.O_POS, 5, NOW, hold=BatchStatus.RESERVED
        )
        session.commit()

        assert lines[0].status == BatchStatus.RESERVED
        session.refresh(batch)
        assert batch.status == BatchStatus.RESERVED

    def test_insufficient_stock_mutates_nothing(self, session, make_batch):
        make_batch(BloodType.O_NEG, 2, expires_in_days=3)
        make_batch(BloodType.O_NEG, 1, expires_in_days=6)
        before = snapshot(session, BloodType.O_NEG)

        with pytest.raises(InsufficientStockError) as exc_info:
            InventoryLedger(session).allocate(BloodType.O_NEG, 10, NOW)

        assert exc_info.value.available == 3
        assert exc_info.value.required == 10
        assert "Available: 3, Required: 10" in str(exc_info.value)
        session.rollback()
        assert snapshot(session, BloodType.O_NEG) == before

    @pytest.mark.parametrize("quantity", [0, -3])
    def test_non_positive_quantity_rejected(self, session, quantity):
        with pytest.raises(ValueError):
            InventoryLedger(session).allocate(BloodType.O_NEG, quantity, NOW)

    @pytest.mark.parametrize("hold", [BatchStatus.AVAILABLE, BatchStatus.EXPIRED])
    def test_invalid_hold_status_rejected(self, session, make_batch, hold):
        make_batch(BloodType.O_NEG, 2, expires_in_days=3)
        with pytest.raises(ValueError, match="Cannot allocate"):
            InventoryLedger(session).allocate(BloodType.O_NEG, 1, NOW, hold=hold)

    def test_concurrent_change_detected(self, session, make_batch):
        """A batch whose version moved after it was read raises a conflict."""
        batch = make_batch(BloodType.A_POS, 5, expires_in_days=3)
        ledger = InventoryLedger(session)
        rows = ledger.repository.list_allocatable(BloodType.A_POS, NOW)

        session.exec(  # type: ignore[call-overload]
            update(InventoryBatch)
            .where(InventoryBatch.id == batch.id)
            .values(version=InventoryBatch.version + 1)
            .execution_options(synchronize_session=False)
        )

        with pytest.raises(PersistenceConflictError, match="modified concurrently"):
            ledger.repository.take_whole(rows[0], BatchStatus.USED, NOW)


class TestStockSummary:
    """Tests for stock_summary."""

    def test_groups_by_type_and_status(self, session, make_batch):
        make_batch(BloodType.A_POS, 3, expires_in_days=5)
        make_batch(BloodType.A_POS, 4, expires_in_days=5)
        make_batch(BloodType.A_POS, 2, expires_in_days=5, status=BatchStatus.USED)
        make_batch(BloodType.O_NEG, 1, expires_in_days=5)

        levels = {
            (level.blood_type, level.status): level.quantity
            for level in InventoryLedger(session).stock_summary()
        }

        assert levels == {
            (BloodType.A_POS, BatchStatus.AVAILABLE): 7,
            (BloodType.A_POS, BatchStatus.USED): 2,
            (BloodType.O_NEG, BatchStatus.AVAILABLE): 1,
        }

    def test_reflects_allocation(self, session, make_batch):
        make_batch(BloodType.B_POS, 6, expires_in_days=5)
        ledger = InventoryLedger(session)
        ledger.allocate(BloodType.B_POS, 4, NOW)
        session.commit()

        levels = {(l.blood_type, l.status): l.quantity for l in ledger.stock_summary()}
        assert levels[(BloodType.B_POS, BatchStatus.AVAILABLE)] == 2
        assert levels[(BloodType.B_POS, BatchStatus.USED)] == 4


def test_expiry_filter_uses_clock_not_wall_time(session, make_batch):
    """Batches are judged against the supplied ``now``."""
    make_batch(BloodType.A_POS, 3, expires_in_days=5)
    ledger = InventoryLedger(session)

    assert ledger.available_quantity(BloodType.A_POS, NOW) == 3
    assert ledger.available_quantity(BloodType.A_POS, NOW + timedelta(days=6)) == 0
