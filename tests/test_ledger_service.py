from datetime import date, datetime, timedelta

import pytest

from app.core.exceptions import NotFoundError, ValidationFailedError
from app.models.transaction_models import PointTransaction, TransactionType
from app.services import ledger_service, points_service, table_service
from app.services.ledger_service import Provenance, TransactionFilter


async def _entry(db, table, user, points, tx_type=TransactionType.EARNED, previous=0, description=None):
    new = previous + points * tx_type.sign
    return await ledger_service.append_transaction(
        db,
        table_id=table.id,
        acting_user_id=user.id,
        points=points,
        type=tx_type,
        description=description,
        previous_points=previous,
        new_points=new,
        commit=True,
    )


class TestAppend:

    @pytest.mark.asyncio
    async def test_stores_snapshot_and_provenance(self, db_session, table, cashier):
        entry = await ledger_service.append_transaction(
            db_session,
            table_id=table.id,
            acting_user_id=cashier.id,
            points=15,
            type=TransactionType.BONUS,
            description="  Compleanno  ",
            previous_points=20,
            new_points=35,
            provenance=Provenance(user_agent="kiosk", ip_address="10.0.0.2"),
            commit=True,
        )
        assert entry.id is not None
        assert entry.description == "Compleanno"
        assert entry.points_difference == 15
        assert entry.signed_points == 15
        assert entry.user_agent == "kiosk"
        assert entry.ip_address == "10.0.0.2"
        assert entry.is_active is True

    @pytest.mark.asyncio
    async def test_default_description(self, db_session, table, cashier):
        entry = await _entry(db_session, table, cashier, 10, TransactionType.REDEEMED, previous=10)
        assert entry.description == ledger_service.DEFAULT_DESCRIPTIONS[TransactionType.REDEEMED]
        assert entry.signed_points == -10

    @pytest.mark.asyncio
    @pytest.mark.parametrize("points", [0, -5, 1001])
    async def test_points_out_of_bounds(self, db_session, table, cashier, points):
        with pytest.raises(ValidationFailedError):
            await ledger_service.append_transaction(
                db_session, table.id, cashier.id, points, TransactionType.EARNED, None, 0, points
            )

    @pytest.mark.asyncio
    async def test_accepts_ledger_maximum(self, db_session, table, cashier):
        entry = await _entry(db_session, table, cashier, 1000)
        assert entry.new_points == 1000

    @pytest.mark.asyncio
    async def test_snapshot_must_match(self, db_session, table, cashier):
        with pytest.raises(ValidationFailedError):
            await ledger_service.append_transaction(
                db_session, table.id, cashier.id, 10, TransactionType.REDEEMED, None, 20, 30
            )

    @pytest.mark.asyncio
    async def test_description_too_long(self, db_session, table, cashier):
        with pytest.raises(ValidationFailedError):
            await _entry(db_session, table, cashier, 5, description="x" * 201)


class TestQueries:

    @pytest.mark.asyncio
    async def test_history_newest_first_and_limited(self, db_session, table, cashier):
        balance = 0
        ids = []
        for points in (1, 2, 3, 4, 5):
            entry = await _entry(db_session, table, cashier, points, previous=balance)
            balance += points
            ids.append(entry.id)

        history = await ledger_service.history_for_table(db_session, table.id, limit=3)
        assert [e.id for e in history] == list(reversed(ids))[:3]

    @pytest.mark.asyncio
    async def test_history_excludes_soft_deleted(self, db_session, table, cashier):
        first = await _entry(db_session, table, cashier, 5)
        second = await _entry(db_session, table, cashier, 5, previous=5)
        await ledger_service.soft_delete_transaction(db_session, first.id)

        history = await ledger_service.history_for_table(db_session, table.id)
        assert [e.id for e in history] == [second.id]

    @pytest.mark.asyncio
    async def test_history_unknown_table_is_empty(self, db_session):
        assert await ledger_service.history_for_table(db_session, 12345) == []

    @pytest.mark.asyncio
    async def test_activity_for_user(self, db_session, table, cashier, admin):
        await _entry(db_session, table, cashier, 5)
        await _entry(db_session, table, admin, 7, previous=5)
        await _entry(db_session, table, cashier, 3, previous=12)

        entries = await ledger_service.activity_for_user(db_session, cashier.id)
        assert [e.points for e in entries] == [3, 5]
        assert all(e.assigned_by == cashier.id for e in entries)

    @pytest.mark.asyncio
    async def test_list_with_filters(self, db_session, cashier, admin):
        one = await table_service.create_table(db_session, 1)
        two = await table_service.create_table(db_session, 2)
        await _entry(db_session, one, cashier, 10)
        await _entry(db_session, one, admin, 5, TransactionType.BONUS, previous=10)
        await _entry(db_session, two, cashier, 8)
        await _entry(db_session, two, cashier, 3, TransactionType.REDEEMED, previous=8)

        total, entries = await ledger_service.list_transactions(db_session)
        assert total == 4
        assert len(entries) == 4

        total, entries = await ledger_service.list_transactions(db_session, TransactionFilter(table_id=two.id))
        assert total == 2
        assert {e.table_id for e in entries} == {two.id}

        total, entries = await ledger_service.list_transactions(
            db_session, TransactionFilter(assigned_by=cashier.id, type=TransactionType.EARNED)
        )
        assert total == 2
        assert {e.points for e in entries} == {10, 8}

        total, entries = await ledger_service.list_transactions(db_session, page=2, limit=3)
        assert total == 4
        assert len(entries) == 1

    @pytest.mark.asyncio
    async def test_get_transaction_missing(self, db_session):
        with pytest.raises(NotFoundError):
            await ledger_service.get_transaction(db_session, 77)


class TestDailyAggregate:

    @pytest.mark.asyncio
    async def test_groups_by_type_for_one_day(self, db_session, table, cashier):
        await _entry(db_session, table, cashier, 10)
        await _entry(db_session, table, cashier, 20, previous=10)
        await _entry(db_session, table, cashier, 5, TransactionType.BONUS, previous=30)
        await _entry(db_session, table, cashier, 15, TransactionType.REDEEMED, previous=35)

        yesterday = await _entry(db_session, table, cashier, 50, previous=20)
        yesterday.created_at = datetime.now() - timedelta(days=1)
        hidden = await _entry(db_session, table, cashier, 40, previous=70)
        await db_session.commit()
        await ledger_service.soft_delete_transaction(db_session, hidden.id)

        result = await ledger_service.daily_aggregate(db_session)
        summary = result["summary"]
        assert summary["date"] == date.today()
        assert summary["total_transactions"] == 4
        assert summary["total_points"] == 50
        assert summary["average_points"] == 12.5

        by_type = result["by_type"]
        assert by_type[TransactionType.EARNED] == {"count": 2, "total_points": 30, "avg_points": 15.0}
        assert by_type[TransactionType.BONUS]["count"] == 1
        assert by_type[TransactionType.REDEEMED]["total_points"] == 15
        assert TransactionType.ADJUSTMENT not in by_type

    @pytest.mark.asyncio
    async def test_day_boundaries(self, db_session, table, cashier):
        day = date(2024, 3, 10)
        inside_start = await _entry(db_session, table, cashier, 1)
        inside_start.created_at = datetime(2024, 3, 10, 0, 0, 0)
        inside_end = await _entry(db_session, table, cashier, 2, previous=1)
        inside_end.created_at = datetime(2024, 3, 10, 23, 59, 59, 999000)
        after = await _entry(db_session, table, cashier, 4, previous=3)
        after.created_at = datetime(2024, 3, 11, 0, 0, 0)
        await db_session.commit()

        result = await ledger_service.daily_aggregate(db_session, day)
        assert result["summary"]["total_transactions"] == 2
        assert result["summary"]["total_points"] == 3

    @pytest.mark.asyncio
    async def test_empty_day(self, db_session):
        result = await ledger_service.daily_aggregate(db_session, date(2020, 1, 1))
        assert result["summary"]["total_transactions"] == 0
        assert result["summary"]["average_points"] == 0
        assert result["by_type"] == {}


class TestSoftDeleteAndReconcile:

    @pytest.mark.asyncio
    async def test_soft_delete_keeps_balance(self, db_session, table, cashier_ctx):
        result = await points_service.award(db_session, table.qr_code, 30, None, cashier_ctx)
        entry_id = result["transaction"].id

        entry = await ledger_service.soft_delete_transaction(db_session, entry_id)
        assert entry.is_active is False
        await db_session.refresh(table)
        assert table.points == 30

    @pytest.mark.asyncio
    async def test_reconcile_in_sync_after_service_writes(self, db_session, table, cashier_ctx):
        await points_service.award(db_session, table.qr_code, 40, None, cashier_ctx)
        await points_service.redeem(db_session, table.qr_code, 15, None, cashier_ctx)

        report = await ledger_service.reconcile(db_session)
        assert len(report) == 1
        assert report[0]["points"] == 25
        assert report[0]["ledger_points"] == 25
        assert report[0]["in_sync"] is True

    @pytest.mark.asyncio
    async def test_reconcile_reports_drift(self, db_session, table, cashier_ctx):
        await points_service.award(db_session, table.qr_code, 10, None, cashier_ctx)
        await table_service.apply_points_delta(db_session, table.id, 7, commit=True)

        row = (await ledger_service.reconcile(db_session))[0]
        assert row["drift"] == 7
        assert row["in_sync"] is False

    @pytest.mark.asyncio
    async def test_reconcile_ignores_entries_before_reset(self, db_session, table, cashier_ctx):
        await points_service.award(db_session, table.qr_code, 50, None, cashier_ctx)
        await table_service.reset_all_points(db_session)
        await points_service.award(db_session, table.qr_code, 5, None, cashier_ctx)

        row = (await ledger_service.reconcile(db_session))[0]
        assert row["points"] == 5
        assert row["ledger_points"] == 5
        assert row["in_sync"] is True
