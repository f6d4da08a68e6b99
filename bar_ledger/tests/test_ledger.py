import pytest
from datetime import date
from decimal import Decimal
from bar_ledger.config import Config
from bar_ledger.di_init_db import insert_initial_data
from bar_ledger.ds_exceptions import NonExistentEventIdError
from bar_ledger.ledger import BarLedger
from bar_ledger.model.records import Event

EntityKind = Config.EntityKind


@pytest.fixture
async def bar(sql_remote, engine):
    """Fixture to provide a ledger on the seeded catalog with event ev1 selected"""
    await insert_initial_data(sql_remote)
    bar = BarLedger(sql_remote, engine=engine)
    assert await bar.start()
    assert await bar.login(Config.DEFAULT_ADMIN_USERNAME, Config.DEFAULT_ADMIN_PASSWORD)
    bar.select_event('ev1')
    yield bar
    await bar.sync()


class TestBarLedger:
    """End to end cases on an SQLite remote store"""

    async def test_initial_load(self, bar):
        assert len(bar.store.products) == 10
        assert len(bar.store.suppliers) == 4
        assert bar.current_event.name == 'BAR 2025'
        assert len(bar.view.sales) == 5

    async def test_summary(self, bar):
        summary = bar.summary()
        assert summary.total_revenue == Decimal('4529.20')
        assert summary.total_purchases == Decimal('8356.20')
        assert summary.total_expenses == Decimal('774.88')
        assert summary.net_result == Decimal('4529.20') - Decimal('8356.20') - Decimal('774.88')

    async def test_inventory_before_any_count(self, bar):
        """Test that without counts all revenue is attributed to the anchor"""
        report = bar.inventory(as_of=date(2025, 1, 13))
        anchor = report.anchor
        assert anchor.product.name == 'GELINHO'
        assert anchor.total_purchased_units == 55 * 240
        assert anchor.estimated_sales_units == 6516
        assert anchor.current_stock == 55 * 240 - 6516
        assert report.row_for('8').current_stock == 1080

    async def test_count_reaches_anchor_and_survives_reload(self, bar, sql_remote, engine):
        bar.count_stock('8', 1000)
        report = bar.inventory(as_of=date(2025, 1, 13))
        assert report.row_for('8').estimated_revenue == Decimal('558.40')
        assert report.anchor_revenue_target == Decimal('3970.80')
        assert report.anchor.estimated_sales_units == 5713
        await bar.sync()

        fresh = BarLedger(sql_remote, engine=engine)
        assert await fresh.start()
        assert await fresh.login(Config.DEFAULT_ADMIN_USERNAME, Config.DEFAULT_ADMIN_PASSWORD)
        fresh.select_event('ev1')
        assert fresh.view.check_for('8').current_stock == 1000
        assert fresh.inventory(as_of=date(2025, 1, 13)).anchor.estimated_sales_units == 5713

    async def test_new_event_starts_empty(self, bar):
        bar.gateway.add_event(Event(event_id='ev2', name='BAR 2026'))
        bar.select_event('ev2')
        assert bar.summary().total_revenue == Decimal('0')
        assert bar.inventory().anchor.estimated_sales_units == 0

    async def test_select_unknown_event(self, bar):
        with pytest.raises(NonExistentEventIdError):
            bar.select_event('nope')
        assert bar.current_event.event_id == 'ev1'

    async def test_delete_event_on_sqlite(self, bar, sql_remote):
        bar.gateway.delete_event('ev1')
        await bar.sync()
        assert bar.outbox.failed == []
        assert await sql_remote.table(EntityKind.SALE).list() == []
        assert await sql_remote.table(EntityKind.EVENT).list() == []


class TestReports:
    """Test cases for the pandas report frames"""

    async def test_daily_sales(self, bar):
        df = bar.daily_sales()
        assert list(df['sale_date']) == [date(2025, 1, d) for d in (8, 9, 10, 11, 13)]
        assert df.loc[0, 'total'] == pytest.approx(1056.50)
        assert df['total'].sum() == pytest.approx(4529.20)

    async def test_expense_ledger(self, bar):
        df = bar.expense_ledger()
        assert len(df) == 3
        assert df['expense_date'].is_monotonic_increasing
        assert df['amount'].sum() == pytest.approx(774.88)

    async def test_consolidated_purchases(self, bar):
        df = bar.consolidated_purchases()
        assert list(df['product_name']) == ['GELINHO', 'COCA COLA']
        assert list(df['total_packages']) == [55, 1080]
        assert list(df['avg_package_price']) == pytest.approx([83.40, 3.49])

    async def test_consolidated_purchases_of_deleted_product(self, bar):
        bar.gateway.delete_product('8')
        df = bar.consolidated_purchases()
        assert df.loc[1, 'product_name'] == Config.UNKNOWN_PRODUCT_LABEL

    async def test_inventory_frame(self, bar):
        df = bar.inventory_frame(as_of=date(2025, 1, 13))
        assert df.loc[0, 'product_name'] == 'GELINHO'
        assert bool(df.loc[0, 'is_anchor'])
        assert len(df) == 10
        assert set(df['status']) <= {s.value for s in Config.StockStatus}

    async def test_empty_frames_without_event(self, bar):
        bar.exit_event()
        assert bar.daily_sales().empty
        assert bar.expense_ledger().empty
        assert bar.consolidated_purchases().empty
