import pytest
from dataclasses import replace
from datetime import date, datetime
from decimal import Decimal
from bar_ledger.config import Config
from bar_ledger.ds_exceptions import RemoteSyncError
from bar_ledger.model.records import (Event, Expense, InventoryCheck, SaleRecord, Supplier,
                                      new_purchase, new_user)
from conftest import make_product

EntityKind = Config.EntityKind


@pytest.fixture
async def seeded(sql_remote):
    """Fixture to provide a database with one event, a product and a few records"""
    await sql_remote.table(EntityKind.EVENT).insert(Event(event_id='E1', name='BAR 2025', event_date=date(2025, 1, 1)))
    await sql_remote.table(EntityKind.EVENT).insert(Event(event_id='E2', name='BAR 2026', event_date=date(2026, 1, 1)))
    product = make_product('1', 'GELINHO', '83.40', 240)
    await sql_remote.table(EntityKind.PRODUCT).insert(product)
    await sql_remote.table(EntityKind.SALE).insert(
        SaleRecord(sale_id='s1', amount_cash='521.50', amount_electronic='535.00',
                   sale_date=date(2025, 1, 8), event_id='E1'))
    await sql_remote.table(EntityKind.SALE).insert(
        SaleRecord(sale_id='s2', amount_cash='10', amount_electronic='0',
                   sale_date=date(2026, 1, 8), event_id='E2'))
    purchase = replace(new_purchase(product, 55, '83.40', purchase_date=date(2025, 1, 7),
                                    purchase_id='p1'), event_id='E1')
    await sql_remote.table(EntityKind.PURCHASE).insert(purchase)
    return sql_remote


class TestSqlRemoteStore:
    """Test cases for the SQLAlchemy backed remote tables"""

    async def test_records_come_back_equal(self, seeded):
        """Test that enums, dates and Decimals survive a write and a read"""
        products = await seeded.table(EntityKind.PRODUCT).list()
        assert products == [make_product('1', 'GELINHO', '83.40', 240)]

        sales = {s.sale_id: s for s in await seeded.table(EntityKind.SALE).list()}
        assert sales['s1'].total == Decimal('1056.50')
        assert sales['s1'].sale_date == date(2025, 1, 8)

        purchase = (await seeded.table(EntityKind.PURCHASE).list())[0]
        assert purchase.unit_cost_snapshot == Decimal('0.3475')
        assert purchase.total_cost == Decimal('4587.00')

    async def test_users_keep_role_and_hash(self, sql_remote):
        user = new_user('Admin', 'admin', 'admin123', role=Config.UserRole.ADMIN, user_id='u1')
        await sql_remote.table(EntityKind.USER).insert(user)
        assert await sql_remote.table(EntityKind.USER).list() == [user]

    async def test_update_and_delete(self, seeded):
        table = seeded.table(EntityKind.SALE)
        sale = SaleRecord(sale_id='s1', amount_cash='600', amount_electronic='535.00',
                          sale_date=date(2025, 1, 8), event_id='E1')
        await table.update(sale, 's1')
        with pytest.raises(RemoteSyncError):
            await table.update(replace(sale, sale_id='nope'), 'nope')

        sales = {s.sale_id: s for s in await table.list()}
        assert sales['s1'].total == Decimal('1135.00')

        await table.delete('s1')
        with pytest.raises(RemoteSyncError):
            await table.delete('s1')
        assert [s.sale_id for s in await table.list()] == ['s2']

    async def test_inventory_check_upsert(self, seeded):
        """Test that a second count of the same product and event replaces the first"""
        table = seeded.table(EntityKind.INVENTORY_CHECK)
        stamp = datetime(2025, 1, 9, 12, 0)
        await table.upsert(InventoryCheck(product_id='2', current_stock=10, last_updated=stamp, event_id='E1'))
        await table.upsert(InventoryCheck(product_id='2', current_stock=7, last_updated=stamp, event_id='E1'))
        await table.upsert(InventoryCheck(product_id='2', current_stock=3, last_updated=stamp, event_id='E2'))

        checks = {c.key: c.current_stock for c in await table.list()}
        assert checks == {('2', 'E1'): 7, ('2', 'E2'): 3}

    async def test_upsert_only_for_inventory_checks(self, seeded):
        with pytest.raises(NotImplementedError):
            await seeded.table(EntityKind.SALE).upsert(
                SaleRecord(sale_id='s9', amount_cash='1', amount_electronic='0', event_id='E1'))

    async def test_delete_by_event(self, seeded):
        assert await seeded.table(EntityKind.SALE).delete_by_event('E1') == 1
        assert await seeded.table(EntityKind.PURCHASE).delete_by_event('E1') == 1
        assert [s.sale_id for s in await seeded.table(EntityKind.SALE).list()] == ['s2']
        with pytest.raises(NotImplementedError):
            await seeded.table(EntityKind.PRODUCT).delete_by_event('E1')

    async def test_rename_supplier_reference(self, seeded):
        await seeded.table(EntityKind.SUPPLIER).insert(Supplier(supplier_id='sup1', name='LUIS DOCE'))
        await seeded.table(EntityKind.PRODUCT).insert(make_product('2', 'HALLS PRETO', '26.90', 21, supplier='ACME'))

        assert await seeded.table(EntityKind.PRODUCT).rename_supplier_reference('LUIS DOCE', 'LUIS DOCE LTDA') == 1
        suppliers = {p.product_id: p.supplier for p in await seeded.table(EntityKind.PRODUCT).list()}
        assert suppliers == {'1': 'LUIS DOCE LTDA', '2': 'ACME'}

    async def test_expense_optional_fields(self, seeded):
        expense = Expense(expense_id='x1', description='Ice', amount='12.50', supplier=None,
                          expense_date=date(2025, 1, 3), event_id='E1')
        await seeded.table(EntityKind.EXPENSE).insert(expense)
        assert await seeded.table(EntityKind.EXPENSE).list() == [expense]
