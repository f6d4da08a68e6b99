import pytest
from dataclasses import replace
from datetime import date
from decimal import Decimal
from bar_ledger.config import Config
from bar_ledger.db.db_utils import DbUtil
from bar_ledger.db.remote_store import RemoteStore, RemoteTable, SqlRemoteStore
from bar_ledger.ds_exceptions import RemoteSyncError
from bar_ledger.ledger import BarLedger
from bar_ledger.model.entity_store import record_key
from bar_ledger.model.records import Event, Product, Supplier
from bar_ledger.services.inventory_service import InventoryEngine, SoldRatioPolicy

EntityKind = Config.EntityKind

TEST_DB_URL = "sqlite+aiosqlite:///:memory:"


class FakeTable(RemoteTable):
    """Dict backed table that records calls and fails on demand"""

    def __init__(self, remote: 'FakeRemoteStore', kind):
        self.remote = remote
        self.kind = kind
        self.rows = {}

    async def list(self):
        self.remote.check(self.kind, 'list')
        return list(self.rows.values())

    async def insert(self, record):
        self.remote.check(self.kind, 'insert')
        self.rows[record_key(self.kind, record)] = record

    async def update(self, record, key):
        self.remote.check(self.kind, 'update')
        if key not in self.rows:
            raise RemoteSyncError(f"{self.kind.value}.update: no row for key {key}")
        self.rows[key] = record

    async def delete(self, key):
        self.remote.check(self.kind, 'delete')
        if self.rows.pop(key, None) is None:
            raise RemoteSyncError(f"{self.kind.value}.delete: no row for key {key}")

    async def upsert(self, record):
        self.remote.check(self.kind, 'upsert')
        self.rows[record_key(self.kind, record)] = record

    async def delete_by_event(self, event_id):
        self.remote.check(self.kind, 'delete_by_event')
        keys = [k for k, r in self.rows.items() if r.event_id == event_id]
        for key in keys:
            del self.rows[key]
        return len(keys)

    async def rename_supplier_reference(self, old_name, new_name):
        self.remote.check(self.kind, 'rename_supplier_reference')
        count = 0
        for key, product in list(self.rows.items()):
            if product.supplier == old_name:
                self.rows[key] = replace(product, supplier=new_name)
                count += 1
        return count


class FakeRemoteStore(RemoteStore):
    def __init__(self):
        self.tables = {kind: FakeTable(self, kind) for kind in EntityKind}
        self.calls = []
        self.failing = set()

    def table(self, kind):
        return self.tables[kind]

    def fail(self, *kinds):
        self.failing.update(kinds or tuple(EntityKind))

    def heal(self):
        self.failing.clear()

    def check(self, kind, action):
        self.calls.append((kind, action))
        if kind in self.failing:
            raise RemoteSyncError(f"{kind.value}.{action}: connection refused")

    def rows(self, kind):
        return self.tables[kind].rows


def make_product(product_id, name, package_price, units_per_package, supplier='LUIS DOCE',
                 measure_unit=Config.MeasureUnit.BOX, category='Sweets'):
    return Product(product_id=product_id, name=name, category=category, measure_unit=measure_unit,
                   package_price=Decimal(package_price), units_per_package=units_per_package,
                   supplier=supplier)


@pytest.fixture
def fake_remote():
    """Fixture to provide an in-memory remote store"""
    return FakeRemoteStore()


@pytest.fixture
async def sql_remote():
    """Fixture to provide a remote store on an in-memory SQLite database"""
    remote = SqlRemoteStore(DbUtil(TEST_DB_URL))
    await remote.create_tables()
    yield remote
    await remote.drop_tables()
    await remote.db_util.dispose()


@pytest.fixture
def engine():
    return InventoryEngine(anchor_marker='GELINHO', markup_multiplier=Decimal('2'),
                           status_policy=SoldRatioPolicy(Decimal('0.8')))


@pytest.fixture
async def ledger(fake_remote, engine):
    """Fixture to provide a started ledger with the seeded admin logged in"""
    ledger = BarLedger(fake_remote, engine=engine)
    await ledger.start()
    assert await ledger.login(Config.DEFAULT_ADMIN_USERNAME, Config.DEFAULT_ADMIN_PASSWORD)
    yield ledger
    await ledger.sync()


@pytest.fixture
async def event_ledger(ledger):
    """Fixture to provide a ledger with event E1 (and an empty E2) and E1 selected"""
    ledger.gateway.add_event(Event(event_id='E1', name='BAR 2025', event_date=date(2025, 1, 1)))
    ledger.gateway.add_event(Event(event_id='E2', name='BAR 2026', event_date=date(2026, 1, 1)))
    ledger.select_event('E1')
    await ledger.sync()
    return ledger


@pytest.fixture
def catalog(ledger):
    """Fixture to provide the anchor product and two ordinary products"""
    gw = ledger.gateway
    gw.add_supplier(Supplier(supplier_id='sup1', name='LUIS DOCE'))
    gw.add_supplier(Supplier(supplier_id='sup2', name='GARATINI'))
    return {
        'anchor': gw.add_product(make_product('1', 'GELINHO', '83.40', 240)),
        'halls': gw.add_product(make_product('2', 'HALLS PRETO', '26.90', 21)),
        'coca': gw.add_product(make_product('8', 'COCA COLA', '3.49', 1, supplier='GARATINI',
                                            measure_unit=Config.MeasureUnit.BUNDLE,
                                            category='Drinks')),
    }
