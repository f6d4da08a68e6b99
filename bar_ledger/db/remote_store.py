"""
Remote table store.

Each entity kind is persisted in one table exposing the same small contract
(list / insert / update / delete, upsert for inventory checks). The core never
waits on these calls for correctness: the mutation gateway submits them to the
outbox and any exception is logged there.
"""
from abc import ABC, abstractmethod
from dataclasses import asdict
from enum import Enum
from typing import Dict, Hashable, List, Optional

from sqlalchemy import delete, select, update
from sqlalchemy.exc import SQLAlchemyError

from bar_ledger.common.d_logger import Logs
from bar_ledger.config import Config
from bar_ledger.db.db_utils import DbUtil
from bar_ledger.db.models import (EventRow, ExpenseRow, InventoryCheckRow, ProductRow,
                                  PurchaseRow, SaleRow, SupplierRow, UserRow)
from bar_ledger.ds_exceptions import RemoteSyncError
from bar_ledger.model.records import (Event, Expense, InventoryCheck, Product, Purchase,
                                      SaleRecord, Supplier, User)

logger = Logs().get_logger("db")

EntityKind = Config.EntityKind


class RemoteTable(ABC):
    """One persisted table of the remote store"""

    kind: EntityKind

    @abstractmethod
    async def list(self) -> List:
        ...

    @abstractmethod
    async def insert(self, record) -> None:
        ...

    @abstractmethod
    async def update(self, record, key: Hashable) -> None:
        """Replace the row stored under key, raises RemoteSyncError when there is none"""
        ...

    @abstractmethod
    async def delete(self, key: Hashable) -> None:
        """Remove the row stored under key, raises RemoteSyncError when there is none"""
        ...

    async def upsert(self, record) -> None:
        raise NotImplementedError(f"{self.kind.value} does not support upsert")

    async def delete_by_event(self, event_id: str) -> int:
        raise NotImplementedError(f"{self.kind.value} is not event scoped")

    async def rename_supplier_reference(self, old_name: str, new_name: str) -> int:
        raise NotImplementedError(f"{self.kind.value} has no supplier reference")


class RemoteStore(ABC):
    """Lookup of remote tables by entity kind"""

    @abstractmethod
    def table(self, kind: EntityKind) -> RemoteTable:
        ...


def _row_values(record) -> dict:
    values = asdict(record)
    return {k: (v.value if isinstance(v, Enum) else v) for k, v in values.items()}


def _user_from_row(row: UserRow) -> User:
    return User(user_id=row.user_id, name=row.name, username=row.username,
                credential=row.credential, role=Config.UserRole(row.role))


def _event_from_row(row: EventRow) -> Event:
    return Event(event_id=row.event_id, name=row.name, event_date=row.event_date,
                 status=Config.EventStatus(row.status))


def _supplier_from_row(row: SupplierRow) -> Supplier:
    return Supplier(supplier_id=row.supplier_id, name=row.name, contact=row.contact, notes=row.notes)


def _product_from_row(row: ProductRow) -> Product:
    return Product(product_id=row.product_id, name=row.name, category=row.category,
                   measure_unit=Config.MeasureUnit(row.measure_unit),
                   package_price=row.package_price, units_per_package=row.units_per_package,
                   supplier=row.supplier)


def _purchase_from_row(row: PurchaseRow) -> Purchase:
    return Purchase(purchase_id=row.purchase_id, product_id=row.product_id,
                    supplier_name=row.supplier_name, quantity_packages=row.quantity_packages,
                    total_cost=row.total_cost, unit_cost_snapshot=row.unit_cost_snapshot,
                    purchase_date=row.purchase_date, event_id=row.event_id)


def _sale_from_row(row: SaleRow) -> SaleRecord:
    # total is recomputed from its parts, the stored column is informational
    return SaleRecord(sale_id=row.sale_id, amount_cash=row.amount_cash,
                      amount_electronic=row.amount_electronic, sale_date=row.sale_date,
                      notes=row.notes, event_id=row.event_id)


def _expense_from_row(row: ExpenseRow) -> Expense:
    return Expense(expense_id=row.expense_id, description=row.description, amount=row.amount,
                   category=row.category, supplier=row.supplier, expense_date=row.expense_date,
                   event_id=row.event_id)


def _check_from_row(row: InventoryCheckRow) -> InventoryCheck:
    return InventoryCheck(product_id=row.product_id, current_stock=row.current_stock,
                          last_updated=row.last_updated, event_id=row.event_id)


TABLE_MAP: Dict[EntityKind, tuple] = {
    EntityKind.USER: (UserRow, _user_from_row),
    EntityKind.EVENT: (EventRow, _event_from_row),
    EntityKind.SUPPLIER: (SupplierRow, _supplier_from_row),
    EntityKind.PRODUCT: (ProductRow, _product_from_row),
    EntityKind.PURCHASE: (PurchaseRow, _purchase_from_row),
    EntityKind.SALE: (SaleRow, _sale_from_row),
    EntityKind.EXPENSE: (ExpenseRow, _expense_from_row),
    EntityKind.INVENTORY_CHECK: (InventoryCheckRow, _check_from_row),
}


class SqlRemoteTable(RemoteTable):
    """RemoteTable backed by one SQLAlchemy model"""

    def __init__(self, db_util: DbUtil, kind: EntityKind):
        self.db_util = db_util
        self.kind = kind
        self.row_cls, self.from_row = TABLE_MAP[kind]

    def _fail(self, action: str, e: Exception) -> RemoteSyncError:
        logger.error(f"{self.kind.value}.{action} failed: {e}")
        return RemoteSyncError(f"{self.kind.value}.{action}: {e}")

    def _missing(self, action: str, key: Hashable) -> RemoteSyncError:
        logger.error(f"{self.kind.value}.{action}: no row for key {key}")
        return RemoteSyncError(f"{self.kind.value}.{action}: no row for key {key}")

    async def list(self) -> List:
        try:
            async with self.db_util.session() as session:
                result = await session.execute(select(self.row_cls))
                return [self.from_row(row) for row in result.scalars().all()]
        except SQLAlchemyError as e:
            raise self._fail('list', e) from e

    async def insert(self, record) -> None:
        try:
            async with self.db_util.session() as session:
                session.add(self.row_cls(**_row_values(record)))
        except SQLAlchemyError as e:
            raise self._fail('insert', e) from e

    async def update(self, record, key: Hashable) -> None:
        try:
            async with self.db_util.session() as session:
                row = await session.get(self.row_cls, key)
                if row is None:
                    raise self._missing('update', key)
                for column, value in _row_values(record).items():
                    setattr(row, column, value)
        except SQLAlchemyError as e:
            raise self._fail('update', e) from e

    async def delete(self, key: Hashable) -> None:
        try:
            async with self.db_util.session() as session:
                row = await session.get(self.row_cls, key)
                if row is None:
                    raise self._missing('delete', key)
                await session.delete(row)
        except SQLAlchemyError as e:
            raise self._fail('delete', e) from e

    async def upsert(self, record) -> None:
        if self.kind != EntityKind.INVENTORY_CHECK:
            return await super().upsert(record)
        try:
            async with self.db_util.session() as session:
                await session.merge(self.row_cls(**_row_values(record)))
        except SQLAlchemyError as e:
            raise self._fail('upsert', e) from e

    async def delete_by_event(self, event_id: str) -> int:
        if not self.kind.is_scoped:
            return await super().delete_by_event(event_id)
        try:
            async with self.db_util.session() as session:
                result = await session.execute(
                    delete(self.row_cls).where(self.row_cls.event_id == event_id)
                )
                return result.rowcount
        except SQLAlchemyError as e:
            raise self._fail('delete_by_event', e) from e

    async def rename_supplier_reference(self, old_name: str, new_name: str) -> int:
        if self.kind != EntityKind.PRODUCT:
            return await super().rename_supplier_reference(old_name, new_name)
        try:
            async with self.db_util.session() as session:
                result = await session.execute(
                    update(ProductRow).where(ProductRow.supplier == old_name).values(supplier=new_name)
                )
                return result.rowcount
        except SQLAlchemyError as e:
            raise self._fail('rename_supplier_reference', e) from e


class SqlRemoteStore(RemoteStore):
    def __init__(self, db_util: Optional[DbUtil] = None):
        self.db_util = db_util or DbUtil()
        self._tables = {kind: SqlRemoteTable(self.db_util, kind) for kind in EntityKind}

    def table(self, kind: EntityKind) -> RemoteTable:
        return self._tables[kind]

    async def create_tables(self):
        await self.db_util.create_tables()

    async def drop_tables(self):
        await self.db_util.drop_tables()
