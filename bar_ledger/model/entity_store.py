from dataclasses import replace
from typing import Dict, Hashable, Iterable, List, Optional, Tuple

from bar_ledger.common.d_logger import Logs
from bar_ledger.config import Config
from bar_ledger.model.records import (Event, Expense, InventoryCheck, Product, Purchase,
                                      SaleRecord, Supplier, User)

logger = Logs().get_logger("main")

EntityKind = Config.EntityKind


def record_key(kind: EntityKind, record) -> Hashable:
    """Primary key of a record inside its collection"""
    if kind == EntityKind.INVENTORY_CHECK:
        return record.key
    return getattr(record, KEY_FIELDS[kind])


KEY_FIELDS = {
    EntityKind.USER: 'user_id',
    EntityKind.EVENT: 'event_id',
    EntityKind.PRODUCT: 'product_id',
    EntityKind.SUPPLIER: 'supplier_id',
    EntityKind.SALE: 'sale_id',
    EntityKind.EXPENSE: 'expense_id',
    EntityKind.PURCHASE: 'purchase_id',
}


class ScopedView:
    """Read-only slice of the store for one event.

    Every attribute access filters the full collections again; nothing is
    cached and nothing is mutated. With no event every scoped collection is
    empty.
    """

    def __init__(self, store: 'EntityStore', event_id: Optional[str]):
        self._store = store
        self.event_id = event_id

    def _filter(self, kind: EntityKind) -> List:
        if self.event_id is None:
            return []
        return [r for r in self._store.all(kind) if r.event_id == self.event_id]

    @property
    def purchases(self) -> List[Purchase]:
        return self._filter(EntityKind.PURCHASE)

    @property
    def sales(self) -> List[SaleRecord]:
        return self._filter(EntityKind.SALE)

    @property
    def expenses(self) -> List[Expense]:
        return self._filter(EntityKind.EXPENSE)

    @property
    def inventory_checks(self) -> List[InventoryCheck]:
        return self._filter(EntityKind.INVENTORY_CHECK)

    # Global collections are visible from every scope
    @property
    def products(self) -> List[Product]:
        return self._store.all(EntityKind.PRODUCT)

    def product(self, product_id: str) -> Optional[Product]:
        return self._store.get(EntityKind.PRODUCT, product_id)

    def product_name(self, product_id: str) -> str:
        return self._store.product_name(product_id)

    def check_for(self, product_id: str) -> Optional[InventoryCheck]:
        if self.event_id is None:
            return None
        return self._store.get(EntityKind.INVENTORY_CHECK, (product_id, self.event_id))


class EntityStore:
    """In-memory holder of every collection, unfiltered"""

    def __init__(self):
        self._collections: Dict[EntityKind, Dict[Hashable, object]] = {
            kind: {} for kind in EntityKind
        }

    def all(self, kind: EntityKind) -> List:
        return list(self._collections[kind].values())

    def get(self, kind: EntityKind, key: Hashable):
        return self._collections[kind].get(key)

    def contains(self, kind: EntityKind, key: Hashable) -> bool:
        return key in self._collections[kind]

    def put(self, kind: EntityKind, record) -> None:
        """Insert or replace a record under its key"""
        self._collections[kind][record_key(kind, record)] = record

    def remove(self, kind: EntityKind, key: Hashable):
        return self._collections[kind].pop(key, None)

    def replace_all(self, kind: EntityKind, records: Iterable) -> None:
        self._collections[kind] = {record_key(kind, r): r for r in records}
        logger.debug(f"{kind.value}: loaded {len(self._collections[kind])} records")

    def remove_event_records(self, event_id: str) -> Dict[EntityKind, int]:
        """Drop every scoped record owned by the event, returns removed counts per kind"""
        removed = {}
        for kind in EntityKind:
            if not kind.is_scoped:
                continue
            keys = [k for k, r in self._collections[kind].items() if r.event_id == event_id]
            for key in keys:
                del self._collections[kind][key]
            removed[kind] = len(keys)
        return removed

    def rename_supplier_reference(self, old_name: str, new_name: str) -> List[Product]:
        """Point every product that references old_name at new_name in one pass"""
        products = self._collections[EntityKind.PRODUCT]
        renamed = []
        for key, product in products.items():
            if product.supplier == old_name:
                products[key] = replace(product, supplier=new_name)
                renamed.append(products[key])
        return renamed

    def find_user_by_username(self, username: str) -> Optional[User]:
        return next((u for u in self.all(EntityKind.USER) if u.username == username), None)

    def product_name(self, product_id: str) -> str:
        product = self.get(EntityKind.PRODUCT, product_id)
        return product.name if product else Config.UNKNOWN_PRODUCT_LABEL

    def scope(self, event_id: Optional[str]) -> ScopedView:
        return ScopedView(self, event_id)

    @property
    def users(self) -> List[User]:
        return self.all(EntityKind.USER)

    @property
    def events(self) -> List[Event]:
        return self.all(EntityKind.EVENT)

    @property
    def products(self) -> List[Product]:
        return self.all(EntityKind.PRODUCT)

    @property
    def suppliers(self) -> List[Supplier]:
        return self.all(EntityKind.SUPPLIER)

    def counts(self) -> Tuple[Tuple[str, int], ...]:
        return tuple((kind.value, len(self._collections[kind])) for kind in EntityKind)
