"""
Single path for every create/update/delete.

Each operation validates first (raising before anything changes), applies the
change to the entity store synchronously and then submits the matching remote
call to the outbox. A failed remote call is logged by the outbox and the
optimistic local state stays as it is.

Scoped records (purchases, sales, expenses, stock counts) are stamped with the
session's current event. Without a current event a scoped call does nothing
and returns None.
"""
from dataclasses import replace
from datetime import date
from typing import Hashable, Optional

from bar_ledger.common.d_logger import Logs
from bar_ledger.config import Config
from bar_ledger.db.remote_store import RemoteStore
from bar_ledger.ds_exceptions import (NonExistentRecordError, PermissionDeniedError,
                                      ValidationError)
from bar_ledger.model.entity_store import EntityStore, record_key
from bar_ledger.model.records import (ZERO, Event, Expense, InventoryCheck, Product, Purchase,
                                      SaleRecord, Supplier, User, hash_credential)
from bar_ledger.services.inventory_service import matches_anchor
from bar_ledger.services.outbox import Outbox
from bar_ledger.services.session_service import Session

logger = Logs().get_logger("main")

EntityKind = Config.EntityKind


class MutationGateway:
    def __init__(self, store: EntityStore, session: Session, outbox: Outbox, remote: RemoteStore,
                 anchor_marker: str = Config.ANCHOR_PRODUCT_NAME):
        self.store = store
        self.session = session
        self.outbox = outbox
        self.remote = remote
        self.anchor_marker = anchor_marker

    # Plumbing
    def _sync(self, kind: EntityKind, action: str, *args):
        table = self.remote.table(kind)
        self.outbox.submit(f"{kind.value}.{action}", lambda: getattr(table, action)(*args))

    def _require_admin(self, action: str):
        if not self.session.is_admin:
            raise PermissionDeniedError(f"{action} requires an administrator")

    def _current_event(self, action: str) -> Optional[str]:
        if not self.session.has_event:
            logger.warning(f"{action} ignored: no event selected")
            return None
        return self.session.current_event_id

    def _existing(self, kind: EntityKind, key: Hashable):
        record = self.store.get(kind, key)
        if record is None:
            raise NonExistentRecordError(f"{kind.value}: no record with key {key}")
        return record

    def _put_global(self, kind: EntityKind, record, is_new: bool):
        self.store.put(kind, record)
        if is_new:
            self._sync(kind, 'insert', record)
        else:
            self._sync(kind, 'update', record, record_key(kind, record))
        logger.debug(f"{kind.value}: {'added' if is_new else 'updated'} {record_key(kind, record)}")
        return record

    def _delete_global(self, kind: EntityKind, key: Hashable):
        record = self._existing(kind, key)
        self.store.remove(kind, key)
        self._sync(kind, 'delete', key)
        logger.debug(f"{kind.value}: deleted {key}")
        return record

    def _add_scoped(self, kind: EntityKind, record, action: str):
        event_id = self._current_event(action)
        if event_id is None:
            return None
        stamped = replace(record, event_id=event_id)
        if kind != EntityKind.INVENTORY_CHECK and self.store.contains(kind, record_key(kind, stamped)):
            raise ValidationError(f"{kind.value}: duplicate key {record_key(kind, stamped)}")
        self.store.put(kind, stamped)
        self._sync(kind, 'upsert' if kind == EntityKind.INVENTORY_CHECK else 'insert', stamped)
        logger.debug(f"{kind.value}: {action} in event {event_id}")
        return stamped

    def _scoped_existing(self, kind: EntityKind, key: Hashable, event_id: str, action: str):
        existing = self.store.get(kind, key)
        if existing is None or existing.event_id != event_id:
            logger.warning(f"{action} ignored: {key} is not part of event {event_id}")
            return None
        return existing

    def _update_scoped(self, kind: EntityKind, record, action: str, **frozen_fields):
        event_id = self._current_event(action)
        if event_id is None:
            return None
        stamped = replace(record, event_id=event_id)
        key = record_key(kind, stamped)
        existing = self._scoped_existing(kind, key, event_id, action)
        if existing is None:
            return None
        if frozen_fields:
            stamped = replace(stamped, **{f: getattr(existing, f) for f in frozen_fields})
        self.store.put(kind, stamped)
        self._sync(kind, 'update', stamped, key)
        return stamped

    def _delete_scoped(self, kind: EntityKind, key: Hashable, action: str):
        event_id = self._current_event(action)
        if event_id is None:
            return None
        if self._scoped_existing(kind, key, event_id, action) is None:
            return None
        removed = self.store.remove(kind, key)
        self._sync(kind, 'delete', key)
        return removed

    # Products
    def _validate_product(self, product: Product) -> Product:
        if not product.name or not product.name.strip():
            raise ValidationError("product name is required")
        if product.units_per_package <= 0:
            raise ValidationError(f"units_per_package must be positive, got {product.units_per_package}")
        if product.package_price < 0:
            raise ValidationError(f"package_price must not be negative, got {product.package_price}")
        product = replace(product, name=product.name.strip().upper(),
                          supplier=(product.supplier or '').strip().upper())
        if matches_anchor(product.name, self.anchor_marker):
            clash = [p for p in self.store.products
                     if p.product_id != product.product_id and matches_anchor(p.name, self.anchor_marker)]
            if clash:
                raise ValidationError(f"{product.name} would be a second match for the anchor "
                                      f"marker {self.anchor_marker} (already {clash[0].name})")
        return product

    def add_product(self, product: Product) -> Product:
        self._require_admin("add product")
        product = self._validate_product(product)
        if self.store.contains(EntityKind.PRODUCT, product.product_id):
            raise ValidationError(f"product {product.product_id} already exists")
        return self._put_global(EntityKind.PRODUCT, product, is_new=True)

    def update_product(self, product: Product) -> Product:
        self._require_admin("update product")
        self._existing(EntityKind.PRODUCT, product.product_id)
        product = self._validate_product(product)
        return self._put_global(EntityKind.PRODUCT, product, is_new=False)

    def delete_product(self, product_id: str) -> Product:
        # purchases that reference it stay and show as an unknown product
        self._require_admin("delete product")
        return self._delete_global(EntityKind.PRODUCT, product_id)

    # Suppliers
    def _validate_supplier(self, supplier: Supplier) -> Supplier:
        if not supplier.name or not supplier.name.strip():
            raise ValidationError("supplier name is required")
        return replace(supplier, name=supplier.name.strip().upper())

    def add_supplier(self, supplier: Supplier) -> Supplier:
        self._require_admin("add supplier")
        supplier = self._validate_supplier(supplier)
        if self.store.contains(EntityKind.SUPPLIER, supplier.supplier_id):
            raise ValidationError(f"supplier {supplier.supplier_id} already exists")
        return self._put_global(EntityKind.SUPPLIER, supplier, is_new=True)

    def update_supplier(self, supplier: Supplier) -> Supplier:
        """Update a supplier; a rename is pushed to every product that used the old name"""
        self._require_admin("update supplier")
        old = self._existing(EntityKind.SUPPLIER, supplier.supplier_id)
        supplier = self._validate_supplier(supplier)
        self._put_global(EntityKind.SUPPLIER, supplier, is_new=False)
        if old.name != supplier.name:
            renamed = self.store.rename_supplier_reference(old.name, supplier.name)
            self._sync(EntityKind.PRODUCT, 'rename_supplier_reference', old.name, supplier.name)
            logger.info(f"supplier {old.name} renamed to {supplier.name}, "
                        f"{len(renamed)} products updated")
        return supplier

    def delete_supplier(self, supplier_id: str) -> Supplier:
        # products keep the name as plain text
        self._require_admin("delete supplier")
        return self._delete_global(EntityKind.SUPPLIER, supplier_id)

    # Users
    def _validate_user(self, user: User) -> User:
        if not user.username or not user.credential:
            raise ValidationError("username and credential are required")
        taken = self.store.find_user_by_username(user.username)
        if taken is not None and taken.user_id != user.user_id:
            raise ValidationError(f"username {user.username} already exists")
        return user

    def add_user(self, user: User) -> User:
        """Add a user built by new_user, which already hashed its password"""
        self._require_admin("add user")
        user = self._validate_user(user)
        if self.store.contains(EntityKind.USER, user.user_id):
            raise ValidationError(f"user {user.user_id} already exists")
        return self._put_global(EntityKind.USER, user, is_new=True)

    def update_user(self, user: User) -> User:
        """Admins edit anyone; a standard user may edit their own name and password"""
        current = self.session.current_user
        is_self = current is not None and current.user_id == user.user_id
        if not (self.session.is_admin or is_self):
            raise PermissionDeniedError("update user requires an administrator")
        old = self._existing(EntityKind.USER, user.user_id)
        if not self.session.is_admin and old.role != user.role:
            raise PermissionDeniedError("only an administrator can change roles")
        user = self._validate_user(user)
        if user.credential != old.credential:
            # anything but the stored hash is a new plain password
            user = replace(user, credential=hash_credential(user.credential))
        self._put_global(EntityKind.USER, user, is_new=False)
        self.session.refresh_user(user)
        return user

    def delete_user(self, user_id: str) -> User:
        self._require_admin("delete user")
        if self.session.current_user.user_id == user_id:
            raise ValidationError("the logged-in user cannot delete themselves")
        if len(self.store.users) <= 1:
            raise ValidationError("the last user cannot be deleted")
        return self._delete_global(EntityKind.USER, user_id)

    # Events
    def _validate_event(self, event: Event) -> Event:
        if not event.name or not event.name.strip():
            raise ValidationError("event name is required")
        if event.event_date is None:
            event = replace(event, event_date=date.today())
        return replace(event, name=event.name.strip())

    def add_event(self, event: Event) -> Event:
        self._require_admin("add event")
        event = self._validate_event(event)
        if self.store.contains(EntityKind.EVENT, event.event_id):
            raise ValidationError(f"event {event.event_id} already exists")
        return self._put_global(EntityKind.EVENT, event, is_new=True)

    def update_event(self, event: Event) -> Event:
        self._require_admin("update event")
        self._existing(EntityKind.EVENT, event.event_id)
        return self._put_global(EntityKind.EVENT, self._validate_event(event), is_new=False)

    def delete_event(self, event_id: str) -> Event:
        """Delete an event together with every record it owns"""
        self._require_admin("delete event")
        event = self._existing(EntityKind.EVENT, event_id)
        self.store.remove(EntityKind.EVENT, event_id)
        removed = self.store.remove_event_records(event_id)
        if self.session.current_event_id == event_id:
            self.session.exit_event()

        async def cascade():
            # children first so a foreign key on event_id never blocks the event row
            for kind in removed:
                await self.remote.table(kind).delete_by_event(event_id)
            await self.remote.table(EntityKind.EVENT).delete(event_id)

        self.outbox.submit(f"events.delete({event_id})", cascade)
        logger.info(f"event {event_id} deleted with "
                    + ", ".join(f"{n} {kind.value}" for kind, n in removed.items()))
        return event

    # Purchases
    def _validate_purchase(self, purchase: Purchase) -> Purchase:
        if purchase.quantity_packages <= 0:
            raise ValidationError(f"quantity_packages must be positive, got {purchase.quantity_packages}")
        if purchase.total_cost < 0:
            raise ValidationError(f"total_cost must not be negative, got {purchase.total_cost}")
        if not self.store.contains(EntityKind.PRODUCT, purchase.product_id):
            raise ValidationError(f"unknown product {purchase.product_id}")
        return replace(purchase, supplier_name=(purchase.supplier_name or '').upper())

    def add_purchase(self, purchase: Purchase) -> Optional[Purchase]:
        return self._add_scoped(EntityKind.PURCHASE, self._validate_purchase(purchase), "add purchase")

    def update_purchase(self, purchase: Purchase) -> Optional[Purchase]:
        """Update a purchase; its product and unit cost snapshot stay the ones recorded at creation"""
        existing = self.store.get(EntityKind.PURCHASE, purchase.purchase_id)
        if existing is not None and existing.product_id != purchase.product_id:
            raise ValidationError(f"purchase {purchase.purchase_id} belongs to product {existing.product_id}, "
                                  f"delete it and record a new one for {purchase.product_id}")
        return self._update_scoped(EntityKind.PURCHASE, self._validate_purchase(purchase),
                                   "update purchase", unit_cost_snapshot=True)

    def delete_purchase(self, purchase_id: str) -> Optional[Purchase]:
        return self._delete_scoped(EntityKind.PURCHASE, purchase_id, "delete purchase")

    # Sales
    def _validate_sale(self, sale: SaleRecord) -> SaleRecord:
        if sale.amount_cash < 0 or sale.amount_electronic < 0:
            raise ValidationError("sale amounts must not be negative")
        if sale.total == ZERO:
            raise ValidationError("a sale needs a cash or electronic amount")
        return sale

    def add_sale(self, sale: SaleRecord) -> Optional[SaleRecord]:
        return self._add_scoped(EntityKind.SALE, self._validate_sale(sale), "add sale")

    def update_sale(self, sale: SaleRecord) -> Optional[SaleRecord]:
        return self._update_scoped(EntityKind.SALE, self._validate_sale(sale), "update sale")

    def delete_sale(self, sale_id: str) -> Optional[SaleRecord]:
        return self._delete_scoped(EntityKind.SALE, sale_id, "delete sale")

    # Expenses
    def _validate_expense(self, expense: Expense) -> Expense:
        if not expense.description or not expense.description.strip():
            raise ValidationError("expense description is required")
        if expense.amount <= 0:
            raise ValidationError(f"expense amount must be positive, got {expense.amount}")
        return expense

    def add_expense(self, expense: Expense) -> Optional[Expense]:
        return self._add_scoped(EntityKind.EXPENSE, self._validate_expense(expense), "add expense")

    def update_expense(self, expense: Expense) -> Optional[Expense]:
        return self._update_scoped(EntityKind.EXPENSE, self._validate_expense(expense), "update expense")

    def delete_expense(self, expense_id: str) -> Optional[Expense]:
        return self._delete_scoped(EntityKind.EXPENSE, expense_id, "delete expense")

    # Stock counts
    def set_stock_count(self, check: InventoryCheck) -> Optional[InventoryCheck]:
        """Record a physical count; replaces any earlier count of the product in this event"""
        if check.current_stock < 0:
            raise ValidationError(f"counted stock must not be negative, got {check.current_stock}")
        product = self.store.get(EntityKind.PRODUCT, check.product_id)
        if product is None:
            raise ValidationError(f"unknown product {check.product_id}")
        if matches_anchor(product.name, self.anchor_marker):
            raise ValidationError(f"{product.name} stock is inferred from revenue, it cannot be counted")
        return self._add_scoped(EntityKind.INVENTORY_CHECK, check, "set stock count")

    def delete_stock_count(self, product_id: str) -> Optional[InventoryCheck]:
        event_id = self.session.current_event_id
        return self._delete_scoped(EntityKind.INVENTORY_CHECK, (product_id, event_id), "delete stock count")
