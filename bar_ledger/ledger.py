"""
BarLedger wires the core together and is what the presentation layer talks to.

CRUD on every entity kind goes through ``ledger.gateway``; the record_*
helpers build scoped records for the current event. Derived views
(scoped collections, summary, inventory, report frames) are recomputed on
every call.
"""
from datetime import date, datetime
from typing import Optional

import pandas as pd

from bar_ledger.common.d_logger import Logs
from bar_ledger.config import Config
from bar_ledger.db.remote_store import RemoteStore
from bar_ledger.ds_exceptions import NonExistentEventIdError, ValidationError
from bar_ledger.model.entity_store import EntityStore, ScopedView
from bar_ledger.model.records import (Event, Expense, InventoryCheck, Purchase, SaleRecord,
                                      generate_id, new_purchase)
from bar_ledger.services import report_service
from bar_ledger.services.auth_service import Authenticator
from bar_ledger.services.data_service import DataService
from bar_ledger.services.finance_service import FinancialSummary, summarize
from bar_ledger.services.inventory_service import InventoryEngine, InventoryReport
from bar_ledger.services.mutation_gateway import MutationGateway
from bar_ledger.services.outbox import Outbox
from bar_ledger.services.session_service import Session

logger = Logs().get_logger("main")


class BarLedger:
    def __init__(self, remote: RemoteStore, engine: InventoryEngine = None):
        self.remote = remote
        self.store = EntityStore()
        self.session = Session()
        self.outbox = Outbox()
        self.engine = engine or InventoryEngine()
        self.gateway = MutationGateway(self.store, self.session, self.outbox, remote,
                                       anchor_marker=self.engine.anchor_marker)
        self.data_service = DataService(self.store, remote)
        self.authenticator = Authenticator(self.store, remote)

    async def start(self) -> bool:
        return await self.data_service.load_all()

    # Session
    async def login(self, username: str, secret: str) -> bool:
        user = await self.authenticator.authenticate(username, secret)
        if user is None:
            return False
        self.session.login(user)
        return True

    def logout(self):
        self.session.logout()

    def select_event(self, event_id: str) -> Event:
        event = self.store.get(Config.EntityKind.EVENT, event_id)
        if event is None:
            raise NonExistentEventIdError(f"no event {event_id}")
        self.session.select_event(event)
        return event

    def exit_event(self):
        self.session.exit_event()

    @property
    def current_event(self) -> Optional[Event]:
        if self.session.current_event_id is None:
            return None
        return self.store.get(Config.EntityKind.EVENT, self.session.current_event_id)

    # Derived views
    @property
    def view(self) -> ScopedView:
        return self.store.scope(self.session.current_event_id)

    def summary(self) -> FinancialSummary:
        return summarize(self.view)

    def inventory(self, as_of: Optional[date] = None) -> InventoryReport:
        return self.engine.compute(self.view, as_of=as_of)

    def inventory_frame(self, as_of: Optional[date] = None) -> pd.DataFrame:
        return report_service.inventory_frame(self.inventory(as_of))

    def daily_sales(self) -> pd.DataFrame:
        return report_service.daily_sales_frame(self.view)

    def expense_ledger(self) -> pd.DataFrame:
        return report_service.expense_frame(self.view)

    def consolidated_purchases(self) -> pd.DataFrame:
        return report_service.consolidated_purchases_frame(self.view)

    # Transaction helpers bound to the current event
    def record_sale(self, amount_cash, amount_electronic, sale_date: Optional[date] = None,
                    notes: Optional[str] = None) -> Optional[SaleRecord]:
        sale = SaleRecord(sale_id=generate_id(), amount_cash=amount_cash,
                          amount_electronic=amount_electronic,
                          sale_date=sale_date or date.today(), notes=notes)
        return self.gateway.add_sale(sale)

    def record_purchase(self, product_id: str, quantity_packages: int, cost_per_package,
                        supplier_name: Optional[str] = None,
                        purchase_date: Optional[date] = None) -> Optional[Purchase]:
        product = self.store.get(Config.EntityKind.PRODUCT, product_id)
        if product is None:
            raise ValidationError(f"unknown product {product_id}")
        purchase = new_purchase(product, quantity_packages, cost_per_package,
                                supplier_name=supplier_name, purchase_date=purchase_date)
        return self.gateway.add_purchase(purchase)

    def record_expense(self, description: str, amount, category: str = 'General',
                       supplier: Optional[str] = None,
                       expense_date: Optional[date] = None) -> Optional[Expense]:
        expense = Expense(expense_id=generate_id(), description=description, amount=amount,
                          category=category, supplier=supplier,
                          expense_date=expense_date or date.today())
        return self.gateway.add_expense(expense)

    def count_stock(self, product_id: str, current_stock: int) -> Optional[InventoryCheck]:
        check = InventoryCheck(product_id=product_id, current_stock=current_stock,
                               last_updated=datetime.now())
        return self.gateway.set_stock_count(check)

    # Remote synchronization
    async def sync(self):
        """Wait until every submitted remote call has finished"""
        await self.outbox.drain()

    async def retry_failed_sync(self) -> int:
        return await self.outbox.retry_failed()

    def discard_failed_sync(self) -> int:
        """Give up on the failed remote calls; their local changes stay local until a resync"""
        return len(self.outbox.discard_failed())

    async def resync(self) -> bool:
        """Replay failed remote calls, then reload everything from the remote store.

        While a call still fails nothing is reloaded and False is returned; the
        local change it carries stays until it is sent or discarded.
        """
        still_failing = await self.outbox.retry_failed()
        if still_failing:
            logger.warning(f"resync skipped: {still_failing} remote call(s) still failing, "
                           f"retry or discard them first")
            return False
        return await self.data_service.resync()
