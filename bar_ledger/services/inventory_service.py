"""
Inventory inference.

Ordinary products take their stock from the event's physical count (or the
full purchased quantity until counted). The anchor product, the one product
whose sales are never tallied, gets its consumption back-calculated from the
revenue left over once every ordinary product's estimated revenue has been
accounted for:

    target    = max(0, total revenue - ordinary estimated revenue)
    sold      = floor(target / anchor unit sell price)
    stock     = purchased - sold            (may go negative, not clamped)

A negative anchor stock means the counts of the other products overstate what
they sold.
"""
import math
from abc import ABC, abstractmethod
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Dict, Iterable, List, Optional

from bar_ledger.common.d_logger import Logs
from bar_ledger.config import Config
from bar_ledger.ds_exceptions import AmbiguousAnchorError, ValidationError
from bar_ledger.model.entity_store import ScopedView
from bar_ledger.model.records import ZERO, Product, Purchase
from bar_ledger.services.finance_service import total_revenue

logger = Logs().get_logger("main")

StockStatus = Config.StockStatus


def matches_anchor(name: str, marker: str) -> bool:
    return bool(marker) and marker.upper() in (name or '').upper()


class StatusPolicy(ABC):
    """Stock status of an ordinary product. An engine runs exactly one policy."""

    name = ''

    @abstractmethod
    def classify(self, purchased_units: int, current_stock: int, sold_units: int,
                 days_remaining: Decimal) -> StockStatus:
        ...


class SoldRatioPolicy(StatusPolicy):
    """Critical when nothing is left, Low once more than the ratio of the purchase is sold"""

    name = 'sold_ratio'

    def __init__(self, low_ratio: Decimal = Config.LOW_STOCK_SOLD_RATIO):
        self.low_ratio = low_ratio

    def classify(self, purchased_units, current_stock, sold_units, days_remaining):
        if current_stock == 0:
            return StockStatus.CRITICAL
        if purchased_units > 0 and Decimal(sold_units) / purchased_units > self.low_ratio:
            return StockStatus.LOW
        return StockStatus.GOOD


class DaysRemainingPolicy(StatusPolicy):
    """Classifies on how many days the stock lasts at the average daily sales rate"""

    name = 'days_remaining'

    def __init__(self, critical_days: int = Config.CRITICAL_DAYS, low_days: int = Config.LOW_DAYS,
                 overstock_days: int = Config.OVERSTOCK_DAYS):
        self.critical_days = critical_days
        self.low_days = low_days
        self.overstock_days = overstock_days

    def classify(self, purchased_units, current_stock, sold_units, days_remaining):
        if days_remaining < self.critical_days:
            return StockStatus.CRITICAL
        if days_remaining < self.low_days:
            return StockStatus.LOW
        if days_remaining > self.overstock_days:
            return StockStatus.OVERSTOCK
        return StockStatus.GOOD


POLICIES = {
    SoldRatioPolicy.name: SoldRatioPolicy,
    DaysRemainingPolicy.name: DaysRemainingPolicy,
}


def policy_from_config(name: str = None) -> StatusPolicy:
    name = name or Config.STATUS_POLICY
    if name not in POLICIES:
        raise ValidationError(f"unknown status policy {name}, expected one of {sorted(POLICIES)}")
    return POLICIES[name]()


@dataclass(frozen=True)
class InventoryRow:
    product: Product
    is_anchor: bool
    total_purchased_units: int
    total_purchased_cost: Decimal
    current_stock: int
    estimated_sales_units: int
    unit_sell_price: Decimal
    estimated_revenue: Decimal
    average_daily_sales: Decimal
    days_remaining: Decimal
    status: StockStatus
    counted: bool = False


@dataclass(frozen=True)
class InventoryReport:
    rows: List[InventoryRow] = field(default_factory=list)
    total_real_revenue: Decimal = ZERO
    others_revenue: Decimal = ZERO
    anchor_revenue_target: Decimal = ZERO

    @property
    def anchor(self) -> Optional[InventoryRow]:
        return next((r for r in self.rows if r.is_anchor), None)

    @property
    def estimated_revenue(self) -> Decimal:
        return sum((r.estimated_revenue for r in self.rows), ZERO)

    def row_for(self, product_id: str) -> Optional[InventoryRow]:
        return next((r for r in self.rows if r.product.product_id == product_id), None)


class InventoryEngine:
    def __init__(self, anchor_marker: str = Config.ANCHOR_PRODUCT_NAME,
                 markup_multiplier: Decimal = Config.MARKUP_MULTIPLIER,
                 status_policy: StatusPolicy = None):
        self.anchor_marker = anchor_marker
        self.markup_multiplier = Decimal(markup_multiplier)
        self.status_policy = status_policy or policy_from_config()

    def find_anchor(self, products: Iterable[Product]) -> Optional[Product]:
        """The single product matching the anchor marker, None when no product matches"""
        matches = [p for p in products if matches_anchor(p.name, self.anchor_marker)]
        if len(matches) > 1:
            names = ', '.join(sorted(p.name for p in matches))
            raise AmbiguousAnchorError(
                f"anchor marker {self.anchor_marker} matches {len(matches)} products: {names}")
        return matches[0] if matches else None

    def unit_sell_price(self, product: Product) -> Decimal:
        return product.unit_cost * self.markup_multiplier

    def compute(self, view: ScopedView, as_of: Optional[date] = None) -> InventoryReport:
        as_of = as_of or date.today()
        products = sorted(view.products, key=lambda p: p.name)
        anchor = self.find_anchor(products)

        by_product: Dict[str, List[Purchase]] = defaultdict(list)
        for purchase in view.purchases:
            by_product[purchase.product_id].append(purchase)

        rows = []
        others_revenue = ZERO
        for product in products:
            if anchor is not None and product.product_id == anchor.product_id:
                continue
            row = self._ordinary_row(product, by_product[product.product_id], view, as_of)
            others_revenue += row.estimated_revenue
            rows.append(row)

        real_revenue = total_revenue(view.sales)
        target = max(ZERO, real_revenue - others_revenue)
        if anchor is not None:
            rows.insert(0, self._anchor_row(anchor, by_product[anchor.product_id], target, as_of))

        logger.debug(f"inventory for event {view.event_id}: revenue {real_revenue}, "
                     f"others {others_revenue}, anchor target {target}")
        return InventoryReport(rows=rows, total_real_revenue=real_revenue,
                               others_revenue=others_revenue, anchor_revenue_target=target)

    def _purchased(self, product: Product, purchases: List[Purchase]):
        units = sum(p.quantity_packages * product.units_per_package for p in purchases)
        cost = sum((p.total_cost for p in purchases), ZERO)
        return units, cost

    def _daily_rate(self, purchases: List[Purchase], sold_units: int, current_stock: int,
                    as_of: date):
        if not purchases:
            days_elapsed = 0
        else:
            first = min(p.purchase_date for p in purchases)
            days_elapsed = max(1, (as_of - first).days)
        average = Decimal(sold_units) / days_elapsed if days_elapsed else ZERO
        cap = Decimal(Config.DAYS_REMAINING_CAP)
        if current_stock <= 0:
            days_remaining = ZERO
        elif average <= 0:
            days_remaining = cap
        else:
            days_remaining = min(cap, Decimal(current_stock) / average)
        return average, days_remaining

    def _ordinary_row(self, product: Product, purchases: List[Purchase], view: ScopedView,
                      as_of: date) -> InventoryRow:
        units, cost = self._purchased(product, purchases)
        check = view.check_for(product.product_id)
        current_stock = check.current_stock if check else units
        sold = max(0, units - current_stock)
        price = self.unit_sell_price(product)
        average, days_remaining = self._daily_rate(purchases, sold, current_stock, as_of)
        return InventoryRow(
            product=product,
            is_anchor=False,
            total_purchased_units=units,
            total_purchased_cost=cost,
            current_stock=current_stock,
            estimated_sales_units=sold,
            unit_sell_price=price,
            estimated_revenue=price * sold,
            average_daily_sales=average,
            days_remaining=days_remaining,
            status=self.status_policy.classify(units, current_stock, sold, days_remaining),
            counted=check is not None,
        )

    def _anchor_row(self, product: Product, purchases: List[Purchase], target: Decimal,
                    as_of: date) -> InventoryRow:
        units, cost = self._purchased(product, purchases)
        price = self.unit_sell_price(product)
        sold = math.floor(target / price) if price > 0 else 0
        current_stock = units - sold
        average, days_remaining = self._daily_rate(purchases, sold, current_stock, as_of)
        return InventoryRow(
            product=product,
            is_anchor=True,
            total_purchased_units=units,
            total_purchased_cost=cost,
            current_stock=current_stock,
            estimated_sales_units=sold,
            unit_sell_price=price,
            estimated_revenue=price * sold,
            average_daily_sales=average,
            days_remaining=days_remaining,
            status=StockStatus.CRITICAL if current_stock <= 0 else StockStatus.GOOD,
        )
