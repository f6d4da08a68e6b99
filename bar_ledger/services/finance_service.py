from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable

from bar_ledger.model.entity_store import ScopedView
from bar_ledger.model.records import ZERO, Expense, Purchase, SaleRecord


@dataclass(frozen=True)
class FinancialSummary:
    total_revenue: Decimal = ZERO
    total_purchases: Decimal = ZERO
    total_expenses: Decimal = ZERO

    @property
    def net_result(self) -> Decimal:
        return self.total_revenue - self.total_purchases - self.total_expenses


def total_revenue(sales: Iterable[SaleRecord]) -> Decimal:
    return sum((s.total for s in sales), ZERO)


def total_purchases(purchases: Iterable[Purchase]) -> Decimal:
    return sum((p.total_cost for p in purchases), ZERO)


def total_expenses(expenses: Iterable[Expense]) -> Decimal:
    return sum((e.amount for e in expenses), ZERO)


def summarize(view: ScopedView) -> FinancialSummary:
    """Revenue, purchases, expenses and net result of one event, recomputed on every call"""
    return FinancialSummary(
        total_revenue=total_revenue(view.sales),
        total_purchases=total_purchases(view.purchases),
        total_expenses=total_expenses(view.expenses),
    )
