from decimal import Decimal
from bar_ledger.model.entity_store import EntityStore
from bar_ledger.services.finance_service import FinancialSummary, summarize, total_revenue
from bar_ledger.model.records import SaleRecord


class TestFinancialSummary:
    """Test cases for the per-event money figures"""

    async def test_summary_of_current_event(self, event_ledger, catalog):
        event_ledger.record_sale('521.50', '535.00')
        event_ledger.record_sale('522.10', '504.00')
        event_ledger.record_purchase('1', 55, '83.40')
        event_ledger.record_expense('Cups and napkins', '527.00')
        event_ledger.record_expense('Cleaning supplies', '107.88')

        summary = event_ledger.summary()
        assert summary.total_revenue == Decimal('2082.60')
        assert summary.total_purchases == Decimal('4587.00')
        assert summary.total_expenses == Decimal('634.88')
        assert summary.net_result == Decimal('2082.60') - Decimal('4587.00') - Decimal('634.88')

    async def test_other_event_is_empty(self, event_ledger):
        event_ledger.record_sale('100', '0')
        event_ledger.select_event('E2')
        assert event_ledger.summary() == FinancialSummary()

    def test_no_event_is_all_zero(self):
        summary = summarize(EntityStore().scope(None))
        assert summary.total_revenue == Decimal('0')
        assert summary.total_purchases == Decimal('0')
        assert summary.total_expenses == Decimal('0')
        assert summary.net_result == Decimal('0')

    def test_revenue_is_exact(self):
        """Test that cents add up without float drift"""
        sales = [SaleRecord(sale_id=str(i), amount_cash='0.10', amount_electronic='0.20') for i in range(10)]
        assert total_revenue(sales) == Decimal('3.00')
