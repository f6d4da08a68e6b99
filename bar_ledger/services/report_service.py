"""
Tabular views for the presentation layer, as pandas DataFrames.

Money columns are floats here; the Decimal values stay in the records and the
summaries.
"""
import pandas as pd

from bar_ledger.model.entity_store import ScopedView
from bar_ledger.services.inventory_service import InventoryReport

INVENTORY_COLUMNS = [
    'product_id', 'product_name', 'is_anchor', 'purchased_units', 'purchased_cost',
    'current_stock', 'estimated_sales_units', 'estimated_revenue',
    'average_daily_sales', 'days_remaining', 'status',
]
SALES_COLUMNS = ['sale_id', 'sale_date', 'amount_cash', 'amount_electronic', 'total']
EXPENSE_COLUMNS = ['expense_id', 'expense_date', 'description', 'category', 'supplier', 'amount']
CONSOLIDATED_COLUMNS = ['product_id', 'product_name', 'total_packages', 'total_cost', 'avg_package_price']


def inventory_frame(report: InventoryReport) -> pd.DataFrame:
    rows = [{
        'product_id': r.product.product_id,
        'product_name': r.product.name,
        'is_anchor': r.is_anchor,
        'purchased_units': r.total_purchased_units,
        'purchased_cost': float(r.total_purchased_cost),
        'current_stock': r.current_stock,
        'estimated_sales_units': r.estimated_sales_units,
        'estimated_revenue': round(float(r.estimated_revenue), 2),
        'average_daily_sales': round(float(r.average_daily_sales), 2),
        'days_remaining': round(float(r.days_remaining), 2),
        'status': r.status.value,
    } for r in report.rows]
    return pd.DataFrame(rows, columns=INVENTORY_COLUMNS)


def daily_sales_frame(view: ScopedView) -> pd.DataFrame:
    """Sales of the event, oldest day first"""
    df = pd.DataFrame([{
        'sale_id': s.sale_id,
        'sale_date': s.sale_date,
        'amount_cash': float(s.amount_cash),
        'amount_electronic': float(s.amount_electronic),
        'total': float(s.total),
    } for s in view.sales], columns=SALES_COLUMNS)
    return df.sort_values('sale_date', kind='stable').reset_index(drop=True)


def expense_frame(view: ScopedView) -> pd.DataFrame:
    df = pd.DataFrame([{
        'expense_id': e.expense_id,
        'expense_date': e.expense_date,
        'description': e.description,
        'category': e.category,
        'supplier': e.supplier,
        'amount': float(e.amount),
    } for e in view.expenses], columns=EXPENSE_COLUMNS)
    return df.sort_values('expense_date', kind='stable').reset_index(drop=True)


def consolidated_purchases_frame(view: ScopedView) -> pd.DataFrame:
    """Purchases per product: packages, cost and average package price, costliest first"""
    df = pd.DataFrame([{
        'product_id': p.product_id,
        'quantity_packages': p.quantity_packages,
        'total_cost': float(p.total_cost),
    } for p in view.purchases], columns=['product_id', 'quantity_packages', 'total_cost'])
    if df.empty:
        return pd.DataFrame(columns=CONSOLIDATED_COLUMNS)

    grouped = df.groupby('product_id', as_index=False).agg(
        total_packages=('quantity_packages', 'sum'),
        total_cost=('total_cost', 'sum'),
    )
    grouped = grouped[grouped['total_cost'] > 0].copy()
    grouped['avg_package_price'] = (grouped['total_cost'] / grouped['total_packages']).round(2)
    grouped['product_name'] = grouped['product_id'].map(view.product_name)
    grouped = grouped.sort_values('total_cost', ascending=False, kind='stable')
    return grouped[CONSOLIDATED_COLUMNS].reset_index(drop=True)
