import asyncio
from datetime import date
import pandas as pd
from bar_ledger.common.d_logger import Logs
from bar_ledger.config import Config
from bar_ledger.db.remote_store import SqlRemoteStore
from bar_ledger.model.records import (Event, Expense, Product, Purchase, SaleRecord, Supplier,
                                      new_user)

logger = Logs().get_logger("db")

EntityKind = Config.EntityKind


def initial_data() -> dict:
    data = {}

    data[EntityKind.EVENT] = pd.DataFrame({
        'event_id': ['ev1'],
        'name': ['BAR 2025'],
        'event_date': [date(2025, 1, 1)],
        'status': [Config.EventStatus.ACTIVE],
    })

    data[EntityKind.SUPPLIER] = pd.DataFrame({
        'supplier_id': ['sup1', 'sup2', 'sup3', 'sup4'],
        'name': ['LUIS DOCE', 'GARATINI', 'PLASFER', 'MERCADO EXTRA'],
        'contact': ['(11) 99999-9999', None, None, None],
    })

    box, package, bundle = Config.MeasureUnit.BOX, Config.MeasureUnit.PACKAGE, Config.MeasureUnit.BUNDLE
    data[EntityKind.PRODUCT] = pd.DataFrame({
        'product_id': [str(i) for i in range(1, 11)],
        'name': ['GELINHO', 'HALLS PRETO', 'HALLS MORANGO', 'TRIDENT VERDE', 'TRIDENT PRETO',
                 'MENDORATO', 'AGUA MINERAL', 'COCA COLA', 'COCA COLA ZERO', 'GUARANA ANTARTICA'],
        'category': ['Sweets'] * 5 + ['Snacks'] + ['Drinks'] * 4,
        'measure_unit': [box] * 5 + [package] + [bundle] * 4,
        'package_price': ['83.40', '26.90', '26.90', '38.90', '38.90', '42.00',
                          '1.00', '3.49', '3.99', '3.49'],
        'units_per_package': [240, 21, 21, 21, 21, 60, 1, 1, 1, 1],
        'supplier': ['LUIS DOCE'] * 6 + ['GARATINI'] * 4,
    })

    data[EntityKind.SALE] = pd.DataFrame({
        'sale_id': ['s1', 's2', 's3', 's4', 's5'],
        'sale_date': [date(2025, 1, d) for d in (8, 9, 10, 11, 13)],
        'amount_cash': ['521.50', '522.10', '433.20', '320.50', '696.90'],
        'amount_electronic': ['535.00', '504.00', '444.00', '397.50', '154.50'],
        'event_id': ['ev1'] * 5,
    })

    data[EntityKind.EXPENSE] = pd.DataFrame({
        'expense_id': ['e1', 'e2', 'e3'],
        'expense_date': [date(2025, 1, 3), date(2025, 1, 3), date(2025, 1, 5)],
        'supplier': ['PLASFER', 'PLASFER', 'MERCADO EXTRA'],
        'description': ['Cups and napkins', 'Bags (extra)', 'Cleaning supplies'],
        'amount': ['527.00', '140.00', '107.88'],
        'category': ['Materials', 'Materials', 'Cleaning'],
        'event_id': ['ev1'] * 3,
    })

    data[EntityKind.PURCHASE] = pd.DataFrame({
        'purchase_id': ['p1', 'p2'],
        'purchase_date': [date(2025, 1, 7), date(2025, 1, 7)],
        'product_id': ['1', '8'],
        'supplier_name': ['LUIS DOCE', 'GARATINI'],
        'quantity_packages': [55, 1080],
        'total_cost': ['4587.00', '3769.20'],
        'unit_cost_snapshot': ['0.347500', '3.490000'],
        'event_id': ['ev1'] * 2,
    })
    return data


RECORD_TYPES = {
    EntityKind.EVENT: Event,
    EntityKind.SUPPLIER: Supplier,
    EntityKind.PRODUCT: Product,
    EntityKind.SALE: SaleRecord,
    EntityKind.EXPENSE: Expense,
    EntityKind.PURCHASE: Purchase,
}


async def insert_initial_data(remote: SqlRemoteStore):
    admin = new_user(Config.DEFAULT_ADMIN_NAME, Config.DEFAULT_ADMIN_USERNAME,
                     Config.DEFAULT_ADMIN_PASSWORD, role=Config.UserRole.ADMIN,
                     user_id=Config.DEFAULT_ADMIN_ID)
    await remote.table(EntityKind.USER).insert(admin)

    for kind, data_df in initial_data().items():
        record_type = RECORD_TYPES[kind]
        # None instead of NaN for missing optional fields
        rows = data_df.astype(object).where(data_df.notna(), None).to_dict('records')
        for row in rows:
            await remote.table(kind).insert(record_type(**row))
        logger.debug(f"{kind.value}: inserted {len(rows)} rows")


async def main():
    remote = SqlRemoteStore()

    # Initialize db by dropping all the tables and then
    # creating them all over again.
    await remote.drop_tables()
    await remote.create_tables()

    # After creating the tables, inserting initial data
    await insert_initial_data(remote)
    await remote.db_util.dispose()


if __name__ == '__main__':
    asyncio.run(main())
