from datetime import datetime
from sqlalchemy import Column, Integer, Numeric, String, Text, Date, DateTime, ForeignKey
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class UserRow(Base):
    __tablename__ = 'users'

    user_id = Column(String(64), primary_key=True)
    name = Column(Text, nullable=False, default='')
    username = Column(Text, nullable=False, unique=True)
    credential = Column(String, nullable=False)
    role = Column(String(16), nullable=False, default='standard')


class EventRow(Base):
    __tablename__ = 'events'

    event_id = Column(String(64), primary_key=True)
    name = Column(Text, nullable=False)
    event_date = Column(Date)
    status = Column(String(16), nullable=False, default='active')


class SupplierRow(Base):
    __tablename__ = 'suppliers'

    supplier_id = Column(String(64), primary_key=True)
    name = Column(Text, nullable=False)
    contact = Column(Text)
    notes = Column(Text)


class ProductRow(Base):
    __tablename__ = 'products'

    product_id = Column(String(64), primary_key=True)
    name = Column(Text, nullable=False)
    category = Column(Text, nullable=False, default='')
    measure_unit = Column(String(16), nullable=False)
    package_price = Column(Numeric(12, 2), nullable=False)
    units_per_package = Column(Integer, nullable=False)
    # denormalized supplier name, not a foreign key
    supplier = Column(Text, nullable=False, default='')


class PurchaseRow(Base):
    __tablename__ = 'purchases'

    purchase_id = Column(String(64), primary_key=True)
    event_id = Column(String(64), ForeignKey('events.event_id', ondelete='CASCADE'), nullable=False)
    purchase_date = Column(Date, nullable=False)
    product_id = Column(String(64), nullable=False)
    supplier_name = Column(Text, nullable=False, default='')
    quantity_packages = Column(Integer, nullable=False)
    total_cost = Column(Numeric(12, 2), nullable=False)
    unit_cost_snapshot = Column(Numeric(18, 6), nullable=False)


class SaleRow(Base):
    __tablename__ = 'sales'

    sale_id = Column(String(64), primary_key=True)
    event_id = Column(String(64), ForeignKey('events.event_id', ondelete='CASCADE'), nullable=False)
    sale_date = Column(Date, nullable=False)
    amount_cash = Column(Numeric(12, 2), nullable=False, default=0)
    amount_electronic = Column(Numeric(12, 2), nullable=False, default=0)
    total = Column(Numeric(12, 2), nullable=False)
    notes = Column(Text)


class ExpenseRow(Base):
    __tablename__ = 'expenses'

    expense_id = Column(String(64), primary_key=True)
    event_id = Column(String(64), ForeignKey('events.event_id', ondelete='CASCADE'), nullable=False)
    expense_date = Column(Date, nullable=False)
    supplier = Column(Text)
    description = Column(Text, nullable=False)
    amount = Column(Numeric(12, 2), nullable=False)
    category = Column(Text, nullable=False, default='General')


class InventoryCheckRow(Base):
    __tablename__ = 'inventory_checks'

    # one live count per (product, event)
    product_id = Column(String(64), primary_key=True)
    event_id = Column(String(64), ForeignKey('events.event_id', ondelete='CASCADE'), primary_key=True)
    current_stock = Column(Integer, nullable=False)
    last_updated = Column(DateTime, nullable=False, default=datetime.now)
