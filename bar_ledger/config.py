# config.py
import os
from decimal import Decimal
from enum import Enum
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


def _build_db_url() -> str:
    if os.getenv('DB_URL'):
        return os.getenv('DB_URL')
    if os.getenv('DB_HOST'):
        return (f"postgresql+asyncpg://{os.getenv('DB_USER')}:{os.getenv('DB_PASSWORD')}"
                f"@{os.getenv('DB_HOST')}:{os.getenv('DB_PORT', '5432')}/{os.getenv('DB_NAME')}")
    return "sqlite+aiosqlite:///bar_ledger.sqlite3"


class Config:
    # Determine if running in test mode
    TEST_MODE = os.getenv('TEST_MODE', 'false').lower() == 'true'

    # Database configuration
    DB_URL = os.getenv('TEST_DB_URL', "sqlite+aiosqlite:///:memory:") if TEST_MODE else _build_db_url()
    DB_ECHO = os.getenv('DB_ECHO', 'false').lower() == 'true'

    # Logging
    LOG_DIR = os.getenv('LOG_DIR', 'logs')
    CONSOLE_LOG_LEVEL = os.getenv('CONSOLE_LOG_LEVEL', 'INFO').upper()

    # Inventory inference
    ANCHOR_PRODUCT_NAME = os.getenv('ANCHOR_PRODUCT_NAME', 'GELINHO')
    MARKUP_MULTIPLIER = Decimal(os.getenv('MARKUP_MULTIPLIER', '2'))
    LOW_STOCK_SOLD_RATIO = Decimal(os.getenv('LOW_STOCK_SOLD_RATIO', '0.8'))
    STATUS_POLICY = os.getenv('STATUS_POLICY', 'sold_ratio')
    CRITICAL_DAYS = int(os.getenv('CRITICAL_DAYS', '2'))
    LOW_DAYS = int(os.getenv('LOW_DAYS', '5'))
    OVERSTOCK_DAYS = int(os.getenv('OVERSTOCK_DAYS', '30'))
    DAYS_REMAINING_CAP = 999

    # Money
    UNIT_COST_PLACES = Decimal('0.000001')

    # Default administrator seeded into an empty user table
    DEFAULT_ADMIN_ID = os.getenv('DEFAULT_ADMIN_ID', 'u1')
    DEFAULT_ADMIN_NAME = os.getenv('DEFAULT_ADMIN_NAME', 'Administrador')
    DEFAULT_ADMIN_USERNAME = os.getenv('DEFAULT_ADMIN_USERNAME', 'admin')
    DEFAULT_ADMIN_PASSWORD = os.getenv('DEFAULT_ADMIN_PASSWORD', 'admin123')

    UNKNOWN_PRODUCT_LABEL = 'Unknown product'

    # User roles
    class UserRole(Enum):
        ADMIN = 'admin'
        STANDARD = 'standard'

    class EventStatus(Enum):
        ACTIVE = 'active'
        ARCHIVED = 'archived'

    class MeasureUnit(Enum):
        BOX = 'box'
        PACKAGE = 'package'
        BUNDLE = 'bundle'
        KILOGRAM = 'kilogram'
        UNIT = 'unit'

    class StockStatus(Enum):
        CRITICAL = 'Critical'
        LOW = 'Low'
        GOOD = 'Good'
        OVERSTOCK = 'Overstock'

    # Entity kinds, one remote table each
    class EntityKind(Enum):
        USER = 'users'
        EVENT = 'events'
        PRODUCT = 'products'
        SUPPLIER = 'suppliers'
        SALE = 'sales'
        EXPENSE = 'expenses'
        PURCHASE = 'purchases'
        INVENTORY_CHECK = 'inventory_checks'

        @property
        def is_scoped(self) -> bool:
            return self in (Config.EntityKind.SALE, Config.EntityKind.EXPENSE,
                            Config.EntityKind.PURCHASE, Config.EntityKind.INVENTORY_CHECK)
