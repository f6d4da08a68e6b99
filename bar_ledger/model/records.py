"""
Domain records held by the entity store.

Records are immutable; a mutation replaces the stored record with a new one
(``dataclasses.replace``). Transactional records carry the id of the event
that owns them, stamped by the mutation gateway.
"""
import uuid
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Optional, Tuple

from werkzeug.security import generate_password_hash

from bar_ledger.config import Config
from bar_ledger.ds_exceptions import ValidationError

ZERO = Decimal('0')


def generate_id() -> str:
    return uuid.uuid4().hex


def to_decimal(value) -> Decimal:
    if isinstance(value, Decimal):
        return value
    if value is None:
        return ZERO
    # str() keeps 0.1 as 0.1 instead of its binary float expansion
    return Decimal(str(value))


def hash_credential(secret: str) -> str:
    """Hash a plain password, whatever it looks like"""
    return generate_password_hash(secret)


@dataclass(frozen=True)
class User:
    user_id: str
    name: str
    username: str
    credential: str
    role: Config.UserRole = Config.UserRole.STANDARD

    @property
    def is_admin(self) -> bool:
        return self.role == Config.UserRole.ADMIN


@dataclass(frozen=True)
class Event:
    event_id: str
    name: str
    event_date: Optional[date] = None
    status: Config.EventStatus = Config.EventStatus.ACTIVE


@dataclass(frozen=True)
class Supplier:
    supplier_id: str
    name: str
    contact: Optional[str] = None
    notes: Optional[str] = None


@dataclass(frozen=True)
class Product:
    product_id: str
    name: str
    category: str
    measure_unit: Config.MeasureUnit
    package_price: Decimal
    units_per_package: int
    supplier: str = ''

    def __post_init__(self):
        object.__setattr__(self, 'package_price', to_decimal(self.package_price))

    @property
    def unit_cost(self) -> Decimal:
        if self.units_per_package <= 0:
            return ZERO
        return self.package_price / self.units_per_package


@dataclass(frozen=True)
class Purchase:
    purchase_id: str
    product_id: str
    supplier_name: str
    quantity_packages: int
    total_cost: Decimal
    unit_cost_snapshot: Decimal
    purchase_date: date = field(default_factory=date.today)
    event_id: Optional[str] = None

    def __post_init__(self):
        object.__setattr__(self, 'total_cost', to_decimal(self.total_cost))
        object.__setattr__(self, 'unit_cost_snapshot', to_decimal(self.unit_cost_snapshot))

    @property
    def cost_per_package(self) -> Decimal:
        if self.quantity_packages <= 0:
            return ZERO
        return self.total_cost / self.quantity_packages


@dataclass(frozen=True)
class SaleRecord:
    """Daily takings. ``total`` is always cash + electronic; leave it as None
    to have it computed, a supplied total that disagrees is rejected."""
    sale_id: str
    amount_cash: Decimal
    amount_electronic: Decimal
    total: Optional[Decimal] = None
    sale_date: date = field(default_factory=date.today)
    notes: Optional[str] = None
    event_id: Optional[str] = None

    def __post_init__(self):
        cash = to_decimal(self.amount_cash)
        electronic = to_decimal(self.amount_electronic)
        total = cash + electronic
        if self.total is not None and to_decimal(self.total) != total:
            raise ValidationError(
                f"sale {self.sale_id}: total {self.total} != cash {cash} + electronic {electronic}")
        object.__setattr__(self, 'amount_cash', cash)
        object.__setattr__(self, 'amount_electronic', electronic)
        object.__setattr__(self, 'total', total)


@dataclass(frozen=True)
class Expense:
    expense_id: str
    description: str
    amount: Decimal
    category: str = 'General'
    supplier: Optional[str] = None
    expense_date: date = field(default_factory=date.today)
    event_id: Optional[str] = None

    def __post_init__(self):
        object.__setattr__(self, 'amount', to_decimal(self.amount))


@dataclass(frozen=True)
class InventoryCheck:
    product_id: str
    current_stock: int
    last_updated: datetime = field(default_factory=datetime.now)
    event_id: Optional[str] = None

    @property
    def key(self) -> Tuple[str, Optional[str]]:
        return self.product_id, self.event_id


def new_purchase(product: Product, quantity_packages: int, cost_per_package,
                 supplier_name: Optional[str] = None, purchase_date: Optional[date] = None,
                 purchase_id: Optional[str] = None) -> Purchase:
    """Build a purchase, freezing the unit cost from the product's packaging as it is now"""
    cost_per_package = to_decimal(cost_per_package)
    if quantity_packages <= 0:
        raise ValidationError(f"quantity_packages must be positive, got {quantity_packages}")
    if cost_per_package < 0:
        raise ValidationError(f"cost_per_package must not be negative, got {cost_per_package}")
    if product.units_per_package <= 0:
        raise ValidationError(f"product {product.name} has no units per package")

    snapshot = (cost_per_package / product.units_per_package).quantize(Config.UNIT_COST_PLACES)
    return Purchase(
        purchase_id=purchase_id or generate_id(),
        product_id=product.product_id,
        supplier_name=(supplier_name or product.supplier).upper(),
        quantity_packages=quantity_packages,
        total_cost=cost_per_package * quantity_packages,
        unit_cost_snapshot=snapshot,
        purchase_date=purchase_date or date.today(),
    )


def new_user(name: str, username: str, password: str,
             role: Config.UserRole = Config.UserRole.STANDARD,
             user_id: Optional[str] = None) -> User:
    if not username or not password:
        raise ValidationError("username and password are required")
    return User(
        user_id=user_id or generate_id(),
        name=name,
        username=username,
        credential=hash_credential(password),
        role=role,
    )
