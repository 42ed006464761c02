"""
Domain entities for the checkout workflow.

Core business objects representing addresses, cart snapshots and placed
orders. These entities are framework-agnostic and use one canonical field
set; wire-format translation happens in the infrastructure layer.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional, Tuple

# Fixed checkout pricing policy
SHIPPING_FEE = Decimal("90")
TAX_RATE = Decimal("0.18")


class AddressType(str, Enum):
    """Category tag of a saved address."""

    HOME = "HOME"
    OFFICE = "OFFICE"
    OTHER = "OTHER"


class PaymentMethod(str, Enum):
    """Payment method labels accepted at checkout."""

    COD = "COD"
    UPI = "UPI"
    CREDIT_CARD = "CREDIT_CARD"
    DEBIT_CARD = "DEBIT_CARD"
    NET_BANKING = "NET_BANKING"

    @property
    def label(self) -> str:
        """Display name for the payment method."""
        return _PAYMENT_LABELS[self]


_PAYMENT_LABELS = {
    PaymentMethod.COD: "Cash on Delivery",
    PaymentMethod.UPI: "UPI Payment",
    PaymentMethod.CREDIT_CARD: "Credit Card",
    PaymentMethod.DEBIT_CARD: "Debit Card",
    PaymentMethod.NET_BANKING: "Net Banking",
}


class CheckoutPhase(str, Enum):
    """Lifecycle phases of a checkout session."""

    LOADING = "loading"
    READY = "ready"
    SUBMITTING = "submitting"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass(frozen=True)
class UserProfile:
    """Profile fields of the authenticated user, used for form prefill."""

    id: int
    email: str
    first_name: str = ""
    last_name: str = ""
    phone: Optional[str] = None

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


@dataclass(frozen=True)
class Address:
    """
    Saved shipping address.

    Immutable; default-flag changes produce a new instance through
    ``with_default`` so the address store can swap entries atomically.
    """

    id: int
    name: str
    phone: str
    line1: str
    street: str
    city: str
    state: str
    postal_code: str
    country: str
    email: Optional[str] = None
    line2: Optional[str] = None
    landmark: Optional[str] = None
    type: AddressType = AddressType.HOME
    is_default: bool = False

    def with_default(self, is_default: bool) -> "Address":
        """Return a copy with the default flag set to ``is_default``."""
        if self.is_default == is_default:
            return self
        return replace(self, is_default=is_default)

    @property
    def summary(self) -> str:
        """Single-line rendering used in address pickers."""
        return f"{self.street}, {self.city}, {self.state} {self.postal_code}"


@dataclass(frozen=True)
class CartItem:
    """One line of the cart."""

    id: int
    product_id: int
    quantity: int
    unit_price: Decimal
    product_name: str = "Unknown Product"
    image_url: Optional[str] = None

    def __post_init__(self):
        """Validate line item on creation."""
        if self.quantity < 0:
            raise ValueError(f"Quantity cannot be negative: {self.quantity}")
        if self.unit_price < 0:
            raise ValueError(f"Unit price cannot be negative: {self.unit_price}")

    @property
    def line_total(self) -> Decimal:
        return self.unit_price * self.quantity


@dataclass(frozen=True)
class CartSnapshot:
    """
    Point-in-time view of the user's cart.

    Aggregates are derived from the items so that ``total_price`` always
    equals the sum of ``quantity * unit_price``.
    """

    id: int = 0
    items: Tuple[CartItem, ...] = ()
    fetched_at: Optional[datetime] = None

    @classmethod
    def empty(cls, fetched_at: Optional[datetime] = None) -> "CartSnapshot":
        return cls(id=0, items=(), fetched_at=fetched_at)

    @property
    def total_items(self) -> int:
        return sum(item.quantity for item in self.items)

    @property
    def total_price(self) -> Decimal:
        return sum((item.line_total for item in self.items), Decimal("0"))

    @property
    def is_empty(self) -> bool:
        return not self.items


@dataclass(frozen=True)
class Totals:
    """Order summary amounts shown before placing an order."""

    subtotal: Decimal
    shipping: Decimal
    tax: Decimal
    total: Decimal


def calculate_totals(snapshot: CartSnapshot) -> Totals:
    """
    Compute the order summary for a cart snapshot.

    Flat shipping fee when the cart has items, flat 18% tax on the subtotal.

    Args:
        snapshot: Cart snapshot to price

    Returns:
        Totals with subtotal, shipping, tax and grand total

    Examples:
        A cart with 3 items worth 1000 yields shipping 90, tax 180, total 1270.
    """
    subtotal = snapshot.total_price
    shipping = SHIPPING_FEE if snapshot.total_items > 0 else Decimal("0")
    tax = subtotal * TAX_RATE
    return Totals(
        subtotal=subtotal,
        shipping=shipping,
        tax=tax,
        total=subtotal + shipping + tax,
    )


@dataclass(frozen=True)
class OrderItem:
    """Priced line of a placed order."""

    product_id: int
    quantity: int
    price: Decimal
    product_name: Optional[str] = None


@dataclass(frozen=True)
class PlacedOrder:
    """Order confirmed by the order service."""

    id: int
    shipping_address_id: Optional[int]
    payment_method: Optional[PaymentMethod]
    items: Tuple[OrderItem, ...] = field(default_factory=tuple)
    status: Optional[str] = None
    grand_total: Optional[Decimal] = None
    placed_at: Optional[datetime] = None
