"""
Storefront Checkout Package.

This package provides the checkout workflow of the storefront client.
It includes the address book store, cart mirror, order submission and the
checkout session state machine, built on async HTTP adapters for the
address, cart and order services.
"""

__version__ = "1.0.0"
__description__ = "Checkout orchestration client for the storefront"

# Export main components
from .config import settings
from .context import StorefrontContext
from .domain.entities import (Address, AddressType, CartItem, CartSnapshot,
                              CheckoutPhase, PaymentMethod, PlacedOrder,
                              Totals, UserProfile, calculate_totals)
from .exceptions import ErrorKind, StorefrontException
from .helpers import format_price
from .services import AddressStore, CartService, CheckoutSession, OrderSubmitter

__all__ = [
    "Address",
    "AddressStore",
    "AddressType",
    "CartItem",
    "CartService",
    "CartSnapshot",
    "CheckoutPhase",
    "CheckoutSession",
    "ErrorKind",
    "OrderSubmitter",
    "PaymentMethod",
    "PlacedOrder",
    "StorefrontContext",
    "StorefrontException",
    "Totals",
    "UserProfile",
    "calculate_totals",
    "format_price",
    "settings",
    "__version__",
]
