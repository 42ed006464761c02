"""
Service layer - checkout workflow built on the backend service adapters.
"""

from .address_store import AddressStore
from .cart_service import CartService
from .checkout_session import CheckoutSession, pick_default_address
from .order_submitter import OrderSubmitter, classify_rejection

__all__ = [
    "AddressStore",
    "CartService",
    "CheckoutSession",
    "OrderSubmitter",
    "classify_rejection",
    "pick_default_address",
]
