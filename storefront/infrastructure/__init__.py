"""
Infrastructure layer - HTTP adapters for the storefront backend services.
"""

from .address_client import AddressServiceClient
from .api_client import ApiClient
from .cart_client import CartServiceClient
from .order_client import OrderServiceClient

__all__ = [
    "ApiClient",
    "AddressServiceClient",
    "CartServiceClient",
    "OrderServiceClient",
]
