"""
Storefront Checkout Tests - Test Configuration.

Provides pytest fixtures for building domain objects and wiring the
checkout services against mocked service adapters.
"""

from decimal import Decimal
from typing import Callable
from unittest.mock import AsyncMock

import pytest

from storefront.domain.entities import (Address, AddressType, CartItem,
                                        CartSnapshot, PaymentMethod,
                                        PlacedOrder, UserProfile)
from storefront.infrastructure.address_client import AddressServiceClient
from storefront.infrastructure.cart_client import CartServiceClient
from storefront.infrastructure.order_client import OrderServiceClient
from storefront.services.address_store import AddressStore
from storefront.services.cart_service import CartService
from storefront.services.order_submitter import OrderSubmitter


@pytest.fixture
def user_profile() -> UserProfile:
    """Signed-in user."""
    return UserProfile(
        id=7,
        email="asha@example.com",
        first_name="Asha",
        last_name="Rao",
        phone="9876543210",
    )


@pytest.fixture
def make_address() -> Callable[..., Address]:
    """
    Factory for saved addresses.

    Returns:
        Callable taking an id and optional field overrides
    """

    def _make(address_id: int, **overrides) -> Address:
        values = {
            "id": address_id,
            "name": f"Recipient {address_id}",
            "phone": "9876543210",
            "line1": f"Flat {address_id}",
            "street": "MG Road",
            "city": "Bengaluru",
            "state": "Karnataka",
            "postal_code": "560001",
            "country": "India",
            "type": AddressType.HOME,
            "is_default": False,
        }
        values.update(overrides)
        return Address(**values)

    return _make


@pytest.fixture
def address_form() -> dict:
    """Valid add-address form values."""
    return {
        "name": "Asha Rao",
        "phone": "+919876543210",
        "email": "asha@example.com",
        "line1": "Flat 12",
        "street": "MG Road",
        "city": "Bengaluru",
        "state": "Karnataka",
        "postal_code": "560001",
        "country": "India",
    }


@pytest.fixture
def cart_snapshot() -> CartSnapshot:
    """Cart with 3 items worth 1000."""
    return CartSnapshot(
        id=1,
        items=(
            CartItem(id=1, product_id=101, quantity=2, unit_price=Decimal("250"),
                     product_name="Notebook"),
            CartItem(id=2, product_id=102, quantity=1, unit_price=Decimal("500"),
                     product_name="Desk Lamp"),
        ),
    )


@pytest.fixture
def placed_order() -> PlacedOrder:
    """Order confirmed by the order service."""
    return PlacedOrder(
        id=501,
        shipping_address_id=1,
        payment_method=PaymentMethod.COD,
        status="PENDING",
        grand_total=Decimal("1270"),
    )


@pytest.fixture
def address_client() -> AsyncMock:
    """Mocked address service adapter."""
    return AsyncMock(spec=AddressServiceClient)


@pytest.fixture
def cart_client(cart_snapshot: CartSnapshot) -> AsyncMock:
    """Mocked cart service adapter returning a non-empty cart."""
    client = AsyncMock(spec=CartServiceClient)
    client.get_cart.return_value = cart_snapshot
    return client


@pytest.fixture
def order_client(placed_order: PlacedOrder) -> AsyncMock:
    """Mocked order service adapter that accepts every order."""
    client = AsyncMock(spec=OrderServiceClient)
    client.place_order.return_value = placed_order
    return client


@pytest.fixture
def address_store(address_client: AsyncMock) -> AddressStore:
    return AddressStore(address_client)


@pytest.fixture
def cart_service(cart_client: AsyncMock) -> CartService:
    return CartService(cart_client)


@pytest.fixture
def submitter(order_client: AsyncMock) -> OrderSubmitter:
    return OrderSubmitter(order_client)
