"""
Wire schemas for the storefront backend services.

The services answer with two naming conventions for several address fields
(``name``/``recipientName``, ``postalCode``/``zipCode``,
``isDefault``/``defaultAddress`` ...). These models accept either spelling
and convert to the canonical domain entities, so the rest of the client
never sees the drift.
"""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional, Type, TypeVar

from pydantic import (AliasChoices, BaseModel, ConfigDict, Field,
                      ValidationError, field_validator)

from ..domain.entities import (Address, AddressType, CartItem, CartSnapshot,
                               OrderItem, PaymentMethod, PlacedOrder)
from ..exceptions import InvalidResponseException
from ..models import AddressCreate, AddressUpdate

PayloadT = TypeVar("PayloadT", bound=BaseModel)


def parse_payload(service: str, model: Type[PayloadT], data: Any) -> PayloadT:
    """
    Validate a response body against its wire schema.

    Raises:
        InvalidResponseException: If the body does not match the schema
    """
    try:
        return model.model_validate(data)
    except ValidationError as error:
        fields = sorted(
            {".".join(str(part) for part in item["loc"]) or "body" for item in error.errors()}
        )
        raise InvalidResponseException(
            service,
            f"{model.__name__} failed validation",
            details={"fields": fields},
        ) from error


class AddressPayload(BaseModel):
    """Address as returned by the address service."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: int
    name: str = Field("", validation_alias=AliasChoices("recipientName", "name"))
    phone: str = Field("", validation_alias=AliasChoices("recipientPhone", "phone"))
    email: Optional[str] = Field(
        None, validation_alias=AliasChoices("recipientEmail", "email")
    )
    line1: str = Field("", validation_alias=AliasChoices("addressLine1", "line1"))
    line2: Optional[str] = Field(
        None, validation_alias=AliasChoices("addressLine2", "line2")
    )
    street: str = ""
    city: str = ""
    state: str = ""
    postal_code: str = Field(
        "", validation_alias=AliasChoices("postalCode", "zipCode", "postal_code")
    )
    country: str = ""
    landmark: Optional[str] = None
    type: AddressType = AddressType.HOME
    is_default: bool = Field(
        False, validation_alias=AliasChoices("isDefault", "defaultAddress", "is_default")
    )

    @field_validator("name", "phone", "line1", "street", "city", "state",
                     "postal_code", "country", mode="before")
    @classmethod
    def none_to_blank(cls, value: Any) -> Any:
        return "" if value is None else value

    @field_validator("type", mode="before")
    @classmethod
    def default_type(cls, value: Any) -> Any:
        """Missing or unknown categories fall back to HOME."""
        if isinstance(value, str) and value.upper() in AddressType.__members__:
            return value.upper()
        if isinstance(value, AddressType):
            return value
        return AddressType.HOME

    @field_validator("is_default", mode="before")
    @classmethod
    def null_is_false(cls, value: Any) -> Any:
        return False if value is None else value

    def to_domain(self) -> Address:
        return Address(
            id=self.id,
            name=self.name,
            phone=self.phone,
            email=self.email,
            line1=self.line1,
            line2=self.line2,
            street=self.street,
            city=self.city,
            state=self.state,
            postal_code=self.postal_code,
            country=self.country,
            landmark=self.landmark,
            type=self.type,
            is_default=self.is_default,
        )


# Canonical field -> every wire spelling the services understand
_ADDRESS_WIRE_NAMES: Dict[str, tuple] = {
    "name": ("recipientName", "name"),
    "phone": ("recipientPhone", "phone"),
    "email": ("recipientEmail", "email"),
    "line1": ("addressLine1",),
    "line2": ("addressLine2",),
    "street": ("street",),
    "city": ("city",),
    "state": ("state",),
    "postal_code": ("postalCode", "zipCode"),
    "country": ("country",),
    "landmark": ("landmark",),
    "type": ("type",),
    "is_default": ("isDefault",),
}


def _to_wire(values: Dict[str, Any]) -> Dict[str, Any]:
    payload: Dict[str, Any] = {}
    for field_name, value in values.items():
        if isinstance(value, AddressType):
            value = value.value
        for wire_name in _ADDRESS_WIRE_NAMES[field_name]:
            payload[wire_name] = value
    return payload


def address_create_payload(request: AddressCreate) -> Dict[str, Any]:
    """Serialize a create request in both naming conventions."""
    return _to_wire(request.model_dump())


def address_update_payload(request: AddressUpdate) -> Dict[str, Any]:
    """Serialize only the fields the caller changed."""
    return _to_wire(request.changes())


class CartItemPayload(BaseModel):
    """Cart line as returned by the cart service."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: int
    product_id: int = Field(0, validation_alias=AliasChoices("productId", "product_id"))
    product_name: str = Field(
        "Unknown Product", validation_alias=AliasChoices("productName", "product_name")
    )
    unit_price: Decimal = Field(
        Decimal("0"), ge=0, validation_alias=AliasChoices("productPrice", "price", "unit_price")
    )
    quantity: int = Field(1, ge=0)
    image_url: Optional[str] = Field(
        None, validation_alias=AliasChoices("productImageUrl", "imageUrl")
    )

    @field_validator("unit_price", mode="before")
    @classmethod
    def null_price(cls, value: Any) -> Any:
        return Decimal("0") if value is None else value

    @field_validator("quantity", mode="before")
    @classmethod
    def null_quantity(cls, value: Any) -> Any:
        return 1 if value is None else value

    def to_domain(self) -> CartItem:
        return CartItem(
            id=self.id,
            product_id=self.product_id,
            quantity=self.quantity,
            unit_price=self.unit_price,
            product_name=self.product_name or "Unknown Product",
            image_url=self.image_url,
        )


class CartPayload(BaseModel):
    """Cart as returned by the cart service."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: int = 0
    items: List[CartItemPayload] = Field(default_factory=list)
    cart_total: Optional[Decimal] = Field(
        None, validation_alias=AliasChoices("cartTotal", "totalPrice")
    )

    @field_validator("id", mode="before")
    @classmethod
    def null_id(cls, value: Any) -> Any:
        return 0 if value is None else value

    @field_validator("items", mode="before")
    @classmethod
    def null_items(cls, value: Any) -> Any:
        return [] if value is None else value

    def to_domain(self) -> CartSnapshot:
        return CartSnapshot(
            id=self.id,
            items=tuple(item.to_domain() for item in self.items),
            fetched_at=datetime.now(timezone.utc),
        )


class OrderItemPayload(BaseModel):
    """Priced order line as returned by the order service."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    product_id: int = Field(0, validation_alias=AliasChoices("productId", "product_id"))
    product_name: Optional[str] = Field(
        None, validation_alias=AliasChoices("productName", "product_name")
    )
    quantity: int = 0
    price: Decimal = Decimal("0")


class OrderPayload(BaseModel):
    """Order as returned by the order service."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: int
    shipping_address_id: Optional[int] = Field(
        None, validation_alias=AliasChoices("shippingAddressId", "shipping_address_id")
    )
    payment_method: Optional[str] = Field(
        None, validation_alias=AliasChoices("paymentMethod", "payment_method")
    )
    items: List[OrderItemPayload] = Field(default_factory=list)
    status: Optional[str] = None
    grand_total: Optional[Decimal] = Field(
        None, validation_alias=AliasChoices("grandTotal", "totalAmount")
    )
    placed_at: Optional[datetime] = Field(
        None, validation_alias=AliasChoices("placedAt", "placed_at")
    )

    @field_validator("items", mode="before")
    @classmethod
    def null_items(cls, value: Any) -> Any:
        return [] if value is None else value

    def to_domain(self) -> PlacedOrder:
        method = None
        if self.payment_method in PaymentMethod.__members__:
            method = PaymentMethod(self.payment_method)

        return PlacedOrder(
            id=self.id,
            shipping_address_id=self.shipping_address_id,
            payment_method=method,
            items=tuple(
                OrderItem(
                    product_id=item.product_id,
                    quantity=item.quantity,
                    price=item.price,
                    product_name=item.product_name,
                )
                for item in self.items
            ),
            status=self.status,
            grand_total=self.grand_total,
            placed_at=self.placed_at,
        )
