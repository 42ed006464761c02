"""Order service adapter."""

from ..domain.entities import PaymentMethod, PlacedOrder
from ..exceptions import NotFoundException, ServiceException
from .api_client import ApiClient
from .schemas import OrderPayload, parse_payload

SERVICE_NAME = "order-service"


class OrderServiceClient:
    """Client for the order service endpoints."""

    def __init__(self, api: ApiClient) -> None:
        self.api = api

    async def place_order(
        self, shipping_address_id: int, payment_method: PaymentMethod
    ) -> PlacedOrder:
        """
        Place an order for the server-side cart.

        Args:
            shipping_address_id: Id of the selected shipping address
            payment_method: Selected payment method label

        Returns:
            The confirmed order
        """
        data = await self.api.request_json(
            SERVICE_NAME,
            "POST",
            "/orders",
            json={
                "shippingAddressId": shipping_address_id,
                "paymentMethod": payment_method.value,
            },
        )
        return parse_payload(SERVICE_NAME, OrderPayload, data).to_domain()

    async def get_order(self, order_id: int) -> PlacedOrder:
        try:
            data = await self.api.request_json(
                SERVICE_NAME, "GET", f"/orders/{order_id}", endpoint="/orders/{id}"
            )
        except ServiceException as error:
            if error.status_code == 404:
                raise NotFoundException("Order", order_id) from error
            raise
        return parse_payload(SERVICE_NAME, OrderPayload, data).to_domain()
