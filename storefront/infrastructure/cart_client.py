"""
Cart service adapter.

Reads the user's cart and clears it after a confirmed order.
"""

from ..domain.entities import CartSnapshot
from ..exceptions import ServiceException
from ..logging_config import get_logger
from .api_client import ApiClient
from .schemas import CartPayload, parse_payload

logger = get_logger(__name__)

SERVICE_NAME = "cart-service"

# The cart service answers these when the user has no cart yet
NO_CART_STATUS_CODES = {400, 404}


class CartServiceClient:
    """Client for the cart service endpoints."""

    def __init__(self, api: ApiClient) -> None:
        self.api = api

    async def get_cart(self) -> CartSnapshot:
        """
        Fetch the current cart.

        Returns:
            Snapshot of the cart; an empty snapshot when the user has no cart

        Raises:
            TransientServiceException: On network or server failures
            ServiceException: On unexpected client errors
            InvalidResponseException: If the cart body is malformed
        """
        try:
            data = await self.api.request_json(SERVICE_NAME, "GET", "/cart")
        except ServiceException as error:
            if error.status_code in NO_CART_STATUS_CODES:
                logger.info(
                    "Cart not found, using empty cart",
                    extra={"extra_fields": {"status_code": error.status_code}},
                )
                return CartSnapshot.empty()
            raise

        if not isinstance(data, dict):
            logger.warning("Invalid cart data received, using empty cart")
            return CartSnapshot.empty()

        payload = parse_payload(SERVICE_NAME, CartPayload, data)
        snapshot = payload.to_domain()

        if payload.cart_total is not None and payload.cart_total != snapshot.total_price:
            logger.warning(
                "Cart total disagrees with line items",
                extra={
                    "extra_fields": {
                        "server_total": str(payload.cart_total),
                        "item_total": str(snapshot.total_price),
                    }
                },
            )

        return snapshot

    async def clear_cart(self) -> None:
        await self.api.request(SERVICE_NAME, "DELETE", "/cart")
