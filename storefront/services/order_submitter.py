"""
Order placement with failure classification.

Turns the order service's answers into the outcomes a checkout session can
act on: a confirmed order, a rejected address, a cart that diverged from the
local snapshot, a transient failure, or any other rejection.
"""

import logging
import re
import time

from ..domain.entities import PaymentMethod, PlacedOrder
from ..exceptions import (EmptyCartException, InvalidAddressException,
                          OrderRejectedException, ServiceException,
                          StorefrontException)
from ..infrastructure.order_client import OrderServiceClient
from ..metrics import track_order_submission

logger = logging.getLogger(__name__)

# Matched against the start of the server message only
ADDRESS_REJECTION_PATTERN = re.compile(
    r"^\s*(?:invalid\s+)?(?:shipping\s+)?address\b", re.IGNORECASE
)
CART_REJECTION_PATTERN = re.compile(
    r"^\s*(?:cart\s+(?:is\s+empty|not\s+found)|empty\s+cart|no\s+items)\b", re.IGNORECASE
)


def classify_rejection(error: ServiceException, address_id: int) -> StorefrontException:
    """
    Map an order service error response to a checkout failure.

    Args:
        error: Non-transient error returned by the order service
        address_id: Shipping address id that was submitted

    Returns:
        InvalidAddressException, EmptyCartException or OrderRejectedException
    """
    message = error.server_message or ""

    if ADDRESS_REJECTION_PATTERN.match(message):
        return InvalidAddressException(address_id, message)
    if CART_REJECTION_PATTERN.match(message) or error.status_code == 409:
        return EmptyCartException(message or None, details={"status_code": error.status_code})
    if error.status_code == 404:
        return InvalidAddressException(address_id, message or None)
    return OrderRejectedException(message or f"HTTP {error.status_code}", error.status_code)


class OrderSubmitter:
    """
    Places orders and classifies their failures.

    Attributes:
        client: Order service adapter
        attempts: Number of placement requests sent
    """

    def __init__(self, client: OrderServiceClient):
        self.client = client
        self.attempts = 0

    async def place(self, address_id: int, payment_method: PaymentMethod) -> PlacedOrder:
        """
        Place an order for the server-side cart.

        Args:
            address_id: Selected shipping address id
            payment_method: Selected payment method

        Returns:
            The confirmed order

        Raises:
            InvalidAddressException: The server rejected the address id
            EmptyCartException: The server's cart diverged from the local snapshot
            TransientServiceException: Network or timeout failure, retry-safe
            OrderRejectedException: Any other rejection
        """
        self.attempts += 1
        start_time = time.perf_counter()

        logger.info(
            "Placing order",
            extra={
                "extra_fields": {
                    "address_id": address_id,
                    "payment_method": payment_method.value,
                    "attempt": self.attempts,
                }
            },
        )

        try:
            order = await self.client.place_order(address_id, payment_method)
        except ServiceException as error:
            classified = classify_rejection(error, address_id)
            track_order_submission(classified.kind.value)
            logger.warning(
                "Order rejected",
                extra={
                    "extra_fields": {
                        "error_kind": classified.kind.value,
                        "status_code": error.status_code,
                        "server_message": error.server_message,
                    }
                },
            )
            raise classified from error
        except StorefrontException as error:
            track_order_submission(error.kind.value)
            logger.warning(
                "Order placement failed",
                extra={"extra_fields": {"error_kind": error.kind.value}},
            )
            raise

        track_order_submission("success")
        logger.info(
            "Order placed",
            extra={
                "extra_fields": {
                    "order_id": order.id,
                    "duration_ms": (time.perf_counter() - start_time) * 1000,
                }
            },
        )
        return order
