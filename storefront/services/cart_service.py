"""
Cart mirror.

Holds the last successfully fetched cart snapshot and exposes the order
summary computation. The snapshot is only ever replaced by a complete fetch
or by a confirmed clear; it is never recomputed from partial data.
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from ..domain.entities import CartSnapshot, Totals, calculate_totals
from ..exceptions import StorefrontException
from ..infrastructure.cart_client import CartServiceClient

logger = logging.getLogger(__name__)


class CartService:
    """
    Read-mostly view of the user's cart.

    Attributes:
        client: Cart service adapter
        last_error: Error of the most recent failed fetch
    """

    def __init__(self, client: CartServiceClient):
        self.client = client
        self._snapshot: Optional[CartSnapshot] = None
        self.last_error: Optional[StorefrontException] = None

    @property
    def has_snapshot(self) -> bool:
        return self._snapshot is not None

    def current(self) -> CartSnapshot:
        """
        Latest known cart.

        Returns:
            The last successful fetch, or an empty snapshot if the cart was
            never fetched
        """
        return self._snapshot if self._snapshot is not None else CartSnapshot.empty()

    async def refresh(self) -> CartSnapshot:
        """
        Fetch the cart from the cart service.

        On failure the previous snapshot stays current and the error is
        re-raised.

        Returns:
            The fetched snapshot
        """
        try:
            snapshot = await self.client.get_cart()
        except StorefrontException as error:
            self.last_error = error
            logger.warning(
                "Failed to refresh cart",
                extra={"extra_fields": {"error_kind": error.kind.value}},
            )
            raise

        self._snapshot = snapshot
        self.last_error = None
        logger.debug(
            "Cart refreshed",
            extra={
                "extra_fields": {
                    "total_items": snapshot.total_items,
                    "total_price": str(snapshot.total_price),
                }
            },
        )
        return snapshot

    @staticmethod
    def totals(snapshot: CartSnapshot) -> Totals:
        """Order summary for ``snapshot``: subtotal, shipping, tax, total."""
        return calculate_totals(snapshot)

    async def clear(self) -> None:
        """
        Empty the cart.

        Only called after an order has been confirmed; a failed clear keeps
        the previous snapshot and re-raises.
        """
        await self.client.clear_cart()
        self._snapshot = CartSnapshot.empty(fetched_at=datetime.now(timezone.utc))
        logger.info("Cart cleared")
