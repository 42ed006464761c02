"""
Storefront context.

Wires the gateway client, the service adapters and the per-user stores
together. The address cache belongs to the context of the signed-in user
rather than to a module-level global, and it is reset on sign-out.

Usage::

    async with StorefrontContext(user=profile, token=token) as storefront:
        session = await storefront.open_checkout()
        order = await session.place_order()
"""

from typing import Optional

import structlog

from .domain.entities import PlacedOrder, UserProfile
from .exceptions import NotAuthenticatedException, StorefrontException
from .infrastructure import (AddressServiceClient, ApiClient,
                             CartServiceClient, OrderServiceClient)
from .services import AddressStore, CartService, CheckoutSession, OrderSubmitter

logger = structlog.get_logger(__name__)


class StorefrontContext:
    """
    Per-user composition root.

    Attributes:
        user: Signed-in user, None when signed out
        api: Shared gateway client
        address_store: Cached address book of ``user``
        cart: Cart mirror of ``user``
        orders: Order service adapter
        submitter: Order placement with failure classification
    """

    def __init__(
        self,
        user: Optional[UserProfile] = None,
        token: Optional[str] = None,
        api: Optional[ApiClient] = None,
    ) -> None:
        self.user = user
        self.api = api or ApiClient(token=token)
        if token is not None:
            self.api.set_token(token)

        self.orders = OrderServiceClient(self.api)
        self.submitter = OrderSubmitter(self.orders)
        self._build_user_state()

    def _build_user_state(self) -> None:
        self.address_store = AddressStore(AddressServiceClient(self.api))
        self.cart = CartService(CartServiceClient(self.api))

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None

    def sign_in(self, user: UserProfile, token: str) -> None:
        """Bind a user and token; a different user gets fresh caches."""
        if self.user is not None and self.user.id != user.id:
            self._build_user_state()
        self.user = user
        self.api.set_token(token)
        logger.info("Signed in", user_id=user.id)

    def sign_out(self) -> None:
        """Forget the user, the token and every per-user cache."""
        user_id = self.user.id if self.user else None
        self.user = None
        self.api.set_token(None)
        self._build_user_state()
        logger.info("Signed out", user_id=user_id)

    async def open_checkout(self, session_id: Optional[str] = None) -> CheckoutSession:
        """
        Enter checkout.

        Args:
            session_id: Optional request ID for the session's calls

        Returns:
            A started checkout session, READY or LOADING with a failed load
            flag set

        Raises:
            NotAuthenticatedException: If no user is signed in
            EmptyCartException: If the cart is empty
        """
        if self.user is None:
            raise NotAuthenticatedException("Sign in to check out")

        session = CheckoutSession(
            self.user,
            self.address_store,
            self.cart,
            self.submitter,
            session_id=session_id,
        )
        try:
            await session.start()
        except StorefrontException:
            await session.leave()
            raise
        return session

    async def fetch_order(self, order_id: int) -> PlacedOrder:
        """Load an order for the order detail page."""
        if self.user is None:
            raise NotAuthenticatedException()
        return await self.orders.get_order(order_id)

    async def close(self) -> None:
        await self.api.close()

    async def __aenter__(self) -> "StorefrontContext":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()
