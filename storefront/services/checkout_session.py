"""
Checkout session state machine.

A session is one attempt to turn the cart into an order. It loads the
address book and the cart concurrently, selects a shipping address, lets the
user pick a payment method and places the order at most once at a time.

Phases::

    LOADING -> READY -> SUBMITTING -> SUCCEEDED
                 ^           |
                 +-- FAILED <+

The suspension points are the address load, the cart load and the order
placement. An order request that has been sent cannot be cancelled: leaving
the session waits for it to resolve.
"""

import asyncio
from typing import Iterable, Optional, Tuple, Union

import structlog

from ..config import settings
from ..domain.entities import (Address, CartSnapshot, CheckoutPhase,
                               PaymentMethod, PlacedOrder, Totals,
                               UserProfile, calculate_totals)
from ..exceptions import (EmptyCartException, ErrorKind,
                          InvalidAddressException, MissingAddressException,
                          NotAuthenticatedException, SessionStateException,
                          StorefrontException, ValidationException)
from ..logging_config import new_request_id, request_context
from ..metrics import (checkout_closed, checkout_opened,
                       track_checkout_transition)
from ..models import AddressCreate
from .address_store import AddressStore
from .cart_service import CartService
from .order_submitter import OrderSubmitter

logger = structlog.get_logger(__name__)

_EDITABLE_PHASES = (CheckoutPhase.LOADING, CheckoutPhase.READY, CheckoutPhase.FAILED)


def pick_default_address(addresses: Iterable[Address]) -> Optional[int]:
    """
    Choose the address to preselect.

    Returns:
        Id of the default address, else of the first address, else None
    """
    addresses = list(addresses)
    for address in addresses:
        if address.is_default:
            return address.id
    return addresses[0].id if addresses else None


class CheckoutSession:
    """
    One checkout attempt.

    Attributes:
        user: Signed-in user
        session_id: Request ID bound to every call made by this session
        addresses: Addresses available for selection
        selected_address_id: Chosen shipping address
        payment_method: Chosen payment method, COD by default
        phase: Current lifecycle phase
        last_error: Category of the most recent failure
        error_message: Human-readable message of the most recent failure
        placed_order: Confirmed order after success
        address_load_failed: The address book could not be loaded
        cart_load_failed: The cart could not be loaded
        cart_clear_failed: The order succeeded but the cart was not cleared
    """

    def __init__(
        self,
        user: Optional[UserProfile],
        address_store: AddressStore,
        cart: CartService,
        submitter: OrderSubmitter,
        session_id: Optional[str] = None,
    ):
        if user is None:
            raise NotAuthenticatedException("Sign in to check out")

        self.user = user
        self.address_store = address_store
        self.cart = cart
        self.submitter = submitter
        self.session_id = session_id or new_request_id()

        self.addresses: Tuple[Address, ...] = ()
        self.selected_address_id: Optional[int] = None
        self.payment_method = PaymentMethod.COD
        self.phase = CheckoutPhase.LOADING
        self.last_error: Optional[ErrorKind] = None
        self.error_message: Optional[str] = None
        self.placed_order: Optional[PlacedOrder] = None

        self.address_load_failed = False
        self.cart_load_failed = False
        self.cart_clear_failed = False
        self.closed = False

        self._submission: Optional["asyncio.Future[PlacedOrder]"] = None
        checkout_opened()

    # ------------------------------------------------------------------
    # Derived state
    # ------------------------------------------------------------------

    @property
    def selected_address(self) -> Optional[Address]:
        return next(
            (address for address in self.addresses if address.id == self.selected_address_id),
            None,
        )

    @property
    def cart_snapshot(self) -> CartSnapshot:
        return self.cart.current()

    @property
    def totals(self) -> Totals:
        return calculate_totals(self.cart.current())

    @property
    def needs_address(self) -> bool:
        """Loaded successfully but the address book is empty."""
        return not self.address_load_failed and not self.addresses

    @property
    def can_submit(self) -> bool:
        return (
            self.phase in (CheckoutPhase.READY, CheckoutPhase.FAILED)
            and self.selected_address_id is not None
            and not self.cart.current().is_empty
        )

    @property
    def can_leave(self) -> bool:
        return self.phase != CheckoutPhase.SUBMITTING

    @property
    def order_detail_path(self) -> Optional[str]:
        """Navigation target once the order is placed."""
        if self.placed_order is None:
            return None
        return settings.ORDER_DETAIL_PATH.format(order_id=self.placed_order.id)

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    async def start(self) -> CheckoutPhase:
        """
        Load the address book and the cart concurrently.

        The session becomes READY once both loads succeeded and an address
        is selected. A failed load keeps the session in LOADING with the
        matching ``*_load_failed`` flag set for a retry.

        Returns:
            The phase after loading

        Raises:
            EmptyCartException: The cart is empty; checkout cannot be entered
            NotAuthenticatedException: The user's session expired
        """
        with request_context(self.session_id):
            logger.info("Entering checkout", user_id=self.user.id)
            await asyncio.gather(self._load_addresses(), self._load_cart())
            self._resolve_ready()
            return self.phase

    async def retry_addresses(self) -> CheckoutPhase:
        """Reload the address book after a failed load."""
        self._require_phase(_EDITABLE_PHASES, "reload addresses")
        with request_context(self.session_id):
            await self._load_addresses()
            self._resolve_ready()
            return self.phase

    async def retry_cart(self) -> CheckoutPhase:
        """Reload the cart after a failed load."""
        self._require_phase(_EDITABLE_PHASES, "reload the cart")
        with request_context(self.session_id):
            await self._load_cart()
            self._resolve_ready()
            return self.phase

    async def _load_addresses(self) -> None:
        addresses = await self.address_store.load()
        self.address_load_failed = self.address_store.load_failed
        if self.address_load_failed:
            self.last_error = ErrorKind.LOAD_FAILED
            if self.address_store.load_error is not None:
                self.error_message = self.address_store.load_error.message
            return

        self.addresses = tuple(addresses)
        if self.selected_address_id is None or self.selected_address is None:
            self.selected_address_id = pick_default_address(self.addresses)

    async def _load_cart(self) -> None:
        try:
            await self.cart.refresh()
        except NotAuthenticatedException:
            raise
        except StorefrontException as error:
            self.cart_load_failed = True
            self.last_error = error.kind
            self.error_message = error.message
            return
        self.cart_load_failed = False

    def _resolve_ready(self) -> None:
        if self.phase != CheckoutPhase.LOADING:
            return
        if self.address_load_failed or self.cart_load_failed:
            logger.warning(
                "Checkout waiting on failed load",
                address_load_failed=self.address_load_failed,
                cart_load_failed=self.cart_load_failed,
            )
            return
        if self.cart.current().is_empty:
            logger.info("Cart is empty, checkout not entered")
            raise EmptyCartException()
        if self.selected_address_id is None:
            logger.info("No saved addresses, waiting for the user to add one")
            return

        self.last_error = None
        self.error_message = None
        self._transition(CheckoutPhase.READY)

    # ------------------------------------------------------------------
    # Selection
    # ------------------------------------------------------------------

    def select_address(self, address_id: int) -> bool:
        """
        Choose the shipping address.

        Returns:
            True if selected; False if the id is not one of the session's
            addresses, in which case nothing changes
        """
        self._require_phase(_EDITABLE_PHASES, "change the shipping address")
        if not any(address.id == address_id for address in self.addresses):
            logger.warning("Ignoring unknown address selection", address_id=address_id)
            return False
        self.selected_address_id = address_id
        return True

    def select_payment_method(self, method: Union[PaymentMethod, str]) -> PaymentMethod:
        """
        Choose the payment method.

        Raises:
            ValidationException: If ``method`` is not a supported payment method
        """
        self._require_phase(_EDITABLE_PHASES, "change the payment method")
        try:
            self.payment_method = PaymentMethod(method)
        except ValueError as error:
            raise ValidationException(
                "payment_method",
                method,
                f"must be one of {', '.join(m.value for m in PaymentMethod)}",
            ) from error
        return self.payment_method

    async def add_address(self, request) -> Address:
        """
        Add an address from the checkout page and select it.

        Lets a session whose address book was empty become READY.
        """
        self._require_phase(_EDITABLE_PHASES, "add an address")
        with request_context(self.session_id):
            address = await self.address_store.create(_as_create(request))
            self.addresses = self.address_store.addresses
            self.selected_address_id = address.id
            self._resolve_ready()
            return address

    # ------------------------------------------------------------------
    # Submission
    # ------------------------------------------------------------------

    async def place_order(self) -> Optional[PlacedOrder]:
        """
        Place the order with the current selection.

        A call made while a submission is in flight is ignored and returns
        None; exactly one placement request is sent per submission.

        Returns:
            The confirmed order, or None if the call was coalesced

        Raises:
            MissingAddressException: No shipping address selected
            EmptyCartException: The cart is empty or diverged on the server
            InvalidAddressException: The server rejected the address
            TransientServiceException: Network failure; submit again to retry
            OrderRejectedException: Any other server rejection
            SessionStateException: The session is finished or still loading
        """
        if self.phase == CheckoutPhase.SUBMITTING:
            logger.info("Order submission already in flight, ignoring")
            return None
        if self.phase == CheckoutPhase.SUCCEEDED or self.closed:
            raise SessionStateException(self.phase.value, "place an order")
        if self.selected_address_id is None:
            self.last_error = ErrorKind.MISSING_ADDRESS
            error = MissingAddressException()
            self.error_message = error.message
            raise error
        self._require_phase((CheckoutPhase.READY, CheckoutPhase.FAILED), "place an order")
        if self.cart.current().is_empty:
            self.last_error = ErrorKind.EMPTY_CART
            error = EmptyCartException()
            self.error_message = error.message
            raise error

        self._transition(CheckoutPhase.SUBMITTING)
        self.last_error = None
        self.error_message = None

        with request_context(self.session_id):
            self._submission = asyncio.ensure_future(
                self._submit(self.selected_address_id, self.payment_method)
            )
        self._submission.add_done_callback(_consume_submission)
        # The request cannot be recalled once sent; a cancelled caller must
        # not cancel the placement itself
        return await asyncio.shield(self._submission)

    async def _submit(self, address_id: int, payment_method: PaymentMethod) -> PlacedOrder:
        try:
            order = await self.submitter.place(address_id, payment_method)
        except StorefrontException as error:
            await self._recover(error)
            raise
        except Exception:
            logger.exception("Unexpected error while placing order")
            self.last_error = ErrorKind.SERVICE_ERROR
            self._transition(CheckoutPhase.FAILED)
            self._transition(CheckoutPhase.READY)
            raise

        self.placed_order = order
        try:
            await self.cart.clear()
        except StorefrontException as error:
            self.cart_clear_failed = True
            logger.error(
                "Order placed but cart could not be cleared",
                order_id=order.id,
                error_kind=error.kind.value,
            )

        self._transition(CheckoutPhase.SUCCEEDED)
        return order

    async def _recover(self, error: StorefrontException) -> None:
        """Record a failed submission and bring the session back to READY if possible."""
        self.last_error = error.kind
        self.error_message = error.message
        recovered = True

        if isinstance(error, EmptyCartException):
            # The server's cart differs from ours; refetch, never resubmit blindly
            try:
                snapshot = await self.cart.refresh()
            except StorefrontException:
                logger.warning("Cart refresh after rejected order failed")
                recovered = False
            else:
                recovered = not snapshot.is_empty
        elif isinstance(error, InvalidAddressException):
            try:
                addresses = await self.address_store.load()
            except NotAuthenticatedException as auth_error:
                # Signed out mid-checkout; the address list stays as it was
                self.last_error = auth_error.kind
                self.error_message = auth_error.message
                self._transition(CheckoutPhase.FAILED)
                raise
            if self.address_store.loaded and not self.address_store.load_failed:
                self.addresses = tuple(addresses)
                if self.selected_address is None:
                    self.selected_address_id = pick_default_address(self.addresses)
            recovered = self.selected_address_id is not None

        self._transition(CheckoutPhase.FAILED)
        if recovered:
            self._transition(CheckoutPhase.READY)

    # ------------------------------------------------------------------
    # Teardown
    # ------------------------------------------------------------------

    async def leave(self) -> None:
        """
        Discard the session.

        Before submission this has no server-side effect. While an order is
        being placed, waits for the placement to resolve first.
        """
        if self.closed:
            return
        if self._submission is not None and not self._submission.done():
            logger.info("Waiting for in-flight order before leaving checkout")
            try:
                await asyncio.shield(self._submission)
            except StorefrontException as error:
                logger.info("In-flight order failed while leaving", error_kind=error.kind.value)
        self.closed = True
        checkout_closed()
        logger.info("Left checkout", phase=self.phase.value)

    def _transition(self, new_phase: CheckoutPhase) -> None:
        old_phase = self.phase
        self.phase = new_phase
        track_checkout_transition(old_phase.value, new_phase.value)
        logger.info(
            "Checkout phase changed",
            session_id=self.session_id,
            from_phase=old_phase.value,
            to_phase=new_phase.value,
        )

    def _require_phase(self, allowed: Tuple[CheckoutPhase, ...], action: str) -> None:
        if self.closed or self.phase not in allowed:
            raise SessionStateException(self.phase.value, action)


def _consume_submission(future: "asyncio.Future[PlacedOrder]") -> None:
    """Retrieve the outcome of a placement whose caller may have been cancelled."""
    if future.cancelled():
        return
    error = future.exception()
    if isinstance(error, StorefrontException):
        logger.info("Order placement finished with an error", error_kind=error.kind.value)
    elif error is not None:
        logger.info("Order placement finished with an error", error_type=type(error).__name__)


def _as_create(request):
    if isinstance(request, AddressCreate):
        return request
    return dict(request)
