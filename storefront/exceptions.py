"""
Custom exception classes for the storefront checkout client.

Every exception carries an ``ErrorKind`` so that a checkout session can
record the failure category in ``last_error`` without keeping the exception
object around. Local-guard failures (validation, missing address, empty cart)
are raised before any request leaves the client.
"""

from enum import Enum
from typing import Any, Dict, Optional


class ErrorKind(str, Enum):
    """Failure categories surfaced to the UI."""

    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    MISSING_ADDRESS = "missing_address"
    EMPTY_CART = "empty_cart"
    INVALID_ADDRESS = "invalid_address"
    TRANSIENT = "transient"
    ORDER_REJECTED = "order_rejected"
    SERVICE_ERROR = "service_error"
    NOT_AUTHENTICATED = "not_authenticated"
    SESSION_STATE = "session_state"
    LOAD_FAILED = "load_failed"


class StorefrontException(Exception):
    """
    Base exception for all storefront client errors.

    Attributes:
        message: Human-readable error message
        details: Additional context about the error
        kind: Failure category
    """

    kind: ErrorKind = ErrorKind.SERVICE_ERROR

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        """
        Initialize storefront exception.

        Args:
            message: Human-readable error message
            details: Additional context about the error
        """
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    @property
    def retryable(self) -> bool:
        """Whether a fresh user-initiated attempt may succeed."""
        return self.kind == ErrorKind.TRANSIENT


class ValidationException(StorefrontException):
    """
    Raised when client-side input validation fails.

    Never sent to the server.
    """

    kind = ErrorKind.VALIDATION

    def __init__(
        self,
        field_name: str,
        value: Any,
        reason: str,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        """
        Initialize validation exception.

        Args:
            field_name: Name of the field that failed validation
            value: The invalid value
            reason: Explanation of why validation failed
            details: Additional context about the error
        """
        self.field_name = field_name
        self.value = value
        self.reason = reason
        message = f"Validation failed for '{field_name}': {reason}"
        super().__init__(message, details)


class NotFoundException(StorefrontException):
    """Raised when a referenced entity id is unknown."""

    kind = ErrorKind.NOT_FOUND

    def __init__(
        self,
        entity: str,
        entity_id: Any,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} not found: {entity_id}", details)


class MissingAddressException(StorefrontException):
    """Raised when an order is submitted without a selected shipping address."""

    kind = ErrorKind.MISSING_ADDRESS

    def __init__(self, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__("Please select a shipping address", details)


class EmptyCartException(StorefrontException):
    """
    Raised when checkout cannot proceed because the cart is empty.

    Raised locally on entry, or by order placement when the server's cart
    view diverges from the local snapshot.
    """

    kind = ErrorKind.EMPTY_CART

    def __init__(
        self,
        message: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message or "Your cart is empty", details)


class InvalidAddressException(StorefrontException):
    """Raised when the server rejects the shipping address id."""

    kind = ErrorKind.INVALID_ADDRESS

    def __init__(
        self,
        address_id: Any,
        reason: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.address_id = address_id
        message = f"Shipping address {address_id} is no longer valid"
        if reason:
            message += f": {reason}"
        super().__init__(message, details)


class TransientServiceException(StorefrontException):
    """
    Raised for network, timeout and overload conditions.

    Safe to retry with a fresh user-initiated request; the client never
    retries on its own.
    """

    kind = ErrorKind.TRANSIENT

    def __init__(
        self,
        service: str,
        reason: Optional[str] = None,
        status_code: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        """
        Initialize transient service exception.

        Args:
            service: Name of the service that failed
            reason: Short description of the failure
            status_code: HTTP status code if a response was received
            details: Additional context about the error
        """
        self.service = service
        self.reason = reason
        self.status_code = status_code
        message = f"Service '{service}' is temporarily unavailable"
        if reason:
            message += f": {reason}"
        super().__init__(message, details)


class ServiceException(StorefrontException):
    """Raised when a service answers with an error that is not retry-safe."""

    kind = ErrorKind.SERVICE_ERROR

    def __init__(
        self,
        service: str,
        status_code: int,
        server_message: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.service = service
        self.status_code = status_code
        self.server_message = server_message
        message = f"Service '{service}' returned error {status_code}"
        if server_message:
            message += f": {server_message}"
        super().__init__(message, details)


class InvalidResponseException(StorefrontException):
    """Raised when a successful response body does not have the expected shape."""

    kind = ErrorKind.SERVICE_ERROR

    def __init__(
        self,
        service: str,
        reason: str,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.service = service
        self.reason = reason
        super().__init__(f"Service '{service}' returned an invalid response: {reason}", details)


class OrderRejectedException(StorefrontException):
    """Raised when the order service refuses an order for a non-address, non-cart reason."""

    kind = ErrorKind.ORDER_REJECTED

    def __init__(
        self,
        reason: str,
        status_code: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.reason = reason
        self.status_code = status_code
        super().__init__(f"Order rejected: {reason}", details)


class NotAuthenticatedException(StorefrontException):
    """Raised when an operation requires a signed-in user."""

    kind = ErrorKind.NOT_AUTHENTICATED

    def __init__(
        self,
        message: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message or "Authentication required", details)


class SessionStateException(StorefrontException):
    """Raised when a checkout action is not allowed in the current phase."""

    kind = ErrorKind.SESSION_STATE

    def __init__(self, phase: str, action: str) -> None:
        self.phase = phase
        self.action = action
        super().__init__(
            f"Cannot {action} while checkout is {phase}",
            {"phase": phase, "action": action},
        )
