"""
HTTP client module for the storefront API gateway.

Provides the async transport shared by the address, cart and order service
adapters. Implements request tracing, structured logging and the
classification of transport and HTTP failures into the client's exception
taxonomy. Requests are never retried here; retry is always a fresh
user-initiated action.
"""

import time
from typing import Any, Dict, Optional

import httpx

from ..config import settings
from ..exceptions import (NotAuthenticatedException, ServiceException,
                          TransientServiceException)
from ..logging_config import get_logger, get_request_id
from ..metrics import track_service_error, track_service_request

logger = get_logger(__name__)

# Status codes that indicate a retry-safe server condition
TRANSIENT_STATUS_CODES = {408, 429}


class ApiClient:
    """
    Client for the storefront API gateway.

    Uses a persistent HTTP client with connection pooling; one instance is
    shared by every service adapter of an authenticated user.

    Attributes:
        base_url: Base URL of the API gateway
        timeout: Request timeout in seconds
        token: Bearer token of the authenticated user
        _client: Persistent httpx.AsyncClient with connection pooling
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        token: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        """
        Initialize API client.

        Args:
            base_url: Base URL of the API gateway (defaults to settings)
            timeout: Request timeout in seconds (defaults to settings)
            token: Bearer token sent with every request
            transport: Optional httpx transport, used by tests
        """
        self.base_url = (base_url or settings.API_BASE_URL).rstrip("/")
        self.timeout = timeout or settings.REQUEST_TIMEOUT
        self.token = token
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

        logger.info(
            f"Initialized ApiClient: base_url={self.base_url}, "
            f"timeout={self.timeout}s"
        )

    async def _get_client(self) -> httpx.AsyncClient:
        """
        Get or create the persistent HTTP client with connection pooling.

        Returns:
            Configured httpx.AsyncClient instance
        """
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=self.timeout,
                limits=httpx.Limits(
                    max_keepalive_connections=20,
                    max_connections=100,
                    keepalive_expiry=30.0,
                ),
                http2=settings.HTTP2_ENABLED,
                transport=self._transport,
            )
            logger.debug("Created new HTTP client with connection pooling")
        return self._client

    async def close(self) -> None:
        """Close the HTTP client and release connections."""
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
            self._client = None
            logger.debug("Closed HTTP client")

    def set_token(self, token: Optional[str]) -> None:
        """Replace the bearer token, e.g. after login or logout."""
        self.token = token

    def _get_request_headers(self) -> Dict[str, str]:
        """
        Get common request headers including auth and request ID.

        Returns:
            Dictionary of HTTP headers
        """
        headers = {
            "User-Agent": settings.USER_AGENT,
            "Accept": "application/json",
            "Content-Type": "application/json",
        }

        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"

        request_id = get_request_id()
        if request_id and settings.ENABLE_REQUEST_TRACING:
            headers["X-Request-ID"] = request_id

        return headers

    async def request(
        self,
        service: str,
        method: str,
        path: str,
        *,
        json: Any = None,
        params: Optional[Dict[str, Any]] = None,
        endpoint: Optional[str] = None,
    ) -> httpx.Response:
        """
        Send a request to a backend service.

        Args:
            service: Logical service name used in logs, metrics and errors
            method: HTTP method
            path: Path relative to the gateway base URL
            json: Optional JSON body
            params: Optional query parameters
            endpoint: Path template used as a low-cardinality metric label

        Returns:
            The successful (2xx/3xx) response

        Raises:
            TransientServiceException: On timeouts, connection errors, 408, 429 and 5xx
            NotAuthenticatedException: On 401 and 403
            ServiceException: On any other error status
        """
        start_time = time.perf_counter()
        endpoint = endpoint or path
        url = f"{self.base_url}{path}"

        logger.debug(
            "Sending request to backend",
            extra={
                "extra_fields": {
                    "service": service,
                    "method": method,
                    "url": url,
                }
            },
        )

        try:
            client = await self._get_client()
            response = await client.request(
                method,
                url,
                json=json,
                params=params,
                headers=self._get_request_headers(),
            )
        except (httpx.TimeoutException, TimeoutError) as error:
            duration_ms = (time.perf_counter() - start_time) * 1000
            track_service_error(service, "timeout")
            logger.error(
                "Backend request timed out",
                extra={
                    "extra_fields": {
                        "service": service,
                        "url": url,
                        "timeout": self.timeout,
                        "duration_ms": duration_ms,
                        "error_type": type(error).__name__,
                    }
                },
            )
            raise TransientServiceException(
                service, f"request timed out after {self.timeout}s"
            ) from error
        except httpx.RequestError as error:
            duration_ms = (time.perf_counter() - start_time) * 1000
            track_service_error(service, "connection_error")
            logger.error(
                "Cannot connect to backend service",
                extra={
                    "extra_fields": {
                        "service": service,
                        "url": url,
                        "duration_ms": duration_ms,
                        "error_type": type(error).__name__,
                        "error_message": str(error),
                    }
                },
            )
            raise TransientServiceException(service, "connection failed") from error

        duration = time.perf_counter() - start_time
        track_service_request(service, endpoint, response.status_code, duration)

        logger.info(
            "Received response from backend",
            extra={
                "extra_fields": {
                    "service": service,
                    "method": method,
                    "endpoint": endpoint,
                    "status_code": response.status_code,
                    "duration_ms": duration * 1000,
                }
            },
        )

        if response.is_error:
            self._raise_for_status(service, response)

        return response

    async def request_json(self, service: str, method: str, path: str, **kwargs: Any) -> Any:
        """Send a request and decode its JSON body; empty bodies decode to None."""
        response = await self.request(service, method, path, **kwargs)
        if not response.content:
            return None
        return response.json()

    def _raise_for_status(self, service: str, response: httpx.Response) -> None:
        status_code = response.status_code
        server_message = extract_server_message(response)

        logger.warning(
            "HTTP error from backend service",
            extra={
                "extra_fields": {
                    "service": service,
                    "status_code": status_code,
                    "server_message": server_message,
                }
            },
        )

        if status_code in TRANSIENT_STATUS_CODES or status_code >= 500:
            track_service_error(service, "server_unavailable")
            raise TransientServiceException(
                service, server_message or f"HTTP {status_code}", status_code
            )
        if status_code in (401, 403):
            track_service_error(service, "unauthorized")
            raise NotAuthenticatedException(
                server_message, details={"service": service, "status_code": status_code}
            )

        track_service_error(service, "http_error")
        raise ServiceException(service, status_code, server_message)


def extract_server_message(response: httpx.Response) -> Optional[str]:
    """
    Pull a human-readable message out of an error response.

    Args:
        response: Error response from a backend service

    Returns:
        The ``message`` or ``error`` field of a JSON body, otherwise the
        first 200 characters of the body, or None if the body is empty
    """
    try:
        payload = response.json()
    except ValueError:
        text = response.text.strip()
        return text[:200] or None

    if isinstance(payload, dict):
        for key in ("message", "error", "detail"):
            value = payload.get(key)
            if isinstance(value, str) and value:
                return value
    return None
