"""
Configuration module for the storefront checkout client.

This module provides centralized configuration management using Pydantic settings.
All configuration values can be overridden via environment variables or .env file.
"""

from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Settings for the storefront checkout client.

    Attributes:
        API_BASE_URL: Base URL of the storefront API gateway
        REQUEST_TIMEOUT: Default timeout for HTTP requests in seconds
        HTTP2_ENABLED: Negotiate HTTP/2 with the gateway
        USER_AGENT: User-Agent header sent with every request
        LOG_LEVEL: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        LOG_JSON: Emit JSON structured logs instead of human-readable lines
        ENABLE_REQUEST_TRACING: Forward the session request ID as X-Request-ID
        DEFAULT_COUNTRY: Country prefilled on new address forms
        ORDER_DETAIL_PATH: Navigation target after a successful checkout
    """

    API_BASE_URL: str = Field(
        default="http://localhost:8765/api",
        description="Base URL of the storefront API gateway",
    )

    REQUEST_TIMEOUT: float = Field(
        default=5.0,
        gt=0,
        le=30.0,
        description="Default timeout for HTTP requests in seconds",
    )
    HTTP2_ENABLED: bool = Field(
        default=False,
        description="Negotiate HTTP/2 with the API gateway",
    )
    USER_AGENT: str = Field(
        default="Storefront-Checkout/1.0",
        description="User-Agent header for outbound requests",
    )

    LOG_LEVEL: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )
    LOG_JSON: bool = Field(
        default=False,
        description="Use JSON structured logging",
    )
    ENABLE_REQUEST_TRACING: bool = Field(
        default=True,
        description="Forward request IDs to backend services",
    )

    DEFAULT_COUNTRY: str = Field(
        default="India",
        description="Country prefilled on new address forms",
    )
    ORDER_DETAIL_PATH: str = Field(
        default="/orders/{order_id}?fromCheckout=true",
        description="Order detail route used after a successful checkout",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    @field_validator("API_BASE_URL")
    @classmethod
    def validate_url(cls, value: str) -> str:
        """
        Validate that the gateway URL is properly formatted.

        Args:
            value: The URL to validate

        Returns:
            The validated URL without trailing slash

        Raises:
            ValueError: If URL is invalid
        """
        if not value:
            raise ValueError("API base URL cannot be empty")

        value = value.rstrip("/")

        if not (value.startswith("http://") or value.startswith("https://")):
            raise ValueError(
                f"API base URL must start with http:// or https://, got: {value}"
            )

        return value

    @field_validator("ORDER_DETAIL_PATH")
    @classmethod
    def validate_order_path(cls, value: str) -> str:
        """Require the order id placeholder in the order detail route."""
        if "{order_id}" not in value:
            raise ValueError("ORDER_DETAIL_PATH must contain '{order_id}'")
        return value


# Global settings instance
settings = Settings()
