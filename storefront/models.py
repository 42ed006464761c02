"""Pydantic models for address form validation."""

from typing import Any, Mapping, Optional, Type, TypeVar, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from .domain.entities import AddressType
from .exceptions import ValidationException

PHONE_PATTERN = r"^\+?[0-9]{10,15}$"
EMAIL_PATTERN = r"^[\w.-]+@([\w-]+\.)+[\w-]{2,4}$"

_OPTIONAL_TEXT_FIELDS = ("email", "line2", "landmark")

ModelT = TypeVar("ModelT", bound=BaseModel)


class AddressCreate(BaseModel):
    """Request model for adding an address to the address book."""

    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(..., min_length=1, max_length=255, description="Recipient name")
    phone: str = Field(..., pattern=PHONE_PATTERN, description="Recipient phone")
    email: Optional[str] = Field(None, pattern=EMAIL_PATTERN)
    line1: str = Field(..., min_length=1, max_length=255)
    line2: Optional[str] = Field(None, max_length=255)
    street: str = Field(..., min_length=1, max_length=255)
    city: str = Field(..., min_length=1, max_length=100)
    state: str = Field(..., min_length=1, max_length=100)
    postal_code: str = Field(..., min_length=1, max_length=10)
    country: str = Field(..., min_length=1, max_length=100)
    landmark: Optional[str] = Field(None, max_length=255)
    type: AddressType = AddressType.HOME
    is_default: bool = Field(default=False, description="Make this the default address")

    @field_validator(*_OPTIONAL_TEXT_FIELDS, mode="before")
    @classmethod
    def blank_to_none(cls, value: Any) -> Any:
        """Treat blank optional form fields as absent."""
        if isinstance(value, str) and not value.strip():
            return None
        return value


class AddressUpdate(BaseModel):
    """Request model for a partial address update."""

    model_config = ConfigDict(str_strip_whitespace=True)

    name: Optional[str] = Field(None, min_length=1, max_length=255)
    phone: Optional[str] = Field(None, pattern=PHONE_PATTERN)
    email: Optional[str] = Field(None, pattern=EMAIL_PATTERN)
    line1: Optional[str] = Field(None, min_length=1, max_length=255)
    line2: Optional[str] = Field(None, max_length=255)
    street: Optional[str] = Field(None, min_length=1, max_length=255)
    city: Optional[str] = Field(None, min_length=1, max_length=100)
    state: Optional[str] = Field(None, min_length=1, max_length=100)
    postal_code: Optional[str] = Field(None, min_length=1, max_length=10)
    country: Optional[str] = Field(None, min_length=1, max_length=100)
    landmark: Optional[str] = Field(None, max_length=255)
    type: Optional[AddressType] = None
    is_default: Optional[bool] = None

    @field_validator(*_OPTIONAL_TEXT_FIELDS, mode="before")
    @classmethod
    def blank_to_none(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    def changes(self) -> dict:
        """Fields explicitly provided by the caller, excluding the default flag."""
        return self.model_dump(exclude_unset=True, exclude={"is_default"})


def parse_request(
    model_cls: Type[ModelT], data: Union[ModelT, Mapping[str, Any]]
) -> ModelT:
    """
    Validate raw form data into a request model.

    Args:
        model_cls: Request model class
        data: Model instance or mapping of form values

    Returns:
        Validated model instance

    Raises:
        ValidationException: On the first invalid or missing field
    """
    if isinstance(data, model_cls):
        return data

    try:
        return model_cls.model_validate(data)
    except PydanticValidationError as error:
        errors = error.errors(include_url=False, include_context=False)
        first = errors[0]
        field_name = ".".join(str(part) for part in first["loc"]) or "request"
        raise ValidationException(
            field_name,
            first.get("input"),
            first["msg"],
            details={"errors": errors},
        ) from error
