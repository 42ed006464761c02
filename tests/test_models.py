"""
Tests for address request models.

Covers field validation of the add/update address forms and the conversion
of pydantic errors into ValidationException.
"""

import pytest
from storefront.domain.entities import AddressType
from storefront.exceptions import ValidationException
from storefront.models import AddressCreate, AddressUpdate, parse_request


class TestAddressCreate:
    """Tests for AddressCreate validation."""

    def test_valid_form(self, address_form):
        request = parse_request(AddressCreate, address_form)

        assert request.name == "Asha Rao"
        assert request.type == AddressType.HOME
        assert request.is_default is False

    def test_whitespace_is_stripped(self, address_form):
        address_form["city"] = "  Bengaluru  "
        request = parse_request(AddressCreate, address_form)
        assert request.city == "Bengaluru"

    def test_blank_optional_fields_become_none(self, address_form):
        address_form.update({"email": "", "line2": "   ", "landmark": ""})
        request = parse_request(AddressCreate, address_form)

        assert request.email is None
        assert request.line2 is None
        assert request.landmark is None

    @pytest.mark.parametrize("field_name", ["name", "line1", "street", "city", "state",
                                            "postal_code", "country"])
    def test_required_field_missing(self, address_form, field_name):
        """Test that every required field is enforced."""
        del address_form[field_name]

        with pytest.raises(ValidationException) as exc_info:
            parse_request(AddressCreate, address_form)

        assert exc_info.value.field_name == field_name

    def test_blank_required_field(self, address_form):
        address_form["street"] = "   "

        with pytest.raises(ValidationException) as exc_info:
            parse_request(AddressCreate, address_form)

        assert exc_info.value.field_name == "street"

    @pytest.mark.parametrize("phone", ["12345", "98765-43210", "phone", "+1234567890123456"])
    def test_invalid_phone(self, address_form, phone):
        address_form["phone"] = phone

        with pytest.raises(ValidationException) as exc_info:
            parse_request(AddressCreate, address_form)

        assert exc_info.value.field_name == "phone"

    def test_invalid_email(self, address_form):
        address_form["email"] = "not-an-email"

        with pytest.raises(ValidationException) as exc_info:
            parse_request(AddressCreate, address_form)

        assert exc_info.value.field_name == "email"

    def test_postal_code_too_long(self, address_form):
        address_form["postal_code"] = "12345678901"

        with pytest.raises(ValidationException):
            parse_request(AddressCreate, address_form)

    def test_unknown_type_rejected(self, address_form):
        address_form["type"] = "WAREHOUSE"

        with pytest.raises(ValidationException) as exc_info:
            parse_request(AddressCreate, address_form)

        assert exc_info.value.field_name == "type"

    def test_model_instance_passes_through(self, address_form):
        request = AddressCreate(**address_form)
        assert parse_request(AddressCreate, request) is request


class TestAddressUpdate:
    """Tests for AddressUpdate partial semantics."""

    def test_changes_only_include_set_fields(self):
        request = parse_request(AddressUpdate, {"city": "Mysuru", "is_default": True})

        assert request.changes() == {"city": "Mysuru"}
        assert request.is_default is True

    def test_empty_update(self):
        request = parse_request(AddressUpdate, {})

        assert request.changes() == {}
        assert request.is_default is None

    def test_invalid_partial_field(self):
        with pytest.raises(ValidationException) as exc_info:
            parse_request(AddressUpdate, {"phone": "abc"})

        assert exc_info.value.field_name == "phone"
