"""
Tests for the address book store.

Covers:
- Loading and load failures
- Single-default invariant across create/update/set_default
- Idempotent default changes
- Local validation before any request
- Rollback of failed mutations
"""

import asyncio

import pytest
from storefront.domain.entities import AddressType
from storefront.exceptions import (NotAuthenticatedException,
                                   NotFoundException,
                                   TransientServiceException,
                                   ValidationException)
from storefront.models import AddressCreate, AddressUpdate
from storefront.services.address_store import AddressStore


def default_count(store: AddressStore) -> int:
    return sum(1 for address in store.addresses if address.is_default)


@pytest.fixture
def loaded_store(address_store, address_client, make_address):
    """Store holding addresses 1 (default), 2 and 3."""

    async def _load():
        address_client.list_addresses.return_value = [
            make_address(1, is_default=True),
            make_address(2),
            make_address(3),
        ]
        await address_store.load()
        address_client.reset_mock()
        return address_store

    return _load


@pytest.fixture
def empty_store(address_store, address_client):
    """Store whose load succeeded with no addresses."""

    async def _load():
        address_client.list_addresses.return_value = []
        await address_store.load()
        address_client.reset_mock()
        return address_store

    return _load


class TestLoad:
    """Tests for AddressStore.load."""

    @pytest.mark.asyncio
    async def test_load_success(self, address_store, address_client, make_address):
        address_client.list_addresses.return_value = [make_address(1), make_address(2)]

        addresses = await address_store.load()

        assert [address.id for address in addresses] == [1, 2]
        assert address_store.loaded is True
        assert address_store.load_failed is False
        assert len(address_store) == 2
        assert 2 in address_store

    @pytest.mark.asyncio
    async def test_load_failure_returns_empty_and_keeps_cache(self, loaded_store, address_client):
        store = await loaded_store()
        address_client.list_addresses.side_effect = TransientServiceException("address-service")

        addresses = await store.load()

        assert addresses == []
        assert store.load_failed is True
        assert isinstance(store.load_error, TransientServiceException)
        assert len(store) == 3

    @pytest.mark.asyncio
    async def test_load_propagates_auth_failure(self, address_store, address_client):
        address_client.list_addresses.side_effect = NotAuthenticatedException()

        with pytest.raises(NotAuthenticatedException):
            await address_store.load()

    @pytest.mark.asyncio
    async def test_load_keeps_only_first_server_default(self, address_store, address_client, make_address):
        address_client.list_addresses.return_value = [
            make_address(1, is_default=True),
            make_address(2, is_default=True),
        ]

        await address_store.load()

        assert default_count(address_store) == 1
        assert address_store.default_address.id == 1


class TestCreate:
    """Tests for AddressStore.create."""

    @pytest.mark.asyncio
    async def test_first_address_becomes_default(self, empty_store, address_client,
                                                 make_address, address_form):
        store = await empty_store()
        address_client.create_address.return_value = make_address(10)
        address_client.set_default_address.return_value = make_address(10, is_default=True)

        created = await store.create(address_form)

        assert created.is_default is True
        address_client.set_default_address.assert_awaited_once_with(10)
        assert store.default_address.id == 10

    @pytest.mark.asyncio
    async def test_create_after_failed_load_is_not_promoted(self, address_store, address_client,
                                                            make_address, address_form):
        """Test that an unknown book is not treated as an empty one."""
        address_client.list_addresses.side_effect = TransientServiceException("address-service")
        await address_store.load()
        address_client.create_address.return_value = make_address(10)

        created = await address_store.create(address_form)

        assert created.is_default is False
        address_client.set_default_address.assert_not_called()

    @pytest.mark.asyncio
    async def test_create_before_load_is_not_promoted(self, address_store, address_client,
                                                      make_address, address_form):
        address_client.create_address.return_value = make_address(10)

        await address_store.create(address_form)

        address_client.set_default_address.assert_not_called()

    @pytest.mark.asyncio
    async def test_create_as_default_flips_previous(self, loaded_store, address_client,
                                                    make_address, address_form):
        store = await loaded_store()
        address_client.create_address.return_value = make_address(4, is_default=True)

        created = await store.create({**address_form, "is_default": True})

        assert created.is_default is True
        assert store.get(1).is_default is False
        assert default_count(store) == 1
        address_client.set_default_address.assert_not_called()

    @pytest.mark.asyncio
    async def test_create_non_default(self, loaded_store, address_client, make_address, address_form):
        store = await loaded_store()
        address_client.create_address.return_value = make_address(4)

        created = await store.create(address_form)

        assert created.is_default is False
        assert store.default_address.id == 1
        assert len(store) == 4

    @pytest.mark.asyncio
    async def test_invalid_form_makes_no_request(self, address_store, address_client, address_form):
        """Test that a malformed form fails locally."""
        del address_form["street"]

        with pytest.raises(ValidationException) as exc_info:
            await address_store.create(address_form)

        assert exc_info.value.field_name == "street"
        address_client.create_address.assert_not_called()

    @pytest.mark.asyncio
    async def test_create_failure_leaves_cache(self, loaded_store, address_client, address_form):
        store = await loaded_store()
        before = store.addresses
        address_client.create_address.side_effect = TransientServiceException("address-service")

        with pytest.raises(TransientServiceException):
            await store.create(AddressCreate(**address_form))

        assert store.addresses == before
        assert store.needs_refresh is False

    @pytest.mark.asyncio
    async def test_failed_promotion_rolls_back(self, empty_store, address_client,
                                               make_address, address_form):
        """Test that a created but unpromoted address is rolled back and flagged."""
        store = await empty_store()
        address_client.create_address.return_value = make_address(10)
        address_client.set_default_address.side_effect = TransientServiceException("address-service")

        with pytest.raises(TransientServiceException):
            await store.create(address_form)

        assert store.addresses == ()
        assert store.needs_refresh is True


class TestUpdate:
    """Tests for AddressStore.update."""

    @pytest.mark.asyncio
    async def test_update_fields(self, loaded_store, address_client, make_address):
        store = await loaded_store()
        address_client.update_address.return_value = make_address(2, city="Mysuru")

        updated = await store.update(2, {"city": "Mysuru"})

        assert updated.city == "Mysuru"
        assert store.get(2).city == "Mysuru"
        assert store.default_address.id == 1

    @pytest.mark.asyncio
    async def test_update_keeps_local_default_flag(self, loaded_store, address_client, make_address):
        """Test that a stale flag in the update response does not create a second default."""
        store = await loaded_store()
        address_client.update_address.return_value = make_address(2, city="Mysuru", is_default=True)

        await store.update(2, AddressUpdate(city="Mysuru"))

        assert store.get(2).is_default is False
        assert default_count(store) == 1

    @pytest.mark.asyncio
    async def test_update_to_default_uses_default_endpoint(self, loaded_store, address_client, make_address):
        store = await loaded_store()
        address_client.set_default_address.return_value = make_address(3, is_default=True)

        updated = await store.update(3, {"is_default": True})

        assert updated.is_default is True
        assert store.get(1).is_default is False
        address_client.update_address.assert_not_called()
        address_client.set_default_address.assert_awaited_once_with(3)

    @pytest.mark.asyncio
    async def test_unsetting_current_default_is_rejected(self, loaded_store, address_client):
        store = await loaded_store()

        with pytest.raises(ValidationException):
            await store.update(1, {"is_default": False})

        address_client.update_address.assert_not_called()
        assert store.default_address.id == 1

    @pytest.mark.asyncio
    async def test_update_unknown_id(self, loaded_store, address_client):
        store = await loaded_store()

        with pytest.raises(NotFoundException):
            await store.update(99, {"city": "Pune"})

        address_client.update_address.assert_not_called()

    @pytest.mark.asyncio
    async def test_update_invalid_field(self, loaded_store, address_client):
        store = await loaded_store()

        with pytest.raises(ValidationException):
            await store.update(2, {"phone": "12"})

        address_client.update_address.assert_not_called()

    @pytest.mark.asyncio
    async def test_update_deleted_on_server(self, loaded_store, address_client):
        store = await loaded_store()
        before = store.addresses
        address_client.update_address.side_effect = NotFoundException("Address", 2)

        with pytest.raises(NotFoundException):
            await store.update(2, {"city": "Pune"})

        assert store.addresses == before
        assert store.needs_refresh is True


class TestDelete:
    """Tests for AddressStore.delete."""

    @pytest.mark.asyncio
    async def test_delete(self, loaded_store, address_client):
        store = await loaded_store()

        await store.delete(2)

        assert 2 not in store
        address_client.delete_address.assert_awaited_once_with(2)

    @pytest.mark.asyncio
    async def test_delete_default_leaves_no_default(self, loaded_store):
        store = await loaded_store()

        await store.delete(1)

        assert store.default_address is None
        assert default_count(store) == 0

    @pytest.mark.asyncio
    async def test_delete_unknown_id(self, loaded_store, address_client):
        store = await loaded_store()

        with pytest.raises(NotFoundException):
            await store.delete(99)

        address_client.delete_address.assert_not_called()

    @pytest.mark.asyncio
    async def test_delete_already_gone_on_server(self, loaded_store, address_client):
        store = await loaded_store()
        address_client.delete_address.side_effect = NotFoundException("Address", 3)

        await store.delete(3)

        assert 3 not in store

    @pytest.mark.asyncio
    async def test_delete_failure_keeps_address(self, loaded_store, address_client):
        store = await loaded_store()
        address_client.delete_address.side_effect = TransientServiceException("address-service")

        with pytest.raises(TransientServiceException):
            await store.delete(3)

        assert 3 in store


class TestSetDefault:
    """Tests for AddressStore.set_default."""

    @pytest.mark.asyncio
    async def test_set_default(self, loaded_store, address_client, make_address):
        store = await loaded_store()
        address_client.set_default_address.return_value = make_address(2, is_default=True)

        promoted = await store.set_default(2)

        assert promoted.is_default is True
        assert store.get(1).is_default is False
        assert default_count(store) == 1

    @pytest.mark.asyncio
    async def test_set_default_twice_equals_once(self, loaded_store, address_client, make_address):
        store = await loaded_store()
        address_client.set_default_address.return_value = make_address(2, is_default=True)

        await store.set_default(2)
        after_first = store.addresses
        await store.set_default(2)

        assert store.addresses == after_first
        address_client.set_default_address.assert_awaited_once_with(2)

    @pytest.mark.asyncio
    async def test_set_default_unknown_id(self, loaded_store, address_client):
        store = await loaded_store()

        with pytest.raises(NotFoundException):
            await store.set_default(42)

        address_client.set_default_address.assert_not_called()

    @pytest.mark.asyncio
    async def test_set_default_failure_keeps_previous(self, loaded_store, address_client):
        store = await loaded_store()
        address_client.set_default_address.side_effect = TransientServiceException("address-service")

        with pytest.raises(TransientServiceException):
            await store.set_default(3)

        assert store.default_address.id == 1

    @pytest.mark.asyncio
    async def test_mixed_sequence_keeps_single_default(self, empty_store, address_client,
                                                       make_address, address_form):
        """Test that defaults never exceed one across a sequence of mutations."""
        address_store = await empty_store()
        address_client.create_address.side_effect = [
            make_address(1),
            make_address(2, is_default=True),
            make_address(3),
        ]
        address_client.set_default_address.side_effect = lambda address_id: make_address(
            address_id, is_default=True
        )
        address_client.update_address.side_effect = lambda address_id, request: make_address(
            address_id, city="Pune"
        )

        await address_store.create(address_form)
        assert default_count(address_store) == 1
        await address_store.create({**address_form, "is_default": True})
        assert default_count(address_store) == 1
        await address_store.create(address_form)
        assert default_count(address_store) == 1
        await address_store.set_default(3)
        assert default_count(address_store) == 1
        await address_store.update(1, {"city": "Pune", "is_default": True})
        assert default_count(address_store) == 1
        assert address_store.default_address.id == 1


class TestChangeTypeAndForm:
    """Tests for address categories and the new-address form."""

    @pytest.mark.asyncio
    async def test_change_type(self, loaded_store, address_client, make_address):
        store = await loaded_store()
        address_client.change_address_type.return_value = make_address(1, type=AddressType.OFFICE)

        changed = await store.change_type(1, "OFFICE")

        assert changed.type == AddressType.OFFICE
        assert changed.is_default is True

    @pytest.mark.asyncio
    async def test_change_type_invalid(self, loaded_store, address_client):
        store = await loaded_store()

        with pytest.raises(ValidationException):
            await store.change_type(1, "WAREHOUSE")

        address_client.change_address_type.assert_not_called()

    @pytest.mark.asyncio
    async def test_new_address_form_on_empty_book(self, empty_store, user_profile):
        store = await empty_store()
        form = store.new_address_form(user_profile)

        assert form["name"] == "Asha Rao"
        assert form["email"] == "asha@example.com"
        assert form["phone"] == "9876543210"
        assert form["country"] == "India"
        assert form["type"] == "HOME"
        assert form["is_default"] is True

    @pytest.mark.asyncio
    async def test_new_address_form_after_failed_load(self, address_store, address_client):
        address_client.list_addresses.side_effect = TransientServiceException("address-service")
        await address_store.load()

        assert address_store.new_address_form()["is_default"] is False

    @pytest.mark.asyncio
    async def test_new_address_form_with_addresses(self, loaded_store):
        store = await loaded_store()
        assert store.new_address_form()["is_default"] is False

    def test_get_unknown_id(self, address_store):
        with pytest.raises(NotFoundException):
            address_store.get(5)


@pytest.mark.asyncio
async def test_concurrent_set_default_serialized(loaded_store, address_client, make_address):
    """Test that two concurrent default changes end with exactly one default."""
    store = await loaded_store()
    address_client.set_default_address.side_effect = (
        lambda address_id: make_address(address_id, is_default=True)
    )

    await asyncio.gather(store.set_default(2), store.set_default(3))

    assert default_count(store) == 1
    assert store.default_address.id == 3
