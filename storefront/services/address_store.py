"""
Address book store.

Client-side cache of the authenticated user's saved addresses. The store is
the only writer of the cached set and keeps the single-default invariant:
after every operation at most one cached address has ``is_default`` set.
Mutations are serialized with an ``asyncio.Lock`` so two concurrent
``set_default`` calls cannot interleave, and a failed mutation restores the
cached view it started from.
"""

import asyncio
import logging
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

from ..config import settings
from ..domain.entities import Address, AddressType, UserProfile
from ..exceptions import (NotAuthenticatedException, NotFoundException,
                          StorefrontException, ValidationException)
from ..infrastructure.address_client import AddressServiceClient
from ..metrics import track_address_operation
from ..models import AddressCreate, AddressUpdate, parse_request

logger = logging.getLogger(__name__)


class AddressStore:
    """
    Cached address book of one user.

    Attributes:
        client: Address service adapter
        loaded: Whether a load has succeeded at least once
        load_failed: Whether the most recent load failed
        load_error: Error of the most recent failed load
        needs_refresh: Server state may differ from the cache after a
            partially applied mutation; the next ``load`` clears it
    """

    def __init__(self, client: AddressServiceClient):
        self.client = client
        self._addresses: List[Address] = []
        self._lock = asyncio.Lock()
        self.loaded = False
        self.load_failed = False
        self.load_error: Optional[StorefrontException] = None
        self.needs_refresh = False

    @property
    def addresses(self) -> Tuple[Address, ...]:
        return tuple(self._addresses)

    @property
    def default_address(self) -> Optional[Address]:
        return next((address for address in self._addresses if address.is_default), None)

    @property
    def known_empty(self) -> bool:
        """Whether the latest load succeeded and the book holds no address."""
        # An unloaded or failed cache says nothing about the server's book
        return self.loaded and not self.load_failed and not self._addresses

    def get(self, address_id: int) -> Address:
        """
        Look up a cached address.

        Raises:
            NotFoundException: If the id is not in the cached set
        """
        for address in self._addresses:
            if address.id == address_id:
                return address
        raise NotFoundException("Address", address_id)

    def __contains__(self, address_id: object) -> bool:
        return any(address.id == address_id for address in self._addresses)

    def __len__(self) -> int:
        return len(self._addresses)

    async def load(self) -> List[Address]:
        """
        Fetch the full address set of the current user.

        Transport and service failures do not raise: an empty list is
        returned, ``load_failed`` is set and the previous cache is kept, so
        the caller can offer a retry.

        Returns:
            Loaded addresses, or an empty list if the load failed

        Raises:
            NotAuthenticatedException: If the session is no longer signed in
        """
        async with self._lock:
            try:
                addresses = await self.client.list_addresses()
            except NotAuthenticatedException:
                raise
            except StorefrontException as error:
                self.load_failed = True
                self.load_error = error
                logger.warning(
                    "Failed to load addresses",
                    extra={
                        "extra_fields": {
                            "error_kind": error.kind.value,
                            "error_message": error.message,
                        }
                    },
                )
                return []

            self._addresses = _single_default(addresses)
            self.loaded = True
            self.load_failed = False
            self.load_error = None
            self.needs_refresh = False
            logger.info(f"Loaded {len(self._addresses)} addresses")
            return list(self._addresses)

    async def create(self, request: Union[AddressCreate, Mapping[str, Any]]) -> Address:
        """
        Add an address to the address book.

        The new address becomes the default when the request asks for it or
        when a successful load showed an empty book; the previous default is flipped
        off in the same step.

        Args:
            request: Address form, as a model or a mapping of form values

        Returns:
            The created address

        Raises:
            ValidationException: If required fields are missing or malformed
        """
        request = parse_request(AddressCreate, request)

        async with self._lock:
            snapshot = list(self._addresses)
            make_default = request.is_default or self.known_empty
            created: Optional[Address] = None
            try:
                created = await self.client.create_address(request)
                self._addresses.append(created)
                if make_default and not created.is_default:
                    created = await self.client.set_default_address(created.id)
                self._replace(created)
                if created.is_default:
                    self._apply_default(created.id)
            except StorefrontException:
                self._addresses = snapshot
                if created is not None:
                    self.needs_refresh = True
                track_address_operation("create", False)
                raise

            track_address_operation("create", True)
            logger.info(
                "Created address",
                extra={
                    "extra_fields": {
                        "address_id": created.id,
                        "is_default": created.is_default,
                    }
                },
            )
            return self.get(created.id)

    async def update(
        self, address_id: int, partial: Union[AddressUpdate, Mapping[str, Any]]
    ) -> Address:
        """
        Apply a partial update to an address.

        The general update endpoint cannot change the default flag, so
        ``is_default=True`` is routed through the default endpoint after the
        field update.

        Raises:
            NotFoundException: If the id is not cached
            ValidationException: If a field is malformed, or the update tries
                to clear the flag of the current default
        """
        request = parse_request(AddressUpdate, partial)

        async with self._lock:
            current = self.get(address_id)
            if request.is_default is False and current.is_default:
                raise ValidationException(
                    "is_default",
                    False,
                    "the default address cannot be unset; choose another default instead",
                )

            snapshot = list(self._addresses)
            try:
                updated = current
                if request.changes():
                    updated = await self.client.update_address(address_id, request)
                    updated = updated.with_default(current.is_default)
                    self._replace(updated)
                if request.is_default and not current.is_default:
                    promoted = await self.client.set_default_address(address_id)
                    self._replace(promoted.with_default(True))
                    self._apply_default(address_id)
            except NotFoundException:
                self._addresses = snapshot
                self.needs_refresh = True
                track_address_operation("update", False)
                raise
            except StorefrontException:
                self._addresses = snapshot
                track_address_operation("update", False)
                raise

            track_address_operation("update", True)
            return self.get(address_id)

    async def delete(self, address_id: int) -> None:
        """
        Delete an address.

        Deleting the default leaves the book without a default; choosing a
        new one is an explicit user action.

        Raises:
            NotFoundException: If the id is not cached
        """
        async with self._lock:
            address = self.get(address_id)
            try:
                await self.client.delete_address(address_id)
            except NotFoundException:
                logger.info(f"Address {address_id} already deleted on server")
            except StorefrontException:
                track_address_operation("delete", False)
                raise

            self._addresses = [item for item in self._addresses if item.id != address_id]
            track_address_operation("delete", True)
            logger.info(
                "Deleted address",
                extra={
                    "extra_fields": {
                        "address_id": address_id,
                        "was_default": address.is_default,
                    }
                },
            )

    async def set_default(self, address_id: int) -> Address:
        """
        Make an address the sole default.

        Idempotent: an address that is already the default is returned
        without contacting the server.

        Raises:
            NotFoundException: If the id is not cached
        """
        async with self._lock:
            current = self.get(address_id)
            if current.is_default:
                logger.debug(f"Address {address_id} is already the default")
                return current

            snapshot = list(self._addresses)
            try:
                promoted = await self.client.set_default_address(address_id)
            except StorefrontException:
                self._addresses = snapshot
                track_address_operation("set_default", False)
                raise

            self._replace(promoted.with_default(True))
            self._apply_default(address_id)
            track_address_operation("set_default", True)
            logger.info(f"Address {address_id} is now the default")
            return self.get(address_id)

    async def change_type(
        self, address_id: int, address_type: Union[AddressType, str]
    ) -> Address:
        """
        Re-tag an address as HOME, OFFICE or OTHER.

        Raises:
            NotFoundException: If the id is not cached
            ValidationException: If the category is unknown
        """
        try:
            address_type = AddressType(address_type)
        except ValueError as error:
            raise ValidationException("type", address_type, "must be HOME, OFFICE or OTHER") from error

        async with self._lock:
            current = self.get(address_id)
            try:
                changed = await self.client.change_address_type(address_id, address_type)
            except StorefrontException:
                track_address_operation("change_type", False)
                raise

            self._replace(changed.with_default(current.is_default))
            track_address_operation("change_type", True)
            return self.get(address_id)

    def new_address_form(self, profile: Optional[UserProfile] = None) -> Dict[str, Any]:
        """
        Initial values for the "add address" form.

        Contact fields are prefilled from the signed-in user's profile; the
        first address of an empty book is proposed as the default.
        """
        return {
            "name": profile.full_name if profile else "",
            "phone": (profile.phone or "") if profile else "",
            "email": profile.email if profile else "",
            "line1": "",
            "line2": "",
            "street": "",
            "city": "",
            "state": "",
            "postal_code": "",
            "country": settings.DEFAULT_COUNTRY,
            "landmark": "",
            "type": AddressType.HOME.value,
            "is_default": self.known_empty,
        }

    def _replace(self, address: Address) -> None:
        self._addresses = [
            address if item.id == address.id else item for item in self._addresses
        ]

    def _apply_default(self, address_id: int) -> None:
        # Single pass so no intermediate state has two defaults
        self._addresses = [
            item.with_default(item.id == address_id) for item in self._addresses
        ]


def _single_default(addresses: List[Address]) -> List[Address]:
    """Keep only the first default flag of a server-provided list."""
    seen_default = False
    result = []
    for address in addresses:
        if address.is_default and seen_default:
            logger.warning(f"Server returned more than one default; clearing address {address.id}")
            address = address.with_default(False)
        seen_default = seen_default or address.is_default
        result.append(address)
    return result
