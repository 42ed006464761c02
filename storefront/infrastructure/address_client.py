"""
Address service adapter.

Maps the address book REST endpoints onto domain entities. The default flag
can only be changed through the dedicated ``/default`` endpoint; a general
update never touches it.
"""

from typing import List

from ..domain.entities import Address, AddressType
from ..exceptions import (InvalidResponseException, NotFoundException,
                          ServiceException)
from ..logging_config import get_logger
from ..models import AddressCreate, AddressUpdate
from .api_client import ApiClient
from .schemas import (AddressPayload, address_create_payload,
                      address_update_payload, parse_payload)

logger = get_logger(__name__)

SERVICE_NAME = "address-service"


class AddressServiceClient:
    """
    Client for the address service endpoints.

    Attributes:
        api: Shared gateway client
    """

    def __init__(self, api: ApiClient) -> None:
        self.api = api

    async def list_addresses(self) -> List[Address]:
        """
        Fetch every active address of the current user.

        Returns:
            Addresses in server order
        """
        data = await self.api.request_json(SERVICE_NAME, "GET", "/addresses")
        if data is None:
            data = []
        if not isinstance(data, list):
            raise InvalidResponseException(SERVICE_NAME, "expected a list of addresses")
        addresses = [_to_address(item) for item in data]
        logger.debug(f"Fetched {len(addresses)} addresses")
        return addresses

    async def get_address(self, address_id: int) -> Address:
        path = f"/addresses/{address_id}"
        data = await self._call("GET", path, address_id, endpoint="/addresses/{id}")
        return _to_address(data)

    async def create_address(self, request: AddressCreate) -> Address:
        """
        Create an address.

        Args:
            request: Validated address form

        Returns:
            The created address as stored by the server
        """
        data = await self.api.request_json(
            SERVICE_NAME,
            "POST",
            "/addresses",
            json=address_create_payload(request),
        )
        return _to_address(data)

    async def update_address(self, address_id: int, request: AddressUpdate) -> Address:
        data = await self._call(
            "PUT",
            f"/addresses/{address_id}",
            address_id,
            json=address_update_payload(request),
            endpoint="/addresses/{id}",
        )
        return _to_address(data)

    async def delete_address(self, address_id: int) -> None:
        await self._call(
            "DELETE", f"/addresses/{address_id}", address_id, endpoint="/addresses/{id}"
        )

    async def set_default_address(self, address_id: int) -> Address:
        """
        Make an address the user's default.

        The server clears every other default of the user in the same call.
        """
        data = await self._call(
            "POST",
            f"/addresses/{address_id}/default",
            address_id,
            endpoint="/addresses/{id}/default",
        )
        return _to_address(data)

    async def change_address_type(self, address_id: int, address_type: AddressType) -> Address:
        data = await self._call(
            "PATCH",
            f"/addresses/{address_id}/type",
            address_id,
            json={"type": address_type.value},
            endpoint="/addresses/{id}/type",
        )
        return _to_address(data)

    async def _call(self, method: str, path: str, address_id: int, **kwargs):
        """Send an id-addressed request, mapping 404 to NotFoundException."""
        try:
            return await self.api.request_json(SERVICE_NAME, method, path, **kwargs)
        except ServiceException as error:
            if error.status_code == 404:
                raise NotFoundException("Address", address_id) from error
            raise


def _to_address(data) -> Address:
    return parse_payload(SERVICE_NAME, AddressPayload, data).to_domain()
