"""Protocol definitions for clinicdemo interfaces."""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class Store(Protocol):
    """Protocol defining the capability a FHIR records store exposes.

    Both the remote FhirStoreClient and the local FhirJsonStore implement
    this interface, so every application operation takes a ``Store`` and
    works against either.
    """

    async def read_resource(self, resource_type: str, resource_id: str) -> dict[str, Any]:
        """Read one resource.

        Raises:
            ResourceNotFoundError: The resource does not exist.
            StoreError: Any other failure.
        """
        ...

    async def search_resources(
        self,
        resource_type: str,
        params: dict[str, Any] | None = None,
    ) -> list[dict[str, Any]]:
        """Search resources and return the matching payloads in bundle order."""
        ...

    async def create_resource(self, resource_type: str, resource: dict[str, Any]) -> dict[str, Any]:
        """Create a resource. Returns the stored resource with its ``id``."""
        ...

    async def update_resource(
        self,
        resource_type: str,
        resource_id: str,
        resource: dict[str, Any],
    ) -> dict[str, Any]:
        """Replace a resource. Raises ResourceNotFoundError if it is missing."""
        ...

    async def delete_resource(self, resource_type: str, resource_id: str) -> None:
        """Delete a resource. Raises ResourceNotFoundError if it is missing."""
        ...

    async def process_bundle(self, bundle: dict[str, Any]) -> dict[str, Any]:
        """Process a transaction bundle and return the response bundle."""
        ...
