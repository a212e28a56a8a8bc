"""FHIR store client with OAuth2 token management.

Provides an async HTTP client for a remote FHIR R4 store with automatic
OAuth2 client credentials token refresh.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any

import httpx

from ..config import StoreConfig
from ..errors import ResourceNotFoundError, StoreError

logger = logging.getLogger(__name__)

DEFAULT_SEARCH_COUNT = 50


class FhirStoreClient:
    """Async FHIR store client with OAuth2 token management.

    Args:
        config: Server URL, credentials, tenant and store name.
        transport: Optional httpx transport (tests pass ``httpx.MockTransport``).
    """

    def __init__(
        self,
        config: StoreConfig,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._token_url = f"{config.url}/oauth2/token"
        self._base_url = f"{config.url}/fhir/{config.tenant}/{config.store}"
        self._client_id = config.client_id
        self._client_secret = config.client_secret
        self._timeout = config.timeout
        self._transport = transport
        self._token: str | None = None
        self._token_expires: float = 0
        self._token_lock = asyncio.Lock()

    @property
    def base_url(self) -> str:
        return self._base_url

    def _http(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self._timeout, transport=self._transport)

    async def _get_token(self) -> str:
        """Get valid token, refreshing if expired."""
        async with self._token_lock:
            # Check if current token is still valid (with 60s buffer)
            if self._token and time.time() < self._token_expires - 60:
                return self._token

            try:
                async with self._http() as client:
                    response = await client.post(
                        self._token_url,
                        data={
                            "grant_type": "client_credentials",
                            "client_id": self._client_id,
                            "client_secret": self._client_secret,
                        },
                        headers={"Content-Type": "application/x-www-form-urlencoded"},
                    )
                    response.raise_for_status()
                    data = response.json()
            except httpx.HTTPStatusError as e:
                raise StoreError(
                    f"authentication failed: HTTP {e.response.status_code}",
                    status_code=e.response.status_code,
                ) from e
            except httpx.HTTPError as e:
                raise StoreError(f"authentication failed: {e}") from e

            self._token = data["access_token"]
            # Default to 1 hour if expires_in not provided
            expires_in = data.get("expires_in", 3600)
            self._token_expires = time.time() + expires_in
            logger.debug(f"[STORE] token refreshed, expires in {expires_in}s")

            return self._token

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json: dict[str, Any] | None = None,
        not_found: ResourceNotFoundError | None = None,
    ) -> httpx.Response:
        """Send an authorised request and map failures onto StoreError.

        Args:
            method: HTTP method
            path: Path under the FHIR base (e.g. "/Patient/123")
            params: Optional query parameters
            json: Optional FHIR resource body
            not_found: Error to raise on HTTP 404 (reads, updates, deletes)

        Raises:
            ResourceNotFoundError: On HTTP 404 when ``not_found`` is given
            StoreError: On any other HTTP or transport failure
        """
        token = await self._get_token()
        headers = {
            "Authorization": f"Bearer {token}",
            "Accept": "application/fhir+json",
        }
        if json is not None:
            headers["Content-Type"] = "application/fhir+json"

        try:
            async with self._http() as client:
                response = await client.request(
                    method,
                    f"{self._base_url}{path}",
                    params=params,
                    json=json,
                    headers=headers,
                )
        except httpx.HTTPError as e:
            raise StoreError(str(e) or type(e).__name__) from e

        if response.status_code == 404 and not_found is not None:
            raise not_found
        if response.status_code >= 400:
            raise StoreError(
                f"{method} {path} failed: HTTP {response.status_code}",
                status_code=response.status_code,
            )
        return response

    @staticmethod
    def _json(response: httpx.Response) -> dict[str, Any]:
        try:
            return response.json()
        except ValueError as e:
            raise StoreError(f"parsing response: {e}") from e

    async def read_resource(self, resource_type: str, resource_id: str) -> dict[str, Any]:
        """GET /{type}/{id}."""
        response = await self._request(
            "GET",
            f"/{resource_type}/{resource_id}",
            not_found=ResourceNotFoundError(resource_type, resource_id),
        )
        return self._json(response)

    async def search_resources(
        self,
        resource_type: str,
        params: dict[str, Any] | None = None,
    ) -> list[dict[str, Any]]:
        """GET /{type}?params and unwrap the searchset bundle entries."""
        query = {"_count": DEFAULT_SEARCH_COUNT}
        query.update(params or {})
        try:
            response = await self._request("GET", f"/{resource_type}", params=query)
        except StoreError as e:
            raise StoreError(
                f"searching {resource_type}: {e}", status_code=e.status_code
            ) from e
        bundle = self._json(response)
        return extract_resources(bundle)

    async def create_resource(self, resource_type: str, resource: dict[str, Any]) -> dict[str, Any]:
        """POST /{type}."""
        response = await self._request("POST", f"/{resource_type}", json=resource)
        return self._json(response)

    async def update_resource(
        self,
        resource_type: str,
        resource_id: str,
        resource: dict[str, Any],
    ) -> dict[str, Any]:
        """PUT /{type}/{id}."""
        response = await self._request(
            "PUT",
            f"/{resource_type}/{resource_id}",
            json=resource,
            not_found=ResourceNotFoundError(resource_type, resource_id),
        )
        return self._json(response)

    async def delete_resource(self, resource_type: str, resource_id: str) -> None:
        """DELETE /{type}/{id}."""
        await self._request(
            "DELETE",
            f"/{resource_type}/{resource_id}",
            not_found=ResourceNotFoundError(resource_type, resource_id),
        )

    async def process_bundle(self, bundle: dict[str, Any]) -> dict[str, Any]:
        """POST a transaction bundle to the FHIR base."""
        response = await self._request("POST", "", json=bundle)
        return self._json(response)


def extract_resources(bundle: dict[str, Any]) -> list[dict[str, Any]]:
    """Pull the resources out of a FHIR Bundle, skipping empty entries."""
    return [
        entry["resource"]
        for entry in bundle.get("entry") or []
        if entry.get("resource") is not None
    ]
