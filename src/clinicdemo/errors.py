"""Error taxonomy shared by the store clients and the composite fetcher."""

from __future__ import annotations


class ConfigError(Exception):
    """Raised when required configuration is missing or invalid."""


class StoreError(Exception):
    """A store call failed (network, auth, server error, bad payload)."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class ResourceNotFoundError(StoreError):
    """Raised when a requested FHIR resource does not exist."""

    def __init__(self, resource_type: str, resource_id: str | None = None):
        if resource_id:
            message = f"{resource_type}/{resource_id} not found"
        else:
            message = f"{resource_type} not found"
        super().__init__(message, status_code=404)
        self.resource_type = resource_type
        self.resource_id = resource_id


class FetchTimeoutError(StoreError):
    """A fetch task was still pending when the composite deadline expired."""


class CompositeFetchError(Exception):
    """The single error surfaced by a composite fetch.

    ``label`` names the task whose failure was selected; the underlying
    failure is kept as ``__cause__``.
    """

    def __init__(self, message: str, label: str):
        super().__init__(message)
        self.label = label


class EntityNotFoundError(CompositeFetchError):
    """The selected failure was a not-found read, reworded for the operator."""
