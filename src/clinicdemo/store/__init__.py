"""FHIR store backends for clinicdemo.

Two implementations of the ``Store`` protocol:
- FhirStoreClient: remote FHIR R4 server over HTTPS with OAuth2
- FhirJsonStore: local JSON files, one per resource

Usage:
    from clinicdemo.store import FhirJsonStore

    store = FhirJsonStore("data/fhir")
    patients = await store.search_resources("Patient")
"""

from .client import FhirStoreClient, extract_resources
from .local import FhirJsonStore

__all__ = [
    "FhirStoreClient",
    "FhirJsonStore",
    "extract_resources",
]
