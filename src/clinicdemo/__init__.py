"""clinicdemo - terminal demo for a FHIR R4 clinical-records store."""

# Lazy imports so importing the store does not pull in the CLI
def __getattr__(name: str):
    if name == "CompositeFetcher":
        from .fetch import CompositeFetcher
        return CompositeFetcher
    elif name == "FetchTask":
        from .fetch import FetchTask
        return FetchTask
    elif name == "FhirStoreClient":
        from .store import FhirStoreClient
        return FhirStoreClient
    elif name == "FhirJsonStore":
        from .store import FhirJsonStore
        return FhirJsonStore
    elif name == "Store":
        from .protocols import Store
        return Store
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")

__all__ = ["CompositeFetcher", "FetchTask", "FhirStoreClient", "FhirJsonStore", "Store"]
