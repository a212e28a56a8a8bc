"""Store queries shared by several operations and the CLI pickers."""

from __future__ import annotations

from typing import Any

from ..errors import StoreError
from ..fhir.display import patient_name
from ..protocols import Store

PATIENT_PAGE_SIZE = 100
PATIENT_RECORDS_PAGE_SIZE = 50
TAG_PAGE_SIZE = 200


async def fetch_all_patients(store: Store) -> list[dict[str, Any]]:
    return await store.search_resources("Patient", {"_count": PATIENT_PAGE_SIZE})


async def search_by_patient(
    store: Store,
    resource_type: str,
    patient_id: str,
    **extra: str,
) -> list[dict[str, Any]]:
    """Search ``resource_type`` filtered to one patient."""
    params: dict[str, Any] = {"patient": patient_id, "_count": PATIENT_RECORDS_PAGE_SIZE}
    params.update(extra)
    return await store.search_resources(resource_type, params)


async def search_care_plans(store: Store, patient_id: str) -> list[dict[str, Any]]:
    """Active care plans for one patient."""
    return await search_by_patient(store, "CarePlan", patient_id, status="active")


async def search_active_care_plans(store: Store) -> list[dict[str, Any]]:
    """Active care plans across every patient."""
    return await store.search_resources(
        "CarePlan", {"status": "active", "_count": PATIENT_PAGE_SIZE}
    )


async def search_ids_by_tag(store: Store, resource_type: str, tag: str) -> list[str]:
    """IDs of resources carrying the ``system|code`` meta tag."""
    resources = await store.search_resources(
        resource_type, {"_tag": tag, "_count": TAG_PAGE_SIZE}
    )
    return [r["id"] for r in resources if r.get("id")]


async def resolve_patient_name(store: Store, patient_id: str) -> str:
    """Display name for a patient, falling back to the id if unreadable."""
    try:
        patient = await store.read_resource("Patient", patient_id)
    except StoreError:
        return patient_id
    return patient_name(patient)
