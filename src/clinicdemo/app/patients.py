"""Patient management operations: register, list, view, update, delete."""

from __future__ import annotations

import time

from ..errors import ResourceNotFoundError, StoreError
from ..fhir import display
from ..fhir.resources import new_patient
from ..protocols import Store
from .queries import fetch_all_patients
from .schemas import (
    CreatedResourceOutput,
    OperationOutput,
    RegisterPatientInput,
    UpdateContactInput,
)


async def register_patient(store: Store, input_data: RegisterPatientInput) -> CreatedResourceOutput:
    """Create a Patient from the registration form.

    Args:
        store: Records store
        input_data: Name, birth date and gender

    Returns:
        CreatedResourceOutput with the new patient ID, or error
    """
    given = input_data.given.strip()
    family = input_data.family.strip()
    body = new_patient(given, family, input_data.birth_date, input_data.gender)

    try:
        created = await store.create_resource("Patient", body)
    except StoreError as e:
        return CreatedResourceOutput(error=f"creating patient: {e}")

    patient_id = created.get("id", "")
    return CreatedResourceOutput(
        result=f"Created patient {given} {family} (ID: {patient_id})",
        resource_id=patient_id,
    )


async def list_patients(store: Store) -> OperationOutput:
    """Fetch every patient (first page) as a table."""
    start = time.perf_counter()
    try:
        patients = await fetch_all_patients(store)
    except StoreError as e:
        return OperationOutput(error=f"searching patients: {e}")
    elapsed_ms = (time.perf_counter() - start) * 1000

    if not patients:
        return OperationOutput(result="No patients found.", elapsed_ms=elapsed_ms)
    return OperationOutput(
        result=display.format_patient_list(patients),
        elapsed_ms=elapsed_ms,
        timing_note=f"Fetched {len(patients)} patients",
    )


async def view_patient(store: Store, patient_id: str) -> OperationOutput:
    start = time.perf_counter()
    try:
        patient = await store.read_resource("Patient", patient_id)
    except ResourceNotFoundError:
        return OperationOutput(error=f"patient {patient_id} not found")
    except StoreError as e:
        return OperationOutput(error=f"reading patient: {e}")

    return OperationOutput(
        result=display.format_patient(patient),
        elapsed_ms=(time.perf_counter() - start) * 1000,
        timing_note="Loaded patient",
    )


async def update_contact(store: Store, input_data: UpdateContactInput) -> OperationOutput:
    """Append phone and/or email contact points to a patient.

    Reads the current Patient, appends to ``telecom`` and writes it back.
    Blank values are skipped; if both are blank nothing is written.
    """
    patient_id = input_data.patient_id.strip()
    phone = input_data.phone.strip()
    email = input_data.email.strip()

    if not phone and not email:
        return OperationOutput(result="No changes provided.")

    try:
        patient = await store.read_resource("Patient", patient_id)
    except StoreError as e:
        return OperationOutput(error=f"reading patient: {e}")

    telecoms = list(patient.get("telecom") or [])
    if phone:
        telecoms.append({"system": "phone", "value": phone})
    if email:
        telecoms.append({"system": "email", "value": email})
    patient["telecom"] = telecoms

    try:
        await store.update_resource("Patient", patient_id, patient)
    except StoreError as e:
        return OperationOutput(error=f"updating patient: {e}")

    return OperationOutput(result=f"Updated patient {patient_id}")


async def delete_patient(store: Store, patient_id: str) -> OperationOutput:
    try:
        await store.delete_resource("Patient", patient_id)
    except StoreError as e:
        return OperationOutput(error=f"deleting patient: {e}")
    return OperationOutput(result=f"Deleted patient {patient_id}")
