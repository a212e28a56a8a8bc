"""Diagnosis operations: record and view conditions."""

from __future__ import annotations

import time

from ..errors import StoreError
from ..fhir import display
from ..fhir.resources import new_condition
from ..protocols import Store
from .queries import search_by_patient
from .schemas import CreatedResourceOutput, OperationOutput, RecordDiagnosisInput


async def record_diagnosis(store: Store, input_data: RecordDiagnosisInput) -> CreatedResourceOutput:
    """Record an active ICD-10 coded condition for a patient."""
    code = input_data.code.strip().upper()
    label = input_data.display.strip()
    body = new_condition(input_data.patient_id.strip(), code, label)

    try:
        created = await store.create_resource("Condition", body)
    except StoreError as e:
        return CreatedResourceOutput(error=f"creating condition: {e}")

    condition_id = created.get("id", "")
    return CreatedResourceOutput(
        result=f"Recorded condition {code} - {label} (ID: {condition_id})",
        resource_id=condition_id,
    )


async def view_diagnoses(store: Store, patient_id: str) -> OperationOutput:
    start = time.perf_counter()
    try:
        conditions = await search_by_patient(store, "Condition", patient_id)
    except StoreError as e:
        return OperationOutput(error=str(e))
    elapsed_ms = (time.perf_counter() - start) * 1000

    if not conditions:
        return OperationOutput(result="No conditions found.", elapsed_ms=elapsed_ms)
    return OperationOutput(
        result=display.format_condition_list(conditions),
        elapsed_ms=elapsed_ms,
        timing_note=f"Fetched {len(conditions)} conditions",
    )
