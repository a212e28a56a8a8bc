"""Vital sign operations: record and view observations."""

from __future__ import annotations

import time

from ..errors import StoreError
from ..fhir import display
from ..fhir.resources import (
    new_blood_pressure_observation,
    new_heart_rate_observation,
    new_weight_observation,
)
from ..protocols import Store
from .queries import search_by_patient
from .schemas import CreatedResourceOutput, OperationOutput, RecordVitalsInput


async def record_vitals(store: Store, input_data: RecordVitalsInput) -> CreatedResourceOutput:
    """Record a blood pressure, weight or heart rate observation.

    Args:
        store: Records store
        input_data: Patient, vital type and measured values

    Returns:
        CreatedResourceOutput with the observation ID, or error
    """
    patient_id = input_data.patient_id.strip()

    if input_data.vital_type == "bp":
        body = new_blood_pressure_observation(
            patient_id, input_data.systolic, input_data.diastolic
        )
    elif input_data.vital_type == "weight":
        body = new_weight_observation(patient_id, input_data.value)
    else:
        body = new_heart_rate_observation(patient_id, int(input_data.value))

    try:
        created = await store.create_resource("Observation", body)
    except StoreError as e:
        return CreatedResourceOutput(error=f"creating observation: {e}")

    observation_id = created.get("id", "")
    return CreatedResourceOutput(
        result=f"Recorded {input_data.vital_type} observation (ID: {observation_id})",
        resource_id=observation_id,
    )


async def view_vitals(store: Store, patient_id: str) -> OperationOutput:
    start = time.perf_counter()
    try:
        observations = await search_by_patient(store, "Observation", patient_id)
    except StoreError as e:
        return OperationOutput(error=str(e))
    elapsed_ms = (time.perf_counter() - start) * 1000

    if not observations:
        return OperationOutput(result="No observations found.", elapsed_ms=elapsed_ms)
    return OperationOutput(
        result=display.format_observation_list(observations),
        elapsed_ms=elapsed_ms,
        timing_note=f"Fetched {len(observations)} observations",
    )
