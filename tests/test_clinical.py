"""Tests for vital sign and diagnosis operations."""

import pytest
from pydantic import ValidationError

from clinicdemo.app import (
    RecordDiagnosisInput,
    RecordVitalsInput,
    record_diagnosis,
    record_vitals,
    view_diagnoses,
    view_vitals,
)


class TestRecordVitalsInput:
    def test_bp_requires_both_pressures(self):
        with pytest.raises(ValidationError, match="systolic and diastolic are required"):
            RecordVitalsInput(patient_id="p1", vital_type="bp", systolic=120)

    def test_weight_requires_value(self):
        with pytest.raises(ValidationError, match="value is required for weight"):
            RecordVitalsInput(patient_id="p1", vital_type="weight")

    def test_heart_rate_must_be_whole(self):
        with pytest.raises(ValidationError, match="whole number"):
            RecordVitalsInput(patient_id="p1", vital_type="heart-rate", value=72.5)

    def test_rejects_non_positive_values(self):
        with pytest.raises(ValidationError):
            RecordVitalsInput(patient_id="p1", vital_type="weight", value=0)

    def test_unknown_type(self):
        with pytest.raises(ValidationError):
            RecordVitalsInput(patient_id="p1", vital_type="glucose", value=90)


@pytest.mark.asyncio
async def test_record_and_view_vitals(local_store):
    bp = await record_vitals(
        local_store,
        RecordVitalsInput(patient_id="p1", vital_type="bp", systolic=142, diastolic=91),
    )
    weight = await record_vitals(
        local_store, RecordVitalsInput(patient_id="p1", vital_type="weight", value=82.5)
    )
    heart = await record_vitals(
        local_store, RecordVitalsInput(patient_id="p1", vital_type="heart-rate", value=72)
    )
    await record_vitals(
        local_store, RecordVitalsInput(patient_id="p2", vital_type="weight", value=60)
    )

    assert bp.result == f"Recorded bp observation (ID: {bp.resource_id})"
    assert weight.error is None
    stored = await local_store.read_resource("Observation", heart.resource_id)
    assert stored["valueQuantity"]["value"] == 72
    assert isinstance(stored["valueQuantity"]["value"], int)

    output = await view_vitals(local_store, "p1")

    assert output.timing_note == "Fetched 3 observations"
    lines = output.result.splitlines()
    assert lines[0] == "Observations (3)"
    assert "  Blood Pressure    142/91 mmHg" in lines
    assert any(line.endswith("82.5 kg") for line in lines)


@pytest.mark.asyncio
async def test_view_vitals_empty(local_store):
    output = await view_vitals(local_store, "nobody")
    assert output.result == "No observations found."


@pytest.mark.asyncio
async def test_record_diagnosis_uppercases_code(local_store):
    output = await record_diagnosis(
        local_store,
        RecordDiagnosisInput(patient_id="p1", code=" e11.9 ", display=" Type 2 diabetes "),
    )

    assert output.result == f"Recorded condition E11.9 - Type 2 diabetes (ID: {output.resource_id})"
    condition = await local_store.read_resource("Condition", output.resource_id)
    assert condition["code"]["coding"][0]["code"] == "E11.9"
    assert condition["subject"] == {"reference": "Patient/p1"}


@pytest.mark.asyncio
async def test_view_diagnoses(local_store):
    assert (await view_diagnoses(local_store, "p1")).result == "No conditions found."

    await record_diagnosis(
        local_store, RecordDiagnosisInput(patient_id="p1", code="I10", display="Hypertension")
    )
    output = await view_diagnoses(local_store, "p1")

    assert output.result.splitlines() == ["Conditions (1)", "  Hypertension (I10)"]
    assert output.timing_note == "Fetched 1 conditions"
