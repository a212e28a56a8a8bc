"""FHIR R4 resource builders.

Pure functions returning resource dicts ready to POST. Patient arguments
accept a bare id (``abc123``), a full reference (``Patient/abc123``) or a
transaction placeholder (``urn:uuid:patient-1``).
"""

from __future__ import annotations

from typing import Any

LOINC = "http://loinc.org"
UCUM = "http://unitsofmeasure.org"
ICD10 = "http://hl7.org/fhir/sid/icd-10-cm"
CONDITION_CLINICAL = "http://terminology.hl7.org/CodeSystem/condition-clinical"

# LOINC codes for lab results (everything else is treated as a vital sign)
LAB_LOINC_CODES = {
    "2345-7",  # Blood Glucose
    "2093-3",  # Total Cholesterol
    "4548-4",  # HbA1c
    "2160-0",  # Creatinine
    "33914-3",  # eGFR
}

GENDERS = ("male", "female", "other", "unknown")


def patient_reference(patient_id: str) -> str:
    """Build a subject reference for a patient id or placeholder."""
    if patient_id.startswith(("urn:", "Patient/")):
        return patient_id
    return f"Patient/{patient_id}"


def _loinc(code: str, display: str, text: str | None = None) -> dict[str, Any]:
    concept: dict[str, Any] = {
        "coding": [{"system": LOINC, "code": code, "display": display}],
    }
    if text:
        concept["text"] = text
    return concept


def _quantity(value: float, unit: str, code: str) -> dict[str, Any]:
    return {"value": value, "unit": unit, "system": UCUM, "code": code}


def new_patient(
    given: str,
    family: str,
    birth_date: str,
    gender: str,
    phone: str = "",
    email: str = "",
    address: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Build a Patient with optional telecoms and a single address."""
    patient: dict[str, Any] = {
        "resourceType": "Patient",
        "name": [{"given": [given], "family": family}],
        "birthDate": birth_date,
        "gender": gender,
    }
    telecoms = []
    if phone:
        telecoms.append({"system": "phone", "value": phone})
    if email:
        telecoms.append({"system": "email", "value": email})
    if telecoms:
        patient["telecom"] = telecoms
    if address:
        patient["address"] = [address]
    return patient


def new_address(line: str, city: str, state: str, postal_code: str) -> dict[str, Any]:
    address: dict[str, Any] = {"city": city, "state": state, "postalCode": postal_code}
    if line:
        address["line"] = [line]
    return address


def new_blood_pressure_observation(patient_id: str, systolic: int, diastolic: int) -> dict[str, Any]:
    """Blood pressure panel with systolic and diastolic components."""
    return {
        "resourceType": "Observation",
        "status": "final",
        "code": _loinc("85354-9", "Blood pressure panel", "Blood Pressure"),
        "subject": {"reference": patient_reference(patient_id)},
        "component": [
            {
                "code": _loinc("8480-6", "Systolic blood pressure"),
                "valueQuantity": _quantity(systolic, "mmHg", "mm[Hg]"),
            },
            {
                "code": _loinc("8462-4", "Diastolic blood pressure"),
                "valueQuantity": _quantity(diastolic, "mmHg", "mm[Hg]"),
            },
        ],
    }


def _simple_observation(
    patient_id: str,
    loinc_code: str,
    loinc_display: str,
    text: str,
    value: float,
    unit: str,
    unit_code: str,
) -> dict[str, Any]:
    return {
        "resourceType": "Observation",
        "status": "final",
        "code": _loinc(loinc_code, loinc_display, text),
        "subject": {"reference": patient_reference(patient_id)},
        "valueQuantity": _quantity(value, unit, unit_code),
    }


def new_weight_observation(patient_id: str, kg: float) -> dict[str, Any]:
    return _simple_observation(patient_id, "29463-7", "Body weight", "Weight", kg, "kg", "kg")


def new_heart_rate_observation(patient_id: str, bpm: int) -> dict[str, Any]:
    return _simple_observation(patient_id, "8867-4", "Heart rate", "Heart Rate", bpm, "bpm", "/min")


def new_temperature_observation(patient_id: str, celsius: float) -> dict[str, Any]:
    return _simple_observation(
        patient_id, "8310-5", "Body temperature", "Temperature", celsius, "°C", "Cel"
    )


def new_oxygen_saturation_observation(patient_id: str, percent: int) -> dict[str, Any]:
    return _simple_observation(
        patient_id, "2708-6", "Oxygen saturation", "O2 Saturation", percent, "%", "%"
    )


def new_respiratory_rate_observation(patient_id: str, per_min: int) -> dict[str, Any]:
    return _simple_observation(
        patient_id, "9279-1", "Respiratory rate", "Respiratory Rate", per_min, "/min", "/min"
    )


def new_blood_glucose_observation(patient_id: str, mg_dl: float) -> dict[str, Any]:
    return _simple_observation(
        patient_id, "2345-7", "Glucose [Mass/volume] in Blood", "Blood Glucose",
        mg_dl, "mg/dL", "mg/dL",
    )


def new_total_cholesterol_observation(patient_id: str, mg_dl: float) -> dict[str, Any]:
    return _simple_observation(
        patient_id, "2093-3", "Cholesterol [Mass/volume] in Serum or Plasma",
        "Total Cholesterol", mg_dl, "mg/dL", "mg/dL",
    )


def new_bmi_observation(patient_id: str, value: float) -> dict[str, Any]:
    return _simple_observation(patient_id, "39156-5", "Body mass index", "BMI", value, "kg/m2", "kg/m2")


def new_hba1c_observation(patient_id: str, percent: float) -> dict[str, Any]:
    return _simple_observation(
        patient_id, "4548-4", "Hemoglobin A1c/Hemoglobin.total in Blood", "HbA1c",
        percent, "%", "%",
    )


def new_creatinine_observation(patient_id: str, mg_dl: float) -> dict[str, Any]:
    return _simple_observation(
        patient_id, "2160-0", "Creatinine [Mass/volume] in Serum or Plasma", "Creatinine",
        mg_dl, "mg/dL", "mg/dL",
    )


def new_egfr_observation(patient_id: str, value: float) -> dict[str, Any]:
    return _simple_observation(
        patient_id, "33914-3", "Glomerular filtration rate/1.73 sq M.predicted", "eGFR",
        value, "mL/min/1.73m2", "mL/min/{1.73_m2}",
    )


def new_condition(patient_id: str, icd10_code: str, display: str) -> dict[str, Any]:
    """Active Condition coded with ICD-10-CM."""
    return {
        "resourceType": "Condition",
        "clinicalStatus": {"coding": [{"system": CONDITION_CLINICAL, "code": "active"}]},
        "code": {
            "coding": [{"system": ICD10, "code": icd10_code, "display": display}],
            "text": display,
        },
        "subject": {"reference": patient_reference(patient_id)},
    }


def new_care_plan(
    patient_id: str,
    title: str,
    activities: list[dict[str, Any]] | None = None,
) -> dict[str, Any]:
    return {
        "resourceType": "CarePlan",
        "status": "active",
        "intent": "plan",
        "title": title,
        "subject": {"reference": patient_reference(patient_id)},
        "activity": list(activities or []),
    }


def new_care_plan_activity(
    description: str,
    due: str = "",
    status: str = "not-started",
    schedule: str = "",
) -> dict[str, Any]:
    """CarePlan.activity entry; ``due`` becomes ``scheduledString: "By {due}"``."""
    detail: dict[str, Any] = {"status": status, "description": description}
    if due:
        detail["scheduledString"] = f"By {due}"
    elif schedule:
        detail["scheduledString"] = schedule
    return {"detail": detail}


def bundle_entry(resource_type: str, resource: dict[str, Any], full_url: str = "") -> dict[str, Any]:
    """Transaction bundle entry for a POST."""
    entry: dict[str, Any] = {
        "resource": resource,
        "request": {"method": "POST", "url": resource_type},
    }
    if full_url:
        entry["fullUrl"] = full_url
    return entry


def transaction_bundle(entries: list[dict[str, Any]]) -> dict[str, Any]:
    return {"resourceType": "Bundle", "type": "transaction", "entry": entries}
