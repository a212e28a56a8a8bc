"""Clinic operations over a FHIR records store.

Every operation takes the store as its first argument and returns a pydantic
output with either ``result`` text or an ``error`` message:
- register_patient, list_patients, view_patient, update_contact, delete_patient
- record_vitals, view_vitals
- record_diagnosis, view_diagnoses
- create_plan, add_activity, complete_activity, view_plan_status, clinic_dashboard
- patient_summary
- seed_sample_data, delete_seed_data

Usage:
    from clinicdemo.app import patient_summary
    from clinicdemo.store import FhirJsonStore

    output = await patient_summary(FhirJsonStore("data/fhir"), patient_id)
"""

from .conditions import record_diagnosis, view_diagnoses
from .observations import record_vitals, view_vitals
from .patients import (
    delete_patient,
    list_patients,
    register_patient,
    update_contact,
    view_patient,
)
from .plans import (
    add_activity,
    clinic_dashboard,
    complete_activity,
    create_plan,
    incomplete_activities,
    view_plan_status,
)
from .schemas import (
    AddActivityInput,
    CompleteActivityInput,
    CreatedResourceOutput,
    CreatePlanInput,
    OperationOutput,
    RecordDiagnosisInput,
    RecordVitalsInput,
    RegisterPatientInput,
    SeedOutput,
    UpdateContactInput,
)
from .seed import delete_seed_data, seed_sample_data
from .summary import patient_summary

__all__ = [
    # Patients
    "register_patient",
    "list_patients",
    "view_patient",
    "update_contact",
    "delete_patient",
    # Clinical records
    "record_vitals",
    "view_vitals",
    "record_diagnosis",
    "view_diagnoses",
    # Health plans
    "create_plan",
    "add_activity",
    "complete_activity",
    "incomplete_activities",
    "view_plan_status",
    "clinic_dashboard",
    # Summary and seeding
    "patient_summary",
    "seed_sample_data",
    "delete_seed_data",
    # Input schemas
    "RegisterPatientInput",
    "UpdateContactInput",
    "RecordVitalsInput",
    "RecordDiagnosisInput",
    "CreatePlanInput",
    "AddActivityInput",
    "CompleteActivityInput",
    # Output schemas
    "OperationOutput",
    "CreatedResourceOutput",
    "SeedOutput",
]
