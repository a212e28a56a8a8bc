"""Pydantic schemas for clinic operations.

Input schemas validate what the operator typed; output schemas carry the
formatted result or an error message back to the menu layer.
"""

from __future__ import annotations

from datetime import date
from typing import Literal

from pydantic import BaseModel, Field, field_validator, model_validator

from ..fhir.resources import GENDERS


def _check_date(value: str) -> str:
    """Require YYYY-MM-DD."""
    try:
        date.fromisoformat(value)
    except ValueError:
        raise ValueError(f"'{value}' is not a date in YYYY-MM-DD format") from None
    return value


# =============================================================================
# Outputs
# =============================================================================


class OperationOutput(BaseModel):
    """Output schema shared by every operation."""

    result: str = Field("", description="Formatted result text")
    error: str | None = Field(None, description="Error message if the operation failed")
    elapsed_ms: float | None = Field(None, description="Store round-trip time")
    timing_note: str | None = Field(
        None,
        description="What the timed call did (e.g. 'Fetched 5 patients')",
    )


class CreatedResourceOutput(OperationOutput):
    """Output for operations that create a resource."""

    resource_id: str | None = Field(None, description="ID assigned by the store")


class SeedOutput(OperationOutput):
    """Output for seeding and seed cleanup."""

    created: int = Field(0, description="Resources created")
    deleted: int = Field(0, description="Resources deleted")


# =============================================================================
# Patients
# =============================================================================


class RegisterPatientInput(BaseModel):
    """Input schema for registering a patient."""

    given: str = Field(..., description="First name", min_length=1)
    family: str = Field(..., description="Last name", min_length=1)
    birth_date: str = Field(..., description="Date of birth in YYYY-MM-DD format")
    gender: Literal["male", "female", "other", "unknown"] = Field(
        ...,
        description=f"Administrative gender ({', '.join(GENDERS)})",
    )

    @field_validator("birth_date")
    @classmethod
    def _birth_date_format(cls, value: str) -> str:
        return _check_date(value.strip())


class UpdateContactInput(BaseModel):
    """Input schema for appending phone/email contact points."""

    patient_id: str = Field(..., description="Unique patient identifier", min_length=1)
    phone: str = Field("", description="Phone number (blank to skip)")
    email: str = Field("", description="Email address (blank to skip)")


# =============================================================================
# Clinical records
# =============================================================================


class RecordVitalsInput(BaseModel):
    """Input schema for recording a vital sign observation."""

    patient_id: str = Field(..., description="Unique patient identifier", min_length=1)
    vital_type: Literal["bp", "weight", "heart-rate"] = Field(
        ...,
        description="Blood pressure, body weight or heart rate",
    )
    systolic: int | None = Field(None, description="Systolic pressure (mmHg)", gt=0)
    diastolic: int | None = Field(None, description="Diastolic pressure (mmHg)", gt=0)
    value: float | None = Field(None, description="Weight (kg) or heart rate (bpm)", gt=0)

    @model_validator(mode="after")
    def _values_for_type(self) -> RecordVitalsInput:
        if self.vital_type == "bp":
            if self.systolic is None or self.diastolic is None:
                raise ValueError("systolic and diastolic are required for blood pressure")
        elif self.value is None:
            raise ValueError(f"value is required for {self.vital_type}")
        elif self.vital_type == "heart-rate" and self.value != int(self.value):
            raise ValueError("heart rate must be a whole number")
        return self


class RecordDiagnosisInput(BaseModel):
    """Input schema for recording a condition."""

    patient_id: str = Field(..., description="Unique patient identifier", min_length=1)
    code: str = Field(..., description="ICD-10 code (e.g., I10)", min_length=1)
    display: str = Field(..., description="Display name (e.g., Hypertension)", min_length=1)


# =============================================================================
# Health plans
# =============================================================================


class CreatePlanInput(BaseModel):
    """Input schema for creating a care plan."""

    patient_id: str = Field(..., description="Unique patient identifier", min_length=1)
    title: str = Field(..., description="Plan title", min_length=1)


class AddActivityInput(BaseModel):
    """Input schema for appending an activity to a care plan."""

    care_plan_id: str = Field(..., description="CarePlan identifier", min_length=1)
    description: str = Field(..., description="Activity description", min_length=1)
    due: str = Field("", description="Optional due date in YYYY-MM-DD format")

    @field_validator("due")
    @classmethod
    def _due_format(cls, value: str) -> str:
        value = value.strip()
        return _check_date(value) if value else value


class CompleteActivityInput(BaseModel):
    """Input schema for marking an activity completed."""

    care_plan_id: str = Field(..., description="CarePlan identifier", min_length=1)
    activity_index: int = Field(..., description="Zero-based index into CarePlan.activity", ge=0)
