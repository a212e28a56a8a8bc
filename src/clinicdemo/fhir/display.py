"""Plain-text formatting of FHIR resources for the terminal.

Every function returns a string (or list of lines); printing is left to
the CLI.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from .resources import LAB_LOINC_CODES

CHECK_DONE = "[x]"
CHECK_ACTIVE = "[~]"
CHECK_OPEN = "[ ]"


# ======================================================================
# Field helpers
# ======================================================================


def patient_name(patient: dict[str, Any]) -> str:
    """First given name plus family name, or "(unknown)"."""
    names = patient.get("name") or []
    if not names or not isinstance(names[0], dict):
        return "(unknown)"
    name_obj = names[0]
    givens = name_obj.get("given") or []
    given = givens[0] if givens else ""
    family = name_obj.get("family", "")
    return f"{given} {family}".strip() or "(unknown)"


def patient_ref(resource: dict[str, Any]) -> str:
    """Patient id from a ``subject`` reference like ``Patient/abc123``."""
    subject = resource.get("subject") or {}
    ref = subject.get("reference", "")
    return ref.removeprefix("Patient/")


def _codeable_text(cc: dict[str, Any]) -> str:
    """Human-readable text from a CodeableConcept (text first, then coding display)."""
    if cc.get("text"):
        return cc["text"]
    codings = cc.get("coding") or []
    return codings[0].get("display", "") if codings else ""


def _primary_code(cc: dict[str, Any]) -> str:
    codings = cc.get("coding") or []
    return codings[0].get("code", "") if codings else ""


def _format_number(value: Any) -> str:
    """Integers without decimals, everything else with one decimal."""
    try:
        number = float(value)
    except (TypeError, ValueError):
        return ""
    if number == int(number):
        return str(int(number))
    return f"{number:.1f}"


def care_plan_progress(care_plan: dict[str, Any]) -> tuple[int, int]:
    """Count (completed, total) activities that carry a ``detail``."""
    completed = total = 0
    for activity in _activity_details(care_plan):
        total += 1
        if activity.get("status") == "completed":
            completed += 1
    return completed, total


def _activity_details(care_plan: dict[str, Any]) -> list[dict[str, Any]]:
    details = []
    for activity in care_plan.get("activity") or []:
        if isinstance(activity, dict) and isinstance(activity.get("detail"), dict):
            details.append(activity["detail"])
    return details


def _percent(done: int, total: int) -> int:
    return done * 100 // total if total else 0


def _check_mark(status: str) -> str:
    if status == "completed":
        return CHECK_DONE
    if status == "in-progress":
        return CHECK_ACTIVE
    return CHECK_OPEN


def is_lab_result(observation: dict[str, Any]) -> bool:
    return _primary_code(observation.get("code") or {}) in LAB_LOINC_CODES


def format_duration(seconds: float) -> str:
    """``842ms`` below one second, ``1.3s`` above."""
    if seconds < 1:
        return f"{int(seconds * 1000)}ms"
    return f"{seconds:.1f}s"


# ======================================================================
# Patients
# ======================================================================


def format_patient(patient: dict[str, Any]) -> str:
    """Patient block: header, gender, birth date, telecoms, first address."""
    label_width = 14
    lines = [f"Patient: {patient_name(patient)} ({patient.get('id', '')})"]
    lines.append(f"  {'Gender:':<{label_width}}{patient.get('gender', '')}")
    lines.append(f"  {'Born:':<{label_width}}{patient.get('birthDate', '')}")

    for telecom in patient.get("telecom") or []:
        system = telecom.get("system", "")
        label = f"{system[:1].upper()}{system[1:]}:"
        lines.append(f"  {label:<{label_width}}{telecom.get('value', '')}")

    addresses = patient.get("address") or []
    if addresses:
        address = addresses[0]
        parts = []
        address_lines = address.get("line") or []
        if address_lines:
            parts.append(address_lines[0])
        city = address.get("city", "")
        if city:
            city_part = city
            if address.get("state"):
                city_part += f", {address['state']}"
            if address.get("postalCode"):
                city_part += f" {address['postalCode']}"
            parts.append(city_part)
        if parts:
            lines.append(f"  {'Address:':<{label_width}}{', '.join(parts)}")

    return "\n".join(lines)


def format_patient_list(patients: list[dict[str, Any]]) -> str:
    lines = [f"Patients ({len(patients)})"]
    for patient in patients:
        lines.append(
            f"  {patient.get('id', ''):<36}  {patient_name(patient):<20}  "
            f"{patient.get('gender', ''):<8}  {patient.get('birthDate', '')}"
        )
    return "\n".join(lines)


# ======================================================================
# Observations and conditions
# ======================================================================


def format_observation(observation: dict[str, Any]) -> str | None:
    """One line: display text and value (``Blood Pressure  142/91 mmHg``)."""
    display = (observation.get("code") or {}).get("text", "")

    components = observation.get("component") or []
    if len(components) >= 2:
        systolic = _format_number((components[0].get("valueQuantity") or {}).get("value"))
        diastolic = _format_number((components[1].get("valueQuantity") or {}).get("value"))
        return f"  {display:<16}  {systolic}/{diastolic} mmHg"

    quantity = observation.get("valueQuantity")
    if quantity:
        value = _format_number(quantity.get("value"))
        return f"  {display:<16}  {value} {quantity.get('unit', '')}".rstrip()
    return None


def format_observation_list(observations: list[dict[str, Any]], title: str = "Observations") -> str:
    lines = [f"{title} ({len(observations)})"]
    for observation in observations:
        line = format_observation(observation)
        if line:
            lines.append(line)
    return "\n".join(lines)


def format_condition(condition: dict[str, Any]) -> str | None:
    code = condition.get("code")
    if not code:
        return None
    display = _codeable_text(code)
    icd = _primary_code(code)
    if icd:
        return f"  {display} ({icd})"
    return f"  {display}"


def format_condition_list(conditions: list[dict[str, Any]]) -> str:
    lines = [f"Conditions ({len(conditions)})"]
    for condition in conditions:
        line = format_condition(condition)
        if line:
            lines.append(line)
    return "\n".join(lines)


# ======================================================================
# Care plans
# ======================================================================


def format_care_plan(care_plan: dict[str, Any]) -> str:
    """Plan header, progress line and numbered activity checklist."""
    done, total = care_plan_progress(care_plan)
    lines = [
        f"Health Plan: {care_plan.get('title', '')} "
        f"({care_plan.get('status', '')}) [{care_plan.get('id', '')}]"
    ]
    if total:
        lines.append(f"  Progress: {done}/{total} complete ({_percent(done, total)}%)")

    for i, detail in enumerate(_activity_details(care_plan), 1):
        line = f"  {i}. {_check_mark(detail.get('status', ''))} {detail.get('description', '')}"
        if detail.get("scheduledString"):
            line += f"  ({detail['scheduledString']})"
        lines.append(line)
    return "\n".join(lines)


def format_care_plan_list(care_plans: list[dict[str, Any]]) -> str:
    return "\n\n".join(format_care_plan(plan) for plan in care_plans)


@dataclass
class DashboardItem:
    """An activity that is not yet completed."""

    description: str
    status: str
    schedule_note: str = ""


@dataclass
class DashboardPlan:
    """A care plan with its patient name, for the clinic dashboard."""

    patient_name: str
    title: str
    completed: int = 0
    total: int = 0
    outstanding: list[DashboardItem] = field(default_factory=list)


def dashboard_plan(care_plan: dict[str, Any], patient_name: str) -> DashboardPlan:
    plan = DashboardPlan(patient_name=patient_name, title=care_plan.get("title", ""))
    for detail in _activity_details(care_plan):
        plan.total += 1
        if detail.get("status") == "completed":
            plan.completed += 1
        else:
            plan.outstanding.append(
                DashboardItem(
                    description=detail.get("description", ""),
                    status=detail.get("status", ""),
                    schedule_note=detail.get("scheduledString", ""),
                )
            )
    return plan


def format_clinic_dashboard(plans: list[DashboardPlan]) -> str:
    """Outstanding items grouped by patient, in the order given."""
    if not plans:
        return "No outstanding items."

    lines = ["Clinic Dashboard - Outstanding Items", ""]
    current_patient = None
    for plan in plans:
        if plan.patient_name != current_patient:
            if current_patient is not None:
                lines.append("")
            current_patient = plan.patient_name
            lines.append(plan.patient_name)
        lines.append(
            f"  {plan.title}  ({plan.completed}/{plan.total} complete, "
            f"{_percent(plan.completed, plan.total)}%)"
        )
        for item in plan.outstanding:
            line = f"    {_check_mark(item.status)} {item.description}"
            if item.schedule_note:
                line += f"  ({item.schedule_note})"
            lines.append(line)
    return "\n".join(lines)


# ======================================================================
# Patient summary
# ======================================================================


def format_summary(
    patient: dict[str, Any],
    observations: list[dict[str, Any]],
    conditions: list[dict[str, Any]],
    care_plans: list[dict[str, Any]],
) -> str:
    """Patient block followed by vitals, labs, conditions and plans."""
    vitals = [o for o in observations if not is_lab_result(o)]
    labs = [o for o in observations if is_lab_result(o)]

    sections = [format_patient(patient)]
    if vitals:
        sections.append(format_observation_list(vitals, title="Vital Signs"))
    if labs:
        sections.append(format_observation_list(labs, title="Lab Results"))
    if conditions:
        sections.append(format_condition_list(conditions))
    for plan in care_plans:
        sections.append(format_care_plan(plan))
    return "\n\n".join(sections)
