"""Health plan operations and the clinic dashboard.

Care plan activities are edited read-modify-write: the CarePlan is read,
its ``activity`` list changed in memory, and the whole resource PUT back.
"""

from __future__ import annotations

import logging
import time
from typing import Any

from ..errors import StoreError
from ..fhir import display
from ..fhir.resources import new_care_plan, new_care_plan_activity
from ..protocols import Store
from .queries import resolve_patient_name, search_active_care_plans, search_care_plans
from .schemas import (
    AddActivityInput,
    CompleteActivityInput,
    CreatedResourceOutput,
    CreatePlanInput,
    OperationOutput,
)

logger = logging.getLogger(__name__)


async def create_plan(store: Store, input_data: CreatePlanInput) -> CreatedResourceOutput:
    """Create an active CarePlan with no activities."""
    title = input_data.title.strip()
    body = new_care_plan(input_data.patient_id.strip(), title)

    try:
        created = await store.create_resource("CarePlan", body)
    except StoreError as e:
        return CreatedResourceOutput(error=f"creating care plan: {e}")

    plan_id = created.get("id", "")
    return CreatedResourceOutput(
        result=f'Created health plan "{title}" (ID: {plan_id})',
        resource_id=plan_id,
    )


async def add_activity(store: Store, input_data: AddActivityInput) -> OperationOutput:
    """Append a not-started activity to a care plan.

    Args:
        store: Records store
        input_data: Care plan ID, description and optional due date

    Returns:
        OperationOutput with confirmation or error
    """
    description = input_data.description.strip()
    try:
        care_plan = await store.read_resource("CarePlan", input_data.care_plan_id)
    except StoreError as e:
        return OperationOutput(error=f"reading care plan: {e}")

    activities = list(care_plan.get("activity") or [])
    activities.append(new_care_plan_activity(description, due=input_data.due))
    care_plan["activity"] = activities

    try:
        await store.update_resource("CarePlan", input_data.care_plan_id, care_plan)
    except StoreError as e:
        return OperationOutput(error=f"updating care plan: {e}")

    return OperationOutput(result=f"Added activity: {description}")


def incomplete_activities(care_plan: dict[str, Any]) -> list[tuple[int, str]]:
    """(index, description) for every activity not yet completed.

    Indexes point into ``CarePlan.activity`` so they can be passed straight
    to complete_activity.
    """
    pending = []
    for i, activity in enumerate(care_plan.get("activity") or []):
        if not isinstance(activity, dict):
            continue
        detail = activity.get("detail")
        if not isinstance(detail, dict) or detail.get("status") == "completed":
            continue
        pending.append((i, detail.get("description", "")))
    return pending


async def complete_activity(store: Store, input_data: CompleteActivityInput) -> OperationOutput:
    """Mark one activity completed; completes the plan when nothing is left.

    Args:
        store: Records store
        input_data: Care plan ID and the activity index

    Returns:
        OperationOutput with confirmation or error
    """
    try:
        care_plan = await store.read_resource("CarePlan", input_data.care_plan_id)
    except StoreError as e:
        return OperationOutput(error=f"reading care plan: {e}")

    activities = care_plan.get("activity") or []
    if not activities:
        return OperationOutput(result="No activities in this care plan.")

    index = input_data.activity_index
    if index >= len(activities):
        return OperationOutput(error=f"activity {index + 1} does not exist in this care plan")
    activity = activities[index]
    detail = activity.get("detail") if isinstance(activity, dict) else None
    if not isinstance(detail, dict):
        return OperationOutput(error=f"activity {index + 1} has no detail to complete")
    if detail.get("status") == "completed":
        return OperationOutput(result="Activity is already completed.")

    detail["status"] = "completed"
    done, total = display.care_plan_progress(care_plan)
    all_done = done == total
    if all_done:
        care_plan["status"] = "completed"

    try:
        await store.update_resource("CarePlan", input_data.care_plan_id, care_plan)
    except StoreError as e:
        return OperationOutput(error=f"updating care plan: {e}")

    lines = [f"Completed activity: {detail.get('description', '')}"]
    if all_done:
        lines.append("All activities completed - plan marked as completed.")
    return OperationOutput(result="\n".join(lines))


async def view_plan_status(store: Store, patient_id: str) -> OperationOutput:
    start = time.perf_counter()
    try:
        plans = await search_care_plans(store, patient_id)
    except StoreError as e:
        return OperationOutput(error=f"searching care plans: {e}")
    elapsed_ms = (time.perf_counter() - start) * 1000

    if not plans:
        return OperationOutput(result="No active health plans found.", elapsed_ms=elapsed_ms)
    return OperationOutput(
        result=display.format_care_plan_list(plans),
        elapsed_ms=elapsed_ms,
        timing_note=f"Fetched {len(plans)} care plans",
    )


async def clinic_dashboard(store: Store) -> OperationOutput:
    """Outstanding activities of every active plan, grouped by patient.

    Patient names are resolved once per patient; plans keep the order the
    store returned them in.
    """
    start = time.perf_counter()
    try:
        care_plans = await search_active_care_plans(store)
    except StoreError as e:
        return OperationOutput(error=f"searching care plans: {e}")
    elapsed_ms = (time.perf_counter() - start) * 1000

    if not care_plans:
        return OperationOutput(result="No active health plans found.", elapsed_ms=elapsed_ms)

    names: dict[str, str] = {}
    plans = []
    for care_plan in care_plans:
        patient_id = display.patient_ref(care_plan)
        if patient_id not in names:
            names[patient_id] = await resolve_patient_name(store, patient_id)
        plans.append(display.dashboard_plan(care_plan, names[patient_id]))

    logger.debug(f"[DASHBOARD] {len(care_plans)} plans across {len(names)} patients")
    return OperationOutput(
        result=display.format_clinic_dashboard(plans),
        elapsed_ms=elapsed_ms,
        timing_note=(
            f"Fetched {len(care_plans)} active care plans across {len(names)} patients"
        ),
    )
