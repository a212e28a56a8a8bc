"""Patient summary: four parallel store calls joined by CompositeFetcher.

Reads the Patient and searches its observations, conditions and care plans
(any status) at the same time. If several calls fail, the one reported
follows the task order below (patient first).
"""

from __future__ import annotations

from ..fetch import CompositeFetcher, FetchTask
from ..fhir import display
from ..protocols import Store
from .queries import search_by_patient
from .schemas import OperationOutput


def summary_tasks(store: Store, patient_id: str) -> list[FetchTask]:
    """The four summary fetches, highest error priority first."""

    async def read_patient():
        return [await store.read_resource("Patient", patient_id)]

    async def observations():
        return await search_by_patient(store, "Observation", patient_id)

    async def conditions():
        return await search_by_patient(store, "Condition", patient_id)

    async def care_plans():
        # No status filter: completed plans are listed too
        return await search_by_patient(store, "CarePlan", patient_id)

    return [
        FetchTask("patient", read_patient, action="reading"),
        FetchTask("observations", observations),
        FetchTask("conditions", conditions),
        FetchTask("care plans", care_plans),
    ]


async def patient_summary(
    store: Store,
    patient_id: str,
    fetcher: CompositeFetcher | None = None,
) -> OperationOutput:
    """Load and format a full patient summary.

    Args:
        store: Records store
        patient_id: Patient to summarise
        fetcher: Optional fetcher (e.g. one configured with a timeout)

    Returns:
        OperationOutput with the formatted summary, or the single
        highest-priority error
    """
    fetcher = fetcher or CompositeFetcher()
    tasks = summary_tasks(store, patient_id)
    outcome = await fetcher.run(tasks)
    elapsed_ms = outcome.elapsed * 1000

    if outcome.error is not None:
        return OperationOutput(error=str(outcome.error), elapsed_ms=elapsed_ms)

    [patient], observations, conditions, care_plans = outcome.results
    total = 1 + len(observations) + len(conditions) + len(care_plans)
    return OperationOutput(
        result=display.format_summary(patient, observations, conditions, care_plans),
        elapsed_ms=elapsed_ms,
        timing_note=(
            f"Loaded patient summary ({total} resources, {len(tasks)} parallel API calls)"
        ),
    )
