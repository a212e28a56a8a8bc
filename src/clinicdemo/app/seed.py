"""Seed the store with sample clinic patients, and remove them again.

Every seeded resource carries the meta tag ``clinicdemo|seed`` so cleanup
only ever touches sample data, never records the operator created.

Usage:
    # Seed a local JSON store
    python -m clinicdemo.app.seed --data-dir data/fhir

    # Remove the sample data again
    python -m clinicdemo.app.seed --data-dir data/fhir --clean
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import time
from collections import Counter
from typing import Any

from ..errors import StoreError
from ..fhir import resources as fhir
from ..protocols import Store
from .queries import search_ids_by_tag
from .schemas import SeedOutput

logger = logging.getLogger(__name__)

SEED_TAG_SYSTEM = "clinicdemo"
SEED_TAG_CODE = "seed"
SEED_TAG_QUERY = f"{SEED_TAG_SYSTEM}|{SEED_TAG_CODE}"

# Dependents before patients to avoid dangling references
CLEANUP_ORDER = ("CarePlan", "Observation", "Condition", "Patient")

_OBSERVATION_BUILDERS = {
    "bp": fhir.new_blood_pressure_observation,
    "weight": fhir.new_weight_observation,
    "heart_rate": fhir.new_heart_rate_observation,
    "temperature": fhir.new_temperature_observation,
    "spo2": fhir.new_oxygen_saturation_observation,
    "respiratory_rate": fhir.new_respiratory_rate_observation,
    "bmi": fhir.new_bmi_observation,
    "glucose": fhir.new_blood_glucose_observation,
    "cholesterol": fhir.new_total_cholesterol_observation,
    "hba1c": fhir.new_hba1c_observation,
    "creatinine": fhir.new_creatinine_observation,
    "egfr": fhir.new_egfr_observation,
}

# Five patients with vitals, labs, conditions and care plans. Activities are
# (description, status, schedule).
SAMPLE_PATIENTS: list[dict[str, Any]] = [
    {
        # Hypertension and anxiety, on a low-sodium diet plan
        "given": "Maria", "family": "Garcia", "birth_date": "1985-03-22", "gender": "female",
        "phone": "555-0101", "email": "maria.garcia@email.com",
        "address": ("Rua das Flores 142", "Rio de Janeiro", "RJ", "20040-020"),
        "observations": [
            ("bp", 142, 91), ("bp", 138, 88), ("weight", 68.2), ("heart_rate", 78),
            ("temperature", 36.6), ("spo2", 97), ("respiratory_rate", 16), ("bmi", 24.8),
            ("cholesterol", 218), ("glucose", 92),
        ],
        "conditions": [
            ("I10", "Essential Hypertension"),
            ("F41.1", "Generalized Anxiety Disorder"),
        ],
        "care_plans": [
            ("Hypertension Management", [
                ("Initial blood pressure screening", "completed", ""),
                ("Start low-sodium diet program", "in-progress", "By 2025-04-15"),
                ("Follow-up BP check in 30 days", "not-started", "By 2025-05-01"),
                ("Evaluate need for medication adjustment", "not-started", "By 2025-06-01"),
            ]),
            ("Mental Health Support", [
                ("PHQ-9 screening questionnaire", "completed", ""),
                ("Cognitive behavioral therapy referral", "completed", ""),
                ("4-week therapy check-in", "not-started", "By 2025-05-15"),
            ]),
        ],
    },
    {
        # Healthy wellness visit, mild seasonal allergies
        "given": "Wei", "family": "Chen", "birth_date": "1992-07-14", "gender": "male",
        "phone": "555-0202", "email": "",
        "address": ("Av. Atlântica 1702", "Rio de Janeiro", "RJ", "22021-001"),
        "observations": [
            ("bp", 118, 76), ("weight", 79.5), ("heart_rate", 68), ("temperature", 36.5),
            ("spo2", 99), ("respiratory_rate", 14), ("bmi", 24.1),
            ("cholesterol", 185), ("glucose", 88),
        ],
        "conditions": [("J30.2", "Seasonal Allergic Rhinitis")],
        "care_plans": [
            ("Annual Wellness", [
                ("Comprehensive metabolic panel", "completed", ""),
                ("Lipid panel blood draw", "completed", ""),
                ("Flu vaccination", "not-started", "By 2025-10-01"),
                ("Schedule next annual physical", "not-started", "By 2026-03-01"),
            ]),
        ],
    },
    {
        # Diabetes, hypertension and obesity; two active plans
        "given": "Alex", "family": "Thompson", "birth_date": "1978-11-03", "gender": "other",
        "phone": "555-0303", "email": "alex.t@email.com",
        "address": ("Rua Visconde de Pirajá 330", "Rio de Janeiro", "RJ", "22410-002"),
        "observations": [
            ("bp", 148, 94), ("bp", 145, 92), ("weight", 104.3), ("weight", 101.8),
            ("heart_rate", 88), ("temperature", 36.8), ("spo2", 96), ("respiratory_rate", 18),
            ("bmi", 36.2), ("hba1c", 7.8), ("glucose", 156), ("cholesterol", 242),
            ("creatinine", 1.1),
        ],
        "conditions": [
            ("E11.9", "Type 2 Diabetes Mellitus"),
            ("I10", "Essential Hypertension"),
            ("E66.01", "Morbid Obesity due to Excess Calories"),
        ],
        "care_plans": [
            ("Diabetes Care Plan", [
                ("HbA1c lab test", "completed", ""),
                ("Start metformin 500mg twice daily", "completed", ""),
                ("Diabetic retinal exam", "not-started", "By 2025-06-01"),
                ("Complete diabetes self-management education", "not-started", "By 2025-05-15"),
                ("Repeat HbA1c in 3 months", "not-started", "By 2025-07-01"),
            ]),
            ("Weight Management", [
                ("Nutrition counseling intake session", "completed", ""),
                ("Begin supervised exercise program (3x/week)", "in-progress", ""),
                ("Monthly weigh-in and progress review", "not-started", "By 2025-05-01"),
                ("Evaluate for bariatric surgery referral if <5% loss in 6 months",
                 "not-started", "By 2025-10-01"),
            ]),
        ],
    },
    {
        # College athlete, sports clearance, exercise-induced asthma
        "given": "Sarah", "family": "Johnson", "birth_date": "2001-05-28", "gender": "female",
        "phone": "", "email": "sarah.j@university.edu",
        "address": ("Rua Jardim Botânico 920", "Rio de Janeiro", "RJ", "22460-030"),
        "observations": [
            ("bp", 108, 68), ("weight", 61.2), ("heart_rate", 52), ("temperature", 36.4),
            ("spo2", 99), ("respiratory_rate", 12), ("bmi", 21.3),
        ],
        "conditions": [("J45.990", "Exercise-Induced Bronchospasm")],
        "care_plans": [
            ("Sports Clearance", [
                ("Pre-participation physical exam", "completed", ""),
                ("ECG screening", "completed", ""),
                ("Pulmonary function test", "completed", ""),
                ("Rescue inhaler prescription renewal", "not-started", "By 2025-08-01"),
            ]),
        ],
    },
    {
        # CKD, hypertension and high cholesterol; highest acuity
        "given": "James", "family": "Williams", "birth_date": "1965-09-10", "gender": "male",
        "phone": "555-0505", "email": "jwilliams@email.com",
        "address": ("Av. Niemeyer 776", "Rio de Janeiro", "RJ", "22450-221"),
        "observations": [
            ("bp", 162, 99), ("bp", 155, 96), ("weight", 88.4), ("heart_rate", 82),
            ("temperature", 36.7), ("spo2", 95), ("respiratory_rate", 18), ("bmi", 28.6),
            ("creatinine", 1.8), ("egfr", 42), ("cholesterol", 261), ("glucose", 108),
        ],
        "conditions": [
            ("I10", "Essential Hypertension"),
            ("N18.3", "Chronic Kidney Disease, Stage 3"),
            ("E78.5", "Hyperlipidemia, Unspecified"),
        ],
        "care_plans": [
            ("CKD Monitoring", [
                ("Baseline kidney function labs (GFR, creatinine)", "completed", ""),
                ("Nephrology referral", "in-progress", "By 2025-04-15"),
                ("Start renal-protective diet (low protein, low sodium)", "not-started", "By 2025-05-01"),
                ("Repeat GFR in 3 months", "not-started", "By 2025-07-01"),
            ]),
            ("Cardiovascular Risk Reduction", [
                ("Fasting lipid panel", "completed", ""),
                ("Start atorvastatin 20mg daily", "completed", ""),
                ("Recheck lipids in 6 weeks", "not-started", "By 2025-05-15"),
                ("Cardiology consult for stress test", "not-started", "By 2025-06-01"),
            ]),
        ],
    },
]


def _tagged(resource: dict[str, Any]) -> dict[str, Any]:
    """Attach the seed meta tag so cleanup can find the resource later."""
    resource["meta"] = {"tag": [{"system": SEED_TAG_SYSTEM, "code": SEED_TAG_CODE}]}
    return resource


def build_seed_bundle() -> dict[str, Any]:
    """Transaction bundle with every sample patient and their records.

    Patients get ``urn:uuid:patient-N`` placeholders that the server
    replaces with real references in the dependent entries.
    """
    entries = []
    for n, sample in enumerate(SAMPLE_PATIENTS, 1):
        urn = f"urn:uuid:patient-{n}"
        patient = fhir.new_patient(
            sample["given"], sample["family"], sample["birth_date"], sample["gender"],
            phone=sample["phone"], email=sample["email"],
            address=fhir.new_address(*sample["address"]),
        )
        entries.append(fhir.bundle_entry("Patient", _tagged(patient), full_url=urn))

        for kind, *values in sample["observations"]:
            observation = _OBSERVATION_BUILDERS[kind](urn, *values)
            entries.append(fhir.bundle_entry("Observation", _tagged(observation)))

        for code, label in sample["conditions"]:
            entries.append(
                fhir.bundle_entry("Condition", _tagged(fhir.new_condition(urn, code, label)))
            )

        for title, activities in sample["care_plans"]:
            plan = fhir.new_care_plan(
                urn,
                title,
                [
                    fhir.new_care_plan_activity(description, status=status, schedule=schedule)
                    for description, status, schedule in activities
                ],
            )
            entries.append(fhir.bundle_entry("CarePlan", _tagged(plan)))

    return fhir.transaction_bundle(entries)


async def seed_sample_data(store: Store) -> SeedOutput:
    """Create the sample patients in one transaction bundle.

    Returns:
        SeedOutput with the number of resources the store reported created
    """
    bundle = build_seed_bundle()
    start = time.perf_counter()
    try:
        response = await store.process_bundle(bundle)
    except StoreError as e:
        return SeedOutput(error=f"processing bundle: {e}")
    elapsed_ms = (time.perf_counter() - start) * 1000

    stats: Counter[str] = Counter()
    for entry in response.get("entry") or []:
        status = (entry.get("response") or {}).get("status", "")
        stats["created" if status.startswith("201") else "other"] += 1
    if stats["other"]:
        logger.warning(f"[SEED] {stats['other']} bundle entries were not created")

    created = stats["created"]
    return SeedOutput(
        result=(
            f"Seeded {created} resources ({len(SAMPLE_PATIENTS)} patients with vitals, "
            "labs, conditions, and care plans)"
        ),
        created=created,
        elapsed_ms=elapsed_ms,
        timing_note=f"Created {created} resources via transaction bundle",
    )


async def delete_seed_data(store: Store) -> SeedOutput:
    """Delete every resource carrying the seed tag.

    Stops at the first failure; resources deleted before it stay deleted.
    """
    deleted = 0
    start = time.perf_counter()
    for resource_type in CLEANUP_ORDER:
        try:
            ids = await search_ids_by_tag(store, resource_type, SEED_TAG_QUERY)
        except StoreError as e:
            return SeedOutput(error=f"searching {resource_type}: {e}", deleted=deleted)
        for resource_id in ids:
            try:
                await store.delete_resource(resource_type, resource_id)
            except StoreError as e:
                return SeedOutput(
                    error=f"deleting {resource_type}/{resource_id}: {e}",
                    deleted=deleted,
                )
            deleted += 1
    elapsed_ms = (time.perf_counter() - start) * 1000

    if not deleted:
        return SeedOutput(result="No seed data found.")
    logger.info(f"[SEED] deleted {deleted} seed resources")
    return SeedOutput(
        result=f"Deleted {deleted} seed resources.",
        deleted=deleted,
        elapsed_ms=elapsed_ms,
        timing_note=f"Deleted {deleted} resources",
    )


if __name__ == "__main__":
    from ..store import FhirJsonStore

    parser = argparse.ArgumentParser(
        description="Seed a local FHIR JSON store with sample clinic patients",
    )
    parser.add_argument(
        "--data-dir", type=str, default="data/fhir",
        help="Target directory for FHIR resource files",
    )
    parser.add_argument(
        "--clean", action="store_true",
        help="Remove previously seeded data instead of seeding",
    )
    args = parser.parse_args()

    local_store = FhirJsonStore(args.data_dir)
    action = delete_seed_data if args.clean else seed_sample_data
    output = asyncio.run(action(local_store))
    print(output.error or output.result)
