"""Tests for seeding sample data and cleaning it up."""

from collections import Counter

import pytest

from clinicdemo.app import delete_seed_data, seed_sample_data
from clinicdemo.app.seed import SAMPLE_PATIENTS, SEED_TAG_QUERY, build_seed_bundle
from clinicdemo.errors import StoreError
from clinicdemo.fhir import resources


def _expected_counts():
    counts = Counter()
    for sample in SAMPLE_PATIENTS:
        counts["Patient"] += 1
        counts["Observation"] += len(sample["observations"])
        counts["Condition"] += len(sample["conditions"])
        counts["CarePlan"] += len(sample["care_plans"])
    return counts


def test_bundle_tags_every_resource():
    bundle = build_seed_bundle()

    assert bundle["type"] == "transaction"
    assert len(bundle["entry"]) == sum(_expected_counts().values())
    for entry in bundle["entry"]:
        assert entry["resource"]["meta"]["tag"] == [{"system": "clinicdemo", "code": "seed"}]


def test_bundle_references_patient_placeholders():
    bundle = build_seed_bundle()
    patient_urls = [e["fullUrl"] for e in bundle["entry"] if e["request"]["url"] == "Patient"]

    assert patient_urls == [f"urn:uuid:patient-{n}" for n in range(1, len(SAMPLE_PATIENTS) + 1)]
    for entry in bundle["entry"]:
        if entry["request"]["url"] != "Patient":
            assert entry["resource"]["subject"]["reference"] in patient_urls


@pytest.mark.asyncio
async def test_seed_creates_every_resource(local_store):
    output = await seed_sample_data(local_store)

    total = sum(_expected_counts().values())
    assert output.error is None
    assert output.created == total
    assert output.result == (
        f"Seeded {total} resources (5 patients with vitals, labs, conditions, and care plans)"
    )
    assert output.timing_note == f"Created {total} resources via transaction bundle"
    for resource_type, count in _expected_counts().items():
        found = await local_store.search_resources(resource_type, {"_tag": SEED_TAG_QUERY, "_count": 500})
        assert len(found) == count


@pytest.mark.asyncio
async def test_seeded_references_are_resolved(seeded_store):
    patients = await seeded_store.search_resources("Patient", {"name": "Williams"})
    conditions = await seeded_store.search_resources("Condition", {"patient": patients[0]["id"]})

    assert {c["code"]["coding"][0]["code"] for c in conditions} == {"I10", "N18.3", "E78.5"}


@pytest.mark.asyncio
async def test_delete_seed_data_keeps_operator_records(seeded_store):
    operator = await seeded_store.create_resource(
        "Patient", resources.new_patient("Nina", "Ortiz", "1990-01-01", "female")
    )

    output = await delete_seed_data(seeded_store)

    total = sum(_expected_counts().values())
    assert output.result == f"Deleted {total} seed resources."
    assert output.deleted == total
    remaining = await seeded_store.search_resources("Patient")
    assert [p["id"] for p in remaining] == [operator["id"]]
    assert await seeded_store.search_resources("Observation") == []


@pytest.mark.asyncio
async def test_delete_seed_data_when_nothing_seeded(local_store):
    output = await delete_seed_data(local_store)
    assert output.result == "No seed data found."
    assert output.deleted == 0


@pytest.mark.asyncio
async def test_seed_reports_store_failure(fake_store):
    class BrokenStore(fake_store):
        async def process_bundle(self, bundle):
            raise StoreError("HTTP 503")

    output = await seed_sample_data(BrokenStore())

    assert output.error == "processing bundle: HTTP 503"
    assert output.created == 0
