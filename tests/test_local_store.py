"""Tests for the JSON-file FHIR store."""

import json

import pytest

from clinicdemo.errors import ResourceNotFoundError, StoreError
from clinicdemo.fhir import resources
from clinicdemo.protocols import Store
from clinicdemo.store import FhirJsonStore


def test_satisfies_store_protocol(local_store):
    assert isinstance(local_store, Store)


@pytest.mark.asyncio
async def test_create_assigns_id_and_writes_file(local_store):
    patient = resources.new_patient("Maria", "Garcia", "1985-03-22", "female")

    created = await local_store.create_resource("Patient", patient)

    assert created["id"]
    assert created["resourceType"] == "Patient"
    assert "lastUpdated" in created["meta"]
    path = local_store.data_dir / "Patient" / f"{created['id']}.json"
    assert json.loads(path.read_text())["id"] == created["id"]
    # Caller's dict is left untouched
    assert "id" not in patient


@pytest.mark.asyncio
async def test_read_missing_raises_not_found(local_store):
    with pytest.raises(ResourceNotFoundError) as exc_info:
        await local_store.read_resource("Patient", "nope")
    assert exc_info.value.resource_id == "nope"
    assert exc_info.value.status_code == 404


@pytest.mark.asyncio
async def test_update_replaces_existing(local_store):
    created = await local_store.create_resource(
        "Patient", resources.new_patient("Wei", "Chen", "1972-08-15", "male")
    )
    created["telecom"] = [{"system": "phone", "value": "555-0100"}]

    await local_store.update_resource("Patient", created["id"], created)
    reread = await local_store.read_resource("Patient", created["id"])

    assert reread["telecom"] == [{"system": "phone", "value": "555-0100"}]


@pytest.mark.asyncio
async def test_update_and_delete_missing_raise_not_found(local_store):
    with pytest.raises(ResourceNotFoundError):
        await local_store.update_resource("Patient", "ghost", {"resourceType": "Patient"})
    with pytest.raises(ResourceNotFoundError):
        await local_store.delete_resource("Patient", "ghost")


@pytest.mark.asyncio
async def test_delete_removes_resource(local_store):
    created = await local_store.create_resource("Patient", {"resourceType": "Patient"})

    await local_store.delete_resource("Patient", created["id"])

    with pytest.raises(ResourceNotFoundError):
        await local_store.read_resource("Patient", created["id"])


@pytest.mark.asyncio
async def test_search_empty_type_returns_empty_list(local_store):
    assert await local_store.search_resources("Observation") == []


@pytest.mark.asyncio
async def test_search_by_patient_accepts_bare_and_prefixed_ids(local_store):
    await local_store.create_resource(
        "Observation", resources.new_weight_observation("p1", 70)
    )
    await local_store.create_resource(
        "Observation", resources.new_weight_observation("p2", 80)
    )

    bare = await local_store.search_resources("Observation", {"patient": "p1"})
    prefixed = await local_store.search_resources("Observation", {"subject": "Patient/p1"})

    assert len(bare) == 1
    assert bare == prefixed


@pytest.mark.asyncio
async def test_search_by_status_and_count(local_store):
    for title in ("A", "B", "C"):
        await local_store.create_resource("CarePlan", resources.new_care_plan("p1", title))
    done = resources.new_care_plan("p1", "Done")
    done["status"] = "completed"
    await local_store.create_resource("CarePlan", done)

    active = await local_store.search_resources("CarePlan", {"status": "active"})
    limited = await local_store.search_resources("CarePlan", {"status": "active", "_count": 2})

    assert {cp["title"] for cp in active} == {"A", "B", "C"}
    assert len(limited) == 2


@pytest.mark.asyncio
async def test_search_by_name_is_partial_and_case_insensitive(local_store):
    await local_store.create_resource(
        "Patient", resources.new_patient("Maria", "Garcia", "1985-03-22", "female")
    )
    await local_store.create_resource(
        "Patient", resources.new_patient("Wei", "Chen", "1972-08-15", "male")
    )

    found = await local_store.search_resources("Patient", {"name": "garc"})

    assert [p["name"][0]["family"] for p in found] == ["Garcia"]


@pytest.mark.asyncio
async def test_search_by_tag(local_store):
    tagged = {"resourceType": "Patient", "meta": {"tag": [{"system": "demo", "code": "seed"}]}}
    await local_store.create_resource("Patient", tagged)
    await local_store.create_resource("Patient", {"resourceType": "Patient"})

    assert len(await local_store.search_resources("Patient", {"_tag": "demo|seed"})) == 1
    assert len(await local_store.search_resources("Patient", {"_tag": "seed"})) == 1
    assert await local_store.search_resources("Patient", {"_tag": "other|seed"}) == []


@pytest.mark.asyncio
async def test_transaction_resolves_urn_references(local_store):
    bundle = resources.transaction_bundle([
        resources.bundle_entry(
            "Patient",
            resources.new_patient("Alex", "Thompson", "1990-11-05", "other"),
            full_url="urn:uuid:patient-1",
        ),
        resources.bundle_entry(
            "Condition",
            resources.new_condition("urn:uuid:patient-1", "E11.9", "Type 2 diabetes"),
        ),
    ])

    response = await local_store.process_bundle(bundle)

    entries = response["entry"]
    assert response["type"] == "transaction-response"
    assert [e["response"]["status"] for e in entries] == ["201 Created", "201 Created"]
    patient_location = entries[0]["response"]["location"]
    assert patient_location.startswith("Patient/")

    condition_id = entries[1]["response"]["location"].split("/", 1)[1]
    condition = await local_store.read_resource("Condition", condition_id)
    assert condition["subject"]["reference"] == patient_location


@pytest.mark.asyncio
async def test_transaction_rejects_non_post_entries(local_store):
    bundle = {
        "resourceType": "Bundle",
        "type": "transaction",
        "entry": [{"resource": {}, "request": {"method": "DELETE", "url": "Patient/1"}}],
    }
    with pytest.raises(StoreError) as exc_info:
        await local_store.process_bundle(bundle)
    assert exc_info.value.status_code == 400


@pytest.mark.asyncio
async def test_corrupt_file_raises_store_error(tmp_path):
    store = FhirJsonStore(tmp_path)
    (tmp_path / "Patient").mkdir()
    (tmp_path / "Patient" / "bad.json").write_text("{not json")

    with pytest.raises(StoreError):
        await store.read_resource("Patient", "bad")
