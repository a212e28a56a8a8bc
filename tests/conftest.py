"""Pytest configuration for clinicdemo tests."""

from __future__ import annotations

import asyncio
from typing import Any

import pytest
import pytest_asyncio

from clinicdemo.app.seed import seed_sample_data
from clinicdemo.errors import ResourceNotFoundError
from clinicdemo.store import FhirJsonStore


class FakeStore:
    """In-memory Store with per-call delays and failures.

    ``delays`` and ``failures`` are keyed by resource type; a read of
    ``Patient`` and a search of ``Observation`` are configured separately
    by their type names.
    """

    def __init__(
        self,
        patients: dict[str, dict[str, Any]] | None = None,
        searches: dict[str, list[dict[str, Any]]] | None = None,
        delays: dict[str, float] | None = None,
        failures: dict[str, Exception] | None = None,
    ):
        self.patients = patients or {}
        self.searches = searches or {}
        self.delays = delays or {}
        self.failures = failures or {}
        self.calls: list[tuple[str, str, Any]] = []

    async def _simulate(self, resource_type: str) -> None:
        await asyncio.sleep(self.delays.get(resource_type, 0))
        if resource_type in self.failures:
            raise self.failures[resource_type]

    async def read_resource(self, resource_type, resource_id):
        self.calls.append(("read", resource_type, resource_id))
        await self._simulate(resource_type)
        if resource_id not in self.patients:
            raise ResourceNotFoundError(resource_type, resource_id)
        return self.patients[resource_id]

    async def search_resources(self, resource_type, params=None):
        self.calls.append(("search", resource_type, params))
        await self._simulate(resource_type)
        return list(self.searches.get(resource_type, []))

    async def create_resource(self, resource_type, resource):
        raise NotImplementedError

    async def update_resource(self, resource_type, resource_id, resource):
        raise NotImplementedError

    async def delete_resource(self, resource_type, resource_id):
        raise NotImplementedError

    async def process_bundle(self, bundle):
        raise NotImplementedError


@pytest.fixture
def sample_patient():
    """Minimal Patient resource with id p1."""
    return {
        "resourceType": "Patient",
        "id": "p1",
        "name": [{"given": ["Maria"], "family": "Garcia"}],
        "gender": "female",
        "birthDate": "1985-03-22",
    }


@pytest.fixture
def summary_store(sample_patient):
    """FakeStore holding p1 with 3 observations, 2 conditions, 1 care plan."""
    return FakeStore(
        patients={"p1": sample_patient},
        searches={
            "Observation": [
                {"resourceType": "Observation", "id": f"o{i}"} for i in range(3)
            ],
            "Condition": [
                {"resourceType": "Condition", "id": f"c{i}"} for i in range(2)
            ],
            "CarePlan": [{"resourceType": "CarePlan", "id": "cp1"}],
        },
    )


@pytest.fixture
def local_store(tmp_path):
    """Empty FhirJsonStore in a temporary directory."""
    return FhirJsonStore(tmp_path / "fhir")


@pytest_asyncio.fixture
async def seeded_store(local_store):
    """FhirJsonStore loaded with the sample clinic patients."""
    output = await seed_sample_data(local_store)
    assert output.error is None
    return local_store



@pytest.fixture
def fake_store():
    """Factory for FakeStore instances."""
    return FakeStore
