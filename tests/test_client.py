"""Tests for the remote FHIR store client against httpx.MockTransport."""

import json

import httpx
import pytest

from clinicdemo.config import StoreConfig
from clinicdemo.errors import ResourceNotFoundError, StoreError
from clinicdemo.store import FhirStoreClient, extract_resources

BASE = "https://fhir.example.test"
FHIR = f"{BASE}/fhir/clinic/records"


@pytest.fixture
def config():
    return StoreConfig(
        url=BASE,
        client_id="id",
        client_secret="secret",
        tenant="clinic",
        store="records",
    )


class FakeServer:
    """Records requests and routes them to canned responses."""

    def __init__(self, routes=None, token_status=200):
        self.routes = routes or {}
        self.token_status = token_status
        self.requests: list[httpx.Request] = []
        self.token_requests = 0

    def __call__(self, request: httpx.Request) -> httpx.Response:
        if request.url.path == "/oauth2/token":
            self.token_requests += 1
            if self.token_status != 200:
                return httpx.Response(self.token_status)
            return httpx.Response(200, json={"access_token": "tok", "expires_in": 3600})

        self.requests.append(request)
        key = (request.method, request.url.path)
        if key not in self.routes:
            return httpx.Response(404)
        status, body = self.routes[key]
        return httpx.Response(status, json=body)


def make_client(config, server):
    return FhirStoreClient(config, transport=httpx.MockTransport(server))


def test_base_url_includes_tenant_and_store(config):
    assert FhirStoreClient(config).base_url == FHIR


@pytest.mark.asyncio
async def test_read_sends_bearer_token_and_fhir_accept(config):
    server = FakeServer({("GET", "/fhir/clinic/records/Patient/p1"): (200, {"id": "p1"})})
    client = make_client(config, server)

    patient = await client.read_resource("Patient", "p1")

    assert patient == {"id": "p1"}
    request = server.requests[0]
    assert request.headers["Authorization"] == "Bearer tok"
    assert request.headers["Accept"] == "application/fhir+json"


@pytest.mark.asyncio
async def test_token_is_cached_between_calls(config):
    server = FakeServer({("GET", "/fhir/clinic/records/Patient/p1"): (200, {"id": "p1"})})
    client = make_client(config, server)

    await client.read_resource("Patient", "p1")
    await client.read_resource("Patient", "p1")

    assert server.token_requests == 1


@pytest.mark.asyncio
async def test_read_404_raises_not_found(config):
    client = make_client(config, FakeServer())

    with pytest.raises(ResourceNotFoundError) as exc_info:
        await client.read_resource("Patient", "missing")

    assert exc_info.value.resource_type == "Patient"
    assert exc_info.value.resource_id == "missing"


@pytest.mark.asyncio
async def test_server_error_raises_store_error_with_status(config):
    server = FakeServer({("GET", "/fhir/clinic/records/Patient/p1"): (500, {})})
    client = make_client(config, server)

    with pytest.raises(StoreError) as exc_info:
        await client.read_resource("Patient", "p1")

    assert not isinstance(exc_info.value, ResourceNotFoundError)
    assert exc_info.value.status_code == 500
    assert "HTTP 500" in str(exc_info.value)


@pytest.mark.asyncio
async def test_auth_failure_raises_store_error(config):
    client = make_client(config, FakeServer(token_status=401))

    with pytest.raises(StoreError, match="authentication failed: HTTP 401"):
        await client.read_resource("Patient", "p1")


@pytest.mark.asyncio
async def test_search_defaults_count_and_unwraps_bundle(config):
    bundle = {
        "resourceType": "Bundle",
        "type": "searchset",
        "entry": [{"resource": {"id": "o1"}}, {"resource": {"id": "o2"}}, {}],
    }
    server = FakeServer({("GET", "/fhir/clinic/records/Observation"): (200, bundle)})
    client = make_client(config, server)

    found = await client.search_resources("Observation", {"patient": "p1"})

    assert [r["id"] for r in found] == ["o1", "o2"]
    params = server.requests[0].url.params
    assert params["_count"] == "50"
    assert params["patient"] == "p1"


@pytest.mark.asyncio
async def test_search_failure_names_resource_type(config):
    server = FakeServer({("GET", "/fhir/clinic/records/Condition"): (503, {})})
    client = make_client(config, server)

    with pytest.raises(StoreError, match="^searching Condition: ") as exc_info:
        await client.search_resources("Condition")
    assert exc_info.value.status_code == 503


@pytest.mark.asyncio
async def test_transport_error_becomes_store_error(config):
    def handler(request):
        if request.url.path == "/oauth2/token":
            return httpx.Response(200, json={"access_token": "tok"})
        raise httpx.ConnectError("connection reset", request=request)

    client = FhirStoreClient(config, transport=httpx.MockTransport(handler))

    with pytest.raises(StoreError, match="connection reset"):
        await client.read_resource("Patient", "p1")


@pytest.mark.asyncio
async def test_create_posts_fhir_json(config):
    server = FakeServer(
        {("POST", "/fhir/clinic/records/Patient"): (201, {"resourceType": "Patient", "id": "new"})}
    )
    client = make_client(config, server)

    created = await client.create_resource("Patient", {"resourceType": "Patient"})

    assert created["id"] == "new"
    request = server.requests[0]
    assert request.headers["Content-Type"] == "application/fhir+json"
    assert json.loads(request.content) == {"resourceType": "Patient"}


@pytest.mark.asyncio
async def test_update_and_delete_map_404(config):
    client = make_client(config, FakeServer())

    with pytest.raises(ResourceNotFoundError):
        await client.update_resource("CarePlan", "cp1", {"resourceType": "CarePlan"})
    with pytest.raises(ResourceNotFoundError):
        await client.delete_resource("CarePlan", "cp1")


@pytest.mark.asyncio
async def test_process_bundle_posts_to_base(config):
    response = {"resourceType": "Bundle", "type": "transaction-response", "entry": []}
    server = FakeServer({("POST", "/fhir/clinic/records"): (200, response)})
    client = make_client(config, server)

    result = await client.process_bundle({"resourceType": "Bundle", "type": "transaction"})

    assert result["type"] == "transaction-response"


def test_extract_resources_handles_missing_entries():
    assert extract_resources({"resourceType": "Bundle"}) == []
    assert extract_resources({"entry": None}) == []
