"""Local JSON-based FHIR R4 store.

Stands in for the remote store with a filesystem-backed store that reads
and writes FHIR R4 resources as JSON files under {data_dir}/{ResourceType}/{id}.json.
"""

from __future__ import annotations

import copy
import json
import logging
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from ..errors import ResourceNotFoundError, StoreError

logger = logging.getLogger(__name__)


class FhirJsonStore:
    """Local FHIR store backed by JSON files on disk.

    Same interface as FhirStoreClient, but reads/writes
    ``{data_dir}/{ResourceType}/{id}.json``.
    """

    def __init__(self, data_dir: str | Path = "data/fhir"):
        self._data_dir = Path(data_dir)

    @property
    def data_dir(self) -> Path:
        return self._data_dir

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def read_resource(self, resource_type: str, resource_id: str) -> dict[str, Any]:
        """Read a single resource file. Raises ResourceNotFoundError if missing."""
        file_path = self._path(resource_type, resource_id)
        if not file_path.exists():
            raise ResourceNotFoundError(resource_type, resource_id)
        return self._load(file_path)

    async def search_resources(
        self,
        resource_type: str,
        params: dict[str, Any] | None = None,
    ) -> list[dict[str, Any]]:
        """Search resources on disk.

        Recognised search parameters:
          patient, subject, status, _tag, name, birthdate, _count
        """
        params = params or {}
        resource_dir = self._data_dir / resource_type
        if not resource_dir.is_dir():
            return []

        resources: list[dict[str, Any]] = []
        for file_path in sorted(resource_dir.glob("*.json")):
            resource = self._load(file_path)
            if self._matches(resource, params):
                resources.append(resource)

        # Oldest first, like a server returning in insertion order
        resources.sort(key=lambda r: r.get("meta", {}).get("lastUpdated", ""))

        count = params.get("_count")
        if count is not None:
            resources = resources[: int(count)]
        return resources

    async def create_resource(self, resource_type: str, resource: dict[str, Any]) -> dict[str, Any]:
        """Write a new resource with a fresh UUID ``id``."""
        stored = copy.deepcopy(resource)
        stored["resourceType"] = resource_type
        stored["id"] = str(uuid.uuid4())
        self._write(resource_type, stored)
        return stored

    async def update_resource(
        self,
        resource_type: str,
        resource_id: str,
        resource: dict[str, Any],
    ) -> dict[str, Any]:
        """Replace an existing resource. Raises ResourceNotFoundError if missing."""
        if not self._path(resource_type, resource_id).exists():
            raise ResourceNotFoundError(resource_type, resource_id)
        stored = copy.deepcopy(resource)
        stored["resourceType"] = resource_type
        stored["id"] = resource_id
        self._write(resource_type, stored)
        return stored

    async def delete_resource(self, resource_type: str, resource_id: str) -> None:
        """Delete a resource. Raises ResourceNotFoundError if missing."""
        file_path = self._path(resource_type, resource_id)
        if not file_path.exists():
            raise ResourceNotFoundError(resource_type, resource_id)
        file_path.unlink()

    async def process_bundle(self, bundle: dict[str, Any]) -> dict[str, Any]:
        """Apply a transaction bundle of POST entries in order.

        ``urn:uuid:`` fullUrls are resolved to the assigned ``Type/id`` in
        every later entry's references.
        """
        if bundle.get("type") != "transaction":
            raise StoreError(f"unsupported bundle type: {bundle.get('type')!r}", status_code=400)

        urn_map: dict[str, str] = {}
        response_entries: list[dict[str, Any]] = []
        for entry in bundle.get("entry", []):
            request = entry.get("request", {})
            if request.get("method") != "POST":
                raise StoreError(
                    f"unsupported bundle request method: {request.get('method')!r}",
                    status_code=400,
                )
            resource_type = request.get("url", "").strip("/")
            resource = _resolve_references(entry.get("resource", {}), urn_map)
            created = await self.create_resource(resource_type, resource)
            location = f"{resource_type}/{created['id']}"
            if entry.get("fullUrl"):
                urn_map[entry["fullUrl"]] = location
            response_entries.append(
                {"response": {"status": "201 Created", "location": location}}
            )

        logger.info(f"[LOCAL_STORE] transaction applied: {len(response_entries)} entries")
        return {
            "resourceType": "Bundle",
            "type": "transaction-response",
            "entry": response_entries,
        }

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _path(self, resource_type: str, resource_id: str) -> Path:
        return self._data_dir / resource_type / f"{resource_id}.json"

    @staticmethod
    def _load(file_path: Path) -> dict[str, Any]:
        try:
            return json.loads(file_path.read_text(encoding="utf-8"))
        except ValueError as e:
            raise StoreError(f"parsing {file_path.name}: {e}") from e

    def _write(self, resource_type: str, resource: dict[str, Any]) -> None:
        meta = resource.setdefault("meta", {})
        meta["lastUpdated"] = datetime.now(timezone.utc).isoformat()

        resource_dir = self._data_dir / resource_type
        resource_dir.mkdir(parents=True, exist_ok=True)
        dest = resource_dir / f"{resource['id']}.json"
        dest.write_text(json.dumps(resource, indent=2), encoding="utf-8")

    def _matches(self, resource: dict[str, Any], params: dict[str, Any]) -> bool:
        """Check whether *resource* matches all search params."""
        for key, value in params.items():
            if key == "_tag":
                if not self._match_tag(resource, str(value)):
                    return False

            elif key.startswith("_"):
                continue  # Skip _count etc.

            elif key == "name":
                if not self._match_name(resource, str(value)):
                    return False

            elif key == "birthdate":
                if resource.get("birthDate", "") != value:
                    return False

            elif key in ("subject", "patient"):
                ref = self._extract_reference(resource)
                # Accept "Patient/123" or bare "123"
                if ref != value and ref != f"Patient/{value}":
                    return False

            elif key == "status":
                if resource.get("status", "") != value:
                    return False

        return True

    # -- match helpers --------------------------------------------------

    @staticmethod
    def _match_name(resource: dict[str, Any], query: str) -> bool:
        """Case-insensitive partial match on Patient name fields."""
        query_lower = query.lower()
        for name_obj in resource.get("name", []):
            family = (name_obj.get("family") or "").lower()
            givens = " ".join(name_obj.get("given", [])).lower()
            if query_lower in family or query_lower in givens:
                return True
        return False

    @staticmethod
    def _match_tag(resource: dict[str, Any], token: str) -> bool:
        """Match meta.tag against ``system|code`` or a bare ``code``."""
        system, _, code = token.rpartition("|")
        for tag in resource.get("meta", {}).get("tag", []):
            if tag.get("code") != code:
                continue
            if not system or tag.get("system") == system:
                return True
        return False

    @staticmethod
    def _extract_reference(resource: dict[str, Any]) -> str:
        """Pull the patient reference from ``subject`` or ``patient``."""
        for field in ("subject", "patient"):
            ref_obj = resource.get(field)
            if isinstance(ref_obj, dict):
                return ref_obj.get("reference", "")
        return ""


def _resolve_references(value: Any, urn_map: dict[str, str]) -> Any:
    """Return a copy of *value* with ``reference`` urns replaced."""
    if isinstance(value, dict):
        resolved = {}
        for key, item in value.items():
            if key == "reference" and isinstance(item, str) and item in urn_map:
                resolved[key] = urn_map[item]
            else:
                resolved[key] = _resolve_references(item, urn_map)
        return resolved
    if isinstance(value, list):
        return [_resolve_references(item, urn_map) for item in value]
    return value
