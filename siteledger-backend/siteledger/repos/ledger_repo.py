from __future__ import annotations

import logging
import time
from time import perf_counter
from typing import Any, Callable, Dict, List, Optional, Tuple, TypeVar

import httpx

from ..config import settings
from ..models import (
    Invoice,
    Manpower,
    ManpowerAssignment,
    MaterialMapping,
    MaterialRecord,
    MaterialUsage,
    Project,
    ProjectTransactionSummary,
    Transaction,
)
from ..services.normalize import (
    is_transaction_summary,
    normalize_assignment,
    normalize_invoice,
    normalize_many,
    normalize_manpower,
    normalize_mapping,
    normalize_material,
    normalize_project,
    normalize_transaction_summary,
    normalize_usage,
)
from ..source import get_client

logger = logging.getLogger(__name__)

T = TypeVar("T")

_reference_cache: Dict[str, Tuple[float, List[Any]]] = {}


class SourceFetchError(Exception):
    """A read from the ledger backend failed (transport, non-2xx or bad body)."""

    def __init__(self, path: str, message: str, status_code: Optional[int] = None):
        super().__init__(f"{path}: {message}")
        self.path = path
        self.message = message
        self.status_code = status_code


def clear_source_cache() -> None:
    _reference_cache.clear()


def _cache_get(key: str) -> Optional[List[Any]]:
    entry = _reference_cache.get(key)
    if not entry:
        return None
    ts, payload = entry
    if time.time() - ts > settings.source_cache_ttl_seconds:
        _reference_cache.pop(key, None)
        return None
    return payload


def _cache_set(key: str, payload: List[Any]) -> None:
    _reference_cache[key] = (time.time(), payload)


def _params(**values: Optional[str]) -> Dict[str, str]:
    return {key: value for key, value in values.items() if value}


class LedgerRepo:
    """Read-only access to the console's REST backend."""

    def __init__(self, client: Optional[httpx.AsyncClient] = None):
        self._client = client

    @property
    def client(self) -> httpx.AsyncClient:
        return self._client or get_client()

    async def _get_json(self, path: str, params: Optional[Dict[str, str]] = None) -> Any:
        start = perf_counter()
        try:
            response = await self.client.get(path, params=params or None)
        except httpx.HTTPError as exc:
            raise SourceFetchError(path, str(exc) or type(exc).__name__) from exc
        elapsed = (perf_counter() - start) * 1000
        logger.debug("GET %s params=%s status=%s elapsed_ms=%.2f", path, params, response.status_code, elapsed)
        if not response.is_success:
            raise SourceFetchError(path, f"HTTP {response.status_code}", response.status_code)
        try:
            return response.json()
        except ValueError as exc:
            raise SourceFetchError(path, "response body is not valid JSON", response.status_code) from exc

    async def _cached_rows(self, path: str, normalizer: Callable[[Dict[str, Any]], T]) -> List[T]:
        cached = _cache_get(path)
        if cached is not None:
            return list(cached)
        rows = normalize_many(normalizer, await self._get_json(path))
        _cache_set(path, rows)
        return list(rows)

    async def fetch_projects(self) -> List[Project]:
        return await self._cached_rows("projects", normalize_project)

    async def fetch_project(self, project_id: str) -> Optional[Project]:
        try:
            payload = await self._get_json(f"projects/{project_id}")
        except SourceFetchError as exc:
            if exc.status_code == 404:
                return None
            raise
        if isinstance(payload, dict) and isinstance(payload.get("data"), dict):
            payload = payload["data"]
        if not isinstance(payload, dict) or not payload:
            return None
        return normalize_project(payload)

    async def fetch_transactions(self, project_id: Optional[str] = None) -> List[Transaction]:
        payload = await self._get_json("transactions", _params(projectId=project_id))
        return normalize_transaction_summary(payload).transactions

    async def fetch_transaction_summary(self, project_id: str) -> ProjectTransactionSummary:
        path = f"transactions/summary/{project_id}"
        payload = await self._get_json(path)
        if not is_transaction_summary(payload):
            raise SourceFetchError(path, "unrecognized summary body")
        return normalize_transaction_summary(payload)

    async def fetch_invoices(self, project_id: Optional[str] = None) -> List[Invoice]:
        payload = await self._get_json("invoices", _params(projectId=project_id))
        return normalize_many(normalize_invoice, payload)

    async def fetch_materials(self) -> List[MaterialRecord]:
        return await self._cached_rows("materials", normalize_material)

    async def fetch_manpower(self) -> List[Manpower]:
        return await self._cached_rows("manpower", normalize_manpower)

    async def fetch_expenditures(
        self,
        project_id: Optional[str] = None,
        from_date: Optional[str] = None,
        to_date: Optional[str] = None,
    ) -> List[ManpowerAssignment]:
        payload = await self._get_json(
            "expenditures",
            _params(projectId=project_id, fromDate=from_date, toDate=to_date),
        )
        return normalize_many(normalize_assignment, payload)

    async def fetch_material_mappings(
        self,
        project_id: Optional[str] = None,
        material_id: Optional[str] = None,
        from_date: Optional[str] = None,
        to_date: Optional[str] = None,
    ) -> List[MaterialMapping]:
        payload = await self._get_json(
            "projectMaterialMappings",
            _params(projectId=project_id, materialId=material_id, fromDate=from_date, toDate=to_date),
        )
        return normalize_many(normalize_mapping, payload)

    async def fetch_material_usage(self, project_id: Optional[str] = None) -> List[MaterialUsage]:
        path = f"material-usage/project/{project_id}" if project_id else "material-usage"
        return normalize_many(normalize_usage, await self._get_json(path))


def get_repo() -> LedgerRepo:
    return LedgerRepo()
