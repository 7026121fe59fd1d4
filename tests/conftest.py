"""
Configuración de fixtures para pytest.

FakeAirtable emula la API de registros sobre httpx.MockTransport:
paginación por offset, PATCH (merge) vs PUT (replace), batch, alta y borrado.
"""
from __future__ import annotations

import json
from typing import Any, Dict, List, Optional
from unittest.mock import AsyncMock

import httpx
import pytest
from pydantic import Field

from airtable_records.domain.entities.fields import RecordFields
from airtable_records.infrastructure.external.airtable.records_client import (
    AirtableCredentials,
    AirtableRecordsClient,
)
from airtable_records.infrastructure.external.airtable.request_executor import RetryPolicy

BASE_URL = "https://api.airtable.test/v0"
BASE = "appTEST"
TABLE = "Customers"
TOKEN = "patSECRET123"
CREATED_TIME = "2025-12-16T10:15:00.000Z"


class Customer(RecordFields):
    name: Optional[str] = Field(None, alias="Name")
    email: Optional[str] = Field(None, alias="Email")
    age: Optional[int] = Field(None, alias="Age")


class FakeAirtable:
    """Servidor Airtable en memoria para una base/tabla."""

    def __init__(self) -> None:
        self.records: Dict[str, Dict[str, Any]] = {}
        self.requests: List[httpx.Request] = []
        self._failures: List[Any] = []
        self._next_id = 1
        self.reverse_batch = False
        self.truncate_batch: Optional[int] = None

    # --- helpers de test -------------------------------------------------

    def seed(self, **fields: Any) -> str:
        rec_id = f"rec{self._next_id:03d}"
        self._next_id += 1
        self.records[rec_id] = {k: v for k, v in fields.items() if v is not None}
        return rec_id

    def fail_next(self, status: int, *, times: int = 1, headers: Optional[dict] = None) -> None:
        """Encola respuestas de error antes del manejo normal."""
        for _ in range(times):
            self._failures.append(httpx.Response(status, headers=headers, json={"error": status}))

    def fail_next_with(self, exc_factory, *, times: int = 1) -> None:
        """Encola excepciones de transporte (exc_factory recibe el request)."""
        for _ in range(times):
            self._failures.append(exc_factory)

    # --- API ---------------------------------------------------------------

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self._failures:
            failure = self._failures.pop(0)
            if isinstance(failure, httpx.Response):
                return failure
            raise failure(request)

        parts = request.url.path.split("/")[2:]  # ["appTEST", "Customers", ...]
        if parts[:2] != [BASE, TABLE]:
            return httpx.Response(404, json={"error": "NOT_FOUND"})
        record_id = parts[2] if len(parts) > 2 else None
        body = json.loads(request.content) if request.content else None

        if record_id is None:
            if request.method == "GET":
                return self._list(request)
            if request.method == "POST":
                return httpx.Response(200, json=self._create(body["fields"]))
            if request.method in ("PATCH", "PUT"):
                return self._batch(request.method, body)
            return httpx.Response(405)

        if record_id not in self.records:
            return httpx.Response(404, json={"error": "NOT_FOUND"})
        if request.method == "GET":
            return httpx.Response(200, json=self._envelope(record_id))
        if request.method in ("PATCH", "PUT"):
            self._apply(record_id, request.method, body["fields"])
            return httpx.Response(200, json=self._envelope(record_id))
        if request.method == "DELETE":
            del self.records[record_id]
            return httpx.Response(200, json={"id": record_id, "deleted": True})
        return httpx.Response(405)

    def _envelope(self, record_id: str, fields: Optional[List[str]] = None) -> Dict[str, Any]:
        stored = self.records[record_id]
        if fields:
            stored = {k: v for k, v in stored.items() if k in fields}
        return {"id": record_id, "createdTime": CREATED_TIME, "fields": dict(stored)}

    def _list(self, request: httpx.Request) -> httpx.Response:
        params = request.url.params
        fields = params.get_list("fields[]")
        page_size = int(params.get("pageSize", 100))
        start = int(params.get("offset", 0))
        ids = list(self.records)
        chunk = ids[start:start + page_size]
        payload: Dict[str, Any] = {"records": [self._envelope(i, fields) for i in chunk]}
        if start + page_size < len(ids):
            payload["offset"] = str(start + page_size)
        return httpx.Response(200, json=payload)

    def _create(self, fields: Dict[str, Any]) -> Dict[str, Any]:
        rec_id = self.seed(**fields)
        return self._envelope(rec_id)

    def _apply(self, record_id: str, method: str, fields: Dict[str, Any]) -> None:
        if method == "PUT":
            self.records[record_id] = {}
        for key, value in fields.items():
            if value is None:
                self.records[record_id].pop(key, None)
            else:
                self.records[record_id][key] = value

    def _batch(self, method: str, body: Dict[str, Any]) -> httpx.Response:
        entries = body["records"]
        if any(e["id"] not in self.records for e in entries):
            return httpx.Response(422, json={"error": "ROW_DOES_NOT_EXIST"})
        for e in entries:
            self._apply(e["id"], method, e["fields"])
        result = [self._envelope(e["id"]) for e in entries]
        if self.reverse_batch:
            result.reverse()
        if self.truncate_batch is not None:
            result = result[: self.truncate_batch]
        return httpx.Response(200, json={"records": result})


@pytest.fixture
def fake_airtable() -> FakeAirtable:
    return FakeAirtable()


@pytest.fixture
def sleep_mock() -> AsyncMock:
    """Reemplaza asyncio.sleep del executor; registra los delays pedidos."""
    return AsyncMock(return_value=None)


@pytest.fixture
def retry_policy() -> RetryPolicy:
    return RetryPolicy(max_retries=3, min_backoff_s=0.5, max_backoff_s=4.0, jitter_ratio=0.15)


@pytest.fixture
def airtable(fake_airtable, sleep_mock, retry_policy) -> AirtableRecordsClient:
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(fake_airtable.handler))
    return AirtableRecordsClient(
        AirtableCredentials(token=TOKEN),
        http_client=http_client,
        base_url=BASE_URL,
        retry_policy=retry_policy,
        sleep=sleep_mock,
    )
