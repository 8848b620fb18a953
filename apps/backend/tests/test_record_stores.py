"""Tests for the in-memory and PostgREST record stores."""

import json

import httpx
import pytest

from dutyjobs.errors import PersistenceError, PostgrestError
from dutyjobs.services.postgrest import PostgrestRecordStore, encode_filters
from dutyjobs.services.record_store import InMemoryRecordStore


class TestInMemoryRecordStore:
    @pytest.mark.asyncio
    async def test_insert_assigns_ids(self) -> None:
        store = InMemoryRecordStore()
        inserted = await store.insert("exports", [{"format": "csv"}])
        assert inserted[0]["id"]
        assert store.rows("exports") == inserted

    @pytest.mark.asyncio
    async def test_query_filters(self) -> None:
        store = InMemoryRecordStore(
            {"jobs": [{"id": "1", "status": "pending"}, {"id": "2", "status": "completed"}]}
        )
        assert [r["id"] for r in await store.query("jobs", {"status": ["pending", "running"]})] == ["1"]
        assert [r["id"] for r in await store.query("jobs", {"status": "completed"})] == ["2"]
        assert len(await store.query("jobs")) == 2
        assert await store.query("missing") == []

    @pytest.mark.asyncio
    async def test_rows_are_copies(self) -> None:
        store = InMemoryRecordStore({"products": [{"id": "A", "tags": ["x"]}]})
        rows = await store.query("products")
        rows[0]["tags"].append("y")
        assert store.rows("products")[0]["tags"] == ["x"]

    @pytest.mark.asyncio
    async def test_update(self) -> None:
        store = InMemoryRecordStore({"jobs": [{"id": "1", "status": "pending"}]})
        await store.update("jobs", "1", {"status": "running"})
        assert store.rows("jobs")[0]["status"] == "running"

        with pytest.raises(PersistenceError) as exc_info:
            await store.update("jobs", "2", {"status": "running"})
        assert exc_info.value.table == "jobs"


class TestEncodeFilters:
    def test_operators(self) -> None:
        assert encode_filters(
            {"id": "abc", "status": ["pending", "running"], "error": None, "active": True}
        ) == {
            "id": "eq.abc",
            "status": "in.(pending,running)",
            "error": "is.null",
            "active": "is.true",
        }

    def test_quotes_reserved_characters(self) -> None:
        assert encode_filters({"title": ["a,b", "plain"]}) == {"title": 'in.("a,b",plain)'}


class TestPostgrestRecordStore:
    def setup_method(self) -> None:
        self.requests: list[httpx.Request] = []

    def _store(self, handler) -> PostgrestRecordStore:
        def record(request: httpx.Request) -> httpx.Response:
            self.requests.append(request)
            return handler(request)

        return PostgrestRecordStore(
            "https://db.example.com/rest/v1/",
            api_key="service-key",
            transport=httpx.MockTransport(record),
        )

    @pytest.mark.asyncio
    async def test_insert(self) -> None:
        store = self._store(
            lambda request: httpx.Response(201, json=[{"id": "job-1", "status": "pending"}])
        )

        rows = await store.insert("jobs", [{"id": "job-1", "status": "pending"}])

        assert rows == [{"id": "job-1", "status": "pending"}]
        request = self.requests[0]
        assert request.method == "POST"
        assert request.url.path == "/rest/v1/jobs"
        assert request.headers["apikey"] == "service-key"
        assert request.headers["Authorization"] == "Bearer service-key"
        assert request.headers["Prefer"] == "return=representation"
        assert json.loads(request.content) == [{"id": "job-1", "status": "pending"}]

    @pytest.mark.asyncio
    async def test_insert_nothing_skips_request(self) -> None:
        store = self._store(lambda request: httpx.Response(201, json=[]))
        assert await store.insert("jobs", []) == []
        assert self.requests == []

    @pytest.mark.asyncio
    async def test_update(self) -> None:
        store = self._store(lambda request: httpx.Response(200, json=[{"id": "job-1"}]))

        await store.update("jobs", "job-1", {"status": "running"})

        request = self.requests[0]
        assert request.method == "PATCH"
        assert request.url.params["id"] == "eq.job-1"
        assert json.loads(request.content) == {"status": "running"}

    @pytest.mark.asyncio
    async def test_update_missing_row(self) -> None:
        store = self._store(lambda request: httpx.Response(200, json=[]))
        with pytest.raises(PostgrestError, match="job-9"):
            await store.update("jobs", "job-9", {"status": "running"})

    @pytest.mark.asyncio
    async def test_query(self) -> None:
        store = self._store(lambda request: httpx.Response(200, json=[{"id": "A"}]))

        rows = await store.query("products", {"id": ["A", "B"]})

        assert rows == [{"id": "A"}]
        params = self.requests[0].url.params
        assert params["select"] == "*"
        assert params["id"] == "in.(A,B)"

    @pytest.mark.asyncio
    async def test_http_error(self) -> None:
        store = self._store(lambda request: httpx.Response(409, text="duplicate key"))

        with pytest.raises(PostgrestError) as exc_info:
            await store.insert("jobs", [{"id": "job-1"}])

        assert exc_info.value.status_code == 409
        assert exc_info.value.details == "duplicate key"
        assert exc_info.value.table == "jobs"

    @pytest.mark.asyncio
    async def test_connection_error(self) -> None:
        def refuse(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        store = self._store(refuse)

        with pytest.raises(PostgrestError, match="Failed to reach"):
            await store.query("jobs")
