"""Record store backed by a PostgREST (Supabase REST) endpoint."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from dutyjobs.errors import PostgrestError

logger = logging.getLogger(__name__)


class PostgrestRecordStore:
    """Client for a PostgREST API.

    Each call opens its own ``httpx.AsyncClient``; writes are committed
    independently by the server.
    """

    def __init__(
        self,
        base_url: str,
        api_key: str = "",
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize the store.

        Args:
            base_url: REST root, e.g. ``https://<project>.supabase.co/rest/v1``.
            api_key: Service key sent as ``apikey`` and bearer token.
            timeout: HTTP request timeout in seconds.
            transport: Optional transport override (used by tests).
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport
        self._headers = {"Content-Type": "application/json"}
        if api_key:
            self._headers["apikey"] = api_key
            self._headers["Authorization"] = f"Bearer {api_key}"

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=self.timeout, headers=self._headers, transport=self._transport
        )

    async def insert(self, table: str, rows: list[dict[str, Any]]) -> list[dict[str, Any]]:
        if not rows:
            return []
        response = await self._send(
            "POST",
            table,
            json=rows,
            headers={"Prefer": "return=representation"},
        )
        return response.json() if response.content else []

    async def update(self, table: str, record_id: str, fields: dict[str, Any]) -> None:
        response = await self._send(
            "PATCH",
            table,
            params={"id": f"eq.{record_id}"},
            json=fields,
            headers={"Prefer": "return=representation"},
        )
        if response.content and response.json() == []:
            raise PostgrestError(
                f"No row {record_id!r} in {table}", table=table, status_code=response.status_code
            )

    async def query(
        self, table: str, filters: dict[str, Any] | None = None
    ) -> list[dict[str, Any]]:
        params = {"select": "*"}
        params.update(encode_filters(filters or {}))
        response = await self._send("GET", table, params=params)
        return response.json()

    async def _send(self, method: str, table: str, **kwargs: Any) -> httpx.Response:
        url = f"{self.base_url}/{table}"
        logger.debug("%s %s", method, url)
        async with self._client() as client:
            try:
                response = await client.request(method, url, **kwargs)
            except httpx.RequestError as e:
                raise PostgrestError(
                    f"Failed to reach record store: {e}", table=table
                ) from e

        if response.status_code >= 400:
            raise PostgrestError(
                f"Record store returned {response.status_code} for {method} {table}",
                table=table,
                status_code=response.status_code,
                details=response.text,
            )
        return response


def encode_filters(filters: dict[str, Any]) -> dict[str, str]:
    """Translate equality/membership filters to PostgREST query params."""
    params: dict[str, str] = {}
    for column, value in filters.items():
        if isinstance(value, (list, tuple, set, frozenset)):
            joined = ",".join(_quote(v) for v in value)
            params[column] = f"in.({joined})"
        elif value is None:
            params[column] = "is.null"
        elif isinstance(value, bool):
            params[column] = f"is.{str(value).lower()}"
        else:
            params[column] = f"eq.{value}"
    return params


def _quote(value: Any) -> str:
    text = str(value.value if hasattr(value, "value") else value)
    if any(ch in text for ch in ',()" '):
        escaped = text.replace('"', '\\"')
        return f'"{escaped}"'
    return text
