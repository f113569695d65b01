# src/taskflow/remote/rest.py

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

import httpx

from ..core.errors import RemoteError, remote_error_from_payload
from ..core.models import Row
from ..core.ports import Filter

logger = logging.getLogger(__name__)


def _literal(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _quote_in(value: Any) -> str:
    s = _literal(value)
    if any(ch in s for ch in ',()" '):
        s = '"' + s.replace("\\", "\\\\").replace('"', '\\"') + '"'
    return s


def encode_filter(f: Filter) -> tuple[str, str]:
    """Translate a Filter into a PostgREST query parameter."""
    if f.op == "eq":
        if f.value is None:
            return f.column, "is.null"
        return f.column, f"eq.{_literal(f.value)}"
    if f.op == "neq":
        if f.value is None:
            return f.column, "not.is.null"
        return f.column, f"neq.{_literal(f.value)}"
    if f.op == "is":
        return f.column, "is.null"
    if f.op == "ilike":
        return f.column, f"ilike.{f.value}"
    if f.op == "in":
        return f.column, "in.(" + ",".join(_quote_in(v) for v in f.value) + ")"
    raise ValueError(f"Unsupported filter op: {f.op}")


class RestRemoteStore:
    """
    RemoteStore over a PostgREST endpoint (``<base>/rest/v1/<table>``).

    Row-level security lives on the server; every request carries the project
    key and, once signed in, the user's bearer token.
    """

    def __init__(
        self,
        base_url: str,
        api_key: str,
        *,
        client: httpx.AsyncClient,
        token_provider: Callable[[], str | None],
    ) -> None:
        self._base = base_url.rstrip("/") + "/rest/v1"
        self._api_key = api_key
        self._client = client
        self._token_provider = token_provider

    def _headers(self, *, returning: bool = False) -> dict[str, str]:
        token = self._token_provider() or self._api_key
        headers = {
            "apikey": self._api_key,
            "Authorization": f"Bearer {token}",
            "Accept": "application/json",
        }
        if returning:
            headers["Prefer"] = "return=representation"
        return headers

    async def _request(
        self,
        method: str,
        table: str,
        *,
        params: list[tuple[str, str]] | None = None,
        json: Any = None,
        returning: bool = False,
    ) -> Any:
        url = f"{self._base}/{table}"
        try:
            r = await self._client.request(
                method, url, params=params, json=json, headers=self._headers(returning=returning)
            )
        except httpx.HTTPError as e:
            logger.info("%s %s network error: %s", method, table, e)
            raise RemoteError(f"Network error talking to the task service: {e}") from e

        logger.debug("%s %s -> %s", method, table, r.status_code)
        if r.status_code >= 400:
            try:
                payload: Any = r.json()
            except ValueError:
                payload = r.text or f"HTTP {r.status_code}"
            raise remote_error_from_payload(payload, status=r.status_code)

        if not r.content:
            return None
        try:
            return r.json()
        except ValueError as e:
            raise RemoteError(f"Malformed response from the task service ({table})") from e

    async def select(
        self,
        table: str,
        *filters: Filter,
        order_by: str | None = None,
        descending: bool = False,
        limit: int | None = None,
    ) -> list[Row]:
        params: list[tuple[str, str]] = [("select", "*")]
        params.extend(encode_filter(f) for f in filters)
        if order_by:
            params.append(("order", f"{order_by}.{'desc' if descending else 'asc'}"))
        if limit is not None:
            params.append(("limit", str(int(limit))))
        data = await self._request("GET", table, params=params)
        return list(data or [])

    async def insert(self, table: str, rows: Row | list[Row]) -> list[Row]:
        data = await self._request("POST", table, json=rows, returning=True)
        if isinstance(data, dict):
            return [data]
        return list(data or [])

    async def update(self, table: str, values: Row, *filters: Filter) -> list[Row]:
        if not filters:
            raise ValueError("update() requires at least one filter")
        params = [encode_filter(f) for f in filters]
        data = await self._request("PATCH", table, params=params, json=values, returning=True)
        return list(data or [])

    async def delete(self, table: str, *filters: Filter) -> None:
        if not filters:
            raise ValueError("delete() requires at least one filter")
        params = [encode_filter(f) for f in filters]
        await self._request("DELETE", table, params=params)
