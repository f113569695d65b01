# tests/test_rest.py

from __future__ import annotations

import json

import httpx
import pytest

from taskflow.core.errors import RemoteError, UniqueViolationError
from taskflow.core.ports import GROUP_MEMBERS, TASKS, eq, ilike, in_, is_null, neq
from taskflow.remote.rest import RestRemoteStore, encode_filter

BASE = "https://project.example.co"


def _store(handler, token: str | None = None) -> RestRemoteStore:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return RestRemoteStore(BASE, "anon-key", client=client, token_provider=lambda: token)


def test_encode_filter() -> None:
    assert encode_filter(eq("user_id", "u1")) == ("user_id", "eq.u1")
    assert encode_filter(eq("read", False)) == ("read", "eq.false")
    assert encode_filter(eq("group_id", None)) == ("group_id", "is.null")
    assert encode_filter(is_null("group_id")) == ("group_id", "is.null")
    assert encode_filter(neq("group_id", None)) == ("group_id", "not.is.null")
    assert encode_filter(ilike("email", "a\\_b@x.io")) == ("email", "ilike.a\\_b@x.io")
    assert encode_filter(in_("id", ["a", "b,c"])) == ("id", 'in.(a,"b,c")')


@pytest.mark.asyncio
async def test_select_builds_query_and_headers() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json=[{"id": "t1"}])

    store = _store(handler, token="user-jwt")
    rows = await store.select(
        TASKS, eq("user_id", "u1"), is_null("group_id"), order_by="created_at", descending=True, limit=5
    )

    assert rows == [{"id": "t1"}]
    req = seen[0]
    assert req.method == "GET"
    assert req.url.path == "/rest/v1/tasks"
    assert list(req.url.params.multi_items()) == [
        ("select", "*"),
        ("user_id", "eq.u1"),
        ("group_id", "is.null"),
        ("order", "created_at.desc"),
        ("limit", "5"),
    ]
    assert req.headers["apikey"] == "anon-key"
    assert req.headers["Authorization"] == "Bearer user-jwt"
    assert "Prefer" not in req.headers


@pytest.mark.asyncio
async def test_insert_asks_for_representation() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        body = json.loads(request.content)
        return httpx.Response(201, json=[{**body, "id": "new"}])

    store = _store(handler)
    rows = await store.insert(TASKS, {"text": "hi"})

    assert rows == [{"text": "hi", "id": "new"}]
    req = seen[0]
    assert req.method == "POST"
    assert req.headers["Prefer"] == "return=representation"
    # Signed out: the project key doubles as bearer token.
    assert req.headers["Authorization"] == "Bearer anon-key"


@pytest.mark.asyncio
async def test_update_and_delete_require_filters() -> None:
    store = _store(lambda r: httpx.Response(200, json=[]))
    with pytest.raises(ValueError):
        await store.update(TASKS, {"text": "x"})
    with pytest.raises(ValueError):
        await store.delete(TASKS)


@pytest.mark.asyncio
async def test_delete_sends_filters() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(204)

    await _store(handler).delete(GROUP_MEMBERS, eq("group_id", "g1"), eq("user_id", "u2"))
    assert seen[0].method == "DELETE"
    assert dict(seen[0].url.params) == {"group_id": "eq.g1", "user_id": "eq.u2"}


@pytest.mark.asyncio
async def test_unique_violation_is_typed() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(409, json={"code": "23505", "message": "duplicate key value"})

    with pytest.raises(UniqueViolationError) as exc:
        await _store(handler).insert(GROUP_MEMBERS, {"group_id": "g", "user_id": "u"})
    assert exc.value.status == 409


@pytest.mark.asyncio
async def test_http_and_network_errors() -> None:
    def forbidden(request: httpx.Request) -> httpx.Response:
        return httpx.Response(403, json={"code": "42501", "message": "permission denied"})

    with pytest.raises(RemoteError) as exc:
        await _store(forbidden).select(TASKS)
    assert exc.value.status == 403 and exc.value.code == "42501"

    def plain(request: httpx.Request) -> httpx.Response:
        return httpx.Response(502, text="Bad gateway")

    with pytest.raises(RemoteError) as exc:
        await _store(plain).select(TASKS)
    assert exc.value.message == "Bad gateway"

    def down(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(RemoteError) as exc:
        await _store(down).select(TASKS)
    assert exc.value.message.startswith("Network error")
    assert exc.value.status is None
