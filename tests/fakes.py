# tests/fakes.py

from __future__ import annotations

from dataclasses import dataclass, field

from taskflow.core.errors import RemoteError
from taskflow.core.models import Row
from taskflow.core.ports import Filter, RemoteStore


@dataclass(slots=True)
class RemoteCall:
    op: str
    table: str


class FlakyRemoteStore:
    """
    RemoteStore wrapper used by failure-path tests.

    - Records every call for assertions
    - Raises RemoteError for (op, table) pairs listed in ``fail_on``
      (``"*"`` as table fails every table for that op)
    """

    def __init__(self, inner: RemoteStore) -> None:
        self.inner = inner
        self.fail_on: set[tuple[str, str]] = set()
        self.calls: list[RemoteCall] = []

    def _check(self, op: str, table: str) -> None:
        self.calls.append(RemoteCall(op, table))
        if (op, table) in self.fail_on or (op, "*") in self.fail_on:
            raise RemoteError(f"simulated {op} failure on {table}", status=500)

    def count(self, op: str, table: str | None = None) -> int:
        return sum(1 for c in self.calls if c.op == op and (table is None or c.table == table))

    async def select(
        self,
        table: str,
        *filters: Filter,
        order_by: str | None = None,
        descending: bool = False,
        limit: int | None = None,
    ) -> list[Row]:
        self._check("select", table)
        return await self.inner.select(table, *filters, order_by=order_by, descending=descending, limit=limit)

    async def insert(self, table: str, rows: Row | list[Row]) -> list[Row]:
        self._check("insert", table)
        return await self.inner.insert(table, rows)

    async def update(self, table: str, values: Row, *filters: Filter) -> list[Row]:
        self._check("update", table)
        return await self.inner.update(table, values, *filters)

    async def delete(self, table: str, *filters: Filter) -> None:
        self._check("delete", table)
        await self.inner.delete(table, *filters)


@dataclass(slots=True)
class IdentityLog:
    """Collects identities passed to SessionManager listeners."""

    seen: list[str | None] = field(default_factory=list)

    async def __call__(self, identity) -> None:
        self.seen.append(identity.id if identity else None)
