"""Client interfaces and lazily prepared, cached statements."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable, Optional, Protocol, Sequence, runtime_checkable

__all__ = ["GenericClient", "AsyncGenericClient", "Stmt", "AsyncStmt"]


@runtime_checkable
class GenericClient(Protocol):
    """A blocking client or transaction that can prepare and run statements."""

    def prepare(self, query: str) -> Any:
        """Prepare ``query`` and return a statement handle."""

    def execute(self, statement: Any, params: Sequence[Any]) -> int:
        """Run a statement and return the number of affected rows."""

    def query_one(self, statement: Any, params: Sequence[Any]) -> Any:
        """Return exactly one row, raising if there is not exactly one."""

    def query_opt(self, statement: Any, params: Sequence[Any]) -> Optional[Any]:
        """Return one row or None, raising if there are several."""

    def query(self, statement: Any, params: Sequence[Any]) -> list:
        """Return all rows."""

    def query_raw(self, statement: Any, params: Iterable[Any]) -> Iterable[Any]:
        """Return the rows as an iterable that is consumed lazily."""


@runtime_checkable
class AsyncGenericClient(Protocol):
    """An asynchronous client, pooled client or transaction."""

    async def prepare(self, query: str) -> Any:
        """Prepare ``query`` and return a statement handle."""

    async def execute(self, statement: Any, params: Sequence[Any]) -> int:
        """Run a statement and return the number of affected rows."""

    async def query_one(self, statement: Any, params: Sequence[Any]) -> Any:
        """Return exactly one row, raising if there is not exactly one."""

    async def query_opt(self, statement: Any, params: Sequence[Any]) -> Optional[Any]:
        """Return one row or None, raising if there are several."""

    async def query(self, statement: Any, params: Sequence[Any]) -> list:
        """Return all rows."""

    async def query_raw(self, statement: Any, params: Iterable[Any]) -> Any:
        """Return the rows as an asynchronous iterable."""


@dataclass
class Stmt:
    """A query whose prepared statement is created on first use and then reused."""

    query: str
    cached: Any = field(default=None, init=False, repr=False)

    def prepare(self, client: GenericClient) -> Any:
        if self.cached is None:
            self.cached = client.prepare(self.query)
        return self.cached


@dataclass
class AsyncStmt:
    """Asynchronous counterpart of :class:`Stmt`."""

    query: str
    cached: Any = field(default=None, init=False, repr=False)

    async def prepare(self, client: AsyncGenericClient) -> Any:
        if self.cached is None:
            self.cached = await client.prepare(self.query)
        return self.cached