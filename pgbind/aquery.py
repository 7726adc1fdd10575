"""Asynchronous queries over the users/posts/comments schema, with cached statements."""

from __future__ import annotations

from collections.abc import AsyncIterator, Callable
from dataclasses import dataclass, field, fields, replace
from typing import Any, Generic, Optional, TypeVar

from pgbind.pgtypes import slice_iter
from pgbind.query import Comment, Post, SelectComplex, User, _row_extractor
from pgbind.statement import AsyncGenericClient, AsyncStmt

__all__ = [
    "AsyncQuery",
    "AsyncSelectStmt",
    "AsyncExecuteStmt",
    "users",
    "insert_user",
    "posts",
    "post_by_user_ids",
    "comments",
    "comments_by_post_id",
    "select_complex",
]

T = TypeVar("T")
R = TypeVar("R")


def _check_arity(expected: int, args: tuple) -> None:
    if len(args) != expected:
        raise TypeError(f"statement takes {expected} parameter(s), got {len(args)}")


@dataclass(frozen=True)
class AsyncQuery(Generic[T]):
    """A bound select statement; await one, opt, all or iter to run it."""

    client: AsyncGenericClient
    params: tuple
    stmt: AsyncStmt
    extractor: Callable[[Any], Any]
    mapper: Optional[Callable[[Any], T]] = None

    def map(self, mapper: Callable[[Any], R]) -> "AsyncQuery[R]":
        """Return the same query with rows passed through ``mapper``."""
        return replace(self, mapper=mapper)  # type: ignore[return-value]

    def _convert(self, row: Any) -> T:
        extracted = self.extractor(row)
        if self.mapper is None:
            return extracted
        return self.mapper(extracted)

    async def one(self) -> T:
        prepared = await self.stmt.prepare(self.client)
        row = await self.client.query_one(prepared, self.params)
        return self._convert(row)

    async def all(self) -> list[T]:
        return [item async for item in await self.iter()]

    async def opt(self) -> Optional[T]:
        prepared = await self.stmt.prepare(self.client)
        row = await self.client.query_opt(prepared, self.params)
        return None if row is None else self._convert(row)

    async def iter(self) -> AsyncIterator[T]:
        """Prepare and start the query; return an async iterator converting rows lazily."""
        prepared = await self.stmt.prepare(self.client)
        rows = await self.client.query_raw(prepared, slice_iter(self.params))
        return self._stream(rows)

    async def _stream(self, rows: Any) -> AsyncIterator[T]:
        async for row in rows:
            yield self._convert(row)


@dataclass
class AsyncSelectStmt:
    """A select statement returning rows converted by ``extractor``."""

    query: str
    extractor: Callable[[Any], Any]
    arity: int = 0
    stmt: AsyncStmt = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self.stmt = AsyncStmt(self.query)

    def bind(self, client: AsyncGenericClient, *args: Any) -> AsyncQuery:
        _check_arity(self.arity, args)
        return AsyncQuery(client, tuple(args), self.stmt, self.extractor)


@dataclass
class AsyncExecuteStmt:
    """A statement run for its effect, returning the number of affected rows."""

    query: str
    arity: int = 0
    stmt: AsyncStmt = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self.stmt = AsyncStmt(self.query)

    async def bind(self, client: AsyncGenericClient, *args: Any) -> int:
        _check_arity(self.arity, args)
        prepared = await self.stmt.prepare(client)
        return await client.execute(prepared, list(args))

    async def params(self, client: AsyncGenericClient, params: Any) -> int:
        """Bind the fields of the dataclass ``params``, in declaration order."""
        return await self.bind(client, *(getattr(params, f.name) for f in fields(params)))


def users() -> AsyncSelectStmt:
    return AsyncSelectStmt("SELECT * FROM users", _row_extractor(User))


def insert_user() -> AsyncExecuteStmt:
    return AsyncExecuteStmt(
        "INSERT INTO users (name, hair_color) VALUES ($1, $2)", arity=2
    )


def posts() -> AsyncSelectStmt:
    return AsyncSelectStmt("SELECT * FROM posts", _row_extractor(Post))


def post_by_user_ids() -> AsyncSelectStmt:
    return AsyncSelectStmt(
        "SELECT * FROM posts WHERE user_id = ANY($1)", _row_extractor(Post), arity=1
    )


def comments() -> AsyncSelectStmt:
    return AsyncSelectStmt("SELECT * FROM comments", _row_extractor(Comment))


def comments_by_post_id() -> AsyncSelectStmt:
    return AsyncSelectStmt(
        "SELECT * FROM comments WHERE post_id = ANY($1)",
        _row_extractor(Comment),
        arity=1,
    )


def select_complex() -> AsyncSelectStmt:
    return AsyncSelectStmt(
        "SELECT u.id as myuser_id, u.name, u.hair_color, p.id as post_id, p.user_id, "
        "p.title, p.body FROM users as u LEFT JOIN posts as p on u.id = p.user_id",
        _row_extractor(SelectComplex),
    )