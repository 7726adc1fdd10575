"""Blocking queries over the users/posts/comments schema, with cached statements."""

from __future__ import annotations

import operator
from collections.abc import Callable, Iterator
from dataclasses import dataclass, field, fields, replace
from typing import Any, Generic, Optional, TypeVar

from pgbind.pgtypes import slice_iter
from pgbind.statement import GenericClient, Stmt

__all__ = [
    "User",
    "Post",
    "Comment",
    "SelectComplex",
    "InsertUserParams",
    "Query",
    "SelectStmt",
    "ExecuteStmt",
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


@dataclass
class User:
    id: int
    name: str
    hair_color: Optional[str]


@dataclass
class Post:
    id: int
    user_id: int
    title: str
    body: Optional[str]


@dataclass
class Comment:
    id: int
    post_id: int
    text: str


@dataclass
class SelectComplex:
    myuser_id: int
    name: str
    hair_color: Optional[str]
    post_id: Optional[int]
    user_id: Optional[int]
    title: Optional[str]
    body: Optional[str]


@dataclass
class InsertUserParams:
    """Parameters of :func:`insert_user` bundled in one object."""

    name: str
    hair_color: Optional[str] = None


def _row_extractor(cls: type) -> Callable[[Any], Any]:
    """Build a function turning a row into ``cls``, column i feeding field i."""
    getter = operator.itemgetter(*range(len(fields(cls))))

    def extract(row: Any) -> Any:
        values = getter(row)
        if not isinstance(values, tuple):
            values = (values,)
        return cls(*values)

    return extract


def _check_arity(expected: int, args: tuple) -> None:
    if len(args) != expected:
        raise TypeError(f"statement takes {expected} parameter(s), got {len(args)}")


@dataclass(frozen=True)
class Query(Generic[T]):
    """A bound select statement; run it with one, opt, all or iter."""

    client: GenericClient
    params: tuple
    stmt: Stmt
    extractor: Callable[[Any], Any]
    mapper: Optional[Callable[[Any], T]] = None

    def map(self, mapper: Callable[[Any], R]) -> "Query[R]":
        """Return the same query with rows passed through ``mapper``."""
        return replace(self, mapper=mapper)  # type: ignore[return-value]

    def _convert(self, row: Any) -> T:
        extracted = self.extractor(row)
        if self.mapper is None:
            return extracted
        return self.mapper(extracted)

    def one(self) -> T:
        prepared = self.stmt.prepare(self.client)
        return self._convert(self.client.query_one(prepared, self.params))

    def all(self) -> list[T]:
        return list(self.iter())

    def opt(self) -> Optional[T]:
        prepared = self.stmt.prepare(self.client)
        row = self.client.query_opt(prepared, self.params)
        return None if row is None else self._convert(row)

    def iter(self) -> Iterator[T]:
        """Prepare now and return an iterator that converts rows lazily."""
        prepared = self.stmt.prepare(self.client)
        rows = self.client.query_raw(prepared, slice_iter(self.params))
        return (self._convert(row) for row in rows)


@dataclass
class SelectStmt:
    """A select statement returning rows converted by ``extractor``."""

    query: str
    extractor: Callable[[Any], Any]
    arity: int = 0
    stmt: Stmt = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self.stmt = Stmt(self.query)

    def bind(self, client: GenericClient, *args: Any) -> Query:
        _check_arity(self.arity, args)
        return Query(client, tuple(args), self.stmt, self.extractor)


@dataclass
class ExecuteStmt:
    """A statement run for its effect, returning the number of affected rows."""

    query: str
    arity: int = 0
    stmt: Stmt = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self.stmt = Stmt(self.query)

    def bind(self, client: GenericClient, *args: Any) -> int:
        _check_arity(self.arity, args)
        prepared = self.stmt.prepare(client)
        return client.execute(prepared, list(args))

    def params(self, client: GenericClient, params: Any) -> int:
        """Bind the fields of the dataclass ``params``, in declaration order."""
        return self.bind(client, *(getattr(params, f.name) for f in fields(params)))


def users() -> SelectStmt:
    return SelectStmt("SELECT * FROM users", _row_extractor(User))


def insert_user() -> ExecuteStmt:
    return ExecuteStmt("INSERT INTO users (name, hair_color) VALUES ($1, $2)", arity=2)


def posts() -> SelectStmt:
    return SelectStmt("SELECT * FROM posts", _row_extractor(Post))


def post_by_user_ids() -> SelectStmt:
    return SelectStmt(
        "SELECT * FROM posts WHERE user_id = ANY($1)", _row_extractor(Post), arity=1
    )


def comments() -> SelectStmt:
    return SelectStmt("SELECT * FROM comments", _row_extractor(Comment))


def comments_by_post_id() -> SelectStmt:
    return SelectStmt(
        "SELECT * FROM comments WHERE post_id = ANY($1)", _row_extractor(Comment), arity=1
    )


def select_complex() -> SelectStmt:
    return SelectStmt(
        "SELECT u.id as myuser_id, u.name, u.hair_color, p.id as post_id, p.user_id, "
        "p.title, p.body FROM users as u LEFT JOIN posts as p on u.id = p.user_id",
        _row_extractor(SelectComplex),
    )