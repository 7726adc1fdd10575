"""Blocking query workloads over the users/posts/comments schema using plain SQL."""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from typing import Any, Optional

from pgbind.query import Comment, Post, User
from pgbind.statement import GenericClient

__all__ = [
    "build_insert_query",
    "build_in_query",
    "insert_params",
    "assemble_associations",
    "trivial_query",
    "medium_complex_query",
    "insert_users",
    "load_associations",
]

USERS_QUERY = "SELECT id, name, hair_color FROM users"
COMPLEX_QUERY = (
    "SELECT u.id, u.name, u.hair_color, p.id, p.user_id, p.title, p.body "
    "FROM users as u LEFT JOIN posts as p on u.id = p.user_id"
)
POSTS_BY_USERS = "SELECT id, title, user_id, body FROM posts WHERE user_id IN("
COMMENTS_BY_POSTS = "SELECT id, post_id, text FROM comments WHERE post_id IN("

Association = tuple[User, list[tuple[Post, list[Comment]]]]


def _column(row: Any, name: str, index: int) -> Any:
    """Read a column by name from mapping rows, by position otherwise."""
    if isinstance(row, Mapping):
        return row[name]
    return row[index]


def build_insert_query(size: int) -> str:
    """Return a multi-row insert into users with ``size`` numbered value pairs."""
    if size < 0:
        raise ValueError("size must not be negative")
    rows = ",".join(f" (${2 * x + 1}, ${2 * x + 2})" for x in range(size))
    return "INSERT INTO users (name, hair_color) VALUES" + rows


def build_in_query(base: str, count: int) -> str:
    """Append ``count`` numbered placeholders and a closing parenthesis to ``base``."""
    if count < 0:
        raise ValueError("count must not be negative")
    return base + ",".join(f"${i + 1}" for i in range(count)) + ")"


def insert_params(size: int) -> list[Optional[str]]:
    """Return the flattened (name, hair colour) parameters for :func:`build_insert_query`."""
    if size < 0:
        raise ValueError("size must not be negative")
    return [value for x in range(size) for value in (f"User {x}", "hair_color")]


def assemble_associations(
    users: Iterable[User], posts: Iterable[Post], comments: Iterable[Comment]
) -> list[Association]:
    """Nest comments under their posts and posts under their users.

    Raises KeyError when a comment or post refers to a parent that is missing.
    """
    posts_by_id: dict[int, tuple[Post, list[Comment]]] = {
        post.id: (post, []) for post in posts
    }
    users_by_id: dict[int, tuple[User, list[tuple[Post, list[Comment]]]]] = {
        user.id: (user, []) for user in users
    }
    for comment in comments:
        posts_by_id[comment.post_id][1].append(comment)
    for post_with_comments in posts_by_id.values():
        users_by_id[post_with_comments[0].user_id][1].append(post_with_comments)
    return list(users_by_id.values())


def _user_from(row: Any) -> User:
    return User(
        id=_column(row, "id", 0),
        name=_column(row, "name", 1),
        hair_color=_column(row, "hair_color", 2),
    )


def trivial_query(client: GenericClient) -> list[User]:
    """Load every user."""
    prepared = client.prepare(USERS_QUERY)
    return [_user_from(row) for row in client.query_raw(prepared, ())]


def medium_complex_query(client: GenericClient) -> list[tuple[User, Optional[Post]]]:
    """Load every user joined with each of their posts, None where there is none."""
    prepared = client.prepare(COMPLEX_QUERY)
    result: list[tuple[User, Optional[Post]]] = []
    for row in client.query_raw(prepared, ()):
        user = User(id=row[0], name=row[1], hair_color=row[2])
        post_id = row[3]
        post = (
            None
            if post_id is None
            else Post(id=post_id, user_id=row[4], title=row[5], body=row[6])
        )
        result.append((user, post))
    return result


def insert_users(client: GenericClient, size: int) -> int:
    """Insert ``size`` users in one statement and return the affected row count."""
    return client.execute(build_insert_query(size), insert_params(size))


def load_associations(client: GenericClient) -> list[Association]:
    """Load users, their posts and the posts' comments with one query per level."""
    user_stmt = client.prepare(USERS_QUERY)
    users = [_user_from(row) for row in client.query_raw(user_stmt, ())]

    user_ids = [user.id for user in users]
    posts_query = build_in_query(POSTS_BY_USERS, len(user_ids))
    posts = [
        Post(
            id=_column(row, "id", 0),
            title=_column(row, "title", 1),
            user_id=_column(row, "user_id", 2),
            body=_column(row, "body", 3),
        )
        for row in client.query_raw(posts_query, user_ids)
    ]

    post_ids = [post.id for post in posts]
    comments_query = build_in_query(COMMENTS_BY_POSTS, len(post_ids))
    comments = [
        Comment(
            id=_column(row, "id", 0),
            post_id=_column(row, "post_id", 1),
            text=_column(row, "text", 2),
        )
        for row in client.query_raw(comments_query, post_ids)
    ]

    return assemble_associations(users, posts, comments)


def _sequence(params: Iterable[Any]) -> Sequence[Any]:
    return params if isinstance(params, Sequence) else list(params)