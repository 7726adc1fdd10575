"""Asynchronous query workloads over the users/posts/comments schema using plain SQL."""

from __future__ import annotations

from typing import Any, Optional

from pgbind.query import Comment, Post, User
from pgbind.statement import AsyncGenericClient
from pgbind.workload import (
    COMMENTS_BY_POSTS,
    COMPLEX_QUERY,
    POSTS_BY_USERS,
    USERS_QUERY,
    Association,
    _column,
    _user_from,
    assemble_associations,
    build_in_query,
    build_insert_query,
    insert_params,
)

__all__ = [
    "trivial_query",
    "medium_complex_query",
    "insert_users",
    "load_associations",
]


async def _rows(client: AsyncGenericClient, statement: Any, params: Any) -> list:
    stream = await client.query_raw(statement, params)
    return [row async for row in stream]


async def trivial_query(client: AsyncGenericClient) -> list[User]:
    """Load every user."""
    prepared = await client.prepare(USERS_QUERY)
    return [_user_from(row) for row in await _rows(client, prepared, ())]


async def medium_complex_query(
    client: AsyncGenericClient,
) -> list[tuple[User, Optional[Post]]]:
    """Load every user joined with each of their posts, None where there is none."""
    prepared = await client.prepare(COMPLEX_QUERY)
    result: list[tuple[User, Optional[Post]]] = []
    for row in await _rows(client, prepared, ()):
        user = User(id=row[0], name=row[1], hair_color=row[2])
        post_id = row[3]
        post = (
            None
            if post_id is None
            else Post(id=post_id, user_id=row[4], title=row[5], body=row[6])
        )
        result.append((user, post))
    return result


async def insert_users(client: AsyncGenericClient, size: int) -> int:
    """Insert ``size`` users in one statement and return the affected row count."""
    query = build_insert_query(size)
    params = insert_params(size)
    return await client.execute(query, params)


async def load_associations(client: AsyncGenericClient) -> list[Association]:
    """Load users, their posts and the posts' comments with one query per level."""
    user_stmt = await client.prepare(USERS_QUERY)
    users = [_user_from(row) for row in await _rows(client, user_stmt, ())]

    user_ids = [user.id for user in users]
    posts_query = build_in_query(POSTS_BY_USERS, len(user_ids))
    posts = [
        Post(
            id=_column(row, "id", 0),
            title=_column(row, "title", 1),
            user_id=_column(row, "user_id", 2),
            body=_column(row, "body", 3),
        )
        for row in await _rows(client, posts_query, user_ids)
    ]

    post_ids = [post.id for post in posts]
    comments_query = build_in_query(COMMENTS_BY_POSTS, len(post_ids))
    comments = [
        Comment(
            id=_column(row, "id", 0),
            post_id=_column(row, "post_id", 1),
            text=_column(row, "text", 2),
        )
        for row in await _rows(client, comments_query, post_ids)
    ]

    return assemble_associations(users, posts, comments)