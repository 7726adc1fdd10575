import pytest

from pgbind import aworkload, workload
from pgbind.query import Comment, Post, User

USER_ROWS = [
    {"id": 1, "name": "alice", "hair_color": "red"},
    {"id": 2, "name": "bob", "hair_color": None},
]
POST_ROWS = [
    {"id": 10, "title": "first", "user_id": 1, "body": "hello"},
    {"id": 11, "title": "second", "user_id": 1, "body": None},
    {"id": 12, "title": "third", "user_id": 2, "body": "x"},
]
COMMENT_ROWS = [
    {"id": 100, "post_id": 10, "text": "nice"},
    {"id": 101, "post_id": 12, "text": "ok"},
    {"id": 102, "post_id": 10, "text": "again"},
]
COMPLEX_ROWS = [
    (1, "alice", "red", 10, 1, "first", "hello"),
    (2, "bob", None, None, None, None, None),
]


def _query_text(statement):
    return statement[1] if isinstance(statement, tuple) else statement


def _select(query, users, posts, comments, complex_rows):
    if query == workload.USERS_QUERY:
        return [tuple(r.values()) if False else r for r in users]
    if query == workload.COMPLEX_QUERY:
        return complex_rows
    if query.startswith(workload.POSTS_BY_USERS):
        return posts
    if query.startswith(workload.COMMENTS_BY_POSTS):
        return comments
    raise AssertionError(f"unexpected query {query}")


class FakeAsyncClient:
    def __init__(self, users=USER_ROWS, posts=POST_ROWS, comments=COMMENT_ROWS,
                 complex_rows=COMPLEX_ROWS):
        self.users = users
        self.posts = posts
        self.comments = comments
        self.complex_rows = complex_rows
        self.prepared = []
        self.raw_calls = []
        self.executed = []

    async def prepare(self, query):
        self.prepared.append(query)
        return ("stmt", query)

    async def query_raw(self, statement, params):
        query = _query_text(statement)
        self.raw_calls.append((query, list(params)))
        rows = _select(query, self.users, self.posts, self.comments, self.complex_rows)

        async def stream():
            for row in rows:
                yield row

        return stream()

    async def execute(self, statement, params):
        params = list(params)
        self.executed.append((statement, params))
        return len(params) // 2


class FakeSyncClient:
    def __init__(self):
        self.raw_calls = []

    def prepare(self, query):
        return ("stmt", query)

    def query_raw(self, statement, params):
        query = _query_text(statement)
        self.raw_calls.append((query, list(params)))
        return list(_select(query, USER_ROWS, POST_ROWS, COMMENT_ROWS, COMPLEX_ROWS))

    def execute(self, statement, params):
        return len(list(params)) // 2


@pytest.mark.asyncio
async def test_trivial_query_loads_users():
    client = FakeAsyncClient()
    result = await aworkload.trivial_query(client)
    assert result == [User(1, "alice", "red"), User(2, "bob", None)]
    assert client.prepared == [workload.USERS_QUERY]


@pytest.mark.asyncio
async def test_trivial_query_empty():
    client = FakeAsyncClient(users=[])
    assert await aworkload.trivial_query(client) == []


@pytest.mark.asyncio
async def test_medium_complex_query_handles_missing_post():
    client = FakeAsyncClient()
    result = await aworkload.medium_complex_query(client)
    assert result == [
        (User(1, "alice", "red"), Post(10, 1, "first", "hello")),
        (User(2, "bob", None), None),
    ]
    assert client.prepared == [workload.COMPLEX_QUERY]


@pytest.mark.asyncio
async def test_insert_users_sends_built_query_and_params():
    client = FakeAsyncClient()
    count = await aworkload.insert_users(client, 3)
    assert count == 3
    query, params = client.executed[0]
    assert query == workload.build_insert_query(3)
    assert params == workload.insert_params(3)
    assert params[0] == "User 0"
    assert params[1] == "hair_color"


@pytest.mark.asyncio
async def test_insert_users_rejects_negative_size():
    client = FakeAsyncClient()
    with pytest.raises(ValueError):
        await aworkload.insert_users(client, -1)
    assert client.executed == []


@pytest.mark.asyncio
async def test_load_associations_nests_posts_and_comments():
    client = FakeAsyncClient()
    result = await aworkload.load_associations(client)
    alice, bob = User(1, "alice", "red"), User(2, "bob", None)
    assert result == [
        (
            alice,
            [
                (Post(10, 1, "first", "hello"),
                 [Comment(100, 10, "nice"), Comment(102, 10, "again")]),
                (Post(11, 1, "second", None), []),
            ],
        ),
        (bob, [(Post(12, 2, "third", "x"), [Comment(101, 12, "ok")])]),
    ]


@pytest.mark.asyncio
async def test_load_associations_passes_ids_as_params():
    client = FakeAsyncClient()
    await aworkload.load_associations(client)
    posts_call, comments_call = client.raw_calls[1], client.raw_calls[2]
    assert posts_call == (workload.build_in_query(workload.POSTS_BY_USERS, 2), [1, 2])
    assert comments_call == (
        workload.build_in_query(workload.COMMENTS_BY_POSTS, 3),
        [10, 11, 12],
    )


@pytest.mark.asyncio
async def test_load_associations_missing_parent_raises():
    orphan = [{"id": 10, "title": "lost", "user_id": 99, "body": None}]
    client = FakeAsyncClient(posts=orphan, comments=[])
    with pytest.raises(KeyError):
        await aworkload.load_associations(client)


@pytest.mark.asyncio
async def test_async_matches_blocking_workload():
    async_client = FakeAsyncClient()
    sync_client = FakeSyncClient()
    assert await aworkload.load_associations(async_client) == workload.load_associations(
        sync_client
    )
    assert await aworkload.medium_complex_query(
        async_client
    ) == workload.medium_complex_query(sync_client)
    assert async_client.raw_calls[:3] == sync_client.raw_calls[:3]