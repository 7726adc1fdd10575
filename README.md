# pgbind

Small building blocks for running typed queries against PostgreSQL from
Python, with the same shape for blocking and `asyncio` code. The package has
no dependencies outside the standard library.

## Modules

- `pgbind.pgtypes`: PostgreSQL type descriptions (`PgType`, `Kind`),
  domain unwrapping (`escape_domain`, `Domain`, `DomainArray`), encoding
  and decoding of one-dimensional binary arrays (`encode_array`,
  `decode_array`, `ArrayIterator`), array parameters built afresh from a
  factory on every use (`IterSql`), and `slice_iter`.
- `pgbind.statement`: the client protocols `GenericClient` and
  `AsyncGenericClient` (`prepare`, `execute`, `query_one`, `query_opt`,
  `query`, `query_raw`), and `Stmt` / `AsyncStmt`, which prepare their
  query on first use and reuse the prepared statement afterwards.
- `pgbind.query`: the row records `User`, `Post`, `Comment`,
  `SelectComplex` and `InsertUserParams`; `Query` with `map`, `one`, `all`,
  `opt` and `iter`; `SelectStmt` and `ExecuteStmt`; and ready-made
  statements for a users / posts / comments schema: `users()`,
  `insert_user()`, `posts()`, `post_by_user_ids()`, `comments()`,
  `comments_by_post_id()`, `select_complex()`.
- `pgbind.aquery`: the same statements for asynchronous clients, built on
  `AsyncQuery`, `AsyncSelectStmt` and `AsyncExecuteStmt`.
- `pgbind.template`: a small interpolation language (`parse`, `render`,
  the nodes `Display`, `Call`, `Repeat`, and `TemplateError`).
- `pgbind.models`: insertable records `NewUser`, `NewPost`, `NewComment`,
  `new_users` and `grouped_by` for stitching child rows to their parents.
- `pgbind.workload` / `pgbind.aworkload`: query builders
  (`build_insert_query`, `build_in_query`, `insert_params`),
  `assemble_associations`, and the workloads `trivial_query`,
  `medium_complex_query`, `insert_users` and `load_associations` written
  in plain SQL against a client.

## Installing

```
pip install .
```

Run the tests with:

```
pip install ".[test]"
pytest
```

## Queries

```python
from pgbind.query import InsertUserParams, insert_user, users

stmt = insert_user()
stmt.bind(client, "Ada", "red")                          # rows affected
stmt.params(client, InsertUserParams("Grace", None))     # same, from a record

for user in users().bind(client).all():
    print(user.id, user.name, user.hair_color)

names = users().bind(client).map(lambda u: u.name).all()
```

`bind` checks the number of parameters and raises `TypeError` on a
mismatch. Rows returned by the client are read by position: column *i*
fills field *i* of the record. `one` uses the client's `query_one`, `opt`
its `query_opt`, and `iter` / `all` its `query_raw`.

Async code uses `pgbind.aquery` in the same way with an
`AsyncGenericClient`, awaiting `bind` on execute statements and `one`,
`opt`, `all` and `iter` on queries; `await query.iter()` returns an async
iterator.

## Arrays

```python
from pgbind.pgtypes import Kind, PgType, decode_array, encode_array

int4 = PgType("int4", 23)
int4_array = PgType("_int4", 1007, Kind.ARRAY, int4)

data = encode_array(int4_array, [1, None, 3],
                    lambda ty, v: None if v is None else v.to_bytes(4, "big", signed=True))
values = list(decode_array(int4_array, data,
                           lambda ty, raw: int.from_bytes(raw, "big", signed=True)))
# [1, None, 3]
```

Encoders return the element's bytes, or `None` for NULL. Decoding rejects
arrays of more than one dimension with `ValueError`.

## Templates

```python
from pgbind.template import render

render("$greeting, ${who}!", {"greeting": "Hi", "who": "you"})   # 'Hi, you!'
render("Hello $($name, )", {"name": ["a", "b"]})                  # 'Hello a, b, '
```

`$!name` calls `name(out)` with the output stream at that point. Nested
repetitions, unknown patterns and missing values raise `TemplateError`.

## What this package does not do

pgbind does not talk to a database itself: it ships no driver, connection
handling or pool. Every function takes a client object that you supply and
that follows `GenericClient` or `AsyncGenericClient`. It also has no
command-line tool and does not generate code from SQL files.