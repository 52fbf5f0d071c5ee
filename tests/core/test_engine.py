"""Tests for TableEngine against an in-memory SQLite database."""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass
from datetime import UTC, datetime
from uuid import UUID, uuid4

import pytest
from structlog.testing import capture_logs

from tagmap.core.dialect import SQLiteDialect, get_dialect
from tagmap.core.engine import TableEngine
from tagmap.core.errors import (
    DuplicateEntryError,
    ForeignKeyCreateError,
    ForeignKeyDeleteError,
    QueryError,
    UnsafeStatementError,
)
from tagmap.core.protocols import Connection, CursorConnection
from tagmap.core.prototype import Prototype
from tagmap.core.query import Pagination, QueryParameters
from tagmap.core.schema import NULL, column


# =========================================================================
# Entities
# =========================================================================


@dataclass(kw_only=True)
class User(Prototype):
    identity: str | None = column("identity")
    name: str | None = column("name")
    phone: str | None = column("phone")
    active: bool | None = column("active")


@dataclass(kw_only=True)
class UserCondition:
    id: UUID | None = column("id")
    key: str | None = column("id identity")
    name: str | None = column("name")
    active: bool | None = column("active")


@dataclass(kw_only=True)
class UserPatch:
    name: str | None = column("name")
    phone: str | None = column("phone")
    modified_at: datetime | None = column("mtime")


@dataclass(kw_only=True)
class Post(Prototype):
    user_id: UUID | None = column("user_id")
    title: str | None = column("title")
    description: str | None = column("description")


@dataclass(kw_only=True)
class PostCondition:
    user_id: UUID | None = column("user_id")


# =========================================================================
# Fixtures
# =========================================================================


@pytest.fixture
def users(sqlite_conn: sqlite3.Connection) -> TableEngine[User]:
    return TableEngine(sqlite_conn, "users", User, dialect=SQLiteDialect())


@pytest.fixture
def posts(sqlite_conn: sqlite3.Connection) -> TableEngine[Post]:
    return TableEngine(sqlite_conn, "posts", Post, dialect=SQLiteDialect())


@pytest.fixture
def bob(users: TableEngine[User]) -> User:
    user = User(identity="bob", name="Bob", phone="555-0100", active=True).init()
    users.insert(user)
    users.commit()
    return user


@pytest.fixture
def feed(posts: TableEngine[Post], bob: User) -> list[Post]:
    rows = [
        Post(user_id=bob.id, title=f"post {i}", description="about cats" if i % 2 else "about dogs").init()
        for i in range(5)
    ]
    for row in rows:
        posts.insert(row)
    posts.commit()
    return rows


# =========================================================================
# Tests
# =========================================================================


class TestFactories:
    def test_new_row(self, users: TableEngine[User]) -> None:
        assert users.new_row() == User()

    def test_new_rows(self, users: TableEngine[User]) -> None:
        assert users.new_rows() == []

    def test_default_dialect_from_settings(
        self, sqlite_conn: sqlite3.Connection, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("TAGMAP_DIALECT", "sqlite")
        assert TableEngine(sqlite_conn, "users", User).dialect.name == "sqlite"


class TestInsertAndFetch:
    def test_round_trip(self, users: TableEngine[User], bob: User) -> None:
        found = users.fetch_one(UserCondition(name="Bob"))
        assert found is not None
        assert found.id == bob.id
        assert found.times.created_at == bob.times.created_at
        assert found.times.created_at.tzinfo is not None
        assert found.active is True
        assert found == bob

    def test_insert_rowcount(self, users: TableEngine[User]) -> None:
        assert users.insert(User(name="amy").init()) == 1

    def test_absent_fields_not_inserted(self, users: TableEngine[User]) -> None:
        users.insert(User(name="amy").init())
        found = users.fetch_one(UserCondition(name="amy"))
        assert found.phone is None
        assert found.identity is None

    def test_fetch_one_missing(self, users: TableEngine[User], bob: User) -> None:
        assert users.fetch_one(UserCondition(name="nobody")) is None

    def test_fan_out_condition(self, users: TableEngine[User], bob: User) -> None:
        assert users.fetch_one(UserCondition(key="bob")).id == bob.id
        assert users.fetch_one(UserCondition(key=str(bob.id))).id == bob.id


class TestFetchByKey:
    def test_by_uuid(self, users: TableEngine[User], bob: User) -> None:
        assert users.fetch_by_key(bob.id).name == "Bob"

    def test_by_identity(self, users: TableEngine[User], bob: User) -> None:
        assert users.fetch_by_key("bob").id == bob.id

    def test_unknown(self, users: TableEngine[User], bob: User) -> None:
        assert users.fetch_by_key(uuid4()) is None
        assert users.fetch_by_key("nobody") is None


class TestExists:
    def test_exists(self, users: TableEngine[User], bob: User) -> None:
        assert users.exists(UserCondition(id=bob.id)) is True
        assert users.exists(UserCondition(name="nobody")) is False

    def test_exists_without_condition(self, users: TableEngine[User]) -> None:
        assert users.exists(UserCondition()) is False


class TestFetchMany:
    def test_all(self, posts: TableEngine[Post], feed: list[Post]) -> None:
        assert len(posts.fetch_many()) == 5

    def test_condition(self, posts: TableEngine[Post], feed: list[Post], bob: User) -> None:
        assert len(posts.fetch_many(PostCondition(user_id=bob.id))) == 5
        assert posts.fetch_many(PostCondition(user_id=uuid4())) == []

    def test_search_without_condition(self, posts: TableEngine[Post], feed: list[Post]) -> None:
        query = QueryParameters(q="cats", search_columns=["title", "description"])
        assert len(posts.fetch_many(None, query)) == 2

    def test_search_with_condition(self, posts: TableEngine[Post], feed: list[Post], bob: User) -> None:
        query = QueryParameters(q="dogs", search_columns=["title", "description"])
        assert len(posts.fetch_many(PostCondition(user_id=bob.id), query)) == 3
        assert posts.fetch_many(PostCondition(user_id=uuid4()), query) == []

    def test_search_matches_any_column(self, posts: TableEngine[Post], feed: list[Post]) -> None:
        query = QueryParameters(q="post 3", search_columns=["title", "description"])
        (found,) = posts.fetch_many(None, query)
        assert found.title == "post 3"

    def test_order_and_pagination(self, posts: TableEngine[Post], feed: list[Post]) -> None:
        query = QueryParameters(order_by="title DESC", pagination=Pagination(pos=1, len=2))
        page = posts.fetch_many(None, query, paginate=True)
        assert [p.title for p in page] == ["post 3", "post 2"]

    def test_pagination_ignored_unless_requested(self, posts: TableEngine[Post], feed: list[Post]) -> None:
        query = QueryParameters(pagination=Pagination(len=1))
        assert len(posts.fetch_many(None, query)) == 5

    def test_scanned_identifiers(self, posts: TableEngine[Post], feed: list[Post], bob: User) -> None:
        assert all(p.user_id == bob.id for p in posts.fetch_many())


class TestUpdate:
    def test_only_present_fields_change(self, users: TableEngine[User], bob: User) -> None:
        assert users.update(UserCondition(id=bob.id), UserPatch(name="Robert")) == 1
        found = users.fetch_by_key(bob.id)
        assert found.name == "Robert"
        assert found.phone == "555-0100"

    def test_null_clears_column(self, users: TableEngine[User], bob: User) -> None:
        users.update(UserCondition(id=bob.id), UserPatch(phone=NULL))
        assert users.fetch_by_key(bob.id).phone is None

    def test_modified_at_not_restamped(self, users: TableEngine[User], bob: User) -> None:
        users.update(UserCondition(id=bob.id), UserPatch(name="Robert"))
        assert users.fetch_by_key(bob.id).times.modified_at == bob.times.modified_at

    def test_explicit_modified_at(self, users: TableEngine[User], bob: User) -> None:
        later = datetime(2030, 1, 1, tzinfo=UTC)
        users.update(UserCondition(id=bob.id), UserPatch(modified_at=later))
        found = users.fetch_by_key(bob.id)
        assert found.times.modified_at == later
        assert found.times.created_at == bob.times.created_at

    def test_no_match(self, users: TableEngine[User], bob: User) -> None:
        assert users.update(UserCondition(id=uuid4()), UserPatch(name="x")) == 0

    def test_empty_condition_refused(self, users: TableEngine[User], bob: User) -> None:
        with pytest.raises(UnsafeStatementError):
            users.update(UserCondition(), UserPatch(name="x"))
        assert users.fetch_by_key(bob.id).name == "Bob"

    def test_allow_all(self, users: TableEngine[User], bob: User) -> None:
        users.insert(User(name="amy").init())
        assert users.update(None, UserPatch(phone="000"), allow_all=True) == 2


class TestDelete:
    def test_delete(self, users: TableEngine[User], bob: User) -> None:
        assert users.delete(UserCondition(id=bob.id)) == 1
        assert users.fetch_by_key(bob.id) is None

    def test_empty_condition_refused(self, users: TableEngine[User], bob: User) -> None:
        with pytest.raises(UnsafeStatementError):
            users.delete(UserCondition())
        assert users.exists(UserCondition(id=bob.id))


class TestConstraintErrors:
    def test_duplicate(self, users: TableEngine[User], bob: User) -> None:
        with pytest.raises(DuplicateEntryError) as info:
            users.insert(User(id=bob.id, name="clone"))
        assert info.value.context.table == "users"
        assert info.value.context.statement == "insert"
        assert isinstance(info.value.__cause__, sqlite3.IntegrityError)

    def test_foreign_key_on_create(self, posts: TableEngine[Post]) -> None:
        with pytest.raises(ForeignKeyCreateError):
            posts.insert(Post(user_id=uuid4(), title="orphan").init())

    def test_foreign_key_on_delete(
        self, users: TableEngine[User], feed: list[Post], bob: User
    ) -> None:
        with pytest.raises(ForeignKeyDeleteError):
            users.delete(UserCondition(id=bob.id))

    def test_other_failures(self, sqlite_conn: sqlite3.Connection) -> None:
        missing = TableEngine(sqlite_conn, "nope", User, dialect=SQLiteDialect())
        with pytest.raises(QueryError):
            missing.fetch_many()


class FakeMySQLCursor:
    """Records calls the way a PyMySQL cursor receives them."""

    def __init__(self, conn: FakeMySQLConnection) -> None:
        self.conn = conn
        self.description = conn.description
        self.rowcount = conn.rowcount

    def execute(self, sql: str, args: object = None) -> int:
        if self.conn.fail_with is not None:
            raise self.conn.fail_with
        self.conn.calls.append((sql, args))
        return self.rowcount

    def fetchone(self) -> tuple | None:
        return self.conn.rows[0] if self.conn.rows else None

    def fetchall(self) -> list[tuple]:
        return list(self.conn.rows)


class FakeMySQLConnection:
    """DB-API connection with no ``execute`` of its own, like PyMySQL."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, object]] = []
        self.rows: list[tuple] = []
        self.description: list[tuple] | None = None
        self.rowcount = 1
        self.fail_with: Exception | None = None
        self.committed = False

    def cursor(self) -> FakeMySQLCursor:
        return FakeMySQLCursor(self)

    def commit(self) -> None:
        self.committed = True

    def rollback(self) -> None:
        pass


class TestCursorConnection:
    @pytest.fixture
    def conn(self) -> FakeMySQLConnection:
        return FakeMySQLConnection()

    @pytest.fixture
    def users(self, conn: FakeMySQLConnection) -> TableEngine[User]:
        return TableEngine(conn, "users", User, dialect=get_dialect("mysql-format"))

    def test_protocol_shape(self, conn: FakeMySQLConnection) -> None:
        assert isinstance(conn, CursorConnection)
        assert not isinstance(conn, Connection)

    def test_positional_args_as_tuple(self, conn: FakeMySQLConnection, users: TableEngine[User]) -> None:
        conn.rows = [(1,)]
        assert users.exists(UserCondition(name="Bob")) is True
        assert conn.calls == [("SELECT EXISTS(SELECT 1 FROM users WHERE name = %s)", ("Bob",))]

    def test_named_args_as_dict(
        self, conn: FakeMySQLConnection, users: TableEngine[User], fixed_uuid: UUID
    ) -> None:
        assert users.insert(User(id=fixed_uuid, name="Bob")) == 1
        ((sql, args),) = conn.calls
        assert sql == "INSERT INTO users (id, name) VALUES (UUID_TO_BIN(%(id)s), %(name)s)"
        assert type(args) is dict
        assert args == {"id": str(fixed_uuid), "name": "Bob"}

    def test_no_args_passed_as_none(self, conn: FakeMySQLConnection, users: TableEngine[User]) -> None:
        conn.description = [("name",)]
        conn.rows = [("Bob",), ("Amy",)]
        assert [u.name for u in users.fetch_many()] == ["Bob", "Amy"]
        assert conn.calls == [("SELECT * FROM users", None)]

    def test_fetch_one_scans_description(
        self, conn: FakeMySQLConnection, users: TableEngine[User], fixed_uuid: UUID
    ) -> None:
        conn.description = [("id",), ("name",)]
        conn.rows = [(fixed_uuid.bytes, "Bob")]
        found = users.fetch_by_key(fixed_uuid)
        assert (found.id, found.name) == (fixed_uuid, "Bob")
        assert conn.calls[0][0] == "SELECT * FROM users WHERE id = UUID_TO_BIN(%s)"

    def test_driver_codes_translated(self, conn: FakeMySQLConnection, users: TableEngine[User]) -> None:
        conn.fail_with = Exception(1062, "Duplicate entry 'bob' for key 'identity'")
        with pytest.raises(DuplicateEntryError) as info:
            users.insert(User(name="bob"))
        assert info.value.code == 1062
        assert info.value.context.statement == "insert"

    def test_commit(self, conn: FakeMySQLConnection, users: TableEngine[User]) -> None:
        users.commit()
        assert conn.committed is True


class TestLogging:
    def test_statement_executed(self, users: TableEngine[User], bob: User) -> None:
        with capture_logs() as logs:
            users.exists(UserCondition(name="Bob"))
        assert logs == [
            {
                "event": "statement_executed",
                "log_level": "debug",
                "kind": "exists",
                "table": "users",
                "args": 1,
            }
        ]

    def test_failure_logged_as_warning(self, users: TableEngine[User], bob: User) -> None:
        with capture_logs() as logs, pytest.raises(DuplicateEntryError):
            users.insert(User(id=bob.id, name="clone"))
        (entry,) = logs
        assert entry["event"] == "statement_failed"
        assert entry["log_level"] == "warning"
        assert entry["error_type"] == "DuplicateEntryError"
