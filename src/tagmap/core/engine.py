"""Table engine: tag-driven statements executed over a connection.

Pairs a :class:`~tagmap.core.protocols.Connection` with a
:class:`~tagmap.core.dialect.Dialect`, a table name and a row type, and
exposes the storage operations other layers call.

Architecture::

    ┌────────────────────────────────────────────────────────────────────┐
    │                          TableEngine                               │
    │                                                                    │
    │   conn: Connection        ← protocol from tagmap.core.protocols    │
    │   dialect: Dialect        ← from tagmap.core.dialect               │
    │   table, row_type                                                  │
    │                                                                    │
    │   insert(assignment)                        → rowcount             │
    │   exists(condition)                         → bool                 │
    │   fetch_many(condition, query, paginate)    → list[row_type]       │
    │   fetch_one(condition)                      → row_type | None      │
    │   fetch_by_key(key)                         → row_type | None      │
    │   update(condition, assignment)             → rowcount             │
    │   delete(condition)                         → rowcount             │
    └────────────────────────────────────────────────────────────────────┘

Driver failures are translated by :func:`~tagmap.core.errors.translate_error`
and re-raised; the engine never retries.

Usage:
    >>> users = TableEngine(conn, "users", User, dialect=get_dialect("sqlite"))
    >>> users.insert(User(name="bob").init())
    1
    >>> users.fetch_one(UserCondition(name="bob")).name
    'bob'

Tags:
    engine, repository, database, tagmap
"""

from __future__ import annotations

import uuid
from collections.abc import Mapping
from typing import Any, Generic, TypeVar

from tagmap.core.dialect import Dialect, get_dialect
from tagmap.core.errors import translate_error
from tagmap.core.logging import get_logger
from tagmap.core.protocols import Connection, CursorConnection
from tagmap.core.prototype import ById, ByIdentity
from tagmap.core.query import QueryParameters
from tagmap.core.rows import scan_row
from tagmap.core.statements import (
    Statement,
    build_delete,
    build_exists,
    build_insert,
    build_select,
    build_select_one,
    build_update,
)

T = TypeVar("T")

logger = get_logger(__name__)


class TableEngine(Generic[T]):
    """Storage operations for one table and its row type.

    Parameters:
        conn: A :class:`Connection` (``sqlite3``, the SQLAlchemy bridge) or a
              :class:`CursorConnection` (PyMySQL, mysqlclient), which is
              driven through ``conn.cursor()``.
        table: Table name written into every statement.
        row_type: Dataclass that result rows are scanned into.
        dialect: SQL dialect.  Defaults to the configured dialect
                 (``TAGMAP_DIALECT``, ``mysql`` unless overridden).
    """

    def __init__(
        self,
        conn: Connection | CursorConnection,
        table: str,
        row_type: type[T],
        *,
        dialect: Dialect | None = None,
    ) -> None:
        self.conn = conn
        self.table = table
        self.row_type = row_type
        self.dialect: Dialect = dialect or get_dialect()

    @classmethod
    def from_session(
        cls,
        session: Any,
        table: str,
        row_type: type[T],
        *,
        dialect: Dialect | None = None,
    ) -> TableEngine[T]:
        """Create an engine backed by a SQLAlchemy ORM session.

        Wraps *session* in :class:`~tagmap.core.orm.session.SAConnectionBridge`.

        Example::

            from sqlalchemy.orm import Session

            with Session(engine) as session:
                users = TableEngine.from_session(session, "users", User)
                users.insert(User(name="bob").init())
                users.commit()
        """
        from tagmap.core.orm.session import SAConnectionBridge

        bridge = SAConnectionBridge(session)
        return cls(bridge, table, row_type, dialect=dialect)  # type: ignore[arg-type]

    # -- Row factories -----------------------------------------------------

    def new_row(self) -> T:
        """Empty value of the row type (every field at its default)."""
        return self.row_type()

    def new_rows(self) -> list[T]:
        return []

    # -- Execution ---------------------------------------------------------

    def _run(self, sql: str, params: Any) -> Any:
        execute = getattr(self.conn, "execute", None)
        if execute is not None:
            return execute(sql, params)
        # PyMySQL / mysqlclient connections only execute through a cursor,
        # and their argument escaping accepts plain dicts and tuples only.
        args = dict(params) if isinstance(params, Mapping) else tuple(params)
        cursor = self.conn.cursor()
        cursor.execute(sql, args or None)
        return cursor

    def _execute(self, stmt: Statement) -> Any:
        try:
            cursor = self._run(stmt.sql, stmt.params)
        except Exception as exc:
            error = translate_error(exc, statement=stmt.kind)
            error.with_context(table=self.table, statement=stmt.kind)
            logger.warning(
                "statement_failed",
                kind=stmt.kind,
                table=self.table,
                error_type=type(error).__name__,
                code=error.code,
                sql=stmt.sql,
            )
            if error is exc:
                raise
            raise error from exc
        logger.debug(
            "statement_executed",
            kind=stmt.kind,
            table=self.table,
            args=len(stmt.params),
        )
        return cursor

    @staticmethod
    def _records(cursor: Any, rows: list) -> list[dict[str, Any]]:
        columns = [desc[0] for desc in cursor.description or ()]
        return [dict(zip(columns, row, strict=False)) for row in rows]

    # -- Operations --------------------------------------------------------

    def insert(self, assignment: Any) -> int:
        """Insert one row from the assigned fields of *assignment*."""
        cursor = self._execute(build_insert(self.table, assignment, self.dialect))
        return cursor.rowcount

    def exists(self, condition: Any) -> bool:
        cursor = self._execute(build_exists(self.table, condition, self.dialect))
        row = cursor.fetchone()
        return bool(row and row[0])

    def fetch_many(
        self,
        condition: Any = None,
        query: QueryParameters | None = None,
        paginate: bool = False,
    ) -> list[T]:
        """Rows matching *condition*, narrowed by *query* search/order/pagination."""
        stmt = build_select(self.table, condition, query, paginate, self.dialect)
        cursor = self._execute(stmt)
        return [scan_row(self.row_type, r) for r in self._records(cursor, cursor.fetchall())]

    def fetch_one(self, condition: Any) -> T | None:
        """First row matching *condition*, or ``None`` when nothing matches."""
        cursor = self._execute(build_select_one(self.table, condition, self.dialect))
        row = cursor.fetchone()
        if row is None:
            return None
        return scan_row(self.row_type, self._records(cursor, [row])[0])

    def fetch_by_key(self, key: uuid.UUID | str) -> T | None:
        """Fetch by ``id`` when *key* is a UUID, otherwise by ``identity``."""
        if isinstance(key, uuid.UUID):
            return self.fetch_one(ById(id=key))
        return self.fetch_one(ByIdentity(identity=key))

    def update(self, condition: Any, assignment: Any, *, allow_all: bool = False) -> int:
        stmt = build_update(
            self.table, condition, assignment, allow_all=allow_all, dialect=self.dialect
        )
        return self._execute(stmt).rowcount

    def delete(self, condition: Any, *, allow_all: bool = False) -> int:
        stmt = build_delete(self.table, condition, allow_all=allow_all, dialect=self.dialect)
        return self._execute(stmt).rowcount

    def commit(self) -> None:
        """Commit the current transaction."""
        self.conn.commit()


__all__ = [
    "TableEngine",
]
