"""
Protocol definitions for the execution collaborator.

tagmap never opens connections itself.  :class:`~tagmap.core.engine.TableEngine`
accepts either shape of connection:

- :class:`Connection`: executes directly (``sqlite3.Connection``, or
  :class:`~tagmap.core.orm.session.SAConnectionBridge` wrapping a SQLAlchemy
  session).
- :class:`CursorConnection`: plain DB-API 2.0, executes through
  ``cursor()`` (PyMySQL, mysqlclient). Pair it with the ``mysql-format``
  dialect, whose ``%s`` / ``%(name)s`` tokens those drivers expect.

Architecture:
    ::

        Connection Protocol:
        ┌────────────────────────────────────────────────────────┐
        │ execute(sql, params)   → cursor (description,          │
        │                          rowcount, fetchone(),         │
        │                          fetchall())                   │
        │ commit()               → Commit transaction            │
        │ rollback()             → Rollback transaction          │
        └────────────────────────────────────────────────────────┘

        CursorConnection Protocol:
        ┌────────────────────────────────────────────────────────┐
        │ cursor()               → cursor with execute(sql, args)│
        │ commit() / rollback()                                  │
        └────────────────────────────────────────────────────────┘

    ``params`` is a sequence for positional statements and a mapping for
    named statements.

Tags:
    protocol, connection, database, tagmap
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class Cursor(Protocol):
    """The subset of a DB-API cursor the engine reads."""

    @property
    def description(self) -> Any: ...

    @property
    def rowcount(self) -> int: ...

    def fetchone(self) -> Any: ...

    def fetchall(self) -> list: ...


@runtime_checkable
class Connection(Protocol):
    """Minimal synchronous connection interface."""

    def execute(self, sql: str, params: Sequence[Any] | Mapping[str, Any] = ()) -> Any:
        """Execute SQL with positional or named parameters; return a cursor."""
        ...

    def commit(self) -> None:
        """Commit current transaction."""
        ...

    def rollback(self) -> None:
        """Rollback current transaction."""
        ...


@runtime_checkable
class CursorConnection(Protocol):
    """DB-API 2.0 connection without a direct ``execute``."""

    def cursor(self) -> Any: ...

    def commit(self) -> None: ...

    def rollback(self) -> None: ...


__all__ = [
    "Connection",
    "CursorConnection",
    "Cursor",
]
