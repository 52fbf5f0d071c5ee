"""SQL dialect abstraction for the statement builders.

The builders never hard-code bind syntax.  A :class:`Dialect` renders the
four fragments that differ between drivers: the positional placeholder,
the named placeholder, the binary-identifier conversion call and the
LIMIT clause.

Architecture::

    ┌──────────────────────┐ ┌──────────────────────┐ ┌──────────────────┐
    │ MySQL (qmark)        │ │ MySQL (format)       │ │ SQLite           │
    │ ?   :name            │ │ %s  :name            │ │ ?   :name        │
    │ UUID_TO_BIN(?)       │ │ UUID_TO_BIN(%s)      │ │ ? (uuid as text) │
    │ LIMIT ?, ?           │ │ LIMIT %s, %s         │ │ LIMIT ?, ?       │
    └──────────────────────┘ └──────────────────────┘ └──────────────────┘

Examples:
    >>> d = MySQLDialect()
    >>> d.binary_id(d.named("id"))
    'UUID_TO_BIN(:id)'
    >>> d.limit(d.placeholder(0), d.placeholder(1))
    'LIMIT ?, ?'

Tags:
    dialect, sql, mysql, sqlite, placeholders, tagmap

Doc-Types:
    - API Reference
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from tagmap.core.errors import ConfigError


@runtime_checkable
class Dialect(Protocol):
    """SQL dialect contract.  Every method returns a SQL fragment."""

    @property
    def name(self) -> str:
        """Human-readable dialect name (e.g. ``'mysql'``)."""
        ...

    def placeholder(self, index: int) -> str:
        """Single positional placeholder (0-based index)."""
        ...

    def named(self, name: str) -> str:
        """Named placeholder for *name*."""
        ...

    def binary_id(self, expr: str) -> str:
        """Wrap a bind expression holding a canonical UUID string."""
        ...

    def limit(self, offset: str, length: str) -> str:
        """LIMIT clause over two already rendered bind tokens."""
        ...


class MySQLDialect:
    """MySQL dialect: ``UUID_TO_BIN`` identifiers and ``LIMIT offset, length``.

    ``paramstyle="qmark"`` renders ``?`` (prepared-statement drivers and
    :class:`~tagmap.core.orm.session.SAConnectionBridge`);
    ``paramstyle="format"`` renders ``%s`` and ``%(name)s`` for PyMySQL / mysqlclient
    cursors used directly.
    """

    def __init__(self, paramstyle: str = "qmark") -> None:
        if paramstyle not in ("qmark", "format"):
            raise ConfigError(f"Unsupported MySQL paramstyle {paramstyle!r}")
        self.paramstyle = paramstyle

    @property
    def name(self) -> str:
        return "mysql"

    def placeholder(self, index: int) -> str:  # noqa: ARG002
        return "?" if self.paramstyle == "qmark" else "%s"

    def named(self, name: str) -> str:
        if self.paramstyle == "format":
            return f"%({name})s"
        return f":{name}"

    def binary_id(self, expr: str) -> str:
        return f"UUID_TO_BIN({expr})"

    def limit(self, offset: str, length: str) -> str:
        return f"LIMIT {offset}, {length}"


class SQLiteDialect:
    """SQLite dialect; identifiers are stored as canonical text."""

    @property
    def name(self) -> str:
        return "sqlite"

    def placeholder(self, index: int) -> str:  # noqa: ARG002
        return "?"

    def named(self, name: str) -> str:
        return f":{name}"

    def binary_id(self, expr: str) -> str:
        return expr

    def limit(self, offset: str, length: str) -> str:
        return f"LIMIT {offset}, {length}"


# =========================================================================
# Registry / Factory
# =========================================================================

_DIALECTS: dict[str, Dialect] = {
    "mysql": MySQLDialect(),
    "mysql-format": MySQLDialect(paramstyle="format"),
    "sqlite": SQLiteDialect(),
}


def get_dialect(db_type: str | None = None) -> Dialect:
    """Get a dialect by name; ``None`` reads ``TAGMAP_DIALECT`` from settings.

    Raises:
        ConfigError: If the name is not registered.
    """
    if db_type is None:
        from tagmap.core.settings import get_settings

        db_type = get_settings().dialect
    key = db_type.lower()
    if key not in _DIALECTS:
        raise ConfigError(
            f"Unknown dialect '{db_type}'. Supported: {sorted(_DIALECTS)}"
        )
    return _DIALECTS[key]


def register_dialect(name: str, dialect: Dialect) -> None:
    """Register a custom dialect implementation (lower-cased key)."""
    _DIALECTS[name.lower()] = dialect


__all__ = [
    "Dialect",
    "MySQLDialect",
    "SQLiteDialect",
    "get_dialect",
    "register_dialect",
]
