"""
Structured error types for tagmap.

Every failure the mapping layer can report is a :class:`TagmapError`
subclass carrying a category, a retry flag, structured context and the
chained driver exception (if any).  Build-time problems (bad tag schema,
nothing to insert, bind collisions) are never retryable; storage
constraint violations are surfaced with distinguishable kinds so callers
can turn a duplicate entry into a 409 without string matching.

Architecture:
    ::

        ┌───────────────────────────────────────────────────────────────┐
        │                        TagmapError                             │
        │  (category, retryable, context, cause)                         │
        ├───────────────────────────────────────────────────────────────┤
        │                                                                │
        │  SchemaError          BuildError          ProjectionError      │
        │  (SCHEMA)             (BUILD)             (PROJECTION)         │
        │                           │                                    │
        │                    BindCollisionError                          │
        │                    UnsafeStatementError                        │
        │                                                                │
        │  DatabaseError ──┬── QueryError                                │
        │  (DATABASE)      └── IntegrityError ──┬── DuplicateEntryError  │
        │                                       ├── IncorrectValueError  │
        │  DatabaseConnectionError              ├── ForeignKeyCreateError│
        │  (retryable)                          └── ForeignKeyDeleteError│
        └───────────────────────────────────────────────────────────────┘

Examples:
    >>> err = DuplicateEntryError("Duplicate entry 'x' for key 'name'", code=1062)
    >>> err.category
    <ErrorCategory.DATABASE: 'DATABASE'>
    >>> err.to_dict()["code"]
    1062

Tags:
    error-handling, exception-hierarchy, mysql, constraint-violation,
    tagmap

Doc-Types:
    - API Reference
    - Error Handling Guide
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from enum import Enum
from typing import Any

# MySQL server error codes surfaced as distinct constraint kinds.
MYSQL_ERR_DUPLICATE_ENTRY = 1062
MYSQL_ERR_INCORRECT_VALUE = 1411
MYSQL_ERR_FK_CONSTRAINT_CREATE = 1452
MYSQL_ERR_FK_CONSTRAINT_DELETE = 1451

# Client-side codes for lost or refused connections.
_CONNECTION_CODES = frozenset({2002, 2003, 2006, 2013})


class ErrorCategory(str, Enum):
    """Error categories for classification and routing."""

    SCHEMA = "SCHEMA"             # Tag schema declarations
    BUILD = "BUILD"               # Statement generation
    PROJECTION = "PROJECTION"     # Attach engine
    DATABASE = "DATABASE"         # Driver / constraint failures
    CONFIG = "CONFIG"             # Settings
    INTERNAL = "INTERNAL"         # Bugs, unexpected state
    UNKNOWN = "UNKNOWN"           # Uncategorized errors


@dataclass
class ErrorContext:
    """Structured metadata attached to an error.

    Attributes:
        table: Table the statement targeted
        statement: Statement kind (``insert``, ``update`` ...)
        entity: Entity type name being walked or projected
        field: Dotted field path involved in the failure
        metadata: Additional key-value pairs
    """

    table: str | None = None
    statement: str | None = None
    entity: str | None = None
    field: str | None = None
    metadata: dict[str, Any] = dataclasses.field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        result = {}
        for key in ["table", "statement", "entity", "field"]:
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        if self.metadata:
            result.update(self.metadata)
        return result


class TagmapError(Exception):
    """
    Base exception for all tagmap errors.

    Subclasses set ``default_category`` and ``default_retryable`` so that
    raising sites only pass what is specific to the failure.

    Examples:
        >>> error = TagmapError("Something went wrong")
        >>> error.category
        <ErrorCategory.INTERNAL: 'INTERNAL'>
        >>> error.with_context(table="users").context.table
        'users'
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL
    default_retryable: bool = False

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        retryable: bool | None = None,
        context: ErrorContext | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.retryable = retryable if retryable is not None else self.default_retryable
        self.context = context or ErrorContext()
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> TagmapError:
        """
        Add context to this error (fluent API).

        Usage:
            raise BuildError("Nothing to insert").with_context(table="users")
        """
        for key, value in kwargs.items():
            if hasattr(self.context, key) and key != "metadata":
                setattr(self.context, key, value)
            else:
                self.context.metadata[key] = value
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        result = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
            "retryable": self.retryable,
        }
        context_dict = self.context.to_dict()
        if context_dict:
            result["context"] = context_dict
        if self.cause is not None:
            result["cause"] = str(self.cause)
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


# =============================================================================
# SCHEMA / BUILD ERRORS (never retryable)
# =============================================================================


class SchemaError(TagmapError):
    """Invalid tag schema: not a dataclass, cyclic embeds, misplaced fan-out."""

    default_category = ErrorCategory.SCHEMA


class BuildError(TagmapError):
    """A statement could not be generated from the supplied entity value."""

    default_category = ErrorCategory.BUILD


class BindCollisionError(BuildError):
    """The same bind alias was bound to two different values."""

    def __init__(self, alias: str, existing: Any, incoming: Any, **kwargs: Any):
        self.alias = alias
        self.existing = existing
        self.incoming = incoming
        super().__init__(
            f"Bind alias {alias!r} already bound to {existing!r}, refusing {incoming!r}",
            **kwargs,
        )


class UnsafeStatementError(BuildError):
    """An UPDATE or DELETE would run without a WHERE clause."""


class ProjectionError(TagmapError):
    """A target shape could not be constructed from a source value."""

    default_category = ErrorCategory.PROJECTION


class ConfigError(TagmapError):
    """Invalid configuration."""

    default_category = ErrorCategory.CONFIG


# =============================================================================
# DATABASE ERRORS
# =============================================================================


class DatabaseError(TagmapError):
    """Database query or transaction error."""

    default_category = ErrorCategory.DATABASE

    def __init__(self, message: str, *, code: int | None = None, **kwargs: Any):
        super().__init__(message, **kwargs)
        self.code = code

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        if self.code is not None:
            result["code"] = self.code
        return result


class DatabaseConnectionError(DatabaseError):
    """Connection or pool failure; the execution collaborator may retry."""

    default_retryable = True


class QueryError(DatabaseError):
    """SQL rejected by the server for a reason other than a constraint."""


class IntegrityError(DatabaseError):
    """Database integrity constraint violation."""


class DuplicateEntryError(IntegrityError):
    """Unique or primary key violation."""


class IncorrectValueError(IntegrityError):
    """Value rejected for the column type or range."""


class ForeignKeyCreateError(IntegrityError):
    """Insert/update references a parent row that does not exist."""


class ForeignKeyDeleteError(IntegrityError):
    """Delete/update would orphan child rows."""


_CODE_TO_ERROR: dict[int, type[IntegrityError]] = {
    MYSQL_ERR_DUPLICATE_ENTRY: DuplicateEntryError,
    MYSQL_ERR_INCORRECT_VALUE: IncorrectValueError,
    MYSQL_ERR_FK_CONSTRAINT_CREATE: ForeignKeyCreateError,
    MYSQL_ERR_FK_CONSTRAINT_DELETE: ForeignKeyDeleteError,
}


def _driver_code(exc: BaseException) -> int | None:
    """Find a MySQL server error code on a driver or SQLAlchemy exception."""
    for candidate in (exc, getattr(exc, "orig", None)):
        if candidate is None:
            continue
        errno = getattr(candidate, "errno", None)
        if isinstance(errno, int):
            return errno
        args = getattr(candidate, "args", ())
        if args and isinstance(args[0], int):
            return args[0]
    return None


def translate_error(exc: Exception, *, statement: str | None = None) -> DatabaseError:
    """Map a driver exception onto the tagmap hierarchy.

    MySQL drivers (PyMySQL, mysqlclient, mysql-connector) carry the server
    error code as the first argument; SQLAlchemy wraps them in ``.orig``.
    SQLite carries no codes, so its constraint messages are matched
    instead, using *statement* to tell foreign key directions apart.
    """
    if isinstance(exc, DatabaseError):
        return exc

    message = str(exc)
    code = _driver_code(exc)
    if code in _CODE_TO_ERROR:
        return _CODE_TO_ERROR[code](message, code=code, cause=exc)

    lowered = message.lower()
    if "unique constraint failed" in lowered:
        return DuplicateEntryError(message, code=code, cause=exc)
    if "foreign key constraint failed" in lowered:
        if statement == "delete":
            return ForeignKeyDeleteError(message, code=code, cause=exc)
        return ForeignKeyCreateError(message, code=code, cause=exc)
    if "constraint failed" in lowered or "integrity" in type(exc).__name__.lower():
        return IntegrityError(message, code=code, cause=exc)
    if isinstance(exc, ConnectionError) or code in _CONNECTION_CODES:
        return DatabaseConnectionError(message, code=code, cause=exc)
    return QueryError(message, code=code, cause=exc)


def is_retryable(error: Exception) -> bool:
    """Check if an error is retryable."""
    if isinstance(error, TagmapError):
        return error.retryable
    return isinstance(error, (ConnectionError, TimeoutError))


def categorize_error(error: Exception) -> ErrorCategory:
    """Get the category of an error."""
    if isinstance(error, TagmapError):
        return error.category
    if isinstance(error, (TypeError, ValueError)):
        return ErrorCategory.BUILD
    return ErrorCategory.UNKNOWN


__all__ = [
    "MYSQL_ERR_DUPLICATE_ENTRY",
    "MYSQL_ERR_INCORRECT_VALUE",
    "MYSQL_ERR_FK_CONSTRAINT_CREATE",
    "MYSQL_ERR_FK_CONSTRAINT_DELETE",
    "ErrorCategory",
    "ErrorContext",
    "TagmapError",
    "SchemaError",
    "BuildError",
    "BindCollisionError",
    "UnsafeStatementError",
    "ProjectionError",
    "ConfigError",
    "DatabaseError",
    "DatabaseConnectionError",
    "QueryError",
    "IntegrityError",
    "DuplicateEntryError",
    "IncorrectValueError",
    "ForeignKeyCreateError",
    "ForeignKeyDeleteError",
    "translate_error",
    "is_retryable",
    "categorize_error",
]
