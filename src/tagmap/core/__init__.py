"""tagmap Core -- tag-driven SQL generation, execution and projection.

Manifesto:
    Every persisted entity needs the same handful of statements: insert
    it, find it, page through it, change it, remove it.  Writing that SQL
    by hand for each table drifts out of sync with the entity shape.
    ``tagmap.core`` derives the SQL from per-field tags declared once on a
    dataclass, and projects storage rows onto external shapes the same way.

    - **Declared once:** ``column()``, ``embed()`` and ``attach()`` carry the mapping
    - **Absent is skipped:** ``None`` never becomes an accidental NULL bind
    - **Protocol-first:** Connection and Dialect are protocols, not classes

Architecture::

    Layer 1 -- Types, Errors, Config
        errors.py          Structured error hierarchy (TagmapError, DatabaseError)
        settings.py        TagmapSettings (pydantic-settings, TAGMAP_ prefix)
        logging.py         Structured logging (structlog)
        timestamps.py      UUID generation + UTC helpers (stdlib-only)
        protocols.py       Connection / Cursor protocols

    Layer 2 -- SQL Generation
        schema.py          Tag schema: column(), embed(), attach(), NULL
        dialect.py         MySQL / SQLite dialects + registry
        walker.py          Field walker (cached per-type descriptors)
        statements.py      Insert / Exists / Select / Update / Delete builders
        query.py           QueryParameters + Pagination (pydantic)

    Layer 3 -- Execution and Projection
        engine.py          TableEngine over a Connection
        rows.py            Result record -> row value scanning
        attach.py          project() / project_all()
        prototype.py       Identifier + timestamp lifecycle
        orm/               SQLAlchemy engine factory + SAConnectionBridge

Tags:
    tagmap, core, sql-builder, dataclasses, mysql

Doc-Types:
    package-overview, architecture-map
"""

from tagmap.core.attach import project, project_all
from tagmap.core.dialect import Dialect, MySQLDialect, SQLiteDialect, get_dialect, register_dialect
from tagmap.core.engine import TableEngine
from tagmap.core.errors import (
    BindCollisionError,
    BuildError,
    ConfigError,
    DatabaseConnectionError,
    DatabaseError,
    DuplicateEntryError,
    ErrorCategory,
    ErrorContext,
    ForeignKeyCreateError,
    ForeignKeyDeleteError,
    IncorrectValueError,
    IntegrityError,
    ProjectionError,
    QueryError,
    SchemaError,
    TagmapError,
    UnsafeStatementError,
    translate_error,
)
from tagmap.core.logging import configure_logging, get_logger
from tagmap.core.protocols import Connection, Cursor, CursorConnection
from tagmap.core.prototype import ById, ByIdentity, Prototype, PrototypeTime
from tagmap.core.query import Pagination, QueryParameters, clamp_length
from tagmap.core.rows import scan_row
from tagmap.core.schema import NULL, attach, column, embed
from tagmap.core.settings import TagmapSettings, get_settings
from tagmap.core.statements import (
    NamedArgs,
    Statement,
    build_delete,
    build_exists,
    build_insert,
    build_select,
    build_select_one,
    build_update,
    build_where,
)
from tagmap.core.walker import FieldDescriptor, WalkMode, walk

__all__ = [
    # schema
    "NULL",
    "column",
    "embed",
    "attach",
    # walker
    "WalkMode",
    "FieldDescriptor",
    "walk",
    # statements
    "NamedArgs",
    "Statement",
    "build_where",
    "build_insert",
    "build_exists",
    "build_select",
    "build_select_one",
    "build_update",
    "build_delete",
    # query
    "Pagination",
    "QueryParameters",
    "clamp_length",
    # engine
    "TableEngine",
    "scan_row",
    "Connection",
    "Cursor",
    "CursorConnection",
    # projection
    "project",
    "project_all",
    # prototype
    "Prototype",
    "PrototypeTime",
    "ById",
    "ByIdentity",
    # dialect
    "Dialect",
    "MySQLDialect",
    "SQLiteDialect",
    "get_dialect",
    "register_dialect",
    # errors
    "TagmapError",
    "ErrorCategory",
    "ErrorContext",
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
    # config / logging
    "TagmapSettings",
    "get_settings",
    "configure_logging",
    "get_logger",
]
