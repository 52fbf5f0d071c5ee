"""
Statement builders: SQL text plus the arguments it binds.

Each builder is a pure function of its inputs.  Positional statements
carry a ``list`` of arguments in placeholder order; named statements carry
a :class:`NamedArgs` mapping.

Architecture:
    ::

        build_insert(table, assignment)            INSERT ... VALUES (:a, :b)
        build_where(condition, named=...)          a = ? AND (x = ? OR y = ?)
        build_exists(table, condition)             SELECT EXISTS(SELECT 1 ...)
        build_select(table, condition, query, paginate)
        build_select_one(table, condition)
        build_update(table, condition, assignment) UPDATE ... SET ... WHERE ...
        build_delete(table, condition)             DELETE FROM ... WHERE ...

Update collision policy:
    The SET side and the WHERE side are built in two independent
    :class:`NamedArgs` scopes and merged.  An alias bound on both sides to
    unequal values raises :class:`~tagmap.core.errors.BindCollisionError`;
    give one side an explicit ``alias=`` to update a column it also filters on.

Examples:
    >>> stmt = build_update("users", ById(id=uid), Rename(name="X"))
    >>> stmt.sql
    'UPDATE users SET name = :name WHERE id = UUID_TO_BIN(:id)'

Tags:
    sql-builder, insert, update, delete, where-clause, tagmap

Doc-Types:
    - API Reference
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from tagmap.core.dialect import Dialect, get_dialect
from tagmap.core.errors import BindCollisionError, BuildError, UnsafeStatementError
from tagmap.core.walker import FieldDescriptor, WalkMode, walk

if TYPE_CHECKING:
    from tagmap.core.query import QueryParameters


class NamedArgs(dict[str, Any]):
    """Alias → value mapping that refuses to silently overwrite a binding."""

    def bind(self, alias: str, value: Any) -> None:
        if alias in self:
            existing = self[alias]
            if existing is not value and existing != value:
                raise BindCollisionError(alias, existing, value)
            return
        self[alias] = value

    def merge(self, other: Mapping[str, Any]) -> NamedArgs:
        for alias, value in other.items():
            self.bind(alias, value)
        return self


@dataclass(frozen=True, slots=True)
class Statement:
    """Generated SQL and its bind arguments."""

    kind: str
    sql: str
    params: list[Any] | NamedArgs

    @property
    def named(self) -> bool:
        return isinstance(self.params, Mapping)


def _collect(descriptors: list[FieldDescriptor], args: list[Any] | NamedArgs) -> None:
    for d in descriptors:
        if isinstance(args, NamedArgs):
            args.bind(d.alias, d.value)
        else:
            args.extend(d.arguments())


def build_where(
    condition: Any,
    *,
    named: bool = False,
    args: list[Any] | NamedArgs | None = None,
    dialect: Dialect | None = None,
) -> tuple[str, list[Any] | NamedArgs]:
    """AND-joined comparisons for *condition*.

    Returns ``("", args)`` when nothing is eligible, which callers must
    read as "match all rows".
    """
    if args is None:
        args = NamedArgs() if named else []
    if condition is None:
        return "", args
    mode = WalkMode.CONDITION_NAMED if named else WalkMode.CONDITION_POSITIONAL
    descriptors = walk(condition, mode, dialect)
    _collect(descriptors, args)
    return " AND ".join(d.comparison() for d in descriptors), args


def build_insert(table: str, assignment: Any, dialect: Dialect | None = None) -> Statement:
    """``INSERT INTO t (cols) VALUES (:named, ...)``.

    Raises:
        BuildError: *assignment* has no eligible field.
    """
    descriptors = walk(assignment, WalkMode.INSERT, dialect)
    if not descriptors:
        raise BuildError(
            f"Nothing to insert: {type(assignment).__name__} has no assigned storage fields"
        ).with_context(table=table, statement="insert", entity=type(assignment).__name__)
    args = NamedArgs()
    _collect(descriptors, args)
    columns = ", ".join(d.storage_name for d in descriptors)
    placeholders = ", ".join(d.bind_token for d in descriptors)
    return Statement("insert", f"INSERT INTO {table} ({columns}) VALUES ({placeholders})", args)


def build_exists(table: str, condition: Any, dialect: Dialect | None = None) -> Statement:
    where, args = build_where(condition, dialect=dialect)
    clause = f" WHERE {where}" if where else ""
    return Statement("exists", f"SELECT EXISTS(SELECT 1 FROM {table}{clause})", args)


def build_select(
    table: str,
    condition: Any = None,
    query: QueryParameters | None = None,
    paginate: bool = False,
    dialect: Dialect | None = None,
) -> Statement:
    """``SELECT *`` with optional condition, search, ordering and LIMIT.

    ``WHERE`` is written only when a condition or a search fragment exists.
    """
    dialect = dialect or get_dialect()
    where, args = build_where(condition, dialect=dialect)
    sql = f"SELECT * FROM {table}"
    if where:
        sql += f" WHERE {where}"
    if query is not None:
        if not where and query.has_search:
            sql += " WHERE"
        sql += query.build(args, bool(where), paginate, dialect=dialect)
    return Statement("select", sql, args)


def build_select_one(table: str, condition: Any, dialect: Dialect | None = None) -> Statement:
    where, args = build_where(condition, dialect=dialect)
    clause = f" WHERE {where}" if where else ""
    return Statement("select_one", f"SELECT * FROM {table}{clause}", args)


def build_assignments(
    condition: Any,
    assignment: Any,
    dialect: Dialect | None = None,
) -> tuple[str, str, NamedArgs]:
    """SET and WHERE fragments built in separate scopes, merged at the end."""
    assigned = walk(assignment, WalkMode.ASSIGNMENT, dialect)
    set_args = NamedArgs()
    _collect(assigned, set_args)
    where, where_args = build_where(condition, named=True, args=NamedArgs(), dialect=dialect)
    merged = NamedArgs(set_args).merge(where_args)
    return ", ".join(d.assignment() for d in assigned), where, merged


def build_update(
    table: str,
    condition: Any,
    assignment: Any,
    *,
    allow_all: bool = False,
    dialect: Dialect | None = None,
) -> Statement:
    """``UPDATE t SET ... WHERE ...`` over one merged named-argument map.

    Raises:
        BuildError: *assignment* has nothing to set.
        UnsafeStatementError: no WHERE fragment and ``allow_all`` is false.
        BindCollisionError: both sides bind one alias to different values.
    """
    sets, where, args = build_assignments(condition, assignment, dialect)
    if not sets:
        raise BuildError(
            f"Nothing to update: {type(assignment).__name__} has no assigned storage fields"
        ).with_context(table=table, statement="update", entity=type(assignment).__name__)
    if not where and not allow_all:
        raise UnsafeStatementError(
            f"UPDATE {table} without a condition would touch every row"
        ).with_context(table=table, statement="update")
    clause = f" WHERE {where}" if where else ""
    return Statement("update", f"UPDATE {table} SET {sets}{clause}", args)


def build_delete(
    table: str,
    condition: Any,
    *,
    allow_all: bool = False,
    dialect: Dialect | None = None,
) -> Statement:
    where, args = build_where(condition, named=True, dialect=dialect)
    if not where and not allow_all:
        raise UnsafeStatementError(
            f"DELETE FROM {table} without a condition would remove every row"
        ).with_context(table=table, statement="delete")
    clause = f" WHERE {where}" if where else ""
    return Statement("delete", f"DELETE FROM {table}{clause}", args)


__all__ = [
    "NamedArgs",
    "Statement",
    "build_where",
    "build_insert",
    "build_exists",
    "build_select",
    "build_select_one",
    "build_assignments",
    "build_update",
    "build_delete",
]
