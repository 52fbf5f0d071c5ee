"""
Query parameters: free-text search, ordering and pagination.

:class:`QueryParameters` renders the suffix appended after a (possibly
empty) condition.  Input aliases follow the request form the values
usually come from: ``q`` (free text), ``pos`` (offset), ``len`` (length).

Search composition:
    ::

        has_pre_condition=True    ... WHERE a = ? AND (title LIKE ? OR description LIKE ?)
        has_pre_condition=False   ... WHERE title LIKE ? OR description LIKE ?

Length clamp (bounds from :class:`~tagmap.core.settings.TagmapSettings`):
    ::

        length == 0              -> default_length
        length < min_length      -> min_length
        length > max_length      -> max_length
        otherwise                -> unchanged

``order_by`` is emitted verbatim; callers must restrict it to a closed set
of column expressions.

Tags:
    pagination, search, order-by, pydantic, tagmap

Doc-Types:
    - API Reference
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from tagmap.core.dialect import Dialect, get_dialect
from tagmap.core.settings import get_settings
from tagmap.core.statements import NamedArgs


def clamp_length(
    length: int,
    *,
    default: int | None = None,
    minimum: int | None = None,
    maximum: int | None = None,
) -> int:
    """Clamp a page length into the configured bounds (idempotent)."""
    if default is None or minimum is None or maximum is None:
        settings = get_settings()
        default = settings.pagination_default_length if default is None else default
        minimum = settings.pagination_min_length if minimum is None else minimum
        maximum = settings.pagination_max_length if maximum is None else maximum
    if length == 0:
        return default
    if length < minimum:
        return minimum
    if length > maximum:
        return maximum
    return length


def clamp_offset(offset: int) -> int:
    return max(offset, 0)


def _bind(args: Mapping[str, Any], name: str, value: Any) -> None:
    if isinstance(args, NamedArgs):
        args.bind(name, value)
    else:
        args[name] = value  # type: ignore[index]


class Pagination(BaseModel):
    """Offset/length window rendered as ``LIMIT offset, length``."""

    model_config = ConfigDict(populate_by_name=True, validate_assignment=True)

    offset: int = Field(default=0, alias="pos", validate_default=True)
    length: int = Field(default=0, alias="len", validate_default=True)

    @field_validator("offset")
    @classmethod
    def _clamp_offset(cls, v: int) -> int:
        return clamp_offset(v)

    @field_validator("length")
    @classmethod
    def _clamp_length(cls, v: int) -> int:
        return clamp_length(v)

    def to_sql(self, args: list[Any] | Mapping[str, Any], dialect: Dialect | None = None) -> str:
        """Append ``(offset, length)`` to *args* and return the LIMIT clause."""
        dialect = dialect or get_dialect()
        if isinstance(args, Mapping):
            _bind(args, "offset", self.offset)
            _bind(args, "length", self.length)
            return " " + dialect.limit(dialect.named("offset"), dialect.named("length"))
        start = len(args)
        args.extend([self.offset, self.length])
        return " " + dialect.limit(dialect.placeholder(start), dialect.placeholder(start + 1))


class QueryParameters(BaseModel):
    """Search, order and pagination applied on top of a condition."""

    model_config = ConfigDict(populate_by_name=True)

    free_text: str = Field(default="", alias="q")
    search_columns: list[str] = Field(default_factory=list)
    order_by: str = ""
    pagination: Pagination = Field(default_factory=Pagination)

    @field_validator("free_text", "order_by")
    @classmethod
    def _strip(cls, v: str) -> str:
        return v.strip()

    @field_validator("search_columns")
    @classmethod
    def _unique_columns(cls, v: list[str]) -> list[str]:
        return list(dict.fromkeys(c.strip() for c in v if c.strip()))

    @property
    def has_search(self) -> bool:
        return bool(self.free_text) and bool(self.search_columns)

    def search_condition(
        self,
        args: list[Any] | Mapping[str, Any],
        has_pre_condition: bool,
        dialect: Dialect | None = None,
    ) -> str:
        """OR-joined LIKE comparisons, or ``""`` when there is nothing to search."""
        if not self.has_search:
            return ""
        dialect = dialect or get_dialect()
        pattern = f"%{self.free_text}%"
        if isinstance(args, Mapping):
            _bind(args, "search", pattern)
            tokens = [dialect.named("search")] * len(self.search_columns)
        else:
            start = len(args)
            args.extend([pattern] * len(self.search_columns))
            tokens = [dialect.placeholder(start + i) for i in range(len(self.search_columns))]
        body = " OR ".join(f"{col} LIKE {tok}" for col, tok in zip(self.search_columns, tokens))
        if has_pre_condition:
            return f"AND ({body})"
        return body

    def order_by_clause(self) -> str:
        return f"ORDER BY {self.order_by}" if self.order_by else ""

    def build(
        self,
        args: list[Any] | Mapping[str, Any],
        has_pre_condition: bool,
        paginate: bool,
        dialect: Dialect | None = None,
    ) -> str:
        """SQL suffix (leading space per fragment) with arguments appended to *args*."""
        suffix = ""
        for fragment in (
            self.search_condition(args, has_pre_condition, dialect),
            self.order_by_clause(),
        ):
            if fragment:
                suffix += " " + fragment
        if paginate:
            suffix += self.pagination.to_sql(args, dialect)
        return suffix


__all__ = [
    "clamp_length",
    "clamp_offset",
    "Pagination",
    "QueryParameters",
]
