"""
Tag schema: per-field metadata that drives SQL generation and projection.

Entities are plain dataclasses.  A field joins generated SQL only when it
is declared through :func:`column`; :func:`embed` marks a nested record
whose own fields are walked as if declared inline; :func:`attach` declares
a projection-only field filled from a dotted path of a source value.

Examples:
    >>> from dataclasses import dataclass
    >>> from datetime import datetime
    >>> from uuid import UUID
    >>> @dataclass(kw_only=True)
    ... class UserCondition:
    ...     id: UUID | None = column("id")
    ...     identity: str | None = column("id name")   # fan-out group
    ...     since: datetime | None = column("ctime", op=">=")
    ...     internal: str = column("-")                 # never in SQL

Tag fields:
    storage_name   column name, or space separated fan-out group;
                   "" or "-" excludes the field from every statement
    alias          bind name for named placeholders (default: storage
                   name with spaces replaced by "_")
    operator       WHERE comparison operator (default "=")
    binary_id      bind through the dialect's binary identifier call;
                   ``None`` means "decide from the declared type"
    attach         dotted source path for the attach engine
    embed/source   recurse marker; ``source`` gates attach recursion

Tags:
    tag-schema, dataclasses, metadata, tagmap

Doc-Types:
    - API Reference
"""

from __future__ import annotations

import dataclasses
import functools
import types
import typing
from dataclasses import dataclass
from typing import Any, Union

from tagmap.core.errors import SchemaError

TAG_KEY = "tagmap"
EXCLUDED = "-"


class _Null:
    """Explicit SQL NULL, as opposed to ``None`` (absent, skipped)."""

    _instance: _Null | None = None

    def __new__(cls) -> _Null:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "NULL"

    def __bool__(self) -> bool:
        return False


NULL = _Null()


@dataclass(frozen=True, slots=True)
class Tag:
    """Declarative metadata for one dataclass field."""

    storage_name: str = ""
    alias: str | None = None
    operator: str = "="
    binary_id: bool | None = None
    attach: str | None = None
    embed: bool = False
    source: str | None = None

    @property
    def columns(self) -> tuple[str, ...]:
        return tuple(self.storage_name.split())

    @property
    def excluded(self) -> bool:
        return self.storage_name.strip() in ("", EXCLUDED)

    @property
    def fan_out(self) -> bool:
        return len(self.columns) > 1

    @property
    def bind_name(self) -> str:
        return self.alias or "_".join(self.columns)


def _field(tag: Tag, default: Any, default_factory: Any, kwargs: dict[str, Any]) -> Any:
    metadata = dict(kwargs.pop("metadata", None) or {})
    metadata[TAG_KEY] = tag
    if default_factory is not dataclasses.MISSING:
        return dataclasses.field(default_factory=default_factory, metadata=metadata, **kwargs)
    return dataclasses.field(default=default, metadata=metadata, **kwargs)


def column(
    storage_name: str,
    *,
    op: str = "=",
    alias: str | None = None,
    binary_id: bool | None = None,
    attach: str | None = None,
    default: Any = None,
    default_factory: Any = dataclasses.MISSING,
    **kwargs: Any,
) -> Any:
    """Declare a storage-mapped dataclass field.

    Pass ``default=dataclasses.MISSING`` for a required field.
    """
    tag = Tag(
        storage_name=storage_name,
        alias=alias,
        operator=op.strip() or "=",
        binary_id=binary_id,
        attach=attach,
    )
    return _field(tag, default, default_factory, kwargs)


def embed(
    source: str | None = None,
    *,
    default: Any = None,
    default_factory: Any = dataclasses.MISSING,
    **kwargs: Any,
) -> Any:
    """Declare a nested record walked as if its fields were inline."""
    return _field(Tag(embed=True, source=source), default, default_factory, kwargs)


def attach(
    path: str,
    *,
    default: Any = None,
    default_factory: Any = dataclasses.MISSING,
    **kwargs: Any,
) -> Any:
    """Declare a projection-only field copied from *path* of a source value."""
    return _field(Tag(attach=path), default, default_factory, kwargs)


def tag_of(f: dataclasses.Field) -> Tag | None:
    return f.metadata.get(TAG_KEY)


@functools.lru_cache(maxsize=None)
def type_hints(cls: type) -> dict[str, Any]:
    """Resolved annotations of a dataclass (string annotations included)."""
    if not (isinstance(cls, type) and dataclasses.is_dataclass(cls)):
        raise SchemaError(f"{cls!r} is not a dataclass type").with_context(
            entity=getattr(cls, "__name__", repr(cls))
        )
    try:
        return typing.get_type_hints(cls)
    except NameError as exc:
        raise SchemaError(
            f"Cannot resolve annotations of {cls.__name__}: {exc}", cause=exc
        ).with_context(entity=cls.__name__) from exc


def unwrap_optional(tp: Any) -> tuple[Any, bool]:
    """Return ``(inner_type, is_optional)`` for ``X | None`` / ``Optional[X]``."""
    origin = typing.get_origin(tp)
    if origin is Union or origin is types.UnionType:
        args = [a for a in typing.get_args(tp) if a is not type(None)]
        optional = len(args) != len(typing.get_args(tp))
        if len(args) == 1:
            return args[0], optional
        return Union[tuple(args)], optional
    return tp, False


def is_subtype(tp: Any, base: type) -> bool:
    return isinstance(tp, type) and issubclass(tp, base)


__all__ = [
    "NULL",
    "EXCLUDED",
    "TAG_KEY",
    "Tag",
    "column",
    "embed",
    "attach",
    "tag_of",
    "type_hints",
    "unwrap_optional",
    "is_subtype",
]
