"""
Attach engine: project storage-shaped values onto external shapes.

A target shape is a dataclass whose fields declare where their values come
from.  ``attach("owner.name")`` copies a dotted path of the source;
``embed(source="owner")`` builds the nested target only when ``owner``
resolves on the source, then fills it from the *same* source value (its
own attach paths are rooted at the source, not at ``owner``).

Resolution is best effort: a missing attribute or key, or a ``None`` on
the way, leaves the target field at its default.

Coercions by (source, target) type:
    ::

        datetime -> str        format_timestamp()  ("%Y-%m-%dT%H:%M:%SZ")
        datetime -> datetime   direct
        UUID     -> str        canonical text
        str      -> str        direct
        anything else          direct copy, unchecked

Examples:
    >>> @dataclass(kw_only=True)
    ... class UserOut:
    ...     id: str | None = attach("proto.id")
    ...     created_at: str | None = attach("proto.times.created_at")
    ...     name: str = attach("name", default="")
    >>> project(row, UserOut).created_at
    '2024-01-02T03:04:05Z'

Tags:
    projection, attach, dto, tagmap

Doc-Types:
    - API Reference
"""

from __future__ import annotations

import dataclasses
import uuid
from collections.abc import Iterator, Mapping, Set
from datetime import datetime
from typing import Any, TypeVar

from tagmap.core.errors import ProjectionError
from tagmap.core.schema import is_subtype, tag_of, type_hints, unwrap_optional
from tagmap.core.timestamps import format_timestamp
from tagmap.core.walker import layout

T = TypeVar("T")

_MISSING = object()


def resolve_path(source: Any, path: str) -> Any:
    """Follow a dotted *path* through attributes or mapping keys.

    Returns ``_MISSING`` when any step is absent or ``None``.
    """
    value = source
    for name in path.split("."):
        if value is None:
            return _MISSING
        if isinstance(value, Mapping):
            value = value.get(name, _MISSING)
        else:
            value = getattr(value, name, _MISSING)
        if value is _MISSING:
            return _MISSING
    return _MISSING if value is None else value


def coerce(value: Any, target: Any) -> Any:
    if is_subtype(target, str):
        if isinstance(value, datetime):
            return format_timestamp(value)
        if isinstance(value, uuid.UUID):
            return str(value)
    return value


def project(source: Any, target_type: type[T]) -> T:
    """Build one *target_type* value from *source*.

    Raises:
        ProjectionError: *source* is ``None``, or a target field without a
            default could not be resolved.
    """
    if source is None:
        raise ProjectionError(f"Cannot project None onto {target_type.__name__}")
    layout(target_type)

    hints = type_hints(target_type)
    kwargs: dict[str, Any] = {}
    for f in dataclasses.fields(target_type):
        tag = tag_of(f)
        if tag is None or not f.init:
            continue
        declared, _ = unwrap_optional(hints.get(f.name, Any))
        if tag.embed:
            if tag.source is None or resolve_path(source, tag.source) is not _MISSING:
                kwargs[f.name] = project(source, declared)
            continue
        if tag.attach:
            value = resolve_path(source, tag.attach)
            if value is not _MISSING:
                kwargs[f.name] = coerce(value, declared)

    try:
        return target_type(**kwargs)
    except TypeError as exc:
        raise ProjectionError(
            f"Cannot build {target_type.__name__} from {type(source).__name__}: {exc}",
            cause=exc,
        ).with_context(entity=target_type.__name__) from exc


def project_all(sources: Any, target_type: type[T]) -> list[T]:
    """Project each source in order; a single value counts as one row.

    Only lists, tuples, sets and iterators are treated as row sequences.
    Anything else (a mapping, a dataclass, a pydantic model) is one row.
    """
    if sources is None:
        return []
    if isinstance(sources, (list, tuple, Set, Iterator)):
        return [project(source, target_type) for source in sources]
    return [project(sources, target_type)]


__all__ = [
    "resolve_path",
    "coerce",
    "project",
    "project_all",
]
