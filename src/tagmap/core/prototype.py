"""
Prototype: the identifier and timestamp lifecycle shared by persisted rows.

Row types embed :class:`Prototype` (or inherit from it) to get the ``id``,
``ctime`` and ``mtime`` columns.  :meth:`Prototype.init` stamps a fresh
identifier and both timestamps, truncated to whole seconds.  Nothing
re-stamps ``modified_at`` later; an update that should move it must
assign it explicitly.

Examples:
    >>> @dataclass(kw_only=True)
    ... class User(Prototype):
    ...     name: str | None = column("name")
    >>> user = User(name="bob").init()
    >>> user.times.created_at == user.times.modified_at
    True

Tags:
    prototype, identifier, timestamps, lifecycle, tagmap
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import TypeVar
from uuid import UUID

from tagmap.core.schema import column, embed
from tagmap.core.timestamps import new_id, utc_now_seconds

P = TypeVar("P", bound="Prototype")


@dataclass(kw_only=True)
class PrototypeTime:
    """Creation and modification instants (second resolution, UTC)."""

    created_at: datetime | None = column("ctime")
    modified_at: datetime | None = column("mtime")

    def init(self) -> PrototypeTime:
        now = utc_now_seconds()
        self.created_at = now
        self.modified_at = now
        return self


@dataclass(kw_only=True)
class Prototype:
    """Identifier plus :class:`PrototypeTime`, walked inline."""

    id: UUID | None = column("id")
    times: PrototypeTime = embed(default_factory=PrototypeTime)

    def init(self: P) -> P:
        """Allocate a new identifier and stamp both timestamps."""
        self.id = new_id()
        self.times.init()
        return self


def init(entity: P) -> P:
    return entity.init()


@dataclass(kw_only=True)
class ById:
    """Condition matching a row by its identifier."""

    id: UUID | None = column("id")


@dataclass(kw_only=True)
class ByIdentity:
    """Condition matching a row by its ``identity`` column."""

    identity: str | None = column("identity")


__all__ = [
    "PrototypeTime",
    "Prototype",
    "init",
    "ById",
    "ByIdentity",
]
