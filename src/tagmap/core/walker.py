"""
Field walker: turn an entity value into ordered SQL field descriptors.

Per-type layouts are computed once per dataclass (cached) and flattened
through :func:`~tagmap.core.schema.embed` fields, so a walk is a single
pass over precomputed :class:`FieldSpec` entries that reads values along
each spec's attribute path.

Rules, per field in declaration order:

- ``embed`` fields contribute their own fields at their position
  (depth-first).  An embedded record holding ``None`` contributes nothing.
- Fields with an empty or ``"-"`` storage name are never emitted.
- ``None`` means absent: the field is skipped (no constraint, no
  assignment).  :data:`~tagmap.core.schema.NULL` binds SQL NULL.
- A fan-out storage name (``"id name"``) becomes one OR-joined comparison
  bound to the same value.  Fan-out is condition-only.
- Binary-id fields bind their canonical text through
  :meth:`Dialect.binary_id`.

Architecture:
    ::

        describe(type)  ──►  (FieldSpec, FieldSpec, ...)   cached per type
              │
        walk(value, mode, dialect)
              │
              ▼
        [FieldDescriptor(storage_name, operator, bind_tokens, value), ...]

Examples:
    >>> walk(UserCondition(identity="bob"), WalkMode.CONDITION_POSITIONAL)[0].comparison()
    '(id = ? OR name = ?)'

Tags:
    field-walker, reflection, descriptors, tagmap

Doc-Types:
    - API Reference
    - Architecture Documentation
"""

from __future__ import annotations

import dataclasses
import functools
import uuid
from dataclasses import dataclass
from enum import Enum
from typing import Any

from tagmap.core.dialect import Dialect, get_dialect
from tagmap.core.errors import SchemaError
from tagmap.core.schema import NULL, Tag, is_subtype, tag_of, type_hints, unwrap_optional


class WalkMode(str, Enum):
    """Statement kind a walk is producing descriptors for."""

    INSERT = "insert"
    CONDITION_POSITIONAL = "condition_positional"
    CONDITION_NAMED = "condition_named"
    ASSIGNMENT = "assignment"

    @property
    def named(self) -> bool:
        return self is not WalkMode.CONDITION_POSITIONAL

    @property
    def allows_fan_out(self) -> bool:
        return self in (WalkMode.CONDITION_POSITIONAL, WalkMode.CONDITION_NAMED)


@dataclass(frozen=True, slots=True)
class FieldSpec:
    """One storage-mapped field, flattened out of its embedding records."""

    path: tuple[str, ...]
    storage_name: str
    columns: tuple[str, ...]
    alias: str
    operator: str
    binary_id: bool
    python_type: Any
    optional: bool

    @property
    def dotted(self) -> str:
        return ".".join(self.path)

    @property
    def fan_out(self) -> bool:
        return len(self.columns) > 1

    def resolve(self, entity: Any) -> Any:
        """Value at :attr:`path`, or ``None`` when it or a parent is absent."""
        value = entity
        for name in self.path:
            if value is None:
                return None
            value = getattr(value, name)
        return value


@dataclass(frozen=True, slots=True)
class Slot:
    """A dataclass field as seen by the walker and the row scanner."""

    name: str
    tag: Tag | None
    spec: FieldSpec | None = None
    embedded: type | None = None


@dataclass(frozen=True, slots=True)
class FieldDescriptor:
    """Walk output: one comparison/assignment and the value it binds."""

    storage_name: str
    operator: str
    bind_tokens: tuple[str, ...]
    value: Any
    alias: str
    columns: tuple[str, ...]

    @property
    def bind_token(self) -> str:
        return self.bind_tokens[0]

    def comparison(self) -> str:
        parts = [
            f"{col} {self.operator} {token}"
            for col, token in zip(self.columns, self.bind_tokens, strict=True)
        ]
        if len(parts) == 1:
            return parts[0]
        return "(" + " OR ".join(parts) + ")"

    def assignment(self) -> str:
        return f"{self.storage_name} = {self.bind_token}"

    def arguments(self) -> list[Any]:
        """Positional arguments in column order (fan-out repeats the value)."""
        return [self.value] * len(self.columns)


def _is_binary_id(tag: Tag, python_type: Any) -> bool:
    if tag.binary_id is not None:
        return tag.binary_id
    return is_subtype(python_type, uuid.UUID)


@functools.lru_cache(maxsize=None)
def layout(cls: type) -> tuple[Slot, ...]:
    """Immediate slots of *cls*, after checking its whole embed graph.

    Raises:
        SchemaError: an embed is not a dataclass, or embeds form a cycle.
    """
    _reject_cycles(cls, ())
    return _slots(cls)


def _reject_cycles(cls: type, stack: tuple[type, ...]) -> None:
    if cls in stack:
        chain = " -> ".join(t.__name__ for t in (*stack, cls))
        raise SchemaError(f"Cyclic embed: {chain}").with_context(entity=stack[0].__name__)
    for slot in _slots(cls):
        if slot.embedded is not None:
            _reject_cycles(slot.embedded, (*stack, cls))


@functools.lru_cache(maxsize=None)
def _slots(cls: type) -> tuple[Slot, ...]:
    hints = type_hints(cls)
    slots: list[Slot] = []
    for f in dataclasses.fields(cls):
        tag = tag_of(f)
        declared, optional = unwrap_optional(hints.get(f.name, Any))
        if tag is not None and tag.embed:
            if not (isinstance(declared, type) and dataclasses.is_dataclass(declared)):
                raise SchemaError(
                    f"Embedded field {cls.__name__}.{f.name} must be a dataclass type"
                ).with_context(entity=cls.__name__, field=f.name)
            slots.append(Slot(name=f.name, tag=tag, embedded=declared))
            continue
        spec = None
        if tag is not None and not tag.excluded:
            spec = FieldSpec(
                path=(f.name,),
                storage_name=" ".join(tag.columns),
                columns=tag.columns,
                alias=tag.bind_name,
                operator=tag.operator,
                binary_id=_is_binary_id(tag, declared),
                python_type=declared,
                optional=optional,
            )
        slots.append(Slot(name=f.name, tag=tag, spec=spec))
    return tuple(slots)


@functools.lru_cache(maxsize=None)
def describe(cls: type) -> tuple[FieldSpec, ...]:
    """Flattened, ordered storage specs for *cls*."""
    specs: list[FieldSpec] = []
    _flatten(cls, (), specs)
    return tuple(specs)


def _flatten(cls: type, prefix: tuple[str, ...], out: list[FieldSpec]) -> None:
    for slot in layout(cls):
        if slot.embedded is not None:
            _flatten(slot.embedded, (*prefix, slot.name), out)
        elif slot.spec is not None:
            out.append(dataclasses.replace(slot.spec, path=(*prefix, *slot.spec.path)))


def canonical_id(value: Any) -> Any:
    """Canonical text of an identifier value (``bytes`` taken as raw UUID)."""
    if isinstance(value, uuid.UUID):
        return str(value)
    if isinstance(value, (bytes, bytearray)) and len(value) == 16:
        return str(uuid.UUID(bytes=bytes(value)))
    return value


def walk(entity: Any, mode: WalkMode, dialect: Dialect | None = None) -> list[FieldDescriptor]:
    """Walk *entity* once and return its eligible fields for *mode*.

    In positional mode the caller must consume :meth:`FieldDescriptor.arguments`
    in the returned order.

    Raises:
        SchemaError: *entity* is not a dataclass instance, or a fan-out
            group appears in an insert/assignment walk.
    """
    if not dataclasses.is_dataclass(entity) or isinstance(entity, type):
        raise SchemaError(f"Cannot walk {type(entity).__name__}: not a dataclass instance")

    dialect = dialect or get_dialect()
    entity_name = type(entity).__name__
    descriptors: list[FieldDescriptor] = []
    position = 0
    for spec in describe(type(entity)):
        value = spec.resolve(entity)
        if value is None:
            continue
        if spec.fan_out and not mode.allows_fan_out:
            raise SchemaError(
                f"Fan-out column group {spec.storage_name!r} cannot be used in {mode.value}"
            ).with_context(entity=entity_name, field=spec.dotted)

        bound = None if value is NULL else value
        if spec.binary_id:
            bound = canonical_id(bound)

        # One token per column; named tokens repeat the alias, positional
        # tokens keep counting across a fan-out group.
        if mode.named:
            tokens = [dialect.named(spec.alias)] * len(spec.columns)
        else:
            tokens = [dialect.placeholder(position + i) for i in range(len(spec.columns))]
            position += len(spec.columns)
        if spec.binary_id:
            tokens = [dialect.binary_id(t) for t in tokens]

        descriptors.append(
            FieldDescriptor(
                storage_name=spec.storage_name,
                operator=spec.operator,
                bind_tokens=tuple(tokens),
                value=bound,
                alias=spec.alias,
                columns=spec.columns,
            )
        )
    return descriptors


__all__ = [
    "WalkMode",
    "FieldSpec",
    "FieldDescriptor",
    "Slot",
    "layout",
    "describe",
    "canonical_id",
    "walk",
]
