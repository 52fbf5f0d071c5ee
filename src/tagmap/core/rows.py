"""
Result scanning: build row values from column → value records.

Columns are matched to fields by storage name.  Fan-out groups and
excluded fields are never scanned.  An embedded record is built only when
at least one of its columns is present in the record; otherwise it keeps
its declared default.

Driver values are normalised on the way in:

- identifier fields declared as ``UUID`` accept 16 raw bytes
  (``BIN_TO_UUID``-less MySQL reads) or canonical text (SQLite);
- ``datetime`` fields accept ISO 8601 text;
- ``bool`` fields accept integers.
"""

from __future__ import annotations

import dataclasses
import uuid
from collections.abc import Iterable, Mapping
from datetime import datetime
from typing import Any, TypeVar

from tagmap.core.errors import SchemaError
from tagmap.core.schema import is_subtype
from tagmap.core.timestamps import parse_timestamp
from tagmap.core.walker import FieldSpec, canonical_id, describe, layout

T = TypeVar("T")


def _scannable(spec: FieldSpec | None) -> bool:
    return spec is not None and not spec.fan_out


def convert_value(value: Any, spec: FieldSpec) -> Any:
    """Normalise one driver value for the field described by *spec*."""
    if value is None:
        return None
    tp = spec.python_type
    if is_subtype(tp, uuid.UUID):
        if isinstance(value, (bytes, bytearray)):
            return uuid.UUID(bytes=bytes(value))
        if isinstance(value, str):
            return uuid.UUID(value)
        return value
    if spec.binary_id:
        return canonical_id(value)
    if is_subtype(tp, datetime) and isinstance(value, str):
        return parse_timestamp(value)
    if is_subtype(tp, bool) and isinstance(value, int):
        return bool(value)
    return value


def _has_columns(cls: type, record: Mapping[str, Any]) -> bool:
    return any(spec.storage_name in record for spec in describe(cls) if not spec.fan_out)


def scan_row(row_type: type[T], record: Mapping[str, Any]) -> T:
    """Build a *row_type* value from one result record.

    Raises:
        SchemaError: a required field has no matching column, or a column
            value cannot be converted.
    """
    init_fields = {f.name for f in dataclasses.fields(row_type) if f.init}
    kwargs: dict[str, Any] = {}
    for slot in layout(row_type):
        if slot.name not in init_fields:
            continue
        if slot.embedded is not None:
            if _has_columns(slot.embedded, record):
                kwargs[slot.name] = scan_row(slot.embedded, record)
            continue
        spec = slot.spec
        if not _scannable(spec) or spec.storage_name not in record:
            continue
        try:
            kwargs[slot.name] = convert_value(record[spec.storage_name], spec)
        except (TypeError, ValueError) as exc:
            raise SchemaError(
                f"Cannot convert column {spec.storage_name!r} for {row_type.__name__}: {exc}",
                cause=exc,
            ).with_context(entity=row_type.__name__, field=slot.name) from exc

    try:
        return row_type(**kwargs)
    except TypeError as exc:
        raise SchemaError(
            f"Cannot build {row_type.__name__} from result columns: {exc}", cause=exc
        ).with_context(entity=row_type.__name__) from exc


def scan_rows(row_type: type[T], records: Iterable[Mapping[str, Any]]) -> list[T]:
    return [scan_row(row_type, record) for record in records]


__all__ = [
    "convert_value",
    "scan_row",
    "scan_rows",
]
