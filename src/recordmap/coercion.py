"""
Value coercion from column values to record fields.

Conversion happens in two steps:

1. ``classify`` turns whatever the row source produced (Python scalars,
   NumPy/Pandas scalars, PyArrow scalars, raw bytes) into a ``ColumnValue``
   tagged with a ``ValueKind``.
2. ``coerce`` matches the value kind against the target ``FieldKind``:

   ==========  ==============================================================
   text        any value formatted as text; bytes decoded as UTF-8
   integer     integers within the signed 64-bit range only
   float       floats and integers; text/bytes parsed as a base-10 literal
   boolean     booleans only
   nested      passed through unchanged
   other       passed through unchanged
   ==========  ==============================================================

A NULL value is never applied: the field keeps its zero value.
"""
import dataclasses
import decimal
import enum
import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any

import numpy as np
import pandas as pd
import pyarrow as pa

from recordmap.descriptor import FieldKind, FieldSpec, resolve_annotation
from recordmap.descriptor import type_hints
from recordmap.exceptions import CoercionFailed, FieldNotSettable

__all__ = [
    'ColumnValue',
    'ValueKind',
    'assign',
    'classify',
    'coerce',
    'zero_instance',
    'zero_value',
]

INT64_MIN = -2**63
INT64_MAX = 2**63 - 1

_FLOAT_LITERAL = re.compile(
    r'[+-]?(?:(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?|inf(?:inity)?|nan)',
    re.IGNORECASE)


class ValueKind(enum.Enum):
    """Kind of a column value as delivered by the row source."""
    TEXT = 'text'
    INTEGER = 'integer'
    FLOAT = 'float'
    BOOLEAN = 'boolean'
    BYTES = 'bytes'
    NESTED = 'nested'
    NULL = 'null'
    OTHER = 'other'


@dataclass(frozen=True)
class ColumnValue:
    kind: ValueKind
    value: Any

    @property
    def is_null(self) -> bool:
        return self.kind is ValueKind.NULL


NULL = ColumnValue(ValueKind.NULL, None)


def _is_missing(value: Any) -> bool:
    return value is None or value is pd.NA or value is pd.NaT


def classify(value: Any) -> ColumnValue:
    """Tag a raw column value with its kind.

    NumPy scalars are unwrapped to their Python equivalents and PyArrow
    scalars through ``as_py()``. NaN is a float, not NULL.
    """
    if isinstance(value, pa.Scalar):
        value = value.as_py()

    if _is_missing(value):
        return NULL
    if isinstance(value, bool | np.bool_):
        return ColumnValue(ValueKind.BOOLEAN, bool(value))
    if isinstance(value, np.integer):
        return ColumnValue(ValueKind.INTEGER, value.item())
    if isinstance(value, int):
        return ColumnValue(ValueKind.INTEGER, value)
    if isinstance(value, np.floating):
        return ColumnValue(ValueKind.FLOAT, value.item())
    if isinstance(value, float | decimal.Decimal):
        return ColumnValue(ValueKind.FLOAT, value)
    if isinstance(value, bytes | bytearray | memoryview):
        return ColumnValue(ValueKind.BYTES, bytes(value))
    if isinstance(value, str):
        return ColumnValue(ValueKind.TEXT, value)
    if isinstance(value, Mapping) or dataclasses.is_dataclass(value):
        return ColumnValue(ValueKind.NESTED, value)
    return ColumnValue(ValueKind.OTHER, value)


def _decode(raw: bytes, spec: FieldSpec, column: str | None) -> str:
    try:
        return raw.decode('utf-8')
    except UnicodeDecodeError as e:
        raise CoercionFailed(spec.name, column, raw, f'bytes are not valid UTF-8 ({e.reason})') from e


def _to_text(cv: ColumnValue, spec: FieldSpec, column: str | None) -> str:
    if cv.kind is ValueKind.BYTES:
        return _decode(cv.value, spec, column)
    return str(cv.value)


def _to_integer(cv: ColumnValue, spec: FieldSpec, column: str | None) -> int:
    if cv.kind is not ValueKind.INTEGER:
        raise CoercionFailed(spec.name, column, cv.value, f'expected an integer, received {cv.kind.value}')
    if not INT64_MIN <= cv.value <= INT64_MAX:
        raise CoercionFailed(spec.name, column, cv.value, 'integer does not fit in 64 bits')
    return int(cv.value)


def _to_float(cv: ColumnValue, spec: FieldSpec, column: str | None) -> float:
    if cv.kind in {ValueKind.FLOAT, ValueKind.INTEGER}:
        return float(cv.value)
    if cv.kind in {ValueKind.TEXT, ValueKind.BYTES}:
        text = _decode(cv.value, spec, column) if cv.kind is ValueKind.BYTES else cv.value
        if not _FLOAT_LITERAL.fullmatch(text):
            raise CoercionFailed(spec.name, column, cv.value, 'not a base-10 floating-point literal')
        return float(text)
    raise CoercionFailed(spec.name, column, cv.value, f'expected a float, received {cv.kind.value}')


def _to_boolean(cv: ColumnValue, spec: FieldSpec, column: str | None) -> bool:
    if cv.kind is not ValueKind.BOOLEAN:
        raise CoercionFailed(spec.name, column, cv.value, f'expected a boolean, received {cv.kind.value}')
    return cv.value


def _passthrough(cv: ColumnValue, spec: FieldSpec, column: str | None) -> Any:
    return cv.value


_COERCERS = {
    FieldKind.TEXT: _to_text,
    FieldKind.INTEGER: _to_integer,
    FieldKind.FLOAT: _to_float,
    FieldKind.BOOLEAN: _to_boolean,
    FieldKind.NESTED: _passthrough,
    FieldKind.OTHER: _passthrough,
}


def coerce(value: Any, spec: FieldSpec, column: str | None = None) -> Any:
    """Convert a raw or classified value for assignment to `spec`'s field.

    Callers must check ``classify(value).is_null`` first; NULL has no
    assignable representation and raises ValueError here.
    """
    cv = value if isinstance(value, ColumnValue) else classify(value)
    if cv.is_null:
        raise ValueError(f'NULL is not assignable to {spec.name!r}; skip the field instead')
    return _COERCERS[spec.kind](cv, spec, column or spec.column)


def assign(record: Any, spec: FieldSpec, value: Any, column: str | None = None) -> None:
    """Coerce `value` and set it on `record`.

    Raises FieldNotSettable for frozen records and private fields, even
    when the value is NULL. A NULL value otherwise leaves the field as is.
    """
    if not spec.settable:
        raise FieldNotSettable(type(record), spec.name)
    cv = classify(value)
    if cv.is_null:
        return
    setattr(record, spec.name, coerce(cv, spec, column))


_KIND_ZEROS = {
    FieldKind.TEXT: '',
    FieldKind.INTEGER: 0,
    FieldKind.FLOAT: 0.0,
    FieldKind.BOOLEAN: False,
    FieldKind.OTHER: None,
}


def _zero_for(annotation: Any, kind: FieldKind, optional: bool) -> Any:
    if optional:
        return None
    if kind is FieldKind.NESTED:
        return zero_instance(annotation)
    return _KIND_ZEROS[kind]


def zero_value(spec: FieldSpec) -> Any:
    """Zero value of a mapped field: None when optional, else by kind."""
    return _zero_for(spec.annotation, spec.kind, spec.optional)


def zero_instance(record_type: type, specs: Iterable[FieldSpec] = ()) -> Any:
    """Instantiate `record_type` with zero values for its required fields.

    Fields declaring a default or default_factory keep it, except the fields
    named by `specs`, which are reset to their zero value afterwards. This
    includes ``init=False`` fields, so every mapped field exists on the
    result. Frozen records are reset through ``object.__setattr__``.
    """
    hints = type_hints(record_type)
    kwargs = {}
    for f in dataclasses.fields(record_type):
        if not f.init:
            continue
        if f.default is not dataclasses.MISSING or f.default_factory is not dataclasses.MISSING:
            continue
        annotation, kind, optional = resolve_annotation(hints.get(f.name, f.type))
        kwargs[f.name] = _zero_for(annotation, kind, optional)
    record = record_type(**kwargs)
    for spec in specs:
        object.__setattr__(record, spec.name, zero_value(spec))
    return record
