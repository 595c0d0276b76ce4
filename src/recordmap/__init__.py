"""
Map query result rows onto dataclass records, and diff records for updates.

All operations can be called either as:
- Module functions: recordmap.map(rows, User)
- Mapper methods: mapper.map(rows, User)

The module functions use a default Mapper created at import time.
"""
__version__ = '0.1.0'

from collections.abc import Iterator, Mapping
from typing import Any, TypeVar

from recordmap.cursor import DbapiRows, FrameRows, IterdictRows
from recordmap.cursor import ScannableRows, as_rows
from recordmap.descriptor import FieldKind, FieldSpec, TypeDescriptor, column
from recordmap.exceptions import CoercionFailed, ColumnEnumerationFailed
from recordmap.exceptions import CursorError, DuplicateColumn
from recordmap.exceptions import FieldNotSettable, HookFailed, MappingError
from recordmap.exceptions import NotAStructure, RowScanFailed
from recordmap.exceptions import UnexpectedRowCount, UnmappedName
from recordmap.mapper import Hook, Mapper
from recordmap.options import MapperOptions

T = TypeVar('T')

_default_mapper = Mapper()


def default_mapper() -> Mapper:
    """Return the mapper behind the module-level functions.
    """
    return _default_mapper


def get_tag() -> str:
    """Field metadata key read for column names (default 'db').
    """
    return _default_mapper.tag


def set_tag(tag: str) -> None:
    """Change the field metadata key read for column names.
    """
    _default_mapper.tag = tag


def discover(obj: Any) -> TypeDescriptor:
    """Resolve and cache the descriptor of a dataclass type or instance.
    """
    return _default_mapper.discover(obj)


def register(obj: Any) -> TypeDescriptor:
    """Build the descriptor eagerly, overwriting any cached entry.
    """
    return _default_mapper.register(obj)


def columns_for(obj: Any) -> list[str]:
    """Mapped column names of a record type.
    """
    return _default_mapper.columns_for(obj)


def fields_for(obj: Any) -> list[str]:
    """Mapped field names of a record type.
    """
    return _default_mapper.fields_for(obj)


def field_for_column(obj: Any, name: str) -> str:
    """Field name mapped to column `name`.
    """
    return _default_mapper.field_for_column(obj, name)


def column_for_field(obj: Any, name: str) -> str:
    """Column name mapped to field `name`.
    """
    return _default_mapper.column_for_field(obj, name)


def create_replica(obj: Any) -> Any:
    """New zero-initialised record of the same type.
    """
    return _default_mapper.create_replica(obj)


def map(rows: Any, obj: type[T] | T, *hooks: Hook) -> list[T]:
    """Materialize every row as a new record; all or nothing.

    `rows` is a ScannableRows or anything ``as_rows`` accepts (DB-API
    cursor, list of dicts, DataFrame).
    """
    return _default_mapper.map(rows, obj, *hooks)


def iter_map(rows: Any, obj: type[T] | T, *hooks: Hook) -> Iterator[T]:
    """Materialize rows lazily, one record at a time.
    """
    return _default_mapper.iter_map(rows, obj, *hooks)


def field_value_snapshot(record: Any) -> dict[str, Any]:
    """Field name to current value for every mapped field.
    """
    return _default_mapper.field_value_snapshot(record)


def modified_columns(snapshot: Mapping[str, Any], record: Any) -> dict[str, Any]:
    """Column name to new value for fields changed since `snapshot`.
    """
    return _default_mapper.modified_columns(snapshot, record)


def sync(rows: Any, record: T, *hooks: Hook) -> T:
    """Write values computed by the data source back into `record`.

    Raises UnexpectedRowCount unless exactly one row is returned.
    """
    return _default_mapper.sync(rows, record, *hooks)


__all__ = [
    'Mapper',
    'MapperOptions',
    'Hook',
    'default_mapper',
    'get_tag',
    'set_tag',
    'column',
    'discover',
    'register',
    'columns_for',
    'fields_for',
    'field_for_column',
    'column_for_field',
    'create_replica',
    'map',
    'iter_map',
    'field_value_snapshot',
    'modified_columns',
    'sync',
    'ScannableRows',
    'DbapiRows',
    'IterdictRows',
    'FrameRows',
    'as_rows',
    'FieldKind',
    'FieldSpec',
    'TypeDescriptor',
    'MappingError',
    'NotAStructure',
    'DuplicateColumn',
    'UnmappedName',
    'CursorError',
    'ColumnEnumerationFailed',
    'RowScanFailed',
    'CoercionFailed',
    'FieldNotSettable',
    'HookFailed',
    'UnexpectedRowCount',
]
