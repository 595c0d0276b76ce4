"""
Row materialization and snapshot diffing for dataclass records.
"""
import logging
import time
from collections.abc import Callable, Iterator, Mapping
from functools import wraps
from typing import Any, TypeVar

from recordmap.cache import DescriptorCache
from recordmap.coercion import assign, zero_instance, zero_value
from recordmap.cursor import ScannableRows, as_rows
from recordmap.descriptor import TypeDescriptor, is_record_type
from recordmap.descriptor import resolve_record_type
from recordmap.exceptions import ColumnEnumerationFailed, FieldNotSettable
from recordmap.exceptions import HookFailed, NotAStructure, RowScanFailed
from recordmap.exceptions import UnexpectedRowCount, UnmappedName
from recordmap.options import MapperOptions, resolve_options

logger = logging.getLogger(__name__)

__all__ = ['Hook', 'Mapper']

T = TypeVar('T')

Hook = Callable[[Any], None]


def timed(func):
    """Decorator for logging row counts and elapsed time of a mapping call."""
    @wraps(func)
    def wrapper(self, rows, obj, *args, **kwargs):
        start = time.time()
        try:
            return func(self, rows, obj, *args, **kwargs)
        finally:
            elapsed = time.time() - start
            logger.debug(f'{func.__name__}({getattr(obj, "__qualname__", type(obj).__qualname__)}) '
                         f'time: {elapsed:.4f}s')
    return wrapper


class Mapper:
    """Map cursor rows onto dataclass records and diff records for updates.

    Each mapper owns a DescriptorCache. Create one per process (the package
    keeps a default instance behind its module-level functions).
    """

    def __init__(self, options: MapperOptions | dict[str, Any] | None = None,
                 **kw: Any) -> None:
        self.options = resolve_options(options, **kw)
        self.cache = DescriptorCache(private_prefix=self.options.private_prefix)

    def __repr__(self) -> str:
        return f'{type(self).__name__}(tag={self.tag!r}, cached={len(self.cache)})'

    @property
    def tag(self) -> str:
        """Metadata key naming the column on dataclass fields."""
        return self.options.tag

    @tag.setter
    def tag(self, value: str) -> None:
        # descriptors are keyed by tag, so entries for the old tag stay valid
        self.options = resolve_options(self.options, tag=value)

    # Type descriptors

    def discover(self, obj: Any) -> TypeDescriptor:
        """Return the descriptor of `obj`'s record type, building it once.

        `obj` is a dataclass class or instance; anything else raises
        NotAStructure.
        """
        return self.cache.get(resolve_record_type(obj), self.tag)

    def register(self, obj: Any) -> TypeDescriptor:
        """Eagerly build the descriptor of `obj`'s record type.

        Unlike discover, register always rebuilds and overwrites the cached
        entry. A dataclass's fields cannot change, so the replacement has the
        same contents as the entry it replaces.
        """
        return self.cache.put(resolve_record_type(obj), self.tag)

    def columns_for(self, obj: Any) -> list[str]:
        """Mapped column names of the record type. Order is not guaranteed."""
        return self.discover(obj).columns

    def fields_for(self, obj: Any) -> list[str]:
        """Mapped field names of the record type. Order is not guaranteed."""
        return self.discover(obj).field_names

    def field_for_column(self, obj: Any, name: str) -> str:
        """Field name for column `name`; a mapped field name is returned as is."""
        descriptor = self.discover(obj)
        if name in descriptor.column_to_field:
            return descriptor.column_to_field[name]
        if name in descriptor.field_to_column:
            return name
        raise UnmappedName(descriptor.record_type, name)

    def column_for_field(self, obj: Any, name: str) -> str:
        """Column name for field `name`; a mapped column name is returned as is."""
        descriptor = self.discover(obj)
        if name in descriptor.field_to_column:
            return descriptor.field_to_column[name]
        if name in descriptor.column_to_field:
            return name
        raise UnmappedName(descriptor.record_type, name)

    def create_replica(self, obj: Any) -> Any:
        """New zero-initialised instance of `obj`'s record type."""
        descriptor = self.discover(obj)
        return zero_instance(descriptor.record_type, descriptor.fields.values())

    # Materialization

    def iter_map(self, rows: ScannableRows | Any, obj: type[T] | T, *hooks: Hook) -> Iterator[T]:
        """Yield one new record per cursor row, in cursor order.

        Records already yielded stay with the caller when a later row fails;
        use map for all-or-nothing results. `rows` is a ScannableRows or
        anything ``as_rows`` accepts (DB-API cursor, row dicts, DataFrame).
        """
        descriptor = self.discover(obj)
        rows = as_rows(rows)

        try:
            columns = list(rows.columns())
        except Exception as e:
            raise ColumnEnumerationFailed(f'Failed to read cursor columns: {e}') from e

        specs = [descriptor.spec_for_column(c) for c in columns]
        ignored = [c for c, s in zip(columns, specs) if s is None]
        if ignored:
            logger.debug(f'Columns not mapped on {descriptor.record_type.__qualname__}: {ignored}')

        count = 0
        while self._advance(rows):
            buffer = [None] * len(columns)
            try:
                rows.scan(buffer)
            except Exception as e:
                raise RowScanFailed(f'Failed to scan row {count}: {e}') from e
            if len(buffer) != len(columns):
                raise RowScanFailed(f'Row {count} has {len(buffer)} values for {len(columns)} columns')

            record = zero_instance(descriptor.record_type, descriptor.fields.values())
            for column, spec, value in zip(columns, specs, buffer):
                if spec is not None:
                    assign(record, spec, value, column)

            for hook in hooks:
                try:
                    hook(record)
                except Exception as e:
                    raise HookFailed(hook, e) from e

            count += 1
            yield record

        logger.debug(f'Mapped {count} rows onto {descriptor.record_type.__qualname__}')

    @timed
    def map(self, rows: ScannableRows | Any, obj: type[T] | T, *hooks: Hook) -> list[T]:
        """Build one new record of `obj`'s type per cursor row.

        Hooks run in order on each record after all of its fields are set.
        Any failure (columns, scan, coercion, settability, hook) raises and
        no partial result is returned.
        """
        return list(self.iter_map(rows, obj, *hooks))

    @staticmethod
    def _advance(rows: ScannableRows) -> bool:
        try:
            return bool(rows.next())
        except Exception as e:
            raise RowScanFailed(f'Failed to advance cursor: {e}') from e

    # Snapshots

    def field_value_snapshot(self, record: Any) -> dict[str, Any]:
        """Current value of every mapped field, keyed by field name."""
        if is_record_type(record):
            raise NotAStructure(record)
        descriptor = self.discover(record)
        return {name: getattr(record, name) for name in descriptor.field_to_column}

    def modified_columns(self, snapshot: Mapping[str, Any], record: Any) -> dict[str, Any]:
        """Column to new value for every field that differs from `snapshot`.

        Fields missing from `snapshot` count as modified.
        """
        descriptor = self.discover(record)
        current = self.field_value_snapshot(record)
        return {
            descriptor.field_to_column[name]: value
            for name, value in current.items()
            if name not in snapshot or snapshot[name] != value
        }

    @timed
    def sync(self, rows: ScannableRows | Any, record: T, *hooks: Hook) -> T:
        """Refresh `record` from a single returned row, e.g. after an INSERT.

        Only fields whose returned value differs from `record` and is not the
        field's zero value are written back, so generated values (ids,
        timestamps) are picked up without clobbering what the caller set.
        The record is left untouched unless exactly one row is returned and
        every field to update is settable.
        """
        descriptor = self.discover(record)
        original = self.field_value_snapshot(record)

        results = self.map(rows, descriptor.record_type, *hooks)
        if len(results) != 1:
            raise UnexpectedRowCount(len(results))

        synced = self.field_value_snapshot(results[0])
        updates = {}
        for name, value in synced.items():
            spec = descriptor.fields[name]
            if value != original[name] and value != zero_value(spec):
                if not spec.settable:
                    raise FieldNotSettable(descriptor.record_type, name)
                updates[name] = value

        for name, value in updates.items():
            setattr(record, name, value)
        if updates:
            logger.debug(f'Synced {descriptor.record_type.__qualname__} fields: {list(updates)}')
        return record
