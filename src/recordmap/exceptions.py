"""
Mapping-specific exception classes.
"""
from typing import Any


class MappingError(Exception):
    """Base class for all recordmap errors.
    """


class NotAStructure(MappingError, TypeError):
    """Value is not a record type (dataclass) or an instance of one.
    """

    def __init__(self, obj: Any) -> None:
        self.obj = obj
        super().__init__(f'Expected a dataclass type or instance, received {type(obj).__name__}: {obj!r}')


class DuplicateColumn(MappingError):
    """The same column label is declared on more than one field.
    """

    def __init__(self, record_type: type, column: str, fields: tuple[str, str]) -> None:
        self.record_type = record_type
        self.column = column
        self.fields = fields
        super().__init__(
            f'{record_type.__name__}: column {column!r} is declared on both '
            f'{fields[0]!r} and {fields[1]!r}')


class UnmappedName(MappingError, KeyError):
    """Name is neither a mapped field nor a mapped column of the record type.
    """

    def __init__(self, record_type: type, name: str) -> None:
        self.record_type = record_type
        self.name = name
        super().__init__(f'{record_type.__name__} has no mapped field or column {name!r}')

    def __str__(self) -> str:
        return self.args[0]


class CursorError(MappingError):
    """Error raised by the row source while it was being consumed.
    """


class ColumnEnumerationFailed(CursorError):
    """Cursor failed to report its column names.
    """


class RowScanFailed(CursorError):
    """Cursor failed to advance or to fill the row buffer.
    """


class CoercionFailed(MappingError, TypeError):
    """Column value cannot be represented in the target field's kind.
    """

    def __init__(self, field: str, column: str | None, value: Any, reason: str) -> None:
        self.field = field
        self.column = column
        self.value = value
        self.reason = reason
        source = f' (column {column!r})' if column else ''
        super().__init__(f'Cannot assign {value!r} to field {field!r}{source}: {reason}')


class FieldNotSettable(MappingError, AttributeError):
    """Annotated field cannot be assigned from outside the record.
    """

    def __init__(self, record_type: type, field: str) -> None:
        self.record_type = record_type
        self.field = field
        super().__init__(f'Field {record_type.__name__}.{field} is not settable')


class HookFailed(MappingError):
    """A post-population hook raised; the original error is ``error``.
    """

    def __init__(self, hook: Any, error: BaseException) -> None:
        self.hook = hook
        self.error = error
        name = getattr(hook, '__qualname__', None) or repr(hook)
        super().__init__(f'Hook {name} failed: {error}')


class UnexpectedRowCount(MappingError, LookupError):
    """Sync expected exactly one row from the cursor.
    """

    def __init__(self, count: int) -> None:
        self.count = count
        super().__init__(f'Sync expected one and only one row, received {count}')
