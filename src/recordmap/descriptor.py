"""
Record type metadata: field to column correspondence for dataclass records.

A record type is any dataclass. A field takes part in mapping when its
``metadata`` carries a non-empty label under the mapper's tag:

    @dataclass
    class User:
        id: int = field(default=0, metadata={'db': 'id'})
        name: str = column('user_name', default='')
        notes: list = field(default_factory=list)  # not mapped

Descriptors are built here but owned and cached by
:class:`recordmap.cache.DescriptorCache`.
"""
import dataclasses
import enum
import logging
import types
import typing
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from recordmap.exceptions import DuplicateColumn, NotAStructure
from recordmap.options import DEFAULT_TAG

logger = logging.getLogger(__name__)

__all__ = [
    'FieldKind',
    'FieldSpec',
    'TypeDescriptor',
    'build_descriptor',
    'column',
    'is_record_type',
    'resolve_annotation',
    'resolve_record_type',
    'type_hints',
]


class FieldKind(enum.Enum):
    """Target kind of a mapped field, derived from its annotation."""
    TEXT = 'text'
    INTEGER = 'integer'
    FLOAT = 'float'
    BOOLEAN = 'boolean'
    NESTED = 'nested'
    OTHER = 'other'


def column(name: str, *, tag: str = DEFAULT_TAG, metadata: Mapping | None = None,
           **kwargs: Any) -> Any:
    """Declare a dataclass field mapped to column `name`.

    Thin wrapper over :func:`dataclasses.field`; remaining keyword arguments
    (``default``, ``default_factory``, ``repr``...) are passed through.

    The label is written under `tag` when the class is defined, not under
    the mapper's current tag. Records read by a mapper using another tag
    must pass it explicitly, e.g. ``column('id', tag='sql')``.
    """
    merged = dict(metadata or {})
    merged[tag] = name
    return dataclasses.field(metadata=merged, **kwargs)


def is_record_type(obj: Any) -> bool:
    """True if `obj` is a dataclass class (not an instance)."""
    return isinstance(obj, type) and dataclasses.is_dataclass(obj)


def resolve_record_type(obj: Any) -> type:
    """Return the record type of a dataclass class or instance.

    Raises NotAStructure for anything else (scalars, sequences, mappings,
    typing aliases, None).
    """
    if is_record_type(obj):
        return obj
    if dataclasses.is_dataclass(obj):
        return type(obj)
    raise NotAStructure(obj)


def _unwrap_optional(annotation: Any) -> tuple[Any, bool]:
    """Strip ``Annotated`` and ``None`` from ``Optional[X]`` / ``X | None``.

    Unions of several non-None members are left as they are.
    """
    if typing.get_origin(annotation) is typing.Annotated:
        annotation = typing.get_args(annotation)[0]
    origin = typing.get_origin(annotation)
    if origin is typing.Union or origin is types.UnionType:
        members = [a for a in typing.get_args(annotation) if a is not type(None)]
        optional = len(members) < len(typing.get_args(annotation))
        if len(members) == 1:
            return members[0], optional
        return annotation, optional
    return annotation, False


def resolve_annotation(annotation: Any) -> tuple[Any, FieldKind, bool]:
    """Return ``(type, kind, optional)`` for a field annotation."""
    annotation, optional = _unwrap_optional(annotation)
    return annotation, _kind_of(annotation), optional


def _kind_of(annotation: Any) -> FieldKind:
    if not isinstance(annotation, type):
        return FieldKind.OTHER
    if issubclass(annotation, bool):
        return FieldKind.BOOLEAN
    if issubclass(annotation, str):
        return FieldKind.TEXT
    if issubclass(annotation, int):
        return FieldKind.INTEGER
    if issubclass(annotation, float):
        return FieldKind.FLOAT
    if dataclasses.is_dataclass(annotation):
        return FieldKind.NESTED
    return FieldKind.OTHER


def type_hints(record_type: type) -> dict[str, Any]:
    """Resolved annotations of `record_type`, or {} when they cannot be resolved."""
    try:
        return typing.get_type_hints(record_type, include_extras=True)
    except (NameError, TypeError) as e:
        logger.debug(f'Unresolvable annotations on {record_type.__qualname__}, using raw field types: {e}')
        return {}


@dataclass(frozen=True)
class FieldSpec:
    """Mapping metadata of one annotated field."""
    name: str
    column: str
    kind: FieldKind
    annotation: Any
    optional: bool = False
    settable: bool = True


@dataclass(frozen=True)
class TypeDescriptor:
    """Bidirectional field/column map for one record type and tag.

    `field_to_column` and `column_to_field` are exact inverses. `fields`
    holds the per-field metadata in declaration order.
    """
    record_type: type
    tag: str
    fields: Mapping[str, FieldSpec]
    field_to_column: Mapping[str, str]
    column_to_field: Mapping[str, str]

    @property
    def columns(self) -> list[str]:
        return list(self.column_to_field)

    @property
    def field_names(self) -> list[str]:
        return list(self.field_to_column)

    def spec_for_column(self, column: str) -> FieldSpec | None:
        name = self.column_to_field.get(column)
        return None if name is None else self.fields[name]

    def __len__(self) -> int:
        return len(self.fields)


def build_descriptor(record_type: type, tag: str = DEFAULT_TAG,
                     private_prefix: str = '_') -> TypeDescriptor:
    """Walk the dataclass fields of `record_type` in declaration order.

    Fields with an absent or empty label under `tag` are skipped.
    """
    if not is_record_type(record_type):
        raise NotAStructure(record_type)

    hints = type_hints(record_type)
    frozen = record_type.__dataclass_params__.frozen

    specs: dict[str, FieldSpec] = {}
    field_to_column: dict[str, str] = {}
    column_to_field: dict[str, str] = {}

    for f in dataclasses.fields(record_type):
        label = f.metadata.get(tag)
        if not label:
            continue
        if label in column_to_field:
            raise DuplicateColumn(record_type, label, (column_to_field[label], f.name))

        annotation, kind, optional = resolve_annotation(hints.get(f.name, f.type))
        private = bool(private_prefix) and f.name.startswith(private_prefix)
        specs[f.name] = FieldSpec(
            name=f.name,
            column=label,
            kind=kind,
            annotation=annotation,
            optional=optional,
            settable=not (frozen or private),
        )
        field_to_column[f.name] = label
        column_to_field[label] = f.name

    logger.debug(f'Built descriptor for {record_type.__qualname__} ({tag=}): {field_to_column}')

    return TypeDescriptor(
        record_type=record_type,
        tag=tag,
        fields=types.MappingProxyType(specs),
        field_to_column=types.MappingProxyType(field_to_column),
        column_to_field=types.MappingProxyType(column_to_field),
    )
