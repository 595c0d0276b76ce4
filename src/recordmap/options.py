from dataclasses import dataclass
from typing import Any

from libb import ConfigOptions

__all__ = [
    'DEFAULT_TAG',
    'MapperOptions',
    'resolve_options',
]

DEFAULT_TAG = 'db'


@dataclass
class MapperOptions(ConfigOptions):
    """Options

    - tag: metadata key on dataclass fields naming the column (default: `db`)
    - private_prefix: fields whose name starts with this prefix cannot be
      assigned by the mapper (default: `_`, empty string disables)
    """
    tag: str = DEFAULT_TAG
    private_prefix: str = '_'

    def __post_init__(self):
        if not isinstance(self.tag, str) or not self.tag:
            raise ValueError(f'tag must be a non-empty string, received {self.tag!r}')
        if self.private_prefix is None:
            self.private_prefix = ''


def resolve_options(options: 'MapperOptions | dict[str, Any] | None' = None,
                    **kw: Any) -> MapperOptions:
    """Build options from an options object, a dict, or keyword overrides.

    Keyword arguments take precedence over values carried by `options`.
    """
    if options is None:
        return MapperOptions(**kw)
    if isinstance(options, MapperOptions):
        if not kw:
            return options
        merged = {'tag': options.tag, 'private_prefix': options.private_prefix}
        merged.update(kw)
        return MapperOptions(**merged)
    if isinstance(options, dict):
        return MapperOptions(**(options | kw))
    raise TypeError(f'options must be MapperOptions or dict, received {type(options).__name__}')
