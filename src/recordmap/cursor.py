"""
Row sources consumed by the mapper.

The mapper only needs a forward-only cursor with three members, described by
``ScannableRows``. Adapters are provided for:

- PEP-249 cursors (sqlite3, psycopg, pyodbc...): ``DbapiRows``
- lists of row dicts, as returned by iterdict style loaders: ``IterdictRows``
- pandas DataFrames: ``FrameRows``
"""
import logging
from collections.abc import Iterator, Mapping, Sequence
from typing import Any, Protocol, runtime_checkable

import pandas as pd

logger = logging.getLogger(__name__)

__all__ = [
    'ScannableRows',
    'DbapiRows',
    'IterdictRows',
    'FrameRows',
    'as_rows',
]


@runtime_checkable
class ScannableRows(Protocol):
    """Sequential, single-pass row source."""

    def next(self) -> bool:
        """Move to the next row; False once exhausted."""
        ...

    def columns(self) -> list[str]:
        """Column names of the result set, stable for the cursor's lifetime."""
        ...

    def scan(self, buffer: list) -> None:
        """Fill `buffer` in place with the current row, in column order."""
        ...


class _RowIterator:
    """Shared next/scan bookkeeping over an iterator of row sequences."""

    def __init__(self, rows: Iterator[Sequence]) -> None:
        self._rows = rows
        self._current: Sequence | None = None

    def next(self) -> bool:
        self._current = next(self._rows, None)
        return self._current is not None

    def scan(self, buffer: list) -> None:
        if self._current is None:
            raise RuntimeError('scan called without a current row')
        if len(buffer) != len(self._current):
            raise ValueError(f'Buffer has {len(buffer)} slots, row has {len(self._current)} values')
        buffer[:] = self._current


class DbapiRows(_RowIterator):
    """Adapt an executed PEP-249 cursor.

    Column names come from ``cursor.description``; rows are pulled with
    ``fetchmany`` in chunks of `arraysize`.
    """

    def __init__(self, cursor: Any, arraysize: int = 500) -> None:
        self.cursor = cursor
        self.arraysize = arraysize
        super().__init__(self._iter_chunks())

    def _iter_chunks(self) -> Iterator[Sequence]:
        while True:
            chunk = self.cursor.fetchmany(self.arraysize)
            if not chunk:
                break
            for row in chunk:
                yield tuple(row.values()) if isinstance(row, Mapping) else tuple(row)

    def columns(self) -> list[str]:
        if self.cursor.description is None:
            raise ValueError('Cursor has no result set (description is None)')
        return [d.name if hasattr(d, 'name') else d[0] for d in self.cursor.description]


class IterdictRows(_RowIterator):
    """Adapt a sequence of row dicts.

    Columns are the keys of the first row (an empty sequence has none).
    Every row is read in that column order; a missing key reads as None.
    """

    def __init__(self, rows: Sequence[Mapping[str, Any]]) -> None:
        self.data = list(rows)
        self._columns = list(self.data[0]) if self.data else []
        super().__init__(tuple(row.get(c) for c in self._columns) for row in self.data)

    def columns(self) -> list[str]:
        return list(self._columns)


class FrameRows(_RowIterator):
    """Adapt a pandas DataFrame.

    Cells arrive as Python scalars, with ``pd.NA``/``pd.NaT`` for missing
    values of nullable and datetime columns and NaN for float columns.
    """

    def __init__(self, frame: pd.DataFrame) -> None:
        self.frame = frame
        super().__init__(frame.itertuples(index=False, name=None))

    def columns(self) -> list[str]:
        return [str(c) for c in self.frame.columns]


def as_rows(source: Any) -> ScannableRows:
    """Wrap `source` in the matching adapter if it is not already a row source.
    """
    if isinstance(source, ScannableRows):
        return source
    if isinstance(source, pd.DataFrame):
        return FrameRows(source)
    if hasattr(source, 'description') and hasattr(source, 'fetchmany'):
        return DbapiRows(source)
    if isinstance(source, Sequence) and all(isinstance(r, Mapping) for r in source):
        return IterdictRows(source)
    raise TypeError(f'Cannot read rows from {type(source).__name__}')
