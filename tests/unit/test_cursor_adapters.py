"""
Tests for row source adapters implementing the ScannableRows contract.
"""
import sqlite3

import numpy as np
import pandas as pd
import pytest
from recordmap.cursor import DbapiRows, FrameRows, IterdictRows, ScannableRows
from recordmap.cursor import as_rows
from tests.fixtures.cursors import FakeRows


def drain(rows):
    """Read every row through the three-operation contract."""
    columns = rows.columns()
    out = []
    while rows.next():
        buffer = [None] * len(columns)
        rows.scan(buffer)
        out.append(tuple(buffer))
    return columns, out


def test_fake_rows_is_scannable():
    assert isinstance(FakeRows(['id'], []), ScannableRows)


class TestDbapiRows:

    def test_sqlite_cursor(self, sqlite_conn):
        cursor = sqlite_conn.execute('SELECT id, user_name FROM users ORDER BY id')
        columns, data = drain(DbapiRows(cursor))
        assert columns == ['id', 'user_name']
        assert data == [(1, 'Alice'), (2, 'Bob'), (3, 'Charlie')]

    def test_sqlite_row_factory(self, sqlite_conn):
        sqlite_conn.row_factory = sqlite3.Row
        cursor = sqlite_conn.execute('SELECT user_name, id FROM users WHERE id = 2')
        assert drain(DbapiRows(cursor)) == (['user_name', 'id'], [('Bob', 2)])

    def test_small_arraysize(self, sqlite_conn):
        cursor = sqlite_conn.execute('SELECT id FROM users ORDER BY id')
        _, data = drain(DbapiRows(cursor, arraysize=1))
        assert data == [(1,), (2,), (3,)]

    def test_dict_rows(self, mocker):
        cursor = mocker.Mock()
        cursor.description = [('id', 23, None, None, None, None, None)]
        cursor.fetchmany.side_effect = [[{'id': 1}, {'id': 2}], []]
        assert drain(DbapiRows(cursor)) == (['id'], [(1,), (2,)])

    def test_no_result_set(self, sqlite_conn):
        cursor = sqlite_conn.execute('UPDATE users SET score = 0 WHERE id = -1')
        with pytest.raises(ValueError, match='no result set'):
            DbapiRows(cursor).columns()

    def test_scan_without_row(self, sqlite_conn):
        rows = DbapiRows(sqlite_conn.execute('SELECT id FROM users'))
        with pytest.raises(RuntimeError):
            rows.scan([None])

    def test_buffer_size_mismatch(self, sqlite_conn):
        rows = DbapiRows(sqlite_conn.execute('SELECT id, user_name FROM users'))
        assert rows.next()
        with pytest.raises(ValueError, match='slots'):
            rows.scan([None])


class TestIterdictRows:

    def test_rows(self):
        rows = IterdictRows([{'id': 1, 'name': 'a'}, {'name': 'b', 'id': 2}, {'id': 3}])
        assert drain(rows) == (['id', 'name'], [(1, 'a'), (2, 'b'), (3, None)])

    def test_empty(self):
        assert drain(IterdictRows([])) == ([], [])


class TestFrameRows:

    def test_frame(self):
        frame = pd.DataFrame({'id': np.array([1, 2], dtype='int64'), 'score': [1.5, np.nan]})
        columns, data = drain(FrameRows(frame))
        assert columns == ['id', 'score']
        assert data[0] == (1, 1.5)
        assert data[1][0] == 2
        assert np.isnan(data[1][1])

    def test_nullable_dtype(self):
        frame = pd.DataFrame({'id': pd.array([1, None], dtype='Int64')})
        _, data = drain(FrameRows(frame))
        assert data[1][0] is pd.NA


class TestAsRows:

    def test_passes_through_row_sources(self):
        rows = FakeRows(['id'], [(1,)])
        assert as_rows(rows) is rows

    def test_wraps_sources(self, sqlite_conn):
        assert isinstance(as_rows(sqlite_conn.execute('SELECT 1')), DbapiRows)
        assert isinstance(as_rows([{'id': 1}]), IterdictRows)
        assert isinstance(as_rows(pd.DataFrame({'id': [1]})), FrameRows)

    @pytest.mark.parametrize('source', [42, 'id', [1, 2]])
    def test_rejects_unknown(self, source):
        with pytest.raises(TypeError):
            as_rows(source)


if __name__ == '__main__':
    __import__('pytest').main([__file__])
