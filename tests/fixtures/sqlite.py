import sqlite3

import pytest


@pytest.fixture
def sqlite_conn():
    """Create an in-memory SQLite database for testing"""
    conn = sqlite3.connect(':memory:')

    create_table = """
    CREATE TABLE users (
        id INTEGER PRIMARY KEY,
        user_name TEXT NOT NULL UNIQUE,
        score REAL,
        active BOOLEAN,
        nickname TEXT
    )
    """
    conn.execute(create_table)

    insert_data = """
    INSERT INTO users (user_name, score, active, nickname) VALUES
    ('Alice', 10.5, 1, NULL),
    ('Bob', 20.0, 0, 'bobby'),
    ('Charlie', 30.25, 1, NULL)
    """
    conn.execute(insert_data)
    conn.commit()

    yield conn
    conn.close()
