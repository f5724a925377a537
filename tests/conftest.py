"""
Test Suite Configuration
"""
import os
import sys

import duckdb
import pandas as pd
import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from sales_dwh.etl.warehouse import setup_schema
from sales_dwh.quality import STAGING_COLUMNS


def make_staging(rows):
    """Build a staging frame from tuples in STAGING_COLUMNS order."""
    return pd.DataFrame(list(rows), columns=STAGING_COLUMNS)


def table_count(conn, table: str) -> int:
    return conn.execute(f"SELECT COUNT(*) FROM {table}").fetchone()[0]


ALICE_ROW = ("Alice", "a@x.com", "Widget", "SO1", 1, "2021-05-01", 2, 1.00, 9.99)


@pytest.fixture
def conn():
    """Empty in-memory DuckDB connection."""
    connection = duckdb.connect(':memory:')
    yield connection
    connection.close()


@pytest.fixture
def warehouse(conn):
    """In-memory DuckDB with the star schema created."""
    setup_schema(conn)
    return conn
