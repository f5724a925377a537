"""
Staging reads from a table inside the warehouse file.
"""

import logging

import duckdb
import pandas as pd

from sales_dwh.quality import STAGING_COLUMNS
from .window import LoadWindow

logger = logging.getLogger(__name__)


def _check_table_name(table: str) -> str:
    if not all(part.isidentifier() for part in table.split('.')):
        raise ValueError(f"Invalid staging table name: {table!r}")
    return table


def read_staging_frame(
    conn: duckdb.DuckDBPyConnection,
    window: LoadWindow,
    table: str = 'staging_sales'
) -> pd.DataFrame:
    """
    Read the staging rows that can belong to the window.

    OrderDate is loosely typed in staging; rows it cannot be cast for are
    returned too so the window filter can reject them loudly.
    """
    table = _check_table_name(table)
    columns = ', '.join(STAGING_COLUMNS)
    df = conn.execute(f"""
        SELECT {columns}
        FROM {table}
        WHERE TRY_CAST(OrderDate AS DATE) IS NULL
           OR (TRY_CAST(OrderDate AS DATE) >= ? AND TRY_CAST(OrderDate AS DATE) < ?)
    """, [window.start, window.end]).fetchdf()
    logger.info(f"Loaded {len(df)} records from staging table {table} for {window}")
    return df
