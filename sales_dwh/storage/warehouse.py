"""DuckDB warehouse file access."""
import logging
import os
from typing import Optional

import duckdb

from sales_dwh.config import WAREHOUSE_CONFIG

logger = logging.getLogger(__name__)


def get_duckdb_connection(local_path: Optional[str] = None) -> duckdb.DuckDBPyConnection:
    """
    Open the warehouse DuckDB file (":memory:" for a throwaway database).
    DuckDB holds a file lock, so only one process can write at a time.
    """
    if local_path is None:
        local_path = WAREHOUSE_CONFIG["duckdb_path"]
    if local_path != ':memory:':
        os.makedirs(os.path.dirname(os.path.abspath(local_path)), exist_ok=True)
    logger.debug(f"Opening DuckDB: {local_path}")
    return duckdb.connect(local_path)
