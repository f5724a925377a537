"""
ETL Pipeline: Staging to DWH.
Main orchestrator for the incremental star schema load.
"""

import logging
import os
import re
import threading
import time
import uuid
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional, Union

import duckdb
import pandas as pd

from sales_dwh.config import DQ_MAX_REPORTED_FAILURES, WAREHOUSE_CONFIG
from sales_dwh.errors import (
    ConcurrentLoadError,
    LoadTimeoutError,
    TransactionAbortError,
)
from sales_dwh.quality import StagingValidator, check_staging_columns
from sales_dwh.storage import get_duckdb_connection, get_staging_data
from .cache import init_dimension_caches
from .dimensions import process_dim_customer, process_dim_product, process_dim_date
from .facts import process_fact_sales
from .staging import read_staging_frame
from .window import LoadWindow, filter_window

logger = logging.getLogger(__name__)

DEFAULT_SCHEMA_PATH = os.path.join(os.path.dirname(__file__), 'sql', 'dwh_schema.sql')

# One writer per process; DuckDB's file lock covers other processes
_WRITER_LOCK = threading.Lock()


@dataclass
class LoadResult:
    """Outcome of one committed load."""
    load_id: str
    window: LoadWindow
    staging_rows: int = 0
    dimensions: Dict[str, int] = field(default_factory=dict)
    facts_appended: int = 0
    facts_skipped: int = 0
    duplicates_collapsed: int = 0
    quality: Dict[str, Any] = field(default_factory=dict)
    duration_seconds: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            'load_id': self.load_id,
            'window_start': self.window.start.isoformat(),
            'window_end': self.window.end.isoformat(),
            'staging_rows': self.staging_rows,
            'dimensions': dict(self.dimensions),
            'facts_appended': self.facts_appended,
            'facts_skipped': self.facts_skipped,
            'duplicates_collapsed': self.duplicates_collapsed,
            'quality': dict(self.quality),
            'duration_seconds': self.duration_seconds,
        }


def setup_schema(conn: duckdb.DuckDBPyConnection, schema_path: str = DEFAULT_SCHEMA_PATH) -> None:
    """
    Create warehouse tables and sequences if they don't exist.
    Does NOT drop existing tables to preserve data.
    """
    with open(schema_path, 'r', encoding='utf-8') as f:
        sql = f.read()

    # Remove comments
    sql = re.sub(r'--.*\n', '\n', sql)
    sql = re.sub(r'/\*.*?\*/', '', sql, flags=re.DOTALL)

    for stmt in [s.strip() for s in sql.split(';') if s.strip()]:
        conn.execute(stmt)
    logger.debug("Schema setup complete")


@contextmanager
def _writer_lock():
    if not _WRITER_LOCK.acquire(blocking=False):
        raise ConcurrentLoadError("Another load is already running")
    try:
        yield
    finally:
        _WRITER_LOCK.release()


@contextmanager
def _interrupt_after(conn: duckdb.DuckDBPyConnection, timeout: Optional[float]):
    """Interrupt the running DuckDB statement once the timeout elapses."""
    timer = None
    if timeout:
        timer = threading.Timer(timeout, conn.interrupt)
        timer.daemon = True
        timer.start()
    try:
        yield
    finally:
        if timer:
            timer.cancel()


def _check_deadline(deadline: Optional[float], phase: str) -> None:
    if deadline is not None and time.monotonic() >= deadline:
        raise LoadTimeoutError(f"Load timed out before {phase}")


def _rollback(conn: duckdb.DuckDBPyConnection) -> None:
    try:
        conn.execute("ROLLBACK")
        logger.info("Load transaction rolled back")
    except Exception as e:
        logger.error(f"Rollback failed: {e}")


def _write_load_log(
    conn: duckdb.DuckDBPyConnection,
    load_id: str,
    window: LoadWindow,
    status: str,
    started_at: datetime,
    result: Optional[LoadResult] = None,
    error_message: Optional[str] = None
) -> None:
    dims = result.dimensions if result else {}
    conn.execute("""
        INSERT INTO LoadLog (
            load_id, window_start, window_end, status, staging_rows,
            customers_created, products_created, dates_created,
            facts_appended, facts_skipped, duplicates_collapsed,
            started_at, finished_at, error_message
        ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
    """, [
        load_id, window.start, window.end, status,
        result.staging_rows if result else None,
        dims.get('customer'), dims.get('product'), dims.get('date'),
        result.facts_appended if result else None,
        result.facts_skipped if result else None,
        result.duplicates_collapsed if result else None,
        started_at, datetime.now(), error_message
    ])


def _record_failed_load(conn, load_id, window, started_at, error: BaseException) -> None:
    """Best-effort LoadLog entry for a rolled back load."""
    try:
        _write_load_log(conn, load_id, window, 'failed', started_at, error_message=str(error)[:1000])
    except Exception as e:
        logger.warning(f"Failed to log failed load {load_id}: {e}")


def load_from_staging(
    conn: duckdb.DuckDBPyConnection,
    window: Union[LoadWindow, str, int],
    staging_df: Optional[pd.DataFrame] = None,
    timeout: Optional[float] = None,
    staging_table: Optional[str] = None
) -> LoadResult:
    """
    Load one window of staging rows into the star schema as one transaction.

    Flow:
    1. Read staging (DuckDB table unless a frame is given) and filter the window
    2. BEGIN
    3. DimCustomer, DimProduct, DimDate (append-only)
    4. FactSales (after every dimension)
    5. LoadLog success row, COMMIT

    Any failure rolls back every dimension and fact write of the invocation
    and raises TransactionAbortError chained to the cause.
    """
    window = LoadWindow.parse(window)
    load_id = uuid.uuid4().hex
    started_at = datetime.now()
    start = time.monotonic()
    deadline = start + timeout if timeout else None

    with _writer_lock():
        setup_schema(conn)

        phase = 'staging'
        in_transaction = False
        try:
            with _interrupt_after(conn, timeout):
                if staging_df is None:
                    staging_df = read_staging_frame(conn, window, staging_table or WAREHOUSE_CONFIG['staging_table'])
                check_staging_columns(staging_df)
                # failures report row positions; concatenated frames repeat labels
                staging_df = staging_df.reset_index(drop=True)
                window_df = filter_window(staging_df, window)
                quality = StagingValidator().validate(window_df)

                conn.execute("BEGIN TRANSACTION")
                in_transaction = True

                phase = 'dimensions'
                _check_deadline(deadline, 'DimCustomer')
                customers = process_dim_customer(conn, window_df, load_id)
                _check_deadline(deadline, 'DimProduct')
                products = process_dim_product(conn, window_df, load_id)
                _check_deadline(deadline, 'DimDate')
                dates = process_dim_date(conn, window_df)

                phase = 'facts'
                _check_deadline(deadline, 'FactSales')
                caches = init_dimension_caches(conn)
                fact_stats = process_fact_sales(conn, window_df, caches, load_id)

                phase = 'commit'
                _check_deadline(deadline, 'commit')
                result = LoadResult(
                    load_id=load_id,
                    window=window,
                    staging_rows=len(window_df),
                    dimensions={
                        'customer': customers['inserted'],
                        'product': products['inserted'],
                        'date': dates['inserted'],
                    },
                    facts_appended=fact_stats['facts_appended'],
                    facts_skipped=fact_stats['facts_skipped'],
                    duplicates_collapsed=fact_stats['duplicates_collapsed'],
                    quality=quality.to_dict(),
                )
                _write_load_log(conn, load_id, window, 'success', started_at, result)
                conn.execute("COMMIT")
                in_transaction = False
        except Exception as e:
            if in_transaction:
                _rollback(conn)
            cause = e
            if deadline is not None and time.monotonic() >= deadline and not isinstance(e, LoadTimeoutError):
                cause = LoadTimeoutError(f"Load exceeded timeout of {timeout}s during {phase}: {e}")
            _record_failed_load(conn, load_id, window, started_at, cause)
            logger.error(f"Load {load_id} for {window} aborted during {phase}: {cause}")
            raise TransactionAbortError(phase, cause) from e

    result.duration_seconds = time.monotonic() - start
    logger.info(
        f"Load {load_id} committed: customers={result.dimensions['customer']}, "
        f"products={result.dimensions['product']}, dates={result.dimensions['date']}, "
        f"facts={result.facts_appended}, skipped={result.facts_skipped}"
    )
    return result


def run_etl(
    window: Union[LoadWindow, str, int],
    db_path: Optional[str] = None,
    pg_conn_string: Optional[str] = None,
    timeout: Optional[float] = None
) -> Dict[str, Any]:
    """
    Run the incremental load: Staging -> DWH.

    Flow:
    1. Get staging data (PostgreSQL if a connection string is given,
       otherwise the staging table inside the warehouse file)
    2. Open the DuckDB warehouse
    3. load_from_staging() for the window
    """
    start_time = datetime.now()
    result = {
        'success': False,
        'start_time': start_time.isoformat(),
        'window': str(window),
        'stats': {}
    }

    if timeout is None:
        timeout = WAREHOUSE_CONFIG['load_timeout'] or None

    try:
        logger.info("=" * 60)
        logger.info(f"ETL START: {start_time} window={window}")
        logger.info("=" * 60)

        window = LoadWindow.parse(window)
        result['window'] = str(window)

        staging_df = None
        if pg_conn_string:
            staging_df = get_staging_data(window, pg_conn_string)

        with get_duckdb_connection(db_path) as conn:
            load = load_from_staging(conn, window, staging_df=staging_df, timeout=timeout)

        result['stats'] = load.to_dict()
        result['success'] = True
        result['message'] = 'ETL completed successfully'

    except TransactionAbortError as e:
        logger.error(f"ETL failed: {e}", exc_info=True)
        result['message'] = str(e)
        result['phase'] = e.phase
        result['error_type'] = type(e.cause).__name__
        result['failures'] = [f.to_dict() for f in e.failures[:DQ_MAX_REPORTED_FAILURES]]
        missing = getattr(e.cause, 'missing', None)
        if missing:
            result['missing_keys'] = missing[:DQ_MAX_REPORTED_FAILURES]

    except Exception as e:
        logger.error(f"ETL failed: {e}", exc_info=True)
        result['message'] = str(e)
        result['error_type'] = type(e).__name__

    finally:
        end_time = datetime.now()
        result['end_time'] = end_time.isoformat()
        result['duration_seconds'] = (end_time - start_time).total_seconds()

        logger.info("=" * 60)
        logger.info(f"ETL END: Duration {result['duration_seconds']:.2f}s")
        logger.info(f"Status: {'SUCCESS' if result['success'] else 'FAILED'}")
        logger.info("=" * 60)

    return result


if __name__ == "__main__":
    import sys

    logging.basicConfig(level=logging.INFO)
    outcome = run_etl(sys.argv[1] if len(sys.argv) > 1 else str(datetime.now().year))
    sys.exit(0 if outcome['success'] else 1)
