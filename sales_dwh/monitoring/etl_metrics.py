"""ETL Metrics Logger - Track load performance."""

import json
import logging
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional

import psycopg2

logger = logging.getLogger(__name__)


@dataclass
class ETLMetrics:
    """ETL task metrics."""
    dag_id: str
    task_id: str
    dag_run_id: Optional[str] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    duration_seconds: float = 0.0
    rows_in: int = 0
    rows_out: int = 0
    rows_inserted: int = 0
    rows_skipped: int = 0
    rows_failed: int = 0
    status: str = 'running'
    error_message: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def throughput(self) -> float:
        """Rows per second."""
        if self.duration_seconds > 0:
            return self.rows_out / self.duration_seconds
        return 0.0

    def record_load(self, etl_result: Dict[str, Any]) -> None:
        """Fill counters from a run_etl() result dict."""
        stats = etl_result.get('stats') or {}
        dims = stats.get('dimensions') or {}
        self.rows_in = stats.get('staging_rows', 0)
        self.rows_inserted = stats.get('facts_appended', 0)
        self.rows_skipped = stats.get('facts_skipped', 0) + stats.get('duplicates_collapsed', 0)
        self.rows_out = self.rows_inserted + sum(dims.values())
        self.rows_failed = len(etl_result.get('failures') or [])
        self.metadata = {
            'window': etl_result.get('window'),
            'load_id': stats.get('load_id'),
            'dimensions': dims,
            'quality': stats.get('quality'),
        }
        if not etl_result.get('success'):
            self.error_message = etl_result.get('message')


class ETLMetricsLogger:
    """Logger for ETL metrics to monitoring.etl_metrics table."""

    def __init__(self, pg_conn_string: str):
        self.conn_string = pg_conn_string

    def log(self, metrics: ETLMetrics) -> bool:
        """Log metrics to etl_metrics table."""
        try:
            with psycopg2.connect(self.conn_string) as conn:
                with conn.cursor() as cur:
                    cur.execute("""
                        INSERT INTO monitoring.etl_metrics (
                            dag_id, task_id, dag_run_id, status,
                            duration_seconds, rows_in, rows_out, rows_inserted,
                            rows_skipped, rows_failed, throughput, error_message,
                            metadata, started_at, completed_at
                        ) VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
                    """, (
                        metrics.dag_id, metrics.task_id, metrics.dag_run_id,
                        metrics.status, metrics.duration_seconds,
                        metrics.rows_in, metrics.rows_out, metrics.rows_inserted,
                        metrics.rows_skipped, metrics.rows_failed, metrics.throughput,
                        metrics.error_message,
                        json.dumps(metrics.metadata) if metrics.metadata else None,
                        metrics.start_time, metrics.end_time
                    ))
                conn.commit()
            logger.info(f"ETL metrics logged: {metrics.task_id} - {metrics.rows_out} rows in {metrics.duration_seconds:.2f}s")
            return True
        except Exception as e:
            logger.warning(f"Failed to log ETL metrics: {e}")
            return False

    @contextmanager
    def track(self, dag_id: str, task_id: str, dag_run_id: str = None):
        """Context manager to track task duration and metrics."""
        metrics = ETLMetrics(
            dag_id=dag_id,
            task_id=task_id,
            dag_run_id=dag_run_id,
            start_time=datetime.now()
        )
        start = time.time()

        try:
            yield metrics
            metrics.status = 'failed' if metrics.error_message else 'success'
        except Exception as e:
            metrics.status = 'failed'
            metrics.error_message = str(e)
            raise
        finally:
            metrics.end_time = datetime.now()
            metrics.duration_seconds = time.time() - start
            self.log(metrics)
