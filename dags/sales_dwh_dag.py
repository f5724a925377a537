"""
Sales DWH DAG - Staging -> Star Schema (incremental)
Schedule: Daily at 2:00 AM

Flow:
1. Load the configured window (default: year of the logical date)
   into DimCustomer, DimProduct, DimDate and FactSales as one transaction
2. Log run metrics to monitoring.etl_metrics

Trigger with conf {"window": "2021"} or {"window": "2021-01-01..2021-07-01"}
to reload a specific window; reloads are idempotent.
"""
from datetime import datetime, timedelta
from airflow import DAG
from airflow.operators.python import PythonOperator
from airflow.operators.empty import EmptyOperator
import logging
import sys

sys.path.insert(0, '/opt/airflow')

logger = logging.getLogger(__name__)

default_args = {
    'owner': 'airflow',
    'depends_on_past': False,
    'retries': 1,
    'retry_delay': timedelta(minutes=5),
    'email_on_failure': False,
}


def load_warehouse_task(**kwargs):
    """Run the incremental star schema load for one window."""
    from sales_dwh.config import get_pg_conn_string
    from sales_dwh.etl.warehouse import run_etl
    from sales_dwh.monitoring import ETLMetricsLogger

    dag_run = kwargs.get('dag_run')
    conf = (dag_run.conf if dag_run else None) or {}
    window = conf.get('window') or str(kwargs['logical_date'].year)

    pg_conn_string = get_pg_conn_string()
    metrics_logger = ETLMetricsLogger(pg_conn_string)

    with metrics_logger.track('sales_dwh_incremental_load', 'load_warehouse', kwargs.get('run_id')) as metrics:
        result = run_etl(window, pg_conn_string=pg_conn_string)
        metrics.record_load(result)

    if not result['success']:
        for failure in result.get('failures', []):
            logger.error(f"  row={failure['row']} field={failure['field']} reason={failure['reason']}")
        raise Exception(f"Warehouse load failed: {result['message']}")

    logger.info(f"Warehouse load stats: {result['stats']}")
    return result['stats']


with DAG(
    'sales_dwh_incremental_load',
    default_args=default_args,
    description='Incremental staging -> sales star schema load',
    schedule='0 2 * * *',  # 2:00 AM daily
    start_date=datetime(2024, 1, 1),
    catchup=False,
    tags=['production', 'dwh', 'etl'],
    max_active_runs=1,  # single writer
) as dag:

    start = EmptyOperator(task_id='start')

    load_warehouse = PythonOperator(
        task_id='load_warehouse',
        python_callable=load_warehouse_task,
    )

    end = EmptyOperator(task_id='end')

    start >> load_warehouse >> end
