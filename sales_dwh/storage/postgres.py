"""PostgreSQL storage operations (staging source)"""
import logging
from typing import Optional

import psycopg2
import pandas as pd

from sales_dwh.config import DB_CONFIG, STAGING_SCHEMA, STAGING_TABLE
from sales_dwh.quality import STAGING_COLUMNS

logger = logging.getLogger(__name__)


def get_db_connection():
    """Get PostgreSQL connection"""
    return psycopg2.connect(
        host=DB_CONFIG["host"],
        port=DB_CONFIG["port"],
        user=DB_CONFIG["user"],
        password=DB_CONFIG["password"],
        dbname=DB_CONFIG["database"]
    )


def get_staging_data(window, pg_conn_string: Optional[str] = None) -> pd.DataFrame:
    """
    Get staging rows for a load window from PostgreSQL.

    OrderDate may be a DATE, a TIMESTAMP or free text. Rows whose value does
    not start with an ISO date are returned unfiltered so the loader can
    parse or reject them; the rest are compared on their ISO date prefix.
    """
    columns = ", ".join('"{}"'.format(c) for c in STAGING_COLUMNS)
    query = """
        SELECT {cols}
        FROM {schema}.{table}
        WHERE "OrderDate" IS NULL
           OR "OrderDate"::text !~ '^[0-9]{{4}}-[0-9]{{2}}-[0-9]{{2}}'
           OR (LEFT("OrderDate"::text, 10) >= %s AND LEFT("OrderDate"::text, 10) < %s)
    """.format(cols=columns, schema=STAGING_SCHEMA, table=STAGING_TABLE)
    params = [window.start.isoformat(), window.end.isoformat()]

    conn = None
    try:
        conn = psycopg2.connect(pg_conn_string) if pg_conn_string else get_db_connection()
        df = pd.read_sql(query, conn, params=params)
        logger.info("Loaded {} records from {}.{} for {}".format(len(df), STAGING_SCHEMA, STAGING_TABLE, window))
        return df
    except Exception as e:
        logger.error("Failed to get staging data: {}".format(e))
        raise
    finally:
        if conn:
            conn.close()
