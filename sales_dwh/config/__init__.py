"""Configuration module exports"""
from .database_config import DB_CONFIG, STAGING_SCHEMA, STAGING_TABLE, get_pg_conn_string
from .warehouse_config import WAREHOUSE_CONFIG, ORDER_NUMBER_MAX_LENGTH
from .quality_config import DQ_MAX_REPORTED_FAILURES

__all__ = [
    'DB_CONFIG',
    'STAGING_SCHEMA',
    'STAGING_TABLE',
    'get_pg_conn_string',
    'WAREHOUSE_CONFIG',
    'ORDER_NUMBER_MAX_LENGTH',
    'DQ_MAX_REPORTED_FAILURES',
]
