"""Storage module exports"""
from .postgres import get_db_connection, get_staging_data
from .warehouse import get_duckdb_connection

__all__ = [
    'get_db_connection',
    'get_staging_data',
    'get_duckdb_connection',
]
