"""Database configuration (PostgreSQL staging + monitoring)"""
import os

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "postgres"),
    "port": int(os.getenv("DB_PORT", "5432")),
    "user": os.getenv("DB_USER", "salesdwh"),
    "password": os.getenv("DB_PASSWORD", "salesdwh"),
    "database": os.getenv("DB_NAME", "salesdwh"),
}

# Staging table written by the upstream CSV ingestion job
STAGING_SCHEMA = os.getenv("STAGING_SCHEMA", "sales_staging")
STAGING_TABLE = os.getenv("STAGING_TABLE", "staging_sales")


def get_pg_conn_string() -> str:
    """Build a libpq connection string from DB_CONFIG."""
    return "host={host} port={port} user={user} password={password} dbname={database}".format(**DB_CONFIG)
