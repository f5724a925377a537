"""Warehouse configuration (DuckDB star schema)"""
import os

WAREHOUSE_CONFIG = {
    "duckdb_path": os.getenv("DWH_DUCKDB_PATH", "/tmp/sales_dwh/sales_dwh.duckdb"),
    # Staging table name when staging lives inside the warehouse file
    "staging_table": os.getenv("DWH_STAGING_TABLE", "staging_sales"),
    # Seconds; 0 disables the timeout
    "load_timeout": float(os.getenv("DWH_LOAD_TIMEOUT", "0")),
}

# FactSales.sales_order_number is VARCHAR(25)
ORDER_NUMBER_MAX_LENGTH = int(os.getenv("DWH_ORDER_NUMBER_MAX_LENGTH", "25"))
