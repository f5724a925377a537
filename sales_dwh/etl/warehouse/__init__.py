"""
DWH ETL Module.

Handles incremental loads from sales staging to the DuckDB star schema.

Structure:
├── pipeline.py          - Orchestrator (single writer, one transaction per load)
├── window.py            - Load window (year or date range)
├── staging.py           - Staging reads from the warehouse file
├── cache.py             - Dimension caches
├── dimensions/          - Dimension processors (append-only)
│   ├── base.py         - Natural key -> surrogate resolution
│   ├── customer.py     - DimCustomer (name + email)
│   ├── product.py      - DimProduct (item)
│   └── date.py         - DimDate
├── facts/              - Fact processors
│   └── sales.py        - FactSales (order line grain)
└── sql/dwh_schema.sql  - Star schema DDL

Staging from PostgreSQL: sales_dwh/storage/postgres.py
"""

from .pipeline import run_etl, load_from_staging, setup_schema, LoadResult
from .window import LoadWindow, filter_window
from .staging import read_staging_frame
from .cache import init_dimension_caches
from .dimensions import (
    process_dim_customer,
    process_dim_product,
    process_dim_date,
    compute_customer_hash,
    compute_product_hash
)
from .facts import process_fact_sales, find_orphan_facts

__all__ = [
    'run_etl',
    'load_from_staging',
    'setup_schema',
    'LoadResult',
    'LoadWindow',
    'filter_window',
    'read_staging_frame',
    'init_dimension_caches',
    'process_dim_customer',
    'process_dim_product',
    'process_dim_date',
    'compute_customer_hash',
    'compute_product_hash',
    'process_fact_sales',
    'find_orphan_facts',
]
