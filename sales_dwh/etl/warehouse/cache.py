"""
Dimension cache utilities.
"""

import logging
from typing import Dict

import duckdb

logger = logging.getLogger(__name__)


def init_dimension_caches(conn: duckdb.DuckDBPyConnection) -> Dict[str, Dict]:
    """
    Initialize caches for dimension lookups.

    Returns dict with:
    - customer: customer_bk_hash -> customer_sk
    - product: product_bk_hash -> product_sk
    - date: set of date_id present in DimDate
    """
    caches = {}

    customers = conn.execute("""
        SELECT customer_bk_hash, customer_sk FROM DimCustomer
    """).fetchall()
    caches['customer'] = {row[0]: row[1] for row in customers}

    products = conn.execute("""
        SELECT product_bk_hash, product_sk FROM DimProduct
    """).fetchall()
    caches['product'] = {row[0]: row[1] for row in products}

    dates = conn.execute("SELECT date_id FROM DimDate").fetchall()
    caches['date'] = {row[0] for row in dates}

    logger.info(f"Caches initialized: customers={len(caches['customer'])}, products={len(caches['product'])}, dates={len(caches['date'])}")
    return caches
