"""
FactSales fact processor.

Grain: 1 sales order line (SalesOrderNumber + SalesOrderLineNumber).
- Measures are cast strictly; a bad value fails the load.
- Exact duplicate staging rows in a window collapse to one fact.
- A business key already in FactSales is skipped, so reloading an
  overlapping window does not duplicate history.
"""

import logging
from typing import Any, Dict, List, Optional, Set, Tuple

import duckdb
import pandas as pd

from sales_dwh.errors import ReferentialIntegrityError, RowFailure, ValidationError
from sales_dwh.quality import cast_fact_rows, log_failures
from ..dimensions import compute_customer_hash, compute_product_hash

logger = logging.getLogger(__name__)

FACT_BUSINESS_KEY = ['sales_order_number', 'sales_order_line_number']
LOOKUP_CHUNK_SIZE = 1000


def _existing_business_keys(
    conn: duckdb.DuckDBPyConnection,
    order_numbers: List[str]
) -> Set[Tuple[str, int]]:
    existing = set()
    for i in range(0, len(order_numbers), LOOKUP_CHUNK_SIZE):
        chunk = order_numbers[i:i + LOOKUP_CHUNK_SIZE]
        placeholders = ','.join(['?'] * len(chunk))
        rows = conn.execute(f"""
            SELECT sales_order_number, sales_order_line_number
            FROM FactSales WHERE sales_order_number IN ({placeholders})
        """, chunk).fetchall()
        existing.update((row[0], int(row[1])) for row in rows)
    return existing


def _check_business_key_conflicts(facts: pd.DataFrame) -> None:
    """Rows left after exact-duplicate collapse must not share a business key."""
    conflicts = facts[facts.duplicated(subset=FACT_BUSINESS_KEY, keep=False)]
    if conflicts.empty:
        return

    failures = [
        RowFailure(
            idx, 'SalesOrderNumber',
            f"{row['sales_order_number']}/{row['sales_order_line_number']}",
            'order line repeated with different values'
        )
        for idx, row in conflicts.iterrows()
    ]
    log_failures('FactSales business key', failures)
    raise ValidationError('Conflicting rows for the same order line', failures)


def _resolve_surrogates(facts: pd.DataFrame, caches: Dict[str, Any]) -> pd.DataFrame:
    """Attach customer_sk/product_sk. A miss is a referential integrity fault."""
    facts = facts.copy()
    facts['customer_sk'] = facts['customer_bk_hash'].map(caches.get('customer', {}))
    facts['product_sk'] = facts['product_bk_hash'].map(caches.get('product', {}))
    date_cache = caches.get('date', set())

    missing = []
    for idx, row in facts.iterrows():
        if pd.isna(row['customer_sk']):
            missing.append({'row': idx, 'dimension': 'customer', 'bk_hash': row['customer_bk_hash']})
        if pd.isna(row['product_sk']):
            missing.append({'row': idx, 'dimension': 'product', 'bk_hash': row['product_bk_hash']})
        if row['order_date'] not in date_cache:
            missing.append({'row': idx, 'dimension': 'date', 'date_id': str(row['order_date'])})

    if missing:
        logger.error(f"FactSales: {len(missing)} unresolved dimension references, e.g. {missing[:5]}")
        raise ReferentialIntegrityError(
            f"{len(missing)} fact references have no dimension row", missing
        )

    facts['customer_sk'] = facts['customer_sk'].astype('int64')
    facts['product_sk'] = facts['product_sk'].astype('int64')
    return facts


def process_fact_sales(
    conn: duckdb.DuckDBPyConnection,
    staging_df: pd.DataFrame,
    caches: Dict[str, Any],
    load_id: Optional[str] = None
) -> Dict[str, int]:
    """
    Append FactSales rows for the staging rows of a window.

    Must run after every dimension processor for the same window; the
    caches are the lookup source for surrogate keys.
    """
    stats = {
        'staging_rows': len(staging_df),
        'duplicates_collapsed': 0,
        'facts_appended': 0,
        'facts_skipped': 0,
    }

    if staging_df.empty:
        logger.info("FactSales: no staging rows")
        return stats

    facts = cast_fact_rows(staging_df)
    facts['customer_bk_hash'] = [
        compute_customer_hash(name, email)
        for name, email in zip(staging_df['CustomerName'], staging_df['EmailAddress'])
    ]
    facts['product_bk_hash'] = [compute_product_hash(item) for item in staging_df['Item']]

    before = len(facts)
    facts = facts.drop_duplicates()
    stats['duplicates_collapsed'] = before - len(facts)

    _check_business_key_conflicts(facts)
    facts = _resolve_surrogates(facts, caches)

    existing = _existing_business_keys(conn, sorted(set(facts['sales_order_number'])))
    is_existing = [
        (number, int(line)) in existing
        for number, line in zip(facts['sales_order_number'], facts['sales_order_line_number'])
    ]
    new_facts = facts[[not e for e in is_existing]]
    stats['facts_skipped'] = len(facts) - len(new_facts)

    if not new_facts.empty:
        conn.executemany("""
            INSERT INTO FactSales (
                sales_id, customer_sk, product_sk, order_date,
                sales_order_number, sales_order_line_number,
                quantity, tax_amount, unit_price, load_id
            ) VALUES (NEXTVAL('seq_fact_sales_id'), ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """, [
            [
                int(row['customer_sk']), int(row['product_sk']), row['order_date'],
                row['sales_order_number'], int(row['sales_order_line_number']),
                int(row['quantity']), float(row['tax_amount']), float(row['unit_price']),
                load_id
            ]
            for _, row in new_facts.iterrows()
        ])
    stats['facts_appended'] = len(new_facts)

    orphans = find_orphan_facts(conn)
    if orphans:
        raise ReferentialIntegrityError(f"{orphans} FactSales rows reference missing dimension rows")

    logger.info(f"FactSales: appended={stats['facts_appended']}, skipped={stats['facts_skipped']}, collapsed={stats['duplicates_collapsed']}")
    return stats


def find_orphan_facts(conn: duckdb.DuckDBPyConnection) -> int:
    """Count FactSales rows whose customer or product surrogate does not resolve."""
    return conn.execute("""
        SELECT COUNT(*)
        FROM FactSales f
        LEFT JOIN DimCustomer c ON f.customer_sk = c.customer_sk
        LEFT JOIN DimProduct p ON f.product_sk = p.product_sk
        WHERE c.customer_sk IS NULL OR p.product_sk IS NULL
    """).fetchone()[0]
