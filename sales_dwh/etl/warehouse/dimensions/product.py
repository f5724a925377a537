"""
DimProduct dimension processor.
"""

from typing import Dict, Optional

import duckdb
import pandas as pd

from .base import DimensionSpec, compute_bk_hash, resolve_dimension, strip_value


PRODUCT_DIMENSION = DimensionSpec(
    name='product',
    table='DimProduct',
    sk_column='product_sk',
    hash_column='product_bk_hash',
    sequence='seq_dim_product_sk',
    columns=(
        ('Item', 'item_name', strip_value),
    ),
)


def compute_product_hash(item_name: str) -> str:
    return compute_bk_hash([strip_value(item_name)])


def process_dim_product(
    conn: duckdb.DuckDBPyConnection,
    staging_df: pd.DataFrame,
    load_id: Optional[str] = None
) -> Dict[str, int]:
    """Append DimProduct rows for items not seen before."""
    return resolve_dimension(conn, staging_df, PRODUCT_DIMENSION, load_id)
