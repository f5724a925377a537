"""
DimCustomer dimension processor.
"""

from typing import Dict, Optional

import duckdb
import pandas as pd

from .base import DimensionSpec, compute_bk_hash, resolve_dimension, strip_value


def normalize_email(email) -> str:
    """Emails compare case-insensitively."""
    return str(email).strip().lower()


CUSTOMER_DIMENSION = DimensionSpec(
    name='customer',
    table='DimCustomer',
    sk_column='customer_sk',
    hash_column='customer_bk_hash',
    sequence='seq_dim_customer_sk',
    columns=(
        ('CustomerName', 'customer_name', strip_value),
        ('EmailAddress', 'email_address', normalize_email),
    ),
)


def compute_customer_hash(customer_name: str, email_address: str) -> str:
    """
    Business key hash for a customer.
    Name AND email: two customers sharing a name are different people.
    """
    return compute_bk_hash([strip_value(customer_name), normalize_email(email_address)])


def process_dim_customer(
    conn: duckdb.DuckDBPyConnection,
    staging_df: pd.DataFrame,
    load_id: Optional[str] = None
) -> Dict[str, int]:
    """Append DimCustomer rows for (CustomerName, EmailAddress) pairs not seen before."""
    return resolve_dimension(conn, staging_df, CUSTOMER_DIMENSION, load_id)
