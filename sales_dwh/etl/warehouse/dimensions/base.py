"""
Shared natural-key resolution for append-only dimensions.

A dimension row is created the first time its natural key shows up in a
load window and is never updated afterwards. Lookups go through an MD5
business-key hash of the full (normalized) natural key; the surrogate key
comes from a sequence.
"""

import hashlib
import logging
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Optional, Tuple

import duckdb
import pandas as pd

from sales_dwh.errors import ValidationError
from sales_dwh.quality import log_failures, require_fields

logger = logging.getLogger(__name__)

KEY_SEPARATOR = '\x1f'
LOOKUP_CHUNK_SIZE = 1000


def compute_bk_hash(parts: Iterable[str]) -> str:
    """MD5 over the normalized natural-key parts."""
    return hashlib.md5(KEY_SEPARATOR.join(parts).encode('utf-8')).hexdigest()


def strip_value(value) -> str:
    return str(value).strip()


@dataclass(frozen=True)
class DimensionSpec:
    """How one dimension maps staging columns onto its table."""
    name: str
    table: str
    sk_column: str
    hash_column: str
    sequence: str
    # staging column -> (dimension column, normalizer), in natural-key order
    columns: Tuple[Tuple[str, str, Callable[[object], str]], ...]

    @property
    def staging_columns(self) -> List[str]:
        return [c[0] for c in self.columns]

    @property
    def dim_columns(self) -> List[str]:
        return [c[1] for c in self.columns]


def natural_key_frame(staging_df: pd.DataFrame, spec: DimensionSpec) -> pd.DataFrame:
    """
    Normalized natural-key attributes plus bk_hash, one row per staging row.
    Raises ValidationError if any natural-key attribute is missing.
    """
    failures = require_fields(staging_df, spec.staging_columns)
    if failures:
        log_failures(f"Dim{spec.name.capitalize()} natural key", failures)
        raise ValidationError(f"Missing {spec.name} natural key attributes", failures)

    keys = pd.DataFrame(index=staging_df.index)
    for staging_col, dim_col, normalize in spec.columns:
        keys[dim_col] = staging_df[staging_col].map(normalize)
    keys['bk_hash'] = [compute_bk_hash(parts) for parts in keys[spec.dim_columns].itertuples(index=False)]
    return keys


def fetch_existing_keys(
    conn: duckdb.DuckDBPyConnection,
    spec: DimensionSpec,
    hashes: List[str]
) -> Dict[str, int]:
    """Return bk_hash -> surrogate key for the hashes already in the dimension."""
    existing = {}
    for i in range(0, len(hashes), LOOKUP_CHUNK_SIZE):
        chunk = hashes[i:i + LOOKUP_CHUNK_SIZE]
        placeholders = ','.join(['?'] * len(chunk))
        rows = conn.execute(f"""
            SELECT {spec.hash_column}, {spec.sk_column}
            FROM {spec.table} WHERE {spec.hash_column} IN ({placeholders})
        """, chunk).fetchall()
        existing.update({row[0]: row[1] for row in rows})
    return existing


def resolve_dimension(
    conn: duckdb.DuckDBPyConnection,
    staging_df: pd.DataFrame,
    spec: DimensionSpec,
    load_id: Optional[str] = None
) -> Dict[str, int]:
    """
    Append dimension rows for natural keys not seen before.

    The first staging row carrying a key is its representative. Existing
    rows are never touched, so re-running a window inserts nothing.
    """
    stats = {'inserted': 0, 'existing': 0}

    if staging_df.empty:
        return stats

    keys = natural_key_frame(staging_df, spec).drop_duplicates(subset=['bk_hash'])
    existing = fetch_existing_keys(conn, spec, keys['bk_hash'].tolist())
    new_keys = keys[~keys['bk_hash'].isin(list(existing))]

    if not new_keys.empty:
        columns = [spec.hash_column] + spec.dim_columns + ['first_load_id']
        placeholders = ', '.join(['?'] * len(columns))
        rows = [
            [row['bk_hash']] + [row[c] for c in spec.dim_columns] + [load_id]
            for _, row in new_keys.iterrows()
        ]
        conn.executemany(f"""
            INSERT INTO {spec.table} ({spec.sk_column}, {', '.join(columns)})
            VALUES (NEXTVAL('{spec.sequence}'), {placeholders})
        """, rows)

    stats['inserted'] = len(new_keys)
    stats['existing'] = len(keys) - len(new_keys)

    logger.info(f"{spec.table}: inserted={stats['inserted']}, existing={stats['existing']}")
    return stats

