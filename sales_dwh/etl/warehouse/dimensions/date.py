"""
DimDate dimension processor.
"""

import logging
from datetime import date
from typing import Dict, List

import duckdb
import pandas as pd

from sales_dwh.quality import parse_order_dates

logger = logging.getLogger(__name__)

WEEKDAY_NAMES = ['Monday', 'Tuesday', 'Wednesday', 'Thursday', 'Friday', 'Saturday', 'Sunday']


def date_attributes(day: date) -> List:
    """DimDate column values for one calendar day."""
    quarter = (day.month - 1) // 3 + 1
    day_of_week = day.isoweekday()
    return [
        day,
        day.day,
        day.month,
        quarter,
        day.year,
        day.isocalendar()[1],
        day_of_week,
        WEEKDAY_NAMES[day_of_week - 1],
        day_of_week >= 6,
        day.strftime('%Y-%m'),
        f'Q{quarter}'
    ]


def process_dim_date(
    conn: duckdb.DuckDBPyConnection,
    staging_df: pd.DataFrame
) -> Dict[str, int]:
    """
    Append DimDate rows for order dates in the window not seen before.
    Dates are data-driven: only days that carry sales get a row.
    """
    stats = {'inserted': 0, 'existing': 0}

    if staging_df.empty:
        return stats

    order_dates = parse_order_dates(staging_df['OrderDate']).dropna()
    days = sorted(set(order_dates.dt.date))
    if not days:
        return stats

    placeholders = ','.join(['?'] * len(days))
    existing = {row[0] for row in conn.execute(f"""
        SELECT date_id FROM DimDate WHERE date_id IN ({placeholders})
    """, days).fetchall()}

    new_days = [d for d in days if d not in existing]
    if new_days:
        conn.executemany("""
            INSERT INTO DimDate (date_id, day, month, quarter, year, week_of_year, day_of_week, weekday_name, is_weekend, year_month, quarter_name)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """, [date_attributes(d) for d in new_days])

    stats['inserted'] = len(new_days)
    stats['existing'] = len(existing)

    logger.info(f"DimDate: inserted={stats['inserted']}, existing={stats['existing']}")
    return stats
