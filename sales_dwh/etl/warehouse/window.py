"""
Load window: the OrderDate range a single load invocation is scoped to.
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import Union

import pandas as pd

from sales_dwh.errors import RowFailure, ValidationError
from sales_dwh.quality import is_blank, log_failures, parse_order_dates

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LoadWindow:
    """Half-open OrderDate range [start, end)."""
    start: date
    end: date

    def __post_init__(self):
        if self.start >= self.end:
            raise ValueError(f"Load window start {self.start} must be before end {self.end}")

    @classmethod
    def for_year(cls, year: int) -> 'LoadWindow':
        return cls(date(int(year), 1, 1), date(int(year) + 1, 1, 1))

    @classmethod
    def parse(cls, value: Union[str, int, 'LoadWindow']) -> 'LoadWindow':
        """
        Parse a window parameter.

        Accepts a year (2021 or "2021") or a range "2021-01-01..2021-07-01"
        (end exclusive).
        """
        if isinstance(value, LoadWindow):
            return value
        if isinstance(value, int):
            return cls.for_year(value)

        text = str(value).strip()
        if '..' in text:
            start, end = (part.strip() for part in text.split('..', 1))
            return cls(
                datetime.strptime(start, '%Y-%m-%d').date(),
                datetime.strptime(end, '%Y-%m-%d').date()
            )
        if text.isdigit() and len(text) == 4:
            return cls.for_year(int(text))
        raise ValueError(f"Invalid load window: {value!r} (expected YYYY or YYYY-MM-DD..YYYY-MM-DD)")

    def contains(self, day: date) -> bool:
        return self.start <= day < self.end

    def __str__(self) -> str:
        return f"[{self.start.isoformat()}, {self.end.isoformat()})"


def filter_window(staging_df: pd.DataFrame, window: LoadWindow) -> pd.DataFrame:
    """
    Keep staging rows whose OrderDate falls inside the window.

    Rows with a missing or unparseable OrderDate cannot be placed in or out
    of the window, so they fail the load instead of being dropped.
    Such a row blocks every window until staging is corrected, including
    windows it would never have belonged to.
    """
    if staging_df.empty:
        return staging_df

    order_dates = parse_order_dates(staging_df['OrderDate'])
    unplaced = order_dates.isna()
    if unplaced.any():
        failures = [
            RowFailure(
                idx, 'OrderDate', staging_df.at[idx, 'OrderDate'],
                'missing value' if is_blank(staging_df.at[idx, 'OrderDate']) else 'not a date'
            )
            for idx in staging_df.index[unplaced.to_numpy()]
        ]
        log_failures('Window filter', failures)
        raise ValidationError('OrderDate could not be parsed', failures)

    in_window = (order_dates >= pd.Timestamp(window.start)) & (order_dates < pd.Timestamp(window.end))
    filtered = staging_df[in_window]
    logger.info(f"Window {window}: {len(filtered)}/{len(staging_df)} staging rows in scope")
    return filtered
