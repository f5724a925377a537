"""Data Quality Validators for sales staging rows."""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List

import numpy as np
import pandas as pd

from sales_dwh.config import DQ_MAX_REPORTED_FAILURES, ORDER_NUMBER_MAX_LENGTH
from sales_dwh.errors import RowFailure, ValidationError

logger = logging.getLogger(__name__)

STAGING_COLUMNS = [
    'CustomerName',
    'EmailAddress',
    'Item',
    'SalesOrderNumber',
    'SalesOrderLineNumber',
    'OrderDate',
    'Quantity',
    'TaxAmount',
    'UnitPrice',
]

BUSINESS_KEY_COLUMNS = ['SalesOrderNumber', 'SalesOrderLineNumber']


@dataclass
class ValidationResult:
    """Summary of a staging window, logged before the load."""
    timestamp: datetime
    total_rows: int
    unique_rows: int
    duplicate_rate: float
    valid_rows: int
    valid_rate: float
    field_missing_rates: Dict[str, float] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'total_rows': self.total_rows,
            'unique_rows': self.unique_rows,
            'duplicate_rate': self.duplicate_rate,
            'valid_rows': self.valid_rows,
            'valid_rate': self.valid_rate,
            'field_missing_rates': self.field_missing_rates,
        }


def is_blank(value: Any) -> bool:
    """True for None, NaN/NaT and whitespace-only strings."""
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        return False


def _strip(value: Any) -> Any:
    return value.strip() if isinstance(value, str) else value


def _to_text(value: Any) -> str:
    # 43659.0 read from a numeric column is order "43659"
    if isinstance(value, (float, np.floating)) and float(value).is_integer():
        return str(int(value))
    return str(value).strip()


def check_staging_columns(df: pd.DataFrame) -> None:
    """Raise ValidationError if the staging frame lacks any expected column."""
    missing = [c for c in STAGING_COLUMNS if c not in df.columns]
    if missing:
        raise ValidationError(f"Staging data missing columns: {', '.join(missing)}")


def require_fields(df: pd.DataFrame, fields: List[str]) -> List[RowFailure]:
    """Return a failure for every null/blank value in the given columns."""
    failures = []
    for col in fields:
        for idx, value in df[col].items():
            if is_blank(value):
                failures.append(RowFailure(idx, col, None if value is None else value, 'missing value'))
    return failures


def parse_order_dates(series: pd.Series) -> pd.Series:
    """
    Parse OrderDate values to midnight timestamps.
    Unparseable values become NaT; callers decide whether that is fatal.
    """
    parsed = pd.to_datetime(series.map(_strip), errors='coerce', format='mixed')
    if getattr(parsed.dt, 'tz', None) is not None:
        parsed = parsed.dt.tz_localize(None)
    return parsed.dt.normalize()


# SalesOrderLineNumber and Quantity land in INTEGER columns
INT32_MIN = -2 ** 31
INT32_MAX = 2 ** 31 - 1


def _cast_numeric(series: pd.Series, col: str, integral: bool, failures: List[RowFailure]) -> pd.Series:
    numeric = pd.to_numeric(series.map(_strip), errors='coerce').astype('float64')
    bad = ~np.isfinite(numeric)
    out_of_range = pd.Series(False, index=series.index)
    if integral:
        bad = bad | (numeric % 1 != 0)
        # float64 is exact inside the INT32 range, so the bounds test holds above 2**53 too
        out_of_range = ~bad & ((numeric < INT32_MIN) | (numeric > INT32_MAX))
    for pos in np.flatnonzero((bad | out_of_range).to_numpy()):
        value = series.iloc[pos]
        if out_of_range.iloc[pos]:
            reason = 'out of range'
        elif is_blank(value):
            reason = 'missing value'
        else:
            reason = 'not an integer' if integral else 'not a number'
        failures.append(RowFailure(series.index[pos], col, value, reason))
    return numeric


def cast_fact_rows(df: pd.DataFrame, max_order_number_length: int = ORDER_NUMBER_MAX_LENGTH) -> pd.DataFrame:
    """
    Cast staging measures to fact column types.

    - SalesOrderNumber -> str (non-empty, bounded length)
    - SalesOrderLineNumber, Quantity -> int (INT32 range)
    - TaxAmount, UnitPrice -> float
    - OrderDate -> date

    Rows are matched by position, so repeated index labels are safe.
    Raises ValidationError listing every failing row; never coerces to null or zero.
    """
    failures: List[RowFailure] = []

    order_numbers = []
    for idx, value in df['SalesOrderNumber'].items():
        text = None
        if is_blank(value):
            failures.append(RowFailure(idx, 'SalesOrderNumber', None, 'missing value'))
        elif len(_to_text(value)) > max_order_number_length:
            failures.append(RowFailure(idx, 'SalesOrderNumber', value, f'longer than {max_order_number_length} characters'))
        else:
            text = _to_text(value)
        order_numbers.append(text)

    line_numbers = _cast_numeric(df['SalesOrderLineNumber'], 'SalesOrderLineNumber', True, failures)
    quantities = _cast_numeric(df['Quantity'], 'Quantity', True, failures)
    tax_amounts = _cast_numeric(df['TaxAmount'], 'TaxAmount', False, failures)
    unit_prices = _cast_numeric(df['UnitPrice'], 'UnitPrice', False, failures)

    order_dates = parse_order_dates(df['OrderDate'])
    for pos in np.flatnonzero(order_dates.isna().to_numpy()):
        value = df['OrderDate'].iloc[pos]
        failures.append(RowFailure(df.index[pos], 'OrderDate', value, 'missing value' if is_blank(value) else 'not a date'))

    if failures:
        log_failures('Fact casting', failures)
        raise ValidationError('Fact rows failed casting', failures)

    return pd.DataFrame({
        'sales_order_number': np.array(order_numbers, dtype=object),
        'sales_order_line_number': line_numbers.to_numpy().astype('int64'),
        'order_date': order_dates.dt.date.to_numpy(),
        'quantity': quantities.to_numpy().astype('int64'),
        'tax_amount': tax_amounts.to_numpy(),
        'unit_price': unit_prices.to_numpy(),
    }, index=df.index)


def log_failures(stage: str, failures: List[RowFailure], limit: int = DQ_MAX_REPORTED_FAILURES) -> None:
    logger.error(f"{stage}: {len(failures)} failing values")
    for f in failures[:limit]:
        logger.error(f"  row={f.row} field={f.field} value={f.value!r} reason={f.reason}")


class StagingValidator:
    """Summarize data quality of the staging rows in a load window."""

    REQUIRED_FIELDS = STAGING_COLUMNS

    def validate(self, df: pd.DataFrame) -> ValidationResult:
        """Compute missing-field and duplicate rates. Never raises."""
        if df.empty:
            return ValidationResult(
                timestamp=datetime.now(), total_rows=0, unique_rows=0,
                duplicate_rate=0.0, valid_rows=0, valid_rate=0.0
            )

        total = len(df)
        unique = len(df.drop_duplicates(subset=[c for c in STAGING_COLUMNS if c in df.columns]))

        missing = {}
        invalid_mask = pd.Series(False, index=df.index)
        for col in self.REQUIRED_FIELDS:
            if col not in df.columns:
                missing[col] = 1.0
                invalid_mask[:] = True
                continue
            blank = df[col].map(is_blank)
            missing[col] = float(blank.sum()) / total
            invalid_mask |= blank

        valid = int((~invalid_mask).sum())
        result = ValidationResult(
            timestamp=datetime.now(),
            total_rows=total,
            unique_rows=unique,
            duplicate_rate=(total - unique) / total,
            valid_rows=valid,
            valid_rate=valid / total,
            field_missing_rates={k: v for k, v in missing.items() if v > 0},
        )
        logger.info(f"Staging validation: {total} rows, {result.valid_rate:.1%} complete, {result.duplicate_rate:.1%} duplicates")
        return result
