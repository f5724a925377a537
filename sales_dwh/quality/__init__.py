"""Quality module - Staging validation and measure casting."""

from .validators import (
    STAGING_COLUMNS, BUSINESS_KEY_COLUMNS,
    StagingValidator, ValidationResult,
    check_staging_columns, require_fields, parse_order_dates, cast_fact_rows, is_blank,
    log_failures
)

__all__ = [
    'STAGING_COLUMNS', 'BUSINESS_KEY_COLUMNS',
    'StagingValidator', 'ValidationResult',
    'check_staging_columns', 'require_fields', 'parse_order_dates', 'cast_fact_rows', 'is_blank',
    'log_failures'
]
