"""Unit tests for staging validation and fact casting."""
import pytest
import sys
import os
from datetime import date

import pandas as pd

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', '..'))

from sales_dwh.errors import ValidationError
from sales_dwh.quality.validators import (
    StagingValidator, cast_fact_rows, check_staging_columns, is_blank, require_fields
)
from conftest import make_staging, ALICE_ROW


class TestIsBlank:
    """Tests for is_blank."""

    def test_blank_values(self):
        assert is_blank(None)
        assert is_blank(float('nan'))
        assert is_blank("   ")
        assert is_blank("")

    def test_non_blank_values(self):
        assert not is_blank("Alice")
        assert not is_blank(0)
        assert not is_blank(date(2021, 5, 1))


class TestRequireFields:
    """Tests for require_fields."""

    def test_reports_each_missing_value(self):
        """Should return one failure per blank cell."""
        df = make_staging([
            ALICE_ROW,
            ("Bob", None, "Gadget", "SO2", 1, "2021-05-02", 1, 0.5, 4.99),
            ("  ", "c@x.com", "Gizmo", "SO3", 1, "2021-05-03", 1, 0.5, 4.99),
        ])
        failures = require_fields(df, ['CustomerName', 'EmailAddress'])
        assert {(f.row, f.field) for f in failures} == {(1, 'EmailAddress'), (2, 'CustomerName')}

    def test_check_staging_columns(self):
        """Should reject frames missing staging columns."""
        df = make_staging([ALICE_ROW]).drop(columns=['UnitPrice'])
        with pytest.raises(ValidationError, match='UnitPrice'):
            check_staging_columns(df)


class TestCastFactRows:
    """Tests for cast_fact_rows."""

    def test_casts_to_fact_types(self):
        """Should cast strings to the fact column types."""
        df = make_staging([
            ("Alice", "a@x.com", "Widget", " SO1 ", "1", "2021-05-01 10:30:00", " 3 ", "1.25", "9.99"),
        ])
        result = cast_fact_rows(df)
        row = result.iloc[0]
        assert row['sales_order_number'] == "SO1"
        assert row['sales_order_line_number'] == 1
        assert row['quantity'] == 3
        assert row['tax_amount'] == pytest.approx(1.25)
        assert row['unit_price'] == pytest.approx(9.99)
        assert row['order_date'] == date(2021, 5, 1)
        assert str(result['quantity'].dtype) == 'int64'

    def test_numeric_order_number_has_no_decimal(self):
        """Order numbers read as floats should not gain a '.0'."""
        df = make_staging([
            ("Alice", "a@x.com", "Widget", 43659.0, 1, "2021-05-01", 1, 1.0, 9.99),
        ])
        assert cast_fact_rows(df).iloc[0]['sales_order_number'] == "43659"

    def test_fractional_quantity_fails(self):
        """Quantity 2.5 should not be truncated to 2."""
        df = make_staging([
            ("Alice", "a@x.com", "Widget", "SO1", 1, "2021-05-01", "2.5", 1.0, 9.99),
        ])
        with pytest.raises(ValidationError) as exc_info:
            cast_fact_rows(df)
        failure = exc_info.value.failures[0]
        assert failure.field == 'Quantity'
        assert failure.reason == 'not an integer'

    def test_missing_measure_fails(self):
        """A missing tax amount should fail rather than become 0."""
        df = make_staging([
            ("Alice", "a@x.com", "Widget", "SO1", 1, "2021-05-01", 2, None, 9.99),
        ])
        with pytest.raises(ValidationError) as exc_info:
            cast_fact_rows(df)
        failure = exc_info.value.failures[0]
        assert failure.field == 'TaxAmount'
        assert failure.reason == 'missing value'

    def test_collects_all_failures(self):
        """Should report every failing value, not only the first."""
        df = make_staging([
            ("Alice", "a@x.com", "Widget", "X" * 26, 1, "2021-05-01", 2, 1.0, 9.99),
            ("Bob", "b@x.com", "Gadget", "SO2", "one", "2021-05-01", 2, 1.0, "free"),
            ("Carol", "c@x.com", "Gizmo", "SO3", 1, "someday", 2, 1.0, 9.99),
        ])
        with pytest.raises(ValidationError) as exc_info:
            cast_fact_rows(df)
        fields = {(f.row, f.field) for f in exc_info.value.failures}
        assert fields == {
            (0, 'SalesOrderNumber'),
            (1, 'SalesOrderLineNumber'),
            (1, 'UnitPrice'),
            (2, 'OrderDate'),
        }

    def test_order_number_length_is_configurable(self):
        """Should honor a custom max order number length."""
        df = make_staging([ALICE_ROW])
        with pytest.raises(ValidationError):
            cast_fact_rows(df, max_order_number_length=2)

    def test_integers_outside_int32_fail(self):
        """Values the INTEGER columns cannot hold should be reported as out of range."""
        df = make_staging([
            ("Alice", "a@x.com", "Widget", "SO1", "9007199254740993", "2021-05-01", 3_000_000_000, 1.0, 9.99),
            ("Bob", "b@x.com", "Gadget", "SO2", 1, "2021-05-01", -(2 ** 31) - 1, 1.0, 9.99),
        ])
        with pytest.raises(ValidationError) as exc_info:
            cast_fact_rows(df)
        failures = {(f.row, f.field, f.reason) for f in exc_info.value.failures}
        assert failures == {
            (0, 'SalesOrderLineNumber', 'out of range'),
            (0, 'Quantity', 'out of range'),
            (1, 'Quantity', 'out of range'),
        }

    def test_int32_bounds_are_accepted(self):
        df = make_staging([
            ("Alice", "a@x.com", "Widget", "SO1", 2 ** 31 - 1, "2021-05-01", -(2 ** 31), 1.0, 9.99),
        ])
        row = cast_fact_rows(df).iloc[0]
        assert row['sales_order_line_number'] == 2 ** 31 - 1
        assert row['quantity'] == -(2 ** 31)

    def test_repeated_index_labels_keep_rows_apart(self):
        """Rows sharing an index label should keep their own values."""
        df = pd.concat([
            make_staging([ALICE_ROW]),
            make_staging([("Bob", "b@x.com", "Gadget", "SO2", 2, "2021-05-02", 5, 0.5, 4.99)]),
        ])
        result = cast_fact_rows(df)
        assert list(result['sales_order_number']) == ["SO1", "SO2"]
        assert list(result['sales_order_line_number']) == [1, 2]
        assert list(result['quantity']) == [2, 5]
        assert list(result['order_date']) == [date(2021, 5, 1), date(2021, 5, 2)]



class TestStagingValidator:
    """Tests for StagingValidator."""

    def setup_method(self):
        self.validator = StagingValidator()

    def test_rates(self):
        """Should compute duplicate and missing-field rates."""
        df = make_staging([
            ALICE_ROW,
            ALICE_ROW,
            ("Bob", None, "Gadget", "SO2", 1, "2021-05-02", 1, 0.5, 4.99),
            ("Carol", "c@x.com", "Gizmo", "SO3", 1, "2021-05-03", 1, 0.5, 4.99),
        ])
        result = self.validator.validate(df)
        assert result.total_rows == 4
        assert result.unique_rows == 3
        assert result.duplicate_rate == pytest.approx(0.25)
        assert result.valid_rows == 3
        assert result.field_missing_rates == {'EmailAddress': pytest.approx(0.25)}

    def test_empty_frame(self):
        """Should handle an empty window."""
        result = self.validator.validate(make_staging([]))
        assert result.total_rows == 0
        assert result.valid_rate == 0.0
