"""Unit tests for dimension processing."""
import pytest
import sys
import os
from datetime import date

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', '..'))

from sales_dwh.errors import ValidationError
from sales_dwh.etl.warehouse.dimensions import (
    compute_customer_hash, compute_product_hash,
    process_dim_customer, process_dim_product, process_dim_date
)
from sales_dwh.etl.warehouse.dimensions.date import date_attributes
from conftest import make_staging, table_count, ALICE_ROW


class TestComputeCustomerHash:
    """Tests for compute_customer_hash function."""

    def test_returns_md5_hash(self):
        """Should return MD5 hex digest."""
        result = compute_customer_hash("Alice", "a@x.com")
        assert len(result) == 32
        assert result.isalnum()

    def test_email_is_case_insensitive(self):
        """Should ignore email case and surrounding whitespace."""
        assert compute_customer_hash(" Alice ", "A@X.com ") == compute_customer_hash("Alice", "a@x.com")

    def test_same_name_different_email(self):
        """Same name with a different email is a different customer."""
        assert compute_customer_hash("Alice", "a@x.com") != compute_customer_hash("Alice", "b@x.com")

    def test_parts_do_not_run_together(self):
        """Shifting characters between name and email should change the hash."""
        assert compute_customer_hash("Al", "ice@x.com") != compute_customer_hash("Alice", "@x.com")

    def test_product_hash(self):
        """Should hash the stripped item name."""
        assert compute_product_hash(" Widget ") == compute_product_hash("Widget")
        assert compute_product_hash("Widget") != compute_product_hash("Gadget")


class TestProcessDimCustomer:
    """Tests for process_dim_customer."""

    def test_inserts_new_customers_once(self, warehouse):
        """Repeated keys in a window should yield one row."""
        df = make_staging([
            ALICE_ROW,
            ("Alice", "A@X.COM", "Gadget", "SO1", 2, "2021-05-01", 1, 0.5, 4.99),
        ])
        stats = process_dim_customer(warehouse, df)
        assert stats == {'inserted': 1, 'existing': 0}
        assert table_count(warehouse, 'DimCustomer') == 1

    def test_distinct_by_full_natural_key(self, warehouse):
        """Same name, different email should give two customers."""
        df = make_staging([
            ALICE_ROW,
            ("Alice", "b@x.com", "Widget", "SO2", 1, "2021-05-02", 1, 1.0, 9.99),
        ])
        stats = process_dim_customer(warehouse, df)
        assert stats['inserted'] == 2
        emails = sorted(r[0] for r in warehouse.execute("SELECT email_address FROM DimCustomer").fetchall())
        assert emails == ["a@x.com", "b@x.com"]

    def test_rerun_is_idempotent(self, warehouse):
        """Second run on the same rows should insert nothing."""
        df = make_staging([ALICE_ROW])
        process_dim_customer(warehouse, df)
        stats = process_dim_customer(warehouse, df)
        assert stats == {'inserted': 0, 'existing': 1}
        assert table_count(warehouse, 'DimCustomer') == 1

    def test_surrogate_is_stable(self, warehouse):
        """Existing surrogate keys should not change when new customers arrive."""
        process_dim_customer(warehouse, make_staging([ALICE_ROW]), load_id='load-1')
        before = warehouse.execute("SELECT customer_sk, first_load_id FROM DimCustomer").fetchone()

        process_dim_customer(warehouse, make_staging([
            ("Bob", "b@x.com", "Gadget", "SO2", 1, "2021-06-01", 1, 0.5, 4.99),
            ALICE_ROW,
        ]), load_id='load-2')

        after = warehouse.execute("""
            SELECT customer_sk, first_load_id FROM DimCustomer WHERE customer_name = 'Alice'
        """).fetchone()
        assert after == before == (before[0], 'load-1')
        assert table_count(warehouse, 'DimCustomer') == 2

    def test_missing_email_fails(self, warehouse):
        """A missing natural key attribute should fail without inserting."""
        df = make_staging([
            ALICE_ROW,
            ("Bob", None, "Gadget", "SO2", 1, "2021-05-02", 1, 0.5, 4.99),
        ])
        with pytest.raises(ValidationError) as exc_info:
            process_dim_customer(warehouse, df)
        assert [(f.row, f.field) for f in exc_info.value.failures] == [(1, 'EmailAddress')]
        assert table_count(warehouse, 'DimCustomer') == 0

    def test_empty_frame(self, warehouse):
        """Should handle an empty window."""
        assert process_dim_customer(warehouse, make_staging([])) == {'inserted': 0, 'existing': 0}


class TestProcessDimProduct:
    """Tests for process_dim_product."""

    def test_inserts_distinct_items(self, warehouse):
        df = make_staging([
            ALICE_ROW,
            ("Bob", "b@x.com", "Widget ", "SO2", 1, "2021-05-02", 1, 1.0, 9.99),
            ("Bob", "b@x.com", "Gadget", "SO2", 2, "2021-05-02", 1, 0.5, 4.99),
        ])
        stats = process_dim_product(warehouse, df)
        assert stats['inserted'] == 2
        items = sorted(r[0] for r in warehouse.execute("SELECT item_name FROM DimProduct").fetchall())
        assert items == ["Gadget", "Widget"]

    def test_missing_item_fails(self, warehouse):
        df = make_staging([("Alice", "a@x.com", "", "SO1", 1, "2021-05-01", 2, 1.0, 9.99)])
        with pytest.raises(ValidationError):
            process_dim_product(warehouse, df)


class TestProcessDimDate:
    """Tests for process_dim_date."""

    def test_inserts_order_dates_once(self, warehouse):
        df = make_staging([
            ALICE_ROW,
            ("Bob", "b@x.com", "Gadget", "SO2", 1, "2021-05-01 18:00:00", 1, 0.5, 4.99),
            ("Bob", "b@x.com", "Gadget", "SO3", 1, "2021-05-08", 1, 0.5, 4.99),
        ])
        assert process_dim_date(warehouse, df) == {'inserted': 2, 'existing': 0}
        assert process_dim_date(warehouse, df) == {'inserted': 0, 'existing': 2}

    def test_date_attributes(self):
        """Saturday 2021-05-01 should be a weekend day in Q2."""
        values = date_attributes(date(2021, 5, 1))
        assert values[0] == date(2021, 5, 1)
        assert values[3] == 2
        assert values[7] == 'Saturday'
        assert values[8] is True
        assert values[9] == '2021-05'
        assert values[10] == 'Q2'
