"""ETL module."""
