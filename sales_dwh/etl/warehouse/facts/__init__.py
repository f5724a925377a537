"""
Fact processing modules for DWH ETL.
"""

from .sales import process_fact_sales, find_orphan_facts

__all__ = [
    'process_fact_sales',
    'find_orphan_facts',
]
