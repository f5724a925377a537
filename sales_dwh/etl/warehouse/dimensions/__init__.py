"""
Dimension processing modules for DWH ETL.
"""

from .base import DimensionSpec, compute_bk_hash, natural_key_frame, resolve_dimension
from .customer import CUSTOMER_DIMENSION, process_dim_customer, compute_customer_hash
from .product import PRODUCT_DIMENSION, process_dim_product, compute_product_hash
from .date import process_dim_date

__all__ = [
    'DimensionSpec',
    'compute_bk_hash',
    'natural_key_frame',
    'resolve_dimension',
    'CUSTOMER_DIMENSION',
    'PRODUCT_DIMENSION',
    'process_dim_customer',
    'compute_customer_hash',
    'process_dim_product',
    'compute_product_hash',
    'process_dim_date',
]
