"""Sales DWH - incremental star schema loader (staging -> DuckDB)."""

__version__ = "1.0.0"
