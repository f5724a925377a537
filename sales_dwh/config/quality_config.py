"""Data Quality configuration"""
import os

# Max failing rows echoed into logs and run results
DQ_MAX_REPORTED_FAILURES = int(os.getenv("DQ_MAX_REPORTED_FAILURES", "50"))
