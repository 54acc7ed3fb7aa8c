"""
Persistence layer for load-test results.

This package stores scenario outcomes and timing spans as append-only
JSONL logs plus a JSON run summary.
"""

from .run_results import JSONLResultStore, ResultStore

__all__ = ['JSONLResultStore', 'ResultStore']
