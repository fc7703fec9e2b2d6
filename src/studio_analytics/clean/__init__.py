"""Cleaning utilities for the analytics layer.

Provides date normalization, record validation at the ingestion boundary,
and the filter sets applied to record snapshots before grouping.
"""
