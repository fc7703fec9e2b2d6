"""Aggregation helpers.

This package contains the routines that turn validated record snapshots into
the dashboard's grouped summaries: a generic grouping engine, a declarative
two-pass metric aggregator, period comparison (month-on-month, year-on-year),
ranking for top/bottom lists, and the dashboard views composed from them.
All of it is pure and synchronous; nothing here performs I/O.
"""
