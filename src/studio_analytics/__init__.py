"""studio_analytics package.

Contains modules for pulling studio data (sales, new clients, leads, trainer
payroll, sessions) from Google Sheets, normalizing rows into validated
records, and deriving the grouped summaries shown on the studio dashboard.

Architecture:
- Sheets rows -> validated records -> filtered -> grouped -> aggregated views
- Pydantic models normalize every record once at the ingestion boundary
- Aggregation functions are pure and never mutate their inputs
"""

__all__ = ["__version__"]
__version__ = "0.1.0"
