"""Ingestion helpers (Google Sheets fetch and row-to-record mapping).

These modules pull raw tab values from the Sheets API and normalize header
names into the field names the record models expect.
"""
