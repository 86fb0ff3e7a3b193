"""Core (UI-agnostic) dashboard logic.

This package contains:
- the record model and CSV ingestion (CSV -> pandas -> Record)
- filter normalization and record filtering
- aggregation and month-over-month / year-over-year insights
- page compute functions (JSON-serializable payloads)
- chart helpers (Altair -> Vega-Lite spec dict)
"""
