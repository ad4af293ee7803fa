"""
Ingestion layer — start-up loaders for the two external data sources.

Submodules:
  customer_csv      — gateway telemetry export (one row per customer)
  catalog_markdown  — product catalog maintained as a Markdown table

Both are read once at process start; the recommendation pipeline only ever
sees the in-memory results.
"""
