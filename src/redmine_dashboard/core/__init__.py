"""Data pipeline: tracker client, spreadsheet import, normalization, reconciliation."""
