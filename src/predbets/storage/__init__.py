"""DuckDB persistence."""
