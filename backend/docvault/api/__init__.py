"""HTTP API for cache management and ingestion runs."""
