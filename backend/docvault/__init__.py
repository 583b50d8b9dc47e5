"""docvault: cached, progressive ingestion of PDF and legal documents."""

__version__ = "0.1.0"
