"""rightsdesk: corpus ingestion and hybrid search for a healthcare-rights assistant."""

__version__ = "0.1.0"
