"""Multi-platform publish worker for scheduled social posts."""

__version__ = "0.1.0"
