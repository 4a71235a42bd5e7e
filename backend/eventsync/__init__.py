"""Multi-tenant box office event sync service."""

__version__ = "0.1.0"
