"""Admin console client for a dental clinic backend."""

__version__ = "1.0.0"
