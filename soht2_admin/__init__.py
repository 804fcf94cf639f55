"""soht2-admin: administration client for SOHT2 tunnel servers."""

__version__ = "0.1.0"
