"""Request-scoped structured logging for ASGI services."""

__version__ = "0.1.0"
