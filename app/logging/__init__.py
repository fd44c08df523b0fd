"""Application logging utilities."""

from app.logging.config import CorrelationIdFilter, configure_logging

__all__ = ["CorrelationIdFilter", "configure_logging"]
