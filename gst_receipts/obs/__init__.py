"""Observability helpers."""

from .logging import JsonFormatter, configure_logging  # re-export
from .metrics import print_deliveries_total, receipts_rendered_total

__all__ = [
    "JsonFormatter",
    "configure_logging",
    "print_deliveries_total",
    "receipts_rendered_total",
]
