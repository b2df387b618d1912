"""GST computation: per-line tax and invoice totals."""

from .gst_engine import (
    GST_RATES,
    INTERSTATE,
    INTRASTATE,
    InvoiceLine,
    RoundingPolicy,
    TaxBreakdown,
    TaxContext,
    compute_line_tax,
)
from .totals import InvoiceTotals, aggregate

__all__ = [
    "GST_RATES",
    "INTERSTATE",
    "INTRASTATE",
    "InvoiceLine",
    "InvoiceTotals",
    "RoundingPolicy",
    "TaxBreakdown",
    "TaxContext",
    "aggregate",
    "compute_line_tax",
]
