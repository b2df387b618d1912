from __future__ import annotations

"""Glue between invoice records and the tax/layout/encode/deliver pipeline."""

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Mapping

from ..config import PaperWidth, Settings
from ..obs.metrics import receipts_rendered_total
from ..printing.dispatcher import DeliveryResult, deliver
from ..printing.escpos import RenderedReceipt, render_receipt
from ..printing.layout import ReceiptDocument, layout_receipt
from ..printing.profiles import PrinterProfile, StoreProfile
from ..printing.transports import DeliveryMethod, Transport
from ..schemas import InvoiceRecord, PrintRequest, ReceiptRequest
from ..tax.gst_engine import RoundingPolicy
from ..tax.totals import InvoiceTotals, aggregate

logger = logging.getLogger("gst_receipts.printing")


@dataclass(frozen=True)
class PreparedReceipt:
    totals: InvoiceTotals
    document: ReceiptDocument
    rendered: RenderedReceipt
    printer: PrinterProfile

    @property
    def payload(self) -> bytes:
        return self.rendered.payload


def policy_from_settings(settings: Settings) -> RoundingPolicy:
    precision = Decimal(settings.line_precision) if settings.line_precision else None
    return RoundingPolicy(mode=settings.rounding_mode, line_precision=precision)


def seller_state_code(store: StoreProfile | None, settings: Settings) -> str | None:
    """The store's GSTIN decides its state; fall back to the configured code."""
    if store is not None and store.state_code:
        return store.state_code
    return settings.seller_state_code


def price_invoice(
    record: InvoiceRecord,
    settings: Settings,
    store: StoreProfile | None = None,
) -> InvoiceTotals:
    """Compute :class:`InvoiceTotals` for ``record``."""
    ctx = record.tax_context(seller_state_code(store, settings))
    return aggregate(
        record.to_lines(),
        ctx,
        policy=policy_from_settings(settings),
        strict_rates=settings.strict_gst_rates,
    )


def printer_for(request: ReceiptRequest, settings: Settings) -> PrinterProfile:
    width = request.width or settings.paper_width
    if width is PaperWidth.NARROW:
        return PrinterProfile.narrow()
    return PrinterProfile.wide(request.columns or settings.wide_columns)


def prepare_receipt(request: ReceiptRequest, settings: Settings) -> PreparedReceipt:
    """Price, lay out and encode the invoice in ``request``."""
    store = request.store.to_profile()
    printer = printer_for(request, settings)
    totals = price_invoice(request.invoice, settings, store)
    document = layout_receipt(
        totals,
        request.invoice.to_lines(),
        store,
        printer,
        meta=request.invoice.to_meta(),
        footer=request.footer if request.footer is not None else settings.footer,
        terms=request.terms if request.terms is not None else settings.terms,
        currency_symbol=settings.currency_symbol,
        qr_payload=request.qr_payload,
    )
    rendered = render_receipt(
        document,
        encoding=settings.receipt_encoding,
        errors="strict" if settings.receipt_encoding.lower().startswith("utf") else "replace",
    )
    receipts_rendered_total.labels(width=printer.width.value).inc()
    logger.info(
        "rendered receipt: %d lines, %d bytes",
        len(document.lines),
        len(rendered.payload),
        extra={"invoice": request.invoice.invoice_number},
    )
    return PreparedReceipt(totals, document, rendered, printer)


async def print_receipt(
    request: PrintRequest,
    settings: Settings,
    *,
    transports: Mapping[DeliveryMethod, Transport] | None = None,
) -> tuple[PreparedReceipt, DeliveryResult]:
    """Prepare the receipt and deliver it once via the requested method."""
    prepared = prepare_receipt(request, settings)
    method = DeliveryMethod.parse(request.method or settings.delivery_method)
    result = await deliver(
        prepared.payload,
        method,
        transports=transports,
        settings=settings,
        printer=prepared.printer,
    )
    return prepared, result
