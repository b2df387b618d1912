"""Receipt layout, ESC/POS encoding and delivery."""

from .dispatcher import DeliveryResult, deliver
from .escpos import RenderedReceipt, build_commands, decode, encode, render_receipt
from .layout import InvoiceMeta, ReceiptDocument, TextLine, layout_receipt
from .profiles import PrinterProfile, StoreProfile
from .transports import DeliveryMethod

__all__ = [
    "DeliveryMethod",
    "DeliveryResult",
    "InvoiceMeta",
    "PrinterProfile",
    "ReceiptDocument",
    "RenderedReceipt",
    "StoreProfile",
    "TextLine",
    "build_commands",
    "decode",
    "deliver",
    "encode",
    "layout_receipt",
    "render_receipt",
]
