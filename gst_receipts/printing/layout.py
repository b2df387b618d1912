"""Fixed-width text layout for thermal receipts.

Every :class:`TextLine` produced here is exactly ``printer.columns``
characters long. Overlong text is truncated, never wrapped, except for the
free-form footer and terms which are wrapped so they print in full.
"""

from __future__ import annotations

import textwrap
from dataclasses import dataclass
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Sequence

from ..errors import ValidationError
from ..tax.gst_engine import InvoiceLine
from ..tax.totals import InvoiceTotals
from .profiles import PrinterProfile, StoreProfile

ELLIPSIS = "..."
CURRENCY = "₹"


class Alignment(str, Enum):
    LEFT = "left"
    CENTER = "center"
    RIGHT = "right"


class TextSize(str, Enum):
    NORMAL = "normal"
    SMALL = "small"
    DOUBLE_HEIGHT = "double_height"
    DOUBLE_WIDTH = "double_width"


@dataclass(frozen=True)
class TextLine:
    """One printed line and the style it is printed with."""

    text: str
    align: Alignment = Alignment.LEFT
    bold: bool = False
    size: TextSize = TextSize.NORMAL


@dataclass(frozen=True)
class ReceiptDocument:
    """Laid out receipt: text lines plus the trailing barcode/QR payloads."""

    lines: tuple[TextLine, ...]
    columns: int
    barcode: str | None = None
    qr_payload: str | None = None
    feed_lines: int = 3

    @property
    def text(self) -> str:
        return "\n".join(line.text for line in self.lines)


@dataclass(frozen=True)
class InvoiceMeta:
    """Invoice header fields that are printed but play no part in tax."""

    number: str
    date: date | datetime | str | None = None
    buyer_name: str | None = None
    buyer_phone: str | None = None
    buyer_gstin: str | None = None
    payment_method: str | None = None


@dataclass(frozen=True)
class ItemColumns:
    name: int
    qty: int
    rate: int
    amount: int
    gap: int = 1

    @property
    def total(self) -> int:
        return self.name + self.qty + self.rate + self.amount + 3 * self.gap


_CONTROL = {i: " " for i in (*range(32), 127)}


def _clean(text: str) -> str:
    """Control characters would be read as printer commands; blank them."""
    return str(text).translate(_CONTROL)


def ellipsize(text: str, width: int) -> str:
    """Cut ``text`` to ``width`` characters, marking the cut with ``...``."""
    if width <= 0:
        return ""
    if len(text) <= width:
        return text
    if width <= len(ELLIPSIS):
        return text[:width]
    return text[: width - len(ELLIPSIS)] + ELLIPSIS


def fit(text: str, width: int, align: Alignment | str = Alignment.LEFT) -> str:
    """Truncate or pad ``text`` to exactly ``width`` characters."""
    text = _clean(text)
    if len(text) >= width:
        return text[:width]
    align = Alignment(align)
    room = width - len(text)
    if align is Alignment.CENTER:
        left = room // 2
        return " " * left + text + " " * (room - left)
    if align is Alignment.RIGHT:
        return " " * room + text
    return text + " " * room


def two_column(label: str, value: str, width: int) -> str:
    """``label`` flush left, ``value`` flush right, never wider than ``width``.

    The label gives way first; a value is only cut when it alone exceeds the
    budget.
    """
    label, value = _clean(label).strip(), _clean(value).strip()
    if len(value) >= width:
        return value[:width]
    room = width - len(value) - 1
    label = ellipsize(label, room)
    return label + " " * (width - len(label) - len(value)) + value


def separator(width: int, fill: str = "-") -> str:
    if len(fill) != 1:
        raise ValidationError(f"Separator fill must be one character: {fill!r}")
    return fill * width


def item_columns(width: int) -> ItemColumns:
    """Derive the name/qty/rate/amount field widths from the line budget."""
    amount = width // 4
    rate = width // 5
    qty = max(3, width // 10)
    name = width - qty - rate - amount - 3
    if name < 4:
        raise ValidationError(f"{width} columns is too narrow for an item table")
    return ItemColumns(name=name, qty=qty, rate=rate, amount=amount)


def item_row(
    name: str, qty: str, rate: str, amount: str, cols: ItemColumns
) -> str:
    """Lay out one item table row.

    Numeric fields wider than their slot borrow room from the name field.
    When the name has nothing left to give, rate and then quantity are cut
    so the amount is always printed whole.
    """
    qty, rate, amount = _clean(qty).strip(), _clean(rate).strip(), _clean(amount).strip()
    amount_width = max(cols.amount, len(amount))
    room = cols.total - amount_width - 3 * cols.gap
    if room < 0:
        return fit(amount, cols.total, Alignment.RIGHT)
    qty_width = max(cols.qty, len(qty))
    rate_width = max(cols.rate, len(rate))
    short = qty_width + rate_width - room
    if short > 0:
        cut = min(short, rate_width)
        rate_width -= cut
        qty_width -= short - cut
    name_width = room - qty_width - rate_width
    gap = " " * cols.gap
    return (
        ellipsize(_clean(name), name_width).ljust(name_width)
        + gap
        + ellipsize(qty, qty_width).rjust(qty_width)
        + gap
        + ellipsize(rate, rate_width).rjust(rate_width)
        + gap
        + amount.rjust(amount_width)
    )


def format_quantity(qty: Decimal) -> str:
    text = format(qty.normalize(), "f")
    return text


def _quantize(value: Decimal, places: int, rounding: str) -> Decimal:
    return value.quantize(Decimal(1).scaleb(-places), rounding=rounding)


def format_amount(value: Decimal, slot: int, rounding: str = ROUND_HALF_UP) -> str:
    """Two decimals when they fit ``slot``, whole rupees otherwise."""
    text = format(_quantize(value, 2, rounding), "f")
    if len(text) > slot:
        text = format(_quantize(value, 0, rounding), "f")
    return text


def money(
    value: Decimal,
    symbol: str = CURRENCY,
    places: int = 2,
    rounding: str = ROUND_HALF_UP,
) -> str:
    shown = _quantize(value, places, rounding)
    sign = "-" if shown < 0 else ""
    return f"{sign}{symbol}{format(abs(shown), 'f')}"


def format_date(value: date | datetime | str) -> str:
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value)
        except ValueError:
            return value
    return value.strftime("%d/%m/%Y")


class _Builder:
    def __init__(self, width: int) -> None:
        self.width = width
        self.lines: list[TextLine] = []

    def add(
        self,
        text: str,
        align: Alignment = Alignment.LEFT,
        *,
        bold: bool = False,
        size: TextSize = TextSize.NORMAL,
    ) -> None:
        self.lines.append(TextLine(fit(text, self.width, align), align, bold, size))

    def pair(
        self,
        label: str,
        value: str,
        *,
        bold: bool = False,
        size: TextSize = TextSize.NORMAL,
    ) -> None:
        self.lines.append(
            TextLine(two_column(label, value, self.width), Alignment.LEFT, bold, size)
        )

    def rule(self, fill: str = "-") -> None:
        self.lines.append(TextLine(separator(self.width, fill)))

    def blank(self) -> None:
        self.lines.append(TextLine(" " * self.width))

    def paragraph(self, text: str, align: Alignment = Alignment.CENTER) -> None:
        for raw in text.splitlines() or [""]:
            for chunk in textwrap.wrap(raw, self.width) or [""]:
                self.add(chunk, align, size=TextSize.SMALL)


def layout_receipt(
    totals: InvoiceTotals,
    lines: Sequence[InvoiceLine],
    store: StoreProfile,
    printer: PrinterProfile,
    *,
    meta: InvoiceMeta | None = None,
    footer: str | None = None,
    terms: str | None = None,
    currency_symbol: str = CURRENCY,
    qr_payload: str | None = None,
) -> ReceiptDocument:
    """Render an invoice into fixed-width lines for ``printer``."""
    width = printer.columns
    out = _Builder(width)
    cols = item_columns(width)
    if len(totals.breakdowns) != len(lines):
        raise ValidationError(
            f"Totals cover {len(totals.breakdowns)} lines but {len(lines)} were given"
        )

    def amount(value: Decimal, places: int = 2) -> str:
        return money(value, currency_symbol, places, totals.rounding)

    out.add(store.name.upper(), Alignment.CENTER, bold=True, size=TextSize.DOUBLE_HEIGHT)
    for address in store.address_lines:
        out.add(address, Alignment.CENTER, bold=True, size=TextSize.SMALL)
    if store.city_line:
        out.add(store.city_line, Alignment.CENTER, bold=True, size=TextSize.SMALL)
    if store.phone:
        out.add(f"Ph: {store.phone}", Alignment.CENTER, bold=True, size=TextSize.SMALL)
    if store.gstin:
        out.add(f"GSTIN: {store.gstin}", Alignment.CENTER, bold=True, size=TextSize.SMALL)
    out.rule("=")

    if meta is not None:
        out.pair("Invoice:", meta.number, bold=True)
        if meta.date is not None:
            out.pair("Date:", format_date(meta.date))
        if meta.buyer_name:
            out.pair("Customer:", meta.buyer_name)
        if meta.buyer_phone:
            out.pair("Phone:", meta.buyer_phone)
        if meta.buyer_gstin:
            out.pair("GSTIN:", meta.buyer_gstin, size=TextSize.SMALL)
        out.rule("=")

    amount_heading = "AMOUNT" if len("AMOUNT") <= cols.amount else "AMT"
    out.add(item_row("ITEM", "QTY", "RATE", amount_heading, cols), bold=True)
    out.rule("-")
    for line, breakdown in zip(lines, totals.breakdowns):
        out.add(
            item_row(
                line.name,
                format_quantity(line.quantity),
                format_amount(line.rate, cols.rate, totals.rounding),
                format_amount(breakdown.taxable_amount, cols.amount, totals.rounding),
                cols,
            )
        )
        if printer.is_wide:
            detail = []
            if line.hsn:
                detail.append(f"HSN {line.hsn}")
            detail.append(f"GST {format_quantity(line.gst_rate)}%")
            if line.discount_percent:
                detail.append(f"Disc {format_quantity(line.discount_percent)}%")
            out.add("  (" + ", ".join(detail) + ")", size=TextSize.SMALL)
    out.rule("-")

    out.pair("Subtotal:", amount(totals.subtotal))
    if totals.discount_amount > 0:
        out.pair("Discount:", amount(-totals.discount_amount))
    if totals.cgst > 0 or totals.sgst > 0:
        out.pair("CGST:", amount(totals.cgst), size=TextSize.SMALL)
        out.pair("SGST:", amount(totals.sgst), size=TextSize.SMALL)
    if totals.igst > 0:
        out.pair("IGST:", amount(totals.igst), size=TextSize.SMALL)
    if totals.to_paise(totals.round_off) != 0:
        out.pair("Round Off:", amount(totals.round_off), size=TextSize.SMALL)
    out.rule("=")
    out.pair(
        "TOTAL:",
        amount(totals.grand_total, places=0),
        bold=True,
        size=TextSize.DOUBLE_HEIGHT,
    )
    out.rule("=")

    if meta is not None and meta.payment_method:
        out.pair("Payment:", meta.payment_method.upper())
        out.rule("-")

    if footer:
        out.blank()
        out.paragraph(footer)
    if terms:
        out.blank()
        out.paragraph(terms)

    return ReceiptDocument(
        lines=tuple(out.lines),
        columns=width,
        barcode=meta.number if meta is not None else None,
        qr_payload=qr_payload,
    )
