# schemas.py

"""Pydantic models for invoice records and API payloads."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field

from .config import PaperWidth
from .printing.layout import InvoiceMeta
from .printing.profiles import StoreProfile
from .tax.gst_engine import InvoiceLine, TaxContext
from .tax.states import validate_gstin


class BuyerIn(BaseModel):
    """Buyer details; all optional for walk-in sales."""

    name: Optional[str] = None
    phone: Optional[str] = None
    tax_id: Optional[str] = None
    state_code: Optional[str] = None

    def gstin(self) -> Optional[str]:
        """Normalised buyer GSTIN; a malformed one raises ``INVALID_GSTIN``."""
        if self.tax_id is None or not self.tax_id.strip():
            return None
        return validate_gstin(self.tax_id, field="buyer tax id")


class LineIn(BaseModel):
    """One invoice line as received from the back office."""

    name: str
    quantity: Decimal
    rate: Decimal
    discount_percent: Decimal = Decimal("0")
    gst_rate: Decimal = Decimal("0")
    hsn: Optional[str] = None

    def to_line(self) -> InvoiceLine:
        return InvoiceLine(
            name=self.name,
            quantity=self.quantity,
            rate=self.rate,
            discount_percent=self.discount_percent,
            gst_rate=self.gst_rate,
            hsn=self.hsn,
        )


class InvoiceRecord(BaseModel):
    """Invoice as handed over by the persistence layer."""

    invoice_number: str = Field(min_length=1)
    invoice_date: date
    buyer: BuyerIn = Field(default_factory=BuyerIn)
    lines: List[LineIn] = Field(default_factory=list)
    payment_method: Optional[str] = None

    def to_lines(self) -> list[InvoiceLine]:
        return [line.to_line() for line in self.lines]

    def to_meta(self) -> InvoiceMeta:
        return InvoiceMeta(
            number=self.invoice_number,
            date=self.invoice_date,
            buyer_name=self.buyer.name,
            buyer_phone=self.buyer.phone,
            buyer_gstin=self.buyer.gstin(),
            payment_method=self.payment_method,
        )

    def tax_context(self, seller_state_code: Optional[str]) -> TaxContext:
        return TaxContext.from_state_codes(
            seller_state_code,
            self.buyer.state_code,
            buyer_gstin=self.buyer.gstin(),
        )


class StoreIn(BaseModel):
    """Store profile printed in the receipt header."""

    name: str
    address_lines: List[str] = Field(default_factory=list)
    city: Optional[str] = None
    state: Optional[str] = None
    pincode: Optional[str] = None
    gstin: Optional[str] = None
    phone: Optional[str] = None

    def to_profile(self) -> StoreProfile:
        return StoreProfile(
            name=self.name,
            address_lines=tuple(self.address_lines),
            city=self.city,
            state=self.state,
            pincode=self.pincode,
            gstin=self.gstin or None,
            phone=self.phone,
        )


class ReceiptRequest(BaseModel):
    """Invoice plus everything needed to lay it out."""

    invoice: InvoiceRecord
    store: StoreIn
    width: Optional[PaperWidth] = None
    columns: Optional[int] = None
    footer: Optional[str] = None
    terms: Optional[str] = None
    qr_payload: Optional[str] = None


class PrintRequest(ReceiptRequest):
    method: Optional[str] = None


class PreviewResponse(BaseModel):
    preview: str
    image: str


class TotalsRequest(BaseModel):
    invoice: InvoiceRecord
    store: Optional[StoreIn] = None
