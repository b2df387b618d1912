import asyncio

import pydantic
import pytest

from gst_receipts.config import PaperWidth, Settings
from gst_receipts.printing.transports import DeliveryMethod
from gst_receipts.schemas import InvoiceRecord, PrintRequest, ReceiptRequest
from gst_receipts.services import receipt_service


class FakeTransport:
    def __init__(self) -> None:
        self.payloads: list[bytes] = []

    async def write(self, payload: bytes) -> None:
        self.payloads.append(payload)


def test_store_gstin_decides_seller_state(receipt_payload):
    # buyer in Tamil Nadu, configured seller in Karnataka, store GSTIN in Tamil Nadu
    receipt_payload["invoice"]["buyer"]["state_code"] = "33"
    request = ReceiptRequest.model_validate(receipt_payload)
    settings = Settings(seller_state_code="29")
    totals = receipt_service.price_invoice(
        request.invoice, settings, request.store.to_profile()
    )
    assert totals.is_intrastate
    assert not receipt_service.price_invoice(request.invoice, settings).is_intrastate


def test_prepare_receipt_uses_settings_defaults(receipt_payload):
    settings = Settings(paper_width=PaperWidth.NARROW, footer="Visit again", terms="No returns")
    prepared = receipt_service.prepare_receipt(
        ReceiptRequest.model_validate(receipt_payload), settings
    )
    assert prepared.printer.columns == 32
    assert prepared.document.columns == 32
    text = prepared.rendered.text
    assert "Visit again" in text
    assert "No returns" in text
    assert prepared.payload.startswith(b"\x1b@")


def test_request_overrides_width_and_footer(receipt_payload):
    receipt_payload.update(width="wide", columns=42, footer="")
    prepared = receipt_service.prepare_receipt(
        ReceiptRequest.model_validate(receipt_payload), Settings()
    )
    assert prepared.printer.columns == 42
    assert "Thank you" not in prepared.rendered.text


def test_line_precision_setting(receipt_payload):
    receipt_payload["invoice"]["lines"] = [
        {"name": "Biscuit", "quantity": 1, "rate": "10.10", "gst_rate": 5}
    ]
    request = ReceiptRequest.model_validate(receipt_payload)
    exact = receipt_service.price_invoice(request.invoice, Settings())
    rounded = receipt_service.price_invoice(request.invoice, Settings(line_precision="0.01"))
    assert str(exact.cgst) == "0.2525"
    assert str(rounded.cgst) == "0.25"


def test_ascii_printer_replaces_rupee_sign(receipt_payload):
    prepared = receipt_service.prepare_receipt(
        ReceiptRequest.model_validate(receipt_payload), Settings(receipt_encoding="ascii")
    )
    assert "₹".encode() not in prepared.payload
    assert b"?95" in prepared.payload


def test_print_receipt_uses_configured_method(receipt_payload):
    transport = FakeTransport()
    settings = Settings(delivery_method="bluetooth")
    prepared, result = asyncio.run(
        receipt_service.print_receipt(
            PrintRequest.model_validate(receipt_payload),
            settings,
            transports={DeliveryMethod.BLUETOOTH: transport},
        )
    )
    assert result.ok
    assert result.method is DeliveryMethod.BLUETOOTH
    assert transport.payloads == [prepared.payload]


def test_invoice_record_requires_a_date():
    with pytest.raises(pydantic.ValidationError):
        InvoiceRecord.model_validate({"invoice_number": "I1", "lines": []})


def test_same_request_renders_same_bytes(receipt_payload):
    settings = Settings()
    first = receipt_service.prepare_receipt(ReceiptRequest.model_validate(receipt_payload), settings)
    second = receipt_service.prepare_receipt(ReceiptRequest.model_validate(receipt_payload), settings)
    assert first.payload == second.payload
