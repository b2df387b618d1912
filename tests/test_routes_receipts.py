import base64

import pytest
from fastapi.testclient import TestClient

from gst_receipts.errors import TransportFailure, TransportUnavailable
from gst_receipts.main import create_app
from gst_receipts.printing.escpos import payload_to_text
from gst_receipts.printing.transports import DeliveryMethod


class FakeTransport:
    def __init__(self, error: Exception | None = None) -> None:
        self.payloads: list[bytes] = []
        self.error = error

    async def write(self, payload: bytes) -> None:
        self.payloads.append(payload)
        if self.error is not None:
            raise self.error


@pytest.fixture
def app():
    return create_app(configure_logs=False)


@pytest.fixture
def client(app):
    return TestClient(app)


def test_totals_intrastate(client, receipt_payload):
    resp = client.post("/api/receipts/totals", json=receipt_payload)
    assert resp.status_code == 200
    body = resp.json()
    assert body["ok"] is True
    data = body["data"]
    assert data["cgst"] == 2.25
    assert data["sgst"] == 2.25
    assert data["igst"] == 0
    assert data["round_off"] == 0.5
    assert data["grand_total"] == 95
    assert data["is_intrastate"] is True
    assert data["amount_in_words"] == "Ninety Five Rupees Only"


def test_totals_interstate_buyer_gstin(client, receipt_payload):
    receipt_payload["invoice"]["buyer"]["tax_id"] = "29PQRST5678K1Z2"
    receipt_payload["invoice"]["lines"] = [
        {"name": "Printer", "quantity": 1, "rate": 1000, "discount_percent": 10, "gst_rate": 18}
    ]
    resp = client.post("/api/receipts/totals", json=receipt_payload)
    data = resp.json()["data"]
    assert data["is_intrastate"] is False
    assert data["igst"] == 162
    assert data["cgst"] == 0
    assert data["grand_total"] == 1062


def test_totals_without_store_uses_configured_state(client, receipt_payload):
    payload = {"invoice": receipt_payload["invoice"]}
    payload["invoice"]["buyer"]["state_code"] = "Karnataka"
    data = client.post("/api/receipts/totals", json=payload).json()["data"]
    assert data["is_intrastate"] is False


def test_escpos_returns_raw_bytes(client, receipt_payload):
    receipt_payload["width"] = "narrow"
    resp = client.post("/api/receipts/escpos", json=receipt_payload)
    assert resp.status_code == 200
    assert resp.headers["content-type"] == "application/octet-stream"
    assert resp.headers["X-Grand-Total"] == "95"
    assert resp.content.startswith(b"\x1b@")
    assert resp.content.endswith(b"\x1dVA\x00")
    lines = [
        line
        for line in payload_to_text(resp.content).splitlines()
        if line and not line.startswith("||")
    ]
    assert all(len(line) == 32 for line in lines)


def test_preview_returns_text_and_png(client, receipt_payload):
    receipt_payload["footer"] = "Visit again"
    resp = client.post("/api/receipts/preview", json=receipt_payload)
    assert resp.status_code == 200
    body = resp.json()
    assert "CORNER CAFE" in body["preview"]
    assert "Visit again" in body["preview"]
    assert base64.b64decode(body["image"]).startswith(b"\x89PNG")


def test_print_success(app, client, receipt_payload):
    transport = FakeTransport()
    app.state.transports = {DeliveryMethod.SERIAL_PORT: transport}
    receipt_payload["method"] = "serial"
    resp = client.post("/api/receipts/print", json=receipt_payload)
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["delivery"] == {"method": "serial_port", "ok": True}
    assert data["totals"]["grand_total"] == 95
    assert data["bytes"] == len(transport.payloads[0])


def test_print_unavailable_is_503(app, client, receipt_payload):
    app.state.transports = {
        DeliveryMethod.BLUETOOTH: FakeTransport(
            TransportUnavailable("bluetooth", "No paired printer found", hint="Reconnect")
        )
    }
    receipt_payload["method"] = "bluetooth"
    resp = client.post(
        "/api/receipts/print", json=receipt_payload, headers={"X-Request-ID": "req-1"}
    )
    assert resp.status_code == 503
    assert resp.headers["X-Request-ID"] == "req-1"
    body = resp.json()
    assert body["ok"] is False
    assert body["request_id"] == "req-1"
    assert body["error"]["code"] == "TRANSPORT_UNAVAILABLE"
    assert body["error"]["details"] == {"method": "bluetooth"}
    assert body["error"]["hint"] == "Reconnect"


def test_print_failure_is_502(app, client, receipt_payload):
    app.state.transports = {
        DeliveryMethod.HIDDEN_FRAME: FakeTransport(
            TransportFailure("hidden_frame", "Could not write print document")
        )
    }
    receipt_payload["method"] = "iframe"
    resp = client.post("/api/receipts/print", json=receipt_payload)
    assert resp.status_code == 502
    assert resp.json()["error"]["code"] == "TRANSPORT_FAILURE"


def test_unknown_method_is_rejected(client, receipt_payload):
    receipt_payload["method"] = "fax"
    resp = client.post("/api/receipts/print", json=receipt_payload)
    assert resp.status_code == 422
    assert resp.json()["error"]["code"] == "INVALID_METHOD"


def test_bad_store_gstin_is_rejected(client, receipt_payload):
    receipt_payload["store"]["gstin"] = "33-NOT-VALID"
    resp = client.post("/api/receipts/escpos", json=receipt_payload)
    assert resp.status_code == 422
    error = resp.json()["error"]
    assert error["code"] == "INVALID_GSTIN"
    assert error["hint"]


def test_bad_buyer_gstin_fails_validation(client, receipt_payload):
    receipt_payload["invoice"]["buyer"]["tax_id"] = "12345"
    resp = client.post("/api/receipts/totals", json=receipt_payload)
    assert resp.status_code == 422
    body = resp.json()
    assert body["ok"] is False
    assert body["error"]["code"] == "INVALID_GSTIN"
    assert "buyer tax id" in body["error"]["message"]
    assert body["error"]["hint"]


def test_invalid_line_is_rejected(client, receipt_payload):
    receipt_payload["invoice"]["lines"][0]["quantity"] = 0
    resp = client.post("/api/receipts/totals", json=receipt_payload)
    assert resp.status_code == 422
    assert resp.json()["error"]["code"] == "INVALID_QUANTITY"


def test_metrics_expose_counters(client, receipt_payload):
    client.post("/api/receipts/escpos", json=receipt_payload)
    text = client.get("/metrics").text
    assert "receipts_rendered_total" in text
    assert "print_deliveries_total" in text
