import asyncio

from prometheus_client import REGISTRY

from gst_receipts.config import Settings
from gst_receipts.errors import TransportFailure, TransportUnavailable
from gst_receipts.printing.dispatcher import build_transport, deliver
from gst_receipts.printing.profiles import PrinterProfile
from gst_receipts.printing.transports import (
    BluetoothTransport,
    DeliveryMethod,
    HiddenFrameTransport,
    PreviewTransport,
    SerialPortTransport,
)

PAYLOAD = b"\x1b@hello\n\x1dVA\x00"


class RecordingTransport:
    def __init__(self, error: Exception | None = None) -> None:
        self.payloads: list[bytes] = []
        self.error = error

    async def write(self, payload: bytes) -> None:
        self.payloads.append(payload)
        if self.error is not None:
            raise self.error


def _count(method: str, outcome: str) -> float:
    value = REGISTRY.get_sample_value(
        "print_deliveries_total", {"method": method, "outcome": outcome}
    )
    return value or 0.0


def test_successful_delivery_is_counted():
    transport = RecordingTransport()
    before = _count("bluetooth", "ok")
    result = asyncio.run(
        deliver(PAYLOAD, "ble", transports={DeliveryMethod.BLUETOOTH: transport})
    )
    assert result.ok
    assert result.method is DeliveryMethod.BLUETOOTH
    assert transport.payloads == [PAYLOAD]
    assert result.as_dict() == {"method": "bluetooth", "ok": True}
    assert _count("bluetooth", "ok") == before + 1


def test_unavailable_transport_is_reported_not_raised():
    error = TransportUnavailable("serial_port", "No serial port configured", hint="Plug it in")
    transport = RecordingTransport(error)
    before = _count("serial_port", "unavailable")
    result = asyncio.run(
        deliver(PAYLOAD, DeliveryMethod.SERIAL_PORT, transports={DeliveryMethod.SERIAL_PORT: transport})
    )
    assert not result.ok
    assert result.unavailable
    assert result.error is error
    assert transport.payloads == [PAYLOAD]
    data = result.as_dict()
    assert data["error"]["code"] == "TRANSPORT_UNAVAILABLE"
    assert data["error"]["hint"] == "Plug it in"
    assert _count("serial_port", "unavailable") == before + 1


def test_unexpected_error_becomes_failure():
    transport = RecordingTransport(RuntimeError("boom"))
    result = asyncio.run(
        deliver(PAYLOAD, "preview", transports={DeliveryMethod.PREVIEW: transport})
    )
    assert not result.ok
    assert not result.unavailable
    assert isinstance(result.error, TransportFailure)
    assert isinstance(result.error.cause, RuntimeError)


def test_delivery_is_attempted_once():
    transport = RecordingTransport(TransportFailure("bluetooth", "write failed"))
    asyncio.run(deliver(PAYLOAD, "bluetooth", transports={DeliveryMethod.BLUETOOTH: transport}))
    assert len(transport.payloads) == 1


def test_missing_serial_port_from_settings():
    result = asyncio.run(deliver(PAYLOAD, "serial_port", settings=Settings()))
    assert result.unavailable
    assert result.error.method == "serial_port"


def test_build_transport_uses_settings():
    settings = Settings(
        serial_port="/dev/ttyS1",
        serial_baudrate=38400,
        bluetooth_chunk_size=64,
        receipt_encoding="cp437",
    )
    serial_t = build_transport(DeliveryMethod.SERIAL_PORT, settings)
    assert isinstance(serial_t, SerialPortTransport)
    assert (serial_t.port, serial_t.baudrate) == ("/dev/ttyS1", 38400)
    ble = build_transport(DeliveryMethod.BLUETOOTH, settings)
    assert isinstance(ble, BluetoothTransport)
    assert ble.chunk_size == 64
    frame = build_transport(DeliveryMethod.HIDDEN_FRAME, settings, PrinterProfile.narrow())
    assert isinstance(frame, HiddenFrameTransport)
    assert frame.paper == "58mm"
    assert frame.encoding == "cp437"
    assert isinstance(build_transport(DeliveryMethod.PREVIEW, settings), PreviewTransport)
