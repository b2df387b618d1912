"""Route an encoded receipt to the configured transport."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Mapping

from ..config import Settings, get_settings
from ..errors import TransportError, TransportFailure, TransportUnavailable
from ..obs.metrics import print_deliveries_total
from .profiles import PrinterProfile
from .transports import (
    BluetoothTransport,
    DeliveryMethod,
    HiddenFrameTransport,
    PreviewTransport,
    SerialPortTransport,
    Transport,
)

logger = logging.getLogger("gst_receipts.printing")


@dataclass(frozen=True)
class DeliveryResult:
    """Outcome of one delivery attempt."""

    method: DeliveryMethod
    ok: bool
    error: TransportError | None = None

    @property
    def unavailable(self) -> bool:
        return isinstance(self.error, TransportUnavailable)

    def as_dict(self) -> dict:
        data: dict = {"method": self.method.value, "ok": self.ok}
        if self.error is not None:
            data["error"] = self.error.to_dict()
        return data


def build_transport(
    method: DeliveryMethod,
    settings: Settings,
    printer: PrinterProfile | None = None,
) -> Transport:
    """Instantiate the transport for ``method`` from ``settings``."""
    printer = printer or PrinterProfile.from_settings(settings)
    if method is DeliveryMethod.SERIAL_PORT:
        return SerialPortTransport(
            settings.serial_port,
            baudrate=settings.serial_baudrate,
            timeout=settings.serial_timeout,
        )
    if method is DeliveryMethod.BLUETOOTH:
        return BluetoothTransport(
            service_uuid=settings.bluetooth_service_uuid,
            characteristic_uuid=settings.bluetooth_characteristic_uuid,
            scan_timeout=settings.bluetooth_scan_timeout,
            chunk_size=settings.bluetooth_chunk_size,
        )
    if method is DeliveryMethod.HIDDEN_FRAME:
        return HiddenFrameTransport(printer.paper_mm, encoding=settings.receipt_encoding)
    return PreviewTransport(printer.paper_mm, encoding=settings.receipt_encoding)


async def deliver(
    payload: bytes,
    method: DeliveryMethod | str,
    *,
    transports: Mapping[DeliveryMethod, Transport] | None = None,
    settings: Settings | None = None,
    printer: PrinterProfile | None = None,
) -> DeliveryResult:
    """Deliver ``payload`` once via ``method``.

    Transport errors are returned inside the :class:`DeliveryResult` rather
    than raised. Nothing is retried here.
    """
    method = DeliveryMethod.parse(method)
    transport = (transports or {}).get(method)
    if transport is None:
        transport = build_transport(method, settings or get_settings(), printer)

    try:
        await transport.write(payload)
    except TransportError as exc:
        error = exc
    except Exception as exc:
        logger.exception("unexpected %s transport error", method.value)
        error = TransportFailure(method.value, str(exc) or type(exc).__name__, cause=exc)
    else:
        print_deliveries_total.labels(method=method.value, outcome="ok").inc()
        return DeliveryResult(method=method, ok=True)

    outcome = "unavailable" if isinstance(error, TransportUnavailable) else "failure"
    print_deliveries_total.labels(method=method.value, outcome=outcome).inc()
    logger.warning(
        "delivery via %s failed: %s",
        method.value,
        error,
        extra={"method": method.value, "outcome": outcome},
    )
    return DeliveryResult(method=method, ok=False, error=error)
