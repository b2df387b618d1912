"""Delivery channels for encoded receipts.

Every transport implements ``async write(payload)`` and raises
:class:`~gst_receipts.errors.TransportUnavailable` when its API or device is
missing, or :class:`~gst_receipts.errors.TransportFailure` when the device is
there but the write failed. Device handles are opened right before the write
and closed on every path.
"""

from __future__ import annotations

import asyncio
import errno
import logging
import tempfile
import webbrowser
from enum import Enum
from pathlib import Path
from typing import Callable, Protocol

import serial
from bleak import BleakClient, BleakScanner
from bleak.exc import BleakError
from jinja2 import Environment, FileSystemLoader, select_autoescape

from ..errors import TransportFailure, TransportUnavailable, ValidationError
from .escpos import payload_to_text

logger = logging.getLogger("gst_receipts.printing")

TEMPLATE_DIR = Path(__file__).resolve().parents[1] / "templates"
_env = Environment(loader=FileSystemLoader(TEMPLATE_DIR), autoescape=select_autoescape())

RECONNECT_HINT = "Reconnect the printer and try again"
POPUP_HINT = "Allow pop-ups and printing for this app"

# Browser pages are written here; only the newest few are kept
DOCUMENT_DIR = Path(tempfile.gettempdir()) / "gst-receipts"
KEEP_DOCUMENTS = 20


class DeliveryMethod(str, Enum):
    HIDDEN_FRAME = "hidden_frame"
    SERIAL_PORT = "serial_port"
    BLUETOOTH = "bluetooth"
    PREVIEW = "preview"

    @classmethod
    def parse(cls, value: "str | DeliveryMethod") -> "DeliveryMethod":
        """Accept enum values as well as the older ``iframe``/``browser`` names."""
        if isinstance(value, cls):
            return value
        key = str(value).strip().lower().replace("-", "_")
        key = _ALIASES.get(key, key)
        try:
            return cls(key)
        except ValueError as exc:
            raise ValidationError(
                f"Unknown delivery method: {value!r}", code="INVALID_METHOD"
            ) from exc


_ALIASES = {
    "iframe": "hidden_frame",
    "hiddenframe": "hidden_frame",
    "browser": "serial_port",
    "serial": "serial_port",
    "serialport": "serial_port",
    "ble": "bluetooth",
}


class Transport(Protocol):
    method: DeliveryMethod

    async def write(self, payload: bytes) -> None: ...


BrowserOpener = Callable[[str], bool]


def _paper_font_size(paper: str) -> str:
    return "10px" if paper == "58mm" else "12px"


def render_print_document(text: str, paper: str = "80mm") -> str:
    """HTML page that prints ``text`` in monospace as soon as it loads."""
    template = _env.get_template("print_frame.html")
    return template.render(text=text, paper=paper, font_size=_paper_font_size(paper))


def render_preview_document(text: str, paper: str = "80mm") -> str:
    template = _env.get_template("preview.html")
    return template.render(text=text, paper=paper, font_size=_paper_font_size(paper))


def _prune_documents(directory: Path, keep: Path, limit: int) -> None:
    """Delete all but the ``limit`` newest receipt pages, never ``keep``."""
    older = []
    for path in directory.glob("receipt-*.html"):
        if path == keep:
            continue
        try:
            older.append((path.stat().st_mtime_ns, path))
        except FileNotFoundError:
            continue
    older.sort(reverse=True)
    for _, path in older[max(0, limit - 1):]:
        path.unlink(missing_ok=True)


def _write_temp_html(
    html: str,
    prefix: str,
    directory: Path | None = None,
    limit: int = KEEP_DOCUMENTS,
) -> Path:
    directory = directory or DOCUMENT_DIR
    directory.mkdir(parents=True, exist_ok=True)
    with tempfile.NamedTemporaryFile(
        "w", suffix=".html", prefix=prefix, dir=directory, delete=False, encoding="utf-8"
    ) as fh:
        fh.write(html)
    path = Path(fh.name)
    _prune_documents(directory, path, limit)
    return path


class HiddenFrameTransport:
    """Hand the receipt to the OS print dialog through the default browser.

    Success only means the dialog was requested; the outcome of the print job
    is not observable from here.
    """

    method = DeliveryMethod.HIDDEN_FRAME

    def __init__(
        self,
        paper: str = "80mm",
        *,
        encoding: str = "utf-8",
        opener: BrowserOpener | None = None,
        document_dir: Path | None = None,
    ) -> None:
        self.paper = paper
        self.document_dir = document_dir
        self.encoding = encoding
        self.opener = opener or (lambda url: webbrowser.open(url, new=0))
        self.last_document: Path | None = None

    async def write(self, payload: bytes) -> None:
        text = payload_to_text(payload, self.encoding)
        html = render_print_document(text, self.paper)
        try:
            path = _write_temp_html(html, "receipt-print-", self.document_dir)
        except OSError as exc:
            raise TransportFailure(
                self.method.value, "Could not write print document", cause=exc, hint=POPUP_HINT
            ) from exc
        self.last_document = path
        try:
            opened = self.opener(path.as_uri())
        except webbrowser.Error as exc:
            raise TransportUnavailable(
                self.method.value, "No browser available to print", cause=exc, hint=POPUP_HINT
            ) from exc
        if not opened:
            raise TransportUnavailable(
                self.method.value, "No browser available to print", hint=POPUP_HINT
            )
        logger.info("print dialog requested", extra={"method": self.method.value})


class PreviewTransport:
    """Show the decoded receipt in a browser window; never touches a device."""

    method = DeliveryMethod.PREVIEW

    def __init__(
        self,
        paper: str = "80mm",
        *,
        encoding: str = "utf-8",
        opener: BrowserOpener | None = None,
        document_dir: Path | None = None,
    ) -> None:
        self.paper = paper
        self.document_dir = document_dir
        self.encoding = encoding
        self.opener = opener or (lambda url: webbrowser.open(url, new=1))
        self.last_preview: str | None = None

    async def write(self, payload: bytes) -> None:
        text = payload_to_text(payload, self.encoding)
        self.last_preview = text
        html = render_preview_document(text, self.paper)
        try:
            path = _write_temp_html(html, "receipt-preview-", self.document_dir)
            opened = self.opener(path.as_uri())
        except (OSError, webbrowser.Error) as exc:
            raise TransportFailure(
                self.method.value, "Could not open preview", cause=exc, hint=POPUP_HINT
            ) from exc
        if not opened:
            raise TransportUnavailable(
                self.method.value, "No browser available for preview", hint=POPUP_HINT
            )


SerialOpener = Callable[..., "serial.SerialBase"]


class SerialPortTransport:
    """Write raw bytes to a serial (or USB-serial) thermal printer."""

    method = DeliveryMethod.SERIAL_PORT

    def __init__(
        self,
        port: str | None,
        *,
        baudrate: int = 9600,
        timeout: float = 5.0,
        opener: SerialOpener | None = None,
    ) -> None:
        self.port = port
        self.baudrate = baudrate
        self.timeout = timeout
        self.opener = opener or serial.serial_for_url

    def _open(self):
        try:
            return self.opener(
                self.port, baudrate=self.baudrate, write_timeout=self.timeout
            )
        except serial.SerialException as exc:
            if getattr(exc, "errno", None) in (errno.ENOENT, errno.ENODEV, errno.ENXIO):
                raise TransportUnavailable(
                    self.method.value,
                    f"Serial device {self.port} not found",
                    cause=exc,
                    hint=RECONNECT_HINT,
                ) from exc
            raise TransportFailure(
                self.method.value,
                f"Could not open {self.port}",
                cause=exc,
                hint=RECONNECT_HINT,
            ) from exc
        except ValueError as exc:
            raise TransportFailure(
                self.method.value,
                f"Invalid serial settings for {self.port}",
                cause=exc,
                hint=RECONNECT_HINT,
            ) from exc

    def _write_sync(self, payload: bytes) -> None:
        handle = self._open()
        try:
            handle.write(payload)
            handle.flush()
        except (serial.SerialException, OSError) as exc:
            raise TransportFailure(
                self.method.value,
                f"Write to {self.port} failed",
                cause=exc,
                hint=RECONNECT_HINT,
            ) from exc
        finally:
            handle.close()

    async def write(self, payload: bytes) -> None:
        if not self.port:
            raise TransportUnavailable(
                self.method.value,
                "No serial port configured",
                hint="Set GST_RECEIPTS_SERIAL_PORT to the printer device",
            )
        await asyncio.to_thread(self._write_sync, payload)
        logger.info(
            "wrote %d bytes to %s", len(payload), self.port,
            extra={"method": self.method.value},
        )


class BluetoothTransport:
    """Write to a BLE printer exposing the common 18F0/2AF1 service."""

    method = DeliveryMethod.BLUETOOTH

    def __init__(
        self,
        *,
        service_uuid: str = "000018f0-0000-1000-8000-00805f9b34fb",
        characteristic_uuid: str = "00002af1-0000-1000-8000-00805f9b34fb",
        scan_timeout: float = 10.0,
        chunk_size: int = 20,
        scanner=BleakScanner,
        client_factory=BleakClient,
    ) -> None:
        self.service_uuid = service_uuid.lower()
        self.characteristic_uuid = characteristic_uuid
        self.scan_timeout = scan_timeout
        self.chunk_size = chunk_size
        self.scanner = scanner
        self.client_factory = client_factory

    def _matches(self, device, advertisement) -> bool:
        uuids = getattr(advertisement, "service_uuids", None) or []
        return self.service_uuid in (u.lower() for u in uuids)

    async def _discover(self):
        try:
            device = await self.scanner.find_device_by_filter(
                self._matches, timeout=self.scan_timeout
            )
        except (BleakError, OSError) as exc:
            raise TransportUnavailable(
                self.method.value, "Bluetooth is not available", cause=exc, hint=RECONNECT_HINT
            ) from exc
        if device is None:
            raise TransportUnavailable(
                self.method.value, "No paired printer found", hint=RECONNECT_HINT
            )
        return device

    async def write(self, payload: bytes) -> None:
        device = await self._discover()
        client = self.client_factory(device)
        try:
            await client.connect()
            for start in range(0, len(payload), self.chunk_size):
                await client.write_gatt_char(
                    self.characteristic_uuid,
                    payload[start : start + self.chunk_size],
                    response=False,
                )
        except (BleakError, OSError, asyncio.TimeoutError) as exc:
            raise TransportFailure(
                self.method.value, "Bluetooth write failed", cause=exc, hint=RECONNECT_HINT
            ) from exc
        finally:
            try:
                await client.disconnect()
            except (BleakError, OSError) as exc:
                logger.warning("bluetooth disconnect failed: %s", exc)
        logger.info(
            "wrote %d bytes over bluetooth", len(payload),
            extra={"method": self.method.value},
        )
