"""ESC/POS command builder, encoder and decoder.

Receipts are expressed as a list of typed commands which a single function
turns into bytes. Only the subset of the protocol the receipts use is
supported:

=====================  ===============================
Initialize             ``ESC @``
Align                  ``ESC a n`` (0 left, 1 center, 2 right)
Bold                   ``ESC E n``
PrintMode              ``ESC ! n``
Feed                   ``ESC d n``
Cut                    ``GS V 0x41 0x00``
BarcodeHeight / Width  ``GS h n`` / ``GS w n``
Barcode (CODE128)      ``GS k 0x49 len payload``
QR size/store/print    ``GS ( k pL pH 0x31 fn ...``
=====================  ===============================

The encoder is pure: the same commands always produce the same bytes.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Sequence, Union

from ..errors import EncodingError
from .layout import Alignment, ReceiptDocument, TextSize

ESC = 0x1B
GS = 0x1D
LF = 0x0A

CODE128 = 0x49
CUT_PARTIAL = 0x41
QR_CN = 0x31
QR_FN_SIZE = 0x43
QR_FN_STORE = 0x50
QR_FN_PRINT = 0x51
QR_M = 0x30

BARCODE_HEIGHT = 50
BARCODE_MODULE = 2
QR_MODULE = 6

_ALIGN_CODES = {Alignment.LEFT: 0, Alignment.CENTER: 1, Alignment.RIGHT: 2}
_MODE_CODES = {
    TextSize.NORMAL: 0x00,
    TextSize.SMALL: 0x01,
    TextSize.DOUBLE_HEIGHT: 0x10,
    TextSize.DOUBLE_WIDTH: 0x20,
}
_ALIGN_BY_CODE = {v: k for k, v in _ALIGN_CODES.items()}
_MODE_BY_CODE = {v: k for k, v in _MODE_CODES.items()}


@dataclass(frozen=True)
class Initialize:
    pass


@dataclass(frozen=True)
class Align:
    alignment: Alignment


@dataclass(frozen=True)
class Bold:
    on: bool


@dataclass(frozen=True)
class PrintMode:
    size: TextSize


@dataclass(frozen=True)
class Text:
    text: str
    newline: bool = True


@dataclass(frozen=True)
class Feed:
    lines: int


@dataclass(frozen=True)
class BarcodeHeight:
    dots: int


@dataclass(frozen=True)
class BarcodeWidth:
    module: int


@dataclass(frozen=True)
class Barcode:
    payload: str


@dataclass(frozen=True)
class QRSize:
    module: int


@dataclass(frozen=True)
class QRStore:
    data: str


@dataclass(frozen=True)
class QRPrint:
    pass


@dataclass(frozen=True)
class Cut:
    pass


Command = Union[
    Initialize,
    Align,
    Bold,
    PrintMode,
    Text,
    Feed,
    BarcodeHeight,
    BarcodeWidth,
    Barcode,
    QRSize,
    QRStore,
    QRPrint,
    Cut,
]


@dataclass(frozen=True)
class RenderedReceipt:
    """Encoder output handed to the transports."""

    commands: tuple[Command, ...]
    payload: bytes
    encoding: str = "utf-8"

    @property
    def text(self) -> str:
        return commands_to_text(self.commands)


def _byte(value: int, what: str) -> int:
    if not 0 <= value <= 0xFF:
        raise EncodingError(f"{what} must fit in one byte, got {value}")
    return value


def barcode_frame(payload: bytes) -> bytes:
    """``GS k 0x49 <len> <payload>``; the length field is a single byte."""
    if not payload:
        raise EncodingError("Barcode payload is empty")
    if len(payload) > 0xFF:
        raise EncodingError(f"Barcode payload is {len(payload)} bytes, limit is 255")
    return bytes([GS, ord("k"), CODE128, len(payload)]) + payload


def qr_frame(fn: int, body: bytes = b"") -> bytes:
    """``GS ( k pL pH cn fn body`` with a little-endian two byte length."""
    size = len(body) + 2
    if size > 0xFFFF:
        raise EncodingError(f"QR payload is {len(body)} bytes, too long")
    return bytes([GS, ord("("), ord("k"), size & 0xFF, size >> 8, QR_CN, fn]) + body


def _encode_one(command: Command, encoding: str, errors: str) -> bytes:
    if isinstance(command, Text):
        try:
            data = command.text.encode(encoding, errors)
        except UnicodeEncodeError as exc:
            raise EncodingError(
                f"Text {command.text!r} cannot be encoded as {encoding}",
                hint="Use errors='replace' or a UTF-8 capable printer",
            ) from exc
        if any(b in (ESC, GS, LF) for b in data):
            raise EncodingError(f"Text contains control bytes: {command.text!r}")
        return data + (b"\n" if command.newline else b"")
    if isinstance(command, Initialize):
        return bytes([ESC, ord("@")])
    if isinstance(command, Align):
        return bytes([ESC, ord("a"), _ALIGN_CODES[Alignment(command.alignment)]])
    if isinstance(command, Bold):
        return bytes([ESC, ord("E"), 1 if command.on else 0])
    if isinstance(command, PrintMode):
        return bytes([ESC, ord("!"), _MODE_CODES[TextSize(command.size)]])
    if isinstance(command, Feed):
        return bytes([ESC, ord("d"), _byte(command.lines, "Feed lines")])
    if isinstance(command, BarcodeHeight):
        return bytes([GS, ord("h"), _byte(command.dots, "Barcode height")])
    if isinstance(command, BarcodeWidth):
        return bytes([GS, ord("w"), _byte(command.module, "Barcode width")])
    if isinstance(command, Barcode):
        try:
            payload = command.payload.encode("ascii")
        except UnicodeEncodeError as exc:
            raise EncodingError(
                f"Barcode payload must be ASCII: {command.payload!r}"
            ) from exc
        return barcode_frame(payload)
    if isinstance(command, QRSize):
        return qr_frame(QR_FN_SIZE, bytes([_byte(command.module, "QR module")]))
    if isinstance(command, QRStore):
        return qr_frame(QR_FN_STORE, bytes([QR_M]) + command.data.encode("utf-8"))
    if isinstance(command, QRPrint):
        return qr_frame(QR_FN_PRINT, bytes([QR_M]))
    if isinstance(command, Cut):
        return bytes([GS, ord("V"), CUT_PARTIAL, 0x00])
    raise EncodingError(f"Unknown command: {command!r}")


def encode(
    commands: Sequence[Command], encoding: str = "utf-8", errors: str = "strict"
) -> bytes:
    """Serialize ``commands`` to bytes.

    The sequence must start with :class:`Initialize`; a :class:`Cut` may only
    appear as the final command.
    """
    if not commands or not isinstance(commands[0], Initialize):
        raise EncodingError("Command sequence must start with Initialize")
    for index, command in enumerate(commands):
        if isinstance(command, Cut) and index != len(commands) - 1:
            raise EncodingError("Cut must be the last command")
    return b"".join(_encode_one(c, encoding, errors) for c in commands)


def build_commands(document: ReceiptDocument) -> list[Command]:
    """Wrap the document's lines with the style changes they need."""
    commands: list[Command] = [Initialize()]
    align, bold, size = Alignment.LEFT, False, TextSize.NORMAL
    for line in document.lines:
        if line.align != align:
            align = line.align
            commands.append(Align(align))
        if line.bold != bold:
            bold = line.bold
            commands.append(Bold(bold))
        if line.size != size:
            size = line.size
            commands.append(PrintMode(size))
        commands.append(Text(line.text))
    if size != TextSize.NORMAL:
        commands.append(PrintMode(TextSize.NORMAL))
    if bold:
        commands.append(Bold(False))

    if document.barcode or document.qr_payload:
        commands.append(Text(""))
        commands.append(Align(Alignment.CENTER))
    if document.barcode:
        commands += [
            BarcodeHeight(BARCODE_HEIGHT),
            BarcodeWidth(BARCODE_MODULE),
            Barcode(document.barcode),
            Text(""),
        ]
    if document.qr_payload:
        commands += [
            QRSize(QR_MODULE),
            QRStore(document.qr_payload),
            QRPrint(),
            Text(""),
        ]
    commands.append(Feed(document.feed_lines))
    commands.append(Cut())
    return commands


def render_receipt(
    document: ReceiptDocument, *, encoding: str = "utf-8", errors: str = "strict"
) -> RenderedReceipt:
    commands = build_commands(document)
    return RenderedReceipt(
        commands=tuple(commands),
        payload=encode(commands, encoding, errors),
        encoding=encoding,
    )


class _Reader:
    def __init__(self, payload: bytes) -> None:
        self.data = payload
        self.pos = 0

    def take(self, count: int) -> bytes:
        end = self.pos + count
        if end > len(self.data):
            raise EncodingError(
                f"Truncated command at offset {self.pos}: need {count} bytes"
            )
        chunk = self.data[self.pos : end]
        self.pos = end
        return chunk

    def byte(self) -> int:
        return self.take(1)[0]


def _decode_esc(reader: _Reader) -> Command:
    op = chr(reader.byte())
    if op == "@":
        return Initialize()
    if op == "a":
        code = reader.byte()
        if code not in _ALIGN_BY_CODE:
            raise EncodingError(f"Unknown alignment {code}")
        return Align(_ALIGN_BY_CODE[code])
    if op == "E":
        return Bold(reader.byte() == 1)
    if op == "!":
        code = reader.byte()
        if code not in _MODE_BY_CODE:
            raise EncodingError(f"Unsupported print mode 0x{code:02x}")
        return PrintMode(_MODE_BY_CODE[code])
    if op == "d":
        return Feed(reader.byte())
    raise EncodingError(f"Unsupported ESC command {op!r}")


def _decode_gs(reader: _Reader) -> Command:
    op = chr(reader.byte())
    if op == "V":
        mode, feed = reader.take(2)
        if mode != CUT_PARTIAL or feed != 0:
            raise EncodingError(f"Unsupported cut 0x{mode:02x} 0x{feed:02x}")
        return Cut()
    if op == "h":
        return BarcodeHeight(reader.byte())
    if op == "w":
        return BarcodeWidth(reader.byte())
    if op == "k":
        system = reader.byte()
        if system != CODE128:
            raise EncodingError(f"Unsupported barcode system 0x{system:02x}")
        length = reader.byte()
        return Barcode(reader.take(length).decode("ascii"))
    if op == "(":
        if reader.byte() != ord("k"):
            raise EncodingError("Unsupported GS ( function")
        low, high = reader.take(2)
        body = reader.take(low + (high << 8))
        if len(body) < 2 or body[0] != QR_CN:
            raise EncodingError("Malformed QR frame")
        fn, rest = body[1], body[2:]
        if fn == QR_FN_SIZE and len(rest) == 1:
            return QRSize(rest[0])
        if fn == QR_FN_STORE and rest[:1] == bytes([QR_M]):
            return QRStore(rest[1:].decode("utf-8"))
        if fn == QR_FN_PRINT and rest == bytes([QR_M]):
            return QRPrint()
        raise EncodingError(f"Unsupported QR function 0x{fn:02x}")
    raise EncodingError(f"Unsupported GS command {op!r}")


def decode(payload: bytes, encoding: str = "utf-8") -> list[Command]:
    """Parse ``payload`` back into commands.

    Text between control sequences becomes :class:`Text`, one per line.
    """
    reader = _Reader(payload)
    commands: list[Command] = []
    text = bytearray()

    def flush(newline: bool) -> None:
        commands.append(Text(text.decode(encoding, "replace"), newline))
        text.clear()

    while reader.pos < len(payload):
        b = reader.byte()
        if b in (ESC, GS):
            if text:
                flush(False)
            commands.append(_decode_esc(reader) if b == ESC else _decode_gs(reader))
        elif b == LF:
            flush(True)
        else:
            text.append(b)
    if text:
        flush(False)
    return commands


def commands_to_text(commands: Iterable[Command]) -> str:
    """Plain text of a command stream, as it would appear on paper."""
    parts: list[str] = []
    for command in commands:
        if isinstance(command, Text):
            parts.append(command.text + ("\n" if command.newline else ""))
        elif isinstance(command, Barcode):
            parts.append(f"|| {command.payload} ||\n")
        elif isinstance(command, QRStore):
            parts.append(f"[QR {command.data}]\n")
    return "".join(parts)


def payload_to_text(payload: bytes, encoding: str = "utf-8") -> str:
    return commands_to_text(decode(payload, encoding))
